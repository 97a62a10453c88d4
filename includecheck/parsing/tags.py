"""Declaration recognition: which names does a file introduce?

This is deliberately a lenient, pattern-based walker rather than a parser. It
tokenises the comment- and literal-free text, tracks brace scopes
(namespaces, classes, enums, linkage blocks), skips function bodies and
initialisers, and classifies each statement head. Anything it cannot make
sense of is skipped with a warning.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Sequence, Set, Tuple

from ..models import Tag, TagKind
from .source_text import (
    blank_lines,
    directive_line_numbers,
    disabled_line_numbers,
    logical_lines,
    strip_comments_and_strings,
)

_TOKEN_RE = re.compile(r"[A-Za-z_]\w*|\d[\w.']*|::|->|\.\.\.|[^\s\"']")
_IDENT_RE = re.compile(r"[A-Za-z_]\w*")
_MACRO_NAME_RE = re.compile(r"[A-Z_][A-Z0-9_]+")
_DEFINE_RE = re.compile(r"^\s*#\s*define\s+([A-Za-z_]\w*)")

_KEYWORDS = frozenset(
    {
        "alignas", "alignof", "asm", "auto", "bool", "break", "case", "catch", "char",
        "char8_t", "char16_t", "char32_t", "class", "const", "consteval", "constexpr",
        "constinit", "const_cast", "continue", "decltype", "default", "delete", "do",
        "double", "dynamic_cast", "else", "enum", "explicit", "export", "extern", "false",
        "final", "float", "for", "friend", "goto", "if", "inline", "int", "long", "mutable",
        "namespace", "new", "noexcept", "nullptr", "operator", "override", "private",
        "protected", "public", "register", "reinterpret_cast", "return", "short", "signed",
        "sizeof", "static", "static_assert", "static_cast", "struct", "switch", "template",
        "this", "thread_local", "throw", "true", "try", "typedef", "typeid", "typename",
        "union", "unsigned", "using", "virtual", "void", "volatile", "wchar_t", "while",
    }
)
_CLASS_KEYWORDS = frozenset({"class", "struct", "union"})
_ACCESS = frozenset({"public", "private", "protected"})
_ATTRIBUTE_CALLS = frozenset({"alignas", "__declspec", "__attribute__", "_Alignas"})
_STATEMENT_SKIP = frozenset(
    {"friend", "return", "static_assert", "goto", "break", "continue", "delete", "throw", "case"}
)
_BODY = "{}"


class _Token(NamedTuple):
    text: str
    line: int


@dataclass
class _Scope:
    kind: str
    name: Optional[str] = None
    head: List[_Token] = field(default_factory=list)


@dataclass
class ExtractionResult:
    """Tags found in one file plus recoverable problems.

    ``code`` is the text with comments, literals and directives blanked; the
    derivation engine matches macro call sites against it.
    """

    tags: List[Tag]
    warnings: List[Tuple[int, str]]
    code: str


def extract_tags(text: str, path: str) -> ExtractionResult:
    """Return the tags declared by ``text`` (the contents of ``path``)."""
    cleaned = strip_comments_and_strings(text)
    disabled = disabled_line_numbers(cleaned)

    collector = _TagCollector(path)
    for number, line in logical_lines(cleaned):
        if number in disabled:
            continue
        match = _DEFINE_RE.match(line)
        if match:
            collector.add(match.group(1), TagKind.MACRO, number)

    code = blank_lines(cleaned, disabled | directive_line_numbers(cleaned))
    collector.walk(tokenize(code))
    return ExtractionResult(tags=collector.tags, warnings=collector.warnings, code=code)


def tokenize(code: str) -> List[_Token]:
    tokens: List[_Token] = []
    line = 1
    position = 0
    for match in _TOKEN_RE.finditer(code):
        line += code.count("\n", position, match.start())
        position = match.start()
        tokens.append(_Token(match.group(0), line))
    return tokens


class _TagCollector:
    def __init__(self, path: str) -> None:
        self.path = path
        self.tags: List[Tag] = []
        self.warnings: List[Tuple[int, str]] = []
        self._seen: Set[Tuple[str, TagKind, Optional[str]]] = set()
        self._stack: List[_Scope] = [_Scope("file")]

    # ------------------------------------------------------------------
    # Bookkeeping

    def add(self, name: str, kind: TagKind, line: int, scope: Optional[str] = None) -> None:
        if not _IDENT_RE.fullmatch(name) or name in _KEYWORDS:
            return
        key = (name, kind, scope)
        if key in self._seen:
            return
        self._seen.add(key)
        self.tags.append(Tag(name=name, kind=kind, path=self.path, line=line, scope=scope))

    def warn(self, line: int, reason: str) -> None:
        self.warnings.append((line, reason))

    def _scope_name(self) -> Optional[str]:
        names = [scope.name for scope in self._stack if scope.name]
        return "::".join(names) if names else None

    # ------------------------------------------------------------------
    # Walk

    def walk(self, tokens: Sequence[_Token]) -> None:
        statement: List[_Token] = []
        index = 0
        count = len(tokens)
        while index < count:
            token = tokens[index]
            if token.text == "{":
                index, statement = self._open_brace(tokens, index, statement)
            elif token.text == "}":
                if len(self._stack) == 1:
                    self.warn(token.line, "unbalanced closing brace")
                    statement = []
                else:
                    scope = self._stack.pop()
                    statement = scope.head + [_Token(_BODY, token.line)] if scope.kind == "class" else []
            elif token.text == ";":
                self._declaration(statement)
                statement = []
            else:
                statement.append(token)
            index += 1

        if len(self._stack) > 1:
            scope = self._stack[-1]
            line = scope.head[0].line if scope.head else 0
            self.warn(line, f"unterminated {scope.kind} scope {scope.name or '(anonymous)'}")

    def _open_brace(
        self, tokens: Sequence[_Token], index: int, statement: List[_Token]
    ) -> Tuple[int, List[_Token]]:
        head = _clean(statement)
        kind, name = _classify_head(head)
        line = head[0].line if head else tokens[index].line
        scope = self._scope_name()

        if kind == "namespace":
            parts = name.split("::") if name else []
            for offset, part in enumerate(parts):
                outer = "::".join(filter(None, [scope] + parts[:offset])) or None
                self.add(part, TagKind.NAMESPACE, line, outer)
            self._stack.append(_Scope("namespace", name, head))
            return index, []
        if kind == "linkage":
            self._stack.append(_Scope("linkage", None, head))
            return index, []
        if kind == "class":
            if name:
                self.add(name, TagKind.TYPE, line, scope)
            self._stack.append(_Scope("class", name, head))
            return index, []

        end = _matching_brace(tokens, index)
        if end is None:
            self.warn(tokens[index].line, "unterminated brace block")
            end = len(tokens) - 1
        if kind == "enum":
            if name:
                self.add(name, TagKind.TYPE, line, scope)
            member_scope = "::".join(filter(None, [scope, name])) or None
            self._enumerators(tokens[index + 1 : end], member_scope)
            return end, head + [_Token(_BODY, tokens[end].line)]
        if kind == "function":
            self._function(head, scope)
            return end, []
        if kind == "initializer":
            return end, head
        return end, []

    # ------------------------------------------------------------------
    # Statement kinds

    def _enumerators(self, body: Sequence[_Token], scope: Optional[str]) -> None:
        for item in _split_top_level(list(body), ","):
            if item and _IDENT_RE.fullmatch(item[0].text):
                self.add(item[0].text, TagKind.ENUM_MEMBER, item[0].line, scope)

    def _function(self, head: Sequence[_Token], scope: Optional[str]) -> None:
        paren = _first_top_level(head, "(")
        # The name must follow a return type or qualifier; a leading call is a macro.
        if paren is None or paren < 2:
            return
        name = head[paren - 1]
        if not _IDENT_RE.fullmatch(name.text) or name.text in _KEYWORDS:
            return
        if head[paren - 2].text in {"~", "operator"}:
            return
        qualifier = _qualifier(head, paren - 1)
        if qualifier:
            scope = "::".join(filter(None, [scope, qualifier]))
        self.add(name.text, TagKind.FUNCTION, name.line, scope)

    def _declaration(self, statement: Sequence[_Token]) -> None:
        tokens = _clean(statement)
        if not tokens:
            return
        first = tokens[0].text
        scope = self._scope_name()

        if first in _STATEMENT_SKIP or any(token.text == "operator" for token in tokens):
            return
        if first == "using":
            if len(tokens) >= 3 and tokens[2].text == "=" and _IDENT_RE.fullmatch(tokens[1].text):
                self.add(tokens[1].text, TagKind.TYPE, tokens[1].line, scope)
            return
        if first == "namespace":
            if len(tokens) >= 3 and tokens[2].text == "=":
                self.add(tokens[1].text, TagKind.NAMESPACE, tokens[1].line, scope)
            return
        if first == "typedef":
            names = _typedef_names(tokens[1:])
            if not names:
                self.warn(tokens[0].line, "could not determine typedef name")
            for token in names:
                self.add(token.text, TagKind.TYPE, token.line, scope)
            return

        body = next((i for i, token in enumerate(tokens) if token.text == _BODY), None)
        if body is not None:
            for token in _declarator_names(tokens[body + 1 :]):
                self.add(token.text, TagKind.VARIABLE, token.line, scope)
            return

        if first in _CLASS_KEYWORDS or first == "enum":
            identifiers = [t for t in tokens if _IDENT_RE.fullmatch(t.text) and t.text not in _KEYWORDS]
            if len(identifiers) <= 1:
                # Forward declaration: names a type without declaring it.
                return

        paren = _first_top_level(tokens, "(")
        equals = _first_top_level(tokens, "=")
        if paren is not None and (equals is None or paren < equals):
            self._prototype(tokens, paren, scope)
            return
        self._variables(tokens, scope)

    def _prototype(self, tokens: Sequence[_Token], paren: int, scope: Optional[str]) -> None:
        if paren + 1 < len(tokens) and tokens[paren + 1].text in {"*", "&", "^"}:
            close = _matching_paren(tokens, paren)
            inner = tokens[paren + 1 : close] if close is not None else tokens[paren + 1 :]
            names = [t for t in inner if _IDENT_RE.fullmatch(t.text) and t.text not in _KEYWORDS]
            if names:
                self.add(names[-1].text, TagKind.VARIABLE, names[-1].line, scope)
            return
        if paren == 0:
            return
        self._function(tokens, scope)

    def _variables(self, tokens: Sequence[_Token], scope: Optional[str]) -> None:
        declarators = _split_top_level(list(tokens), ",")
        if not declarators:
            return
        head = _before_initializer(declarators[0])
        if len([t for t in head if _IDENT_RE.fullmatch(t.text)]) < 2:
            return
        for token in _declarator_names(tokens):
            self.add(token.text, TagKind.VARIABLE, token.line, scope)


# ----------------------------------------------------------------------
# Token helpers


def _clean(tokens: Sequence[_Token]) -> List[_Token]:
    """Drop access labels, templates, attributes and leading macro calls."""
    result = _strip_groups(list(tokens))
    while True:
        if len(result) >= 2 and result[0].text in _ACCESS and result[1].text == ":":
            result = result[2:]
            continue
        if len(result) >= 2 and result[0].text in {"inline", "export"} and result[1].text == "namespace":
            result = result[1:]
            continue
        if (
            len(result) >= 3
            and _MACRO_NAME_RE.fullmatch(result[0].text)
            and result[1].text == "("
        ):
            close = _matching_paren(result, 1)
            if close is not None and close + 1 < len(result):
                result = result[close + 1 :]
                continue
        break
    return result


def _strip_groups(tokens: List[_Token]) -> List[_Token]:
    out: List[_Token] = []
    index = 0
    while index < len(tokens):
        text = tokens[index].text
        if text == "template" and index + 1 < len(tokens) and tokens[index + 1].text == "<":
            index = _matching_angle(tokens, index + 1) + 1
            continue
        if text in _ATTRIBUTE_CALLS and index + 1 < len(tokens) and tokens[index + 1].text == "(":
            close = _matching_paren(tokens, index + 1)
            index = (close if close is not None else len(tokens)) + 1
            continue
        if text == "[" and index + 1 < len(tokens) and tokens[index + 1].text == "[":
            depth = 0
            while index < len(tokens):
                if tokens[index].text == "[":
                    depth += 1
                elif tokens[index].text == "]":
                    depth -= 1
                    if depth == 0:
                        break
                index += 1
            index += 1
            continue
        out.append(tokens[index])
        index += 1
    return out


def _classify_head(head: Sequence[_Token]) -> Tuple[str, Optional[str]]:
    if not head:
        return "block", None
    texts = [token.text for token in head]
    if texts == ["extern"]:
        return "linkage", None
    if texts[0] == "namespace":
        name = "".join(texts[1:]) or None
        return "namespace", name
    if "operator" in texts:
        return "function", None

    start = 1 if texts[0] == "typedef" else 0
    if start < len(texts) and texts[start] == "enum":
        return "enum", _enum_name(texts[start + 1 :])

    keyword = _last_class_keyword(head)
    if keyword is not None and _first_top_level(head[keyword:], "(") is None:
        return "class", _class_name(head[keyword + 1 :])

    equals = _first_top_level(head, "=")
    paren = _first_top_level(head, "(")
    if equals is not None and (paren is None or equals < paren):
        return "initializer", None
    if paren is not None:
        name = head[paren - 1].text if paren > 0 else ""
        if name in {"if", "for", "while", "switch", "catch"}:
            return "block", None
        return "function", None
    if len(head) >= 2 and _IDENT_RE.fullmatch(texts[-1]):
        return "initializer", None
    end = _before_subscripts(texts)
    if end < len(texts) and end >= 2 and _IDENT_RE.fullmatch(texts[end - 1]):
        return "initializer", None
    return "block", None


def _before_subscripts(texts: Sequence[str]) -> int:
    """Index where the trailing run of ``[...]`` groups begins."""
    end = len(texts)
    while end and texts[end - 1] == "]":
        depth = 0
        for index in range(end - 1, -1, -1):
            if texts[index] == "]":
                depth += 1
            elif texts[index] == "[":
                depth -= 1
                if depth == 0:
                    end = index
                    break
        else:
            return end
    return end


def _enum_name(texts: Sequence[str]) -> Optional[str]:
    for text in texts:
        if text in {"class", "struct"}:
            continue
        if text == ":":
            return None
        if _IDENT_RE.fullmatch(text) and text not in _KEYWORDS:
            return text
        return None
    return None


def _last_class_keyword(head: Sequence[_Token]) -> Optional[int]:
    found: Optional[int] = None
    depth = 0
    for index, token in enumerate(head):
        if token.text in {"(", "<"}:
            depth += 1
        elif token.text in {")", ">"}:
            depth = max(0, depth - 1)
        elif depth == 0 and token.text in _CLASS_KEYWORDS:
            if index > 0 and head[index - 1].text == "enum":
                continue
            found = index
    return found


def _class_name(tokens: Sequence[_Token]) -> Optional[str]:
    names: List[str] = []
    depth = 0
    for token in tokens:
        if token.text == "<":
            depth += 1
        elif token.text == ">":
            depth = max(0, depth - 1)
        elif depth:
            continue
        elif token.text == ":":
            break
        elif _IDENT_RE.fullmatch(token.text) and token.text not in _KEYWORDS and token.text != "sealed":
            names.append(token.text)
    return names[-1] if names else None


def _qualifier(tokens: Sequence[_Token], index: int) -> Optional[str]:
    parts: List[str] = []
    while index >= 2 and tokens[index - 1].text == "::" and _IDENT_RE.fullmatch(tokens[index - 2].text):
        parts.insert(0, tokens[index - 2].text)
        index -= 2
    return "::".join(parts) if parts else None


def _typedef_names(tokens: Sequence[_Token]) -> List[_Token]:
    body = next((i for i, token in enumerate(tokens) if token.text == _BODY), None)
    if body is not None:
        return _declarator_names(tokens[body + 1 :])
    paren = _first_top_level(tokens, "(")
    if paren is not None:
        close = _matching_paren(tokens, paren)
        inner = tokens[paren + 1 : close] if close is not None else tokens[paren + 1 :]
        if inner and inner[0].text in {"*", "&", "^"} or any(t.text == "::" for t in inner[:3]):
            names = [t for t in inner if _IDENT_RE.fullmatch(t.text) and t.text not in _KEYWORDS]
            return names[-1:]
        if paren > 0 and _IDENT_RE.fullmatch(tokens[paren - 1].text):
            return [tokens[paren - 1]]
        return []
    return _declarator_names(tokens)


def _declarator_names(tokens: Sequence[_Token]) -> List[_Token]:
    names: List[_Token] = []
    for declarator in _split_top_level(list(tokens), ","):
        head = _before_initializer(declarator)
        candidates = [t for t in head if _IDENT_RE.fullmatch(t.text) and t.text not in _KEYWORDS]
        if candidates:
            names.append(candidates[-1])
    return names


def _before_initializer(tokens: Sequence[_Token]) -> List[_Token]:
    out: List[_Token] = []
    depth = 0
    for token in tokens:
        if depth == 0 and token.text in {"=", "[", ":", _BODY, "("}:
            break
        if token.text == "<":
            depth += 1
        elif token.text == ">" and depth:
            depth -= 1
            continue
        if depth == 0:
            out.append(token)
    return out


def _split_top_level(tokens: List[_Token], separator: str) -> List[List[_Token]]:
    parts: List[List[_Token]] = [[]]
    depth = 0
    angle = 0
    for token in tokens:
        text = token.text
        if text in {"(", "[", "{"}:
            depth += 1
        elif text in {")", "]", "}"}:
            depth = max(0, depth - 1)
        elif text == "<":
            angle += 1
        elif text == ">" and angle:
            angle -= 1
        elif text == "=":
            # Initialisers may legitimately contain '<' comparisons; stop tracking angles.
            angle = 0
        if text == separator and depth == 0 and angle == 0:
            parts.append([])
            continue
        parts[-1].append(token)
    return [part for part in parts if part]


def _first_top_level(tokens: Sequence[_Token], text: str) -> Optional[int]:
    depth = 0
    for index, token in enumerate(tokens):
        if token.text == text and depth == 0:
            return index
        if token.text in {"(", "["}:
            depth += 1
        elif token.text in {")", "]"}:
            depth = max(0, depth - 1)
    return None


def _matching_paren(tokens: Sequence[_Token], index: int) -> Optional[int]:
    depth = 0
    for position in range(index, len(tokens)):
        if tokens[position].text == "(":
            depth += 1
        elif tokens[position].text == ")":
            depth -= 1
            if depth == 0:
                return position
    return None


def _matching_angle(tokens: Sequence[_Token], index: int) -> int:
    depth = 0
    for position in range(index, len(tokens)):
        if tokens[position].text == "<":
            depth += 1
        elif tokens[position].text == ">":
            depth -= 1
            if depth == 0:
                return position
        elif tokens[position].text in {"{", ";"}:
            return position - 1
    return len(tokens) - 1


def _matching_brace(tokens: Sequence[_Token], index: int) -> Optional[int]:
    depth = 0
    for position in range(index, len(tokens)):
        if tokens[position].text == "{":
            depth += 1
        elif tokens[position].text == "}":
            depth -= 1
            if depth == 0:
                return position
    return None


__all__ = ["ExtractionResult", "extract_tags", "tokenize"]
