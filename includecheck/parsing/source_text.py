"""Text preparation shared by the include parser, tag extractor and usage scanner."""

from __future__ import annotations

import re
from typing import Iterator, List, Set, Tuple

_DIRECTIVE_RE = re.compile(r"^\s*#\s*(\w+)")
_IF_ZERO_RE = re.compile(r"^\s*#\s*if\s+(0|false)\b")
_INCLUDE_RE = re.compile(r"^\s*#\s*(?:include|import|include_next)\b")


def strip_comments_and_strings(text: str, *, keep_strings: bool = False) -> str:
    """Remove comments and the contents of string/char literals.

    Block comments become spaces (newlines kept) and literals collapse to
    their empty form, so line numbers of the remaining code do not move.
    With ``keep_strings`` literals are copied verbatim; include paths need that.
    """
    out: List[str] = []
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        nxt = text[index + 1] if index + 1 < length else ""
        if char == "/" and nxt == "/":
            index += 2
            while index < length and text[index] != "\n":
                # A trailing backslash continues a line comment onto the next line.
                if text[index] == "\\" and index + 1 < length and text[index + 1] == "\n":
                    out.append("\n")
                    index += 2
                    continue
                index += 1
        elif char == "/" and nxt == "*":
            index += 2
            out.append("  ")
            while index < length and not (text[index] == "*" and index + 1 < length and text[index + 1] == "/"):
                out.append("\n" if text[index] == "\n" else " ")
                index += 1
            if index < length:
                index += 2
                out.append("  ")
        elif char in {'"', "'"}:
            if keep_strings:
                end = _skip_literal(text, index, [])
                out.append(text[index:end])
                index = end
            else:
                index = _skip_literal(text, index, out)
        else:
            out.append(char)
            index += 1
    return "".join(out)


def _skip_literal(text: str, index: int, out: List[str]) -> int:
    quote = text[index]
    out.append(quote)
    index += 1
    length = len(text)
    while index < length:
        char = text[index]
        if char == "\\":
            if index + 1 < length and text[index + 1] == "\n":
                out.append("\n")
            index += 2
            continue
        if char == quote:
            out.append(quote)
            return index + 1
        if char == "\n":
            # Unterminated literal: stop at end of line so the rest of the file survives.
            out.append(quote)
            return index
        index += 1
    out.append(quote)
    return index


def logical_lines(text: str) -> Iterator[Tuple[int, str]]:
    """Yield ``(first_line_number, text)`` with backslash continuations joined."""
    pending: List[str] = []
    start = 0
    for number, line in enumerate(text.split("\n"), start=1):
        if not pending:
            start = number
        if line.endswith("\\"):
            pending.append(line[:-1])
            continue
        pending.append(line)
        yield start, " ".join(pending)
        pending = []
    if pending:
        yield start, " ".join(pending)


def disabled_line_numbers(text: str) -> Set[int]:
    """Line numbers inside ``#if 0`` regions, including the directives themselves."""
    disabled: Set[int] = set()
    # Each entry: True when the enclosing ``#if`` is a disabled ``#if 0`` branch.
    stack: List[bool] = []
    for number, line in enumerate(text.split("\n"), start=1):
        match = _DIRECTIVE_RE.match(line)
        inside = any(stack)
        if match:
            name = match.group(1)
            if name in {"if", "ifdef", "ifndef"}:
                stack.append(bool(_IF_ZERO_RE.match(line)) and not inside)
                if inside or stack[-1]:
                    disabled.add(number)
                continue
            if name in {"else", "elif"} and stack:
                was_zero = stack[-1]
                stack[-1] = False
                if was_zero or any(stack[:-1]):
                    disabled.add(number)
                continue
            if name == "endif" and stack:
                was_zero = stack.pop()
                if was_zero or any(stack):
                    disabled.add(number)
                continue
        if inside:
            disabled.add(number)
    return disabled


def blank_lines(text: str, numbers: Set[int]) -> str:
    """Replace the given 1-based lines with empty lines."""
    if not numbers:
        return text
    lines = text.split("\n")
    for number in numbers:
        if 0 < number <= len(lines):
            lines[number - 1] = ""
    return "\n".join(lines)


def directive_line_numbers(text: str, *, include_only: bool = False) -> Set[int]:
    """Lines covered by preprocessor directives (continuations included)."""
    numbers: Set[int] = set()
    pattern = _INCLUDE_RE if include_only else _DIRECTIVE_RE
    lines = text.split("\n")
    index = 0
    while index < len(lines):
        if pattern.match(lines[index]):
            numbers.add(index + 1)
            while lines[index].endswith("\\") and index + 1 < len(lines):
                index += 1
                numbers.add(index + 1)
        index += 1
    return numbers


def usage_body(text: str) -> str:
    """Text the usage scanner looks at: no comments, literals, includes or dead code."""
    cleaned = strip_comments_and_strings(text)
    hidden = directive_line_numbers(cleaned, include_only=True) | disabled_line_numbers(cleaned)
    return blank_lines(cleaned, hidden)


__all__ = [
    "blank_lines",
    "directive_line_numbers",
    "disabled_line_numbers",
    "logical_lines",
    "strip_comments_and_strings",
    "usage_body",
]
