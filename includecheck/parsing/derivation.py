"""Naming conventions that mint alias names from a declared base name."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Pattern, Sequence, Set, Tuple

from ..config import ConfigError, DerivationRuleConfig
from ..models import Tag, TagKind

_IDENT_RE = re.compile(r"[A-Za-z_]\w*")

_KIND_ALIASES: Dict[str, TagKind] = {
    "type": TagKind.TYPE,
    "class": TagKind.TYPE,
    "struct": TagKind.TYPE,
    "typedef": TagKind.TYPE,
    "enum": TagKind.TYPE,
    "enum_member": TagKind.ENUM_MEMBER,
    "enumerator": TagKind.ENUM_MEMBER,
    "function": TagKind.FUNCTION,
    "variable": TagKind.VARIABLE,
    "namespace": TagKind.NAMESPACE,
    "macro": TagKind.MACRO,
}


def name_variations(name: str, prefixes: Sequence[str], suffixes: Sequence[str]) -> List[str]:
    """Return ``name`` with every prefix, every suffix and every prefix/suffix pair.

    >>> name_variations("Reader", ["p"], ["Ref"])
    ['Reader', 'pReader', 'ReaderRef', 'pReaderRef']
    """
    variations = [name]
    variations.extend(prefix + name for prefix in prefixes)
    variations.extend(name + suffix for suffix in suffixes)
    variations.extend(prefix + name + suffix for prefix in prefixes for suffix in suffixes)
    return list(dict.fromkeys(variations))


@dataclass(frozen=True)
class DerivationRule:
    """One alias-minting convention.

    Trigger rules (``macro`` or ``pattern`` set) fire on macro call sites in the
    text; the captured argument is the base name. Convention rules fire on
    already-declared tags whose kind is in ``kinds``.
    """

    name: str
    aliases: Tuple[str, ...]
    macro: Optional[str] = None
    pattern: Optional[str] = None
    argument: int = 0
    kinds: FrozenSet[TagKind] = field(default_factory=frozenset)

    @property
    def is_trigger(self) -> bool:
        return bool(self.macro or self.pattern)

    def expand(self, base: str) -> List[str]:
        return list(dict.fromkeys(template.replace("{name}", base) for template in self.aliases))

    @classmethod
    def from_config(cls, config: DerivationRuleConfig) -> "DerivationRule":
        kinds: Set[TagKind] = set()
        for raw in config.kinds:
            kind = _KIND_ALIASES.get(raw.strip().lower())
            if kind is None:
                raise ConfigError(f"derivation rule {config.name!r}: unknown tag kind {raw!r}")
            kinds.add(kind)
        if config.pattern:
            try:
                re.compile(config.pattern)
            except re.error as exc:
                raise ConfigError(f"derivation rule {config.name!r}: invalid pattern: {exc}") from exc
        if config.macro and not _IDENT_RE.fullmatch(config.macro):
            raise ConfigError(f"derivation rule {config.name!r}: macro must be an identifier")
        if not config.macro and not config.pattern and not kinds:
            kinds.add(TagKind.TYPE)
        return cls(
            name=config.name,
            aliases=tuple(config.aliases),
            macro=config.macro,
            pattern=config.pattern,
            argument=config.argument,
            kinds=frozenset(kinds),
        )


def convention_rule(prefixes: Sequence[str], suffixes: Sequence[str]) -> Optional[DerivationRule]:
    """Compile the prefix/suffix lists into a rule over declared types."""
    if not prefixes and not suffixes:
        return None
    templates = [alias for alias in name_variations("{name}", prefixes, suffixes) if alias != "{name}"]
    return DerivationRule(
        name="type-alias",
        aliases=tuple(templates),
        kinds=frozenset({TagKind.TYPE}),
    )


@dataclass
class DerivationResult:
    aliases: List[Tag] = field(default_factory=list)
    warnings: List[Tuple[int, str]] = field(default_factory=list)


class DerivationEngine:
    """Applies derivation rules to one file's tags and code."""

    def __init__(self, rules: Iterable[DerivationRule]) -> None:
        self.rules: Tuple[DerivationRule, ...] = tuple(rules)
        self._triggers: List[Tuple[DerivationRule, Pattern[str]]] = []
        for rule in self.rules:
            if rule.macro:
                self._triggers.append((rule, re.compile(rf"(?<![\w]){re.escape(rule.macro)}\s*\(")))
            elif rule.pattern:
                self._triggers.append((rule, re.compile(rule.pattern)))
        self._conventions = [rule for rule in self.rules if not rule.is_trigger]

    @property
    def signature(self) -> str:
        """Stable digest of the rule set; cached extraction results depend on it."""
        digest = hashlib.sha256()
        for rule in self.rules:
            digest.update(repr(
                (rule.name, rule.aliases, rule.macro, rule.pattern, rule.argument,
                 sorted(kind.value for kind in rule.kinds))
            ).encode("utf-8"))
        return digest.hexdigest()

    def derive(self, tags: Sequence[Tag], code: str, path: str) -> DerivationResult:
        result = DerivationResult()
        emitted: Set[str] = {tag.name for tag in tags if not tag.derived}

        def _emit(alias: str, kind: TagKind, line: int, rule: DerivationRule, base: str) -> None:
            if alias in emitted or not _IDENT_RE.fullmatch(alias):
                return
            emitted.add(alias)
            result.aliases.append(
                Tag(
                    name=alias,
                    kind=kind,
                    path=path,
                    line=line,
                    derivation_rule=rule.name,
                    base_name=base,
                )
            )

        for rule, regex in self._triggers:
            for line, base, problem in self._call_sites(rule, regex, code):
                if problem is not None:
                    result.warnings.append((line, problem))
                    continue
                for alias in rule.expand(base):
                    _emit(alias, TagKind.TYPE, line, rule, base)

        for rule in self._conventions:
            for tag in tags:
                if tag.derived or tag.kind not in rule.kinds:
                    continue
                for alias in rule.expand(tag.name):
                    if alias != tag.name:
                        _emit(alias, tag.kind, tag.line, rule, tag.name)
        return result

    def _call_sites(
        self, rule: DerivationRule, regex: Pattern[str], code: str
    ) -> Iterable[Tuple[int, str, Optional[str]]]:
        for match in regex.finditer(code):
            line = code.count("\n", 0, match.start()) + 1
            if rule.macro:
                arguments = _macro_arguments(code, match.end() - 1)
                if arguments is None:
                    yield line, "", f"{rule.macro}( call is not closed"
                    continue
                if rule.argument >= len(arguments):
                    yield line, "", f"{rule.macro} call has no argument {rule.argument}"
                    continue
                candidate = arguments[rule.argument]
            else:
                if "name" in regex.groupindex:
                    candidate = match.group("name") or ""
                elif regex.groups:
                    candidate = match.group(1) or ""
                else:
                    candidate = match.group(0)
                candidate = candidate.strip()
            if not _IDENT_RE.fullmatch(candidate):
                yield line, "", (
                    f"{rule.name}: argument {candidate!r} is not a single identifier; no aliases derived"
                )
                continue
            yield line, candidate, None


def _macro_arguments(code: str, open_paren: int) -> Optional[List[str]]:
    """Split the argument list starting at ``code[open_paren] == '('``."""
    depth = 0
    current: List[str] = []
    arguments: List[str] = []
    for index in range(open_paren, len(code)):
        char = code[index]
        if char in "([{":
            depth += 1
            if depth == 1:
                continue
        elif char in ")]}":
            depth -= 1
            if depth == 0:
                arguments.append("".join(current).strip())
                return arguments
        elif char == "," and depth == 1:
            arguments.append("".join(current).strip())
            current = []
            continue
        current.append(char)
    return None


__all__ = [
    "DerivationEngine",
    "DerivationResult",
    "DerivationRule",
    "convention_rule",
    "name_variations",
]
