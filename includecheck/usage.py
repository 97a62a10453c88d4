"""Global tag index and per-file usage scanning."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional, Pattern, Sequence, Set, Tuple

from .config import ConfigError, UsageOverrideConfig
from .diagnostics import TagAliasCollision
from .logging import get_logger
from .models import Tag
from .roles import path_matches

logger = get_logger("usage")

_IDENTIFIER_RE = re.compile(r"(?<![\w])[A-Za-z_]\w*")


def identifier_tokens(body: str) -> FrozenSet[str]:
    """Every whole identifier in ``body``.

    Matching is on token boundaries only, so ``CarFactoryHelper`` never yields
    ``Car`` and ``A::B`` yields both ``A`` and ``B``. Digits glued to a letter
    (``0x1F``) do not start an identifier.
    """
    return frozenset(_IDENTIFIER_RE.findall(body))


class TagIndex:
    """Read-only ``name -> tags`` mapping built once per run."""

    def __init__(
        self,
        by_name: Mapping[str, Tuple[Tag, ...]],
        collisions: Sequence[TagAliasCollision] = (),
    ) -> None:
        self._by_name = MappingProxyType(dict(by_name))
        self.collisions: Tuple[TagAliasCollision, ...] = tuple(collisions)

    @classmethod
    def build(cls, per_file: Mapping[str, Sequence[Tag]]) -> "TagIndex":
        """Merge per-file tag lists, visiting files in path order."""
        by_name: Dict[str, List[Tag]] = {}
        for path in sorted(per_file):
            for tag in per_file[path]:
                by_name.setdefault(tag.name, []).append(tag)
        collisions = [
            collision
            for name in sorted(by_name)
            for collision in [_collision(name, by_name[name])]
            if collision is not None
        ]
        for collision in collisions:
            logger.warning("Alias %s is minted for several origins: %s", collision.name, ", ".join(collision.files))
        return cls(
            {name: tuple(tags) for name, tags in by_name.items()},
            collisions,
        )

    def get(self, name: str) -> Tuple[Tag, ...]:
        return self._by_name.get(name, ())

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self._by_name)

    def files_declaring(self, name: str) -> FrozenSet[str]:
        return frozenset(tag.path for tag in self.get(name))


def _collision(name: str, tags: Sequence[Tag]) -> Optional[TagAliasCollision]:
    """An alias collides when its origins disagree.

    Two files minting ``rFoo`` from the same ``Foo`` agree. ``rFoo`` from
    ``Foo`` and from ``Bar``, or ``rFoo`` minted in one file while another file
    declares ``rFoo`` outright, disagree. A forward declaration minted by a
    macro (alias equal to its base) never collides with the real declaration.
    """
    derived = [tag for tag in tags if tag.derived]
    if not derived:
        return None
    files: Set[str] = set()
    bases = {tag.base_name for tag in derived}
    if len(bases) > 1:
        files.update(tag.path for tag in derived)
    minted = [tag for tag in derived if tag.base_name != tag.name]
    for direct in (tag for tag in tags if not tag.derived):
        clashing = [tag.path for tag in minted if tag.path != direct.path]
        if clashing:
            files.add(direct.path)
            files.update(clashing)
    if not files:
        return None
    return TagAliasCollision(name=name, files=tuple(sorted(files)))


@dataclass(frozen=True)
class UsageOverride:
    """Identifiers fully matching ``token_pattern`` count as a use of ``implied_tag``."""

    token_pattern: Pattern[str]
    implied_tag: str
    files: Tuple[str, ...] = ()

    def applies_to(self, path: str) -> bool:
        return not self.files or any(path_matches(pattern, path) for pattern in self.files)

    @classmethod
    def from_config(cls, config: UsageOverrideConfig) -> "UsageOverride":
        try:
            pattern = re.compile(config.token)
        except re.error as exc:
            raise ConfigError(f"usage override {config.token!r}: invalid pattern: {exc}") from exc
        return cls(token_pattern=pattern, implied_tag=config.tag, files=tuple(config.files))


@dataclass
class UsageResult:
    """Declaring files referenced by one file, with the tokens that prove it."""

    path: str
    files: FrozenSet[str]
    evidence: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    tokens: FrozenSet[str] = frozenset()

    def uses(self, path: str) -> bool:
        return path in self.files


class UsageScanner:
    """Matches a file body against the frozen tag index."""

    def __init__(self, index: TagIndex, overrides: Sequence[UsageOverride] = ()) -> None:
        self.index = index
        self.overrides = tuple(overrides)

    def scan(self, path: str, body: str) -> UsageResult:
        tokens = identifier_tokens(body)
        evidence: Dict[str, Set[str]] = {}

        for token in tokens:
            for tag in self.index.get(token):
                if tag.path == path:
                    continue
                evidence.setdefault(tag.path, set()).add(token)

        for override in self.overrides:
            if not override.applies_to(path):
                continue
            implied = sorted(self.index.files_declaring(override.implied_tag) - {path})
            if not implied:
                continue
            for token in tokens:
                if not override.token_pattern.fullmatch(token):
                    continue
                for declaring in implied:
                    evidence.setdefault(declaring, set()).add(f"{token}->{override.implied_tag}")

        ordered = {declaring: tuple(sorted(found)) for declaring, found in sorted(evidence.items())}
        logger.debug("%s references %d declaring file(s)", path, len(ordered))
        return UsageResult(path=path, files=frozenset(ordered), evidence=ordered, tokens=tokens)


__all__ = ["TagIndex", "UsageOverride", "UsageResult", "UsageScanner", "identifier_tokens"]
