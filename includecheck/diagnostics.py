"""Structured findings emitted by the checker."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Dict, List, Protocol, Sequence, Tuple, Union


@dataclass(frozen=True)
class UnusedInclusion:
    """``file`` includes ``included_file`` but references nothing it declares."""

    kind: ClassVar[str] = "unused_inclusion"

    file: str
    included_file: str
    line: int
    written_path: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, **asdict(self)}


@dataclass(frozen=True)
class UnresolvedInclusion:
    """A directive whose written path matched no file on the search path."""

    kind: ClassVar[str] = "unresolved_inclusion"

    file: str
    written_path: str
    line: int

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, **asdict(self)}


@dataclass(frozen=True)
class TagAliasCollision:
    """A derived alias that maps back to more than one origin."""

    kind: ClassVar[str] = "tag_alias_collision"

    name: str
    files: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "name": self.name, "files": list(self.files)}


@dataclass(frozen=True)
class ParseWarning:
    kind: ClassVar[str] = "parse_warning"

    file: str
    reason: str
    line: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, **asdict(self)}


@dataclass(frozen=True)
class RoleConflict:
    """A file matched rules for several roles; ``resolved`` is the one applied."""

    kind: ClassVar[str] = "role_conflict"

    file: str
    roles: Tuple[str, ...]
    resolved: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "file": self.file,
            "roles": list(self.roles),
            "resolved": self.resolved,
        }


Diagnostic = Union[UnusedInclusion, UnresolvedInclusion, TagAliasCollision, ParseWarning, RoleConflict]


class DiagnosticSink(Protocol):
    """Receiver for the ordered diagnostic stream of a run."""

    def emit(self, diagnostic: Diagnostic) -> None:
        ...


class CollectingSink:
    """Keeps every emitted diagnostic in order."""

    def __init__(self) -> None:
        self.diagnostics: List[Diagnostic] = []

    def emit(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)


def count_warnings(diagnostics: Sequence[Diagnostic]) -> int:
    """Number of diagnostics that are not unused-inclusion findings."""
    return sum(1 for item in diagnostics if not isinstance(item, UnusedInclusion))


__all__ = [
    "CollectingSink",
    "Diagnostic",
    "DiagnosticSink",
    "ParseWarning",
    "RoleConflict",
    "TagAliasCollision",
    "UnresolvedInclusion",
    "UnusedInclusion",
    "count_warnings",
]
