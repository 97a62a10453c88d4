"""Core data models shared across includecheck components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class TagKind(str, Enum):
    """Kind of symbolic name a file declares."""

    TYPE = "type"
    ENUM_MEMBER = "enum_member"
    FUNCTION = "function"
    VARIABLE = "variable"
    NAMESPACE = "namespace"
    MACRO = "macro"


class FileRole(str, Enum):
    """How the checker treats a file when it is included."""

    NORMAL = "normal"
    INTERFACE = "interface"
    IGNORED = "ignored"


@dataclass(frozen=True)
class Tag:
    """A name declared by a source file.

    ``scope`` records the enclosing namespace/class path (``A::B``) but matching
    only ever uses ``name``. Aliases minted by a derivation rule carry the rule
    name in ``derivation_rule`` and the name they were derived from in
    ``base_name``.
    """

    name: str
    kind: TagKind
    path: str
    line: int = 0
    scope: Optional[str] = None
    derivation_rule: Optional[str] = None
    base_name: Optional[str] = None

    @property
    def derived(self) -> bool:
        return self.derivation_rule is not None

    @property
    def qualified_name(self) -> str:
        return f"{self.scope}::{self.name}" if self.scope else self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "kind": self.kind.value,
            "path": self.path,
            "line": self.line,
            "scope": self.scope,
            "derivation_rule": self.derivation_rule,
            "base_name": self.base_name,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Tag":
        return cls(
            name=str(payload["name"]),
            kind=TagKind(payload["kind"]),
            path=str(payload["path"]),
            line=int(payload.get("line") or 0),
            scope=payload.get("scope"),
            derivation_rule=payload.get("derivation_rule"),
            base_name=payload.get("base_name"),
        )


@dataclass(frozen=True)
class IncludeDirective:
    """An ``#include`` exactly as written, with its 1-based line number."""

    written_path: str
    line: int
    is_system: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"written_path": self.written_path, "line": self.line, "is_system": self.is_system}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "IncludeDirective":
        return cls(
            written_path=str(payload["written_path"]),
            line=int(payload["line"]),
            is_system=bool(payload.get("is_system", False)),
        )


@dataclass(frozen=True)
class InclusionEdge:
    """A directive of ``source`` resolved (or not) to a canonical ``target``."""

    source: str
    written_path: str
    line: int
    is_system: bool = False
    target: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.target is not None


@dataclass
class SourceFile:
    """Everything Phase 1 learns about one file of an analysis run."""

    path: str
    text: str
    includes: List[IncludeDirective] = field(default_factory=list)
    tags: Tuple[Tag, ...] = ()
    role: FileRole = FileRole.NORMAL
    checked: bool = True


__all__ = [
    "FileRole",
    "IncludeDirective",
    "InclusionEdge",
    "SourceFile",
    "Tag",
    "TagKind",
]
