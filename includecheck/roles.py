"""File role classification driven by a declarative rule table."""

from __future__ import annotations

import re
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Iterable, List, Optional, Sequence

from .config import CheckerConfig
from .diagnostics import RoleConflict
from .logging import get_logger
from .models import FileRole, IncludeDirective, Tag, TagKind
from .readers import canonical_path

logger = get_logger("roles")

_PRECEDENCE = {FileRole.IGNORED: 2, FileRole.INTERFACE: 1, FileRole.NORMAL: 0}
_GUARD_RE = re.compile(r"^\s*#\s*ifndef\s+(\w+)\s*\n\s*#\s*define\s+\1\b", re.MULTILINE)
_GLOB_CHARS = frozenset("*?[")


def path_matches(pattern: str, path: str) -> bool:
    """Whether ``pattern`` names ``path``.

    A pattern matches a canonical path exactly, as a trailing run of path
    components (``Cars.h`` or ``complex/Cars.h``), as a directory prefix, or
    as an ``fnmatch`` glob against any component suffix. A trailing ``/``
    also lets a relative directory name match anywhere in the path.
    """
    pattern = pattern.replace("\\", "/")
    if pattern.endswith("/"):
        directory = canonical_path(pattern)
        return path.startswith(directory.rstrip("/") + "/") or f"/{directory}/" in f"/{path}"
    pattern = canonical_path(pattern)
    if path == pattern or path.endswith("/" + pattern) or path.startswith(pattern + "/"):
        return True
    if not _GLOB_CHARS.intersection(pattern):
        return False
    if fnmatchcase(path, pattern):
        return True
    parts = path.split("/")
    return any(fnmatchcase("/".join(parts[index:]), pattern) for index in range(1, len(parts)))


@dataclass(frozen=True)
class RoleRule:
    """Assign ``role`` to every file ``pattern`` matches."""

    pattern: str
    role: FileRole
    origin: str = "config"

    def matches(self, path: str) -> bool:
        return path_matches(self.pattern, path)


@dataclass(frozen=True)
class RoleDecision:
    role: FileRole
    conflict: Optional[RoleConflict] = None
    heuristic: bool = False


class RoleClassifier:
    """Evaluates role rules; precedence is Ignored, then Interface, then Normal."""

    def __init__(self, rules: Iterable[RoleRule], *, detect: bool = False) -> None:
        self.rules: List[RoleRule] = list(rules)
        self.detect = detect

    @classmethod
    def from_config(cls, config: CheckerConfig) -> "RoleClassifier":
        rules: List[RoleRule] = []
        rules.extend(RoleRule(pattern, FileRole.IGNORED, "ignored_files") for pattern in config.ignored_files)
        rules.extend(
            RoleRule(pattern, FileRole.INTERFACE, "interface_files") for pattern in config.interface_files
        )
        rules.extend(RoleRule(pattern, FileRole.IGNORED, "exclude_paths") for pattern in config.exclude_paths)
        return cls(rules, detect=config.detect_roles)

    def classify(
        self,
        path: str,
        tags: Sequence[Tag] = (),
        includes: Sequence[IncludeDirective] = (),
        text: str = "",
    ) -> RoleDecision:
        matched = sorted(
            {rule.role for rule in self.rules if rule.matches(path)},
            key=lambda role: _PRECEDENCE[role],
            reverse=True,
        )
        if matched:
            role = matched[0]
            conflict = None
            if len(matched) > 1:
                conflict = RoleConflict(
                    file=path,
                    roles=tuple(item.value for item in matched),
                    resolved=role.value,
                )
                logger.warning("%s matches %s rules; treating it as %s", path, "/".join(conflict.roles), role.value)
            return RoleDecision(role, conflict)

        if self.detect:
            detected = _detect_role(tags, includes, text)
            if detected is not None:
                logger.debug("%s detected as %s", path, detected.value)
                return RoleDecision(detected, heuristic=True)
        return RoleDecision(FileRole.NORMAL)


def _detect_role(
    tags: Sequence[Tag], includes: Sequence[IncludeDirective], text: str
) -> Optional[FileRole]:
    """A file declaring nothing but its include guard is a pass-through or a pragma file."""
    guards = set(_GUARD_RE.findall(text))
    for tag in tags:
        if tag.kind is TagKind.MACRO and tag.name in guards:
            continue
        return None
    return FileRole.INTERFACE if includes else FileRole.IGNORED


__all__ = ["RoleClassifier", "RoleDecision", "RoleRule", "path_matches"]
