"""Directory walking: which files does a check run look at?"""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence

from .config import DEFAULT_EXTENSIONS
from .logging import get_logger
from .readers import canonical_path

logger = get_logger("scanner")

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "node_modules",
    "__pycache__",
    ".idea",
    ".vs",
    ".includecheck",
}


@dataclass
class IgnoreRule:
    """A gitignore-style exclusion, matched against root-relative paths."""

    pattern: str
    directory_only: bool
    anchored: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str, root: Path | None = None) -> IgnoreRule | None:
    """Turn an exclude entry into a rule; absolute entries under ``root`` become anchored."""
    pattern = pattern.strip().replace("\\", "/")
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern.rstrip("/")

    if root is not None and os.path.isabs(pattern):
        try:
            pattern = "/" + Path(pattern).relative_to(root).as_posix()
        except ValueError:
            return None

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern.lstrip("/")

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        has_slash="/" in pattern,
    )


def _should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    return any(rule.matches(rel_path, is_dir) for rule in rules)


class SourceScanner:
    """Collects checkable files below a directory."""

    def __init__(
        self,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        exclude_paths: Iterable[str] = (),
    ) -> None:
        self.extensions = tuple(ext.lower() for ext in extensions)
        self.exclude_paths = list(exclude_paths)

    def scan(self, root: str | os.PathLike[str]) -> List[str]:
        """Return the sorted canonical paths of files with a checked extension."""
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise FileNotFoundError(f"Source path not found: {root}")
        if root_path.is_file():
            return [canonical_path(root_path)]

        rules = [
            rule
            for rule in (build_ignore_rule(pattern, root_path) for pattern in self.exclude_paths)
            if rule is not None
        ]
        found = sorted(canonical_path(path) for path in self._iter_files(root_path, rules))
        logger.debug("Found %d source file(s) under %s", len(found), root_path)
        return found

    def collect(self, paths: Iterable[str | os.PathLike[str]]) -> List[str]:
        """Expand a mix of files and directories into one sorted list."""
        collected = set()
        for path in paths:
            collected.update(self.scan(path))
        return sorted(collected)

    def _iter_files(self, root: Path, rules: Sequence[IgnoreRule]) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(root):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

            kept = []
            for name in dirnames:
                if name in _EXCLUDED_DIRS:
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if _should_ignore(rel_path, True, rules):
                    continue
                kept.append(name)
            dirnames[:] = sorted(kept)

            for filename in filenames:
                if not filename.lower().endswith(self.extensions):
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _should_ignore(rel_path, False, rules):
                    continue
                yield current_dir / filename


__all__ = ["IgnoreRule", "SourceScanner", "build_ignore_rule"]
