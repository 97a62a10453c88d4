"""File reader collaborators: where the checker gets source text from."""

from __future__ import annotations

import os
import posixpath
from pathlib import Path
from typing import Dict, Mapping, Optional, Protocol


def canonical_path(path: str | os.PathLike[str]) -> str:
    """Normalise ``path`` to the posix form used as a file identity."""
    text = os.fspath(path).replace("\\", "/")
    if not text:
        return "."
    normalised = posixpath.normpath(text)
    # posixpath keeps a leading '//' verbatim; collapse it like any other separator run.
    if normalised.startswith("//"):
        normalised = "/" + normalised.lstrip("/")
    return normalised


class FileReader(Protocol):
    """Maps a canonical path to its text, or None when the file does not exist."""

    def read(self, path: str) -> Optional[str]:
        ...

    def is_directory(self, path: str) -> bool:
        ...


class FilesystemReader:
    """Reads files from disk as UTF-8, replacing undecodable bytes."""

    def read(self, path: str) -> Optional[str]:
        target = Path(path)
        if not target.is_file():
            return None
        try:
            return target.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None

    def is_directory(self, path: str) -> bool:
        return os.path.isdir(path) and os.access(path, os.R_OK | os.X_OK)


class MappingReader:
    """Serves an in-memory tree of ``path -> text`` entries."""

    def __init__(self, files: Mapping[str, str]) -> None:
        self._files: Dict[str, str] = {canonical_path(path): text for path, text in files.items()}

    def read(self, path: str) -> Optional[str]:
        return self._files.get(canonical_path(path))

    def is_directory(self, path: str) -> bool:
        directory = canonical_path(path)
        if directory == ".":
            return bool(self._files)
        prefix = directory.rstrip("/") + "/"
        return any(name.startswith(prefix) for name in self._files)

    def paths(self) -> list[str]:
        return sorted(self._files)


__all__ = ["FileReader", "FilesystemReader", "MappingReader", "canonical_path"]
