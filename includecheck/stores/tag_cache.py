"""Persistent cache for per-file extraction results."""

from __future__ import annotations

from datetime import UTC, datetime
import hashlib
import json
import threading
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from ..logging import get_logger
from ..models import IncludeDirective, Tag

logger = get_logger("cache")

_CACHE_VERSION = 1
_ENTRY_FIELDS = ("signature", "fingerprint", "includes", "tags", "warnings")


class CachedFacts(NamedTuple):
    includes: List[IncludeDirective]
    tags: List[Tag]
    warnings: List[Tuple[int, str]]


def fingerprint_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8", errors="replace")).hexdigest()


class TagCache:
    """Stores extracted includes and tags keyed by path and text fingerprint.

    ``signature`` identifies the derivation rules the tags were built with; an
    entry built under other rules is a miss.
    """

    def __init__(self, path: Path | None) -> None:
        self._path = path
        self._entries: Dict[str, Dict[str, object]] = {}
        self._dirty = False
        self._lock = threading.Lock()
        if self._path is not None:
            self._load(self._path)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str, *, signature: str, fingerprint: str) -> Optional[CachedFacts]:
        with self._lock:
            entry = self._entries.get(key)
        if not entry:
            return None
        if entry.get("signature") != signature or entry.get("fingerprint") != fingerprint:
            return None
        try:
            includes = [IncludeDirective.from_dict(item) for item in entry["includes"]]  # type: ignore[union-attr]
            tags = [Tag.from_dict(item) for item in entry["tags"]]  # type: ignore[union-attr]
            warnings = [(int(line), str(reason)) for line, reason in entry["warnings"]]  # type: ignore[union-attr]
        except (KeyError, TypeError, ValueError):
            return None
        return CachedFacts(includes, tags, warnings)

    def store(
        self,
        key: str,
        *,
        signature: str,
        fingerprint: str,
        includes: Sequence[IncludeDirective],
        tags: Sequence[Tag],
        warnings: Sequence[Tuple[int, str]],
    ) -> None:
        entry: Dict[str, object] = {
            "signature": signature,
            "fingerprint": fingerprint,
            "includes": [item.to_dict() for item in includes],
            "tags": [tag.to_dict() for tag in tags],
            "warnings": [[line, reason] for line, reason in warnings],
            "updated_at": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        }
        with self._lock:
            self._entries[key] = entry
            self._dirty = True

    def prune(self, keys_to_keep: Iterable[str]) -> None:
        keep = set(keys_to_keep)
        with self._lock:
            removed = [key for key in self._entries if key not in keep]
            for key in removed:
                self._entries.pop(key, None)
            if removed:
                self._dirty = True

    def persist(self) -> None:
        if not self._dirty or self._path is None:
            return
        with self._lock:
            payload = {"version": _CACHE_VERSION, "entries": self._entries}
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
            self._dirty = False

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self, path: Path) -> None:
        if not path.exists():
            return
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable tag cache %s: %s", path, exc)
            return
        if not isinstance(data, dict) or data.get("version") != _CACHE_VERSION:
            logger.info("Tag cache %s has another format version; starting fresh", path)
            return
        raw_entries = data.get("entries")
        if not isinstance(raw_entries, dict):
            return
        self._entries = {
            key: entry
            for key, entry in raw_entries.items()
            if isinstance(key, str)
            and isinstance(entry, dict)
            and all(name in entry for name in _ENTRY_FIELDS)
        }
        self._dirty = False
        logger.debug("Loaded %d cached file(s) from %s", len(self._entries), path)


__all__ = ["CachedFacts", "TagCache", "fingerprint_text"]
