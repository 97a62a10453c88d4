"""Tests for the tag cache store."""

from __future__ import annotations

import json
from pathlib import Path

from includecheck.models import IncludeDirective, Tag, TagKind
from includecheck.stores import TagCache, fingerprint_text

INCLUDES = [IncludeDirective("typedefs.h", 4), IncludeDirective("vector", 5, is_system=True)]
TAGS = [
    Tag("Wheel", TagKind.TYPE, "Wheel.h", 8),
    Tag("pWheel", TagKind.TYPE, "Wheel.h", 6, derivation_rule="DECLARE_CLASS", base_name="Wheel"),
]


def test_tag_cache_round_trip(tmp_path: Path) -> None:
    cache_path = tmp_path / "cache.json"
    cache = TagCache(cache_path)
    cache.store(
        "Wheel.h",
        signature="sig-1",
        fingerprint="fp-abc",
        includes=INCLUDES,
        tags=TAGS,
        warnings=[(3, "unbalanced closing brace")],
    )
    cache.persist()

    loaded = TagCache(cache_path)
    reuse = loaded.get("Wheel.h", signature="sig-1", fingerprint="fp-abc")

    assert reuse is not None
    assert reuse.includes == INCLUDES
    assert reuse.tags == TAGS
    assert reuse.warnings == [(3, "unbalanced closing brace")]
    assert len(loaded) == 1


def test_tag_cache_invalidates_on_signature_or_text_change(tmp_path: Path) -> None:
    cache = TagCache(tmp_path / "cache.json")
    cache.store("a.h", signature="sig-1", fingerprint="fp", includes=[], tags=TAGS, warnings=[])

    assert cache.get("a.h", signature="sig-1", fingerprint="fp") is not None
    assert cache.get("a.h", signature="sig-2", fingerprint="fp") is None
    assert cache.get("a.h", signature="sig-1", fingerprint="fp-changed") is None
    assert cache.get("b.h", signature="sig-1", fingerprint="fp") is None


def test_tag_cache_prune_removes_unused(tmp_path: Path) -> None:
    cache = TagCache(tmp_path / "cache.json")
    cache.store("a.h", signature="s", fingerprint="fp", includes=[], tags=[], warnings=[])
    cache.store("b.h", signature="s", fingerprint="fp", includes=[], tags=[], warnings=[])

    cache.prune(["a.h"])
    cache.persist()

    reloaded = TagCache(tmp_path / "cache.json")
    assert reloaded.get("a.h", signature="s", fingerprint="fp") is not None
    assert reloaded.get("b.h", signature="s", fingerprint="fp") is None


def test_tag_cache_ignores_unknown_versions_and_corrupt_files(tmp_path: Path) -> None:
    stale = tmp_path / "stale.json"
    stale.write_text(json.dumps({"version": 99, "entries": {"a.h": {}}}), encoding="utf-8")
    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json", encoding="utf-8")

    assert len(TagCache(stale)) == 0
    assert len(TagCache(corrupt)) == 0


def test_persist_without_changes_writes_nothing(tmp_path: Path) -> None:
    cache_path = tmp_path / "cache.json"

    TagCache(cache_path).persist()

    assert not cache_path.exists()


def test_fingerprint_tracks_text() -> None:
    assert fingerprint_text("class A;") == fingerprint_text("class A;")
    assert fingerprint_text("class A;") != fingerprint_text("class B;")
