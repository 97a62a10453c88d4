"""Tests for includecheck.usage."""

from __future__ import annotations

import pytest

from includecheck.config import ConfigError, UsageOverrideConfig
from includecheck.diagnostics import TagAliasCollision
from includecheck.models import Tag, TagKind
from includecheck.usage import TagIndex, UsageOverride, UsageScanner, identifier_tokens


def _type(name: str, path: str, rule: str | None = None, base: str | None = None) -> Tag:
    return Tag(name=name, kind=TagKind.TYPE, path=path, line=1, derivation_rule=rule, base_name=base)


def test_identifier_tokens_respect_boundaries() -> None:
    tokens = identifier_tokens("CarFactoryHelper x; A::B = 0x1F + _y;")

    assert tokens == {"CarFactoryHelper", "x", "A", "B", "_y"}
    assert "Car" not in tokens


def test_index_groups_tags_by_name_and_path() -> None:
    index = TagIndex.build(
        {
            "b.h": [_type("Shared", "b.h")],
            "a.h": [_type("Shared", "a.h"), _type("OnlyA", "a.h")],
        }
    )

    assert [tag.path for tag in index.get("Shared")] == ["a.h", "b.h"]
    assert index.files_declaring("OnlyA") == {"a.h"}
    assert "Missing" not in index
    assert index.get("Missing") == ()
    assert len(index) == 2
    assert index.files_declaring("Shared") == {"a.h", "b.h"}


def test_alias_from_one_base_in_two_files_does_not_collide() -> None:
    index = TagIndex.build(
        {
            "a.h": [_type("pCar", "a.h", "DECLARE_CLASS", "Car")],
            "b.h": [_type("pCar", "b.h", "DECLARE_CLASS", "Car")],
        }
    )

    assert index.collisions == ()


def test_alias_from_different_bases_collides() -> None:
    index = TagIndex.build(
        {
            "a.h": [_type("pCar", "a.h", "prefix", "Car")],
            "b.h": [_type("pCar", "b.h", "suffix", "pCa")],
        }
    )

    assert index.collisions == (TagAliasCollision(name="pCar", files=("a.h", "b.h")),)


def test_minted_alias_collides_with_direct_declaration_elsewhere() -> None:
    index = TagIndex.build(
        {
            "a.h": [_type("pFoo", "a.h", "DECLARE", "Foo")],
            "b.h": [_type("pFoo", "b.h")],
        }
    )

    assert index.collisions == (TagAliasCollision(name="pFoo", files=("a.h", "b.h")),)


def test_macro_forward_declaration_does_not_collide() -> None:
    index = TagIndex.build(
        {
            "Car.h": [_type("Car", "Car.h")],
            "CarFactory.h": [_type("Car", "CarFactory.h", "DECLARE_CLASS", "Car")],
        }
    )

    assert index.collisions == ()


def test_scanner_ignores_the_files_own_tags() -> None:
    index = TagIndex.build({"a.h": [_type("Foo", "a.h")], "b.h": [_type("Bar", "b.h")]})
    scanner = UsageScanner(index)

    own = scanner.scan("a.h", "Foo Bar")
    other = scanner.scan("c.cpp", "Foo value;")

    assert own.files == {"b.h"}
    assert other.uses("a.h")
    assert other.evidence == {"a.h": ("Foo",)}
    assert "value" in other.tokens


def test_scanner_does_not_match_inside_longer_identifiers() -> None:
    index = TagIndex.build({"Car.h": [_type("Car", "Car.h")]})

    result = UsageScanner(index).scan("main.cpp", "int CarFactoryHelper = 0;")

    assert result.files == frozenset()


def test_override_implies_tag_for_matching_tokens() -> None:
    index = TagIndex.build({"CarFactory.h": [_type("CarFactory", "CarFactory.h")]})
    override = UsageOverride.from_config(
        UsageOverrideConfig(token=r"CT_\w+", tag="CarFactory", files=["main.cpp"])
    )
    scanner = UsageScanner(index, [override])

    matched = scanner.scan("src/main.cpp", "return CT_HYBRID;")
    elsewhere = scanner.scan("src/other.cpp", "return CT_HYBRID;")

    assert matched.evidence == {"CarFactory.h": ("CT_HYBRID->CarFactory",)}
    assert elsewhere.files == frozenset()


def test_override_requires_whole_token_match() -> None:
    index = TagIndex.build({"Log.h": [_type("Logger", "Log.h")]})
    override = UsageOverride.from_config(UsageOverrideConfig(token="LOG", tag="Logger"))

    result = UsageScanner(index, [override]).scan("main.cpp", "LOG_INFO(x);")

    assert result.files == frozenset()


def test_override_with_invalid_pattern_is_a_config_error() -> None:
    with pytest.raises(ConfigError):
        UsageOverride.from_config(UsageOverrideConfig(token="([", tag="Logger"))
