"""Tests for includecheck.parsing.derivation."""

from __future__ import annotations

import pytest

from includecheck.config import ConfigError, DerivationRuleConfig
from includecheck.models import TagKind
from includecheck.parsing.derivation import (
    DerivationEngine,
    DerivationRule,
    convention_rule,
    name_variations,
)
from includecheck.parsing.tags import extract_tags
from tests._fixtures.car_tree import CAR_TREE, DECLARE_CLASS_RULE


def _derive(engine: DerivationEngine, text: str, path: str = "sample.h"):
    extraction = extract_tags(text, path)
    return engine.derive(extraction.tags, extraction.code, path)


def test_name_variations_order() -> None:
    assert name_variations("Car", ["r", "p"], ["Quad"]) == [
        "Car",
        "rCar",
        "pCar",
        "CarQuad",
        "rCarQuad",
        "pCarQuad",
    ]


def test_macro_call_site_mints_aliases_for_the_declaring_file() -> None:
    engine = DerivationEngine([DerivationRule.from_config(DECLARE_CLASS_RULE)])

    result = _derive(engine, CAR_TREE["Wheel.h"], "Wheel.h")

    assert result.warnings == []
    # "Wheel" itself is already declared by the class definition.
    assert {tag.name for tag in result.aliases} == {"cWheel", "rWheel", "rcWheel", "pWheel", "WheelQuad"}
    for tag in result.aliases:
        assert tag.kind is TagKind.TYPE
        assert tag.path == "Wheel.h"
        assert tag.derivation_rule == "DECLARE_CLASS"
        assert tag.base_name == "Wheel"


def test_macro_definition_is_not_a_call_site() -> None:
    engine = DerivationEngine([DerivationRule.from_config(DECLARE_CLASS_RULE)])

    result = _derive(engine, CAR_TREE["typedefs.h"], "typedefs.h")

    assert result.aliases == []
    assert result.warnings == []


@pytest.mark.parametrize("call", ["DECLARE_CLASS(Foo<int>)", "DECLARE_CLASS()", "DECLARE_CLASS(a::B)"])
def test_non_identifier_argument_warns_and_derives_nothing(call: str) -> None:
    engine = DerivationEngine([DerivationRule.from_config(DECLARE_CLASS_RULE)])

    result = _derive(engine, f"{call}\n")

    assert result.aliases == []
    assert len(result.warnings) == 1
    line, reason = result.warnings[0]
    assert line == 1
    assert "not a single identifier" in reason


def test_argument_index_selects_the_base_name() -> None:
    rule = DerivationRule.from_config(
        DerivationRuleConfig(name="pair", macro="DECLARE_PAIR", argument=1, aliases=["{name}Pair"])
    )

    result = _derive(DerivationEngine([rule]), "DECLARE_PAIR(int, Key)\n")

    assert [tag.name for tag in result.aliases] == ["KeyPair"]


def test_missing_argument_warns() -> None:
    rule = DerivationRule.from_config(
        DerivationRuleConfig(name="pair", macro="DECLARE_PAIR", argument=2, aliases=["{name}Pair"])
    )

    result = _derive(DerivationEngine([rule]), "DECLARE_PAIR(int, Key)\n")

    assert result.aliases == []
    assert result.warnings == [(1, "DECLARE_PAIR call has no argument 2")]


def test_pattern_rule_uses_named_group() -> None:
    rule = DerivationRule.from_config(
        DerivationRuleConfig(
            name="handle",
            pattern=r"MAKE_HANDLE\s*\(\s*(?P<name>\w+)",
            aliases=["{name}Handle"],
        )
    )

    result = _derive(DerivationEngine([rule]), "struct Stub;\nMAKE_HANDLE( File )\n")

    assert [(tag.name, tag.line) for tag in result.aliases] == [("FileHandle", 2)]


def test_convention_rule_applies_to_declared_types_only() -> None:
    rule = convention_rule(["r"], ["Ptr"])
    assert rule is not None

    result = _derive(DerivationEngine([rule]), "class Car {};\nvoid Drive();\n")

    assert [tag.name for tag in result.aliases] == ["rCar", "CarPtr", "rCarPtr"]
    assert all(tag.base_name == "Car" for tag in result.aliases)


def test_convention_rule_needs_a_prefix_or_suffix() -> None:
    assert convention_rule([], []) is None


def test_signature_tracks_rule_changes() -> None:
    first = DerivationEngine([DerivationRule.from_config(DECLARE_CLASS_RULE)])
    same = DerivationEngine([DerivationRule.from_config(DECLARE_CLASS_RULE)])
    other = DerivationEngine([convention_rule(["p"], [])])  # type: ignore[list-item]

    assert first.signature == same.signature
    assert first.signature != other.signature


def test_unknown_kind_is_a_config_error() -> None:
    with pytest.raises(ConfigError):
        DerivationRule.from_config(DerivationRuleConfig(name="bad", aliases=["x{name}"], kinds=["gizmo"]))
