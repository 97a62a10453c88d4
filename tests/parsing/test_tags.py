"""Tests for includecheck.parsing.tags."""

from __future__ import annotations

import textwrap
from typing import Dict, Set

from includecheck.models import TagKind
from includecheck.parsing.tags import extract_tags


def _names(text: str) -> Dict[TagKind, Set[str]]:
    result = extract_tags(textwrap.dedent(text), "sample.h")
    grouped: Dict[TagKind, Set[str]] = {}
    for tag in result.tags:
        grouped.setdefault(tag.kind, set()).add(tag.name)
    return grouped


def test_extracts_every_declaration_kind() -> None:
    text = textwrap.dedent(
        """
        #define MAX_SIZE 10
        #define SQUARE(x) \\
            ((x) * (x))

        namespace geo {
        namespace detail { }

        struct Point
        {
            int x, y;
            double Length() const;
        };

        enum Color { Red, Green = 2, Blue };

        typedef unsigned int Index;
        using Scale = double;

        extern int gCounter;
        int Add(int a, int b);
        static const double kPi = 3.14;

        double Distance(const Point& a, const Point& b)
        {
            return 0.0;
        }
        }
        """
    )

    result = extract_tags(text, "geo.h")
    grouped: Dict[TagKind, Set[str]] = {}
    for tag in result.tags:
        grouped.setdefault(tag.kind, set()).add(tag.name)

    assert result.warnings == []
    assert grouped[TagKind.TYPE] == {"Point", "Color", "Index", "Scale"}
    assert grouped[TagKind.ENUM_MEMBER] == {"Red", "Green", "Blue"}
    assert grouped[TagKind.FUNCTION] == {"Length", "Add", "Distance"}
    assert grouped[TagKind.VARIABLE] == {"x", "y", "gCounter", "kPi"}
    assert grouped[TagKind.NAMESPACE] == {"geo", "detail"}
    assert grouped[TagKind.MACRO] == {"MAX_SIZE", "SQUARE"}

    scopes = {tag.name: tag.scope for tag in result.tags}
    assert scopes["Point"] == "geo"
    assert scopes["x"] == "geo::Point"
    assert scopes["Red"] == "geo::Color"
    assert all(tag.path == "geo.h" for tag in result.tags)


def test_forward_declarations_declare_nothing() -> None:
    assert _names("class Forward;\nstruct Other;\n") == {}


def test_nested_namespace_shorthand_flattens_scope() -> None:
    result = extract_tags("namespace a::b { int v; }\n", "ns.h")

    scopes = {(tag.name, tag.kind): tag.scope for tag in result.tags}
    assert scopes[("a", TagKind.NAMESPACE)] is None
    assert scopes[("b", TagKind.NAMESPACE)] == "a"
    assert scopes[("v", TagKind.VARIABLE)] == "a::b"


def test_function_bodies_are_skipped() -> None:
    names = _names(
        """
        void Run()
        {
            int local = 1;
            struct Inner { int hidden; };
        }
        """
    )

    assert names == {TagKind.FUNCTION: {"Run"}}


def test_macro_invocations_are_not_functions() -> None:
    names = _names(
        """
        DECLARE_CLASS(Wheel)

        class Wheel
        {
        public:
            Wheel() : mSize(15.0f) { }

        private:
            float mSize;
        };
        REGISTER(Wheel);
        """
    )

    assert names == {TagKind.TYPE: {"Wheel"}, TagKind.VARIABLE: {"mSize"}}


def test_typedef_forms() -> None:
    names = _names(
        """
        typedef void (*Callback)(int);
        typedef struct { int a; } Anon;
        typedef int Grid[4][4];
        """
    )

    assert {"Callback", "Anon", "Grid"} <= names[TagKind.TYPE]


def test_scoped_enum_and_templates() -> None:
    names = _names(
        """
        enum class Mode : int { Fast, Slow };

        template <typename T>
        class Box
        {
            T value;
        };
        """
    )

    assert names[TagKind.TYPE] == {"Mode", "Box"}
    assert names[TagKind.ENUM_MEMBER] == {"Fast", "Slow"}
    assert names[TagKind.VARIABLE] == {"value"}


def test_disabled_code_and_linkage_blocks() -> None:
    names = _names(
        """
        #if 0
        class Dead {};
        #endif
        extern "C" {
        int c_entry(void);
        }
        """
    )

    assert names == {TagKind.FUNCTION: {"c_entry"}}


def test_unbalanced_brace_warns_and_keeps_going() -> None:
    result = extract_tags("int a;\n}\nint b;\n", "broken.h")

    assert result.warnings == [(2, "unbalanced closing brace")]
    assert {tag.name for tag in result.tags} == {"a", "b"}


def test_unterminated_scope_warns_with_partial_results() -> None:
    result = extract_tags("namespace n {\nint a;\n", "open.h")

    assert result.warnings == [(1, "unterminated namespace scope n")]
    assert {tag.name for tag in result.tags} == {"n", "a"}


def test_brace_initialised_array_members_are_variables() -> None:
    result = extract_tags("struct S {\n    int vals[3] {1, 2, 3};\n    char grid[2][2] {};\n    int after;\n};\n", "arrays.h")

    members = {tag.name: tag.scope for tag in result.tags if tag.kind is TagKind.VARIABLE}
    assert members == {"vals": "S", "grid": "S", "after": "S"}
    assert result.warnings == []


def test_code_blanks_directives_for_call_site_matching() -> None:
    result = extract_tags("#define DECLARE(x) class x;\nDECLARE(Foo)\n", "decl.h")

    assert result.code.split("\n")[0] == ""
    assert "DECLARE(Foo)" in result.code
