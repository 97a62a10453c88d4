"""Tests for includecheck.graph."""

from __future__ import annotations

from typing import Dict, List

import pytest

from includecheck.graph import IncludeResolver, InclusionGraph
from includecheck.models import IncludeDirective, InclusionEdge
from includecheck.readers import MappingReader


@pytest.fixture
def resolver() -> IncludeResolver:
    reader = MappingReader(
        {
            "src/main.cpp": "",
            "src/local.h": "",
            "inc/local.h": "",
            "inc/only.h": "",
            "inc/sys/types.h": "",
            "shared.h": "",
        }
    )
    return IncludeResolver(reader, ["inc"])


def test_quoted_include_prefers_the_including_directory(resolver: IncludeResolver) -> None:
    assert resolver.resolve("src/main.cpp", IncludeDirective("local.h", 1)) == "src/local.h"


def test_quoted_include_falls_back_to_search_paths(resolver: IncludeResolver) -> None:
    assert resolver.resolve("src/main.cpp", IncludeDirective("only.h", 1)) == "inc/only.h"


def test_system_include_skips_the_including_directory(resolver: IncludeResolver) -> None:
    directive = IncludeDirective("local.h", 1, is_system=True)

    assert resolver.resolve("src/main.cpp", directive) == "inc/local.h"
    assert resolver.resolve("src/main.cpp", IncludeDirective("sys/types.h", 2, True)) == "inc/sys/types.h"


def test_relative_segments_are_normalised(resolver: IncludeResolver) -> None:
    assert resolver.resolve("src/main.cpp", IncludeDirective("../shared.h", 1)) == "shared.h"
    assert resolver.resolve("src/main.cpp", IncludeDirective("..\\shared.h", 1)) == "shared.h"


def test_missing_header_resolves_to_none(resolver: IncludeResolver) -> None:
    assert resolver.resolve("src/main.cpp", IncludeDirective("nowhere.h", 1)) is None


def test_absolute_include_is_used_as_written() -> None:
    resolver = IncludeResolver(MappingReader({"/opt/sdk/api.h": ""}), ["/work"])

    assert resolver.resolve("/work/main.cpp", IncludeDirective("/opt/sdk/api.h", 1)) == "/opt/sdk/api.h"


def test_edges_keep_directive_order_and_unresolved_entries(resolver: IncludeResolver) -> None:
    directives = [
        IncludeDirective("local.h", 1),
        IncludeDirective("nowhere.h", 2),
        IncludeDirective("only.h", 3, is_system=True),
    ]

    edges = resolver.edges_for("src/main.cpp", directives)

    assert [(edge.line, edge.target) for edge in edges] == [
        (1, "src/local.h"),
        (2, None),
        (3, "inc/only.h"),
    ]
    assert edges[2].is_system
    assert not edges[1].resolved


def _graph(links: Dict[str, List[str]]) -> InclusionGraph:
    return InclusionGraph(
        {
            source: [
                InclusionEdge(source=source, written_path=target, line=number, target=target)
                for number, target in enumerate(targets, start=1)
            ]
            for source, targets in links.items()
        }
    )


def test_targets_drop_repeated_inclusions() -> None:
    graph = _graph({"a.h": ["b.h", "c.h", "b.h"]})

    assert graph.targets("a.h") == ["b.h", "c.h"]
    assert len(graph.edges("a.h")) == 3


def test_closure_terminates_on_cycles() -> None:
    graph = _graph({"a.h": ["b.h"], "b.h": ["c.h"], "c.h": ["a.h", "d.h"], "d.h": []})

    assert graph.closure("a.h") == ["b.h", "c.h", "d.h"]


def test_closure_only_follows_expanded_files() -> None:
    graph = _graph({"a.h": ["b.h", "e.h"], "b.h": ["c.h"], "e.h": ["f.h"]})

    assert graph.closure("a.h", expand=lambda path: path != "b.h") == ["b.h", "e.h", "f.h"]


def test_targets_skip_unresolved_edges_and_repeats() -> None:
    graph = InclusionGraph(
        {
            "main.cpp": [
                InclusionEdge("main.cpp", "a.h", 1, target="a.h"),
                InclusionEdge("main.cpp", "gone.h", 2),
                InclusionEdge("main.cpp", "./a.h", 3, target="a.h"),
            ]
        }
    )

    assert [edge.written_path for edge in graph.edges("main.cpp")] == ["a.h", "gone.h", "./a.h"]
    assert graph.targets("main.cpp") == ["a.h"]
    assert graph.edges("a.h") == ()
