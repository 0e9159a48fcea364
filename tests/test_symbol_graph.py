from __future__ import annotations

from textwrap import dedent

import pytest

from artifacts.models.artifacts.spans import SourceSpan
from artifacts.models.artifacts.symbols import SymbolRecord
from contract.artifacts import build_edge_id, build_symbol_id
from engine import extract_source
from graph.algos import check_invariants, find_cycles, graphs_equivalent, walk
from graph.builder import GraphBuilder, SymbolGraph

SOURCE = dedent(
    """\
    import os

    class Base:
        pass

    class Service(Base, Missing):
        def run(self):
            def step():
                pass

    @decorator
    def handler():
        pass
    """
)


def _graph(text: str = SOURCE, path: str = "pkg/service.py") -> SymbolGraph:
    result = extract_source(path, text)
    assert result.graph is not None
    return result.graph


def _span() -> SourceSpan:
    return SourceSpan(
        start_offset=0, end_offset=1, start_line=1, start_col=1, end_line=1, end_col=2
    )


def test_identifiers_follow_contract_format() -> None:
    graph = _graph()
    [service] = graph.find("pkg.service.Service")

    assert service.symbol_id == build_symbol_id("pkg/service.py", "pkg.service.Service", 6, 1)
    assert service.symbol_id == "sym:pkg/service.py::pkg.service.Service@L6:C1"
    inherits = graph.edges_of("inherits", service.symbol_id)
    assert [e.edge_id for e in inherits] == [
        build_edge_id("inherits", service.symbol_id, 0),
        build_edge_id("inherits", service.symbol_id, 1),
    ]


def test_invariants_hold_for_extracted_graph() -> None:
    graph = _graph()

    assert check_invariants(graph, text_length=len(SOURCE)) == []


def test_invariant_check_reports_bad_root_span() -> None:
    graph = _graph()

    problems = check_invariants(graph, text_length=len(SOURCE) + 5)

    assert len(problems) == 1
    assert "does not cover" in problems[0]


def test_navigation_helpers() -> None:
    graph = _graph()
    [service] = graph.find("pkg.service.Service")
    [run] = graph.find("pkg.service.Service.run")

    assert graph.symbol(service.symbol_id) == service
    assert graph.parent(run.symbol_id) == service
    assert graph.parent(graph.root.symbol_id) is None
    assert [c.name for c in graph.children(service.symbol_id)] == ["run"]
    assert [c.name for c in graph.children(graph.root.symbol_id)] == [
        "os",
        "Base",
        "Service",
        "handler",
    ]
    assert graph.find("pkg.service.nothing") == []


def test_walk_is_preorder_with_depths() -> None:
    graph = _graph()

    assert [(depth, symbol.name) for depth, symbol in walk(graph)] == [
        (0, "service"),
        (1, "os"),
        (1, "Base"),
        (1, "Service"),
        (2, "run"),
        (3, "step"),
        (1, "handler"),
    ]


def test_unresolved_edges_and_link() -> None:
    graph = _graph()
    unresolved = graph.unresolved_edges()

    assert sorted(e.target_name or "" for e in unresolved) == [
        "Base",
        "Missing",
        "decorator",
        "os",
    ]

    target = SymbolRecord(
        symbol_id="sym:other.py::other.Missing@L1:C1",
        path="other.py",
        kind="class",
        name="Missing",
        qualified_name="other.Missing",
        span=_span(),
    )

    class Resolver:
        def resolve(self, name: str) -> SymbolRecord | None:
            return target if name == "Missing" else None

    linked = graph.link(Resolver())

    assert linked is not graph
    assert sorted(e.target_name or "" for e in linked.unresolved_edges()) == [
        "Base",
        "decorator",
        "os",
    ]
    [edge] = [e for e in linked.edges if e.target_name == "Missing"]
    assert edge.resolved
    assert edge.target_id == target.symbol_id
    assert len(graph.unresolved_edges()) == 4


def test_same_content_under_different_paths_is_equivalent() -> None:
    left = extract_source("a/service.py", SOURCE, module_name="pkg.service").graph
    right = extract_source("b/copy.py", SOURCE, module_name="pkg.service").graph

    assert left is not None and right is not None
    assert left.root.symbol_id != right.root.symbol_id
    assert graphs_equivalent(left, right)


def test_different_content_is_not_equivalent() -> None:
    changed = SOURCE.replace("Missing", "Other")

    assert not graphs_equivalent(_graph(), _graph(changed))


def test_extraction_is_deterministic() -> None:
    first = _graph()
    second = _graph()

    assert first.symbols == second.symbols
    assert first.edges == second.edges


def test_builder_rejects_second_root() -> None:
    builder = GraphBuilder("x.py")
    root = SymbolRecord(
        symbol_id="sym:x.py::x@L1:C1",
        path="x.py",
        kind="module",
        name="x",
        qualified_name="x",
        span=_span(),
    )
    builder.add_symbol(root)

    with pytest.raises(ValueError, match="second root"):
        builder.add_symbol(root.model_copy(update={"symbol_id": "sym:x.py::y@L1:C1"}))


def test_builder_requires_a_root() -> None:
    with pytest.raises(ValueError, match="no root"):
        GraphBuilder("x.py").build()


def test_find_cycles_reports_only_cycles() -> None:
    cycles = find_cycles({"a": {"b"}, "b": {"a"}, "c": {"c"}, "d": set()})

    assert sorted(sorted(cycle) for cycle in cycles) == [["a", "b"], ["c"]]
