"""Graph algorithms for symmap: containment checks, walks and comparison."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

    from artifacts.models.artifacts.symbols import SymbolRecord
    from graph.builder import SymbolGraph


def build_containment_graph(graph: SymbolGraph) -> dict[str, set[str]]:
    """Adjacency of Contains edges: parent id -> child ids.

    Args:
        graph: A file's symbol graph

    Returns:
        Dictionary mapping every symbol id to the ids it contains
    """
    adjacency: dict[str, set[str]] = {symbol.symbol_id: set() for symbol in graph.symbols}
    for edge in graph.edges:
        if edge.kind == "contains" and edge.target_id is not None:
            adjacency.setdefault(edge.source_id, set()).add(edge.target_id)
    return adjacency


class _TarjanState:
    """Mutable state container for Tarjan's SCC algorithm."""

    def __init__(self) -> None:
        self.index = 0
        self.indices: dict[str, int] = {}
        self.low_link: dict[str, int] = {}
        self.on_stack: set[str] = set()
        self.stack: list[str] = []
        self.sccs: list[list[str]] = []


def _extract_scc(state: _TarjanState, root: str) -> list[str]:
    """Extract a strongly connected component from the stack."""
    scc: list[str] = []
    while state.stack:
        w = state.stack.pop()
        state.on_stack.remove(w)
        scc.append(w)
        if w == root:
            break
    if root not in scc:
        msg = (
            f"Tarjan algorithm invariant violated: root node {root!r} "
            "not found in stack during SCC extraction."
        )
        raise RuntimeError(msg)
    return scc


def _strongconnect(node: str, graph: dict[str, set[str]], state: _TarjanState) -> None:
    """Process a node in Tarjan's algorithm."""
    state.indices[node] = state.index
    state.low_link[node] = state.index
    state.index += 1
    state.stack.append(node)
    state.on_stack.add(node)

    for neighbor in sorted(graph.get(node, set())):
        if neighbor not in state.indices:
            _strongconnect(neighbor, graph, state)
            state.low_link[node] = min(state.low_link[node], state.low_link[neighbor])
        elif neighbor in state.on_stack:
            state.low_link[node] = min(state.low_link[node], state.indices[neighbor])

    if state.low_link[node] == state.indices[node]:
        scc = _extract_scc(state, node)
        if len(scc) > 1 or node in graph.get(node, set()):
            state.sccs.append(scc)


def find_cycles(graph: dict[str, set[str]]) -> list[list[str]]:
    """Find cycles in a directed graph using Tarjan's algorithm.

    Args:
        graph: Dictionary representing the graph

    Returns:
        List of cycles, where each cycle is a list of nodes
    """
    state = _TarjanState()

    for node in graph:
        if node not in state.indices:
            _strongconnect(node, graph, state)

    return state.sccs


def walk(graph: SymbolGraph) -> Iterator[tuple[int, SymbolRecord]]:
    """Pre-order walk over the containment tree, yielding ``(depth, symbol)``."""
    children: dict[str, list[SymbolRecord]] = {}
    for symbol in graph.symbols:
        if symbol.parent_id is not None:
            children.setdefault(symbol.parent_id, []).append(symbol)

    stack = [(0, graph.root)]
    while stack:
        depth, symbol = stack.pop()
        yield depth, symbol
        stack.extend(
            (depth + 1, child) for child in reversed(children.get(symbol.symbol_id, []))
        )


def check_invariants(graph: SymbolGraph, text_length: int | None = None) -> list[str]:
    """Return a message per violated structural invariant (empty when sound).

    Checked: a single Module root (covering ``text_length`` when given),
    unique ids, exactly one Contains parent per non-root symbol matching its
    ``parent_id``, no containment cycles, and child spans inside parent spans.
    """
    problems: list[str] = []
    roots = [s for s in graph.symbols if s.parent_id is None]
    if len(roots) != 1 or roots[0].kind != "module":
        problems.append(f"expected one module root, found {len(roots)} roots")
    root = graph.root
    if text_length is not None and (
        root.span.start_offset != 0 or root.span.end_offset != text_length
    ):
        problems.append(
            f"root span {root.span.start_offset}-{root.span.end_offset} "
            f"does not cover 0-{text_length}"
        )

    by_id: dict[str, SymbolRecord] = {}
    for symbol in graph.symbols:
        if symbol.symbol_id in by_id:
            problems.append(f"duplicate symbol id {symbol.symbol_id}")
        by_id[symbol.symbol_id] = symbol

    parents: dict[str, list[str]] = {}
    for edge in graph.edges:
        if edge.kind == "contains" and edge.target_id is not None:
            parents.setdefault(edge.target_id, []).append(edge.source_id)

    for symbol in graph.symbols:
        if symbol.parent_id is None:
            continue
        found = parents.get(symbol.symbol_id, [])
        if found != [symbol.parent_id]:
            problems.append(
                f"{symbol.symbol_id} has contains parents {found}, "
                f"expected [{symbol.parent_id}]"
            )
        parent = by_id.get(symbol.parent_id)
        if parent is not None and not parent.span.contains(symbol.span):
            problems.append(
                f"{symbol.symbol_id} span {symbol.span.as_range()} is outside "
                f"parent span {parent.span.as_range()}"
            )

    problems.extend(
        f"containment cycle: {' -> '.join(sorted(cycle))}"
        for cycle in find_cycles(build_containment_graph(graph))
    )
    return problems


def canonical_form(graph: SymbolGraph) -> tuple[Any, ...]:
    """Graph content with symbol and edge ids replaced by declaration indices."""
    index = {symbol.symbol_id: i for i, symbol in enumerate(graph.symbols)}
    symbols = tuple(
        (
            symbol.model_dump(exclude={"symbol_id", "parent_id", "path"}),
            index.get(symbol.parent_id) if symbol.parent_id else None,
        )
        for symbol in graph.symbols
    )
    edges = tuple(
        (
            edge.kind,
            index[edge.source_id],
            index.get(edge.target_id) if edge.target_id else None,
            edge.target_name,
            edge.resolved,
            index.get(edge.local_target_id) if edge.local_target_id else None,
            edge.role,
            edge.position,
            edge.span,
        )
        for edge in graph.edges
    )
    return symbols, edges


def graphs_equivalent(left: SymbolGraph, right: SymbolGraph) -> bool:
    """True when two graphs are identical up to id relabeling."""
    return canonical_form(left) == canonical_form(right)


__all__ = [
    "_TarjanState",
    "_extract_scc",
    "_strongconnect",
    "build_containment_graph",
    "canonical_form",
    "check_invariants",
    "find_cycles",
    "graphs_equivalent",
    "walk",
]
