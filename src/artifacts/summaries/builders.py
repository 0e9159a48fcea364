"""Summary builders for artifact generation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from artifacts.models.artifacts.summary import GraphSummary
from graph.algos import build_containment_graph, find_cycles

if TYPE_CHECKING:
    from collections.abc import Sequence

    from engine import ExtractionResult

TOP_TARGETS_LIMIT = 10


def compute_fan_stats(
    edges: list[tuple[str, str]],
) -> tuple[dict[str, int], dict[str, int]]:
    """Compute fan-in and fan-out statistics from edges."""
    fan_in: dict[str, int] = {}
    fan_out: dict[str, int] = {}

    for source, target in edges:
        fan_out[source] = fan_out.get(source, 0) + 1
        fan_in[target] = fan_in.get(target, 0) + 1

    return fan_in, fan_out


def compute_containment_cycles(results: Sequence[ExtractionResult]) -> list[list[str]]:
    """Containment cycles across all graphs (empty for well-formed output)."""
    cycles: list[list[str]] = []
    for result in results:
        if result.graph is not None:
            cycles.extend(
                sorted(cycle) for cycle in find_cycles(build_containment_graph(result.graph))
            )
    return sorted(cycles)


def build_graph_summary(
    results: Sequence[ExtractionResult],
    stats: dict[str, Any],
) -> GraphSummary:
    """Aggregate per-file graphs and generator stats into a GraphSummary."""
    reference_edges = [
        (edge.source_id, edge.target_name)
        for result in results
        if result.graph is not None
        for edge in result.graph.edges
        if edge.kind in ("inherits", "decorates") and edge.target_name
    ]
    fan_in, _ = compute_fan_stats(reference_edges)
    top_targets = sorted(fan_in, key=lambda name: (-fan_in[name], name))

    graphs = [result.graph for result in results if result.graph is not None]
    return GraphSummary(
        file_count=len(results),
        symbol_count=sum(len(graph.symbols) for graph in graphs),
        edge_count=sum(len(graph.edges) for graph in graphs),
        unresolved_edge_count=stats.get("unresolved_edge_count", 0),
        diagnostic_count=sum(len(result.diagnostics) for result in results),
        failed_files=stats.get("failed_files", []),
        symbol_kinds=stats.get("symbol_kinds", {}),
        edge_kinds=stats.get("edge_kinds", {}),
        diagnostic_codes=stats.get("diagnostic_codes", {}),
        fan_in=dict(sorted(fan_in.items())),
        top_targets=top_targets[:TOP_TARGETS_LIMIT],
        containment_cycles=compute_containment_cycles(results),
    )
