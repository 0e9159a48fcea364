"""Edges artifact generator."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any

from artifacts.utils import _write_jsonl
from contract.artifacts import EDGES_JSONL

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from artifacts.models.artifacts.edges import EdgeRecord
    from engine import ExtractionResult


class EdgesGenerator:
    """Generates edges.jsonl from extraction results.

    Edges keep their per-file graph order (contains edges interleaved with
    references in declaration order), files ordered by path.
    """

    @property
    def name(self) -> str:
        """Generator name for logging and identification."""
        return "edges"

    def generate(
        self,
        root: Path,
        out_dir: Path,
        **kwargs: Any,
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        """Generate edges artifact."""
        results: Sequence[ExtractionResult] = kwargs.get("results", ())

        out_dir.mkdir(parents=True, exist_ok=True)

        all_edges: list[EdgeRecord] = []
        for result in sorted(results, key=lambda r: r.path):
            if result.graph is not None:
                all_edges.extend(result.graph.edges)

        _write_jsonl(out_dir / EDGES_JSONL, all_edges)

        edge_dicts = [e.model_dump() for e in all_edges]
        kinds = Counter(e.kind for e in all_edges)
        unresolved = sum(1 for e in all_edges if not e.resolved)

        return edge_dicts, {
            "edge_kinds": dict(sorted(kinds.items())),
            "unresolved_edge_count": unresolved,
        }
