"""Artifact contract definitions.

This module defines the stable boundary between the extraction engine and
downstream indexers: artifact filenames, formats and identifier formats.
"""

from __future__ import annotations

from dataclasses import dataclass

# Artifact schema version carried by every record.
ARTIFACT_SCHEMA_VERSION = 1

# Artifact filename constants (stable contract identifiers).
SYMBOLS_JSONL = "symbols.jsonl"
EDGES_JSONL = "edges.jsonl"
DIAGNOSTICS_JSONL = "diagnostics.jsonl"
GRAPH_SUMMARY_JSON = "graph_summary.json"


@dataclass(frozen=True)
class ArtifactSpec:
    """Specification for a contract artifact."""

    filename: str
    format: str
    required_fields_note: str


# ---------------------------------------------------------------------------
# Deterministic identifiers
# ---------------------------------------------------------------------------
# symbol_id: sym:{path}::{qualified_name}@L{line}:C{col}
# edge_id:   edge:{kind}:{source_id}#{position}
# - path: POSIX relative path (forward slashes, no ./ prefix)
# - line/col: 1-based start of the declaring construct
# - position: 0-based declaration order among the source's edges of that kind


def build_symbol_id(path: str, qualified_name: str, line: int, col: int) -> str:
    """Build a deterministic symbol_id following the contract format."""
    return f"sym:{path}::{qualified_name}@L{line}:C{col}"


def build_edge_id(kind: str, source_id: str, position: int) -> str:
    """Build a deterministic edge_id following the contract format."""
    return f"edge:{kind}:{source_id}#{position}"


ARTIFACT_SPECS: dict[str, ArtifactSpec] = {
    "symbols": ArtifactSpec(
        filename=SYMBOLS_JSONL,
        format="jsonl",
        required_fields_note="SymbolRecord fields required by contract.",
    ),
    "edges": ArtifactSpec(
        filename=EDGES_JSONL,
        format="jsonl",
        required_fields_note="EdgeRecord fields required by contract.",
    ),
    "diagnostics": ArtifactSpec(
        filename=DIAGNOSTICS_JSONL,
        format="jsonl",
        required_fields_note="DiagnosticRecord fields required by contract.",
    ),
    "graph_summary": ArtifactSpec(
        filename=GRAPH_SUMMARY_JSON,
        format="json",
        required_fields_note="GraphSummary fields required by contract.",
    ),
}
