"""Stable contract surface for symmap artifacts.

Downstream indexers and cross-file resolvers depend on these exports as the
authoritative boundary for filenames, identifiers and record schemas.
"""

from contract.artifacts import (
    ARTIFACT_SCHEMA_VERSION,
    ARTIFACT_SPECS,
    DIAGNOSTICS_JSONL,
    EDGES_JSONL,
    GRAPH_SUMMARY_JSON,
    SYMBOLS_JSONL,
    ArtifactSpec,
    build_edge_id,
    build_symbol_id,
)

_MODEL_NAMES = {"DiagnosticRecord", "EdgeRecord", "GraphSummary", "SymbolRecord"}


def __getattr__(name: str) -> object:
    if name in _MODEL_NAMES:
        import contract.models

        return getattr(contract.models, name)

    if name in {"ValidationMessage", "ValidationResult", "validate_artifacts"}:
        from contract.validation import (
            ValidationMessage,
            ValidationResult,
            validate_artifacts,
        )

        return {
            "ValidationMessage": ValidationMessage,
            "ValidationResult": ValidationResult,
            "validate_artifacts": validate_artifacts,
        }[name]

    msg = f"module 'contract' has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "ARTIFACT_SCHEMA_VERSION",
    "ARTIFACT_SPECS",
    "DIAGNOSTICS_JSONL",
    "EDGES_JSONL",
    "GRAPH_SUMMARY_JSON",
    "SYMBOLS_JSONL",
    "ArtifactSpec",
    "DiagnosticRecord",
    "EdgeRecord",
    "GraphSummary",
    "SymbolRecord",
    "ValidationMessage",
    "ValidationResult",
    "build_edge_id",
    "build_symbol_id",
    "validate_artifacts",
]
