"""Model namespace for symmap artifact schemas."""

from artifacts.models.artifacts.diagnostics import DiagnosticRecord, Severity
from artifacts.models.artifacts.edges import EdgeKind, EdgeRecord, EdgeRole
from artifacts.models.artifacts.spans import SourceSpan
from artifacts.models.artifacts.summary import GraphSummary
from artifacts.models.artifacts.symbols import SymbolFlags, SymbolKind, SymbolRecord

__all__ = [
    "DiagnosticRecord",
    "EdgeKind",
    "EdgeRecord",
    "EdgeRole",
    "GraphSummary",
    "Severity",
    "SourceSpan",
    "SymbolFlags",
    "SymbolKind",
    "SymbolRecord",
]
