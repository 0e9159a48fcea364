"""Artifact models exposed at the engine/indexer boundary."""

from artifacts.models.artifacts.diagnostics import DiagnosticRecord
from artifacts.models.artifacts.edges import EdgeRecord
from artifacts.models.artifacts.summary import GraphSummary
from artifacts.models.artifacts.symbols import SymbolRecord

__all__ = ["DiagnosticRecord", "EdgeRecord", "GraphSummary", "SymbolRecord"]
