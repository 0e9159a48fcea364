"""Artifact generators for symmap."""

from artifacts.generators.diagnostics import DiagnosticsGenerator
from artifacts.generators.edges import EdgesGenerator
from artifacts.generators.symbols import SymbolsGenerator

__all__ = [
    "DiagnosticsGenerator",
    "EdgesGenerator",
    "SymbolsGenerator",
]
