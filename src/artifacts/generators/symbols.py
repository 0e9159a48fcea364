"""Symbols artifact generator."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any

from artifacts.utils import _write_jsonl
from contract.artifacts import SYMBOLS_JSONL

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from artifacts.models.artifacts.symbols import SymbolRecord
    from engine import ExtractionResult


class SymbolsGenerator:
    """Generates symbols.jsonl from extraction results."""

    @property
    def name(self) -> str:
        """Generator name for logging and identification."""
        return "symbols"

    def generate(
        self,
        root: Path,
        out_dir: Path,
        **kwargs: Any,
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        """Generate symbols artifact."""
        results: Sequence[ExtractionResult] = kwargs.get("results", ())

        out_dir.mkdir(parents=True, exist_ok=True)

        all_symbols: list[SymbolRecord] = [
            symbol
            for result in results
            if result.graph is not None
            for symbol in result.graph.symbols
        ]
        all_symbols.sort(
            key=lambda s: (s.path, s.span.start_offset, -s.span.end_offset)
        )

        _write_jsonl(out_dir / SYMBOLS_JSONL, all_symbols)

        symbol_dicts = [s.model_dump() for s in all_symbols]
        kinds = Counter(s.kind for s in all_symbols)

        return symbol_dicts, {"symbol_kinds": dict(sorted(kinds.items()))}
