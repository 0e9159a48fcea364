"""Diagnostics artifact generator."""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any

from artifacts.utils import _write_jsonl
from contract.artifacts import DIAGNOSTICS_JSONL

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from engine import ExtractionResult


class DiagnosticsGenerator:
    """Generates diagnostics.jsonl from extraction results."""

    @property
    def name(self) -> str:
        """Generator name for logging and identification."""
        return "diagnostics"

    def generate(
        self,
        root: Path,
        out_dir: Path,
        **kwargs: Any,
    ) -> tuple[list[dict[str, Any]], dict[str, Any]]:
        """Generate diagnostics artifact."""
        results: Sequence[ExtractionResult] = kwargs.get("results", ())

        out_dir.mkdir(parents=True, exist_ok=True)

        records = [
            record
            for result in sorted(results, key=lambda r: r.path)
            for record in result.diagnostics
        ]

        _write_jsonl(out_dir / DIAGNOSTICS_JSONL, records)

        codes = Counter(record.code for record in records)
        failed = sorted(result.path for result in results if result.graph is None)

        return [r.model_dump() for r in records], {
            "diagnostic_codes": dict(sorted(codes.items())),
            "failed_files": failed,
        }
