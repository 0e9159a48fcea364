from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from artifacts.generators import (
    DiagnosticsGenerator,
    EdgesGenerator,
    SymbolsGenerator,
)
from artifacts.summaries.builders import build_graph_summary
from artifacts.utils import _read_sources, _write_json
from contract.artifacts import (
    DIAGNOSTICS_JSONL,
    EDGES_JSONL,
    GRAPH_SUMMARY_JSON,
    SYMBOLS_JSONL,
)
from engine import extract_files
from rules.config import load_config, resolve_output_dir

if TYPE_CHECKING:
    from pathlib import Path

    from rules.config import SymMapConfig

logger = logging.getLogger(__name__)


def generate_all_artifacts(
    *,
    root: Path,
    out_dir: Path | None = None,
    config: SymMapConfig | None = None,
) -> dict[str, object]:
    """Generate deterministic graph artifacts for a repository.

    Args:
        root: Root directory of the repository to analyze
        out_dir: Optional output directory for generated artifacts
        config: Optional configuration (loaded from symmap.toml when omitted)

    Returns:
        Dictionary with counts and list of generated artifact paths.
    """
    if config is None:
        config = load_config(root)

    if out_dir is None:
        out_dir = resolve_output_dir(root, config.output_dir)

    sources = _read_sources(
        root,
        out_dir,
        include_patterns=config.include,
        exclude_patterns=config.exclude,
        nested_gitignore=config.nested_gitignore,
    )
    logger.info("extracting %d files from %s", len(sources), root)
    results = extract_files(sources, config=config.engine, workers=config.workers)

    stats: dict[str, object] = {}
    for generator in (SymbolsGenerator(), EdgesGenerator(), DiagnosticsGenerator()):
        _, generator_stats = generator.generate(root=root, out_dir=out_dir, results=results)
        logger.debug("generator %s: %s", generator.name, generator_stats)
        stats.update(generator_stats)

    summary = build_graph_summary(results, stats)
    _write_json(out_dir / GRAPH_SUMMARY_JSON, summary)

    artifacts_list = [
        SYMBOLS_JSONL,
        EDGES_JSONL,
        DIAGNOSTICS_JSONL,
        GRAPH_SUMMARY_JSON,
    ]

    return {
        "file_count": summary.file_count,
        "symbol_count": summary.symbol_count,
        "edge_count": summary.edge_count,
        "unresolved_edge_count": summary.unresolved_edge_count,
        "diagnostic_count": summary.diagnostic_count,
        "failed_files": summary.failed_files,
        "artifacts": [str(out_dir / name) for name in artifacts_list],
    }
