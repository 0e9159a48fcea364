"""Extraction pipeline: lexer -> parser -> extractor -> graph.

The engine takes already materialized content and performs no I/O. Each call
allocates its own token buffer, tree and graph; the only object shared across
calls (and worker processes) is the frozen EngineConfig.
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

from artifacts.models.artifacts.diagnostics import DiagnosticRecord
from artifacts.models.artifacts.spans import SourceSpan
from parse import diagnostics as codes
from parse.diagnostics import DiagnosticCollector
from parse.lexer import Lexer
from parse.parser import Parser
from parse.source import SourceDecodeError, SourceText
from parse.symbols import StructuralExtractor
from rules.config import EngineConfig
from utils import is_package_init, path_to_module

if TYPE_CHECKING:
    from collections.abc import Iterable

    from graph.builder import SymbolGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of extracting one file.

    ``graph`` is None only when the content could not be decoded; in that
    case ``diagnostics`` holds exactly one ``decode-error``.
    """

    path: str
    module: str
    graph: SymbolGraph | None
    diagnostics: tuple[DiagnosticRecord, ...]

    @property
    def ok(self) -> bool:
        return self.graph is not None

    @property
    def error_count(self) -> int:
        return sum(1 for record in self.diagnostics if record.severity == "error")


def _module_for(path: str) -> str:
    try:
        return path_to_module(path)
    except ValueError:
        return ""


def _decode_failure(path: str, module: str, exc: SourceDecodeError) -> ExtractionResult:
    logger.warning("%s", exc)
    record = DiagnosticRecord(
        path=path,
        severity="error",
        code=codes.DECODE_ERROR,
        message=str(exc),
        span=SourceSpan(
            start_offset=0,
            end_offset=0,
            start_line=1,
            start_col=1,
            end_line=1,
            end_col=1,
        ),
    )
    return ExtractionResult(path, module, None, (record,))


def extract_source(
    path: str,
    content: bytes | str,
    *,
    module_name: str | None = None,
    config: EngineConfig | None = None,
) -> ExtractionResult:
    """Extract the symbol graph and diagnostics of one file.

    Args:
        path: File identifier (POSIX relative path or logical name)
        content: Full file content, UTF-8 bytes or text
        module_name: Dotted module name; derived from ``path`` when omitted
        config: Engine settings (defaults when omitted)
    """
    config = config if config is not None else EngineConfig()
    module = _module_for(path) if module_name is None else module_name

    try:
        source = SourceText.decode(path, content)
    except SourceDecodeError as exc:
        return _decode_failure(path, module, exc)

    lexer = Lexer(source, tab_size=config.tab_size, target_version=config.target_version)
    diagnostics = DiagnosticCollector(source)
    tree = Parser(source, lexer, diagnostics=diagnostics).parse_module()
    graph = StructuralExtractor(
        source,
        diagnostics,
        module_name=module,
        is_package=is_package_init(path),
        config=config,
        comments=lexer.comments,
    ).extract(tree)

    records = sorted(
        [*lexer.diagnostics, *diagnostics],
        key=lambda record: (record.span.start_offset, record.span.end_offset),
    )
    return ExtractionResult(path, module, graph, tuple(records))


def _extract_job(job: tuple[str, bytes | str, EngineConfig]) -> ExtractionResult:
    path, content, config = job
    return extract_source(path, content, config=config)


def extract_files(
    files: Iterable[tuple[str, bytes | str]],
    *,
    config: EngineConfig | None = None,
    workers: int = 1,
) -> list[ExtractionResult]:
    """Extract many files; results keep the input order.

    With ``workers > 1`` files are spread over worker processes.
    """
    config = config if config is not None else EngineConfig()
    jobs = [(path, content, config) for path, content in files]
    if workers <= 1 or len(jobs) <= 1:
        return [_extract_job(job) for job in jobs]

    logger.debug("extracting %d files with %d workers", len(jobs), workers)
    chunksize = max(1, len(jobs) // (workers * 4))
    with ProcessPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(_extract_job, jobs, chunksize=chunksize))


__all__ = ["ExtractionResult", "extract_files", "extract_source"]
