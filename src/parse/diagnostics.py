"""Diagnostics collection shared by the lexer, parser and extractor."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from artifacts.models.artifacts.diagnostics import DiagnosticRecord

if TYPE_CHECKING:
    from collections.abc import Iterator

    from artifacts.models.artifacts.diagnostics import Severity
    from parse.source import SourceText

logger = logging.getLogger(__name__)

# Diagnostic codes
UNRECOGNIZED_CHARACTER = "unrecognized-character"
UNTERMINATED_STRING = "unterminated-string"
UNBALANCED_SUBSTITUTION = "unbalanced-substitution"
NESTED_QUOTE_REUSE = "nested-quote-reuse"
INCONSISTENT_DEDENT = "inconsistent-dedent"
UNMATCHED_BRACKET = "unmatched-bracket"
UNCLOSED_BRACKET = "unclosed-bracket"
SYNTAX_ERROR = "syntax-error"
UNEXPECTED_INDENT = "unexpected-indent"
EXPECTED_BLOCK = "expected-block"
YIELD_OUTSIDE_FUNCTION = "yield-outside-function"
REDEFINITION = "redefinition"
DECODE_ERROR = "decode-error"


class DiagnosticCollector:
    """Accumulates diagnostics for one source file.

    Reporting never raises; every stage keeps going after it reports.
    """

    def __init__(self, source: SourceText) -> None:
        self._source = source
        self._records: list[DiagnosticRecord] = []

    def report(
        self,
        code: str,
        message: str,
        start: int,
        end: int,
        *,
        severity: Severity = "error",
        recovery: str | None = None,
    ) -> DiagnosticRecord:
        record = DiagnosticRecord(
            path=self._source.path,
            severity=severity,
            code=code,
            message=message,
            span=self._source.span(start, max(start, end)),
            recovery=recovery,
        )
        self._records.append(record)
        logger.debug(
            "%s:%s: %s [%s] %s",
            record.path,
            record.span.as_range(),
            severity,
            code,
            message,
        )
        return record

    def error(
        self, code: str, message: str, start: int, end: int, recovery: str | None = None
    ) -> DiagnosticRecord:
        return self.report(code, message, start, end, recovery=recovery)

    def warning(
        self, code: str, message: str, start: int, end: int, recovery: str | None = None
    ) -> DiagnosticRecord:
        return self.report(
            code, message, start, end, severity="warning", recovery=recovery
        )

    def info(self, code: str, message: str, start: int, end: int) -> DiagnosticRecord:
        return self.report(code, message, start, end, severity="info")

    def extend(self, records: list[DiagnosticRecord]) -> None:
        self._records.extend(records)

    def clear(self) -> None:
        self._records.clear()

    @property
    def records(self) -> tuple[DiagnosticRecord, ...]:
        return tuple(self._records)

    @property
    def has_errors(self) -> bool:
        return any(record.severity == "error" for record in self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[DiagnosticRecord]:
        return iter(self._records)
