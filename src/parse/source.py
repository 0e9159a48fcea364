"""Decoded source text with offset to line/column mapping."""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass, field

from artifacts.models.artifacts.spans import SourceSpan

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class SourceDecodeError(ValueError):
    """Raised when source bytes are not valid UTF-8."""

    def __init__(self, path: str, exc: UnicodeDecodeError) -> None:
        self.path = path
        self.offset = exc.start
        super().__init__(f"{path}: cannot decode as UTF-8 at byte {exc.start}")


def _compute_line_starts(text: str) -> tuple[int, ...]:
    return (0, *(match.end() for match in _LINE_BREAK.finditer(text)))


@dataclass(frozen=True)
class SourceText:
    """The full, already materialized text of one input file."""

    path: str
    text: str
    line_starts: tuple[int, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "line_starts", _compute_line_starts(self.text))

    @classmethod
    def decode(cls, path: str, data: bytes | str) -> SourceText:
        """Build a SourceText from raw bytes (UTF-8, optional BOM) or text.

        Raises:
            SourceDecodeError: If ``data`` is bytes that are not valid UTF-8.
        """
        if isinstance(data, str):
            return cls(path, data)
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise SourceDecodeError(path, exc) from exc
        return cls(path, text)

    def __len__(self) -> int:
        return len(self.text)

    def position(self, offset: int) -> tuple[int, int]:
        """Return the 1-based ``(line, col)`` of an offset."""
        offset = max(0, min(offset, len(self.text)))
        index = bisect.bisect_right(self.line_starts, offset) - 1
        return index + 1, offset - self.line_starts[index] + 1

    def span(self, start: int, end: int) -> SourceSpan:
        start_line, start_col = self.position(start)
        end_line, end_col = self.position(end)
        return SourceSpan(
            start_offset=start,
            end_offset=end,
            start_line=start_line,
            start_col=start_col,
            end_line=end_line,
            end_col=end_col,
        )

    def line_end(self, offset: int) -> int:
        """Offset of the line break ending the line containing ``offset``."""
        match = _LINE_BREAK.search(self.text, offset)
        return match.start() if match else len(self.text)

    def slice(self, start: int, end: int) -> str:
        return self.text[start:end]


__all__ = ["SourceDecodeError", "SourceText"]
