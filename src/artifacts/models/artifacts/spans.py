"""Source span model shared by symbols, edges and diagnostics."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SourceSpan(BaseModel):
    """A range of source text.

    Offsets index the decoded text (end exclusive). Lines and columns are
    1-based; the end column points one past the last character.
    """

    model_config = ConfigDict(frozen=True)

    start_offset: int = Field(ge=0)
    end_offset: int = Field(ge=0)
    start_line: int = Field(ge=1)
    start_col: int = Field(ge=1)
    end_line: int = Field(ge=1)
    end_col: int = Field(ge=1)

    def contains(self, other: SourceSpan) -> bool:
        # Non-strict: a symbol may share its parent's bounds, e.g. a module
        # consisting of a single class with no trailing newline.
        return (
            self.start_offset <= other.start_offset
            and other.end_offset <= self.end_offset
        )

    def as_range(self) -> str:
        """Render as ``line:col-line:col``."""
        return (
            f"{self.start_line}:{self.start_col}-{self.end_line}:{self.end_col}"
        )


__all__ = ["SourceSpan"]
