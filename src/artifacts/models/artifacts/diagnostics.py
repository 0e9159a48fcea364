"""Diagnostic models for recoverable and fatal extraction problems."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from artifacts.models.artifacts.spans import SourceSpan
from contract.artifacts import ARTIFACT_SCHEMA_VERSION

Severity = Literal["error", "warning", "info"]


class DiagnosticRecord(BaseModel):
    """A problem found while lexing, parsing or extracting one file."""

    model_config = ConfigDict(frozen=True)

    schema_version: int = Field(default=ARTIFACT_SCHEMA_VERSION)
    path: str
    severity: Severity
    code: str
    message: str
    span: SourceSpan
    recovery: str | None = Field(
        default=None, description="What the engine did to continue"
    )


__all__ = ["DiagnosticRecord", "Severity"]
