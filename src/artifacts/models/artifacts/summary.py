"""Summary model for the per-repository graph artifacts."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from contract.artifacts import ARTIFACT_SCHEMA_VERSION


class GraphSummary(BaseModel):
    """Aggregate metrics over every file graph of one run."""

    model_config = ConfigDict(frozen=True)

    schema_version: int = Field(default=ARTIFACT_SCHEMA_VERSION)
    file_count: int
    symbol_count: int
    edge_count: int
    unresolved_edge_count: int
    diagnostic_count: int
    failed_files: list[str] = Field(
        default_factory=list, description="Files that could not be decoded"
    )
    symbol_kinds: dict[str, int] = Field(default_factory=dict)
    edge_kinds: dict[str, int] = Field(default_factory=dict)
    diagnostic_codes: dict[str, int] = Field(default_factory=dict)
    fan_in: dict[str, int] = Field(
        default_factory=dict, description="Inherits/decorates references per target name"
    )
    top_targets: list[str] = Field(default_factory=list)
    containment_cycles: list[list[str]] = Field(default_factory=list)


__all__ = ["GraphSummary"]
