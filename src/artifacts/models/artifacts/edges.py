"""Edge models linking symbols within one file's graph."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from artifacts.models.artifacts.spans import SourceSpan
from contract.artifacts import ARTIFACT_SCHEMA_VERSION

EdgeKind = Literal["contains", "inherits", "decorates", "imports"]
EdgeRole = Literal["decorator", "metaclass"]


class EdgeRecord(BaseModel):
    """A relationship from one symbol to another symbol or to a textual name.

    Contains edges are always resolved. Other kinds keep ``target_name`` and
    are unresolved until a resolver supplies ``target_id``. For inherits and
    decorates edges, ``local_target_id`` names the class or function defined
    earlier in the same file that the name binds to lexically, if any.
    """

    model_config = ConfigDict(frozen=True)

    schema_version: int = Field(default=ARTIFACT_SCHEMA_VERSION)
    edge_id: str
    path: str
    kind: EdgeKind
    source_id: str
    target_id: str | None = None
    target_name: str | None = None
    resolved: bool = False
    local_target_id: str | None = None
    role: EdgeRole | None = None
    position: int = Field(ge=0, description="Declaration order per source and kind")
    span: SourceSpan


__all__ = ["EdgeKind", "EdgeRecord", "EdgeRole"]
