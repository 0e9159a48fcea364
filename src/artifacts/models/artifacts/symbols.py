"""Symbol models for code artifacts.

This module contains models for representing declarations extracted from
Python source (modules, classes, functions, methods, variables, imports).
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from artifacts.models.artifacts.spans import SourceSpan
from contract.artifacts import ARTIFACT_SCHEMA_VERSION

SymbolKind = Literal["module", "class", "function", "method", "variable", "import"]


class SymbolFlags(BaseModel):
    """Boolean properties of a declaration."""

    model_config = ConfigDict(frozen=True)

    is_async: bool = False
    is_generator: bool = False
    is_static: bool = False
    is_classmethod: bool = False
    is_abstract: bool = False


class SymbolRecord(BaseModel):
    """A symbol extracted from a Python source file."""

    model_config = ConfigDict(frozen=True)

    schema_version: int = Field(default=ARTIFACT_SCHEMA_VERSION)
    symbol_id: str
    path: str
    kind: SymbolKind
    name: str
    qualified_name: str
    span: SourceSpan
    flags: SymbolFlags = Field(default_factory=SymbolFlags)
    decorators: tuple[str, ...] = Field(
        default=(), description="Decorator expressions in source order"
    )
    bases: tuple[str, ...] = Field(
        default=(), description="Base class expressions in declaration order"
    )
    metaclass: str | None = None
    docstring: str | None = None
    comment: str | None = Field(
        default=None, description="Comment block directly above the declaration"
    )
    signature: str | None = Field(
        default=None, description="Parameter list and return annotation as written"
    )
    parent_id: str | None = None
    import_module: str | None = Field(
        default=None, description="Module path as written, e.g. 'a.b' or '..pkg'"
    )
    import_name: str | None = Field(
        default=None, description="Imported remote name for from-imports"
    )
    import_level: int = Field(default=0, ge=0)
    import_absolute: str | None = Field(
        default=None, description="Absolute module for relative imports, if known"
    )


__all__ = ["SymbolFlags", "SymbolKind", "SymbolRecord"]
