from __future__ import annotations

from typing import TYPE_CHECKING, Any

import tomllib
from pydantic import BaseModel, ConfigDict, Field, field_validator

if TYPE_CHECKING:
    from pathlib import Path

CONFIG_FILENAME = "symmap.toml"


class EngineConfig(BaseModel):
    """Read-only settings shared by every extraction in a process."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    staticmethod_decorators: tuple[str, ...] = Field(
        default=("staticmethod",),
        description="Decorator names (matched literally) that mark a static method",
    )
    classmethod_decorators: tuple[str, ...] = Field(
        default=("classmethod",),
        description="Decorator names (matched literally) that mark a class method",
    )
    abstract_decorators: tuple[str, ...] = Field(
        default=("abstractmethod", "abc.abstractmethod"),
        description="Decorator names that mark a function as abstract",
    )
    abstract_bases: tuple[str, ...] = Field(
        default=("ABC", "abc.ABC", "ABCMeta", "abc.ABCMeta"),
        description="Base or metaclass names that mark a class as abstract",
    )
    tab_size: int = Field(
        default=8, ge=1, le=32, description="Tab stop width for indentation"
    )
    target_version: tuple[int, int] = Field(
        default=(3, 12),
        description="Python version whose lexical rules apply (major, minor)",
    )
    local_variables: bool = Field(
        default=False,
        description="Emit variables for plain assignments inside functions",
    )
    attach_comments: bool = Field(
        default=True,
        description="Attach leading comment blocks to classes and functions",
    )

    @field_validator("target_version", mode="before")
    @classmethod
    def parse_target_version(cls, v: Any) -> Any:
        """Accept ``"3.11"`` as well as ``[3, 11]``."""
        if isinstance(v, str):
            parts = v.split(".")
            if len(parts) != 2 or not all(part.isdigit() for part in parts):
                msg = f"target_version must look like '3.12', got {v!r}"
                raise ValueError(msg)
            return (int(parts[0]), int(parts[1]))
        return v


class SymMapConfig(BaseModel):
    """Configuration for symmap artifact generation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    output_dir: str = Field(
        default=".symmap",
        description="Output directory for generated artifacts",
    )
    include: tuple[str, ...] = Field(
        default=(),
        description="Glob patterns for files to include (empty = all Python files)",
    )
    exclude: tuple[str, ...] = Field(
        default=(),
        description="Glob patterns for files to exclude",
    )
    nested_gitignore: bool = Field(
        default=False,
        description=(
            "Enable nested .gitignore composition (default: false for root-only)"
        ),
    )
    workers: int = Field(
        default=1,
        ge=1,
        description="Worker processes used to extract files in parallel",
    )
    engine: EngineConfig = Field(
        default_factory=EngineConfig,
        description="Extraction engine settings",
    )


class ConfigError(Exception):
    """Raised when config file exists but cannot be parsed."""


def resolve_output_dir(root: Path, output_dir: str) -> Path:
    """Resolve a config-provided output_dir safely within the repo root.

    The config output_dir must be a non-empty relative path that remains
    within the repository root after resolution. Absolute paths and paths
    that escape the root are rejected.
    """
    from pathlib import Path as PathCls

    if not output_dir:
        msg = "output_dir must be a non-empty relative path"
        raise ConfigError(msg)

    if output_dir.startswith("~"):
        msg = "output_dir must be a relative path within the repo root"
        raise ConfigError(msg)

    output_path = PathCls(output_dir)
    if output_path.is_absolute():
        msg = "output_dir must be a relative path within the repo root"
        raise ConfigError(msg)

    try:
        resolved_root = root.resolve()
        resolved_output = (resolved_root / output_path).resolve()
    except OSError as exc:
        msg = f"Failed to resolve output_dir '{output_dir}': {exc}"
        raise ConfigError(msg) from exc

    try:
        resolved_output.relative_to(resolved_root)
    except ValueError as exc:
        msg = f"output_dir '{output_dir}' escapes the repository root"
        raise ConfigError(msg) from exc

    return resolved_output


def load_config(root: Path) -> SymMapConfig:
    """Load configuration from symmap.toml if it exists."""
    from pathlib import Path as PathCls

    config_path = PathCls(root) / CONFIG_FILENAME

    if not config_path.is_file():
        return SymMapConfig()

    try:
        with config_path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        msg = f"Invalid TOML in {config_path}: {e}"
        raise ConfigError(msg) from e

    try:
        return SymMapConfig.model_validate(data)
    except Exception as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e
