"""Validation helpers for graph artifacts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import orjson
from pydantic import ValidationError

from contract.artifacts import (
    ARTIFACT_SCHEMA_VERSION,
    ARTIFACT_SPECS,
)
from contract.models import DiagnosticRecord, EdgeRecord, GraphSummary, SymbolRecord

if TYPE_CHECKING:
    from pathlib import Path


class _SchemaModel(Protocol):
    schema_version: int

    @classmethod
    def model_validate(cls, obj: Any) -> _SchemaModel: ...


@dataclass(frozen=True)
class ValidationMessage:
    artifact: str
    path: Path
    message: str
    line: int | None = None

    def location(self) -> str:
        if self.line is None:
            return str(self.path)
        return f"{self.path}:{self.line}"

    def to_dict(self) -> dict[str, object]:
        return {
            "artifact": self.artifact,
            "path": str(self.path),
            "line": self.line,
            "message": self.message,
        }


@dataclass
class ValidationResult:
    errors: list[ValidationMessage] = field(default_factory=list)
    warnings: list[ValidationMessage] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def validate_artifacts(
    artifacts_dir: Path, *, strict_schema_version: bool = False
) -> ValidationResult:
    result = ValidationResult()

    if not artifacts_dir.exists():
        result.errors.append(
            ValidationMessage(
                artifact="artifacts_dir",
                path=artifacts_dir,
                message="Artifacts directory does not exist.",
            )
        )
        return result

    if not artifacts_dir.is_dir():
        result.errors.append(
            ValidationMessage(
                artifact="artifacts_dir",
                path=artifacts_dir,
                message="Artifacts path is not a directory.",
            )
        )
        return result

    records: dict[str, list[Any]] = {}
    for artifact_name, spec in ARTIFACT_SPECS.items():
        path = artifacts_dir / spec.filename
        if not path.exists():
            result.errors.append(
                ValidationMessage(
                    artifact=artifact_name,
                    path=path,
                    message="Required artifact file is missing.",
                )
            )
            continue

        if spec.format == "jsonl":
            model = _jsonl_model_for_artifact(artifact_name)
            records[artifact_name] = _validate_jsonl(
                artifact_name,
                path,
                model,
                result,
                strict_schema_version=strict_schema_version,
            )
        elif spec.format == "json":
            _validate_summary(
                artifact_name,
                path,
                result,
                strict_schema_version=strict_schema_version,
            )
        else:
            result.errors.append(
                ValidationMessage(
                    artifact=artifact_name,
                    path=path,
                    message=f"Unsupported artifact format: {spec.format}.",
                )
            )

    if "symbols" in records and "edges" in records:
        _validate_references(
            artifacts_dir, records["symbols"], records["edges"], result
        )

    return result


def _jsonl_model_for_artifact(artifact_name: str) -> type[_SchemaModel]:
    if artifact_name == "symbols":
        return SymbolRecord
    if artifact_name == "edges":
        return EdgeRecord
    if artifact_name == "diagnostics":
        return DiagnosticRecord
    msg = f"Unknown jsonl artifact: {artifact_name}"
    raise ValueError(msg)


def _record_key(record: Any) -> str | None:
    if isinstance(record, SymbolRecord):
        return record.symbol_id
    if isinstance(record, EdgeRecord):
        return record.edge_id
    return None


def _validate_jsonl(
    artifact_name: str,
    path: Path,
    model: type[_SchemaModel],
    result: ValidationResult,
    *,
    strict_schema_version: bool,
) -> list[Any]:
    """Parse a symbols, edges or diagnostics file one record per line.

    Each line must be a JSON object matching ``model``. Symbol and edge ids
    must be unique within their file; a repeated id is reported at the line
    that repeats it. Schema-version problems are reported once per file, at
    the first record that shows them. Returns the records that parsed, which
    feed the cross-file reference checks.
    """
    try:
        handle = path.open("rb")
    except OSError as exc:
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                message=f"Failed to read file: {exc}.",
            )
        )
        return []

    records: list[Any] = []
    first_seen: dict[str, int] = {}
    version_reported: set[bool] = set()
    with handle:
        for line_number, raw_line in enumerate(handle, 1):
            line = raw_line.strip()
            if not line:
                continue
            try:
                data = orjson.loads(line)
            except orjson.JSONDecodeError as exc:
                result.errors.append(
                    ValidationMessage(
                        artifact=artifact_name,
                        path=path,
                        line=line_number,
                        message=f"Invalid JSON: {exc}.",
                    )
                )
                continue

            try:
                record = model.model_validate(data)
            except ValidationError as exc:
                result.errors.append(
                    ValidationMessage(
                        artifact=artifact_name,
                        path=path,
                        line=line_number,
                        message=f"Schema validation failed: {exc}.",
                    )
                )
                continue

            key = _record_key(record)
            if key is not None and key in first_seen:
                result.errors.append(
                    ValidationMessage(
                        artifact=artifact_name,
                        path=path,
                        line=line_number,
                        message=(
                            f"Duplicate id {key}; first seen on line "
                            f"{first_seen[key]}."
                        ),
                    )
                )
                continue
            if key is not None:
                first_seen[key] = line_number
            records.append(record)

            # Keyed by presence: one report for a missing version, one for a
            # mismatched one.
            schema_present = "schema_version" in data
            if schema_present and record.schema_version == ARTIFACT_SCHEMA_VERSION:
                continue
            if schema_present in version_reported:
                continue
            version_reported.add(schema_present)
            _check_schema_version(
                artifact_name,
                path,
                line_number,
                schema_present,
                record.schema_version,
                result,
                strict_schema_version=strict_schema_version,
            )
    return records


def _validate_summary(
    artifact_name: str,
    path: Path,
    result: ValidationResult,
    *,
    strict_schema_version: bool,
) -> None:
    try:
        raw = orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as exc:
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                message=f"Invalid JSON: {exc}.",
            )
        )
        return

    if not isinstance(raw, dict):
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                message=f"Expected JSON object for {path.name}.",
            )
        )
        return

    schema_present = "schema_version" in raw
    try:
        summary = GraphSummary.model_validate(raw)
    except ValidationError as exc:
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                message=f"Schema validation failed: {exc}.",
            )
        )
        return

    if summary.containment_cycles:
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                message=f"Containment cycles reported: {summary.containment_cycles}.",
            )
        )

    _check_schema_version(
        artifact_name,
        path,
        None,
        schema_present,
        summary.schema_version,
        result,
        strict_schema_version=strict_schema_version,
    )


def _validate_references(
    artifacts_dir: Path,
    symbols: list[SymbolRecord],
    edges: list[EdgeRecord],
    result: ValidationResult,
) -> None:
    """Check that parents and edge endpoints name symbols that exist."""
    known = {symbol.symbol_id for symbol in symbols}
    symbols_path = artifacts_dir / ARTIFACT_SPECS["symbols"].filename
    edges_path = artifacts_dir / ARTIFACT_SPECS["edges"].filename

    for symbol in symbols:
        if symbol.parent_id is not None and symbol.parent_id not in known:
            result.errors.append(
                ValidationMessage(
                    artifact="symbols",
                    path=symbols_path,
                    message=(
                        f"Symbol {symbol.symbol_id} has unknown parent "
                        f"{symbol.parent_id}."
                    ),
                )
            )

    for edge in edges:
        if edge.source_id not in known:
            result.errors.append(
                ValidationMessage(
                    artifact="edges",
                    path=edges_path,
                    message=f"Edge {edge.edge_id} has unknown source {edge.source_id}.",
                )
            )
        if edge.local_target_id is not None and edge.local_target_id not in known:
            result.errors.append(
                ValidationMessage(
                    artifact="edges",
                    path=edges_path,
                    message=(
                        f"Edge {edge.edge_id} has unknown local target "
                        f"{edge.local_target_id}."
                    ),
                )
            )
        if edge.resolved and edge.target_id not in known:
            result.warnings.append(
                ValidationMessage(
                    artifact="edges",
                    path=edges_path,
                    message=(
                        f"Edge {edge.edge_id} resolves outside this artifact set "
                        f"({edge.target_id})."
                    ),
                )
            )


def _check_schema_version(
    artifact_name: str,
    path: Path,
    line: int | None,
    schema_present: bool,
    schema_version: int,
    result: ValidationResult,
    *,
    strict_schema_version: bool,
) -> None:
    if schema_present and schema_version != ARTIFACT_SCHEMA_VERSION:
        result.errors.append(
            ValidationMessage(
                artifact=artifact_name,
                path=path,
                line=line,
                message=(
                    "Schema version mismatch: "
                    f"expected {ARTIFACT_SCHEMA_VERSION}, got {schema_version}."
                ),
            )
        )
        return

    if not schema_present:
        message = f"Missing schema_version; defaulted to {ARTIFACT_SCHEMA_VERSION}."
        if strict_schema_version:
            result.errors.append(
                ValidationMessage(
                    artifact=artifact_name,
                    path=path,
                    line=line,
                    message=message,
                )
            )
        else:
            result.warnings.append(
                ValidationMessage(
                    artifact=artifact_name,
                    path=path,
                    line=line,
                    message=message,
                )
            )


__all__ = [
    "ValidationMessage",
    "ValidationResult",
    "validate_artifacts",
]
