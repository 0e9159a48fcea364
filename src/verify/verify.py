"""Determinism verification for symmap artifacts and graphs."""

from __future__ import annotations

import filecmp
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from artifacts.utils import _read_sources
from artifacts.write import generate_all_artifacts
from engine import extract_source
from graph.algos import check_invariants, graphs_equivalent
from parse.source import SourceText
from rules.config import load_config


@dataclass(frozen=True)
class DeterminismResult:
    ok: bool
    mismatches: tuple[str, ...] = field(default_factory=tuple)
    missing: tuple[str, ...] = field(default_factory=tuple)
    extra: tuple[str, ...] = field(default_factory=tuple)


def _list_files(root: Path) -> set[Path]:
    return {path for path in root.rglob("*") if path.is_file()}


def _list_relative_files(root: Path) -> set[Path]:
    return {path.relative_to(root) for path in _list_files(root)}


def verify_determinism(*, root: Path, artifacts_dir: Path) -> DeterminismResult:
    """Verify that symmap artifacts are deterministic.

    Regenerates deterministic artifacts into a temporary directory and compares
    them byte-for-byte against the existing artifacts directory. File set
    comparisons are performed on relative paths to avoid root-dependent
    mismatches.

    Args:
        root: Repository root to analyze.
        artifacts_dir: Directory containing existing artifacts to verify.

    Returns:
        DeterminismResult with ok status and lists of missing, extra, and
        mismatched relative paths.

    Raises:
        FileNotFoundError: If artifacts_dir does not exist.
        NotADirectoryError: If artifacts_dir is not a directory.
    """
    if not artifacts_dir.exists():
        msg = f"Artifacts directory does not exist: {artifacts_dir}"
        raise FileNotFoundError(msg)
    if not artifacts_dir.is_dir():
        msg = f"Artifacts path is not a directory: {artifacts_dir}"
        raise NotADirectoryError(msg)
    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)
        generate_all_artifacts(root=root, out_dir=temp_path)

        original_files = _list_relative_files(artifacts_dir)
        regenerated_files = _list_relative_files(temp_path)

        missing = sorted(str(path) for path in original_files - regenerated_files)
        extra = sorted(str(path) for path in regenerated_files - original_files)

        mismatches: list[str] = []
        for path in sorted(original_files & regenerated_files):
            regenerated_path = temp_path / path
            original_path = artifacts_dir / path
            if not filecmp.cmp(original_path, regenerated_path, shallow=False):
                mismatches.append(str(path))

        mismatches = sorted(mismatches)

    ok = not missing and not extra and not mismatches
    return DeterminismResult(
        ok=ok,
        mismatches=tuple(mismatches),
        missing=tuple(missing),
        extra=tuple(extra),
    )


@dataclass(frozen=True)
class IdempotenceResult:
    ok: bool
    unstable: tuple[str, ...] = field(default_factory=tuple)
    violations: tuple[str, ...] = field(default_factory=tuple)


def verify_idempotence(*, root: Path) -> IdempotenceResult:
    """Extract every scanned file twice and compare the graphs.

    A file is unstable when its two graphs differ up to id relabeling.
    Structural invariant violations (root, containment tree, spans) are
    reported as ``path: message``.
    """
    config = load_config(root)
    sources = _read_sources(
        root,
        root / config.output_dir,
        include_patterns=config.include,
        exclude_patterns=config.exclude,
        nested_gitignore=config.nested_gitignore,
    )

    unstable: list[str] = []
    violations: list[str] = []
    for path, content in sources:
        first = extract_source(path, content, config=config.engine)
        second = extract_source(path, content, config=config.engine)
        if first.graph is None or second.graph is None:
            if first.graph is not second.graph:
                unstable.append(path)
            continue
        if not graphs_equivalent(first.graph, second.graph):
            unstable.append(path)
        text_length = len(SourceText.decode(path, content))
        violations.extend(
            f"{path}: {problem}"
            for problem in check_invariants(first.graph, text_length)
        )

    return IdempotenceResult(
        ok=not unstable and not violations,
        unstable=tuple(unstable),
        violations=tuple(violations),
    )
