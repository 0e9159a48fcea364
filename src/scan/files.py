"""Discovery of the Python sources symmap extracts from."""

from __future__ import annotations

import logging
from fnmatch import fnmatch
from typing import TYPE_CHECKING, cast

from gitignore_parser import parse_gitignore  # type: ignore[import-untyped]

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)


def _is_within_root(path: Path, root: Path) -> bool:
    """Return True when the resolved path stays within the resolved root."""
    try:
        path.resolve().relative_to(root.resolve())
    except (OSError, ValueError):
        return False
    return True


def _matches_filters(
    rel_path: str,
    include_patterns: Sequence[str] | None,
    exclude_patterns: Sequence[str] | None,
) -> bool:
    if include_patterns and not any(fnmatch(rel_path, p) for p in include_patterns):
        return False
    return not (exclude_patterns and any(fnmatch(rel_path, p) for p in exclude_patterns))


def _accept(
    path: Path,
    root: Path,
    output_dir: str,
    ignored: Callable[[str], bool] | None,
    include_patterns: Sequence[str] | None,
    exclude_patterns: Sequence[str] | None,
) -> bool:
    # Symlinked files are never followed, even when they point inside root.
    if path.is_symlink() or not path.is_file() or not _is_within_root(path, root):
        return False

    rel = path.relative_to(root)
    if output_dir and rel.parts[0] == output_dir:
        return False
    if ignored is not None and ignored(str(path)):
        return False
    return _matches_filters(rel.as_posix(), include_patterns, exclude_patterns)


def _gitignore_matcher(
    root: Path, *, nested_gitignore: bool
) -> Callable[[str], bool] | None:
    """Build one predicate from the root (or every nested) ``.gitignore``."""
    if nested_gitignore:
        candidates = sorted(
            {p for p in [root / ".gitignore", *root.rglob(".gitignore")] if p.is_file()},
            key=lambda p: p.relative_to(root).as_posix(),
        )
    else:
        candidates = [root / ".gitignore"] if (root / ".gitignore").is_file() else []

    if not candidates:
        return None
    if not nested_gitignore:
        return cast("Callable[[str], bool]", parse_gitignore(candidates[0]))

    matchers = [parse_gitignore(path) for path in candidates]

    def ignored(path_str: str) -> bool:
        for matcher in matchers:
            try:
                if matcher(path_str):
                    return True
            except ValueError:
                # Path lies outside this matcher's base directory.
                continue
        return False

    return ignored


def find_python_files(
    directory: Path,
    *,
    output_dir: str = ".symmap",
    include_patterns: Sequence[str] | None = None,
    exclude_patterns: Sequence[str] | None = None,
    nested_gitignore: bool = False,
) -> Iterator[Path]:
    """Yield the Python files under ``directory`` that symmap should extract.

    Files are skipped when they are symlinks, resolve outside ``directory``,
    live under ``output_dir``, are gitignored, or fail the include/exclude
    fnmatch patterns (matched against the relative POSIX path). Results are
    sorted by relative path so artifacts are stable across runs.
    """
    ignored = _gitignore_matcher(directory, nested_gitignore=nested_gitignore)

    matched = sorted(
        (
            path
            for path in directory.rglob("*.py")
            if _accept(
                path,
                directory,
                output_dir,
                ignored,
                include_patterns,
                exclude_patterns,
            )
        ),
        key=lambda p: p.relative_to(directory).as_posix(),
    )
    logger.debug("scanned %s: %d python files", directory, len(matched))
    yield from matched


__all__ = ["find_python_files"]
