"""Shared utilities for symmap."""

from __future__ import annotations

from pathlib import Path


def path_to_module(file_path: str | Path) -> str:
    """Convert a relative file path to the dotted module name it defines.

    Sources under ``src/<package>/`` drop the ``src`` segment; any other
    path keeps all of its segments. ``__init__.py`` names its package.

    Examples:
        >>> path_to_module("src/symmap/engine.py")
        'symmap.engine'
        >>> path_to_module("src/symmap/__init__.py")
        'symmap'
        >>> path_to_module(Path("foo/bar.py"))
        'foo.bar'

    Raises:
        ValueError: If the path names no module (e.g. a bare ``__init__.py``).
    """
    path_str = file_path.as_posix() if isinstance(file_path, Path) else str(file_path)
    parts = [part for part in path_str.replace("\\", "/").split("/") if part]

    if len(parts) >= 2 and parts[0] == "src":
        parts = parts[1:]

    if parts and parts[-1].endswith((".py", ".pyi")):
        parts[-1] = parts[-1].rsplit(".", 1)[0]

    if parts and parts[-1] == "__init__":
        parts = parts[:-1]

    if not parts:
        msg = f"Expected a non-empty module name for {path_str!r}"
        raise ValueError(msg)

    return ".".join(parts)


def is_package_init(file_path: str | Path) -> bool:
    """Return True for ``__init__.py`` files, which resolve imports against themselves."""
    return Path(file_path).stem == "__init__"
