from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from scan.files import _gitignore_matcher, find_python_files

if TYPE_CHECKING:
    from pathlib import Path


def _relative(repo_root: Path, **kwargs: object) -> list[str]:
    return [
        path.relative_to(repo_root).as_posix()
        for path in find_python_files(repo_root, **kwargs)  # type: ignore[arg-type]
    ]


@pytest.mark.skipif(
    os.name == "nt",
    reason="Symlink semantics vary on Windows test runners.",
)
def test_find_python_files_skips_symlinked_dirs(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()
    (repo_root / "pkg").mkdir()
    (repo_root / "pkg" / "module.py").write_text("print('ok')\n", encoding="utf-8")

    external_root = tmp_path / "external"
    external_root.mkdir()
    (external_root / "leak.py").write_text("print('leak')\n", encoding="utf-8")

    symlink_dir = repo_root / "linked"
    symlink_dir.symlink_to(external_root, target_is_directory=True)

    results = _relative(repo_root)

    assert "pkg/module.py" in results
    assert "linked/leak.py" not in results


@pytest.mark.skipif(
    os.name == "nt",
    reason="Symlink semantics vary on Windows test runners.",
)
def test_nested_gitignore_skips_symlinked_gitignore(tmp_path: Path) -> None:
    repo_root = tmp_path / "repo"
    repo_root.mkdir()
    (repo_root / "pkg").mkdir()
    (repo_root / "pkg" / "module.py").write_text("print('ok')\n", encoding="utf-8")
    (repo_root / ".gitignore").write_text("*.bin\n", encoding="utf-8")

    external_root = tmp_path / "external"
    external_root.mkdir()
    (external_root / "outside.gitignore").write_text(
        "pkg/module.py\n", encoding="utf-8"
    )

    symlink_gitignore = repo_root / "linked.gitignore"
    symlink_gitignore.symlink_to(external_root / "outside.gitignore")

    matcher = _gitignore_matcher(repo_root, nested_gitignore=True)
    assert matcher is not None
    assert matcher(str(repo_root / "pkg" / "module.py")) is False


def test_results_are_sorted_and_skip_output_dir(tmp_path: Path) -> None:
    for rel in ("b.py", "a/z.py", "a/b.py", ".symmap/cached.py", "notes.txt"):
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("x = 1\n", encoding="utf-8")

    assert _relative(tmp_path) == ["a/b.py", "a/z.py", "b.py"]


def test_include_exclude_patterns_and_root_gitignore(tmp_path: Path) -> None:
    for rel in ("src/app.py", "src/gen/out.py", "tests/test_app.py", "build/x.py"):
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("x = 1\n", encoding="utf-8")
    (tmp_path / ".gitignore").write_text("build/\n", encoding="utf-8")

    assert _relative(tmp_path) == ["src/app.py", "src/gen/out.py", "tests/test_app.py"]
    assert _relative(
        tmp_path, include_patterns=["src/*"], exclude_patterns=["src/gen/*"]
    ) == ["src/app.py"]


def test_nested_gitignore_applies_below_its_directory(tmp_path: Path) -> None:
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "keep.py").write_text("x = 1\n", encoding="utf-8")
    (tmp_path / "pkg" / "skip.py").write_text("x = 1\n", encoding="utf-8")
    (tmp_path / "skip.py").write_text("x = 1\n", encoding="utf-8")
    (tmp_path / "pkg" / ".gitignore").write_text("skip.py\n", encoding="utf-8")

    assert _relative(tmp_path) == ["pkg/keep.py", "pkg/skip.py", "skip.py"]
    assert _relative(tmp_path, nested_gitignore=True) == ["pkg/keep.py", "skip.py"]
