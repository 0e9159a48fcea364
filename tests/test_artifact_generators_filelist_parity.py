from __future__ import annotations

from collections.abc import Iterator, Sequence
from pathlib import Path

import pytest

from artifacts.write import generate_all_artifacts
from scan import files as scan_files
from verify.parity import verify_parity
from verify.verify import verify_idempotence


def _write_repo_fixture(repo_root: Path, *, nested_gitignore: bool) -> None:
    repo_root.mkdir()
    (repo_root / "nested").mkdir()
    (repo_root / "pkg").mkdir()
    (repo_root / "pkg" / "keep.py").write_text("print('keep')\n", encoding="utf-8")
    (repo_root / "nested" / "skip.py").write_text("print('skip')\n", encoding="utf-8")
    (repo_root / "nested" / ".gitignore").write_text("skip.py\n", encoding="utf-8")
    (repo_root / "symmap.toml").write_text(
        f"nested_gitignore = {'true' if nested_gitignore else 'false'}\n",
        encoding="utf-8",
    )


@pytest.mark.parametrize("nested_gitignore", [False, True])
def test_pipelines_scan_the_same_files(
    tmp_path: Path,
    nested_gitignore: bool,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    repo_root = tmp_path / "repo"
    _write_repo_fixture(repo_root, nested_gitignore=nested_gitignore)
    observed: list[list[str]] = []
    original_find = scan_files.find_python_files

    def _spy_find_python_files(
        directory: Path,
        *,
        output_dir: str = ".symmap",
        include_patterns: Sequence[str] | None = None,
        exclude_patterns: Sequence[str] | None = None,
        nested_gitignore: bool = False,
    ) -> Iterator[Path]:
        files_list = list(
            original_find(
                directory,
                output_dir=output_dir,
                include_patterns=include_patterns,
                exclude_patterns=exclude_patterns,
                nested_gitignore=nested_gitignore,
            )
        )
        observed.append([path.relative_to(directory).as_posix() for path in files_list])
        yield from files_list

    monkeypatch.setattr(scan_files, "find_python_files", _spy_find_python_files)

    generate_all_artifacts(root=repo_root, out_dir=tmp_path / "artifacts")
    verify_idempotence(root=repo_root)
    verify_parity(root=repo_root)

    assert len(observed) == 3
    assert observed[0] == observed[1] == observed[2]

    if nested_gitignore:
        assert "nested/skip.py" not in observed[0]
    else:
        assert "nested/skip.py" in observed[0]
