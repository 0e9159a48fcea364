"""Change-list documents that trigger downstream indexing.

A change list records, for one codebase snapshot, which files were added,
modified or deleted since the previous snapshot::

    {
      "clientId": "...",
      "codebaseName": "...",
      "codebasePath": "/abs/path",
      "fileList": {"pkg/mod.py": "add", "old.py": "delete"},
      "timestamp": 1700000000
    }

The previous snapshot is a manifest of content digests (relative POSIX path
to sha256 hex). Without one, every file is reported as ``add``.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

import orjson

from scan.files import _is_within_root

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from pathlib import Path

logger = logging.getLogger(__name__)

ChangeOp = Literal["add", "modify", "delete"]

MANIFEST_FILENAME = "manifest.json"


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def iter_codebase_files(root: Path) -> Iterator[Path]:
    """Yield every non-hidden regular file under ``root`` in sorted order.

    Hidden directories are not descended into. Symlinks that resolve outside
    ``root`` are skipped.
    """
    if not root.is_dir():
        msg = f"Codebase root is not a directory: {root}"
        raise NotADirectoryError(msg)

    yield from _walk(root, root)


def _walk(directory: Path, root: Path) -> Iterator[Path]:
    for entry in sorted(directory.iterdir(), key=lambda p: p.name):
        if is_hidden(entry.name) or not _is_within_root(entry, root):
            continue
        if entry.is_dir() and not entry.is_symlink():
            yield from _walk(entry, root)
        elif entry.is_file():
            yield entry


def content_digests(root: Path) -> dict[str, str]:
    """Map each codebase file's relative POSIX path to its sha256 digest."""
    return {
        path.relative_to(root).as_posix(): hashlib.sha256(path.read_bytes()).hexdigest()
        for path in iter_codebase_files(root)
    }


def diff_file_lists(
    current: Mapping[str, str], previous: Mapping[str, str] | None
) -> dict[str, ChangeOp]:
    """Compare two digest maps; unchanged files are left out."""
    if previous is None:
        return {path: "add" for path in sorted(current)}

    changes: dict[str, ChangeOp] = {}
    for path in sorted(set(current) | set(previous)):
        if path not in previous:
            changes[path] = "add"
        elif path not in current:
            changes[path] = "delete"
        elif current[path] != previous[path]:
            changes[path] = "modify"
    return changes


@dataclass(frozen=True)
class ChangeList:
    client_id: str
    codebase_name: str
    codebase_path: str
    timestamp: int
    file_list: dict[str, ChangeOp] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "clientId": self.client_id,
            "codebaseName": self.codebase_name,
            "codebasePath": self.codebase_path,
            "fileList": dict(self.file_list),
            "timestamp": self.timestamp,
        }


def load_manifest(path: Path) -> dict[str, str] | None:
    """Read a digest manifest; None when there is no previous snapshot."""
    if not path.is_file():
        return None
    data = orjson.loads(path.read_bytes())
    if not isinstance(data, dict):
        msg = f"Manifest must be a JSON object: {path}"
        raise ValueError(msg)
    return {str(key): str(value) for key, value in data.items()}


def write_manifest(path: Path, digests: Mapping[str, str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(orjson.dumps(dict(digests), option=orjson.OPT_SORT_KEYS))


def build_change_list(
    root: Path,
    *,
    client_id: str,
    codebase_name: str,
    previous: Mapping[str, str] | None = None,
    timestamp: int | None = None,
) -> tuple[ChangeList, dict[str, str]]:
    """Build the change list for ``root`` and the digests it was computed from."""
    digests = content_digests(root)
    change_list = ChangeList(
        client_id=client_id,
        codebase_name=codebase_name,
        codebase_path=str(root.resolve()),
        timestamp=int(time.time()) if timestamp is None else timestamp,
        file_list=diff_file_lists(digests, previous),
    )
    return change_list, digests


def write_change_list(change_list: ChangeList, sync_dir: Path) -> Path:
    """Write the document to ``<sync_dir>/<timestamp>`` and return its path."""
    sync_dir.mkdir(parents=True, exist_ok=True)
    output = sync_dir / str(change_list.timestamp)
    output.write_bytes(orjson.dumps(change_list.to_dict(), option=orjson.OPT_INDENT_2))
    logger.debug("wrote %s (%d changed files)", output, len(change_list.file_list))
    return output


def sync_codebase(
    root: Path,
    sync_dir: Path,
    *,
    client_id: str,
    codebase_name: str,
    timestamp: int | None = None,
) -> tuple[ChangeList, Path]:
    """Diff ``root`` against the manifest in ``sync_dir`` and record the result.

    The manifest is replaced with the current digests so the next call
    reports only what changed in between.
    """
    manifest_path = sync_dir / MANIFEST_FILENAME
    change_list, digests = build_change_list(
        root,
        client_id=client_id,
        codebase_name=codebase_name,
        previous=load_manifest(manifest_path),
        timestamp=timestamp,
    )
    output = write_change_list(change_list, sync_dir)
    write_manifest(manifest_path, digests)
    return change_list, output


__all__ = [
    "MANIFEST_FILENAME",
    "ChangeList",
    "ChangeOp",
    "build_change_list",
    "content_digests",
    "diff_file_lists",
    "is_hidden",
    "iter_codebase_files",
    "load_manifest",
    "sync_codebase",
    "write_change_list",
    "write_manifest",
]
