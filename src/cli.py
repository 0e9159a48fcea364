"""Command-line interface for symmap-core."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from artifacts.write import generate_all_artifacts
from contract.validation import validate_artifacts
from rules.config import ConfigError, load_config
from scan.changes import sync_codebase
from verify.parity import verify_parity
from verify.verify import verify_determinism, verify_idempotence

logger = logging.getLogger(__name__)

DEFAULT_SYNC_DIR = ".symmap_sync"


def _add_common_paths(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Repository root (default: .)",
    )


def _add_artifacts_dir(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--artifacts-dir",
        default=None,
        help="Artifacts directory (default: config output dir)",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="symmap")
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate", help="Extract symbol graphs and write artifacts"
    )
    _add_common_paths(generate_parser)
    generate_parser.add_argument(
        "--out-dir",
        default=None,
        help="Output directory for generated artifacts (default: config output dir)",
    )

    validate_parser = subparsers.add_parser("validate", help="Validate artifacts")
    _add_common_paths(validate_parser)
    _add_artifacts_dir(validate_parser)
    validate_parser.add_argument(
        "--strict-schema-version",
        action="store_true",
        help="Treat records without schema_version as errors",
    )

    verify_parser = subparsers.add_parser(
        "verify", help="Verify determinism of artifacts and graphs"
    )
    _add_common_paths(verify_parser)
    _add_artifacts_dir(verify_parser)

    changes_parser = subparsers.add_parser(
        "changes", help="Write a change list for the codebase"
    )
    _add_common_paths(changes_parser)
    changes_parser.add_argument("--client-id", required=True, help="Client id")
    changes_parser.add_argument(
        "--codebase-name",
        default=None,
        help="Codebase name (default: name of the root directory)",
    )
    changes_parser.add_argument(
        "--sync-dir",
        default=None,
        help=f"Directory for change lists and the manifest (default: {DEFAULT_SYNC_DIR})",
    )

    parity_parser = subparsers.add_parser(
        "parity", help="Compare declarations against Tree-sitter"
    )
    _add_common_paths(parity_parser)

    return parser


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(level=logging.WARNING, format="%(message)s")
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


def _resolve_output_dir(out_dir: str | None) -> Path | None:
    if out_dir is None:
        return None
    return Path(out_dir).expanduser().resolve()


def _resolve_artifacts_dir(root: Path, artifacts_dir: str | None) -> Path:
    if artifacts_dir is None:
        config = load_config(root)
        return (root / config.output_dir).resolve()
    return Path(artifacts_dir).expanduser().resolve()


def _handle_generate(root: Path, out_dir: str | None) -> int:
    counts = generate_all_artifacts(root=root, out_dir=_resolve_output_dir(out_dir))
    logger.info(
        "%s files, %s symbols, %s edges, %s diagnostics",
        counts["file_count"],
        counts["symbol_count"],
        counts["edge_count"],
        counts["diagnostic_count"],
    )
    return 0


def _handle_validate(
    root: Path, artifacts_dir: str | None, *, strict_schema_version: bool
) -> int:
    resolved_artifacts_dir = _resolve_artifacts_dir(root, artifacts_dir)
    result = validate_artifacts(
        resolved_artifacts_dir, strict_schema_version=strict_schema_version
    )
    for warning in result.warnings:
        logger.warning("%s: %s", warning.location(), warning.message)
    if result.errors:
        for error in result.errors:
            sys.stderr.write(f"{error.location()}: {error.message}\n")
        return 1
    return 0


def _handle_verify(root: Path, artifacts_dir: str | None) -> int:
    resolved_artifacts_dir = _resolve_artifacts_dir(root, artifacts_dir)
    try:
        result = verify_determinism(root=root, artifacts_dir=resolved_artifacts_dir)
    except (FileNotFoundError, NotADirectoryError) as exc:
        sys.stderr.write(f"artifacts-dir: {resolved_artifacts_dir}\n")
        sys.stderr.write(f"error: {exc}\n")
        return 2
    idempotence = verify_idempotence(root=root)

    for label, paths in (
        ("missing", result.missing),
        ("extra", result.extra),
        ("mismatches", result.mismatches),
        ("unstable", idempotence.unstable),
        ("invariant", idempotence.violations),
    ):
        for path in paths:
            sys.stderr.write(f"{label}: {path}\n")
    return 0 if result.ok and idempotence.ok else 1


def _handle_changes(
    root: Path,
    *,
    client_id: str,
    codebase_name: str | None,
    sync_dir: str | None,
) -> int:
    if not root.is_dir():
        sys.stderr.write(f"error: not a directory: {root}\n")
        return 2
    resolved_sync_dir = (
        root / DEFAULT_SYNC_DIR
        if sync_dir is None
        else Path(sync_dir).expanduser().resolve()
    )
    change_list, output = sync_codebase(
        root,
        resolved_sync_dir,
        client_id=client_id,
        codebase_name=codebase_name or root.name,
    )
    logger.info("%d changed files", len(change_list.file_list))
    sys.stdout.write(f"{output}\n")
    return 0


def _handle_parity(root: Path) -> int:
    results = verify_parity(root=root)
    failed = [result for result in results if not result.ok]
    for result in failed:
        for item in result.missing:
            sys.stderr.write(f"{result.path}: missing {item}\n")
        for item in result.extra:
            sys.stderr.write(f"{result.path}: extra {item}\n")
    logger.info("parity checked %d files, %d differ", len(results), len(failed))
    return 1 if failed else 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(verbose=args.verbose)

    root = Path(args.root).expanduser().resolve()

    try:
        if args.command == "generate":
            return _handle_generate(root, args.out_dir)

        if args.command == "validate":
            return _handle_validate(
                root,
                args.artifacts_dir,
                strict_schema_version=args.strict_schema_version,
            )

        if args.command == "verify":
            return _handle_verify(root, args.artifacts_dir)

        if args.command == "changes":
            return _handle_changes(
                root,
                client_id=args.client_id,
                codebase_name=args.codebase_name,
                sync_dir=args.sync_dir,
            )

        if args.command == "parity":
            return _handle_parity(root)
    except ConfigError as exc:
        sys.stderr.write(f"config error: {exc}\n")
        return 2

    raise AssertionError


if __name__ == "__main__":
    raise SystemExit(main())
