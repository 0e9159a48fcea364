"""Parity check of class/function declarations against Tree-sitter.

Tree-sitter's Python grammar serves as an independent reference: for files
our engine parses without errors, both must agree on the set of
``(kind, qualified_name, start_line)`` declarations.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tree_sitter import Language, Node, Parser
from tree_sitter_python import language as get_python_language

from artifacts.utils import _read_sources
from engine import extract_source
from rules.config import EngineConfig, load_config

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_PARSER: Parser | None = None

_DEFINITION_KINDS = {"class_definition": "class", "function_definition": "function"}


def _get_parser() -> Parser:
    """Initialize and return the Tree-sitter parser with Python language."""
    global _PARSER
    if _PARSER is None:
        lang = Language(get_python_language())
        _PARSER = Parser(lang)

    return _PARSER


@dataclass(frozen=True, order=True)
class Declaration:
    kind: str
    qualified_name: str
    start_line: int

    def __str__(self) -> str:
        return f"{self.kind} {self.qualified_name} @L{self.start_line}"


@dataclass(frozen=True)
class ParityResult:
    path: str
    ok: bool
    missing: tuple[str, ...] = field(default_factory=tuple)
    extra: tuple[str, ...] = field(default_factory=tuple)


def _collect(node: Node, scope: list[str], found: list[Declaration]) -> None:
    kind = _DEFINITION_KINDS.get(node.type)
    if kind is not None:
        name_node = node.child_by_field_name("name")
        if name_node is not None and name_node.text:
            name = name_node.text.decode("utf8")
            anchor = node
            if node.parent is not None and node.parent.type == "decorated_definition":
                anchor = node.parent
            found.append(
                Declaration(kind, ".".join([*scope, name]), anchor.start_point[0] + 1)
            )
            for child in node.children:
                _collect(child, [*scope, name], found)
            return

    for child in node.children:
        _collect(child, scope, found)


def treesitter_declarations(source_bytes: bytes, module_name: str) -> list[Declaration]:
    """Class and function declarations as seen by Tree-sitter."""
    tree = _get_parser().parse(source_bytes)
    found: list[Declaration] = []
    _collect(tree.root_node, [module_name], found)
    return found


def check_parity(
    path: str,
    content: bytes,
    *,
    module_name: str | None = None,
    config: EngineConfig | None = None,
) -> ParityResult | None:
    """Compare one file's declarations; None when our parse reported errors."""
    result = extract_source(path, content, module_name=module_name, config=config)
    if result.graph is None or result.error_count:
        logger.debug("%s: skipped parity, %d errors", path, result.error_count)
        return None

    ours = Counter(
        Declaration(
            "class" if symbol.kind == "class" else "function",
            symbol.qualified_name,
            symbol.span.start_line,
        )
        for symbol in result.graph.symbols
        if symbol.kind in ("class", "function", "method")
    )
    theirs = Counter(treesitter_declarations(content, result.graph.root.qualified_name))

    missing = sorted((theirs - ours).elements())
    extra = sorted((ours - theirs).elements())
    return ParityResult(
        path=path,
        ok=not missing and not extra,
        missing=tuple(str(item) for item in missing),
        extra=tuple(str(item) for item in extra),
    )


def verify_parity(*, root: Path) -> list[ParityResult]:
    """Run the parity check over every scanned file of a repository."""
    config = load_config(root)
    sources = _read_sources(
        root,
        root / config.output_dir,
        include_patterns=config.include,
        exclude_patterns=config.exclude,
        nested_gitignore=config.nested_gitignore,
    )
    results = []
    for path, content in sources:
        parity = check_parity(path, content, config=config.engine)
        if parity is not None:
            results.append(parity)
    return results


__all__ = [
    "Declaration",
    "ParityResult",
    "check_parity",
    "treesitter_declarations",
    "verify_parity",
]
