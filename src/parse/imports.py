"""Import statement decoding for the structural extractor."""

from __future__ import annotations

from dataclasses import dataclass

from parse.cst import NodeKind, SyntaxNode


@dataclass(frozen=True)
class ImportBinding:
    """One local name bound by an import statement.

    ``module`` is the module path as written (``"a.b"``, ``"..pkg"``,
    ``"."``). ``remote_name`` is the imported attribute for from-imports and
    ``None`` for plain imports. ``target`` is the dotted name the binding
    refers to, used as the textual target of Imports edges.
    """

    local_name: str
    module: str
    remote_name: str | None
    level: int
    target: str
    start: int
    end: int


def import_bindings(node: SyntaxNode) -> list[ImportBinding]:
    """Decode an Import or ImportFrom node into its bindings, in source order.

    Examples:
        ``import a.b`` binds ``a`` (target ``a.b``);
        ``import a.b as c`` binds ``c``;
        ``from . import x as y`` binds ``y`` (target ``.x``);
        ``from m import *`` binds ``*`` (target ``m.*``).
    """
    bindings: list[ImportBinding] = []
    if node.kind is NodeKind.IMPORT:
        for alias in node.children_of(NodeKind.IMPORT_ALIAS):
            dotted = alias.attrs["name"]
            asname = alias.attrs.get("asname")
            bindings.append(
                ImportBinding(
                    local_name=asname or dotted.split(".")[0],
                    module=dotted,
                    remote_name=None,
                    level=0,
                    target=dotted,
                    start=alias.start,
                    end=alias.end,
                )
            )
        return bindings

    if node.kind is not NodeKind.IMPORT_FROM:
        msg = f"expected an import statement, got {node.kind.value}"
        raise ValueError(msg)

    level = node.attrs.get("level", 0)
    module = "." * level + (node.attrs.get("module") or "")
    for alias in node.children_of(NodeKind.IMPORT_ALIAS):
        remote = alias.attrs["name"]
        separator = "" if module.endswith(".") else "."
        bindings.append(
            ImportBinding(
                local_name=alias.attrs.get("asname") or remote,
                module=module,
                remote_name=remote,
                level=level,
                target=f"{module}{separator}{remote}",
                start=alias.start,
                end=alias.end,
            )
        )
    return bindings


def resolve_relative_import(
    importing_module: str,
    relative_module: str,
    level: int,
) -> str:
    """Resolve a relative import to an absolute module name.

    Args:
        importing_module: The module doing the import (e.g., "pkg.sub.mod")
        relative_module: The relative module name (e.g., "foo" from ".foo")
        level: Number of dots (1 for ".", 2 for "..", etc.)

    Returns:
        Absolute module name (e.g., "pkg.sub.foo")

    Examples:
        >>> resolve_relative_import("pkg.sub.mod", "foo", 1)
        'pkg.sub.foo'
        >>> resolve_relative_import("pkg.sub.mod", "", 1)
        'pkg.sub'
        >>> resolve_relative_import("pkg.sub.mod", "bar", 2)
        'pkg.bar'
    """
    parts = importing_module.split(".")

    if level > len(parts):
        return relative_module or importing_module

    base_parts = parts[: len(parts) - level]

    if relative_module:
        return ".".join([*base_parts, relative_module])
    if base_parts:
        return ".".join(base_parts)
    return importing_module


def absolute_module(
    binding: ImportBinding, importing_module: str, *, is_package: bool = False
) -> str | None:
    """Return the absolute module a binding imports from.

    ``None`` when the binding is relative and the importing module is unknown.
    A package's ``__init__`` resolves relative imports against the package
    itself.
    """
    if binding.level == 0:
        return binding.module
    if not importing_module:
        return None
    base = f"{importing_module}.__init__" if is_package else importing_module
    return resolve_relative_import(base, binding.module.lstrip("."), binding.level)


__all__ = [
    "ImportBinding",
    "absolute_module",
    "import_bindings",
    "resolve_relative_import",
]
