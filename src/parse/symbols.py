"""Structural extraction: walk the CST and emit symbols and edges.

The walk keeps a scope stack (module, class, function). Each declaring
construct yields exactly one immutable SymbolRecord whose qualified name is
its parent's qualified name plus its own name. Names are never deduplicated;
ids stay unique because they include the declaration's start position.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from artifacts.models.artifacts.symbols import SymbolFlags, SymbolRecord
from contract.artifacts import build_symbol_id
from graph.builder import GraphBuilder
from parse import diagnostics as codes
from parse.cst import STATEMENT_KINDS, NodeKind
from parse.imports import absolute_module, import_bindings
from parse.tokens import string_body
from rules.config import EngineConfig

if TYPE_CHECKING:
    from collections.abc import Iterable

    from artifacts.models.artifacts.symbols import SymbolKind
    from graph.builder import SymbolGraph
    from parse.cst import SyntaxNode
    from parse.diagnostics import DiagnosticCollector
    from parse.source import SourceText
    from parse.tokens import Token

logger = logging.getLogger(__name__)

ScopeKind = Literal["module", "class", "function"]

_WHITESPACE_RUN = re.compile(r"\s+")
_CLAUSE_KINDS = frozenset(
    {
        NodeKind.ELIF_CLAUSE,
        NodeKind.ELSE_CLAUSE,
        NodeKind.EXCEPT_CLAUSE,
        NodeKind.FINALLY_CLAUSE,
        NodeKind.CASE_CLAUSE,
    }
)
_NESTED_SCOPES = frozenset({NodeKind.FUNCTION_DEF, NodeKind.CLASS_DEF, NodeKind.LAMBDA})


@dataclass
class _Scope:
    symbol: SymbolRecord
    kind: ScopeKind
    bindings: dict[str, SymbolRecord | None] = field(default_factory=dict)


def _dotted_parts(node: SyntaxNode) -> list[str] | None:
    """``a.b.c`` as ``["a", "b", "c"]``; None for anything else."""
    if node.kind is NodeKind.NAME:
        return [node.attrs["name"]]
    if node.kind is NodeKind.ATTRIBUTE:
        head = _dotted_parts(node.children[0])
        return None if head is None else [*head, node.attrs["name"]]
    return None


def _contains_yield(node: SyntaxNode) -> bool:
    """True if ``node`` holds a yield outside nested functions, classes and lambdas."""
    stack = list(node.children)
    while stack:
        current = stack.pop()
        if current.kind is NodeKind.YIELD:
            return True
        if current.kind in _NESTED_SCOPES:
            continue
        stack.extend(current.children)
    return False


def _bound_names(target: SyntaxNode) -> list[SyntaxNode]:
    """Bare-name nodes bound by an assignment target, in source order."""
    if target.kind is NodeKind.NAME:
        return [target]
    if target.kind in (NodeKind.TUPLE, NodeKind.LIST, NodeKind.PAREN, NodeKind.STARRED):
        names: list[SyntaxNode] = []
        for child in target.children:
            names.extend(_bound_names(child))
        return names
    return []


def _path_stem(path: str) -> str:
    stem = path.replace("\\", "/").rsplit("/", 1)[-1]
    return stem.removesuffix(".py") or stem


class StructuralExtractor:
    """Turns one Module CST into a SymbolGraph."""

    def __init__(
        self,
        source: SourceText,
        diagnostics: DiagnosticCollector,
        *,
        module_name: str = "",
        is_package: bool = False,
        config: EngineConfig | None = None,
        comments: Iterable[Token] = (),
    ) -> None:
        self.source = source
        self.diagnostics = diagnostics
        self.module_name = module_name
        self.is_package = is_package
        self.config = config if config is not None else EngineConfig()
        self._builder = GraphBuilder(source.path)
        self._scopes: list[_Scope] = []
        self._members: dict[str, dict[str, SymbolRecord | None]] = {}
        self._comment_lines = self._index_comments(comments)

    # -- helpers -----------------------------------------------------------

    def _text(self, node: SyntaxNode) -> str:
        return _WHITESPACE_RUN.sub(" ", node.text(self.source).strip())

    def _index_comments(self, comments: Iterable[Token]) -> dict[int, str]:
        """Map line number to text for comments that occupy a whole line."""
        lines: dict[int, str] = {}
        for comment in comments:
            line, _ = self.source.position(comment.start)
            line_start = self.source.line_starts[line - 1]
            if self.source.slice(line_start, comment.start).strip():
                continue
            lines[line] = comment.text[1:].strip()
        return lines

    def _leading_comment(self, start: int) -> str | None:
        if not self.config.attach_comments:
            return None
        line, _ = self.source.position(start)
        block: list[str] = []
        line -= 1
        while line in self._comment_lines:
            block.append(self._comment_lines[line])
            line -= 1
        if not block:
            return None
        return "\n".join(reversed(block))

    def _docstring(self, body: SyntaxNode) -> str | None:
        if not body.children:
            return None
        first = body.children[0]
        if first.kind is not NodeKind.EXPRESSION_STMT:
            return None
        literal = first.children[0]
        if (
            literal.kind is not NodeKind.LITERAL
            or literal.attrs.get("literal") != "string"
            or literal.attrs.get("formatted")
        ):
            return None
        return "".join(
            string_body(self.source.slice(start, end))
            for start, end in literal.attrs["pieces"]
        )

    @property
    def _scope(self) -> _Scope:
        return self._scopes[-1]

    def _lookup(self, name: str) -> SymbolRecord | None:
        for depth, scope in enumerate(reversed(self._scopes)):
            if depth > 0 and scope.kind == "class":
                continue
            if name in scope.bindings:
                return scope.bindings[name]
        return None

    def _resolve_local(self, node: SyntaxNode) -> SymbolRecord | None:
        """Resolve a dotted reference to a class or function defined earlier."""
        parts = _dotted_parts(node)
        if not parts:
            return None
        target = self._lookup(parts[0])
        for part in parts[1:]:
            if target is None or target.kind != "class":
                return None
            target = self._members.get(target.symbol_id, {}).get(part)
        return target

    def _bind(self, name: str, symbol: SymbolRecord | None) -> None:
        self._scope.bindings[name] = symbol

    def _new_symbol(
        self,
        kind: SymbolKind,
        name: str,
        start: int,
        end: int,
        **fields: object,
    ) -> SymbolRecord:
        parent = self._scope.symbol
        qualified_name = f"{parent.qualified_name}.{name}"
        span = self.source.span(start, end)
        symbol = SymbolRecord(
            symbol_id=build_symbol_id(
                self.source.path, qualified_name, span.start_line, span.start_col
            ),
            path=self.source.path,
            kind=kind,
            name=name,
            qualified_name=qualified_name,
            span=span,
            parent_id=parent.symbol_id,
            **fields,
        )
        return self._builder.add_symbol(symbol)

    def _reference_edge(
        self,
        kind: Literal["inherits", "decorates"],
        source: SymbolRecord,
        expression: SyntaxNode,
        *,
        role: Literal["decorator", "metaclass"] | None = None,
        target_name: str | None = None,
    ) -> None:
        local = self._resolve_local(expression)
        self._builder.add_edge(
            kind,
            source.symbol_id,
            span=self.source.span(expression.start, expression.end),
            target_name=target_name or self._text(expression),
            local_target_id=local.symbol_id if local else None,
            role=role,
        )

    def _check_redefinition(self, name: str, node: SyntaxNode, decorated: bool) -> None:
        previous = self._scope.bindings.get(name)
        if previous is None or decorated or previous.decorators:
            return
        self.diagnostics.info(
            codes.REDEFINITION,
            f"redefinition of '{name}' from line {previous.span.start_line}",
            node.attrs["name_start"],
            node.attrs["name_end"],
        )

    # -- walk --------------------------------------------------------------

    def extract(self, module: SyntaxNode) -> SymbolGraph:
        qualified_name = self.module_name or _path_stem(self.source.path)
        span = self.source.span(module.start, module.end)
        root = SymbolRecord(
            symbol_id=build_symbol_id(
                self.source.path, qualified_name, span.start_line, span.start_col
            ),
            path=self.source.path,
            kind="module",
            name=qualified_name.rsplit(".", 1)[-1],
            qualified_name=qualified_name,
            span=span,
            docstring=self._docstring(module),
        )
        self._builder.add_symbol(root)
        self._scopes.append(_Scope(root, "module"))
        statements = module.children
        if root.docstring is not None:
            statements = statements[1:]
        self._walk(statements)
        self._scopes.pop()
        graph = self._builder.build()
        logger.debug(
            "%s: extracted %d symbols, %d edges",
            self.source.path,
            len(graph.symbols),
            len(graph.edges),
        )
        return graph

    def _walk(self, statements: Iterable[SyntaxNode]) -> None:
        for statement in statements:
            self._visit(statement)

    def _walk_body(self, body: SyntaxNode, docstring: str | None) -> None:
        statements = body.children
        if docstring is not None:
            statements = statements[1:]
        self._walk(statements)

    def _visit(self, node: SyntaxNode) -> None:
        kind = node.kind
        if kind is NodeKind.FUNCTION_DEF:
            self._visit_function(node)
        elif kind is NodeKind.CLASS_DEF:
            self._visit_class(node)
        elif kind in (NodeKind.IMPORT, NodeKind.IMPORT_FROM):
            self._visit_import(node)
        elif kind in (
            NodeKind.ASSIGNMENT,
            NodeKind.ANNOTATED_ASSIGNMENT,
            NodeKind.TYPE_ALIAS,
        ):
            self._check_yield(node)
            self._visit_assignment(node)
        elif kind is NodeKind.BLOCK:
            self._walk(node.children)
        elif kind is NodeKind.ERROR or kind in _CLAUSE_KINDS or kind in STATEMENT_KINDS:
            self._check_yield(node)
            for child in node.children:
                if (
                    child.kind is NodeKind.BLOCK
                    or child.kind in _CLAUSE_KINDS
                    or child.kind in STATEMENT_KINDS
                ):
                    self._visit(child)

    def _check_yield(self, node: SyntaxNode) -> None:
        if self._scope.kind == "function":
            return
        stack = [node]
        while stack:
            current = stack.pop()
            if current.kind is NodeKind.YIELD:
                self.diagnostics.error(
                    codes.YIELD_OUTSIDE_FUNCTION,
                    "'yield' outside function",
                    current.start,
                    current.end,
                )
                continue
            if current.kind in _NESTED_SCOPES or current.kind is NodeKind.BLOCK:
                continue
            if current.kind in _CLAUSE_KINDS and current is not node:
                continue
            stack.extend(current.children)

    def _decorator_references(
        self, node: SyntaxNode
    ) -> list[tuple[SyntaxNode, SyntaxNode, str]]:
        """Return ``(expression, reference, reference_text)`` per decorator.

        The reference of ``@cache(maxsize=1)`` is the callee ``cache``.
        """
        references = []
        for decorator in node.children_of(NodeKind.DECORATOR):
            expression = decorator.children[0]
            reference = expression
            while reference.kind is NodeKind.CALL:
                reference = reference.children[0]
            references.append((expression, reference, self._text(reference)))
        return references

    def _visit_function(self, node: SyntaxNode) -> None:
        in_class = self._scope.kind == "class"
        decorators = self._decorator_references(node)
        names = {text for _, _, text in decorators}
        config = self.config
        is_static = in_class and bool(names & set(config.staticmethod_decorators))
        is_classmethod = in_class and bool(names & set(config.classmethod_decorators))

        body = node.attrs["body"]
        docstring = self._docstring(body)
        parameters = node.attrs["parameters"]
        signature = self._text(parameters)
        if node.attrs["returns"] is not None:
            signature += f" -> {self._text(node.attrs['returns'])}"

        name = node.attrs["name"]
        self._check_redefinition(name, node, bool(decorators))
        symbol = self._new_symbol(
            "method" if in_class else "function",
            name,
            node.start,
            node.end,
            flags=SymbolFlags(
                is_async=node.attrs["is_async"],
                is_generator=_contains_yield(body),
                is_static=is_static,
                is_classmethod=is_classmethod,
                is_abstract=bool(names & set(config.abstract_decorators)),
            ),
            decorators=tuple(self._text(expression) for expression, _, _ in decorators),
            docstring=docstring,
            comment=self._leading_comment(node.start),
            signature=signature,
        )
        for _, reference, text in decorators:
            if in_class and (
                text in config.staticmethod_decorators
                or text in config.classmethod_decorators
            ):
                continue
            self._reference_edge(
                "decorates", symbol, reference, role="decorator", target_name=text
            )
        self._bind(name, symbol)

        self._scopes.append(_Scope(symbol, "function"))
        self._walk_body(body, docstring)
        self._scopes.pop()

    def _visit_class(self, node: SyntaxNode) -> None:
        decorators = self._decorator_references(node)
        bases: list[SyntaxNode] = []
        metaclass: SyntaxNode | None = None
        arguments = node.attrs["arguments"]
        for argument in arguments.children if arguments is not None else ():
            if argument.kind is NodeKind.KEYWORD_ARG:
                if argument.attrs["name"] == "metaclass":
                    metaclass = argument.children[0]
                continue
            bases.append(argument)

        base_texts = tuple(self._text(base) for base in bases)
        metaclass_text = self._text(metaclass) if metaclass is not None else None
        abstract = set(self.config.abstract_bases)
        is_abstract = bool(abstract & set(base_texts)) or metaclass_text in abstract

        body = node.attrs["body"]
        docstring = self._docstring(body)
        name = node.attrs["name"]
        self._check_redefinition(name, node, bool(decorators))
        symbol = self._new_symbol(
            "class",
            name,
            node.start,
            node.end,
            flags=SymbolFlags(is_abstract=is_abstract),
            decorators=tuple(self._text(expression) for expression, _, _ in decorators),
            bases=base_texts,
            metaclass=metaclass_text,
            docstring=docstring,
            comment=self._leading_comment(node.start),
        )
        for base in bases:
            self._reference_edge("inherits", symbol, base)
        for _, reference, text in decorators:
            self._reference_edge(
                "decorates", symbol, reference, role="decorator", target_name=text
            )
        if metaclass is not None:
            self._reference_edge("decorates", symbol, metaclass, role="metaclass")
        self._bind(name, symbol)

        scope = _Scope(symbol, "class")
        self._members[symbol.symbol_id] = scope.bindings
        self._scopes.append(scope)
        self._walk_body(body, docstring)
        self._scopes.pop()

    def _visit_import(self, node: SyntaxNode) -> None:
        for binding in import_bindings(node):
            symbol = self._new_symbol(
                "import",
                binding.local_name,
                binding.start,
                binding.end,
                import_module=binding.module,
                import_name=binding.remote_name,
                import_level=binding.level,
                import_absolute=absolute_module(
                    binding, self.module_name, is_package=self.is_package
                ),
            )
            self._builder.add_edge(
                "imports",
                symbol.symbol_id,
                span=symbol.span,
                target_name=binding.target,
            )
            self._bind(binding.local_name, None)

    def _visit_assignment(self, node: SyntaxNode) -> None:
        in_function = self._scope.kind == "function"
        if node.kind is NodeKind.ANNOTATED_ASSIGNMENT:
            target = node.attrs["target"]
            if target.kind is NodeKind.NAME:
                self._variable(target, signature=self._text(node.attrs["annotation"]))
            return
        if in_function and not self.config.local_variables:
            return
        if node.kind is NodeKind.TYPE_ALIAS:
            symbol = self._new_symbol(
                "variable",
                node.attrs["name"],
                node.attrs["name_start"],
                node.attrs["name_end"],
            )
            self._bind(symbol.name, None)
            return
        for target in node.attrs["targets"]:
            for name in _bound_names(target):
                self._variable(name)

    def _variable(self, name: SyntaxNode, signature: str | None = None) -> None:
        symbol = self._new_symbol(
            "variable", name.attrs["name"], name.start, name.end, signature=signature
        )
        self._bind(symbol.name, None)


__all__ = ["StructuralExtractor"]
