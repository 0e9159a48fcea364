"""Concrete syntax tree produced by the parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

    from parse.source import SourceText


class NodeKind(str, Enum):
    """Closed set of syntax node kinds."""

    MODULE = "Module"
    BLOCK = "Block"
    ERROR = "Error"

    # definitions
    CLASS_DEF = "ClassDef"
    FUNCTION_DEF = "FunctionDef"
    DECORATOR = "Decorator"
    TYPE_PARAMS = "TypeParams"
    PARAMETERS = "Parameters"
    PARAMETER = "Parameter"
    ARGUMENTS = "Arguments"
    KEYWORD_ARG = "KeywordArg"

    # simple statements
    IMPORT = "Import"
    IMPORT_FROM = "ImportFrom"
    IMPORT_ALIAS = "ImportAlias"
    ASSIGNMENT = "Assignment"
    ANNOTATED_ASSIGNMENT = "AnnotatedAssignment"
    AUGMENTED_ASSIGNMENT = "AugmentedAssignment"
    TYPE_ALIAS = "TypeAlias"
    EXPRESSION_STMT = "ExpressionStmt"
    RETURN = "Return"
    RAISE = "Raise"
    PASS = "Pass"
    BREAK = "Break"
    CONTINUE = "Continue"
    GLOBAL = "Global"
    NONLOCAL = "Nonlocal"
    DELETE = "Delete"
    ASSERT = "Assert"

    # compound statements
    IF_BLOCK = "IfBlock"
    ELIF_CLAUSE = "ElifClause"
    ELSE_CLAUSE = "ElseClause"
    WHILE_BLOCK = "WhileBlock"
    FOR_BLOCK = "ForBlock"
    TRY_BLOCK = "TryBlock"
    EXCEPT_CLAUSE = "ExceptClause"
    FINALLY_CLAUSE = "FinallyClause"
    WITH_BLOCK = "WithBlock"
    WITH_ITEM = "WithItem"
    MATCH_BLOCK = "MatchBlock"
    CASE_CLAUSE = "CaseClause"

    # expressions
    NAME = "Name"
    LITERAL = "Literal"
    ATTRIBUTE = "Attribute"
    CALL = "Call"
    SUBSCRIPT = "Subscript"
    SLICE = "Slice"
    STARRED = "Starred"
    UNARY = "Unary"
    BINARY = "Binary"
    COMPARE = "Compare"
    BOOL_OP = "BoolOp"
    TERNARY = "Ternary"
    LAMBDA = "Lambda"
    NAMED_EXPR = "NamedExpr"
    AWAIT = "Await"
    YIELD = "Yield"
    TUPLE = "Tuple"
    LIST = "List"
    SET = "Set"
    DICT = "Dict"
    DICT_ITEM = "DictItem"
    COMPREHENSION = "Comprehension"
    COMP_FOR = "CompFor"
    PAREN = "Paren"


STATEMENT_KINDS = frozenset(
    {
        NodeKind.CLASS_DEF,
        NodeKind.FUNCTION_DEF,
        NodeKind.IMPORT,
        NodeKind.IMPORT_FROM,
        NodeKind.ASSIGNMENT,
        NodeKind.ANNOTATED_ASSIGNMENT,
        NodeKind.AUGMENTED_ASSIGNMENT,
        NodeKind.TYPE_ALIAS,
        NodeKind.EXPRESSION_STMT,
        NodeKind.RETURN,
        NodeKind.RAISE,
        NodeKind.PASS,
        NodeKind.BREAK,
        NodeKind.CONTINUE,
        NodeKind.GLOBAL,
        NodeKind.NONLOCAL,
        NodeKind.DELETE,
        NodeKind.ASSERT,
        NodeKind.IF_BLOCK,
        NodeKind.WHILE_BLOCK,
        NodeKind.FOR_BLOCK,
        NodeKind.TRY_BLOCK,
        NodeKind.WITH_BLOCK,
        NodeKind.MATCH_BLOCK,
        NodeKind.ERROR,
    }
)


@dataclass
class SyntaxNode:
    """A node of the concrete syntax tree.

    ``attrs`` carries per-kind details, e.g. ``name`` for definitions,
    ``is_async`` for functions, ``op`` for operators, ``module``/``level``
    for imports.

    A node's span contains its children's spans. Blocks start at their
    indentation (or the header's ``:`` for a same-line body), so they are
    strictly larger than their statements. A wrapper with no syntax of its
    own, such as an ExpressionStmt around a lone call, shares its child's
    span.
    """

    kind: NodeKind
    start: int
    end: int
    children: list[SyntaxNode] = field(default_factory=list)
    attrs: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str | None:
        return self.attrs.get("name")

    def text(self, source: SourceText) -> str:
        return source.slice(self.start, self.end)

    def first(self, kind: NodeKind) -> SyntaxNode | None:
        return next((child for child in self.children if child.kind is kind), None)

    def children_of(self, kind: NodeKind) -> list[SyntaxNode]:
        return [child for child in self.children if child.kind is kind]

    def walk(self) -> Iterator[SyntaxNode]:
        """Pre-order traversal including this node."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def pretty(self, source: SourceText, indent: int = 0) -> str:
        """Render the subtree as an indented outline, one node per line."""
        label = self.kind.value
        if self.name:
            label += f" {self.name}"
        elif self.kind in (NodeKind.LITERAL, NodeKind.ERROR):
            snippet = self.text(source).splitlines()[0] if self.end > self.start else ""
            label += f" {snippet[:40]!r}"
        lines = [f"{'  ' * indent}{label} @{self.start}-{self.end}"]
        lines.extend(child.pretty(source, indent + 1) for child in self.children)
        return "\n".join(lines)


__all__ = ["STATEMENT_KINDS", "NodeKind", "SyntaxNode"]
