"""Error-tolerant recursive descent parser producing a concrete syntax tree.

The parser consumes the lexer's token stream lazily and always returns one
Module node spanning the whole input. A statement that fails to parse is
replaced by an ``Error`` node: tokens are skipped to the next statement
boundary, one diagnostic is recorded for the skipped span, and parsing
resumes. An indented block that follows a broken header is parsed into the
same ``Error`` node so declarations inside it are not lost.
"""

from __future__ import annotations

from collections import deque
from contextlib import contextmanager
from typing import TYPE_CHECKING

from parse import diagnostics as codes
from parse.cst import NodeKind, SyntaxNode
from parse.diagnostics import DiagnosticCollector
from parse.tokens import Token, TokenKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from parse.source import SourceText

_AUGMENTED_OPS = frozenset(
    {"+=", "-=", "*=", "/=", "//=", "%=", "@=", "&=", "|=", "^=", ">>=", "<<=", "**="}
)
_COMPARISON_OPS = frozenset({"==", "!=", "<", ">", "<=", ">="})
_BINARY_PRECEDENCE = {
    "|": 1,
    "^": 2,
    "&": 3,
    "<<": 4,
    ">>": 4,
    "+": 5,
    "-": 5,
    "*": 6,
    "/": 6,
    "//": 6,
    "%": 6,
    "@": 6,
}
_EXPRESSION_KEYWORDS = frozenset({"not", "lambda", "await", "None", "True", "False"})
_EXPRESSION_OPS = frozenset({"(", "[", "{", "-", "+", "~", "*", "**", "..."})
_ASSIGNABLE = frozenset({NodeKind.NAME, NodeKind.ATTRIBUTE, NodeKind.SUBSCRIPT})
# Combined depth of nested expressions and indented blocks.
_MAX_NESTING = 50

_SIMPLE_KEYWORDS = {
    "pass": NodeKind.PASS,
    "break": NodeKind.BREAK,
    "continue": NodeKind.CONTINUE,
}


class ParseError(Exception):
    """A statement does not match the grammar.

    Raised inside statement parsing and always caught by the statement loop.
    ``partial`` holds nodes already built for the failing statement (for
    example the body of a ``try`` whose ``except`` header is broken).
    """

    def __init__(self, message: str, token: Token) -> None:
        super().__init__(message)
        self.message = message
        self.token = token
        self.partial: list[SyntaxNode] = []


def _describe(token: Token) -> str:
    if token.kind is TokenKind.NEWLINE:
        return "end of line"
    if token.kind is TokenKind.END:
        return "end of input"
    if token.kind is TokenKind.INDENT:
        return "indent"
    if token.kind is TokenKind.DEDENT:
        return "dedent"
    return repr(token.text)


def _starts_expression(token: Token) -> bool:
    if token.kind in (
        TokenKind.NAME,
        TokenKind.NUMBER,
        TokenKind.STRING,
        TokenKind.ERROR,
    ):
        return True
    if token.kind is TokenKind.KEYWORD:
        return token.text in _EXPRESSION_KEYWORDS
    return token.kind is TokenKind.OP and token.text in _EXPRESSION_OPS


class _TokenStream:
    """Lookahead buffer over a lazy token iterator."""

    def __init__(self, tokens: Iterable[Token]) -> None:
        self._iterator = iter(tokens)
        self._buffer: deque[Token] = deque()
        self._end: Token | None = None
        self._last_offset = 0
        self.previous: Token | None = None

    def peek(self, ahead: int = 0) -> Token:
        while len(self._buffer) <= ahead and self._end is None:
            token = next(self._iterator, None)
            if token is None or token.kind is TokenKind.END:
                offset = token.start if token else self._last_offset
                self._end = Token(TokenKind.END, "", offset, offset)
                break
            self._last_offset = token.end
            self._buffer.append(token)
        if ahead < len(self._buffer):
            return self._buffer[ahead]
        assert self._end is not None
        return self._end

    def advance(self) -> Token:
        token = self.peek()
        if self._buffer:
            self._buffer.popleft()
            self.previous = token
        return token


class Parser:
    """Builds a CST from a token stream, recording syntax diagnostics."""

    def __init__(
        self,
        source: SourceText,
        tokens: Iterable[Token],
        *,
        diagnostics: DiagnosticCollector | None = None,
    ) -> None:
        self.source = source
        self.diagnostics = (
            diagnostics if diagnostics is not None else DiagnosticCollector(source)
        )
        self._stream = _TokenStream(tokens)
        self._depth = 0

    def parse_module(self) -> SyntaxNode:
        body = self._parse_statements(top_level=True)
        return SyntaxNode(NodeKind.MODULE, 0, len(self.source.text), body)

    # -- token helpers -----------------------------------------------------

    def _peek(self, ahead: int = 0) -> Token:
        return self._stream.peek(ahead)

    def _advance(self) -> Token:
        return self._stream.advance()

    @property
    def _prev_end(self) -> int:
        previous = self._stream.previous
        return previous.end if previous else 0

    def _accept_op(self, *values: str) -> Token | None:
        if self._peek().is_op(*values):
            return self._advance()
        return None

    def _accept_keyword(self, value: str) -> Token | None:
        if self._peek().is_keyword(value):
            return self._advance()
        return None

    @contextmanager
    def _nested(self, what: str) -> Iterator[None]:
        if self._depth >= _MAX_NESTING:
            msg = f"too many nested {what}"
            raise ParseError(msg, self._peek())
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    def _expect_op(self, value: str) -> Token:
        token = self._peek()
        if not token.is_op(value):
            msg = f"expected '{value}', found {_describe(token)}"
            raise ParseError(msg, token)
        return self._advance()

    def _expect_keyword(self, value: str) -> Token:
        token = self._peek()
        if not token.is_keyword(value):
            msg = f"expected '{value}', found {_describe(token)}"
            raise ParseError(msg, token)
        return self._advance()

    def _expect_name(self) -> Token:
        token = self._peek()
        if token.kind is not TokenKind.NAME:
            msg = f"expected a name, found {_describe(token)}"
            raise ParseError(msg, token)
        return self._advance()

    def _expect_newline(self) -> None:
        token = self._peek()
        if token.kind is TokenKind.NEWLINE:
            self._advance()
            return
        if token.kind is TokenKind.END:
            return
        msg = f"invalid syntax: unexpected {_describe(token)}"
        raise ParseError(msg, token)

    def _line_ends_with_colon(self) -> bool:
        """True when the current logical line ends with ``:``."""
        ahead = 0
        previous: Token | None = None
        while True:
            token = self._peek(ahead)
            if token.kind in (TokenKind.NEWLINE, TokenKind.END):
                return previous is not None and previous.is_op(":")
            previous = token
            ahead += 1

    # -- statements --------------------------------------------------------

    def _parse_statements(self, *, top_level: bool) -> list[SyntaxNode]:
        statements: list[SyntaxNode] = []
        while True:
            token = self._peek()
            if token.kind is TokenKind.END:
                break
            if token.kind is TokenKind.DEDENT:
                if not top_level:
                    break
                self._advance()
                continue
            if token.kind is TokenKind.NEWLINE:
                self._advance()
                continue
            if token.kind is TokenKind.INDENT:
                statements.append(self._parse_unexpected_indent())
                continue
            statements.extend(self._parse_statement())
        return statements

    def _parse_statement(self) -> list[SyntaxNode]:
        start = self._peek()
        try:
            compound = self._parse_compound_statement()
            if compound is not None:
                return [compound]
            return self._parse_simple_statements()
        except ParseError as exc:
            return [self._recover(start, exc)]

    def _recover(self, start: Token, exc: ParseError) -> SyntaxNode:
        previous = self._stream.previous
        skip_end = previous.end if previous and previous.end > start.start else start.end
        while True:
            token = self._peek()
            if token.kind in (TokenKind.END, TokenKind.DEDENT, TokenKind.INDENT):
                break
            self._advance()
            if token.kind is TokenKind.NEWLINE:
                break
            skip_end = max(skip_end, token.end)

        children = list(exc.partial)
        recovery = "skipped to the next statement boundary"
        if self._peek().kind is TokenKind.INDENT:
            children.append(self._parse_indented_block())
            recovery += " and parsed the indented block that follows"

        self.diagnostics.error(
            codes.SYNTAX_ERROR, exc.message, start.start, skip_end, recovery=recovery
        )
        end = max([skip_end, *(child.end for child in children)])
        return SyntaxNode(
            NodeKind.ERROR, start.start, end, children, {"message": exc.message}
        )

    def _parse_unexpected_indent(self) -> SyntaxNode:
        indent = self._peek()
        self.diagnostics.error(
            codes.UNEXPECTED_INDENT,
            "unexpected indent",
            indent.start,
            indent.end,
            recovery="parsed the indented block in the enclosing scope",
        )
        block = self._parse_indented_block()
        return SyntaxNode(
            NodeKind.ERROR,
            block.start,
            block.end,
            [block],
            {"message": "unexpected indent"},
        )

    def _parse_indented_block(self) -> SyntaxNode:
        indent = self._advance()
        try:
            with self._nested("indented blocks"):
                statements = self._parse_statements(top_level=False)
        except ParseError as exc:
            return self._skip_indented_block(indent, exc)
        if self._peek().kind is TokenKind.DEDENT:
            self._advance()
        if not statements:
            return SyntaxNode(NodeKind.BLOCK, indent.start, indent.end)
        return SyntaxNode(NodeKind.BLOCK, indent.start, statements[-1].end, statements)

    def _skip_indented_block(self, indent: Token, exc: ParseError) -> SyntaxNode:
        """Skip a block nested too deeply to parse, up to its closing dedent."""
        levels = 1
        while levels:
            token = self._peek()
            if token.kind is TokenKind.END:
                break
            self._advance()
            if token.kind is TokenKind.INDENT:
                levels += 1
            elif token.kind is TokenKind.DEDENT:
                levels -= 1
        end = max(indent.end, self._prev_end)
        self.diagnostics.error(
            codes.SYNTAX_ERROR,
            exc.message,
            indent.end,
            end,
            recovery="skipped the indented block",
        )
        error = SyntaxNode(NodeKind.ERROR, indent.end, end, attrs={"message": exc.message})
        return SyntaxNode(NodeKind.BLOCK, indent.start, end, [error])

    def _parse_suite(self) -> SyntaxNode:
        """Parse the body after a compound header's ``:``."""
        colon = self._stream.previous
        token = self._peek()
        if token.kind in (TokenKind.NEWLINE, TokenKind.END):
            if token.kind is TokenKind.NEWLINE:
                self._advance()
            if self._peek().kind is TokenKind.INDENT:
                return self._parse_indented_block()
            self.diagnostics.error(
                codes.EXPECTED_BLOCK,
                "expected an indented block",
                token.start,
                token.end,
                recovery="used an empty block",
            )
            return SyntaxNode(NodeKind.BLOCK, token.start, token.start)
        statements = self._parse_simple_statements()
        start = colon.start if colon is not None and colon.is_op(":") else token.start
        return SyntaxNode(NodeKind.BLOCK, start, statements[-1].end, statements)

    def _parse_simple_statements(self) -> list[SyntaxNode]:
        statements = [self._parse_small_statement()]
        while self._accept_op(";"):
            if self._peek().kind in (TokenKind.NEWLINE, TokenKind.END):
                break
            statements.append(self._parse_small_statement())
        self._expect_newline()
        return statements

    def _parse_compound_statement(self) -> SyntaxNode | None:
        token = self._peek()
        if token.is_op("@"):
            return self._parse_decorated()
        if token.kind is TokenKind.KEYWORD:
            if token.text == "def":
                return self._parse_function([])
            if token.text == "class":
                return self._parse_class([])
            if token.text == "if":
                return self._parse_if()
            if token.text == "while":
                return self._parse_while()
            if token.text == "for":
                return self._parse_for()
            if token.text == "try":
                return self._parse_try()
            if token.text == "with":
                return self._parse_with()
            if token.text == "async":
                following = self._peek(1)
                if following.is_keyword("def"):
                    return self._parse_function([])
                if following.is_keyword("for"):
                    return self._parse_for()
                if following.is_keyword("with"):
                    return self._parse_with()
                msg = f"expected 'def', 'for' or 'with' after 'async', found {_describe(following)}"
                raise ParseError(msg, following)
            if token.text in ("elif", "else", "except", "finally"):
                msg = f"invalid syntax: '{token.text}' without a matching block"
                raise ParseError(msg, token)
        if token.is_name("match", "case") and self._is_soft_keyword_header():
            if token.text == "match":
                return self._parse_match()
            return self._parse_case()
        return None

    def _is_soft_keyword_header(self) -> bool:
        following = self._peek(1)
        if following.kind in (TokenKind.NEWLINE, TokenKind.END):
            return False
        if following.is_op("=", ".", ":", ",", ";", ")", "]", "}") or (
            following.kind is TokenKind.OP and following.text in _AUGMENTED_OPS
        ):
            return False
        return self._line_ends_with_colon()

    def _parse_small_statement(self) -> SyntaxNode:
        token = self._peek()
        if token.kind is TokenKind.KEYWORD:
            text = token.text
            if text in _SIMPLE_KEYWORDS:
                self._advance()
                return SyntaxNode(_SIMPLE_KEYWORDS[text], token.start, token.end)
            if text == "return":
                return self._parse_return()
            if text == "raise":
                return self._parse_raise()
            if text in ("global", "nonlocal"):
                return self._parse_scope_declaration()
            if text == "del":
                self._advance()
                target = self._parse_star_expressions()
                return SyntaxNode(NodeKind.DELETE, token.start, target.end, [target])
            if text == "assert":
                return self._parse_assert()
            if text == "import":
                return self._parse_import()
            if text == "from":
                return self._parse_from_import()
        if (
            token.is_name("type")
            and self._peek(1).kind is TokenKind.NAME
            and self._peek(2).is_op("=", "[")
        ):
            return self._parse_type_alias()
        return self._parse_expression_statement()

    def _parse_return(self) -> SyntaxNode:
        token = self._advance()
        children = []
        if _starts_expression(self._peek()):
            children.append(self._parse_star_expressions())
        return SyntaxNode(NodeKind.RETURN, token.start, self._prev_end, children)

    def _parse_raise(self) -> SyntaxNode:
        token = self._advance()
        children = []
        if _starts_expression(self._peek()):
            children.append(self._parse_expression())
            if self._accept_keyword("from"):
                children.append(self._parse_expression())
        return SyntaxNode(NodeKind.RAISE, token.start, self._prev_end, children)

    def _parse_scope_declaration(self) -> SyntaxNode:
        token = self._advance()
        names = [self._expect_name().text]
        while self._accept_op(","):
            names.append(self._expect_name().text)
        kind = NodeKind.GLOBAL if token.text == "global" else NodeKind.NONLOCAL
        return SyntaxNode(kind, token.start, self._prev_end, attrs={"names": names})

    def _parse_assert(self) -> SyntaxNode:
        token = self._advance()
        children = [self._parse_expression()]
        if self._accept_op(","):
            children.append(self._parse_expression())
        return SyntaxNode(NodeKind.ASSERT, token.start, self._prev_end, children)

    def _parse_dotted_name(self) -> tuple[str, int, int]:
        first = self._expect_name()
        parts = [first.text]
        while self._peek().is_op(".") and self._peek(1).kind is TokenKind.NAME:
            self._advance()
            parts.append(self._advance().text)
        return ".".join(parts), first.start, self._prev_end

    def _parse_import(self) -> SyntaxNode:
        token = self._advance()
        aliases = []
        while True:
            dotted, start, end = self._parse_dotted_name()
            asname = None
            if self._accept_keyword("as"):
                as_token = self._expect_name()
                asname, end = as_token.text, as_token.end
            aliases.append(
                SyntaxNode(
                    NodeKind.IMPORT_ALIAS,
                    start,
                    end,
                    attrs={"name": dotted, "asname": asname},
                )
            )
            if not self._accept_op(","):
                break
        return SyntaxNode(NodeKind.IMPORT, token.start, aliases[-1].end, aliases)

    def _parse_from_import(self) -> SyntaxNode:
        token = self._advance()
        level = 0
        while self._peek().is_op(".", "..."):
            level += len(self._advance().text)
        module = None
        if self._peek().kind is TokenKind.NAME:
            module, _, _ = self._parse_dotted_name()
        if level == 0 and module is None:
            found = self._peek()
            msg = f"expected a module name, found {_describe(found)}"
            raise ParseError(msg, found)
        self._expect_keyword("import")

        aliases: list[SyntaxNode] = []
        star = self._accept_op("*")
        if star is not None:
            aliases.append(
                SyntaxNode(
                    NodeKind.IMPORT_ALIAS,
                    star.start,
                    star.end,
                    attrs={"name": "*", "asname": None},
                )
            )
        else:
            parenthesized = self._accept_op("(") is not None
            while True:
                name = self._expect_name()
                asname, end = None, name.end
                if self._accept_keyword("as"):
                    as_token = self._expect_name()
                    asname, end = as_token.text, as_token.end
                aliases.append(
                    SyntaxNode(
                        NodeKind.IMPORT_ALIAS,
                        name.start,
                        end,
                        attrs={"name": name.text, "asname": asname},
                    )
                )
                if not self._accept_op(","):
                    break
                if parenthesized and self._peek().is_op(")"):
                    break
            if parenthesized:
                self._expect_op(")")
        return SyntaxNode(
            NodeKind.IMPORT_FROM,
            token.start,
            self._prev_end,
            aliases,
            {"module": module, "level": level},
        )

    def _parse_type_alias(self) -> SyntaxNode:
        token = self._advance()
        name = self._advance()
        children = []
        if self._peek().is_op("["):
            children.append(self._parse_type_params())
        self._expect_op("=")
        children.append(self._parse_expression())
        return SyntaxNode(
            NodeKind.TYPE_ALIAS,
            token.start,
            self._prev_end,
            children,
            {"name": name.text, "name_start": name.start, "name_end": name.end},
        )

    def _parse_expression_statement(self) -> SyntaxNode:
        first = self._parse_star_expressions(allow_yield=True)
        token = self._peek()

        if token.is_op("="):
            parts = [first]
            while self._accept_op("="):
                parts.append(self._parse_star_expressions(allow_yield=True))
            value = parts[-1]
            for target in parts[:-1]:
                self._check_target(target, token)
            return SyntaxNode(
                NodeKind.ASSIGNMENT,
                first.start,
                value.end,
                parts,
                {"targets": parts[:-1], "value": value},
            )

        if token.is_op(":"):
            target = first.children[0] if first.kind is NodeKind.PAREN else first
            if target.kind not in _ASSIGNABLE:
                msg = f"invalid syntax: illegal target for annotation ({first.kind.value})"
                raise ParseError(msg, token)
            self._advance()
            annotation = self._parse_expression()
            children = [first, annotation]
            attrs = {"target": first, "annotation": annotation, "value": None}
            if self._accept_op("="):
                value = self._parse_star_expressions(allow_yield=True)
                children.append(value)
                attrs["value"] = value
            return SyntaxNode(
                NodeKind.ANNOTATED_ASSIGNMENT,
                first.start,
                self._prev_end,
                children,
                attrs,
            )

        if token.kind is TokenKind.OP and token.text in _AUGMENTED_OPS:
            self._check_target(first, token)
            self._advance()
            value = self._parse_star_expressions(allow_yield=True)
            return SyntaxNode(
                NodeKind.AUGMENTED_ASSIGNMENT,
                first.start,
                value.end,
                [first, value],
                {"op": token.text},
            )

        return SyntaxNode(NodeKind.EXPRESSION_STMT, first.start, first.end, [first])

    def _check_target(self, node: SyntaxNode, anchor: Token) -> None:
        if node.kind in _ASSIGNABLE or node.kind is NodeKind.ERROR:
            return
        if node.kind in (NodeKind.TUPLE, NodeKind.LIST, NodeKind.PAREN, NodeKind.STARRED):
            for child in node.children:
                self._check_target(child, anchor)
            return
        msg = f"invalid syntax: cannot assign to {node.kind.value}"
        raise ParseError(msg, anchor)

    # -- compound statements -----------------------------------------------

    def _parse_decorated(self) -> SyntaxNode:
        decorators = []
        while self._peek().is_op("@"):
            at = self._advance()
            expression = self._parse_named_expression()
            decorators.append(
                SyntaxNode(NodeKind.DECORATOR, at.start, expression.end, [expression])
            )
            self._expect_newline()
        token = self._peek()
        if token.is_keyword("def") or (
            token.is_keyword("async") and self._peek(1).is_keyword("def")
        ):
            return self._parse_function(decorators)
        if token.is_keyword("class"):
            return self._parse_class(decorators)
        msg = f"expected 'def' or 'class' after decorator, found {_describe(token)}"
        error = ParseError(msg, token)
        error.partial.extend(decorators)
        raise error

    def _parse_function(self, decorators: list[SyntaxNode]) -> SyntaxNode:
        start = decorators[0].start if decorators else self._peek().start
        is_async = self._accept_keyword("async") is not None
        self._expect_keyword("def")
        name = self._expect_name()
        children = list(decorators)
        if self._peek().is_op("["):
            children.append(self._parse_type_params())
        open_paren = self._expect_op("(")
        params = self._parse_parameter_list(closing=")", annotations=True)
        close_paren = self._expect_op(")")
        parameters = SyntaxNode(
            NodeKind.PARAMETERS, open_paren.start, close_paren.end, params
        )
        children.append(parameters)
        returns = None
        if self._accept_op("->"):
            returns = self._parse_expression()
            children.append(returns)
        colon = self._expect_op(":")
        body = self._parse_suite()
        children.append(body)
        return SyntaxNode(
            NodeKind.FUNCTION_DEF,
            start,
            max(body.end, colon.end),
            children,
            {
                "name": name.text,
                "name_start": name.start,
                "name_end": name.end,
                "is_async": is_async,
                "parameters": parameters,
                "returns": returns,
                "header_end": colon.end,
                "body": body,
            },
        )

    def _parse_parameter_list(self, *, closing: str, annotations: bool) -> list[SyntaxNode]:
        params: list[SyntaxNode] = []
        kind = "positional"
        while not self._peek().is_op(closing):
            token = self._peek()
            if token.is_op("/"):
                self._advance()
                for param in params:
                    param.attrs["param_kind"] = "positional_only"
            elif token.is_op("*"):
                star = self._advance()
                if self._peek().kind is TokenKind.NAME:
                    params.append(self._parse_parameter(star, "var_positional", annotations))
                kind = "keyword_only"
            elif token.is_op("**"):
                star = self._advance()
                params.append(self._parse_parameter(star, "var_keyword", annotations))
            else:
                params.append(self._parse_parameter(None, kind, annotations))
            if not self._peek().is_op(closing):
                self._expect_op(",")
        return params

    def _parse_parameter(
        self, prefix: Token | None, kind: str, annotations: bool
    ) -> SyntaxNode:
        name = self._expect_name()
        children: list[SyntaxNode] = []
        attrs: dict[str, object] = {
            "name": name.text,
            "param_kind": kind,
            "annotation": None,
            "default": None,
        }
        if annotations and self._accept_op(":"):
            annotation = (
                self._parse_star_or_named()
                if kind == "var_positional"
                else self._parse_expression()
            )
            children.append(annotation)
            attrs["annotation"] = annotation
        if self._accept_op("="):
            default = self._parse_expression()
            children.append(default)
            attrs["default"] = default
        start = prefix.start if prefix else name.start
        return SyntaxNode(NodeKind.PARAMETER, start, self._prev_end, children, attrs)

    def _parse_type_params(self) -> SyntaxNode:
        open_bracket = self._advance()
        depth = 1
        while depth:
            token = self._advance()
            if token.kind in (TokenKind.END, TokenKind.NEWLINE):
                msg = "unterminated type parameter list"
                raise ParseError(msg, token)
            if token.is_op("(", "[", "{"):
                depth += 1
            elif token.is_op(")", "]", "}"):
                depth -= 1
        return SyntaxNode(NodeKind.TYPE_PARAMS, open_bracket.start, self._prev_end)

    def _parse_class(self, decorators: list[SyntaxNode]) -> SyntaxNode:
        start = decorators[0].start if decorators else self._peek().start
        self._expect_keyword("class")
        name = self._expect_name()
        children = list(decorators)
        if self._peek().is_op("["):
            children.append(self._parse_type_params())
        arguments = None
        if self._peek().is_op("("):
            arguments = self._parse_arguments()
            children.append(arguments)
        colon = self._expect_op(":")
        body = self._parse_suite()
        children.append(body)
        return SyntaxNode(
            NodeKind.CLASS_DEF,
            start,
            max(body.end, colon.end),
            children,
            {
                "name": name.text,
                "name_start": name.start,
                "name_end": name.end,
                "arguments": arguments,
                "header_end": colon.end,
                "body": body,
            },
        )

    def _parse_clause(self, kind: NodeKind, header: list[SyntaxNode], start: int) -> SyntaxNode:
        colon = self._expect_op(":")
        body = self._parse_suite()
        return SyntaxNode(kind, start, max(body.end, colon.end), [*header, body])

    def _guard_clauses(self, children: list[SyntaxNode], exc: ParseError) -> ParseError:
        exc.partial[:0] = children
        return exc

    def _parse_if(self) -> SyntaxNode:
        token = self._advance()
        condition = self._parse_named_expression()
        colon = self._expect_op(":")
        body = self._parse_suite()
        children = [condition, body]
        end = max(body.end, colon.end)
        try:
            while self._peek().is_keyword("elif"):
                elif_token = self._advance()
                clause = self._parse_clause(
                    NodeKind.ELIF_CLAUSE, [self._parse_named_expression()], elif_token.start
                )
                children.append(clause)
                end = clause.end
            if self._peek().is_keyword("else"):
                else_token = self._advance()
                clause = self._parse_clause(NodeKind.ELSE_CLAUSE, [], else_token.start)
                children.append(clause)
                end = clause.end
        except ParseError as exc:
            raise self._guard_clauses(children, exc) from None
        return SyntaxNode(NodeKind.IF_BLOCK, token.start, end, children)

    def _parse_else_tail(self, children: list[SyntaxNode]) -> int | None:
        if not self._peek().is_keyword("else"):
            return None
        else_token = self._advance()
        try:
            clause = self._parse_clause(NodeKind.ELSE_CLAUSE, [], else_token.start)
        except ParseError as exc:
            raise self._guard_clauses(children, exc) from None
        children.append(clause)
        return clause.end

    def _parse_while(self) -> SyntaxNode:
        token = self._advance()
        condition = self._parse_named_expression()
        colon = self._expect_op(":")
        body = self._parse_suite()
        children = [condition, body]
        end = self._parse_else_tail(children) or max(body.end, colon.end)
        return SyntaxNode(NodeKind.WHILE_BLOCK, token.start, end, children)

    def _parse_for(self) -> SyntaxNode:
        start = self._peek().start
        is_async = self._accept_keyword("async") is not None
        self._expect_keyword("for")
        target = self._parse_target_list()
        self._expect_keyword("in")
        iterable = self._parse_star_expressions()
        colon = self._expect_op(":")
        body = self._parse_suite()
        children = [target, iterable, body]
        end = self._parse_else_tail(children) or max(body.end, colon.end)
        return SyntaxNode(
            NodeKind.FOR_BLOCK, start, end, children, {"is_async": is_async}
        )

    def _parse_try(self) -> SyntaxNode:
        token = self._advance()
        colon = self._expect_op(":")
        body = self._parse_suite()
        children = [body]
        end = max(body.end, colon.end)
        try:
            handlers = 0
            while self._peek().is_keyword("except"):
                except_token = self._advance()
                is_group = self._accept_op("*") is not None
                header: list[SyntaxNode] = []
                attrs: dict[str, object] = {"is_group": is_group, "name": None}
                if not self._peek().is_op(":"):
                    header.append(self._parse_expression())
                    if self._accept_keyword("as"):
                        attrs["name"] = self._expect_name().text
                clause = self._parse_clause(NodeKind.EXCEPT_CLAUSE, header, except_token.start)
                clause.attrs.update(attrs)
                children.append(clause)
                end = clause.end
                handlers += 1
            if handlers and self._peek().is_keyword("else"):
                else_token = self._advance()
                clause = self._parse_clause(NodeKind.ELSE_CLAUSE, [], else_token.start)
                children.append(clause)
                end = clause.end
            has_finally = False
            if self._peek().is_keyword("finally"):
                finally_token = self._advance()
                clause = self._parse_clause(NodeKind.FINALLY_CLAUSE, [], finally_token.start)
                children.append(clause)
                end = clause.end
                has_finally = True
            if not handlers and not has_finally:
                found = self._peek()
                msg = f"expected 'except' or 'finally' block, found {_describe(found)}"
                raise ParseError(msg, found)
        except ParseError as exc:
            raise self._guard_clauses(children, exc) from None
        return SyntaxNode(NodeKind.TRY_BLOCK, token.start, end, children)

    def _parse_with(self) -> SyntaxNode:
        start = self._peek().start
        is_async = self._accept_keyword("async") is not None
        self._expect_keyword("with")
        items: list[SyntaxNode] = []
        if self._peek().is_op("(") and self._parenthesized_with_items():
            self._advance()
            while not self._peek().is_op(")"):
                items.append(self._parse_with_item())
                if not self._peek().is_op(")"):
                    self._expect_op(",")
            self._advance()
        else:
            items.append(self._parse_with_item())
            while self._accept_op(","):
                items.append(self._parse_with_item())
        colon = self._expect_op(":")
        body = self._parse_suite()
        return SyntaxNode(
            NodeKind.WITH_BLOCK,
            start,
            max(body.end, colon.end),
            [*items, body],
            {"is_async": is_async},
        )

    def _parenthesized_with_items(self) -> bool:
        """True when the ``(`` after ``with`` closes right before the ``:``."""
        depth = 0
        ahead = 0
        while True:
            token = self._peek(ahead)
            if token.kind in (TokenKind.NEWLINE, TokenKind.END):
                return False
            if token.is_op("(", "[", "{"):
                depth += 1
            elif token.is_op(")", "]", "}"):
                depth -= 1
                if depth == 0:
                    return self._peek(ahead + 1).is_op(":")
            ahead += 1

    def _parse_with_item(self) -> SyntaxNode:
        context = self._parse_expression()
        children = [context]
        if self._accept_keyword("as"):
            children.append(self._parse_target())
        return SyntaxNode(NodeKind.WITH_ITEM, context.start, self._prev_end, children)

    def _parse_match(self) -> SyntaxNode:
        token = self._advance()
        subject = self._parse_star_expressions()
        colon = self._expect_op(":")
        body = self._parse_suite()
        return SyntaxNode(
            NodeKind.MATCH_BLOCK, token.start, max(body.end, colon.end), [subject, body]
        )

    def _parse_case(self) -> SyntaxNode:
        token = self._advance()
        depth = 0
        while True:
            current = self._peek()
            if current.kind in (TokenKind.NEWLINE, TokenKind.END):
                msg = "expected ':' after case pattern"
                raise ParseError(msg, current)
            if depth == 0 and current.is_op(":"):
                break
            if current.is_op("(", "[", "{"):
                depth += 1
            elif current.is_op(")", "]", "}"):
                depth -= 1
            self._advance()
        colon = self._advance()
        body = self._parse_suite()
        return SyntaxNode(
            NodeKind.CASE_CLAUSE,
            token.start,
            max(body.end, colon.end),
            [body],
            {"pattern_end": colon.start},
        )

    # -- expressions -------------------------------------------------------

    def _parse_star_expressions(self, *, allow_yield: bool = False) -> SyntaxNode:
        if allow_yield and self._peek().is_keyword("yield"):
            return self._parse_yield()
        first = self._parse_star_or_named()
        if not self._peek().is_op(","):
            return first
        items = [first]
        while self._accept_op(","):
            if not _starts_expression(self._peek()):
                break
            items.append(self._parse_star_or_named())
        return SyntaxNode(NodeKind.TUPLE, first.start, self._prev_end, items)

    def _parse_star_or_named(self) -> SyntaxNode:
        star = self._accept_op("*")
        if star is not None:
            operand = self._parse_binary(0)
            return SyntaxNode(NodeKind.STARRED, star.start, operand.end, [operand])
        return self._parse_named_expression()

    def _parse_named_expression(self) -> SyntaxNode:
        token = self._peek()
        if token.kind is TokenKind.NAME and self._peek(1).is_op(":="):
            self._advance()
            self._advance()
            value = self._parse_expression()
            target = SyntaxNode(
                NodeKind.NAME, token.start, token.end, attrs={"name": token.text}
            )
            return SyntaxNode(
                NodeKind.NAMED_EXPR, token.start, value.end, [target, value]
            )
        return self._parse_expression()

    def _parse_expression(self) -> SyntaxNode:
        if self._peek().is_keyword("lambda"):
            with self._nested("expressions"):
                return self._parse_lambda()
        node = self._parse_disjunction()
        if self._accept_keyword("if"):
            condition = self._parse_disjunction()
            self._expect_keyword("else")
            with self._nested("expressions"):
                other = self._parse_expression()
            return SyntaxNode(
                NodeKind.TERNARY, node.start, other.end, [node, condition, other]
            )
        return node

    def _parse_lambda(self) -> SyntaxNode:
        token = self._advance()
        params = self._parse_parameter_list(closing=":", annotations=False)
        self._expect_op(":")
        body = self._parse_expression()
        return SyntaxNode(
            NodeKind.LAMBDA, token.start, body.end, [*params, body], {"body": body}
        )

    def _parse_yield(self) -> SyntaxNode:
        token = self._advance()
        children = []
        is_from = self._accept_keyword("from") is not None
        if is_from:
            children.append(self._parse_expression())
        elif _starts_expression(self._peek()):
            children.append(self._parse_star_expressions())
        return SyntaxNode(
            NodeKind.YIELD, token.start, self._prev_end, children, {"is_from": is_from}
        )

    def _parse_disjunction(self) -> SyntaxNode:
        node = self._parse_conjunction()
        while self._accept_keyword("or"):
            right = self._parse_conjunction()
            node = SyntaxNode(
                NodeKind.BOOL_OP, node.start, right.end, [node, right], {"op": "or"}
            )
        return node

    def _parse_conjunction(self) -> SyntaxNode:
        node = self._parse_inversion()
        while self._accept_keyword("and"):
            right = self._parse_inversion()
            node = SyntaxNode(
                NodeKind.BOOL_OP, node.start, right.end, [node, right], {"op": "and"}
            )
        return node

    def _parse_inversion(self) -> SyntaxNode:
        token = self._accept_keyword("not")
        if token is not None:
            with self._nested("expressions"):
                operand = self._parse_inversion()
            return SyntaxNode(
                NodeKind.UNARY, token.start, operand.end, [operand], {"op": "not"}
            )
        return self._parse_comparison()

    def _comparison_operator(self) -> str | None:
        token = self._peek()
        if token.kind is TokenKind.OP and token.text in _COMPARISON_OPS:
            self._advance()
            return token.text
        if token.is_keyword("in"):
            self._advance()
            return "in"
        if token.is_keyword("not") and self._peek(1).is_keyword("in"):
            self._advance()
            self._advance()
            return "not in"
        if token.is_keyword("is"):
            self._advance()
            return "is not" if self._accept_keyword("not") else "is"
        return None

    def _parse_comparison(self) -> SyntaxNode:
        node = self._parse_binary(0)
        operands = [node]
        ops = []
        while (op := self._comparison_operator()) is not None:
            ops.append(op)
            operands.append(self._parse_binary(0))
        if not ops:
            return node
        return SyntaxNode(
            NodeKind.COMPARE, node.start, operands[-1].end, operands, {"ops": ops}
        )

    def _parse_binary(self, min_precedence: int) -> SyntaxNode:
        left = self._parse_unary()
        while True:
            token = self._peek()
            precedence = (
                _BINARY_PRECEDENCE.get(token.text) if token.kind is TokenKind.OP else None
            )
            if precedence is None or precedence < min_precedence:
                return left
            self._advance()
            right = self._parse_binary(precedence + 1)
            left = SyntaxNode(
                NodeKind.BINARY, left.start, right.end, [left, right], {"op": token.text}
            )

    def _parse_unary(self) -> SyntaxNode:
        with self._nested("expressions"):
            token = self._accept_op("-", "+", "~")
            if token is not None:
                operand = self._parse_unary()
                return SyntaxNode(
                    NodeKind.UNARY,
                    token.start,
                    operand.end,
                    [operand],
                    {"op": token.text},
                )
            return self._parse_power()

    def _parse_power(self) -> SyntaxNode:
        base = self._parse_await_primary()
        if self._accept_op("**"):
            exponent = self._parse_unary()
            return SyntaxNode(
                NodeKind.BINARY, base.start, exponent.end, [base, exponent], {"op": "**"}
            )
        return base

    def _parse_await_primary(self) -> SyntaxNode:
        token = self._accept_keyword("await")
        if token is not None:
            operand = self._parse_primary()
            return SyntaxNode(NodeKind.AWAIT, token.start, operand.end, [operand])
        return self._parse_primary()

    def _parse_primary(self) -> SyntaxNode:
        node = self._parse_atom()
        while True:
            token = self._peek()
            if token.is_op("."):
                self._advance()
                name = self._expect_name()
                node = SyntaxNode(
                    NodeKind.ATTRIBUTE, node.start, name.end, [node], {"name": name.text}
                )
            elif token.is_op("("):
                arguments = self._parse_arguments()
                node = SyntaxNode(
                    NodeKind.CALL, node.start, arguments.end, [node, arguments]
                )
            elif token.is_op("["):
                self._advance()
                slices = [self._parse_slice_item()]
                while self._accept_op(","):
                    if self._peek().is_op("]"):
                        break
                    slices.append(self._parse_slice_item())
                close = self._expect_op("]")
                node = SyntaxNode(
                    NodeKind.SUBSCRIPT, node.start, close.end, [node, *slices]
                )
            else:
                return node

    def _parse_slice_item(self) -> SyntaxNode:
        token = self._peek()
        if token.is_op("*"):
            return self._parse_star_or_named()
        lower = None
        if not token.is_op(":"):
            lower = self._parse_named_expression()
            if not self._peek().is_op(":"):
                return lower
        colon = self._advance()
        children = [lower] if lower else []
        if _starts_expression(self._peek()):
            children.append(self._parse_expression())
        if self._accept_op(":") and _starts_expression(self._peek()):
            children.append(self._parse_expression())
        start = lower.start if lower else colon.start
        return SyntaxNode(NodeKind.SLICE, start, self._prev_end, children)

    def _parse_arguments(self) -> SyntaxNode:
        open_paren = self._expect_op("(")
        args: list[SyntaxNode] = []
        while not self._peek().is_op(")"):
            args.append(self._parse_argument())
            if not self._peek().is_op(")"):
                self._expect_op(",")
        close = self._advance()
        return SyntaxNode(NodeKind.ARGUMENTS, open_paren.start, close.end, args)

    def _parse_argument(self) -> SyntaxNode:
        token = self._peek()
        if token.is_op("*"):
            self._advance()
            value = self._parse_expression()
            return SyntaxNode(NodeKind.STARRED, token.start, value.end, [value])
        if token.is_op("**"):
            self._advance()
            value = self._parse_expression()
            return SyntaxNode(
                NodeKind.KEYWORD_ARG, token.start, value.end, [value], {"name": None}
            )
        if token.kind is TokenKind.NAME and self._peek(1).is_op("="):
            self._advance()
            self._advance()
            value = self._parse_expression()
            return SyntaxNode(
                NodeKind.KEYWORD_ARG,
                token.start,
                value.end,
                [value],
                {"name": token.text},
            )
        value = self._parse_named_expression()
        if self._at_comprehension():
            clauses = self._parse_comp_for()
            return SyntaxNode(
                NodeKind.COMPREHENSION,
                value.start,
                self._prev_end,
                [value, *clauses],
                {"display": "generator"},
            )
        return value

    def _at_comprehension(self) -> bool:
        token = self._peek()
        return token.is_keyword("for") or (
            token.is_keyword("async") and self._peek(1).is_keyword("for")
        )

    def _parse_comp_for(self) -> list[SyntaxNode]:
        clauses = []
        while self._at_comprehension():
            start = self._peek().start
            is_async = self._accept_keyword("async") is not None
            self._advance()
            target = self._parse_target_list()
            self._expect_keyword("in")
            children = [target, self._parse_disjunction()]
            while self._accept_keyword("if"):
                children.append(self._parse_disjunction())
            clauses.append(
                SyntaxNode(
                    NodeKind.COMP_FOR,
                    start,
                    self._prev_end,
                    children,
                    {"is_async": is_async},
                )
            )
        return clauses

    def _parse_target(self) -> SyntaxNode:
        star = self._accept_op("*")
        if star is not None:
            operand = self._parse_binary(0)
            return SyntaxNode(NodeKind.STARRED, star.start, operand.end, [operand])
        return self._parse_binary(0)

    def _parse_target_list(self) -> SyntaxNode:
        first = self._parse_target()
        if not self._peek().is_op(","):
            return first
        items = [first]
        while self._accept_op(","):
            if not _starts_expression(self._peek()):
                break
            items.append(self._parse_target())
        return SyntaxNode(NodeKind.TUPLE, first.start, self._prev_end, items)

    def _parse_atom(self) -> SyntaxNode:
        token = self._peek()
        kind = token.kind
        if kind is TokenKind.NAME:
            self._advance()
            return SyntaxNode(
                NodeKind.NAME, token.start, token.end, attrs={"name": token.text}
            )
        if kind is TokenKind.NUMBER:
            self._advance()
            return SyntaxNode(
                NodeKind.LITERAL, token.start, token.end, attrs={"literal": "number"}
            )
        if kind is TokenKind.STRING:
            return self._parse_strings()
        if kind is TokenKind.ERROR:
            self._advance()
            return SyntaxNode(
                NodeKind.ERROR, token.start, token.end, attrs={"message": "lexical error"}
            )
        if token.is_keyword("None", "True", "False"):
            self._advance()
            return SyntaxNode(
                NodeKind.LITERAL, token.start, token.end, attrs={"literal": "constant"}
            )
        if token.is_op("..."):
            self._advance()
            return SyntaxNode(
                NodeKind.LITERAL, token.start, token.end, attrs={"literal": "ellipsis"}
            )
        if token.is_op("("):
            return self._parse_paren()
        if token.is_op("["):
            return self._parse_list_display()
        if token.is_op("{"):
            return self._parse_brace_display()
        msg = f"invalid syntax: unexpected {_describe(token)}"
        raise ParseError(msg, token)

    def _parse_strings(self) -> SyntaxNode:
        first = self._advance()
        formatted = first.is_formatted
        pieces = [(first.start, first.end)]
        while self._peek().kind is TokenKind.STRING:
            token = self._advance()
            formatted = formatted or token.is_formatted
            pieces.append((token.start, token.end))
        return SyntaxNode(
            NodeKind.LITERAL,
            first.start,
            self._prev_end,
            attrs={"literal": "string", "formatted": formatted, "pieces": pieces},
        )

    def _parse_paren(self) -> SyntaxNode:
        open_paren = self._advance()
        if self._peek().is_op(")"):
            close = self._advance()
            return SyntaxNode(NodeKind.TUPLE, open_paren.start, close.end)
        if self._peek().is_keyword("yield"):
            inner = self._parse_yield()
            close = self._expect_op(")")
            return SyntaxNode(NodeKind.PAREN, open_paren.start, close.end, [inner])
        first = self._parse_star_or_named()
        if self._at_comprehension():
            clauses = self._parse_comp_for()
            close = self._expect_op(")")
            return SyntaxNode(
                NodeKind.COMPREHENSION,
                open_paren.start,
                close.end,
                [first, *clauses],
                {"display": "generator"},
            )
        if self._peek().is_op(","):
            items = [first]
            while self._accept_op(","):
                if self._peek().is_op(")"):
                    break
                items.append(self._parse_star_or_named())
            close = self._expect_op(")")
            return SyntaxNode(NodeKind.TUPLE, open_paren.start, close.end, items)
        close = self._expect_op(")")
        return SyntaxNode(NodeKind.PAREN, open_paren.start, close.end, [first])

    def _parse_list_display(self) -> SyntaxNode:
        open_bracket = self._advance()
        items: list[SyntaxNode] = []
        if not self._peek().is_op("]"):
            first = self._parse_star_or_named()
            if self._at_comprehension():
                clauses = self._parse_comp_for()
                close = self._expect_op("]")
                return SyntaxNode(
                    NodeKind.COMPREHENSION,
                    open_bracket.start,
                    close.end,
                    [first, *clauses],
                    {"display": "list"},
                )
            items.append(first)
            while self._accept_op(","):
                if self._peek().is_op("]"):
                    break
                items.append(self._parse_star_or_named())
        close = self._expect_op("]")
        return SyntaxNode(NodeKind.LIST, open_bracket.start, close.end, items)

    def _parse_dict_item(self) -> SyntaxNode:
        unpack = self._accept_op("**")
        if unpack is not None:
            value = self._parse_binary(0)
            return SyntaxNode(
                NodeKind.DICT_ITEM, unpack.start, value.end, [value], {"unpack": True}
            )
        key = self._parse_expression()
        self._expect_op(":")
        value = self._parse_expression()
        return SyntaxNode(
            NodeKind.DICT_ITEM, key.start, value.end, [key, value], {"unpack": False}
        )

    def _parse_brace_display(self) -> SyntaxNode:
        open_brace = self._advance()
        if self._peek().is_op("}"):
            close = self._advance()
            return SyntaxNode(NodeKind.DICT, open_brace.start, close.end)

        if self._peek().is_op("**"):
            first = self._parse_dict_item()
            is_dict = True
        else:
            element = self._parse_star_or_named()
            is_dict = self._peek().is_op(":")
            if is_dict:
                self._advance()
                value = self._parse_expression()
                first = SyntaxNode(
                    NodeKind.DICT_ITEM,
                    element.start,
                    value.end,
                    [element, value],
                    {"unpack": False},
                )
            else:
                first = element

        if self._at_comprehension():
            clauses = self._parse_comp_for()
            close = self._expect_op("}")
            return SyntaxNode(
                NodeKind.COMPREHENSION,
                open_brace.start,
                close.end,
                [first, *clauses],
                {"display": "dict" if is_dict else "set"},
            )

        items = [first]
        while self._accept_op(","):
            if self._peek().is_op("}"):
                break
            items.append(
                self._parse_dict_item() if is_dict else self._parse_star_or_named()
            )
        close = self._expect_op("}")
        return SyntaxNode(
            NodeKind.DICT if is_dict else NodeKind.SET,
            open_brace.start,
            close.end,
            items,
        )


def parse(
    source: SourceText,
    tokens: Iterable[Token],
    *,
    diagnostics: DiagnosticCollector | None = None,
) -> SyntaxNode:
    """Parse a token stream into a Module node."""
    return Parser(source, tokens, diagnostics=diagnostics).parse_module()


__all__ = ["ParseError", "Parser", "parse"]
