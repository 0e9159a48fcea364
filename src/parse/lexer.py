"""Indentation-aware lexer for Python source.

The lexer never raises on malformed input. Problems become ``ERROR`` tokens
and diagnostics, and lexing resumes right after the offending text.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, NamedTuple

from parse import diagnostics as codes
from parse.diagnostics import DiagnosticCollector
from parse.tokens import (
    CLOSING_BRACKETS,
    KEYWORDS,
    OPENING_BRACKETS,
    OPERATORS_1,
    OPERATORS_2,
    OPERATORS_3,
    STRING_PREFIXES,
    Token,
    TokenKind,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from parse.source import SourceText

_WORD = re.compile(r"\w+")
_NUMBER = re.compile(
    r"""
    0[xX](?:_?[0-9a-fA-F])+
  | 0[oO](?:_?[0-7])+
  | 0[bB](?:_?[01])+
  | (?:(?:[0-9](?:_?[0-9])*)?\.[0-9](?:_?[0-9])*|[0-9](?:_?[0-9])*\.?)
    (?:[eE][+-]?[0-9](?:_?[0-9])*)?[jJ]?
    """,
    re.VERBOSE,
)

_ASYNC_DEF = re.compile(r"async[ \t]+def\b")

_UNTERMINATED = "unterminated"
_UNBALANCED = "unbalanced"

# Keywords that can only begin a statement, never continue an expression.
_STATEMENT_KEYWORDS = frozenset(
    {
        "assert",
        "break",
        "class",
        "continue",
        "def",
        "del",
        "elif",
        "except",
        "finally",
        "global",
        "import",
        "nonlocal",
        "pass",
        "raise",
        "return",
        "try",
        "while",
        "with",
    }
)


class _StringScan(NamedTuple):
    end: int
    error: str | None = None
    error_at: int = 0


class Lexer:
    """Lazy, restartable token stream over one source file.

    Iterating a Lexer starts a fresh pass: ``diagnostics`` and ``comments``
    are reset and then filled as tokens are produced. Comments are trivia and
    never appear in the token stream.
    """

    def __init__(
        self,
        source: SourceText,
        *,
        tab_size: int = 8,
        target_version: tuple[int, int] = (3, 12),
    ) -> None:
        self.source = source
        self.text = source.text
        self.tab_size = tab_size
        self.target_version = target_version
        self.diagnostics = DiagnosticCollector(source)
        self.comments: list[Token] = []

    def __iter__(self) -> Iterator[Token]:
        self.diagnostics.clear()
        self.comments = []
        return self._tokens()

    def _tokens(self) -> Iterator[Token]:
        text = self.text
        n = len(text)
        pos = 1 if text.startswith("\ufeff") else 0
        indents = [0]
        brackets: list[tuple[str, int]] = []
        at_line_start = True
        last: Token | None = None

        while pos < n:
            if at_line_start and not brackets:
                at_line_start = False
                col, first = self._measure_indent(pos)
                if first >= n:
                    pos = first
                    break
                if text[first] in "\r\n#":
                    pos = first
                    if text[first] == "#":
                        pos = self._scan_comment(first)
                    if pos < n:
                        pos = self._skip_newline(pos)
                    at_line_start = True
                    continue
                for token in self._indentation(col, pos, first, indents):
                    last = token
                    yield token
                pos = first
                continue

            ch = text[pos]
            if ch in " \t\f":
                pos += 1
                continue
            if ch == "#":
                pos = self._scan_comment(pos)
                continue
            if ch in "\r\n":
                end = self._skip_newline(pos)
                if brackets and self._starts_statement(end, indents[-1]):
                    self._report_unclosed(
                        brackets, recovery="closed before the next statement"
                    )
                    brackets.clear()
                if not brackets:
                    last = Token(TokenKind.NEWLINE, text[pos:end], pos, end)
                    yield last
                    at_line_start = True
                pos = end
                continue
            if ch == "\\" and pos + 1 < n and text[pos + 1] in "\r\n":
                pos = self._skip_newline(pos + 1)
                continue

            token = self._lex_token(pos, brackets)
            last = token
            yield token
            pos = token.end

        self._report_unclosed(brackets)
        if last is not None and last.kind not in (
            TokenKind.NEWLINE,
            TokenKind.DEDENT,
        ):
            yield Token(TokenKind.NEWLINE, "", n, n)
        for _ in indents[1:]:
            yield Token(TokenKind.DEDENT, "", n, n)
        yield Token(TokenKind.END, "", n, n)

    def _report_unclosed(
        self, brackets: list[tuple[str, int]], recovery: str | None = None
    ) -> None:
        for bracket, offset in brackets:
            self.diagnostics.error(
                codes.UNCLOSED_BRACKET,
                f"'{bracket}' was never closed",
                offset,
                offset + 1,
                recovery=recovery,
            )

    def _starts_statement(self, pos: int, indent: int) -> bool:
        """True when the next non-blank line, read from ``pos``, opens a new
        statement at or left of ``indent`` while brackets are still open."""
        text = self.text
        n = len(text)
        while pos < n:
            col, first = self._measure_indent(pos)
            if first >= n:
                return False
            if text[first] in "\r\n#":
                pos = self.source.line_end(first)
                if pos < n:
                    pos = self._skip_newline(pos)
                continue
            if col > indent:
                return False
            if text[first] == "@":
                return text[first + 1 : first + 2].isidentifier()
            match = _WORD.match(text, first)
            if match is None:
                return False
            word = match.group()
            if word == "async":
                return _ASYNC_DEF.match(text, first) is not None
            return word in _STATEMENT_KEYWORDS
        return False

    def _lex_token(self, pos: int, brackets: list[tuple[str, int]]) -> Token:
        text = self.text
        ch = text[pos]

        if ch.isidentifier():
            end = _WORD.match(text, pos).end()  # type: ignore[union-attr]
            word = text[pos:end]
            if end < len(text) and text[end] in "'\"" and word.lower() in STRING_PREFIXES:
                return self._lex_string(pos, end)
            kind = TokenKind.KEYWORD if word in KEYWORDS else TokenKind.NAME
            return Token(kind, word, pos, end)

        if ch in "0123456789" or (ch == "." and text[pos + 1 : pos + 2].isdigit()):
            match = _NUMBER.match(text, pos)
            if match is not None and match.end() > pos:
                return Token(TokenKind.NUMBER, match.group(), pos, match.end())

        if ch in "'\"":
            return self._lex_string(pos, pos)

        for width, operators in ((3, OPERATORS_3), (2, OPERATORS_2), (1, OPERATORS_1)):
            candidate = text[pos : pos + width]
            if candidate in operators:
                self._track_bracket(candidate, pos, brackets)
                return Token(TokenKind.OP, candidate, pos, pos + width)

        self.diagnostics.error(
            codes.UNRECOGNIZED_CHARACTER,
            f"unrecognized character {ch!r}",
            pos,
            pos + 1,
            recovery="skipped one character",
        )
        return Token(TokenKind.ERROR, ch, pos, pos + 1)

    def _track_bracket(
        self, op: str, pos: int, brackets: list[tuple[str, int]]
    ) -> None:
        if op in OPENING_BRACKETS:
            brackets.append((op, pos))
            return
        if op not in CLOSING_BRACKETS:
            return
        if not brackets:
            self.diagnostics.error(
                codes.UNMATCHED_BRACKET, f"unmatched '{op}'", pos, pos + 1
            )
            return
        opening, _ = brackets.pop()
        if OPENING_BRACKETS[opening] != op:
            self.diagnostics.error(
                codes.UNMATCHED_BRACKET,
                f"closing '{op}' does not match opening '{opening}'",
                pos,
                pos + 1,
                recovery=f"closed '{opening}'",
            )

    def _indentation(
        self, col: int, line_start: int, first: int, indents: list[int]
    ) -> Iterator[Token]:
        if col > indents[-1]:
            indents.append(col)
            yield Token(TokenKind.INDENT, self.text[line_start:first], line_start, first)
            return
        while col < indents[-1]:
            indents.pop()
            yield Token(TokenKind.DEDENT, "", first, first)
        if col != indents[-1]:
            self.diagnostics.error(
                codes.INCONSISTENT_DEDENT,
                "unindent does not match any outer indentation level",
                line_start,
                first,
                recovery=f"snapped to indentation level {indents[-1]}",
            )

    def _measure_indent(self, pos: int) -> tuple[int, int]:
        text = self.text
        col = 0
        while pos < len(text):
            ch = text[pos]
            if ch == " ":
                col += 1
            elif ch == "\t":
                col = (col // self.tab_size + 1) * self.tab_size
            elif ch == "\f":
                col = 0
            else:
                break
            pos += 1
        return col, pos

    def _scan_comment(self, pos: int) -> int:
        end = self.source.line_end(pos)
        self.comments.append(Token(TokenKind.COMMENT, self.text[pos:end], pos, end))
        return end

    def _skip_newline(self, pos: int) -> int:
        return pos + 2 if self.text.startswith("\r\n", pos) else pos + 1

    # -- strings -----------------------------------------------------------

    def _lex_string(self, start: int, quote_pos: int) -> Token:
        prefix = self.text[start:quote_pos].lower()
        reused: list[int] = []
        scan = self._scan_string(
            quote_pos,
            formatted="f" in prefix or "t" in prefix,
            reused=reused,
        )
        text = self.text[start : scan.end]

        if scan.error == _UNTERMINATED:
            triple = self.text.startswith(self.text[quote_pos] * 3, quote_pos)
            self.diagnostics.error(
                codes.UNTERMINATED_STRING,
                "unterminated triple-quoted string literal"
                if triple
                else "unterminated string literal",
                start,
                scan.end,
                recovery="skipped to end of input" if triple else "skipped to end of line",
            )
            return Token(TokenKind.ERROR, text, start, scan.end)

        if scan.error == _UNBALANCED:
            self.diagnostics.error(
                codes.UNBALANCED_SUBSTITUTION,
                "unbalanced '{' in f-string substitution",
                scan.error_at,
                self.source.line_end(scan.error_at),
                recovery="treated the rest of the line as literal text",
            )
        elif reused and self.target_version < (3, 12):
            self.diagnostics.warning(
                codes.NESTED_QUOTE_REUSE,
                "f-string substitution reuses the enclosing quote character",
                reused[0],
                reused[0] + 1,
            )
        return Token(TokenKind.STRING, text, start, scan.end)

    def _scan_string(
        self, quote_pos: int, *, formatted: bool, reused: list[int]
    ) -> _StringScan:
        text = self.text
        n = len(text)
        quote = text[quote_pos]
        delim = quote * 3 if text.startswith(quote * 3, quote_pos) else quote
        triple = len(delim) == 3
        i = quote_pos + len(delim)
        unbalanced_at: int | None = None

        while i < n:
            ch = text[i]
            if ch == "\\":
                i += 3 if text.startswith("\r\n", i + 1) else 2
                continue
            if text.startswith(delim, i):
                end = i + len(delim)
                if unbalanced_at is not None:
                    return _StringScan(end, _UNBALANCED, unbalanced_at)
                return _StringScan(end)
            if ch in "\r\n" and not triple:
                return _StringScan(i, _UNTERMINATED, i)
            if formatted and ch == "{":
                if text.startswith("{{", i):
                    i += 2
                    continue
                end = self._scan_substitution(i + 1, delim, reused)
                if end is None:
                    line_end = self.source.line_end(i)
                    if not triple:
                        return _StringScan(line_end, _UNBALANCED, i)
                    if unbalanced_at is None:
                        unbalanced_at = i
                    i = line_end
                    continue
                i = end
                continue
            i += 1
        return _StringScan(n, _UNTERMINATED, n)

    def _scan_substitution(
        self, i: int, delim: str, reused: list[int]
    ) -> int | None:
        """Scan an f-string ``{...}`` substitution, returning the offset after
        its closing brace, or None when the braces never balance."""
        text = self.text
        n = len(text)
        triple = len(delim) == 3
        depth = 0
        while i < n:
            ch = text[i]
            if ch in "([{":
                depth += 1
            elif ch in ")]":
                if depth == 0:
                    return None
                depth -= 1
            elif ch == "}":
                if depth == 0:
                    return i + 1
                depth -= 1
            elif ch.isidentifier():
                end = _WORD.match(text, i).end()  # type: ignore[union-attr]
                if end < n and text[end] in "'\"" and text[i:end].lower() in STRING_PREFIXES:
                    nested = self._scan_nested_string(i, end, delim, reused)
                    if nested is None:
                        return None
                    i = nested
                else:
                    i = end
                continue
            elif ch in "'\"":
                nested = self._scan_nested_string(i, i, delim, reused)
                if nested is None:
                    return None
                i = nested
                continue
            elif ch in "\r\n" and not triple:
                return None
            elif ch == "!" and depth == 0:
                if text.startswith("!=", i):
                    i += 2
                    continue
                match = _WORD.match(text, i + 1)
                i = match.end() if match else i + 1
                continue
            elif ch == ":" and depth == 0:
                return self._scan_format_spec(i + 1, delim, reused)
            i += 1
        return None

    def _scan_nested_string(
        self, start: int, quote_pos: int, delim: str, reused: list[int]
    ) -> int | None:
        prefix = self.text[start:quote_pos].lower()
        if self.text[quote_pos] == delim[0]:
            reused.append(quote_pos)
        scan = self._scan_string(
            quote_pos,
            formatted="f" in prefix or "t" in prefix,
            reused=reused,
        )
        if scan.error is not None:
            return None
        return scan.end

    def _scan_format_spec(self, i: int, delim: str, reused: list[int]) -> int | None:
        text = self.text
        triple = len(delim) == 3
        while i < len(text):
            ch = text[i]
            if ch == "{":
                end = self._scan_substitution(i + 1, delim, reused)
                if end is None:
                    return None
                i = end
                continue
            if ch == "}":
                return i + 1
            if text.startswith(delim, i) or (ch in "\r\n" and not triple):
                return None
            i += 1
        return None


def tokenize(
    source: SourceText,
    *,
    tab_size: int = 8,
    target_version: tuple[int, int] = (3, 12),
) -> tuple[list[Token], DiagnosticCollector]:
    """Lex a whole file eagerly. Returns the tokens and the lexer diagnostics."""
    lexer = Lexer(source, tab_size=tab_size, target_version=target_version)
    tokens = list(lexer)
    return tokens, lexer.diagnostics


__all__ = ["Lexer", "tokenize"]
