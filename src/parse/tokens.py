"""Token types produced by the lexer."""

from __future__ import annotations

import keyword
from dataclasses import dataclass
from enum import Enum


class TokenKind(str, Enum):
    """Closed set of token kinds."""

    NAME = "name"
    KEYWORD = "keyword"
    NUMBER = "number"
    STRING = "string"
    OP = "op"
    NEWLINE = "newline"
    INDENT = "indent"
    DEDENT = "dedent"
    COMMENT = "comment"
    ERROR = "error"
    END = "end"


KEYWORDS = frozenset(keyword.kwlist)

STRING_PREFIXES = frozenset(
    {"r", "u", "b", "br", "rb", "f", "fr", "rf", "t", "tr", "rt"}
)

OPERATORS_3 = frozenset({"**=", "//=", ">>=", "<<=", "..."})
OPERATORS_2 = frozenset(
    {
        "**",
        "//",
        ">>",
        "<<",
        "<=",
        ">=",
        "==",
        "!=",
        "->",
        ":=",
        "+=",
        "-=",
        "*=",
        "/=",
        "%=",
        "&=",
        "|=",
        "^=",
        "@=",
    }
)
OPERATORS_1 = frozenset("+-*/%@&|^~<>()[]{},:;.=")

OPENING_BRACKETS = {"(": ")", "[": "]", "{": "}"}
CLOSING_BRACKETS = frozenset(OPENING_BRACKETS.values())


@dataclass(frozen=True)
class Token:
    """A lexical token.

    ``start``/``end`` are offsets into the decoded source (end exclusive).
    Synthetic tokens (dedent, end of input, the final newline) are empty.
    """

    kind: TokenKind
    text: str
    start: int
    end: int

    def is_op(self, *values: str) -> bool:
        return self.kind is TokenKind.OP and self.text in values

    def is_keyword(self, *values: str) -> bool:
        return self.kind is TokenKind.KEYWORD and self.text in values

    def is_name(self, *values: str) -> bool:
        return self.kind is TokenKind.NAME and (not values or self.text in values)

    @property
    def string_prefix(self) -> str:
        """Lower-cased prefix of a string token (``""`` when absent)."""
        if self.kind is not TokenKind.STRING:
            return ""
        index = 0
        while index < len(self.text) and self.text[index] not in "'\"":
            index += 1
        return self.text[:index].lower()

    @property
    def is_formatted(self) -> bool:
        prefix = self.string_prefix
        return "f" in prefix or "t" in prefix


def string_body(text: str) -> str:
    """Strip the prefix and delimiters from a string literal's source text.

    Escape sequences are left untouched.
    """
    index = 0
    while index < len(text) and text[index] not in "'\"":
        index += 1
    literal = text[index:]
    if not literal:
        return ""
    quote = literal[0]
    delim = quote * 3 if literal.startswith(quote * 3) else quote
    body = literal[len(delim) :]
    if body.endswith(delim) and len(literal) >= 2 * len(delim):
        body = body[: -len(delim)]
    return body


__all__ = [
    "CLOSING_BRACKETS",
    "KEYWORDS",
    "OPENING_BRACKETS",
    "OPERATORS_1",
    "OPERATORS_2",
    "OPERATORS_3",
    "STRING_PREFIXES",
    "Token",
    "TokenKind",
    "string_body",
]
