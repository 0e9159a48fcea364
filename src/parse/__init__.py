"""Lexing, parsing and structural extraction for symmap."""

from parse.cst import NodeKind, SyntaxNode
from parse.diagnostics import DiagnosticCollector
from parse.imports import ImportBinding, import_bindings, resolve_relative_import
from parse.lexer import Lexer, tokenize
from parse.parser import ParseError, Parser, parse
from parse.source import SourceDecodeError, SourceText
from parse.symbols import StructuralExtractor
from parse.tokens import Token, TokenKind

__all__ = [
    "DiagnosticCollector",
    "ImportBinding",
    "Lexer",
    "NodeKind",
    "ParseError",
    "Parser",
    "SourceDecodeError",
    "SourceText",
    "StructuralExtractor",
    "SyntaxNode",
    "Token",
    "TokenKind",
    "import_bindings",
    "parse",
    "resolve_relative_import",
    "tokenize",
]
