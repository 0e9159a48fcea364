from __future__ import annotations

from parse import diagnostics as codes
from parse.lexer import Lexer, tokenize
from parse.source import SourceText
from parse.tokens import Token, TokenKind


def _lex(
    text: str, target_version: tuple[int, int] = (3, 12)
) -> tuple[list[Token], list[str]]:
    tokens, diagnostics = tokenize(
        SourceText("t.py", text), target_version=target_version
    )
    return tokens, [record.code for record in diagnostics]


def _kinds(tokens: list[Token]) -> list[TokenKind]:
    return [token.kind for token in tokens]


def test_simple_statement_tokens() -> None:
    tokens, diagnostics = _lex("x = 1\n")

    assert _kinds(tokens) == [
        TokenKind.NAME,
        TokenKind.OP,
        TokenKind.NUMBER,
        TokenKind.NEWLINE,
        TokenKind.END,
    ]
    assert diagnostics == []


def test_token_spans_are_ordered_and_disjoint() -> None:
    text = "class A(B):\n    def f(self, *a, **k) -> int:\n        return a[0] ** 2\n"
    tokens, _ = _lex(text)

    for left, right in zip(tokens, tokens[1:]):
        assert left.start <= left.end <= right.start
    for token in tokens:
        assert text[token.start : token.end] == token.text


def test_synthetic_tokens_are_zero_width() -> None:
    tokens, _ = _lex("if a:\n    b")

    dedents = [t for t in tokens if t.kind is TokenKind.DEDENT]
    assert len(dedents) == 1
    assert _kinds(tokens)[-3:] == [TokenKind.NEWLINE, TokenKind.DEDENT, TokenKind.END]
    for token in tokens[-3:]:
        assert token.start == token.end == len("if a:\n    b")


def test_fstring_reusing_outer_quote_is_one_token() -> None:
    text = 'x = f"{d["key"]}"\n'
    tokens, diagnostics = _lex(text)

    strings = [t for t in tokens if t.kind is TokenKind.STRING]
    assert [t.text for t in strings] == ['f"{d["key"]}"']
    assert diagnostics == []


def test_fstring_quote_reuse_warns_before_312() -> None:
    tokens, diagnostics = _lex('x = f"{d["key"]}"\n', target_version=(3, 11))

    assert diagnostics == [codes.NESTED_QUOTE_REUSE]
    assert [t.kind for t in tokens].count(TokenKind.STRING) == 1


def test_fstring_nested_format_spec_and_conversion() -> None:
    tokens, diagnostics = _lex('s = f"{value!r:>{width}} and {{literal}}"\n')

    assert diagnostics == []
    assert _kinds(tokens)[:3] == [TokenKind.NAME, TokenKind.OP, TokenKind.STRING]


def test_unbalanced_substitution_reports_exactly_one_diagnostic() -> None:
    text = 'x = f"{value"\ny = 2\n'
    tokens, diagnostics = _lex(text)

    assert diagnostics == [codes.UNBALANCED_SUBSTITUTION]
    assert tokens[2].kind is TokenKind.STRING
    assert tokens[2].text == 'f"{value"'
    names = [t.text for t in tokens if t.kind is TokenKind.NAME]
    assert names == ["x", "y"]


def test_unterminated_string_becomes_error_token() -> None:
    tokens, diagnostics = _lex('s = "abc\nx = 1\n')

    assert diagnostics == [codes.UNTERMINATED_STRING]
    error = next(t for t in tokens if t.kind is TokenKind.ERROR)
    assert error.text == '"abc'
    assert [t.text for t in tokens if t.kind is TokenKind.NAME] == ["s", "x"]


def test_unterminated_triple_quoted_string_runs_to_end() -> None:
    text = 'x = 1\ndoc = """never closed\nstill inside\n'
    tokens, diagnostics = _lex(text)

    assert diagnostics == [codes.UNTERMINATED_STRING]
    error = next(t for t in tokens if t.kind is TokenKind.ERROR)
    assert error.end == len(text)


def test_inconsistent_dedent_snaps_to_outer_level() -> None:
    text = "if a:\n        b\n    c\n"
    tokens, diagnostics = _lex(text)

    assert diagnostics == [codes.INCONSISTENT_DEDENT]
    kinds = _kinds(tokens)
    assert kinds.count(TokenKind.INDENT) == kinds.count(TokenKind.DEDENT) == 1


def test_tabs_expand_to_tab_stops() -> None:
    source = SourceText("t.py", "if a:\n\tb\n        c\n")
    lexer = Lexer(source, tab_size=8)
    tokens = list(lexer)

    assert _kinds(tokens).count(TokenKind.INDENT) == 1
    assert len(lexer.diagnostics) == 0


def test_comments_are_trivia() -> None:
    source = SourceText("t.py", "# header\nx = 1  # trailing\n")
    lexer = Lexer(source)
    tokens = list(lexer)

    assert TokenKind.COMMENT not in _kinds(tokens)
    assert [c.text for c in lexer.comments] == ["# header", "# trailing"]


def test_newlines_inside_brackets_are_ignored() -> None:
    tokens, diagnostics = _lex("call(\n    a,\n    b,\n)\n")

    assert diagnostics == []
    assert _kinds(tokens).count(TokenKind.NEWLINE) == 1
    assert TokenKind.INDENT not in _kinds(tokens)


def test_unclosed_and_unmatched_brackets() -> None:
    _, unclosed = _lex("x = (1, 2\n")
    _, unmatched = _lex("x = 1)\n")

    assert unclosed == [codes.UNCLOSED_BRACKET]
    assert unmatched == [codes.UNMATCHED_BRACKET]


def test_unclosed_bracket_closes_before_next_statement() -> None:
    text = "class A:\n    x = foo(1,\n\n    def f(self):\n        pass\n"
    tokens, diagnostics = _lex(text)

    assert diagnostics == [codes.UNCLOSED_BRACKET]
    comma = next(i for i, t in enumerate(tokens) if t.text == ",")
    assert _kinds(tokens)[comma + 1 : comma + 3] == [TokenKind.NEWLINE, TokenKind.KEYWORD]
    assert _kinds(tokens).count(TokenKind.INDENT) == 2
    assert _kinds(tokens).count(TokenKind.DEDENT) == 2


def test_open_bracket_spans_continuation_lines() -> None:
    comprehension = "values = [\n    item\nfor item in items\n]\n"
    prefixed = "call(a,\ndef_value)\n"

    for text in (comprehension, prefixed):
        tokens, diagnostics = _lex(text)
        assert diagnostics == []
        assert _kinds(tokens).count(TokenKind.NEWLINE) == 1


def test_async_def_line_closes_open_bracket() -> None:
    _, diagnostics = _lex("x = (1,\nasync def g():\n    pass\n")

    assert diagnostics == [codes.UNCLOSED_BRACKET]


def test_unrecognized_character_is_skipped() -> None:
    tokens, diagnostics = _lex("x = 1 $ 2\n")

    assert diagnostics == [codes.UNRECOGNIZED_CHARACTER]
    assert [t.text for t in tokens if t.kind is TokenKind.ERROR] == ["$"]
    assert [t.text for t in tokens if t.kind is TokenKind.NUMBER] == ["1", "2"]


def test_string_prefixes_and_soft_keywords() -> None:
    tokens, _ = _lex('match = rb"\\x00"\ntype = 1\n')

    assert tokens[0].kind is TokenKind.NAME
    assert tokens[2].kind is TokenKind.STRING
    assert tokens[2].string_prefix == "rb"
    assert not tokens[2].is_formatted


def test_lexer_restarts_on_each_iteration() -> None:
    lexer = Lexer(SourceText("t.py", 'x = "oops\n'))

    first = list(lexer)
    second = list(lexer)

    assert first == second
    assert len(lexer.diagnostics) == 1
