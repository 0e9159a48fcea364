from __future__ import annotations

from textwrap import dedent

from parse import diagnostics as codes
from parse.cst import NodeKind, SyntaxNode
from parse.diagnostics import DiagnosticCollector
from parse.lexer import Lexer, tokenize
from parse.parser import Parser, parse
from parse.source import SourceText


def _parse(text: str) -> tuple[SyntaxNode, list[str], SourceText]:
    source = SourceText("t.py", text)
    lexer = Lexer(source)
    diagnostics = DiagnosticCollector(source)
    module = Parser(source, lexer, diagnostics=diagnostics).parse_module()
    return module, [d.code for d in [*lexer.diagnostics, *diagnostics]], source


def _definitions(module: SyntaxNode) -> list[str]:
    return [
        node.name
        for node in module.walk()
        if node.kind in (NodeKind.CLASS_DEF, NodeKind.FUNCTION_DEF)
    ]


def test_module_span_covers_input() -> None:
    text = "x = 1\n\n\n# trailing comment\n"
    module, diagnostics, _ = _parse(text)

    assert module.kind is NodeKind.MODULE
    assert (module.start, module.end) == (0, len(text))
    assert diagnostics == []


def test_empty_input_parses_to_empty_module() -> None:
    module, diagnostics, _ = _parse("")

    assert module.children == []
    assert (module.start, module.end) == (0, 0)
    assert diagnostics == []


def test_missing_def_keeps_other_declarations() -> None:
    text = dedent(
        """\
        class Before:
            def ok(self):
                return 1


        broken(self, x):
            return x


        def after():
            pass
        """
    )
    module, diagnostics, source = _parse(text)

    assert _definitions(module) == ["Before", "ok", "after"]
    assert diagnostics == [codes.SYNTAX_ERROR]
    error = module.children[1]
    assert error.kind is NodeKind.ERROR
    assert error.text(source).startswith("broken(self, x):")
    assert error.children[-1].kind is NodeKind.BLOCK


def test_recovery_block_declarations_are_kept() -> None:
    text = dedent(
        """\
        if x
            def inside():
                pass
        """
    )
    module, diagnostics, _ = _parse(text)

    assert diagnostics == [codes.SYNTAX_ERROR]
    assert _definitions(module) == ["inside"]


def test_recovery_resumes_at_next_statement() -> None:
    module, diagnostics, _ = _parse("x = = 1\ny = 2\n")

    assert [child.kind for child in module.children] == [
        NodeKind.ERROR,
        NodeKind.ASSIGNMENT,
    ]
    assert diagnostics == [codes.SYNTAX_ERROR]


def test_expected_block_uses_empty_body() -> None:
    module, diagnostics, _ = _parse("def f():\nx = 1\n")

    assert diagnostics == [codes.EXPECTED_BLOCK]
    function, assignment = module.children
    assert function.kind is NodeKind.FUNCTION_DEF
    assert function.attrs["body"].children == []
    assert assignment.kind is NodeKind.ASSIGNMENT


def test_unexpected_indent_is_wrapped_in_error() -> None:
    module, diagnostics, _ = _parse("x = 1\n    y = 2\nz = 3\n")

    assert diagnostics == [codes.UNEXPECTED_INDENT]
    assert [child.kind for child in module.children] == [
        NodeKind.ASSIGNMENT,
        NodeKind.ERROR,
        NodeKind.ASSIGNMENT,
    ]


def test_decorator_without_definition_keeps_decorator() -> None:
    module, diagnostics, _ = _parse("@register\nx = 1\n")

    assert diagnostics == [codes.SYNTAX_ERROR]
    error = module.children[0]
    assert error.kind is NodeKind.ERROR
    assert "after decorator" in error.attrs["message"]
    assert error.children[0].kind is NodeKind.DECORATOR


def test_broken_except_header_keeps_try_body() -> None:
    text = dedent(
        """\
        try:
            def guarded():
                pass
        except ValueError as:
            pass
        """
    )
    module, diagnostics, _ = _parse(text)

    assert codes.SYNTAX_ERROR in diagnostics
    assert "guarded" in _definitions(module)


def test_function_header_attributes() -> None:
    text = "@cache\nasync def fetch(url: str, /, *args, retries=3, **kw) -> bytes:\n    pass\n"
    module, diagnostics, source = _parse(text)

    assert diagnostics == []
    function = module.children[0]
    assert function.kind is NodeKind.FUNCTION_DEF
    assert function.start == 0
    assert function.attrs["is_async"] is True
    assert function.attrs["returns"].text(source) == "bytes"
    params = function.attrs["parameters"].children
    assert [(p.name, p.attrs["param_kind"]) for p in params] == [
        ("url", "positional_only"),
        ("args", "var_positional"),
        ("retries", "keyword_only"),
        ("kw", "var_keyword"),
    ]


def test_class_arguments_and_keywords() -> None:
    module, diagnostics, source = _parse("class C(A, B, metaclass=M):\n    pass\n")

    assert diagnostics == []
    arguments = module.children[0].attrs["arguments"]
    assert [a.text(source) for a in arguments.children] == ["A", "B", "metaclass=M"]
    assert arguments.children[2].kind is NodeKind.KEYWORD_ARG


def test_soft_keywords_as_names_and_statements() -> None:
    text = dedent(
        """\
        match = 1
        match command:
            case [x, y]:
                pass
            case _:
                pass
        type Point = tuple[int, int]
        """
    )
    module, diagnostics, _ = _parse(text)

    assert diagnostics == []
    assert [child.kind for child in module.children] == [
        NodeKind.ASSIGNMENT,
        NodeKind.MATCH_BLOCK,
        NodeKind.TYPE_ALIAS,
    ]


def test_compound_statements_parse_cleanly() -> None:
    text = dedent(
        """\
        for i, (a, b) in enumerate(pairs):
            if a:
                continue
            elif b:
                break
            else:
                total += a if b else -a
        else:
            pass
        while (n := n - 1) > 0:
            yield_value = [x * 2 for x in range(n) if x]
        with open(p) as fh, lock:
            data = {k: v for k, v in fh}
        try:
            del data[0:2]
        except* (KeyError, IndexError) as exc:
            raise RuntimeError("bad") from exc
        finally:
            assert data, "message"
        lam = lambda a, *b, c=1: (a, *b)
        global g
        """
    )
    module, diagnostics, _ = _parse(text)

    assert diagnostics == []
    assert NodeKind.ERROR not in {node.kind for node in module.walk()}


def test_pretty_renders_outline() -> None:
    module, _, source = _parse("class A:\n    def f(self):\n        pass\n")

    lines = module.pretty(source).splitlines()

    assert lines[0].startswith("Module @0-")
    assert lines[1].strip().startswith("ClassDef A")
    assert any(line.strip().startswith("FunctionDef f") for line in lines)


def test_parse_accepts_a_token_list() -> None:
    source = SourceText("t.py", "def f():\n    pass\n")
    tokens, _ = tokenize(source)

    module = parse(source, tokens)

    assert _definitions(module) == ["f"]


def test_unclosed_call_keeps_later_declarations() -> None:
    text = "x = foo(1,\n\ndef a():\n    pass\n\nclass B:\n    pass\n"
    module, diagnostics, _ = _parse(text)

    assert _definitions(module) == ["a", "B"]
    assert diagnostics == [codes.UNCLOSED_BRACKET, codes.SYNTAX_ERROR]
    assert module.children[0].kind is NodeKind.ERROR


def test_deeply_nested_parentheses_become_a_syntax_error() -> None:
    text = "x = " + "(" * 1200 + "1" + ")" * 1200 + "\ny = 2\n"
    module, diagnostics, _ = _parse(text)

    assert diagnostics == [codes.SYNTAX_ERROR]
    error, assignment = module.children
    assert error.kind is NodeKind.ERROR
    assert "too many nested" in error.attrs["message"]
    assert assignment.kind is NodeKind.ASSIGNMENT


def test_long_operator_chains_become_a_syntax_error() -> None:
    for text in ("x = " + "not " * 3000 + "y\n", "x = " + "-" * 3000 + "y\n"):
        module, diagnostics, _ = _parse(text + "def kept():\n    pass\n")

        assert diagnostics == [codes.SYNTAX_ERROR]
        assert _definitions(module) == ["kept"]


def test_deeply_nested_blocks_are_skipped() -> None:
    lines = [("    " * depth) + "if x:" for depth in range(80)]
    lines.append("    " * 80 + "pass")
    text = "\n".join(lines) + "\ndef after():\n    pass\n"

    module, diagnostics, _ = _parse(text)

    assert diagnostics
    assert set(diagnostics) == {codes.SYNTAX_ERROR}
    assert _definitions(module) == ["after"]


def test_blocks_strictly_contain_their_statements() -> None:
    module, _, source = _parse("def f():\n    return 1\n\ndef g(): return 2\n")

    for function in module.children:
        body = function.attrs["body"]
        [statement] = body.children
        assert body.start < statement.start
        assert body.end == statement.end
    assert module.children[1].attrs["body"].text(source) == ": return 2"
