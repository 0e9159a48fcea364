from __future__ import annotations

from pathlib import Path
from textwrap import dedent

from verify.parity import Declaration, check_parity, treesitter_declarations, verify_parity

CLEAN = dedent(
    """\
    import functools


    class A:
        @staticmethod
        def s():
            pass


    class B:
        def m(self):
            def inner():
                return 1

            return inner


    @functools.cache
    def top():
        return 2


    async def coro():
        await top()
    """
).encode()


def test_treesitter_declarations_anchor_on_decorators() -> None:
    declarations = treesitter_declarations(CLEAN, "mod")

    assert Declaration("function", "mod.A.s", 5) in declarations
    assert Declaration("function", "mod.top", 18) in declarations
    assert Declaration("function", "mod.B.m.inner", 12) in declarations


def test_clean_source_matches_treesitter() -> None:
    result = check_parity("mod.py", CLEAN)

    assert result is not None
    assert result.ok, (result.missing, result.extra)
    assert result.missing == ()
    assert result.extra == ()


def test_files_with_errors_are_skipped() -> None:
    content = (Path(__file__).parent / "fixtures" / "conformance" / "malformed.py").read_bytes()

    assert check_parity("malformed.py", content) is None


def test_verify_parity_over_repository(tmp_path: Path) -> None:
    (tmp_path / "good.py").write_bytes(CLEAN)
    (tmp_path / "broken.py").write_text("def f(:\n    pass\n", encoding="utf-8")

    results = verify_parity(root=tmp_path)

    assert [r.path for r in results] == ["good.py"]
    assert all(r.ok for r in results)


def test_declaration_renders_readably() -> None:
    assert str(Declaration("class", "m.A", 3)) == "class m.A @L3"
