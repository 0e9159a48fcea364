from __future__ import annotations

from pathlib import Path

import pytest

from artifacts.models.artifacts.symbols import SymbolRecord
from engine import ExtractionResult, extract_source
from graph.algos import check_invariants
from graph.builder import SymbolGraph
from parse import diagnostics as codes

FIXTURES = Path(__file__).parent / "fixtures" / "conformance"
TOURS = ["language_tour.py", "stdlib_tour.py", "structure_tour.py"]


def _extract(name: str) -> ExtractionResult:
    return extract_source(name, (FIXTURES / name).read_bytes())


def _graph(result: ExtractionResult) -> SymbolGraph:
    assert result.graph is not None
    return result.graph


def _one(graph: SymbolGraph, qualified_name: str) -> SymbolRecord:
    found = graph.find(qualified_name)
    assert len(found) == 1, qualified_name
    return found[0]


def _names(graph: SymbolGraph, kind: str) -> set[str]:
    return {s.qualified_name for s in graph.symbols if s.kind == kind}


@pytest.mark.parametrize("name", TOURS)
def test_tour_graph_is_sound(name: str) -> None:
    text = (FIXTURES / name).read_text(encoding="utf-8")
    result = _extract(name)

    assert check_invariants(_graph(result), text_length=len(text)) == []
    assert not [d for d in result.diagnostics if d.severity == "warning"]


def test_language_tour() -> None:
    result = _extract("language_tour.py")
    graph = _graph(result)

    errors = [(d.code, d.span.start_line) for d in result.diagnostics if d.severity == "error"]
    assert errors == [(codes.SYNTAX_ERROR, 326)]
    redefinitions = [d for d in result.diagnostics if d.code == codes.REDEFINITION]
    assert len(redefinitions) == 29
    assert {d.severity for d in redefinitions} == {"info"}

    placeholders = [
        s for s in graph.symbols if s.name.startswith("placeholder_function_py_")
    ]
    assert len(placeholders) == 129
    assert {s.kind for s in placeholders} == {"function"}

    assert _names(graph, "class") == {"language_tour.User", "language_tour.Point"}
    assert _names(graph, "method") == {
        "language_tour.User.__init__",
        "language_tour.User.get_username",
        "language_tour.User.from_string",
        "language_tour.User.is_active_user",
        "language_tour.Point.__init__",
        "language_tour.Point.distance_from_origin",
    }
    assert _one(graph, "language_tour.User.from_string").flags.is_classmethod
    assert _one(graph, "language_tour.User.is_active_user").flags.is_static
    assert (
        _one(graph, "language_tour.documented_function").docstring
        == "This function has documentation."
    )
    assert _one(graph, "language_tour.final_python_function").kind == "function"
    assert _one(graph, "language_tour.sum_result").kind == "variable"
    assert _names(graph, "import") == {"language_tour.math"}


def test_stdlib_tour() -> None:
    result = _extract("stdlib_tour.py")
    graph = _graph(result)

    assert result.diagnostics == ()

    imports = {s.name for s in graph.symbols if s.kind == "import"}
    assert {"np", "pd", "plt", "dt", "ET", "namedtuple", "deque", "metadata"} <= imports

    assert _one(graph, "stdlib_tour.add").docstring == "基础加法函数"
    fibonacci = _one(graph, "stdlib_tour.fibonacci")
    assert fibonacci.decorators == ("functools.lru_cache(maxsize=128)",)
    [cache_edge] = graph.edges_of("decorates", fibonacci.symbol_id)
    assert cache_edge.target_name == "functools.lru_cache"
    assert not cache_edge.resolved

    assert _one(graph, "stdlib_tour.timer.wrapper").kind == "function"
    assert _one(graph, "stdlib_tour.Shape.area").flags.is_abstract
    assert _one(graph, "stdlib_tour.fib_generator").flags.is_generator
    assert _one(graph, "stdlib_tour.timer_context").flags.is_generator
    assert _one(graph, "stdlib_tour.async_task").flags.is_async
    assert _one(graph, "stdlib_tour.greet").kind == "function"

    colored = _one(graph, "stdlib_tour.ColoredCircle")
    assert colored.bases == ("Circle", "Movable", "Colored")
    inherits = graph.edges_of("inherits", colored.symbol_id)
    assert [e.local_target_id for e in inherits] == [
        _one(graph, "stdlib_tour.Circle").symbol_id,
        _one(graph, "stdlib_tour.Movable").symbol_id,
        _one(graph, "stdlib_tour.Colored").symbol_id,
    ]
    assert _one(graph, "stdlib_tour.MetaDemo").metaclass == "MetaClass"
    assert _names(graph, "method") >= {
        "stdlib_tour.Vector.__add__",
        "stdlib_tour.FileHandler.__exit__",
        "stdlib_tour.TestMath.test_fibonacci",
    }


def test_structure_tour() -> None:
    result = _extract("structure_tour.py")
    graph = _graph(result)

    assert result.diagnostics == ()

    assert _one(graph, "structure_tour.add").docstring == "返回两个数的和"
    assert _one(graph, "structure_tour.Calculator.add").flags.is_static
    assert _one(graph, "structure_tour.Calculator.multiply").flags.is_classmethod
    assert _one(graph, "structure_tour.fibonacci_generator").flags.is_generator
    assert _one(graph, "structure_tour.async_function").flags.is_async
    assert _one(graph, "structure_tour.outer_function.inner_function").kind == "function"
    assert _one(graph, "structure_tour.my_list").signature == "List[int]"
    assert {
        "structure_tour.Color.RED",
        "structure_tour.Color.GREEN",
        "structure_tour.Color.BLUE",
    } <= _names(graph, "variable")

    count_calls = _one(graph, "structure_tour.CountCalls")
    [decorator_edge] = graph.edges_of(
        "decorates", _one(graph, "structure_tour.say_hello").symbol_id
    )
    assert decorator_edge.target_name == "CountCalls"
    assert not decorator_edge.resolved
    assert decorator_edge.local_target_id == count_calls.symbol_id

    my_meta = _one(graph, "structure_tour.MyMeta")
    [metaclass_edge] = graph.edges_of(
        "decorates", _one(graph, "structure_tour.MyClass").symbol_id
    )
    assert metaclass_edge.role == "metaclass"
    assert metaclass_edge.local_target_id == my_meta.symbol_id
