from __future__ import annotations

import ast

import pytest

from tracebox.transforms import ConsoleTracer, FunctionTracer, LoopTracer, SourcePositions, instrument


def _enter_call_args(instrumented: str, function_name: str) -> tuple[str, int, int]:
    tree = ast.parse(instrumented)
    for node in ast.walk(tree):
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and node.name == function_name:
            for statement in node.body:
                call = getattr(statement, "value", None)
                if (
                    isinstance(call, ast.Call)
                    and isinstance(call.func, ast.Attribute)
                    and call.func.attr == "enter_func"
                ):
                    name, start, end = (arg.value for arg in call.args[1:])
                    return name, start, end
    raise AssertionError(f"no enter_func call in {function_name}")


def test_console_calls_are_routed_to_tracer() -> None:
    assert instrument("console.log(1)\nconsole.warn('w')\nconsole.error()") == (
        "Tracer.log(1)\nTracer.warn('w')\nTracer.error()"
    )


def test_plain_print_is_routed_but_keyword_print_is_kept() -> None:
    source = "print('a', 1)\nprint('b', sep='-')"

    assert instrument(source, passes=[ConsoleTracer]) == "Tracer.log('a', 1)\nprint('b', sep='-')"


def test_loop_bodies_start_with_iterate_loop() -> None:
    source = "while x:\n    y()\nfor i in range(3):\n    pass\nelse:\n    z()"

    assert instrument(source, passes=[LoopTracer]) == (
        "while x:\n"
        "    Tracer.iterate_loop()\n"
        "    y()\n"
        "for i in range(3):\n"
        "    Tracer.iterate_loop()\n"
        "    pass\n"
        "else:\n"
        "    z()"
    )


def test_async_for_is_instrumented() -> None:
    source = "async def f(items):\n    async for item in items:\n        pass\n"

    assert "Tracer.iterate_loop()" in instrument(source, passes=[LoopTracer])


def test_function_body_is_bracketed_by_hooks() -> None:
    source = "def f():\n    return 1\n"

    instrumented = instrument(source, passes=[FunctionTracer])

    assert instrumented == (
        "def f():\n"
        "    _trace_call_id = next_id()\n"
        "    Tracer.enter_func(_trace_call_id, 'f', 0, 21)\n"
        "    try:\n"
        "        return 1\n"
        "    except Exception as _trace_error:\n"
        "        Tracer.error_func(str(_trace_error), _trace_call_id, 'f', 0, 21)\n"
        "        raise\n"
        "    finally:\n"
        "        Tracer.exit_func(_trace_call_id, 'f', 0, 21)"
    )


def test_function_offsets_cover_the_definition_text() -> None:
    source = "greeting = 'héllo'\n\nasync def fetch_all(urls):\n    for url in urls:\n        await fetch(url)\n"

    name, start, end = _enter_call_args(instrument(source), "fetch_all")

    assert name == "fetch_all"
    assert source[start:end] == (
        "async def fetch_all(urls):\n    for url in urls:\n        await fetch(url)"
    )


def test_docstring_stays_first() -> None:
    source = 'def f():\n    """Doc."""\n    return 2\n'

    tree = ast.parse(instrument(source))
    function = tree.body[0]

    assert ast.get_docstring(function) == "Doc."
    assert isinstance(function.body[1], ast.Assign)


def test_nested_functions_are_traced_separately() -> None:
    source = "def outer():\n    def inner():\n        pass\n    return inner\n"

    instrumented = instrument(source)

    assert _enter_call_args(instrumented, "outer")[0] == "outer"
    assert _enter_call_args(instrumented, "inner")[0] == "inner"


def test_lambdas_and_comprehensions_are_untouched() -> None:
    source = "f = lambda: 1\nsquares = [i * i for i in range(3)]"

    assert instrument(source) == source


def test_top_level_await_is_accepted() -> None:
    assert instrument("await sleep(0)") == "await sleep(0)"


def test_invalid_source_raises_syntax_error() -> None:
    with pytest.raises(SyntaxError):
        instrument("def (:")


def test_non_string_source_is_rejected() -> None:
    with pytest.raises(TypeError):
        instrument(b"print(1)")  # type: ignore[arg-type]


def test_source_positions_count_characters_not_bytes() -> None:
    positions = SourcePositions("é = 1\nx = 2\r\ny = 3\n")

    assert positions.offset(1, len("é = ".encode("utf-8"))) == 4
    assert positions.offset(2, 0) == 6
    assert positions.offset(3, 0) == 13
