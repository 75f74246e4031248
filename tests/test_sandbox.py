"""
Tests for xpgraph.sandbox

Checks:
1. Lambda and arrow sources compile to callables
2. Newlines inside the source are tolerated
3. Syntax errors / non-callables raise FormulaCompileError naming the formula
4. Host state is unreachable (imports, dunders, frames, format strings)
5. Every compilation gets its own namespace
"""

import pytest

from xpgraph.errors import FormulaCompileError, RequestLimitError
from xpgraph.sandbox import compile_formula, make_namespace, normalize_source


class TestNormalizeSource:
    def test_arrow_to_lambda(self) -> None:
        assert normalize_source("x => x * 2") == "lambda x: (x * 2)"

    def test_parenthesized_arrow(self) -> None:
        assert normalize_source("(xp) => xp + 1") == "lambda xp: (xp + 1)"

    def test_newlines_flattened(self) -> None:
        assert "\n" not in normalize_source("lambda x:\n  x +\r\n 1")

    def test_lambda_untouched(self) -> None:
        assert normalize_source("lambda x: x") == "lambda x: x"


class TestCompileFormula:
    def test_lambda(self) -> None:
        fn = compile_formula("lambda x: x * 2")
        assert fn(4) == 8

    def test_arrow(self) -> None:
        fn = compile_formula("x => x * 2")
        assert [fn(x) for x in range(5)] == [0, 2, 4, 6, 8]

    def test_multiline_source(self) -> None:
        fn = compile_formula("lambda x:\n    x + 1\n")
        assert fn(1) == 2

    def test_math_names(self) -> None:
        fn = compile_formula("x => floor(sqrt(x))")
        assert fn(17) == 4

    def test_js_style_math(self) -> None:
        fn = compile_formula("x => Math.floor(Math.pow(x, 0.5)) + Math.round(0.5)")
        assert fn(16) == 5

    def test_conditional_expression(self) -> None:
        fn = compile_formula("lambda x: 1 if x > 10 else 0")
        assert (fn(5), fn(11)) == (0, 1)

    def test_syntax_error(self) -> None:
        with pytest.raises(FormulaCompileError) as exc:
            compile_formula("x => x *", index=2, name="Broken")
        assert "index 2" in str(exc.value)
        assert "Broken" in str(exc.value)
        assert exc.value.index == 2

    def test_statement_is_not_an_expression(self) -> None:
        with pytest.raises(FormulaCompileError):
            compile_formula("def f(x): return x")

    def test_not_callable(self) -> None:
        with pytest.raises(FormulaCompileError) as exc:
            compile_formula("42", index=0)
        assert "not callable" in str(exc.value)

    def test_error_while_binding(self) -> None:
        with pytest.raises(FormulaCompileError) as exc:
            compile_formula("undefined_name")
        assert "NameError" in str(exc.value)

    def test_non_string_source(self) -> None:
        with pytest.raises(FormulaCompileError):
            compile_formula(None)  # type: ignore[arg-type]

    def test_too_long(self) -> None:
        with pytest.raises(RequestLimitError):
            compile_formula("lambda x: " + "1 + " * 100 + "1", max_length=50)


class TestIsolation:
    @pytest.mark.parametrize(
        "source",
        [
            "lambda x: __import__('os').getcwd()",
            "lambda x: x.__class__",
            "lambda x: ().__class__.__base__.__subclasses__()",
            "lambda x: Math.__dict__",
            "lambda x: '{0.__class__}'.format(x)",
            "lambda x: (g for g in [1]).gi_frame",
            "lambda x: (y for y in [x]).gi_frame.f_back.f_globals",
            "lambda __x: __x",
        ],
    )
    def test_blocked_syntax(self, source: str) -> None:
        with pytest.raises(FormulaCompileError):
            compile_formula(source)

    def test_import_statement_rejected(self) -> None:
        with pytest.raises(FormulaCompileError):
            compile_formula("import os")

    @pytest.mark.parametrize("name", ["open", "eval", "exec", "getattr", "globals", "vars", "type", "compile"])
    def test_dangerous_builtins_missing(self, name: str) -> None:
        fn = compile_formula(f"lambda x: {name}")
        with pytest.raises(NameError):
            fn(0)

    def test_module_globals_unreachable(self) -> None:
        fn = compile_formula("lambda x: settings")
        with pytest.raises(NameError):
            fn(0)

    def test_fresh_namespace_each_time(self) -> None:
        a = make_namespace()
        b = make_namespace()
        assert a is not b
        assert a["__builtins__"] is not b["__builtins__"]
        assert a["Math"] is not b["Math"]

    def test_formulas_do_not_share_state(self) -> None:
        first = compile_formula("lambda x: [Math.PI]")
        second = compile_formula("lambda x: Math.PI")
        assert first.func.__globals__ is not second.func.__globals__
        assert second(0) == first(0)[0]
