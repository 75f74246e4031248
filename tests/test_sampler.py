"""
Tests for xpgraph.sampler

Checks:
1. classify(): finite numbers pass through, everything else is UNDEFINED
2. sample(): exceptions never escape
3. build_series / build_batch: alignment, ordering, fail-fast
"""

import math
from fractions import Fraction

import numpy as np
import pytest

from xpgraph.domain import build_domain
from xpgraph.errors import FormulaCompileError
from xpgraph.sampler import UNDEFINED, Sample, build_batch, build_series, classify, sample
from xpgraph.sandbox import compile_formula


class TestClassify:
    @pytest.mark.parametrize("value", [0, 5, -3, 2.5, 1e300, -0.0])
    def test_finite_pass_through(self, value) -> None:
        result = classify(value)
        assert result.is_defined
        assert result.value == value
        assert type(result.value) is type(value)

    @pytest.mark.parametrize(
        "value",
        [math.nan, math.inf, -math.inf, "5", None, True, False, 1 + 2j, [1], {"a": 1}, object(), 10**400],
    )
    def test_invalid_is_undefined(self, value) -> None:
        assert classify(value) is UNDEFINED

    def test_numpy_scalars_become_builtin(self) -> None:
        assert classify(np.float64(1.5)) == Sample(1.5)
        assert type(classify(np.int64(3)).value) is int
        assert classify(np.float64("nan")) is UNDEFINED

    def test_fraction_becomes_float(self) -> None:
        assert classify(Fraction(1, 4)) == Sample(0.25)


class TestSample:
    def test_value(self) -> None:
        assert sample(lambda x: x * 2, 3) == Sample(6)

    def test_exception_swallowed(self) -> None:
        def boom(x):
            raise RuntimeError("nope")

        assert sample(boom, 1) is UNDEFINED

    def test_zero_division(self) -> None:
        fn = compile_formula("x => 10 / x")
        assert sample(fn, 0) is UNDEFINED
        assert sample(fn, 5) == Sample(2.0)

    def test_wrong_arity(self) -> None:
        fn = compile_formula("lambda x, y: x + y")
        assert sample(fn, 1) is UNDEFINED

    def test_recursion(self) -> None:
        fn = compile_formula("lambda x: (f := lambda n: f(n + 1))(x)")
        assert sample(fn, 0) is UNDEFINED

    def test_math_domain_error(self) -> None:
        fn = compile_formula("x => log(x)")
        assert sample(fn, 0) is UNDEFINED


class TestBuildSeries:
    def test_doubling_example(self) -> None:
        series = build_series("Double", "x => x * 2", build_domain(5))
        assert series.name == "Double"
        assert series.values == [0, 2, 4, 6, 8]

    @pytest.mark.parametrize("xp_max", [0, 1, 7, 250])
    def test_aligned_with_domain(self, xp_max: int) -> None:
        domain = build_domain(xp_max)
        series = build_series("Id", "lambda x: x", domain)
        assert len(series.levels) == len(domain)
        assert series.values == list(domain)

    def test_constant(self) -> None:
        series = build_series("Five", "x => 5", build_domain(50))
        assert series.values == [5] * 50
        assert series.undefined_count == 0

    def test_always_raises(self) -> None:
        series = build_series("Boom", "lambda x: 1 / 0", build_domain(20))
        assert series.values == [None] * 20
        assert series.undefined_count == 20

    def test_even_only(self) -> None:
        series = build_series("Even", "lambda x: x if x % 2 == 0 else 1 / 0", build_domain(10))
        assert series.values == [0, None, 2, None, 4, None, 6, None, 8, None]

    def test_non_numeric_results(self) -> None:
        series = build_series("Mixed", "lambda x: [x, 'a', None, float('nan'), True][x % 5]", build_domain(5))
        assert series.values == [0, None, None, None, None]

    def test_compile_error(self) -> None:
        with pytest.raises(FormulaCompileError):
            build_series("Bad", "x =>", build_domain(5), index=3)

    def test_deterministic(self) -> None:
        a = build_series("Sq", "x => x ** 2 / 7", build_domain(100))
        b = build_series("Sq", "x => x ** 2 / 7", build_domain(100))
        assert a.values == b.values

    def test_to_dict(self) -> None:
        series = build_series("Half", "x => 1 / x", build_domain(3))
        assert series.to_dict() == {"name": "Half", "levels": [None, 1.0, 0.5]}


class TestBuildBatch:
    def test_order_and_domain(self) -> None:
        result = build_batch([("A", "x => x"), ("B", "x => -x")], 4)
        assert list(result.domain) == [0, 1, 2, 3]
        assert [s.name for s in result.series] == ["A", "B"]
        assert result.series[1].values == [0, -1, -2, -3]

    def test_empty_batch(self) -> None:
        assert build_batch([], 10).to_dict() == {"domain": list(range(10)), "series": []}

    def test_fail_fast(self) -> None:
        with pytest.raises(FormulaCompileError) as exc:
            build_batch([("Ok", "x => x"), ("Bad", "x => (")], 5)
        assert exc.value.index == 1
        assert "index 1" in str(exc.value)
