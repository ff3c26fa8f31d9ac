"""Tests for the runtime function library used by generated and interpreted code."""

import math

import pytest

from jiffle.runtime.functions import JiffleFunctions, acompare

NAN = float("nan")
INF = float("inf")


@pytest.fixture
def fn():
    return JiffleFunctions(seed=42)


class TestComparison:
    def test_tolerant_equality(self, fn):
        assert fn.eq(1.0, 1.0 + 1e-9) == 1.0
        assert fn.ne(1.0, 1.1) == 1.0
        assert acompare(1.0, 1.0 + 1e-9) == 0

    def test_ordering(self, fn):
        assert fn.lt(1.0, 2.0) == 1.0
        assert fn.ge(1.0, 2.0) == 0.0
        assert fn.le(2.0, 2.0) == 1.0
        assert fn.gt(3.0, 2.0) == 1.0

    def test_nan_propagates(self, fn):
        for op in (fn.lt, fn.le, fn.gt, fn.ge, fn.eq, fn.ne, fn.and_, fn.or_, fn.xor):
            assert math.isnan(op(NAN, 1.0))

    def test_sign_switch(self, fn):
        assert fn.sign_switch(-3.0, 1.0, 2.0, 3.0) == 3.0
        assert fn.sign_switch(0.0, 1.0, 2.0, 3.0) == 2.0
        assert fn.sign_switch(5.0, 1.0, 2.0, 3.0) == 1.0
        assert math.isnan(fn.sign_switch(NAN, 1.0, 2.0, 3.0))


class TestLogic:
    def test_truth(self, fn):
        assert fn.is_true(2.0)
        assert not fn.is_true(0.0)
        assert not fn.is_true(NAN)

    def test_operators(self, fn):
        assert fn.and_(1.0, 0.0) == 0.0
        assert fn.or_(1.0, 0.0) == 1.0
        assert fn.xor(1.0, 1.0) == 0.0
        assert fn.not_(0.0) == 1.0
        assert math.isnan(fn.not_(NAN))


class TestArithmetic:
    def test_division(self, fn):
        assert fn.div(1.0, 0.0) == INF
        assert fn.div(-1.0, 0.0) == -INF
        assert math.isnan(fn.div(0.0, 0.0))
        assert fn.div(6.0, 3.0) == 2.0

    def test_modulo(self, fn):
        assert fn.mod(7.0, 3.0) == 1.0
        assert fn.mod(-7.0, 3.0) == -1.0
        assert math.isnan(fn.mod(1.0, 0.0))

    def test_power(self, fn):
        assert fn.pow(2.0, 10.0) == 1024.0
        assert fn.pow(0.0, -1.0) == INF
        assert math.isnan(fn.pow(-8.0, 1.0 / 3.0))

    def test_rounding(self, fn):
        assert fn.round(2.5) == 3.0
        assert fn.round(-2.5) == -2.0
        assert fn.round_prec(1234.0, 100.0) == 1200.0
        assert fn.floor(-1.5) == -2.0
        assert fn.ceil(-1.5) == -1.0

    def test_domain_errors_give_nan(self, fn):
        assert math.isnan(fn.sqrt(-1.0))
        assert math.isnan(fn.log(-1.0))
        assert fn.log(0.0) == -INF
        assert math.isnan(fn.acos(2.0))

    def test_angles(self, fn):
        assert fn.deg_to_rad(180.0) == pytest.approx(math.pi)
        assert fn.rad_to_deg(math.pi / 2) == pytest.approx(90.0)

    def test_postfix_returns_previous_value(self, fn):
        assert fn.postfix(1.0, 2.0) == 1.0


class TestListFunctions:
    def test_statistics_ignore_nan(self, fn):
        values = [1.0, NAN, 3.0]
        assert fn.sum(values) == 4.0
        assert fn.mean(values) == 2.0
        assert fn.list_max(values) == 3.0
        assert fn.list_min(values) == 1.0
        assert fn.range(values) == 2.0

    def test_median_and_mode(self, fn):
        assert fn.median([3.0, 1.0, 2.0]) == 2.0
        assert fn.median([4.0, 1.0, 3.0, 2.0]) == 2.5
        assert fn.mode([1.0, 2.0, 2.0, 3.0, 3.0]) == 2.0

    def test_spread(self, fn):
        assert fn.variance([1.0, 2.0, 3.0, 4.0]) == pytest.approx(5.0 / 3.0)
        assert fn.sdev([2.0, 2.0]) == 0.0
        assert math.isnan(fn.variance([1.0]))

    def test_empty_lists(self, fn):
        for op in (fn.sum, fn.mean, fn.median, fn.mode, fn.list_max):
            assert math.isnan(op([]))

    def test_concat(self, fn):
        assert fn.concat([1.0], 2.0) == [1.0, 2.0]
        assert fn.concat(0.0, [1.0]) == [0.0, 1.0]


class TestSequencesAndRandom:
    def test_seq(self, fn):
        assert list(fn.seq(1.0, 3.0)) == [1.0, 2.0, 3.0]
        assert list(fn.seq(NAN, 3.0)) == []

    def test_seeded_random_is_repeatable(self):
        a, b = JiffleFunctions(seed=7), JiffleFunctions(seed=7)
        assert [a.rand(10.0) for _ in range(5)] == [b.rand(10.0) for _ in range(5)]

    def test_rand_int_range(self, fn):
        values = {fn.rand_int(3.0) for _ in range(50)}
        assert values <= {0.0, 1.0, 2.0}
        assert math.isnan(fn.rand_int(0.0))
