"""Functions available to compiled scripts at run time.

Every function works on Python floats and mirrors IEEE semantics where the
standard ``math`` module would raise: division by zero yields an infinity
or NaN, domain errors yield NaN and overflow yields an infinity.
"""

from __future__ import annotations

import math
import random
from collections import Counter
from typing import Iterable, Iterator

from .. import constants

NAN = float("nan")
INF = float("inf")


def acompare(x: float, y: float) -> int:
    """Compare with an absolute tolerance; returns -1, 0 or 1."""
    diff = x - y
    if abs(diff) <= constants.COMPARISON_TOLERANCE:
        return 0
    return 1 if diff > 0 else -1


def _is_zero(x: float) -> bool:
    return acompare(x, 0.0) == 0


def _truth(flag: bool) -> float:
    return 1.0 if flag else 0.0


def _finite(values: Iterable[float]) -> list[float]:
    return [float(v) for v in values if not math.isnan(v)]


class JiffleFunctions:
    """Function library bound to one runtime object."""

    def __init__(self, seed: int | None = None):
        self._random = random.Random(seed)

    # ── truth and logic ──────────────────────────────────────────

    def is_true(self, x: float) -> bool:
        if math.isnan(x):
            return False
        return not _is_zero(x)

    def not_(self, x: float) -> float:
        if math.isnan(x):
            return NAN
        return _truth(_is_zero(x))

    def and_(self, x: float, y: float) -> float:
        if math.isnan(x) or math.isnan(y):
            return NAN
        return _truth(not _is_zero(x) and not _is_zero(y))

    def or_(self, x: float, y: float) -> float:
        if math.isnan(x) or math.isnan(y):
            return NAN
        return _truth(not _is_zero(x) or not _is_zero(y))

    def xor(self, x: float, y: float) -> float:
        if math.isnan(x) or math.isnan(y):
            return NAN
        return _truth((not _is_zero(x)) != (not _is_zero(y)))

    # ── comparison ───────────────────────────────────────────────

    def gt(self, x: float, y: float) -> float:
        if math.isnan(x) or math.isnan(y):
            return NAN
        return _truth(acompare(x, y) > 0)

    def ge(self, x: float, y: float) -> float:
        if math.isnan(x) or math.isnan(y):
            return NAN
        return _truth(acompare(x, y) >= 0)

    def lt(self, x: float, y: float) -> float:
        if math.isnan(x) or math.isnan(y):
            return NAN
        return _truth(acompare(x, y) < 0)

    def le(self, x: float, y: float) -> float:
        if math.isnan(x) or math.isnan(y):
            return NAN
        return _truth(acompare(x, y) <= 0)

    def eq(self, x: float, y: float) -> float:
        if math.isnan(x) or math.isnan(y):
            return NAN
        return _truth(acompare(x, y) == 0)

    def ne(self, x: float, y: float) -> float:
        if math.isnan(x) or math.isnan(y):
            return NAN
        return _truth(acompare(x, y) != 0)

    def sign_switch(self, x: float, positive: float, zero: float, negative: float) -> float:
        if math.isnan(x):
            return NAN
        sign = acompare(x, 0.0)
        if sign > 0:
            return positive
        if sign == 0:
            return zero
        return negative

    # ── arithmetic ───────────────────────────────────────────────

    def div(self, x: float, y: float) -> float:
        if y == 0.0:
            if math.isnan(x) or x == 0.0:
                return NAN
            return math.copysign(INF, x) * math.copysign(1.0, y)
        return x / y

    def mod(self, x: float, y: float) -> float:
        if y == 0.0 or math.isinf(x):
            return NAN
        return math.fmod(x, y)

    def pow(self, x: float, y: float) -> float:
        try:
            return math.pow(x, y)
        except OverflowError:
            return INF
        except (ValueError, ZeroDivisionError):
            if x == 0.0 and y < 0.0:
                return INF
            return NAN

    # ── scalar functions ─────────────────────────────────────────

    def abs(self, x: float) -> float:
        return math.fabs(x)

    def acos(self, x: float) -> float:
        return math.acos(x) if -1.0 <= x <= 1.0 else NAN

    def asin(self, x: float) -> float:
        return math.asin(x) if -1.0 <= x <= 1.0 else NAN

    def atan(self, x: float) -> float:
        return math.atan(x)

    def ceil(self, x: float) -> float:
        if math.isnan(x) or math.isinf(x):
            return x
        return float(math.ceil(x))

    def floor(self, x: float) -> float:
        if math.isnan(x) or math.isinf(x):
            return x
        return float(math.floor(x))

    def cos(self, x: float) -> float:
        return math.cos(x) if not math.isinf(x) else NAN

    def sin(self, x: float) -> float:
        return math.sin(x) if not math.isinf(x) else NAN

    def tan(self, x: float) -> float:
        return math.tan(x) if not math.isinf(x) else NAN

    def deg_to_rad(self, x: float) -> float:
        return math.pi * x / 180.0

    def rad_to_deg(self, x: float) -> float:
        return x / math.pi * 180.0

    def exp(self, x: float) -> float:
        try:
            return math.exp(x)
        except OverflowError:
            return INF

    def isinf(self, x: float) -> float:
        if math.isnan(x):
            return NAN
        return _truth(math.isinf(x))

    def isnan(self, x: float) -> float:
        return _truth(math.isnan(x))

    def log(self, x: float) -> float:
        if math.isnan(x) or x < 0.0:
            return NAN
        if x == 0.0:
            return -INF
        return math.log(x)

    def log_base(self, x: float, b: float) -> float:
        return self.div(self.log(x), self.log(b))

    def max(self, x: float, y: float) -> float:
        if math.isnan(x) or math.isnan(y):
            return NAN
        return max(x, y)

    def min(self, x: float, y: float) -> float:
        if math.isnan(x) or math.isnan(y):
            return NAN
        return min(x, y)

    def rand(self, x: float) -> float:
        return self._random.random() * x

    def rand_int(self, x: float) -> float:
        if not math.isfinite(x):
            return NAN
        upper = int(x)
        if upper <= 0:
            return NAN
        return float(self._random.randrange(upper))

    def round(self, x: float) -> float:
        if math.isnan(x) or math.isinf(x):
            return x
        return float(math.floor(x + 0.5))

    def round_prec(self, x: float, prec: float) -> float:
        if not math.isfinite(prec):
            return NAN
        factor = int(prec + 0.5)
        if factor == 0:
            return self.round(x)
        return self.round(x / factor) * factor

    def sqrt(self, x: float) -> float:
        if math.isnan(x) or x < 0.0:
            return NAN
        return math.sqrt(x)

    # ── list functions ───────────────────────────────────────────

    def list_max(self, values: list) -> float:
        data = _finite(values)
        return max(data) if data else NAN

    def list_min(self, values: list) -> float:
        data = _finite(values)
        return min(data) if data else NAN

    def mean(self, values: list) -> float:
        data = _finite(values)
        return math.fsum(data) / len(data) if data else NAN

    def median(self, values: list) -> float:
        data = sorted(_finite(values))
        n = len(data)
        if n == 0:
            return NAN
        mid = n // 2
        if n % 2:
            return data[mid]
        return (data[mid - 1] + data[mid]) / 2.0

    def mode(self, values: list) -> float:
        data = _finite(values)
        if not data:
            return NAN
        counts = Counter(data)
        top = max(counts.values())
        return min(v for v, c in counts.items() if c == top)

    def range(self, values: list) -> float:
        data = _finite(values)
        return max(data) - min(data) if data else NAN

    def sum(self, values: list) -> float:
        data = _finite(values)
        return math.fsum(data) if data else NAN

    def variance(self, values: list) -> float:
        data = _finite(values)
        n = len(data)
        if n < 2:
            return NAN
        mean = math.fsum(data) / n
        return math.fsum((v - mean) ** 2 for v in data) / (n - 1)

    def sdev(self, values: list) -> float:
        var = self.variance(values)
        return math.sqrt(var) if not math.isnan(var) else NAN

    def concat(self, a, b) -> list:
        left = list(a) if isinstance(a, list) else [a]
        right = list(b) if isinstance(b, list) else [b]
        return left + right

    # ── loop helpers ─────────────────────────────────────────────

    def seq(self, low: float, high: float) -> Iterator[float]:
        """Yield the integers from *low* to *high* inclusive, as floats."""
        if not (math.isfinite(low) and math.isfinite(high)):
            return
        for value in range(int(low), int(high) + 1):
            yield float(value)

    def postfix(self, old: float, new: float) -> float:
        """Value of a postfix increment: the operand before the update."""
        return old
