"""Lookup tables for named constants, script options and runtime functions."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from .compiler_types import JiffleType
from . import constants

D = JiffleType.D
LIST = JiffleType.LIST

# None stands for NaN so that constant nodes compare equal structurally.
CONSTANTS: dict[str, float | None] = {
    "M_E": math.e,
    "M_PI": math.pi,
    "M_PI_2": math.pi / 2.0,
    "M_PI_4": math.pi / 4.0,
    "M_SQRT2": math.sqrt(2.0),
    "M_NaN": None,
    "M_NAN": None,
    "NaN": None,
    "NAN": None,
}


def is_constant(name: str) -> bool:
    return name in CONSTANTS


def constant_value(name: str) -> float | None:
    if name not in CONSTANTS:
        raise ValueError(f"Unknown constant: {name}")
    return CONSTANTS[name]


# ── Options ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class OptionInfo:
    name: str
    accepts_null: bool
    accepts_number: bool
    accepts_constant: bool


OPTIONS: dict[str, OptionInfo] = {
    constants.OPTION_OUTSIDE: OptionInfo(
        name=constants.OPTION_OUTSIDE,
        accepts_null=True,
        accepts_number=True,
        accepts_constant=True,
    ),
}


def is_valid_option(name: str) -> bool:
    return name in OPTIONS


def get_option(name: str) -> OptionInfo:
    info = OPTIONS.get(name)
    if info is None:
        raise ValueError(f"Unknown option: {name}")
    return info


# ── Functions ────────────────────────────────────────────────────


class FunctionProvider(Enum):
    """Where a script function is implemented at run time."""

    JIFFLE = "jiffle"
    PROXY = "proxy"


@dataclass(frozen=True)
class FunctionInfo:
    name: str
    runtime_name: str
    provider: FunctionProvider
    return_type: JiffleType
    arg_types: tuple[JiffleType, ...] = ()

    @property
    def is_proxy(self) -> bool:
        return self.provider == FunctionProvider.PROXY


def _fn(name, runtime_name, return_type, *arg_types):
    return FunctionInfo(
        name=name,
        runtime_name=runtime_name,
        provider=FunctionProvider.JIFFLE,
        return_type=return_type,
        arg_types=tuple(arg_types),
    )


def _proxy(name, runtime_name):
    return FunctionInfo(
        name=name,
        runtime_name=runtime_name,
        provider=FunctionProvider.PROXY,
        return_type=D,
    )


FUNCTIONS: tuple[FunctionInfo, ...] = (
    _fn("abs", "abs", D, D),
    _fn("acos", "acos", D, D),
    _fn("asin", "asin", D, D),
    _fn("atan", "atan", D, D),
    _fn("ceil", "ceil", D, D),
    _fn("cos", "cos", D, D),
    _fn("degToRad", "deg_to_rad", D, D),
    _fn("exp", "exp", D, D),
    _fn("floor", "floor", D, D),
    _fn("isinf", "isinf", D, D),
    _fn("isnan", "isnan", D, D),
    _fn("isnull", "isnan", D, D),
    _fn("log", "log", D, D),
    _fn("log", "log_base", D, D, D),
    _fn("max", "max", D, D, D),
    _fn("max", "list_max", D, LIST),
    _fn("mean", "mean", D, LIST),
    _fn("median", "median", D, LIST),
    _fn("min", "min", D, D, D),
    _fn("min", "list_min", D, LIST),
    _fn("mode", "mode", D, LIST),
    _fn("radToDeg", "rad_to_deg", D, D),
    _fn("rand", "rand", D, D),
    _fn("randInt", "rand_int", D, D),
    _fn("range", "range", D, LIST),
    _fn("round", "round", D, D),
    _fn("round", "round_prec", D, D, D),
    _fn("sdev", "sdev", D, LIST),
    _fn("sin", "sin", D, D),
    _fn("sqrt", "sqrt", D, D),
    _fn("sum", "sum", D, LIST),
    _fn("tan", "tan", D, D),
    _fn("variance", "variance", D, LIST),
    _fn("concat", "concat", LIST, LIST, D),
    _fn("concat", "concat", LIST, D, LIST),
    _fn("concat", "concat", LIST, LIST, LIST),
    _proxy("x", "_x"),
    _proxy("y", "_y"),
    _proxy("width", "get_width"),
    _proxy("height", "get_height"),
    _proxy("xmin", "get_min_x"),
    _proxy("xmax", "get_max_x"),
    _proxy("ymin", "get_min_y"),
    _proxy("ymax", "get_max_y"),
    _proxy("xres", "get_x_res"),
    _proxy("yres", "get_y_res"),
)

_FUNCTION_INDEX: dict[tuple[str, tuple[JiffleType, ...]], FunctionInfo] = {
    (info.name, info.arg_types): info for info in FUNCTIONS
}

# Proxies that depend on the current pixel rather than the world
POSITION_PROXIES: frozenset[str] = frozenset({"x", "y"})

CON_FUNCTION = "con"


def get_info(name: str, arg_types: tuple[JiffleType, ...]) -> FunctionInfo:
    """Resolve a function by name and argument types.

    Raises ``ValueError`` if no overload matches.
    """
    info = _FUNCTION_INDEX.get((name, tuple(arg_types)))
    if info is None:
        signature = ", ".join(t.value for t in arg_types)
        raise ValueError(f"Unknown function: {name}({signature})")
    return info
