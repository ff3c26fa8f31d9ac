"""Interpreted backend — evaluates the IR directly, without generated source."""

from __future__ import annotations

import logging
from typing import Callable

from ..codegen import FUNCTION_OPS
from ..compiler_types import RuntimeConfig
from ..ir import (
    Assign,
    AssignOperator,
    BinaryOp,
    BinaryOperator,
    Block,
    BreakIf,
    Conditional,
    Evaluate,
    ForeachList,
    ForeachRange,
    FunctionCall,
    IfElse,
    ImageInfo,
    ImageRead,
    IncDec,
    ListAppend,
    ListLiteral,
    Number,
    ScriptIR,
    SetDestValue,
    UnaryOp,
    UnaryOperator,
    Until,
    VarKind,
    VarRef,
    While,
)
from .base import AbstractJiffleRuntime
from .direct import AbstractDirectRuntime
from .functions import NAN
from .indirect import AbstractIndirectRuntime

logger = logging.getLogger(__name__)


class _BreakLoop(Exception):
    """Unwinds to the innermost enclosing loop."""


_INFIX: dict[BinaryOperator, Callable[[float, float], float]] = {
    BinaryOperator.ADD: lambda a, b: a + b,
    BinaryOperator.SUB: lambda a, b: a - b,
    BinaryOperator.MUL: lambda a, b: a * b,
}


class IRInterpreter:
    """Tree-walking evaluator over a ScriptIR, bound to one runtime object.

    Produces the same values as the generated runtime classes: init-block
    variables live in ``runtime.globals_``; locals and loop variables live in
    a per-pixel environment that starts out empty (reads give NaN).
    """

    def __init__(self, script: ScriptIR, runtime: AbstractJiffleRuntime):
        self.script = script
        self.runtime = runtime
        self.fn = runtime.functions
        self._x = NAN
        self._y = NAN
        self._env: dict[tuple, object] = {}
        self._result: dict[int, float] | None = None
        self._STMT_DISPATCH: dict[str, Callable] = {
            "assign": self._assign,
            "set_dest": self._set_dest,
            "list_append": self._list_append,
            "evaluate": lambda s: self._expr(s.expr),
            "block": self._block,
            "if": self._if,
            "while": self._while,
            "until": self._until,
            "foreach_range": self._foreach_range,
            "foreach_list": self._foreach_list,
            "break": self._break,
            "break_if": self._break_if,
        }
        self._EXPR_DISPATCH: dict[str, Callable] = {
            "number": lambda n: NAN if n.value is None else n.value,
            "list": self._list_literal,
            "var": self._load,
            "image_read": self._image_read,
            "image_info": self._image_info,
            "binary": self._binary,
            "unary": self._unary,
            "incdec": self._incdec,
            "call": self._call,
            "conditional": self._conditional,
        }

    def init_globals(self) -> None:
        runtime = self.runtime
        self.fn = runtime.functions
        runtime.globals_.clear()
        self._env = {}
        for var in self.script.globals:
            if var.name in runtime.var_overrides:
                value = runtime.var_overrides[var.name]
            elif var.value is not None:
                value = self._expr(var.value)
            else:
                value = NAN
            runtime.globals_[var.name] = value

    def run(self, x: float, y: float, result: dict[int, float] | None = None) -> None:
        self.runtime.begin_pixel()
        self._x, self._y = x, y
        self._env = {}
        self._result = result
        for stmt in self.script.statements:
            self._stmt(stmt)

    # ── variables ────────────────────────────────────────────────

    def _load(self, var: VarRef):
        if var.var_kind == VarKind.GLOBAL:
            return self.runtime.globals_[var.name]
        return self._env.get((var.var_kind, var.name, var.slot), NAN)

    def _store(self, var: VarRef, value) -> None:
        if var.var_kind == VarKind.GLOBAL:
            self.runtime.globals_[var.name] = value
        else:
            self._env[(var.var_kind, var.name, var.slot)] = value

    # ── statements ───────────────────────────────────────────────

    def _stmt(self, stmt) -> None:
        self._STMT_DISPATCH[stmt.kind](stmt)

    def _assign(self, stmt: Assign) -> None:
        value = self._expr(stmt.value)
        if stmt.op == AssignOperator.ASSIGN:
            self._store(stmt.target, list(value) if stmt.copy_list else value)
        else:
            self._store(stmt.target, self._apply(stmt.op.binary, self._load(stmt.target), value))

    def _set_dest(self, stmt: SetDestValue) -> None:
        band = self._expr(stmt.band)
        value = self._expr(stmt.value)
        if self._result is None:
            self.runtime.write_dest(stmt.image, self._x, self._y, band, value)
        else:
            self._result[self.runtime.band_index(band)] = value

    def _list_append(self, stmt: ListAppend) -> None:
        value = self._expr(stmt.value)
        self._load(stmt.target).append(value)

    def _block(self, stmt: Block) -> None:
        for child in stmt.statements:
            self._stmt(child)

    def _if(self, stmt: IfElse) -> None:
        if self.fn.is_true(self._expr(stmt.condition)):
            self._stmt(stmt.then)
        elif stmt.otherwise is not None:
            self._stmt(stmt.otherwise)

    def _loop_body(self, body) -> bool:
        """Run one iteration; returns False when the loop was broken."""
        self.runtime.count_iteration()
        try:
            self._stmt(body)
        except _BreakLoop:
            return False
        return True

    def _while(self, stmt: While) -> None:
        while self.fn.is_true(self._expr(stmt.condition)):
            if not self._loop_body(stmt.body):
                break

    def _until(self, stmt: Until) -> None:
        while not self.fn.is_true(self._expr(stmt.condition)):
            if not self._loop_body(stmt.body):
                break

    def _foreach_range(self, stmt: ForeachRange) -> None:
        for value in self.fn.seq(self._expr(stmt.low), self._expr(stmt.high)):
            self._store(stmt.var, value)
            if not self._loop_body(stmt.body):
                break

    def _foreach_list(self, stmt: ForeachList) -> None:
        for value in list(self._expr(stmt.items)):
            self._store(stmt.var, value)
            if not self._loop_body(stmt.body):
                break

    def _break(self, stmt) -> None:
        raise _BreakLoop()

    def _break_if(self, stmt: BreakIf) -> None:
        if self.fn.is_true(self._expr(stmt.condition)):
            raise _BreakLoop()

    # ── expressions ──────────────────────────────────────────────

    def _expr(self, expr):
        return self._EXPR_DISPATCH[expr.kind](expr)

    def _list_literal(self, expr: ListLiteral) -> list:
        return [self._expr(item) for item in expr.items]

    def _position(self, origin: float, coord, absolute: bool) -> float:
        value = self._expr(coord)
        return value if absolute else origin + value

    def _image_read(self, expr: ImageRead) -> float:
        x = self._position(self._x, expr.x, expr.x_absolute)
        y = self._position(self._y, expr.y, expr.y_absolute)
        return self.runtime.read_source(expr.image, x, y, self._expr(expr.band))

    def _image_info(self, expr: ImageInfo) -> float:
        return self.runtime.get_image_info(expr.image, expr.attribute)

    def _apply(self, op: BinaryOperator, left, right):
        if op in _INFIX:
            return _INFIX[op](left, right)
        return getattr(self.fn, FUNCTION_OPS[op])(left, right)

    def _binary(self, expr: BinaryOp):
        return self._apply(expr.op, self._expr(expr.left), self._expr(expr.right))

    def _unary(self, expr: UnaryOp) -> float:
        operand = self._expr(expr.operand)
        if expr.op == UnaryOperator.NOT:
            return self.fn.not_(operand)
        return -operand if expr.op == UnaryOperator.NEG else +operand

    def _incdec(self, expr: IncDec) -> float:
        old = self._load(expr.target)
        new = old + expr.delta
        self._store(expr.target, new)
        return new if expr.prefix else old

    def _call(self, expr: FunctionCall):
        if expr.proxy:
            if expr.runtime_name == "_x":
                return self._x
            if expr.runtime_name == "_y":
                return self._y
            return getattr(self.runtime, expr.runtime_name)()
        args = [self._expr(arg) for arg in expr.args]
        return getattr(self.fn, expr.runtime_name)(*args)

    def _conditional(self, expr: Conditional):
        if self.fn.is_true(self._expr(expr.condition)):
            return self._expr(expr.if_true)
        return self._expr(expr.if_false)


def _configure(runtime: AbstractJiffleRuntime, script: ScriptIR) -> IRInterpreter:
    runtime.OUTSIDE_SET = script.options.outside_set
    runtime.OUTSIDE_VALUE = NAN if script.options.outside is None else script.options.outside
    runtime.GLOBAL_NAMES = tuple(g.name for g in script.globals)
    return IRInterpreter(script, runtime)


class InterpretedDirectRuntime(AbstractDirectRuntime):
    """Direct runtime that walks the IR instead of running generated code."""

    MODEL = "direct"

    def __init__(self, script: ScriptIR, config: RuntimeConfig | None = None):
        super().__init__(config)
        self._interpreter = _configure(self, script)

    def init_globals(self) -> None:
        self._interpreter.init_globals()

    def evaluate(self, x: float, y: float) -> None:
        self._interpreter.run(x, y)


class InterpretedIndirectRuntime(AbstractIndirectRuntime):
    """Indirect runtime that walks the IR instead of running generated code."""

    MODEL = "indirect"

    def __init__(self, script: ScriptIR, config: RuntimeConfig | None = None):
        super().__init__(config)
        self._interpreter = _configure(self, script)

    def init_globals(self) -> None:
        self._interpreter.init_globals()

    def evaluate_into(self, x: float, y: float, result: dict[int, float]) -> None:
        self._interpreter.run(x, y, result)
