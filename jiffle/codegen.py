"""Source Generator — renders a ScriptIR as a Python runtime class."""

from __future__ import annotations

import logging
import math
import re
from typing import Callable

from . import constants
from .compiler_types import RuntimeModel
from .errors import RuntimeModelViolation
from .ir import (
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

logger = logging.getLogger(__name__)

INFIX_OPS: dict[BinaryOperator, str] = {
    BinaryOperator.ADD: "+",
    BinaryOperator.SUB: "-",
    BinaryOperator.MUL: "*",
}

FUNCTION_OPS: dict[BinaryOperator, str] = {
    BinaryOperator.DIV: "div",
    BinaryOperator.MOD: "mod",
    BinaryOperator.POW: "pow",
    BinaryOperator.LT: "lt",
    BinaryOperator.LE: "le",
    BinaryOperator.GT: "gt",
    BinaryOperator.GE: "ge",
    BinaryOperator.EQ: "eq",
    BinaryOperator.NE: "ne",
    BinaryOperator.AND: "and_",
    BinaryOperator.OR: "or_",
    BinaryOperator.XOR: "xor",
}

_VAR_PREFIXES: dict[VarKind, str] = {
    VarKind.GLOBAL: "g_",
    VarKind.LOCAL: constants.VAR_PREFIX,
    VarKind.LOOP: "lv",
}


class SourceWriter:
    """Accumulates indented lines of Python source."""

    INDENT = "    "

    def __init__(self):
        self._lines: list[str] = []
        self._level = 0

    def line(self, text: str = "") -> None:
        self._lines.append(f"{self.INDENT * self._level}{text}" if text else "")

    def indent(self) -> None:
        self._level += 1

    def dedent(self) -> None:
        self._level -= 1

    def mark(self) -> int:
        return len(self._lines)

    def text(self) -> str:
        return "\n".join(self._lines) + "\n"


def render_number(value: float | None) -> str:
    if value is None or math.isnan(value):
        return 'float("nan")'
    if math.isinf(value):
        return 'float("inf")' if value > 0 else '-float("inf")'
    return repr(float(value))


class SourceGenerator:
    """Renders one runtime class for a compiled script.

    Output depends only on the constructor arguments: the same IR, model,
    class name, base class name and script flag always give identical text.
    """

    def __init__(
        self,
        script: ScriptIR,
        model: RuntimeModel = RuntimeModel.DIRECT,
        class_name: str | None = None,
        base_class_name: str | None = None,
        include_script: bool = False,
    ):
        self.script = script
        self.model = model
        self.class_name = class_name or default_class_name(model)
        self.base_class_name = base_class_name or default_base_class_name(model)
        self.include_script = include_script
        self._names: dict[tuple, str] = {}
        self._taken: set[str] = set()
        self._writer = SourceWriter()
        self._STMT_DISPATCH: dict[str, Callable] = {
            "assign": self._assign,
            "set_dest": self._set_dest,
            "list_append": self._list_append,
            "evaluate": self._evaluate,
            "block": self._block,
            "if": self._if,
            "while": self._while,
            "until": self._until,
            "foreach_range": self._foreach_range,
            "foreach_list": self._foreach_list,
            "break": lambda _: self._writer.line("break"),
            "break_if": self._break_if,
        }
        self._EXPR_DISPATCH: dict[str, Callable] = {
            "number": lambda n: render_number(n.value),
            "list": self._list_literal,
            "var": self._var,
            "image_read": self._image_read,
            "image_info": self._image_info,
            "binary": self._binary,
            "unary": self._unary,
            "incdec": self._incdec,
            "call": self._call,
            "conditional": self._conditional,
        }

    def generate(self) -> str:
        if self.model == RuntimeModel.INDIRECT:
            check_indirect(self.script)
        w = self._writer
        if self.include_script:
            w.line("# Generated from Jiffle script:")
            for text in self.script.source_text.rstrip().splitlines():
                w.line(f"#   {text}".rstrip())
            w.line()
        w.line(f"class {self.class_name}({self.base_class_name}):")
        w.indent()
        w.line(f'"""Runtime class for the {self.model.value} model."""')
        w.line()
        self._class_attributes()
        w.line()
        self._init_globals()
        w.line()
        self._evaluate_method()
        w.dedent()
        source = w.text()
        logger.debug("Generated %s source:\n%s", self.model.value, source)
        return source

    # ── class layout ─────────────────────────────────────────────

    def _class_attributes(self) -> None:
        options = self.script.options
        names = ", ".join(repr(g.name) for g in self.script.globals)
        w = self._writer
        w.line(f"MODEL = {self.model.value!r}")
        w.line(f"OUTSIDE_SET = {options.outside_set!r}")
        w.line(f"OUTSIDE_VALUE = {render_number(options.outside)}")
        w.line(f"GLOBAL_NAMES = ({names}{',' if len(self.script.globals) == 1 else ''})")

    def _init_globals(self) -> None:
        w = self._writer
        w.line("def init_globals(self):")
        w.indent()
        w.line("_fn = self.functions")
        w.line("_overrides = self.var_overrides")
        w.line("_g = self.globals_")
        w.line("_g.clear()")
        names = []
        for var in self.script.globals:
            name = self._py_name(VarRef(name=var.name, var_kind=VarKind.GLOBAL))
            names.append((var.name, name))
            default = self._expr(var.value) if var.value is not None else render_number(None)
            w.line(
                f"{name} = _overrides[{var.name!r}] if {var.name!r} in _overrides else {default}"
            )
        for var_name, name in names:
            w.line(f"_g[{var_name!r}] = {name}")
        w.dedent()

    def _evaluate_method(self) -> None:
        w = self._writer
        if self.model == RuntimeModel.DIRECT:
            w.line("def evaluate(self, _x, _y):")
        else:
            w.line("def evaluate_into(self, _x, _y, _result):")
        w.indent()
        w.line("_fn = self.functions")
        w.line("_g = self.globals_")
        w.line("self.begin_pixel()")
        global_names = [
            (g.name, self._py_name(VarRef(name=g.name, var_kind=VarKind.GLOBAL)))
            for g in self.script.globals
        ]
        for name, py_name in global_names:
            w.line(f"{py_name} = _g[{name!r}]")
        for local in _collect_locals(self.script):
            w.line(f"{self._py_name(local)} = {render_number(None)}")
        for stmt in self.script.statements:
            self._stmt(stmt)
        for name, py_name in global_names:
            w.line(f"_g[{name!r}] = {py_name}")
        w.dedent()

    # ── naming ───────────────────────────────────────────────────

    def _py_name(self, var: VarRef) -> str:
        key = (var.var_kind, var.name, var.slot)
        if key in self._names:
            return self._names[key]
        prefix = _VAR_PREFIXES[var.var_kind]
        if var.var_kind == VarKind.LOOP:
            prefix = f"{prefix}{var.slot}_"
        base = prefix + re.sub(r"\W", "_", var.name)
        name, n = base, 1
        while name in self._taken:
            name = f"{base}_{n}"
            n += 1
        self._taken.add(name)
        self._names[key] = name
        return name

    # ── statements ───────────────────────────────────────────────

    def _stmt(self, stmt) -> None:
        self._STMT_DISPATCH[stmt.kind](stmt)

    def _suite(self, stmt) -> None:
        w = self._writer
        w.indent()
        start = w.mark()
        self._stmt(stmt)
        if w.mark() == start:
            w.line("pass")
        w.dedent()

    def _loop_suite(self, stmt) -> None:
        w = self._writer
        w.indent()
        w.line("self.count_iteration()")
        self._stmt(stmt)
        w.dedent()

    def _assign(self, stmt: Assign) -> None:
        target = self._py_name(stmt.target)
        value = self._expr(stmt.value)
        if stmt.op == AssignOperator.ASSIGN:
            rhs = f"list({value})" if stmt.copy_list else value
        else:
            rhs = self._binary_text(stmt.op.binary, target, value)
        self._writer.line(f"{target} = {rhs}")

    def _set_dest(self, stmt: SetDestValue) -> None:
        value = self._expr(stmt.value)
        if self.model == RuntimeModel.DIRECT:
            band = self._expr(stmt.band)
            self._writer.line(f"self.write_dest({stmt.image!r}, _x, _y, {band}, {value})")
        else:
            self._writer.line(f"_result[{self._band_index(stmt.band)}] = {value}")

    def _band_index(self, band) -> str:
        if isinstance(band, Number) and band.value is not None:
            return str(int(band.value))
        return f"self.band_index({self._expr(band)})"

    def _list_append(self, stmt: ListAppend) -> None:
        self._writer.line(f"{self._py_name(stmt.target)}.append({self._expr(stmt.value)})")

    def _evaluate(self, stmt: Evaluate) -> None:
        self._writer.line(self._expr(stmt.expr))

    def _block(self, stmt: Block) -> None:
        for child in stmt.statements:
            self._stmt(child)

    def _if(self, stmt: IfElse) -> None:
        w = self._writer
        w.line(f"if _fn.is_true({self._expr(stmt.condition)}):")
        self._suite(stmt.then)
        if stmt.otherwise is not None:
            w.line("else:")
            self._suite(stmt.otherwise)

    def _while(self, stmt: While) -> None:
        self._writer.line(f"while _fn.is_true({self._expr(stmt.condition)}):")
        self._loop_suite(stmt.body)

    def _until(self, stmt: Until) -> None:
        self._writer.line(f"while not _fn.is_true({self._expr(stmt.condition)}):")
        self._loop_suite(stmt.body)

    def _foreach_range(self, stmt: ForeachRange) -> None:
        var = self._py_name(stmt.var)
        low, high = self._expr(stmt.low), self._expr(stmt.high)
        self._writer.line(f"for {var} in _fn.seq({low}, {high}):")
        self._loop_suite(stmt.body)

    def _foreach_list(self, stmt: ForeachList) -> None:
        var = self._py_name(stmt.var)
        self._writer.line(f"for {var} in list({self._expr(stmt.items)}):")
        self._loop_suite(stmt.body)

    def _break_if(self, stmt: BreakIf) -> None:
        w = self._writer
        w.line(f"if _fn.is_true({self._expr(stmt.condition)}):")
        w.indent()
        w.line("break")
        w.dedent()

    # ── expressions ──────────────────────────────────────────────

    def _expr(self, expr) -> str:
        return self._EXPR_DISPATCH[expr.kind](expr)

    def _list_literal(self, expr: ListLiteral) -> str:
        return "[" + ", ".join(self._expr(item) for item in expr.items) + "]"

    def _var(self, expr: VarRef) -> str:
        return self._py_name(expr)

    def _position(self, origin: str, coord, absolute: bool) -> str:
        if absolute:
            return self._expr(coord)
        if isinstance(coord, Number) and coord.value == 0.0:
            return origin
        return f"({origin} + {self._expr(coord)})"

    def _image_read(self, expr: ImageRead) -> str:
        x = self._position("_x", expr.x, expr.x_absolute)
        y = self._position("_y", expr.y, expr.y_absolute)
        return f"self.read_source({expr.image!r}, {x}, {y}, {self._expr(expr.band)})"

    def _image_info(self, expr: ImageInfo) -> str:
        return f"self.get_image_info({expr.image!r}, {expr.attribute!r})"

    def _binary_text(self, op: BinaryOperator, left: str, right: str) -> str:
        if op in INFIX_OPS:
            return f"({left} {INFIX_OPS[op]} {right})"
        return f"_fn.{FUNCTION_OPS[op]}({left}, {right})"

    def _binary(self, expr: BinaryOp) -> str:
        return self._binary_text(expr.op, self._expr(expr.left), self._expr(expr.right))

    def _unary(self, expr: UnaryOp) -> str:
        operand = self._expr(expr.operand)
        if expr.op == UnaryOperator.NOT:
            return f"_fn.not_({operand})"
        return f"({expr.op.value}{operand})"

    def _incdec(self, expr: IncDec) -> str:
        name = self._py_name(expr.target)
        sign = "+" if expr.delta > 0 else "-"
        update = f"({name} := {name} {sign} {render_number(abs(expr.delta))})"
        if expr.prefix:
            return update
        return f"_fn.postfix({name}, {update})"

    def _call(self, expr: FunctionCall) -> str:
        if expr.proxy:
            if expr.runtime_name.startswith("_"):
                return expr.runtime_name
            return f"self.{expr.runtime_name}()"
        args = ", ".join(self._expr(arg) for arg in expr.args)
        return f"_fn.{expr.runtime_name}({args})"

    def _conditional(self, expr: Conditional) -> str:
        condition = self._expr(expr.condition)
        return (
            f"({self._expr(expr.if_true)} if _fn.is_true({condition}) "
            f"else {self._expr(expr.if_false)})"
        )


# ── helpers ──────────────────────────────────────────────────────


def default_class_name(model: RuntimeModel) -> str:
    if model == RuntimeModel.DIRECT:
        return constants.DIRECT_CLASS_NAME
    return constants.INDIRECT_CLASS_NAME


def default_base_class_name(model: RuntimeModel) -> str:
    if model == RuntimeModel.DIRECT:
        return constants.DIRECT_BASE_CLASS
    return constants.INDIRECT_BASE_CLASS


def check_indirect(script: ScriptIR) -> None:
    """Raise unless the script writes to exactly one destination image."""
    names = [d.image for d in script.destination_bands]
    if len(names) != 1:
        raise RuntimeModelViolation(
            "The indirect runtime model requires exactly one destination image, "
            f"found {len(names)}: {', '.join(names) or 'none'}"
        )


def _collect_locals(script: ScriptIR) -> list[VarRef]:
    """Local variables in first-assignment order, without duplicates."""
    seen: dict[str, VarRef] = {}
    stack = list(reversed(script.statements))
    while stack:
        node = stack.pop()
        if isinstance(node, Assign) and node.target.var_kind == VarKind.LOCAL:
            seen.setdefault(node.target.name, node.target)
        children = [
            getattr(node, field)
            for field in ("statements", "then", "otherwise", "body")
            if getattr(node, field, None) is not None
        ]
        for child in reversed(children):
            if isinstance(child, tuple):
                stack.extend(reversed(child))
            else:
                stack.append(child)
    return list(seen.values())


def generate_source(
    script: ScriptIR,
    model: RuntimeModel = RuntimeModel.DIRECT,
    class_name: str | None = None,
    base_class_name: str | None = None,
    include_script: bool = False,
) -> str:
    """Render *script* as runtime-class source for *model*."""
    return SourceGenerator(
        script, model, class_name, base_class_name, include_script
    ).generate()
