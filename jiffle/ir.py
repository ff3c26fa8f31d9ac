"""IR Design — syntax-independent script program tree.

Nodes are frozen pydantic models forming two closed tagged unions,
``Expression`` and ``Statement``, discriminated on ``kind``. The IR never
refers back to the lark syntax tree.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from .compiler_types import ImageRole


class IRNode(BaseModel):
    model_config = ConfigDict(frozen=True)


class BinaryOperator(str, Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    POW = "^"
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    EQ = "=="
    NE = "!="
    AND = "&&"
    OR = "||"
    XOR = "^|"


class UnaryOperator(str, Enum):
    NEG = "-"
    PLUS = "+"
    NOT = "!"


class AssignOperator(str, Enum):
    ASSIGN = "="
    ADD = "+="
    SUB = "-="
    MUL = "*="
    DIV = "/="
    MOD = "%="

    @property
    def binary(self) -> BinaryOperator | None:
        return _COMPOUND_TO_BINARY.get(self)


_COMPOUND_TO_BINARY = {
    AssignOperator.ADD: BinaryOperator.ADD,
    AssignOperator.SUB: BinaryOperator.SUB,
    AssignOperator.MUL: BinaryOperator.MUL,
    AssignOperator.DIV: BinaryOperator.DIV,
    AssignOperator.MOD: BinaryOperator.MOD,
}


class VarKind(str, Enum):
    """Storage class of a script variable."""

    GLOBAL = "global"
    LOCAL = "local"
    LOOP = "loop"


# ── Expressions ──────────────────────────────────────────────────


class Number(IRNode):
    """Numeric literal; ``value`` None stands for NaN."""

    kind: Literal["number"] = "number"
    value: float | None


class ListLiteral(IRNode):
    kind: Literal["list"] = "list"
    items: tuple[Expression, ...] = ()


class VarRef(IRNode):
    kind: Literal["var"] = "var"
    name: str
    var_kind: VarKind = VarKind.LOCAL
    slot: int = 0


class ImageRead(IRNode):
    """Read of one band of an image at a relative or absolute position."""

    kind: Literal["image_read"] = "image_read"
    image: str
    band: Expression = Number(value=0.0)
    x: Expression = Number(value=0.0)
    y: Expression = Number(value=0.0)
    x_absolute: bool = False
    y_absolute: bool = False


class ImageInfo(IRNode):
    kind: Literal["image_info"] = "image_info"
    image: str
    attribute: str


class BinaryOp(IRNode):
    kind: Literal["binary"] = "binary"
    op: BinaryOperator
    left: Expression
    right: Expression


class UnaryOp(IRNode):
    kind: Literal["unary"] = "unary"
    op: UnaryOperator
    operand: Expression


class IncDec(IRNode):
    """Prefix or postfix increment/decrement of a scalar variable."""

    kind: Literal["incdec"] = "incdec"
    target: VarRef
    delta: float
    prefix: bool


class FunctionCall(IRNode):
    kind: Literal["call"] = "call"
    name: str
    runtime_name: str
    proxy: bool = False
    args: tuple[Expression, ...] = ()


class Conditional(IRNode):
    """Lazily evaluated ``condition ? if_true : if_false``."""

    kind: Literal["conditional"] = "conditional"
    condition: Expression
    if_true: Expression
    if_false: Expression


Expression = Annotated[
    Union[
        Number,
        ListLiteral,
        VarRef,
        ImageRead,
        ImageInfo,
        BinaryOp,
        UnaryOp,
        IncDec,
        FunctionCall,
        Conditional,
    ],
    Field(discriminator="kind"),
]


# ── Statements ───────────────────────────────────────────────────


class Assign(IRNode):
    kind: Literal["assign"] = "assign"
    target: VarRef
    op: AssignOperator = AssignOperator.ASSIGN
    value: Expression
    copy_list: bool = False


class SetDestValue(IRNode):
    """Write one band of a destination image at the current pixel."""

    kind: Literal["set_dest"] = "set_dest"
    image: str
    band: Expression = Number(value=0.0)
    value: Expression


class ListAppend(IRNode):
    kind: Literal["list_append"] = "list_append"
    target: VarRef
    value: Expression


class Evaluate(IRNode):
    kind: Literal["evaluate"] = "evaluate"
    expr: Expression


class Block(IRNode):
    kind: Literal["block"] = "block"
    statements: tuple[Statement, ...] = ()


class IfElse(IRNode):
    kind: Literal["if"] = "if"
    condition: Expression
    then: Statement
    otherwise: Statement | None = None


class While(IRNode):
    kind: Literal["while"] = "while"
    condition: Expression
    body: Statement


class Until(IRNode):
    kind: Literal["until"] = "until"
    condition: Expression
    body: Statement


class ForeachRange(IRNode):
    kind: Literal["foreach_range"] = "foreach_range"
    var: VarRef
    low: Expression
    high: Expression
    body: Statement


class ForeachList(IRNode):
    kind: Literal["foreach_list"] = "foreach_list"
    var: VarRef
    items: Expression
    body: Statement


class Break(IRNode):
    kind: Literal["break"] = "break"


class BreakIf(IRNode):
    kind: Literal["break_if"] = "break_if"
    condition: Expression


Statement = Annotated[
    Union[
        Assign,
        SetDestValue,
        ListAppend,
        Evaluate,
        Block,
        IfElse,
        While,
        Until,
        ForeachRange,
        ForeachList,
        Break,
        BreakIf,
    ],
    Field(discriminator="kind"),
]


# ── Script ───────────────────────────────────────────────────────


class GlobalVar(IRNode):
    """Init-block variable; ``value`` None leaves it NaN unless overridden."""

    name: str
    value: Expression | None = None


class ScriptOptions(IRNode):
    outside_set: bool = False
    outside: float | None = None


class ImageParam(IRNode):
    name: str
    role: ImageRole


class DestinationBands(IRNode):
    """Bands written to one destination image across the whole script."""

    image: str
    bands: tuple[int, ...] = ()
    dynamic: bool = False


class ScriptIR(IRNode):
    """Complete compiled program plus the destination-band index."""

    source_text: str = ""
    options: ScriptOptions = ScriptOptions()
    images: tuple[ImageParam, ...] = ()
    globals: tuple[GlobalVar, ...] = ()
    statements: tuple[Statement, ...] = ()
    destination_bands: tuple[DestinationBands, ...] = ()

    @property
    def source_images(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.images if p.role == ImageRole.SOURCE)

    @property
    def dest_images(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.images if p.role == ImageRole.DEST)

    @property
    def image_params(self) -> dict[str, ImageRole]:
        return {p.name: p.role for p in self.images}

    @property
    def dest_band_map(self) -> dict[str, frozenset[int]]:
        return {d.image: frozenset(d.bands) for d in self.destination_bands}


for _model in (
    ListLiteral,
    ImageRead,
    BinaryOp,
    UnaryOp,
    IncDec,
    FunctionCall,
    Conditional,
    Assign,
    SetDestValue,
    ListAppend,
    Evaluate,
    Block,
    IfElse,
    While,
    Until,
    ForeachRange,
    ForeachList,
    BreakIf,
    GlobalVar,
    ScriptIR,
):
    _model.model_rebuild()
