"""IR Builder — folds the syntax tree and pass facts into a ScriptIR."""

from __future__ import annotations

import logging
from typing import Callable

from lark import Tree

from . import lookup
from .compiler_types import ImageParams, ImageRole, SymbolType
from .ir import (
    Assign,
    AssignOperator,
    BinaryOp,
    BinaryOperator,
    Block,
    Break,
    BreakIf,
    Conditional,
    DestinationBands,
    Evaluate,
    Expression,
    ForeachList,
    ForeachRange,
    FunctionCall,
    GlobalVar,
    IfElse,
    ImageInfo,
    ImageParam,
    ImageRead,
    IncDec,
    ListAppend,
    ListLiteral,
    Number,
    ScriptIR,
    ScriptOptions,
    SetDestValue,
    Statement,
    UnaryOp,
    UnaryOperator,
    Until,
    VarKind,
    VarRef,
    While,
)
from .passes._base import (
    body_statements,
    first_id,
    image_read_parts,
    operator,
    subtrees,
    tokens,
)
from .passes.expression import ExpressionWorker
from .passes.scope import SymbolRef, VarWorker

logger = logging.getLogger(__name__)

ZERO = Number(value=0.0)
ONE = Number(value=1.0)


class IRBuilder:
    """Builds the syntax-independent program from analysed syntax.

    Only called once every analysis pass has succeeded, so every node the
    builder meets has already been resolved and typed.
    """

    def __init__(
        self,
        tree: Tree,
        image_params: ImageParams,
        options: ScriptOptions,
        init_vars: dict[str, Tree | None],
        var_worker: VarWorker,
        expr_worker: ExpressionWorker,
        source_text: str = "",
    ):
        self.tree = tree
        self.image_params = image_params
        self.options = options
        self.init_vars = init_vars
        self.refs = var_worker.refs
        self.functions = expr_worker.functions
        self.source_text = source_text
        self._dest_bands: dict[str, set[int]] = {}
        self._dynamic_bands: set[str] = set()
        self._STMT_DISPATCH: dict[str, Callable] = {
            "block": self._block,
            "if_else": self._if_else,
            "while_stmt": self._while,
            "until_stmt": self._until,
            "foreach_stmt": self._foreach,
            "break_stmt": lambda _: Break(),
            "breakif_stmt": self._breakif,
            "assignment": self._assignment,
            "band_assignment": self._band_assignment,
            "list_append": self._list_append,
            "expr_stmt": self._expr_stmt,
            "empty_stmt": lambda _: None,
        }
        self._EXPR_DISPATCH: dict[str, Callable] = {
            "int_literal": self._number,
            "float_literal": self._number,
            "true_literal": lambda _: ONE,
            "false_literal": lambda _: ZERO,
            "null_literal": lambda _: Number(value=None),
            "var_ref": self._var_ref,
            "list_literal": self._list_literal,
            "image_read": self._image_read,
            "image_info": self._image_info,
            "binary_op": self._binary_op,
            "not_op": self._not_op,
            "sign_op": self._sign_op,
            "prefix_op": self._incdec,
            "postfix_op": self._incdec,
            "ternary": self._ternary,
            "call": self._call,
        }

    def build(self) -> ScriptIR:
        images = tuple(
            ImageParam(name=name, role=role) for name, role in self.image_params.items()
        )
        globals_ = tuple(
            GlobalVar(name=name, value=self._expr(value) if value is not None else None)
            for name, value in self.init_vars.items()
        )
        statements = self._statements(body_statements(self.tree))
        script = ScriptIR(
            source_text=self.source_text,
            options=self.options,
            images=images,
            globals=globals_,
            statements=statements,
            destination_bands=self._destination_bands(images),
        )
        logger.debug(
            "Built IR: %d statements, %d globals", len(statements), len(globals_)
        )
        return script

    def _destination_bands(self, images) -> tuple[DestinationBands, ...]:
        return tuple(
            DestinationBands(
                image=p.name,
                bands=tuple(sorted(self._dest_bands.get(p.name, ()))),
                dynamic=p.name in self._dynamic_bands,
            )
            for p in images
            if p.role == ImageRole.DEST
        )

    # ── dispatch ─────────────────────────────────────────────────

    def _stmt(self, node: Tree) -> Statement | None:
        return self._STMT_DISPATCH[node.data](node)

    def _statements(self, nodes) -> tuple[Statement, ...]:
        built = (self._stmt(n) for n in nodes if isinstance(n, Tree))
        return tuple(s for s in built if s is not None)

    def _body(self, node: Tree) -> Statement:
        return self._stmt(node) or Block()

    def _expr(self, node: Tree) -> Expression:
        return self._EXPR_DISPATCH[node.data](node)

    def _var(self, ref: SymbolRef) -> VarRef:
        symbol = ref.symbol
        if symbol.type == SymbolType.LOOP_VAR:
            return VarRef(name=symbol.name, var_kind=VarKind.LOOP, slot=symbol.slot)
        kind = VarKind.GLOBAL if ref.is_global else VarKind.LOCAL
        return VarRef(name=symbol.name, var_kind=kind)

    # ── statements ───────────────────────────────────────────────

    def _block(self, node: Tree) -> Block:
        return Block(statements=self._statements(node.children))

    def _if_else(self, node: Tree) -> IfElse:
        condition, then, *otherwise = subtrees(node)
        return IfElse(
            condition=self._expr(condition),
            then=self._body(then),
            otherwise=self._body(otherwise[0]) if otherwise else None,
        )

    def _while(self, node: Tree) -> While:
        condition, body = subtrees(node)
        return While(condition=self._expr(condition), body=self._body(body))

    def _until(self, node: Tree) -> Until:
        condition, body = subtrees(node)
        return Until(condition=self._expr(condition), body=self._body(body))

    def _foreach(self, node: Tree) -> Statement:
        loop_set, body = subtrees(node)
        var = self._var(self.refs[node])
        if loop_set.data == "range_set":
            low, high = subtrees(loop_set)
            return ForeachRange(
                var=var, low=self._expr(low), high=self._expr(high), body=self._body(body)
            )
        items = subtrees(loop_set)[0]
        return ForeachList(var=var, items=self._expr(items), body=self._body(body))

    def _breakif(self, node: Tree) -> BreakIf:
        return BreakIf(condition=self._expr(subtrees(node)[0]))

    def _assignment(self, node: Tree) -> Statement:
        ref = self.refs[node]
        value = self._expr(subtrees(node)[0])
        if ref.symbol.type == SymbolType.DEST_IMAGE:
            return self._set_dest(ref.symbol.name, ZERO, value)
        op = AssignOperator(str(operator(node)))
        return Assign(
            target=self._var(ref),
            op=op,
            value=value,
            copy_list=ref.symbol.type == SymbolType.LIST and op == AssignOperator.ASSIGN,
        )

    def _band_assignment(self, node: Tree) -> SetDestValue:
        band, value = subtrees(node)
        return self._set_dest(str(first_id(node)), self._expr(band), self._expr(value))

    def _set_dest(self, image: str, band: Expression, value: Expression) -> SetDestValue:
        if isinstance(band, Number) and band.value is not None:
            self._dest_bands.setdefault(image, set()).add(int(band.value))
        else:
            self._dynamic_bands.add(image)
        return SetDestValue(image=image, band=band, value=value)

    def _list_append(self, node: Tree) -> ListAppend:
        return ListAppend(
            target=self._var(self.refs[node]), value=self._expr(subtrees(node)[0])
        )

    def _expr_stmt(self, node: Tree) -> Evaluate:
        return Evaluate(expr=self._expr(subtrees(node)[0]))

    # ── expressions ──────────────────────────────────────────────

    def _number(self, node: Tree) -> Number:
        return Number(value=float(tokens(node)[0]))

    def _var_ref(self, node: Tree) -> Expression:
        name = str(first_id(node))
        if lookup.is_constant(name):
            return Number(value=lookup.constant_value(name))
        ref = self.refs[node]
        if ref.symbol.type == SymbolType.SOURCE_IMAGE:
            return ImageRead(image=name)
        return self._var(ref)

    def _list_literal(self, node: Tree) -> ListLiteral:
        return ListLiteral(items=tuple(self._expr(item) for item in subtrees(node)))

    def _image_read(self, node: Tree) -> ImageRead:
        band, x_pos, y_pos = image_read_parts(node)
        fields = {"image": str(first_id(node))}
        if band is not None:
            fields["band"] = self._expr(band)
        if x_pos is not None:
            fields["x"] = self._expr(subtrees(x_pos)[0])
            fields["y"] = self._expr(subtrees(y_pos)[0])
            fields["x_absolute"] = x_pos.data == "abs_pos"
            fields["y_absolute"] = y_pos.data == "abs_pos"
        return ImageRead(**fields)

    def _image_info(self, node: Tree) -> ImageInfo:
        image, attribute = tokens(node, "ID")
        return ImageInfo(image=str(image), attribute=str(attribute))

    def _binary_op(self, node: Tree) -> BinaryOp:
        left, right = subtrees(node)
        return BinaryOp(
            op=BinaryOperator(str(operator(node))),
            left=self._expr(left),
            right=self._expr(right),
        )

    def _not_op(self, node: Tree) -> UnaryOp:
        return UnaryOp(op=UnaryOperator.NOT, operand=self._expr(subtrees(node)[0]))

    def _sign_op(self, node: Tree) -> UnaryOp:
        return UnaryOp(
            op=UnaryOperator(str(operator(node))), operand=self._expr(subtrees(node)[0])
        )

    def _incdec(self, node: Tree) -> IncDec:
        op = str(operator(node))
        return IncDec(
            target=self._var(self.refs[node]),
            delta=1.0 if op == "++" else -1.0,
            prefix=node.data == "prefix_op",
        )

    def _ternary(self, node: Tree) -> Conditional:
        condition, if_true, if_false = (self._expr(n) for n in subtrees(node))
        return Conditional(condition=condition, if_true=if_true, if_false=if_false)

    def _call(self, node: Tree) -> Expression:
        name = str(first_id(node))
        args = tuple(self._expr(arg) for arg in subtrees(node))
        if name == lookup.CON_FUNCTION:
            return _con(args)
        info = self.functions[node]
        return FunctionCall(
            name=info.name,
            runtime_name=info.runtime_name,
            proxy=info.is_proxy,
            args=args,
        )


def _con(args: tuple[Expression, ...]) -> Expression:
    if len(args) == 4:
        return FunctionCall(name=lookup.CON_FUNCTION, runtime_name="sign_switch", args=args)
    condition = args[0]
    if_true = args[1] if len(args) > 1 else ONE
    if_false = args[2] if len(args) > 2 else ZERO
    return Conditional(condition=condition, if_true=if_true, if_false=if_false)
