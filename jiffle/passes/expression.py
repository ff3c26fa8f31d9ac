"""Expression pass — types expressions and checks operator and function use."""

from __future__ import annotations

import logging

from lark import Tree

from .. import lookup
from ..compiler_types import ExprCategory, JiffleType, SymbolType
from ..messages import Errors
from ._base import (
    BaseWorker,
    NodeProperties,
    body_statements,
    first_id,
    header_blocks,
    image_read_parts,
    operator,
    subtrees,
    tokens,
)
from .scope import VarWorker

logger = logging.getLogger(__name__)

D = JiffleType.D
LIST = JiffleType.LIST
UNKNOWN = JiffleType.UNKNOWN

IMAGE_INFO_ATTRIBUTES: frozenset[str] = frozenset({"bands"})


class ExpressionWorker(BaseWorker):
    """Attaches a value type and result category to every expression node.

    Also refines the type of each variable from the first value assigned to
    it and checks operator and function use against those types.
    """

    def __init__(self, tree: Tree, var_worker: VarWorker):
        super().__init__(tree)
        self.refs = var_worker.refs
        self.declarations = var_worker.declarations
        self.types: NodeProperties[JiffleType] = NodeProperties()
        self._categories: NodeProperties[ExprCategory] = NodeProperties()
        self.functions: NodeProperties[lookup.FunctionInfo] = NodeProperties()
        self._STMT_DISPATCH = {
            "if_else": self._conditional_stmt,
            "while_stmt": self._conditional_stmt,
            "until_stmt": self._conditional_stmt,
            "breakif_stmt": self._conditional_stmt,
            "foreach_stmt": self._foreach,
            "assignment": self._assignment,
            "band_assignment": self._band_assignment,
            "list_append": self._list_append,
            "expr_stmt": self._expr_stmt,
        }
        self._EXPR_DISPATCH = {
            "int_literal": self._constant,
            "float_literal": self._constant,
            "true_literal": self._constant,
            "false_literal": self._constant,
            "null_literal": self._constant,
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

    def run(self) -> ExpressionWorker:
        for block in header_blocks(self.tree, "init_block")[:1]:
            for decl in subtrees(block):
                self._init_decl(decl)
        self._walk_statements(body_statements(self.tree))
        logger.debug("Typed %d expression nodes", len(self.types))
        return self

    # ── helpers ──────────────────────────────────────────────────

    def _expr(self, node: Tree) -> JiffleType:
        result = self._walk_expr(node)
        return result if result is not None else UNKNOWN

    def _set(self, node: Tree, jtype: JiffleType, category: ExprCategory) -> JiffleType:
        self.types.set(node, jtype)
        self._categories.set(node, category)
        return jtype

    def _combined_category(self, nodes) -> ExprCategory:
        if all(self._categories.get(n) == ExprCategory.CONSTANT for n in nodes):
            return ExprCategory.CONSTANT
        return ExprCategory.SCALAR

    def _require_scalar(self, node: Tree, jtype: JiffleType) -> None:
        if jtype == LIST:
            self._error(node, Errors.EXPECTED_SCALAR)

    def _refine(self, node: Tree, name_token, rhs_type: JiffleType) -> None:
        ref = self.refs.get(node)
        if ref is None:
            return
        symbol = ref.symbol
        if symbol.type == SymbolType.UNKNOWN:
            if rhs_type == D:
                symbol.type = SymbolType.SCALAR
            elif rhs_type == LIST:
                symbol.type = SymbolType.LIST
        elif symbol.type in (SymbolType.SCALAR, SymbolType.DEST_IMAGE) and rhs_type == LIST:
            self._error(name_token, Errors.ASSIGNMENT_LIST_TO_SCALAR)
        elif symbol.type == SymbolType.LIST and rhs_type == D:
            self._error(name_token, Errors.ASSIGNMENT_SCALAR_TO_LIST)

    # ── statements ───────────────────────────────────────────────

    def _init_decl(self, decl: Tree) -> None:
        values = subtrees(decl)
        if values:
            self._refine(decl, first_id(decl), self._expr(values[0]))

    def _conditional_stmt(self, node: Tree) -> None:
        condition, *bodies = subtrees(node)
        self._require_scalar(condition, self._expr(condition))
        self._walk_statements(bodies)

    def _foreach(self, node: Tree) -> None:
        loop_set, body = subtrees(node)
        if loop_set.data == "range_set":
            for end in subtrees(loop_set):
                if self._expr(end) == LIST:
                    self._error(end, Errors.LIST_IN_RANGE)
        else:
            items = subtrees(loop_set)[0]
            if self._expr(items) != LIST:
                self._error(items, Errors.EXPECTED_LIST)
        self._walk_stmt(body)

    def _assignment(self, node: Tree) -> None:
        name_token = first_id(node)
        op = str(operator(node))
        rhs_type = self._expr(subtrees(node)[0])
        ref = self.refs.get(node)
        if ref is None:
            return
        if op != "=":
            if ref.symbol.type == SymbolType.UNKNOWN:
                self._error(name_token, f"{Errors.UNINIT_VAR}: {name_token}")
            elif ref.symbol.type == SymbolType.LIST or rhs_type == LIST:
                self._error(name_token, f"{Errors.INVALID_OPERATION_FOR_LIST}: {name_token}")
            return
        self._refine(node, name_token, rhs_type)

    def _band_assignment(self, node: Tree) -> None:
        for expr in subtrees(node):
            self._require_scalar(expr, self._expr(expr))

    def _list_append(self, node: Tree) -> None:
        name_token = first_id(node)
        value = subtrees(node)[0]
        self._require_scalar(value, self._expr(value))
        ref = self.refs.get(node)
        if ref is not None and ref.symbol.type != SymbolType.LIST:
            self._error(name_token, f"{Errors.EXPECTED_LIST}: {name_token}")

    def _expr_stmt(self, node: Tree) -> None:
        self._expr(subtrees(node)[0])

    # ── expressions ──────────────────────────────────────────────

    def _constant(self, node: Tree) -> JiffleType:
        return self._set(node, D, ExprCategory.CONSTANT)

    def _var_ref(self, node: Tree) -> JiffleType:
        name_token = first_id(node)
        if lookup.is_constant(str(name_token)):
            return self._set(node, D, ExprCategory.CONSTANT)
        ref = self.refs.get(node)
        if ref is None:
            return self._set(node, UNKNOWN, ExprCategory.SCALAR)
        stype = ref.symbol.type
        if stype == SymbolType.LIST:
            return self._set(node, LIST, ExprCategory.LIST)
        if stype == SymbolType.SOURCE_IMAGE:
            return self._set(node, D, ExprCategory.IMAGE_READ)
        if stype == SymbolType.UNKNOWN:
            self._error(name_token, f"{Errors.UNINIT_VAR}: {name_token}")
            return self._set(node, UNKNOWN, ExprCategory.SCALAR)
        return self._set(node, D, ExprCategory.SCALAR)

    def _list_literal(self, node: Tree) -> JiffleType:
        for item in subtrees(node):
            self._require_scalar(item, self._expr(item))
        return self._set(node, LIST, ExprCategory.LIST)

    def _image_read(self, node: Tree) -> JiffleType:
        band, x_pos, y_pos = image_read_parts(node)
        for part in (band, x_pos, y_pos):
            if part is None:
                continue
            expr = subtrees(part)[0] if part.data in ("abs_pos", "rel_pos") else part
            self._require_scalar(expr, self._expr(expr))
        return self._set(node, D, ExprCategory.IMAGE_READ)

    def _image_info(self, node: Tree) -> JiffleType:
        attribute = tokens(node, "ID")[1]
        if str(attribute) not in IMAGE_INFO_ATTRIBUTES:
            self._error(attribute, f"{Errors.INVALID_IMAGE_INFO}: {attribute}")
        return self._set(node, D, ExprCategory.SCALAR)

    def _binary_op(self, node: Tree) -> JiffleType:
        left, right = subtrees(node)
        left_type, right_type = self._expr(left), self._expr(right)
        op = str(operator(node))
        if op == "^" and right_type == LIST:
            self._error(right, Errors.POW_EXPR_WITH_LIST_EXPONENT)
        elif LIST in (left_type, right_type):
            self._error(node, f"{Errors.INVALID_OPERATION_FOR_LIST}: {op}")
        return self._set(node, D, self._combined_category((left, right)))

    def _not_op(self, node: Tree) -> JiffleType:
        operand = subtrees(node)[0]
        if self._expr(operand) == LIST:
            self._error(node, Errors.NOT_OP_IS_INVALID_FOR_LIST)
        return self._set(node, D, self._combined_category((operand,)))

    def _sign_op(self, node: Tree) -> JiffleType:
        operand = subtrees(node)[0]
        if self._expr(operand) == LIST:
            self._error(node, f"{Errors.INVALID_OPERATION_FOR_LIST}: {operator(node)}")
        return self._set(node, D, self._combined_category((operand,)))

    def _incdec(self, node: Tree) -> JiffleType:
        name_token = first_id(node)
        ref = self.refs.get(node)
        if ref is not None:
            if ref.symbol.type == SymbolType.LIST:
                self._error(name_token, f"{Errors.INVALID_OPERATION_FOR_LIST}: {name_token}")
            elif ref.symbol.type == SymbolType.UNKNOWN:
                self._error(name_token, f"{Errors.UNINIT_VAR}: {name_token}")
        return self._set(node, D, ExprCategory.SCALAR)

    def _ternary(self, node: Tree) -> JiffleType:
        condition, if_true, if_false = subtrees(node)
        if self._expr(condition) == LIST:
            self._error(condition, Errors.LIST_AS_TERNARY_CONDITION)
        return self._set(node, *self._alternatives(node, if_true, if_false))

    def _alternatives(self, node: Tree, if_true: Tree, if_false: Tree):
        true_type, false_type = self._expr(if_true), self._expr(if_false)
        if UNKNOWN not in (true_type, false_type) and true_type != false_type:
            self._error(node, Errors.CON_RESULTS_MUST_BE_SAME_TYPE)
        jtype = true_type if true_type != UNKNOWN else false_type
        category = ExprCategory.LIST if jtype == LIST else ExprCategory.SCALAR
        return jtype, category

    def _call(self, node: Tree) -> JiffleType:
        name_token = first_id(node)
        name = str(name_token)
        args = subtrees(node)
        if name == lookup.CON_FUNCTION:
            return self._con(node, args)

        arg_types = tuple(self._expr(arg) for arg in args)
        if UNKNOWN in arg_types:
            return self._set(node, UNKNOWN, ExprCategory.SCALAR)
        try:
            info = lookup.get_info(name, arg_types)
        except ValueError:
            signature = ", ".join(t.value for t in arg_types)
            self._error(name_token, f"{Errors.UNKNOWN_FUNCTION}: {name}({signature})")
            return self._set(node, UNKNOWN, ExprCategory.SCALAR)
        self.functions.set(node, info)
        category = ExprCategory.LIST if info.return_type == LIST else ExprCategory.SCALAR
        return self._set(node, info.return_type, category)

    def _con(self, node: Tree, args: list[Tree]) -> JiffleType:
        if not 1 <= len(args) <= 4:
            self._error(node, f"{Errors.CON_ARG_COUNT}: {len(args)}")
            return self._set(node, UNKNOWN, ExprCategory.SCALAR)
        if self._expr(args[0]) == LIST:
            self._error(args[0], Errors.CON_CONDITION_MUST_BE_SCALAR)
        if len(args) == 1:
            return self._set(node, D, ExprCategory.SCALAR)
        if len(args) == 2:
            result = self._expr(args[1])
            self._require_scalar(args[1], result)
            return self._set(node, D, ExprCategory.SCALAR)
        if len(args) == 3:
            return self._set(node, *self._alternatives(node, args[1], args[2]))
        for arg in args[1:]:
            self._require_scalar(arg, self._expr(arg))
        return self._set(node, D, ExprCategory.SCALAR)
