"""Scope pass — builds the symbol table and resolves every identifier."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from lark import Tree

from .. import constants, lookup
from ..compiler_types import ImageParams, ImageRole, SymbolType
from ..messages import Errors
from ..symbols import GlobalScope, Symbol, SymbolScope
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

logger = logging.getLogger(__name__)


@dataclass
class SymbolRef:
    """An identifier occurrence resolved to its symbol and declaring scope."""

    symbol: Symbol
    scope: SymbolScope

    @property
    def is_global(self) -> bool:
        return self.scope.is_global()


class VarWorker(BaseWorker):
    """Resolves identifiers against image roles, init vars and local scopes.

    Outputs:
        ``global_scope``: images plus init-block variables.
        ``scopes``: scope opened by the script body, blocks and foreach loops.
        ``refs``: resolved symbol for every identifier-bearing node.
        ``declarations``: assignments that introduce a new variable.
    """

    def __init__(self, tree: Tree, image_params: ImageParams, init_vars: dict):
        super().__init__(tree)
        self.image_params = image_params
        self.init_vars = init_vars
        self.global_scope = GlobalScope()
        self.scopes: NodeProperties[SymbolScope] = NodeProperties()
        self.refs: NodeProperties[SymbolRef] = NodeProperties()
        self.declarations: NodeProperties[bool] = NodeProperties()
        self._scope: SymbolScope = self.global_scope
        self._loop_depth = 0
        self._foreach_depth = 0
        self._STMT_DISPATCH = {
            "block": self._block,
            "if_else": self._if_else,
            "while_stmt": self._loop,
            "until_stmt": self._loop,
            "foreach_stmt": self._foreach,
            "break_stmt": self._break,
            "breakif_stmt": self._break,
            "assignment": self._assignment,
            "band_assignment": self._band_assignment,
            "list_append": self._list_append,
            "expr_stmt": self._expr_stmt,
            "empty_stmt": lambda _: None,
        }
        self._EXPR_DISPATCH = {
            "var_ref": self._var_ref,
            "image_read": self._image_read,
            "image_info": self._image_info,
            "prefix_op": self._incdec,
            "postfix_op": self._incdec,
            "int_literal": lambda _: None,
            "float_literal": lambda _: None,
        }

    def run(self) -> VarWorker:
        for name, role in self.image_params.items():
            stype = SymbolType.SOURCE_IMAGE if role == ImageRole.SOURCE else SymbolType.DEST_IMAGE
            self.global_scope.add(Symbol(name, stype))
        self._declare_init_vars()

        pixel_scope = SymbolScope(name=constants.SCOPE_PIXEL, enclosing=self.global_scope)
        self.scopes.set(self.tree, pixel_scope)
        self._scope = pixel_scope
        self._walk_statements(body_statements(self.tree))
        self._scope = self.global_scope
        logger.debug("Global scope: %s", self.global_scope)
        return self

    def _declare_init_vars(self) -> None:
        for block in header_blocks(self.tree, "init_block")[:1]:
            for decl in subtrees(block):
                name = str(first_id(decl))
                if name not in self.init_vars or self.global_scope.has_local(name):
                    continue
                initializer = self.init_vars[name]
                if initializer is not None:
                    self._walk_expr(initializer)
                symbol = Symbol(name, SymbolType.UNKNOWN)
                self.global_scope.add(symbol)
                self.refs.set(decl, SymbolRef(symbol, self.global_scope))

    # ── scopes ───────────────────────────────────────────────────

    def _push(self, node: Tree, name: str) -> SymbolScope:
        scope = SymbolScope(name=name, enclosing=self._scope)
        self.scopes.set(node, scope)
        self._scope = scope
        return scope

    def _pop(self) -> None:
        self._scope = self._scope.enclosing

    # ── statements ───────────────────────────────────────────────

    def _block(self, node: Tree) -> None:
        self._push(node, constants.SCOPE_BLOCK)
        self._walk_statements(node.children)
        self._pop()

    def _if_else(self, node: Tree) -> None:
        condition, *branches = subtrees(node)
        self._walk_expr(condition)
        self._walk_statements(branches)

    def _loop(self, node: Tree) -> None:
        condition, body = subtrees(node)
        self._walk_expr(condition)
        self._loop_depth += 1
        self._walk_stmt(body)
        self._loop_depth -= 1

    def _foreach(self, node: Tree) -> None:
        name_token = first_id(node)
        loop_set, body = subtrees(node)
        for expr in subtrees(loop_set):
            self._walk_expr(expr)
        scope = self._push(node, constants.SCOPE_FOREACH)
        symbol = Symbol(str(name_token), SymbolType.LOOP_VAR, slot=self._foreach_depth)
        scope.add(symbol)
        self.refs.set(node, SymbolRef(symbol, scope))
        self._loop_depth += 1
        self._foreach_depth += 1
        self._walk_stmt(body)
        self._foreach_depth -= 1
        self._loop_depth -= 1
        self._pop()

    def _break(self, node: Tree) -> None:
        if self._loop_depth == 0:
            self._error(node, Errors.BREAK_OUTSIDE_LOOP)
        for expr in subtrees(node):
            self._walk_expr(expr)

    def _assignment(self, node: Tree) -> None:
        name_token = first_id(node)
        name = str(name_token)
        op = str(operator(node))
        self._walk_expr(subtrees(node)[0])

        if lookup.is_constant(name):
            self._error(name_token, f"{Errors.ASSIGNMENT_TO_CONSTANT}: {name}")
            return
        scope = self._scope.get_declaring_scope(name)
        if scope is None:
            if op != "=":
                self._error(name_token, f"{Errors.VAR_UNDEFINED}: {name}")
                return
            symbol = Symbol(name, SymbolType.UNKNOWN)
            self._scope.add(symbol)
            self.refs.set(node, SymbolRef(symbol, self._scope))
            self.declarations.set(node, True)
            return

        symbol = scope.symbols[name]
        if symbol.type == SymbolType.SOURCE_IMAGE:
            self._error(name_token, f"{Errors.WRITING_TO_SOURCE_IMAGE}: {name}")
        elif symbol.type == SymbolType.DEST_IMAGE and op != "=":
            self._error(name_token, f"{Errors.INVALID_ASSIGNMENT_OP_WITH_DEST_IMAGE}: {name}")
        elif symbol.type == SymbolType.LOOP_VAR:
            self._error(name_token, f"{Errors.ASSIGNMENT_TO_LOOP_VAR}: {name}")
        self.refs.set(node, SymbolRef(symbol, scope))

    def _band_assignment(self, node: Tree) -> None:
        name_token = first_id(node)
        name = str(name_token)
        for expr in subtrees(node):
            self._walk_expr(expr)
        scope = self._scope.get_declaring_scope(name)
        if scope is None or scope.symbols[name].type != SymbolType.DEST_IMAGE:
            self._error(name_token, f"{Errors.INVALID_ASSIGNMENT_NOT_DEST_IMAGE}: {name}")
            return
        self.refs.set(node, SymbolRef(scope.symbols[name], scope))

    def _list_append(self, node: Tree) -> None:
        self._walk_expr(subtrees(node)[0])
        self._resolve_writable(node)

    def _expr_stmt(self, node: Tree) -> None:
        self._walk_expr(subtrees(node)[0])

    # ── expressions ──────────────────────────────────────────────

    def _var_ref(self, node: Tree) -> None:
        name_token = first_id(node)
        name = str(name_token)
        if lookup.is_constant(name):
            return
        scope = self._scope.get_declaring_scope(name)
        if scope is None:
            self._error(name_token, f"{Errors.VAR_UNDEFINED}: {name}")
            return
        symbol = scope.symbols[name]
        if symbol.type == SymbolType.DEST_IMAGE:
            self._error(name_token, f"{Errors.READING_FROM_DEST_IMAGE}: {name}")
        self.refs.set(node, SymbolRef(symbol, scope))

    def _image_read(self, node: Tree) -> None:
        name_token = first_id(node)
        name = str(name_token)
        band, x_pos, y_pos = image_read_parts(node)
        for part in (band, x_pos, y_pos):
            if part is not None:
                self._walk_expr(part)
        symbol = self._resolve_image(name_token)
        if symbol is None:
            return
        if symbol.type == SymbolType.DEST_IMAGE:
            self._error(name_token, f"{Errors.READING_FROM_DEST_IMAGE}: {name}")
        elif not symbol.is_image():
            self._error(name_token, f"{Errors.IMAGE_POS_ON_NON_IMAGE}: {name}")
            return
        self.refs.set(node, SymbolRef(symbol, self.global_scope))

    def _image_info(self, node: Tree) -> None:
        name_token = tokens(node, "ID")[0]
        symbol = self._resolve_image(name_token)
        if symbol is None:
            return
        if not symbol.is_image():
            self._error(name_token, f"{Errors.IMAGE_INFO_ON_NON_IMAGE}: {name_token}")
            return
        self.refs.set(node, SymbolRef(symbol, self.global_scope))

    def _incdec(self, node: Tree) -> None:
        self._resolve_writable(node)

    # ── helpers ──────────────────────────────────────────────────

    def _resolve_image(self, name_token) -> Symbol | None:
        name = str(name_token)
        scope = self._scope.get_declaring_scope(name)
        if scope is None:
            self._error(name_token, f"{Errors.UNDEFINED_SOURCE}: {name}")
            return None
        return scope.symbols[name]

    def _resolve_writable(self, node: Tree) -> None:
        name_token = first_id(node)
        name = str(name_token)
        if lookup.is_constant(name):
            self._error(name_token, f"{Errors.ASSIGNMENT_TO_CONSTANT}: {name}")
            return
        scope = self._scope.get_declaring_scope(name)
        if scope is None:
            self._error(name_token, f"{Errors.VAR_UNDEFINED}: {name}")
            return
        symbol = scope.symbols[name]
        if symbol.type == SymbolType.SOURCE_IMAGE:
            self._error(name_token, f"{Errors.WRITING_TO_SOURCE_IMAGE}: {name}")
            return
        if symbol.type == SymbolType.DEST_IMAGE:
            self._error(name_token, f"{Errors.INVALID_ASSIGNMENT_OP_WITH_DEST_IMAGE}: {name}")
            return
        if symbol.type == SymbolType.LOOP_VAR:
            self._error(name_token, f"{Errors.ASSIGNMENT_TO_LOOP_VAR}: {name}")
            return
        self.refs.set(node, SymbolRef(symbol, scope))
