"""BaseWorker — shared syntax-tree walking infrastructure for analysis passes."""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, Iterator, TypeVar

from lark import Token, Tree

from ..messages import Messages

logger = logging.getLogger(__name__)

T = TypeVar("T")

HEADER_BLOCKS: frozenset[str] = frozenset({"options_block", "images_block", "init_block"})


class NodeProperties(Generic[T]):
    """Facts attached to syntax-tree nodes, keyed by node identity."""

    def __init__(self):
        self._values: dict[int, tuple[Any, T]] = {}

    def set(self, node, value: T) -> None:
        self._values[id(node)] = (node, value)

    def get(self, node, default: T | None = None) -> T | None:
        entry = self._values.get(id(node))
        return entry[1] if entry is not None else default

    def __getitem__(self, node) -> T:
        return self._values[id(node)][1]

    def __contains__(self, node) -> bool:
        return id(node) in self._values

    def __len__(self) -> int:
        return len(self._values)

    def values(self) -> Iterator[T]:
        return (value for _, value in self._values.values())


class BaseWorker:
    """Base class for passes that walk a lark syntax tree.

    Subclasses populate ``_STMT_DISPATCH`` and ``_EXPR_DISPATCH`` tables
    keyed by tree ``data``. Nodes without a handler have their subtree
    children walked in order.
    """

    def __init__(self, tree: Tree):
        self.tree = tree
        self.messages = Messages()
        self._STMT_DISPATCH: dict[str, Callable] = {}
        self._EXPR_DISPATCH: dict[str, Callable] = {}

    # ── diagnostics ──────────────────────────────────────────────

    def _error(self, node, text: str) -> None:
        line, column = position(node)
        logger.debug("%s at %d:%d: %s", type(self).__name__, line, column, text)
        self.messages.error(text, line, column)

    # ── dispatchers ──────────────────────────────────────────────

    def _walk_statements(self, nodes) -> None:
        for node in nodes:
            if isinstance(node, Tree):
                self._walk_stmt(node)

    def _walk_stmt(self, node: Tree) -> None:
        handler = self._STMT_DISPATCH.get(node.data)
        if handler:
            handler(node)
            return
        for child in subtrees(node):
            self._walk_stmt(child)

    def _walk_expr(self, node: Tree) -> Any:
        handler = self._EXPR_DISPATCH.get(node.data)
        if handler:
            return handler(node)
        for child in subtrees(node):
            self._walk_expr(child)
        return None


# ── tree helpers ─────────────────────────────────────────────────


def subtrees(node: Tree) -> list[Tree]:
    return [c for c in node.children if isinstance(c, Tree)]


def tokens(node: Tree, token_type: str | None = None) -> list[Token]:
    return [
        c
        for c in node.children
        if isinstance(c, Token) and (token_type is None or c.type == token_type)
    ]


def first_id(node: Tree) -> Token:
    return tokens(node, "ID")[0]


def operator(node: Tree) -> Token:
    """The first non-identifier token of *node* (its operator)."""
    return next(t for t in tokens(node) if t.type != "ID")


def position(item) -> tuple[int, int]:
    if isinstance(item, Token):
        return (item.line or 0, item.column or 0)
    meta = getattr(item, "meta", None)
    if meta is None or getattr(meta, "empty", True):
        return (0, 0)
    return (meta.line, meta.column)


def top_level_items(tree: Tree) -> list[Tree]:
    return subtrees(tree)


def header_blocks(tree: Tree, data: str) -> list[Tree]:
    return [node for node in top_level_items(tree) if node.data == data]


def body_statements(tree: Tree) -> list[Tree]:
    return [node for node in top_level_items(tree) if node.data not in HEADER_BLOCKS]


def image_read_parts(node: Tree) -> tuple[Tree | None, Tree | None, Tree | None]:
    """Split an ``image_read`` node into (band, x position, y position)."""
    parts = subtrees(node)
    positions = [p for p in parts if p.data in ("abs_pos", "rel_pos")]
    others = [p for p in parts if p.data not in ("abs_pos", "rel_pos")]
    band = others[0] if others else None
    if positions:
        return band, positions[0], positions[1]
    return band, None, None
