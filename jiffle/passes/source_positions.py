"""Source-positions pass — collects the pixel offsets read from each source."""

from __future__ import annotations

import logging
import math

from lark import Tree

from .. import lookup
from ._base import BaseWorker, first_id, image_read_parts, operator, subtrees, tokens

logger = logging.getLogger(__name__)

_FOLDABLE_OPS = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
}


class SourcePositionsWorker(BaseWorker):
    """Records every distinct relative offset used against the named sources.

    A plain reference to a source counts as offset (0, 0). Reads whose
    position is absolute or not a numeric constant are recorded as None.
    Bands are ignored.
    """

    def __init__(self, tree: Tree, source_names):
        super().__init__(tree)
        self.source_names = frozenset(source_names)
        self.positions: dict[str, set] = {}

    def run(self) -> SourcePositionsWorker:
        for node in self.tree.iter_subtrees_topdown():
            if node.data == "image_read":
                self._record(node, self._offset(node))
            elif node.data == "var_ref":
                self._record(node, (0, 0))
        logger.debug("Read positions: %s", self.positions)
        return self

    def _offset(self, node: Tree):
        _, x_pos, y_pos = image_read_parts(node)
        return read_offset(x_pos, y_pos)

    def _record(self, node: Tree, offset) -> None:
        name = str(first_id(node))
        if name in self.source_names:
            self.positions.setdefault(name, set()).add(offset)


# ── constant folding of pixel positions ──────────────────────────


def fold_constant(node: Tree) -> float | None:
    """Evaluate *node* when it is built only from numeric constants."""
    data = node.data
    if data in ("int_literal", "float_literal"):
        return float(tokens(node)[0])
    if data == "var_ref":
        name = str(first_id(node))
        return lookup.CONSTANTS.get(name) if lookup.is_constant(name) else None
    if data == "sign_op":
        value = fold_constant(subtrees(node)[0])
        if value is None:
            return None
        return -value if str(operator(node)) == "-" else value
    if data == "binary_op":
        fn = _FOLDABLE_OPS.get(str(operator(node)))
        left, right = subtrees(node)
        if fn is None:
            return None
        a, b = fold_constant(left), fold_constant(right)
        if a is None or b is None:
            return None
        return fn(a, b)
    return None


def _position_value(pos: Tree | None) -> float | None:
    if pos is None:
        return 0.0
    if pos.data == "abs_pos":
        return None
    return fold_constant(subtrees(pos)[0])


def _compact(value: float) -> float | int:
    if math.isfinite(value) and value == int(value):
        return int(value)
    return value


def read_offset(x_pos: Tree | None, y_pos: Tree | None) -> tuple | None:
    """Static relative (dx, dy) of an image read, or None if not constant."""
    dx, dy = _position_value(x_pos), _position_value(y_pos)
    if dx is None or dy is None:
        return None
    return (_compact(dx), _compact(dy))
