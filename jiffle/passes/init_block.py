"""Init-block pass — validates script-level variable declarations."""

from __future__ import annotations

import logging

from lark import Tree

from .. import lookup
from ..compiler_types import ImageParams
from ..messages import Errors
from ._base import (
    HEADER_BLOCKS,
    BaseWorker,
    first_id,
    header_blocks,
    subtrees,
    top_level_items,
)

logger = logging.getLogger(__name__)

_BLOCK_LABELS = {
    "options_block": "Options",
    "images_block": "Images",
    "init_block": "Init",
}


class InitBlockWorker(BaseWorker):
    """Collects init-block variables in declaration order.

    ``init_vars`` maps each name to its initializer expression tree, or
    None when the variable is declared without a value.
    """

    def __init__(self, tree: Tree, image_params: ImageParams):
        super().__init__(tree)
        self.image_params = image_params
        self.init_vars: dict[str, Tree | None] = {}

    def run(self) -> InitBlockWorker:
        self._check_header_placement()
        blocks = header_blocks(self.tree, "init_block")
        if len(blocks) > 1:
            self._error(blocks[1], "Script has more than one init block")
        for block in blocks[:1]:
            for decl in subtrees(block):
                self._declare(decl)
        logger.debug("Init vars: %s", list(self.init_vars))
        return self

    def _check_header_placement(self) -> None:
        seen_statement = False
        for item in top_level_items(self.tree):
            if item.data not in HEADER_BLOCKS:
                seen_statement = True
            elif seen_statement:
                label = _BLOCK_LABELS[item.data]
                self._error(item, f"{label} block must appear before script statements")

    def _declare(self, decl: Tree) -> None:
        name_token = first_id(decl)
        name = str(name_token)
        values = subtrees(decl)
        if name in self.image_params:
            self._error(name_token, f"{Errors.IMAGE_VAR_INIT_BLOCK}: {name}")
            return
        if lookup.is_constant(name):
            self._error(name_token, f"{Errors.ASSIGNMENT_TO_CONSTANT}: {name}")
            return
        if name in self.init_vars:
            self._error(name_token, f"{Errors.DUPLICATE_VAR_DECL}: {name}")
            return
        value = values[0] if values else None
        if value is not None:
            self._check_initializer(value)
        self.init_vars[name] = value

    def _check_initializer(self, expr: Tree) -> None:
        for node in expr.iter_subtrees_topdown():
            if node.data in ("var_ref", "image_read", "image_info"):
                name = str(first_id(node))
                if name in self.image_params:
                    self._error(node, f"{Errors.IMAGE_VAR_INIT_BLOCK}: {name}")
            elif node.data == "call":
                name = str(first_id(node))
                if name in lookup.POSITION_PROXIES:
                    self._error(
                        node,
                        f"{Errors.POSITION_FUNCTION_INIT_BLOCK}: {name}",
                    )
