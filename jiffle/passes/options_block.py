"""Options-block pass — extracts script-level option directives."""

from __future__ import annotations

import logging

from lark import Tree

from .. import constants, lookup
from ..ir import ScriptOptions
from ._base import BaseWorker, first_id, header_blocks, subtrees, tokens

logger = logging.getLogger(__name__)

_MISSING = object()


class OptionsBlockWorker(BaseWorker):
    """Validates the options block and records each option's value.

    Values are floats, or None for NaN (``null`` and the NaN constants).
    """

    def __init__(self, tree: Tree):
        super().__init__(tree)
        self.options: dict[str, float | None] = {}

    def run(self) -> OptionsBlockWorker:
        blocks = header_blocks(self.tree, "options_block")
        if len(blocks) > 1:
            self._error(blocks[1], "Script has more than one options block")
        for block in blocks[:1]:
            for option in subtrees(block):
                self._option(option)
        logger.debug("Options: %s", self.options)
        return self

    def script_options(self) -> ScriptOptions:
        if constants.OPTION_OUTSIDE not in self.options:
            return ScriptOptions()
        return ScriptOptions(
            outside_set=True, outside=self.options[constants.OPTION_OUTSIDE]
        )

    def _option(self, option: Tree) -> None:
        name_token = first_id(option)
        name = str(name_token)
        value_node = subtrees(option)[0]
        if not lookup.is_valid_option(name):
            self._error(name_token, f"Unknown option: {name}")
            return
        if name in self.options:
            self._error(name_token, f"Option {name} specified more than once")
            return
        value = self._value(value_node, lookup.get_option(name))
        if value is _MISSING:
            self._error(
                value_node, f"Invalid value ({_text(value_node)}) for option {name}"
            )
            return
        self.options[name] = value

    def _value(self, node: Tree, info: lookup.OptionInfo):
        if node.data in ("int_literal", "float_literal") and info.accepts_number:
            return float(tokens(node)[0])
        if node.data == "negative_value" and info.accepts_number:
            return -float(tokens(subtrees(node)[0])[0])
        if node.data == "null_literal" and info.accepts_null:
            return None
        if node.data == "named_value" and info.accepts_constant:
            name = str(first_id(node))
            if lookup.is_constant(name):
                return lookup.constant_value(name)
        return _MISSING


def _text(node: Tree) -> str:
    if node.data == "null_literal":
        return "null"
    if node.data == "negative_value":
        return "-" + _text(subtrees(node)[0])
    return "".join(str(t) for t in node.scan_values(lambda _: True))
