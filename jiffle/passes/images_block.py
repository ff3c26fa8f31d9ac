"""Images-block pass — discovers image roles declared by the script."""

from __future__ import annotations

import logging

from lark import Tree

from ..compiler_types import ImageParams, ImageRole
from ..messages import Errors
from ._base import BaseWorker, header_blocks, subtrees, tokens

logger = logging.getLogger(__name__)


class ImagesBlockWorker(BaseWorker):
    """Collects ``name = read|write`` declarations into an image-role table."""

    def __init__(self, tree: Tree):
        super().__init__(tree)
        self.image_params: ImageParams = {}

    def run(self) -> ImagesBlockWorker:
        blocks = header_blocks(self.tree, "images_block")
        if len(blocks) > 1:
            self._error(blocks[1], "Script has more than one images block")
        for block in blocks[:1]:
            for decl in subtrees(block):
                self._declare(decl)
        logger.debug("Image roles from script: %s", self.image_params)
        return self

    def _declare(self, decl: Tree) -> None:
        name_token, role_token = tokens(decl, "ID")
        name = str(name_token)
        role = ImageRole.from_script(str(role_token))
        if role is None:
            self._error(role_token, f"Invalid image var type: {role_token}")
            return
        if name in self.image_params:
            self._error(name_token, f"{Errors.DUPLICATE_VAR_DECL}: {name}")
            return
        self.image_params[name] = role
