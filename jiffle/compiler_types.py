"""Compiler and runtime data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from . import constants


class ImageRole(Enum):
    """Role of an image variable: read-only input or write target."""

    SOURCE = "source"
    DEST = "dest"

    @classmethod
    def from_script(cls, text: str) -> ImageRole | None:
        return {constants.ROLE_READ: cls.SOURCE, constants.ROLE_WRITE: cls.DEST}.get(
            text
        )


class RuntimeModel(Enum):
    DIRECT = constants.MODEL_DIRECT
    INDIRECT = constants.MODEL_INDIRECT


class JiffleType(Enum):
    """Value type of an expression."""

    D = "D"
    LIST = "List"
    UNKNOWN = "Unknown"


class SymbolType(Enum):
    SCALAR = "scalar"
    LOOP_VAR = "loop_var"
    LIST = "list"
    SOURCE_IMAGE = "source_image"
    DEST_IMAGE = "dest_image"
    UNKNOWN = "unknown"

    def is_image(self) -> bool:
        return self in (SymbolType.SOURCE_IMAGE, SymbolType.DEST_IMAGE)


class ExprCategory(Enum):
    """What an expression node produces at run time."""

    IMAGE_READ = "image_read"
    SCALAR = "scalar"
    CONSTANT = "constant"
    LIST = "list"


class ExtentPolicy(Enum):
    """How the default working extent is derived from bound images."""

    FIRST_DEST = "first_dest"
    UNION = "union"
    INTERSECTION = "intersection"


ImageParams = dict[str, ImageRole]


@dataclass(frozen=True)
class RuntimeConfig:
    """Groups runtime object configuration."""

    extent_policy: ExtentPolicy = ExtentPolicy.FIRST_DEST
    max_loop_iterations: int = constants.DEFAULT_MAX_LOOP_ITERATIONS
    backend: str = constants.BACKEND_COMPILED
    seed: int | None = None
