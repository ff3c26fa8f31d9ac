"""Jiffle raster-algebra script compiler package."""

from .api import (  # noqa: F401
    compile_script,
    create_runtime,
    dump_ir,
    evaluate_script,
    generate_source,
    parse_script,
    read_positions,
)
from .compiler import Jiffle  # noqa: F401
from .compiler_types import ExtentPolicy, ImageRole, RuntimeConfig, RuntimeModel  # noqa: F401
