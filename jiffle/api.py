"""Composable API functions for the Jiffle compiler pipelines.

Each function corresponds to a CLI workflow (--ir-only, --source,
--read-positions) but is callable programmatically without argparse.
"""

from __future__ import annotations

import logging
from typing import Mapping

from lark import Tree

from . import compiler
from .compiler_types import RuntimeConfig, RuntimeModel
from .ir import ScriptIR
from .runtime.base import AbstractJiffleRuntime
from .runtime.progress import ProgressListener

logger = logging.getLogger(__name__)


def parse_script(script: str) -> Tree:
    """Parse a script into its syntax tree.

    Args:
        script: Script source text.

    Returns:
        The lark parse tree.
    """
    return compiler.parse_tree(script)


def compile_script(script: str, image_params: Mapping | None = None) -> ScriptIR:
    """Compile a script to its IR.

    Args:
        script: Script source text.
        image_params: Optional map of image name to role (an ImageRole or
            the text "read"/"write"); taken from the script when omitted.

    Returns:
        The compiled ScriptIR.
    """
    return compiler.compile_script(script, image_params)


def dump_ir(script: str, image_params: Mapping | None = None) -> str:
    """Compile a script and return its IR as indented JSON.

    Args:
        script: Script source text.
        image_params: Optional image roles.

    Returns:
        A JSON document describing the IR.
    """
    return compile_script(script, image_params).model_dump_json(indent=2)


def generate_source(
    script: str,
    model: RuntimeModel | str = RuntimeModel.DIRECT,
    image_params: Mapping | None = None,
    include_script: bool = False,
) -> str:
    """Compile a script and render the runtime class source for *model*.

    Args:
        script: Script source text.
        model: "direct" or "indirect".
        image_params: Optional image roles.
        include_script: Prefix the class with the script as comments.

    Returns:
        Python source text defining the runtime class.
    """
    ir = compile_script(script, image_params)
    return compiler.runtime_source(ir, model, include_script)


def create_runtime(
    script: str,
    model: RuntimeModel | str = RuntimeModel.DIRECT,
    image_params: Mapping | None = None,
    backend: str | None = None,
    config: RuntimeConfig | None = None,
) -> AbstractJiffleRuntime:
    """Compile a script and return a fresh, unbound runtime object.

    Args:
        script: Script source text.
        model: "direct" or "indirect".
        image_params: Optional image roles.
        backend: "compiled" or "interpreted"; defaults to the config's backend.
        config: Runtime configuration.

    Returns:
        A new runtime object.
    """
    ir = compile_script(script, image_params)
    return compiler.create_runtime(ir, model, backend, config=config)


def read_positions(script: str, source_names=None) -> dict[str, set]:
    """Relative pixel offsets read from each source image.

    Args:
        script: Script source text.
        source_names: Sources to report on; taken from the script when None.

    Returns:
        A mapping from source name to its set of offsets.
    """
    return compiler.read_positions(script, source_names)


def evaluate_script(
    script: str,
    images: Mapping,
    image_params: Mapping | None = None,
    backend: str | None = None,
    config: RuntimeConfig | None = None,
    listener: ProgressListener | None = None,
) -> dict[str, object]:
    """Compile a script, bind *images* and evaluate it with the direct model.

    Composes: compile_script → create_runtime → bind → evaluate_all.

    Args:
        script: Script source text.
        images: numpy arrays (or Rasters) keyed by image variable name;
            destination arrays are written in place.
        image_params: Optional image roles.
        backend: "compiled" or "interpreted".
        config: Runtime configuration.
        listener: Optional progress listener.

    Returns:
        The destination images keyed by name, as passed in.
    """
    runtime = create_runtime(script, RuntimeModel.DIRECT, image_params, backend, config)
    for name, image in images.items():
        runtime.bind(name, image)
    completed = runtime.evaluate_all(listener)
    logger.info("Evaluation %s", "completed" if completed else "cancelled")
    return {name: images[name] for name in runtime.get_destination_var_names()}
