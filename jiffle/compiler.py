"""Compiler driver — the compile pipeline and the Jiffle session object."""

from __future__ import annotations

import logging
from typing import Mapping

from lark import Tree

from . import constants
from .codegen import check_indirect, default_class_name, generate_source
from .compile_service import compile_runtime_class
from .compiler_types import ImageParams, ImageRole, RuntimeConfig, RuntimeModel
from .errors import (
    JiffleCompilationError,
    JiffleError,
    JiffleSyntaxError,
    MissingImageParameters,
)
from .ir import ScriptIR
from .ir_builder import IRBuilder
from .parser import LarkParserFactory, Parser
from .passes import (
    ExpressionWorker,
    ImagesBlockWorker,
    InitBlockWorker,
    OptionsBlockWorker,
    SourcePositionsWorker,
    VarWorker,
)
from .passes._base import BaseWorker
from .runtime.base import AbstractJiffleRuntime
from .runtime.direct import AbstractDirectRuntime
from .runtime.indirect import AbstractIndirectRuntime
from .runtime.interpreter import InterpretedDirectRuntime, InterpretedIndirectRuntime

logger = logging.getLogger(__name__)

_MODEL_BASES: dict[RuntimeModel, type] = {
    RuntimeModel.DIRECT: AbstractDirectRuntime,
    RuntimeModel.INDIRECT: AbstractIndirectRuntime,
}

_INTERPRETED: dict[RuntimeModel, type] = {
    RuntimeModel.DIRECT: InterpretedDirectRuntime,
    RuntimeModel.INDIRECT: InterpretedIndirectRuntime,
}


# ── argument normalisation ───────────────────────────────────────


def to_model(model: RuntimeModel | str) -> RuntimeModel:
    if isinstance(model, RuntimeModel):
        return model
    try:
        return RuntimeModel(str(model).lower())
    except ValueError:
        raise JiffleError(f"Unknown runtime model: {model}") from None


def normalize_image_params(params: Mapping[str, ImageRole | str]) -> ImageParams:
    """Validate variable names and coerce roles given as ``read``/``write`` text."""
    normalized: ImageParams = {}
    for name, role in params.items():
        if not constants.VALID_IDENTIFIER.match(name):
            raise JiffleError(f"Invalid image variable name: {name}")
        if not isinstance(role, ImageRole):
            text = str(role).lower()
            coerced = ImageRole.from_script(text)
            if coerced is None:
                try:
                    coerced = ImageRole(text)
                except ValueError:
                    raise JiffleError(f"Invalid role {role} for image {name}") from None
            role = coerced
        normalized[name] = role
    return normalized


# ── pipeline ─────────────────────────────────────────────────────


def parse_tree(script: str) -> Tree:
    """Parse *script*, raising JiffleSyntaxError on any parse error."""
    result = Parser(LarkParserFactory()).parse(script)
    if result.messages.is_error():
        logger.info("Script has syntax errors:\n%s", result.messages)
        raise JiffleSyntaxError(result.messages)
    return result.tree


def _checked(worker: BaseWorker):
    if worker.messages.is_error():
        logger.info("%s reported errors:\n%s", type(worker).__name__, worker.messages)
        raise JiffleCompilationError(worker.messages)
    return worker


def compile_script(script: str, image_params: Mapping | None = None) -> ScriptIR:
    """Run every compilation pass over *script* and return its IR.

    Args:
        script: Script source text.
        image_params: Image variable roles. When empty or None the roles
            are read from the script's ``images`` block.

    Returns:
        A fresh, immutable ScriptIR.

    Raises:
        JiffleSyntaxError: The script does not parse.
        MissingImageParameters: No roles were supplied or declared.
        JiffleCompilationError: An analysis pass reported errors.
    """
    if not script or not script.strip():
        raise JiffleError("script is empty")
    tree = parse_tree(script)

    if image_params:
        params = normalize_image_params(image_params)
    else:
        params = _checked(ImagesBlockWorker(tree).run()).image_params
        if not params:
            raise MissingImageParameters(
                "No image parameters provided and none found in script"
            )

    options = _checked(OptionsBlockWorker(tree).run())
    init = _checked(InitBlockWorker(tree, params).run())
    var_worker = _checked(VarWorker(tree, params, init.init_vars).run())
    expr_worker = _checked(ExpressionWorker(tree, var_worker).run())

    ir = IRBuilder(
        tree,
        params,
        options.script_options(),
        init.init_vars,
        var_worker,
        expr_worker,
        source_text=script,
    ).build()
    logger.info(
        "Compiled script: %d source(s), %d destination(s)",
        len(ir.source_images),
        len(ir.dest_images),
    )
    return ir


def runtime_source(
    ir: ScriptIR,
    model: RuntimeModel | str = RuntimeModel.DIRECT,
    include_script: bool = False,
    base_class: type | None = None,
) -> str:
    model = to_model(model)
    base_name = base_class.__name__ if base_class is not None else None
    return generate_source(ir, model, base_class_name=base_name, include_script=include_script)


def _check_base_class(model: RuntimeModel, base_class: type) -> None:
    required = _MODEL_BASES[model]
    if not (isinstance(base_class, type) and issubclass(base_class, required)):
        raise JiffleError(
            f"Base class for the {model.value} model must extend {required.__name__}"
        )


def create_runtime(
    ir: ScriptIR,
    model: RuntimeModel | str = RuntimeModel.DIRECT,
    backend: str | None = None,
    base_class: type | None = None,
    config: RuntimeConfig | None = None,
) -> AbstractJiffleRuntime:
    """Build a fresh runtime object for *ir*.

    Each call returns an independent instance; no state is shared between
    instances created from the same IR.

    Raises:
        RuntimeModelViolation: The indirect model was requested for a script
            that does not write exactly one destination image.
        RuntimeSourceError: The generated source failed to compile.
    """
    model = to_model(model)
    config = config or RuntimeConfig()
    backend = backend or config.backend
    if backend not in constants.SUPPORTED_BACKENDS:
        raise JiffleError(f"Unsupported backend: {backend}")
    if model == RuntimeModel.INDIRECT:
        check_indirect(ir)
    if base_class is not None:
        _check_base_class(model, base_class)

    if backend == constants.BACKEND_INTERPRETED:
        if base_class is not None:
            raise JiffleError("A custom base class requires the compiled backend")
        runtime = _INTERPRETED[model](ir, config)
    else:
        source = runtime_source(ir, model, base_class=base_class)
        runtime_class = compile_runtime_class(source, default_class_name(model), base_class)
        runtime = runtime_class(config)

    runtime.set_image_params(ir.image_params)
    runtime.set_destination_bands(ir.dest_band_map)
    logger.debug("Created %s runtime (%s backend)", model.value, backend)
    return runtime


def read_positions(script: str, source_names=None) -> dict[str, set]:
    """Relative pixel offsets read from each source image by *script*.

    Args:
        script: Script source text.
        source_names: Source images to report on. When None the names are
            taken from the script's ``images`` block.

    Returns:
        A mapping from source name to its set of ``(dx, dy)`` offsets, with
        None standing for a read whose position is not a static offset.
        Sources that are never read are omitted.
    """
    tree = parse_tree(script)
    if source_names is None:
        params = _checked(ImagesBlockWorker(tree).run()).image_params
        source_names = [n for n, r in params.items() if r == ImageRole.SOURCE]
    if not source_names:
        return {}
    return SourcePositionsWorker(tree, source_names).run().positions


# ── session ──────────────────────────────────────────────────────


class Jiffle:
    """Compiler session holding a script, its image roles and the last good IR.

    Setting a new script or new image parameters discards the IR. A failed
    ``compile`` leaves the session's IR as it was.
    """

    def __init__(self, script: str | None = None, image_params: Mapping | None = None):
        self._script: str | None = None
        self._image_params: ImageParams = {}
        self._ir: ScriptIR | None = None
        if script is not None:
            self.set_script(script)
        if image_params:
            self.set_image_params(image_params)
        if script is not None and image_params:
            self.compile()

    def set_script(self, script: str) -> None:
        if not script or not script.strip():
            raise JiffleError("script is empty")
        self._script = script
        self._ir = None

    def get_script(self) -> str | None:
        return self._script

    def set_image_params(self, image_params: Mapping) -> None:
        self._image_params = normalize_image_params(image_params)
        self._ir = None

    def get_image_params(self) -> ImageParams:
        """Caller-supplied roles, else the roles declared by the compiled script."""
        if self._image_params:
            return dict(self._image_params)
        if self._ir is not None:
            return self._ir.image_params
        return {}

    def compile(self) -> ScriptIR:
        if self._script is None:
            raise JiffleError("No script has been set")
        ir = compile_script(self._script, self._image_params)
        self._ir = ir
        return ir

    def is_compiled(self) -> bool:
        return self._ir is not None

    @property
    def ir(self) -> ScriptIR | None:
        return self._ir

    def _require_ir(self) -> ScriptIR:
        if self._ir is None:
            raise JiffleError("The script has not been compiled")
        return self._ir

    def get_runtime_instance(
        self,
        model: RuntimeModel | str = RuntimeModel.DIRECT,
        backend: str | None = None,
        base_class: type | None = None,
        config: RuntimeConfig | None = None,
    ) -> AbstractJiffleRuntime:
        return create_runtime(self._require_ir(), model, backend, base_class, config)

    def get_runtime_source(
        self, model: RuntimeModel | str = RuntimeModel.DIRECT, include_script: bool = False
    ) -> str:
        return runtime_source(self._require_ir(), model, include_script)

    @staticmethod
    def get_read_positions(script: str, source_names=None) -> dict[str, set]:
        return read_positions(script, source_names)
