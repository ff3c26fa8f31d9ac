"""Compile Service — turns generated runtime source into a runtime class."""

from __future__ import annotations

import logging

from . import constants
from .errors import RuntimeSourceError
from .runtime.base import AbstractJiffleRuntime
from .runtime.direct import AbstractDirectRuntime
from .runtime.indirect import AbstractIndirectRuntime

logger = logging.getLogger(__name__)

BASE_CLASSES: dict[str, type] = {
    constants.DIRECT_BASE_CLASS: AbstractDirectRuntime,
    constants.INDIRECT_BASE_CLASS: AbstractIndirectRuntime,
}


def compile_runtime_class(
    source: str,
    class_name: str,
    base_class: type | None = None,
) -> type:
    """Compile *source* and return the class it defines under *class_name*.

    Args:
        source: Python source produced by the source generator.
        class_name: Name of the runtime class defined by *source*.
        base_class: Optional subclass of a runtime base class; when given,
            it is visible to *source* under its own name as well as under
            the standard base-class names it derives from.

    Returns:
        The compiled runtime class.

    Raises:
        RuntimeSourceError: *source* does not compile, does not define
            *class_name* or defines something that is not a runtime class.
    """
    namespace: dict = dict(BASE_CLASSES)
    if base_class is not None:
        if not issubclass(base_class, AbstractJiffleRuntime):
            raise RuntimeSourceError(
                f"{base_class.__name__} is not a Jiffle runtime base class", source
            )
        namespace[base_class.__name__] = base_class
    try:
        code = compile(source, constants.GENERATED_FILENAME, "exec")
    except SyntaxError as exc:
        diagnostics = f"line {exc.lineno}: {exc.msg}"
        logger.error("Generated runtime source failed to compile: %s", diagnostics)
        raise RuntimeSourceError("Runtime source error", source, diagnostics) from exc
    exec(code, namespace)

    runtime_class = namespace.get(class_name)
    if not isinstance(runtime_class, type) or not issubclass(
        runtime_class, AbstractJiffleRuntime
    ):
        raise RuntimeSourceError(
            "Runtime source error", source, f"no runtime class named {class_name}"
        )
    logger.debug("Compiled runtime class %s", class_name)
    return runtime_class
