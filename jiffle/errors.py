"""Exception hierarchy raised by the compiler and its runtime objects."""

from __future__ import annotations


class JiffleError(Exception):
    """Base class for every error raised by this package."""


class JiffleSyntaxError(JiffleError):
    """The script text could not be parsed."""

    def __init__(self, messages):
        self.messages = messages
        super().__init__(str(messages))


class MissingImageParameters(JiffleError):
    """No image roles were supplied and none were declared by the script."""


class JiffleCompilationError(JiffleError):
    """A semantic-analysis pass reported one or more errors.

    ``messages`` holds the full diagnostics of the failing pass; the
    exception text joins every message.
    """

    def __init__(self, messages):
        self.messages = messages
        super().__init__(str(messages))


class RuntimeModelViolation(JiffleError):
    """The compiled script cannot be rendered for the requested runtime model."""


class RuntimeSourceError(JiffleError):
    """Generated runtime source was rejected by the compile service."""

    def __init__(self, message: str, source: str, diagnostics: str = ""):
        self.source = source
        self.diagnostics = diagnostics
        super().__init__(f"{message}: {diagnostics}" if diagnostics else message)


class BindingError(JiffleError):
    """A runtime image binding is missing, unknown or of the wrong role."""


class TransformError(JiffleError):
    """A coordinate transform is missing or cannot be applied."""


class WorldNotSetError(TransformError):
    """A transform was supplied before the processing world was defined."""


class JiffleRuntimeError(JiffleError):
    """Evaluation of a compiled script failed."""
