"""Runtime objects that evaluate compiled scripts over bound images."""

from .base import AbstractJiffleRuntime  # noqa: F401
from .direct import AbstractDirectRuntime  # noqa: F401
from .images import Raster  # noqa: F401
from .indirect import AbstractIndirectRuntime  # noqa: F401
from .progress import (  # noqa: F401
    AbstractProgressListener,
    LoggingProgressListener,
    NullProgressListener,
    ProgressListener,
)
from .transforms import Bounds, CoordinateTransform  # noqa: F401
