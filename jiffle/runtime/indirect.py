"""Indirect runtime model: the caller drives the loop and receives values."""

from __future__ import annotations

import logging
from abc import abstractmethod

from ..compiler_types import ImageRole
from .base import AbstractJiffleRuntime
from .functions import NAN
from .transforms import CoordinateTransform

logger = logging.getLogger(__name__)


class AbstractIndirectRuntime(AbstractJiffleRuntime):
    """Returns computed destination values instead of writing an image.

    Only source images must be bound. The destination variable may be
    registered by name with ``set_destination_image`` but no raster is
    held for it.
    """

    def __init__(self, config=None):
        super().__init__(config)
        self.destination_name: str | None = None

    def set_destination_image(self, name: str, transform: CoordinateTransform | None = None) -> None:
        self._check_role(name, ImageRole.DEST)
        self._bind(name, ImageRole.DEST, None, transform)
        self.destination_name = name

    def _required_names(self) -> list[str]:
        return self.get_source_var_names()

    @abstractmethod
    def evaluate_into(self, x: float, y: float, result: dict[int, float]) -> None: ...

    def _prepare(self) -> None:
        self.check_bound()
        if not self._globals_initialized:
            if self.is_world_set():
                self.check_transforms()
            self.initialize()

    def evaluate_bands(self, x: float, y: float) -> list[float]:
        """Values of bands 0 up to the highest band written; unwritten bands are NaN."""
        self._prepare()
        result: dict[int, float] = {}
        self.evaluate_into(x, y, result)
        if not result:
            return []
        return [result.get(band, NAN) for band in range(max(result) + 1)]

    def evaluate(self, x: float, y: float) -> float:
        """Value of the lowest destination band written at (*x*, *y*)."""
        self._prepare()
        result: dict[int, float] = {}
        self.evaluate_into(x, y, result)
        if not result:
            return NAN
        return result[min(result)]
