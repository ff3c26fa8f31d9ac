"""Raster wrapper around numpy arrays used for bound images."""

from __future__ import annotations

import math

import numpy as np

from ..errors import BindingError, JiffleRuntimeError
from .transforms import Bounds


class Raster:
    """Band-interleaved view of a numpy array placed at a pixel origin.

    A 2-D array is treated as a single band ``[row, col]``; a 3-D array is
    ``[band, row, col]``. The wrapper never copies, so writes through it
    are visible in the caller's array.
    """

    def __init__(self, data: np.ndarray, min_x: int = 0, min_y: int = 0):
        if not isinstance(data, np.ndarray):
            raise BindingError(f"Expected a numpy array, got {type(data).__name__}")
        if data.ndim == 2:
            data = data[np.newaxis, :, :]
        elif data.ndim != 3:
            raise BindingError(f"Image arrays must be 2-D or 3-D, got {data.ndim}-D")
        self.data = data
        self.min_x = int(min_x)
        self.min_y = int(min_y)
        self._integral = np.issubdtype(data.dtype, np.integer)
        self._limits = np.iinfo(data.dtype) if self._integral else None

    @property
    def num_bands(self) -> int:
        return self.data.shape[0]

    @property
    def height(self) -> int:
        return self.data.shape[1]

    @property
    def width(self) -> int:
        return self.data.shape[2]

    @property
    def max_x(self) -> int:
        return self.min_x + self.width

    @property
    def max_y(self) -> int:
        return self.min_y + self.height

    @property
    def bounds(self) -> Bounds:
        return Bounds(float(self.min_x), float(self.min_y), float(self.width), float(self.height))

    @property
    def writable(self) -> bool:
        return bool(self.data.flags.writeable)

    def contains(self, px: int, py: int) -> bool:
        return self.min_x <= px < self.max_x and self.min_y <= py < self.max_y

    def _check_band(self, band: int) -> None:
        if not 0 <= band < self.num_bands:
            raise JiffleRuntimeError(
                f"Invalid band {band} for image with {self.num_bands} band(s)"
            )

    def get(self, px: int, py: int, band: int) -> float:
        self._check_band(band)
        return float(self.data[band, py - self.min_y, px - self.min_x])

    def set(self, px: int, py: int, band: int, value: float) -> None:
        self._check_band(band)
        if self._integral:
            if not math.isfinite(value):
                value = 0
            else:
                value = min(max(int(value), self._limits.min), self._limits.max)
        self.data[band, py - self.min_y, px - self.min_x] = value

    def __repr__(self) -> str:
        return (
            f"Raster(bands={self.num_bands}, width={self.width}, height={self.height}, "
            f"origin=({self.min_x}, {self.min_y}), dtype={self.data.dtype})"
        )


def as_raster(image) -> Raster:
    """Wrap *image* as a Raster; Raster instances are returned unchanged."""
    if isinstance(image, Raster):
        return image
    return Raster(image)
