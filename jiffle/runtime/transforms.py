"""World-to-image coordinate transforms and processing-area bounds."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .. import constants


@dataclass(frozen=True)
class Bounds:
    """Axis-aligned rectangle given by its minimum corner and its size."""

    min_x: float
    min_y: float
    width: float
    height: float

    @property
    def max_x(self) -> float:
        return self.min_x + self.width

    @property
    def max_y(self) -> float:
        return self.min_y + self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def union(self, other: Bounds) -> Bounds:
        min_x, min_y = min(self.min_x, other.min_x), min(self.min_y, other.min_y)
        return Bounds(
            min_x,
            min_y,
            max(self.max_x, other.max_x) - min_x,
            max(self.max_y, other.max_y) - min_y,
        )

    def intersection(self, other: Bounds) -> Bounds:
        min_x, min_y = max(self.min_x, other.min_x), max(self.min_y, other.min_y)
        return Bounds(
            min_x,
            min_y,
            max(0.0, min(self.max_x, other.max_x) - min_x),
            max(0.0, min(self.max_y, other.max_y) - min_y),
        )


def _check_bounds(bounds: Bounds | None, label: str) -> None:
    if bounds is None or bounds.is_empty():
        raise ValueError(f"{label} must not be null or empty")


class CoordinateTransform(ABC):
    """Maps world coordinates to integer pixel positions."""

    @abstractmethod
    def world_to_image(self, x: float, y: float) -> tuple[int, int]: ...


class IdentityTransform(CoordinateTransform):
    """World and pixel coordinates coincide; positions are truncated."""

    def world_to_image(self, x: float, y: float) -> tuple[int, int]:
        return int(x), int(y)

    def __repr__(self) -> str:
        return "IdentityTransform()"


class AffineTransform(CoordinateTransform):
    """Axis-aligned scale and translation: ``pixel = scale * world + offset``."""

    def __init__(self, x_scale: float, y_scale: float, x_offset: float = 0.0, y_offset: float = 0.0):
        self.x_scale = x_scale
        self.y_scale = y_scale
        self.x_offset = x_offset
        self.y_offset = y_offset

    def world_to_image(self, x: float, y: float) -> tuple[int, int]:
        px = self.x_scale * x + self.x_offset
        py = self.y_scale * y + self.y_offset
        return (
            math.floor(px + constants.WORLD_EPS),
            math.floor(py + constants.WORLD_EPS),
        )

    def __eq__(self, other) -> bool:
        return isinstance(other, AffineTransform) and (
            self.x_scale, self.y_scale, self.x_offset, self.y_offset
        ) == (other.x_scale, other.y_scale, other.x_offset, other.y_offset)

    def __hash__(self) -> int:
        return hash((self.x_scale, self.y_scale, self.x_offset, self.y_offset))

    def __repr__(self) -> str:
        return (
            f"AffineTransform(x_scale={self.x_scale}, y_scale={self.y_scale}, "
            f"x_offset={self.x_offset}, y_offset={self.y_offset})"
        )


IDENTITY = IdentityTransform()


# ── factory functions ────────────────────────────────────────────


def identity() -> CoordinateTransform:
    return IDENTITY


def scale(x_scale: float, y_scale: float) -> CoordinateTransform:
    return AffineTransform(x_scale, y_scale)


def translation(dx: float, dy: float) -> CoordinateTransform:
    return AffineTransform(1.0, 1.0, dx, dy)


def get_transform(
    world_bounds: Bounds,
    image_bounds: Bounds,
    reverse_x: bool = False,
    reverse_y: bool = False,
) -> CoordinateTransform:
    """Transform mapping *world_bounds* onto *image_bounds*.

    Args:
        world_bounds: Processing area in world units.
        image_bounds: Pixel bounds of the image.
        reverse_x: Map world max X to the image's min X.
        reverse_y: Map world max Y to the image's min Y (north-up rasters).

    Raises:
        ValueError: Either rectangle is missing or empty.
    """
    _check_bounds(world_bounds, "world_bounds")
    _check_bounds(image_bounds, "image_bounds")
    x_scale = image_bounds.width / world_bounds.width
    y_scale = image_bounds.height / world_bounds.height
    if reverse_x:
        x_scale = -x_scale
        x_offset = image_bounds.min_x - x_scale * world_bounds.max_x
    else:
        x_offset = image_bounds.min_x - x_scale * world_bounds.min_x
    if reverse_y:
        y_scale = -y_scale
        y_offset = image_bounds.min_y - y_scale * world_bounds.max_y
    else:
        y_offset = image_bounds.min_y - y_scale * world_bounds.min_y
    return AffineTransform(x_scale, y_scale, x_offset, y_offset)


def unit_bounds(image_bounds: Bounds) -> CoordinateTransform:
    """Transform for scripts that address the image in proportional units."""
    _check_bounds(image_bounds, "image_bounds")
    return get_transform(Bounds(0.0, 0.0, 1.0, 1.0), image_bounds)
