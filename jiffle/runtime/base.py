"""Runtime base class shared by the direct and indirect execution models."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .. import constants
from ..compiler_types import ExtentPolicy, ImageRole, RuntimeConfig
from ..errors import (
    BindingError,
    JiffleRuntimeError,
    TransformError,
    WorldNotSetError,
)
from .functions import NAN, JiffleFunctions
from .images import Raster, as_raster
from .transforms import Bounds, CoordinateTransform, IdentityTransform

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class World:
    """Processing area in world units plus the step between pixels."""

    bounds: Bounds
    x_res: float
    y_res: float
    pixel_units: bool = False

    def x_steps(self) -> list[float]:
        return _steps(self.bounds.min_x, self.bounds.max_x, self.x_res)

    def y_steps(self) -> list[float]:
        return _steps(self.bounds.min_y, self.bounds.max_y, self.y_res)

    @property
    def num_pixels(self) -> int:
        return len(self.x_steps()) * len(self.y_steps())


def _steps(low: float, high: float, res: float) -> list[float]:
    values = []
    i = 0
    while low + i * res < high - constants.WORLD_EPS:
        values.append(low + i * res)
        i += 1
    return values


def _check_res(value: float, name: str, extent: float) -> None:
    if math.isinf(value):
        raise ValueError(f"{name} cannot be infinite")
    if math.isnan(value):
        raise ValueError(f"{name} cannot be NaN")
    if value < constants.WORLD_EPS:
        raise ValueError("xres and yres must be greater than 0")
    if value > extent:
        raise ValueError(f"{name} should be less than the processing area extent")


@dataclass
class BoundImage:
    """An image bound to a script variable, with its optional transform."""

    name: str
    role: ImageRole
    raster: Raster | None
    transform: CoordinateTransform | None = None


class AbstractJiffleRuntime(ABC):
    """State and services shared by every runtime object.

    Subclasses generated from a script (or the interpreted runtimes) supply
    ``init_globals`` plus the per-pixel evaluation method of their model.
    The compiler driver copies the image roles and destination-band map in
    through ``set_image_params`` and ``set_destination_bands``.
    """

    MODEL = ""
    OUTSIDE_SET = False
    OUTSIDE_VALUE = NAN
    GLOBAL_NAMES: tuple[str, ...] = ()

    def __init__(self, config: RuntimeConfig | None = None):
        self.config = config or RuntimeConfig()
        self.functions = JiffleFunctions(self.config.seed)
        self.image_params: dict[str, ImageRole] = {}
        self.destination_bands: dict[str, frozenset[int]] = {}
        self.globals_: dict[str, object] = {}
        self.var_overrides: dict[str, float] = {}
        self._images: dict[str, BoundImage] = {}
        self._world: World | None = None
        self._default_transform: CoordinateTransform | None = None
        self._globals_initialized = False
        self._iterations = 0

    @abstractmethod
    def init_globals(self) -> None: ...

    # ── compiler-supplied metadata ───────────────────────────────

    def set_image_params(self, image_params: dict[str, ImageRole]) -> None:
        self.image_params = dict(image_params)

    def set_destination_bands(self, bands: dict[str, frozenset[int]]) -> None:
        self.destination_bands = dict(bands)

    def get_source_var_names(self) -> list[str]:
        return [n for n, r in self.image_params.items() if r == ImageRole.SOURCE]

    def get_destination_var_names(self) -> list[str]:
        return [n for n, r in self.image_params.items() if r == ImageRole.DEST]

    # ── image binding ────────────────────────────────────────────

    def bind(self, name: str, image, transform: CoordinateTransform | None = None) -> None:
        """Bind *image* to the script variable *name*, replacing any prior binding.

        Raises:
            BindingError: *name* is not an image variable of the script, or a
                destination array is read-only.
            WorldNotSetError: A transform is given before the world is defined.
        """
        role = self.image_params.get(name)
        if role is None:
            raise BindingError(f"Unknown image variable: {name}")
        raster = as_raster(image)
        if role == ImageRole.DEST and not raster.writable:
            raise BindingError(f"Destination image {name} is not writable")
        self._bind(name, role, raster, transform)

    def _bind(self, name, role, raster, transform) -> None:
        if transform is not None and not self.is_world_set():
            raise WorldNotSetError(
                f"Setting a coordinate transform for {name} without having "
                "first set the world bounds and resolution"
            )
        self._images[name] = BoundImage(name, role, raster, transform)
        self._globals_initialized = False
        logger.debug("Bound %s image %s", role.value, name)

    def _check_role(self, name: str, role: ImageRole) -> None:
        actual = self.image_params.get(name)
        if actual is None:
            raise BindingError(f"Unknown image variable: {name}")
        if actual != role:
            raise BindingError(f"{name} is a {actual.value} image, not a {role.value} image")

    def set_source_image(self, name: str, image, transform: CoordinateTransform | None = None) -> None:
        self._check_role(name, ImageRole.SOURCE)
        self.bind(name, image, transform)

    def _required_names(self) -> list[str]:
        return list(self.image_params)

    def unbound_names(self) -> list[str]:
        return [n for n in self._required_names() if n not in self._images]

    def is_bound(self) -> bool:
        return not self.unbound_names()

    def check_bound(self) -> None:
        missing = self.unbound_names()
        if missing:
            raise BindingError(f"Unbound image variables: {', '.join(missing)}")

    def get_images(self) -> dict[str, object]:
        return {
            name: image.raster.data
            for name, image in self._images.items()
            if image.raster is not None
        }

    # ── world ────────────────────────────────────────────────────

    def set_world_by_resolution(self, bounds: Bounds, x_res: float, y_res: float) -> None:
        if bounds is None or bounds.is_empty():
            raise ValueError("bounds cannot be null or empty")
        self._set_world(bounds, x_res, y_res)

    def set_world_by_num_pixels(self, bounds: Bounds, num_x: int, num_y: int) -> None:
        if bounds is None or bounds.is_empty():
            raise ValueError("bounds cannot be null or empty")
        if num_x <= 0 or num_y <= 0:
            raise ValueError("num_x and num_y must be greater than 0")
        self._set_world(bounds, bounds.width / num_x, bounds.height / num_y)

    def set_pixel_extent(self, bounds: Bounds) -> None:
        """Process *bounds* in pixel units, one step per pixel."""
        if bounds is None or bounds.is_empty():
            raise ValueError("bounds cannot be null or empty")
        self._set_world(bounds, 1.0, 1.0, pixel_units=True)

    def _set_world(self, bounds: Bounds, x_res: float, y_res: float, pixel_units: bool = False) -> None:
        _check_res(x_res, "xres", bounds.width)
        _check_res(y_res, "yres", bounds.height)
        self._world = World(bounds, x_res, y_res, pixel_units)
        self._globals_initialized = False
        logger.debug("World set to %s (res %s, %s)", bounds, x_res, y_res)

    def set_default_bounds(self) -> None:
        """Derive a pixel-unit processing area from the bound images."""
        self._set_world(self._default_extent(), 1.0, 1.0, pixel_units=True)

    def _default_extent(self) -> Bounds:
        rasters = [
            (image.role, image.raster.bounds)
            for image in self._images.values()
            if image.raster is not None
        ]
        if not rasters:
            raise BindingError("No images bound: cannot derive the processing area")
        policy = self.config.extent_policy
        if policy == ExtentPolicy.FIRST_DEST:
            dests = [b for role, b in rasters if role == ImageRole.DEST]
            sources = [b for role, b in rasters if role == ImageRole.SOURCE]
            return (dests or sources)[0]
        extent = rasters[0][1]
        for _, bounds in rasters[1:]:
            extent = extent.union(bounds) if policy == ExtentPolicy.UNION else extent.intersection(bounds)
        if extent.is_empty():
            raise JiffleRuntimeError("Bound images do not overlap")
        return extent

    def is_world_set(self) -> bool:
        return self._world is not None

    def get_num_pixels(self) -> int:
        return self._require_world().num_pixels

    def _require_world(self) -> World:
        if self._world is None:
            raise JiffleRuntimeError("Processing area has not been set")
        return self._world

    def set_default_transform(self, transform: CoordinateTransform | None) -> None:
        if transform is not None and not self.is_world_set():
            raise WorldNotSetError(
                "Setting a default coordinate transform without having "
                "first set the world bounds and resolution"
            )
        self._default_transform = transform

    def _effective_transform(self, image: BoundImage) -> CoordinateTransform | None:
        return image.transform or self._default_transform

    def check_transforms(self) -> None:
        """Images processed in world units need an effective transform."""
        world = self._require_world()
        if world.pixel_units:
            return
        for image in self._images.values():
            if image.raster is not None and self._effective_transform(image) is None:
                raise TransformError(
                    f"No coordinate transform for image {image.name} "
                    "and no default transform set"
                )

    # ── proxies for script functions ─────────────────────────────

    def get_min_x(self) -> float:
        return self._require_world().bounds.min_x

    def get_max_x(self) -> float:
        return self._require_world().bounds.max_x

    def get_min_y(self) -> float:
        return self._require_world().bounds.min_y

    def get_max_y(self) -> float:
        return self._require_world().bounds.max_y

    def get_width(self) -> float:
        return self._require_world().bounds.width

    def get_height(self) -> float:
        return self._require_world().bounds.height

    def get_x_res(self) -> float:
        return self._require_world().x_res

    def get_y_res(self) -> float:
        return self._require_world().y_res

    # ── init-block variables ─────────────────────────────────────

    def get_var_names(self) -> list[str]:
        return list(self.GLOBAL_NAMES)

    def get_var(self, name: str):
        """Current value of init-block variable *name*, or None if undefined."""
        if name not in self.GLOBAL_NAMES:
            return None
        if not self._globals_initialized:
            if name in self.var_overrides:
                return self.var_overrides[name]
            self.initialize()
        return self.globals_.get(name)

    def set_var(self, name: str, value: float | None) -> None:
        """Override the initial value of *name*; None stands for NaN."""
        if name not in self.GLOBAL_NAMES:
            raise JiffleRuntimeError(f"Undefined variable: {name}")
        self.var_overrides[name] = NAN if value is None else float(value)
        self._globals_initialized = False

    def initialize(self) -> None:
        if not self.is_world_set() and self._images:
            self.set_default_bounds()
        if self.config.seed is not None:
            self.functions = JiffleFunctions(self.config.seed)
        self.init_globals()
        self._globals_initialized = True
        logger.debug("Initialised variables: %s", self.globals_)

    # ── services for evaluation code ─────────────────────────────

    def begin_pixel(self) -> None:
        self._iterations = 0

    def count_iteration(self) -> None:
        self._iterations += 1
        if self._iterations > self.config.max_loop_iterations:
            raise JiffleRuntimeError("Exceeded maximum allowed loop iterations per pixel")

    def band_index(self, band: float) -> int:
        if not math.isfinite(band) or band < 0:
            raise JiffleRuntimeError(f"Invalid band index: {band}")
        return int(band)

    def _pixel_position(self, image: BoundImage, x: float, y: float) -> tuple[int, int]:
        transform = self._effective_transform(image)
        if transform is None or isinstance(transform, IdentityTransform):
            return int(x), int(y)
        return transform.world_to_image(x, y)

    def read_source(self, name: str, x: float, y: float, band: float) -> float:
        image = self._images[name]
        inside = math.isfinite(x) and math.isfinite(y)
        if inside:
            px, py = self._pixel_position(image, x, y)
            inside = image.raster.contains(px, py)
        if not inside:
            if self.OUTSIDE_SET:
                return self.OUTSIDE_VALUE
            raise JiffleRuntimeError(
                "Position %.4f %.4f is outside bounds of image: %s" % (x, y, name)
            )
        return image.raster.get(px, py, self.band_index(band))

    def get_image_info(self, name: str, attribute: str) -> float:
        image = self._images.get(name)
        if image is None or image.raster is None:
            raise BindingError(f"Image {name} is not bound")
        return float(image.raster.num_bands)
