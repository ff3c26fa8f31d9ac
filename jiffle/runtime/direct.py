"""Direct runtime model: the runtime drives its own pixel loop."""

from __future__ import annotations

import logging
from abc import abstractmethod

from ..compiler_types import ImageRole
from ..errors import JiffleRuntimeError
from .base import AbstractJiffleRuntime
from .progress import NullProgressListener, ProgressListener
from .transforms import CoordinateTransform

logger = logging.getLogger(__name__)


class AbstractDirectRuntime(AbstractJiffleRuntime):
    """Writes destination images directly while iterating the processing area."""

    def set_destination_image(self, name: str, image, transform: CoordinateTransform | None = None) -> None:
        self._check_role(name, ImageRole.DEST)
        self.bind(name, image, transform)

    @abstractmethod
    def evaluate(self, x: float, y: float) -> None:
        """Evaluate the script at one world position, writing every destination band."""

    def write_dest(self, name: str, x: float, y: float, band: float, value: float) -> None:
        image = self._images[name]
        px, py = self._pixel_position(image, x, y)
        if not image.raster.contains(px, py):
            raise JiffleRuntimeError(
                "Position %.4f %.4f is outside bounds of image: %s" % (x, y, name)
            )
        image.raster.set(px, py, self.band_index(band), value)

    def evaluate_all(self, listener: ProgressListener | None = None) -> bool:
        """Process the whole area; returns False if the listener cancelled.

        Init-block variables are re-initialised on every call, so repeated
        runs over unchanged sources produce identical output.
        """
        listener = listener or NullProgressListener()
        self.check_bound()
        if not self.is_world_set():
            self.set_default_bounds()
        self.check_transforms()
        self.initialize()

        world = self._require_world()
        xs, ys = world.x_steps(), world.y_steps()
        listener.set_task_size(len(xs) * len(ys))
        interval = listener.update_interval
        count = 0
        since_update = 0
        logger.info("Evaluating %d x %d pixels", len(xs), len(ys))
        listener.start()
        for y in ys:
            if listener.is_canceled():
                logger.info("Evaluation cancelled after %d pixels", count)
                return False
            for x in xs:
                self.evaluate(x, y)
                count += 1
                since_update += 1
                if since_update >= interval:
                    listener.update(count)
                    since_update = 0
        listener.finish()
        return True
