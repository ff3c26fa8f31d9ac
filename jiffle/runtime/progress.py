"""Progress listeners notified while a direct runtime processes its extent."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from .. import constants

logger = logging.getLogger(__name__)


class ProgressListener(ABC):
    """Receives task size, periodic updates and completion from ``evaluate_all``."""

    @property
    @abstractmethod
    def update_interval(self) -> int:
        """Number of pixels between successive ``update`` calls."""

    @abstractmethod
    def set_task_size(self, num_pixels: int) -> None: ...

    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def update(self, done: int) -> None: ...

    @abstractmethod
    def finish(self) -> None: ...

    def is_canceled(self) -> bool:
        """Polled once per scanline; returning True stops processing."""
        return False


class AbstractProgressListener(ProgressListener):
    """Listener whose update interval is a pixel count or a task proportion."""

    def __init__(self):
        self._update_interval = constants.DEFAULT_PROGRESS_INTERVAL
        self._update_prop: float | None = None
        self.task_size = 0
        self._canceled = False

    @property
    def update_interval(self) -> int:
        return self._update_interval

    def set_update_interval(self, num_pixels: int) -> None:
        self._update_interval = max(int(num_pixels), 1)
        self._update_prop = None

    def set_update_proportion(self, proportion: float) -> None:
        self._update_prop = min(max(proportion, 0.0), 1.0)
        self._resolve_interval()

    def set_task_size(self, num_pixels: int) -> None:
        self.task_size = num_pixels
        self._resolve_interval()

    def _resolve_interval(self) -> None:
        if self.task_size > 0 and self._update_prop is not None:
            self._update_interval = max(int(self.task_size * self._update_prop), 1)

    def cancel(self) -> None:
        self._canceled = True

    def is_canceled(self) -> bool:
        return self._canceled


class NullProgressListener(AbstractProgressListener):
    """Default listener: ignores every notification."""

    def start(self) -> None:
        pass

    def update(self, done: int) -> None:
        pass

    def finish(self) -> None:
        pass


class LoggingProgressListener(AbstractProgressListener):
    """Reports progress through the module logger."""

    def start(self) -> None:
        logger.info("Processing %d pixels", self.task_size)

    def update(self, done: int) -> None:
        if self.task_size:
            logger.info("Processed %d of %d pixels (%.0f%%)", done, self.task_size, 100.0 * done / self.task_size)

    def finish(self) -> None:
        logger.info("Processing finished")
