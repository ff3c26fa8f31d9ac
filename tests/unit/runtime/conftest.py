"""Shared fixtures for runtime tests — every scenario runs on both backends."""

import logging

import numpy as np
import pytest

from jiffle import api
from jiffle.constants import SUPPORTED_BACKENDS

logger = logging.getLogger(__name__)


@pytest.fixture(params=SUPPORTED_BACKENDS)
def backend(request) -> str:
    return request.param


@pytest.fixture
def run_direct(backend):
    """Compile *script*, bind *images* and evaluate it over the whole area."""

    def _run(script: str, images: dict, image_params=None, config=None):
        logger.info("Running script on %s backend", backend)
        return api.evaluate_script(
            script, images, image_params, backend=backend, config=config
        )

    return _run


@pytest.fixture
def grid():
    """4x4 float source whose pixel (x, y) holds x + 4 * y."""
    return np.arange(16, dtype=float).reshape(4, 4)
