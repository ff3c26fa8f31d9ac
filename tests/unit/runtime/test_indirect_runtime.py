"""Tests for the indirect runtime model, where the caller drives the pixel loop."""

import math

import numpy as np
import pytest

from jiffle import api
from jiffle.errors import BindingError, RuntimeModelViolation

SRC_DEST = {"src": "read", "dest": "write"}


def _indirect(script: str, backend: str, image_params=SRC_DEST):
    return api.create_runtime(script, "indirect", image_params, backend)


class TestIndirectEvaluation:
    def test_value_at_position(self, backend, grid):
        runtime = _indirect("dest = src * 2;", backend)
        runtime.bind("src", grid)
        assert runtime.evaluate(1, 2) == 18.0

    def test_destination_binding_is_optional(self, backend, grid):
        runtime = _indirect("dest = src;", backend)
        runtime.bind("src", grid)
        assert runtime.is_bound()
        assert runtime.evaluate(3, 3) == 15.0

    def test_destination_may_be_registered_by_name(self, backend, grid):
        runtime = _indirect("dest = src;", backend)
        runtime.set_destination_image("dest")
        runtime.bind("src", grid)
        assert runtime.destination_name == "dest"
        assert runtime.evaluate(0, 1) == 4.0

    def test_unbound_source(self, backend):
        runtime = _indirect("dest = src;", backend)
        with pytest.raises(BindingError, match="src"):
            runtime.evaluate(0, 0)

    def test_scalar_only_script(self, backend):
        runtime = _indirect("dest = x() * 10 + y();", backend, {"dest": "write"})
        assert runtime.evaluate(2, 3) == 23.0

    def test_band_values(self, backend):
        runtime = _indirect("dest[0] = 1; dest[2] = 3;", backend, {"dest": "write"})
        values = runtime.evaluate_bands(0, 0)
        assert len(values) == 3
        assert values[0] == 1.0
        assert math.isnan(values[1])
        assert values[2] == 3.0

    def test_dynamic_band(self, backend):
        runtime = _indirect("dest[x()] = 5;", backend, {"dest": "write"})
        values = runtime.evaluate_bands(2, 0)
        assert len(values) == 3
        assert all(math.isnan(v) for v in values[:2])
        assert values[2] == 5.0

    def test_nothing_written_gives_nan(self, backend):
        runtime = _indirect("if (x() > 5) dest = 1;", backend, {"dest": "write"})
        assert math.isnan(runtime.evaluate(0, 0))
        assert runtime.evaluate_bands(0, 0) == []

    def test_neighbourhood_with_outside_value(self, backend, grid):
        runtime = _indirect("options { outside = -1; } dest = src[0, 1];", backend)
        runtime.bind("src", grid)
        assert runtime.evaluate(0, 0) == 4.0
        assert runtime.evaluate(0, 3) == -1.0


class TestIndirectVariables:
    def test_init_vars_initialised_lazily(self, backend):
        runtime = _indirect("init { n = 7; } dest = n;", backend, {"dest": "write"})
        assert runtime.get_var("n") == 7.0
        assert runtime.evaluate(0, 0) == 7.0

    def test_set_var_takes_effect(self, backend):
        runtime = _indirect("init { n = 7; } dest = n;", backend, {"dest": "write"})
        runtime.evaluate(0, 0)
        runtime.set_var("n", 2)
        assert runtime.evaluate(0, 0) == 2.0

    def test_set_var_none_is_nan(self, backend):
        runtime = _indirect("init { n = 7; } dest = n;", backend, {"dest": "write"})
        runtime.set_var("n", None)
        assert math.isnan(runtime.evaluate(0, 0))


class TestIndirectModelViolation:
    def test_two_destinations_rejected(self, backend):
        params = {"a": "write", "b": "write"}
        with pytest.raises(RuntimeModelViolation, match="exactly one destination"):
            _indirect("a = 1; b = 2;", backend, params)

    def test_source_generation_rejected(self):
        params = {"a": "write", "b": "write"}
        with pytest.raises(RuntimeModelViolation):
            api.generate_source("a = 1; b = 2;", "indirect", params)

    def test_direct_model_accepts_two_destinations(self):
        source = api.generate_source("a = 1; b = 2;", "direct", {"a": "write", "b": "write"})
        assert "self.write_dest('a'" in source
        assert "self.write_dest('b'" in source

    def test_indirect_source_fills_result(self):
        source = api.generate_source("dest[1] = 4;", "indirect", {"dest": "write"})
        assert "def evaluate_into(self, _x, _y, _result):" in source
        assert "_result[1] = 4.0" in source

    def test_scratch_arrays_untouched(self, backend, grid):
        runtime = _indirect("dest = src + 1;", backend)
        runtime.bind("src", grid)
        before = grid.copy()
        runtime.evaluate(1, 1)
        assert np.array_equal(grid, before)
