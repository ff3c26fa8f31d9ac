"""Tests for the composable API functions in jiffle.api."""

import json

import numpy as np
import pytest
from lark import Tree

from jiffle import api
from jiffle.ir import ScriptIR
from jiffle.runtime.progress import LoggingProgressListener

SRC_DEST = {"src": "read", "dest": "write"}

SCRIPT = """\
images { src = read; dest = write; }
init { scale = 2; }
dest = src * scale;
"""


class TestParseScript:
    def test_returns_tree(self):
        assert isinstance(api.parse_script(SCRIPT), Tree)


class TestCompileScript:
    def test_returns_ir(self):
        ir = api.compile_script(SCRIPT)
        assert isinstance(ir, ScriptIR)
        assert [g.name for g in ir.globals] == ["scale"]

    def test_string_roles_accepted(self):
        ir = api.compile_script("dest = src;", {"src": "read", "dest": "write"})
        assert ir.source_images == ("src",)


class TestDumpIr:
    def test_is_json(self):
        document = json.loads(api.dump_ir(SCRIPT))
        assert document["images"][0] == {"name": "src", "role": "source"}
        assert document["statements"][0]["kind"] == "set_dest"

    def test_multiline_output(self):
        assert "\n" in api.dump_ir(SCRIPT)


class TestGenerateSource:
    def test_direct_source(self):
        source = api.generate_source(SCRIPT)
        assert "class JiffleDirectRuntimeImpl(AbstractDirectRuntime):" in source

    def test_indirect_source_from_text_model(self):
        source = api.generate_source(SCRIPT, "INDIRECT")
        assert "def evaluate_into(self, _x, _y, _result):" in source


class TestCreateRuntime:
    def test_runtime_is_unbound(self):
        runtime = api.create_runtime(SCRIPT)
        assert not runtime.is_bound()
        assert set(runtime.unbound_names()) == {"src", "dest"}

    @pytest.mark.parametrize("backend", ["compiled", "interpreted"])
    def test_backends_agree(self, backend):
        runtime = api.create_runtime(SCRIPT, "indirect", backend=backend)
        runtime.bind("src", np.full((3, 3), 1.5))
        assert runtime.evaluate(1, 1) == 3.0


class TestEvaluateScript:
    def test_returns_destinations(self):
        src = np.arange(9, dtype=float).reshape(3, 3)
        dest = np.zeros((3, 3))
        result = api.evaluate_script(SCRIPT, {"src": src, "dest": dest})
        assert list(result) == ["dest"]
        assert result["dest"] is dest
        assert np.array_equal(dest, src * 2)

    def test_with_listener(self):
        dest = np.zeros((2, 2))
        listener = LoggingProgressListener()
        api.evaluate_script("dest = 1;", {"dest": dest}, {"dest": "write"}, listener=listener)
        assert np.all(dest == 1.0)
        assert listener.task_size == 4


class TestReadPositions:
    def test_delegates_to_query(self):
        assert api.read_positions("dest = src[1, 0];", ["src"]) == {"src": {(1, 0)}}
