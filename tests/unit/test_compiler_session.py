"""Tests for the Jiffle compiler session object."""

import numpy as np
import pytest

from jiffle.compiler import Jiffle
from jiffle.compiler_types import ImageRole
from jiffle.errors import JiffleCompilationError, JiffleError, MissingImageParameters
from jiffle.runtime.direct import AbstractDirectRuntime
from jiffle.runtime.indirect import AbstractIndirectRuntime

SRC_DEST = {"src": "read", "dest": "write"}


class TestSessionLifecycle:
    def test_compiles_when_given_script_and_params(self):
        jiffle = Jiffle("dest = src;", SRC_DEST)
        assert jiffle.is_compiled()
        assert jiffle.ir.dest_images == ("dest",)

    def test_not_compiled_until_asked(self):
        jiffle = Jiffle()
        jiffle.set_script("dest = 1;")
        jiffle.set_image_params({"dest": "write"})
        assert not jiffle.is_compiled()
        jiffle.compile()
        assert jiffle.is_compiled()

    def test_changing_script_discards_ir(self):
        jiffle = Jiffle("dest = src;", SRC_DEST)
        jiffle.set_script("dest = src * 2;")
        assert not jiffle.is_compiled()
        assert jiffle.ir is None

    def test_changing_params_discards_ir(self):
        jiffle = Jiffle("dest = 1;", {"dest": "write"})
        jiffle.set_image_params({"dest": "write"})
        assert not jiffle.is_compiled()

    def test_failed_compile_keeps_no_ir(self):
        jiffle = Jiffle()
        jiffle.set_script("dest = missing;")
        jiffle.set_image_params({"dest": "write"})
        with pytest.raises(JiffleCompilationError):
            jiffle.compile()
        assert not jiffle.is_compiled()

    def test_empty_script_rejected(self):
        with pytest.raises(JiffleError, match="script is empty"):
            Jiffle().set_script("  \n")

    def test_compile_without_script(self):
        with pytest.raises(JiffleError, match="No script has been set"):
            Jiffle().compile()

    def test_missing_image_parameters(self):
        jiffle = Jiffle()
        jiffle.set_script("dest = 1;")
        with pytest.raises(MissingImageParameters):
            jiffle.compile()


class TestImageParams:
    def test_supplied_params_normalised(self):
        jiffle = Jiffle()
        jiffle.set_image_params({"src": "source", "dest": ImageRole.DEST})
        assert jiffle.get_image_params() == {"src": ImageRole.SOURCE, "dest": ImageRole.DEST}

    def test_params_from_script_after_compile(self):
        jiffle = Jiffle()
        jiffle.set_script("images { a = read; b = write; } b = a;")
        assert jiffle.get_image_params() == {}
        jiffle.compile()
        assert jiffle.get_image_params() == {"a": ImageRole.SOURCE, "b": ImageRole.DEST}

    def test_invalid_role(self):
        with pytest.raises(JiffleError, match="Invalid role"):
            Jiffle().set_image_params({"a": "sideways"})


class TestRuntimeAccess:
    def test_runtime_requires_compilation(self):
        jiffle = Jiffle()
        jiffle.set_script("dest = 1;")
        with pytest.raises(JiffleError, match="has not been compiled"):
            jiffle.get_runtime_instance()
        with pytest.raises(JiffleError, match="has not been compiled"):
            jiffle.get_runtime_source()

    def test_each_call_returns_new_runtime(self):
        jiffle = Jiffle("dest = src;", SRC_DEST)
        first, second = jiffle.get_runtime_instance(), jiffle.get_runtime_instance()
        assert first is not second
        assert isinstance(first, AbstractDirectRuntime)

    def test_indirect_runtime(self):
        jiffle = Jiffle("dest = src + 1;", SRC_DEST)
        runtime = jiffle.get_runtime_instance("indirect")
        assert isinstance(runtime, AbstractIndirectRuntime)
        runtime.bind("src", np.full((2, 2), 4.0))
        assert runtime.evaluate(1, 1) == 5.0

    def test_runtime_source(self):
        jiffle = Jiffle("dest = src;", SRC_DEST)
        assert "AbstractIndirectRuntime" in jiffle.get_runtime_source("indirect")
        assert jiffle.get_runtime_source("direct", include_script=True).startswith("#")

    def test_unknown_model(self):
        jiffle = Jiffle("dest = src;", SRC_DEST)
        with pytest.raises(JiffleError, match="Unknown runtime model"):
            jiffle.get_runtime_instance("sideways")

    def test_unknown_backend(self):
        jiffle = Jiffle("dest = src;", SRC_DEST)
        with pytest.raises(JiffleError, match="Unsupported backend"):
            jiffle.get_runtime_instance(backend="jit")

    def test_runtime_knows_its_images(self):
        runtime = Jiffle("dest = src;", SRC_DEST).get_runtime_instance()
        assert runtime.get_source_var_names() == ["src"]
        assert runtime.get_destination_var_names() == ["dest"]
        assert runtime.destination_bands == {"dest": frozenset({0})}
