"""Tests for the analysis passes: header blocks, scopes and expression types."""

import math

import pytest

from jiffle.compiler import compile_script, parse_tree
from jiffle.compiler_types import ImageRole
from jiffle.errors import JiffleCompilationError
from jiffle.messages import Errors
from jiffle.passes import ImagesBlockWorker, InitBlockWorker, OptionsBlockWorker

SRC_DEST = {"src": "read", "dest": "write"}


def _messages(worker) -> str:
    return str(worker.run().messages)


def _compile_error(script: str, image_params=SRC_DEST) -> str:
    with pytest.raises(JiffleCompilationError) as info:
        compile_script(script, image_params)
    return str(info.value)


class TestImagesBlock:
    def test_roles_discovered(self):
        worker = ImagesBlockWorker(parse_tree("images { a = read; b = write; } b = a;")).run()
        assert worker.image_params == {"a": ImageRole.SOURCE, "b": ImageRole.DEST}
        assert not worker.messages.is_error()

    def test_invalid_role(self):
        tree = parse_tree("images { a = sideways; } a = 1;")
        assert "Invalid image var type: sideways" in _messages(ImagesBlockWorker(tree))

    def test_duplicate_declaration(self):
        tree = parse_tree("images { a = read; a = write; } a = 1;")
        assert f"{Errors.DUPLICATE_VAR_DECL}: a" in _messages(ImagesBlockWorker(tree))

    def test_single_block_only(self):
        tree = parse_tree("images { a = read; } images { b = write; } b = a;")
        assert "more than one images block" in _messages(ImagesBlockWorker(tree))

    def test_no_block(self):
        worker = ImagesBlockWorker(parse_tree("dest = 1;")).run()
        assert worker.image_params == {}


class TestOptionsBlock:
    @pytest.mark.parametrize(
        "text, expected",
        [("0", 0.0), ("-2.5", -2.5), ("M_PI", math.pi), ("1e3", 1000.0)],
    )
    def test_outside_values(self, text, expected):
        worker = OptionsBlockWorker(parse_tree(f"options {{ outside = {text}; }} dest = 1;")).run()
        assert worker.options == {"outside": expected}
        options = worker.script_options()
        assert options.outside_set
        assert options.outside == expected

    @pytest.mark.parametrize("text", ["null", "NaN"])
    def test_nan_outside_values(self, text):
        worker = OptionsBlockWorker(parse_tree(f"options {{ outside = {text}; }} dest = 1;")).run()
        assert worker.options == {"outside": None}
        assert worker.script_options().outside_set

    def test_no_options(self):
        options = OptionsBlockWorker(parse_tree("dest = 1;")).run().script_options()
        assert not options.outside_set

    def test_unknown_option(self):
        tree = parse_tree("options { colour = 1; } dest = 1;")
        assert "Unknown option: colour" in _messages(OptionsBlockWorker(tree))

    def test_invalid_value(self):
        tree = parse_tree("options { outside = foo; } dest = 1;")
        assert "Invalid value (foo) for option outside" in _messages(OptionsBlockWorker(tree))

    def test_repeated_option(self):
        tree = parse_tree("options { outside = 1; outside = 2; } dest = 1;")
        assert "specified more than once" in _messages(OptionsBlockWorker(tree))


class TestInitBlock:
    def _worker(self, script: str) -> InitBlockWorker:
        params = {"src": ImageRole.SOURCE, "dest": ImageRole.DEST}
        return InitBlockWorker(parse_tree(script), params).run()

    def test_variables_in_declaration_order(self):
        worker = self._worker("init { b = 1; a; } dest = a + b;")
        assert list(worker.init_vars) == ["b", "a"]
        assert worker.init_vars["a"] is None

    def test_image_name_declared(self):
        worker = self._worker("init { dest = 1; } dest = 2;")
        assert f"{Errors.IMAGE_VAR_INIT_BLOCK}: dest" in str(worker.messages)

    def test_image_read_in_initializer(self):
        worker = self._worker("init { n = src; } dest = n;")
        assert f"{Errors.IMAGE_VAR_INIT_BLOCK}: src" in str(worker.messages)

    def test_position_function_in_initializer(self):
        worker = self._worker("init { n = x(); } dest = n;")
        assert f"{Errors.POSITION_FUNCTION_INIT_BLOCK}: x" in str(worker.messages)

    def test_constant_declared(self):
        worker = self._worker("init { M_PI = 3; } dest = 1;")
        assert f"{Errors.ASSIGNMENT_TO_CONSTANT}: M_PI" in str(worker.messages)

    def test_duplicate(self):
        worker = self._worker("init { n = 1; n = 2; } dest = n;")
        assert f"{Errors.DUPLICATE_VAR_DECL}: n" in str(worker.messages)

    def test_header_after_statements(self):
        worker = self._worker("dest = 1; init { n = 1; }")
        assert "Init block must appear before script statements" in str(worker.messages)


class TestScopeErrors:
    @pytest.mark.parametrize(
        "script, error",
        [
            ("dest = a;", f"{Errors.VAR_UNDEFINED}: a"),
            ("src = 1; dest = 1;", f"{Errors.WRITING_TO_SOURCE_IMAGE}: src"),
            ("dest = 1; dest = dest + 1;", f"{Errors.READING_FROM_DEST_IMAGE}: dest"),
            ("dest = src[dest];", f"{Errors.READING_FROM_DEST_IMAGE}: dest"),
            ("dest += 1;", f"{Errors.INVALID_ASSIGNMENT_OP_WITH_DEST_IMAGE}: dest"),
            ("n = 1; n[0] = 2; dest = n;", f"{Errors.INVALID_ASSIGNMENT_NOT_DEST_IMAGE}: n"),
            ("break; dest = 1;", Errors.BREAK_OUTSIDE_LOOP),
            ("M_PI = 3; dest = 1;", f"{Errors.ASSIGNMENT_TO_CONSTANT}: M_PI"),
            (
                "foreach (i in 1:3) { i = 2; } dest = 1;",
                f"{Errors.ASSIGNMENT_TO_LOOP_VAR}: i",
            ),
            ("n = 1; dest = n[1, 0];", f"{Errors.IMAGE_POS_ON_NON_IMAGE}: n"),
            ("dest = other[0, 0];", f"{Errors.UNDEFINED_SOURCE}: other"),
            ("n = 1; dest = n->bands;", f"{Errors.IMAGE_INFO_ON_NON_IMAGE}: n"),
            ("m += 1; dest = 1;", f"{Errors.VAR_UNDEFINED}: m"),
            ("if (1) { n = 1; } dest = n;", f"{Errors.VAR_UNDEFINED}: n"),
            ("foreach (i in 1:2) { } dest = i;", f"{Errors.VAR_UNDEFINED}: i"),
        ],
    )
    def test_reported(self, script, error):
        assert error in _compile_error(script)

    def test_outer_variable_visible_in_block(self):
        compile_script("n = 1; if (n > 0) { n = 2; } dest = n;", SRC_DEST)

    def test_every_error_reported(self):
        message = _compile_error("dest = a + b;")
        assert f"{Errors.VAR_UNDEFINED}: a" in message
        assert f"{Errors.VAR_UNDEFINED}: b" in message


class TestExpressionErrors:
    @pytest.mark.parametrize(
        "script, error",
        [
            ("l = [1]; dest = l + 1;", Errors.INVALID_OPERATION_FOR_LIST),
            ("n = 1; n = [1]; dest = n;", Errors.ASSIGNMENT_LIST_TO_SCALAR),
            ("l = [1]; l = 2; dest = 1;", Errors.ASSIGNMENT_SCALAR_TO_LIST),
            ("n = 1; n << 2; dest = n;", Errors.EXPECTED_LIST),
            ("dest = frobnicate(1);", f"{Errors.UNKNOWN_FUNCTION}: frobnicate(D)"),
            ("dest = con(1, 2, 3, 4, 5);", Errors.CON_ARG_COUNT),
            ("l = [1]; dest = con(l, 1, 2);", Errors.CON_CONDITION_MUST_BE_SCALAR),
            ("l = [1]; dest = l ? 1 : 0;", Errors.LIST_AS_TERNARY_CONDITION),
            ("l = [1]; dest = !l;", Errors.NOT_OP_IS_INVALID_FOR_LIST),
            ("dest = src->size;", f"{Errors.INVALID_IMAGE_INFO}: size"),
            ("init { n; } dest = n;", f"{Errors.UNINIT_VAR}: n"),
            ("l = [1]; foreach (i in l:3) { } dest = 1;", Errors.LIST_IN_RANGE),
            ("n = 1; foreach (i in n) { } dest = 1;", Errors.EXPECTED_LIST),
            ("l = [1]; dest = 2 ^ l;", Errors.POW_EXPR_WITH_LIST_EXPONENT),
            ("l = [1]; dest = l;", Errors.ASSIGNMENT_LIST_TO_SCALAR),
            ("l = [1]; dest = x() > 1 ? l : 2;", Errors.CON_RESULTS_MUST_BE_SAME_TYPE),
            ("dest = [[1]];", Errors.EXPECTED_SCALAR),
        ],
    )
    def test_reported(self, script, error):
        assert error in _compile_error(script)

    def test_list_functions_accept_lists(self):
        compile_script("l = [1, 2]; dest = max(l) + mean(l) + sum(concat(l, 3));", SRC_DEST)

    def test_overloads_resolved_by_argument_type(self):
        ir = compile_script("dest = log(8, 2) + log(1);", SRC_DEST)
        calls = ir.statements[0].value
        assert calls.left.runtime_name == "log_base"
        assert calls.right.runtime_name == "log"
