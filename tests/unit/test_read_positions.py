"""Tests for the read-position (neighbourhood) query."""

from jiffle.compiler import Jiffle, parse_tree, read_positions
from jiffle.passes import SourcePositionsWorker


class TestReadPositions:
    def test_offsets_per_source(self):
        positions = Jiffle.get_read_positions("dest = src[-1, 0] + src[1, 0];", ["src"])
        assert positions == {"src": {(-1, 0), (1, 0)}}

    def test_plain_reference_is_origin(self):
        positions = read_positions("dest = src + src[0, 1];", ["src"])
        assert positions == {"src": {(0, 0), (0, 1)}}

    def test_empty_name_list(self):
        assert read_positions("dest = src[1, 1];", []) == {}

    def test_names_from_images_block(self):
        script = "images { a = read; b = read; dest = write; } dest = a[2, 2] + b;"
        assert read_positions(script) == {"a": {(2, 2)}, "b": {(0, 0)}}

    def test_unread_source_omitted(self):
        positions = read_positions("dest = a;", ["a", "b"])
        assert positions == {"a": {(0, 0)}}

    def test_duplicates_collapse(self):
        positions = read_positions("dest = src[1, 0] + src[1, 0] * src[1, 0];", ["src"])
        assert positions == {"src": {(1, 0)}}

    def test_constant_expressions_fold(self):
        positions = read_positions("dest = src[1 + 1, -(2 * 1)];", ["src"])
        assert positions == {"src": {(2, -2)}}

    def test_band_ignored(self):
        positions = read_positions("dest = src[3][0, 1];", ["src"])
        assert positions == {"src": {(0, 1)}}

    def test_non_constant_positions(self):
        positions = read_positions("dest = src[$0, $0] + src[x(), 0];", ["src"])
        assert positions == {"src": {None}}

    def test_fractional_offsets_kept(self):
        positions = read_positions("dest = src[0.5, 0];", ["src"])
        assert positions == {"src": {(0.5, 0)}}

    def test_no_scope_checking(self):
        positions = read_positions("dest = src[1, 0] + undefined;", ["src"])
        assert positions == {"src": {(1, 0)}}


class TestSourcePositionsWorker:
    def test_worker_owns_offsets(self):
        tree = parse_tree("dest = a[1, -1] + a[$2, 0] + b;")
        worker = SourcePositionsWorker(tree, ["a"]).run()
        assert worker.positions == {"a": {(1, -1), None}}

    def test_named_constants_fold(self):
        tree = parse_tree("dest = src[M_PI - M_PI, 2 * 2];")
        assert SourcePositionsWorker(tree, ["src"]).run().positions == {"src": {(0, 4)}}
