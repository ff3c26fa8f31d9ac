"""Tests for the jiffle command-line entry point."""

import io
import json

import pytest

from jiffle.cli import build_parser, main

SCRIPT = """\
images { src = read; dest = write; }
init { n = 1; }
dest[1] = src[-1, 0] + src[1, 0] + n;
"""


@pytest.fixture
def script_file(tmp_path):
    path = tmp_path / "script.jfl"
    path.write_text(SCRIPT)
    return str(path)


class TestParser:
    def test_image_option_parsed(self):
        args = build_parser().parse_args(["f.jfl", "-i", "src=read", "--image", "dest=write"])
        assert args.image == [("src", "read"), ("dest", "write")]

    def test_malformed_image_option(self, capsys):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["f.jfl", "-i", "src"])
        assert "NAME=read|write" in capsys.readouterr().err


class TestMain:
    def test_summary(self, script_file, capsys):
        assert main([script_file]) == 0
        out = capsys.readouterr().out
        assert "═══ Images ═══" in out
        assert "  src: source" in out
        assert "  dest: 1" in out
        assert "═══ Variables ═══" in out

    def test_ir_only(self, script_file, capsys):
        assert main([script_file, "--ir-only"]) == 0
        document = json.loads(capsys.readouterr().out)
        assert document["globals"][0]["name"] == "n"

    def test_source(self, script_file, capsys):
        assert main([script_file, "--source", "--model", "indirect", "--include-script"]) == 0
        out = capsys.readouterr().out
        assert out.startswith("# Generated from Jiffle script:")
        assert "_result[1] =" in out

    def test_read_positions(self, script_file, capsys):
        assert main([script_file, "--read-positions"]) == 0
        out = capsys.readouterr().out
        assert "═══ Read positions ═══" in out
        assert "  src: (-1, 0), (1, 0)" in out

    def test_image_roles_from_command_line(self, tmp_path, capsys):
        path = tmp_path / "plain.jfl"
        path.write_text("out = a + b;")
        assert main([str(path), "-i", "a=read", "-i", "b=read", "-i", "out=write"]) == 0
        assert "  out: dest" in capsys.readouterr().out

    def test_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO("dest = 2;"))
        assert main(["-", "-i", "dest=write"]) == 0
        assert "  dest: 0" in capsys.readouterr().out

    def test_compile_error_reported(self, tmp_path, capsys):
        path = tmp_path / "bad.jfl"
        path.write_text("images { dest = write; } dest = missing;")
        assert main([str(path)]) == 1
        assert "error:" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "absent.jfl")]) == 1
        assert "error:" in capsys.readouterr().err
