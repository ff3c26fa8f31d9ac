"""Tests for the lark-based script parser."""

import pytest
from lark import Tree

from jiffle.compiler import parse_tree
from jiffle.errors import JiffleSyntaxError
from jiffle.parser import LarkParserFactory, Parser, parse


def _first_statement(script: str) -> Tree:
    return parse_tree(script).children[0]


def _rhs(script: str) -> Tree:
    return _first_statement(script).children[2]


class TestParse:
    def test_simple_assignment(self):
        result = parse("dest = 1;")
        assert result.tree is not None
        assert not result.messages.is_error()
        assert result.tree.children[0].data == "assignment"

    def test_parser_object(self):
        result = Parser(LarkParserFactory()).parse("dest = src + 1;")
        assert isinstance(result.tree, Tree)

    def test_comments_ignored(self):
        script = "// line comment\n/* block\ncomment */ dest = 1; // trailing"
        assert len(parse_tree(script).children) == 1

    def test_header_blocks(self):
        tree = parse_tree(
            "options { outside = 0; } images { src = read; dest = write; } "
            "init { n = 1; } dest = src + n;"
        )
        kinds = [child.data for child in tree.children]
        assert kinds == ["options_block", "images_block", "init_block", "assignment"]

    def test_keywords_are_not_identifiers(self):
        tree = parse_tree("if (x() > 1) dest = 1; else dest = 0;")
        assert tree.children[0].data == "if_else"


class TestPrecedence:
    def test_multiplication_binds_tighter(self):
        expr = _rhs("dest = 1 + 2 * 3;")
        assert expr.data == "binary_op"
        assert expr.children[1] == "+"
        assert expr.children[2].data == "binary_op"

    def test_power_is_right_associative(self):
        expr = _rhs("dest = 2 ^ 3 ^ 2;")
        assert expr.children[1] == "^"
        assert expr.children[2].data == "binary_op"

    def test_ternary_is_lowest(self):
        expr = _rhs("dest = a || b ? 1 : 2;")
        assert expr.data == "ternary"
        assert expr.children[0].data == "binary_op"

    def test_compound_assignment_operator(self):
        stmt = _first_statement("n += 2;")
        assert stmt.data == "assignment"
        assert stmt.children[1] == "+="


class TestImageSyntax:
    def test_relative_read(self):
        expr = _rhs("dest = src[-1, 0];")
        assert expr.data == "image_read"
        assert [c.data for c in expr.children if isinstance(c, Tree)] == ["rel_pos", "rel_pos"]

    def test_absolute_read_with_band(self):
        expr = _rhs("dest = src[2][$0, $1];")
        kinds = [c.data for c in expr.children if isinstance(c, Tree)]
        assert kinds == ["int_literal", "abs_pos", "abs_pos"]

    def test_image_info(self):
        assert _rhs("dest = src->bands;").data == "image_info"

    def test_band_assignment(self):
        assert _first_statement("dest[1] = 2;").data == "band_assignment"


class TestSyntaxErrors:
    def test_missing_expression(self):
        result = parse("dest = ;")
        assert result.tree is None
        assert result.messages.is_error()
        assert result.messages.errors()[0].line == 1

    def test_unexpected_character(self):
        result = parse("dest = 1 @ 2;")
        assert "Unexpected character '@'" in str(result.messages)

    def test_unexpected_end(self):
        result = parse("dest = (1 + 2")
        assert "Unexpected end of script" in str(result.messages)

    def test_parse_tree_raises(self):
        with pytest.raises(JiffleSyntaxError) as info:
            parse_tree("dest = = 1;")
        assert info.value.messages.is_error()
