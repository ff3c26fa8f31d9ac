"""Lark Parsing Layer."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from lark import Lark, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput

from .messages import Messages

logger = logging.getLogger(__name__)

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")


@dataclass
class ParseResult:
    """Syntax tree plus the messages produced while parsing."""

    tree: Tree | None
    messages: Messages


class ParserFactory(ABC):
    """Abstract factory for obtaining a script parser."""

    @abstractmethod
    def get_parser(self) -> Lark: ...


class LarkParserFactory(ParserFactory):
    """Concrete factory that builds an LALR parser from the bundled grammar."""

    def get_parser(self) -> Lark:
        return _load_parser()


@lru_cache(maxsize=1)
def _load_parser() -> Lark:
    logger.debug("Loading grammar from %s", _GRAMMAR_PATH)
    return Lark(
        _GRAMMAR_PATH.read_text(),
        parser="lalr",
        start="start",
        propagate_positions=True,
        maybe_placeholders=False,
    )


class Parser:
    """Thin wrapper around a parser factory."""

    def __init__(self, parser_factory: ParserFactory):
        self._factory = parser_factory

    def parse(self, source: str) -> ParseResult:
        messages = Messages()
        parser = self._factory.get_parser()
        try:
            tree = parser.parse(source)
        except UnexpectedInput as exc:
            messages.error(_describe(exc), *_position(exc))
            return ParseResult(tree=None, messages=messages)
        return ParseResult(tree=tree, messages=messages)


def _describe(exc: UnexpectedInput) -> str:
    if isinstance(exc, UnexpectedEOF):
        return "Unexpected end of script"
    if isinstance(exc, UnexpectedCharacters):
        return f"Unexpected character {exc.char!r}"
    token = getattr(exc, "token", None)
    if token is not None and token.type == "$END":
        return "Unexpected end of script"
    if token is not None:
        return f"Unexpected input {str(token)!r}"
    return "Invalid syntax"


def parse(source: str) -> ParseResult:
    """Parse *source* with the default lark parser."""
    return Parser(LarkParserFactory()).parse(source)


def _position(exc: UnexpectedInput) -> tuple[int, int]:
    line = getattr(exc, "line", 0)
    column = getattr(exc, "column", 0)
    if not isinstance(line, int) or not isinstance(column, int):
        return 0, 0
    return max(line, 0), max(column, 0)
