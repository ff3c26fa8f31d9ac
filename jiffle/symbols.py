"""Symbols and lexical scopes used by the analysis passes."""

from __future__ import annotations

from dataclasses import dataclass, field

from .compiler_types import SymbolType
from . import constants


@dataclass
class Symbol:
    name: str
    type: SymbolType
    slot: int = 0

    def is_image(self) -> bool:
        return self.type.is_image()


@dataclass
class SymbolScope:
    """A named scope holding symbols, linked to its enclosing scope."""

    name: str
    enclosing: SymbolScope | None = None
    symbols: dict[str, Symbol] = field(default_factory=dict)

    def add(self, symbol: Symbol) -> None:
        if symbol.name in self.symbols:
            raise ValueError(f"Symbol {symbol.name} already defined in {self.name}")
        self.symbols[symbol.name] = symbol

    def has_local(self, name: str) -> bool:
        return name in self.symbols

    def get_declaring_scope(self, name: str) -> SymbolScope | None:
        scope: SymbolScope | None = self
        while scope is not None:
            if name in scope.symbols:
                return scope
            scope = scope.enclosing
        return None

    def is_global(self) -> bool:
        return self.enclosing is None

    def __str__(self) -> str:
        return f"{self.name}{sorted(self.symbols)}"


class GlobalScope(SymbolScope):
    """Top-level scope holding image variables and init-block variables."""

    def __init__(self):
        super().__init__(name=constants.SCOPE_GLOBAL)
