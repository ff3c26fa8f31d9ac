"""Diagnostics — ordered, severity-tagged compiler messages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator


class Severity(Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


@dataclass(frozen=True)
class Message:
    severity: Severity
    text: str
    line: int = 0
    column: int = 0

    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    def __str__(self) -> str:
        if self.line:
            return f"{self.severity.value} [{self.line}:{self.column}]: {self.text}"
        return f"{self.severity.value}: {self.text}"


@dataclass
class Messages:
    """Append-only list of messages owned by one pass."""

    entries: list[Message] = field(default_factory=list)

    def add(
        self, severity: Severity, text: str, line: int = 0, column: int = 0
    ) -> None:
        self.entries.append(Message(severity, text, line, column))

    def error(self, text: str, line: int = 0, column: int = 0) -> None:
        self.add(Severity.ERROR, text, line, column)

    def is_error(self) -> bool:
        return any(m.is_error() for m in self.entries)

    def __iter__(self) -> Iterator[Message]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __str__(self) -> str:
        return "\n".join(str(m) for m in self.entries)


class Errors:
    """Texts of the semantic errors reported by the analysis passes."""

    ASSIGNMENT_LIST_TO_SCALAR = "Attempting to assign a list to a scalar variable"
    ASSIGNMENT_SCALAR_TO_LIST = "Attempting to assign a scalar to a list variable"
    ASSIGNMENT_TO_CONSTANT = "Attempting to assign a value to constant"
    ASSIGNMENT_TO_LOOP_VAR = "Cannot assign a new value to loop variable"
    BREAK_OUTSIDE_LOOP = "break statement used outside of a loop"
    CON_ARG_COUNT = "con expression requires between 1 and 4 arguments"
    CON_CONDITION_MUST_BE_SCALAR = (
        "The first (condition) arg in a con expression must be a scalar variable"
    )
    CON_RESULTS_MUST_BE_SAME_TYPE = (
        "Alternative return values in a con expression must have same type"
    )
    DUPLICATE_VAR_DECL = "Duplicate variable declaration"
    EXPECTED_SCALAR = "Expected a scalar value or expression (e.g. 42)"
    EXPECTED_LIST = "Expected a list variable"
    IMAGE_INFO_ON_NON_IMAGE = "Image info requested for a non-image variable"
    IMAGE_VAR_INIT_BLOCK = "Image variable cannot be used in init block"
    INVALID_ASSIGNMENT_OP_WITH_DEST_IMAGE = (
        "Invalid assignment operator with destination image variable"
    )
    INVALID_ASSIGNMENT_NOT_DEST_IMAGE = (
        "var[x] assignment can only be performed on the output image variable"
    )
    INVALID_IMAGE_INFO = "Unknown image info attribute"
    INVALID_OPERATION_FOR_LIST = "Invalid operation for list variable"
    LIST_AS_TERNARY_CONDITION = (
        "A list variable cannot be used as a condition in a ternary expression"
    )
    LIST_IN_RANGE = "A range specifier must have scalar end-points, not list"
    NOT_OP_IS_INVALID_FOR_LIST = "Logical negation is not valid with a list variable"
    POSITION_FUNCTION_INIT_BLOCK = "Pixel position function cannot be used in init block"
    POW_EXPR_WITH_LIST_EXPONENT = (
        "A list variable cannot be used as the exponent in a power expression"
    )
    READING_FROM_DEST_IMAGE = "Attempting to read from destination image"
    UNKNOWN_FUNCTION = "Unknown function"
    VAR_UNDEFINED = "Variable not initialized prior to use"
    WRITING_TO_SOURCE_IMAGE = "Attempting to write to source image"
    UNDEFINED_SOURCE = "Unknown source image"
    UNINIT_VAR = "Variable used before being assigned a value"
    IMAGE_POS_ON_NON_IMAGE = "Image position specifier(s) used with a non-image variable"
