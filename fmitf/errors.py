"""Errors reported while analysing a program."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from string import Formatter
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

if TYPE_CHECKING:
    from .ast_nodes import Span


class ErrorKind(Enum):
    """The kinds of analysis error."""

    PARSE_ERROR = "ParseError"
    UNDECLARED_VARIABLE = "UndeclaredVariable"
    UNDECLARED_TABLE = "UndeclaredTable"
    UNDECLARED_FIELD = "UndeclaredField"
    UNDECLARED_NODE = "UndeclaredNode"
    DUPLICATE_VARIABLE = "DuplicateVariable"
    DUPLICATE_FUNCTION = "DuplicateFunction"
    DUPLICATE_TABLE = "DuplicateTable"
    DUPLICATE_NODE = "DuplicateNode"
    TYPE_MISMATCH = "TypeMismatch"
    INVALID_UNARY_OP = "InvalidUnaryOp"
    INVALID_BINARY_OP = "InvalidBinaryOp"
    INVALID_CONDITION = "InvalidCondition"
    BREAK_OUTSIDE_LOOP = "BreakOutsideLoop"
    CONTINUE_OUTSIDE_LOOP = "ContinueOutsideLoop"
    MISSING_RETURN = "MissingReturn"
    UNEXPECTED_RETURN_VALUE = "UnexpectedReturnValue"
    MISSING_RETURN_VALUE = "MissingReturnValue"
    CROSS_NODE_ACCESS = "CrossNodeAccess"
    INVALID_PRIMARY_KEY = "InvalidPrimaryKey"
    ABORT_NOT_IN_FIRST_HOP = "AbortNotInFirstHop"


_TEMPLATES = {
    ErrorKind.PARSE_ERROR: "Parse error: {message}",
    ErrorKind.UNDECLARED_VARIABLE: "Undeclared variable: {name}",
    ErrorKind.UNDECLARED_TABLE: "Undeclared table: {name}",
    ErrorKind.UNDECLARED_FIELD: "Field '{field}' not found in table '{table}'",
    ErrorKind.UNDECLARED_NODE: "Undeclared node: {name}",
    ErrorKind.DUPLICATE_VARIABLE: "Duplicate variable: {name}",
    ErrorKind.DUPLICATE_FUNCTION: "Duplicate function: {name}",
    ErrorKind.DUPLICATE_TABLE: "Duplicate table: {name}",
    ErrorKind.DUPLICATE_NODE: "Duplicate node: {name}",
    ErrorKind.TYPE_MISMATCH: "Type mismatch: expected {expected}, found {found}",
    ErrorKind.INVALID_UNARY_OP: "Invalid unary operation '{op}' on type {operand}",
    ErrorKind.INVALID_BINARY_OP: "Invalid binary operation '{op}' between {left} and {right}",
    ErrorKind.INVALID_CONDITION: "Invalid condition type: expected bool, found {found}",
    ErrorKind.BREAK_OUTSIDE_LOOP: "Break statement outside of loop",
    ErrorKind.CONTINUE_OUTSIDE_LOOP: "Continue statement outside of loop",
    ErrorKind.MISSING_RETURN: "Missing return statement in function '{function}'",
    ErrorKind.UNEXPECTED_RETURN_VALUE: "Unexpected return value in void function",
    ErrorKind.MISSING_RETURN_VALUE: "Missing return value in non-void function",
    ErrorKind.CROSS_NODE_ACCESS: (
        "Cannot access table '{table}' on node '{table_node}' from node '{current_node}'"
    ),
    ErrorKind.INVALID_PRIMARY_KEY: "Column '{column}' is not the primary key of table '{table}'",
    ErrorKind.ABORT_NOT_IN_FIRST_HOP: (
        "Abort statement not allowed in hop {hop_index} of function '{function}' "
        "(only in first hop)"
    ),
}

_FIELDS = {
    kind: frozenset(name for _, name, _, _ in Formatter().parse(template) if name)
    for kind, template in _TEMPLATES.items()
}


class AstError:
    """One analysis error: its kind and the values its message names."""

    __slots__ = ("_kind", "_details")

    def __init__(self, kind: ErrorKind, **details: Any) -> None:
        expected = _FIELDS[kind]
        if set(details) != expected:
            raise TypeError(
                f"{kind.value} takes fields {sorted(expected)}, got {sorted(details)}"
            )
        self._kind = kind
        self._details = MappingProxyType(dict(details))

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def details(self) -> Mapping[str, Any]:
        return self._details

    def __str__(self) -> str:
        values = {key: str(value) for key, value in self._details.items()}
        return _TEMPLATES[self._kind].format(**values)

    def __repr__(self) -> str:
        inner = ", ".join(f"{key}={value!r}" for key, value in sorted(self._details.items()))
        return f"{self._kind.value}({inner})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AstError):
            return NotImplemented
        return self._kind is other._kind and dict(self._details) == dict(other._details)

    def __hash__(self) -> int:
        return hash((self._kind, tuple(sorted(self._details.items()))))


@dataclass(frozen=True)
class SpannedError:
    """An error with the source position it refers to, if known."""

    error: AstError
    span: Optional["Span"] = None

    def __str__(self) -> str:
        if self.span is None:
            return f"Error: {self.error}"
        return f"Error at {self.span.line}:{self.span.column}: {self.error}"


def format_errors(errors: Iterable[SpannedError]) -> str:
    """Render errors one per line."""
    return "\n".join(str(error) for error in errors)


class AnalysisError(Exception):
    """Raised when a stage of analysis finds one or more errors."""

    def __init__(self, errors: Iterable[SpannedError]) -> None:
        self.errors = list(errors)
        super().__init__(format_errors(self.errors))