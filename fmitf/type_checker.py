"""Expression type checking against resolved declarations."""

from __future__ import annotations

from typing import List, Optional

from .ast_nodes import (
    BinaryExpr,
    BinaryOp,
    BoolLit,
    FloatLit,
    Ident,
    IntLit,
    Program,
    Span,
    StringLit,
    TableFieldAccess,
    TypeName,
    UnaryExpr,
    UnaryOp,
)
from .errors import AstError, ErrorKind, SpannedError

_NUMERIC = frozenset({TypeName.INT, TypeName.FLOAT})
_ARITHMETIC = frozenset({BinaryOp.ADD, BinaryOp.SUB, BinaryOp.MUL, BinaryOp.DIV})
_EQUALITY = frozenset({BinaryOp.EQ, BinaryOp.NEQ})
_ORDERING = frozenset({BinaryOp.LT, BinaryOp.LTE, BinaryOp.GT, BinaryOp.GTE})
_LOGICAL = frozenset({BinaryOp.AND, BinaryOp.OR})


def types_compatible(expected: TypeName, actual: TypeName) -> bool:
    """True if a value of ``actual`` type may stand where ``expected`` is wanted."""
    return expected == actual or (expected == TypeName.FLOAT and actual == TypeName.INT)


class TypeChecker:
    """Infers expression types, collecting errors instead of raising them.

    ``current_node`` is the node of the hop being checked; table accesses on
    any other node are reported as cross-node accesses.
    """

    def __init__(self, program: Program, errors: Optional[List[SpannedError]] = None) -> None:
        self.program = program
        self.errors: List[SpannedError] = [] if errors is None else errors
        self.current_node: Optional[int] = None

    def error_at(self, span: Optional[Span], error: AstError) -> None:
        self.errors.append(SpannedError(error, span))

    def check_expression(self, expr_id: int) -> Optional[TypeName]:
        """Return the type of an expression, or None if it cannot be typed."""
        expr = self.program.expressions[expr_id]
        match expr.kind:
            case Ident():
                var_id = self.program.resolutions.get(expr_id)
                if var_id is None:
                    return None
                return self.program.variables[var_id].ty
            case IntLit():
                return TypeName.INT
            case FloatLit():
                return TypeName.FLOAT
            case StringLit():
                return TypeName.STRING
            case BoolLit():
                return TypeName.BOOL
            case TableFieldAccess() as access:
                return self._check_table_access(access, expr.span)
            case UnaryExpr(op=op, expr=inner):
                operand = self.check_expression(inner)
                if operand is None:
                    return None
                return self._check_unary_op(op, operand, expr.span)
            case BinaryExpr(left=left, op=op, right=right):
                left_type = self.check_expression(left)
                if left_type is None:
                    return None
                right_type = self.check_expression(right)
                if right_type is None:
                    return None
                return self.check_binary_op(op, left_type, right_type, expr.span)
            case other:
                raise TypeError(f"unknown expression kind: {other!r}")

    def _check_table_access(self, access: TableFieldAccess, span: Span) -> Optional[TypeName]:
        self.check_expression(access.pk_expr)

        if access.resolved_table is None:
            self.error_at(span, AstError(ErrorKind.UNDECLARED_TABLE, name=access.table_name))
            return None
        table = self.program.tables[access.resolved_table]

        if self.current_node is not None and table.node != self.current_node:
            self.error_at(
                span,
                AstError(
                    ErrorKind.CROSS_NODE_ACCESS,
                    table=table.name,
                    table_node=self.program.nodes[table.node].name,
                    current_node=self.program.nodes[self.current_node].name,
                ),
            )
            return None

        if access.resolved_pk_field is None:
            self.error_at(
                span,
                AstError(
                    ErrorKind.UNDECLARED_FIELD,
                    table=access.table_name,
                    field=access.pk_field_name,
                ),
            )
            return None

        if access.resolved_pk_field != table.primary_key:
            self.error_at(
                span,
                AstError(
                    ErrorKind.INVALID_PRIMARY_KEY,
                    table=table.name,
                    column=self.program.fields[access.resolved_pk_field].field_name,
                ),
            )
            return None

        if access.resolved_field is None:
            self.error_at(
                span,
                AstError(
                    ErrorKind.UNDECLARED_FIELD, table=access.table_name, field=access.field_name
                ),
            )
            return None

        return self.program.fields[access.resolved_field].field_type

    def _check_unary_op(self, op: UnaryOp, operand: TypeName, span: Span) -> Optional[TypeName]:
        if op == UnaryOp.NEG:
            if operand in _NUMERIC:
                return operand
            self.error_at(span, AstError(ErrorKind.INVALID_UNARY_OP, op="negation", operand=operand))
            return None
        if operand == TypeName.BOOL:
            return TypeName.BOOL
        self.error_at(span, AstError(ErrorKind.INVALID_UNARY_OP, op="logical not", operand=operand))
        return None

    def check_binary_op(
        self, op: BinaryOp, left: TypeName, right: TypeName, span: Optional[Span]
    ) -> Optional[TypeName]:
        """Return the result type of ``left op right``, reporting invalid combinations."""
        result: Optional[TypeName] = None
        if op in _ARITHMETIC:
            if left in _NUMERIC and right in _NUMERIC:
                result = TypeName.FLOAT if TypeName.FLOAT in (left, right) else TypeName.INT
        elif op in _EQUALITY:
            if types_compatible(left, right):
                result = TypeName.BOOL
        elif op in _ORDERING:
            if left in _NUMERIC and right in _NUMERIC:
                result = TypeName.BOOL
        elif op in _LOGICAL:
            if left == TypeName.BOOL and right == TypeName.BOOL:
                result = TypeName.BOOL

        if result is None:
            self.error_at(
                span, AstError(ErrorKind.INVALID_BINARY_OP, op=str(op), left=left, right=right)
            )
        return result