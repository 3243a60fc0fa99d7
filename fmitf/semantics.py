"""Semantic checks on a resolved program: types, control flow, returns and node placement."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .ast_nodes import (
    AbortStatement,
    AssignmentStatement,
    BreakStatement,
    ContinueStatement,
    EmptyStatement,
    IfStatement,
    Program,
    ReturnStatement,
    ReturnType,
    Span,
    TypeName,
    VarAssignmentStatement,
    VarDeclStatement,
    WhileStatement,
)
from .errors import AnalysisError, AstError, ErrorKind, SpannedError
from .type_checker import TypeChecker, types_compatible


class SemanticAnalyzer:
    """Checks every function of a program, collecting all errors before raising."""

    def __init__(self, program: Program) -> None:
        self.program = program
        self.errors: List[SpannedError] = []
        self._types = TypeChecker(program, self.errors)
        self._return_type: Optional[ReturnType] = None
        self._has_return = False
        self._in_loop = False

    def analyze(self) -> None:
        """Check all functions; raise AnalysisError listing every problem found."""
        for func_id in self.program.root_functions:
            self._check_function(func_id)
        if self.errors:
            raise AnalysisError(self.errors)

    def _error_at(self, span: Optional[Span], error: AstError) -> None:
        self._types.error_at(span, error)

    def _check_function(self, func_id: int) -> None:
        func = self.program.functions[func_id]
        self._return_type = func.return_type
        self._has_return = False

        for hop_index, hop_id in enumerate(func.hops):
            self._check_hop(hop_id, hop_index, func.name)

        if not func.return_type.is_void and not self._has_return:
            self._error_at(func.span, AstError(ErrorKind.MISSING_RETURN, function=func.name))

        self._return_type = None

    def _check_hop(self, hop_id: int, hop_index: int, function_name: str) -> None:
        hop = self.program.hops[hop_id]
        self._types.current_node = hop.resolved_node
        self._check_statements(hop.statements, hop_index, function_name)
        self._types.current_node = None

    def _check_statements(
        self, statements: Iterable[int], hop_index: int, function_name: str
    ) -> None:
        for stmt_id in statements:
            self._check_statement(stmt_id, hop_index, function_name)

    def _check_statement(self, stmt_id: int, hop_index: int, function_name: str) -> None:
        stmt = self.program.statements[stmt_id]
        span = stmt.span
        match stmt.kind:
            case AssignmentStatement() as assign:
                self._check_assignment(assign, span)
            case VarAssignmentStatement() as assign:
                self._types.check_expression(assign.rhs)
            case IfStatement() as if_stmt:
                self._check_condition(if_stmt.condition)
                self._check_statements(if_stmt.then_branch, hop_index, function_name)
                if if_stmt.else_branch is not None:
                    self._check_statements(if_stmt.else_branch, hop_index, function_name)
            case WhileStatement() as while_stmt:
                self._check_condition(while_stmt.condition)
                previous = self._in_loop
                self._in_loop = True
                self._check_statements(while_stmt.body, hop_index, function_name)
                self._in_loop = previous
            case VarDeclStatement() as decl:
                self._check_var_decl(decl, span)
            case ReturnStatement() as ret:
                self._check_return(ret, span)
            case AbortStatement():
                if hop_index != 0:
                    self._error_at(
                        span,
                        AstError(
                            ErrorKind.ABORT_NOT_IN_FIRST_HOP,
                            function=function_name,
                            hop_index=hop_index,
                        ),
                    )
            case BreakStatement():
                if not self._in_loop:
                    self._error_at(span, AstError(ErrorKind.BREAK_OUTSIDE_LOOP))
            case ContinueStatement():
                if not self._in_loop:
                    self._error_at(span, AstError(ErrorKind.CONTINUE_OUTSIDE_LOOP))
            case EmptyStatement():
                pass
            case other:
                raise TypeError(f"unknown statement kind: {other!r}")

    def _check_condition(self, expr_id: int) -> None:
        cond_type = self._types.check_expression(expr_id)
        if cond_type is not None and cond_type != TypeName.BOOL:
            self._error_at(
                self.program.expressions[expr_id].span,
                AstError(ErrorKind.INVALID_CONDITION, found=cond_type),
            )

    def _check_assignment(self, assign: AssignmentStatement, span: Span) -> None:
        if assign.resolved_table is None:
            self._error_at(span, AstError(ErrorKind.UNDECLARED_TABLE, name=assign.table_name))
            return
        table = self.program.tables[assign.resolved_table]

        current_node = self._types.current_node
        if current_node is not None and table.node != current_node:
            self._error_at(
                span,
                AstError(
                    ErrorKind.CROSS_NODE_ACCESS,
                    table=table.name,
                    table_node=self.program.nodes[table.node].name,
                    current_node=self.program.nodes[current_node].name,
                ),
            )
            return

        if assign.resolved_pk_field is None or assign.resolved_field is None:
            return

        if assign.resolved_pk_field != table.primary_key:
            self._error_at(
                span,
                AstError(
                    ErrorKind.INVALID_PRIMARY_KEY,
                    table=table.name,
                    column=self.program.fields[assign.resolved_pk_field].field_name,
                ),
            )
            return

        pk_type = self._types.check_expression(assign.pk_expr)
        if pk_type is not None:
            expected = self.program.fields[table.primary_key].field_type
            if not types_compatible(expected, pk_type):
                self._error_at(
                    span, AstError(ErrorKind.TYPE_MISMATCH, expected=expected, found=pk_type)
                )

        rhs_type = self._types.check_expression(assign.rhs)
        if rhs_type is not None:
            expected = self.program.fields[assign.resolved_field].field_type
            if not types_compatible(expected, rhs_type):
                self._error_at(
                    span, AstError(ErrorKind.TYPE_MISMATCH, expected=expected, found=rhs_type)
                )

    def _check_var_decl(self, decl: VarDeclStatement, span: Span) -> None:
        init_type = self._types.check_expression(decl.init_value)
        if init_type is not None and not types_compatible(decl.var_type, init_type):
            self._error_at(
                span, AstError(ErrorKind.TYPE_MISMATCH, expected=decl.var_type, found=init_type)
            )

    def _check_return(self, ret: ReturnStatement, span: Span) -> None:
        self._has_return = True
        return_type = self._return_type
        if return_type is None:
            return
        if return_type.is_void:
            if ret.value is not None:
                self._error_at(span, AstError(ErrorKind.UNEXPECTED_RETURN_VALUE))
            return
        if ret.value is None:
            self._error_at(span, AstError(ErrorKind.MISSING_RETURN_VALUE))
            return
        actual = self._types.check_expression(ret.value)
        expected = return_type.type_name
        if actual is not None and not types_compatible(expected, actual):
            self._error_at(
                span, AstError(ErrorKind.TYPE_MISMATCH, expected=expected, found=actual)
            )


def analyze_program(program: Program) -> None:
    """Run semantic analysis; raise AnalysisError on any failure."""
    SemanticAnalyzer(program).analyze()