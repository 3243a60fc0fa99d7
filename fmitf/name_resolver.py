"""Name resolution: binds identifiers, tables, fields and hop nodes to declarations."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .ast_nodes import (
    AbortStatement,
    AssignmentStatement,
    BinaryExpr,
    BoolLit,
    BreakStatement,
    ContinueStatement,
    EmptyStatement,
    FloatLit,
    Ident,
    IfStatement,
    IntLit,
    Program,
    ReturnStatement,
    ScopeKind,
    Span,
    StringLit,
    TableFieldAccess,
    TypeName,
    UnaryExpr,
    VarAssignmentStatement,
    VarDeclStatement,
    VarKind,
    WhileStatement,
)
from .errors import AnalysisError, AstError, ErrorKind, SpannedError


class NameResolver:
    """Resolves every name in a program, recording results in the program itself."""

    def __init__(self, program: Program) -> None:
        self.program = program
        self.errors: List[SpannedError] = []
        self._function_scope: Optional[int] = None
        self._scope_stack: List[int] = []

    @property
    def _current_scope(self) -> Optional[int]:
        return self._scope_stack[-1] if self._scope_stack else None

    def resolve(self) -> None:
        """Resolve all functions; raise AnalysisError listing every problem found."""
        global_scope = self.program.add_scope(None, ScopeKind("global"))
        self.program.global_scope = global_scope
        self._scope_stack = [global_scope]

        for func_id in list(self.program.root_functions):
            self._resolve_function(func_id)

        if self.errors:
            raise AnalysisError(self.errors)

    def _resolve_function(self, func_id: int) -> None:
        func_scope = self.program.add_scope(
            self._current_scope, ScopeKind("function", func_id)
        )
        self._function_scope = func_scope
        self._scope_stack.append(func_scope)

        function = self.program.functions[func_id]
        for param_id in function.parameters:
            param = self.program.parameters[param_id]
            self.program.add_variable(
                param.param_name, param.param_type, VarKind.PARAMETER, param.span, func_scope
            )

        for hop_id in list(function.hops):
            self._resolve_hop(hop_id)

        self._scope_stack.pop()
        self._function_scope = None

    def _resolve_hop(self, hop_id: int) -> None:
        hop = self.program.hops[hop_id]
        node_id = self.program.node_map.get(hop.node_name)
        if node_id is None:
            self._error_at(hop.span, AstError(ErrorKind.UNDECLARED_NODE, name=hop.node_name))
            return
        hop.resolved_node = node_id

        hop_scope = self.program.add_scope(self._current_scope, ScopeKind("hop", hop_id))
        self._scope_stack.append(hop_scope)
        for stmt_id in list(hop.statements):
            self._resolve_statement(stmt_id)
        self._scope_stack.pop()

    def _resolve_statement(self, stmt_id: int) -> None:
        stmt = self.program.statements[stmt_id]
        span = stmt.span
        match stmt.kind:
            case VarDeclStatement() as decl:
                self._resolve_var_decl(decl, span)
            case VarAssignmentStatement() as assign:
                self._resolve_expression(assign.rhs)
                var_id = self._lookup_variable(assign.var_name)
                if var_id is None:
                    self._error_at(
                        span, AstError(ErrorKind.UNDECLARED_VARIABLE, name=assign.var_name)
                    )
                else:
                    assign.resolved_var = var_id
            case AssignmentStatement() as assign:
                self._resolve_table_assignment(assign, span)
            case IfStatement() as if_stmt:
                self._resolve_expression(if_stmt.condition)
                self._resolve_block(if_stmt.then_branch)
                if if_stmt.else_branch is not None:
                    self._resolve_block(if_stmt.else_branch)
            case WhileStatement() as while_stmt:
                self._resolve_expression(while_stmt.condition)
                self._resolve_block(while_stmt.body)
            case ReturnStatement(value=value):
                if value is not None:
                    self._resolve_expression(value)
            case AbortStatement() | BreakStatement() | ContinueStatement() | EmptyStatement():
                pass
            case other:
                raise TypeError(f"unknown statement kind: {other!r}")

    def _resolve_var_decl(self, decl: VarDeclStatement, span: Span) -> None:
        self._resolve_expression(decl.init_value)

        if decl.is_global:
            if self._function_scope is None:
                raise RuntimeError("'global' variable declared outside of a function")
            target_scope = self._function_scope
        else:
            if self._current_scope is None:
                raise RuntimeError("variable declared outside of any scope")
            target_scope = self._current_scope

        if decl.var_name in self.program.scopes[target_scope].variables:
            self._error_at(span, AstError(ErrorKind.DUPLICATE_VARIABLE, name=decl.var_name))
            return

        self.program.add_variable(decl.var_name, decl.var_type, VarKind.LOCAL, span, target_scope)

    def _resolve_table_assignment(self, assign: AssignmentStatement, span: Span) -> None:
        self._resolve_expression(assign.pk_expr)
        self._resolve_expression(assign.rhs)

        table_id = self.program.table_map.get(assign.table_name)
        if table_id is None:
            self._error_at(span, AstError(ErrorKind.UNDECLARED_TABLE, name=assign.table_name))
            return
        assign.resolved_table = table_id

        pk_field = self._find_field(table_id, assign.pk_field_name)
        field_id = self._find_field(table_id, assign.field_name)

        if pk_field is None:
            self._error_at(
                span,
                AstError(
                    ErrorKind.UNDECLARED_FIELD,
                    table=assign.table_name,
                    field=assign.pk_field_name,
                ),
            )
        else:
            assign.resolved_pk_field = pk_field

        if field_id is None:
            self._error_at(
                span,
                AstError(
                    ErrorKind.UNDECLARED_FIELD, table=assign.table_name, field=assign.field_name
                ),
            )
        else:
            assign.resolved_field = field_id

    def _resolve_block(self, statements: Iterable[int]) -> None:
        block_scope = self.program.add_scope(self._current_scope, ScopeKind("block"))
        self._scope_stack.append(block_scope)
        for stmt_id in list(statements):
            self._resolve_statement(stmt_id)
        self._scope_stack.pop()

    def _resolve_expression(self, expr_id: int) -> None:
        expr = self.program.expressions[expr_id]
        span = expr.span
        match expr.kind:
            case Ident(name=name):
                var_id = self._lookup_variable(name)
                if var_id is None:
                    self._error_at(span, AstError(ErrorKind.UNDECLARED_VARIABLE, name=name))
                else:
                    self.program.resolutions[expr_id] = var_id
            case TableFieldAccess() as access:
                self._resolve_table_access(access, span)
                self._resolve_expression(access.pk_expr)
            case UnaryExpr(expr=inner):
                self._resolve_expression(inner)
            case BinaryExpr(left=left, right=right):
                self._resolve_expression(left)
                self._resolve_expression(right)
            case IntLit() | FloatLit() | StringLit() | BoolLit():
                pass
            case other:
                raise TypeError(f"unknown expression kind: {other!r}")

    def _resolve_table_access(self, access: TableFieldAccess, span: Span) -> None:
        table_id = self.program.table_map.get(access.table_name)
        if table_id is None:
            self._error_at(span, AstError(ErrorKind.UNDECLARED_TABLE, name=access.table_name))
            return

        pk_field = self._find_field(table_id, access.pk_field_name)
        field_id = self._find_field(table_id, access.field_name)
        access.resolved_table = table_id
        access.resolved_pk_field = pk_field
        access.resolved_field = field_id

        if pk_field is None:
            self._error_at(
                span,
                AstError(
                    ErrorKind.UNDECLARED_FIELD,
                    table=access.table_name,
                    field=access.pk_field_name,
                ),
            )
        if field_id is None:
            self._error_at(
                span,
                AstError(
                    ErrorKind.UNDECLARED_FIELD, table=access.table_name, field=access.field_name
                ),
            )

    def _find_field(self, table_id: int, name: str) -> Optional[int]:
        return next(
            (
                field_id
                for field_id in self.program.tables[table_id].fields
                if self.program.fields[field_id].field_name == name
            ),
            None,
        )

    def _lookup_variable(self, name: str) -> Optional[int]:
        for scope_id in reversed(self._scope_stack):
            var_id = self.program.scopes[scope_id].variables.get(name)
            if var_id is not None:
                return var_id
        return None

    def _error_at(self, span: Span, error: AstError) -> None:
        self.errors.append(SpannedError(error, span))


def resolve_names(program: Program) -> None:
    """Resolve names in ``program`` in place; raise AnalysisError on any failure."""
    NameResolver(program).resolve()


__all__ = ["NameResolver", "resolve_names", "TypeName"]