"""Lowering of syntax-tree expressions into three-address control-flow statements."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from .ast_nodes import (
    BinaryExpr,
    BoolLit,
    FloatLit,
    Ident,
    IntLit,
    Program,
    StringLit,
    TableFieldAccess,
    TypeName,
    UnaryExpr,
)
from .cfg import (
    Assign,
    BinaryRvalue,
    CfgProgram,
    Constant,
    FunctionCfg,
    Operand,
    Rvalue,
    TableAccess,
    UnaryRvalue,
    VarOperand,
)


class CfgBuildError(Exception):
    """Raised when a control-flow graph cannot be built from a program."""


@dataclass
class CfgContext:
    """The program under construction and name maps from declarations to its items."""

    program: CfgProgram = field(default_factory=CfgProgram)
    node_map: Dict[str, int] = field(default_factory=dict)
    table_map: Dict[str, int] = field(default_factory=dict)
    field_map: Dict[str, int] = field(default_factory=dict)

    def resolve_table(self, program: Program, table_id: int) -> int:
        """Map a declared table to its graph table, by name."""
        name = program.tables[table_id].name
        cfg_id = self.table_map.get(name)
        if cfg_id is None:
            raise CfgBuildError(f"Table {name} not found in CFG")
        return cfg_id

    def resolve_field(self, program: Program, field_id: int) -> int:
        """Map a declared field to its graph field, by name."""
        return self._lookup_field(program, field_id, "Field")

    def _lookup_field(self, program: Program, field_id: int, label: str) -> int:
        name = program.fields[field_id].field_name
        cfg_id = self.field_map.get(name)
        if cfg_id is None:
            raise CfgBuildError(f"{label} {name} not found in CFG")
        return cfg_id


class ExpressionLowerer:
    """Turns expressions into operands, emitting temporaries into a function's blocks."""

    def __init__(
        self,
        ctx: CfgContext,
        function: FunctionCfg,
        var_map: Optional[Dict[str, int]] = None,
    ) -> None:
        self.ctx = ctx
        self.function = function
        self.var_map: Dict[str, int] = {} if var_map is None else var_map

    def lower(self, program: Program, expr_id: int, block_id: int) -> Operand:
        """Lower an expression, appending any computation to ``block_id``."""
        expr = program.expressions[expr_id]
        match expr.kind:
            case Ident(name=name):
                var_id = self.var_map.get(name)
                if var_id is None:
                    raise CfgBuildError(f"Variable {name} not found")
                return VarOperand(var_id)
            case IntLit(value=value):
                return Constant(int(value))
            case FloatLit(value=value):
                return Constant(float(value))
            case StringLit(value=value):
                return Constant(value)
            case BoolLit(value=value):
                return Constant(bool(value))
            case TableFieldAccess() as access:
                return self._lower_table_access(program, access, block_id, expr.span)
            case UnaryExpr(op=op, expr=inner):
                operand = self.lower(program, inner, block_id)
                return self._emit_temp(
                    TypeName.INT, UnaryRvalue(op, operand), block_id, expr.span
                )
            case BinaryExpr(left=left, op=op, right=right):
                left_operand = self.lower(program, left, block_id)
                right_operand = self.lower(program, right, block_id)
                return self._emit_temp(
                    TypeName.INT,
                    BinaryRvalue(op, left_operand, right_operand),
                    block_id,
                    expr.span,
                )
            case other:
                raise TypeError(f"unknown expression kind: {other!r}")

    def _lower_table_access(
        self, program: Program, access: TableFieldAccess, block_id: int, span
    ) -> Operand:
        if access.resolved_table is None:
            raise CfgBuildError(f"Table {access.table_name} not resolved")
        table_id = self.ctx.resolve_table(program, access.resolved_table)

        if access.resolved_pk_field is None:
            raise CfgBuildError("Primary key field not resolved")
        pk_field_id = self.ctx._lookup_field(
            program, access.resolved_pk_field, "Primary key field"
        )

        if access.resolved_field is None:
            raise CfgBuildError(f"Field {access.field_name} not resolved")
        field_id = self.ctx.resolve_field(program, access.resolved_field)

        pk_operand = self.lower(program, access.pk_expr, block_id)
        field_type = self.ctx.program.fields[field_id].ty
        return self._emit_temp(
            field_type,
            TableAccess(table_id, pk_field_id, pk_operand, field_id),
            block_id,
            span,
        )

    def _emit_temp(self, ty: TypeName, rvalue: Rvalue, block_id: int, span) -> Operand:
        name = f"_temp_{len(self.function.variables)}"
        temp = self.function.add_variable(name, ty)
        self.function.blocks[block_id].statements.append(Assign(temp, rvalue, span))
        return VarOperand(temp)