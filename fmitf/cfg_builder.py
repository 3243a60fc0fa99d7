"""Construction of control-flow graphs from analysed programs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from .ast_nodes import (
    AbortStatement,
    AssignmentStatement,
    BreakStatement,
    ContinueStatement,
    EmptyStatement,
    FunctionDeclaration,
    IfStatement,
    Program,
    ReturnStatement,
    Statement,
    VarAssignmentStatement,
    VarDeclStatement,
    WhileStatement,
)
from .cfg import (
    Abort,
    Assign,
    Branch,
    CfgProgram,
    FieldInfo,
    FunctionCfg,
    Goto,
    HopExit,
    NodeInfo,
    Return,
    TableAssign,
    TableInfo,
    Terminator,
    Use,
)
from .cfg_lowering import CfgBuildError, CfgContext, ExpressionLowerer


@dataclass(frozen=True)
class _Loop:
    continue_target: int
    break_target: int


class _FunctionBuilder:
    """Builds the graph of one function."""

    def __init__(self, ctx: CfgContext, func_ast: FunctionDeclaration) -> None:
        self.ctx = ctx
        self.function = FunctionCfg(
            name=func_ast.name, return_type=func_ast.return_type, span=func_ast.span
        )
        self.var_map: Dict[str, int] = {}
        self.lowerer = ExpressionLowerer(ctx, self.function, self.var_map)
        self.loops: List[_Loop] = []
        self.hop_id: Optional[int] = None
        self.block_id: Optional[int] = None

    def build(self, program: Program, func_ast: FunctionDeclaration) -> FunctionCfg:
        self._build_parameters(program, func_ast)
        self._build_hops(program, func_ast)
        return self.function

    def _build_parameters(self, program: Program, func_ast: FunctionDeclaration) -> None:
        for param_id in func_ast.parameters:
            param = program.parameters[param_id]
            var_id = self.function.add_variable(param.param_name, param.param_type, True)
            self.var_map[param.param_name] = var_id
            if var_id not in self.function.parameters:
                self.function.parameters.append(var_id)

    def _build_hops(self, program: Program, func_ast: FunctionDeclaration) -> None:
        if not func_ast.hops:
            raise CfgBuildError("Function has no hops")

        hop_ids: List[int] = []
        for hop_ast_id in func_ast.hops:
            hop_ast = program.hops[hop_ast_id]
            if hop_ast.resolved_node is None:
                raise CfgBuildError(f"Hop node {hop_ast.node_name} not resolved")
            node_name = program.nodes[hop_ast.resolved_node].name
            cfg_node = self.ctx.node_map.get(node_name)
            if cfg_node is None:
                raise CfgBuildError(f"CFG node not found for {node_name}")
            hop_id = self.function.add_hop(cfg_node, hop_ast.span)
            if hop_id not in self.function.hop_order:
                self.function.hop_order.append(hop_id)
            if self.function.entry_hop is None:
                self.function.entry_hop = hop_id
            hop_ids.append(hop_id)

        last = len(hop_ids) - 1
        for hop_index, (hop_ast_id, hop_id) in enumerate(zip(func_ast.hops, hop_ids)):
            self.hop_id = hop_id
            entry_block = self._new_block(hop_id)
            self.function.hops[hop_id].entry_block = entry_block
            self.block_id = entry_block

            self._build_statements(program, program.hops[hop_ast_id].statements)

            active, self.block_id = self.block_id, None
            if active is None:
                continue
            if hop_index < last:
                self._terminate(active, HopExit(next_hop=hop_ids[hop_index + 1]))
            elif func_ast.return_type.is_void:
                self._terminate(active, Return(value=None))
            else:
                self._terminate(active, Abort())

    def _build_statements(self, program: Program, statements: Iterable[int]) -> None:
        for stmt_id in statements:
            if self.block_id is None:
                break
            self._build_statement(program, program.statements[stmt_id])

    def _build_statement(self, program: Program, stmt: Statement) -> None:
        block = self.block_id
        if block is None:
            raise CfgBuildError("No active block for statement")

        match stmt.kind:
            case VarDeclStatement() as decl:
                var_id = self.function.add_variable(decl.var_name, decl.var_type, False)
                self.var_map[decl.var_name] = var_id
                init = self.lowerer.lower(program, decl.init_value, block)
                self._emit(block, Assign(var_id, Use(init), stmt.span))
            case VarAssignmentStatement() as assign:
                if assign.resolved_var is None:
                    raise CfgBuildError(f"Variable {assign.var_name} not resolved")
                name = program.variables[assign.resolved_var].name
                var_id = self.var_map.get(name)
                if var_id is None:
                    raise CfgBuildError(f"Variable {name} not found in CFG")
                rhs = self.lowerer.lower(program, assign.rhs, block)
                self._emit(block, Assign(var_id, Use(rhs), stmt.span))
            case AssignmentStatement() as assign:
                self._build_table_assignment(program, assign, block, stmt)
            case IfStatement() as if_stmt:
                self._build_if(program, if_stmt)
            case WhileStatement() as while_stmt:
                self._build_while(program, while_stmt)
            case ReturnStatement(value=value):
                operand = None if value is None else self.lowerer.lower(program, value, block)
                self._terminate(block, Return(value=operand))
                self.block_id = None
            case AbortStatement():
                self._terminate(block, Abort())
                self.block_id = None
            case BreakStatement():
                if not self.loops:
                    raise CfgBuildError("Break outside loop")
                self._terminate(block, Goto(target=self.loops[-1].break_target))
                self.block_id = None
            case ContinueStatement():
                if not self.loops:
                    raise CfgBuildError("Continue outside loop")
                self._terminate(block, Goto(target=self.loops[-1].continue_target))
                self.block_id = None
            case EmptyStatement():
                pass
            case other:
                raise TypeError(f"unknown statement kind: {other!r}")

    def _build_table_assignment(
        self, program: Program, assign: AssignmentStatement, block: int, stmt: Statement
    ) -> None:
        if assign.resolved_table is None:
            raise CfgBuildError(f"Table {assign.table_name} not resolved")
        table_id = self.ctx.resolve_table(program, assign.resolved_table)

        if assign.resolved_pk_field is None:
            raise CfgBuildError(f"Primary key field {assign.pk_field_name} not resolved")
        pk_field_id = self.ctx._lookup_field(
            program, assign.resolved_pk_field, "Primary key field"
        )

        if assign.resolved_field is None:
            raise CfgBuildError(f"Field {assign.field_name} not resolved")
        field_id = self.ctx.resolve_field(program, assign.resolved_field)

        pk_value = self.lowerer.lower(program, assign.pk_expr, block)
        value = self.lowerer.lower(program, assign.rhs, block)
        self._emit(
            block,
            TableAssign(
                table=table_id,
                pk_field=pk_field_id,
                pk_value=pk_value,
                field=field_id,
                value=value,
                span=stmt.span,
            ),
        )

    def _build_if(self, program: Program, if_stmt: IfStatement) -> None:
        block, hop = self._require_position("if statement")
        condition = self.lowerer.lower(program, if_stmt.condition, block)

        then_block = self._new_block(hop)
        merge_block = self._new_block(hop)
        else_block = merge_block if if_stmt.else_branch is None else self._new_block(hop)

        self._terminate(
            block, Branch(condition=condition, then_block=then_block, else_block=else_block)
        )

        self._build_branch(program, then_block, if_stmt.then_branch, merge_block)
        if if_stmt.else_branch is not None:
            self._build_branch(program, else_block, if_stmt.else_branch, merge_block)

        self.block_id = merge_block

    def _build_branch(
        self, program: Program, start: int, statements: Iterable[int], merge_block: int
    ) -> None:
        self.block_id = start
        self._build_statements(program, statements)
        active, self.block_id = self.block_id, None
        if active is not None:
            self._terminate(active, Goto(target=merge_block))

    def _build_while(self, program: Program, while_stmt: WhileStatement) -> None:
        block, hop = self._require_position("while statement")

        header = self._new_block(hop)
        body = self._new_block(hop)
        exit_block = self._new_block(hop)

        self._terminate(block, Goto(target=header))

        self.block_id = header
        condition = self.lowerer.lower(program, while_stmt.condition, header)
        self._terminate(
            header, Branch(condition=condition, then_block=body, else_block=exit_block)
        )

        self.block_id = body
        self.loops.append(_Loop(continue_target=header, break_target=exit_block))
        self._build_statements(program, while_stmt.body)
        self.loops.pop()

        active, self.block_id = self.block_id, None
        if active is not None:
            self._terminate(active, Goto(target=header))

        self.block_id = exit_block

    def _require_position(self, what: str):
        if self.block_id is None:
            raise CfgBuildError(f"No active block for {what}")
        if self.hop_id is None:
            raise CfgBuildError(f"No active hop for {what}")
        return self.block_id, self.hop_id

    def _new_block(self, hop_id: int) -> int:
        block_id = self.function.add_block(hop_id)
        hop_blocks = self.function.hops[hop_id].blocks
        if block_id not in hop_blocks:
            hop_blocks.append(block_id)
        return block_id

    def _emit(self, block_id: int, stmt) -> None:
        self.function.blocks[block_id].statements.append(stmt)

    def _terminate(self, block_id: int, terminator: Terminator) -> None:
        self.function.blocks[block_id].terminator = terminator


class CfgBuilder:
    """Builds the control-flow graph of a whole program."""

    @staticmethod
    def build_from_program(program: Program) -> CfgContext:
        """Build nodes, tables and functions; raise CfgBuildError on failure."""
        ctx = CfgContext()
        CfgBuilder._build_nodes(program, ctx)
        CfgBuilder._build_tables(program, ctx)
        CfgBuilder._build_functions(program, ctx)
        return ctx

    @staticmethod
    def _build_nodes(program: Program, ctx: CfgContext) -> None:
        cfg = ctx.program
        for node_id in program.root_nodes:
            name = program.nodes[node_id].name
            cfg.nodes.append(NodeInfo(name=name, tables=[]))
            cfg_node_id = len(cfg.nodes) - 1
            ctx.node_map[name] = cfg_node_id
            cfg.root_nodes.append(cfg_node_id)

    @staticmethod
    def _build_tables(program: Program, ctx: CfgContext) -> None:
        cfg = ctx.program
        for table_id in program.root_tables:
            table_ast = program.tables[table_id]
            node_name = program.nodes[table_ast.node].name
            node_id = ctx.node_map.get(node_name)
            if node_id is None:
                raise CfgBuildError(f"Node {node_name} not found")

            field_ids: List[int] = []
            primary_key: Optional[int] = None
            for field_ast_id in table_ast.fields:
                field_ast = program.fields[field_ast_id]
                cfg.fields.append(
                    FieldInfo(
                        name=field_ast.field_name,
                        ty=field_ast.field_type,
                        table_id=None,
                        is_primary=field_ast.is_primary,
                    )
                )
                cfg_field_id = len(cfg.fields) - 1
                field_ids.append(cfg_field_id)
                ctx.field_map[field_ast.field_name] = cfg_field_id
                if field_ast.is_primary:
                    primary_key = cfg_field_id

            if primary_key is None:
                raise CfgBuildError(f"Table {table_ast.name} has no primary key")

            cfg.tables.append(
                TableInfo(
                    name=table_ast.name,
                    node_id=node_id,
                    fields=list(field_ids),
                    primary_key=primary_key,
                )
            )
            cfg_table_id = len(cfg.tables) - 1
            ctx.table_map[table_ast.name] = cfg_table_id
            cfg.root_tables.append(cfg_table_id)

            for field_id in field_ids:
                cfg.fields[field_id].table_id = cfg_table_id
            cfg.nodes[node_id].tables.append(cfg_table_id)

    @staticmethod
    def _build_functions(program: Program, ctx: CfgContext) -> None:
        cfg = ctx.program
        for func_id in program.root_functions:
            func_ast = program.functions[func_id]
            function = _FunctionBuilder(ctx, func_ast).build(program, func_ast)
            cfg.functions.append(function)
            cfg.root_functions.append(len(cfg.functions) - 1)


def build_cfg(program: Program) -> CfgProgram:
    """Build and return the control-flow graph program of ``program``."""
    return CfgBuilder.build_from_program(program).program