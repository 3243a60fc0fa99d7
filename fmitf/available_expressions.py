"""Available-expressions analysis: which computations hold at each point."""

from __future__ import annotations

from .cfg import (
    Assign,
    BinaryRvalue,
    CfgStatement,
    FunctionCfg,
    Rvalue,
    TableAccess,
    TableAssign,
    Terminator,
    UnaryRvalue,
)
from .dataflow import DataflowAnalysis, DataflowResults, Direction, SetLattice, TransferFunction

_TRACKED = (TableAccess, UnaryRvalue, BinaryRvalue)


def _killed_by_table_write(rvalue: Rvalue, table: int, field: int) -> bool:
    return isinstance(rvalue, TableAccess) and rvalue.table == table and rvalue.field == field


class AvailableExpressionsTransfer(TransferFunction):
    """Forward transfer over sets of rvalues.

    An assignment kills every expression that reads the assigned variable and
    makes its own computation available; a table write kills reads of the
    same table field.
    """

    def transfer_statement(self, stmt: CfgStatement, state: SetLattice) -> SetLattice:
        match stmt:
            case Assign(var=var, rvalue=rvalue):
                available = {expr for expr in state.set if var not in set(expr.uses())}
                if isinstance(rvalue, _TRACKED):
                    available.add(rvalue)
            case TableAssign(table=table, field=field):
                available = {
                    expr
                    for expr in state.set
                    if not _killed_by_table_write(expr, table, field)
                }
            case other:
                raise TypeError(f"unknown statement: {other!r}")
        return SetLattice(frozenset(available))

    def transfer_terminator(self, term: Terminator, state: SetLattice) -> SetLattice:
        return SetLattice(state.set)

    def initial_value(self) -> SetLattice:
        return SetLattice()

    def boundary_value(self) -> SetLattice:
        return SetLattice()


def analyze_available_expressions(func: FunctionCfg) -> DataflowResults:
    """Run available-expressions analysis on ``func``."""
    return DataflowAnalysis(Direction.FORWARD, AvailableExpressionsTransfer()).analyze(func)