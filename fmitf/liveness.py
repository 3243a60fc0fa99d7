"""Live-variable analysis: which variables may be read before being redefined."""

from __future__ import annotations

from .cfg import Assign, Branch, CfgStatement, FunctionCfg, Return, TableAssign, Terminator, VarOperand
from .dataflow import DataflowAnalysis, DataflowResults, Direction, SetLattice, TransferFunction


class LiveVariablesTransfer(TransferFunction):
    """Backward transfer: definitions kill a variable, reads make it live."""

    def transfer_statement(self, stmt: CfgStatement, state: SetLattice) -> SetLattice:
        live = set(state.set)
        match stmt:
            case Assign(var=var, rvalue=rvalue):
                live.discard(var)
                live.update(rvalue.uses())
            case TableAssign(pk_value=pk_value, value=value):
                live.update(op.var for op in (pk_value, value) if isinstance(op, VarOperand))
            case other:
                raise TypeError(f"unknown statement: {other!r}")
        return SetLattice(frozenset(live))

    def transfer_terminator(self, term: Terminator, state: SetLattice) -> SetLattice:
        match term:
            case Branch(condition=VarOperand(var=var)):
                return SetLattice(state.set | {var})
            case Return(value=VarOperand(var=var)):
                return SetLattice(state.set | {var})
        return state

    def initial_value(self) -> SetLattice:
        return SetLattice.bottom()

    def boundary_value(self) -> SetLattice:
        return SetLattice.bottom()


def analyze_live_variables(func: FunctionCfg) -> DataflowResults:
    """Run live-variable analysis on ``func``."""
    return DataflowAnalysis(Direction.BACKWARD, LiveVariablesTransfer()).analyze(func)