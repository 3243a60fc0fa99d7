"""Reaching-definitions analysis: which assignments may reach each point."""

from __future__ import annotations

from dataclasses import dataclass

from .cfg import Assign, CfgStatement, FunctionCfg, Terminator
from .dataflow import DataflowAnalysis, DataflowResults, Direction, SetLattice, TransferFunction


@dataclass(frozen=True)
class Definition:
    """A definition of ``var_id`` made by the statement ``site``."""

    var_id: int
    site: CfgStatement


class ReachingDefinitionsTransfer(TransferFunction):
    """Forward transfer: an assignment kills earlier definitions of its variable."""

    def transfer_statement(self, stmt: CfgStatement, state: SetLattice) -> SetLattice:
        if not isinstance(stmt, Assign):
            return state
        kept = {d for d in state.set if d.var_id != stmt.var}
        kept.add(Definition(stmt.var, stmt))
        return SetLattice(frozenset(kept))

    def transfer_terminator(self, term: Terminator, state: SetLattice) -> SetLattice:
        return state

    def initial_value(self) -> SetLattice:
        return SetLattice.bottom()

    def boundary_value(self) -> SetLattice:
        return SetLattice.bottom()


def analyze_reaching_definitions(func: FunctionCfg) -> DataflowResults:
    """Run reaching-definitions analysis on ``func``."""
    return DataflowAnalysis(Direction.FORWARD, ReachingDefinitionsTransfer()).analyze(func)