"""Generic monotone dataflow analysis over a function's control-flow graph."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from functools import reduce
from typing import Any, Dict, FrozenSet, Hashable, Iterable, List, Tuple

from .cfg import BasicBlock, Branch, CfgStatement, FunctionCfg, Goto, Return, Terminator


class Direction(Enum):
    FORWARD = "Forward"
    BACKWARD = "Backward"


@dataclass(frozen=True)
class SetLattice:
    """A set-valued lattice element whose meet is union."""

    set: FrozenSet[Hashable] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "set", frozenset(self.set))

    @classmethod
    def bottom(cls) -> "SetLattice":
        return cls()

    @classmethod
    def top(cls) -> "SetLattice":
        return cls()

    def meet(self, other: "SetLattice") -> "SetLattice":
        return type(self)(self.set | other.set)

    def less_equal(self, other: "SetLattice") -> bool:
        return self.meet(other) == self


class TransferFunction(ABC):
    """How statements and terminators transform a lattice value."""

    @abstractmethod
    def transfer_statement(self, stmt: CfgStatement, state: Any) -> Any:
        """Value after ``stmt`` given the value before it (in analysis direction)."""

    @abstractmethod
    def transfer_terminator(self, term: Terminator, state: Any) -> Any:
        """Value after ``term`` given the value before it (in analysis direction)."""

    @abstractmethod
    def initial_value(self) -> Any:
        """Value at the function entry (forward) or at return blocks (backward)."""

    @abstractmethod
    def boundary_value(self) -> Any:
        """Value at the function boundary."""


@dataclass
class DataflowResults:
    """Lattice values at the entry and exit of each basic block."""

    entry: Dict[int, Any] = field(default_factory=dict)
    exit: Dict[int, Any] = field(default_factory=dict)


class DataflowAnalysis:
    """A worklist solver parameterised by direction, transfer function and lattice."""

    def __init__(self, direction: Direction, transfer: TransferFunction, lattice=SetLattice):
        self.direction = direction
        self.transfer = transfer
        self.lattice = lattice

    def analyze(self, func: FunctionCfg) -> DataflowResults:
        """Solve the analysis for ``func`` to a fixed point."""
        block_ids = range(len(func.blocks))
        entry: Dict[int, Any] = {b: self.lattice.bottom() for b in block_ids}
        exit_: Dict[int, Any] = {b: self.lattice.bottom() for b in block_ids}
        forward = self.direction is Direction.FORWARD

        if forward:
            hop_id = func.entry_hop
            if hop_id is not None and 0 <= hop_id < len(func.hops):
                entry_block = func.hops[hop_id].entry_block
                if entry_block is not None:
                    entry[entry_block] = self.transfer.initial_value()
        else:
            for block_id, block in enumerate(func.blocks):
                if isinstance(block.terminator, Return):
                    exit_[block_id] = self.transfer.initial_value()

        worklist = deque(block_ids)
        while worklist:
            block_id = worklist.popleft()
            block = func.blocks[block_id]

            if forward:
                old = exit_[block_id]
                preds = self.predecessors(func, block_id)
                in_val = self._meet_all(exit_[p] for p in preds) if preds else entry[block_id]
                entry[block_id] = in_val
                new = self._transfer_forward(block, in_val)
                if new != old:
                    exit_[block_id] = new
                    worklist.extend(self.successors(block))
            else:
                old = entry[block_id]
                succs = self.successors(block)
                out_val = self._meet_all(entry[s] for s in succs) if succs else exit_[block_id]
                exit_[block_id] = out_val
                new = self._transfer_backward(block, out_val)
                if new != old:
                    entry[block_id] = new
                    worklist.extend(self.predecessors(func, block_id))

        return DataflowResults(entry, exit_)

    def _meet_all(self, values: Iterable[Any]) -> Any:
        return reduce(lambda acc, value: acc.meet(value), values, self.lattice.top())

    def _transfer_forward(self, block: BasicBlock, state: Any) -> Any:
        for stmt in block.statements:
            state = self.transfer.transfer_statement(stmt, state)
        return self.transfer.transfer_terminator(block.terminator, state)

    def _transfer_backward(self, block: BasicBlock, state: Any) -> Any:
        state = self.transfer.transfer_terminator(block.terminator, state)
        for stmt in reversed(block.statements):
            state = self.transfer.transfer_statement(stmt, state)
        return state

    def successors(self, block: BasicBlock) -> Tuple[int, ...]:
        """Blocks that control may reach directly from ``block``."""
        return block.terminator.successors()

    def predecessors(self, func: FunctionCfg, block_id: int) -> List[int]:
        """Blocks whose Goto or Branch targets ``block_id``, in block order."""
        preds = []
        for pred_id, pred in enumerate(func.blocks):
            term = pred.terminator
            if isinstance(term, Goto) and term.target == block_id:
                preds.append(pred_id)
            elif isinstance(term, Branch) and block_id in (term.then_block, term.else_block):
                preds.append(pred_id)
        return preds