"""Control-flow graph of a program: hops made of basic blocks of three-address code."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from .ast_nodes import BinaryOp, ReturnType, Span, TypeName, UnaryOp


@dataclass
class NodeInfo:
    name: str
    tables: List[int] = field(default_factory=list)


@dataclass
class TableInfo:
    name: str
    node_id: int
    fields: List[int]
    primary_key: int


@dataclass
class FieldInfo:
    name: str
    ty: TypeName
    table_id: Optional[int] = None
    is_primary: bool = False


@dataclass
class Variable:
    name: str
    ty: TypeName
    is_parameter: bool = False


@dataclass(frozen=True)
class VarOperand:
    """A reference to a function-local variable by index."""

    var: int


@dataclass(frozen=True, eq=False)
class Constant:
    """A literal; values of different types never compare equal, and NaN equals NaN."""

    value: Union[bool, int, float, str]

    def __post_init__(self) -> None:
        if not isinstance(self.value, (bool, int, float, str)):
            raise TypeError(f"unsupported constant: {self.value!r}")

    def _key(self) -> tuple:
        if isinstance(self.value, float) and math.isnan(self.value):
            return (float, "nan")
        return (type(self.value), self.value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Constant):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())


Operand = Union[VarOperand, Constant]


def _vars_of(*operands: Operand) -> Tuple[int, ...]:
    return tuple(op.var for op in operands if isinstance(op, VarOperand))


@dataclass(frozen=True)
class Use:
    operand: Operand

    def uses(self) -> Tuple[int, ...]:
        """Variables read by this value."""
        return _vars_of(self.operand)


@dataclass(frozen=True)
class TableAccess:
    table: int
    pk_field: int
    pk_value: Operand
    field: int

    def uses(self) -> Tuple[int, ...]:
        """Variables read by this value."""
        return _vars_of(self.pk_value)


@dataclass(frozen=True)
class UnaryRvalue:
    op: UnaryOp
    operand: Operand

    def uses(self) -> Tuple[int, ...]:
        """Variables read by this value."""
        return _vars_of(self.operand)


@dataclass(frozen=True)
class BinaryRvalue:
    op: BinaryOp
    left: Operand
    right: Operand

    def uses(self) -> Tuple[int, ...]:
        """Variables read by this value."""
        return _vars_of(self.left, self.right)


Rvalue = Union[Use, TableAccess, UnaryRvalue, BinaryRvalue]


# Statements compare by identity: each one is a distinct program site.


@dataclass(eq=False)
class Assign:
    var: int
    rvalue: Rvalue
    span: Span = field(default_factory=Span)


@dataclass(eq=False)
class TableAssign:
    table: int
    pk_field: int
    pk_value: Operand
    field: int
    value: Operand
    span: Span = field(default_factory=Span)


CfgStatement = Union[Assign, TableAssign]


@dataclass(frozen=True)
class Goto:
    target: int

    def successors(self) -> Tuple[int, ...]:
        return (self.target,)


@dataclass(frozen=True)
class Branch:
    condition: Operand
    then_block: int
    else_block: int

    def successors(self) -> Tuple[int, ...]:
        return (self.then_block, self.else_block)


@dataclass(frozen=True)
class Return:
    value: Optional[Operand] = None

    def successors(self) -> Tuple[int, ...]:
        return ()


@dataclass(frozen=True)
class Abort:
    def successors(self) -> Tuple[int, ...]:
        return ()


@dataclass(frozen=True)
class HopExit:
    next_hop: Optional[int] = None

    def successors(self) -> Tuple[int, ...]:
        return ()


Terminator = Union[Goto, Branch, Return, Abort, HopExit]


@dataclass
class BasicBlock:
    hop_id: int
    statements: List[CfgStatement] = field(default_factory=list)
    terminator: Terminator = field(default_factory=Abort)
    span: Span = field(default_factory=Span)


@dataclass
class HopCfg:
    """The part of a function that runs on one node."""

    node_id: int
    entry_block: Optional[int] = None
    blocks: List[int] = field(default_factory=list)
    span: Span = field(default_factory=Span)


@dataclass
class FunctionCfg:
    name: str
    return_type: ReturnType
    span: Span = field(default_factory=Span)
    variables: List[Variable] = field(default_factory=list)
    parameters: List[int] = field(default_factory=list)
    hops: List[HopCfg] = field(default_factory=list)
    blocks: List[BasicBlock] = field(default_factory=list)
    entry_hop: Optional[int] = None
    hop_order: List[int] = field(default_factory=list)

    def add_variable(self, name: str, ty: TypeName, is_parameter: bool = False) -> int:
        """Add a variable; parameters are also appended to ``parameters``."""
        self.variables.append(Variable(name, ty, is_parameter))
        var_id = len(self.variables) - 1
        if is_parameter:
            self.parameters.append(var_id)
        return var_id

    def add_hop(self, node_id: int, span: Span = Span()) -> int:
        """Append a hop to the hop order; the first hop becomes the entry hop."""
        self.hops.append(HopCfg(node_id, span=span))
        hop_id = len(self.hops) - 1
        self.hop_order.append(hop_id)
        if self.entry_hop is None:
            self.entry_hop = hop_id
        return hop_id

    def add_block(self, hop_id: int) -> int:
        """Create an empty block in a hop, terminated by Abort until set."""
        if not 0 <= hop_id < len(self.hops):
            raise IndexError(f"no hop {hop_id} in function {self.name}")
        self.blocks.append(BasicBlock(hop_id))
        block_id = len(self.blocks) - 1
        self.hops[hop_id].blocks.append(block_id)
        return block_id


@dataclass
class CfgProgram:
    nodes: List[NodeInfo] = field(default_factory=list)
    tables: List[TableInfo] = field(default_factory=list)
    fields: List[FieldInfo] = field(default_factory=list)
    functions: List[FunctionCfg] = field(default_factory=list)
    root_nodes: List[int] = field(default_factory=list)
    root_tables: List[int] = field(default_factory=list)
    root_functions: List[int] = field(default_factory=list)