import math

import pytest

from fmitf.ast_nodes import BinaryOp, ReturnType, TypeName, UnaryOp
from fmitf.cfg import (
    Abort,
    Assign,
    BinaryRvalue,
    Branch,
    Constant,
    FunctionCfg,
    Goto,
    HopExit,
    Return,
    TableAccess,
    UnaryRvalue,
    Use,
    VarOperand,
)


def _function():
    return FunctionCfg("f", ReturnType())


def test_constants_of_different_types_differ():
    values = {Constant(1), Constant(True), Constant(1.0), Constant("1")}
    assert len(values) == 4
    assert (Constant(1) == Constant(True)) is False


def test_constant_nan_equals_itself():
    assert Constant(math.nan) == Constant(float("nan"))
    assert len({Constant(math.nan), Constant(math.nan)}) == 1


def test_constant_rejects_other_values():
    with pytest.raises(TypeError):
        Constant([1])


def test_rvalue_uses_collect_variables():
    assert Use(VarOperand(4)).uses() == (4,)
    assert Use(Constant(4)).uses() == ()
    assert BinaryRvalue(BinaryOp.ADD, VarOperand(1), Constant(2)).uses() == (1,)
    assert BinaryRvalue(BinaryOp.LT, VarOperand(1), VarOperand(3)).uses() == (1, 3)
    assert UnaryRvalue(UnaryOp.NEG, VarOperand(5)).uses() == (5,)
    assert TableAccess(0, 1, VarOperand(2), 3).uses() == (2,)


def test_rvalues_compare_structurally():
    a = TableAccess(0, 1, VarOperand(2), 3)
    b = TableAccess(0, 1, VarOperand(2), 3)
    assert a == b
    assert len({a, b, TableAccess(0, 1, VarOperand(2), 4)}) == 2


def test_terminator_successors():
    assert Goto(3).successors() == (3,)
    assert Branch(VarOperand(0), 1, 2).successors() == (1, 2)
    assert Return(Constant(1)).successors() == ()
    assert Abort().successors() == ()
    assert HopExit(1).successors() == ()


def test_statements_compare_by_identity():
    first = Assign(0, Use(Constant(1)))
    second = Assign(0, Use(Constant(1)))
    assert first == first
    assert (first == second) is False
    assert len({first, second}) == 2


def test_add_hop_sets_entry_and_order():
    func = _function()
    h0 = func.add_hop(7)
    h1 = func.add_hop(8)
    assert func.entry_hop == h0
    assert func.hop_order == [h0, h1]
    assert func.hops[h1].node_id == 8


def test_add_block_places_block_in_hop():
    func = _function()
    hop = func.add_hop(0)
    first = func.add_block(hop)
    second = func.add_block(hop)
    assert func.hops[hop].blocks == [first, second]
    block = func.blocks[second]
    assert block.hop_id == hop
    assert block.statements == []
    assert block.terminator == Abort()


@pytest.mark.parametrize("hop_id", [0, -1, 3])
def test_add_block_unknown_hop(hop_id):
    with pytest.raises(IndexError):
        _function().add_block(hop_id)


def test_add_variable_tracks_parameters():
    func = _function()
    param = func.add_variable("x", TypeName.INT, True)
    local = func.add_variable("y", TypeName.BOOL)
    assert func.parameters == [param]
    assert func.variables[local].is_parameter is False
    assert func.variables[param].name == "x"
    assert local == len(func.variables) - 1