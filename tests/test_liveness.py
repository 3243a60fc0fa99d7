from fmitf.ast_nodes import BinaryOp, ReturnType, TypeName
from fmitf.cfg import (
    Assign,
    BinaryRvalue,
    Branch,
    Constant,
    FunctionCfg,
    Goto,
    Return,
    TableAssign,
    Use,
    VarOperand,
)
from fmitf.dataflow import SetLattice
from fmitf.liveness import LiveVariablesTransfer, analyze_live_variables


def test_assign_kills_definition_and_adds_uses():
    t = LiveVariablesTransfer()
    stmt = Assign(0, BinaryRvalue(BinaryOp.ADD, VarOperand(1), VarOperand(2)))
    out = t.transfer_statement(stmt, SetLattice(frozenset({0, 3})))
    assert out.set == {1, 2, 3}


def test_self_use_keeps_variable_live():
    t = LiveVariablesTransfer()
    stmt = Assign(0, BinaryRvalue(BinaryOp.ADD, VarOperand(0), Constant(1)))
    assert t.transfer_statement(stmt, SetLattice()).set == {0}


def test_table_assign_adds_operands():
    t = LiveVariablesTransfer()
    stmt = TableAssign(0, 0, VarOperand(4), 1, VarOperand(5))
    assert t.transfer_statement(stmt, SetLattice(frozenset({7}))).set == {4, 5, 7}
    const_stmt = TableAssign(0, 0, Constant(1), 1, Constant(2))
    assert t.transfer_statement(const_stmt, SetLattice()).set == frozenset()


def test_terminators():
    t = LiveVariablesTransfer()
    base = SetLattice(frozenset({9}))
    assert t.transfer_terminator(Branch(VarOperand(1), 0, 1), base).set == {1, 9}
    assert t.transfer_terminator(Return(VarOperand(2)), base).set == {2, 9}
    assert t.transfer_terminator(Return(None), base) == base
    assert t.transfer_terminator(Goto(0), base) == base
    assert t.initial_value() == SetLattice.bottom()
    assert t.boundary_value() == SetLattice.bottom()


def test_straight_line_function():
    func = FunctionCfg("f", ReturnType(TypeName.INT))
    hop = func.add_hop(0)
    b0 = func.add_block(hop)
    x = func.add_variable("x", TypeName.INT, True)
    y = func.add_variable("y", TypeName.INT, True)
    a = func.add_variable("a", TypeName.INT)
    func.blocks[b0].statements.append(
        Assign(a, BinaryRvalue(BinaryOp.ADD, VarOperand(x), VarOperand(y)))
    )
    func.blocks[b0].terminator = Return(VarOperand(a))
    results = analyze_live_variables(func)
    assert results.entry[b0].set == {x, y}
    assert results.exit[b0].set == frozenset()


def test_loop_propagates_condition():
    func = FunctionCfg("f", ReturnType())
    hop = func.add_hop(0)
    b0, b1, b2, b3 = (func.add_block(hop) for _ in range(4))
    c = func.add_variable("c", TypeName.BOOL, True)
    func.blocks[b0].terminator = Goto(b1)
    func.blocks[b1].terminator = Branch(VarOperand(c), b2, b3)
    func.blocks[b2].statements.append(Assign(c, Use(Constant(False))))
    func.blocks[b2].terminator = Goto(b1)
    func.blocks[b3].terminator = Return(None)
    results = analyze_live_variables(func)
    assert c in results.entry[b1].set
    assert c in results.entry[b0].set
    assert c not in results.entry[b2].set
    assert results.exit[b2] == results.entry[b1]
    assert results.entry[b3].set == frozenset()