import pytest

from fmitf.ast_nodes import (
    BinaryExpr,
    BinaryOp,
    BoolLit,
    FloatLit,
    Ident,
    IntLit,
    Program,
    ScopeKind,
    Span,
    StringLit,
    TableFieldAccess,
    TypeName,
    UnaryExpr,
    UnaryOp,
    VarKind,
)
from fmitf.errors import ErrorKind
from fmitf.type_checker import TypeChecker, types_compatible


def _bank():
    program = Program()
    n1 = program.add_node("n1")
    n2 = program.add_node("n2")
    pk = program.add_field(TypeName.INT, "id", True)
    balance = program.add_field(TypeName.FLOAT, "balance")
    table = program.add_table("accounts", "n1", [pk, balance])
    return program, {"n1": n1, "n2": n2, "pk": pk, "balance": balance, "table": table}


def _access(program, ids, pk_field="pk", field="balance", table=True):
    key = program.add_expression(IntLit(1))
    return program.add_expression(
        TableFieldAccess(
            "accounts",
            "id",
            key,
            "balance",
            resolved_table=ids["table"] if table else None,
            resolved_pk_field=ids[pk_field] if pk_field else None,
            resolved_field=ids[field] if field else None,
        )
    )


@pytest.mark.parametrize(
    "kind, expected",
    [
        (IntLit(3), TypeName.INT),
        (FloatLit(1.5), TypeName.FLOAT),
        (StringLit("a"), TypeName.STRING),
        (BoolLit(True), TypeName.BOOL),
    ],
)
def test_literal_types(kind, expected):
    program = Program()
    expr = program.add_expression(kind)
    checker = TypeChecker(program)
    assert checker.check_expression(expr) == expected
    assert checker.errors == []


def test_resolved_identifier_has_variable_type():
    program = Program()
    scope = program.add_scope(None, ScopeKind("global"))
    var = program.add_variable("x", TypeName.STRING, VarKind.LOCAL, Span(), scope)
    expr = program.add_expression(Ident("x"))
    program.resolutions[expr] = var
    assert TypeChecker(program).check_expression(expr) == TypeName.STRING


def test_unresolved_identifier_is_untyped_without_error():
    program = Program()
    expr = program.add_expression(Ident("y"))
    checker = TypeChecker(program)
    assert checker.check_expression(expr) is None
    assert checker.errors == []


@pytest.mark.parametrize(
    "left, right, expected",
    [
        (IntLit(1), IntLit(2), TypeName.INT),
        (IntLit(1), FloatLit(2.0), TypeName.FLOAT),
        (FloatLit(1.0), IntLit(2), TypeName.FLOAT),
    ],
)
def test_arithmetic_result_types(left, right, expected):
    program = Program()
    expr = program.add_expression(
        BinaryExpr(program.add_expression(left), BinaryOp.MUL, program.add_expression(right))
    )
    assert TypeChecker(program).check_expression(expr) == expected


def test_arithmetic_on_bool_is_reported():
    program = Program()
    span = Span(0, 5, 2, 4)
    expr = program.add_expression(
        BinaryExpr(program.add_expression(IntLit(1)), BinaryOp.ADD, program.add_expression(BoolLit(True))),
        span,
    )
    checker = TypeChecker(program)
    assert checker.check_expression(expr) is None
    assert len(checker.errors) == 1
    error = checker.errors[0]
    assert error.span == span
    assert error.error.kind is ErrorKind.INVALID_BINARY_OP
    assert dict(error.error.details) == {"op": "Add", "left": TypeName.INT, "right": TypeName.BOOL}


def test_equality_compatibility_is_directional():
    program = Program()
    float_eq_int = program.add_expression(
        BinaryExpr(program.add_expression(FloatLit(1.0)), BinaryOp.EQ, program.add_expression(IntLit(1)))
    )
    int_eq_float = program.add_expression(
        BinaryExpr(program.add_expression(IntLit(1)), BinaryOp.NEQ, program.add_expression(FloatLit(1.0)))
    )
    checker = TypeChecker(program)
    assert checker.check_expression(float_eq_int) == TypeName.BOOL
    assert checker.check_expression(int_eq_float) is None
    assert [e.error.kind for e in checker.errors] == [ErrorKind.INVALID_BINARY_OP]


def test_ordering_and_logic():
    program = Program()
    checker = TypeChecker(program)
    assert checker.check_binary_op(BinaryOp.LT, TypeName.INT, TypeName.FLOAT, None) == TypeName.BOOL
    assert checker.check_binary_op(BinaryOp.AND, TypeName.BOOL, TypeName.BOOL, None) == TypeName.BOOL
    assert checker.check_binary_op(BinaryOp.GTE, TypeName.STRING, TypeName.STRING, None) is None
    assert checker.check_binary_op(BinaryOp.OR, TypeName.BOOL, TypeName.INT, None) is None
    assert [e.error.details["op"] for e in checker.errors] == ["Gte", "Or"]


def test_unary_operators():
    program = Program()
    neg_float = program.add_expression(UnaryExpr(UnaryOp.NEG, program.add_expression(FloatLit(2.0))))
    not_bool = program.add_expression(UnaryExpr(UnaryOp.NOT, program.add_expression(BoolLit(False))))
    neg_bool = program.add_expression(UnaryExpr(UnaryOp.NEG, program.add_expression(BoolLit(False))))
    not_int = program.add_expression(UnaryExpr(UnaryOp.NOT, program.add_expression(IntLit(0))))
    checker = TypeChecker(program)
    assert checker.check_expression(neg_float) == TypeName.FLOAT
    assert checker.check_expression(not_bool) == TypeName.BOOL
    assert checker.check_expression(neg_bool) is None
    assert checker.check_expression(not_int) is None
    assert [e.error.details["op"] for e in checker.errors] == ["negation", "logical not"]
    assert [e.error.details["operand"] for e in checker.errors] == [TypeName.BOOL, TypeName.INT]


def test_untyped_operand_adds_no_further_error():
    program = Program()
    inner = program.add_expression(Ident("missing"))
    expr = program.add_expression(UnaryExpr(UnaryOp.NEG, inner))
    checker = TypeChecker(program)
    assert checker.check_expression(expr) is None
    assert checker.errors == []


def test_table_access_on_current_node():
    program, ids = _bank()
    expr = _access(program, ids)
    checker = TypeChecker(program)
    checker.current_node = ids["n1"]
    assert checker.check_expression(expr) == TypeName.FLOAT
    assert checker.errors == []


def test_cross_node_access_is_reported():
    program, ids = _bank()
    expr = _access(program, ids)
    checker = TypeChecker(program)
    checker.current_node = ids["n2"]
    assert checker.check_expression(expr) is None
    assert len(checker.errors) == 1
    assert str(checker.errors[0].error) == (
        "Cannot access table 'accounts' on node 'n1' from node 'n2'"
    )


def test_non_primary_key_is_reported():
    program, ids = _bank()
    expr = _access(program, ids, pk_field="balance")
    checker = TypeChecker(program)
    assert checker.check_expression(expr) is None
    error = checker.errors[0].error
    assert error.kind is ErrorKind.INVALID_PRIMARY_KEY
    assert dict(error.details) == {"table": "accounts", "column": "balance"}


def test_missing_field_and_table_are_reported():
    program, ids = _bank()
    no_field = _access(program, ids, field=None)
    no_table = _access(program, ids, table=False)
    checker = TypeChecker(program)
    assert checker.check_expression(no_field) is None
    assert checker.check_expression(no_table) is None
    assert [e.error.kind for e in checker.errors] == [
        ErrorKind.UNDECLARED_FIELD,
        ErrorKind.UNDECLARED_TABLE,
    ]


def test_failed_left_operand_skips_right():
    program, ids = _bank()
    left = _access(program, ids, table=False)
    right = _access(program, ids, table=False)
    expr = program.add_expression(BinaryExpr(left, BinaryOp.ADD, right))
    checker = TypeChecker(program)
    assert checker.check_expression(expr) is None
    assert len(checker.errors) == 1


def test_shared_error_list():
    program = Program()
    collected = []
    checker = TypeChecker(program, collected)
    checker.check_binary_op(BinaryOp.SUB, TypeName.STRING, TypeName.INT, None)
    assert len(collected) == 1
    assert collected is checker.errors


@pytest.mark.parametrize(
    "expected, actual, result",
    [
        (TypeName.INT, TypeName.INT, True),
        (TypeName.FLOAT, TypeName.INT, True),
        (TypeName.INT, TypeName.FLOAT, False),
        (TypeName.BOOL, TypeName.STRING, False),
    ],
)
def test_types_compatible(expected, actual, result):
    assert types_compatible(expected, actual) is result