import pytest

from fmitf.ast_nodes import Span, TypeName
from fmitf.errors import AnalysisError, AstError, ErrorKind, SpannedError, format_errors


@pytest.mark.parametrize(
    "kind, prefix",
    [
        (ErrorKind.UNDECLARED_VARIABLE, "Undeclared variable: "),
        (ErrorKind.UNDECLARED_TABLE, "Undeclared table: "),
        (ErrorKind.UNDECLARED_NODE, "Undeclared node: "),
        (ErrorKind.DUPLICATE_VARIABLE, "Duplicate variable: "),
        (ErrorKind.DUPLICATE_FUNCTION, "Duplicate function: "),
        (ErrorKind.DUPLICATE_TABLE, "Duplicate table: "),
        (ErrorKind.DUPLICATE_NODE, "Duplicate node: "),
    ],
)
def test_name_errors_render_with_name(kind, prefix):
    assert str(AstError(kind, name="item")) == prefix + "item"


@pytest.mark.parametrize(
    "kind, text",
    [
        (ErrorKind.BREAK_OUTSIDE_LOOP, "Break statement outside of loop"),
        (ErrorKind.CONTINUE_OUTSIDE_LOOP, "Continue statement outside of loop"),
        (ErrorKind.UNEXPECTED_RETURN_VALUE, "Unexpected return value in void function"),
        (ErrorKind.MISSING_RETURN_VALUE, "Missing return value in non-void function"),
    ],
)
def test_errors_without_fields(kind, text):
    assert str(AstError(kind)) == text


def test_parse_error_message():
    assert str(AstError(ErrorKind.PARSE_ERROR, message="bad")) == "Parse error: bad"


def test_type_mismatch_uses_type_names():
    error = AstError(ErrorKind.TYPE_MISMATCH, expected=TypeName.INT, found=TypeName.FLOAT)
    assert str(error) == "Type mismatch: expected Int, found Float"


def test_cross_node_access_mentions_all_names():
    error = AstError(
        ErrorKind.CROSS_NODE_ACCESS, table="acct", table_node="east", current_node="west"
    )
    text = str(error)
    assert text.startswith("Cannot access table ")
    assert all(name in text for name in ("acct", "east", "west"))


def test_abort_not_in_first_hop_mentions_index():
    error = AstError(ErrorKind.ABORT_NOT_IN_FIRST_HOP, function="transfer", hop_index=2)
    assert "hop 2" in str(error)
    assert str(error).endswith("(only in first hop)")


@pytest.mark.parametrize(
    "kind, details",
    [
        (ErrorKind.UNDECLARED_VARIABLE, {}),
        (ErrorKind.UNDECLARED_FIELD, {"table": "t"}),
        (ErrorKind.BREAK_OUTSIDE_LOOP, {"name": "x"}),
    ],
)
def test_wrong_fields_are_rejected(kind, details):
    with pytest.raises(TypeError):
        AstError(kind, **details)


def test_error_equality_and_hash():
    a = AstError(ErrorKind.UNDECLARED_FIELD, table="t", field="f")
    b = AstError(ErrorKind.UNDECLARED_FIELD, field="f", table="t")
    c = AstError(ErrorKind.UNDECLARED_FIELD, table="t", field="g")
    assert a == b
    assert hash(a) == hash(b)
    assert len({a, b, c}) == 2


def test_spanned_error_with_span():
    error = AstError(ErrorKind.UNDECLARED_VARIABLE, name="x")
    spanned = SpannedError(error, Span(10, 11, 3, 7))
    assert str(spanned) == "Error at 3:7: " + str(error)


def test_spanned_error_without_span():
    error = AstError(ErrorKind.MISSING_RETURN, function="f")
    assert str(SpannedError(error)) == "Error: " + str(error)


def test_format_errors_one_per_line():
    errors = [
        SpannedError(AstError(ErrorKind.BREAK_OUTSIDE_LOOP), Span(0, 1, 1, 1)),
        SpannedError(AstError(ErrorKind.UNDECLARED_TABLE, name="t")),
    ]
    lines = format_errors(errors).split("\n")
    assert lines == [str(error) for error in errors]


def test_analysis_error_carries_errors():
    errors = [SpannedError(AstError(ErrorKind.DUPLICATE_NODE, name="n"))]
    exc = AnalysisError(errors)
    assert exc.errors == errors
    assert str(exc) == format_errors(errors)