"""Syntax tree of transaction programs, stored in index-addressed tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union

from .errors import AnalysisError, AstError, ErrorKind, SpannedError


@dataclass(frozen=True)
class Span:
    """A region of source text with the line and column of its start."""

    start: int = 0
    end: int = 0
    line: int = 1
    column: int = 1


class TypeName(Enum):
    """The value types of the language."""

    INT = "Int"
    FLOAT = "Float"
    STRING = "String"
    BOOL = "Bool"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ReturnType:
    """A function's return type; ``type_name`` is None for void."""

    type_name: Optional[TypeName] = None

    @property
    def is_void(self) -> bool:
        return self.type_name is None


class UnaryOp(Enum):
    NOT = "Not"
    NEG = "Neg"

    def __str__(self) -> str:
        return self.value


class BinaryOp(Enum):
    ADD = "Add"
    SUB = "Sub"
    MUL = "Mul"
    DIV = "Div"
    LT = "Lt"
    LTE = "Lte"
    GT = "Gt"
    GTE = "Gte"
    EQ = "Eq"
    NEQ = "Neq"
    AND = "And"
    OR = "Or"

    def __str__(self) -> str:
        return self.value


class VarKind(Enum):
    PARAMETER = "Parameter"
    LOCAL = "Local"


_SCOPE_TAGS_WITH_OWNER = {"function", "hop"}
_SCOPE_TAGS = {"global", "block"} | _SCOPE_TAGS_WITH_OWNER


@dataclass(frozen=True)
class ScopeKind:
    """What opened a scope: global, block, or a function or hop given by ``owner``."""

    tag: str
    owner: Optional[int] = None

    def __post_init__(self) -> None:
        if self.tag not in _SCOPE_TAGS:
            raise ValueError(f"unknown scope kind: {self.tag!r}")
        if (self.tag in _SCOPE_TAGS_WITH_OWNER) != (self.owner is not None):
            raise ValueError(f"scope kind {self.tag!r} has the wrong owner: {self.owner!r}")


@dataclass
class NodeDef:
    name: str
    span: Span = field(default_factory=Span)


@dataclass
class FieldDeclaration:
    field_type: TypeName
    field_name: str
    is_primary: bool
    span: Span = field(default_factory=Span)


@dataclass
class TableDeclaration:
    name: str
    node: int
    fields: List[int]
    primary_key: int
    span: Span = field(default_factory=Span)


@dataclass
class ParameterDecl:
    param_type: TypeName
    param_name: str
    span: Span = field(default_factory=Span)


@dataclass
class HopBlock:
    node_name: str
    statements: List[int]
    span: Span = field(default_factory=Span)
    resolved_node: Optional[int] = None


@dataclass
class FunctionDeclaration:
    return_type: ReturnType
    name: str
    parameters: List[int]
    hops: List[int]
    span: Span = field(default_factory=Span)


# Expression kinds


@dataclass
class Ident:
    name: str


@dataclass
class IntLit:
    value: int


@dataclass
class FloatLit:
    value: float


@dataclass
class StringLit:
    value: str


@dataclass
class BoolLit:
    value: bool


@dataclass
class TableFieldAccess:
    table_name: str
    pk_field_name: str
    pk_expr: int
    field_name: str
    resolved_table: Optional[int] = None
    resolved_pk_field: Optional[int] = None
    resolved_field: Optional[int] = None


@dataclass
class UnaryExpr:
    op: UnaryOp
    expr: int


@dataclass
class BinaryExpr:
    left: int
    op: BinaryOp
    right: int


ExpressionKind = Union[
    Ident, IntLit, FloatLit, StringLit, BoolLit, TableFieldAccess, UnaryExpr, BinaryExpr
]


@dataclass
class Expression:
    kind: ExpressionKind
    span: Span = field(default_factory=Span)


# Statement kinds


@dataclass
class VarDeclStatement:
    var_type: TypeName
    var_name: str
    init_value: int
    is_global: bool = False


@dataclass
class VarAssignmentStatement:
    var_name: str
    rhs: int
    resolved_var: Optional[int] = None


@dataclass
class AssignmentStatement:
    table_name: str
    pk_field_name: str
    pk_expr: int
    field_name: str
    rhs: int
    resolved_table: Optional[int] = None
    resolved_pk_field: Optional[int] = None
    resolved_field: Optional[int] = None


@dataclass
class IfStatement:
    condition: int
    then_branch: List[int]
    else_branch: Optional[List[int]] = None


@dataclass
class WhileStatement:
    condition: int
    body: List[int]


@dataclass
class ReturnStatement:
    value: Optional[int] = None


@dataclass
class AbortStatement:
    pass


@dataclass
class BreakStatement:
    pass


@dataclass
class ContinueStatement:
    pass


@dataclass
class EmptyStatement:
    pass


StatementKind = Union[
    VarDeclStatement,
    VarAssignmentStatement,
    AssignmentStatement,
    IfStatement,
    WhileStatement,
    ReturnStatement,
    AbortStatement,
    BreakStatement,
    ContinueStatement,
    EmptyStatement,
]


@dataclass
class Statement:
    kind: StatementKind
    span: Span = field(default_factory=Span)


@dataclass
class VarDecl:
    name: str
    ty: TypeName
    kind: VarKind
    defined_at: Span
    scope: int


@dataclass
class Scope:
    parent: Optional[int]
    kind: ScopeKind
    variables: Dict[str, int] = field(default_factory=dict)


def _append(items: list, item: object) -> int:
    items.append(item)
    return len(items) - 1


@dataclass
class Program:
    """A whole program; every item is referred to by its index in its table."""

    nodes: List[NodeDef] = field(default_factory=list)
    tables: List[TableDeclaration] = field(default_factory=list)
    fields: List[FieldDeclaration] = field(default_factory=list)
    functions: List[FunctionDeclaration] = field(default_factory=list)
    hops: List[HopBlock] = field(default_factory=list)
    parameters: List[ParameterDecl] = field(default_factory=list)
    statements: List[Statement] = field(default_factory=list)
    expressions: List[Expression] = field(default_factory=list)
    variables: List[VarDecl] = field(default_factory=list)
    scopes: List[Scope] = field(default_factory=list)

    root_nodes: List[int] = field(default_factory=list)
    root_tables: List[int] = field(default_factory=list)
    root_functions: List[int] = field(default_factory=list)

    node_map: Dict[str, int] = field(default_factory=dict)
    table_map: Dict[str, int] = field(default_factory=dict)
    function_map: Dict[str, int] = field(default_factory=dict)

    global_scope: Optional[int] = None
    resolutions: Dict[int, int] = field(default_factory=dict)
    var_types: Dict[int, TypeName] = field(default_factory=dict)

    def add_node(self, name: str, span: Span = Span()) -> int:
        node_id = _append(self.nodes, NodeDef(name, span))
        self.node_map[name] = node_id
        self.root_nodes.append(node_id)
        return node_id

    def add_field(
        self, field_type: TypeName, name: str, is_primary: bool = False, span: Span = Span()
    ) -> int:
        return _append(self.fields, FieldDeclaration(field_type, name, is_primary, span))

    def add_table(self, name: str, node_name: str, fields, span: Span = Span()) -> int:
        """Declare a table on a node; it needs exactly one primary-key field."""
        node_id = self.node_map.get(node_name)
        if node_id is None:
            raise AnalysisError(
                [SpannedError(AstError(ErrorKind.UNDECLARED_NODE, name=node_name), span)]
            )
        field_ids = list(fields)
        primary_key: Optional[int] = None
        for field_id in field_ids:
            if not self.fields[field_id].is_primary:
                continue
            if primary_key is not None:
                raise AnalysisError(
                    [
                        SpannedError(
                            AstError(
                                ErrorKind.PARSE_ERROR,
                                message=f"Table {name} has multiple primary keys",
                            ),
                            span,
                        )
                    ]
                )
            primary_key = field_id
        if primary_key is None:
            raise AnalysisError(
                [
                    SpannedError(
                        AstError(
                            ErrorKind.PARSE_ERROR,
                            message=f"Table {name} must have exactly one primary key",
                        ),
                        span,
                    )
                ]
            )
        table_id = _append(
            self.tables, TableDeclaration(name, node_id, field_ids, primary_key, span)
        )
        self.table_map[name] = table_id
        self.root_tables.append(table_id)
        return table_id

    def add_function(
        self, name: str, return_type: ReturnType, parameters, hops, span: Span = Span()
    ) -> int:
        function_id = _append(
            self.functions,
            FunctionDeclaration(return_type, name, list(parameters), list(hops), span),
        )
        self.function_map[name] = function_id
        self.root_functions.append(function_id)
        return function_id

    def add_parameter(self, param_type: TypeName, name: str, span: Span = Span()) -> int:
        return _append(self.parameters, ParameterDecl(param_type, name, span))

    def add_hop(self, node_name: str, statements, span: Span = Span()) -> int:
        return _append(self.hops, HopBlock(node_name, list(statements), span))

    def add_statement(self, kind: StatementKind, span: Span = Span()) -> int:
        return _append(self.statements, Statement(kind, span))

    def add_expression(self, kind: ExpressionKind, span: Span = Span()) -> int:
        return _append(self.expressions, Expression(kind, span))

    def add_scope(self, parent: Optional[int], kind: ScopeKind) -> int:
        return _append(self.scopes, Scope(parent, kind))

    def add_variable(
        self, name: str, ty: TypeName, kind: VarKind, defined_at: Span, scope: int
    ) -> int:
        """Declare a variable in ``scope`` and record its type."""
        var_id = _append(self.variables, VarDecl(name, ty, kind, defined_at, scope))
        self.scopes[scope].variables[name] = var_id
        self.var_types[var_id] = ty
        return var_id