"""AST node definitions for the Plc language.

The parser builds the tree once. The analyzer fills in the annotation
fields (``resolved_type``, ``variable``, ``function``) in place; those
fields and the source offsets take no part in equality, so two trees
compare equal when their shapes and values match.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from plc.symbols import FunctionSymbol, VariableSymbol
    from plc.types import Type


def _offset():
    return field(default=0, compare=False)


def _annotation():
    return field(default=None, compare=False, repr=False)


# ── Expressions ──────────────────────────────────────────────────


@dataclass
class NilLit:
    offset: int = _offset()
    resolved_type: Type | None = _annotation()


@dataclass
class BooleanLit:
    value: bool
    offset: int = _offset()
    resolved_type: Type | None = _annotation()


@dataclass
class IntegerLit:
    value: int
    offset: int = _offset()
    resolved_type: Type | None = _annotation()


@dataclass
class DecimalLit:
    value: Decimal
    offset: int = _offset()
    resolved_type: Type | None = _annotation()


@dataclass
class CharLit:
    value: str
    offset: int = _offset()
    resolved_type: Type | None = _annotation()


@dataclass
class StringLit:
    value: str
    offset: int = _offset()
    resolved_type: Type | None = _annotation()


Literal = Union[NilLit, BooleanLit, IntegerLit, DecimalLit, CharLit, StringLit]


@dataclass
class Group:
    expr: Expr
    offset: int = _offset()
    resolved_type: Type | None = _annotation()


@dataclass
class BinaryExpr:
    op: str
    left: Expr
    right: Expr
    offset: int = _offset()
    resolved_type: Type | None = _annotation()


@dataclass
class AccessExpr:
    """A variable reference, or a field access when ``receiver`` is set."""

    receiver: Expr | None
    name: str
    offset: int = _offset()
    resolved_type: Type | None = _annotation()
    variable: VariableSymbol | None = _annotation()


@dataclass
class CallExpr:
    """A function call, or a method call when ``receiver`` is set."""

    receiver: Expr | None
    name: str
    arguments: list[Expr]
    offset: int = _offset()
    resolved_type: Type | None = _annotation()
    function: FunctionSymbol | None = _annotation()


Expr = Union[
    NilLit, BooleanLit, IntegerLit, DecimalLit, CharLit, StringLit,
    Group, BinaryExpr, AccessExpr, CallExpr,
]


# ── Statements ───────────────────────────────────────────────────


@dataclass
class ExprStmt:
    expr: Expr
    offset: int = _offset()


@dataclass
class Declaration:
    name: str
    type_name: str | None
    value: Expr | None
    offset: int = _offset()
    variable: VariableSymbol | None = _annotation()


@dataclass
class Assignment:
    receiver: Expr
    value: Expr
    offset: int = _offset()


@dataclass
class IfStmt:
    condition: Expr
    then_statements: list[Stmt]
    else_statements: list[Stmt]
    offset: int = _offset()


@dataclass
class ForStmt:
    name: str
    value: Expr
    statements: list[Stmt]
    offset: int = _offset()


@dataclass
class WhileStmt:
    condition: Expr
    statements: list[Stmt]
    offset: int = _offset()


@dataclass
class ReturnStmt:
    value: Expr
    offset: int = _offset()


Stmt = Union[
    ExprStmt, Declaration, Assignment, IfStmt, ForStmt, WhileStmt, ReturnStmt,
]


# ── Top level ────────────────────────────────────────────────────


@dataclass
class Field:
    name: str
    type_name: str | None
    value: Expr | None
    offset: int = _offset()
    variable: VariableSymbol | None = _annotation()


@dataclass
class Method:
    name: str
    parameters: list[str]
    parameter_type_names: list[str]
    return_type_name: str | None
    statements: list[Stmt]
    offset: int = _offset()
    function: FunctionSymbol | None = _annotation()


@dataclass
class Source:
    fields: list[Field]
    methods: list[Method]
