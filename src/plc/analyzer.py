"""Static analyzer for the Plc language.

A single top-down pass that resolves every name to a binding and gives
every expression a static type. The tree is annotated in place; the
first violation raises an AnalysisError.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from plc.ast_nodes import (
    AccessExpr,
    Assignment,
    BinaryExpr,
    BooleanLit,
    CallExpr,
    CharLit,
    DecimalLit,
    Declaration,
    Expr,
    ExprStmt,
    Field,
    ForStmt,
    Group,
    IfStmt,
    IntegerLit,
    Method,
    NilLit,
    ReturnStmt,
    Source,
    Stmt,
    StringLit,
    WhileStmt,
)
from plc.errors import AnalysisError
from plc.symbols import FunctionSymbol, ScopeArena, VariableSymbol
from plc.tokens import COMPARISON_OPERATORS, LOGICAL_OPERATORS
from plc.types import (
    ANY,
    BOOLEAN,
    CHARACTER,
    COMPARABLE,
    DECIMAL,
    INTEGER,
    INTEGER_ITERABLE,
    NIL,
    STRING,
    Type,
    TypeRegistry,
    is_assignable,
    is_numeric,
    type_name,
)

logger = logging.getLogger(__name__)

INTEGER_MIN = -(2 ** 31)
INTEGER_MAX = 2 ** 31 - 1
# Largest finite IEEE-754 double, compared exactly
DECIMAL_MAX = Decimal("1.7976931348623157e308")


class Analyzer:
    """Resolves names and types over a parsed Source."""

    def __init__(self, filename: str = "<stdin>") -> None:
        self.filename = filename
        self.registry = TypeRegistry()
        self.scopes: ScopeArena[VariableSymbol, FunctionSymbol] = ScopeArena()
        self.define_function("print", [ANY], NIL)

    # ── Host registration ────────────────────────────────────────

    def define_variable(self, name: str, ty: Type) -> VariableSymbol:
        symbol = VariableSymbol(name, ty)
        self.scopes[ScopeArena.ROOT].variables[name] = symbol
        return symbol

    def define_function(
        self, name: str, parameter_types: list[Type], return_type: Type,
    ) -> FunctionSymbol:
        symbol = FunctionSymbol(name, list(parameter_types), return_type)
        self.scopes[ScopeArena.ROOT].functions[(name, symbol.arity)] = symbol
        return symbol

    # ── Errors ───────────────────────────────────────────────────

    def _error(
        self, message: str, offset: int | None, code: str = "E300",
    ) -> AnalysisError:
        return AnalysisError(message, offset, filename=self.filename, code=code)

    def _require_assignable(self, target: Type, source: Type, offset: int) -> None:
        if not is_assignable(target, source):
            raise self._error(
                f"expected {target.name}, found {source.name}", offset, "E321",
            )

    def _resolve_type(self, name: str, offset: int) -> Type:
        ty = self.registry.resolve(name)
        if ty is None:
            raise self._error(f"unknown type '{name}'", offset, "E300")
        return ty

    # ── Top level ────────────────────────────────────────────────

    def analyze(self, source: Source) -> Source:
        """Analyze and annotate ``source``; returns the same tree."""
        root = ScopeArena.ROOT
        for fld in source.fields:
            self._analyze_field(fld, root)
        for method in source.methods:
            self._declare_method(method, root)
        for method in source.methods:
            self._analyze_method(method, root)

        main = next(
            (m for m in source.methods if m.name == "main" and not m.parameters),
            None,
        )
        if main is None:
            raise self._error("missing main/0 method", None, "E330")
        assert main.function is not None
        if main.function.return_type is not INTEGER:
            raise self._error(
                "main/0 must return Integer, found "
                f"{main.function.return_type.name}",
                main.offset, "E330",
            )

        logger.debug(
            "%s: analyzed %d fields and %d methods",
            self.filename, len(source.fields), len(source.methods),
        )
        return source

    def _analyze_field(self, fld: Field, scope: int) -> None:
        fld.variable = self._declare(fld.name, fld.type_name, fld.value, scope, fld.offset)

    def _declare(
        self,
        name: str,
        declared_name: str | None,
        value: Expr | None,
        scope: int,
        offset: int,
    ) -> VariableSymbol:
        if declared_name is None and value is None:
            raise self._error(
                f"declaration of '{name}' needs a type or an initial value",
                offset, "E350",
            )
        declared = (
            self._resolve_type(declared_name, offset)
            if declared_name is not None else None
        )
        if value is not None:
            value_type = self._analyze_expr(value, scope)
            if declared is not None:
                self._require_assignable(declared, value_type, value.offset)
            else:
                declared = value_type
        assert declared is not None

        symbol = VariableSymbol(name, declared, offset)
        if self.scopes.define_variable(scope, name, symbol) is not None:
            raise self._error(
                f"'{name}' is already defined in this scope", offset, "E301",
            )
        return symbol

    def _declare_method(self, method: Method, scope: int) -> None:
        parameter_types = [
            self._resolve_type(name, method.offset)
            for name in method.parameter_type_names
        ]
        return_type = (
            self._resolve_type(method.return_type_name, method.offset)
            if method.return_type_name is not None else NIL
        )
        symbol = FunctionSymbol(method.name, parameter_types, return_type, method.offset)
        if self.scopes.define_function(scope, method.name, symbol.arity, symbol) is not None:
            raise self._error(
                f"method '{method.name}/{symbol.arity}' is already defined",
                method.offset, "E301",
            )
        method.function = symbol

    def _analyze_method(self, method: Method, scope: int) -> None:
        symbol = method.function
        assert symbol is not None
        body = self.scopes.push(scope)
        try:
            for name, ty in zip(method.parameters, symbol.parameter_types):
                if self.scopes.define_variable(body, name, VariableSymbol(name, ty)) is not None:
                    raise self._error(
                        f"duplicate parameter '{name}'", method.offset, "E301",
                    )
            for stmt in method.statements:
                self._analyze_stmt(stmt, body, symbol.return_type)
        finally:
            self.scopes.release(body)

    # ── Statements ───────────────────────────────────────────────

    def _analyze_block(
        self, statements: list[Stmt], parent: int, return_type: Type,
    ) -> None:
        scope = self.scopes.push(parent)
        try:
            for stmt in statements:
                self._analyze_stmt(stmt, scope, return_type)
        finally:
            self.scopes.release(scope)

    def _analyze_stmt(self, stmt: Stmt, scope: int, return_type: Type) -> None:
        match stmt:
            case ExprStmt(expr=CallExpr() as call):
                self._analyze_expr(call, scope)

            case ExprStmt(expr=expr):
                raise self._error(
                    "expression statement must be a function call",
                    expr.offset, "E350",
                )

            case Declaration(name=name, type_name=declared, value=value):
                stmt.variable = self._declare(name, declared, value, scope, stmt.offset)

            case Assignment(receiver=AccessExpr() as target, value=value):
                target_type = self._analyze_expr(target, scope)
                value_type = self._analyze_expr(value, scope)
                self._require_assignable(target_type, value_type, value.offset)

            case Assignment(receiver=receiver):
                raise self._error(
                    "assignment target must be a variable or field",
                    receiver.offset, "E350",
                )

            case IfStmt(condition=condition, then_statements=then, else_statements=orelse):
                self._require_assignable(
                    BOOLEAN, self._analyze_expr(condition, scope), condition.offset,
                )
                if not then:
                    raise self._error("if statement has an empty body", stmt.offset, "E350")
                self._analyze_block(then, scope, return_type)
                if orelse:
                    self._analyze_block(orelse, scope, return_type)

            case ForStmt(name=name, value=value, statements=body):
                if not body:
                    raise self._error("for loop has an empty body", stmt.offset, "E350")
                self._require_assignable(
                    INTEGER_ITERABLE, self._analyze_expr(value, scope), value.offset,
                )
                loop = self.scopes.push(scope)
                try:
                    self.scopes.define_variable(loop, name, VariableSymbol(name, INTEGER))
                    for inner in body:
                        self._analyze_stmt(inner, loop, return_type)
                finally:
                    self.scopes.release(loop)

            case WhileStmt(condition=condition, statements=body):
                self._require_assignable(
                    BOOLEAN, self._analyze_expr(condition, scope), condition.offset,
                )
                self._analyze_block(body, scope, return_type)

            case ReturnStmt(value=value):
                self._require_assignable(
                    return_type, self._analyze_expr(value, scope), value.offset,
                )

    # ── Expressions ──────────────────────────────────────────────

    def _analyze_expr(self, expr: Expr, scope: int) -> Type:
        ty = self._infer(expr, scope)
        expr.resolved_type = ty
        return ty

    def _infer(self, expr: Expr, scope: int) -> Type:
        match expr:
            case NilLit():
                return NIL
            case BooleanLit():
                return BOOLEAN
            case IntegerLit(value=value):
                if not INTEGER_MIN <= value <= INTEGER_MAX:
                    raise self._error(
                        f"integer literal {value} does not fit in 32 bits",
                        expr.offset, "E340",
                    )
                return INTEGER
            case DecimalLit(value=value):
                if value.copy_abs() > DECIMAL_MAX:
                    raise self._error(
                        f"decimal literal {value} is out of range",
                        expr.offset, "E340",
                    )
                return DECIMAL
            case CharLit():
                return CHARACTER
            case StringLit():
                return STRING

            case Group(expr=BinaryExpr() as inner):
                return self._analyze_expr(inner, scope)
            case Group():
                raise self._error(
                    "parentheses must enclose a binary expression",
                    expr.offset, "E350",
                )

            case BinaryExpr(op=op, left=left, right=right):
                return self._infer_binary(op, left, right, scope, expr.offset)

            case AccessExpr(receiver=None, name=name):
                variable = self.scopes.lookup_variable(scope, name)
                if variable is None:
                    raise self._error(f"undefined variable '{name}'", expr.offset, "E310")
                expr.variable = variable
                return variable.type

            case AccessExpr(receiver=receiver, name=name):
                receiver_type = self._analyze_expr(receiver, scope)
                variable = receiver_type.lookup_field(name)
                if variable is None:
                    raise self._error(
                        f"type {receiver_type.name} has no field '{name}'",
                        expr.offset, "E312",
                    )
                expr.variable = variable
                return variable.type

            case CallExpr(receiver=None, name=name, arguments=arguments):
                function = self.scopes.lookup_function(scope, name, len(arguments))
                if function is None:
                    raise self._error(
                        f"undefined function '{name}/{len(arguments)}'",
                        expr.offset, "E311",
                    )
                self._check_arguments(function, arguments, scope)
                expr.function = function
                return function.return_type

            case CallExpr(receiver=receiver, name=name, arguments=arguments):
                receiver_type = self._analyze_expr(receiver, scope)
                function = receiver_type.lookup_method(name, len(arguments))
                if function is None:
                    raise self._error(
                        f"type {receiver_type.name} has no method "
                        f"'{name}/{len(arguments)}'",
                        expr.offset, "E312",
                    )
                self._check_arguments(function, arguments, scope)
                expr.function = function
                return function.return_type

        raise self._error(f"unsupported expression {type(expr).__name__}", expr.offset)

    def _check_arguments(
        self, function: FunctionSymbol, arguments: list[Expr], scope: int,
    ) -> None:
        for parameter_type, argument in zip(function.parameter_types, arguments):
            self._require_assignable(
                parameter_type, self._analyze_expr(argument, scope), argument.offset,
            )

    def _infer_binary(
        self, op: str, left: Expr, right: Expr, scope: int, offset: int,
    ) -> Type:
        lt = self._analyze_expr(left, scope)
        rt = self._analyze_expr(right, scope)

        if op in LOGICAL_OPERATORS:
            self._require_assignable(BOOLEAN, lt, left.offset)
            self._require_assignable(BOOLEAN, rt, right.offset)
            return BOOLEAN

        if op in COMPARISON_OPERATORS:
            self._require_assignable(COMPARABLE, lt, left.offset)
            self._require_assignable(COMPARABLE, rt, right.offset)
            return BOOLEAN

        if op == "+" and (lt is STRING or rt is STRING):
            return STRING

        if is_numeric(lt) and lt is rt:
            return lt

        raise self._error(
            f"operator '{op}' cannot be applied to {type_name(lt)} and {type_name(rt)}",
            offset, "E320",
        )
