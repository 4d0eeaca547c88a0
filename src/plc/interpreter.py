"""Tree-walking interpreter for the Plc language.

Statements execute to either ``None`` (fall through) or a ``Returning``
result, which every enclosing statement hands straight back up to the
method invocation that owns it. The current scope is passed explicitly
as an index into the interpreter's scope arena.
"""

from __future__ import annotations

import decimal
import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import TextIO

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
from plc.errors import FaultKind, RuntimeFault
from plc.symbols import ScopeArena
from plc.values import (
    NIL,
    BooleanValue,
    CharacterValue,
    DecimalValue,
    Function,
    IntegerValue,
    ObjectValue,
    SequenceValue,
    StringValue,
    Value,
    Variable,
    display,
    type_tag,
)

logger = logging.getLogger(__name__)

# Addition, subtraction and multiplication never round
_EXACT = decimal.Context(
    prec=decimal.MAX_PREC, Emax=decimal.MAX_EMAX, Emin=decimal.MIN_EMIN,
)

_ORDERED = (BooleanValue, IntegerValue, DecimalValue, CharacterValue, StringValue)


@dataclass(frozen=True)
class Returning:
    """Result of a statement that executed RETURN."""

    value: Value


# ── Arithmetic ──────────────────────────────────────────────────


def _truncating_divide(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return -quotient if (a < 0) != (b < 0) else quotient


def _half_even_divide(num: int, den: int) -> int:
    if den < 0:
        num, den = -num, -den
    quotient, remainder = divmod(num, den)
    twice = 2 * remainder
    if twice > den or (twice == den and quotient % 2 == 1):
        quotient += 1
    return quotient


def decimal_divide(a: Decimal, b: Decimal) -> Decimal:
    """Divide keeping the dividend's scale, rounding half to even."""
    a_exp = a.as_tuple().exponent
    b_exp = b.as_tuple().exponent
    assert isinstance(a_exp, int) and isinstance(b_exp, int)
    a_units = int(a.scaleb(-a_exp, _EXACT))
    b_units = int(b.scaleb(-b_exp, _EXACT))
    # a / b == (a_units / (b_units * 10**b_exp)) * 10**a_exp
    if b_exp >= 0:
        units = _half_even_divide(a_units, b_units * 10 ** b_exp)
    else:
        units = _half_even_divide(a_units * 10 ** -b_exp, b_units)
    return Decimal(units).scaleb(a_exp, _EXACT)


class Interpreter:
    """Executes a parsed (and usually analyzed) Source."""

    def __init__(self, out: TextIO | None = None, filename: str = "<stdin>") -> None:
        self.out = out
        self.filename = filename
        self.scopes: ScopeArena[Variable, Function] = ScopeArena()
        self.define_function("print", 1, self._print)

    # ── Host registration ────────────────────────────────────────

    def define_variable(self, name: str, value: Value) -> Variable:
        variable = Variable(name, value)
        self.scopes[ScopeArena.ROOT].variables[name] = variable
        return variable

    def define_function(
        self, name: str, arity: int, invoke: Callable[[list[Value]], Value],
    ) -> Function:
        function = Function(name, arity, invoke)
        self.scopes[ScopeArena.ROOT].functions[(name, arity)] = function
        return function

    def _print(self, arguments: list[Value]) -> Value:
        stream = self.out if self.out is not None else sys.stdout
        stream.write(display(arguments[0]) + "\n")
        return NIL

    def _fault(self, kind: FaultKind, message: str, offset: int | None = None) -> RuntimeFault:
        return RuntimeFault(kind, message, offset, filename=self.filename)

    # ── Program ──────────────────────────────────────────────────

    def execute(self, source: Source) -> Value:
        """Define fields and methods, then run main/0 and return its value."""
        root = ScopeArena.ROOT
        for fld in source.fields:
            value = self._evaluate(fld.value, root) if fld.value is not None else NIL
            self._bind(root, fld.name, value)
        for method in source.methods:
            self._define_method(method, root)

        main = self.scopes.lookup_function(root, "main", 0)
        if main is None:
            raise self._fault(FaultKind.MISSING_MAIN, "no main/0 method to run")
        result = main.invoke([])
        logger.debug("%s: main returned %s", self.filename, display(result))
        return result

    def _bind(self, scope: int, name: str, value: Value) -> None:
        # Redeclaring a name in the same scope replaces its cell
        self.scopes[scope].variables[name] = Variable(name, value)

    def _define_method(self, method: Method, scope: int) -> None:
        def invoke(arguments: list[Value]) -> Value:
            body = self.scopes.push(scope)
            try:
                for name, value in zip(method.parameters, arguments):
                    self._bind(body, name, value)
                outcome = self._execute_all(method.statements, body)
            finally:
                self.scopes.release(body)
            return outcome.value if outcome is not None else NIL

        arity = len(method.parameters)
        self.scopes[scope].functions[(method.name, arity)] = Function(
            method.name, arity, invoke,
        )

    # ── Statements ───────────────────────────────────────────────

    def _execute_all(self, statements: list[Stmt], scope: int) -> Returning | None:
        for stmt in statements:
            outcome = self._execute(stmt, scope)
            if outcome is not None:
                return outcome
        return None

    def _execute_block(self, statements: list[Stmt], parent: int) -> Returning | None:
        scope = self.scopes.push(parent)
        try:
            return self._execute_all(statements, scope)
        finally:
            self.scopes.release(scope)

    def _execute(self, stmt: Stmt, scope: int) -> Returning | None:
        match stmt:
            case ExprStmt(expr=expr):
                self._evaluate(expr, scope)

            case Declaration(name=name, value=value):
                self._bind(scope, name, self._evaluate(value, scope) if value is not None else NIL)

            case Assignment(receiver=AccessExpr() as target, value=value):
                self._assign(target, self._evaluate(value, scope), scope)

            case Assignment(receiver=receiver):
                raise self._fault(
                    FaultKind.INVALID_ASSIGNMENT_TARGET,
                    "assignment target must be a variable or field",
                    receiver.offset,
                )

            case IfStmt(condition=condition, then_statements=then, else_statements=orelse):
                if self._require_boolean(condition, scope):
                    return self._execute_block(then, scope)
                return self._execute_block(orelse, scope)

            case WhileStmt(condition=condition, statements=body):
                while self._require_boolean(condition, scope):
                    outcome = self._execute_block(body, scope)
                    if outcome is not None:
                        return outcome

            case ForStmt(name=name, value=value, statements=body):
                iterable = self._evaluate(value, scope)
                if not isinstance(iterable, SequenceValue):
                    raise self._fault(
                        FaultKind.TYPE_MISMATCH,
                        f"cannot iterate over {type_tag(iterable)}",
                        value.offset,
                    )
                for element in iterable.elements:
                    iteration = self.scopes.push(scope)
                    try:
                        self._bind(iteration, name, element)
                        outcome = self._execute_all(body, iteration)
                    finally:
                        self.scopes.release(iteration)
                    if outcome is not None:
                        return outcome

            case ReturnStmt(value=value):
                return Returning(self._evaluate(value, scope))

        return None

    def _assign(self, target: AccessExpr, value: Value, scope: int) -> None:
        if target.receiver is not None:
            cell = self._object(target.receiver, scope).get_field(target.name)
        else:
            cell = self.scopes.lookup_variable(scope, target.name)
        if cell is None:
            raise self._fault(
                FaultKind.UNDEFINED_BINDING,
                f"undefined variable '{target.name}'",
                target.offset,
            )
        cell.value = value

    def _require_boolean(self, expr: Expr, scope: int) -> bool:
        value = self._evaluate(expr, scope)
        if not isinstance(value, BooleanValue):
            raise self._fault(
                FaultKind.TYPE_MISMATCH,
                f"expected Boolean, found {type_tag(value)}",
                expr.offset,
            )
        return value.value

    def _object(self, expr: Expr, scope: int) -> ObjectValue:
        value = self._evaluate(expr, scope)
        if not isinstance(value, ObjectValue):
            raise self._fault(
                FaultKind.TYPE_MISMATCH,
                f"{type_tag(value)} has no members",
                expr.offset,
            )
        return value

    # ── Expressions ──────────────────────────────────────────────

    def _evaluate(self, expr: Expr, scope: int) -> Value:
        match expr:
            case NilLit():
                return NIL
            case BooleanLit(value=flag):
                return BooleanValue(flag)
            case IntegerLit(value=number):
                return IntegerValue(number)
            case DecimalLit(value=number):
                return DecimalValue(number)
            case CharLit(value=text):
                return CharacterValue(text)
            case StringLit(value=text):
                return StringValue(text)

            case Group(expr=inner):
                return self._evaluate(inner, scope)

            case BinaryExpr(op="OR", left=left, right=right):
                if self._evaluate(left, scope) == BooleanValue(True):
                    return BooleanValue(True)
                return BooleanValue(self._require_boolean(right, scope))

            case BinaryExpr(op=op, left=left, right=right):
                return self._binary(
                    op, self._evaluate(left, scope), self._evaluate(right, scope),
                    expr.offset,
                )

            case AccessExpr(receiver=None, name=name):
                variable = self.scopes.lookup_variable(scope, name)
                if variable is None:
                    raise self._fault(
                        FaultKind.UNDEFINED_BINDING,
                        f"undefined variable '{name}'", expr.offset,
                    )
                return variable.value

            case AccessExpr(receiver=receiver, name=name):
                cell = self._object(receiver, scope).get_field(name)
                if cell is None:
                    raise self._fault(
                        FaultKind.UNDEFINED_BINDING,
                        f"undefined field '{name}'", expr.offset,
                    )
                return cell.value

            case CallExpr(receiver=None, name=name, arguments=arguments):
                function = self.scopes.lookup_function(scope, name, len(arguments))
                if function is None:
                    raise self._fault(
                        FaultKind.UNDEFINED_BINDING,
                        f"undefined function '{name}/{len(arguments)}'", expr.offset,
                    )
                return function.invoke([self._evaluate(a, scope) for a in arguments])

            case CallExpr(receiver=receiver, name=name, arguments=arguments):
                obj = self._object(receiver, scope)
                method = obj.get_method(name, len(arguments))
                if method is None:
                    raise self._fault(
                        FaultKind.UNDEFINED_BINDING,
                        f"undefined method '{name}/{len(arguments)}'", expr.offset,
                    )
                return method.invoke([obj, *(self._evaluate(a, scope) for a in arguments)])

        raise self._fault(
            FaultKind.TYPE_MISMATCH,
            f"cannot evaluate {type(expr).__name__}", expr.offset,
        )

    def _binary(self, op: str, left: Value, right: Value, offset: int) -> Value:
        match op:
            case "==":
                return BooleanValue(left == right)
            case "!=":
                return BooleanValue(left != right)
            case "AND":
                if isinstance(left, BooleanValue) and isinstance(right, BooleanValue):
                    return BooleanValue(left.value and right.value)
            case "<" | "<=" | ">" | ">=":
                if type(left) is type(right) and isinstance(left, _ORDERED):
                    return BooleanValue(_compare(op, left.value, right.value))
            case "+":
                if isinstance(left, StringValue) or isinstance(right, StringValue):
                    return StringValue(display(left) + display(right))
                return self._arithmetic(op, left, right, offset)
            case "-" | "*" | "/":
                return self._arithmetic(op, left, right, offset)

        raise self._fault(
            FaultKind.TYPE_MISMATCH,
            f"operator '{op}' cannot be applied to "
            f"{type_tag(left)} and {type_tag(right)}",
            offset,
        )

    def _arithmetic(self, op: str, left: Value, right: Value, offset: int) -> Value:
        match (left, right):
            case (IntegerValue(value=a), IntegerValue(value=b)):
                if op == "/":
                    if b == 0:
                        raise self._fault(FaultKind.DIVISION_BY_ZERO, "division by zero", offset)
                    return IntegerValue(_truncating_divide(a, b))
                return IntegerValue(a + b if op == "+" else a - b if op == "-" else a * b)

            case (DecimalValue(value=a), DecimalValue(value=b)):
                match op:
                    case "+":
                        return DecimalValue(_EXACT.add(a, b))
                    case "-":
                        return DecimalValue(_EXACT.subtract(a, b))
                    case "*":
                        return DecimalValue(_EXACT.multiply(a, b))
                if b == 0:
                    raise self._fault(FaultKind.DIVISION_BY_ZERO, "division by zero", offset)
                return DecimalValue(decimal_divide(a, b))

        raise self._fault(
            FaultKind.TYPE_MISMATCH,
            f"operator '{op}' cannot be applied to "
            f"{type_tag(left)} and {type_tag(right)}",
            offset,
        )


def _compare(op: str, a, b) -> bool:
    match op:
        case "<":
            return a < b
        case "<=":
            return a <= b
        case ">":
            return a > b
    return a >= b
