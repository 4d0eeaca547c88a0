"""Runtime values and bindings for the Plc interpreter."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Union


@dataclass(frozen=True)
class NilValue:
    pass


@dataclass(frozen=True)
class BooleanValue:
    value: bool


@dataclass(frozen=True)
class IntegerValue:
    value: int


@dataclass(frozen=True)
class DecimalValue:
    value: Decimal


@dataclass(frozen=True)
class CharacterValue:
    value: str


@dataclass(frozen=True)
class StringValue:
    value: str


@dataclass(frozen=True)
class SequenceValue:
    """An ordered, immutable collection; the only thing FOR can iterate."""

    elements: tuple[Value, ...] = ()


@dataclass(frozen=True)
class FunctionValue:
    function: Function


@dataclass(eq=False)
class ObjectValue:
    """A host-provided object owning its field cells and methods.

    Methods receive the object itself as their first argument.
    """

    type_name: str
    fields: dict[str, Variable] = field(default_factory=dict)
    methods: dict[tuple[str, int], Function] = field(default_factory=dict)

    def define_field(self, name: str, value: Value) -> Variable:
        variable = Variable(name, value)
        self.fields[name] = variable
        return variable

    def define_method(
        self, name: str, arity: int, invoke: Callable[[list[Value]], Value],
    ) -> Function:
        """Register a method taking ``arity`` arguments besides the receiver."""
        function = Function(name, arity, invoke)
        self.methods[(name, arity)] = function
        return function

    def get_field(self, name: str) -> Variable | None:
        return self.fields.get(name)

    def get_method(self, name: str, arity: int) -> Function | None:
        return self.methods.get((name, arity))


Value = Union[
    NilValue, BooleanValue, IntegerValue, DecimalValue, CharacterValue,
    StringValue, SequenceValue, FunctionValue, ObjectValue,
]

NIL = NilValue()
TRUE = BooleanValue(True)
FALSE = BooleanValue(False)


# ── Bindings ─────────────────────────────────────────────────────


@dataclass(eq=False)
class Variable:
    """A mutable cell holding the current value of a name."""

    name: str
    value: Value


@dataclass(eq=False)
class Function:
    name: str
    arity: int
    invoke: Callable[[list[Value]], Value]


# ── Helpers ──────────────────────────────────────────────────────


def display(value: Value) -> str:
    """Textual form used by print and string concatenation."""
    match value:
        case NilValue():
            return "nil"
        case BooleanValue(value=flag):
            return "true" if flag else "false"
        case IntegerValue(value=number) | DecimalValue(value=number):
            return str(number)
        case CharacterValue(value=text) | StringValue(value=text):
            return text
        case SequenceValue(elements=elements):
            return "[" + ", ".join(display(e) for e in elements) + "]"
        case FunctionValue(function=function):
            return f"<function {function.name}/{function.arity}>"
        case ObjectValue(type_name=name):
            return f"<{name} object>"
    raise TypeError(f"not a runtime value: {value!r}")


def type_tag(value: Value) -> str:
    """Name of the runtime tag, for fault messages."""
    match value:
        case NilValue():
            return "Nil"
        case BooleanValue():
            return "Boolean"
        case IntegerValue():
            return "Integer"
        case DecimalValue():
            return "Decimal"
        case CharacterValue():
            return "Character"
        case StringValue():
            return "String"
        case SequenceValue():
            return "Sequence"
        case FunctionValue():
            return "Function"
        case ObjectValue(type_name=name):
            return name
    raise TypeError(f"not a runtime value: {value!r}")
