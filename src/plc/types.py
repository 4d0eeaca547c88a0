"""Static types for the Plc analyzer.

Types are nominal: two types are the same only if they are the same
object. Each type owns a member scope describing its fields and methods,
which the analyzer switches to when resolving ``receiver.name``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from plc.symbols import FunctionSymbol, Scope, VariableSymbol


@dataclass(eq=False)
class Type:
    name: str
    comparable: bool = False
    scope: Scope[VariableSymbol, FunctionSymbol] = field(default_factory=Scope)

    def __repr__(self) -> str:
        return f"Type({self.name})"

    def define_field(self, name: str, field_type: Type) -> VariableSymbol:
        symbol = VariableSymbol(name, field_type)
        self.scope.variables[name] = symbol
        return symbol

    def define_method(
        self, name: str, parameter_types: list[Type], return_type: Type,
    ) -> FunctionSymbol:
        """Register a method; ``parameter_types`` excludes the receiver."""
        symbol = FunctionSymbol(name, list(parameter_types), return_type)
        self.scope.functions[(name, len(parameter_types))] = symbol
        return symbol

    def lookup_field(self, name: str) -> VariableSymbol | None:
        return self.scope.variables.get(name)

    def lookup_method(self, name: str, arity: int) -> FunctionSymbol | None:
        return self.scope.functions.get((name, arity))


# ── Built-in types ───────────────────────────────────────────────

NIL = Type("Nil")
BOOLEAN = Type("Boolean", comparable=True)
INTEGER = Type("Integer", comparable=True)
DECIMAL = Type("Decimal", comparable=True)
CHARACTER = Type("Character", comparable=True)
STRING = Type("String", comparable=True)
COMPARABLE = Type("Comparable", comparable=True)
ANY = Type("Any")
INTEGER_ITERABLE = Type("IntegerIterable")

BUILTINS: dict[str, Type] = {
    ty.name: ty
    for ty in (
        NIL, BOOLEAN, INTEGER, DECIMAL, CHARACTER, STRING,
        COMPARABLE, ANY, INTEGER_ITERABLE,
    )
}


class TypeRegistry:
    """Named types visible to one analysis."""

    def __init__(self) -> None:
        self._types: dict[str, Type] = dict(BUILTINS)

    def register(self, ty: Type) -> Type:
        if ty.name in self._types:
            raise ValueError(f"type '{ty.name}' is already registered")
        self._types[ty.name] = ty
        return ty

    def resolve(self, name: str) -> Type | None:
        return self._types.get(name)

    def names(self) -> list[str]:
        return sorted(self._types)


# ── Type utilities ──────────────────────────────────────────────


def is_numeric(ty: Type) -> bool:
    return ty is INTEGER or ty is DECIMAL


def is_assignable(target: Type, source: Type) -> bool:
    """Nominal assignability: identity, Any, or Comparable for comparables."""
    if target is source or target is ANY:
        return True
    if target is COMPARABLE:
        return source.comparable
    return False


def type_name(ty: Type | None) -> str:
    """Human-readable name for diagnostics."""
    return "<unresolved>" if ty is None else ty.name
