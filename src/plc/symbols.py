"""Scopes and resolved bindings shared by the analyzer and interpreter.

Scopes live in an arena and refer to their parent by index. A pass
carries the index of its current scope explicitly; entering a block
pushes a child scope and leaving it releases that scope again, so the
arena always behaves like a stack rooted at the program scope.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from plc.types import Type

V = TypeVar("V")
F = TypeVar("F")


# ── Static bindings (analyzer) ───────────────────────────────────


@dataclass(eq=False)
class VariableSymbol:
    name: str
    type: Type
    offset: int | None = None


@dataclass(eq=False)
class FunctionSymbol:
    name: str
    parameter_types: list[Type]
    return_type: Type
    offset: int | None = None

    @property
    def arity(self) -> int:
        return len(self.parameter_types)


# ── Scopes ───────────────────────────────────────────────────────


@dataclass
class Scope(Generic[V, F]):
    """A single lexical namespace."""

    parent: int | None = None
    variables: dict[str, V] = field(default_factory=dict)
    functions: dict[tuple[str, int], F] = field(default_factory=dict)

    def define_variable(self, name: str, value: V) -> V | None:
        """Define a variable here. Returns the existing one if duplicate."""
        existing = self.variables.get(name)
        if existing is not None:
            return existing
        self.variables[name] = value
        return None

    def define_function(self, name: str, arity: int, fn: F) -> F | None:
        """Define a function here. Returns the existing one if duplicate."""
        existing = self.functions.get((name, arity))
        if existing is not None:
            return existing
        self.functions[(name, arity)] = fn
        return None


class ScopeArena(Generic[V, F]):
    """Owns every live scope of one pass; index 0 is the program scope."""

    ROOT = 0

    def __init__(self) -> None:
        self._scopes: list[Scope[V, F]] = [Scope()]

    def __len__(self) -> int:
        return len(self._scopes)

    def __getitem__(self, index: int) -> Scope[V, F]:
        return self._scopes[index]

    def push(self, parent: int) -> int:
        """Create a child scope of ``parent`` and return its index."""
        self._scopes.append(Scope(parent=parent))
        return len(self._scopes) - 1

    def release(self, index: int) -> None:
        """Destroy scope ``index`` together with any scope created after it."""
        if index <= self.ROOT:
            raise RuntimeError("cannot release the program scope")
        del self._scopes[index:]

    def define_variable(self, scope: int, name: str, value: V) -> V | None:
        return self._scopes[scope].define_variable(name, value)

    def define_function(self, scope: int, name: str, arity: int, fn: F) -> F | None:
        return self._scopes[scope].define_function(name, arity, fn)

    def lookup_variable(self, scope: int, name: str) -> V | None:
        """Look up a name in ``scope`` and all of its parents."""
        index: int | None = scope
        while index is not None:
            current = self._scopes[index]
            value = current.variables.get(name)
            if value is not None:
                return value
            index = current.parent
        return None

    def lookup_function(self, scope: int, name: str, arity: int) -> F | None:
        """Look up a (name, arity) pair in ``scope`` and all of its parents."""
        index: int | None = scope
        while index is not None:
            current = self._scopes[index]
            fn = current.functions.get((name, arity))
            if fn is not None:
                return fn
            index = current.parent
        return None
