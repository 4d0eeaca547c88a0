"""Token kinds and token representation for the Plc lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class TokenKind(Enum):
    IDENTIFIER = auto()
    INTEGER = auto()
    DECIMAL = auto()
    CHARACTER = auto()
    STRING = auto()
    OPERATOR = auto()


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    literal: str
    offset: int

    @property
    def end(self) -> int:
        return self.offset + len(self.literal)


# Keywords are lexed as identifiers; the parser matches them by literal.
KEYWORDS: frozenset[str] = frozenset({
    "LET", "DEF", "DO", "END",
    "IF", "ELSE", "FOR", "IN", "WHILE", "RETURN",
    "AND", "OR",
    "NIL", "TRUE", "FALSE",
})

LOGICAL_OPERATORS: frozenset[str] = frozenset({"AND", "OR"})
COMPARISON_OPERATORS: frozenset[str] = frozenset({"==", "!=", "<", "<=", ">", ">="})
ADDITIVE_OPERATORS: frozenset[str] = frozenset({"+", "-"})
MULTIPLICATIVE_OPERATORS: frozenset[str] = frozenset({"*", "/"})

WHITESPACE: frozenset[str] = frozenset({" ", "\t", "\r", "\n", "\b"})

# Escape letters accepted after a backslash in character and string literals
ESCAPES: dict[str, str] = {
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "'": "'",
    '"': '"',
}
