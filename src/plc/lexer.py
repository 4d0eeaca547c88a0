"""Lexer for the Plc language.

Produces a list of tokens from source text. Whitespace separates tokens
and is dropped. The first invalid character aborts lexing with a
LexError pointing at it.
"""

from __future__ import annotations

import logging

from plc.errors import LexError
from plc.tokens import ESCAPES, WHITESPACE, Token, TokenKind

logger = logging.getLogger(__name__)

_TWO_CHAR_OPERATORS = ("<=", ">=", "!=", "==")


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


class Lexer:
    """Tokenizes Plc source code."""

    def __init__(self, source: str, filename: str = "<stdin>") -> None:
        self.source = source
        self.filename = filename
        self.pos = 0
        self.tokens: list[Token] = []

    def lex(self) -> list[Token]:
        """Tokenize the entire source and return the token list."""
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch in WHITESPACE:
                self.pos += 1
            elif ch.isalpha() or ch == "_":
                self._lex_identifier()
            elif _is_digit(ch) or ch in "+-":
                self._lex_number()
            elif ch == "'":
                self._lex_character()
            elif ch == '"':
                self._lex_string()
            else:
                self._lex_operator()
        logger.debug("%s: lexed %d tokens", self.filename, len(self.tokens))
        return self.tokens

    # ── Helpers ───────────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return "\0"

    def _has(self, offset: int = 0) -> bool:
        return self.pos + offset < len(self.source)

    def _emit(self, kind: TokenKind, start: int) -> Token:
        tok = Token(kind, self.source[start:self.pos], start)
        self.tokens.append(tok)
        return tok

    def _error(self, message: str, offset: int) -> LexError:
        return LexError(message, offset, filename=self.filename)

    # ── Identifiers ──────────────────────────────────────────────

    def _lex_identifier(self) -> None:
        start = self.pos
        self.pos += 1
        while self._has():
            ch = self.source[self.pos]
            if not (ch.isalpha() or _is_digit(ch) or ch in "_-"):
                break
            self.pos += 1
        self._emit(TokenKind.IDENTIFIER, start)

    # ── Numbers ──────────────────────────────────────────────────

    def _lex_number(self) -> None:
        start = self.pos
        if self.source[self.pos] in "+-":
            self.pos += 1
            if not (self._has() and _is_digit(self._peek())):
                # A sign without digits is an operator
                self._emit(TokenKind.OPERATOR, start)
                return

        while self._has() and _is_digit(self._peek()):
            self.pos += 1

        if self._peek() != ".":
            self._emit(TokenKind.INTEGER, start)
            return

        self.pos += 1  # .
        if not (self._has() and _is_digit(self._peek())):
            raise self._error("invalid decimal: expected a digit after '.'", self.pos)
        while self._has() and _is_digit(self._peek()):
            self.pos += 1
        self._emit(TokenKind.DECIMAL, start)

    # ── Characters and strings ───────────────────────────────────

    def _lex_escape(self) -> None:
        self.pos += 1  # skip backslash
        if not self._has():
            raise self._error("unterminated escape sequence", self.pos)
        if self._peek() not in ESCAPES:
            raise self._error(f"invalid escape sequence: \\{self._peek()}", self.pos)
        self.pos += 1

    def _lex_character(self) -> None:
        start = self.pos
        self.pos += 1  # skip opening '
        if not self._has():
            raise self._error("unterminated character literal", self.pos)
        if self._peek() == "\\":
            self._lex_escape()
        elif self._peek() == "'":
            raise self._error("empty character literal", self.pos)
        else:
            self.pos += 1
        if not self._has() or self._peek() != "'":
            raise self._error("unterminated character literal", self.pos)
        self.pos += 1  # skip closing '
        self._emit(TokenKind.CHARACTER, start)

    def _lex_string(self) -> None:
        start = self.pos
        self.pos += 1  # skip opening "
        while self._has() and self._peek() != '"':
            if self._peek() == "\\":
                self._lex_escape()
            else:
                self.pos += 1
        if not self._has():
            raise self._error("unterminated string literal", self.pos)
        self.pos += 1  # skip closing "
        self._emit(TokenKind.STRING, start)

    # ── Operators ────────────────────────────────────────────────

    def _lex_operator(self) -> None:
        start = self.pos
        if self.source[self.pos:self.pos + 2] in _TWO_CHAR_OPERATORS:
            self.pos += 2
        else:
            self.pos += 1
        self._emit(TokenKind.OPERATOR, start)
