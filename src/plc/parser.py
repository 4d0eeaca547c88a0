"""Parser for the Plc language.

Transforms a token stream into an AST by recursive descent. Keywords
arrive from the lexer as identifiers and are matched by literal. The
first grammar violation raises a ParseError; there is no recovery.
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
from plc.errors import ParseError
from plc.tokens import (
    ADDITIVE_OPERATORS,
    COMPARISON_OPERATORS,
    ESCAPES,
    KEYWORDS,
    LOGICAL_OPERATORS,
    MULTIPLICATIVE_OPERATORS,
    Token,
    TokenKind,
)

logger = logging.getLogger(__name__)

_UNESCAPES: dict[str, str] = {**ESCAPES, "\\": "\\"}


def unescape(text: str) -> str:
    """Decode backslash escapes in the body of a character or string literal."""
    out: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text) and text[i + 1] in _UNESCAPES:
            out.append(_UNESCAPES[text[i + 1]])
            i += 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


class Parser:
    """Parses a list of tokens into a Plc AST."""

    def __init__(self, tokens: list[Token], filename: str = "<stdin>") -> None:
        self.tokens = tokens
        self.pos = 0
        self.filename = filename

    # ── Token access ─────────────────────────────────────────────

    def _current(self) -> Token | None:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _at(self, *literals: str) -> bool:
        tok = self._current()
        return tok is not None and tok.literal in literals

    def _advance(self) -> Token:
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def _match(self, literal: str) -> Token | None:
        if self._at(literal):
            return self._advance()
        return None

    def _end_offset(self) -> int:
        return self.tokens[-1].end if self.tokens else 0

    def _error(self, expected: str) -> ParseError:
        tok = self._current()
        if tok is None:
            return ParseError(
                f"expected {expected}, found end of input",
                self._end_offset(), filename=self.filename,
            )
        return ParseError(
            f"expected {expected}, found {tok.literal!r}",
            tok.offset, filename=self.filename, length=len(tok.literal),
        )

    def _expect(self, literal: str, context: str = "") -> Token:
        tok = self._match(literal)
        if tok is None:
            where = f" {context}" if context else ""
            raise self._error(f"'{literal}'{where}")
        return tok

    def _expect_name(self, what: str) -> Token:
        tok = self._current()
        if (tok is None or tok.kind != TokenKind.IDENTIFIER
                or tok.literal in KEYWORDS):
            raise self._error(what)
        return self._advance()

    # ── Top-level parsing ────────────────────────────────────────

    def parse(self) -> Source:
        """Parse the entire token stream into a Source."""
        fields: list[Field] = []
        while self._at("LET"):
            fields.append(self._parse_field())

        methods: list[Method] = []
        while self._at("DEF"):
            methods.append(self._parse_method())

        if self._current() is not None:
            raise self._error("'DEF' or end of input")

        logger.debug(
            "%s: parsed %d fields and %d methods",
            self.filename, len(fields), len(methods),
        )
        return Source(fields, methods)

    def _parse_field(self) -> Field:
        start = self._advance()  # LET
        name, type_name, value = self._parse_declaration_body()
        self._expect(";", "after field declaration")
        return Field(name, type_name, value, offset=start.offset)

    def _parse_declaration_body(self) -> tuple[str, str | None, Expr | None]:
        name = self._expect_name("variable name").literal
        type_name = None
        if self._match(":"):
            type_name = self._expect_name("type name").literal
        value = None
        if self._match("="):
            value = self._parse_expression()
        return name, type_name, value

    def _parse_method(self) -> Method:
        start = self._advance()  # DEF
        name = self._expect_name("method name").literal
        self._expect("(", "after method name")

        parameters: list[str] = []
        parameter_type_names: list[str] = []
        if not self._match(")"):
            while True:
                parameters.append(self._expect_name("parameter name").literal)
                self._expect(":", "after parameter name")
                parameter_type_names.append(
                    self._expect_name("parameter type").literal
                )
                if not self._match(","):
                    break
            self._expect(")", "after parameters")

        return_type_name = None
        if self._match(":"):
            return_type_name = self._expect_name("return type").literal

        self._expect("DO", "before method body")
        statements = self._parse_block("END")
        self._expect("END", "after method body")
        return Method(
            name, parameters, parameter_type_names, return_type_name,
            statements, offset=start.offset,
        )

    # ── Statements ───────────────────────────────────────────────

    def _parse_block(self, *terminators: str) -> list[Stmt]:
        """Parse statements up to, but not including, a terminator keyword."""
        statements: list[Stmt] = []
        while not self._at(*terminators):
            if self._current() is None:
                raise self._error(" or ".join(f"'{t}'" for t in terminators))
            statements.append(self._parse_statement())
        return statements

    def _parse_statement(self) -> Stmt:
        tok = self._current()
        assert tok is not None
        match tok.literal:
            case "LET":
                return self._parse_declaration()
            case "IF":
                return self._parse_if()
            case "FOR":
                return self._parse_for()
            case "WHILE":
                return self._parse_while()
            case "RETURN":
                self._advance()
                value = self._parse_expression()
                self._expect(";", "after return value")
                return ReturnStmt(value, offset=tok.offset)

        expr = self._parse_expression()
        if self._match("="):
            value = self._parse_expression()
            self._expect(";", "after assignment")
            return Assignment(expr, value, offset=tok.offset)
        self._expect(";", "after expression")
        return ExprStmt(expr, offset=tok.offset)

    def _parse_declaration(self) -> Declaration:
        start = self._advance()  # LET
        name, type_name, value = self._parse_declaration_body()
        self._expect(";", "after declaration")
        return Declaration(name, type_name, value, offset=start.offset)

    def _parse_if(self) -> IfStmt:
        start = self._advance()  # IF
        condition = self._parse_expression()
        self._expect("DO", "after condition")
        then_statements = self._parse_block("ELSE", "END")
        else_statements: list[Stmt] = []
        if self._match("ELSE"):
            else_statements = self._parse_block("END")
        self._expect("END", "after if statement")
        return IfStmt(
            condition, then_statements, else_statements, offset=start.offset,
        )

    def _parse_for(self) -> ForStmt:
        start = self._advance()  # FOR
        name = self._expect_name("loop variable").literal
        self._expect("IN", "after loop variable")
        value = self._parse_expression()
        self._expect("DO", "after loop value")
        statements = self._parse_block("END")
        self._expect("END", "after loop body")
        return ForStmt(name, value, statements, offset=start.offset)

    def _parse_while(self) -> WhileStmt:
        start = self._advance()  # WHILE
        condition = self._parse_expression()
        self._expect("DO", "after condition")
        statements = self._parse_block("END")
        self._expect("END", "after loop body")
        return WhileStmt(condition, statements, offset=start.offset)

    # ── Expressions ──────────────────────────────────────────────

    def _parse_expression(self) -> Expr:
        return self._parse_binary(0)

    _LEVELS: tuple[frozenset[str], ...] = (
        LOGICAL_OPERATORS,
        COMPARISON_OPERATORS,
        ADDITIVE_OPERATORS,
        MULTIPLICATIVE_OPERATORS,
    )

    def _parse_binary(self, level: int) -> Expr:
        """Parse one left-associative precedence level."""
        if level == len(self._LEVELS):
            return self._parse_postfix()
        operators = self._LEVELS[level]
        left = self._parse_binary(level + 1)
        while True:
            tok = self._current()
            if tok is None or tok.literal not in operators:
                return left
            self._advance()
            right = self._parse_binary(level + 1)
            left = BinaryExpr(tok.literal, left, right, offset=left.offset)

    def _parse_postfix(self) -> Expr:
        expr = self._parse_primary()
        while self._match("."):
            name = self._expect_name("member name").literal
            if self._match("("):
                arguments = self._parse_arguments()
                expr = CallExpr(expr, name, arguments, offset=expr.offset)
            else:
                expr = AccessExpr(expr, name, offset=expr.offset)
        return expr

    def _parse_arguments(self) -> list[Expr]:
        """Parse call arguments after the opening parenthesis."""
        arguments: list[Expr] = []
        if self._match(")"):
            return arguments
        while True:
            arguments.append(self._parse_expression())
            if not self._match(","):
                break
        self._expect(")", "after arguments")
        return arguments

    def _parse_primary(self) -> Expr:
        tok = self._current()
        if tok is None:
            raise self._error("expression")

        match tok.kind:
            case TokenKind.INTEGER:
                self._advance()
                return IntegerLit(int(tok.literal), offset=tok.offset)
            case TokenKind.DECIMAL:
                self._advance()
                return DecimalLit(Decimal(tok.literal), offset=tok.offset)
            case TokenKind.CHARACTER:
                self._advance()
                return CharLit(unescape(tok.literal[1:-1]), offset=tok.offset)
            case TokenKind.STRING:
                self._advance()
                return StringLit(unescape(tok.literal[1:-1]), offset=tok.offset)
            case TokenKind.IDENTIFIER:
                return self._parse_name()

        if self._match("("):
            expr = self._parse_expression()
            self._expect(")", "to close group")
            return Group(expr, offset=tok.offset)

        raise self._error("expression")

    def _parse_name(self) -> Expr:
        tok = self._current()
        assert tok is not None
        match tok.literal:
            case "NIL":
                self._advance()
                return NilLit(offset=tok.offset)
            case "TRUE":
                self._advance()
                return BooleanLit(True, offset=tok.offset)
            case "FALSE":
                self._advance()
                return BooleanLit(False, offset=tok.offset)

        name = self._expect_name("expression").literal
        if self._match("("):
            arguments = self._parse_arguments()
            return CallExpr(None, name, arguments, offset=tok.offset)
        return AccessExpr(None, name, offset=tok.offset)
