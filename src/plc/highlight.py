"""Pygments lexer for the Plc language."""

from pygments.lexer import RegexLexer, words
from pygments.token import (
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
)


class PlcLexer(RegexLexer):
    """Pygments lexer for the Plc language."""

    name = "Plc"
    aliases = ["plc"]
    filenames = ["*.plc"]
    mimetypes = ["text/x-plc"]

    tokens = {
        "root": [
            # Whitespace (backspace separates tokens too)
            (r"[\s\x08]+", Text),
            # Strings and characters
            (r'"', String, "string"),
            (r"'(\\[bfnrt'\"]|[^'\\])'", String.Char),
            # Numbers (a sign binds to the digits that follow it)
            (r"[+-]?[0-9]+\.[0-9]+", Number.Float),
            (r"[+-]?[0-9]+", Number.Integer),
            # Declaration keywords
            (words(("LET", "DEF"), suffix=r"\b"), Keyword.Declaration),
            # Literal words
            (words(("NIL", "TRUE", "FALSE"), suffix=r"\b"), Keyword.Constant),
            # Word operators
            (words(("AND", "OR"), suffix=r"\b"), Operator.Word),
            # Block keywords
            (
                words(
                    ("DO", "END", "IF", "ELSE", "FOR", "IN", "WHILE", "RETURN"),
                    suffix=r"\b",
                ),
                Keyword,
            ),
            # Built-in types
            (
                words(
                    (
                        "Nil", "Boolean", "Integer", "Decimal", "Character",
                        "String", "Comparable", "Any", "IntegerIterable",
                    ),
                    suffix=r"\b",
                ),
                Keyword.Type,
            ),
            (r"print\b", Name.Builtin),
            # Identifiers may contain '-'
            (r"[A-Za-z_][A-Za-z0-9_-]*", Name),
            # Operators (multi-char before single-char)
            (r"==|!=|<=|>=", Operator),
            (r"[+\-*/<>=.]", Operator),
            (r"[(),;:]", Punctuation),
            # Anything else is a single-character operator to the lexer
            (r".", Operator),
        ],
        # String state handles escape sequences
        "string": [
            (r"\\[bfnrt'\"]", String.Escape),
            (r'[^"\\]+', String),
            (r'"', String, "#pop"),
        ],
    }
