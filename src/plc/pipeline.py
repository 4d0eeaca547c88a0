"""Convenience functions chaining the Plc stages for hosts."""

from __future__ import annotations

from typing import TextIO

from plc.analyzer import Analyzer
from plc.ast_nodes import Source
from plc.interpreter import Interpreter
from plc.lexer import Lexer
from plc.parser import Parser
from plc.values import Value


def parse_source(text: str, filename: str = "<stdin>") -> Source:
    """Lex and parse ``text``."""
    tokens = Lexer(text, filename).lex()
    return Parser(tokens, filename).parse()


def check_source(text: str, filename: str = "<stdin>") -> Source:
    """Lex, parse and analyze ``text``; returns the annotated tree."""
    return Analyzer(filename).analyze(parse_source(text, filename))


def run_source(
    text: str,
    out: TextIO | None = None,
    analyze: bool = True,
    filename: str = "<stdin>",
) -> Value:
    """Run ``text`` through every stage and return main's result."""
    source = check_source(text, filename) if analyze else parse_source(text, filename)
    return Interpreter(out, filename).execute(source)
