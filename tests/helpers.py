"""Shared test helpers for the Plc test suite."""

from __future__ import annotations

import io

import pytest

from plc.analyzer import Analyzer
from plc.ast_nodes import Source
from plc.errors import AnalysisError, FaultKind, RuntimeFault
from plc.interpreter import Interpreter
from plc.lexer import Lexer
from plc.parser import Parser
from plc.types import INTEGER, INTEGER_ITERABLE
from plc.values import IntegerValue, SequenceValue, Value


def parse(source: str) -> Source:
    """Lex and parse source."""
    tokens = Lexer(source, "<test>").lex()
    return Parser(tokens, "<test>").parse()


def with_range(analyzer: Analyzer) -> Analyzer:
    """Register the host function range(Integer, Integer): IntegerIterable."""
    analyzer.define_function("range", [INTEGER, INTEGER], INTEGER_ITERABLE)
    return analyzer


def _range(arguments: list[Value]) -> Value:
    start, stop = arguments
    assert isinstance(start, IntegerValue) and isinstance(stop, IntegerValue)
    return SequenceValue(tuple(IntegerValue(i) for i in range(start.value, stop.value)))


def analyze(source: str, analyzer: Analyzer | None = None) -> Source:
    """Parse and analyze source, asserting no errors. Returns the tree."""
    analyzer = analyzer or with_range(Analyzer("<test>"))
    return analyzer.analyze(parse(source))


def analyze_fails(
    source: str, error_code: str, analyzer: Analyzer | None = None,
) -> AnalysisError:
    """Parse and analyze source, asserting the given error code is raised."""
    tree = parse(source)
    analyzer = analyzer or with_range(Analyzer("<test>"))
    with pytest.raises(AnalysisError) as info:
        analyzer.analyze(tree)
    assert info.value.code == error_code, (
        f"Expected error {error_code} but got {info.value.code}: {info.value.message}"
    )
    return info.value


def interpreter(out: io.StringIO | None = None) -> Interpreter:
    """Interpreter with the host range function registered."""
    interp = Interpreter(out, "<test>")
    interp.define_function("range", 2, _range)
    return interp


def execute(source: str, *, analyze_first: bool = True) -> tuple[Value, str]:
    """Run source, returning main's result and everything printed."""
    tree = analyze(source) if analyze_first else parse(source)
    out = io.StringIO()
    result = interpreter(out).execute(tree)
    return result, out.getvalue()


def execute_fails(
    source: str, kind: FaultKind, *, analyze_first: bool = True,
) -> RuntimeFault:
    """Run source, asserting a runtime fault of the given kind."""
    tree = analyze(source) if analyze_first else parse(source)
    with pytest.raises(RuntimeFault) as info:
        interpreter(io.StringIO()).execute(tree)
    assert info.value.kind == kind, (
        f"Expected {kind.name} but got {info.value.kind.name}: {info.value.message}"
    )
    return info.value


def main_returning(body: str, return_type: str = "Integer") -> str:
    """Wrap statements in a main method."""
    return f"DEF main(): {return_type} DO\n{body}\nEND\n"
