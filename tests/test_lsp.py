"""Tests for the Plc LSP server."""

from __future__ import annotations

from lsprotocol import types as lsp

from plc.errors import Severity
from plc.lsp import (
    _SEVERITY_MAP,
    DocumentState,
    _analyze,
    _get_word_at,
    _state,
    completion_items,
    document_symbols,
    format_edits,
    hover_text,
    offset_to_position,
    offset_to_range,
)
from plc.source import SourceFile

PROGRAM = (
    "LET count: Integer = 1;\n"
    "\n"
    "DEF add(a: Integer, b: Integer): Integer DO\n"
    "    RETURN a + b;\n"
    "END\n"
    "\n"
    "DEF main(): Integer DO\n"
    "    RETURN add(count, 2);\n"
    "END\n"
)


class TestOffsetConversion:
    def test_position_first_line(self):
        pos = offset_to_position(SourceFile("abc"), 2)
        assert (pos.line, pos.character) == (0, 2)

    def test_range_second_line(self):
        r = offset_to_range(SourceFile("ab\ncd"), 3, 5)
        assert (r.start.line, r.start.character) == (1, 0)
        assert (r.end.line, r.end.character) == (1, 2)

    def test_range_never_inverted(self):
        r = offset_to_range(SourceFile("abcdef"), 4, 2)
        assert r.start == r.end


class TestSeverityMap:
    def test_error_maps(self):
        assert _SEVERITY_MAP[Severity.ERROR] == lsp.DiagnosticSeverity.Error

    def test_warning_maps(self):
        assert _SEVERITY_MAP[Severity.WARNING] == lsp.DiagnosticSeverity.Warning

    def test_note_maps(self):
        assert _SEVERITY_MAP[Severity.NOTE] == lsp.DiagnosticSeverity.Information


class TestGetWordAt:
    def test_word_middle(self):
        assert _get_word_at("LET count = 1;", 0, 6) == "count"

    def test_word_end(self):
        assert _get_word_at("print", 0, 5) == "print"

    def test_word_start(self):
        assert _get_word_at("RETURN x;", 0, 0) == "RETURN"

    def test_second_line(self):
        assert _get_word_at("LET a = 1;\nLET b = 2;", 1, 4) == "b"

    def test_dash_is_part_of_name(self):
        assert _get_word_at("LET my-var = 1;", 0, 6) == "my-var"

    def test_empty(self):
        assert _get_word_at("", 0, 0) == ""

    def test_out_of_range(self):
        assert _get_word_at("abc", 5, 0) == ""


class TestAnalyze:
    def test_analyze_valid_source(self):
        ds = _analyze("file:///valid.plc", PROGRAM)
        assert ds.diagnostics == []
        assert ds.tree is not None
        assert len(ds.tokens) > 0
        assert ds.analyzer is not None

    def test_analyze_with_errors(self):
        ds = _analyze("file:///nomain.plc", "LET x: Integer = 1;\nDEF helper() DO END\n")
        assert len(ds.diagnostics) == 1
        diag = ds.diagnostics[0]
        assert diag.code == "E330"
        assert diag.source == "plc"
        assert diag.severity == lsp.DiagnosticSeverity.Error
        # Root symbols survive a failed analysis
        assert hover_text(ds, "x") == "**field** `x: Integer`"

    def test_analyze_parse_error_range(self):
        ds = _analyze("file:///bad.plc", "LET x = 1;\nLET y = ;")
        assert ds.tree is None
        diag = ds.diagnostics[0]
        assert diag.code == "E200"
        assert (diag.range.start.line, diag.range.start.character) == (1, 8)

    def test_analyze_lex_error(self):
        ds = _analyze("file:///lex.plc", 'LET s = "open')
        assert ds.tokens == []
        assert ds.diagnostics[0].code == "E100"

    def test_analyze_caches_state(self):
        uri = "file:///cached.plc"
        ds = _analyze(uri, PROGRAM)
        assert _state[uri] is ds


class TestDocumentState:
    def test_default_state(self):
        ds = DocumentState()
        assert ds.source == ""
        assert ds.tokens == []
        assert ds.tree is None
        assert ds.analyzer is None
        assert ds.diagnostics == []


class TestHover:
    def test_field(self):
        ds = _analyze("file:///hover.plc", PROGRAM)
        assert hover_text(ds, "count") == "**field** `count: Integer`"

    def test_method(self):
        ds = _analyze("file:///hover.plc", PROGRAM)
        assert hover_text(ds, "add") == "**method** `add(Integer, Integer): Integer`"

    def test_builtin_function(self):
        ds = _analyze("file:///hover.plc", PROGRAM)
        assert hover_text(ds, "print") == "**method** `print(Any): Nil`"

    def test_type(self):
        ds = _analyze("file:///hover.plc", PROGRAM)
        assert hover_text(ds, "Decimal") == "**type** `Decimal`"

    def test_unknown(self):
        ds = _analyze("file:///hover.plc", PROGRAM)
        assert hover_text(ds, "nothing") is None
        assert hover_text(DocumentState(), "count") is None


class TestCompletion:
    def test_keywords_without_document(self):
        labels = [item.label for item in completion_items(None)]
        assert "LET" in labels
        assert "WHILE" in labels
        assert "count" not in labels

    def test_document_symbols_offered(self):
        ds = _analyze("file:///complete.plc", PROGRAM)
        items = {item.label: item for item in completion_items(ds)}
        assert items["count"].kind == lsp.CompletionItemKind.Variable
        assert items["count"].detail == "Integer"
        assert items["add"].kind == lsp.CompletionItemKind.Function
        assert items["main"].detail == "main(): Integer"
        assert items["String"].kind == lsp.CompletionItemKind.Class

    def test_no_duplicate_labels(self):
        ds = _analyze("file:///complete.plc", PROGRAM)
        labels = [item.label for item in completion_items(ds)]
        assert len(labels) == len(set(labels))


class TestDocumentSymbols:
    def test_fields_and_methods(self):
        ds = _analyze("file:///symbols.plc", PROGRAM)
        symbols = document_symbols(ds)
        assert [(s.name, s.kind) for s in symbols] == [
            ("count", lsp.SymbolKind.Field),
            ("add", lsp.SymbolKind.Method),
            ("main", lsp.SymbolKind.Method),
        ]
        assert symbols[0].detail == "Integer"
        assert symbols[1].detail == "(a: Integer, b: Integer)"
        assert symbols[1].range.start.line == 2

    def test_no_tree(self):
        assert document_symbols(DocumentState()) == []


class TestFormatting:
    def test_already_formatted(self):
        ds = _analyze("file:///fmt.plc", PROGRAM)
        assert format_edits(ds) is None

    def test_whole_document_edit(self):
        ds = _analyze("file:///fmt.plc", "LET x=1;")
        edits = format_edits(ds)
        assert edits is not None and len(edits) == 1
        assert edits[0].new_text == "LET x = 1;\n"
        assert edits[0].range.start == lsp.Position(line=0, character=0)

    def test_unparsable_document(self):
        ds = _analyze("file:///fmt.plc", "LET x = ;")
        assert format_edits(ds) is None
