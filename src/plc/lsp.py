"""Plc Language Server: pygls-based LSP for .plc files.

Provides diagnostics, hover, completion, document symbols and
formatting via stdio transport.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from lsprotocol import types as lsp
from pygls.lsp.server import LanguageServer

from plc import __version__
from plc.analyzer import Analyzer
from plc.ast_nodes import Source
from plc.errors import PlcError, Severity
from plc.formatter import PlcFormatter
from plc.lexer import Lexer
from plc.parser import Parser
from plc.source import SourceFile
from plc.symbols import FunctionSymbol, ScopeArena
from plc.tokens import KEYWORDS, Token

# ── Conversion helpers ────────────────────────────────────────────

_SEVERITY_MAP = {
    Severity.ERROR: lsp.DiagnosticSeverity.Error,
    Severity.WARNING: lsp.DiagnosticSeverity.Warning,
    Severity.NOTE: lsp.DiagnosticSeverity.Information,
}

_KEYWORD_COMPLETIONS = sorted(KEYWORDS)


def offset_to_position(source: SourceFile, offset: int) -> lsp.Position:
    """Convert a 0-indexed character offset to a 0-indexed LSP Position."""
    line, col = source.location(offset)
    return lsp.Position(line=line - 1, character=col - 1)


def offset_to_range(source: SourceFile, start: int, end: int) -> lsp.Range:
    return lsp.Range(
        start=offset_to_position(source, start),
        end=offset_to_position(source, max(start, end)),
    )


def _signature_display(symbol: FunctionSymbol) -> str:
    params = ", ".join(t.name for t in symbol.parameter_types)
    return f"{symbol.name}({params}): {symbol.return_type.name}"


# ── Per-document state ────────────────────────────────────────────


@dataclass
class DocumentState:
    """Cached analysis results for a single open document."""

    source: str = ""
    tokens: list[Token] = field(default_factory=list)
    tree: Source | None = None
    analyzer: Analyzer | None = None
    diagnostics: list[lsp.Diagnostic] = field(default_factory=list)


# ── Server ────────────────────────────────────────────────────────

server = LanguageServer(
    "plc-lsp", __version__,
    text_document_sync_kind=lsp.TextDocumentSyncKind.Full,
)
_state: dict[str, DocumentState] = {}


def _error_diag(error: PlcError, source: SourceFile) -> lsp.Diagnostic:
    """Convert a stage error to an LSP Diagnostic."""
    diag = error.diagnostic
    span_range = lsp.Range(start=lsp.Position(0, 0), end=lsp.Position(0, 0))
    if diag.labels:
        span = diag.labels[0].span
        span_range = offset_to_range(source, span.start, span.end)
    return lsp.Diagnostic(
        range=span_range,
        severity=_SEVERITY_MAP.get(diag.severity, lsp.DiagnosticSeverity.Error),
        source="plc",
        code=diag.code,
        message=f"[{diag.code}] {diag.message}",
    )


def _analyze(uri: str, text: str) -> DocumentState:
    """Run Lexer → Parser → Analyzer, cache results, return state."""
    ds = DocumentState(source=text)
    source = SourceFile(text, uri)
    _state[uri] = ds

    try:
        ds.tokens = Lexer(text, uri).lex()
        ds.tree = Parser(ds.tokens, uri).parse()
        # Root scope symbols stay available even if analysis fails midway
        ds.analyzer = Analyzer(uri)
        ds.analyzer.analyze(ds.tree)
    except PlcError as e:
        ds.diagnostics = [_error_diag(e, source)]
    return ds


def _get_word_at(source: str, line: int, character: int) -> str:
    """Extract the word at the given 0-indexed position."""
    lines = source.splitlines()
    if line < 0 or line >= len(lines):
        return ""
    text = lines[line]
    if character < 0 or character >= len(text):
        # Try character-1 in case cursor is right after the word
        if character > 0 and character <= len(text):
            character -= 1
        else:
            return ""

    def is_word(ch: str) -> bool:
        return ch.isalnum() or ch in "_-"

    start = character
    while start > 0 and is_word(text[start - 1]):
        start -= 1
    end = character
    while end < len(text) and is_word(text[end]):
        end += 1
    return text[start:end]


def _publish(uri: str, ds: DocumentState) -> None:
    server.text_document_publish_diagnostics(lsp.PublishDiagnosticsParams(
        uri=uri,
        diagnostics=ds.diagnostics,
    ))


# ── LSP Feature Handlers ─────────────────────────────────────────


@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: lsp.DidOpenTextDocumentParams) -> None:
    uri = params.text_document.uri
    _publish(uri, _analyze(uri, params.text_document.text))


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: lsp.DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    # Full sync: take the last content change
    text = params.content_changes[-1].text if params.content_changes else ""
    _publish(uri, _analyze(uri, text))


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    _state.pop(params.text_document.uri, None)


def hover_text(ds: DocumentState, word: str) -> str | None:
    """Markdown hover content for a top-level name, if it is known."""
    if ds.analyzer is None or not word:
        return None
    root = ds.analyzer.scopes[ScopeArena.ROOT]

    variable = root.variables.get(word)
    if variable is not None:
        return f"**field** `{variable.name}: {variable.type.name}`"

    signatures = [
        _signature_display(fn)
        for (name, _arity), fn in sorted(root.functions.items())
        if name == word
    ]
    if signatures:
        return "\n\n".join(f"**method** `{s}`" for s in signatures)

    ty = ds.analyzer.registry.resolve(word)
    if ty is not None:
        return f"**type** `{ty.name}`"
    return None


@server.feature(lsp.TEXT_DOCUMENT_HOVER)
def hover(params: lsp.HoverParams) -> lsp.Hover | None:
    ds = _state.get(params.text_document.uri)
    if ds is None:
        return None
    word = _get_word_at(ds.source, params.position.line, params.position.character)
    content = hover_text(ds, word)
    if content is None:
        return None
    return lsp.Hover(contents=lsp.MarkupContent(
        kind=lsp.MarkupKind.Markdown,
        value=content,
    ))


def completion_items(ds: DocumentState | None) -> list[lsp.CompletionItem]:
    items: list[lsp.CompletionItem] = [
        lsp.CompletionItem(label=kw, kind=lsp.CompletionItemKind.Keyword)
        for kw in _KEYWORD_COMPLETIONS
    ]

    if ds is not None and ds.analyzer is not None:
        root = ds.analyzer.scopes[ScopeArena.ROOT]
        for name, variable in sorted(root.variables.items()):
            items.append(lsp.CompletionItem(
                label=name,
                kind=lsp.CompletionItemKind.Variable,
                detail=variable.type.name,
            ))
        for (name, _arity), fn in sorted(root.functions.items()):
            items.append(lsp.CompletionItem(
                label=name,
                kind=lsp.CompletionItemKind.Function,
                detail=_signature_display(fn),
            ))
        for name in ds.analyzer.registry.names():
            items.append(lsp.CompletionItem(
                label=name,
                kind=lsp.CompletionItemKind.Class,
            ))

    # Deduplicate by label
    seen: set[str] = set()
    unique: list[lsp.CompletionItem] = []
    for item in items:
        if item.label not in seen:
            seen.add(item.label)
            unique.append(item)
    return unique


@server.feature(
    lsp.TEXT_DOCUMENT_COMPLETION,
    lsp.CompletionOptions(trigger_characters=["."]),
)
def completion(params: lsp.CompletionParams) -> lsp.CompletionList:
    ds = _state.get(params.text_document.uri)
    return lsp.CompletionList(is_incomplete=False, items=completion_items(ds))


def document_symbols(ds: DocumentState) -> list[lsp.DocumentSymbol]:
    if ds.tree is None:
        return []
    source = SourceFile(ds.source)
    symbols: list[lsp.DocumentSymbol] = []

    for fld in ds.tree.fields:
        rng = offset_to_range(source, fld.offset, fld.offset + len("LET"))
        symbols.append(lsp.DocumentSymbol(
            name=fld.name,
            kind=lsp.SymbolKind.Field,
            range=rng,
            selection_range=rng,
            detail=fld.type_name,
        ))

    for method in ds.tree.methods:
        rng = offset_to_range(source, method.offset, method.offset + len("DEF"))
        params_str = ", ".join(
            f"{n}: {t}"
            for n, t in zip(method.parameters, method.parameter_type_names)
        )
        symbols.append(lsp.DocumentSymbol(
            name=method.name,
            kind=lsp.SymbolKind.Method,
            range=rng,
            selection_range=rng,
            detail=f"({params_str})",
        ))

    return symbols


@server.feature(lsp.TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(params: lsp.DocumentSymbolParams) -> list[lsp.DocumentSymbol]:
    ds = _state.get(params.text_document.uri)
    if ds is None:
        return []
    return document_symbols(ds)


def format_edits(ds: DocumentState) -> list[lsp.TextEdit] | None:
    if ds.tree is None:
        return None

    formatted = PlcFormatter().format(ds.tree)
    if formatted == ds.source:
        return None

    # Replace entire document
    lines = ds.source.splitlines()
    end_line = len(lines)
    end_char = len(lines[-1]) if lines else 0

    return [lsp.TextEdit(
        range=lsp.Range(
            start=lsp.Position(0, 0),
            end=lsp.Position(end_line, end_char),
        ),
        new_text=formatted,
    )]


@server.feature(lsp.TEXT_DOCUMENT_FORMATTING)
def formatting(params: lsp.DocumentFormattingParams) -> list[lsp.TextEdit] | None:
    ds = _state.get(params.text_document.uri)
    if ds is None:
        return None
    return format_edits(ds)


# ── Entry point ──────────────────────────────────────────────────


def main() -> None:
    """Start the Plc language server on stdio."""
    server.start_io()
