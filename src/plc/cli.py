"""Plc command line interface."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from plc import __version__
from plc.config import PlcConfig, config_for
from plc.errors import DiagnosticRenderer, PlcError
from plc.lexer import Lexer
from plc.pipeline import check_source, parse_source, run_source
from plc.project import scaffold
from plc.source import SourceFile
from plc.values import IntegerValue

# Annotation fields hidden from `plc view` unless --types is given
_ANNOTATIONS = frozenset({"resolved_type", "variable", "function"})


def _renderer(config: PlcConfig, text: str, filename: str) -> DiagnosticRenderer:
    renderer = DiagnosticRenderer(color=config.diagnostics.color)
    renderer.register(SourceFile(text, filename))
    return renderer


def _report(error: PlcError, renderer: DiagnosticRenderer) -> None:
    click.echo(renderer.render(error.diagnostic), err=True)


def _plc_files(target: Path) -> list[Path]:
    if target.is_dir():
        return sorted(target.rglob("*.plc"))
    return [target]


@click.group()
@click.version_option(__version__, prog_name="plc")
@click.option("--verbose", is_flag=True, help="Log stage progress to stderr.")
def main(verbose: bool) -> None:
    """The Plc language toolchain."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s",
        )


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--no-analyze", is_flag=True, help="Skip static analysis.")
def run(file: str, no_analyze: bool) -> None:
    """Run a Plc program; the exit status is main's result."""
    path = Path(file)
    text = path.read_text()
    filename = str(path)
    config = config_for(path)
    renderer = _renderer(config, text, filename)

    previous_limit = sys.getrecursionlimit()
    sys.setrecursionlimit(config.run.recursion_limit)
    try:
        result = run_source(
            text, analyze=config.run.analyze and not no_analyze, filename=filename,
        )
    except PlcError as e:
        _report(e, renderer)
        raise SystemExit(1)
    except RecursionError:
        click.echo(
            "error: maximum recursion depth exceeded "
            f"(run.recursion_limit = {config.run.recursion_limit})",
            err=True,
        )
        raise SystemExit(1)
    finally:
        sys.setrecursionlimit(previous_limit)

    if isinstance(result, IntegerValue):
        raise SystemExit(result.value % 256)


@main.command()
@click.argument("path", default=".", type=click.Path(exists=True))
def check(path: str) -> None:
    """Lex, parse and analyze Plc source files without running them."""
    target = Path(path)
    config = config_for(target)
    files = _plc_files(target)
    if not files:
        click.echo("warning: no .plc files found", err=True)
        return

    had_errors = False
    for plc_file in files:
        text = plc_file.read_text()
        filename = str(plc_file)
        try:
            check_source(text, filename)
        except PlcError as e:
            had_errors = True
            _report(e, _renderer(config, text, filename))

    if had_errors:
        raise SystemExit(1)
    click.echo(f"checked {len(files)} file(s), no errors")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def tokens(file: str) -> None:
    """Print the token stream of a Plc source file."""
    path = Path(file)
    text = path.read_text()
    filename = str(path)
    try:
        token_list = Lexer(text, filename).lex()
    except PlcError as e:
        _report(e, _renderer(config_for(path), text, filename))
        raise SystemExit(1)

    for tok in token_list:
        click.echo(f"{tok.offset:>6}  {tok.kind.name:<10}  {tok.literal}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--types", is_flag=True, help="Analyze first and show resolved types.")
def view(file: str, types: bool) -> None:
    """View the AST of a Plc source file."""
    path = Path(file)
    text = path.read_text()
    filename = str(path)

    try:
        source = check_source(text, filename) if types else parse_source(text, filename)
    except PlcError as e:
        _report(e, _renderer(config_for(path), text, filename))
        raise SystemExit(1)

    _dump_ast(source, 0, show_types=types)


@main.command(name="format")
@click.argument("path", default=".", type=click.Path(exists=True))
@click.option("--check", is_flag=True, help="Check formatting without modifying files.")
@click.option("--stdin", "use_stdin", is_flag=True, help="Read from stdin, write to stdout.")
def format_cmd(path: str, check: bool, use_stdin: bool) -> None:
    """Format Plc source files."""
    from plc.formatter import PlcFormatter

    formatter = PlcFormatter()

    if use_stdin:
        text = sys.stdin.read()
        try:
            source = parse_source(text, "<stdin>")
        except PlcError as e:
            _report(e, _renderer(PlcConfig(), text, "<stdin>"))
            raise SystemExit(1)
        formatted = formatter.format(source)
        if check:
            if formatted != text:
                raise SystemExit(1)
        else:
            sys.stdout.write(formatted)
        return

    target = Path(path)
    files = _plc_files(target)
    if not files:
        click.echo("no .plc files found", err=True)
        return

    config = config_for(target)
    needs_formatting = False
    for plc_file in files:
        text = plc_file.read_text()
        filename = str(plc_file)
        try:
            source = parse_source(text, filename)
        except PlcError as e:
            _report(e, _renderer(config, text, filename))
            continue

        formatted = formatter.format(source)
        if formatted != text:
            if check:
                click.echo(f"would reformat {filename}")
                needs_formatting = True
            else:
                plc_file.write_text(formatted)
                click.echo(f"formatted {filename}")

    if check and needs_formatting:
        raise SystemExit(1)


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def highlight(file: str) -> None:
    """Print a Plc source file with terminal syntax highlighting."""
    from pygments import highlight as pygments_highlight
    from pygments.formatters import TerminalFormatter

    from plc.highlight import PlcLexer

    text = Path(file).read_text()
    click.echo(
        pygments_highlight(text, PlcLexer(), TerminalFormatter()), nl=False, color=True,
    )


@main.command()
@click.argument("name")
def new(name: str) -> None:
    """Create a new Plc project."""
    try:
        project_dir = scaffold(name)
        click.echo(f"created project '{name}' at {project_dir}")
    except FileExistsError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)


@main.command()
def lsp() -> None:
    """Start the Plc language server."""
    from plc.lsp import main as lsp_main

    lsp_main()


def _dump_ast(node: object, depth: int, *, show_types: bool = False) -> None:
    """Print a readable AST dump."""
    indent = "  " * depth
    name = type(node).__name__

    if hasattr(node, "__dataclass_fields__"):
        fields = node.__dataclass_fields__  # type: ignore[union-attr]
        click.echo(f"{indent}{name}")
        for field_name in fields:
            if field_name == "offset":
                continue
            if field_name in _ANNOTATIONS and not (
                show_types and field_name == "resolved_type"
            ):
                continue
            value = getattr(node, field_name)
            if field_name == "resolved_type" and value is not None:
                click.echo(f"{indent}  type: {value.name}")
            elif isinstance(value, list):
                if value and hasattr(value[0], "__dataclass_fields__"):
                    click.echo(f"{indent}  {field_name}:")
                    for item in value:
                        _dump_ast(item, depth + 2, show_types=show_types)
                else:
                    click.echo(f"{indent}  {field_name}: {value!r}")
            elif hasattr(value, "__dataclass_fields__"):
                click.echo(f"{indent}  {field_name}:")
                _dump_ast(value, depth + 2, show_types=show_types)
            elif value is not None:
                click.echo(f"{indent}  {field_name}: {value!r}")
    else:
        click.echo(f"{indent}{name}: {node!r}")
