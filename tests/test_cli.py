"""Tests for the Plc CLI, error rendering and source positions."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from plc.cli import main
from plc.errors import (
    Diagnostic,
    DiagnosticLabel,
    DiagnosticRenderer,
    FaultKind,
    LexError,
    ParseError,
    RuntimeFault,
    Severity,
)
from plc.source import SourceFile, Span


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tmp_project(tmp_path):
    """Create a minimal plc project in a temp dir."""
    toml = tmp_path / "plc.toml"
    toml.write_text(
        '[package]\nname = "testproj"\nversion = "1.0.0"\n'
        "[run]\nrecursion_limit = 2000\n"
        "[diagnostics]\ncolor = false\n"
    )
    src = tmp_path / "src"
    src.mkdir()
    (src / "main.plc").write_text(
        'DEF main(): Integer DO\n    print("hi");\n    RETURN 3;\nEND\n'
    )
    return tmp_path


def write(project: Path, text: str, name: str = "prog.plc") -> Path:
    path = project / "src" / name
    path.write_text(text)
    return path


# --- CLI tests ---


class TestCLI:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Plc" in result.output
        for command in ("run", "check", "tokens", "view", "format", "highlight", "new", "lsp"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_new_creates_project(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            result = runner.invoke(main, ["new", "hello"])
            assert result.exit_code == 0
            assert "created project 'hello'" in result.output

            project = Path("hello")
            assert (project / "plc.toml").exists()
            assert (project / "src" / "main.plc").exists()
            assert (project / ".gitignore").exists()

            toml_text = (project / "plc.toml").read_text()
            assert 'name = "hello"' in toml_text

            plc_text = (project / "src" / "main.plc").read_text()
            assert "Hello from Plc!" in plc_text

            readme_text = (project / "README.md").read_text()
            assert "# hello" in readme_text

    def test_new_project_runs(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            runner.invoke(main, ["new", "hello"])
            result = runner.invoke(main, ["run", "hello/src/main.plc"])
            assert result.exit_code == 0
            assert "Hello from Plc!" in result.output

    def test_new_existing_dir_fails(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path("hello").mkdir()
            result = runner.invoke(main, ["new", "hello"])
            assert result.exit_code == 1
            assert "already exists" in result.output

    def test_lsp_help(self, runner):
        result = runner.invoke(main, ["lsp", "--help"])
        assert result.exit_code == 0


class TestRunCommand:
    def test_exit_status_is_result(self, runner, tmp_project):
        result = runner.invoke(main, ["run", str(tmp_project / "src" / "main.plc")])
        assert result.exit_code == 3
        assert result.output.startswith("hi\n")

    def test_exit_status_wraps(self, runner, tmp_project):
        path = write(tmp_project, "DEF main(): Integer DO RETURN 300; END")
        result = runner.invoke(main, ["run", str(path)])
        assert result.exit_code == 44

    def test_analysis_error(self, runner, tmp_project):
        path = write(tmp_project, "DEF helper() DO END")
        result = runner.invoke(main, ["run", str(path)])
        assert result.exit_code == 1
        assert "error[E330]" in result.output

    def test_no_analyze_skips_analysis(self, runner, tmp_project):
        # Integer result of an untyped main is rejected only by the analyzer
        path = write(tmp_project, "DEF main() DO RETURN 5; END")
        assert runner.invoke(main, ["run", str(path)]).exit_code == 1
        result = runner.invoke(main, ["run", "--no-analyze", str(path)])
        assert result.exit_code == 5

    def test_runtime_fault(self, runner, tmp_project):
        path = write(tmp_project, "DEF main(): Integer DO RETURN 1 / 0; END")
        result = runner.invoke(main, ["run", str(path)])
        assert result.exit_code == 1
        assert "error[E402]" in result.output
        assert "prog.plc:1:31" in result.output

    def test_lex_error(self, runner, tmp_project):
        path = write(tmp_project, 'DEF main(): Integer DO RETURN "abc; END')
        result = runner.invoke(main, ["run", str(path)])
        assert result.exit_code == 1
        assert "error[E100]" in result.output

    def test_recursion_limit(self, runner, tmp_project):
        path = write(
            tmp_project,
            "DEF f(n: Integer): Integer DO RETURN f(n); END\n"
            "DEF main(): Integer DO RETURN f(1); END\n",
        )
        result = runner.invoke(main, ["run", str(path)])
        assert result.exit_code == 1
        assert "maximum recursion depth exceeded" in result.output
        assert "2000" in result.output

    def test_logging(self, runner, tmp_project, caplog):
        with caplog.at_level(logging.DEBUG, logger="plc"):
            runner.invoke(main, ["run", str(tmp_project / "src" / "main.plc")])
        assert "lexed" in caplog.text
        assert "main returned 3" in caplog.text


class TestCheckCommand:
    def test_check_project(self, runner, tmp_project):
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 0
        assert "checked 1 file(s), no errors" in result.output

    def test_check_reports_errors(self, runner, tmp_project):
        write(tmp_project, "DEF main(): Integer DO RETURN missing; END")
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 1
        assert "error[E310]" in result.output

    def test_check_empty_dir(self, runner, tmp_path):
        result = runner.invoke(main, ["check", str(tmp_path)])
        assert result.exit_code == 0
        assert "no .plc files found" in result.output


class TestInspectCommands:
    def test_tokens(self, runner, tmp_project):
        path = write(tmp_project, "LET x = 1.5;")
        result = runner.invoke(main, ["tokens", str(path)])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0].split() == ["0", "IDENTIFIER", "LET"]
        assert lines[3].split() == ["8", "DECIMAL", "1.5"]
        assert lines[4].split() == ["11", "OPERATOR", ";"]

    def test_view(self, runner, tmp_project):
        result = runner.invoke(main, ["view", str(tmp_project / "src" / "main.plc")])
        assert result.exit_code == 0
        assert result.output.startswith("Source\n")
        assert "Method" in result.output
        assert "IntegerLit" in result.output
        assert "type:" not in result.output

    def test_view_types(self, runner, tmp_project):
        result = runner.invoke(
            main, ["view", "--types", str(tmp_project / "src" / "main.plc")],
        )
        assert result.exit_code == 0
        assert "type: Integer" in result.output

    def test_view_parse_error(self, runner, tmp_project):
        path = write(tmp_project, "LET x = ;")
        result = runner.invoke(main, ["view", str(path)])
        assert result.exit_code == 1
        assert "error[E200]" in result.output

    def test_highlight(self, runner, tmp_project):
        result = runner.invoke(main, ["highlight", str(tmp_project / "src" / "main.plc")])
        assert result.exit_code == 0
        assert "RETURN" in result.output
        assert "\033[" in result.output


class TestFormatCommand:
    def test_check_formatted(self, runner, tmp_project):
        result = runner.invoke(main, ["format", "--check", str(tmp_project)])
        assert result.exit_code == 0

    def test_check_unformatted(self, runner, tmp_project):
        path = write(tmp_project, "DEF main(): Integer DO RETURN 1 + 2;   END")
        result = runner.invoke(main, ["format", "--check", str(tmp_project)])
        assert result.exit_code == 1
        assert f"would reformat {path}" in result.output
        assert path.read_text() == "DEF main(): Integer DO RETURN 1 + 2;   END"

    def test_unparsable_file_is_skipped(self, runner, tmp_project):
        # A sign binds to the digits after it, so this is 1 followed by +2
        path = write(tmp_project, "DEF main(): Integer DO RETURN 1+2; END")
        result = runner.invoke(main, ["format", str(tmp_project)])
        assert result.exit_code == 0
        assert "error[E200]" in result.output
        assert path.read_text() == "DEF main(): Integer DO RETURN 1+2; END"

    def test_rewrite(self, runner, tmp_project):
        path = write(tmp_project, "DEF main(): Integer DO RETURN 1 + 2; END")
        result = runner.invoke(main, ["format", str(path)])
        assert result.exit_code == 0
        assert "formatted" in result.output
        assert path.read_text() == "DEF main(): Integer DO\n    RETURN 1 + 2;\nEND\n"

    def test_stdin(self, runner):
        result = runner.invoke(main, ["format", "--stdin"], input="LET x=1;")
        assert result.exit_code == 0
        assert result.output == "LET x = 1;\n"

    def test_stdin_check(self, runner):
        result = runner.invoke(main, ["format", "--stdin", "--check"], input="LET x=1;")
        assert result.exit_code == 1

    def test_format_help(self, runner):
        result = runner.invoke(main, ["format", "--help"])
        assert result.exit_code == 0
        assert "--check" in result.output
        assert "--stdin" in result.output


# --- Error rendering tests ---


class TestDiagnostics:
    def test_render_parse_error(self):
        err = ParseError("expected expression, found ';'", 8, filename="t.plc")
        renderer = DiagnosticRenderer(color=False)
        renderer.register(SourceFile("LET x = ;\n", "t.plc"))
        output = renderer.render(err.diagnostic)

        assert "error[E200]: expected expression, found ';'" in output
        assert "--> t.plc:1:9" in output
        assert "   1 | LET x = ;" in output
        assert "     |         ^" in output

    def test_render_without_source(self):
        err = LexError("unexpected character", 4, filename="missing.plc")
        output = DiagnosticRenderer(color=False).render(err.diagnostic)
        assert "error[E100]" in output
        assert "--> missing.plc@4" in output

    def test_render_color(self):
        err = LexError("unexpected character", 0)
        output = DiagnosticRenderer(color=True).render(err.diagnostic)
        assert "\033[1;31m" in output

    def test_render_note(self):
        span = Span("main.plc", 0, 3)
        diag = Diagnostic(
            severity=Severity.WARNING,
            code="W001",
            message="unused field",
            labels=[DiagnosticLabel(span=span, message="declared here")],
            notes=["fields are visible to every method"],
        )
        renderer = DiagnosticRenderer(color=False)
        renderer.register(SourceFile("LET x = 1;", "main.plc"))
        output = renderer.render(diag)
        assert "warning[W001]" in output
        assert "^^^" in output
        assert "declared here" in output
        assert "note: fields are visible to every method" in output

    def test_runtime_fault_code(self):
        fault = RuntimeFault(FaultKind.DIVISION_BY_ZERO, "division by zero", 3)
        assert fault.code == "E402"
        assert fault.diagnostic.code == "E402"
        assert "offset 3" in str(fault)


# --- Source tests ---


class TestSource:
    def test_location(self):
        sf = SourceFile("ab\ncd\n")
        assert sf.location(0) == (1, 1)
        assert sf.location(2) == (1, 3)
        assert sf.location(3) == (2, 1)
        assert sf.location(99) == (3, 1)

    def test_line_at(self, tmp_path):
        f = tmp_path / "test.plc"
        f.write_text("line one\nline two\n")
        sf = SourceFile.from_path(f)
        assert sf.name == str(f)
        assert sf.line_at(1) == "line one"
        assert sf.line_at(2) == "line two"
        assert sf.line_at(0) == ""
        assert sf.line_at(99) == ""

    def test_lone_carriage_return_is_not_a_line_break(self):
        sf = SourceFile("a\rb\nc")
        assert sf.location(4) == (2, 1)
        assert sf.line_at(1) == "a\rb"
        assert sf.line_at(2) == "c"

    def test_render_after_carriage_return(self):
        err = ParseError("expected ';'", 4, filename="cr.plc")
        renderer = DiagnosticRenderer(color=False)
        renderer.register(SourceFile("a\rb\nc", "cr.plc"))
        output = renderer.render(err.diagnostic)
        assert "--> cr.plc:2:1" in output
        assert "   2 | c" in output

    def test_span_text(self):
        sf = SourceFile("hello world\n")
        assert sf.span_text(Span("t.plc", 6, 11)) == "world"

    def test_span_str(self):
        assert str(Span("file.plc", 10, 20)) == "file.plc@10"
