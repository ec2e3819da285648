"""Tests for the Iku CLI, config, project scaffolding and error rendering."""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from iku.cli import main
from iku.config import IkuConfig, config_for, find_config, load_config
from iku.errors import (
    CompileError,
    Diagnostic,
    DiagnosticLabel,
    DiagnosticRenderer,
    ParseError,
    Severity,
)
from iku.parser import parse_source
from iku.project import scaffold
from iku.source import SourceFile, Span

_MAIN_SOURCE = (
    "func main() {\n"
    '    print("hi")\n'
    "}\n"
)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def tmp_project(tmp_path):
    """Create a minimal iku project in a temp dir."""
    toml = tmp_path / "iku.toml"
    toml.write_text(
        '[package]\nname = "testproj"\nversion = "1.0.0"\n'
        "[format]\nindent = 2\n"
        "[diagnostics]\ncolor = false\n"
    )
    src = tmp_path / "src"
    src.mkdir()
    (src / "main.iku").write_text(_MAIN_SOURCE)
    return tmp_path


# --- CLI tests ---


class TestCLI:
    def test_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "Iku" in result.output
        for command in ("tokens", "view", "check", "format", "new"):
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
            assert (project / "iku.toml").exists()
            assert (project / "src" / "main.iku").exists()
            assert (project / ".gitignore").exists()
            assert 'name = "hello"' in (project / "iku.toml").read_text()
            assert "# hello" in (project / "README.md").read_text()

    def test_new_existing_dir_fails(self, runner, tmp_path):
        with runner.isolated_filesystem(temp_dir=tmp_path):
            Path("hello").mkdir()
            result = runner.invoke(main, ["new", "hello"])
            assert result.exit_code == 1
            assert "already exists" in result.output

    def test_tokens_command(self, runner, tmp_project):
        result = runner.invoke(main, ["tokens", str(tmp_project / "src" / "main.iku")])
        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert lines[0] == "1:1 FUNC 'func'"
        assert lines[1] == "1:6 IDENTIFIER 'main'"
        assert "2:5 IDENTIFIER 'print'" in lines
        assert "2:11 STRING_LIT 'hi'" in lines
        assert lines[-1].endswith("EOF ''")

    def test_tokens_lex_error(self, runner, tmp_project):
        bad = tmp_project / "bad.iku"
        bad.write_text("func f() { @ }\n")
        result = runner.invoke(main, ["tokens", str(bad)])
        assert result.exit_code == 1
        assert "error[E100]" in result.output

    def test_view_command(self, runner, tmp_project):
        result = runner.invoke(main, ["view", str(tmp_project / "src" / "main.iku")])
        assert result.exit_code == 0
        assert result.output.splitlines()[0] == "Module"
        assert "FunctionDef" in result.output
        assert "name: 'main'" in result.output
        assert "CallExpr" in result.output
        assert "span" not in result.output

    def test_view_shows_operator_spelling(self, runner, tmp_path):
        f = tmp_path / "ops.iku"
        f.write_text("func f() { a + b }\n")
        result = runner.invoke(main, ["view", str(f)])
        assert result.exit_code == 0
        assert "op: +" in result.output

    def test_check_project(self, runner, tmp_project):
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 0
        assert "checked 1 file(s), no errors" in result.output

    def test_check_reports_syntax_error(self, runner, tmp_project):
        (tmp_project / "src" / "broken.iku").write_text("func f() {\n    a == b == c\n}\n")
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 1
        assert "error[E202]" in result.output
        assert "broken.iku:2:12" in result.output
        assert "a == b == c" in result.output
        assert "1 of 2 file(s) failed to parse" in result.output
        # color disabled in iku.toml
        assert "\033[" not in result.output

    def test_check_single_file(self, runner, tmp_project):
        result = runner.invoke(main, ["check", str(tmp_project / "src" / "main.iku")])
        assert result.exit_code == 0

    def test_check_empty_dir(self, runner, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        result = runner.invoke(main, ["check", str(empty)])
        assert result.exit_code == 0
        assert "warning[W001]" in result.output
        assert "no .iku files found" in result.output

    def test_format_help(self, runner):
        result = runner.invoke(main, ["format", "--help"])
        assert result.exit_code == 0
        assert "--check" in result.output
        assert "--stdin" in result.output

    def test_format_check_clean(self, runner, tmp_path):
        f = tmp_path / "clean.iku"
        f.write_text(_MAIN_SOURCE)
        result = runner.invoke(main, ["format", "--check", str(f)])
        assert result.exit_code == 0

    def test_format_check_dirty(self, runner, tmp_path):
        f = tmp_path / "dirty.iku"
        f.write_text("func main(){print( 1+2 )}")
        result = runner.invoke(main, ["format", "--check", str(f)])
        assert result.exit_code == 1
        assert "would reformat" in result.output
        assert f.read_text() == "func main(){print( 1+2 )}"

    def test_format_rewrites_with_config_indent(self, runner, tmp_project):
        main_iku = tmp_project / "src" / "main.iku"
        result = runner.invoke(main, ["format", str(tmp_project)])
        assert result.exit_code == 0
        assert "formatted" in result.output
        assert main_iku.read_text() == 'func main() {\n  print("hi")\n}\n'

    def test_format_stdin(self, runner):
        result = runner.invoke(main, ["format", "--stdin"], input="func f(){a+b}")
        assert result.exit_code == 0
        assert result.output == "func f() {\n    a + b\n}\n"

    def test_format_stdin_syntax_error(self, runner):
        result = runner.invoke(main, ["format", "--stdin"], input="func f(")
        assert result.exit_code == 1
        assert "error[E201]" in result.output

    def test_format_skips_broken_files(self, runner, tmp_path):
        good = tmp_path / "good.iku"
        good.write_text("func g(){1}")
        (tmp_path / "bad.iku").write_text("func f( {")
        result = runner.invoke(main, ["format", str(tmp_path)])
        assert result.exit_code == 1
        assert good.read_text() == "func g() {\n    1\n}\n"

    def test_format_skips_non_utf8_files(self, runner, tmp_path):
        good = tmp_path / "good.iku"
        good.write_text("func g(){1}")
        (tmp_path / "latin1.iku").write_bytes(b"func f() { \"caf\xe9\" }\n")
        result = runner.invoke(main, ["format", str(tmp_path)])
        assert result.exit_code == 1
        assert "not valid UTF-8" in result.output
        assert good.read_text() == "func g() {\n    1\n}\n"


class TestCLIErrors:
    def test_check_bad_indent(self, runner, tmp_project):
        (tmp_project / "iku.toml").write_text("[format]\nindent = 0\n")
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 1
        assert "error:" in result.output
        assert "indent must be a positive integer" in result.output
        assert "Traceback" not in result.output

    def test_format_bad_indent(self, runner, tmp_project):
        (tmp_project / "iku.toml").write_text("[format]\nindent = -4\n")
        result = runner.invoke(main, ["format", str(tmp_project)])
        assert result.exit_code == 1
        assert "indent must be a positive integer" in result.output

    def test_check_malformed_toml(self, runner, tmp_project):
        (tmp_project / "iku.toml").write_text("[package\nname = \n")
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 1
        assert "error:" in result.output
        assert "invalid TOML" in result.output

    def test_check_non_utf8_file_counts_as_failed(self, runner, tmp_project):
        (tmp_project / "src" / "bad.iku").write_bytes(b"func f() { \xff }\n")
        result = runner.invoke(main, ["check", str(tmp_project)])
        assert result.exit_code == 1
        assert "bad.iku: not valid UTF-8" in result.output
        assert "1 of 2 file(s) failed to parse" in result.output

    def test_tokens_non_utf8_file(self, runner, tmp_path):
        f = tmp_path / "bad.iku"
        f.write_bytes(b"\xff\xfe")
        result = runner.invoke(main, ["tokens", str(f)])
        assert result.exit_code == 1
        assert "not valid UTF-8" in result.output

    def test_view_non_utf8_file(self, runner, tmp_path):
        f = tmp_path / "bad.iku"
        f.write_bytes(b"func f() { \xc3 }")
        result = runner.invoke(main, ["view", str(f)])
        assert result.exit_code == 1
        assert "not valid UTF-8" in result.output

    def test_check_deep_nesting(self, runner, tmp_path):
        f = tmp_path / "deep.iku"
        f.write_text("func f() { " + "(" * 200 + "x" + ")" * 200 + " }\n")
        result = runner.invoke(main, ["check", str(f)])
        assert result.exit_code == 1
        assert "error[E203]" in result.output
        assert "nested too deeply" in result.output

    def test_view_long_or_chain(self, runner, tmp_path):
        f = tmp_path / "long.iku"
        f.write_text("func f() { " + " || ".join(f"v{i}" for i in range(1500)) + " }\n")
        result = runner.invoke(main, ["view", str(f)])
        assert result.exit_code == 0
        assert result.output.count("ConditionalExpr") == 1499

    def test_format_long_or_chain(self, runner, tmp_path):
        chain = " || ".join(f"v{i}" for i in range(1500))
        f = tmp_path / "long.iku"
        f.write_text(f"func f() {{\n    {chain}\n}}\n")
        result = runner.invoke(main, ["format", "--check", str(f)])
        assert result.exit_code == 0


# --- Project tests ---


class TestProject:
    def test_scaffold_returns_path(self, tmp_path):
        project = scaffold("demo", tmp_path)
        assert project == tmp_path / "demo"
        assert load_config(project / "iku.toml").package.name == "demo"

    def test_scaffolded_main_parses(self, tmp_path):
        project = scaffold("demo", tmp_path)
        main_iku = project / "src" / "main.iku"
        module = parse_source(main_iku.read_text(), str(main_iku))
        assert [f.name for f in module.functions] == ["main"]


# --- Config tests ---


class TestConfig:
    def test_load_config(self, tmp_project):
        config = load_config(tmp_project / "iku.toml")
        assert config.package.name == "testproj"
        assert config.package.version == "1.0.0"
        assert config.format.indent == 2
        assert config.diagnostics.color is False

    def test_load_config_defaults(self, tmp_path):
        toml = tmp_path / "iku.toml"
        toml.write_text("[package]\n")
        config = load_config(toml)
        assert config.package.name == "untitled"
        assert config.package.authors == []
        assert config.format.indent == 4
        assert config.diagnostics.color is True

    @pytest.mark.parametrize("value", ["0", "-2", '"4"', "true"])
    def test_invalid_indent(self, tmp_path, value):
        toml = tmp_path / "iku.toml"
        toml.write_text(f"[format]\nindent = {value}\n")
        with pytest.raises(ValueError, match="indent must be a positive integer"):
            load_config(toml)

    def test_find_config(self, tmp_project):
        found = find_config(tmp_project / "src")
        assert found == tmp_project / "iku.toml"

    def test_find_config_from_file(self, tmp_project):
        found = find_config(tmp_project / "src" / "main.iku")
        assert found == tmp_project / "iku.toml"

    def test_find_config_not_found(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        with pytest.raises(FileNotFoundError, match="No iku.toml found"):
            find_config(empty)

    def test_config_for_falls_back_to_defaults(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        assert config_for(empty) == IkuConfig()


# --- Error rendering tests ---


class TestDiagnostics:
    def test_render_error(self):
        span = Span("main.iku", 12, 19, 12, 47)
        diag = Diagnostic(
            severity=Severity.ERROR,
            code="E200",
            message="unexpected '}', expected expression",
            labels=[DiagnosticLabel(span=span)],
            notes=["blocks hold expressions separated by ';'"],
        )

        output = DiagnosticRenderer(color=False).render(diag)

        assert output.startswith("error[E200]: unexpected '}', expected expression")
        assert "--> main.iku:12:19" in output
        assert "note: blocks hold expressions" in output

    def test_render_with_source_line(self):
        source = SourceFile("func f( {\n", "t.iku")
        with pytest.raises(ParseError) as exc_info:
            parse_source(source.content, source.name)
        renderer = DiagnosticRenderer(color=False)
        renderer.add_source(source)
        output = renderer.render(exc_info.value.diagnostics[0])

        assert "error[E200]: unexpected '{', expected parameter name" in output
        assert "   1 | func f( {" in output
        assert output.splitlines()[-1] == "     | " + " " * 8 + "^"

    def test_render_warning_label(self):
        diag = Diagnostic(
            severity=Severity.WARNING,
            code="W001",
            message="unused value",
            labels=[DiagnosticLabel(span=Span("main.iku", 5, 1, 5, 10), message="here")],
        )
        output = DiagnosticRenderer(color=False).render(diag)
        assert "warning[W001]" in output
        assert "here" in output

    def test_render_with_color(self):
        diag = Diagnostic(Severity.ERROR, "E100", "bad character")
        output = DiagnosticRenderer(color=True).render(diag)
        assert "\033[1;31m" in output

    def test_compile_error(self):
        diags = [
            Diagnostic(Severity.ERROR, "E001", "first error"),
            Diagnostic(Severity.ERROR, "E002", "second error"),
        ]
        err = CompileError(diags)
        assert len(err.diagnostics) == 2
        assert "2 error(s)" in str(err)


# --- Source tests ---


class TestSource:
    def test_line_at(self):
        sf = SourceFile("line one\nline two\nline three\n")
        assert sf.line_at(1) == "line one"
        assert sf.line_at(3) == "line three"
        assert sf.line_at(0) == ""
        assert sf.line_at(99) == ""

    def test_load(self, tmp_path):
        f = tmp_path / "test.iku"
        f.write_text("hello world\n")
        sf = SourceFile.load(f)
        assert sf.name == str(f)
        assert sf.line_at(1) == "hello world"

    def test_span_through(self):
        start = Span("f.iku", 1, 3, 1, 4)
        end = Span("f.iku", 2, 1, 2, 6)
        assert start.through(end) == Span("f.iku", 1, 3, 2, 6)

    def test_span_str(self):
        assert str(Span("file.iku", 10, 5, 10, 20)) == "file.iku:10:5"
