"""Iku command line interface."""

from __future__ import annotations

import sys
from enum import Enum
from pathlib import Path

import click

from iku import __version__
from iku.ast_nodes import Module
from iku.config import IkuConfig, config_for
from iku.errors import NO_SOURCES, CompileError, Diagnostic, DiagnosticRenderer, Severity
from iku.formatter import IkuFormatter
from iku.lexer import Lexer
from iku.parser import Parser
from iku.project import scaffold
from iku.source import SourceFile


def _iku_files(target: Path) -> list[Path]:
    """The .iku files under a directory, or the file itself."""
    if target.is_dir():
        return sorted(target.rglob("*.iku"))
    return [target]


def _load_config(path: Path) -> IkuConfig:
    """Load the governing iku.toml, exiting with status 1 when it is invalid."""
    try:
        return config_for(path)
    except ValueError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)


def _load_source(path: Path) -> SourceFile | None:
    """Read a source file. Reports unreadable or non UTF-8 files and returns None."""
    try:
        return SourceFile.load(path)
    except UnicodeDecodeError as e:
        click.echo(f"error: {path}: not valid UTF-8 (byte {e.start}: {e.reason})", err=True)
    except OSError as e:
        click.echo(f"error: {path}: {e.strerror or e}", err=True)
    return None


def _renderer(config: IkuConfig) -> DiagnosticRenderer:
    return DiagnosticRenderer(color=config.diagnostics.color)


def _report(error: CompileError, source: SourceFile, config: IkuConfig) -> None:
    renderer = _renderer(config)
    renderer.add_source(source)
    for diag in error.diagnostics:
        click.echo(renderer.render(diag), err=True)


def _warn_no_sources(target: Path, config: IkuConfig) -> None:
    diag = Diagnostic(Severity.WARNING, NO_SOURCES, f"no .iku files found under {target}")
    click.echo(_renderer(config).render(diag), err=True)


def _parse(source: SourceFile, config: IkuConfig) -> Module | None:
    """Lex and parse a source file. Renders diagnostics and returns None on error."""
    try:
        tokens = Lexer(source.content, source.name).lex()
        return Parser(tokens, source.name).parse()
    except CompileError as e:
        _report(e, source, config)
        return None


@click.group()
@click.version_option(__version__, prog_name="iku")
def main() -> None:
    """The Iku programming language front-end."""


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def tokens(file: str) -> None:
    """Print the tokens of an Iku source file, one per line."""
    path = Path(file)
    config = _load_config(path)
    source = _load_source(path)
    if source is None:
        raise SystemExit(1)

    try:
        toks = Lexer(source.content, source.name).lex()
    except CompileError as e:
        _report(e, source, config)
        raise SystemExit(1)

    for tok in toks:
        click.echo(f"{tok.span.start_line}:{tok.span.start_col} {tok.kind.name} {tok.value!r}")


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def view(file: str) -> None:
    """View the AST of an Iku source file."""
    path = Path(file)
    config = _load_config(path)
    source = _load_source(path)
    module = _parse(source, config) if source is not None else None
    if module is None:
        raise SystemExit(1)

    _dump_ast(module, 0)


@main.command()
@click.argument("path", default=".", type=click.Path(exists=True))
def check(path: str) -> None:
    """Parse every .iku file under PATH and report syntax errors."""
    target = Path(path)
    config = _load_config(target)
    iku_files = _iku_files(target)
    if not iku_files:
        _warn_no_sources(target, config)
        return

    failed = 0
    for iku_file in iku_files:
        source = _load_source(iku_file)
        if source is None or _parse(source, config) is None:
            failed += 1

    if failed:
        click.echo(f"{failed} of {len(iku_files)} file(s) failed to parse", err=True)
        raise SystemExit(1)
    click.echo(f"checked {len(iku_files)} file(s), no errors")


@main.command(name="format")
@click.argument("path", default=".", type=click.Path(exists=True))
@click.option("--check", is_flag=True, help="Check formatting without modifying files.")
@click.option("--stdin", "use_stdin", is_flag=True, help="Read from stdin, write to stdout.")
def format_cmd(path: str, check: bool, use_stdin: bool) -> None:
    """Format Iku source files."""
    target = Path(path)
    config = _load_config(target)
    formatter = IkuFormatter(indent=config.format.indent)

    if use_stdin:
        source = SourceFile(sys.stdin.read())
        module = _parse(source, config)
        if module is None:
            raise SystemExit(1)
        formatted = formatter.format(module)
        if check:
            if formatted != source.content:
                raise SystemExit(1)
        else:
            sys.stdout.write(formatted)
        return

    iku_files = _iku_files(target)
    if not iku_files:
        _warn_no_sources(target, config)
        return

    needs_formatting = False
    had_errors = False
    for iku_file in iku_files:
        source = _load_source(iku_file)
        module = _parse(source, config) if source is not None else None
        if source is None or module is None:
            had_errors = True
            continue

        formatted = formatter.format(module)
        if formatted != source.content:
            if check:
                click.echo(f"would reformat {source.name}")
                needs_formatting = True
            else:
                iku_file.write_text(formatted, encoding="utf-8")
                click.echo(f"formatted {source.name}")

    if had_errors or (check and needs_formatting):
        raise SystemExit(1)


@main.command()
@click.argument("name")
def new(name: str) -> None:
    """Create a new Iku project."""
    try:
        project_dir = scaffold(name)
        click.echo(f"created project '{name}' at {project_dir}")
    except FileExistsError as e:
        click.echo(f"error: {e}", err=True)
        raise SystemExit(1)


def _dump_ast(node: object, depth: int) -> None:
    """Print a readable AST dump.

    Walks the tree with an explicit stack, so long operator chains do not
    exhaust the interpreter's recursion limit.
    """
    # Entries are either a line to print or a (node, depth) pair still to expand
    stack: list[str | tuple[object, int]] = [(node, depth)]
    while stack:
        entry = stack.pop()
        if isinstance(entry, str):
            click.echo(entry)
            continue
        item, level = entry
        indent = "  " * level
        name = type(item).__name__

        if not hasattr(item, "__dataclass_fields__"):
            click.echo(f"{indent}{name}: {item!r}")
            continue

        click.echo(f"{indent}{name}")
        pending: list[str | tuple[object, int]] = []
        for field_name in item.__dataclass_fields__:  # type: ignore[attr-defined]
            if field_name == "span":
                continue
            value = getattr(item, field_name)
            if isinstance(value, list):
                if value:
                    pending.append(f"{indent}  {field_name}:")
                    pending.extend((child, level + 2) for child in value)
                else:
                    pending.append(f"{indent}  {field_name}: []")
            elif hasattr(value, "__dataclass_fields__"):
                pending.append(f"{indent}  {field_name}:")
                pending.append((value, level + 2))
            elif isinstance(value, Enum):
                pending.append(f"{indent}  {field_name}: {value.value}")
            elif value is not None:
                pending.append(f"{indent}  {field_name}: {value!r}")
        stack.extend(reversed(pending))
