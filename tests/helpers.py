"""Shared test helpers for the Iku test suite."""

from __future__ import annotations

import pytest

from iku.ast_nodes import Expr, Module
from iku.errors import CompileError
from iku.lexer import Lexer
from iku.parser import Parser


def parse(source: str) -> Module:
    """Lex and parse source, return the Module."""
    tokens = Lexer(source, "test.iku").lex()
    return Parser(tokens, "test.iku").parse()


def parse_expr(source: str) -> Expr:
    """Parse a single expression by wrapping it in a function body."""
    module = parse(f"func t() {{ {source} }}")
    body = module.functions[0].body
    assert len(body) == 1, f"expected one block entry, got {body}"
    return body[0]


def parse_fails(source: str, error_code: str) -> CompileError:
    """Parse source, asserting it fails with the given error code."""
    with pytest.raises(CompileError) as exc_info:
        parse(source)
    codes = [d.code for d in exc_info.value.diagnostics]
    assert error_code in codes, f"Expected error {error_code} but got: {codes}"
    return exc_info.value
