"""Token kinds and token representation for the Iku lexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from iku.source import Span


class TokenKind(Enum):
    # Keywords
    FUNC = auto()
    IF = auto()
    ELSE = auto()

    # Literals
    INTEGER_LIT = auto()
    STRING_LIT = auto()
    BOOLEAN_LIT = auto()

    # Identifiers
    IDENTIFIER = auto()
    TYPE_IDENTIFIER = auto()

    # Operators
    DECLARE = auto()
    ASSIGN = auto()
    EQUAL = auto()
    NOT_EQUAL = auto()
    LESS = auto()
    LESS_EQUAL = auto()
    GREATER = auto()
    GREATER_EQUAL = auto()
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    PERCENT = auto()
    AND = auto()
    OR = auto()
    BANG = auto()

    # Punctuation
    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    SEMICOLON = auto()

    # Special
    EOF = auto()


TokenValue = Union[str, int, bool]


@dataclass(frozen=True)
class Token:
    """A lexical unit.

    ``value`` holds the decoded value for identifiers and literals (``str``,
    ``int`` or ``bool``) and the source spelling for everything else.
    A semicolon inserted at a line break has the value ``"\\n"``.
    """

    kind: TokenKind
    value: TokenValue
    span: Span

    def describe(self) -> str:
        """Human readable form used in error messages."""
        if self.kind == TokenKind.EOF:
            return "end of input"
        if self.kind == TokenKind.SEMICOLON and self.value == "\n":
            return "newline"
        if self.kind == TokenKind.STRING_LIT:
            return f"string {self.value!r}"
        if self.kind == TokenKind.BOOLEAN_LIT:
            return "true" if self.value else "false"
        return f"{self.kind.name} ({self.value!r})" if self.kind in _VALUED else f"'{self.value}'"


_VALUED: frozenset[TokenKind] = frozenset({
    TokenKind.IDENTIFIER,
    TokenKind.TYPE_IDENTIFIER,
    TokenKind.INTEGER_LIT,
})


KEYWORDS: dict[str, TokenKind] = {
    "func": TokenKind.FUNC,
    "if": TokenKind.IF,
    "else": TokenKind.ELSE,
    "true": TokenKind.BOOLEAN_LIT,
    "false": TokenKind.BOOLEAN_LIT,
}

# The lexer tries two-character spellings before one-character ones.
OPERATORS: dict[str, TokenKind] = {
    ":=": TokenKind.DECLARE,
    "==": TokenKind.EQUAL,
    "!=": TokenKind.NOT_EQUAL,
    "<=": TokenKind.LESS_EQUAL,
    ">=": TokenKind.GREATER_EQUAL,
    "&&": TokenKind.AND,
    "||": TokenKind.OR,
    "=": TokenKind.ASSIGN,
    "<": TokenKind.LESS,
    ">": TokenKind.GREATER,
    "+": TokenKind.PLUS,
    "-": TokenKind.MINUS,
    "*": TokenKind.STAR,
    "/": TokenKind.SLASH,
    "%": TokenKind.PERCENT,
    "!": TokenKind.BANG,
    "{": TokenKind.LBRACE,
    "}": TokenKind.RBRACE,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    ",": TokenKind.COMMA,
    ";": TokenKind.SEMICOLON,
}

# A line break after one of these ends the current expression.
SEMICOLON_INSERTED_AFTER: frozenset[TokenKind] = frozenset({
    TokenKind.RPAREN,
    TokenKind.RBRACE,
    TokenKind.INTEGER_LIT,
    TokenKind.STRING_LIT,
    TokenKind.BOOLEAN_LIT,
    TokenKind.IDENTIFIER,
})
