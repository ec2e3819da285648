"""Lexer for the Iku programming language.

Produces the token list consumed by the parser. Line breaks are not tokens,
but a run of whitespace and comments that contains a newline turns into a
single inserted SEMICOLON when the previous token could end an expression
(see ``SEMICOLON_INSERTED_AFTER``). Inside parentheses no semicolons are
inserted, unless a brace block was opened inside them.
"""

from __future__ import annotations

from iku.errors import LexError
from iku.source import Span
from iku.tokens import (
    KEYWORDS,
    OPERATORS,
    SEMICOLON_INSERTED_AFTER,
    Token,
    TokenKind,
)

I64_MIN = -(2**63)
I64_MAX = 2**63 - 1

_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "\\": "\\"}


def decode_escapes(raw: str) -> str:
    """Decode the backslash escapes of a string literal body.

    ``\\n``, ``\\r``, ``\\t`` and ``\\\\`` are translated; any other escape is
    kept verbatim, backslash included.
    """
    out: list[str] = []
    i = 0
    while i < len(raw):
        ch = raw[i]
        if ch == "\\" and i + 1 < len(raw):
            nxt = raw[i + 1]
            out.append(_ESCAPES.get(nxt, "\\" + nxt))
            i += 2
        else:
            out.append(ch)
            i += 1
    return "".join(out)


class Lexer:
    """Tokenizes Iku source code."""

    def __init__(self, source: str, filename: str = "<stdin>") -> None:
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.col = 1
        self.prev_token: Token | None = None
        self.tokens: list[Token] = []
        # Open ( and { tokens, innermost last
        self._delimiters: list[TokenKind] = []

    def lex(self) -> list[Token]:
        """Tokenize the entire source and return the token list, ending in EOF.

        Raises ``LexError`` at the first character that starts no token.
        """
        while True:
            newline_at = self._skip_trivia()
            if newline_at is not None and self._inserts_semicolon():
                line, col = newline_at
                self._emit_at(TokenKind.SEMICOLON, "\n", Span.point(self.filename, line, col))
            if self.pos >= len(self.source):
                break
            ch = self.source[self.pos]
            if ch == '"':
                self._lex_string()
            elif ch.isdecimal() or (ch == "-" and self._peek(1).isdecimal() and self._negative_allowed()):
                self._lex_integer()
            elif ch.isalpha() or ch == "_":
                self._lex_identifier()
            else:
                self._lex_operator_or_punct()

        self._emit_at(TokenKind.EOF, "", Span.point(self.filename, self.line, self.col))
        return self.tokens

    # ── Helpers ───────────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> str:
        idx = self.pos + offset
        if idx < len(self.source):
            return self.source[idx]
        return "\0"

    def _advance(self) -> str:
        ch = self.source[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
            self.col = 1
        else:
            self.col += 1
        return ch

    def _emit(self, kind: TokenKind, value: str | int | bool, start_line: int, start_col: int) -> Token:
        end_col = self.col - 1 if self.col > 1 else 1
        return self._emit_at(kind, value, Span(self.filename, start_line, start_col, self.line, end_col))

    def _emit_at(self, kind: TokenKind, value: str | int | bool, span: Span) -> Token:
        tok = Token(kind, value, span)
        self.tokens.append(tok)
        self.prev_token = tok
        return tok

    def _error(self, message: str, line: int, col: int) -> LexError:
        return LexError(message, Span.point(self.filename, line, col))

    # ── Whitespace, comments and semicolon insertion ─────────────

    def _skip_trivia(self) -> tuple[int, int] | None:
        """Skip whitespace and // comments. Returns where the first newline was, if any."""
        newline_at: tuple[int, int] | None = None
        while self.pos < len(self.source):
            ch = self.source[self.pos]
            if ch == "\n":
                if newline_at is None:
                    newline_at = (self.line, self.col)
                self._advance()
            elif ch.isspace():
                self._advance()
            elif ch == "/" and self._peek(1) == "/":
                while self.pos < len(self.source) and self.source[self.pos] != "\n":
                    self._advance()
            else:
                break
        return newline_at

    def _inserts_semicolon(self) -> bool:
        if self.prev_token is None or self.prev_token.kind not in SEMICOLON_INSERTED_AFTER:
            return False
        return not self._delimiters or self._delimiters[-1] == TokenKind.LBRACE

    def _negative_allowed(self) -> bool:
        """A '-' directly before a digit is a sign unless it follows an operand."""
        if self.prev_token is None:
            return True
        return self.prev_token.kind not in SEMICOLON_INSERTED_AFTER

    # ── Literals ─────────────────────────────────────────────────

    def _lex_string(self) -> None:
        start_line = self.line
        start_col = self.col
        self._advance()  # opening "
        text: list[str] = []
        while self.pos < len(self.source) and self.source[self.pos] != '"':
            text.append(self._advance())
        if self.pos >= len(self.source):
            raise self._error("unterminated string literal", start_line, start_col)
        self._advance()  # closing "
        self._emit(TokenKind.STRING_LIT, decode_escapes("".join(text)), start_line, start_col)

    def _lex_integer(self) -> None:
        start_line = self.line
        start_col = self.col
        text = [self._advance()]
        while self.pos < len(self.source) and self.source[self.pos].isdecimal():
            text.append(self._advance())
        value = int("".join(text))
        if not I64_MIN <= value <= I64_MAX:
            raise self._error(
                f"integer literal {''.join(text)} does not fit in 64 bits", start_line, start_col,
            )
        self._emit(TokenKind.INTEGER_LIT, value, start_line, start_col)

    # ── Identifiers and keywords ─────────────────────────────────

    def _lex_identifier(self) -> None:
        start_line = self.line
        start_col = self.col
        text = []
        while self.pos < len(self.source) and (self.source[self.pos].isalnum() or self.source[self.pos] == "_"):
            text.append(self._advance())
        word = "".join(text)

        if word in KEYWORDS:
            kind = KEYWORDS[word]
            value: str | bool = (word == "true") if kind == TokenKind.BOOLEAN_LIT else word
            self._emit(kind, value, start_line, start_col)
            return

        kind = TokenKind.TYPE_IDENTIFIER if word[0].isupper() else TokenKind.IDENTIFIER
        self._emit(kind, word, start_line, start_col)

    # ── Operators and punctuation ────────────────────────────────

    def _lex_operator_or_punct(self) -> None:
        start_line = self.line
        start_col = self.col

        two = self.source[self.pos:self.pos + 2]
        spelling = two if len(two) == 2 and two in OPERATORS else self.source[self.pos]
        kind = OPERATORS.get(spelling)
        if kind is None:
            raise self._error(f"unexpected character: {spelling!r}", start_line, start_col)
        for _ in spelling:
            self._advance()

        match kind:
            case TokenKind.LPAREN | TokenKind.LBRACE:
                self._delimiters.append(kind)
            case TokenKind.RPAREN | TokenKind.RBRACE:
                if self._delimiters:
                    self._delimiters.pop()
        self._emit(kind, spelling, start_line, start_col)
