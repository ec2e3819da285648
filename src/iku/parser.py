"""Parser for the Iku programming language.

Transforms a token list into an AST by recursive descent. Expressions are
parsed with a fixed precedence ladder, one method per level, lowest first:

    0  :=  =            name on the left, level 1 on the right
    1  ||               right associative
    2  &&               right associative
    3  ==  !=           non associative
    4  <=  <  >=  >     non associative
    5  +  -             left associative
    6  *  /  %          left associative
    7  prefix !         applies to an atom
    8  atoms            call, literal, name, block, if/else, tuple, (group)

Parsing stops at the first error with a ``ParseError``; there is no recovery
and no partial tree.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from iku.ast_nodes import (
    Assign,
    BinaryExpr,
    BinOp,
    BlockExpr,
    BooleanLit,
    BoolOp,
    CallExpr,
    ConditionalExpr,
    Declare,
    Expr,
    FunctionDef,
    IdentifierExpr,
    IfExpr,
    IntegerLit,
    Module,
    NotExpr,
    Param,
    SimpleType,
    StringLit,
    TupleExpr,
    TupleType,
    TypeName,
)
from iku.errors import CHAINED_COMPARISON, NESTING_TOO_DEEP, UNEXPECTED_EOF, ParseError
from iku.lexer import Lexer
from iku.source import Span
from iku.tokens import OPERATORS, Token, TokenKind

T = TypeVar("T")

# Parenthesized, braced or tupled constructs deeper than this are rejected
MAX_NESTING = 40

# ── Operator tables ──────────────────────────────────────────────

_EQUALITY_OPS: dict[TokenKind, BinOp] = {
    TokenKind.EQUAL: BinOp.EQUAL,
    TokenKind.NOT_EQUAL: BinOp.NOT_EQUAL,
}

_RELATIONAL_OPS: dict[TokenKind, BinOp] = {
    TokenKind.LESS_EQUAL: BinOp.LESS_EQUAL,
    TokenKind.LESS: BinOp.LESS,
    TokenKind.GREATER_EQUAL: BinOp.GREATER_EQUAL,
    TokenKind.GREATER: BinOp.GREATER,
}

_ADDITIVE_OPS: dict[TokenKind, BinOp] = {
    TokenKind.PLUS: BinOp.ADD,
    TokenKind.MINUS: BinOp.SUB,
}

_MULTIPLICATIVE_OPS: dict[TokenKind, BinOp] = {
    TokenKind.STAR: BinOp.MUL,
    TokenKind.SLASH: BinOp.DIV,
    TokenKind.PERCENT: BinOp.MOD,
}

_EXPECTED: dict[TokenKind, str] = {kind: f"'{spelling}'" for spelling, kind in OPERATORS.items()}
_EXPECTED.update({
    TokenKind.FUNC: "'func'",
    TokenKind.IF: "'if'",
    TokenKind.ELSE: "'else'",
    TokenKind.IDENTIFIER: "identifier",
    TokenKind.TYPE_IDENTIFIER: "type name",
    TokenKind.EOF: "end of input",
})


class Parser:
    """Parses a list of tokens into an Iku ``Module``.

    A parser instance is single use: build one per token list and call
    ``parse()`` once.
    """

    def __init__(self, tokens: list[Token], filename: str = "<stdin>") -> None:
        self.filename = filename
        self.tokens = list(tokens)
        if not self.tokens or self.tokens[-1].kind != TokenKind.EOF:
            end = self.tokens[-1].span if self.tokens else Span.point(filename, 1, 1)
            eof_span = Span.point(end.file, end.end_line, end.end_col + 1)
            self.tokens.append(Token(TokenKind.EOF, "", eof_span))
        self.pos = 0
        self._depth = 0

    # ── Token access ─────────────────────────────────────────────

    def _current(self) -> Token:
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx < len(self.tokens):
            return self.tokens[idx]
        return self.tokens[-1]

    def _at(self, kind: TokenKind) -> bool:
        return self._current().kind == kind

    def _at_any(self, *kinds: TokenKind) -> bool:
        return self._current().kind in kinds

    def _advance(self) -> Token:
        tok = self._current()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _expect(self, kind: TokenKind, expected: str | None = None) -> Token:
        if self._at(kind):
            return self._advance()
        raise self._unexpected(expected or _EXPECTED[kind])

    def _unexpected(self, expected: str, notes: list[str] | None = None) -> ParseError:
        tok = self._current()
        if tok.kind == TokenKind.EOF:
            return ParseError(
                f"unexpected end of input, expected {expected}", tok, UNEXPECTED_EOF, notes,
            )
        return ParseError(f"unexpected {tok.describe()}, expected {expected}", tok, notes=notes)

    def _enter_nested(self) -> None:
        """Count one level of atom or type nesting. Callers decrement ``_depth`` when done."""
        if self._depth >= MAX_NESTING:
            raise ParseError(
                f"expression nested too deeply (more than {MAX_NESTING} levels)",
                self._current(),
                NESTING_TOO_DEEP,
                notes=["bind inner parts to names with ':=' to flatten the expression"],
            )
        self._depth += 1

    # ── Shared list helpers ──────────────────────────────────────

    def _parse_separated(
        self, parse_item: Callable[[], T], separator: TokenKind, close: TokenKind,
    ) -> tuple[list[T], Token]:
        """Parse ``item sep item sep ... [item] close``.

        Zero or more items each followed by the separator, plus an optional
        last item without one. Returns the items and the closing token.
        """
        items: list[T] = []
        while not self._at(close):
            items.append(parse_item())
            if not self._at(separator):
                break
            self._advance()
        close_tok = self._expect(close, f"{_EXPECTED[separator]} or {_EXPECTED[close]}")
        return items, close_tok

    def _parse_tupled(
        self, parse_item: Callable[[], T], *, allow_group: bool,
    ) -> tuple[list[T], bool, Span]:
        """Parse a parenthesized, comma separated list.

        ``()`` is an empty tuple, ``(x,)`` a one-element tuple and ``(x, y)``
        or ``(x, y,)`` a longer one. ``(x)`` has no comma: it is a grouping
        when ``allow_group`` is set and an error otherwise. Returns the items,
        whether they form a tuple, and the span including the parentheses.
        """
        open_tok = self._expect(TokenKind.LPAREN)
        if self._at(TokenKind.RPAREN):
            close_tok = self._advance()
            return [], True, open_tok.span.through(close_tok.span)

        first = parse_item()
        if not self._at(TokenKind.COMMA):
            if not allow_group:
                raise self._unexpected(
                    "','", notes=["a one-element tuple type is written with a trailing comma: (T,)"],
                )
            close_tok = self._expect(TokenKind.RPAREN, "',' or ')'")
            return [first], False, open_tok.span.through(close_tok.span)

        self._advance()  # ,
        rest, close_tok = self._parse_separated(parse_item, TokenKind.COMMA, TokenKind.RPAREN)
        return [first, *rest], True, open_tok.span.through(close_tok.span)

    # ── Top-level parsing ────────────────────────────────────────

    def parse(self) -> Module:
        """Parse the entire token stream into a Module."""
        start = self._current().span
        functions: list[FunctionDef] = []
        while self._at(TokenKind.FUNC):
            functions.append(self._parse_function_def())
            if self._at(TokenKind.SEMICOLON):
                self._advance()
        if not self._at(TokenKind.EOF):
            raise self._unexpected("'func' or end of input")
        return Module(functions, start.through(self._current().span))

    # ── Function definitions ─────────────────────────────────────

    def _parse_function_def(self) -> FunctionDef:
        start = self._expect(TokenKind.FUNC).span
        name_tok = self._expect(TokenKind.IDENTIFIER, "function name")
        self._expect(TokenKind.LPAREN)
        params, _ = self._parse_separated(self._parse_param, TokenKind.COMMA, TokenKind.RPAREN)

        return_type = None
        if self._at_any(TokenKind.TYPE_IDENTIFIER, TokenKind.LPAREN):
            return_type = self._parse_type_name()

        body, body_span = self._parse_block()
        return FunctionDef(
            str(name_tok.value), params, return_type, body, start.through(body_span),
        )

    def _parse_param(self) -> Param:
        name_tok = self._expect(TokenKind.IDENTIFIER, "parameter name")
        type_name = self._parse_type_name()
        return Param(str(name_tok.value), type_name, _join(name_tok.span, type_name))

    # ── Type names ───────────────────────────────────────────────

    def _parse_type_name(self) -> TypeName:
        tok = self._current()
        if tok.kind == TokenKind.TYPE_IDENTIFIER:
            self._advance()
            return SimpleType(str(tok.value), tok.span)
        if tok.kind == TokenKind.LPAREN:
            self._enter_nested()
            try:
                elements, _, span = self._parse_tupled(self._parse_type_name, allow_group=False)
            finally:
                self._depth -= 1
            return TupleType(elements, span)
        raise self._unexpected("type name")

    # ── Blocks ───────────────────────────────────────────────────

    def _parse_block(self) -> tuple[list[Expr], Span]:
        """Parse ``{ expr; expr; ... [expr] }``, returning the entries and the span."""
        open_tok = self._expect(TokenKind.LBRACE)
        body, close_tok = self._parse_separated(
            self._parse_expression, TokenKind.SEMICOLON, TokenKind.RBRACE,
        )
        return body, open_tok.span.through(close_tok.span)

    # ── Expressions ──────────────────────────────────────────────

    def _parse_expression(self) -> Expr:
        """Level 0: ``name := expr``, ``name = expr`` or a level 1 expression."""
        if self._at(TokenKind.IDENTIFIER) and self._peek(1).kind in (TokenKind.DECLARE, TokenKind.ASSIGN):
            name_tok = self._advance()
            op_tok = self._advance()
            value = self._parse_or()
            span = _join(name_tok.span, value)
            if op_tok.kind == TokenKind.DECLARE:
                return Declare(str(name_tok.value), value, span)
            return Assign(str(name_tok.value), value, span)
        return self._parse_or()

    def _parse_or(self) -> Expr:
        return self._parse_right_associative(TokenKind.OR, BoolOp.OR, self._parse_and)

    def _parse_and(self) -> Expr:
        return self._parse_right_associative(TokenKind.AND, BoolOp.AND, self._parse_equality)

    def _parse_equality(self) -> Expr:
        return self._parse_non_associative(_EQUALITY_OPS, self._parse_relational)

    def _parse_relational(self) -> Expr:
        return self._parse_non_associative(_RELATIONAL_OPS, self._parse_additive)

    def _parse_additive(self) -> Expr:
        return self._parse_left_associative(_ADDITIVE_OPS, self._parse_multiplicative)

    def _parse_multiplicative(self) -> Expr:
        return self._parse_left_associative(_MULTIPLICATIVE_OPS, self._parse_unary)

    def _parse_right_associative(
        self, kind: TokenKind, op: BoolOp, parse_operand: Callable[[], Expr],
    ) -> Expr:
        """``operand (op operand)*`` folded from the right: ``a op (b op c)``."""
        operands = [parse_operand()]
        while self._at(kind):
            self._advance()
            operands.append(parse_operand())
        result = operands.pop()
        while operands:
            left = operands.pop()
            result = ConditionalExpr(op, left, result, _join(left.span, result))
        return result

    def _parse_non_associative(
        self, ops: dict[TokenKind, BinOp], parse_operand: Callable[[], Expr],
    ) -> Expr:
        """``operand (op operand)?`` where a second operator of the same level is an error."""
        left = parse_operand()
        if self._current().kind not in ops:
            return left
        op = ops[self._advance().kind]
        right = parse_operand()
        if self._current().kind in ops:
            raise ParseError(
                f"comparison operators cannot be chained: unexpected {self._current().describe()}",
                self._current(),
                CHAINED_COMPARISON,
                notes=["use parentheses to group the comparisons"],
            )
        return BinaryExpr(op, left, right, _join(left.span, right))

    def _parse_left_associative(
        self, ops: dict[TokenKind, BinOp], parse_operand: Callable[[], Expr],
    ) -> Expr:
        left = parse_operand()
        while self._current().kind in ops:
            op = ops[self._advance().kind]
            right = parse_operand()
            left = BinaryExpr(op, left, right, _join(left.span, right))
        return left

    def _parse_unary(self) -> Expr:
        """Level 7: ``!`` binds to a single atom."""
        if self._at(TokenKind.BANG):
            bang = self._advance()
            operand = self._parse_atom()
            return NotExpr(operand, _join(bang.span, operand))
        return self._parse_atom()

    def _parse_atom(self) -> Expr:
        tok = self._current()

        if tok.kind == TokenKind.IDENTIFIER and self._peek(1).kind == TokenKind.LPAREN:
            return self._parse_call()

        if tok.kind == TokenKind.INTEGER_LIT:
            self._advance()
            return IntegerLit(int(tok.value), tok.span)

        if tok.kind == TokenKind.STRING_LIT:
            self._advance()
            return StringLit(str(tok.value), tok.span)

        if tok.kind == TokenKind.BOOLEAN_LIT:
            self._advance()
            return BooleanLit(bool(tok.value), tok.span)

        if tok.kind == TokenKind.IDENTIFIER:
            self._advance()
            return IdentifierExpr(str(tok.value), tok.span)

        if tok.kind in (TokenKind.LBRACE, TokenKind.IF, TokenKind.LPAREN):
            self._enter_nested()
            try:
                return self._parse_nested_atom()
            finally:
                self._depth -= 1

        raise self._unexpected("expression")

    def _parse_nested_atom(self) -> Expr:
        """Block, if/else, tuple or parenthesized group."""
        if self._at(TokenKind.LBRACE):
            body, span = self._parse_block()
            return BlockExpr(body, span)

        if self._at(TokenKind.IF):
            return self._parse_if()

        elements, is_tuple, span = self._parse_tupled(self._parse_expression, allow_group=True)
        if is_tuple:
            return TupleExpr(elements, span)
        return elements[0]

    def _parse_call(self) -> CallExpr:
        name_tok = self._advance()
        self._enter_nested()
        try:
            self._expect(TokenKind.LPAREN)
            args, close_tok = self._parse_separated(
                self._parse_expression, TokenKind.COMMA, TokenKind.RPAREN,
            )
        finally:
            self._depth -= 1
        return CallExpr(str(name_tok.value), args, name_tok.span.through(close_tok.span))

    def _parse_if(self) -> IfExpr:
        """``if cond {..}`` with an optional ``else {..}`` or ``else if ...`` chain.

        An ``else if`` chain is read in a loop and folded from the last branch
        back, so each ``else if`` becomes the single entry of the previous
        branch's else-body.
        """
        branches: list[tuple[Span, Expr, list[Expr]]] = []
        else_body: list[Expr] = []
        while True:
            start = self._expect(TokenKind.IF).span
            condition = self._parse_expression()
            then_body, end = self._parse_block()
            branches.append((start, condition, then_body))
            if not self._at(TokenKind.ELSE):
                break
            self._advance()
            if self._at(TokenKind.IF):
                continue
            if not self._at(TokenKind.LBRACE):
                raise self._unexpected("'if' or '{'")
            else_body, end = self._parse_block()
            break

        for start, condition, then_body in reversed(branches):
            node = IfExpr(condition, then_body, else_body, start.through(end))
            else_body = [node]
        return node


def _join(start: Span | None, end: Expr | TypeName | Span | None) -> Span | None:
    """Span from ``start`` to the end of ``end`` (a span or a node)."""
    end_span = end if isinstance(end, Span) or end is None else end.span
    if start is None or end_span is None:
        return start or end_span
    return start.through(end_span)


def parse_source(source: str, filename: str = "<stdin>") -> Module:
    """Lex and parse Iku source text.

    Lexical and syntax errors both surface as ``CompileError`` subclasses.
    """
    tokens = Lexer(source, filename).lex()
    return Parser(tokens, filename).parse()
