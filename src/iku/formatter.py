"""AST-walking pretty-printer for Iku source code.

Produces canonical formatting for .iku files: one block entry per line
(the lexer turns those line breaks back into semicolons), ``} else`` on the
closing brace's line, and only the parentheses the precedence ladder needs.

Limitation: ``//`` comments are discarded by the lexer and are not preserved.
"""

from __future__ import annotations

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
    SimpleType,
    StringLit,
    TupleExpr,
    TypeName,
)

# Precedence levels, matching the parser's ladder (higher binds tighter)
_ASSIGN = 0
_OR = 1
_AND = 2
_EQUALITY = 3
_RELATIONAL = 4
_ADDITIVE = 5
_MULTIPLICATIVE = 6
_UNARY = 7
_ATOM = 8

_BINOP_LEVEL: dict[BinOp, int] = {
    BinOp.EQUAL: _EQUALITY, BinOp.NOT_EQUAL: _EQUALITY,
    BinOp.LESS_EQUAL: _RELATIONAL, BinOp.LESS: _RELATIONAL,
    BinOp.GREATER_EQUAL: _RELATIONAL, BinOp.GREATER: _RELATIONAL,
    BinOp.ADD: _ADDITIVE, BinOp.SUB: _ADDITIVE,
    BinOp.MUL: _MULTIPLICATIVE, BinOp.DIV: _MULTIPLICATIVE, BinOp.MOD: _MULTIPLICATIVE,
}

_STRING_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t"}


class IkuFormatter:
    """Format a parsed Iku Module back to canonical source text."""

    def __init__(self, indent: int = 4) -> None:
        self.indent = indent

    # ── Public API ─────────────────────────────────────────────

    def format(self, module: Module) -> str:
        """Format a module to canonical source text."""
        result = "\n\n".join(self._format_function_def(fd) for fd in module.functions)
        if not result.endswith("\n"):
            result += "\n"
        return result

    def format_expr(self, expr: Expr) -> str:
        return self._format_expr(expr, _ASSIGN)

    # ── Declarations ───────────────────────────────────────────

    def _format_function_def(self, fd: FunctionDef) -> str:
        params = ", ".join(f"{p.name} {self._format_type_name(p.type_name)}" for p in fd.params)
        sig = f"func {fd.name}({params})"
        if fd.return_type is not None:
            sig += f" {self._format_type_name(fd.return_type)}"
        return f"{sig} {self._format_block(fd.body)}"

    def _format_type_name(self, tn: TypeName) -> str:
        if isinstance(tn, SimpleType):
            return tn.name
        return self._format_tupled([self._format_type_name(e) for e in tn.elements])

    # ── Expressions ────────────────────────────────────────────

    def _format_expr(self, expr: Expr, min_level: int) -> str:
        """Format ``expr``, parenthesized if it binds looser than ``min_level``."""
        text, level = self._format_with_level(expr)
        if level < min_level:
            return f"({text})"
        return text

    def _format_with_level(self, expr: Expr) -> tuple[str, int]:
        if isinstance(expr, Declare):
            return f"{expr.name} := {self._format_expr(expr.value, _OR)}", _ASSIGN
        if isinstance(expr, Assign):
            return f"{expr.name} = {self._format_expr(expr.value, _OR)}", _ASSIGN
        if isinstance(expr, ConditionalExpr):
            return self._format_conditional(expr)
        if isinstance(expr, BinaryExpr):
            return self._format_binary(expr), _BINOP_LEVEL[expr.op]
        if isinstance(expr, NotExpr):
            return f"!{self._format_expr(expr.operand, _ATOM)}", _UNARY
        return self._format_atom(expr), _ATOM

    def _format_conditional(self, expr: ConditionalExpr) -> tuple[str, int]:
        level = _OR if expr.op == BoolOp.OR else _AND
        # Right associative: walk the right spine, only left operands need the tighter level
        parts: list[str] = []
        node: Expr = expr
        while isinstance(node, ConditionalExpr) and node.op == expr.op:
            parts.append(self._format_expr(node.left, level + 1))
            node = node.right
        parts.append(self._format_expr(node, level))
        return f" {expr.op.value} ".join(parts), level

    def _format_binary(self, expr: BinaryExpr) -> str:
        level = _BINOP_LEVEL[expr.op]
        if level in (_EQUALITY, _RELATIONAL):
            # Non associative: both operands one level tighter
            left = self._format_expr(expr.left, level + 1)
            right = self._format_expr(expr.right, level + 1)
            return f"{left} {expr.op.value} {right}"

        # Left associative: walk the left spine of same-level operators
        tail: list[str] = []
        node: Expr = expr
        while isinstance(node, BinaryExpr) and _BINOP_LEVEL[node.op] == level:
            tail.append(f"{node.op.value} {self._format_expr(node.right, level + 1)}")
            node = node.left
        return " ".join([self._format_expr(node, level), *reversed(tail)])

    def _format_atom(self, expr: Expr) -> str:
        if isinstance(expr, IntegerLit):
            return str(expr.value)
        if isinstance(expr, StringLit):
            return '"' + "".join(_STRING_ESCAPES.get(c, c) for c in expr.value) + '"'
        if isinstance(expr, BooleanLit):
            return "true" if expr.value else "false"
        if isinstance(expr, IdentifierExpr):
            return expr.name
        if isinstance(expr, CallExpr):
            args = ", ".join(self.format_expr(a) for a in expr.args)
            return f"{expr.name}({args})"
        if isinstance(expr, BlockExpr):
            return self._format_block(expr.body)
        if isinstance(expr, IfExpr):
            return self._format_if(expr)
        if isinstance(expr, TupleExpr):
            return self._format_tupled([self.format_expr(e) for e in expr.elements])
        raise TypeError(f"cannot format {type(expr).__name__}")

    def _format_if(self, expr: IfExpr) -> str:
        parts: list[str] = []
        node = expr
        while True:
            parts.append(f"if {self.format_expr(node.condition)} {self._format_block(node.then_body)}")
            if len(node.else_body) == 1 and isinstance(node.else_body[0], IfExpr):
                node = node.else_body[0]
                continue
            if node.else_body:
                parts.append(self._format_block(node.else_body))
            return " else ".join(parts)

    def _format_block(self, body: list[Expr]) -> str:
        if not body:
            return "{}"
        entries = "\n".join(self.format_expr(e) for e in body)
        return "{\n" + self._indent(entries) + "\n}"

    # ── Helpers ────────────────────────────────────────────────

    @staticmethod
    def _format_tupled(items: list[str]) -> str:
        if len(items) == 1:
            return f"({items[0]},)"
        return f"({', '.join(items)})"

    def _indent(self, text: str) -> str:
        prefix = " " * self.indent
        return "\n".join(prefix + line if line else line for line in text.splitlines())
