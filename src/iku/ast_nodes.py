"""AST node definitions for the Iku language.

Every node is a frozen dataclass owning its children. The ``span`` of a node
records where it came from but takes no part in equality or ``repr``, so two
trees parsed from differently laid out sources compare equal when their
structure is the same.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from iku.source import Span


def _span_field() -> Span | None:
    return field(default=None, compare=False, repr=False)  # type: ignore[return-value]


# ── Operators ────────────────────────────────────────────────────


class BoolOp(Enum):
    OR = "||"
    AND = "&&"


class BinOp(Enum):
    EQUAL = "=="
    NOT_EQUAL = "!="
    LESS_EQUAL = "<="
    LESS = "<"
    GREATER_EQUAL = ">="
    GREATER = ">"
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"


# ── Type names ───────────────────────────────────────────────────


@dataclass(frozen=True)
class SimpleType:
    name: str
    span: Span | None = _span_field()


@dataclass(frozen=True)
class TupleType:
    elements: list[TypeName]
    span: Span | None = _span_field()


TypeName = Union[SimpleType, TupleType]


# ── Literals ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class IntegerLit:
    value: int
    span: Span | None = _span_field()


@dataclass(frozen=True)
class StringLit:
    value: str
    span: Span | None = _span_field()


@dataclass(frozen=True)
class BooleanLit:
    value: bool
    span: Span | None = _span_field()


# ── Expressions ──────────────────────────────────────────────────


@dataclass(frozen=True)
class Declare:
    """``name := value``, introduces a new binding."""

    name: str
    value: Expr
    span: Span | None = _span_field()


@dataclass(frozen=True)
class Assign:
    """``name = value``, rebinds an existing name."""

    name: str
    value: Expr
    span: Span | None = _span_field()


@dataclass(frozen=True)
class ConditionalExpr:
    op: BoolOp
    left: Expr
    right: Expr
    span: Span | None = _span_field()


@dataclass(frozen=True)
class BinaryExpr:
    op: BinOp
    left: Expr
    right: Expr
    span: Span | None = _span_field()


@dataclass(frozen=True)
class NotExpr:
    operand: Expr
    span: Span | None = _span_field()


@dataclass(frozen=True)
class CallExpr:
    name: str
    args: list[Expr]
    span: Span | None = _span_field()


@dataclass(frozen=True)
class IdentifierExpr:
    name: str
    span: Span | None = _span_field()


@dataclass(frozen=True)
class BlockExpr:
    """A nested scope.

    ``body`` holds the entries exactly as parsed. Whether the last entry is
    the block's value (no trailing ``;``) is not recorded here.
    """

    body: list[Expr]
    span: Span | None = _span_field()


@dataclass(frozen=True)
class IfExpr:
    """``if condition {then} else {else}``.

    ``else_body`` is empty without an ``else`` and holds a single ``IfExpr``
    for an ``else if`` chain.
    """

    condition: Expr
    then_body: list[Expr]
    else_body: list[Expr]
    span: Span | None = _span_field()


@dataclass(frozen=True)
class TupleExpr:
    elements: list[Expr]
    span: Span | None = _span_field()


Expr = Union[
    Declare,
    Assign,
    ConditionalExpr,
    BinaryExpr,
    NotExpr,
    CallExpr,
    IntegerLit,
    StringLit,
    BooleanLit,
    IdentifierExpr,
    BlockExpr,
    IfExpr,
    TupleExpr,
]


# ── Declarations ─────────────────────────────────────────────────


@dataclass(frozen=True)
class Param:
    name: str
    type_name: TypeName
    span: Span | None = _span_field()


@dataclass(frozen=True)
class FunctionDef:
    name: str
    params: list[Param]
    return_type: TypeName | None
    body: list[Expr]
    span: Span | None = _span_field()


@dataclass(frozen=True)
class Module:
    """The root of the tree: function declarations in source order."""

    functions: list[FunctionDef]
    span: Span | None = _span_field()
