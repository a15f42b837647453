"""Expression tree nodes.

The node set is closed: ``Expr`` is the union of the five variants below and
the evaluator and validator dispatch over exactly these types. Nodes are
frozen, so a parsed tree can be shared between threads once validated.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Variable:
    """Free reference, resolved through the environment at evaluation time."""

    name: str


@dataclass(frozen=True, slots=True)
class Literal:
    value: complex


@dataclass(frozen=True, slots=True)
class Unary:
    op: str  # "+" or "-"
    operand: Expr


@dataclass(frozen=True, slots=True)
class Binary:
    op: str  # "+", "-", "*" or "/"
    left: Expr
    right: Expr


@dataclass(frozen=True, slots=True)
class Call:
    name: str
    args: tuple[Expr, ...] = ()


Expr = Variable | Literal | Unary | Binary | Call


def format_expr(expr: Expr) -> str:
    """Render ``expr`` back to fully parenthesized source text."""
    if isinstance(expr, Variable):
        return expr.name
    if isinstance(expr, Literal):
        v = expr.value
        if v.imag == 0:
            return repr(v.real)
        if v.real == 0:
            return f"{v.imag!r}i"
        return f"({v.real!r}+{v.imag!r}i)"
    if isinstance(expr, Unary):
        return f"({expr.op}{format_expr(expr.operand)})"
    if isinstance(expr, Binary):
        return f"({format_expr(expr.left)} {expr.op} {format_expr(expr.right)})"
    if isinstance(expr, Call):
        return f"{expr.name}({', '.join(format_expr(a) for a in expr.args)})"
    raise TypeError(f"not an expression node: {type(expr).__name__}")
