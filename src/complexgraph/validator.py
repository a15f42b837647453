"""Semantic validation of a parsed expression tree.

Validation walks the tree once, depth-first, and stops at the first failure.
The parser only builds legal operator nodes; the operator checks here guard
trees built by other means.
"""

from __future__ import annotations

from collections.abc import Mapping

from complexgraph.errors import (
    ArityError,
    TooManyVariablesError,
    UndefinedVariableError,
    UnknownFunctionError,
    UnsupportedOperatorError,
)
from complexgraph.functions import ARITY
from complexgraph.nodes import Binary, Call, Expr, Literal, Unary, Variable

UNARY_OPS = frozenset("+-")
BINARY_OPS = frozenset("+-*/")


def validate(expr: Expr, seen: set[str], *, arity: Mapping[str, int] = ARITY) -> None:
    """Check operators and call arities, recording variable names into ``seen``."""
    if isinstance(expr, Variable):
        seen.add(expr.name)
        return
    if isinstance(expr, Literal):
        return
    if isinstance(expr, Unary):
        if expr.op not in UNARY_OPS:
            raise UnsupportedOperatorError(expr.op, arity="unary")
        validate(expr.operand, seen, arity=arity)
        return
    if isinstance(expr, Binary):
        if expr.op not in BINARY_OPS:
            raise UnsupportedOperatorError(expr.op, arity="binary")
        validate(expr.left, seen, arity=arity)
        validate(expr.right, seen, arity=arity)
        return
    if isinstance(expr, Call):
        want = arity.get(expr.name)
        if want is None:
            raise UnknownFunctionError(expr.name)
        if len(expr.args) != want:
            raise ArityError(expr.name, len(expr.args), want)
        for arg in expr.args:
            validate(arg, seen, arity=arity)
        return
    raise TypeError(f"not an expression node: {type(expr).__name__}")


def check_variables(seen: set[str], parameter: str) -> None:
    """Accept zero variables, or exactly one that equals ``parameter``."""
    if len(seen) > 1:
        raise TooManyVariablesError(frozenset(seen))
    for name in seen:
        if name != parameter:
            raise UndefinedVariableError(name, parameter=parameter)


def validate_expression(expr: Expr, parameter: str = "z") -> frozenset[str]:
    """Run the full validation pass and return the referenced variable names."""
    seen: set[str] = set()
    validate(expr, seen)
    check_variables(seen, parameter)
    return frozenset(seen)
