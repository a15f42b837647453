"""Evaluate a validated expression tree over complex numbers.

Arithmetic is done in numpy ``complex128`` with floating-point errors
ignored, so poles and overflow produce infinities or NaNs instead of
exceptions: ``1/(1+z*z)`` at ``z = 1i`` evaluates to ``inf+nanj``.

Environment values may be scalars or numpy arrays; arrays are evaluated
element-wise in one pass.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import numpy as np

from complexgraph.functions import FUNCTIONS
from complexgraph.nodes import Binary, Call, Expr, Literal, Unary, Variable

Env = Mapping[str, Any]


def _eval(expr: Expr, env: Env) -> Any:
    if isinstance(expr, Variable):
        return np.asarray(env[expr.name], dtype=np.complex128)[()]
    if isinstance(expr, Literal):
        return np.complex128(expr.value)
    if isinstance(expr, Unary):
        operand = _eval(expr.operand, env)
        if expr.op == "-":
            return -operand
        if expr.op == "+":
            return operand
        raise ValueError(f"unsupported unary operator: {expr.op!r}")
    if isinstance(expr, Binary):
        left = _eval(expr.left, env)
        right = _eval(expr.right, env)
        if expr.op == "+":
            return left + right
        if expr.op == "-":
            return left - right
        if expr.op == "*":
            return left * right
        if expr.op == "/":
            return left / right
        raise ValueError(f"unsupported binary operator: {expr.op!r}")
    if isinstance(expr, Call):
        fn = FUNCTIONS[expr.name]
        return fn.impl(*(_eval(a, env) for a in expr.args))
    raise TypeError(f"not an expression node: {type(expr).__name__}")


def evaluate(expr: Expr, env: Env) -> Any:
    """Evaluate ``expr`` with variables bound by ``env``.

    ``expr`` must already have passed validation. Returns a
    ``numpy.complex128`` (a ``complex`` subclass) for scalar bindings and a
    complex array for array bindings. Never mutates ``expr``.
    """
    with np.errstate(all="ignore"):
        return _eval(expr, env)
