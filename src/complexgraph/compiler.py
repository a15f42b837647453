"""Turn expression text into a validated, callable handle.

``compile_expression`` is the single entry point callers need: it parses,
validates exactly once, and returns a :class:`CompiledExpression` that can be
called any number of times, from any number of threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np

from complexgraph.errors import ExpressionError, NotConstantError
from complexgraph.evaluator import evaluate
from complexgraph.nodes import Expr
from complexgraph.parser import parse
from complexgraph.validator import validate, validate_expression

DEFAULT_VARIABLE = "z"


@dataclass(frozen=True, slots=True)
class CompiledExpression:
    source: str
    variable: str
    expr: Expr
    variables: frozenset[str]

    @property
    def is_constant(self) -> bool:
        return not self.variables

    def __call__(self, value: complex) -> complex:
        """Evaluate at a single point, binding the configured variable to ``value``."""
        return evaluate(self.expr, {self.variable: value})

    def evaluate_many(self, values: Any) -> np.ndarray:
        """Evaluate element-wise over an array of sample points."""
        points = np.asarray(values, dtype=np.complex128)
        out = evaluate(self.expr, {self.variable: points})
        return np.broadcast_to(out, points.shape)


def compile_expression(source: str, variable: str = DEFAULT_VARIABLE) -> CompiledExpression:
    """Parse and validate ``source``.

    Raises an :class:`~complexgraph.errors.ExpressionError` subclass on the
    first lexical, syntax or validation failure.
    """
    expr = parse(source)
    names = validate_expression(expr, variable)
    return CompiledExpression(source=source, variable=variable, expr=expr, variables=names)


def check_expression(source: str, variable: str = DEFAULT_VARIABLE) -> ExpressionError | None:
    """Return the first error in ``source``, or None if it compiles."""
    try:
        compile_expression(source, variable)
    except ExpressionError as e:
        return e
    return None


def parse_complex(text: str) -> complex:
    """Evaluate a constant expression such as ``1+2i`` or ``-0.5i``."""
    expr = parse(text)
    seen: set[str] = set()
    validate(expr, seen)
    if seen:
        raise NotConstantError(min(seen))
    return complex(evaluate(expr, {}))
