from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from complexgraph.compiler import (
    CompiledExpression,
    check_expression,
    compile_expression,
    parse_complex,
)
from complexgraph.errors import (
    ArityError,
    ComplexGraphError,
    ConfigError,
    EmptyExpressionError,
    ExpressionError,
    ExpressionSyntaxError,
    ExpressionTooDeepError,
    LexicalError,
    NotConstantError,
    TooManyVariablesError,
    UndefinedVariableError,
    UnknownFunctionError,
    UnsupportedOperatorError,
)
from complexgraph.evaluator import evaluate
from complexgraph.parser import parse
from complexgraph.validator import validate, validate_expression


def _package_version() -> str:
    try:
        return version("complexgraph")
    except PackageNotFoundError:
        # Running from a source checkout, or otherwise not installed.
        return "0.0.0"


__version__ = _package_version()

__all__ = [
    "ArityError",
    "CompiledExpression",
    "ComplexGraphError",
    "ConfigError",
    "EmptyExpressionError",
    "ExpressionError",
    "ExpressionSyntaxError",
    "ExpressionTooDeepError",
    "LexicalError",
    "NotConstantError",
    "TooManyVariablesError",
    "UndefinedVariableError",
    "UnknownFunctionError",
    "UnsupportedOperatorError",
    "__version__",
    "check_expression",
    "compile_expression",
    "evaluate",
    "parse",
    "parse_complex",
    "validate",
    "validate_expression",
]
