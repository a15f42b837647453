"""Error formatting and actionable hints for CLI, HTTP and MCP output.

Keep this module small and dependency-light: it only depends on the error
hierarchy and the function registry.
"""

from __future__ import annotations

from complexgraph.errors import (
    ArityError,
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
from complexgraph.functions import ARITY


_KINDS = {
    LexicalError: "LexicalError",
    ExpressionSyntaxError: "SyntaxError",
    UnknownFunctionError: "UnknownFunction",
    ArityError: "ArityError",
    UnsupportedOperatorError: "UnsupportedOperator",
    TooManyVariablesError: "TooManyVariables",
    UndefinedVariableError: "UndefinedVariable",
    EmptyExpressionError: "EmptyExpression",
    ExpressionTooDeepError: "TooDeep",
    NotConstantError: "NotConstant",
}


def error_kind(exc: ExpressionError) -> str:
    """Stable machine-readable name for an expression error."""
    return _KINDS.get(type(exc), type(exc).__name__)


def caret_line(source: str, pos: int) -> str:
    """Return ``source`` with a second line pointing at offset ``pos``."""
    line = source.replace("\n", " ")
    return f"  {line}\n  {' ' * pos}^"


def format_hint(exc: BaseException) -> str | None:
    """Return an actionable hint for a known error, or None."""
    if isinstance(exc, UnknownFunctionError):
        return "known functions: " + ", ".join(f"{n}/{a}" for n, a in sorted(ARITY.items()))

    if isinstance(exc, ArityError):
        return f"{exc.name} takes exactly {exc.expected} argument(s)"

    if isinstance(exc, UndefinedVariableError):
        if exc.name in ("i", "j"):
            return "write the imaginary unit as 1i"
        return f"write the expression in terms of {exc.parameter}"

    if isinstance(exc, NotConstantError):
        return "points are constants such as 1+2i or -0.5i"

    if isinstance(exc, TooManyVariablesError):
        return "only one free variable is allowed"

    if isinstance(exc, LexicalError):
        if exc.detail is not None:
            return "write numbers like 2.5, 1e-3 or 0.5i"
        if exc.char == "^":
            return "write powers as pow(z, n)"
        return "operators are + - * /; use functions for anything else"

    if isinstance(exc, ExpressionTooDeepError):
        return "split the expression or remove redundant parentheses"

    if isinstance(exc, EmptyExpressionError):
        return "pass an expression such as 1/(1+(z*z))"

    if isinstance(exc, ConfigError) and "TOML" in str(exc):
        return "check complexgraph.toml syntax"

    return None


def format_error_with_hint(exc: BaseException, source: str | None = None) -> str:
    """Format error message, source caret and optional hint for stderr output."""
    msg = (str(exc) or repr(exc)).strip()
    result = f"error: {msg}"
    pos = getattr(exc, "pos", None)
    if source is not None and isinstance(exc, ExpressionError) and pos is not None:
        result += "\n" + caret_line(source, pos)
    hint = format_hint(exc)
    if hint:
        result += f"\nhint: {hint}"
    return result


def error_to_dict(exc: ExpressionError) -> dict[str, object]:
    """JSON-serializable view of an expression error."""
    out: dict[str, object] = {"kind": error_kind(exc), "message": str(exc)}
    for attr in ("pos", "char", "expected", "actual", "name", "op", "parameter", "limit"):
        value = getattr(exc, attr, None)
        if value is not None:
            out[attr] = value
    names = getattr(exc, "names", None)
    if names is not None:
        out["names"] = sorted(names)
    return out
