"""complexgraph exception hierarchy.

Keep this module small and dependency-free: it is imported broadly across the
project and by tests.

Every expression error carries its details as attributes so callers (CLI,
HTTP handler, MCP tools) can report them as data; ``str()`` gives the
human-readable message.
"""

from __future__ import annotations


class ComplexGraphError(Exception):
    """Base exception for all complexgraph errors."""


class ConfigError(ComplexGraphError):
    """Raised for invalid configuration or render parameters."""


class ExpressionError(ComplexGraphError):
    """Base class for errors raised while parsing or validating an expression."""

    pos: int | None = None


class EmptyExpressionError(ExpressionError):
    def __init__(self) -> None:
        super().__init__("empty expression")


class LexicalError(ExpressionError):
    """An unrecognized character in the source text."""

    def __init__(self, char: str, pos: int, *, detail: str | None = None) -> None:
        self.char = char
        self.pos = pos
        self.detail = detail
        msg = detail or f"unexpected character {char!r}"
        super().__init__(f"{msg} at offset {pos}")


class ExpressionSyntaxError(ExpressionError):
    """The token stream does not match the grammar."""

    def __init__(self, expected: str | None, actual: str, pos: int) -> None:
        self.expected = expected
        self.actual = actual
        self.pos = pos
        if expected is None:
            msg = f"unexpected {actual}"
        else:
            msg = f"got {actual}, want {expected}"
        super().__init__(f"{msg} at offset {pos}")


class UnknownFunctionError(ExpressionError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"unknown function {name!r}")


class ArityError(ExpressionError):
    def __init__(self, name: str, actual: int, expected: int) -> None:
        self.name = name
        self.actual = actual
        self.expected = expected
        super().__init__(f"call to {name!r} has {actual} args, want {expected}")


class UnsupportedOperatorError(ExpressionError):
    def __init__(self, op: str, *, arity: str) -> None:
        self.op = op
        self.arity = arity
        super().__init__(f"unsupported {arity} operator {op!r}")


class TooManyVariablesError(ExpressionError):
    def __init__(self, names: frozenset[str]) -> None:
        self.names = names
        super().__init__(f"too many variables: {', '.join(sorted(names))}")


class UndefinedVariableError(ExpressionError):
    def __init__(self, name: str, *, parameter: str) -> None:
        self.name = name
        self.parameter = parameter
        super().__init__(f"undefined variable: {name} (expected {parameter})")


class ExpressionTooDeepError(ExpressionError):
    """Nesting or tree depth beyond what the recursive passes can walk."""

    def __init__(self, limit: int, pos: int) -> None:
        self.limit = limit
        self.pos = pos
        super().__init__(f"expression nested too deeply (limit {limit}) at offset {pos}")


class NotConstantError(ExpressionError):
    """A constant was required but the text references a variable."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"expected a constant, found variable {name}")
