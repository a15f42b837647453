"""Pull-based tokenizer for complex-valued expressions.

Numeric literals::

    number := digits ['.' digits*] [exponent] [imag]
            | '.' digits [exponent] [imag]
    exponent := ('e' | 'E') ['+' | '-'] digits
    imag := 'i' | 'j'

A literal without the ``imag`` suffix is real (``4`` is ``4+0i``); with the
suffix it is purely imaginary (``4i`` is ``0+4i``). ``3+4`` is therefore the
real number 7, while ``3+4i`` is the complex number 3+4i. A bare ``i`` is an
identifier, not the imaginary unit; write ``1i``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from complexgraph.errors import LexicalError

OPERATORS = frozenset("+-*/")


class TokenKind(Enum):
    IDENT = auto()
    NUMBER = auto()
    OPERATOR = auto()
    LPAREN = auto()
    RPAREN = auto()
    COMMA = auto()
    EOF = auto()


_PUNCTUATION = {
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    ",": TokenKind.COMMA,
}


@dataclass(frozen=True, slots=True)
class Token:
    kind: TokenKind
    text: str
    pos: int  # 0-based character offset in the source
    value: complex | None = None

    def describe(self) -> str:
        """Describe the token for use in error messages."""
        if self.kind is TokenKind.EOF:
            return "end of input"
        if self.kind is TokenKind.IDENT:
            return f"identifier {self.text}"
        if self.kind is TokenKind.NUMBER:
            return f"number {self.text}"
        return repr(self.text)


def _is_digit(c: str) -> bool:
    # ASCII only: str.isdigit() accepts superscripts that float() rejects.
    return "0" <= c <= "9"


def _is_ident_start(c: str) -> bool:
    return c.isalpha() or c == "_"


def _is_ident_char(c: str) -> bool:
    return c.isalnum() or c == "_"


class Lexer:
    """Produces one token per call to :meth:`next_token`."""

    def __init__(self, source: str) -> None:
        self._src = source
        self._pos = 0

    def next_token(self) -> Token:
        src = self._src
        n = len(src)
        i = self._pos

        while i < n and src[i].isspace():
            i += 1

        if i >= n:
            self._pos = n
            return Token(TokenKind.EOF, "", n)

        c = src[i]

        if _is_ident_start(c):
            j = i + 1
            while j < n and _is_ident_char(src[j]):
                j += 1
            self._pos = j
            return Token(TokenKind.IDENT, src[i:j], i)

        if _is_digit(c) or (c == "." and i + 1 < n and _is_digit(src[i + 1])):
            return self._scan_number(i)

        if c in OPERATORS:
            self._pos = i + 1
            return Token(TokenKind.OPERATOR, c, i)

        kind = _PUNCTUATION.get(c)
        if kind is not None:
            self._pos = i + 1
            return Token(kind, c, i)

        raise LexicalError(c, i)

    def _scan_number(self, start: int) -> Token:
        src = self._src
        n = len(src)
        j = start
        while j < n and _is_digit(src[j]):
            j += 1
        if j < n and src[j] == ".":
            j += 1
            while j < n and _is_digit(src[j]):
                j += 1

        if j < n and src[j] in "eE":
            k = j + 1
            if k < n and src[k] in "+-":
                k += 1
            if k >= n or not _is_digit(src[k]):
                bad = src[k] if k < n else "end of input"
                raise LexicalError(bad, k, detail=f"malformed exponent in {src[start:k]!r}")
            while k < n and _is_digit(src[k]):
                k += 1
            j = k

        mantissa = src[start:j]
        imaginary = False
        if j < n and src[j] in "ij" and not (j + 1 < n and _is_ident_char(src[j + 1])):
            imaginary = True
            j += 1

        magnitude = float(mantissa)
        value = complex(0.0, magnitude) if imaginary else complex(magnitude, 0.0)
        self._pos = j
        return Token(TokenKind.NUMBER, src[start:j], start, value)


def tokenize(source: str) -> list[Token]:
    """Lex ``source`` eagerly, including the trailing EOF token."""
    lex = Lexer(source)
    tokens: list[Token] = []
    while True:
        tok = lex.next_token()
        tokens.append(tok)
        if tok.kind is TokenKind.EOF:
            return tokens
