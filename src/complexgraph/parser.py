"""Recursive-descent parser with precedence climbing.

Grammar (precedence low to high)::

    expr      -> binary(1)
    binary(p) -> unary (op unary)*       # op precedence >= p, rhs at prec(op) + 1
    unary     -> ('+' | '-') unary | primary
    primary   -> IDENT
               | IDENT '(' arg_list? ')'
               | NUMBER
               | '(' expr ')'
    arg_list  -> expr (',' expr)*

``*`` and ``/`` bind tighter than ``+`` and ``-``; all four are
left-associative. The first error aborts the parse; no partial tree is
returned.

Parsing, validation, evaluation and formatting all recurse once per level,
so two limits keep them inside the interpreter's stack:
:data:`MAX_NESTING` bounds parentheses, call arguments and unary chains
while parsing, and :data:`MAX_DEPTH` bounds the height of the finished tree.
The internal ``parse_*`` methods return ``(expr, height)`` pairs.
"""

from __future__ import annotations

from complexgraph.errors import EmptyExpressionError, ExpressionSyntaxError, ExpressionTooDeepError
from complexgraph.lexer import Lexer, Token, TokenKind
from complexgraph.nodes import Binary, Call, Expr, Literal, Unary, Variable

MAX_NESTING = 64
MAX_DEPTH = 256

_PRECEDENCE = {"+": 1, "-": 1, "*": 2, "/": 2}


def precedence(tok: Token) -> int:
    """Binding strength of ``tok`` as a binary operator (0 if it is not one)."""
    if tok.kind is not TokenKind.OPERATOR:
        return 0
    return _PRECEDENCE.get(tok.text, 0)


def _height(depth: int, tok: Token) -> int:
    if depth > MAX_DEPTH:
        raise ExpressionTooDeepError(MAX_DEPTH, tok.pos)
    return depth


class Parser:
    def __init__(self, source: str) -> None:
        self._lex = Lexer(source)
        self._nesting = 0
        self.token = self._lex.next_token()  # current lookahead

    def advance(self) -> Token:
        tok = self.token
        self.token = self._lex.next_token()
        return tok

    def expect(self, kind: TokenKind, want: str) -> Token:
        if self.token.kind is not kind:
            raise ExpressionSyntaxError(want, self.token.describe(), self.token.pos)
        return self.advance()

    def enter(self, tok: Token) -> None:
        self._nesting += 1
        if self._nesting > MAX_NESTING:
            raise ExpressionTooDeepError(MAX_NESTING, tok.pos)

    def leave(self) -> None:
        self._nesting -= 1

    def parse(self) -> Expr:
        """Parse a complete expression; trailing input is an error."""
        expr, _ = self.parse_expr()
        if self.token.kind is not TokenKind.EOF:
            raise ExpressionSyntaxError(None, self.token.describe(), self.token.pos)
        return expr

    def parse_expr(self) -> tuple[Expr, int]:
        return self.parse_binary(1)

    def parse_binary(self, min_prec: int) -> tuple[Expr, int]:
        lhs, depth = self.parse_unary()
        while (prec := precedence(self.token)) >= min_prec:
            op = self.advance()
            rhs, rhs_depth = self.parse_binary(prec + 1)
            lhs = Binary(op.text, lhs, rhs)
            depth = _height(max(depth, rhs_depth) + 1, op)
        return lhs, depth

    def parse_unary(self) -> tuple[Expr, int]:
        tok = self.token
        if tok.kind is TokenKind.OPERATOR and tok.text in ("+", "-"):
            self.advance()
            self.enter(tok)
            operand, depth = self.parse_unary()
            self.leave()
            return Unary(tok.text, operand), _height(depth + 1, tok)
        return self.parse_primary()

    def parse_primary(self) -> tuple[Expr, int]:
        tok = self.token

        if tok.kind is TokenKind.IDENT:
            self.advance()
            if self.token.kind is not TokenKind.LPAREN:
                return Variable(tok.text), 1
            self.enter(self.advance())
            args: list[Expr] = []
            depth = 0
            if self.token.kind is not TokenKind.RPAREN:
                arg, depth = self.parse_expr()
                args.append(arg)
                while self.token.kind is TokenKind.COMMA:
                    self.advance()
                    arg, arg_depth = self.parse_expr()
                    args.append(arg)
                    depth = max(depth, arg_depth)
            self.expect(TokenKind.RPAREN, "')'")
            self.leave()
            return Call(tok.text, tuple(args)), _height(depth + 1, tok)

        if tok.kind is TokenKind.NUMBER and tok.value is not None:
            self.advance()
            return Literal(tok.value), 1

        if tok.kind is TokenKind.LPAREN:
            self.enter(self.advance())
            inner = self.parse_expr()
            self.expect(TokenKind.RPAREN, "')'")
            self.leave()
            return inner

        raise ExpressionSyntaxError("an expression", tok.describe(), tok.pos)


def parse(source: str) -> Expr:
    """Parse ``source`` into an expression tree (not yet validated)."""
    if not source or source.isspace():
        raise EmptyExpressionError()
    return Parser(source).parse()
