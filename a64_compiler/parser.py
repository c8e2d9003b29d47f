"""
Recursive-descent parser for the a64 expression compiler.

Grammar, lowest precedence first:

    expr       = equality
    equality   = relational ("==" relational | "!=" relational)*
    relational = add ("<" add | "<=" add | ">" add | ">=" add)*
    add        = mul ("+" mul | "-" mul)*
    mul        = unary ("*" unary | "/" unary)*
    unary      = ("+" | "-")? primary
    primary    = "(" expr ")" | num

Every binary level loops to build a left-deep tree, which makes all the
operators left-associative. The token cursor is owned by the Parser
instance, so separate compilations never share state.
"""

from __future__ import annotations
import logging
from typing import List

from .ast_nodes import ASTNode, NodeKind, new_binary, new_num
from .errors import CompileError, ErrorKind
from .lexer import Token, TokenType

log = logging.getLogger(__name__)


class ParseError(CompileError):
    kind = ErrorKind.SYNTAX


class Parser:
    """Recursive descent parser producing an expression tree from tokens."""

    def __init__(self, tokens: List[Token], source: str = ""):
        self.tokens = tokens
        self.source = source
        self.pos = 0

    # ── Cursor ──────────────────────────────

    def _cur(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        tok = self.tokens[self.pos]
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return tok

    def _error(self, message: str) -> ParseError:
        return ParseError(message, self._cur().pos, self.source)

    def _is_reserved(self, op: str) -> bool:
        tok = self._cur()
        return tok.type is TokenType.RESERVED and tok.text == op

    def consume(self, op: str) -> bool:
        """Advance past the current token iff it is the punctuation op."""
        if not self._is_reserved(op):
            return False
        self._advance()
        return True

    def expect(self, op: str) -> None:
        if not self._is_reserved(op):
            raise self._error(f"expected {op!r}")
        self._advance()

    def expect_number(self) -> int:
        tok = self._cur()
        if tok.type is not TokenType.NUM:
            raise self._error("expected a number")
        self._advance()
        return tok.value

    def at_end(self) -> bool:
        return self._cur().type is TokenType.EOF

    # ── Entry point ─────────────────────────

    def parse(self, require_eof: bool = False) -> ASTNode:
        """Parse one expression.

        Trailing tokens are ignored unless require_eof is set, in which
        case they are reported as a syntax error.
        """
        node = self.expr()
        if require_eof and not self.at_end():
            raise self._error("unexpected trailing input")
        log.debug("parsed expression, root %s", node.kind.name)
        return node

    # ── Grammar ─────────────────────────────

    def expr(self) -> ASTNode:
        return self.equality()

    def equality(self) -> ASTNode:
        node = self.relational()
        while True:
            pos = self._cur().pos
            if self.consume("=="):
                node = new_binary(NodeKind.EQ, node, self.relational(), pos)
            elif self.consume("!="):
                node = new_binary(NodeKind.NE, node, self.relational(), pos)
            else:
                return node

    def relational(self) -> ASTNode:
        node = self.add()
        while True:
            pos = self._cur().pos
            if self.consume("<"):
                node = new_binary(NodeKind.LT, node, self.add(), pos)
            elif self.consume("<="):
                node = new_binary(NodeKind.LE, node, self.add(), pos)
            elif self.consume(">"):
                # a > b is emitted as b < a
                node = new_binary(NodeKind.LT, self.add(), node, pos)
            elif self.consume(">="):
                node = new_binary(NodeKind.LE, self.add(), node, pos)
            else:
                return node

    def add(self) -> ASTNode:
        node = self.mul()
        while True:
            pos = self._cur().pos
            if self.consume("+"):
                node = new_binary(NodeKind.ADD, node, self.mul(), pos)
            elif self.consume("-"):
                node = new_binary(NodeKind.SUB, node, self.mul(), pos)
            else:
                return node

    def mul(self) -> ASTNode:
        node = self.unary()
        while True:
            pos = self._cur().pos
            if self.consume("*"):
                node = new_binary(NodeKind.MUL, node, self.unary(), pos)
            elif self.consume("/"):
                node = new_binary(NodeKind.DIV, node, self.unary(), pos)
            else:
                return node

    def unary(self) -> ASTNode:
        pos = self._cur().pos
        if self.consume("+"):
            return self.primary()
        if self.consume("-"):
            return new_binary(NodeKind.SUB, new_num(0, pos), self.primary(), pos)
        return self.primary()

    def primary(self) -> ASTNode:
        if self.consume("("):
            node = self.expr()
            self.expect(")")
            return node

        pos = self._cur().pos
        return new_num(self.expect_number(), pos)
