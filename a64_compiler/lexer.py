"""
Lexer / Tokenizer for the a64 expression compiler.

Converts a single line of arithmetic source into a flat list of tokens
for the parser. The language has three token classes: reserved
punctuation (operators and parentheses), decimal integer literals, and
the end-of-input marker.
"""

from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from typing import List

from .errors import CompileError, ErrorKind

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Token types
# ──────────────────────────────────────────────

class TokenType(enum.Enum):
    RESERVED = "RESERVED"
    NUM = "NUM"
    EOF = "EOF"


# ──────────────────────────────────────────────
# Token data class
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Token:
    type: TokenType
    text: str
    pos: int
    value: int = 0

    @property
    def length(self) -> int:
        return len(self.text)

    def __repr__(self):
        if self.type is TokenType.NUM:
            return f"Token(NUM, {self.value}, @{self.pos})"
        return f"Token({self.type.name}, {self.text!r}, @{self.pos})"


# ──────────────────────────────────────────────
# Operator tables (two-character forms are tried first)
# ──────────────────────────────────────────────

MULTI_CHAR_OPS = ("==", "!=", "<=", ">=")

SINGLE_CHAR_OPS = "+-*/()<>"

DIGITS = "0123456789"

# Widest literal a 64-bit register can hold
MAX_LITERAL = (1 << 64) - 1


# ──────────────────────────────────────────────
# Lexer
# ──────────────────────────────────────────────

class LexerError(CompileError):
    kind = ErrorKind.LEXICAL


class Lexer:
    """Tokenizes an expression string into a list of Tokens."""

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.tokens: List[Token] = []

    def _peek(self, offset: int = 0) -> str:
        i = self.pos + offset
        return self.source[i] if i < len(self.source) else "\0"

    def _error(self, message: str) -> LexerError:
        return LexerError(message, self.pos, self.source)

    def _read_number(self) -> Token:
        start = self.pos
        while self.pos < len(self.source) and self.source[self.pos] in DIGITS:
            self.pos += 1
        text = self.source[start:self.pos]
        value = int(text)
        if value > MAX_LITERAL:
            raise LexerError("integer literal out of range", start, self.source)
        return Token(TokenType.NUM, text, start, value)

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source and return a list of tokens."""
        self.tokens = []

        while self.pos < len(self.source):
            ch = self._peek()

            if ch.isspace():
                self.pos += 1
                continue

            # "<=" must not be split into "<" followed by a stray "="
            two = self.source[self.pos:self.pos + 2]
            if two in MULTI_CHAR_OPS:
                self.tokens.append(Token(TokenType.RESERVED, two, self.pos))
                self.pos += 2
                continue

            if ch in SINGLE_CHAR_OPS:
                self.tokens.append(Token(TokenType.RESERVED, ch, self.pos))
                self.pos += 1
                continue

            if ch in DIGITS:
                self.tokens.append(self._read_number())
                continue

            raise self._error(f"unexpected character {ch!r}")

        self.tokens.append(Token(TokenType.EOF, "", self.pos))
        log.debug("tokenized %d tokens", len(self.tokens) - 1)
        return self.tokens


def tokenize(source: str) -> List[Token]:
    """Convenience wrapper: tokenize source with a fresh Lexer."""
    return Lexer(source).tokenize()
