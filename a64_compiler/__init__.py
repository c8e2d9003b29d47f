"""
a64 Expression Compiler
=======================
Compiles one line of integer arithmetic into AArch64 assembly that
returns the value of the expression from main.

Supports: integer literals, + - * /, == != < <= > >=, parentheses,
unary + and -.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌───────────┐
    │ Source   │───>│  Lexer   │───>│  Parser  │───>│  CodeGen  │
    │ (str)    │    │ (tokens) │    │  (tree)  │    │ (asm text)│
    └──────────┘    └──────────┘    └──────────┘    └───────────┘

    - lexer.py:     hand-written scanner, two-character operators first
    - parser.py:    recursive descent, one method per precedence level
    - ast_nodes.py: frozen dataclass tree, strictly binary
    - codegen.py:   post-order walk emitting push/pop stack code
    - emulator.py:  runs the emitted subset of AArch64 for checking
"""

__version__ = "0.1.0"

from .errors import CompileError, ErrorKind
from .lexer import Lexer, LexerError, Token, TokenType, tokenize
from .ast_nodes import ASTNode, BinaryOp, NodeKind, NumberLiteral
from .parser import Parser, ParseError
from .codegen import CodeGenerator, CodeGenError, TARGET_PROFILES
from .emulator import A64Emulator, EmulatorError, StopReason, evaluate


def parse_source(source: str, *, strict: bool = False) -> ASTNode:
    """Tokenize and parse source, returning the root of the tree."""
    tokens = Lexer(source).tokenize()
    return Parser(tokens, source).parse(require_eof=strict)


def compile_source(source: str, *, target: str = "linux", strict: bool = False) -> str:
    """Compile an expression to a complete AArch64 assembly program.

    Args:
        source: the expression text.
        target: key of TARGET_PROFILES; unknown names fall back to 'linux'.
        strict: reject input with tokens left over after the expression.

    Raises:
        CompileError (LexerError or ParseError) on invalid input. No
        partial output is produced.
    """
    tree = parse_source(source, strict=strict)
    return CodeGenerator(target=target, source=source).generate(tree)
