"""
AST Node definitions for the a64 expression compiler.

The tree is strictly binary: every BinaryOp has exactly two children and
NumberLiteral is the only leaf. Greater-than comparisons have no node
kind of their own; the parser rewrites them as LT/LE with the operands
swapped.
"""

from __future__ import annotations
import enum
from dataclasses import dataclass


class NodeKind(enum.Enum):
    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    EQ = "=="
    NE = "!="
    LT = "<"
    LE = "<="
    NUM = "num"


# ──────────────────────────────────────────────
# Base AST node
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class ASTNode:
    """Base class for all AST nodes."""

    @property
    def kind(self) -> NodeKind:
        raise NotImplementedError


# ──────────────────────────────────────────────
# Expressions
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class NumberLiteral(ASTNode):
    """Integer constant."""
    value: int = 0
    pos: int = 0

    @property
    def kind(self) -> NodeKind:
        return NodeKind.NUM


@dataclass(frozen=True)
class BinaryOp(ASTNode):
    """left <op> right, with op one of the binary NodeKinds."""
    op: NodeKind = NodeKind.ADD
    left: ASTNode = None    # type: ignore
    right: ASTNode = None   # type: ignore
    pos: int = 0

    @property
    def kind(self) -> NodeKind:
        return self.op


def new_binary(op: NodeKind, left: ASTNode, right: ASTNode, pos: int = 0) -> BinaryOp:
    return BinaryOp(op=op, left=left, right=right, pos=pos)


def new_num(value: int, pos: int = 0) -> NumberLiteral:
    return NumberLiteral(value=value, pos=pos)


def dump(node: ASTNode, indent: int = 0) -> str:
    """Render a tree as indented text, one node per line."""
    prefix = "  " * indent
    if isinstance(node, NumberLiteral):
        return f"{prefix}NUM {node.value}"
    if isinstance(node, BinaryOp):
        return "\n".join([
            f"{prefix}{node.op.name}",
            dump(node.left, indent + 1),
            dump(node.right, indent + 1),
        ])
    return f"{prefix}{node!r}"
