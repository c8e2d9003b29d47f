"""
AArch64 Code Generator for the a64 expression compiler.

Translates an expression tree into GNU-syntax AArch64 assembly that
evaluates it on the machine stack.

Register usage convention:
  - x2: scratch for loading literals
  - x1: right operand, popped first
  - x0: left operand and result; also the return-value register
  - sp: operand stack, one 16-byte slot per value (AArch64 keeps sp
        16-byte aligned)

Every node's code leaves exactly one more value on the stack than it
found, so the whole expression ends with its result on top. The program
epilogue pops that value into x0 and returns.
"""

from __future__ import annotations
import logging
from typing import Dict, List

from .ast_nodes import ASTNode, BinaryOp, NodeKind, NumberLiteral
from .errors import CompileError, ErrorKind

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Target profiles
# ──────────────────────────────────────────────

TARGET_PROFILES: Dict[str, Dict[str, str]] = {
    "linux": {
        "entry": "main",
        "description": "AArch64 Linux (ELF)",
    },
    "darwin": {
        "entry": "_main",
        "description": "Apple silicon macOS (Mach-O, underscore-prefixed symbols)",
    },
}

ARITH_OPS = {
    NodeKind.ADD: "add",
    NodeKind.SUB: "sub",
    NodeKind.MUL: "mul",
    NodeKind.DIV: "sdiv",
}

COMPARE_CONDS = {
    NodeKind.EQ: "EQ",
    NodeKind.NE: "NE",
    NodeKind.LT: "LT",
    NodeKind.LE: "LE",
}

# Largest value a single `mov Xd, #imm` accepts
MOV_IMM_MAX = 0xFFFF


class CodeGenError(CompileError):
    kind = ErrorKind.CODEGEN


class CodeGenerator:
    """Generates AArch64 assembly from an expression tree."""

    def __init__(self, target: str = "linux", source: str = ""):
        self.profile = TARGET_PROFILES.get(target, TARGET_PROFILES["linux"])
        self.source = source
        self._code_lines: List[str] = []

    # ── Output helpers ────────────────────────

    def _emit(self, line: str):
        self._code_lines.append(f"  {line}")

    def _push(self, reg: str):
        self._emit(f"str {reg}, [sp, -16]!")

    def _pop(self, reg: str):
        self._emit(f"ldr {reg}, [sp], 16")

    def _load_imm(self, reg: str, value: int):
        if value <= MOV_IMM_MAX:
            self._emit(f"mov {reg}, #{value}")
            return
        # movz clears the register, movk patches in each non-zero half-word
        self._emit(f"movz {reg}, #{value & 0xFFFF}")
        for shift in (16, 32, 48):
            chunk = (value >> shift) & 0xFFFF
            if chunk:
                self._emit(f"movk {reg}, #{chunk}, lsl {shift}")

    # ── Tree walk ─────────────────────────────

    def _gen(self, node: ASTNode):
        if isinstance(node, NumberLiteral):
            self._load_imm("x2", node.value)
            self._push("x2")
            return

        if not isinstance(node, BinaryOp):
            raise CodeGenError(f"unknown node {type(node).__name__}",
                               getattr(node, "pos", 0), self.source)

        self._gen(node.left)
        self._gen(node.right)

        self._pop("x1")
        self._pop("x0")

        if node.op in ARITH_OPS:
            self._emit(f"{ARITH_OPS[node.op]} x0, x0, x1")
        elif node.op in COMPARE_CONDS:
            self._emit("cmp x0, x1")
            self._emit(f"cset x0, {COMPARE_CONDS[node.op]}")
        else:
            raise CodeGenError(f"unsupported operator {node.op.name}",
                               node.pos, self.source)

        self._push("x0")

    def generate_lines(self, node: ASTNode) -> List[str]:
        """Return only the instructions that evaluate node onto the stack."""
        self._code_lines = []
        self._gen(node)
        return list(self._code_lines)

    def generate(self, node: ASTNode) -> str:
        """Generate a complete assembly program returning node's value."""
        entry = self.profile["entry"]
        body = self.generate_lines(node)
        lines = [f".globl {entry}", f"{entry}:"]
        lines.extend(body)
        lines.append("  ldr x0, [sp], 16")
        lines.append("  ret")
        log.debug("generated %d instructions for %s", len(body) + 2, entry)
        return "\n".join(lines) + "\n"
