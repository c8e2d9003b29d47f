"""
AArch64 subset emulator.

Executes the assembly text produced by CodeGenerator so that compiled
programs can be checked without a cross toolchain. Only the instructions
the generator emits are implemented:

    mov / movz / movk   immediate loads
    str Xt, [sp, -N]!   pre-indexed push
    ldr Xt, [sp], N     post-indexed pop
    add / sub / mul / sdiv
    cmp / cset          NZCV flags and condition set
    ret                 stop, result in x0

Registers are 64 bits wide and hold unsigned values; signed views are
taken where the instruction is signed (sdiv, flag conditions, result).

Usage:
    emu = A64Emulator()
    emu.load(asm_text)
    emu.run()
    print(emu.result)
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

log = logging.getLogger(__name__)

MASK64 = (1 << 64) - 1
SIGN64 = 1 << 63


class StopReason(Enum):
    RET = 'RET'
    TIMEOUT = 'TIMEOUT'
    ERROR = 'ERROR'


class EmulatorError(Exception):
    def __init__(self, message: str, line_num: int = 0, line_text: str = ""):
        self.line_num = line_num
        self.line_text = line_text
        where = f" (line {line_num}: {line_text.strip()!r})" if line_num else ""
        super().__init__(f"{message}{where}")


def to_signed(value: int) -> int:
    value &= MASK64
    return value - (1 << 64) if value & SIGN64 else value


@dataclass
class Instruction:
    mnemonic: str
    operand: str
    line_num: int
    raw: str


# ──────────────────────────────────────────────
# Operand patterns
# ──────────────────────────────────────────────

_REG = r'(x(?:[12]?\d|30))'
_IMM = r'#(\d+)'

_RE_MOV = re.compile(rf'^{_REG},\s*{_IMM}$')
_RE_MOVK = re.compile(rf'^{_REG},\s*{_IMM}(?:,\s*lsl\s+(\d+))?$')
_RE_PUSH = re.compile(rf'^{_REG},\s*\[sp,\s*(-?\d+)\]!$')
_RE_POP = re.compile(rf'^{_REG},\s*\[sp\],\s*(-?\d+)$')
_RE_REG3 = re.compile(rf'^{_REG},\s*{_REG},\s*{_REG}$')
_RE_REG2 = re.compile(rf'^{_REG},\s*{_REG}$')
_RE_CSET = re.compile(rf'^{_REG},\s*([A-Za-z]{{2}})$')


def parse_program(source: str) -> List[Instruction]:
    """Split assembly text into instructions, dropping labels and directives."""
    program: List[Instruction] = []
    for num, line in enumerate(source.splitlines(), start=1):
        text = line.split("//", 1)[0].strip()
        if not text or text.startswith("."):
            continue
        if text.endswith(":"):
            continue
        parts = text.split(None, 1)
        operand = parts[1].strip() if len(parts) > 1 else ""
        program.append(Instruction(parts[0].lower(), operand, num, line))
    return program


class A64Emulator:
    """Runs generated code against a register file and a sparse stack."""

    STACK_TOP = 0x7FFF_F000
    DEFAULT_MAX_STEPS = 1_000_000

    def __init__(self):
        self.x: List[int] = [0] * 31
        self.sp = self.STACK_TOP
        self.n = self.z = self.c = self.v = False
        self.stack: Dict[int, int] = {}
        self.program: List[Instruction] = []
        self.pc = 0
        self.steps = 0
        self.error: Optional[EmulatorError] = None
        self._dispatch: Dict[str, Callable[[Instruction], Optional[StopReason]]] = {
            'mov': self._op_mov,
            'movz': self._op_mov,
            'movk': self._op_movk,
            'str': self._op_str,
            'ldr': self._op_ldr,
            'add': self._op_arith,
            'sub': self._op_arith,
            'mul': self._op_arith,
            'sdiv': self._op_arith,
            'cmp': self._op_cmp,
            'cset': self._op_cset,
            'ret': self._op_ret,
        }

    # ── Loading ───────────────────────────────

    def load(self, source: str):
        self.program = parse_program(source)
        self.pc = 0
        log.debug("loaded %d instructions", len(self.program))

    # ── Results ───────────────────────────────

    @property
    def result(self) -> int:
        """x0 as a signed 64-bit integer."""
        return to_signed(self.x[0])

    @property
    def exit_status(self) -> int:
        """What a process returning from main would report."""
        return self.x[0] & 0xFF

    # ── Execution ─────────────────────────────

    def step(self) -> Optional[StopReason]:
        """Execute one instruction. Returns StopReason if stopped, else None."""
        if self.pc >= len(self.program):
            raise EmulatorError("ran past end of program without ret")
        ins = self.program[self.pc]
        handler = self._dispatch.get(ins.mnemonic)
        if handler is None:
            raise EmulatorError(f"unsupported instruction {ins.mnemonic!r}",
                                ins.line_num, ins.raw)
        self.pc += 1
        self.steps += 1
        return handler(ins)

    def run(self, max_steps: int = None) -> StopReason:
        if max_steps is None:
            max_steps = self.DEFAULT_MAX_STEPS
        while self.steps < max_steps:
            try:
                reason = self.step()
            except EmulatorError as e:
                self.error = e
                log.debug("emulation stopped: %s", e)
                return StopReason.ERROR
            if reason is not None:
                return reason
        return StopReason.TIMEOUT

    # ── Operand helpers ───────────────────────

    def _match(self, pattern: re.Pattern, ins: Instruction) -> re.Match:
        m = pattern.match(ins.operand)
        if m is None:
            raise EmulatorError(f"bad operands for {ins.mnemonic}",
                                ins.line_num, ins.raw)
        return m

    def _get(self, reg: str) -> int:
        return self.x[int(reg[1:])]

    def _set(self, reg: str, value: int):
        self.x[int(reg[1:])] = value & MASK64

    # ── Instruction handlers ──────────────────

    def _op_mov(self, ins):
        m = self._match(_RE_MOV, ins)
        self._set(m.group(1), int(m.group(2)))

    def _op_movk(self, ins):
        m = self._match(_RE_MOVK, ins)
        shift = int(m.group(3) or 0)
        keep = self._get(m.group(1)) & ~(0xFFFF << shift)
        self._set(m.group(1), keep | (int(m.group(2)) << shift))

    def _op_str(self, ins):
        m = self._match(_RE_PUSH, ins)
        self.sp = (self.sp + int(m.group(2))) & MASK64
        self.stack[self.sp] = self._get(m.group(1))

    def _op_ldr(self, ins):
        m = self._match(_RE_POP, ins)
        if self.sp not in self.stack:
            raise EmulatorError(f"load from empty stack slot {self.sp:#x}",
                                ins.line_num, ins.raw)
        self._set(m.group(1), self.stack.pop(self.sp))
        self.sp = (self.sp + int(m.group(2))) & MASK64

    def _op_arith(self, ins):
        m = self._match(_RE_REG3, ins)
        a = self._get(m.group(2))
        b = self._get(m.group(3))
        if ins.mnemonic == 'add':
            r = a + b
        elif ins.mnemonic == 'sub':
            r = a - b
        elif ins.mnemonic == 'mul':
            r = a * b
        else:
            r = self._sdiv(to_signed(a), to_signed(b))
        self._set(m.group(1), r)

    @staticmethod
    def _sdiv(a: int, b: int) -> int:
        # AArch64 sdiv: division by zero yields zero, quotient truncates
        if b == 0:
            return 0
        q = abs(a) // abs(b)
        return -q if (a < 0) != (b < 0) else q

    def _op_cmp(self, ins):
        m = self._match(_RE_REG2, ins)
        a = self._get(m.group(1))
        b = self._get(m.group(2))
        r = (a - b) & MASK64
        self.n = bool(r & SIGN64)
        self.z = r == 0
        self.c = a >= b
        self.v = bool((a ^ b) & (a ^ r) & SIGN64)

    def _condition(self, cond: str, ins: Instruction) -> bool:
        cond = cond.upper()
        if cond == 'EQ':
            return self.z
        if cond == 'NE':
            return not self.z
        if cond == 'LT':
            return self.n != self.v
        if cond == 'LE':
            return self.z or self.n != self.v
        if cond == 'GT':
            return not self.z and self.n == self.v
        if cond == 'GE':
            return self.n == self.v
        raise EmulatorError(f"unsupported condition {cond!r}", ins.line_num, ins.raw)

    def _op_cset(self, ins):
        m = self._match(_RE_CSET, ins)
        self._set(m.group(1), 1 if self._condition(m.group(2), ins) else 0)

    def _op_ret(self, ins):
        return StopReason.RET


def evaluate(source: str, max_steps: int = None) -> int:
    """Run an assembly program and return x0 (signed) at ret."""
    emu = A64Emulator()
    emu.load(source)
    reason = emu.run(max_steps)
    if reason is StopReason.ERROR:
        raise emu.error
    if reason is not StopReason.RET:
        raise EmulatorError(f"program did not return ({reason.value})")
    return emu.result
