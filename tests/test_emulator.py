"""
Emulator Tests for the a64 expression compiler.

Runs hand-written AArch64 snippets through A64Emulator and checks
register, flag and stack behavior for each supported instruction.
"""

import pytest

from a64_compiler.emulator import (
    A64Emulator, EmulatorError, StopReason, evaluate, parse_program, to_signed,
)


def _prog(*body: str) -> str:
    return "\n".join([".globl main", "main:"] + [f"  {b}" for b in body] + ["  ret"]) + "\n"


class TestProgramParsing:
    def test_labels_and_directives_skipped(self):
        prog = parse_program(".globl main\nmain:\n  mov x0, #1\n  ret\n")
        assert [i.mnemonic for i in prog] == ["mov", "ret"]
        assert prog[0].line_num == 3

    def test_comments_stripped(self):
        prog = parse_program("  mov x0, #1 // load one\n// whole line\n  ret")
        assert prog[0].operand == "x0, #1"
        assert len(prog) == 2


class TestInstructions:
    def test_mov(self):
        assert evaluate(_prog("mov x0, #42")) == 42

    def test_movz_movk(self):
        assert evaluate(_prog("movz x0, #4464", "movk x0, #1, lsl 16")) == 70000

    def test_movk_replaces_only_its_halfword(self):
        assert evaluate(_prog("mov x0, #65535", "movk x0, #0, lsl 0")) == 0

    def test_push_pop(self):
        emu = A64Emulator()
        emu.load(_prog("mov x2, #7", "str x2, [sp, -16]!", "ldr x0, [sp], 16"))
        top = emu.sp
        assert emu.run() is StopReason.RET
        assert emu.result == 7
        assert emu.sp == top
        assert emu.stack == {}

    def test_pop_order_is_reverse_of_push(self):
        asm = _prog(
            "mov x2, #10", "str x2, [sp, -16]!",
            "mov x2, #3", "str x2, [sp, -16]!",
            "ldr x1, [sp], 16", "ldr x0, [sp], 16",
            "sub x0, x0, x1",
        )
        assert evaluate(asm) == 7

    @pytest.mark.parametrize("mnem,a,b,expected", [
        ("add", 2, 3, 5),
        ("sub", 2, 3, -1),
        ("mul", 6, 7, 42),
        ("sdiv", 7, 2, 3),
        ("sdiv", 7, 0, 0),
    ])
    def test_arith(self, mnem, a, b, expected):
        asm = _prog(f"mov x0, #{a}", f"mov x1, #{b}", f"{mnem} x0, x0, x1")
        assert evaluate(asm) == expected

    def test_sdiv_truncates_toward_zero(self):
        asm = _prog("mov x0, #0", "mov x1, #7", "sub x0, x0, x1",
                    "mov x1, #2", "sdiv x0, x0, x1")
        assert evaluate(asm) == -3

    @pytest.mark.parametrize("cond,a,b,expected", [
        ("EQ", 3, 3, 1), ("EQ", 3, 4, 0),
        ("NE", 3, 4, 1), ("NE", 3, 3, 0),
        ("LT", 3, 4, 1), ("LT", 4, 3, 0), ("LT", 3, 3, 0),
        ("LE", 3, 3, 1), ("LE", 4, 3, 0),
        ("GT", 4, 3, 1), ("GE", 3, 3, 1),
    ])
    def test_cmp_cset(self, cond, a, b, expected):
        asm = _prog(f"mov x0, #{a}", f"mov x1, #{b}", "cmp x0, x1", f"cset x0, {cond}")
        assert evaluate(asm) == expected

    def test_signed_compare_with_negative(self):
        # -1 < 1 must hold even though -1 is all ones unsigned
        asm = _prog("mov x0, #0", "mov x1, #1", "sub x0, x0, x1",
                    "cmp x0, x1", "cset x0, LT")
        assert evaluate(asm) == 1

    def test_exit_status_is_low_byte(self):
        emu = A64Emulator()
        emu.load(_prog("mov x0, #0", "mov x1, #5", "sub x0, x0, x1"))
        emu.run()
        assert emu.result == -5
        assert emu.exit_status == 251


class TestFailures:
    def test_unknown_instruction(self):
        with pytest.raises(EmulatorError, match="unsupported instruction"):
            evaluate(_prog("nop"))

    def test_bad_operands(self):
        with pytest.raises(EmulatorError, match="bad operands"):
            evaluate(_prog("add x0, x1"))

    def test_pop_from_empty_stack(self):
        with pytest.raises(EmulatorError, match="empty stack slot"):
            evaluate(_prog("ldr x0, [sp], 16"))

    def test_missing_ret(self):
        with pytest.raises(EmulatorError, match="without ret"):
            evaluate("main:\n  mov x0, #1\n")

    def test_run_reports_error_reason(self):
        emu = A64Emulator()
        emu.load("  bogus x0\n")
        assert emu.run() is StopReason.ERROR
        assert isinstance(emu.error, EmulatorError)

    def test_timeout(self):
        emu = A64Emulator()
        emu.load(_prog("mov x0, #1", "mov x0, #2"))
        assert emu.run(max_steps=1) is StopReason.TIMEOUT


def test_to_signed():
    assert to_signed(0) == 0
    assert to_signed((1 << 64) - 1) == -1
    assert to_signed(1 << 63) == -(1 << 63)
