#!/usr/bin/env python3
"""
a64cc - a64 Expression Compiler CLI

Usage:
    python a64cc.py <expression> [-o output.s] [--target linux|darwin]
                                 [--strict] [--tokens] [--ast] [--run] [--verbose]

An expression may start with '-' (unary minus); it is still read as the
expression rather than as an option.

Examples:
    python a64cc.py "2+3*4" -o tmp.s
    python a64cc.py "(5>3) == 1" --run
    python a64cc.py --target darwin "-5+8"
    python a64cc.py "1 <= 2" --tokens
"""

import argparse
import logging
import sys
import os
import traceback

# Allow running from project root
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from a64_compiler import __version__, parse_source
from a64_compiler.ast_nodes import dump
from a64_compiler.codegen import CodeGenerator, TARGET_PROFILES
from a64_compiler.emulator import A64Emulator, StopReason
from a64_compiler.errors import CompileError
from a64_compiler.lexer import Lexer

log = logging.getLogger("a64cc")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="a64cc",
        description="Compile an integer expression to AArch64 assembly",
        epilog="Targets: " + ", ".join(TARGET_PROFILES.keys()),
    )
    parser.add_argument("expression", nargs="?", help="Expression source, e.g. '2+3*4'")
    parser.add_argument("-o", "--output", help="Output assembly file (default: stdout)")
    parser.add_argument("--target", default="linux",
                        choices=list(TARGET_PROFILES.keys()),
                        help="Target profile (default: linux)")
    parser.add_argument("--strict", action="store_true",
                        help="Reject trailing input after the expression")
    parser.add_argument("--tokens", action="store_true",
                        help="Dump token stream and exit (debug)")
    parser.add_argument("--ast", action="store_true",
                        help="Dump expression tree and exit (debug)")
    parser.add_argument("--run", action="store_true",
                        help="Evaluate the generated program and report its exit status")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Print compilation details to stderr")
    parser.add_argument("--version", action="version",
                        version=f"a64cc {__version__}")
    return parser


def parse_args(argv=None) -> argparse.Namespace:
    parser = build_parser()
    args, extras = parser.parse_known_args(argv)
    # argparse reads an expression like "-5+8" as an unknown option
    if args.expression is None and len(extras) == 1 and not extras[0].startswith("--"):
        args.expression = extras.pop()
    if args.expression is None:
        parser.error("the following arguments are required: expression")
    if extras:
        parser.error(f"unrecognized arguments: {' '.join(extras)}")
    return args


def main(argv=None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="[a64cc] %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )

    source = args.expression
    profile = TARGET_PROFILES[args.target]
    log.info("target: %s (%s)", args.target, profile["description"])

    try:
        # Token dump mode
        if args.tokens:
            for tok in Lexer(source).tokenize():
                print(tok)
            return 0

        tree = parse_source(source, strict=args.strict)

        # AST dump mode
        if args.ast:
            print(dump(tree))
            return 0

        asm = CodeGenerator(target=args.target, source=source).generate(tree)
    except CompileError as e:
        print(e.render(), file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Internal compiler error: {e}", file=sys.stderr)
        if args.verbose:
            traceback.print_exc()
        return 2

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(asm)
        log.info("wrote %s", args.output)
    else:
        sys.stdout.write(asm)

    if args.run:
        emu = A64Emulator()
        emu.load(asm)
        reason = emu.run()
        if reason is not StopReason.RET:
            print(f"Emulation failed: {emu.error or reason.value}", file=sys.stderr)
            return 2
        print(f"exit status: {emu.exit_status} (x0 = {emu.result})", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
