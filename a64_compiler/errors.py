"""
Compile errors and diagnostics for the a64 expression compiler.

Every stage raises a subclass of CompileError. The error carries the
source text and the 0-based offset of the offending character so the
driver can print the source line with a caret under the problem.
"""

from __future__ import annotations
import enum


class ErrorKind(enum.Enum):
    """Stage that raised a CompileError. Usage errors are argparse's job."""

    LEXICAL = "lexical"
    SYNTAX = "syntax"
    CODEGEN = "codegen"


class CompileError(Exception):
    """A single terminal failure of one compilation."""

    kind = ErrorKind.SYNTAX

    def __init__(self, message: str, pos: int = 0, source: str = ""):
        self.message = message
        self.pos = pos
        self.source = source
        super().__init__(f"{self.kind.value} error at {pos}: {message}")

    def render(self) -> str:
        """Return the source line, then a caret line pointing at pos."""
        return f"{self.source}\n{' ' * self.pos}^ {self.message}"
