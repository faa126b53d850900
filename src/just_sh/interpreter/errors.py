"""Interpreter errors.

Two families live here:

- Control-flow exceptions (``BreakError``, ``ContinueError``, ``ReturnError``)
  unwind the Python stack to the loop or function call that consumes them.
  They are never stored as fatal errors.
- Fatal errors (everything deriving from ``ShellError``) are stored in the
  interpreter state's sticky error slot. The first one wins and stops the run.
"""

from __future__ import annotations

from typing import Optional

from ..ast.types import NO_POS, Position


class ControlFlowError(Exception):
    """Base class for break/continue/return signals."""


class BreakError(ControlFlowError):
    """Raised by ``break [n]``."""

    def __init__(self, levels: int = 1):
        super().__init__(f"break {levels}")
        self.levels = levels


class ContinueError(ControlFlowError):
    """Raised by ``continue [n]``."""

    def __init__(self, levels: int = 1):
        super().__init__(f"continue {levels}")
        self.levels = levels


class ReturnError(ControlFlowError):
    """Raised by ``return [n]``; consumed at the function call site."""

    def __init__(self, exit_code: int = 0):
        super().__init__(f"return {exit_code}")
        self.exit_code = exit_code


class ShellError(Exception):
    """Base class for errors that end a run."""


class ExitCode(ShellError):
    """Whole-run exit sentinel raised by ``exit`` and by errexit.

    A forked unit (subshell, pipeline side, substitution, background job)
    turns this into its own exit status instead of propagating it.
    """

    def __init__(self, code: int):
        super().__init__(f"exit status {code}")
        self.code = code


class RunError(ShellError):
    """An error located at a position in the script."""

    def __init__(self, text: str, pos: Position = NO_POS, filename: str = ""):
        self.filename = filename
        self.pos = pos
        self.text = text
        super().__init__(str(self))

    def __str__(self) -> str:
        prefix = f"{self.filename}:" if self.filename else ""
        if self.pos.line > 0:
            prefix += f"{self.pos}:"
        return f"{prefix} {self.text}" if prefix else self.text


class InvalidOptionError(ShellError):
    """Unknown shell option given to ``Interpreter.from_args`` or ``set``."""

    def __init__(self, option: str):
        super().__init__(f"invalid option: {option!r}")
        self.option = option


class ExecutionLimitError(ShellError):
    """A configured execution limit was exceeded."""

    def __init__(self, message: str, limit_type: str = ""):
        super().__init__(message)
        self.limit_type = limit_type


class Cancelled(ShellError):
    """The host cancelled the run."""

    def __init__(self, cause: Optional[BaseException] = None):
        super().__init__("cancelled" if cause is None else f"cancelled: {cause}")
        self.cause = cause


class ArithmeticEvalError(Exception):
    """Raised by the arithmetic evaluator; becomes a RunError at the call site."""
