"""just-sh - an asyncio interpreter for shell-script syntax trees.

Example usage:
    from just_sh import Shell

    shell = Shell()
    result = shell.run(script)
    print(result.stdout)
"""

from .handlers import default_exec, default_open
from .interpreter import (
    BufferStream,
    Cancelled,
    ExecutionLimitError,
    ExitCode,
    Interpreter,
    InvalidOptionError,
    RunError,
    ShellOptions,
)
from .shell import Shell
from .types import ExecResult, ExecutionLimits, HandlerContext

__version__ = "0.1.0"

__all__ = [
    "Shell",
    "Interpreter",
    "ShellOptions",
    "ExecResult",
    "ExecutionLimits",
    "HandlerContext",
    "BufferStream",
    "ExitCode",
    "RunError",
    "InvalidOptionError",
    "ExecutionLimitError",
    "Cancelled",
    "default_exec",
    "default_open",
]
