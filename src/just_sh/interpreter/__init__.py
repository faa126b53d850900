"""Interpreter module for just-sh."""

from .errors import (
    ArithmeticEvalError,
    BreakError,
    Cancelled,
    ContinueError,
    ControlFlowError,
    ExecutionLimitError,
    ExitCode,
    InvalidOptionError,
    ReturnError,
    RunError,
    ShellError,
)
from .interpreter import Interpreter
from .streams import BufferStream, FileStream, Pipe
from .types import InterpreterContext, InterpreterState, ShellOptions
from .values import (
    AssociativeArray,
    IndexedArray,
    NameReference,
    Scalar,
    Value,
    VariableStore,
)

__all__ = [
    "Interpreter",
    "InterpreterContext",
    "InterpreterState",
    "ShellOptions",
    "BufferStream",
    "FileStream",
    "Pipe",
    "Scalar",
    "IndexedArray",
    "AssociativeArray",
    "NameReference",
    "Value",
    "VariableStore",
    "ControlFlowError",
    "BreakError",
    "ContinueError",
    "ReturnError",
    "ShellError",
    "ExitCode",
    "RunError",
    "InvalidOptionError",
    "ExecutionLimitError",
    "Cancelled",
    "ArithmeticEvalError",
]
