"""Public types for just-sh: results, limits, and the host hook contracts."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Awaitable, Optional, Protocol, Union

if TYPE_CHECKING:
    from .ast.types import ArithExpr, Position, TestExpr
    from .interpreter.types import InterpreterContext


class Stream(Protocol):
    """The async byte-stream surface every stdin/stdout/stderr provides."""

    async def read(self, n: int = -1) -> bytes: ...

    async def readline(self) -> bytes: ...

    async def write(self, data: Union[str, bytes]) -> None: ...

    def close(self) -> None: ...


@dataclass
class ExecResult:
    """Result of running a program through the Shell facade."""

    stdout: str
    stderr: str
    exit_code: int
    env: dict[str, str] = field(default_factory=dict)
    error: Optional[BaseException] = None


@dataclass
class ExecutionLimits:
    """Execution limits that guard against runaway scripts."""

    max_call_depth: int = 100
    max_command_count: int = 10000
    max_loop_iterations: int = 10000


@dataclass
class HandlerContext:
    """What the exec and open hooks see of the interpreter.

    ``env`` is the inherited environment plus the temporary assignments of
    the command being run.
    """

    env: dict[str, str]
    dir: str
    stdin: Stream
    stdout: Stream
    stderr: Stream
    cancel: Optional[asyncio.Event] = None


class ExecHandler(Protocol):
    def __call__(
        self, hctx: HandlerContext, name: str, args: list[str]
    ) -> Awaitable[int]: ...


class OpenHandler(Protocol):
    def __call__(
        self, hctx: HandlerContext, path: str, flags: int, mode: int
    ) -> Awaitable[Stream]: ...


class ArithmeticEvaluator(Protocol):
    def __call__(
        self, ctx: "InterpreterContext", expression: "ArithExpr"
    ) -> Awaitable[int]: ...


class TestEvaluator(Protocol):
    __test__ = False

    def __call__(
        self, ctx: "InterpreterContext", expression: "TestExpr"
    ) -> Awaitable[str]: ...


class BuiltinTable(Protocol):
    def is_builtin(self, name: str) -> bool: ...

    async def run_builtin(
        self,
        ctx: "InterpreterContext",
        pos: "Position",
        name: str,
        args: list[str],
    ) -> int: ...
