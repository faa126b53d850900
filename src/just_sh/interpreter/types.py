"""Interpreter types for just-sh."""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Optional, Sequence

from ..ast.types import Position
from .errors import Cancelled, RunError
from .streams import BufferStream
from .values import Value, VariableStore

if TYPE_CHECKING:
    from ..ast.types import CommandNode, StatementNode
    from ..types import (
        ArithmeticEvaluator,
        BuiltinTable,
        ExecHandler,
        ExecutionLimits,
        OpenHandler,
        Stream,
        TestEvaluator,
    )
    from .interpreter import Interpreter

logger = logging.getLogger(__name__)


@dataclass
class ShellOptions:
    """Options toggled with ``set -o`` style flags."""

    errexit: bool = False


@dataclass
class InterpreterState:
    """Mutable state of one running unit.

    Subshells, pipeline sides, command substitutions and background jobs each
    run on a ``fork()`` of their parent's state.
    """

    environ: dict[str, str] = field(default_factory=dict)
    vars: VariableStore = field(default_factory=VariableStore)
    temp_vars: Optional[VariableStore] = None
    functions: dict[str, "StatementNode"] = field(default_factory=dict)
    params: list[str] = field(default_factory=list)
    cwd: str = "/"
    dir_stack: list[str] = field(default_factory=list)
    """pushd stack; the last element is always the working directory."""

    stdin: "Stream" = field(default_factory=BufferStream)
    stdout: "Stream" = field(default_factory=BufferStream)
    stderr: "Stream" = field(default_factory=BufferStream)
    options: ShellOptions = field(default_factory=ShellOptions)

    loop_depth: int = 0
    can_return: bool = False
    in_condition: int = 0
    call_depth: int = 0
    # name -> (previous value, previous environ entry)
    local_scopes: list[dict[str, tuple[Optional[Value], Optional[str]]]] = field(default_factory=list)

    exit_code: int = 0
    subst_exit: int = 0
    """Exit code of the last command substitution, for assignment-only commands."""
    err: Optional[BaseException] = None
    """Sticky fatal error; the first one set wins."""

    background: list[asyncio.Task] = field(default_factory=list)
    filename: str = ""
    script_name: str = "sh"
    pid: int = field(default_factory=os.getpid)

    def set_err(self, err: BaseException) -> None:
        if self.err is None:
            logger.debug("fatal error: %r", err)
            self.err = err

    def run_err(self, pos: Position, text: str) -> None:
        self.set_err(RunError(text, pos, self.filename))

    def fork(self) -> "InterpreterState":
        """Copy this state for a concurrently running unit.

        Variables are deep-copied; streams are shared by reference. The
        fork starts with no fatal error and no background jobs.
        """
        return InterpreterState(
            environ=dict(self.environ),
            vars=self.vars.copy(),
            temp_vars=self.temp_vars.copy() if self.temp_vars is not None else None,
            functions=dict(self.functions),
            params=list(self.params),
            cwd=self.cwd,
            dir_stack=list(self.dir_stack),
            stdin=self.stdin,
            stdout=self.stdout,
            stderr=self.stderr,
            options=replace(self.options),
            loop_depth=self.loop_depth,
            can_return=self.can_return,
            in_condition=self.in_condition,
            call_depth=self.call_depth,
            local_scopes=[dict(scope) for scope in self.local_scopes],
            exit_code=self.exit_code,
            filename=self.filename,
            script_name=self.script_name,
            pid=self.pid,
        )


@dataclass
class InterpreterContext:
    """A state paired with the interpreter that runs it.

    Control-flow helpers and builtins receive this and call back into the
    interpreter through it.
    """

    state: InterpreterState
    interpreter: "Interpreter"

    @property
    def limits(self) -> "ExecutionLimits":
        return self.interpreter.limits

    @property
    def builtins(self) -> "BuiltinTable":
        return self.interpreter.builtins

    @property
    def exec_handler(self) -> "ExecHandler":
        return self.interpreter.exec_handler

    @property
    def open_handler(self) -> "OpenHandler":
        return self.interpreter.open_handler

    @property
    def arithmetic(self) -> "ArithmeticEvaluator":
        return self.interpreter.arithmetic

    @property
    def test_evaluator(self) -> "TestEvaluator":
        return self.interpreter.test_evaluator

    @property
    def cancel(self) -> Optional[asyncio.Event]:
        return self.interpreter.cancel

    def stopped(self) -> bool:
        """Whether evaluation must stop: a fatal error is set or the run was cancelled."""
        if self.state.err is not None:
            return True
        if self.cancel is not None and self.cancel.is_set():
            logger.debug("run cancelled")
            self.state.set_err(Cancelled())
            return True
        return False

    def fork(self) -> "InterpreterContext":
        return InterpreterContext(self.state.fork(), self.interpreter)

    async def execute_statement(self, stmt: "StatementNode") -> None:
        await self.interpreter.execute_statement(self, stmt)

    async def execute_statements(self, stmts: Sequence["StatementNode"]) -> None:
        for stmt in stmts:
            if self.stopped():
                return
            await self.interpreter.execute_statement(self, stmt)

    async def execute_command(self, node: "CommandNode") -> None:
        await self.interpreter.execute_command(self, node)
