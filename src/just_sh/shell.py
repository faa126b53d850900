"""Main Shell class - the primary API for just-sh.

Programs are ASTs built with ``just_sh.ast`` (or by any parser that
produces those nodes).

Example usage:
    from just_sh import Shell
    from just_sh.ast import ScriptNode, StatementNode, SimpleCommandNode, WordNode, LiteralPart

    echo = SimpleCommandNode(args=(WordNode((LiteralPart("echo"),)), WordNode((LiteralPart("hi"),))))
    script = ScriptNode((StatementNode(echo),))

    # Synchronous usage (for REPL, scripts)
    shell = Shell()
    result = shell.run(script)
    print(result.stdout)  # "hi\\n"

    # Async usage (for async applications)
    result = await shell.exec(script)

    # With execution limits
    shell = Shell(limits=ExecutionLimits(max_command_count=1000))
"""

import asyncio
import logging
import os
from typing import Mapping, Optional, Sequence, Union

import nest_asyncio  # type: ignore[import-untyped]

from .ast.types import CommandNode, ScriptNode, StatementNode
from .interpreter import (
    ExitCode,
    Interpreter,
    ShellOptions,
    VariableStore,
)
from .interpreter.interpreter import parse_env
from .interpreter.streams import BufferStream
from .interpreter.values import Scalar, scalar_view
from .types import (
    ArithmeticEvaluator,
    BuiltinTable,
    ExecHandler,
    ExecResult,
    ExecutionLimits,
    OpenHandler,
    TestEvaluator,
)

logger = logging.getLogger(__name__)

Program = Union[ScriptNode, StatementNode, CommandNode]


class Shell:
    """High-level shell session.

    Each ``exec()`` runs a fresh ``Interpreter``; variables, functions,
    options and the working directory carry over from one call to the next.
    """

    def __init__(
        self,
        *,
        env: Union[Mapping[str, str], Sequence[str], None] = None,
        cwd: Optional[str] = None,
        limits: Optional[ExecutionLimits] = None,
        errexit: bool = False,
        exec_handler: Optional[ExecHandler] = None,
        open_handler: Optional[OpenHandler] = None,
        builtins: Optional[BuiltinTable] = None,
        arithmetic: Optional[ArithmeticEvaluator] = None,
        test_evaluator: Optional[TestEvaluator] = None,
        cancel: Optional[asyncio.Event] = None,
    ):
        """Initialize the shell session.

        Args:
            env: Inherited environment. Defaults to the process environment.
            cwd: Initial working directory. Defaults to the process's.
            limits: Execution limits for runaway scripts.
            errexit: Enable errexit (set -e) mode.
            exec_handler: Hook that runs external programs.
            open_handler: Hook that opens files for redirections.
            builtins: Builtin command table.
            arithmetic: Arithmetic expression evaluator.
            test_evaluator: [[ ]] expression evaluator.
            cancel: Event that stops a running program when set.
        """
        self._hooks = {
            "exec_handler": exec_handler,
            "open_handler": open_handler,
            "builtins": builtins,
            "arithmetic": arithmetic,
            "test_evaluator": test_evaluator,
            "cancel": cancel,
        }
        self._limits = limits or ExecutionLimits()
        self._initial = (env, cwd, errexit)
        self.reset()

    @property
    def cwd(self) -> str:
        """Get the current working directory."""
        return self._cwd

    @property
    def env(self) -> dict[str, str]:
        """Get the environment plus the string view of shell variables."""
        return self._env_view(self._environ, self._vars)

    @staticmethod
    def _env_view(environ: dict[str, str], vars: VariableStore) -> dict[str, str]:
        from .interpreter.types import InterpreterState

        state = InterpreterState(environ=environ, vars=vars)
        env = dict(environ)
        for name, value in vars.items():
            env[name] = scalar_view(state, value)
        return env

    def _interpreter(
        self, stdin, stdout, stderr, args: Optional[Sequence[str]]
    ) -> Interpreter:
        interp = Interpreter(
            env=self._environ,
            cwd=self._cwd,
            params=args,
            stdin=stdin,
            stdout=stdout,
            stderr=stderr,
            limits=self._limits,
            options=self._options,
            **self._hooks,
        )
        interp.state.vars.update(self._vars.copy())
        interp.state.functions.update(self._functions)
        return interp

    async def exec(
        self,
        program: Program,
        *,
        stdin: Union[str, bytes, None] = None,
        args: Optional[Sequence[str]] = None,
    ) -> ExecResult:
        """Execute a program.

        Args:
            program: Script, statement or command node to run.
            stdin: Input for the program.
            args: Positional parameters ($1, $2, ...).

        Returns:
            ExecResult with stdout, stderr, exit_code, and final env.
        """
        stdout = BufferStream()
        stderr = BufferStream()
        interp = self._interpreter(BufferStream(stdin or b""), stdout, stderr, args)

        error: Optional[BaseException] = None
        try:
            await interp.run(program)
            exit_code = interp.exit_code
        except ExitCode as e:
            exit_code = e.code
        except Exception as e:
            logger.debug("program failed: %r", e)
            error = e
            exit_code = 1
            await stderr.write(f"{e}\n")

        state = interp.state
        self._environ = dict(state.environ)
        self._vars = state.vars.copy()
        self._functions = dict(state.functions)
        self._cwd = state.cwd
        self._options = state.options

        return ExecResult(
            stdout=stdout.text(),
            stderr=stderr.text(),
            exit_code=exit_code,
            env=self._env_view(self._environ, self._vars),
            error=error,
        )

    def run(
        self,
        program: Program,
        *,
        stdin: Union[str, bytes, None] = None,
        args: Optional[Sequence[str]] = None,
    ) -> ExecResult:
        """Execute a program synchronously.

        This is a convenience wrapper around exec() that works in any context,
        including Jupyter notebooks and async frameworks.
        """
        try:
            asyncio.get_running_loop()
            # We're in an existing event loop (Jupyter, async framework, etc.)
            nest_asyncio.apply()
        except RuntimeError:
            # No running event loop, asyncio.run() will work fine
            pass
        return asyncio.run(self.exec(program, stdin=stdin, args=args))

    def reset(self) -> None:
        """Reset the session to its initial state."""
        env, cwd, errexit = self._initial
        self._environ = parse_env(env)
        self._vars = VariableStore()
        self._functions = {}
        self._cwd = cwd or os.getcwd()
        self._vars["PWD"] = Scalar(self._cwd)
        self._options = ShellOptions(errexit=errexit)
