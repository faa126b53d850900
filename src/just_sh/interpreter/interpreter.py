"""Interpreter - AST Execution Engine.

Main interpreter class that executes shell AST nodes.
Delegates to specialized modules for:
- Word expansion (expansion.py)
- Arithmetic evaluation (arithmetic.py)
- Conditional evaluation (conditionals.py)
- Control flow (control_flow.py)
- Built-in commands (builtins/)
- Redirections (redirections.py)
- Command dispatch (dispatch.py)
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
import time
from dataclasses import replace
from typing import Mapping, Optional, Sequence, Union

from ..ast.types import (
    NO_POS,
    BinaryCommandNode,
    CommandNode,
    DeclareNode,
    ScriptNode,
    SimpleCommandNode,
    StatementNode,
    TimeNode,
)
from ..types import (
    ArithmeticEvaluator,
    BuiltinTable,
    ExecHandler,
    ExecutionLimits,
    OpenHandler,
    Stream,
    TestEvaluator,
)
from .arithmetic import arithm, evaluate_arithmetic
from .conditionals import TestSyntaxError, evaluate_conditional
from .control_flow import (
    execute_c_style_for,
    execute_case,
    execute_condition,
    execute_for,
    execute_if,
    execute_while,
)
from .dispatch import call
from .errors import (
    BreakError,
    ContinueError,
    ExecutionLimitError,
    ExitCode,
    ReturnError,
)
from .expansion import fields
from .options import parse_options
from .redirections import apply_redirection
from .streams import BufferStream, FileStream, Pipe
from .types import InterpreterContext, InterpreterState, ShellOptions
from .values import (
    AssociativeArray,
    IndexedArray,
    NameReference,
    Scalar,
    Value,
    VariableStore,
    assign_value,
    clone_value,
    lookup_var,
    set_var,
)

logger = logging.getLogger(__name__)

_COMMAND_TYPES = {
    "SimpleCommand",
    "Group",
    "Subshell",
    "BinaryCommand",
    "If",
    "While",
    "For",
    "CStyleFor",
    "FunctionDef",
    "ArithmeticCommand",
    "Let",
    "Case",
    "ConditionalCommand",
    "Declare",
    "Time",
}


def parse_env(env: Union[Mapping[str, str], Sequence[str], None]) -> dict[str, str]:
    """Normalize an environment given as a mapping or KEY=VALUE strings."""
    if env is None:
        return dict(os.environ)
    if isinstance(env, Mapping):
        return dict(env)
    parsed = {}
    for kv in env:
        name, sep, value = kv.partition("=")
        if not sep:
            raise ValueError(f"env not in the form key=value: {kv!r}")
        parsed[name] = value
    return parsed


class Interpreter:
    """Tree-walking interpreter for shell ASTs.

    An interpreter runs one program: create it, optionally call
    ``from_args()``, then ``await run(node)`` once.

    Example:
        interp = Interpreter(env={"HOME": "/tmp"}, stdout=BufferStream())
        await interp.run(script)
    """

    def __init__(
        self,
        *,
        env: Union[Mapping[str, str], Sequence[str], None] = None,
        cwd: Optional[str] = None,
        params: Optional[Sequence[str]] = None,
        stdin: Optional[Stream] = None,
        stdout: Optional[Stream] = None,
        stderr: Optional[Stream] = None,
        exec_handler: Optional[ExecHandler] = None,
        open_handler: Optional[OpenHandler] = None,
        builtins: Optional[BuiltinTable] = None,
        arithmetic: Optional[ArithmeticEvaluator] = None,
        test_evaluator: Optional[TestEvaluator] = None,
        cancel: Optional[asyncio.Event] = None,
        limits: Optional[ExecutionLimits] = None,
        options: Optional[ShellOptions] = None,
        filename: str = "",
    ):
        """Initialize the interpreter.

        Args:
            env: Inherited environment, as a mapping or KEY=VALUE strings.
                Defaults to the process environment.
            cwd: Working directory. Defaults to the process's.
            params: Positional parameters ($1, $2, ...).
            stdin: Input stream. Defaults to empty input.
            stdout: Output stream. Defaults to the process's stdout.
            stderr: Error stream. Defaults to the process's stderr.
            exec_handler: Runs external programs.
            open_handler: Opens files for redirections.
            builtins: Builtin command table.
            arithmetic: Arithmetic expression evaluator.
            test_evaluator: [[ ]] expression evaluator.
            cancel: Event that stops the run when set.
            limits: Execution limits.
            options: Initial shell options.
            filename: Script name used in error positions.
        """
        from ..handlers import default_exec, default_open
        from .builtins import DefaultBuiltins

        self.exec_handler: ExecHandler = exec_handler or default_exec
        self.open_handler: OpenHandler = open_handler or default_open
        self.builtins: BuiltinTable = builtins or DefaultBuiltins()
        self.arithmetic: ArithmeticEvaluator = arithmetic or evaluate_arithmetic
        self.test_evaluator: TestEvaluator = test_evaluator or evaluate_conditional
        self.cancel = cancel
        self.limits = limits or ExecutionLimits()
        self.command_count = 0

        self._env = env
        self._cwd = cwd
        self._params = list(params or [])
        self._stdin = stdin
        self._stdout = stdout
        self._stderr = stderr
        self._options = options or ShellOptions()
        self._filename = filename
        self._used = False
        self.reset()

    def reset(self) -> None:
        """Rebuild the initial state from the constructor arguments."""
        environ = parse_env(self._env)
        cwd = self._cwd or os.getcwd()
        vars = VariableStore()
        if "HOME" not in environ:
            vars["HOME"] = Scalar(os.path.expanduser("~"))
        vars["PWD"] = Scalar(cwd)
        self.state = InterpreterState(
            environ=environ,
            vars=vars,
            params=list(self._params),
            cwd=cwd,
            dir_stack=[cwd],
            stdin=self._stdin or BufferStream(),
            stdout=self._stdout or FileStream(sys.stdout, owned=False),
            stderr=self._stderr or FileStream(sys.stderr, owned=False),
            options=replace(self._options),
            filename=self._filename,
        )
        self.command_count = 0

    @property
    def context(self) -> InterpreterContext:
        return InterpreterContext(self.state, self)

    @property
    def exit_code(self) -> int:
        return self.state.exit_code

    def from_args(self, *args: str) -> list[str]:
        """Apply leading shell options (-e, +e, --) and return the rest.

        Raises InvalidOptionError for an unknown option.
        """
        rest, _ = parse_options(self.state.options, args)
        return rest

    # =========================================================================
    # Entry point
    # =========================================================================

    async def run(self, node: Union[ScriptNode, StatementNode, CommandNode]) -> None:
        """Run a script, statement or command.

        Raises the first fatal error, including ``ExitCode`` when the final
        exit status is nonzero. Background jobs are joined before returning.
        """
        if self._used:
            raise RuntimeError("an Interpreter can only run once; create a new one")
        if isinstance(node, ScriptNode):
            stmts: Sequence[StatementNode] = node.statements
            if node.name:
                self.state.filename = node.name
        elif isinstance(node, StatementNode):
            stmts = (node,)
        elif getattr(node, "type", None) in _COMMAND_TYPES:
            stmts = (StatementNode(command=node, pos=node.pos),)
        else:
            raise TypeError(f"node can only be a ScriptNode, StatementNode or command, not {type(node).__name__}")
        self._used = True

        ctx = self.context
        state = self.state
        try:
            try:
                await ctx.execute_statements(stmts)
            except (BreakError, ContinueError):
                state.exit_code = 0
            except ReturnError as e:
                state.exit_code = e.exit_code
            except BrokenPipeError:
                state.exit_code = 141
            if state.exit_code != 0:
                state.set_err(ExitCode(state.exit_code))
        finally:
            await self.wait_background(ctx)

        err = state.err
        if isinstance(err, ExitCode):
            state.exit_code = err.code
            if err.code == 0:
                return
        if err is not None:
            raise err

    # =========================================================================
    # Forks and background jobs
    # =========================================================================

    async def run_forked(self, child: InterpreterContext, stmts: Sequence[StatementNode]) -> None:
        """Run statements as a separate unit on a forked context.

        Control flow that would leave the unit ends it instead, and an exit
        request becomes the unit's exit code.
        """
        state = child.state
        try:
            await child.execute_statements(stmts)
        except (BreakError, ContinueError):
            state.exit_code = 0
        except ReturnError as e:
            state.exit_code = e.exit_code
        except BrokenPipeError:
            state.exit_code = 141
        await self.wait_background(child)
        if isinstance(state.err, ExitCode):
            state.exit_code = state.err.code
            state.err = None

    def join_fork(self, parent: InterpreterContext, child: InterpreterContext) -> None:
        """Fold a finished fork's fatal error into its parent."""
        if child.state.err is not None:
            parent.state.set_err(child.state.err)

    async def _background(self, child: InterpreterContext, stmt: StatementNode) -> InterpreterContext:
        await self.run_forked(child, (stmt,))
        return child

    async def wait_background(self, ctx: InterpreterContext) -> int:
        """Join all background jobs started by ctx; returns the last one's exit code."""
        code = 0
        background = ctx.state.background
        while background:
            task = background.pop(0)
            child = await task
            logger.debug("background job finished: exit %d", child.state.exit_code)
            code = child.state.exit_code
            self.join_fork(ctx, child)
        return code

    # =========================================================================
    # Statements
    # =========================================================================

    async def execute_statement(self, ctx: InterpreterContext, stmt: StatementNode) -> None:
        state = ctx.state
        if ctx.stopped():
            return
        self.command_count += 1
        if self.command_count > self.limits.max_command_count:
            state.set_err(
                ExecutionLimitError(
                    f"too many commands executed (>{self.limits.max_command_count})",
                    "commands",
                )
            )
            return

        if stmt.background:
            child = ctx.fork()
            logger.debug("starting background job at %s", stmt.pos)
            task = asyncio.create_task(self._background(child, replace(stmt, background=False)))
            state.background.append(task)
            state.exit_code = 0
            return

        await self._statement_sync(ctx, stmt)
        if (
            state.err is None
            and state.exit_code != 0
            and state.options.errexit
            and not stmt.negated
            and state.in_condition == 0
        ):
            state.set_err(ExitCode(state.exit_code))

    async def _statement_sync(self, ctx: InterpreterContext, stmt: StatementNode) -> None:
        state = ctx.state
        saved = (state.stdin, state.stdout, state.stderr)
        opened: list[Stream] = []
        try:
            for rd in stmt.redirections:
                ok, stream = await apply_redirection(ctx, rd)
                if stream is not None:
                    opened.append(stream)
                if not ok:
                    state.exit_code = 1
                    return
            if stmt.command is None:
                state.exit_code = 0
            else:
                await self.execute_command(ctx, stmt.command)
            if stmt.negated:
                state.exit_code = 0 if state.exit_code else 1
        finally:
            for stream in opened:
                stream.close()
            state.stdin, state.stdout, state.stderr = saved

    # =========================================================================
    # Commands
    # =========================================================================

    async def execute_command(self, ctx: InterpreterContext, node: CommandNode) -> None:
        state = ctx.state
        if ctx.stopped():
            return
        kind = getattr(node, "type", None)

        if kind == "SimpleCommand":
            await self._simple_command(ctx, node)
        elif kind == "Group":
            await ctx.execute_statements(node.body)
        elif kind == "Subshell":
            child = ctx.fork()
            await self.run_forked(child, node.body)
            state.exit_code = child.state.exit_code
            self.join_fork(ctx, child)
        elif kind == "BinaryCommand":
            await self._binary_command(ctx, node)
        elif kind == "If":
            await execute_if(ctx, node)
        elif kind == "While":
            await execute_while(ctx, node)
        elif kind == "For":
            await execute_for(ctx, node)
        elif kind == "CStyleFor":
            await execute_c_style_for(ctx, node)
        elif kind == "Case":
            await execute_case(ctx, node)
        elif kind == "FunctionDef":
            state.functions[node.name] = node.body
            state.exit_code = 0
        elif kind == "ArithmeticCommand":
            value = await arithm(ctx, node.expression)
            state.exit_code = 0 if value != 0 else 1
        elif kind == "Let":
            value = 0
            for expr in node.expressions:
                value = await arithm(ctx, expr)
            state.exit_code = 0 if value != 0 else 1
        elif kind == "ConditionalCommand":
            await self._conditional(ctx, node)
        elif kind == "Declare":
            await self._declare(ctx, node)
        elif kind == "Time":
            await self._time(ctx, node)
        else:
            state.run_err(getattr(node, "pos", NO_POS), f"unhandled command node: {type(node).__name__}")

    async def _simple_command(self, ctx: InterpreterContext, node: SimpleCommandNode) -> None:
        state = ctx.state
        state.subst_exit = 0
        args = await fields(ctx, node.args)
        if ctx.stopped():
            return

        if not args:
            for assign in node.assignments:
                value = await assign_value(ctx, assign)
                if value is not None:
                    await set_var(ctx, assign.name, assign.index, value, assign.pos)
            state.exit_code = state.subst_exit
            return

        overlay = state.temp_vars.copy() if state.temp_vars is not None else VariableStore()
        for assign in node.assignments:
            value = await assign_value(ctx, assign)
            if value is not None:
                overlay[assign.name] = value
        if ctx.stopped():
            return

        old_overlay = state.temp_vars
        state.temp_vars = overlay
        try:
            await call(ctx, node.pos, args[0], args[1:])
        finally:
            state.temp_vars = old_overlay

    async def _binary_command(self, ctx: InterpreterContext, node: BinaryCommandNode) -> None:
        state = ctx.state
        op = node.operator
        if op in ("&&", "||"):
            await execute_condition(ctx, (node.left,))
            if (state.exit_code == 0) == (op == "&&"):
                await self.execute_statement(ctx, node.right)
            return
        if op not in ("|", "|&"):
            state.run_err(node.pos, f"unhandled binary command: {op}")
            return

        pipe = Pipe()
        left = ctx.fork()
        left.state.stdout = pipe.writer
        if op == "|&":
            left.state.stderr = pipe.writer

        async def run_left() -> None:
            try:
                await self.run_forked(left, (node.left,))
            finally:
                pipe.writer.close()

        logger.debug("starting pipeline at %s", node.pos)
        task = asyncio.create_task(run_left())
        saved_stdin = state.stdin
        state.stdin = pipe.reader
        try:
            await self.execute_statement(ctx, node.right)
        finally:
            state.stdin = saved_stdin
            pipe.reader.close()
            await task
        self.join_fork(ctx, left)

    async def _conditional(self, ctx: InterpreterContext, node) -> None:
        state = ctx.state
        state.exit_code = 0
        try:
            result = await self.test_evaluator(ctx, node.expression)
        except TestSyntaxError as e:
            await state.stderr.write(f"[[: {e}\n")
            state.exit_code = 2
            return
        if result:
            state.exit_code = 0
        elif state.exit_code == 0:
            state.exit_code = 1

    async def _declare(self, ctx: InterpreterContext, node: DeclareNode) -> None:
        state = ctx.state
        mode = ""
        nameref = False
        for opt in await fields(ctx, node.options):
            if opt == "-n":
                nameref = True
            elif opt in ("-a", "-A"):
                mode = opt
            else:
                state.run_err(node.pos, f"unhandled {node.variant} opts: {opt}")

        is_local = node.variant == "local"
        if is_local and not state.local_scopes:
            await state.stderr.write("local: can only be used in a function\n")
            state.exit_code = 1
            return

        for assign in node.assignments:
            if is_local:
                scope = state.local_scopes[-1]
                if assign.name not in scope:
                    previous = state.vars.get(assign.name)
                    scope[assign.name] = (
                        clone_value(previous) if previous is not None else None,
                        state.environ.get(assign.name),
                    )
            value: Optional[Value] = await assign_value(ctx, assign, mode)
            if assign.naked:
                value = self._naked_value(state, assign.name, mode, is_local)
                if value is None:
                    if is_local:
                        state.vars.pop(assign.name, None)
                    continue
            if nameref and isinstance(value, Scalar):
                value = NameReference(value.value)
            if value is not None:
                await set_var(ctx, assign.name, assign.index, value, assign.pos)
        if state.err is None:
            state.exit_code = 0

    @staticmethod
    def _naked_value(state: InterpreterState, name: str, mode: str, is_local: bool) -> Optional[Value]:
        """Value for a declared name with no assignment (``declare -A m``)."""
        current = None if is_local else lookup_var(state, name)
        if mode == "-A":
            return current if isinstance(current, AssociativeArray) else AssociativeArray()
        if mode == "-a":
            if isinstance(current, IndexedArray):
                return current
            if isinstance(current, Scalar):
                return IndexedArray([current.value])
            return IndexedArray()
        return None

    async def _time(self, ctx: InterpreterContext, node: TimeNode) -> None:
        start = time.monotonic()
        if node.statement is not None:
            await self.execute_statement(ctx, node.statement)
        elapsed = time.monotonic() - start
        minutes, seconds = divmod(elapsed, 60)
        await ctx.state.stdout.write(
            f"\nreal\t{int(minutes)}m{seconds:.3f}s\nuser\t0m0.000s\nsys\t0m0.000s\n"
        )
