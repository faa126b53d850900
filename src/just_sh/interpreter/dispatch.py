"""Command dispatch.

A resolved command name goes to a shell function, then a builtin, then the
exec hook; the first match is final. File opening for redirections goes
through the open hook.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Optional

from ..types import HandlerContext
from .errors import ExecutionLimitError, ExitCode, ReturnError
from .values import scalar_view

if TYPE_CHECKING:
    from ..ast.types import Position
    from ..types import Stream
    from .types import InterpreterContext

logger = logging.getLogger(__name__)


def handler_context(ctx: "InterpreterContext") -> HandlerContext:
    """Build the view of the interpreter the hooks receive."""
    state = ctx.state
    env = dict(state.environ)
    if state.temp_vars:
        for name, value in state.temp_vars.items():
            env[name] = scalar_view(state, value)
    return HandlerContext(
        env=env,
        dir=state.cwd,
        stdin=state.stdin,
        stdout=state.stdout,
        stderr=state.stderr,
        cancel=ctx.cancel,
    )


async def call(ctx: "InterpreterContext", pos: "Position", name: str, args: list[str]) -> None:
    """Run a command by name and record its exit code."""
    state = ctx.state
    if name in state.functions:
        await call_function(ctx, name, args)
        return
    if ctx.builtins.is_builtin(name):
        state.exit_code = await ctx.builtins.run_builtin(ctx, pos, name, args)
        return
    await exec_command(ctx, name, args)


async def call_function(ctx: "InterpreterContext", name: str, args: list[str]) -> None:
    state = ctx.state
    body = state.functions[name]
    if state.call_depth >= ctx.limits.max_call_depth:
        state.set_err(
            ExecutionLimitError(
                f"{name}: maximum function call depth exceeded ({ctx.limits.max_call_depth})",
                "call_depth",
            )
        )
        return

    saved_params = state.params
    saved_can_return = state.can_return
    state.params = list(args)
    state.can_return = True
    state.call_depth += 1
    state.local_scopes.append({})
    try:
        await ctx.execute_statement(body)
    except ReturnError as e:
        state.exit_code = e.exit_code
    finally:
        scope = state.local_scopes.pop()
        for var, (previous, exported) in scope.items():
            if previous is None:
                state.vars.pop(var, None)
            else:
                state.vars[var] = previous
            if exported is None:
                state.environ.pop(var, None)
            else:
                state.environ[var] = exported
        state.call_depth -= 1
        state.params = saved_params
        state.can_return = saved_can_return


async def exec_command(ctx: "InterpreterContext", name: str, args: list[str]) -> None:
    """Run an external program through the exec hook."""
    state = ctx.state
    logger.debug("exec %s %r", name, args)
    try:
        state.exit_code = await ctx.exec_handler(handler_context(ctx), name, args)
    except ExitCode as e:
        state.exit_code = e.code
    except Exception as e:
        state.exit_code = 1
        state.set_err(e)


async def open_file(
    ctx: "InterpreterContext", path: str, flags: int, mode: int
) -> Optional["Stream"]:
    """Open a file through the open hook.

    A path error is reported on stderr and gives exit code 1; any other
    error becomes the fatal error. Returns None on failure.
    """
    state = ctx.state
    full = os.path.join(state.cwd, path)
    logger.debug("open %s flags=%#o", full, flags)
    try:
        return await ctx.open_handler(handler_context(ctx), full, flags, mode)
    except OSError as e:
        await state.stderr.write(f"{path}: {e.strerror or e}\n")
        state.exit_code = 1
        return None
    except Exception as e:
        state.set_err(e)
        return None
