"""Control flow builtins: break, continue, return, exit.

These builtins control the flow of script execution.
"""

from typing import TYPE_CHECKING

from ..errors import BreakError, ContinueError, ExitCode, ReturnError

if TYPE_CHECKING:
    from ..types import InterpreterContext


async def _loop_levels(ctx: "InterpreterContext", name: str, args: list[str]):
    """Parse the optional level count; returns (levels, exit_code)."""
    if len(args) > 1:
        await ctx.state.stderr.write(f"{name}: too many arguments\n")
        return None, 1
    if not args:
        return 1, 0
    try:
        levels = int(args[0])
    except ValueError:
        await ctx.state.stderr.write(f"{name}: {args[0]}: numeric argument required\n")
        return None, 128
    if levels < 1:
        await ctx.state.stderr.write(f"{name}: {args[0]}: loop count out of range\n")
        return None, 1
    return levels, 0


async def handle_break(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the break builtin.

    Usage: break [n]

    Exit from within a for, while, or until loop.
    If n is specified, break out of n enclosing loops.
    """
    if ctx.state.loop_depth == 0:
        await ctx.state.stderr.write(
            "break: only meaningful in a `for', `while', or `until' loop\n"
        )
        return 0
    levels, code = await _loop_levels(ctx, "break", args)
    if levels is None:
        return code
    raise BreakError(levels=levels)


async def handle_continue(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the continue builtin.

    Usage: continue [n]

    Resume the next iteration of an enclosing for, while, or until loop.
    If n is specified, resume at the nth enclosing loop.
    """
    if ctx.state.loop_depth == 0:
        await ctx.state.stderr.write(
            "continue: only meaningful in a `for', `while', or `until' loop\n"
        )
        return 0
    levels, code = await _loop_levels(ctx, "continue", args)
    if levels is None:
        return code
    raise ContinueError(levels=levels)


async def handle_return(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the return builtin.

    Usage: return [n]

    Return from a shell function. If n is omitted, the return value is
    the exit status of the last command executed.
    """
    if not ctx.state.can_return:
        await ctx.state.stderr.write("return: can only `return' from a function\n")
        return 1
    exit_code = ctx.state.exit_code
    if args:
        try:
            exit_code = int(args[0]) & 255
        except ValueError:
            await ctx.state.stderr.write(f"return: {args[0]}: numeric argument required\n")
            return 2
    raise ReturnError(exit_code)


async def handle_exit(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the exit builtin.

    Usage: exit [n]

    Exit the shell (or the current subshell) with status n. If n is
    omitted, the exit status is that of the last command executed.
    """
    exit_code = ctx.state.exit_code
    if len(args) > 1:
        await ctx.state.stderr.write("exit: too many arguments\n")
        return 1
    if args:
        try:
            exit_code = int(args[0]) & 255
        except ValueError:
            await ctx.state.stderr.write(f"exit: invalid exit status code: {args[0]!r}\n")
            return 2
    ctx.state.set_err(ExitCode(exit_code))
    return exit_code
