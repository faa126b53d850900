"""Pushd, popd, and dirs builtin implementations.

Usage: pushd [dir]
       popd
       dirs

Manage the directory stack. The last entry of the stack is always the
working directory; it is printed first.
"""

from typing import TYPE_CHECKING

from ..values import get_var
from .cd import change_dir

if TYPE_CHECKING:
    from ..types import InterpreterContext


def _tilde_sub(path: str, home: str) -> str:
    """Replace leading $HOME with ~ in path."""
    if not home:
        return path
    if path == home:
        return "~"
    if path.startswith(home + "/"):
        return "~" + path[len(home):]
    return path


async def _print_stack(ctx: "InterpreterContext") -> None:
    home = get_var(ctx.state, "HOME")
    entries = [_tilde_sub(d, home) for d in reversed(ctx.state.dir_stack)]
    await ctx.state.stdout.write(" ".join(entries) + "\n")


async def handle_pushd(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the pushd builtin."""
    state = ctx.state
    args = [a for a in args if a != "--"]
    if len(args) > 1:
        await state.stderr.write("pushd: too many arguments\n")
        return 2

    if not args:
        # swap the top two entries
        if len(state.dir_stack) < 2:
            await state.stderr.write("pushd: no other directory\n")
            return 1
        new_top = state.dir_stack[-2]
        old_top = state.dir_stack[-1]
        code = await change_dir(ctx, "pushd", new_top)
        if code != 0:
            return code
        state.dir_stack[-2] = old_top
    else:
        state.dir_stack.append(state.cwd)
        code = await change_dir(ctx, "pushd", args[0])
        if code != 0:
            state.dir_stack.pop()
            return code

    await _print_stack(ctx)
    return 0


async def handle_popd(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the popd builtin."""
    state = ctx.state
    args = [a for a in args if a != "--"]
    if args:
        await state.stderr.write("popd: too many arguments\n")
        return 2
    if len(state.dir_stack) < 2:
        await state.stderr.write("popd: directory stack empty\n")
        return 1

    popped = state.dir_stack.pop()
    code = await change_dir(ctx, "popd", state.dir_stack[-1])
    if code != 0:
        state.dir_stack.append(popped)
        return code
    await _print_stack(ctx)
    return 0


async def handle_dirs(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the dirs builtin."""
    if args:
        await ctx.state.stderr.write("dirs: options are not supported\n")
        return 2
    await _print_stack(ctx)
    return 0
