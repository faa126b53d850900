"""Cd and pwd builtin implementations.

Usage: cd [dir]
       cd -
       pwd

Change the current working directory to dir. If dir is not specified,
change to $HOME. If dir is -, change to $OLDPWD and print it.
"""

import os
from typing import TYPE_CHECKING

from ..values import Scalar, get_var, store_var

if TYPE_CHECKING:
    from ..types import InterpreterContext


async def change_dir(ctx: "InterpreterContext", name: str, target: str) -> int:
    """Move the working directory to target, reporting errors as ``name``.

    Updates PWD and OLDPWD and the top of the directory stack.
    """
    state = ctx.state
    new_dir = os.path.normpath(os.path.join(state.cwd, target))
    if not os.path.exists(new_dir):
        await state.stderr.write(f"{name}: {target}: No such file or directory\n")
        return 1
    if not os.path.isdir(new_dir):
        await state.stderr.write(f"{name}: {target}: Not a directory\n")
        return 1
    if not os.access(new_dir, os.X_OK):
        await state.stderr.write(f"{name}: {target}: Permission denied\n")
        return 1

    old_dir = state.cwd
    state.cwd = new_dir
    if state.dir_stack:
        state.dir_stack[-1] = new_dir
    else:
        state.dir_stack.append(new_dir)
    store_var(state, "OLDPWD", Scalar(old_dir))
    store_var(state, "PWD", Scalar(new_dir))
    return 0


async def handle_cd(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the cd builtin."""
    state = ctx.state
    positional = [a for a in args if a not in ("-L", "-P", "--")]
    if len(positional) > 1:
        await state.stderr.write("cd: too many arguments\n")
        return 1

    if not positional:
        target = get_var(state, "HOME")
        if not target:
            await state.stderr.write("cd: HOME not set\n")
            return 1
        return await change_dir(ctx, "cd", target)

    if positional[0] == "-":
        target = get_var(state, "OLDPWD")
        if not target:
            await state.stderr.write("cd: OLDPWD not set\n")
            return 1
        code = await change_dir(ctx, "cd", target)
        if code == 0:
            await state.stdout.write(state.cwd + "\n")
        return code

    return await change_dir(ctx, "cd", positional[0])


async def handle_pwd(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the pwd builtin."""
    await ctx.state.stdout.write(ctx.state.cwd + "\n")
    return 0
