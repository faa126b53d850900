"""Miscellaneous builtins: colon, true, false, echo, printf, type, builtin, wait.

These are simple builtins that don't need their own files.
"""

import shutil
from typing import TYPE_CHECKING

from ..expansion import expand_format
from ..values import get_var

if TYPE_CHECKING:
    from ..types import InterpreterContext


async def handle_colon(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the : (colon) builtin - null command, always succeeds."""
    return 0


async def handle_true(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the true builtin - always succeeds."""
    return 0


async def handle_false(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the false builtin - always fails."""
    return 1


async def handle_echo(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the echo builtin.

    Usage: echo [-neE] [arg ...]

    Leading option words are only taken as options when every letter is
    one of n, e or E.
    """
    newline = True
    escapes = False
    while args and len(args[0]) > 1 and args[0][0] == "-" and all(c in "neE" for c in args[0][1:]):
        for c in args[0][1:]:
            if c == "n":
                newline = False
            elif c == "e":
                escapes = True
            else:
                escapes = False
        args = args[1:]

    out = []
    for arg in args:
        if escapes:
            arg, _ = expand_format(arg, [], only_chars=True)
        out.append(arg)
    text = " ".join(out)
    if newline:
        text += "\n"
    await ctx.state.stdout.write(text)
    return 0


async def handle_printf(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the printf builtin.

    Usage: printf format [arguments]

    The format is reused until all arguments are consumed.
    """
    if not args:
        await ctx.state.stderr.write("printf: usage: printf format [arguments]\n")
        return 2
    fmt, rest = args[0], args[1:]
    while True:
        text, used = expand_format(fmt, rest)
        await ctx.state.stdout.write(text)
        rest = rest[used:]
        if used == 0 or not rest:
            break
    return 0


async def handle_type(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the type builtin.

    Usage: type name [name ...]

    Reports whether each name is a function, a builtin or a program.
    """
    state = ctx.state
    exit_code = 0
    for name in args:
        if name in state.functions:
            await state.stdout.write(f"{name} is a function\n")
        elif ctx.builtins.is_builtin(name):
            await state.stdout.write(f"{name} is a shell builtin\n")
        else:
            path = shutil.which(name, path=get_var(state, "PATH") or None)
            if path:
                await state.stdout.write(f"{name} is {path}\n")
            else:
                await state.stderr.write(f"type: {name}: not found\n")
                exit_code = 1
    return exit_code


async def handle_builtin(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the builtin builtin.

    Usage: builtin name [args ...]

    Run a builtin, skipping any function with the same name.
    """
    if not args:
        return 0
    name = args[0]
    if not ctx.builtins.is_builtin(name):
        await ctx.state.stderr.write(f"builtin: {name}: not a shell builtin\n")
        return 1
    from ...ast.types import NO_POS

    return await ctx.builtins.run_builtin(ctx, NO_POS, name, args[1:])


async def handle_wait(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the wait builtin.

    Usage: wait

    Wait for all background jobs started by this shell; the exit status
    is that of the last job.
    """
    if args:
        await ctx.state.stderr.write("wait: job arguments are not supported\n")
        return 2
    return await ctx.interpreter.wait_background(ctx)
