"""Set and shift builtin implementations.

Usage: set [-e|+e] [-o errexit|+o errexit] [--] [arg ...]
       shift [n]
"""

from typing import TYPE_CHECKING

from ..errors import InvalidOptionError
from ..options import parse_options
from ..values import scalar_view

if TYPE_CHECKING:
    from ..types import InterpreterContext


def _shell_quote_value(value: str) -> str:
    """Quote a value for set output."""
    if value and all(c.isalnum() or c in "_-./:=@%+," for c in value):
        return value
    return "'" + value.replace("'", "'\\''") + "'"


async def handle_set(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the set builtin.

    With no arguments, lists the shell variables. Otherwise applies
    options, and any remaining arguments (or a bare ``--``) replace the
    positional parameters.
    """
    state = ctx.state
    if not args:
        lines = []
        for name in sorted(state.vars):
            lines.append(f"{name}={_shell_quote_value(scalar_view(state, state.vars[name]))}\n")
        await state.stdout.write("".join(lines))
        return 0
    try:
        rest, saw_dashdash = parse_options(state.options, args)
    except InvalidOptionError as e:
        await state.stderr.write(f"set: {e}\n")
        return 2
    if rest or saw_dashdash:
        state.params = rest
    return 0


async def handle_shift(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the shift builtin.

    Usage: shift [n]

    Drop the first n positional parameters (default 1).
    """
    state = ctx.state
    n = 1
    if len(args) > 1:
        await state.stderr.write("shift: too many arguments\n")
        return 2
    if args:
        try:
            n = int(args[0])
        except ValueError:
            await state.stderr.write(f"shift: {args[0]}: numeric argument required\n")
            return 2
        if n < 0:
            await state.stderr.write(f"shift: {args[0]}: shift count out of range\n")
            return 1
    if n > len(state.params):
        return 1
    state.params = state.params[n:]
    return 0
