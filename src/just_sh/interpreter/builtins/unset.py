"""Unset builtin implementation.

Usage: unset [-v] [-f] [name ...]

Remove variables or functions. With no flag a name is unset as a
variable, or as a function when no such variable exists.
"""

import re
from typing import TYPE_CHECKING

from ..values import AssociativeArray, IndexedArray, del_var, lookup_var, resolve_value

if TYPE_CHECKING:
    from ..types import InterpreterContext

_ELEMENT_RE = re.compile(r"^([a-zA-Z_][a-zA-Z0-9_]*)\[(.*)\]$")


def _unset_element(ctx: "InterpreterContext", name: str, key: str) -> None:
    value = resolve_value(ctx.state, lookup_var(ctx.state, name))
    if isinstance(value, AssociativeArray):
        if key in value.values:
            del value.values[key]
            value.keys.remove(key)
    elif isinstance(value, IndexedArray):
        # arrays are dense; an unset element reads as empty
        try:
            i = int(key)
        except ValueError:
            return
        if i < 0:
            i += len(value.items)
        if 0 <= i < len(value.items):
            value.items[i] = ""


async def handle_unset(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the unset builtin."""
    state = ctx.state
    vars_only = False
    funcs_only = False
    args = list(args)
    while args and args[0].startswith("-") and len(args[0]) > 1:
        opt = args.pop(0)
        if opt == "--":
            break
        for c in opt[1:]:
            if c == "v":
                vars_only = True
            elif c == "f":
                funcs_only = True
            else:
                await state.stderr.write(f"unset: -{c}: invalid option\n")
                return 2

    for name in args:
        if funcs_only and not vars_only:
            state.functions.pop(name, None)
            continue
        m = _ELEMENT_RE.match(name)
        if m:
            _unset_element(ctx, m.group(1), m.group(2))
            continue
        if lookup_var(state, name) is not None or vars_only:
            del_var(state, name)
        else:
            state.functions.pop(name, None)
    return 0
