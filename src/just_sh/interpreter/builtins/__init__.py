"""Builtin commands.

Each builtin is an ``async def handle_x(ctx, args) -> int`` that writes to
``ctx.state`` streams and returns its exit code. ``DefaultBuiltins`` exposes
the ``BUILTINS`` table through the interpreter's builtin-table contract.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Awaitable, Callable

from .cd import handle_cd, handle_pwd
from .control import handle_break, handle_continue, handle_exit, handle_return
from .dirs import handle_dirs, handle_popd, handle_pushd
from .misc import (
    handle_builtin,
    handle_colon,
    handle_echo,
    handle_false,
    handle_printf,
    handle_true,
    handle_type,
    handle_wait,
)
from .read import handle_read
from .set import handle_set, handle_shift
from .test import handle_bracket, handle_test
from .unset import handle_unset

if TYPE_CHECKING:
    from ...ast.types import Position
    from ..types import InterpreterContext

BuiltinHandler = Callable[["InterpreterContext", list[str]], Awaitable[int]]

BUILTINS: dict[str, BuiltinHandler] = {
    ":": handle_colon,
    "true": handle_true,
    "false": handle_false,
    "exit": handle_exit,
    "return": handle_return,
    "break": handle_break,
    "continue": handle_continue,
    "echo": handle_echo,
    "printf": handle_printf,
    "set": handle_set,
    "shift": handle_shift,
    "unset": handle_unset,
    "cd": handle_cd,
    "pwd": handle_pwd,
    "pushd": handle_pushd,
    "popd": handle_popd,
    "dirs": handle_dirs,
    "wait": handle_wait,
    "read": handle_read,
    "type": handle_type,
    "builtin": handle_builtin,
    "test": handle_test,
    "[": handle_bracket,
}


class DefaultBuiltins:
    """Builtin table backed by a name -> handler mapping."""

    def __init__(self, handlers: dict[str, BuiltinHandler] | None = None):
        self.handlers = dict(BUILTINS if handlers is None else handlers)

    def is_builtin(self, name: str) -> bool:
        return name in self.handlers

    async def run_builtin(
        self, ctx: "InterpreterContext", pos: "Position", name: str, args: list[str]
    ) -> int:
        handler = self.handlers.get(name)
        if handler is None:
            ctx.state.run_err(pos, f"{name}: not a builtin")
            return 1
        return await handler(ctx, list(args))


__all__ = ["BUILTINS", "BuiltinHandler", "DefaultBuiltins"]
