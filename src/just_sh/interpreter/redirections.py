"""Redirections.

``apply_redirection`` rebinds the statement's streams on the state. The
caller saves the streams beforehand, closes whatever was opened, and
restores the saved streams once the statement finishes.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Optional

from ..ast.types import RedirectionNode
from .streams import BufferStream

if TYPE_CHECKING:
    from ..types import Stream
    from .types import InterpreterContext

FILE_MODE = 0o644

_OPEN_FLAGS = {
    "<": os.O_RDONLY,
    ">": os.O_RDWR | os.O_CREAT | os.O_TRUNC,
    ">|": os.O_RDWR | os.O_CREAT | os.O_TRUNC,
    ">>": os.O_RDWR | os.O_CREAT | os.O_APPEND,
    "&>": os.O_RDWR | os.O_CREAT | os.O_TRUNC,
    "&>>": os.O_RDWR | os.O_CREAT | os.O_APPEND,
}


def _strip_tabs(body: str) -> str:
    return "".join(line.lstrip("\t") for line in body.splitlines(keepends=True))


def _set_output(ctx: "InterpreterContext", fd: int, stream: "Stream") -> None:
    if fd == 2:
        ctx.state.stderr = stream
    else:
        ctx.state.stdout = stream


async def apply_redirection(
    ctx: "InterpreterContext", rd: RedirectionNode
) -> tuple[bool, Optional["Stream"]]:
    """Apply one redirection.

    Returns ``(ok, opened)``: ``ok`` is False when the statement must not
    run (the exit code or fatal error has been set), and ``opened`` is a
    stream the caller must close.
    """
    from .dispatch import open_file
    from .expansion import lone_word

    state = ctx.state
    op = rd.operator

    if op in ("<<", "<<-"):
        body = await lone_word(ctx, rd.target.parts)
        state.stdin = BufferStream(_strip_tabs(body) if op == "<<-" else body)
        return True, None

    default_fd = 0 if op.startswith("<") else 1
    fd = default_fd if rd.fd is None else rd.fd
    if fd not in (0, 1, 2):
        state.run_err(rd.pos, f"unsupported file descriptor: {fd}")
        return False, None

    arg = await lone_word(ctx, rd.target.parts)

    if op == "<<<":
        state.stdin = BufferStream(arg + "\n")
        return True, None

    if op == ">&":
        if arg == "1":
            _set_output(ctx, fd, state.stdout)
            return True, None
        if arg == "2":
            _set_output(ctx, fd, state.stderr)
            return True, None
        if rd.fd is None or rd.fd == 1:
            # >&file is &>file
            op = "&>"
        else:
            state.run_err(rd.pos, f"unhandled redirect: {fd}>&{arg}")
            return False, None
    elif op == "<&":
        if arg == "0":
            return True, None
        state.run_err(rd.pos, f"unhandled redirect: {fd}<&{arg}")
        return False, None

    if op not in _OPEN_FLAGS:
        state.run_err(rd.pos, f"unhandled redirect op: {op}")
        return False, None

    stream = await open_file(ctx, arg, _OPEN_FLAGS[op], FILE_MODE)
    if stream is None:
        return False, None

    if op == "<":
        state.stdin = stream
    elif op in ("&>", "&>>"):
        state.stdout = stream
        state.stderr = stream
    else:
        _set_output(ctx, fd, stream)
    return True, stream
