"""Read builtin implementation.

Usage: read [-r] [name ...]

Read one line from standard input and split it into fields. The last
name receives the rest of the line. With no names the whole line is
stored in REPLY. Without -r a backslash escapes the next character and
a trailing backslash continues the line.
"""

import re
from typing import TYPE_CHECKING

from ..values import Scalar, set_var

if TYPE_CHECKING:
    from ..types import InterpreterContext

_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_IFS = " \t\n"


async def _read_line(ctx: "InterpreterContext", raw: bool) -> tuple[str, bool]:
    """Read a logical line; returns (text, reached_newline)."""
    stdin = ctx.state.stdin
    out = []
    while True:
        chunk = (await stdin.readline()).decode("utf-8", errors="replace")
        if not chunk:
            return "".join(out), False
        newline = chunk.endswith("\n")
        if newline:
            chunk = chunk[:-1]
        if raw:
            out.append(chunk)
            return "".join(out), newline
        i = 0
        continued = False
        while i < len(chunk):
            c = chunk[i]
            if c == "\\":
                if i + 1 < len(chunk):
                    out.append(chunk[i + 1])
                    i += 2
                    continue
                continued = newline
                i += 1
                continue
            out.append(c)
            i += 1
        if not continued:
            return "".join(out), newline


def _split(line: str, count: int) -> list[str]:
    """Split into at most count fields; the last keeps the remainder."""
    fields = []
    rest = line.lstrip(_IFS)
    while rest and len(fields) < count - 1:
        m = re.search(r"[ \t\n]+", rest)
        if m is None:
            break
        fields.append(rest[:m.start()])
        rest = rest[m.end():]
    fields.append(rest.rstrip(_IFS))
    return fields


async def handle_read(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the read builtin."""
    state = ctx.state
    raw = False
    names = []
    for arg in args:
        if arg == "-r" and not names:
            raw = True
        elif arg.startswith("-") and not names:
            await state.stderr.write(f"read: {arg}: invalid option\n")
            return 2
        elif not _NAME_RE.match(arg):
            await state.stderr.write(f"read: `{arg}': not a valid identifier\n")
            return 1
        else:
            names.append(arg)

    line, newline = await _read_line(ctx, raw)
    if not names:
        await set_var(ctx, "REPLY", None, Scalar(line))
    else:
        values = _split(line, len(names))
        for i, name in enumerate(names):
            await set_var(ctx, name, None, Scalar(values[i] if i < len(values) else ""))
    return 0 if newline else 1
