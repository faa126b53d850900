"""Shell option parsing shared by ``Interpreter.from_args`` and ``set``."""

from __future__ import annotations

from typing import Sequence

from .errors import InvalidOptionError
from .types import ShellOptions

# single-letter flag -> ShellOptions attribute
SHORT_OPTIONS = {
    "e": "errexit",
}

LONG_OPTIONS = {name: name for name in SHORT_OPTIONS.values()}


def parse_options(options: ShellOptions, args: Sequence[str]) -> tuple[list[str], bool]:
    """Consume leading -x/+x options, updating ``options`` in place.

    Stops at the first non-option or after ``--``. Returns the remaining
    arguments and whether ``--`` ended the options.
    """
    rest = list(args)
    while rest:
        opt = rest[0]
        if not opt or opt[0] not in "-+":
            break
        enable = opt[0] == "-"
        if opt[1:] == "-":
            rest.pop(0)
            return rest, True
        if opt[1:] == "o" and len(rest) > 1:
            name = rest[1]
            if name not in LONG_OPTIONS:
                raise InvalidOptionError(name)
            setattr(options, LONG_OPTIONS[name], enable)
            del rest[:2]
            continue
        flags = opt[1:]
        if not flags or any(f not in SHORT_OPTIONS for f in flags):
            raise InvalidOptionError(opt)
        for f in flags:
            setattr(options, SHORT_OPTIONS[f], enable)
        rest.pop(0)
    return rest, False
