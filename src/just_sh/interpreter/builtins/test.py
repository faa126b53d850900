"""Test / [ builtin implementation.

The test command evaluates conditional expressions and returns
exit code 0 (true) or 1 (false), or 2 on a malformed expression.

Usage: test expression
       [ expression ]

File operators:
  -e FILE     True if FILE exists (also -a in unary position)
  -f FILE     True if FILE exists and is a regular file
  -d FILE     True if FILE exists and is a directory
  -s FILE     True if FILE exists and has size > 0
  -r/-w/-x    True if FILE is readable / writable / executable
  -h/-L FILE  True if FILE is a symbolic link

String operators:
  -z STRING   True if STRING is empty
  -n STRING   True if STRING is not empty
  STRING      True if STRING is not empty
  S1 = S2     True if strings are equal (also ==)
  S1 != S2    True if strings are not equal
  S1 < S2     True if S1 sorts before S2
  S1 > S2     True if S1 sorts after S2

Numeric operators:
  N1 -eq N2 (and -ne, -lt, -le, -gt, -ge)

Other:
  -v NAME     True if the shell variable NAME is set
  F1 -nt F2, F1 -ot F2, F1 -ef F2

Logical operators:
  ! EXPR      True if EXPR is false
  ( EXPR )    Grouping
  EXPR -a EXPR  True if both EXPRs are true (AND)
  EXPR -o EXPR  True if either EXPR is true (OR)
"""

from typing import TYPE_CHECKING

from ..conditionals import (
    FILE_COMPARE_OPS,
    FILE_OPS,
    NUMERIC_OPS,
    TestSyntaxError,
    file_compare,
    file_test,
    numeric_compare,
)
from ..values import is_set

if TYPE_CHECKING:
    from ..types import InterpreterContext

_BINARY_OPS = {"=", "==", "!=", "<", ">"} | NUMERIC_OPS | FILE_COMPARE_OPS


async def handle_test(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the test builtin."""
    return await _run(ctx, "test", args)


async def handle_bracket(ctx: "InterpreterContext", args: list[str]) -> int:
    """Execute the [ builtin (requires closing ])."""
    if not args or args[-1] != "]":
        await ctx.state.stderr.write("[: missing `]'\n")
        return 2
    return await _run(ctx, "[", args[:-1])


async def _run(ctx: "InterpreterContext", name: str, args: list[str]) -> int:
    # Empty test is false
    if not args:
        return 1
    try:
        return 0 if _evaluate(ctx, args) else 1
    except TestSyntaxError as e:
        await ctx.state.stderr.write(f"{name}: {e}\n")
        return 2


def _evaluate(ctx: "InterpreterContext", args: list[str]) -> bool:
    """Evaluate a test expression given as words."""
    if not args:
        return False

    # Single argument: non-empty string is true
    if len(args) == 1:
        return args[0] != ""

    if len(args) == 3 and args[1] in _BINARY_OPS:
        return _binary_test(ctx, args[0], args[1], args[2])

    if args[0] == "!":
        return not _evaluate(ctx, args[1:])

    if args[0] == "(":
        depth = 1
        end = 1
        while end < len(args) and depth > 0:
            if args[end] == "(":
                depth += 1
            elif args[end] == ")":
                depth -= 1
            end += 1
        if depth != 0:
            raise TestSyntaxError("missing ')'")
        inner = _evaluate(ctx, args[1:end - 1])
        if end < len(args):
            return _compound(ctx, inner, args[end:])
        return inner

    # -o binds looser than -a
    for op in ("-o", "-a"):
        for i in range(1, len(args) - 1):
            if args[i] == op:
                left = _evaluate(ctx, args[:i])
                right = _evaluate(ctx, args[i + 1:])
                return (left or right) if op == "-o" else (left and right)

    if len(args) == 2:
        return _unary_test(ctx, args[0], args[1])
    if len(args) == 3:
        raise TestSyntaxError(f"{args[1]}: binary operator expected")
    raise TestSyntaxError("too many arguments")


def _compound(ctx: "InterpreterContext", left: bool, remaining: list[str]) -> bool:
    op, rest = remaining[0], remaining[1:]
    if op == "-a":
        return left and _evaluate(ctx, rest)
    if op == "-o":
        return left or _evaluate(ctx, rest)
    raise TestSyntaxError(f"unexpected '{op}'")


def _unary_test(ctx: "InterpreterContext", op: str, arg: str) -> bool:
    if op == "-z":
        return arg == ""
    if op == "-n":
        return arg != ""
    if op == "-v":
        return is_set(ctx.state, arg)
    if op in FILE_OPS:
        return file_test(ctx, op, arg)
    raise TestSyntaxError(f"{op}: unary operator expected")


def _integer(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        raise TestSyntaxError(f"{text}: integer expression expected") from None


def _binary_test(ctx: "InterpreterContext", left: str, op: str, right: str) -> bool:
    if op in ("=", "=="):
        return left == right
    if op == "!=":
        return left != right
    if op == "<":
        return left < right
    if op == ">":
        return left > right
    if op in NUMERIC_OPS:
        return numeric_compare(op, _integer(left), _integer(right))
    return file_compare(ctx, left, op, right)
