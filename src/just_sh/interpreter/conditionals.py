"""Conditional expression evaluation for [[ ... ]], test and [.

File, string and numeric operators live here and are shared by the
``[[`` evaluator and the ``test`` builtin.
"""

from __future__ import annotations

import os
import re
import stat
from typing import TYPE_CHECKING

from ..ast.types import WordNode
from .values import IndexedArray, is_set, store_var

if TYPE_CHECKING:
    from ..ast.types import TestExpr
    from .types import InterpreterContext

FILE_OPS = {"-e", "-a", "-f", "-d", "-s", "-r", "-w", "-x", "-h", "-L", "-p", "-S", "-b", "-c"}
STRING_OPS = {"-z", "-n"}
NUMERIC_OPS = {"-eq", "-ne", "-lt", "-le", "-gt", "-ge"}
FILE_COMPARE_OPS = {"-nt", "-ot", "-ef"}


class TestSyntaxError(ValueError):
    """Bad operator or operand in a test expression."""

    __test__ = False


def _resolve(ctx: "InterpreterContext", path: str) -> str:
    return os.path.join(ctx.state.cwd, path)


def file_test(ctx: "InterpreterContext", op: str, path: str) -> bool:
    """Evaluate a unary file operator against the real filesystem."""
    if not path:
        return False
    full = _resolve(ctx, path)
    if op in ("-h", "-L"):
        return os.path.islink(full)
    try:
        st = os.stat(full)
    except OSError:
        return False
    if op in ("-e", "-a"):
        return True
    if op == "-f":
        return stat.S_ISREG(st.st_mode)
    if op == "-d":
        return stat.S_ISDIR(st.st_mode)
    if op == "-s":
        return st.st_size > 0
    if op == "-p":
        return stat.S_ISFIFO(st.st_mode)
    if op == "-S":
        return stat.S_ISSOCK(st.st_mode)
    if op == "-b":
        return stat.S_ISBLK(st.st_mode)
    if op == "-c":
        return stat.S_ISCHR(st.st_mode)
    if op == "-r":
        return os.access(full, os.R_OK)
    if op == "-w":
        return os.access(full, os.W_OK)
    if op == "-x":
        return os.access(full, os.X_OK)
    raise TestSyntaxError(f"{op}: unary operator expected")


def file_compare(ctx: "InterpreterContext", left: str, op: str, right: str) -> bool:
    """-nt, -ot and -ef. A missing file is older than any existing one."""
    try:
        st1 = os.stat(_resolve(ctx, left))
    except OSError:
        st1 = None
    try:
        st2 = os.stat(_resolve(ctx, right))
    except OSError:
        st2 = None
    if op == "-ef":
        return (
            st1 is not None
            and st2 is not None
            and (st1.st_dev, st1.st_ino) == (st2.st_dev, st2.st_ino)
        )
    if st1 is None and st2 is None:
        return False
    if op == "-nt":
        return st2 is None or (st1 is not None and st1.st_mtime > st2.st_mtime)
    return st1 is None or (st2 is not None and st1.st_mtime < st2.st_mtime)


def numeric_compare(op: str, left: int, right: int) -> bool:
    if op == "-eq":
        return left == right
    if op == "-ne":
        return left != right
    if op == "-lt":
        return left < right
    if op == "-le":
        return left <= right
    if op == "-gt":
        return left > right
    return left >= right


async def _word(ctx: "InterpreterContext", expr: "TestExpr") -> str:
    from .expansion import lone_word

    if not isinstance(expr, WordNode):
        raise TestSyntaxError("conditional binary operator expected")
    return await lone_word(ctx, expr.parts)


async def _truth(ctx: "InterpreterContext", expr: "TestExpr") -> bool:
    return await evaluate_conditional(ctx, expr) != ""


async def evaluate_conditional(ctx: "InterpreterContext", expr: "TestExpr") -> str:
    """Evaluate a [[ ]] expression; "1" is true, "" is false.

    An invalid =~ regex sets the exit code to 2 and yields false.
    """
    from .arithmetic import arithm
    from .expansion import match_pattern, pattern_word

    if isinstance(expr, WordNode):
        return "1" if await _word(ctx, expr) else ""

    if expr.type == "TestGroup":
        return await evaluate_conditional(ctx, expr.expression)

    if expr.type == "TestUnary":
        op = expr.operator
        if op == "!":
            return "" if await _truth(ctx, expr.operand) else "1"
        arg = await _word(ctx, expr.operand)
        if op == "-z":
            return "1" if arg == "" else ""
        if op == "-n":
            return "1" if arg != "" else ""
        if op == "-v":
            return "1" if is_set(ctx.state, arg) else ""
        return "1" if file_test(ctx, op, arg) else ""

    op = expr.operator
    if op == "&&":
        return "1" if await _truth(ctx, expr.left) and await _truth(ctx, expr.right) else ""
    if op == "||":
        return "1" if await _truth(ctx, expr.left) or await _truth(ctx, expr.right) else ""

    left = await _word(ctx, expr.left)
    if op in ("==", "=", "!="):
        if not isinstance(expr.right, WordNode):
            raise TestSyntaxError("conditional binary operator expected")
        matched = match_pattern(await pattern_word(ctx, expr.right), left)
        return "1" if matched == (op != "!=") else ""
    if op == "=~":
        source = await _word(ctx, expr.right)
        try:
            m = re.search(source, left)
        except re.error:
            ctx.state.exit_code = 2
            return ""
        if m is None:
            return ""
        groups = [m.group(0)] + [g or "" for g in m.groups()]
        store_var(ctx.state, "BASH_REMATCH", IndexedArray(groups))
        return "1"
    if op == "<":
        return "1" if left < await _word(ctx, expr.right) else ""
    if op == ">":
        return "1" if left > await _word(ctx, expr.right) else ""
    if op in NUMERIC_OPS:
        lnum = await arithm(ctx, expr.left)
        rnum = await arithm(ctx, expr.right)
        return "1" if numeric_compare(op, lnum, rnum) else ""
    if op in FILE_COMPARE_OPS:
        return "1" if file_compare(ctx, left, op, await _word(ctx, expr.right)) else ""
    raise TestSyntaxError(f"{op}: conditional binary operator expected")
