"""Arithmetic evaluation for $((...)), ((...)), let, and array indexes.

The interpreter calls the evaluator configured on it through ``arithm()``;
``evaluate_arithmetic`` is the default one.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from ..ast.types import NO_POS, WordNode
from .errors import ArithmeticEvalError
from .values import MAX_NAMEREF_DEPTH, Scalar, get_var, set_var

if TYPE_CHECKING:
    from ..ast.types import ArithExpr
    from .types import InterpreterContext

_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_ELEMENT_RE = re.compile(r"^([a-zA-Z_][a-zA-Z0-9_]*)\[(.+)\]$")
_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ@_"

_ASSIGN_OPS = {"=", "+=", "-=", "*=", "/=", "%=", "<<=", ">>=", "&=", "|=", "^="}


async def arithm(ctx: "InterpreterContext", expr: "ArithExpr") -> int:
    """Evaluate with the interpreter's evaluator; errors become fatal run errors."""
    try:
        return await ctx.arithmetic(ctx, expr)
    except ArithmeticEvalError as e:
        ctx.state.run_err(getattr(expr, "pos", NO_POS), str(e))
        return 0


def _parse_base_n(digits: str, base: int) -> int:
    value = 0
    for ch in digits:
        if base <= 36:
            ch = ch.lower()
            d = _DIGITS.find(ch)
        else:
            d = _DIGITS.find(ch)
        if d < 0 or d >= base:
            raise ArithmeticEvalError(f"{digits}: value too great for base (error token is \"{digits}\")")
        value = value * base + d
    return value


def parse_number(text: str) -> int:
    """Parse an integer constant: decimal, 0x hex, 0 octal, 0b binary, or base#digits."""
    s = text.strip()
    if not s:
        return 0
    sign = 1
    if s[0] in "+-":
        sign = -1 if s[0] == "-" else 1
        s = s[1:].strip()
    try:
        if s[:2] in ("0x", "0X"):
            return sign * int(s[2:], 16)
        if s[:2] in ("0b", "0B"):
            return sign * int(s[2:], 2)
        if s[:2] in ("0o", "0O"):
            return sign * int(s[2:], 8)
        if "#" in s:
            base_text, _, digits = s.partition("#")
            base = int(base_text)
            if not 2 <= base <= 64:
                raise ArithmeticEvalError(f"{base}: invalid arithmetic base")
            return sign * _parse_base_n(digits, base)
        if len(s) > 1 and s[0] == "0":
            return sign * int(s, 8)
        return sign * int(s, 10)
    except ValueError:
        raise ArithmeticEvalError(
            f"{text}: syntax error: invalid arithmetic operator (error token is \"{text}\")"
        ) from None


async def _leaf_text(ctx: "InterpreterContext", word: WordNode) -> str:
    from .expansion import lone_word

    return (await lone_word(ctx, word.parts)).strip()


async def _read_name(ctx: "InterpreterContext", name: str) -> str:
    """Read a variable or an arr[index] element as text."""
    m = _ELEMENT_RE.match(name)
    if m:
        from .values import index_view, lookup_var
        from ..ast.types import LiteralPart

        index = WordNode((LiteralPart(m.group(2)),))
        return await index_view(ctx, lookup_var(ctx.state, m.group(1)), index)
    return get_var(ctx.state, name)


async def _resolve(ctx: "InterpreterContext", text: str) -> int:
    """Follow variable names until a number is reached; unset names are 0."""
    for _ in range(MAX_NAMEREF_DEPTH):
        if not text:
            return 0
        if _NAME_RE.match(text) or _ELEMENT_RE.match(text):
            text = (await _read_name(ctx, text)).strip()
            continue
        return parse_number(text)
    return 0


async def _assign(ctx: "InterpreterContext", target: "ArithExpr", value: int) -> None:
    if not isinstance(target, WordNode):
        raise ArithmeticEvalError("attempted assignment to non-variable")
    name = await _leaf_text(ctx, target)
    m = _ELEMENT_RE.match(name)
    if m:
        from ..ast.types import LiteralPart

        index = WordNode((LiteralPart(m.group(2)),))
        await set_var(ctx, m.group(1), index, Scalar(str(value)))
        return
    if not _NAME_RE.match(name):
        raise ArithmeticEvalError(f"{name}: attempted assignment to non-variable")
    await set_var(ctx, name, None, Scalar(str(value)))


def _binary(op: str, left: int, right: int) -> int:
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if op in ("/", "%"):
        if right == 0:
            raise ArithmeticEvalError("division by 0")
        # C-style truncation toward zero
        q = abs(left) // abs(right)
        if (left < 0) != (right < 0):
            q = -q
        return q if op == "/" else left - q * right
    if op == "**":
        if right < 0:
            raise ArithmeticEvalError("exponent less than 0")
        return left ** right
    if op == "<":
        return int(left < right)
    if op == ">":
        return int(left > right)
    if op == "<=":
        return int(left <= right)
    if op == ">=":
        return int(left >= right)
    if op == "==":
        return int(left == right)
    if op == "!=":
        return int(left != right)
    if op == "&":
        return left & right
    if op == "|":
        return left | right
    if op == "^":
        return left ^ right
    if op in ("<<", ">>"):
        if right < 0:
            raise ArithmeticEvalError("negative shift count")
        return left << right if op == "<<" else left >> right
    raise ArithmeticEvalError(f"{op}: unknown arithmetic operator")


async def evaluate_arithmetic(ctx: "InterpreterContext", expr: "ArithExpr") -> int:
    """Evaluate an arithmetic expression."""
    if expr is None:
        return 0
    if isinstance(expr, WordNode):
        return await _resolve(ctx, await _leaf_text(ctx, expr))

    if expr.type == "ArithBinary":
        op = expr.operator
        if op == "&&":
            if not await evaluate_arithmetic(ctx, expr.left):
                return 0
            return int(bool(await evaluate_arithmetic(ctx, expr.right)))
        if op == "||":
            if await evaluate_arithmetic(ctx, expr.left):
                return 1
            return int(bool(await evaluate_arithmetic(ctx, expr.right)))
        if op == ",":
            await evaluate_arithmetic(ctx, expr.left)
            return await evaluate_arithmetic(ctx, expr.right)
        if op in _ASSIGN_OPS:
            rhs = await evaluate_arithmetic(ctx, expr.right)
            if op != "=":
                current = await evaluate_arithmetic(ctx, expr.left)
                rhs = _binary(op[:-1], current, rhs)
            await _assign(ctx, expr.left, rhs)
            return rhs
        left = await evaluate_arithmetic(ctx, expr.left)
        right = await evaluate_arithmetic(ctx, expr.right)
        return _binary(op, left, right)

    if expr.type == "ArithUnary":
        op = expr.operator
        if op in ("++", "--"):
            current = await evaluate_arithmetic(ctx, expr.operand)
            new = current + 1 if op == "++" else current - 1
            await _assign(ctx, expr.operand, new)
            return current if expr.postfix else new
        operand = await evaluate_arithmetic(ctx, expr.operand)
        if op == "-":
            return -operand
        if op == "+":
            return operand
        if op == "!":
            return int(not operand)
        if op == "~":
            return ~operand
        raise ArithmeticEvalError(f"{op}: unknown arithmetic operator")

    if expr.type == "ArithTernary":
        if await evaluate_arithmetic(ctx, expr.condition):
            return await evaluate_arithmetic(ctx, expr.consequent)
        return await evaluate_arithmetic(ctx, expr.alternate)

    if expr.type == "ArithGroup":
        return await evaluate_arithmetic(ctx, expr.expression)

    raise ArithmeticEvalError(f"unhandled arithmetic node: {type(expr).__name__}")
