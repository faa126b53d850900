"""Control Flow Execution.

Handles control flow constructs:
- if/elif/else
- for loops
- C-style for loops
- while/until loops
- case statements
- break/continue unwinding
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Sequence

from ..ast.types import (
    CaseNode,
    CStyleForNode,
    ForNode,
    IfNode,
    StatementNode,
    WhileNode,
)
from .arithmetic import arithm
from .errors import BreakError, ContinueError, ExecutionLimitError
from .expansion import fields, lone_word, match_pattern, pattern_word
from .values import Scalar, set_var

if TYPE_CHECKING:
    from .types import InterpreterContext

_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


async def execute_condition(ctx: "InterpreterContext", stmts: Sequence[StatementNode]) -> None:
    """Run a condition list; errexit does not apply inside it."""
    ctx.state.in_condition += 1
    try:
        await ctx.execute_statements(stmts)
    finally:
        ctx.state.in_condition -= 1


async def _run_loop_body(ctx: "InterpreterContext", body: Sequence[StatementNode]) -> bool:
    """Run one iteration. Returns True when the loop must end.

    ``break n``/``continue n`` with n > 1 are passed on to the enclosing
    loop with one level used up.
    """
    try:
        await ctx.execute_statements(body)
    except BreakError as e:
        if e.levels > 1 and ctx.state.loop_depth > 1:
            e.levels -= 1
            raise
        return True
    except ContinueError as e:
        if e.levels > 1 and ctx.state.loop_depth > 1:
            e.levels -= 1
            raise
    return ctx.stopped()


def _check_iterations(ctx: "InterpreterContext", iterations: int, kind: str) -> bool:
    limit = ctx.limits.max_loop_iterations
    if iterations > limit:
        ctx.state.set_err(
            ExecutionLimitError(f"{kind} loop: too many iterations ({limit})", "iterations")
        )
        return False
    return True


async def execute_if(ctx: "InterpreterContext", node: IfNode) -> None:
    """Execute an if statement."""
    state = ctx.state
    await execute_condition(ctx, node.condition)
    if ctx.stopped():
        return
    if state.exit_code == 0:
        await ctx.execute_statements(node.then_body)
        return
    state.exit_code = 0
    if node.else_body is not None:
        await ctx.execute_statements(node.else_body)


async def execute_while(ctx: "InterpreterContext", node: WhileNode) -> None:
    """Execute a while or until loop."""
    state = ctx.state
    kind = "until" if node.until else "while"
    iterations = 0
    state.loop_depth += 1
    try:
        while not ctx.stopped():
            await execute_condition(ctx, node.condition)
            stop = (state.exit_code == 0) == node.until
            state.exit_code = 0
            if stop or ctx.stopped():
                break
            iterations += 1
            if not _check_iterations(ctx, iterations, kind):
                break
            if await _run_loop_body(ctx, node.body):
                break
    finally:
        state.loop_depth -= 1


async def execute_for(ctx: "InterpreterContext", node: ForNode) -> None:
    """Execute a for loop over words, or over "$@" when none are given."""
    state = ctx.state
    if not _NAME_RE.match(node.variable):
        await state.stderr.write(f"`{node.variable}': not a valid identifier\n")
        state.exit_code = 1
        return

    if node.words is None:
        items = list(state.params)
    else:
        items = await fields(ctx, node.words)
    state.exit_code = 0

    state.loop_depth += 1
    try:
        for iterations, item in enumerate(items, start=1):
            if ctx.stopped() or not _check_iterations(ctx, iterations, "for"):
                break
            await set_var(ctx, node.variable, None, Scalar(item), node.pos)
            if await _run_loop_body(ctx, node.body):
                break
    finally:
        state.loop_depth -= 1


async def execute_c_style_for(ctx: "InterpreterContext", node: CStyleForNode) -> None:
    """Execute a C-style for loop: for ((init; cond; update))."""
    state = ctx.state
    if node.init is not None:
        await arithm(ctx, node.init)
    iterations = 0
    state.loop_depth += 1
    try:
        while not ctx.stopped():
            if node.condition is not None and await arithm(ctx, node.condition) == 0:
                break
            if ctx.stopped():
                break
            iterations += 1
            if not _check_iterations(ctx, iterations, "for"):
                break
            if await _run_loop_body(ctx, node.body):
                break
            if node.update is not None:
                await arithm(ctx, node.update)
    finally:
        state.loop_depth -= 1
    if state.err is None:
        state.exit_code = 0


async def execute_case(ctx: "InterpreterContext", node: CaseNode) -> None:
    """Execute a case statement; the first matching pattern wins."""
    subject = await lone_word(ctx, node.word.parts)
    ctx.state.exit_code = 0
    for item in node.items:
        for word in item.patterns:
            pattern = await pattern_word(ctx, word)
            if ctx.stopped():
                return
            if match_pattern(pattern, subject):
                await ctx.execute_statements(item.body)
                return
