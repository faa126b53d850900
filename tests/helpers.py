"""AST builders and runners shared by the test suites.

There is no parser in just-sh, so tests build programs directly. Plain
strings given where a word is expected become literal words, and plain
command nodes given where a statement is expected are wrapped.
"""

from typing import Optional, Union

from just_sh import ExecResult, Shell
from just_sh.ast import (
    ArithBinary,
    ArithmeticCommandNode,
    ArithmeticExpansionPart,
    ArithUnary,
    ArrayElementNode,
    ArrayNode,
    AssignmentNode,
    BinaryCommandNode,
    CommandSubstitutionPart,
    DoubleQuotedPart,
    ForNode,
    FunctionDefNode,
    GroupNode,
    IfNode,
    LiteralPart,
    ParameterExpansionPart,
    RedirectionNode,
    ScriptNode,
    SimpleCommandNode,
    SingleQuotedPart,
    StatementNode,
    WhileNode,
    WordNode,
)
from just_sh.types import HandlerContext

DEFAULT_ENV = {"HOME": "/home/user", "PATH": "/usr/local/bin:/usr/bin:/bin"}


# =============================================================================
# Words
# =============================================================================


def lit(value: str) -> LiteralPart:
    return LiteralPart(value)


def sq(value: str, dollar: bool = False) -> SingleQuotedPart:
    return SingleQuotedPart(value, dollar)


def dq(*parts) -> DoubleQuotedPart:
    return DoubleQuotedPart(tuple(lit(p) if isinstance(p, str) else p for p in parts))


def param(name: str, **kwargs) -> ParameterExpansionPart:
    """$name / ${name...}; index may be a str or a WordNode."""
    index = kwargs.get("index")
    if isinstance(index, str):
        kwargs["index"] = word(index)
    return ParameterExpansionPart(name, **kwargs)


def subst(*commands) -> CommandSubstitutionPart:
    return CommandSubstitutionPart(stmts(*commands))


def arith(expr) -> ArithmeticExpansionPart:
    return ArithmeticExpansionPart(expr)


def word(*parts) -> WordNode:
    return WordNode(tuple(lit(p) if isinstance(p, str) else p for p in parts))


def as_word(value) -> WordNode:
    if isinstance(value, WordNode):
        return value
    return word(value)


# =============================================================================
# Arithmetic
# =============================================================================


def operand(value):
    """Strings become words; arithmetic nodes pass through."""
    return word(value) if isinstance(value, str) else value


def binop(op: str, left, right) -> ArithBinary:
    return ArithBinary(op, operand(left), operand(right))


def unop(op: str, value, postfix: bool = False) -> ArithUnary:
    return ArithUnary(op, operand(value), postfix)


# =============================================================================
# Commands and statements
# =============================================================================


def assign(name: str, value=None, *, index=None, array=None, append: bool = False) -> AssignmentNode:
    return AssignmentNode(
        name,
        value=None if value is None else as_word(value),
        index=None if index is None else as_word(index),
        array=array,
        append=append,
    )


def array(*values, **keyed) -> ArrayNode:
    """(a b c) from positional values; keyed values become [key]=value."""
    elems = [ArrayElementNode(as_word(v)) for v in values]
    elems += [ArrayElementNode(as_word(v), as_word(k)) for k, v in keyed.items()]
    return ArrayNode(tuple(elems))


def call(*args, assigns=()) -> SimpleCommandNode:
    return SimpleCommandNode(tuple(assigns), tuple(as_word(a) for a in args))


def stmt(command, *redirections, negated: bool = False, background: bool = False) -> StatementNode:
    if isinstance(command, StatementNode):
        return command
    return StatementNode(command, tuple(redirections), negated, background)


def stmts(*commands) -> tuple:
    return tuple(stmt(c) for c in commands)


def redir(op: str, target, fd: Optional[int] = None) -> RedirectionNode:
    return RedirectionNode(op, as_word(target), fd)


def pipe(left, right, op: str = "|") -> BinaryCommandNode:
    return BinaryCommandNode(op, stmt(left), stmt(right))


def and_(left, right) -> BinaryCommandNode:
    return BinaryCommandNode("&&", stmt(left), stmt(right))


def or_(left, right) -> BinaryCommandNode:
    return BinaryCommandNode("||", stmt(left), stmt(right))


def group(*commands) -> GroupNode:
    return GroupNode(stmts(*commands))


def if_(condition, then, else_=None) -> IfNode:
    return IfNode(
        stmts(*condition),
        stmts(*then),
        None if else_ is None else stmts(*else_),
    )


def for_(variable: str, words, *body) -> ForNode:
    return ForNode(
        variable,
        None if words is None else tuple(as_word(w) for w in words),
        stmts(*body),
    )


def while_(condition, *body, until: bool = False) -> WhileNode:
    return WhileNode(stmts(*condition), stmts(*body), until)


def func(name: str, *body) -> FunctionDefNode:
    return FunctionDefNode(name, stmt(group(*body)))


def arith_cmd(expr) -> ArithmeticCommandNode:
    return ArithmeticCommandNode(expr)


def echo(*args) -> SimpleCommandNode:
    return call("echo", *args)


def script(*commands) -> ScriptNode:
    return ScriptNode(stmts(*commands))


# =============================================================================
# Hooks and runners
# =============================================================================


class RecordingExec:
    """Exec hook that records calls instead of spawning processes.

    ``programs`` maps a name to ``(stdout, exit_code)``; unknown names are
    "command not found" with 127.
    """

    def __init__(self, programs: Optional[dict] = None):
        self.programs = programs or {}
        self.calls: list[tuple[str, list[str], dict[str, str], str]] = []

    async def __call__(self, hctx: HandlerContext, name: str, args: list[str]) -> int:
        self.calls.append((name, list(args), dict(hctx.env), hctx.dir))
        if name not in self.programs:
            await hctx.stderr.write(f"{name}: command not found\n")
            return 127
        out, code = self.programs[name]
        if out:
            await hctx.stdout.write(out)
        return code


def make_shell(**kwargs) -> Shell:
    kwargs.setdefault("env", dict(DEFAULT_ENV))
    kwargs.setdefault("exec_handler", RecordingExec())
    return Shell(**kwargs)


async def run(
    *commands,
    shell: Optional[Shell] = None,
    stdin: Union[str, bytes, None] = None,
    args=None,
    **kwargs,
) -> ExecResult:
    """Run commands as one script in a (fresh, unless given) shell."""
    shell = shell or make_shell(**kwargs)
    return await shell.exec(script(*commands), stdin=stdin, args=args)
