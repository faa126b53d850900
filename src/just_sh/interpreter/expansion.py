"""Word Expansion System.

Turns the parts of a word into fields:
- Tilde expansion (~, ~/path)
- Quoting ('...', $'...', "...")
- Parameter expansion ($VAR, ${VAR}, ${arr[i]}, ${VAR:-default}, ...)
- Command substitution $(...)
- Arithmetic expansion $((...))
- Field splitting of unquoted results
- Glob expansion (*, ?, [...]) against the working directory
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from ..ast.types import (
    NO_POS,
    ArithmeticExpansionPart,
    AssignDefaultOp,
    CaseModificationOp,
    CommandSubstitutionPart,
    DefaultValueOp,
    DoubleQuotedPart,
    ErrorIfUnsetOp,
    LiteralPart,
    ParameterExpansionPart,
    PatternRemovalOp,
    PatternReplacementOp,
    SingleQuotedPart,
    SubstringOp,
    UseAlternativeOp,
    WordNode,
    WordPart,
)
from .errors import ExitCode
from .values import (
    AssociativeArray,
    IndexedArray,
    Scalar,
    array_elements,
    get_var,
    index_entry,
    index_literal,
    index_view,
    is_set,
    is_whole_array,
    lookup_var,
    resolve_value,
    set_var,
)

if TYPE_CHECKING:
    from .types import InterpreterContext

logger = logging.getLogger(__name__)

_SPLIT_RE = re.compile(r"[ \t\n]+")
_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


@dataclass
class FieldPart:
    """A piece of a field and whether it came from a quoted construct."""

    value: str
    quoted: bool = False


Field = list[FieldPart]


# =============================================================================
# Fields
# =============================================================================


def expand_user(ctx: "InterpreterContext", text: str) -> str:
    """Tilde expansion for a leading ~ or ~/; ~user stays literal."""
    if text == "~" or text.startswith("~/"):
        return get_var(ctx.state, "HOME") + text[1:]
    return text


async def word_fields(
    ctx: "InterpreterContext",
    parts: Sequence[WordPart],
    quoted: bool = False,
    split: bool = True,
) -> list[Field]:
    """Expand word parts into fields.

    A word made only of unquoted parts that expand to nothing yields no
    fields; a word with any quoted part yields at least one, possibly empty.
    """
    fields: list[Field] = []
    cur: Field = []
    allow_empty = False

    def flush() -> None:
        nonlocal cur
        if cur:
            fields.append(cur)
            cur = []

    def split_add(value: str) -> None:
        if quoted or not split:
            cur.append(FieldPart(value, quoted))
            return
        for i, piece in enumerate(_SPLIT_RE.split(value)):
            if i > 0:
                flush()
            if piece:
                cur.append(FieldPart(piece))

    for i, part in enumerate(parts):
        if isinstance(part, LiteralPart):
            text = part.value
            if i == 0 and not quoted:
                text = expand_user(ctx, text)
            cur.append(FieldPart(text, quoted))
        elif isinstance(part, SingleQuotedPart):
            allow_empty = True
            text = part.value
            if part.dollar:
                text, _ = expand_format(text, [], only_chars=True)
            cur.append(FieldPart(text, True))
        elif isinstance(part, DoubleQuotedPart):
            if len(part.parts) == 1 and isinstance(part.parts[0], ParameterExpansionPart):
                elems = await quoted_elems(ctx, part.parts[0])
                if elems is not None:
                    for j, elem in enumerate(elems):
                        if j > 0:
                            flush()
                        cur.append(FieldPart(elem, True))
                    if elems:
                        allow_empty = True
                    continue
            allow_empty = True
            for inner in await word_fields(ctx, part.parts, quoted=True, split=split):
                for fp in inner:
                    cur.append(FieldPart(fp.value, True))
        elif isinstance(part, ParameterExpansionPart):
            split_add(await expand_parameter(ctx, part))
        elif isinstance(part, CommandSubstitutionPart):
            split_add(await command_substitution(ctx, part))
        elif isinstance(part, ArithmeticExpansionPart):
            from .arithmetic import arithm

            cur.append(FieldPart(str(await arithm(ctx, part.expression)), quoted))
        else:
            ctx.state.run_err(getattr(part, "pos", NO_POS), f"unhandled word part: {type(part).__name__}")
    flush()
    if allow_empty and not fields:
        fields.append([])
    return fields


def field_join(field: Field) -> str:
    return "".join(fp.value for fp in field)


def escaped_glob(field: Field) -> tuple[str, bool]:
    """Join a field into a glob pattern.

    Pattern characters that came from quoted parts are backslash-escaped;
    any left unescaped make the field a glob.
    """
    buf: list[str] = []
    glob = False
    for fp in field:
        for c in fp.value:
            if c in "*?\\[":
                if fp.quoted:
                    buf.append("\\")
                else:
                    glob = True
            buf.append(c)
    return "".join(buf), glob


async def fields(ctx: "InterpreterContext", words: Sequence[WordNode]) -> list[str]:
    """Expand words into the final argument list, globbing where needed."""
    result: list[str] = []
    for word in words:
        for field in await word_fields(ctx, word.parts):
            pattern, glob = escaped_glob(field)
            if glob:
                matches = await glob_expand(ctx, pattern)
                if matches:
                    result.extend(matches)
                    continue
            result.append(field_join(field))
    return result


async def lone_word(ctx: "InterpreterContext", parts: Sequence[WordPart]) -> str:
    """Expand a word to one string, without field splitting or globbing."""
    return " ".join(field_join(f) for f in await word_fields(ctx, parts, split=False))


async def pattern_word(ctx: "InterpreterContext", word: Optional[WordNode]) -> str:
    """Expand a word used as a pattern; quoted pattern characters stay literal."""
    if word is None:
        return ""
    found = await word_fields(ctx, word.parts, split=False)
    return " ".join(escaped_glob(f)[0] for f in found)


# =============================================================================
# Command substitution
# =============================================================================


async def command_substitution(ctx: "InterpreterContext", part: CommandSubstitutionPart) -> str:
    """Run $(...) in a fork and capture its stdout, minus trailing newlines."""
    from .streams import BufferStream

    child = ctx.fork()
    buf = BufferStream()
    child.state.stdout = buf
    await ctx.interpreter.run_forked(child, part.body)
    ctx.state.subst_exit = child.state.exit_code
    ctx.interpreter.join_fork(ctx, child)
    return buf.text().rstrip("\n")


# =============================================================================
# Patterns
# =============================================================================

_POSIX_CLASSES = {
    "[:alpha:]": "a-zA-Z",
    "[:digit:]": "0-9",
    "[:alnum:]": "a-zA-Z0-9",
    "[:upper:]": "A-Z",
    "[:lower:]": "a-z",
    "[:space:]": " \\t\\n\\r\\f\\v",
    "[:blank:]": " \\t",
    "[:punct:]": r"!\"#$%&'()*+,\-./:;<=>?@\[\\\]^_`{|}~",
    "[:xdigit:]": "0-9a-fA-F",
}


def glob_to_regex(pattern: str) -> str:
    """Convert a glob pattern to a regex. Backslash makes the next character literal."""
    result = []
    i = 0
    while i < len(pattern):
        c = pattern[i]
        if c == "*":
            result.append(".*")
        elif c == "?":
            result.append(".")
        elif c == "[":
            j = i + 1
            if j < len(pattern) and pattern[j] in "!^":
                j += 1
            if j < len(pattern) and pattern[j] == "]":
                j += 1
            close = pattern.find("]", j)
            while close != -1 and pattern[j:close].count("[:") > pattern[j:close].count(":]"):
                close = pattern.find("]", close + 1)
            if close == -1:
                result.append("\\[")
            else:
                body = pattern[i + 1:close]
                negate = body[:1] in ("!", "^")
                if negate:
                    body = body[1:]
                out = ["[^" if negate else "["]
                k = 0
                while k < len(body):
                    if body[k] == "[":
                        end = body.find(":]", k)
                        cls = body[k:end + 2] if end != -1 else ""
                        if cls in _POSIX_CLASSES:
                            out.append(_POSIX_CLASSES[cls])
                            k = end + 2
                            continue
                    if body[k] == "\\" and k + 1 < len(body):
                        k += 1
                    if body[k] in "\\]^[":
                        out.append("\\" + body[k])
                    else:
                        out.append(body[k])
                    k += 1
                out.append("]")
                result.append("".join(out))
                i = close
        elif c == "\\":
            if i + 1 < len(pattern):
                i += 1
                result.append(re.escape(pattern[i]))
            else:
                result.append("\\\\")
        else:
            result.append(re.escape(c))
        i += 1
    return "".join(result)


def match_pattern(pattern: str, value: str) -> bool:
    """Whether value matches the whole glob pattern."""
    return re.fullmatch(glob_to_regex(pattern), value, re.DOTALL) is not None


def has_glob_meta(pattern: str) -> bool:
    i = 0
    while i < len(pattern):
        if pattern[i] == "\\":
            i += 2
            continue
        if pattern[i] in "*?[":
            return True
        i += 1
    return False


def unescape_glob(pattern: str) -> str:
    return re.sub(r"\\(.)", r"\1", pattern, flags=re.DOTALL)


def _glob_sync(cwd: str, pattern: str) -> list[str]:
    if pattern.startswith("/"):
        base, shown_base, rest = "/", "/", pattern.lstrip("/")
    else:
        base, shown_base, rest = cwd, "", pattern

    def expand(dir_abs: str, shown: str, parts: list[str]) -> list[str]:
        if not parts:
            return [shown]
        part, remaining = parts[0], parts[1:]
        sep = "" if not shown or shown.endswith("/") else "/"
        if part == "":
            # trailing or doubled slash: only directories match
            if not os.path.isdir(dir_abs):
                return []
            return expand(dir_abs, shown + sep, remaining)
        if not has_glob_meta(part):
            literal = unescape_glob(part)
            path = os.path.join(dir_abs, literal)
            if not os.path.lexists(path):
                return []
            return expand(path, shown + sep + literal, remaining)
        regex = re.compile(glob_to_regex(part), re.DOTALL)
        try:
            entries = os.listdir(dir_abs)
        except OSError:
            return []
        matches = []
        for entry in sorted(entries):
            if entry.startswith(".") and not part.startswith("."):
                continue
            if not regex.fullmatch(entry):
                continue
            path = os.path.join(dir_abs, entry)
            if remaining and not os.path.isdir(path):
                continue
            matches.extend(expand(path, shown + sep + entry, remaining))
        return matches

    return sorted(expand(base, shown_base, rest.split("/")))


async def glob_expand(ctx: "InterpreterContext", pattern: str) -> list[str]:
    """Expand a glob pattern against the filesystem.

    Relative patterns are matched against the working directory and the
    matches stay relative.
    """
    return _glob_sync(ctx.state.cwd, pattern)


# =============================================================================
# Parameter expansion
# =============================================================================


def _remove_pattern(value: str, pattern: str, side: str, greedy: bool) -> str:
    regex = re.compile(glob_to_regex(pattern), re.DOTALL)
    n = len(value)
    if side == "prefix":
        ends = range(n, -1, -1) if greedy else range(0, n + 1)
        for end in ends:
            if regex.fullmatch(value, 0, end):
                return value[end:]
    else:
        starts = range(0, n + 1) if greedy else range(n, -1, -1)
        for start in starts:
            if regex.fullmatch(value, start):
                return value[:start]
    return value


def _replace_pattern(value: str, pattern: str, replacement: str, replace_all: bool) -> str:
    anchor = ""
    if pattern[:1] in ("#", "%"):
        anchor, pattern = pattern[0], pattern[1:]
    if not pattern and not anchor:
        return value
    regex = re.compile(glob_to_regex(pattern), re.DOTALL)
    n = len(value)
    if anchor == "#":
        for end in range(n, -1, -1):
            if regex.fullmatch(value, 0, end):
                return replacement + value[end:]
        return value
    if anchor == "%":
        for start in range(0, n + 1):
            if regex.fullmatch(value, start):
                return value[:start] + replacement
        return value

    out = []
    i = 0
    while i <= n:
        end = next((e for e in range(n, i, -1) if regex.fullmatch(value, i, e)), None)
        if end is None:
            if i < n:
                out.append(value[i])
            i += 1
            continue
        out.append(replacement)
        out.append(value[end:] if not replace_all else "")
        if not replace_all:
            return "".join(out)
        i = end
    return "".join(out)


def _modify_case(value: str, op: CaseModificationOp) -> str:
    if not value:
        return value
    conv = str.upper if op.direction == "upper" else str.lower
    if op.modify_all:
        return conv(value)
    return conv(value[0]) + value[1:]


async def _element_op(ctx: "InterpreterContext", op, values: list[str]) -> list[str]:
    """Apply a per-element operation (removal, replacement, case) to each value."""
    if isinstance(op, PatternRemovalOp):
        pattern = await pattern_word(ctx, op.pattern)
        return [_remove_pattern(v, pattern, op.side, op.greedy) for v in values]
    if isinstance(op, PatternReplacementOp):
        pattern = await pattern_word(ctx, op.pattern)
        replacement = await lone_word(ctx, op.replacement.parts) if op.replacement else ""
        return [_replace_pattern(v, pattern, replacement, op.replace_all) for v in values]
    if isinstance(op, CaseModificationOp):
        return [_modify_case(v, op) for v in values]
    return values


async def _whole_elements(ctx: "InterpreterContext", part: ParameterExpansionPart) -> Optional[list[str]]:
    """Elements of $@, ${arr[@]} or ${!arr[@]}; None for any other parameter."""
    state = ctx.state
    if part.index is None:
        if part.parameter in ("@", "*") and not part.indirect:
            return list(state.params)
        return None
    if not is_whole_array(part.index):
        return None
    value = resolve_value(state, lookup_var(state, part.parameter))
    if part.indirect:
        if isinstance(value, AssociativeArray):
            return list(value.keys)
        if isinstance(value, IndexedArray):
            return [str(i) for i in range(len(value.items))]
        return ["0"] if value is not None else []
    return array_elements(value)


async def quoted_elems(ctx: "InterpreterContext", part: ParameterExpansionPart) -> Optional[list[str]]:
    """Per-element fields for "$@" and "${arr[@]}"; None if not such an expansion."""
    if part.length:
        return None
    if part.index is None and part.parameter != "@":
        return None
    if part.index is not None and index_literal(part.index) != "@":
        return None
    if part.operation is not None and not isinstance(
        part.operation, (PatternRemovalOp, PatternReplacementOp, CaseModificationOp, SubstringOp)
    ):
        return None
    elems = await _whole_elements(ctx, part)
    if elems is None:
        return None
    if isinstance(part.operation, SubstringOp):
        return await _slice(ctx, part.operation, elems)
    return await _element_op(ctx, part.operation, elems)


async def _slice(ctx: "InterpreterContext", op: SubstringOp, seq):
    from .arithmetic import arithm

    n = len(seq)
    offset = await arithm(ctx, op.offset)
    if offset < 0:
        offset = max(n + offset, 0)
    offset = min(offset, n)
    if op.length is None:
        return seq[offset:]
    length = await arithm(ctx, op.length)
    if length < 0:
        end = n + length
        if end < offset:
            ctx.state.run_err(NO_POS, f"{length}: substring expression < 0")
            return seq[:0]
        return seq[offset:end]
    return seq[offset:offset + length]


async def expand_parameter(ctx: "InterpreterContext", part: ParameterExpansionPart) -> str:
    """Expand a parameter expansion to a single string."""
    state = ctx.state
    name = part.parameter
    op = part.operation

    if part.indirect and not is_whole_array(part.index):
        name = get_var(state, name)
        if not _NAME_RE.match(name) and not name.isdigit() and name not in ("@", "*", "#", "?"):
            if name:
                state.run_err(part.pos, f"{part.parameter}: invalid indirect expansion")
            return ""

    elems = await _whole_elements(ctx, part) if not part.indirect or is_whole_array(part.index) else None

    if part.length:
        if elems is not None:
            return str(len(elems))
        if part.index is not None:
            return str(len(await index_view(ctx, lookup_var(state, name), part.index)))
        return str(len(get_var(state, name)))

    if elems is not None:
        present = bool(elems)
        if isinstance(op, SubstringOp):
            return " ".join(await _slice(ctx, op, elems))
        if isinstance(op, (PatternRemovalOp, PatternReplacementOp, CaseModificationOp)):
            return " ".join(await _element_op(ctx, op, elems))
        value = " ".join(elems)
    elif part.index is not None:
        raw = lookup_var(state, name)
        entry = await index_entry(ctx, raw, part.index)
        present = entry is not None
        value = entry or ""
    else:
        value = get_var(state, name)
        present = is_set(state, name)

    if op is None:
        return value
    empty = not present or (op.type in ("DefaultValue", "AssignDefault", "ErrorIfUnset", "UseAlternative") and op.check_empty and value == "")

    if isinstance(op, DefaultValueOp):
        return await lone_word(ctx, op.word.parts) if empty else value
    if isinstance(op, AssignDefaultOp):
        if not empty:
            return value
        value = await lone_word(ctx, op.word.parts)
        if not _NAME_RE.match(name):
            state.run_err(part.pos, f"${name}: cannot assign in this way")
            return value
        await set_var(ctx, name, None if elems is not None else part.index, Scalar(value), part.pos)
        return value
    if isinstance(op, ErrorIfUnsetOp):
        if not empty:
            return value
        message = await lone_word(ctx, op.word.parts) if op.word else ""
        if not message:
            message = "parameter null or not set" if op.check_empty else "parameter not set"
        await state.stderr.write(f"{name}: {message}\n")
        state.exit_code = 1
        state.set_err(ExitCode(1))
        return ""
    if isinstance(op, UseAlternativeOp):
        return "" if empty else await lone_word(ctx, op.word.parts)
    if isinstance(op, SubstringOp):
        return await _slice(ctx, op, value)
    return (await _element_op(ctx, op, [value]))[0]


# =============================================================================
# Escapes and printf-style formats
# =============================================================================


def parse_int(text: str) -> Optional[int]:
    """Parse an integer the way C's strtol with base 0 would; None if invalid."""
    s = text.strip()
    sign = 1
    if s[:1] in ("-", "+"):
        sign = -1 if s[0] == "-" else 1
        s = s[1:]
    try:
        if s[:2].lower() == "0x":
            return sign * int(s[2:], 16)
        if len(s) > 1 and s[0] == "0":
            return sign * int(s[1:], 8)
        return sign * int(s, 10)
    except ValueError:
        return None


def expand_format(fmt: str, args: Sequence[str], only_chars: bool = False) -> tuple[str, int]:
    """Expand backslash escapes and, unless only_chars, printf directives.

    Returns the text and the number of args consumed.
    """
    buf: list[str] = []
    esc = False
    spec: Optional[str] = None
    used = 0
    for c in fmt:
        if esc:
            esc = False
            buf.append({"n": "\n", "r": "\r", "t": "\t", "\\": "\\"}.get(c, "\\" + c))
            continue
        if spec is not None:
            if c == "%" and spec == "%":
                buf.append("%")
                spec = None
            elif c in "csdiuox":
                arg = args[used] if used < len(args) else ""
                used += 1
                if c == "s":
                    buf.append((spec + "s") % arg)
                elif c == "c":
                    buf.append((spec + "s") % arg[:1])
                else:
                    n = parse_int(arg) if arg else 0
                    buf.append((spec + ("d" if c in "diu" else c)) % (n or 0))
                spec = None
            elif c in "-+ #0123456789.":
                spec += c
            else:
                buf.append(spec + c)
                spec = None
            continue
        if c == "\\":
            esc = True
        elif c == "%" and not only_chars:
            spec = "%"
        else:
            buf.append(c)
    if esc:
        buf.append("\\")
    if spec is not None:
        buf.append(spec)
    return "".join(buf), used
