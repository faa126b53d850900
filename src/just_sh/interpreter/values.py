"""Variable values and the variable store.

A variable holds one of four value kinds: a scalar string, an indexed array,
an associative array, or a name reference. Arrays only ever hold strings.

Lookup goes through three layers, highest priority first:

1. the temporary overlay of the simple command being run (``FOO=1 cmd``),
2. the persistent variable table,
3. the inherited process environment.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Union

from ..ast.types import (
    AssignmentNode,
    DoubleQuotedPart,
    LiteralPart,
    Position,
    WordNode,
)

if TYPE_CHECKING:
    from .types import InterpreterContext, InterpreterState

MAX_NAMEREF_DEPTH = 100


@dataclass
class Scalar:
    value: str = ""


@dataclass
class IndexedArray:
    items: list[str] = field(default_factory=list)


@dataclass
class AssociativeArray:
    """String-keyed array that remembers key insertion order."""

    keys: list[str] = field(default_factory=list)
    values: dict[str, str] = field(default_factory=dict)

    def set(self, key: str, value: str) -> None:
        if key not in self.values:
            self.keys.append(key)
        self.values[key] = value

    def get(self, key: str) -> str:
        return self.values.get(key, "")

    def ordered_values(self) -> list[str]:
        return [self.values[k] for k in self.keys]


@dataclass
class NameReference:
    target: str


Value = Union[Scalar, IndexedArray, AssociativeArray, NameReference]


def clone_value(value: Value) -> Value:
    """Copy a value so that the copy shares no mutable storage."""
    if isinstance(value, IndexedArray):
        return IndexedArray(list(value.items))
    if isinstance(value, AssociativeArray):
        return AssociativeArray(list(value.keys), dict(value.values))
    if isinstance(value, Scalar):
        return Scalar(value.value)
    return NameReference(value.target)


class VariableStore(dict):
    """Maps variable names to values.

    ``copy()`` clones every value, so a forked interpreter can never mutate
    its parent's arrays.
    """

    def copy(self) -> "VariableStore":
        return VariableStore({name: clone_value(v) for name, v in self.items()})


# =============================================================================
# Reading
# =============================================================================


def special_param(state: "InterpreterState", name: str) -> Optional[str]:
    """Expand $?, $#, $@, $*, $$, $0 and positional parameters."""
    if name == "?":
        return str(state.exit_code)
    if name == "#":
        return str(len(state.params))
    if name in ("@", "*"):
        return " ".join(state.params)
    if name == "$":
        return str(state.pid)
    if name == "0":
        return state.script_name
    if name.isdigit():
        i = int(name)
        return state.params[i - 1] if i <= len(state.params) else ""
    return None


def lookup_var(state: "InterpreterState", name: str) -> Optional[Value]:
    """Find the raw value of a variable, or None if unset."""
    if state.temp_vars is not None and name in state.temp_vars:
        return state.temp_vars[name]
    if name in state.vars:
        return state.vars[name]
    if name in state.environ:
        return Scalar(state.environ[name])
    return None


def resolve_value(state: "InterpreterState", value: Optional[Value]) -> Optional[Value]:
    """Follow name references; None when the chain is unset or too deep."""
    for _ in range(MAX_NAMEREF_DEPTH):
        if not isinstance(value, NameReference):
            return value
        value = lookup_var(state, value.target)
    return None


def scalar_view(state: "InterpreterState", value: Optional[Value]) -> str:
    value = resolve_value(state, value)
    if isinstance(value, Scalar):
        return value.value
    if isinstance(value, IndexedArray):
        return value.items[0] if value.items else ""
    return ""


def get_var(state: "InterpreterState", name: str) -> str:
    """The string value of $name."""
    special = special_param(state, name)
    if special is not None:
        return special
    return scalar_view(state, lookup_var(state, name))


def is_set(state: "InterpreterState", name: str) -> bool:
    if name in ("@", "*"):
        return bool(state.params)
    if special_param(state, name) is not None:
        return not name.isdigit() or int(name) <= len(state.params)
    return resolve_value(state, lookup_var(state, name)) is not None


def index_literal(index: Optional[WordNode]) -> Optional[str]:
    """The index text when it is a single unquoted literal."""
    if index is None or len(index.parts) != 1:
        return None
    part = index.parts[0]
    if isinstance(part, LiteralPart):
        return part.value
    return None


def is_whole_array(index: Optional[WordNode]) -> bool:
    return index_literal(index) in ("@", "*")


def string_index(index: Optional[WordNode]) -> bool:
    """Whether an index is a lone double-quoted string, as in a["key"]."""
    return (
        index is not None
        and len(index.parts) == 1
        and isinstance(index.parts[0], DoubleQuotedPart)
    )


def array_elements(value: Optional[Value]) -> list[str]:
    """Element list used by ${name[@]}; value must already be resolved."""
    if isinstance(value, IndexedArray):
        return list(value.items)
    if isinstance(value, AssociativeArray):
        return value.ordered_values()
    if isinstance(value, Scalar):
        return [value.value]
    return []


async def index_entry(
    ctx: "InterpreterContext", value: Optional[Value], index: WordNode
) -> Optional[str]:
    """The element ${name[index]} names, or None when there is no such element."""
    from .arithmetic import arithm
    from .expansion import lone_word

    value = resolve_value(ctx.state, value)
    if is_whole_array(index):
        elems = array_elements(value)
        return " ".join(elems) if elems else None
    if isinstance(value, AssociativeArray):
        return value.values.get(await lone_word(ctx, index.parts))
    if value is None:
        return None
    k = await arithm(ctx, index)
    if isinstance(value, Scalar):
        return value.value if k == 0 else None
    items = value.items
    if k < 0:
        k += len(items)
    if 0 <= k < len(items):
        return items[k]
    return None


async def index_view(
    ctx: "InterpreterContext", value: Optional[Value], index: WordNode
) -> str:
    """The string value of ${name[index]} given the variable's value."""
    entry = await index_entry(ctx, value, index)
    return "" if entry is None else entry


# =============================================================================
# Writing
# =============================================================================


def store_var(state: "InterpreterState", name: str, value: Value) -> None:
    """Write a whole value to the overlay if the name is in it, else the table."""
    if state.temp_vars is not None and name in state.temp_vars:
        state.temp_vars[name] = value
        return
    state.vars[name] = value
    if name in state.environ:
        # an inherited variable stays exported
        if isinstance(value, (Scalar, IndexedArray)):
            state.environ[name] = scalar_view(state, value)


async def set_var(
    ctx: "InterpreterContext",
    name: str,
    index: Optional[WordNode],
    value: Value,
    pos: Optional[Position] = None,
) -> None:
    """Set name, or name[index], to value."""
    from .arithmetic import arithm
    from .expansion import lone_word

    state = ctx.state
    if index is None:
        store_var(state, name, value)
        return
    if not isinstance(value, Scalar):
        state.run_err(pos or index.pos, f"{name}: cannot assign list to array member")
        return

    cur = lookup_var(state, name)
    if isinstance(cur, AssociativeArray) or (cur is None and string_index(index)):
        amap = cur if isinstance(cur, AssociativeArray) else AssociativeArray()
        amap.set(await lone_word(ctx, index.parts), value.value)
        store_var(state, name, amap)
        return

    if isinstance(cur, IndexedArray):
        items = cur.items
    elif isinstance(cur, Scalar):
        items = [cur.value]
    else:
        items = []
    k = await arithm(ctx, index)
    if k < 0:
        k += len(items)
        if k < 0:
            state.run_err(pos or index.pos, f"{name}[{k - len(items)}]: bad array subscript")
            return
    while len(items) <= k:
        items.append("")
    items[k] = value.value
    store_var(state, name, cur if isinstance(cur, IndexedArray) else IndexedArray(items))


def del_var(state: "InterpreterState", name: str) -> None:
    if state.temp_vars is not None:
        state.temp_vars.pop(name, None)
    state.vars.pop(name, None)
    state.environ.pop(name, None)


async def assign_value(
    ctx: "InterpreterContext", assign: AssignmentNode, mode: str = ""
) -> Optional[Value]:
    """Compute the value an assignment stores; None for a naked name.

    ``mode`` is "" (infer), "-a" (indexed) or "-A" (associative) and only
    affects ``name=(...)`` forms.
    """
    from .arithmetic import arithm
    from .expansion import lone_word

    state = ctx.state
    prev = lookup_var(state, assign.name)

    if assign.value is not None:
        s = await lone_word(ctx, assign.value.parts)
        if assign.append and assign.index is not None:
            return Scalar(await index_view(ctx, prev, assign.index) + s)
        if not assign.append or prev is None:
            return Scalar(s)
        if isinstance(prev, Scalar):
            return Scalar(prev.value + s)
        if isinstance(prev, IndexedArray):
            if not prev.items:
                return IndexedArray([s])
            items = list(prev.items)
            items[0] += s
            return IndexedArray(items)
        if isinstance(prev, AssociativeArray):
            amap = AssociativeArray(list(prev.keys), dict(prev.values))
            amap.set("0", amap.get("0") + s)
            return amap
        return Scalar(scalar_view(state, prev) + s)

    if assign.array is None:
        return None

    elems = assign.array.elements
    if not mode:
        if isinstance(prev, AssociativeArray) or (elems and string_index(elems[0].index)):
            mode = "-A"
        else:
            mode = "-a"

    if mode == "-A":
        if assign.append and isinstance(prev, AssociativeArray):
            amap = AssociativeArray(list(prev.keys), dict(prev.values))
        else:
            amap = AssociativeArray()
        for elem in elems:
            if elem.index is None:
                word = await lone_word(ctx, elem.value.parts)
                await state.stderr.write(
                    f"{assign.name}: {word}: must use subscript when assigning associative array\n"
                )
                continue
            key = await lone_word(ctx, elem.index.parts)
            amap.set(key, await lone_word(ctx, elem.value.parts))
        return amap

    items: list[str] = []
    if assign.append:
        if isinstance(prev, IndexedArray):
            items = list(prev.items)
        elif isinstance(prev, Scalar):
            items = [prev.value]
    nxt = len(items)
    for elem in elems:
        k = nxt if elem.index is None else await arithm(ctx, elem.index)
        if k < 0:
            k += len(items)
            if k < 0:
                state.run_err(assign.pos, f"{assign.name}: bad array subscript")
                continue
        while len(items) <= k:
            items.append("")
        items[k] = await lone_word(ctx, elem.value.parts)
        nxt = k + 1
    return IndexedArray(items)
