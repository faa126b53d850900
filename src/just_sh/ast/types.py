"""AST node types for just-sh.

The interpreter walks these nodes; a host (or a parser) builds them.
Every node carries a class-level ``type`` name the interpreter dispatches on,
and a ``pos`` used for error messages.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Union


@dataclass(frozen=True)
class Position:
    """Source position (1-based)."""

    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


NO_POS = Position()


# =============================================================================
# Words
# =============================================================================


@dataclass(frozen=True)
class LiteralPart:
    """Unquoted literal text."""

    type: ClassVar[str] = "Literal"
    value: str
    pos: Position = NO_POS


@dataclass(frozen=True)
class SingleQuotedPart:
    """'...' text, or $'...' when dollar is set."""

    type: ClassVar[str] = "SingleQuoted"
    value: str
    dollar: bool = False
    pos: Position = NO_POS


@dataclass(frozen=True)
class DoubleQuotedPart:
    """"..." containing further parts."""

    type: ClassVar[str] = "DoubleQuoted"
    parts: tuple["WordPart", ...] = ()
    pos: Position = NO_POS


@dataclass(frozen=True)
class DefaultValueOp:
    """${var:-word} / ${var-word}"""

    type: ClassVar[str] = "DefaultValue"
    word: "WordNode"
    check_empty: bool = True


@dataclass(frozen=True)
class AssignDefaultOp:
    """${var:=word} / ${var=word}"""

    type: ClassVar[str] = "AssignDefault"
    word: "WordNode"
    check_empty: bool = True


@dataclass(frozen=True)
class ErrorIfUnsetOp:
    """${var:?word} / ${var?word}"""

    type: ClassVar[str] = "ErrorIfUnset"
    word: Optional["WordNode"] = None
    check_empty: bool = True


@dataclass(frozen=True)
class UseAlternativeOp:
    """${var:+word} / ${var+word}"""

    type: ClassVar[str] = "UseAlternative"
    word: "WordNode"
    check_empty: bool = True


@dataclass(frozen=True)
class SubstringOp:
    """${var:offset} / ${var:offset:length}"""

    type: ClassVar[str] = "Substring"
    offset: "ArithExpr"
    length: Optional["ArithExpr"] = None


@dataclass(frozen=True)
class PatternRemovalOp:
    """${var#pat} ${var##pat} ${var%pat} ${var%%pat}"""

    type: ClassVar[str] = "PatternRemoval"
    pattern: "WordNode"
    side: str = "prefix"  # "prefix" or "suffix"
    greedy: bool = False


@dataclass(frozen=True)
class PatternReplacementOp:
    """${var/pat/rep} / ${var//pat/rep}"""

    type: ClassVar[str] = "PatternReplacement"
    pattern: "WordNode"
    replacement: Optional["WordNode"] = None
    replace_all: bool = False


@dataclass(frozen=True)
class CaseModificationOp:
    """${var^} ${var^^} ${var,} ${var,,}"""

    type: ClassVar[str] = "CaseModification"
    direction: str = "upper"  # "upper" or "lower"
    modify_all: bool = False


ParameterOperation = Union[
    DefaultValueOp,
    AssignDefaultOp,
    ErrorIfUnsetOp,
    UseAlternativeOp,
    SubstringOp,
    PatternRemovalOp,
    PatternReplacementOp,
    CaseModificationOp,
]


@dataclass(frozen=True)
class ParameterExpansionPart:
    """$name, ${name[index]}, ${#name}, ${!name}, ${name<op>...}."""

    type: ClassVar[str] = "ParameterExpansion"
    parameter: str
    index: Optional["WordNode"] = None
    length: bool = False
    indirect: bool = False
    operation: Optional[ParameterOperation] = None
    pos: Position = NO_POS


@dataclass(frozen=True)
class CommandSubstitutionPart:
    """$(...) or `...`"""

    type: ClassVar[str] = "CommandSubstitution"
    body: tuple["StatementNode", ...] = ()
    pos: Position = NO_POS


@dataclass(frozen=True)
class ArithmeticExpansionPart:
    """$((...))"""

    type: ClassVar[str] = "ArithmeticExpansion"
    expression: "ArithExpr"
    pos: Position = NO_POS


WordPart = Union[
    LiteralPart,
    SingleQuotedPart,
    DoubleQuotedPart,
    ParameterExpansionPart,
    CommandSubstitutionPart,
    ArithmeticExpansionPart,
]


@dataclass(frozen=True)
class WordNode:
    """A shell word: a sequence of parts with no separator in between."""

    type: ClassVar[str] = "Word"
    parts: tuple[WordPart, ...] = ()
    pos: Position = NO_POS


# =============================================================================
# Arithmetic expressions
# =============================================================================


@dataclass(frozen=True)
class ArithBinary:
    """Binary operator, including assignment operators like ``+=``."""

    type: ClassVar[str] = "ArithBinary"
    operator: str
    left: "ArithExpr"
    right: "ArithExpr"
    pos: Position = NO_POS


@dataclass(frozen=True)
class ArithUnary:
    type: ClassVar[str] = "ArithUnary"
    operator: str
    operand: "ArithExpr"
    postfix: bool = False
    pos: Position = NO_POS


@dataclass(frozen=True)
class ArithGroup:
    type: ClassVar[str] = "ArithGroup"
    expression: "ArithExpr"
    pos: Position = NO_POS


@dataclass(frozen=True)
class ArithTernary:
    type: ClassVar[str] = "ArithTernary"
    condition: "ArithExpr"
    consequent: "ArithExpr"
    alternate: "ArithExpr"
    pos: Position = NO_POS


ArithExpr = Union[WordNode, ArithBinary, ArithUnary, ArithGroup, ArithTernary]


# =============================================================================
# Test expressions ([[ ... ]])
# =============================================================================


@dataclass(frozen=True)
class TestUnary:
    __test__ = False  # not a pytest class
    type: ClassVar[str] = "TestUnary"
    operator: str
    operand: "TestExpr"
    pos: Position = NO_POS


@dataclass(frozen=True)
class TestBinary:
    __test__ = False  # not a pytest class
    type: ClassVar[str] = "TestBinary"
    operator: str
    left: "TestExpr"
    right: "TestExpr"
    pos: Position = NO_POS


@dataclass(frozen=True)
class TestGroup:
    __test__ = False  # not a pytest class
    type: ClassVar[str] = "TestGroup"
    expression: "TestExpr"
    pos: Position = NO_POS


TestExpr = Union[WordNode, TestUnary, TestBinary, TestGroup]


# =============================================================================
# Assignments and redirections
# =============================================================================


@dataclass(frozen=True)
class ArrayElementNode:
    """One element of ``name=(...)``; ``index`` is set for ``[k]=v``."""

    type: ClassVar[str] = "ArrayElement"
    value: WordNode
    index: Optional[WordNode] = None


@dataclass(frozen=True)
class ArrayNode:
    type: ClassVar[str] = "Array"
    elements: tuple[ArrayElementNode, ...] = ()


@dataclass(frozen=True)
class AssignmentNode:
    """name=value, name[index]=value, name=(...), and their += forms.

    ``value`` is None for a naked name (as in ``declare -A name``).
    """

    type: ClassVar[str] = "Assignment"
    name: str
    value: Optional[WordNode] = None
    index: Optional[WordNode] = None
    array: Optional[ArrayNode] = None
    append: bool = False
    pos: Position = NO_POS

    @property
    def naked(self) -> bool:
        return self.value is None and self.array is None


@dataclass(frozen=True)
class RedirectionNode:
    """A redirection. ``fd`` is None when the operator's default applies.

    For ``<<`` and ``<<-`` the target is the heredoc body word.
    """

    type: ClassVar[str] = "Redirection"
    operator: str
    target: WordNode
    fd: Optional[int] = None
    pos: Position = NO_POS


# =============================================================================
# Statements and commands
# =============================================================================


@dataclass(frozen=True)
class StatementNode:
    type: ClassVar[str] = "Statement"
    command: Optional["CommandNode"] = None
    redirections: tuple[RedirectionNode, ...] = ()
    negated: bool = False
    background: bool = False
    pos: Position = NO_POS


@dataclass(frozen=True)
class SimpleCommandNode:
    type: ClassVar[str] = "SimpleCommand"
    assignments: tuple[AssignmentNode, ...] = ()
    args: tuple[WordNode, ...] = ()
    pos: Position = NO_POS


@dataclass(frozen=True)
class GroupNode:
    """{ ...; }"""

    type: ClassVar[str] = "Group"
    body: tuple[StatementNode, ...] = ()
    pos: Position = NO_POS


@dataclass(frozen=True)
class SubshellNode:
    """( ... )"""

    type: ClassVar[str] = "Subshell"
    body: tuple[StatementNode, ...] = ()
    pos: Position = NO_POS


@dataclass(frozen=True)
class BinaryCommandNode:
    """left && right, left || right, left | right, left |& right."""

    type: ClassVar[str] = "BinaryCommand"
    operator: str
    left: StatementNode
    right: StatementNode
    pos: Position = NO_POS


@dataclass(frozen=True)
class IfNode:
    """if/elif/else; an elif chain nests as an IfNode in else_body."""

    type: ClassVar[str] = "If"
    condition: tuple[StatementNode, ...]
    then_body: tuple[StatementNode, ...] = ()
    else_body: Optional[tuple[StatementNode, ...]] = None
    pos: Position = NO_POS


@dataclass(frozen=True)
class WhileNode:
    """while/until loop."""

    type: ClassVar[str] = "While"
    condition: tuple[StatementNode, ...]
    body: tuple[StatementNode, ...] = ()
    until: bool = False
    pos: Position = NO_POS


@dataclass(frozen=True)
class ForNode:
    """for name [in words]; ``words`` is None for the implicit "$@"."""

    type: ClassVar[str] = "For"
    variable: str
    words: Optional[tuple[WordNode, ...]] = None
    body: tuple[StatementNode, ...] = ()
    pos: Position = NO_POS


@dataclass(frozen=True)
class CStyleForNode:
    """for ((init; condition; update))"""

    type: ClassVar[str] = "CStyleFor"
    init: Optional[ArithExpr] = None
    condition: Optional[ArithExpr] = None
    update: Optional[ArithExpr] = None
    body: tuple[StatementNode, ...] = ()
    pos: Position = NO_POS


@dataclass(frozen=True)
class FunctionDefNode:
    type: ClassVar[str] = "FunctionDef"
    name: str
    body: StatementNode
    pos: Position = NO_POS


@dataclass(frozen=True)
class ArithmeticCommandNode:
    """(( expression ))"""

    type: ClassVar[str] = "ArithmeticCommand"
    expression: ArithExpr
    pos: Position = NO_POS


@dataclass(frozen=True)
class LetNode:
    type: ClassVar[str] = "Let"
    expressions: tuple[ArithExpr, ...] = ()
    pos: Position = NO_POS


@dataclass(frozen=True)
class CaseItemNode:
    type: ClassVar[str] = "CaseItem"
    patterns: tuple[WordNode, ...]
    body: tuple[StatementNode, ...] = ()
    pos: Position = NO_POS


@dataclass(frozen=True)
class CaseNode:
    type: ClassVar[str] = "Case"
    word: WordNode
    items: tuple[CaseItemNode, ...] = ()
    pos: Position = NO_POS


@dataclass(frozen=True)
class ConditionalCommandNode:
    """[[ expression ]]"""

    type: ClassVar[str] = "ConditionalCommand"
    expression: TestExpr
    pos: Position = NO_POS


@dataclass(frozen=True)
class DeclareNode:
    """declare/local with their option words and assignments."""

    type: ClassVar[str] = "Declare"
    variant: str = "declare"
    options: tuple[WordNode, ...] = ()
    assignments: tuple[AssignmentNode, ...] = ()
    pos: Position = NO_POS


@dataclass(frozen=True)
class TimeNode:
    type: ClassVar[str] = "Time"
    statement: Optional[StatementNode] = None
    pos: Position = NO_POS


CommandNode = Union[
    SimpleCommandNode,
    GroupNode,
    SubshellNode,
    BinaryCommandNode,
    IfNode,
    WhileNode,
    ForNode,
    CStyleForNode,
    FunctionDefNode,
    ArithmeticCommandNode,
    LetNode,
    CaseNode,
    ConditionalCommandNode,
    DeclareNode,
    TimeNode,
]


@dataclass(frozen=True)
class ScriptNode:
    type: ClassVar[str] = "Script"
    statements: tuple[StatementNode, ...] = ()
    name: str = ""
    pos: Position = NO_POS
