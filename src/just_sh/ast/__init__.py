"""Shell AST node types."""

from .types import (
    NO_POS,
    ArithBinary,
    ArithExpr,
    ArithGroup,
    ArithTernary,
    ArithUnary,
    ArithmeticCommandNode,
    ArithmeticExpansionPart,
    ArrayElementNode,
    ArrayNode,
    AssignDefaultOp,
    AssignmentNode,
    BinaryCommandNode,
    CaseItemNode,
    CaseModificationOp,
    CaseNode,
    CommandNode,
    CommandSubstitutionPart,
    ConditionalCommandNode,
    CStyleForNode,
    DeclareNode,
    DefaultValueOp,
    DoubleQuotedPart,
    ErrorIfUnsetOp,
    ForNode,
    FunctionDefNode,
    GroupNode,
    IfNode,
    LetNode,
    LiteralPart,
    ParameterExpansionPart,
    ParameterOperation,
    PatternRemovalOp,
    PatternReplacementOp,
    Position,
    RedirectionNode,
    ScriptNode,
    SimpleCommandNode,
    SingleQuotedPart,
    StatementNode,
    SubshellNode,
    SubstringOp,
    TestBinary,
    TestExpr,
    TestGroup,
    TestUnary,
    TimeNode,
    UseAlternativeOp,
    WhileNode,
    WordNode,
    WordPart,
)

__all__ = [
    "NO_POS",
    "ArithBinary",
    "ArithExpr",
    "ArithGroup",
    "ArithTernary",
    "ArithUnary",
    "ArithmeticCommandNode",
    "ArithmeticExpansionPart",
    "ArrayElementNode",
    "ArrayNode",
    "AssignDefaultOp",
    "AssignmentNode",
    "BinaryCommandNode",
    "CaseItemNode",
    "CaseModificationOp",
    "CaseNode",
    "CommandNode",
    "CommandSubstitutionPart",
    "ConditionalCommandNode",
    "CStyleForNode",
    "DeclareNode",
    "DefaultValueOp",
    "DoubleQuotedPart",
    "ErrorIfUnsetOp",
    "ForNode",
    "FunctionDefNode",
    "GroupNode",
    "IfNode",
    "LetNode",
    "LiteralPart",
    "ParameterExpansionPart",
    "ParameterOperation",
    "PatternRemovalOp",
    "PatternReplacementOp",
    "Position",
    "RedirectionNode",
    "ScriptNode",
    "SimpleCommandNode",
    "SingleQuotedPart",
    "StatementNode",
    "SubshellNode",
    "SubstringOp",
    "TestBinary",
    "TestExpr",
    "TestGroup",
    "TestUnary",
    "TimeNode",
    "UseAlternativeOp",
    "WhileNode",
    "WordNode",
    "WordPart",
]
