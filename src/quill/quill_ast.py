"""Quill AST node hierarchy - compile-time representation with source location metadata.

The compiler consumes an ordered sequence of statement nodes. Each statement is one of
function declaration, if, local declaration, return or bare expression; each expression
is one of numeric literal, identifier reference, binary operation or function call.

Identifiers and numeric literals keep their original source text, and every node keeps
the line and column it started at, so compile errors can point back into the source.
"""

from dataclasses import dataclass, field
from typing import List, Tuple, Union


@dataclass(frozen=True)
class QuillASTNode:
    """
    Base class for all Quill AST nodes.

    Source location fields are keyword-only so node constructors keep their
    positional arguments for the node's own content, and they are ignored
    when nodes are compared.
    """
    line: int | None = field(default=None, kw_only=True, compare=False)
    column: int | None = field(default=None, kw_only=True, compare=False)


@dataclass(frozen=True)
class QuillASTNumber(QuillASTNode):
    """Integer literal."""
    text: str

    @property
    def value(self) -> int:
        """Integer value of the literal."""
        return int(self.text)

    def __repr__(self) -> str:
        return self.text


@dataclass(frozen=True)
class QuillASTIdentifier(QuillASTNode):
    """Reference to a parameter or local."""
    name: str

    def __repr__(self) -> str:
        return self.name


@dataclass(frozen=True)
class QuillASTBinaryOp(QuillASTNode):
    """Binary operation, `left operator right`."""
    operator: str
    left: 'QuillASTExpression'
    right: 'QuillASTExpression'

    def __repr__(self) -> str:
        return f"({self.left!r} {self.operator} {self.right!r})"


@dataclass(frozen=True)
class QuillASTCall(QuillASTNode):
    """Call of a user function or builtin."""
    name: str
    arguments: Tuple['QuillASTExpression', ...] = ()

    def __repr__(self) -> str:
        args = ", ".join(repr(a) for a in self.arguments)
        return f"{self.name}({args})"


QuillASTExpression = Union[QuillASTNumber, QuillASTIdentifier, QuillASTBinaryOp, QuillASTCall]


@dataclass(frozen=True)
class QuillASTFunction(QuillASTNode):
    """Function declaration: `function name(params) body end`."""
    name: str
    parameters: Tuple[QuillASTIdentifier, ...]
    body: Tuple['QuillASTStatement', ...]


@dataclass(frozen=True)
class QuillASTIf(QuillASTNode):
    """If statement: `if test then body end`. There is no else branch."""
    test: QuillASTExpression
    body: Tuple['QuillASTStatement', ...]


@dataclass(frozen=True)
class QuillASTLocal(QuillASTNode):
    """Local declaration: `local name = expression;`."""
    name: str
    expression: QuillASTExpression


@dataclass(frozen=True)
class QuillASTReturn(QuillASTNode):
    """Return statement: `return expression;`."""
    expression: QuillASTExpression


@dataclass(frozen=True)
class QuillASTExpressionStatement(QuillASTNode):
    """Bare expression evaluated for its side effects: `expression;`."""
    expression: QuillASTExpression


QuillASTStatement = Union[
    QuillASTFunction,
    QuillASTIf,
    QuillASTLocal,
    QuillASTReturn,
    QuillASTExpressionStatement,
]


QuillAST = List[QuillASTStatement]
