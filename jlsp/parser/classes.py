"""
Defines the data structures for the syntax tree produced by the parser stage.

Each node is a pydantic model with a `Span` of 1-based lines and columns.
Declarations additionally record `line`, the line of their name token, which
is where definition results point to.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field

# --- Core Data Structures ---


class Span(BaseModel):
    """1-based, inclusive line range and 1-based columns of a node."""

    s_line: int
    s_col: int
    e_line: int
    e_col: int

    def contains_line(self, line: int) -> bool:
        return self.s_line <= line <= self.e_line


class ASTNode(BaseModel):
    span: Span

    @property
    def start_line(self) -> int:
        return self.span.s_line

    @property
    def end_line(self) -> int:
        return self.span.e_line


# --- Expressions ---


class Annotation(ASTNode):
    name: str


class CallSite(ASTNode):
    """A `name(...)` occurrence found inside an expression."""

    name: str
    is_qualified: bool = False
    receiver: Optional[str] = None
    receiver_col: Optional[int] = None
    arg_count: int
    has_named_args: bool = False
    has_trailing_closure: bool = False
    is_constructor: bool = False

    @property
    def line(self) -> int:
        return self.span.s_line

    @property
    def column(self) -> int:
        return self.span.s_col


class Closure(ASTNode):
    params: List["Parameter"] = []
    statements: List["AnyStatement"] = []


class Expression(ASTNode):
    """
    An expression kept as a token sequence. Only what the resolution and
    diagnostics stages need is extracted: call sites, closures and the shape
    of simple `name` / `name = value` expressions.
    """

    calls: List[CallSite] = []
    closures: List[Closure] = []
    bare_name: Optional[str] = None
    assigned_name: Optional[str] = None


# --- Statements ---


class Block(ASTNode):
    kind: Literal["block"] = "block"
    statements: List["AnyStatement"] = []


class VariableDeclarator(ASTNode):
    name: str
    initializer: Optional[Expression] = None

    @property
    def line(self) -> int:
        return self.span.s_line


class DeclarationStatement(ASTNode):
    kind: Literal["declaration"] = "declaration"
    modifiers: List[str] = []
    annotations: List[str] = []
    type_name: Optional[str] = None
    variables: List[VariableDeclarator]


class ExpressionStatement(ASTNode):
    kind: Literal["expression"] = "expression"
    expression: Expression
    annotations: List[str] = []


class ReturnStatement(ASTNode):
    kind: Literal["return"] = "return"
    value: Optional[Expression] = None


class ThrowStatement(ASTNode):
    kind: Literal["throw"] = "throw"
    value: Expression


class JumpStatement(ASTNode):
    kind: Literal["jump"] = "jump"
    keyword: Literal["break", "continue"]
    label: Optional[str] = None


class AssertStatement(ASTNode):
    kind: Literal["assert"] = "assert"
    condition: Expression


class IfStatement(ASTNode):
    kind: Literal["if"] = "if"
    condition: Expression
    then_branch: "AnyStatement"
    else_branch: Optional["AnyStatement"] = None


class LoopStatement(ASTNode):
    kind: Literal["loop"] = "loop"
    loop_kind: Literal["for", "while", "do"]
    header: Expression
    body: "AnyStatement"


class SwitchGroup(ASTNode):
    labels: List[Expression] = []
    is_default: bool = False
    statements: List["AnyStatement"] = []


class SwitchStatement(ASTNode):
    kind: Literal["switch"] = "switch"
    subject: Expression
    groups: List[SwitchGroup] = []

    @property
    def has_default(self) -> bool:
        return any(group.is_default for group in self.groups)


class CatchClause(ASTNode):
    param: "Parameter"
    body: Block


class TryStatement(ASTNode):
    kind: Literal["try"] = "try"
    resources: Optional[Expression] = None
    body: Block
    catches: List[CatchClause] = []
    finally_block: Optional[Block] = None


class SyncStatement(ASTNode):
    kind: Literal["synchronized"] = "synchronized"
    lock: Expression
    body: Block


class LabeledStatement(ASTNode):
    kind: Literal["labeled"] = "labeled"
    label: str
    statement: "AnyStatement"


# --- Declarations ---


class Parameter(ASTNode):
    name: str
    type_name: Optional[str] = None
    has_default: bool = False
    varargs: bool = False

    @property
    def line(self) -> int:
        return self.span.s_line


class FieldNode(ASTNode):
    """A class-body variable declared with an access modifier (or an @Field script variable)."""

    name: str
    line: int
    type_name: Optional[str] = None
    modifiers: List[str] = []
    annotations: List[str] = []
    initializer: Optional[Expression] = None


class PropertyNode(FieldNode):
    """A class-body variable without an access modifier; Groovy generates accessors for it."""


class MethodNode(ASTNode):
    name: str
    line: int
    return_type: Optional[str] = None
    parameters: List[Parameter] = []
    body: Optional[Block] = None
    modifiers: List[str] = []
    annotations: List[str] = []
    is_constructor: bool = False

    @property
    def required_arg_count(self) -> int:
        return sum(1 for p in self.parameters if not p.has_default and not p.varargs)

    @property
    def max_arg_count(self) -> Optional[int]:
        if any(p.varargs for p in self.parameters):
            return None
        return len(self.parameters)


class ClassNode(ASTNode):
    name: str
    line: int
    kind: str = "class"
    package: Optional[str] = None
    superclass: Optional[str] = None
    interfaces: List[str] = []
    modifiers: List[str] = []
    annotations: List[str] = []
    fields: List[FieldNode] = []
    properties: List[PropertyNode] = []
    methods: List[MethodNode] = []
    constructors: List[MethodNode] = []
    inner_classes: List["ClassNode"] = []

    @property
    def qualified_name(self) -> str:
        return f"{self.package}.{self.name}" if self.package else self.name


class ScriptNode(ASTNode):
    """The root of the tree, representing a single script file."""

    package: Optional[str] = None
    imports: List[str] = []
    classes: List[ClassNode] = []
    methods: List[MethodNode] = []
    fields: List[FieldNode] = []
    statements: List["AnyStatement"] = []


AnyStatement = Annotated[
    Union[
        Block,
        DeclarationStatement,
        ExpressionStatement,
        ReturnStatement,
        ThrowStatement,
        JumpStatement,
        AssertStatement,
        IfStatement,
        LoopStatement,
        SwitchStatement,
        TryStatement,
        SyncStatement,
        LabeledStatement,
    ],
    Field(discriminator="kind"),
]

for _model in (
    Closure,
    Expression,
    Block,
    IfStatement,
    LoopStatement,
    SwitchGroup,
    SwitchStatement,
    CatchClause,
    TryStatement,
    SyncStatement,
    LabeledStatement,
    ClassNode,
    ScriptNode,
):
    _model.model_rebuild()
