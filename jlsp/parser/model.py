"""
Defines the Syntax Model: a thin, read-only view over a parsed script.
All line arguments of the containment queries are 0-based; the nodes
themselves keep the parser's 1-based lines.
"""

from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional

from ..config import DIAGNOSTIC_SOURCE, SCRIPT_CLASS_NAME, SEVERITY_ERROR
from .classes import (
    Block,
    ClassNode,
    DeclarationStatement,
    Expression,
    ExpressionStatement,
    IfStatement,
    LabeledStatement,
    LoopStatement,
    MethodNode,
    ScriptNode,
    Span,
    SwitchStatement,
    SyncStatement,
    TryStatement,
)


def own_expressions(stmt) -> List[Expression]:
    """The expressions a statement holds directly, not those of nested statements."""
    if isinstance(stmt, DeclarationStatement):
        return [var.initializer for var in stmt.variables if var.initializer is not None]
    if isinstance(stmt, ExpressionStatement):
        return [stmt.expression]
    if isinstance(stmt, IfStatement):
        return [stmt.condition]
    if isinstance(stmt, LoopStatement):
        return [stmt.header]
    if isinstance(stmt, SwitchStatement):
        return [stmt.subject] + [label for group in stmt.groups for label in group.labels]
    if isinstance(stmt, TryStatement):
        return [stmt.resources] if stmt.resources is not None else []
    if isinstance(stmt, SyncStatement):
        return [stmt.lock]
    for name in ("value", "condition"):
        value = getattr(stmt, name, None)
        if isinstance(value, Expression):
            return [value]
    return []


def child_statements(stmt) -> List:
    """Statements nested directly inside `stmt`, closures excluded."""
    if isinstance(stmt, Block):
        return list(stmt.statements)
    if isinstance(stmt, IfStatement):
        return [s for s in (stmt.then_branch, stmt.else_branch) if s is not None]
    if isinstance(stmt, LoopStatement):
        return [stmt.body]
    if isinstance(stmt, SwitchStatement):
        return [s for group in stmt.groups for s in group.statements]
    if isinstance(stmt, TryStatement):
        nested = [stmt.body] + [c.body for c in stmt.catches]
        if stmt.finally_block is not None:
            nested.append(stmt.finally_block)
        return nested
    if isinstance(stmt, SyncStatement):
        return [stmt.body]
    if isinstance(stmt, LabeledStatement):
        return [stmt.statement]
    return []


def walk_statements(statements: Iterable, into_closures: bool = True) -> Iterator:
    """Pre-order walk over statements, optionally descending into closure bodies."""
    for stmt in statements:
        if stmt is None:
            continue
        yield stmt
        if into_closures:
            for expression in own_expressions(stmt):
                for closure in expression.closures:
                    yield from walk_statements(closure.statements, into_closures)
        yield from walk_statements(child_statements(stmt), into_closures)


@dataclass
class Diagnostic:
    """A problem found while parsing or checking a document. Positions are 0-based."""

    message: str
    line: int
    column: int
    severity: int = SEVERITY_ERROR
    source: str = DIAGNOSTIC_SOURCE
    length: int = 1

    def to_lsp(self) -> dict:
        return {
            "range": {
                "start": {"line": self.line, "character": self.column},
                "end": {"line": self.line, "character": self.column + self.length},
            },
            "severity": self.severity,
            "message": self.message,
            "source": self.source,
        }


class SyntaxModel:
    """Containment and lookup queries over the classes and methods of one script."""

    def __init__(self, root: ScriptNode):
        self.root = root
        self.classes: List[ClassNode] = list(self._walk_classes(root.classes))
        self.script_class = ClassNode(
            name=SCRIPT_CLASS_NAME,
            line=1,
            package=root.package,
            methods=root.methods,
            fields=root.fields,
            span=root.span,
        )

    @classmethod
    def empty(cls, line_count: int = 1) -> "SyntaxModel":
        return cls(ScriptNode(span=Span(s_line=1, s_col=1, e_line=max(1, line_count), e_col=1)))

    @staticmethod
    def _walk_classes(classes: List[ClassNode]) -> Iterator[ClassNode]:
        for cls in classes:
            yield cls
            yield from SyntaxModel._walk_classes(cls.inner_classes)

    @property
    def script_methods(self) -> List[MethodNode]:
        return self.root.methods

    @property
    def is_empty(self) -> bool:
        return not (self.root.classes or self.root.methods or self.root.statements or self.root.fields)

    def find_class(self, name: Optional[str]) -> Optional[ClassNode]:
        """Finds a class declared in this document by simple or qualified name."""
        if not name:
            return None
        simple = name.split("<", 1)[0].split(".")[-1]
        for cls in self.classes:
            if cls.name == simple or cls.qualified_name == name:
                return cls
        return None

    def find_enclosing_class(self, line: int) -> Optional[ClassNode]:
        """The innermost class whose span contains the 0-based `line`."""
        found = None
        for cls in self.classes:
            if cls.span.contains_line(line + 1):
                found = cls
        return found

    def find_enclosing_method(self, cls: Optional[ClassNode], line: int) -> Optional[MethodNode]:
        if cls is None:
            return None
        for method in list(cls.methods) + list(cls.constructors):
            if method.span.contains_line(line + 1):
                return method
        return None

    def find_enclosing_top_level_method(self, line: int) -> Optional[MethodNode]:
        for method in self.root.methods:
            if method.span.contains_line(line + 1):
                return method
        return None

    def find_context(self, line: int):
        """
        Returns (class, method) for a 0-based line. Lines outside any declared
        class belong to the script pseudo-class and its script-level methods.
        """
        cls = self.find_enclosing_class(line)
        if cls is not None:
            method = self.find_enclosing_method(cls, line)
            if method is not None:
                return cls, method
        method = self.find_enclosing_top_level_method(line)
        return (cls or self.script_class), method

    def is_top_level_line(self, line: int) -> bool:
        """True when the 0-based line is outside every class and method body."""
        one_based = line + 1
        for cls in self.classes:
            if cls.span.contains_line(one_based):
                return False
        return not any(method.span.contains_line(one_based) for method in self.root.methods)


@dataclass
class ParseResult:
    """
    One parse of one document version. `source_text` is always the text the
    editor sent, even when the tree was built from a patched copy.
    """

    model: SyntaxModel
    source_text: str
    diagnostics: List[Diagnostic] = field(default_factory=list)
    lines: List[str] = field(default_factory=list)
    has_syntax_errors: bool = False
