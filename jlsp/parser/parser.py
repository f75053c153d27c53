import logging
import os
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from lark import Lark, LarkError, Token, Transformer, v_args
from lark.exceptions import UnexpectedEOF, UnexpectedInput, UnexpectedToken, VisitError

from ..config import (
    FIELD_ANNOTATION,
    MAX_RECOVERY_ATTEMPTS,
    TRAILING_DOT_ERROR_PREFIX,
    TRAILING_DOT_STUB,
)
from ..exceptions import GroovyLspError
from ..text_scanner import final_brace_depth, mask_for_parser, split_lines
from .classes import *
from .diagnostics import collect_semantic_diagnostics
from .helpers import _translate_lark_error
from .model import Diagnostic, ParseResult, SyntaxModel
from .postlex import GroovyPostLex

logger = logging.getLogger(__name__)

LARK_PARSER = None


def _build_parser(grammar: str) -> Lark:
    return Lark(
        grammar,
        start="start",
        parser="earley",
        lexer="basic",
        postlex=GroovyPostLex(),
        propagate_positions=True,
    )


try:
    # Use importlib.resources for robust package data access
    from importlib.resources import files as pkg_files

    groovy_grammar = (pkg_files("jlsp.parser") / "groovy.lark").read_text()
    LARK_PARSER = _build_parser(groovy_grammar)
except (ImportError, OSError):
    # Fallback for development checkouts where the package data is not installed
    grammar_path = os.path.join(os.path.dirname(__file__), "groovy.lark")
    with open(grammar_path, "r") as f:
        groovy_grammar = f.read()
    LARK_PARSER = _build_parser(groovy_grammar)


NAME_TYPES = ("UNAME", "LNAME")
ACCESS_MODIFIERS = frozenset({"public", "private", "protected"})
MODIFIER_WORDS = frozenset(
    {
        "public",
        "private",
        "protected",
        "static",
        "final",
        "abstract",
        "synchronized",
        "transient",
        "volatile",
        "native",
        "strictfp",
        "def",
    }
)
MEMBER_ACCESS_TYPES = ("DOT", "SAFE_DOT", "METHOD_PTR", "FIELD_DOT")


def _is_token(item: Any, *types: str) -> bool:
    return isinstance(item, Token) and item.type in types


def _is_name(item: Any) -> bool:
    return _is_token(item, *NAME_TYPES)


def _is_modifier(item: Any) -> bool:
    return isinstance(item, Token) and item.type not in NAME_TYPES and item.value in MODIFIER_WORDS


# --- Intermediate values passed between transformer callbacks ---


@dataclass
class _Header:
    kind: str
    name: str


@dataclass
class _ClassKind:
    kind: str


@dataclass
class _Supertypes:
    kind: str
    names: List[str]


@dataclass
class _ClassBody:
    members: List[Any]
    span: Span


@dataclass
class _ReturnType:
    name: str


@dataclass
class _DeclHead:
    modifiers: List[str]
    type_name: Optional[str]
    span: Span


@dataclass
class _CaseLabel:
    expression: Optional[Expression]


@dataclass
class _ClosureHeader:
    params: List[Parameter]


@dataclass
class _Group:
    """A parenthesised or bracketed token sequence inside an expression."""

    opener: str
    items: List[Any]
    span: Span
    calls: List[CallSite] = field(default_factory=list)
    closures: List[Closure] = field(default_factory=list)

    def argument_shape(self) -> Tuple[int, bool]:
        """Returns (positional argument count, whether named `key: value` arguments are present)."""
        segments: List[List[Any]] = [[]]
        for item in self.items:
            if _is_token(item, "COMMA"):
                segments.append([])
            else:
                segments[-1].append(item)
        positional = 0
        named = False
        for segment in segments:
            if not segment:
                continue
            is_key = _is_name(segment[0]) or _is_token(segment[0], "DQ_STRING", "SQ_STRING")
            if len(segment) > 1 and is_key and _is_token(segment[1], "COLON"):
                named = True
            else:
                positional += 1
        return positional, named


def _scan_sequence(items: List[Any]) -> Tuple[List[CallSite], List[Closure]]:
    """Finds `name(...)` call sites and closures in a flat item sequence, nested groups included."""
    calls: List[CallSite] = []
    closures: List[Closure] = []
    for index, item in enumerate(items):
        if isinstance(item, _Group):
            if item.opener == "(" and index > 0 and _is_name(items[index - 1]):
                calls.append(_make_call(items, index))
            calls.extend(item.calls)
            closures.extend(item.closures)
        elif isinstance(item, Closure):
            closures.append(item)
    return calls, closures


def _make_call(items: List[Any], index: int) -> CallSite:
    name_token = items[index - 1]
    group = items[index]
    previous = items[index - 2] if index >= 2 else None

    is_constructor = _is_token(previous, "LNAME") and previous.value == "new"
    is_qualified = _is_token(previous, *MEMBER_ACCESS_TYPES)
    receiver = None
    receiver_col = None
    if is_qualified and index >= 3 and _is_name(items[index - 3]):
        receiver = items[index - 3].value
        receiver_col = items[index - 3].column

    has_trailing_closure = index + 1 < len(items) and isinstance(items[index + 1], Closure)
    positional, named = group.argument_shape()
    arg_count = positional + (1 if named else 0) + (1 if has_trailing_closure else 0)

    return CallSite(
        name=name_token.value,
        is_qualified=is_qualified,
        receiver=receiver,
        receiver_col=receiver_col,
        arg_count=arg_count,
        has_named_args=named,
        has_trailing_closure=has_trailing_closure,
        is_constructor=is_constructor,
        span=Span(
            s_line=name_token.line,
            s_col=name_token.column,
            e_line=group.span.e_line,
            e_col=group.span.e_col,
        ),
    )


class GroovyTransformer(Transformer):
    """
    Transforms the Lark parse tree into the pydantic syntax tree.
    Each method is called when the parser completed a rule of the same name;
    the transformation starts from the leaves (tokens, names, groups) and
    works upwards to `start`, which assembles the ScriptNode.
    Rules whose leading keyword is filtered out of the tree take their span
    from Lark's propagated `meta` instead of from their children.
    """

    def __init__(self, line_count: int = 1):
        self.line_count = max(1, line_count)
        super().__init__()

    # --- Helper methods for creating spans ---
    def _create_span_from_token(self, token: Token) -> Span:
        """Creates a Span object from a single Lark Token."""
        return Span(s_line=token.line, s_col=token.column, e_line=token.end_line, e_col=token.end_column)

    def _create_span_from_meta(self, meta) -> Span:
        return Span(s_line=meta.line, s_col=meta.column, e_line=meta.end_line, e_col=meta.end_column)

    def _get_span_from_items(self, items: list) -> Span:
        """Calculates a Span that covers a list of tokens and/or nodes."""
        positioned = [item for item in items if hasattr(item, "span") or isinstance(item, Token)]
        if not positioned:  # Handle empty lists
            return Span(s_line=1, s_col=1, e_line=1, e_col=1)
        first, last = positioned[0], positioned[-1]

        s_line = first.span.s_line if hasattr(first, "span") else first.line
        s_col = first.span.s_col if hasattr(first, "span") else first.column
        e_line = last.span.e_line if hasattr(last, "span") else last.end_line
        e_col = last.span.e_col if hasattr(last, "span") else last.end_column

        return Span(s_line=s_line, s_col=s_col, e_line=e_line, e_col=e_col)

    def _join_tokens(self, type_name: str, tokens: List[Token], separator: str) -> Token:
        first, last = tokens[0], tokens[-1]
        return Token(
            type_name,
            separator.join(t.value for t in tokens),
            start_pos=first.start_pos,
            line=first.line,
            column=first.column,
            end_line=last.end_line,
            end_column=last.end_column,
            end_pos=last.end_pos,
        )

    def _fields_from_declaration(self, decl: DeclarationStatement, force_field: bool = False) -> List[FieldNode]:
        """Class-body variables with an access modifier are fields, the rest are properties."""
        is_field = force_field or any(m in ACCESS_MODIFIERS for m in decl.modifiers)
        node_type = FieldNode if is_field else PropertyNode
        return [
            node_type(
                name=var.name,
                line=var.line,
                type_name=decl.type_name,
                modifiers=decl.modifiers,
                annotations=decl.annotations,
                initializer=var.initializer,
                span=decl.span,
            )
            for var in decl.variables
        ]

    # --- File structure ---
    def package_decl(self, items):
        return _Header(kind="package", name=items[0].value.split()[-1])

    def import_decl(self, items):
        return _Header(kind="import", name=items[-1].value.split(None, 1)[-1])

    def annotation(self, items):
        name = items[1].value.split(".")[-1]
        return Annotation(name=name, span=self._get_span_from_items(items))

    def qualified_name(self, items):
        return self._join_tokens("QNAME", [i for i in items if _is_name(i)], ".")

    # --- Types ---
    def modifier(self, items):
        return items[0]

    def primitive_type(self, items):
        return self._join_tokens("TYPE", items, "")

    def class_type(self, items):
        return self._join_tokens("TYPE", [i for i in items if _is_name(i)], ".")

    def type(self, items):
        base = items[0]
        dims = sum(i for i in items if isinstance(i, int) and not isinstance(i, Token))
        return Token.new_borrow_pos("TYPE", base.value + "[]" * dims, base)

    def type_args(self, items):
        return None

    def type_arg(self, items):
        return None

    def dims(self, items):
        return sum(1 for i in items if _is_token(i, "LSQB"))

    def return_type(self, items):
        return _ReturnType(name=items[0].value)

    # --- Classes ---
    def class_kind(self, items):
        if _is_token(items[0], "AT"):
            return _ClassKind(kind="annotation")
        return _ClassKind(kind=items[0].value)

    def type_params(self, items):
        return None

    def type_param(self, items):
        return None

    def extends_clause(self, items):
        return _Supertypes(kind="extends", names=[i.value for i in items if _is_token(i, "TYPE")])

    def implements_clause(self, items):
        return _Supertypes(kind="implements", names=[i.value for i in items if _is_token(i, "TYPE")])

    def class_body(self, items):
        members = [item for item in items[1:-1] if item is not None]
        return _ClassBody(members=members, span=self._get_span_from_items(items))

    def class_decl(self, items):
        name_token = next(i for i in items if _is_name(i))
        kind = next(i for i in items if isinstance(i, _ClassKind)).kind
        body = items[-1]

        superclass = None
        interfaces: List[str] = []
        for clause in (i for i in items if isinstance(i, _Supertypes)):
            if clause.kind == "extends" and kind != "interface":
                superclass = clause.names[0] if clause.names else None
                interfaces.extend(clause.names[1:])
            else:
                interfaces.extend(clause.names)

        fields: List[FieldNode] = []
        properties: List[PropertyNode] = []
        methods: List[MethodNode] = []
        constructors: List[MethodNode] = []
        inner_classes: List[ClassNode] = []
        for member in body.members:
            if isinstance(member, DeclarationStatement):
                for node in self._fields_from_declaration(member):
                    (properties if isinstance(node, PropertyNode) else fields).append(node)
            elif isinstance(member, MethodNode):
                if member.is_constructor or (member.return_type is None and member.name == name_token.value):
                    member.is_constructor = True
                    constructors.append(member)
                else:
                    methods.append(member)
            elif isinstance(member, ClassNode):
                inner_classes.append(member)
            elif isinstance(member, list):
                # enum constants behave like public static final fields of the enum type
                for constant in member:
                    fields.append(
                        FieldNode(
                            name=constant.value,
                            line=constant.line,
                            type_name=name_token.value,
                            modifiers=["public", "static", "final"],
                            span=self._create_span_from_token(constant),
                        )
                    )

        return ClassNode(
            name=name_token.value,
            line=name_token.line,
            kind=kind,
            superclass=superclass,
            interfaces=interfaces,
            modifiers=[i.value for i in items if _is_modifier(i)],
            annotations=[i.name for i in items if isinstance(i, Annotation)],
            fields=fields,
            properties=properties,
            methods=methods,
            constructors=constructors,
            inner_classes=inner_classes,
            span=self._get_span_from_items(items),
        )

    def field_decl(self, items):
        return self.local_decl(items)

    def initializer(self, items):
        return None

    def enum_constants(self, items):
        return [i for i in items if _is_name(i)]

    def enum_constant(self, items):
        return next(i for i in items if _is_name(i))

    # --- Methods ---
    def _method(self, items, is_constructor: bool) -> MethodNode:
        name_token = next(i for i in items if _is_name(i))
        return_type = next((i.name for i in items if isinstance(i, _ReturnType)), None)
        parameters = next((i for i in items if isinstance(i, list)), [])
        body = next((i for i in items if isinstance(i, Block)), None)
        return MethodNode(
            name=name_token.value,
            line=name_token.line,
            return_type=return_type,
            parameters=parameters,
            body=body,
            modifiers=[i.value for i in items if _is_modifier(i)],
            annotations=[i.name for i in items if isinstance(i, Annotation)],
            is_constructor=is_constructor,
            span=self._get_span_from_items(items),
        )

    def method_decl(self, items):
        return self._method(items, is_constructor=False)

    def ctor_decl(self, items):
        return self._method(items, is_constructor=True)

    def params(self, items):
        return [p for p in items if isinstance(p, Parameter)]

    def param(self, items):
        type_token = next((i for i in items if _is_token(i, "TYPE")), None)
        name_token = next(i for i in items if _is_name(i))
        return Parameter(
            name=name_token.value,
            type_name=type_token.value if type_token is not None else None,
            has_default=any(_is_token(i, "ASSIGN") for i in items),
            varargs=any(_is_token(i, "ELLIPSIS") for i in items),
            span=self._create_span_from_token(name_token),
        )

    def throws_clause(self, items):
        return None

    # --- Declarations ---
    def decl_head(self, items):
        type_token = next((i for i in items if _is_token(i, "TYPE")), None)
        return _DeclHead(
            modifiers=[i.value for i in items if _is_modifier(i)],
            type_name=type_token.value if type_token is not None else None,
            span=self._get_span_from_items(items),
        )

    def var_declarator(self, items):
        initializer = next((i for i in items if isinstance(i, Expression)), None)
        return VariableDeclarator(name=items[0].value, initializer=initializer, span=self._get_span_from_items(items))

    def local_decl(self, items):
        head = next(i for i in items if isinstance(i, _DeclHead))
        return DeclarationStatement(
            modifiers=head.modifiers,
            annotations=[i.name for i in items if isinstance(i, Annotation)],
            type_name=head.type_name,
            variables=[i for i in items if isinstance(i, VariableDeclarator)],
            span=self._get_span_from_items(items),
        )

    def tuple_decl(self, items):
        head = next(i for i in items if isinstance(i, _DeclHead))
        variables = [
            VariableDeclarator(name=t.value, span=self._create_span_from_token(t)) for t in items if _is_name(t)
        ]
        return DeclarationStatement(
            modifiers=head.modifiers,
            annotations=[i.name for i in items if isinstance(i, Annotation)],
            type_name=head.type_name,
            variables=variables,
            span=self._get_span_from_items(items),
        )

    # --- Statements ---
    def block(self, items):
        return Block(statements=[i for i in items[1:-1] if i is not None], span=self._get_span_from_items(items))

    @v_args(meta=True)
    def if_stmt(self, meta, items):
        return IfStatement(
            condition=self._group_expression(items[0]),
            then_branch=items[1],
            else_branch=items[2] if len(items) > 2 else None,
            span=self._create_span_from_meta(meta),
        )

    @v_args(meta=True)
    def for_stmt(self, meta, items):
        return LoopStatement(
            loop_kind="for", header=self._group_expression(items[0]), body=items[1], span=self._create_span_from_meta(meta)
        )

    @v_args(meta=True)
    def while_stmt(self, meta, items):
        return LoopStatement(
            loop_kind="while", header=self._group_expression(items[0]), body=items[1], span=self._create_span_from_meta(meta)
        )

    @v_args(meta=True)
    def do_while_stmt(self, meta, items):
        return LoopStatement(
            loop_kind="do", header=self._group_expression(items[1]), body=items[0], span=self._create_span_from_meta(meta)
        )

    @v_args(meta=True)
    def switch_stmt(self, meta, items):
        return SwitchStatement(
            subject=self._group_expression(items[0]),
            groups=[i for i in items if isinstance(i, SwitchGroup)],
            span=self._create_span_from_meta(meta),
        )

    @v_args(meta=True)
    def switch_group(self, meta, items):
        labels = [i for i in items if isinstance(i, _CaseLabel)]
        return SwitchGroup(
            labels=[label.expression for label in labels if label.expression is not None],
            is_default=any(label.expression is None for label in labels),
            statements=[i for i in items if not isinstance(i, _CaseLabel) and i is not None],
            span=self._create_span_from_meta(meta),
        )

    def switch_label(self, items):
        return _CaseLabel(expression=items[0])

    def default_label(self, items):
        return _CaseLabel(expression=None)

    @v_args(meta=True)
    def try_stmt(self, meta, items):
        blocks = [i for i in items if isinstance(i, Block)]
        resources = next((i for i in items if isinstance(i, _Group)), None)
        return TryStatement(
            resources=self._group_expression(resources) if resources is not None else None,
            body=blocks[0],
            catches=[i for i in items if isinstance(i, CatchClause)],
            finally_block=blocks[1] if len(blocks) > 1 else None,
            span=self._create_span_from_meta(meta),
        )

    @v_args(meta=True)
    def catch_clause(self, meta, items):
        param = next(i for i in items if isinstance(i, Parameter))
        body = next(i for i in items if isinstance(i, Block))
        return CatchClause(param=param, body=body, span=self._create_span_from_meta(meta))

    def catch_param(self, items):
        types = [i.value for i in items if _is_token(i, "TYPE")]
        name_token = next(i for i in items if _is_name(i))
        return Parameter(
            name=name_token.value,
            type_name="|".join(types) if types else None,
            span=self._create_span_from_token(name_token),
        )

    def finally_clause(self, items):
        return items[0]

    @v_args(meta=True)
    def sync_stmt(self, meta, items):
        return SyncStatement(lock=self._group_expression(items[0]), body=items[1], span=self._create_span_from_meta(meta))

    @v_args(meta=True)
    def return_stmt(self, meta, items):
        return ReturnStatement(value=items[0] if items else None, span=self._create_span_from_meta(meta))

    @v_args(meta=True)
    def throw_stmt(self, meta, items):
        return ThrowStatement(value=items[0], span=self._create_span_from_meta(meta))

    @v_args(meta=True)
    def break_stmt(self, meta, items):
        return JumpStatement(
            keyword="break", label=items[0].value if items else None, span=self._create_span_from_meta(meta)
        )

    @v_args(meta=True)
    def continue_stmt(self, meta, items):
        return JumpStatement(
            keyword="continue", label=items[0].value if items else None, span=self._create_span_from_meta(meta)
        )

    @v_args(meta=True)
    def assert_stmt(self, meta, items):
        return AssertStatement(condition=items[0], span=self._create_span_from_meta(meta))

    def labeled_stmt(self, items):
        return LabeledStatement(label=items[0].value, statement=items[-1], span=self._get_span_from_items(items))

    def annotated_stmt(self, items):
        statement = items[-1]
        statement.annotations = [i.name for i in items if isinstance(i, Annotation)]
        statement.span = self._get_span_from_items(items)
        return statement

    def expr_stmt(self, items):
        return ExpressionStatement(expression=items[0], span=items[0].span)

    # --- Expressions ---
    def _group_expression(self, group: _Group) -> Expression:
        return Expression(calls=group.calls, closures=group.closures, span=group.span)

    def expr(self, items):
        calls, closures = _scan_sequence(items)
        bare_name = items[0].value if len(items) == 1 and _is_name(items[0]) else None
        assigned_name = None
        if len(items) > 1 and _is_name(items[0]) and _is_token(items[1], "ASSIGN"):
            assigned_name = items[0].value
        return Expression(
            calls=calls,
            closures=closures,
            bare_name=bare_name,
            assigned_name=assigned_name,
            span=self._get_span_from_items(items),
        )

    def dot_keyword(self, items):
        return Token.new_borrow_pos("DOT_KEYWORD", items[0].value, items[0])

    def _group(self, opener: str, items) -> _Group:
        inner = items[1:-1]
        calls, closures = _scan_sequence(inner)
        return _Group(opener=opener, items=inner, span=self._get_span_from_items(items), calls=calls, closures=closures)

    def paren_group(self, items):
        return self._group("(", items)

    def bracket_group(self, items):
        return self._group("[", items)

    def closure(self, items):
        header = next((i for i in items if isinstance(i, _ClosureHeader)), None)
        statements = [i for i in items[1:-1] if i is not None and not isinstance(i, _ClosureHeader)]
        return Closure(
            params=header.params if header is not None else [],
            statements=statements,
            span=self._get_span_from_items(items),
        )

    def closure_header(self, items):
        return _ClosureHeader(params=[i for i in items if isinstance(i, Parameter)])

    def closure_param(self, items):
        return self.param(items)

    # --- Root ---
    def start(self, children):
        package = None
        imports: List[str] = []
        classes: List[ClassNode] = []
        methods: List[MethodNode] = []
        fields: List[FieldNode] = []
        statements = []

        for child in children:
            if child is None:
                continue
            if isinstance(child, _Header):
                if child.kind == "package":
                    package = child.name
                else:
                    imports.append(child.name)
            elif isinstance(child, ClassNode):
                classes.append(child)
            elif isinstance(child, MethodNode):
                methods.append(child)
            else:
                statements.append(child)
                if isinstance(child, DeclarationStatement) and FIELD_ANNOTATION in child.annotations:
                    fields.extend(self._fields_from_declaration(child, force_field=True))

        if package:
            for cls in classes:
                self._assign_package(cls, package)

        return ScriptNode(
            package=package,
            imports=imports,
            classes=classes,
            methods=methods,
            fields=fields,
            statements=statements,
            span=Span(s_line=1, s_col=1, e_line=self.line_count, e_col=1),
        )

    def _assign_package(self, cls: ClassNode, package: str):
        cls.package = package
        for inner in cls.inner_classes:
            self._assign_package(inner, package)


# --- Parsing entry points ---


def _patch_trailing_dot(lines: List[str]) -> Tuple[List[str], bool]:
    """Appends a stub identifier when the last non-blank line ends in `.` (the user is mid-typing)."""
    index = len(lines) - 1
    while index >= 0 and not lines[index].strip():
        index -= 1
    if index < 0 or not lines[index].strip().endswith("."):
        return lines, False
    patched = list(lines)
    patched[index] = patched[index] + TRAILING_DOT_STUB
    logger.debug("trailing '.' on line %d, parsing a patched copy", index)
    return patched, True


def _recover(lines: List[str], err: UnexpectedInput, closed: List[bool]) -> Optional[str]:
    """
    Edits `lines` so that the next attempt gets past `err`: the offending line
    is blanked, or missing closing braces are appended at end of input.
    Returns the blanked text ("" when braces were appended), or None when no
    further edit is possible.
    """
    at_end = isinstance(err, UnexpectedEOF) or (isinstance(err, UnexpectedToken) and err.token.type == "$END")
    if at_end:
        depth = final_brace_depth(lines)
        if depth > 0 and not closed[0]:
            closed[0] = True
            lines.append("}" * depth)
            return ""
        return None
    line = getattr(err, "line", -1)
    if not isinstance(line, int) or not 1 <= line <= len(lines):
        return None
    index = line - 1
    # an unexpected newline is reported on the blank line after the broken one
    while index >= 0 and not lines[index].strip():
        index -= 1
    if index < 0:
        return None
    removed = lines[index]
    lines[index] = " " * len(removed)
    return removed


def _unbalances_braces(removed: str) -> bool:
    """Whether dropping `removed` leaves an opening or closing brace without its partner."""
    return final_brace_depth([removed]) > 0 or final_brace_depth(["{" + removed]) == 0


def _parse_with_recovery(text: str):
    """
    Returns (lark tree or None, syntax errors). Once a blanked line took an
    unmatched brace with it, later errors follow from that edit and are not
    reported.
    """
    lines = text.split("\n")
    errors: List[GroovyLspError] = []
    cascading = False
    closed = [False]
    for attempt in range(MAX_RECOVERY_ATTEMPTS + 1):
        try:
            return LARK_PARSER.parse("\n".join(lines)), errors
        except UnexpectedInput as e:
            error = _translate_lark_error(e)
            if not errors or (not cascading and all(error.line != seen.line for seen in errors)):
                errors.append(error)
            logger.debug("parse attempt %d failed: %s", attempt, e.__class__.__name__)
            removed = _recover(lines, e, closed)
            if removed is None:
                break
            if _unbalances_braces(removed):
                cascading = True
    return None, errors


def _syntax_diagnostic(error: GroovyLspError, lines: List[str]) -> Diagnostic:
    if error.line is None:
        line = len(lines) - 1
        while line > 0 and not lines[line].strip():
            line -= 1
        column = 0
    else:
        line = min(max(error.line - 1, 0), len(lines) - 1)
        column = max((error.column or 1) - 1, 0)
    return Diagnostic(message=error.message, line=max(line, 0), column=column)


def parse_groovy(source_text: str, check_missing_return: bool = True, check_arity: bool = True) -> ParseResult:
    """
    Parses the script and runs the parse-time checks. Never raises on bad
    input: syntax problems become diagnostics and the tree is best-effort.
    """
    source_text = source_text or ""
    lines = split_lines(source_text)
    if not source_text.strip():
        return ParseResult(model=SyntaxModel.empty(len(lines)), source_text=source_text, lines=lines)

    parse_lines, trailing_dot = _patch_trailing_dot(lines)
    tree, errors = _parse_with_recovery(mask_for_parser("\n".join(parse_lines)))

    diagnostics: List[Diagnostic] = []
    for error in errors:
        diagnostic = _syntax_diagnostic(error, lines)
        if trailing_dot and diagnostic.message.lower().startswith(TRAILING_DOT_ERROR_PREFIX):
            logger.debug("suppressing trailing '.' diagnostic on line %d", diagnostic.line)
        else:
            diagnostics.append(diagnostic)

    model = SyntaxModel.empty(len(lines))
    if tree is not None:
        try:
            model = SyntaxModel(GroovyTransformer(line_count=len(lines)).transform(tree))
        except VisitError:
            logger.exception("could not build the syntax tree; continuing with an empty model")

    if not errors:
        diagnostics.extend(
            collect_semantic_diagnostics(model, check_missing_return=check_missing_return, check_arity_calls=check_arity)
        )

    logger.debug("parsed %d lines: %d classes, %d script methods, %d diagnostics",
                 len(lines), len(model.classes), len(model.script_methods), len(diagnostics))
    return ParseResult(
        model=model,
        source_text=source_text,
        diagnostics=diagnostics,
        lines=lines,
        has_syntax_errors=bool(errors),
    )


def parse_groovy_strict(source_text: str, file_path: Optional[str] = None) -> ScriptNode:
    """Parses without recovery and raises GroovyLspError on the first syntax error."""
    try:
        tree = LARK_PARSER.parse(mask_for_parser("\n".join(split_lines(source_text or ""))))
    except LarkError as e:
        error = _translate_lark_error(e)
        raise GroovyLspError(error.code, line=error.line, column=error.column, file_path=file_path, **error.details) from e
    return GroovyTransformer(line_count=len(split_lines(source_text or ""))).transform(tree)
