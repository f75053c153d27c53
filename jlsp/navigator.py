"""
Symbol Navigator: locals and parameters of a method, script-level variables,
top-level classes and methods, and members found by walking a class hierarchy.

Every location returned here is 0-based. Columns are recovered from the text
(`smart_var_column`) rather than from the tree, so they land on the name itself
even when the declaration starts with modifiers, annotations or a type.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from .config import (
    ARG_CLOSURE,
    ARG_MAP,
    ARG_STRING,
    BARE_TYPE_LINE_REGEX,
    DEFAULT_DYNAMIC_TYPE,
    DYNAMIC_TYPES,
    KIND_CLASS,
    KIND_FIELD,
    KIND_LOCAL,
    KIND_METHOD,
    KIND_PARAM,
    KIND_PROPERTY,
    KIND_VARIABLE,
    MAX_HIERARCHY_DEPTH,
    MODE_ANY,
    MODE_PREFER_FIELD,
    MODE_PREFER_METHOD,
    SCORE_ARITY_PENALTY,
    SCORE_KIND_MATCH,
    SCORE_KIND_MISMATCH,
    SCORE_NAME_MATCH,
)
from .parser.classes import (
    Block,
    ClassNode,
    DeclarationStatement,
    ExpressionStatement,
    MethodNode,
    Parameter,
    SwitchStatement,
    TryStatement,
)
from .parser.model import SyntaxModel, child_statements, own_expressions
from .text_scanner import brace_depths, is_groovy_keyword, scan_multiline_var, smart_var_column

logger = logging.getLogger(__name__)

BARE_TYPE_LINE_PATTERN = re.compile(BARE_TYPE_LINE_REGEX)
# keywords that may introduce a variable declaration
DECLARING_KEYWORDS = frozenset({"def", "var"})
GENERIC_PARAM_TYPES = frozenset({"Object", "java.lang.Object", "def"})


@dataclass
class SymbolLocation:
    """A resolved definition site. `uri` is only set for locations in another file."""

    line: int
    column: int
    name: str
    kind: str
    type_name: Optional[str] = None
    uri: Optional[str] = None

    @property
    def end_column(self) -> int:
        return self.column + len(self.name)

    def to_dict(self) -> dict:
        return {
            "line": self.line,
            "column": self.column,
            "length": len(self.name),
            "name": self.name,
            "kind": self.kind,
            "uri": self.uri,
        }


def _column_of(lines: List[str], line: int, name: str) -> int:
    column = smart_var_column(lines, line, name)
    return column if column >= 0 else 0


# --- Locals & parameters ---


def _split_declaration_type(lines: List[str], line: int) -> Optional[str]:
    """The type on the closest non-blank line above `line`, if that line holds nothing but a type name."""
    previous = line - 1
    while previous >= 0 and not (lines[previous] or "").strip():
        previous -= 1
    if previous < 0:
        return None
    match = BARE_TYPE_LINE_PATTERN.match(lines[previous].strip())
    return match.group(1) if match else None


def _parameter_location(param: Parameter, lines: List[str]) -> SymbolLocation:
    line = max(param.line - 1, 0)
    return SymbolLocation(
        line=line,
        column=_column_of(lines, line, param.name),
        name=param.name,
        kind=KIND_PARAM,
        type_name=param.type_name or DEFAULT_DYNAMIC_TYPE,
    )


def _declared_locals(stmt, lines: List[str]) -> Iterator[SymbolLocation]:
    if isinstance(stmt, DeclarationStatement):
        for var in stmt.variables:
            line = max(var.line - 1, 0)
            column = smart_var_column(lines, line, var.name)
            if column < 0:
                split = scan_multiline_var(lines, line, var.name)
                line, column = split if split else (line, 0)
            type_name = stmt.type_name
            if type_name is None or type_name in DYNAMIC_TYPES:
                type_name = _split_declaration_type(lines, line) or type_name or DEFAULT_DYNAMIC_TYPE
            yield SymbolLocation(line=line, column=column, name=var.name, kind=KIND_LOCAL, type_name=type_name)
    elif isinstance(stmt, ExpressionStatement) and stmt.expression.assigned_name:
        # `Type` alone on one line and `name = value` on the next is a split declaration
        line = max(stmt.start_line - 1, 0)
        type_name = _split_declaration_type(lines, line)
        if type_name:
            name = stmt.expression.assigned_name
            yield SymbolLocation(
                line=line, column=_column_of(lines, line, name), name=name, kind=KIND_LOCAL, type_name=type_name
            )


def _nested_scopes(stmt) -> Iterator[Tuple[List[Parameter], List, object]]:
    """(parameters, statements, span) of every scope opened directly by `stmt`."""
    for expression in own_expressions(stmt):
        for closure in expression.closures:
            yield closure.params, closure.statements, closure.span
    if isinstance(stmt, Block):
        yield [], stmt.statements, stmt.span
    elif isinstance(stmt, TryStatement):
        yield [], stmt.body.statements, stmt.body.span
        for catch in stmt.catches:
            yield [catch.param], catch.body.statements, catch.span
        if stmt.finally_block is not None:
            yield [], stmt.finally_block.statements, stmt.finally_block.span
    elif isinstance(stmt, SwitchStatement):
        for group in stmt.groups:
            yield [], group.statements, group.span
    else:
        for child in child_statements(stmt):
            yield from _nested_scopes(child)


def _collect_scope(statements: List, lines: List[str], locals_: Dict[str, SymbolLocation], line: Optional[int]):
    for stmt in statements:
        for location in _declared_locals(stmt, lines):
            locals_[location.name] = location
        if line is None:
            continue
        for params, nested, span in _nested_scopes(stmt):
            if not span.contains_line(line + 1):
                continue
            for param in params:
                locals_[param.name] = _parameter_location(param, lines)
            _collect_scope(nested, lines, locals_, line)


def collect_local_variables(
    method: Optional[MethodNode], lines: List[str], line: Optional[int] = None
) -> Dict[str, SymbolLocation]:
    """
    Parameters plus the declarations of the method's top block. When the
    0-based `line` is given, the declarations and closure/catch parameters of
    every nested scope enclosing that line are added too, innermost last, so
    a name always maps to the declaration visible from `line`.
    """
    locals_: Dict[str, SymbolLocation] = {}
    if method is None:
        return locals_
    for param in method.parameters:
        locals_[param.name] = _parameter_location(param, lines)
    if method.body is not None:
        _collect_scope(method.body.statements, lines, locals_, line)
    logger.debug("locals of %s: %s", method.name, sorted(locals_))
    return locals_


# --- Script-level variables ---


@dataclass
class VariablePass:
    """One pass of the top-level variable search: a tag and a (line, column) acceptance predicate."""

    tag: str
    accepts: Callable[[int, int], bool]


def _valid_declaration_edge(text: str, after_name: int) -> bool:
    # "name(" and "name {" are method or closure definitions, not variables
    rest = text[after_name:].lstrip()
    return not rest.startswith(("(", "{"))


def _line_candidates(text: str, name: str, lines: List[str], index: int) -> Iterator[Tuple[int, str]]:
    """(column, type) candidates for `name` on one line, in recognition order."""
    quoted = re.escape(name)
    for match in re.finditer(rf"\b(def|\w+)\s+{quoted}\b", text):
        keyword = match.group(1)
        if is_groovy_keyword(keyword) and keyword not in DECLARING_KEYWORDS:
            continue
        if not _valid_declaration_edge(text, match.end()):
            continue
        yield match.start() + match.group(0).rfind(name), keyword
        break

    assignment = re.search(rf"(?<![.$])\b{quoted}\b\s*=(?![=~])", text)
    if assignment:
        yield assignment.start(), DEFAULT_DYNAMIC_TYPE

    if text.strip() == name:
        column = text.index(name)
        split_type = _split_declaration_type(lines, index)
        if split_type:
            yield column, split_type
        following = index + 1
        while following < len(lines) and not (lines[following] or "").strip():
            following += 1
        if following < len(lines) and lines[following].lstrip().startswith("=") and not lines[following].lstrip().startswith("=="):
            yield column, DEFAULT_DYNAMIC_TYPE


def _bottom_up_scan(
    name: str, lines: List[str], accepts: Callable[[int, int], bool], last_line: int
) -> Optional[SymbolLocation]:
    for index in range(last_line, -1, -1):
        text = lines[index] or ""
        if name not in text:
            continue
        for column, type_name in _line_candidates(text, name, lines, index):
            if accepts(index, column):
                return SymbolLocation(line=index, column=column, name=name, kind=KIND_VARIABLE, type_name=type_name)
    return None


def variable_passes(lines: List[str], model: Optional[SyntaxModel]) -> List[VariablePass]:
    """The top-level search cascade, most strict first."""
    depths = brace_depths(lines)

    def tree_top_level(index: int, column: int) -> bool:
        if model is None or model.is_empty:
            return True
        return model.is_top_level_line(index)

    return [
        VariablePass("StrictDepth", lambda index, column: depths[index] == 0),
        VariablePass("TreeAssisted", tree_top_level),
        VariablePass("RelaxedColumn", lambda index, column: column == 0),
        VariablePass("AnywhereSafetyNet", lambda index, column: True),
    ]


def find_top_level_variable_with_type(
    name: Optional[str], lines: List[str], model: Optional[SyntaxModel] = None, before_line: Optional[int] = None
) -> Optional[SymbolLocation]:
    """
    Finds the last script-level declaration or assignment of `name`, scanning
    bottom-up through increasingly permissive passes. With `before_line`, lines
    up to it are searched first and the whole file only when that finds nothing.
    """
    if not name or not lines:
        return None
    passes = variable_passes(lines, model)
    guard = passes[-1]
    limits = [len(lines) - 1]
    if before_line is not None and 0 <= before_line < len(lines) - 1:
        limits.insert(0, before_line)

    for last_line in limits:
        for variable_pass in passes:
            found = _bottom_up_scan(name, lines, variable_pass.accepts, last_line)
            if found is None:
                continue
            # a later match anywhere in the file wins over the pass result
            later = _bottom_up_scan(name, lines, guard.accepts, last_line)
            if later is not None and later.line > found.line:
                logger.debug("top-level %r: guard preferred line %d over %d", name, later.line, found.line)
                found = later
            logger.debug("top-level %r resolved by %s at %d:%d", name, variable_pass.tag, found.line, found.column)
            return found
    logger.debug("top-level %r not found by any pass", name)
    return None


def find_top_level_variable(
    name: Optional[str], lines: List[str], model: Optional[SyntaxModel] = None, before_line: Optional[int] = None
) -> Optional[SymbolLocation]:
    found = find_top_level_variable_with_type(name, lines, model, before_line)
    if found is not None:
        found.type_name = None
    return found


# --- Top-level classes and methods ---


def find_top_level_class_or_method(model: SyntaxModel, name: Optional[str], lines: List[str]) -> Optional[SymbolLocation]:
    """Exact match against classes, then their methods, then script-level methods."""
    if not name or model is None:
        return None
    for cls in model.classes:
        if cls.name == name:
            line = max(cls.line - 1, 0)
            return SymbolLocation(line=line, column=_column_of(lines, line, name), name=name, kind=KIND_CLASS)
        for method in cls.methods:
            if method.name == name:
                line = max(method.line - 1, 0)
                return SymbolLocation(line=line, column=_column_of(lines, line, name), name=name, kind=KIND_METHOD)
    for method in model.script_methods:
        if method.name == name:
            line = max(method.line - 1, 0)
            return SymbolLocation(line=line, column=_column_of(lines, line, name), name=name, kind=KIND_METHOD)
    return None


# --- Hierarchy search ---


def _kind_matches(kind: str, param_type: str) -> bool:
    if kind == param_type or param_type in GENERIC_PARAM_TYPES:
        return True
    if (kind == ARG_MAP and "Map" in param_type) or (kind == ARG_CLOSURE and "Closure" in param_type):
        return True
    return kind == ARG_STRING and param_type == "java.lang.String"


def score_overload(method: MethodNode, arg_kinds: List[str]) -> Tuple[int, bool]:
    """Returns (score, whether the argument count fits the overload's arity)."""
    params = method.parameters
    count = len(arg_kinds)
    maximum = method.max_arg_count
    arity_match = count >= method.required_arg_count and (maximum is None or count <= maximum)
    score = 0
    for param, kind in zip(params, arg_kinds):
        score += SCORE_KIND_MATCH if _kind_matches(kind, param.type_name or "Object") else SCORE_KIND_MISMATCH
        if kind == param.name:
            score += SCORE_NAME_MATCH
    if not arity_match:
        score -= SCORE_ARITY_PENALTY * abs(count - len(params))
    return score, arity_match


def select_overload(candidates: List[MethodNode], arg_kinds: Optional[List[str]]) -> Optional[MethodNode]:
    if not candidates:
        return None
    if not arg_kinds:
        return candidates[0]
    best: Optional[MethodNode] = None
    best_score = None
    for method in candidates:
        score, arity_match = score_overload(method, arg_kinds)
        logger.debug("overload %s%s scored %d (arity match: %s)",
                     method.name, [p.type_name for p in method.parameters], score, arity_match)
        if best_score is None or (score > best_score and (arity_match or best is None)):
            best, best_score = method, score
    return best


def find_member_in_hierarchy(
    model: SyntaxModel,
    cls: Optional[ClassNode],
    name: str,
    lines: List[str],
    mode: str = MODE_ANY,
    arg_kinds: Optional[List[str]] = None,
) -> Optional[SymbolLocation]:
    """
    Looks for a property, field or method called `name` in `cls` and then up
    its superclass chain. Superclass names are bound to classes declared in
    the same document; anything else ends the walk.
    """
    visited = set()
    current = cls
    while current is not None and len(visited) < MAX_HIERARCHY_DEPTH:
        key = current.qualified_name
        if key in visited:
            logger.debug("hierarchy cycle at %s", key)
            break
        visited.add(key)
        logger.debug("searching %s for %r (mode %s, args %s)", current.name, name, mode, arg_kinds)

        prop = next((p for p in current.properties if p.name == name), None)
        if prop is not None:
            line = max(prop.line - 1, 0)
            return SymbolLocation(
                line=line, column=_column_of(lines, line, name), name=name, kind=KIND_PROPERTY, type_name=prop.type_name
            )

        if mode in (MODE_ANY, MODE_PREFER_FIELD):
            found_field = next((f for f in current.fields if f.name == name), None)
            if found_field is not None:
                line = max(found_field.line - 1, 0)
                return SymbolLocation(
                    line=line,
                    column=_column_of(lines, line, name),
                    name=name,
                    kind=KIND_FIELD,
                    type_name=found_field.type_name,
                )

        if mode in (MODE_ANY, MODE_PREFER_METHOD):
            method = select_overload([m for m in current.methods if m.name == name], arg_kinds)
            if method is not None:
                line = max(method.line - 1, 0)
                return SymbolLocation(
                    line=line,
                    column=_column_of(lines, line, name),
                    name=name,
                    kind=KIND_METHOD,
                    type_name=method.return_type,
                )

        current = model.find_class(current.superclass) if current.superclass else None
    logger.debug("%r not found in hierarchy of %s", name, cls.name if cls is not None else None)
    return None
