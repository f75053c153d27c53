"""
Member Resolver: `qualifier.member` at the cursor.

The qualifier's type is inferred from locals, fields, script-level variables
or a class name. A qualifier with a class type is searched through that
class hierarchy; anything dynamic goes through DYNAMIC_STRATEGIES, a fixed
list of textual heuristics tried in order. A qualified access found at the
cursor always answers with a MemberResolution, resolved or not, so callers
can tell "unresolved member" from "no member access here".
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Tuple

from .config import (
    DYNAMIC_TYPES,
    KIND_MAP_KEY,
    KIND_PROPERTY_ASSIGNMENT,
    MAP_KEY_SCAN_WINDOW,
    MODE_ANY,
    MODE_PREFER_FIELD,
    MODE_PREFER_METHOD,
    QUALIFIED_ACCESS_REGEX,
    SELF_REFERENCE,
)
from .navigator import (
    SymbolLocation,
    collect_local_variables,
    find_member_in_hierarchy,
    find_top_level_variable,
    find_top_level_variable_with_type,
)
from .parser.model import SyntaxModel
from .text_scanner import brace_depths, extract_call_arg_kinds

logger = logging.getLogger(__name__)

QUALIFIED_ACCESS_PATTERN = re.compile(QUALIFIED_ACCESS_REGEX)


class LibraryLookup(Protocol):
    """What the resolver needs from a cross-file script index."""

    def has_script(self, name: str) -> bool: ...

    def find_method(self, script: str, method: str) -> Optional[SymbolLocation]: ...

    def entry_point(self, name: str) -> Optional[SymbolLocation]: ...


@dataclass
class MemberResolution:
    """A qualified access found at the cursor. `location` is None when it could not be resolved."""

    matched: bool
    location: Optional[SymbolLocation] = None

    @property
    def found(self) -> bool:
        return self.location is not None


@dataclass
class QualifiedAccess:
    qualifier: str
    member: str
    member_start: int
    member_end: int
    is_method_call: bool


@dataclass
class DynamicContext:
    """Inputs shared by the dynamic strategies."""

    lines: List[str]
    model: Optional[SyntaxModel]
    qualifier: str
    member: str
    window: int = MAP_KEY_SCAN_WINDOW


def find_qualified_access(line_text: str, column: int) -> Optional[QualifiedAccess]:
    """
    The `qualifier.member` occurrence touching `column`: on the member name,
    exactly on the dot, or in the whitespace between the dot and the member.
    """
    for match in QUALIFIED_ACCESS_PATTERN.finditer(line_text or ""):
        member_start, member_end = match.start(2), match.end(2)
        dot = line_text.find(".", match.end(1))
        on_member = member_start <= column < member_end
        on_dot = dot >= 0 and column == dot
        after_dot = dot >= 0 and dot < column < member_start
        if not (on_member or on_dot or after_dot):
            continue
        rest = line_text[match.end():].lstrip()
        return QualifiedAccess(
            qualifier=match.group(1),
            member=match.group(2),
            member_start=member_start,
            member_end=member_end,
            is_method_call=rest.startswith("("),
        )
    return None


def constructed_type(lines: List[str], line: int, name: str) -> Optional[str]:
    """`TypeName` from a `name = new TypeName(` on the given line."""
    if not 0 <= line < len(lines):
        return None
    match = re.search(rf"{re.escape(name)}\s*=\s*new\s+(\w+)", lines[line] or "")
    return match.group(1) if match else None


def _is_dynamic(type_name: Optional[str]) -> bool:
    return type_name is None or type_name in DYNAMIC_TYPES


def infer_qualifier_type(model: SyntaxModel, lines: List[str], line: int, qualifier: str) -> Tuple[Optional[str], bool]:
    """
    Returns (type name, whether the qualifier is a known variable). Locals
    come first, then fields and properties of the enclosing class, then
    script-level variables; a dynamic type is refined from a `new` on the
    declaration line.
    """
    cls, method = model.find_context(line)
    local = collect_local_variables(method, lines, line).get(qualifier)
    if local is not None:
        type_name = local.type_name
        if _is_dynamic(type_name):
            type_name = constructed_type(lines, local.line, qualifier) or type_name
        return type_name, True

    member = find_member_in_hierarchy(model, cls, qualifier, lines, MODE_PREFER_FIELD)
    if member is not None:
        type_name = member.type_name
        if _is_dynamic(type_name):
            type_name = constructed_type(lines, member.line, qualifier) or type_name
        return type_name, True

    top = find_top_level_variable_with_type(qualifier, lines, model)
    if top is not None:
        return constructed_type(lines, top.line, qualifier) or top.type_name, True
    return None, False


# --- Dynamic strategies ---


def _key_before_colon(text: str, colon: int, key: str) -> Optional[int]:
    """Column of `key` when the token just before the colon at `colon` is that key, quoted or bare."""
    end = colon - 1
    while end >= 0 and text[end].isspace():
        end -= 1
    if end < 0:
        return None
    if text[end] in ("'", '"'):
        quote = text[end]
        start = end - 1
        while start >= 0 and text[start] != quote:
            start -= 1
        if start >= 0 and text[start + 1 : end].strip() == key:
            return start + 1
        return None
    start = end
    while start >= 0 and (text[start].isalnum() or text[start] in "_$"):
        start -= 1
    return start + 1 if text[start + 1 : end + 1] == key else None


def _line_start_key(text: str, key: str) -> Optional[int]:
    quoted = re.escape(key)
    bare = re.search(rf"(^\s*)({quoted})\s*:", text)
    if bare:
        return len(bare.group(1))
    quoted_key = re.search(rf"""(^\s*)["']({quoted})["']\s*:""", text)
    if quoted_key:
        return len(quoted_key.group(1)) + 1
    return None


def find_key_in_map_literal(lines: List[str], start_line: int, qualifier: str, key: str) -> Optional[Tuple[int, int]]:
    """
    From an assignment of `qualifier`, finds the `[` that opens the assigned
    literal and returns (line, column) of `key:` at the literal's top level.
    """
    if not lines:
        return None
    first = max(0, min(start_line, len(lines) - 1))
    standalone = re.search(rf"(^|\s){re.escape(qualifier)}\b", lines[first] or "")
    if standalone is None:
        return None

    eq_line, eq_col = -1, -1
    for index in range(first, len(lines)):
        text = lines[index] or ""
        equals = text.find("=", standalone.end() if index == first else 0)
        if equals >= 0:
            eq_line, eq_col = index, equals
            break
    if eq_line < 0:
        return None

    open_line, open_col = -1, -1
    for index in range(eq_line, len(lines)):
        text = lines[index] or ""
        start = eq_col + 1 if index == eq_line else 0
        bracket = text.find("[", start)
        if bracket >= 0:
            open_line, open_col = index, bracket
            break
        if index == eq_line and ";" in text[start:]:
            break
    if open_line < 0:
        logger.debug("map key: no literal assigned to %s after line %d", qualifier, eq_line)
        return None

    depth = 0
    started = False
    in_dq = in_sq = escape = False
    for row in range(open_line, len(lines)):
        text = lines[row] or ""
        line_start_checked = False
        for col in range(open_col if row == open_line else 0, len(text)):
            ch = text[col]
            if not escape and not in_sq and ch == '"':
                in_dq = not in_dq
                continue
            if not escape and not in_dq and ch == "'":
                in_sq = not in_sq
                continue
            escape = not escape and ch == "\\"
            if in_dq or in_sq:
                continue
            if ch == "[":
                depth += 1
                started = True
                continue
            if ch == "]":
                depth -= 1
                if started and depth <= 0:
                    return None
                continue
            if not started or depth != 1:
                continue
            if ch == ":":
                column = _key_before_colon(text, col, key)
                if column is not None:
                    return row, column
            if not line_start_checked:
                line_start_checked = True
                column = _line_start_key(text, key)
                if column is not None:
                    return row, column
    return None


def resolve_map_key(ctx: DynamicContext) -> Optional[SymbolLocation]:
    """`qualifier = [member: ...]`, preferring the script-level assignment."""
    hit = None
    top = find_top_level_variable(ctx.qualifier, ctx.lines, ctx.model)
    if top is not None:
        hit = find_key_in_map_literal(ctx.lines, top.line, ctx.qualifier, ctx.member)
    if hit is None:
        assignment = re.compile(rf"(^|\b){re.escape(ctx.qualifier)}\b\s*=(?![=~])")
        for index in range(len(ctx.lines) - 1, -1, -1):
            if assignment.search(ctx.lines[index] or ""):
                hit = find_key_in_map_literal(ctx.lines, index, ctx.qualifier, ctx.member)
                if hit is not None:
                    break
    if hit is None:
        return None
    return SymbolLocation(line=hit[0], column=hit[1], name=ctx.member, kind=KIND_MAP_KEY)


def resolve_property_assignment(ctx: DynamicContext) -> Optional[SymbolLocation]:
    """The last `qualifier.member = ...`, at brace depth 0 if there is one."""
    pattern = re.compile(
        rf"(^\s*)\b{re.escape(ctx.qualifier)}\b\s*\.\s*({re.escape(ctx.member)})\b\s*=(?![=~])"
    )
    depths = brace_depths(ctx.lines)
    for allow in (lambda index: depths[index] == 0, lambda index: True):
        for index in range(len(ctx.lines) - 1, -1, -1):
            match = pattern.search(ctx.lines[index] or "")
            if match and allow(index):
                return SymbolLocation(
                    line=index, column=match.start(2), name=ctx.member, kind=KIND_PROPERTY_ASSIGNMENT
                )
    return None


def resolve_relaxed_map_key(ctx: DynamicContext) -> Optional[SymbolLocation]:
    """A bare `member:` opening a line inside the first bracket region after the qualifier's declaration."""
    top = find_top_level_variable(ctx.qualifier, ctx.lines, ctx.model)
    if top is None:
        return None
    pattern = re.compile(rf"(^\s*)({re.escape(ctx.member)})\s*:")
    end = min(len(ctx.lines) - 1, top.line + ctx.window)
    depth = 0
    seen_bracket = False
    for row in range(max(0, top.line), end + 1):
        text = ctx.lines[row] or ""
        checked = False
        for ch in text:
            if ch == "[":
                depth += 1
                seen_bracket = True
            elif ch == "]":
                depth = max(0, depth - 1)
            # every bracket on the line is counted, the key pattern is tried once
            if seen_bracket and depth == 1 and not checked:
                checked = True
                match = pattern.search(text)
                if match:
                    return SymbolLocation(line=row, column=match.start(2), name=ctx.member, kind=KIND_MAP_KEY)
        if seen_bracket and depth == 0:
            break
    return None


DynamicStrategy = Callable[[DynamicContext], Optional[SymbolLocation]]

DYNAMIC_STRATEGIES: List[Tuple[str, DynamicStrategy]] = [
    ("map-literal key", resolve_map_key),
    ("property assignment", resolve_property_assignment),
    ("relaxed map key", resolve_relaxed_map_key),
]


# --- Entry point ---


def resolve_qualified_member(
    model: SyntaxModel,
    lines: List[str],
    line: int,
    column: int,
    window: int = MAP_KEY_SCAN_WINDOW,
    library: Optional[LibraryLookup] = None,
) -> Optional[MemberResolution]:
    """Returns None when there is no qualified access at the cursor."""
    line_text = lines[line] if 0 <= line < len(lines) else ""
    access = find_qualified_access(line_text, column)
    if access is None:
        return None
    qualifier, member = access.qualifier, access.member
    logger.debug("qualified access at cursor: %s.%s (call: %s)", qualifier, member, access.is_method_call)

    mode = MODE_PREFER_METHOD if access.is_method_call else MODE_ANY
    arg_kinds = extract_call_arg_kinds(line_text, access.member_end - 1) if access.is_method_call else None

    if qualifier == SELF_REFERENCE:
        # outside declared classes `this` is the script itself
        cls, _ = model.find_context(line)
        return MemberResolution(
            matched=True, location=find_member_in_hierarchy(model, cls, member, lines, mode, arg_kinds)
        )

    type_name, known = infer_qualifier_type(model, lines, line, qualifier)
    target = None
    if not _is_dynamic(type_name):
        target = model.find_class(type_name)
    elif not known:
        # static access through a class declared in this file
        target = model.find_class(qualifier)
    if target is not None:
        location = find_member_in_hierarchy(model, target, member, lines, mode, arg_kinds)
        if location is None:
            logger.debug("%s.%s not found in %s", qualifier, member, target.name)
        return MemberResolution(matched=True, location=location)

    if not known and library is not None and library.has_script(qualifier):
        location = library.find_method(qualifier, member)
        logger.debug("%s.%s resolved against library script: %s", qualifier, member, location)
        return MemberResolution(matched=True, location=location)

    ctx = DynamicContext(lines=lines, model=model, qualifier=qualifier, member=member, window=window)
    for name, strategy in DYNAMIC_STRATEGIES:
        location = strategy(ctx)
        if location is not None:
            logger.debug("%s.%s resolved by %s at %d:%d", qualifier, member, name, location.line, location.column)
            return MemberResolution(matched=True, location=location)
    logger.debug("dynamic resolution failed for %s.%s", qualifier, member)
    return MemberResolution(matched=True)
