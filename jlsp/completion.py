"""
Qualified-member completion: `qualifier.` or `qualifier.pre` before the cursor.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .config import (
    COMPLETION_KIND_FIELD,
    COMPLETION_KIND_METHOD,
    COMPLETION_KIND_PROPERTY,
    COMPLETION_TRIGGER_REGEX,
    DEFAULT_DYNAMIC_TYPE,
    MAX_HIERARCHY_DEPTH,
    MAX_OVERLOADS_IN_DETAIL,
    SELF_REFERENCE,
)
from .member_resolver import infer_qualifier_type
from .parser.classes import ClassNode, MethodNode
from .session import Session
from .text_scanner import (
    is_in_line_comment,
    is_inside_double_quoted_string,
    is_inside_interpolation_placeholder,
)
from .vars_index import VarsIndex

logger = logging.getLogger(__name__)

COMPLETION_TRIGGER_PATTERN = re.compile(COMPLETION_TRIGGER_REGEX)


@dataclass
class MemberCompletion:
    """One suggestion. `start`/`end` delimit the typed prefix it replaces on `line`."""

    label: str
    kind: int
    detail: str
    line: int
    start: int
    end: int
    insert_text: str

    @property
    def sort_text(self) -> str:
        return "%02d_%s" % (self.kind, self.label)

    def to_dict(self) -> dict:
        start = max(0, self.start)
        return {
            "label": self.label,
            "kind": self.kind,
            "detail": self.detail,
            "sortText": self.sort_text,
            "insertText": self.insert_text,
            "textEdit": {
                "range": {
                    "start": {"line": self.line, "character": start},
                    "end": {"line": self.line, "character": max(start, self.end)},
                },
                "newText": self.insert_text,
            },
        }


def _simple_name(type_name: Optional[str]) -> str:
    if not type_name:
        return DEFAULT_DYNAMIC_TYPE
    return type_name.split("<", 1)[0].split(".")[-1]


def method_detail(owner: str, overloads: List[MethodNode]) -> str:
    """`Owner#name (T, T) : R | (T) : R`, listing at most a few overloads."""
    if not overloads:
        return f"{owner} method"
    shown = overloads[:MAX_OVERLOADS_IN_DETAIL]
    parts = []
    for method in shown:
        params = ", ".join(_simple_name(p.type_name) for p in method.parameters)
        parts.append(f"({params}) : {_simple_name(method.return_type)}")
    extra = f" +{len(overloads) - len(shown)} overloads" if len(overloads) > len(shown) else ""
    return f"{owner}#{overloads[0].name} {' | '.join(parts)}{extra}"


def _group_by_name(methods: List[MethodNode], prefix: str) -> Dict[str, List[MethodNode]]:
    grouped: Dict[str, List[MethodNode]] = {}
    for method in methods:
        if method.name and method.name.lower().startswith(prefix):
            grouped.setdefault(method.name, []).append(method)
    return grouped


def _class_members(session: Session, target: ClassNode, prefix: str, line: int, start: int, end: int) -> List[MemberCompletion]:
    items: List[MemberCompletion] = []
    seen = set()
    visited = set()
    current: Optional[ClassNode] = target
    while current is not None and current.qualified_name not in visited and len(visited) < MAX_HIERARCHY_DEPTH:
        visited.add(current.qualified_name)
        logger.debug("completion: scanning %s (prefix %r)", current.name, prefix)

        for name, overloads in _group_by_name(current.methods, prefix).items():
            if name in seen:
                continue
            seen.add(name)
            items.append(
                MemberCompletion(f"{name}()", COMPLETION_KIND_METHOD, method_detail(current.name, overloads), line, start, end, name)
            )

        for prop in current.properties:
            if prop.name in seen or not prop.name.lower().startswith(prefix):
                continue
            seen.add(prop.name)
            items.append(
                MemberCompletion(prop.name, COMPLETION_KIND_PROPERTY, f"{current.name} property", line, start, end, prop.name)
            )

        for found_field in current.fields:
            if found_field.name in seen or not found_field.name.lower().startswith(prefix):
                continue
            seen.add(found_field.name)
            detail = f"{current.name} field : {_simple_name(found_field.type_name)}"
            items.append(MemberCompletion(found_field.name, COMPLETION_KIND_FIELD, detail, line, start, end, found_field.name))

        current = session.model.find_class(current.superclass) if current.superclass else None
    return items


def _library_members(library: VarsIndex, script: str, prefix: str, line: int, start: int, end: int) -> List[MemberCompletion]:
    symbols = library.script(script)
    if symbols is None:
        return []
    items = []
    for name, overloads in symbols.signatures.items():
        if not name.lower().startswith(prefix):
            continue
        items.append(MemberCompletion(f"{name}()", COMPLETION_KIND_METHOD, method_detail(script, overloads), line, start, end, name))
    return items


def _target_class(session: Session, line: int, qualifier: str) -> Tuple[Optional[ClassNode], bool]:
    """The class whose members to offer, and whether the qualifier is a known variable."""
    model = session.model
    if qualifier == SELF_REFERENCE:
        cls, _ = model.find_context(line)
        return cls, True
    type_name, known = infer_qualifier_type(model, session.lines, line, qualifier)
    target = model.find_class(type_name) if type_name else None
    if target is None:
        target = model.find_class(qualifier)
        if target is not None:
            logger.debug("completion: qualifier %r is a class name", qualifier)
    return target, known


def suggest(session: Session, line: int, column: int, library: Optional[VarsIndex] = None) -> List[MemberCompletion]:
    """Suggestions for the member being typed at a 0-based (line, column); empty when there is no qualifier."""
    lines = session.lines
    if not 0 <= line < len(lines):
        return []
    line_text = lines[line] or ""
    column = max(0, min(column, len(line_text)))
    if is_in_line_comment(line_text, column):
        return []
    if is_inside_double_quoted_string(line_text, column) and not is_inside_interpolation_placeholder(line_text, column):
        return []

    match = COMPLETION_TRIGGER_PATTERN.search(line_text[:column])
    if match is None:
        return []
    qualifier = match.group(1)
    prefix = match.group(2) or ""
    start, end = column - len(prefix), column
    logger.debug("completion on %r with prefix %r at %d:%d", qualifier, prefix, line, column)

    target, known = _target_class(session, line, qualifier)
    if target is not None:
        items = _class_members(session, target, prefix.lower(), line, start, end)
    elif not known and library is not None and library.has_script(qualifier):
        items = _library_members(library, qualifier, prefix.lower(), line, start, end)
    else:
        logger.debug("completion: could not infer a class for %r", qualifier)
        items = []
    logger.debug("completion: %d items for %r", len(items), qualifier)
    return items
