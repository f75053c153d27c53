"""
Resolution Orchestrator: one go-to-definition request, from cursor to location.

The order of the steps below decides which of several same-named symbols
wins, so it is kept in one function and read top to bottom:

  1. comments and plain string literals give nothing; a bare `$name` inside
     a double-quoted string is looked up as `name`
  2. a `qualifier.member` at the cursor is answered by the member resolver,
     resolved or not, and nothing else is tried
  3. the identifier at the cursor is looked up in locals, then as a call on
     the enclosing class, then as any member of it
  4. top-level variables and top-level classes/methods, in an order decided
     by whether the identifier reads like a type
  5. a bare call to a library script
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from .config import CONSTRUCTOR_KEYWORD, MODE_ANY, MODE_PREFER_METHOD
from .member_resolver import LibraryLookup, resolve_qualified_member
from .navigator import (
    SymbolLocation,
    collect_local_variables,
    find_member_in_hierarchy,
    find_top_level_class_or_method,
    find_top_level_variable,
)
from .session import Session
from .text_scanner import (
    extract_call_arg_kinds,
    interpolated_var_at,
    is_groovy_keyword,
    is_identifier,
    is_in_line_comment,
    is_inside_double_quoted_string,
    is_inside_interpolation_placeholder,
    string_quote_at,
)

logger = logging.getLogger(__name__)

WORD_PATTERN = re.compile(r"\b\w+\b")
LEFT_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
TYPE_CONTEXT_WORDS = frozenset({"as", "extends", "implements"})


@dataclass
class WordAtCursor:
    text: str
    start: int
    end: int


@dataclass
class CursorContext:
    """What surrounds the identifier on its line."""

    prev_word: Optional[str]
    prev_char: str
    next_char: str
    preceded_by_new: bool
    is_unqualified_call: bool


def word_at(line_text: str, column: int, forced: Optional[str] = None) -> Optional[WordAtCursor]:
    """
    The identifier touching `column`. On a `.` with no identifier under the
    cursor, the identifier ending right at the dot is used. A `forced` word
    comes from a `$name` interpolation and is located after its `$`.
    """
    if forced:
        for match in re.finditer(rf"\${re.escape(forced)}\b", line_text):
            if match.start() <= column < match.end():
                return WordAtCursor(forced, match.start() + 1, match.end())
        match = re.search(rf"\${re.escape(forced)}\b", line_text)
        if match:
            return WordAtCursor(forced, match.start() + 1, match.end())
        return WordAtCursor(forced, -1, -1)

    for match in WORD_PATTERN.finditer(line_text):
        if match.start() <= column < match.end():
            return WordAtCursor(match.group(), match.start(), match.end())

    if column < len(line_text) and line_text[column] == ".":
        found = None
        for match in LEFT_IDENTIFIER_PATTERN.finditer(line_text):
            if match.end() == column:
                found = WordAtCursor(match.group(), match.start(), match.end())
        if found is not None:
            logger.debug("cursor on '.', using the qualifier %r", found.text)
        return found
    return None


def cursor_context(line_text: str, word: WordAtCursor) -> CursorContext:
    prev_word = None
    prev_char = ""
    if word.start > 0:
        index = word.start - 1
        while index >= 0 and line_text[index].isspace():
            index -= 1
        if index >= 0:
            prev_char = line_text[index]
            end = index
            while index >= 0 and (line_text[index].isalnum() or line_text[index] in "_$"):
                index -= 1
            if index < end:
                prev_word = line_text[index + 1 : end + 1]

    after = max(0, word.end)
    while after < len(line_text) and line_text[after].isspace():
        after += 1
    next_char = line_text[after] if after < len(line_text) else ""

    preceded_by_new = prev_word == CONSTRUCTOR_KEYWORD
    next_is_paren = 0 <= word.end < len(line_text) and line_text[word.end] == "("
    return CursorContext(
        prev_word=prev_word,
        prev_char=prev_char,
        next_char=next_char,
        preceded_by_new=preceded_by_new,
        is_unqualified_call=next_is_paren and not preceded_by_new,
    )


def _looks_like_type(session: Session, word: str, ctx: CursorContext) -> bool:
    class_exists = any(cls.name == word for cls in session.model.classes)
    return (
        ctx.preceded_by_new
        or ctx.prev_word in TYPE_CONTEXT_WORDS
        or ctx.prev_char == "("
        or ctx.next_char == "."
        or (class_exists and word[:1].isupper())
    )


def _is_bare_step_call(line_text: str, word: WordAtCursor) -> bool:
    """`name(...)`, `name {` or `name "..."`: the shapes a library step is invoked with."""
    rest = line_text[word.end:]
    stripped = rest.lstrip()
    if not stripped:
        return False
    if rest.startswith("(") or stripped.startswith("{"):
        return True
    return rest[:1].isspace() and stripped[:1] in ("'", '"')


def _enclosing_construct_line(session: Session, line: int) -> int:
    """0-based first line of the class or script method around `line`, else `line` itself."""
    cls = session.model.find_enclosing_class(line)
    if cls is not None:
        return max(cls.span.s_line - 1, 0)
    method = session.model.find_enclosing_top_level_method(line)
    if method is not None:
        return max(method.span.s_line - 1, 0)
    return line


def find_definition(
    session: Session, line: int, column: int, library: Optional[LibraryLookup] = None
) -> Optional[SymbolLocation]:
    """
    Resolves the symbol at a 0-based (line, column); columns are string
    indices. Returns None when there is nothing to jump to.
    """
    lines = session.lines
    if not 0 <= line < len(lines):
        logger.debug("line %d is outside the document", line)
        return None
    line_text = lines[line] or ""
    column = max(0, min(column, len(line_text)))
    model = session.model

    if is_in_line_comment(line_text, column):
        logger.debug("cursor is inside a line comment")
        return None

    forced = None
    if is_inside_double_quoted_string(line_text, column) and not is_inside_interpolation_placeholder(line_text, column):
        forced = interpolated_var_at(line_text, column)
        if forced is None:
            logger.debug("cursor is inside a string literal with no $name under it")
            return None
        logger.debug("treating '$%s' as the identifier at the cursor", forced)
    elif string_quote_at(line_text, column) == "'":
        logger.debug("cursor is inside a single-quoted string")
        return None

    if forced is None:
        resolution = resolve_qualified_member(
            model, lines, line, column, session.settings.map_key_scan_window, library
        )
        if resolution is not None:
            if resolution.location is None:
                logger.debug("qualified access at cursor is unresolved; no fallback")
            return resolution.location

    word = word_at(line_text, column, forced)
    if word is None:
        logger.debug("no identifier at %d:%d", line, column)
        return None
    if is_groovy_keyword(word.text) or not is_identifier(word.text):
        logger.debug("%r is a keyword or not an identifier", word.text)
        return None
    name = word.text
    logger.debug("looking for the definition of %r at %d:%d", name, line, column)

    context_class, context_method = model.find_context(line)
    local = collect_local_variables(context_method, lines, line).get(name)
    if local is not None:
        logger.debug("%r is a %s at %d:%d", name, local.kind, local.line, local.column)
        return local

    ctx = cursor_context(line_text, word)
    if ctx.is_unqualified_call:
        arg_kinds = extract_call_arg_kinds(line_text, word.end - 1)
        found = find_member_in_hierarchy(model, context_class, name, lines, MODE_PREFER_METHOD, arg_kinds)
        if found is not None:
            logger.debug("unqualified call %r%s resolved to %d:%d", name, arg_kinds, found.line, found.column)
            return found

    found = find_member_in_hierarchy(model, context_class, name, lines, MODE_ANY)
    if found is not None:
        return found

    before_line = _enclosing_construct_line(session, line)
    if not ctx.is_unqualified_call and not _looks_like_type(session, name, ctx):
        found = find_top_level_variable(name, lines, model, before_line)
        if found is not None:
            return found

    found = find_top_level_class_or_method(model, name, lines)
    if found is not None:
        return found

    found = find_top_level_variable(name, lines, model, before_line)
    if found is not None:
        return found

    if library is not None and library.has_script(name) and _is_bare_step_call(line_text, word):
        entry = library.entry_point(name)
        if entry is not None:
            logger.debug("%r is a library step, entry point %s:%d", name, entry.uri, entry.line)
            return entry

    logger.debug("no definition found for %r", name)
    return None
