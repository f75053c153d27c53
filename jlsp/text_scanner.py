"""
Purely lexical helpers: brace depth, string/interpolation detection, keyword
checks, column estimation and call-argument kind extraction.

Nothing in this module needs a parsed tree, and nothing here raises on
malformed input: out-of-range positions and unterminated literals degrade to
"not found" (False, None, -1 or an empty list).
"""

import logging
import re
from typing import List, Optional, Tuple

from .config import (
    ARG_CLOSURE,
    ARG_MAP,
    ARG_OBJECT,
    ARG_STRING,
    DIVISION_PRECEDERS,
    GROOVY_KEYWORDS,
    GSTRING_VARIABLE_REGEX,
    MULTILINE_DECL_LOOKAHEAD,
)

logger = logging.getLogger(__name__)

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
GSTRING_VARIABLE_PATTERN = re.compile(GSTRING_VARIABLE_REGEX)
MAP_ENTRY_PATTERN = re.compile(r"^\s*\w+\s*:")
QUOTED_STRING_PATTERN = re.compile(r""""(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*'""")
TRAILING_CLOSURE_PATTERN = re.compile(r"\)\s*\{")

LINE_SPLIT_PATTERN = re.compile(r"\r\n|\r|\n")


def split_lines(text: str) -> List[str]:
    """Splits on the same line terminators the protocol counts (\\n, \\r\\n, \\r)."""
    if not text:
        return [""]
    return LINE_SPLIT_PATTERN.split(text)


def is_groovy_keyword(word: Optional[str]) -> bool:
    return bool(word) and word in GROOVY_KEYWORDS


def is_identifier(word: Optional[str]) -> bool:
    return bool(word) and IDENTIFIER_PATTERN.match(word) is not None


def _line_at(lines: List[str], line: int) -> str:
    if 0 <= line < len(lines):
        return lines[line] or ""
    return ""


# --- Column estimation ---


def smart_var_column(lines: List[str], line: int, name: Optional[str]) -> int:
    """
    Estimates the column of a declared name on a line: `def name`, then
    `Type name`, then `Type<...> name`, then the first plain occurrence.
    Returns -1 when the name does not appear on the line at all.
    """
    if name is None:
        return 0
    text = _line_at(lines, line)
    quoted = re.escape(name)
    patterns = (
        rf"\bdef\s+{quoted}\b",
        rf"\b\w+\s+{quoted}\b",
        rf"\b\w+\s*<.*?>\s+{quoted}\b",
    )
    for pattern in patterns:
        match = re.search(pattern, text)
        if match:
            return match.start() + match.group(0).rfind(name)
    return text.find(name)


def scan_multiline_var(lines: List[str], start_line: int, name: str) -> Optional[Tuple[int, int]]:
    """
    Looks a few lines below `start_line` for `name` starting a line, the
    shape of a split `Type \\n name = ...` declaration. Returns (line, column).
    """
    pattern = re.compile(rf"(^\s*){re.escape(name)}\b")
    end = min(len(lines), start_line + 1 + MULTILINE_DECL_LOOKAHEAD)
    for index in range(max(start_line + 1, 0), end):
        text = lines[index]
        if not text:
            continue
        match = pattern.search(text)
        if match:
            return index, match.start(0) + len(match.group(1))
    return None


# --- String and interpolation detection ---


def string_quote_at(line: Optional[str], pos: int) -> Optional[str]:
    """Returns the quote character of the single-line string literal containing `pos`, if any."""
    if not line:
        return None
    quote = None
    escape = False
    for ch in line[: max(0, min(pos, len(line)))]:
        if escape:
            escape = False
            continue
        if ch == "\\" and quote is not None:
            escape = True
            continue
        if quote is None and ch in ("'", '"'):
            quote = ch
        elif ch == quote:
            quote = None
    return quote


def is_inside_double_quoted_string(line: Optional[str], pos: int) -> bool:
    """Toggles on every unescaped double quote up to `pos`."""
    if not line:
        return False
    inside = False
    escape = False
    for ch in line[: max(0, min(pos, len(line)))]:
        if escape:
            escape = False
            continue
        if ch == "\\":
            escape = True
            continue
        if ch == '"':
            inside = not inside
    return inside


def is_inside_string(line: Optional[str], pos: int) -> bool:
    return string_quote_at(line, pos) is not None


def is_inside_interpolation_placeholder(line: Optional[str], pos: int) -> bool:
    """True when `pos` sits strictly between a `${` and the next `}`."""
    if line is None or pos < 0:
        return False
    opening = line.rfind("${", 0, min(pos, len(line)) + 2)
    if opening < 0:
        return False
    closing = line.find("}", opening)
    if closing < 0:
        return False
    return opening < pos < closing


def interpolated_var_at(line: Optional[str], pos: int) -> Optional[str]:
    """
    Returns `name` for a bare `$name` interpolation covering `pos`. The `$`
    itself counts as a hit; the position right after the name does not.
    """
    if line is None:
        return None
    for match in GSTRING_VARIABLE_PATTERN.finditer(line):
        start, end = match.start(), match.end()
        if pos == end:
            continue
        if start <= pos < end:
            return line[start + 1 : end]
    return None


def line_comment_start(line: Optional[str]) -> int:
    """Index of a `//` that starts a comment (outside quotes), or -1."""
    if not line:
        return -1
    quote = None
    escape = False
    for index, ch in enumerate(line):
        if escape:
            escape = False
            continue
        if quote is not None:
            if ch == "\\":
                escape = True
            elif ch == quote:
                quote = None
            continue
        if ch in ("'", '"'):
            quote = ch
        elif ch == "/" and line.startswith("//", index):
            return index
    return -1


def is_in_line_comment(line: Optional[str], pos: int) -> bool:
    start = line_comment_start(line)
    return 0 <= start <= pos


# --- Call argument kinds ---


def extract_call_arg_kinds(line: Optional[str], call_name_last_index: int) -> List[str]:
    """
    Classifies the arguments of the call whose name ends at `call_name_last_index`.
    Named `key: value` entries collapse into one leading Map, positional
    closures and quoted strings are recognised, anything else is Object, and
    a closure after the closing parenthesis appends a trailing Closure.
    """
    kinds: List[str] = []
    if line is None:
        return kinds
    index = max(0, min(call_name_last_index + 1, len(line)))
    after_call = line[index:]
    paren = after_call.find("(")
    if paren < 0:
        return kinds
    args_text = after_call[paren + 1 :]
    has_trailing_closure = ") {" in args_text or TRAILING_CLOSURE_PATTERN.search(line) is not None
    closing = args_text.find(")")
    if closing < 0:
        closing = len(args_text)

    saw_map = False
    for raw in args_text[:closing].split(","):
        part = raw.strip()
        if not part:
            continue
        if MAP_ENTRY_PATTERN.search(part):
            saw_map = True
            continue
        if "{" in part:
            kinds.append(ARG_CLOSURE)
            continue
        if QUOTED_STRING_PATTERN.search(part):
            kinds.append(ARG_STRING)
            continue
        kinds.append(ARG_OBJECT)

    if saw_map:
        kinds.insert(0, ARG_MAP)
    if has_trailing_closure:
        kinds.append(ARG_CLOSURE)
    logger.debug("call arg kinds %s from %r at %d", kinds, line, call_name_last_index)
    return kinds


# --- Brace depth ---


class LexicalScanner:
    """
    Walks lines in order, carrying string and comment state across line
    boundaries, and keeps the `{`/`}` depth of code outside literals.
    """

    def __init__(self):
        self.depth = 0
        self.mode: Optional[str] = None
        self.escape = False

    def scan_line(self, line: str) -> List[Tuple[int, int]]:
        """
        Consumes one line. Returns the (start, end) inclusive spans of slashy
        strings that both open and close on this line.
        """
        slashy_spans: List[Tuple[int, int]] = []
        slashy_start: Optional[int] = None
        length = len(line)
        j = 0
        while j < length:
            ch = line[j]
            n1 = line[j + 1] if j + 1 < length else ""
            n2 = line[j + 2] if j + 2 < length else ""
            mode = self.mode

            if mode == "block_comment":
                if ch == "*" and n1 == "/":
                    self.mode = None
                    j += 1
                j += 1
                continue
            if mode == "dollar_slashy":
                if ch == "/" and n1 == "$":
                    self.mode = None
                    j += 1
                j += 1
                continue
            if mode == "slashy":
                if not self.escape and ch == "/":
                    self.mode = None
                    if slashy_start is not None:
                        slashy_spans.append((slashy_start, j))
                        slashy_start = None
                else:
                    self.escape = not self.escape and ch == "\\"
                j += 1
                continue
            if mode == "triple_dq":
                if ch == '"' and n1 == '"' and n2 == '"':
                    self.mode = None
                    j += 2
                j += 1
                continue
            if mode == "triple_sq":
                if ch == "'" and n1 == "'" and n2 == "'":
                    self.mode = None
                    j += 2
                j += 1
                continue
            if mode in ("dq", "sq"):
                quote = '"' if mode == "dq" else "'"
                if not self.escape and ch == quote:
                    self.mode = None
                self.escape = not self.escape and ch == "\\"
                j += 1
                continue

            if ch == "/" and n1 == "/":
                break
            if ch == "/" and n1 == "*":
                self.mode = "block_comment"
                j += 2
                continue
            if ch == "$" and n1 == "/":
                self.mode = "dollar_slashy"
                j += 2
                continue
            if ch == '"' and n1 == '"' and n2 == '"':
                self.mode = "triple_dq"
                j += 3
                continue
            if ch == "'" and n1 == "'" and n2 == "'":
                self.mode = "triple_sq"
                j += 3
                continue
            if ch == "/" and not self._looks_like_division(line, j):
                self.mode = "slashy"
                slashy_start = j
                j += 1
                continue
            if ch == '"':
                self.mode = "dq"
                self.escape = False
            elif ch == "'":
                self.mode = "sq"
                self.escape = False
            elif ch == "{":
                self.depth += 1
            elif ch == "}":
                self.depth = max(0, self.depth - 1)
            j += 1
        return slashy_spans

    @staticmethod
    def _looks_like_division(line: str, index: int) -> bool:
        p = index - 1
        while p >= 0 and line[p].isspace():
            p -= 1
        if p < 0:
            return False
        prev = line[p]
        return prev.isalnum() or prev in DIVISION_PRECEDERS


def brace_depths(lines: Optional[List[str]]) -> List[int]:
    """Brace depth at the start of every line, ignoring braces inside literals and comments."""
    scanner = LexicalScanner()
    depths = []
    for line in lines or []:
        depths.append(max(scanner.depth, 0))
        scanner.scan_line(line or "")
    logger.debug("brace depths computed for %d lines", len(depths))
    return depths


def final_brace_depth(lines: Optional[List[str]]) -> int:
    scanner = LexicalScanner()
    for line in lines or []:
        scanner.scan_line(line or "")
    return scanner.depth


def block_comment_lines(lines: List[str]) -> List[bool]:
    """For every line, whether it starts inside a `/* ... */` comment."""
    scanner = LexicalScanner()
    starts = []
    for line in lines:
        starts.append(scanner.mode == "block_comment")
        scanner.scan_line(line or "")
    return starts


def mask_for_parser(text: str) -> str:
    """
    Rewrites lexically awkward constructs into same-length equivalents the
    grammar understands: a `#!` first line becomes blank and single-line
    slashy regex literals become double-quoted strings.
    """
    lines = text.split("\n")
    if lines and lines[0].startswith("#!"):
        lines[0] = " " * len(lines[0])
    scanner = LexicalScanner()
    for index, line in enumerate(lines):
        spans = scanner.scan_line(line)
        if not spans:
            continue
        chars = list(line)
        for start, end in spans:
            chars[start] = '"'
            chars[end] = '"'
            for k in range(start + 1, end):
                chars[k] = "_"
        lines[index] = "".join(chars)
    return "\n".join(lines)


# --- UTF-16 position conversion ---


def utf16_to_index(line: str, units: int) -> int:
    """Converts a UTF-16 code-unit offset on `line` to a Python string index."""
    if units <= 0:
        return 0
    consumed = 0
    for index, ch in enumerate(line):
        if consumed >= units:
            return index
        consumed += 2 if ord(ch) > 0xFFFF else 1
    return len(line)


def index_to_utf16(line: str, index: int) -> int:
    """Converts a Python string index on `line` to a UTF-16 code-unit offset."""
    index = max(0, min(index, len(line)))
    return sum(2 if ord(ch) > 0xFFFF else 1 for ch in line[:index])
