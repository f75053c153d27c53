from lark.exceptions import LarkError, UnexpectedCharacters, UnexpectedEOF, UnexpectedToken

from ..exceptions import ErrorCode, GroovyLspError

# A mapping from Lark's internal token names to friendly, human-readable names.
FRIENDLY_TOKEN_NAMES = {
    "UNAME": "a type name",
    "LNAME": "an identifier",
    "NUMBER": "a number",
    "DQ_STRING": "a string literal",
    "SQ_STRING": "a string literal",
    "TRIPLE_DQ": "a string literal",
    "TRIPLE_SQ": "a string literal",
    "DOLLAR_SLASHY": "a string literal",
    "LPAR": "an opening parenthesis '('",
    "RPAR": "a closing parenthesis ')'",
    "LSQB": "an opening bracket '['",
    "RSQB": "a closing bracket ']'",
    "LBRACE": "an opening brace '{'",
    "RBRACE": "a closing brace '}'",
    "COMMA": "a comma ','",
    "COLON": "a colon ':'",
    "ASSIGN": "an equals sign '='",
    "ARROW": "an arrow '->'",
    "DOT": "a dot '.'",
    "_NL": "a new line",
    "$END": "the end of the file",
}


def _token_text(token) -> str:
    """Renders an offending token the way it appears in the source."""
    if token.type == "_NL" or token.value == "\n":
        return "newline"
    if token.type == "$END":
        return "end of file"
    return str(token.value)


def _describe_expected(expected) -> str:
    friendly = sorted({FRIENDLY_TOKEN_NAMES.get(e, e) for e in expected or ()})
    if len(friendly) > 1:
        return f"one of: {', '.join(friendly[:-1])} or {friendly[-1]}"
    return friendly[0] if friendly else ""


def _translate_lark_error(err: LarkError) -> GroovyLspError:
    """Translates a generic LarkError into a GroovyLspError with a 1-based location."""

    if isinstance(err, UnexpectedEOF):
        return GroovyLspError(code=ErrorCode.SYNTAX_UNEXPECTED_EOF, expected=_describe_expected(err.expected))

    if isinstance(err, UnexpectedToken):
        found = err.token
        if found.type == "$END":
            return GroovyLspError(code=ErrorCode.SYNTAX_UNEXPECTED_EOF, expected=_describe_expected(err.expected))
        return GroovyLspError(
            code=ErrorCode.SYNTAX_UNEXPECTED_TOKEN,
            line=found.line,
            column=found.column,
            token=_token_text(found),
            expected=_describe_expected(err.expected),
        )

    if isinstance(err, UnexpectedCharacters):
        return GroovyLspError(code=ErrorCode.SYNTAX_INVALID_CHARACTER, line=err.line, column=err.column, char=err.char)

    # Fallback for any other Lark error
    line = getattr(err, "line", None)
    return GroovyLspError(
        code=ErrorCode.SYNTAX_PARSING_ERROR,
        line=line if isinstance(line, int) and line > 0 else None,
        details=str(err),
    )
