"""
Custom exception types for the Groovy language server.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):

    # --- Syntax Errors (produced by the parse pass) ---
    SYNTAX_UNEXPECTED_TOKEN = "unexpected token: {token}"
    SYNTAX_INVALID_CHARACTER = "unexpected character: {char}"
    SYNTAX_UNEXPECTED_EOF = "unexpected end of input"
    SYNTAX_PARSING_ERROR = "syntax error: {details}"

    # --- Semantic Diagnostics ---
    MISSING_RETURN = "Method '{name}' declares return type '{return_type}' but does not return anything"
    TOO_FEW_ARGUMENTS = "Method '{name}' requires at least {required} {noun} but {provided} {verb} provided"

    # --- Configuration ---
    INVALID_SETTINGS_FILE = "Invalid settings file '{path}': {details}"


class GroovyLspError(Exception):
    """
    An error tied to an optional 1-based source location.
    The message template comes from the ErrorCode and is populated with kwargs.
    """

    def __init__(
        self,
        code: ErrorCode,
        line: Optional[int] = None,
        column: Optional[int] = None,
        file_path: Optional[str] = None,
        **kwargs,
    ):
        self.code = code
        self.line = line
        self.column = column
        self.file_path = file_path
        self.details = kwargs

        self.message = code.value.format(**kwargs)

        location_prefix = ""
        if file_path and line is not None:
            location_prefix = f"{file_path}:{line}:{column or 1}: "
        elif file_path:
            location_prefix = f"{file_path}: "

        super().__init__(location_prefix + self.message)
