"""
Token post-processing between the Lark lexer and the Earley parser.

Groovy terminates statements with newlines, except where the expression
obviously continues: inside parentheses or brackets, after a binary operator
or comma, or before a member access / `else` / `catch` / `finally`.
This post-lexer removes those newlines, turns statement-level `;` into a
newline and collapses runs of newlines into one.
"""

from typing import Iterator, List, Optional

from lark import Token
from lark.lark import PostLex

OPENERS = {"LPAR": "(", "LSQB": "[", "LBRACE": "{"}
CLOSERS = {"RPAR", "RSQB", "RBRACE"}

# A newline after one of these never ends a statement.
CONTINUATION_TYPES = frozenset(
    {
        "ASSIGN",
        "COLON",
        "QMARK",
        "COMMA",
        "DOT",
        "SAFE_DOT",
        "METHOD_PTR",
        "FIELD_DOT",
        "RANGE",
        "RANGE_EXCL",
        "ARROW",
        "PIPE",
        "AMP",
        "LPAR",
        "LSQB",
        "LBRACE",
    }
)
NON_CONTINUING_OPERATORS = frozenset({"++", "--"})

# A newline before one of these never ends a statement.
JOINING_TYPES = frozenset({"DOT", "SAFE_DOT", "METHOD_PTR", "FIELD_DOT", "RPAR", "RSQB", "RBRACE", "LBRACE"})
JOINING_KEYWORDS = frozenset({"else", "catch", "finally"})


class GroovyPostLex(PostLex):
    always_accept = ("_NL",)

    def process(self, stream: Iterator[Token]) -> Iterator[Token]:
        brackets: List[str] = []
        previous: Optional[Token] = None
        pending: Optional[Token] = None

        for token in stream:
            is_separator = token.type == "_NL" or (token.type == "SEMI" and (not brackets or brackets[-1] == "{"))
            if is_separator:
                if brackets and brackets[-1] in "([":
                    continue
                if previous is None or self._continues(previous):
                    continue
                if pending is None:
                    pending = Token.new_borrow_pos("_NL", "\n", token)
                continue

            if pending is not None:
                if not self._joins(token):
                    yield pending
                pending = None

            if token.type in OPENERS:
                brackets.append(OPENERS[token.type])
            elif token.type in CLOSERS and brackets:
                brackets.pop()

            yield token
            previous = token

    @staticmethod
    def _continues(token: Token) -> bool:
        if token.type in CONTINUATION_TYPES:
            return True
        return token.type == "OP" and token.value not in NON_CONTINUING_OPERATORS

    @staticmethod
    def _joins(token: Token) -> bool:
        if token.type in JOINING_TYPES:
            return True
        return token.value in JOINING_KEYWORDS and token.type not in ("LNAME", "UNAME")
