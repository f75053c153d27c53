from .parser import parse_groovy, parse_groovy_strict
from .model import Diagnostic, ParseResult, SyntaxModel
