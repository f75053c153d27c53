"""
Static configuration data for the Groovy/Jenkins language server.
This includes the reserved-word table, symbol kind tags, heuristic regex
sources, overload scoring weights and the tunable scan windows.
User-facing settings (loaded from `.jenkinslsp.json`) live in `jlsp.settings`.
"""

# Reserved words that never resolve to a definition.
GROOVY_KEYWORDS = frozenset(
    {
        "as",
        "assert",
        "break",
        "case",
        "catch",
        "class",
        "const",
        "continue",
        "def",
        "default",
        "do",
        "else",
        "enum",
        "extends",
        "false",
        "final",
        "finally",
        "for",
        "goto",
        "if",
        "implements",
        "import",
        "in",
        "instanceof",
        "interface",
        "new",
        "null",
        "package",
        "private",
        "protected",
        "public",
        "return",
        "static",
        "super",
        "switch",
        "this",
        "throw",
        "throws",
        "trait",
        "true",
        "try",
        "var",
        "void",
        "while",
    }
)

SELF_REFERENCE = "this"
CONSTRUCTOR_KEYWORD = "new"

# Type names the tree reports for `def` / untyped declarations.
DYNAMIC_TYPES = frozenset({"def", "Object", "java.lang.Object", "var"})
DEFAULT_DYNAMIC_TYPE = "def"
VOID_TYPE = "void"

# Name given to the synthetic class that owns script-level methods and @Field declarations.
SCRIPT_CLASS_NAME = "Script"
FIELD_ANNOTATION = "Field"

# --- Symbol kind tags (SymbolLocation.kind) ---
KIND_PARAM = "param"
KIND_LOCAL = "local"
KIND_FIELD = "field"
KIND_PROPERTY = "property"
KIND_METHOD = "method"
KIND_CLASS = "class"
KIND_MAP_KEY = "map-key"
KIND_PROPERTY_ASSIGNMENT = "property-assignment"
KIND_VARIABLE = "variable"
KIND_SCRIPT = "script"

# --- Hierarchy search modes ---
MODE_ANY = "any"
MODE_PREFER_FIELD = "preferField"
MODE_PREFER_METHOD = "preferMethod"

# --- Call argument kinds used for overload disambiguation ---
ARG_MAP = "Map"
ARG_CLOSURE = "Closure"
ARG_STRING = "String"
ARG_OBJECT = "Object"

# Overload scoring weights. Arity mismatch must dominate type mismatch.
SCORE_KIND_MATCH = 2
SCORE_NAME_MATCH = 1
SCORE_KIND_MISMATCH = -1
SCORE_ARITY_PENALTY = 10

# --- Tunable scan windows ---
MAP_KEY_SCAN_WINDOW = 200
MULTILINE_DECL_LOOKAHEAD = 3
MAX_RECOVERY_ATTEMPTS = 8
MAX_HIERARCHY_DEPTH = 64
VARS_SEARCH_DEPTH = 4

# Synthetic identifier appended to a trailing `obj.` so the parser still builds a tree.
TRAILING_DOT_STUB = "__LSP_STUB__"
TRAILING_DOT_ERROR_PREFIX = "unexpected token: ."

# --- Diagnostics ---
DIAGNOSTIC_SOURCE = "groovy-lsp"
SEVERITY_ERROR = 1
SEVERITY_WARNING = 2

# LSP CompletionItemKind values
COMPLETION_KIND_METHOD = 2
COMPLETION_KIND_FIELD = 5
COMPLETION_KIND_PROPERTY = 10
MAX_OVERLOADS_IN_DETAIL = 3

# --- Heuristic regex sources ---
IDENTIFIER_REGEX = r"[A-Za-z_][A-Za-z0-9_]*"
QUALIFIED_ACCESS_REGEX = r"(\b\w+)\s*\.\s*([A-Za-z_][A-Za-z0-9_]*)\b"
COMPLETION_TRIGGER_REGEX = r"(\b\w+)\.\s*([A-Za-z_][A-Za-z0-9_]*)?$"
GSTRING_VARIABLE_REGEX = r"\$[A-Za-z_][A-Za-z0-9_]*"
BARE_TYPE_LINE_REGEX = r"^([A-Z][A-Za-z0-9_]*)\s*[\\,]?$"

# Characters after which a `/` is a division operator rather than a slashy string.
DIVISION_PRECEDERS = frozenset(")]}\"'_")
