"""
Index of the scripts in a shared-library `vars/` directory.

Each `vars/<name>.groovy` becomes a global step called `<name>`: calling
`name(...)` runs its `call` method and `name.helper(...)` runs one of its
script methods. The index records, per script, where those live.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .config import KIND_METHOD, KIND_SCRIPT, VARS_SEARCH_DEPTH
from .navigator import SymbolLocation, find_top_level_class_or_method
from .parser.classes import MethodNode
from .parser.parser import parse_groovy
from .text_scanner import smart_var_column, split_lines

logger = logging.getLogger(__name__)

ENTRY_POINT_METHOD = "call"
SCRIPT_SUFFIX = ".groovy"


@dataclass
class ScriptSymbols:
    """What one library script exposes. Locations carry the script's uri."""

    name: str
    path: Path
    uri: str
    entry_point: SymbolLocation
    methods: Dict[str, SymbolLocation] = field(default_factory=dict)
    signatures: Dict[str, List[MethodNode]] = field(default_factory=dict)


def find_vars_directory(
    document_path: Optional[Path], directory_name: str = "vars", max_depth: int = VARS_SEARCH_DEPTH
) -> Optional[Path]:
    """
    The document's own directory when it is a library directory, else the
    nearest library directory next to the document or one of its ancestors.
    """
    if document_path is None:
        return None
    current = Path(document_path).resolve().parent
    if current.name == directory_name:
        return current
    for _ in range(max_depth + 1):
        candidate = current / directory_name
        if candidate.is_dir():
            return candidate
        if current.parent == current:
            break
        current = current.parent
    return None


def _entry_point(name: str, model, lines: List[str], uri: str) -> SymbolLocation:
    found = find_top_level_class_or_method(model, ENTRY_POINT_METHOD, lines)
    if found is not None:
        found.uri = uri
        return found
    for index, text in enumerate(lines):
        if text.strip():
            column = max(0, text.find(text.strip()))
            return SymbolLocation(line=index, column=column, name=name, kind=KIND_SCRIPT, uri=uri)
    return SymbolLocation(line=0, column=0, name=name, kind=KIND_SCRIPT, uri=uri)


def index_script(path: Path, text: str) -> ScriptSymbols:
    """Parses one library script and collects its entry point and script methods."""
    name = path.stem
    uri = path.resolve().as_uri()
    result = parse_groovy(text, check_missing_return=False, check_arity=False)
    lines = split_lines(text)

    methods: Dict[str, SymbolLocation] = {}
    signatures: Dict[str, List[MethodNode]] = {}
    for method in result.model.script_methods:
        line = max(method.line - 1, 0)
        column = max(smart_var_column(lines, line, method.name), 0)
        # the first overload is the one a bare `script.method` reference lands on
        methods.setdefault(
            method.name,
            SymbolLocation(line=line, column=column, name=method.name, kind=KIND_METHOD, type_name=method.return_type, uri=uri),
        )
        signatures.setdefault(method.name, []).append(method)

    return ScriptSymbols(
        name=name,
        path=path,
        uri=uri,
        entry_point=_entry_point(name, result.model, lines, uri),
        methods=methods,
        signatures=signatures,
    )


class VarsIndex:
    """Lookups over the scripts of one library directory."""

    def __init__(self, directory: Path, scripts: Dict[str, ScriptSymbols]):
        self.directory = directory
        self.scripts = scripts

    def __len__(self) -> int:
        return len(self.scripts)

    def has_script(self, name: str) -> bool:
        return bool(name) and name in self.scripts

    def script(self, name: str) -> Optional[ScriptSymbols]:
        return self.scripts.get(name)

    def entry_point(self, name: str) -> Optional[SymbolLocation]:
        script = self.scripts.get(name)
        return script.entry_point if script else None

    def find_method(self, script: str, method: str) -> Optional[SymbolLocation]:
        symbols = self.scripts.get(script)
        if symbols is None:
            return None
        return symbols.methods.get(method)

    def method_signatures(self, script: str) -> Optional[List[MethodNode]]:
        symbols = self.scripts.get(script)
        if symbols is None:
            return None
        return [m for overloads in symbols.signatures.values() for m in overloads]


class VarsCache:
    """
    Parsed library scripts. A script is reparsed only when its stamp changes:
    (mtime, size) on disk, or the editor text for an open document. A whole
    index is reused while none of its scripts' stamps changed.
    """

    def __init__(self):
        self._entries: Dict[Path, Tuple[Any, ScriptSymbols]] = {}
        self._indexes: Dict[Path, Tuple[Tuple, VarsIndex]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self):
        self._entries.clear()
        self._indexes.clear()

    def _symbols(self, path: Path, stamp: Any, open_text: Optional[str]) -> ScriptSymbols:
        cached = self._entries.get(path)
        if cached is not None and cached[0] == stamp:
            return cached[1]
        text = open_text if open_text is not None else path.read_text(encoding="utf-8")
        symbols = index_script(path, text)
        self._entries[path] = (stamp, symbols)
        logger.debug("indexed library script %s: %d methods", path.name, len(symbols.methods))
        return symbols

    def build(self, directory: Path, open_documents: Optional[Dict[Path, str]] = None) -> VarsIndex:
        """
        Indexes every script of `directory`. Scripts open in the editor are
        indexed from `open_documents` (resolved path -> text) instead of disk.
        """
        open_documents = open_documents or {}
        directory = Path(directory).resolve()
        try:
            candidates = sorted(p for p in directory.iterdir() if p.is_file() and p.name.lower().endswith(SCRIPT_SUFFIX))
        except OSError as e:
            logger.warning("cannot list library directory %s: %s", directory, e)
            return VarsIndex(directory, {})

        stamps: Dict[Path, Any] = {}
        for path in candidates:
            resolved = path.resolve()
            if resolved in open_documents:
                stamps[resolved] = ("open", open_documents[resolved])
                continue
            try:
                stat = resolved.stat()
            except OSError as e:
                logger.warning("failed to index library script %s: %s", path.name, e)
                continue
            stamps[resolved] = (stat.st_mtime, stat.st_size)

        signature = tuple(stamps.items())
        cached = self._indexes.get(directory)
        if cached is not None and cached[0] == signature:
            return cached[1]

        # scripts deleted from this directory leave the cache
        for path in [p for p in self._entries if p.parent == directory and p not in stamps]:
            del self._entries[path]

        scripts: Dict[str, ScriptSymbols] = {}
        for path, stamp in stamps.items():
            try:
                symbols = self._symbols(path, stamp, open_documents.get(path))
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("failed to index library script %s: %s", path.name, e)
                continue
            scripts[symbols.name] = symbols
        index = VarsIndex(directory, scripts)
        self._indexes[directory] = (signature, index)
        return index

    def index_for(
        self,
        document_path: Optional[Path],
        open_documents: Optional[Dict[Path, str]] = None,
        directory_name: str = "vars",
        max_depth: int = VARS_SEARCH_DEPTH,
    ) -> Optional[VarsIndex]:
        directory = find_vars_directory(document_path, directory_name, max_depth)
        if directory is None:
            return None
        return self.build(directory, open_documents)
