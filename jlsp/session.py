"""
Per-document state. A Session holds exactly one document version and the
parse of that version; every change replaces both. ServerState maps open
documents to their sessions and owns what is shared between them.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import unquote, urlparse

from .navigator import SymbolLocation
from .parser.diagnostics import check_qualified_arity
from .parser.model import Diagnostic, ParseResult, SyntaxModel
from .parser.parser import parse_groovy
from .settings import ServerSettings, load_settings
from .vars_index import VarsCache, VarsIndex

logger = logging.getLogger(__name__)


def uri_to_path(uri: Optional[str]) -> Optional[Path]:
    """Converts a file URI to a path. Other schemes have no path."""
    if not uri:
        return None
    parsed = urlparse(uri)
    if parsed.scheme not in ("", "file"):
        return None
    return Path(unquote(parsed.path))


class Session:
    def __init__(self, uri: str, text: str, version: Optional[int] = None, settings: Optional[ServerSettings] = None):
        self.uri = uri
        self.settings = settings or ServerSettings()
        self.version: Optional[int] = None
        self.result: ParseResult = None
        self.replace(text, version)

    def replace(self, text: str, version: Optional[int] = None):
        """Reparses from scratch; nothing of the previous version survives."""
        self.version = version
        self.result = parse_groovy(
            text or "",
            check_missing_return=self.settings.enable_missing_return_diagnostics,
            check_arity=self.settings.enable_arity_diagnostics,
        )
        logger.debug("session %s now at version %s", self.uri, version)

    @property
    def path(self) -> Optional[Path]:
        return uri_to_path(self.uri)

    @property
    def text(self) -> str:
        return self.result.source_text

    @property
    def lines(self) -> List[str]:
        return self.result.lines

    @property
    def model(self) -> SyntaxModel:
        return self.result.model

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return self.result.diagnostics

    def library_diagnostics(self, library: Optional[VarsIndex]) -> List[Diagnostic]:
        """Arity problems in `script.method(...)` calls into the library."""
        if library is None or self.result.has_syntax_errors or not self.settings.enable_arity_diagnostics:
            return []
        return check_qualified_arity(self.model, library.method_signatures)

    def location_uri(self, location: SymbolLocation) -> str:
        return location.uri or self.uri


class ServerState:
    """Open sessions plus the settings and library cache they share."""

    def __init__(self, init_options: Optional[Dict[str, Any]] = None, cwd: Optional[Path] = None):
        self.sessions: Dict[str, Session] = {}
        self.init_options: Dict[str, Any] = dict(init_options or {})
        self.cwd = cwd
        self.library_cache = VarsCache()

    def settings_for(self, uri: str) -> ServerSettings:
        return load_settings(uri_to_path(uri), self.cwd, self.init_options)

    def open(self, uri: str, text: str, version: Optional[int] = None) -> Session:
        session = Session(uri, text, version, self.settings_for(uri))
        self.sessions[uri] = session
        return session

    def change(self, uri: str, text: str, version: Optional[int] = None) -> Session:
        session = self.sessions.get(uri)
        if session is None:
            return self.open(uri, text, version)
        session.replace(text, version)
        return session

    def close(self, uri: str):
        self.sessions.pop(uri, None)

    def get(self, uri: str) -> Optional[Session]:
        return self.sessions.get(uri)

    def _open_documents(self) -> Dict[Path, str]:
        documents = {}
        for session in self.sessions.values():
            path = session.path
            if path is not None:
                documents[path.resolve()] = session.text
        return documents

    def library_for(self, session: Session) -> Optional[VarsIndex]:
        """The library index next to the session's document, if there is a library directory."""
        path = session.path
        if path is None:
            return None
        index = self.library_cache.index_for(
            path,
            self._open_documents(),
            session.settings.vars_directory_name,
            session.settings.vars_search_depth,
        )
        if index is not None:
            logger.debug("library %s: %d scripts", index.directory, len(index))
        return index
