"""
pygls wiring. Handlers translate between protocol types (UTF-16 columns)
and the resolution modules (string indices); the handle_* functions hold
the logic so they can be called without a running server.
"""

import logging
from typing import List, Optional

from lsprotocol.types import (
    INITIALIZE,
    TEXT_DOCUMENT_COMPLETION,
    TEXT_DOCUMENT_DEFINITION,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    CompletionItem,
    CompletionItemKind,
    CompletionList,
    CompletionOptions,
    CompletionParams,
    DefinitionParams,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    InitializeParams,
    Location,
    Position,
    Range,
    TextDocumentSyncKind,
    TextEdit,
)
from pygls.server import LanguageServer

from . import __version__
from .completion import MemberCompletion, suggest
from .logging_setup import configure_logging
from .navigator import SymbolLocation
from .orchestrator import find_definition
from .parser.model import Diagnostic as GroovyDiagnostic
from .session import ServerState, Session
from .text_scanner import index_to_utf16, utf16_to_index

logger = logging.getLogger(__name__)


class GroovyLanguageServer(LanguageServer):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.state = ServerState()


server = GroovyLanguageServer("groovy-lsp", __version__, text_document_sync_kind=TextDocumentSyncKind.Full)


# --- Position conversion ---


def _line(lines: List[str], line: int) -> str:
    return lines[line] if 0 <= line < len(lines) else ""


def to_lsp_diagnostic(diagnostic: GroovyDiagnostic, lines: List[str]) -> Diagnostic:
    text = _line(lines, diagnostic.line)
    start = index_to_utf16(text, diagnostic.column)
    return Diagnostic(
        range=Range(
            start=Position(line=diagnostic.line, character=start),
            end=Position(line=diagnostic.line, character=start + diagnostic.length),
        ),
        message=diagnostic.message,
        severity=DiagnosticSeverity(diagnostic.severity),
        source=diagnostic.source,
    )


def to_lsp_location(session: Session, location: SymbolLocation) -> Location:
    # lines of other files are not at hand; their columns are used as they are
    if location.uri and location.uri != session.uri:
        start, end = location.column, location.end_column
    else:
        text = _line(session.lines, location.line)
        start = index_to_utf16(text, location.column)
        end = index_to_utf16(text, location.end_column)
    return Location(
        uri=session.location_uri(location),
        range=Range(start=Position(line=location.line, character=start), end=Position(line=location.line, character=end)),
    )


def to_lsp_completion(item: MemberCompletion, lines: List[str]) -> CompletionItem:
    text = _line(lines, item.line)
    start = index_to_utf16(text, max(0, item.start))
    end = index_to_utf16(text, max(item.start, item.end))
    return CompletionItem(
        label=item.label,
        kind=CompletionItemKind(item.kind),
        detail=item.detail,
        sort_text=item.sort_text,
        insert_text=item.insert_text,
        text_edit=TextEdit(
            range=Range(start=Position(line=item.line, character=start), end=Position(line=item.line, character=end)),
            new_text=item.insert_text,
        ),
    )


# --- Request logic ---


def document_diagnostics(state: ServerState, session: Session) -> List[Diagnostic]:
    found = list(session.diagnostics)
    try:
        found.extend(session.library_diagnostics(state.library_for(session)))
    except Exception:
        logger.exception("library arity check failed for %s", session.uri)
    found.sort(key=lambda d: (d.line, d.column))
    return [to_lsp_diagnostic(d, session.lines) for d in found]


def handle_definition(state: ServerState, uri: str, line: int, character: int) -> Optional[Location]:
    session = state.get(uri)
    if session is None:
        logger.debug("definition requested for unknown document %s", uri)
        return None
    try:
        column = utf16_to_index(_line(session.lines, line), character)
        location = find_definition(session, line, column, state.library_for(session))
        return to_lsp_location(session, location) if location is not None else None
    except Exception:
        logger.exception("definition request failed at %s:%d:%d", uri, line, character)
        return None


def handle_completion(state: ServerState, uri: str, line: int, character: int) -> CompletionList:
    session = state.get(uri)
    if session is None:
        return CompletionList(is_incomplete=False, items=[])
    try:
        column = utf16_to_index(_line(session.lines, line), character)
        items = suggest(session, line, column, state.library_for(session))
        return CompletionList(is_incomplete=False, items=[to_lsp_completion(i, session.lines) for i in items])
    except Exception:
        logger.exception("completion request failed at %s:%d:%d", uri, line, character)
        return CompletionList(is_incomplete=False, items=[])


# --- Protocol handlers ---


def _publish(ls: GroovyLanguageServer, session: Session):
    ls.publish_diagnostics(session.uri, document_diagnostics(ls.state, session), version=session.version)


@server.feature(INITIALIZE)
def initialize(ls: GroovyLanguageServer, params: InitializeParams):
    options = params.initialization_options
    if isinstance(options, dict):
        ls.state.init_options = dict(options)
        if "logLevel" in options or "log_level" in options:
            configure_logging(options.get("logLevel") or options.get("log_level"))
    logger.info("initialized (root %s)", params.root_uri)


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: GroovyLanguageServer, params: DidOpenTextDocumentParams):
    doc = params.text_document
    logger.debug("opened %s", doc.uri)
    _publish(ls, ls.state.open(doc.uri, doc.text, doc.version))


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: GroovyLanguageServer, params: DidChangeTextDocumentParams):
    uri = params.text_document.uri
    # full sync: the workspace copy is the whole new text
    text = ls.workspace.get_text_document(uri).source
    _publish(ls, ls.state.change(uri, text, params.text_document.version))


@server.feature(TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: GroovyLanguageServer, params: DidCloseTextDocumentParams):
    uri = params.text_document.uri
    ls.state.close(uri)
    ls.publish_diagnostics(uri, [])


@server.feature(TEXT_DOCUMENT_DEFINITION)
def definition(ls: GroovyLanguageServer, params: DefinitionParams):
    return handle_definition(ls.state, params.text_document.uri, params.position.line, params.position.character)


@server.feature(TEXT_DOCUMENT_COMPLETION, CompletionOptions(trigger_characters=["."]))
def completions(ls: GroovyLanguageServer, params: CompletionParams):
    return handle_completion(ls.state, params.text_document.uri, params.position.line, params.position.character)


def start_server(tcp: Optional[str] = None):
    if tcp:
        host, _, port = tcp.rpartition(":")
        server.start_tcp(host or "127.0.0.1", int(port))
    else:
        server.start_io()
