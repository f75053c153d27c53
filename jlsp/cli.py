import argparse
import json
import os
import sys
from pathlib import Path

from .completion import suggest
from .logging_setup import configure_logging
from .orchestrator import find_definition
from .session import ServerState
from .settings import load_settings


def _load_session(state: ServerState, file_path: str):
    path = Path(os.path.abspath(file_path))
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return state.open(path.as_uri(), text)


def _check(args) -> int:
    state = ServerState()
    session = _load_session(state, args.file)
    diagnostics = list(session.diagnostics)
    diagnostics.extend(session.library_diagnostics(state.library_for(session)))
    diagnostics.sort(key=lambda d: (d.line, d.column))
    for d in diagnostics:
        print(f"{args.file}:{d.line + 1}:{d.column + 1}: {d.message}")
    return 1 if diagnostics else 0


def _definition(args) -> int:
    state = ServerState()
    session = _load_session(state, args.file)
    location = find_definition(session, args.line, args.column, state.library_for(session))
    result = None
    if location is not None:
        result = location.to_dict()
        result["uri"] = session.location_uri(location)
    print(json.dumps(result, indent=2))
    return 0


def _complete(args) -> int:
    state = ServerState()
    session = _load_session(state, args.file)
    items = suggest(session, args.line, args.column, state.library_for(session))
    print(json.dumps([item.to_dict() for item in items], indent=2))
    return 0


def _serve(args) -> int:
    # imported here so the offline commands do not need a protocol stack
    from .server import start_server

    start_server(args.tcp)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jlsp", description="Language server for Jenkins pipeline Groovy scripts.")
    parser.add_argument("--log-level", default=None, help="Log level for stderr output (DEBUG, INFO, WARNING, ERROR).")
    subparsers = parser.add_subparsers(dest="command")

    serve = subparsers.add_parser("serve", help="Run the language server (the default).")
    serve.add_argument("--tcp", metavar="HOST:PORT", default=None, help="Listen on TCP instead of stdio.")
    serve.set_defaults(func=_serve)

    check = subparsers.add_parser("check", help="Print the diagnostics of a script.")
    check.add_argument("file")
    check.set_defaults(func=_check)

    for name, func, help_text in (
        ("definition", _definition, "Print the definition of the symbol at a 0-based position as JSON."),
        ("complete", _complete, "Print completion items for a 0-based position as JSON."),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("file")
        sub.add_argument("line", type=int)
        sub.add_argument("column", type=int)
        sub.set_defaults(func=func)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        args.command = "serve"
        args.tcp = None
        args.func = _serve

    document = getattr(args, "file", None)
    level = args.log_level or load_settings(os.path.abspath(document) if document else None).log_level
    configure_logging(level)

    try:
        sys.exit(args.func(args))
    except FileNotFoundError:
        print(f"ERROR: Script file '{document}' not found.", file=sys.stderr)
        sys.exit(1)
    except UnicodeDecodeError as e:
        print(f"ERROR: Script file '{document}' is not valid UTF-8: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
