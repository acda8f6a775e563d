"""
RenderOps command line interface.

``renderops serve`` runs the API server. ``render`` and ``validate`` work on
UI tree files offline; ``render --server`` first loads the rows of one table
through a running server.
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any, List, Optional

from pydantic import ValidationError

from renderops_server import __version__
from renderops_server.errors import RenderOpsError
from renderops_server.ui import RemoteActionExecutor, UISession, parse_tree
from renderops_server.ui.catalog import validate_tree
from renderops_server.ui.paths import get_value_by_path


class CLIError(RenderOpsError):
    """Raised for invalid command input."""

    code = "CLI_ERROR"


def _load_json(path: str) -> Any:
    file_path = Path(path)
    if not file_path.exists():
        raise CLIError(f"File not found: {path}")
    try:
        return json.loads(file_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CLIError(f"Invalid JSON in {path}: {e}")


def _load_tree(path: str):
    try:
        return parse_tree(_load_json(path))
    except ValidationError as e:
        raise CLIError(f"Invalid UI tree in {path}", hint=str(e))


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "renderops_server.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
    return 0


def _render_session(args: argparse.Namespace, data: dict) -> UISession:
    if not args.server:
        return UISession(initial_data=data, is_authenticated=not args.signed_out)

    if not (args.connection and args.table and args.token):
        raise CLIError(
            "--server needs --connection, --table and an access token",
            hint="Pass --token or set RENDEROPS_TOKEN",
        )
    session = UISession.connect(
        RemoteActionExecutor(args.server, args.token),
        args.connection,
        args.table,
        initial_data=data,
        is_authenticated=not args.signed_out,
    )
    asyncio.run(session.dispatcher.execute_action({
        "name": "db_list",
        "params": {"page": 1, "limit": args.limit},
        "onError": {"set": {"/ui/errorMessage": "$error.message"}},
    }))
    error = get_value_by_path(session.snapshot(), "/ui/errorMessage")
    if error:
        raise CLIError(f"Failed to load {args.table} from {args.server}: {error}")
    return session


def cmd_render(args: argparse.Namespace) -> int:
    """Render a tree file and print the rendered nodes as JSON."""
    tree = _load_tree(args.tree)
    data = _load_json(args.data) if args.data else {}
    if not isinstance(data, dict):
        raise CLIError("Data file must contain a JSON object")

    session = _render_session(args, data)
    nodes = session.render(tree)
    output = {
        "nodes": [node.to_dict() for node in nodes],
        "diagnostics": [
            {"key": d.key, "type": d.type, "message": d.message}
            for d in session.diagnostics
        ],
    }
    print(json.dumps(output, indent=2, default=str))
    return 1 if session.diagnostics and args.strict else 0


def cmd_validate(args: argparse.Namespace) -> int:
    tree = _load_tree(args.tree)
    issues = validate_tree(tree)
    if not issues:
        print(f"✓ {args.tree} is valid")
        return 0

    for issue in issues:
        print(f"✗ {issue.location}: {issue.message}")
    print(f"{len(issues)} issue(s) found")
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="renderops",
        description="Generate, render and serve CRUD admin UIs",
    )
    parser.add_argument("--version", action="version", version=f"renderops {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    serve_parser.set_defaults(func=cmd_serve)

    render_parser = subparsers.add_parser("render", help="Render a UI tree file")
    render_parser.add_argument("tree", help="Path to the UI tree JSON")
    render_parser.add_argument("--data", help="Path to the data snapshot JSON")
    render_parser.add_argument("--signed-out", action="store_true", help="Render for a signed-out viewer")
    render_parser.add_argument("--strict", action="store_true", help="Exit 1 on unknown components")
    render_parser.add_argument("--server", help="RenderOps server URL to load live rows from")
    render_parser.add_argument("--connection", help="Connection id used with --server")
    render_parser.add_argument("--table", help="Table loaded into /data/items with --server")
    render_parser.add_argument("--limit", type=int, default=20, help="Rows to load with --server")
    render_parser.add_argument("--token", default=os.environ.get("RENDEROPS_TOKEN"), help="Access token for --server")
    render_parser.set_defaults(func=cmd_render)

    validate_parser = subparsers.add_parser("validate", help="Check a UI tree against the component catalog")
    validate_parser.add_argument("tree", help="Path to the UI tree JSON")
    validate_parser.set_defaults(func=cmd_validate)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except RenderOpsError as e:
        print(f"Error: {e.format()}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
