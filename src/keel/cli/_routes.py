"""``keel routes`` — list registered routes.

Resolves an import string to a keel App and prints every route with its
methods, uri, action and middleware, in registration order.
"""

import argparse
import sys
from typing import Any

from keel.cli._resolve import resolve_app


def describe_action(action: Any) -> str:
    """Readable name for a route action or middleware entry."""
    if isinstance(action, str):
        return action
    if isinstance(action, (tuple, list)) and len(action) == 2:
        return f"{describe_action(action[0])}.{action[1]}"
    return getattr(action, "__qualname__", None) or type(action).__qualname__


def run_routes(args: argparse.Namespace) -> None:
    """List registered routes for a keel app."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    routes = app.router.routes
    if not routes:
        print("No routes registered.")
        return

    # Build rows: (methods, uri, action, middleware)
    rows: list[tuple[str, str, str, str]] = []
    for route in routes:
        action = describe_action(route.action)
        if route.name:
            action = f"{action} ({route.name})"
        middleware = ", ".join(describe_action(m) for m in route.middleware)
        rows.append((", ".join(sorted(route.methods)), route.uri, action, middleware))

    widths = [
        max(len("METHOD"), *(len(r[0]) for r in rows)),
        max(len("URI"), *(len(r[1]) for r in rows)),
        max(len("ACTION"), *(len(r[2]) for r in rows)),
    ]
    fmt = f"{{:<{widths[0]}}}  {{:<{widths[1]}}}  {{:<{widths[2]}}}  {{}}"
    print(fmt.format("METHOD", "URI", "ACTION", "MIDDLEWARE").rstrip())
    print("-" * min(sum(widths) + 16, 100))
    for row in rows:
        print(fmt.format(*row).rstrip())
