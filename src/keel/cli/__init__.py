"""Keel CLI — route listing and configuration inspection.

Entry point registered as ``keel`` in ``pyproject.toml``::

    [project.scripts]
    keel = "keel.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``keel`` command."""
    parser = argparse.ArgumentParser(
        prog="keel",
        description="Keel — routing, dependency injection, queries and validation.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- keel routes ------------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List registered routes")
    routes_parser.add_argument(
        "app",
        help="Import string (e.g. myapp:app)",
    )

    # -- keel config ------------------------------------------------------
    subparsers.add_parser("config", help="Show configuration read from the environment")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from keel.cli._routes import run_routes

        run_routes(args)
    elif args.command == "config":
        from keel.cli._config import run_config

        run_config(args)
