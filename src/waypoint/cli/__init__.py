"""Waypoint CLI — inspect route trees and resolve paths offline.

Entry point registered as ``waypoint`` in ``pyproject.toml``::

    [project.scripts]
    waypoint = "waypoint.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``waypoint`` command."""
    parser = argparse.ArgumentParser(
        prog="waypoint",
        description="Waypoint — route resolution for nested, lazily loaded route trees.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- waypoint routes --------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="Print a route tree")
    routes_parser.add_argument(
        "routes",
        help="Import string (e.g. myapp.routing:routes)",
    )

    # -- waypoint match ---------------------------------------------------
    match_parser = subparsers.add_parser("match", help="Resolve paths against a route tree")
    match_parser.add_argument(
        "routes",
        help="Import string (e.g. myapp.routing:routes)",
    )
    match_parser.add_argument("paths", nargs="+", help="Paths to resolve (e.g. /users/42)")
    match_parser.add_argument(
        "--basename",
        default="",
        help="Prefix stripped from each path before matching",
    )
    match_parser.add_argument(
        "--case-sensitive",
        action="store_true",
        help="Match path patterns case-sensitively",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from waypoint.cli._routes import run_routes

        run_routes(args)
    elif args.command == "match":
        from waypoint.cli._match import run_match

        run_match(args)
