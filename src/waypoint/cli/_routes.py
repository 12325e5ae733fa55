"""``waypoint routes`` — print a route tree.

One line per node, indented by depth, with the node's pattern, variant,
and name.  Deferred children are shown only once they have been loaded.
"""

import argparse
import sys

from waypoint.cli._resolve import resolve_routes
from waypoint.routing.route import RouteNode


def format_tree(routes: tuple[RouteNode, ...], depth: int = 0) -> list[str]:
    """Render *routes* as indented lines."""
    lines: list[str] = []
    for route in routes:
        path = route.path if route.path is not None else "(pathless)"
        label = f"  [{route.name}]" if route.name else ""
        lines.append(f"{'  ' * depth}{path}  <{route.kind.value}>{label}")

        index = route.materialized_index
        if index is not None:
            lines.append(f"{'  ' * (depth + 1)}(index)  <{index.kind.value}>")

        children = route.materialized_children
        if children:
            lines.extend(format_tree(children, depth + 1))
        elif route.get_child_routes is not None:
            lines.append(f"{'  ' * (depth + 1)}…  (not loaded)")
    return lines


def run_routes(args: argparse.Namespace) -> None:
    try:
        routes = resolve_routes(args.routes)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if not routes:
        print("No routes configured.")
        return

    for line in format_tree(routes):
        print(line)
