"""Route import resolution — turns ``"module:attribute"`` into a route tree.

Used by ``waypoint routes`` and ``waypoint match`` to find the route
configuration a user points at on the command line.
"""

import importlib

from waypoint.routing.route import RouteNode, create_routes


def resolve_routes(import_string: str) -> tuple[RouteNode, ...]:
    """Import a route configuration and normalize it with ``create_routes()``.

    ``"myapp.routing:tree"`` reads ``tree`` from ``myapp.routing``; a bare
    ``"myapp.routing"`` reads its ``routes`` attribute.  A callable that is
    not itself a ``RouteNode`` is treated as a factory and called with no
    arguments.

    Raises:
        ModuleNotFoundError: The module part does not import.
        AttributeError: The module has no such attribute.
        TypeError: The factory raised, or the object is not something
            ``create_routes()`` accepts.
    """
    module_path, _, attr_name = import_string.partition(":")
    target = getattr(importlib.import_module(module_path), attr_name or "routes")

    if callable(target) and not isinstance(target, RouteNode):
        try:
            target = target()
        except Exception as exc:
            msg = f"Route factory {import_string!r} failed: {exc}"
            raise TypeError(msg) from exc

    try:
        return create_routes(target)
    except Exception as exc:
        msg = f"{import_string!r} is not a route configuration: {exc}"
        raise TypeError(msg) from exc
