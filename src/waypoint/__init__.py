"""Waypoint — route resolution for nested, lazily loaded route trees.

Turns a location into the ordered branch of matching routes, their path
parameters, and their view components, running enter/change/leave hooks
and honoring redirects along the way.

Basic usage::

    from waypoint import MemoryHistory, Router, create_routes

    routes = create_routes({
        "path": "/",
        "component": App,
        "child_routes": [
            {"path": "users/:id", "component": User},
        ],
    })

    router = Router(routes, MemoryHistory(["/users/42"]))
    state = await router.start()
    state.params  # {"id": "42"}

One-shot resolution without a router::

    from waypoint import match
    outcome = await match(routes, "/users/42")
"""

__version__ = "0.1.0"

# Public name -> defining module, resolved on first access
_LAZY_IMPORTS: dict[str, str] = {
    "Action": "waypoint.location",
    "ConfigurationError": "waypoint.errors",
    "DefaultQueryCodec": "waypoint.query",
    "HookError": "waypoint.errors",
    "Location": "waypoint.location",
    "LocationSource": "waypoint.history",
    "MatchOutcome": "waypoint.matching",
    "MatchResult": "waypoint.routing.route",
    "MemoryHistory": "waypoint.history",
    "QueryCodec": "waypoint.query",
    "RedirectLoop": "waypoint.errors",
    "ResolutionError": "waypoint.errors",
    "RouteNode": "waypoint.routing.route",
    "Router": "waypoint.router",
    "RouterConfig": "waypoint.config",
    "RouterState": "waypoint.state",
    "Transition": "waypoint.transition",
    "TransitionPhase": "waypoint.transition",
    "WaypointError": "waypoint.errors",
    "create_location": "waypoint.location",
    "create_path": "waypoint.location",
    "create_routes": "waypoint.routing.route",
    "format_pattern": "waypoint.routing.pattern",
    "index_redirect": "waypoint.routing.route",
    "match": "waypoint.matching",
    "match_routes": "waypoint.routing.matcher",
    "redirect": "waypoint.routing.route",
    "resolve_branch": "waypoint.routing.branch",
    "resolve_node": "waypoint.routing.resolver",
}

__all__ = sorted(_LAZY_IMPORTS)


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import waypoint`` fast while providing a clean top-level API.
    """
    module_path = _LAZY_IMPORTS.get(name)
    if module_path is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_path), name)
