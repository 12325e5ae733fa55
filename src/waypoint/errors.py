"""Waypoint exception hierarchy.

Shared across the matcher, resolver, transition pipeline, and router so
every module raises and catches the same types.

No-match is deliberately absent: a location that no branch covers is a
normal outcome and is reported as ``None``, not raised.
"""

from typing import Any


class WaypointError(Exception):
    """Base for all waypoint-specific errors."""


class ConfigurationError(WaypointError):
    """Raised when a route configuration or path pattern is invalid.

    Typically raised while building routes with ``create_routes()`` or
    compiling a pattern for the first time.
    """


class ResolutionError(WaypointError):
    """A deferred capability reported failure.

    Raised when ``get_child_routes``, ``get_index_route``,
    ``get_component`` or ``get_components`` raises or completes with an
    error.  Aborts the transition that requested the load; the previously
    committed state stays in place.

    Attributes:
        route: The route node whose loader failed.
        capability: Name of the failing loader (e.g. ``"get_component"``).
        cause: The original error, when there is one.
    """

    def __init__(self, route: Any, capability: str, cause: BaseException | None = None) -> None:
        self.route = route
        self.capability = capability
        self.cause = cause
        label = getattr(route, "label", repr(route))
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{capability} failed for route {label}{detail}")


class HookError(WaypointError):
    """An ``on_enter`` or ``on_change`` hook raised or reported an error."""

    def __init__(self, route: Any, hook: str, cause: BaseException) -> None:
        self.route = route
        self.hook = hook
        self.cause = cause
        label = getattr(route, "label", repr(route))
        super().__init__(f"{hook} hook failed for route {label}: {cause}")


class RedirectLoop(WaypointError):  # noqa: N818
    """Chained redirects exceeded ``RouterConfig.max_redirects``.

    Fatal for the navigation that started the chain; the previously
    committed state is retained.
    """

    def __init__(self, limit: int, path: str) -> None:
        self.limit = limit
        self.path = path
        super().__init__(
            f"Exceeded {limit} chained redirects while navigating (last target {path!r}). "
            "Check on_enter/on_change hooks for a redirect cycle."
        )
