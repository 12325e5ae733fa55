"""Route configuration nodes and normalization.

A route tree is built once from static configuration (``RouteNode``
instances, plain mappings, or nested sequences of either) and is then
immutable, except that each deferred capability resolves exactly once and
is cached on its node for the lifetime of the process.
"""

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from enum import Enum, StrEnum
from typing import Any

from waypoint._internal.types import Component, Hook, Loader
from waypoint.errors import ConfigurationError
from waypoint.routing.pattern import compile_pattern, format_pattern


class Capability(StrEnum):
    """A deferred field of a route node, named after its loader attribute."""

    CHILD_ROUTES = "get_child_routes"
    INDEX_ROUTE = "get_index_route"
    COMPONENT = "get_component"
    COMPONENTS = "get_components"


class RouteKind(Enum):
    """Variant of a route node, by what it needs before it can be matched."""

    STATIC_LEAF = "static-leaf"
    STATIC_LAYOUT = "static-layout"
    DEFERRED_CHILDREN = "deferred-children"
    DEFERRED_INDEX = "deferred-index"
    DEFERRED_COMPONENT = "deferred-component"


class DeferredCache:
    """Per-node memo of deferred loads.

    ``values`` holds resolved results (write-once per capability);
    ``pending`` holds the in-flight load so concurrent requests share it.
    """

    __slots__ = ("pending", "values")

    def __init__(self) -> None:
        self.pending: dict[Capability, asyncio.Future[Any]] = {}
        self.values: dict[Capability, Any] = {}

    def __repr__(self) -> str:
        return f"DeferredCache(resolved={sorted(self.values)}, pending={sorted(self.pending)})"


# Mapping keys people carry over from the JavaScript spelling
_CAMEL_CASE_HINTS: dict[str, str] = {
    "childRoutes": "child_routes",
    "indexRoute": "index_route",
    "getChildRoutes": "get_child_routes",
    "getIndexRoute": "get_index_route",
    "getComponent": "get_component",
    "getComponents": "get_components",
    "onEnter": "on_enter",
    "onChange": "on_change",
    "onLeave": "on_leave",
}


@dataclass(frozen=True, slots=True, eq=False)
class RouteNode:
    """A node in the route configuration tree.

    Route nodes compare and hash by identity: the transition pipeline and
    ``is_active`` decide membership of a branch by node, never by path.

    Attributes:
        path: Pattern matched against the pathname.  Relative to the
            parent unless it starts with ``/``.  ``None`` makes the node a
            pathless layout that only matches through its children.
        component: Single view component.
        components: Named view components.
        index_route: Child rendered when this node matches exactly.
        child_routes: Static children, tried in order.
        get_index_route: Deferred ``index_route``.
        get_child_routes: Deferred ``child_routes``.
        get_component: Deferred ``component``.
        get_components: Deferred ``components``.
        on_enter: ``on_enter(next_state, replace[, callback])``.
        on_change: ``on_change(prev_state, next_state, replace[, callback])``.
        on_leave: ``on_leave(prev_state)``.
        name: Optional label used in logs and CLI output.
        meta: Free-form data for the rendering collaborator.
    """

    path: str | None = None
    component: Component = None
    components: Mapping[str, Component] | None = None
    index_route: "RouteNode | None" = None
    child_routes: tuple["RouteNode", ...] | None = None
    get_index_route: Loader | None = None
    get_child_routes: Loader | None = None
    get_component: Loader | None = None
    get_components: Loader | None = None
    on_enter: Hook | None = None
    on_change: Hook | None = None
    on_leave: Hook | None = None
    name: str | None = None
    meta: Mapping[str, Any] = field(default_factory=dict)
    deferred: DeferredCache = field(default_factory=DeferredCache, init=False, repr=False)

    def __post_init__(self) -> None:
        for static, loader in (
            ("component", "get_component"),
            ("components", "get_components"),
            ("index_route", "get_index_route"),
            ("child_routes", "get_child_routes"),
        ):
            if getattr(self, static) is not None and getattr(self, loader) is not None:
                msg = f"Route {self.label} sets both {static!r} and {loader!r}; pick one."
                raise ConfigurationError(msg)

        has_single = self.component is not None or self.get_component is not None
        has_named = self.components is not None or self.get_components is not None
        if has_single and has_named:
            msg = f"Route {self.label} declares both a single component and named components."
            raise ConfigurationError(msg)

        for attr in (
            "get_index_route", "get_child_routes", "get_component", "get_components",
            "on_enter", "on_change", "on_leave",
        ):
            value = getattr(self, attr)
            if value is not None and not callable(value):
                msg = f"Route {self.label}: {attr} must be callable, got {type(value).__name__}"
                raise ConfigurationError(msg)

        if self.path is not None:
            compile_pattern(self.path)

        if self.child_routes is not None:
            object.__setattr__(self, "child_routes", create_routes(self.child_routes))

        if self.index_route is not None and not isinstance(self.index_route, RouteNode):
            object.__setattr__(self, "index_route", _create_single(self.index_route))

    @property
    def label(self) -> str:
        """Human-readable identification for logs and errors."""
        if self.name:
            return repr(self.name)
        if self.path is not None:
            return repr(self.path)
        return "<pathless>"

    @property
    def capabilities(self) -> frozenset[Capability]:
        """Deferred capabilities this node declares."""
        return frozenset(cap for cap in Capability if getattr(self, cap.value) is not None)

    @property
    def kind(self) -> RouteKind:
        """Classify the node into one of the route variants."""
        caps = self.capabilities
        if Capability.CHILD_ROUTES in caps:
            return RouteKind.DEFERRED_CHILDREN
        if Capability.INDEX_ROUTE in caps:
            return RouteKind.DEFERRED_INDEX
        if Capability.COMPONENT in caps or Capability.COMPONENTS in caps:
            return RouteKind.DEFERRED_COMPONENT
        if self.child_routes is not None or self.index_route is not None:
            return RouteKind.STATIC_LAYOUT
        return RouteKind.STATIC_LEAF

    @property
    def materialized_children(self) -> tuple["RouteNode", ...] | None:
        """Static children, or deferred children that already resolved."""
        if self.child_routes is not None:
            return self.child_routes
        return self.deferred.values.get(Capability.CHILD_ROUTES)

    @property
    def materialized_index(self) -> "RouteNode | None":
        """Static index route, or a deferred one that already resolved."""
        if self.index_route is not None:
            return self.index_route
        return self.deferred.values.get(Capability.INDEX_ROUTE)

    @property
    def has_children(self) -> bool:
        return self.child_routes is not None or self.get_child_routes is not None


_ROUTE_FIELDS = frozenset(f.name for f in fields(RouteNode) if f.init)


def _create_single(config: Any) -> RouteNode:
    if isinstance(config, RouteNode):
        return config
    if not isinstance(config, Mapping):
        msg = f"Cannot build a route from {type(config).__name__}: {config!r}"
        raise ConfigurationError(msg)

    unknown = set(config) - _ROUTE_FIELDS
    if unknown:
        hints = [
            f"{key!r} (did you mean {_CAMEL_CASE_HINTS[key]!r}?)"
            for key in sorted(unknown)
            if key in _CAMEL_CASE_HINTS
        ]
        others = [repr(key) for key in sorted(unknown) if key not in _CAMEL_CASE_HINTS]
        msg = f"Unknown route keys: {', '.join(hints + others)}"
        raise ConfigurationError(msg)

    return RouteNode(**config)


def create_routes(config: Any) -> tuple[RouteNode, ...]:
    """Normalize route configuration into a tuple of ``RouteNode``.

    Accepts a ``RouteNode``, a mapping of ``RouteNode`` fields, or any
    (nested) iterable of those.  Mappings may nest ``child_routes`` and
    ``index_route`` as mappings too.  ``None`` yields an empty tuple.

    Raises:
        ConfigurationError: For unknown keys, contradictory fields, or
            invalid path patterns.
    """
    if config is None:
        return ()
    if isinstance(config, (RouteNode, Mapping)):
        return (_create_single(config),)
    if isinstance(config, (str, bytes)) or not isinstance(config, Iterable):
        msg = f"Cannot build routes from {type(config).__name__}: {config!r}"
        raise ConfigurationError(msg)

    routes: list[RouteNode] = []
    for item in config:
        routes.extend(create_routes(item))
    return tuple(routes)


# ---------------------------------------------------------------------------
# Redirect routes
# ---------------------------------------------------------------------------

def get_route_pattern(routes: tuple[RouteNode, ...], route_index: int) -> str:
    """Join the patterns of ``routes[:route_index + 1]`` up to the nearest absolute one."""
    pattern = ""
    for i in range(route_index, -1, -1):
        path = routes[i].path
        if not path:
            continue
        pattern = path.rstrip("/") + "/" + pattern
        if path.startswith("/"):
            break
    return "/" + pattern.lstrip("/")


def _redirect_target(
    route: RouteNode,
    to: str,
    next_state: Any,
    query: Mapping[str, Any] | None,
    state: Any,
) -> dict[str, Any]:
    location = next_state.location
    params = next_state.params

    if to.startswith("/"):
        pathname = format_pattern(to, params)
    elif not to:
        pathname = location.pathname
    else:
        route_index = next_state.routes.index(route)
        parent_pattern = get_route_pattern(next_state.routes, route_index - 1)
        pathname = format_pattern(parent_pattern.rstrip("/") + "/" + to, params)

    return {
        "pathname": pathname,
        "query": query if query is not None else location.query,
        "state": state if state is not None else location.state,
    }


def redirect(
    from_path: str,
    to: str,
    *,
    query: Mapping[str, Any] | None = None,
    state: Any = None,
    name: str | None = None,
) -> RouteNode:
    """Build a route that redirects *from_path* to *to* on enter.

    *to* may reference params captured by *from_path* (``"/users/:id"``).
    A relative *to* is resolved against the parent route's pattern.  The
    current query and state carry over unless *query* / *state* are given.
    """

    def on_enter(next_state: Any, replace: Any) -> None:
        replace(_redirect_target(route, to, next_state, query, state))

    route = RouteNode(path=from_path, on_enter=on_enter, name=name, meta={"redirect_to": to})
    return route


def index_redirect(
    to: str,
    *,
    query: Mapping[str, Any] | None = None,
    state: Any = None,
    name: str | None = None,
) -> RouteNode:
    """Build an index route that redirects to *to* when its parent matches exactly."""

    def on_enter(next_state: Any, replace: Any) -> None:
        replace(_redirect_target(route, to, next_state, query, state))

    route = RouteNode(on_enter=on_enter, name=name, meta={"redirect_to": to})
    return route


# ---------------------------------------------------------------------------
# Match results
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class MatchResult:
    """A matched branch.

    Attributes:
        routes: Matched nodes, root to leaf.  Index routes appended for an
            exact match come last.
        params: Captures of the whole branch merged into one mapping;
            deeper captures win on a name collision.
        components: One slot per route: a component, a mapping of named
            components, or ``None`` for pass-through nodes.  Empty when the
            result comes from the sync matcher.
        path_depth: How many leading routes matched by path.  The
            remaining ``routes[path_depth:]`` are index routes.
    """

    routes: tuple[RouteNode, ...]
    params: dict[str, Any]
    components: tuple[Any, ...] = ()
    path_depth: int = 0

    @property
    def leaf(self) -> RouteNode:
        return self.routes[-1]
