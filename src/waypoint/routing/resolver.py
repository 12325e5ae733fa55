"""Async node resolver — expands deferred route capabilities.

A route node may defer any combination of its children, its index route,
its component, or its named components to a loader::

    def get_child_routes(location, done):
        done(None, [user_routes])        # continuation style

    async def get_component(location):   # coroutine style
        return await load_view("users")

Every loader shape ends up behind one contract: ``await`` the capability
and get the value, or a ``ResolutionError``.

Memoization:
    - A capability that loads successfully is cached on its node and the
      loader is never called again.
    - While a load is in flight, later requests attach to it instead of
      calling the loader a second time.  They await it through
      ``asyncio.shield`` so an abandoned waiter never cancels the shared load.
    - A failed load is not cached; a later transition may retry it.

There is no timeout: a loader that never completes keeps its node pending.
"""

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from waypoint._internal.invoke import invoke_deferred
from waypoint._internal.types import ComponentSlot
from waypoint.config import RouterConfig
from waypoint.errors import ConfigurationError, ResolutionError
from waypoint.location import Location
from waypoint.routing.route import Capability, RouteNode, create_routes

logger = logging.getLogger("waypoint.resolver")

_DEFAULT_CONFIG = RouterConfig()


@dataclass(frozen=True, slots=True)
class ResolvedNode:
    """Every capability of a node, static or loaded."""

    child_routes: tuple[RouteNode, ...] | None = None
    index_route: RouteNode | None = None
    component: Any = None
    components: Mapping[str, Any] | None = None


def _normalize(node: RouteNode, capability: Capability, value: Any, config: RouterConfig) -> Any:
    """Shape a loader result into what the node's static field would hold."""
    if capability is Capability.CHILD_ROUTES:
        routes = create_routes(value)
        if config.allow_absolute_in_deferred:
            return routes
        kept = tuple(route for route in routes if not (route.path or "").startswith("/"))
        if len(kept) != len(routes):
            rejected = [route.path for route in routes if route not in kept]
            logger.warning(
                "Ignoring absolute child paths %s loaded by route %s; "
                "set allow_absolute_in_deferred=True to allow them",
                rejected, node.label,
            )
        return kept

    if capability is Capability.INDEX_ROUTE:
        if value is None:
            return None
        routes = create_routes(value)
        if len(routes) != 1:
            msg = f"get_index_route of route {node.label} produced {len(routes)} routes, expected 1"
            raise ConfigurationError(msg)
        return routes[0]

    if capability is Capability.COMPONENTS:
        if value is not None and not isinstance(value, Mapping):
            msg = (
                f"get_components of route {node.label} must produce a mapping of "
                f"named components, got {type(value).__name__}"
            )
            raise ConfigurationError(msg)
        return value

    return value


async def _load(
    node: RouteNode,
    capability: Capability,
    location: Location,
    config: RouterConfig,
) -> Any:
    loader = getattr(node, capability.value)
    try:
        value = await invoke_deferred(loader, location)
        return _normalize(node, capability, value, config)
    except ResolutionError:
        raise
    except Exception as exc:
        raise ResolutionError(node, capability.value, exc) from exc


def _store(node: RouteNode, capability: Capability, task: asyncio.Future[Any]) -> None:
    node.deferred.pending.pop(capability, None)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("%s failed for route %s: %s", capability.value, node.label, exc)
        return
    node.deferred.values[capability] = task.result()
    logger.debug("Resolved %s for route %s", capability.value, node.label)


async def resolve_capability(
    node: RouteNode,
    capability: Capability,
    location: Location,
    *,
    config: RouterConfig | None = None,
) -> Any:
    """Resolve one deferred capability of *node*, loading it at most once.

    Raises:
        ValueError: If *node* does not declare *capability*.
        ResolutionError: If the loader fails.
    """
    cache = node.deferred
    if capability in cache.values:
        return cache.values[capability]

    if getattr(node, capability.value) is None:
        msg = f"Route {node.label} does not declare {capability.value}"
        raise ValueError(msg)

    pending = cache.pending.get(capability)
    if pending is None:
        logger.debug("Loading %s for route %s", capability.value, node.label)
        pending = asyncio.ensure_future(_load(node, capability, location, config or _DEFAULT_CONFIG))
        cache.pending[capability] = pending
        pending.add_done_callback(lambda task: _store(node, capability, task))
    else:
        logger.debug("Joining in-flight %s for route %s", capability.value, node.label)

    return await asyncio.shield(pending)


async def resolve_child_routes(
    node: RouteNode,
    location: Location,
    *,
    config: RouterConfig | None = None,
) -> tuple[RouteNode, ...] | None:
    """Children of *node*, loading them if they are deferred."""
    if node.get_child_routes is None:
        return node.child_routes
    return await resolve_capability(node, Capability.CHILD_ROUTES, location, config=config)


async def resolve_index_route(
    node: RouteNode,
    location: Location,
    *,
    config: RouterConfig | None = None,
) -> RouteNode | None:
    """Index route of *node*, loading it if it is deferred."""
    if node.get_index_route is None:
        return node.index_route
    return await resolve_capability(node, Capability.INDEX_ROUTE, location, config=config)


async def resolve_component(
    node: RouteNode,
    location: Location,
    *,
    config: RouterConfig | None = None,
) -> Any:
    """Single component of *node*, loading it if it is deferred."""
    if node.get_component is None:
        return node.component
    return await resolve_capability(node, Capability.COMPONENT, location, config=config)


async def resolve_components(
    node: RouteNode,
    location: Location,
    *,
    config: RouterConfig | None = None,
) -> Mapping[str, Any] | None:
    """Named components of *node*, loading them if they are deferred."""
    if node.get_components is None:
        return node.components
    return await resolve_capability(node, Capability.COMPONENTS, location, config=config)


async def resolve_component_slot(
    node: RouteNode,
    location: Location,
    *,
    config: RouterConfig | None = None,
) -> ComponentSlot:
    """The value *node* contributes to a branch's component list.

    A single component, a mapping of named components, or ``None`` for a
    pass-through node.
    """
    if node.components is not None or node.get_components is not None:
        return await resolve_components(node, location, config=config)
    return await resolve_component(node, location, config=config)


async def resolve_node(
    node: RouteNode,
    location: Location,
    *,
    config: RouterConfig | None = None,
) -> ResolvedNode:
    """Resolve every capability of *node*, static or deferred.

    Deferred capabilities load concurrently.  The first failure propagates
    as ``ResolutionError``; loads that are still running keep running and
    are cached when they finish.
    """
    child_routes, index_route, component, components = await asyncio.gather(
        resolve_child_routes(node, location, config=config),
        resolve_index_route(node, location, config=config),
        resolve_component(node, location, config=config),
        resolve_components(node, location, config=config),
    )
    return ResolvedNode(
        child_routes=child_routes,
        index_route=index_route,
        component=component,
        components=components,
    )
