"""Branch resolver — asynchronous descent over a route tree.

Mirrors ``waypoint.routing.matcher`` step for step, but wherever the sync
matcher would skip deferred content, this module suspends on the node
resolver and continues once the content is loaded.  Loading never changes
precedence: loaded children are tried in the same left-to-right,
first-match order as static ones.

Once the branch is known, the components of every matched route are
resolved concurrently (anyio task group) and laid out positionally.
"""

import logging
from typing import Any

import anyio

from waypoint._internal.types import ComponentSlot
from waypoint.config import RouterConfig
from waypoint.errors import ResolutionError
from waypoint.location import Location
from waypoint.routing.matcher import Candidate, advance
from waypoint.routing.resolver import (
    resolve_child_routes,
    resolve_component_slot,
    resolve_index_route,
)
from waypoint.routing.route import MatchResult, RouteNode

logger = logging.getLogger("waypoint.branch")

_DEFAULT_CONFIG = RouterConfig()


async def _index_chain(
    route: RouteNode,
    location: Location,
    config: RouterConfig,
) -> tuple[RouteNode, ...]:
    if route.index_route is not None or route.get_index_route is not None:
        index = await resolve_index_route(route, location, config=config)
        return (index,) if index is not None else ()

    if not route.has_children:
        return ()

    # No index of its own: borrow one from the first pathless child that has one
    children = await resolve_child_routes(route, location, config=config)
    for child in children or ():
        if child.path:
            continue
        chain = await _index_chain(child, location, config)
        if chain:
            return (child, *chain)
    return ()


async def _match_route(
    route: RouteNode,
    location: Location,
    remaining: str | None,
    captures: tuple[dict[str, Any], ...],
    config: RouterConfig,
) -> Candidate | None:
    step = advance(
        route, location.pathname, remaining, captures, case_sensitive=config.case_sensitive,
    )
    if step.exact:
        chain = await _index_chain(route, location, config)
        return Candidate((route, *chain), step.captures, 1)

    if step.remaining is not None:
        children = await resolve_child_routes(route, location, config=config)
    else:
        # Own pattern failed: only already materialized absolute children can still match
        children = route.materialized_children
    if children is None:
        return None

    candidate = await _match_many(children, location, step.remaining, step.captures, config)
    if candidate is None:
        return None
    return candidate.under(route)


async def _match_many(
    routes: tuple[RouteNode, ...],
    location: Location,
    remaining: str | None,
    captures: tuple[dict[str, Any], ...],
    config: RouterConfig,
) -> Candidate | None:
    for route in routes:
        candidate = await _match_route(route, location, remaining, captures, config)
        if candidate is not None:
            return candidate
    return None


async def resolve_components(
    routes: tuple[RouteNode, ...],
    location: Location,
    *,
    config: RouterConfig | None = None,
) -> tuple[ComponentSlot, ...]:
    """Resolve the component slot of every route, concurrently.

    Raises the ``ResolutionError`` of the shallowest failing route.
    """
    config = config or _DEFAULT_CONFIG
    if not any(route.get_component or route.get_components for route in routes):
        return tuple(
            route.components if route.components is not None else route.component
            for route in routes
        )

    slots: list[ComponentSlot] = [None] * len(routes)
    failures: dict[int, ResolutionError] = {}

    async def _resolve(position: int, route: RouteNode) -> None:
        try:
            slots[position] = await resolve_component_slot(route, location, config=config)
        except ResolutionError as exc:
            failures[position] = exc

    async with anyio.create_task_group() as tg:
        for position, route in enumerate(routes):
            tg.start_soon(_resolve, position, route)

    if failures:
        raise failures[min(failures)]
    return tuple(slots)


async def resolve_branch(
    routes: tuple[RouteNode, ...],
    location: Location,
    *,
    config: RouterConfig | None = None,
) -> MatchResult | None:
    """Resolve *location* against a route tree, loading deferred content.

    Returns:
        The matched branch with merged params and resolved components, or
        ``None`` when no branch consumes the whole pathname.

    Raises:
        ResolutionError: If a deferred loader fails along the way.
    """
    config = config or _DEFAULT_CONFIG
    candidate = await _match_many(tuple(routes), location, location.pathname, (), config)
    if candidate is None:
        logger.debug("No branch matches %r", location.pathname)
        return None

    components = await resolve_components(candidate.routes, location, config=config)
    return candidate.to_result(components)
