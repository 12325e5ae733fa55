"""Non-interactive resolution.

``match()`` resolves one location the way a router transition would —
loading deferred content and running ``on_enter`` hooks — but commits
nothing and keeps no state.  Useful for server-side rendering, batch
checks, and the ``waypoint match`` command::

    outcome = await match(routes, "/users/42")
    if outcome.error:
        ...                                  # a loader or hook failed
    elif outcome.redirect_location:
        ...                                  # a hook asked for a redirect
    elif outcome.state is None:
        ...                                  # nothing matched (404)
    else:
        render(outcome.state)
"""

from dataclasses import dataclass, replace
from typing import Any

from waypoint._internal.types import LocationDescriptor
from waypoint.config import RouterConfig
from waypoint.errors import HookError, ResolutionError
from waypoint.history import LocationSource
from waypoint.location import Location, create_location
from waypoint.query import QueryCodec
from waypoint.routing.branch import resolve_branch
from waypoint.routing.route import create_routes
from waypoint.state import RouterState
from waypoint.transition import Transition, run_transition


@dataclass(frozen=True, slots=True)
class MatchOutcome:
    """Result of ``match()``.  At most one field is set; none means no match."""

    error: Exception | None = None
    redirect_location: Location | None = None
    state: RouterState | None = None

    @property
    def matched(self) -> bool:
        return self.state is not None


def _strip_basename(location: Location, basename: str) -> Location:
    basename = basename.rstrip("/")
    if not basename:
        return location
    pathname = location.pathname
    if pathname.lower() == basename.lower():
        return replace(location, pathname="/")
    if pathname.lower().startswith(basename.lower() + "/"):
        return replace(location, pathname=pathname[len(basename) :])
    return location


async def match(
    routes: Any,
    location: LocationDescriptor | None = None,
    *,
    history: LocationSource | None = None,
    basename: str = "",
    query_codec: QueryCodec | None = None,
    config: RouterConfig | None = None,
) -> MatchOutcome:
    """Resolve *location* against *routes* without a router.

    Args:
        routes: Route configuration, anything ``create_routes()`` accepts.
        location: Location descriptor.  Defaults to ``history.location``.
        history: Location source to read the location from.
        basename: Prefix stripped from the pathname before matching.
        query_codec: Codec for query strings.
        config: Router configuration.

    Raises:
        ValueError: If neither *location* nor *history* is given.
        ConfigurationError: If *routes* is not a valid configuration.
    """
    if location is None:
        if history is None:
            msg = "match() needs a location or a history"
            raise ValueError(msg)
        location = history.location

    route_tree = create_routes(routes)
    target = _strip_basename(create_location(location, query_codec=query_codec), basename)

    try:
        result = await resolve_branch(route_tree, target, config=config)
    except ResolutionError as exc:
        return MatchOutcome(error=exc)
    if result is None:
        return MatchOutcome()

    next_state = RouterState(
        location=target,
        routes=result.routes,
        params=result.params,
        components=result.components,
    )
    transition = Transition(seq=0, location=target, match=result)
    try:
        redirect = await run_transition(transition, next_state, query_codec=query_codec)
    except HookError as exc:
        return MatchOutcome(error=exc)
    if redirect is not None:
        return MatchOutcome(redirect_location=redirect)
    return MatchOutcome(state=next_state)
