"""Synchronous path matcher.

Walks a route tree top-down, depth-first, trying siblings in
configuration order.  The first branch that consumes the whole pathname
wins; a child that fails deeper in the tree hands control back to its
next sibling.

Deferred content that has not been resolved yet is ignored: a node whose
children still need loading cannot match beyond its own pattern, and an
unresolved deferred index route is simply left out.  ``resolve_branch()``
in ``waypoint.routing.branch`` is the asynchronous counterpart that loads
what this module skips.
"""

from dataclasses import dataclass
from typing import Any

from waypoint.routing.pattern import assign_params, match_pattern
from waypoint.routing.route import MatchResult, RouteNode


@dataclass(frozen=True, slots=True)
class Step:
    """State after applying one route's own pattern.

    ``remaining`` is ``None`` when the pattern did not match; descent may
    still find an absolute child path in that case.
    """

    remaining: str | None
    captures: tuple[dict[str, Any], ...]
    exact: bool = False


@dataclass(frozen=True, slots=True)
class Candidate:
    """A partial branch assembled bottom-up while matching."""

    routes: tuple[RouteNode, ...]
    captures: tuple[dict[str, Any], ...]
    path_depth: int

    def under(self, parent: RouteNode) -> "Candidate":
        return Candidate((parent, *self.routes), self.captures, self.path_depth + 1)

    def to_result(self, components: tuple[Any, ...] = ()) -> MatchResult:
        return MatchResult(
            routes=self.routes,
            params=merge_params(self.captures),
            components=components,
            path_depth=self.path_depth,
        )


def merge_params(captures: tuple[dict[str, Any], ...]) -> dict[str, Any]:
    """Flatten per-route captures root to leaf; later names overwrite earlier ones."""
    params: dict[str, Any] = {}
    for captured in captures:
        params.update(captured)
    return params


def advance(
    route: RouteNode,
    pathname: str,
    remaining: str | None,
    captures: tuple[dict[str, Any], ...],
    *,
    case_sensitive: bool = False,
) -> Step:
    """Apply *route*'s pattern to what its parent left over."""
    pattern = route.path or ""
    if pattern.startswith("/"):
        # Absolute paths match from the root and drop ancestor captures
        remaining = pathname
        captures = ()

    if remaining is None or not pattern:
        return Step(remaining, captures)

    matched = match_pattern(pattern, remaining, case_sensitive=case_sensitive)
    if matched is None:
        return Step(None, captures)

    captured = assign_params(matched.param_names, matched.param_values)
    return Step(matched.remaining, (*captures, captured), exact=matched.remaining == "")


def index_chain(route: RouteNode) -> tuple[RouteNode, ...]:
    """Index routes to append when *route* matches exactly.

    Uses the node's own index route when it has one.  Otherwise looks for
    the first pathless child that itself has an index route and returns
    ``(pathless_child, *its_chain)``.
    """
    index = route.materialized_index
    if index is not None:
        return (index,)
    if route.get_index_route is not None:
        return ()
    for child in route.materialized_children or ():
        if child.path:
            continue
        chain = index_chain(child)
        if chain:
            return (child, *chain)
    return ()


def _match_route(
    route: RouteNode,
    pathname: str,
    remaining: str | None,
    captures: tuple[dict[str, Any], ...],
    case_sensitive: bool,
) -> Candidate | None:
    step = advance(route, pathname, remaining, captures, case_sensitive=case_sensitive)
    if step.exact:
        return Candidate((route, *index_chain(route)), step.captures, 1)

    children = route.materialized_children
    if children is None:
        return None

    candidate = _match_many(children, pathname, step.remaining, step.captures, case_sensitive)
    if candidate is None:
        return None
    return candidate.under(route)


def _match_many(
    routes: tuple[RouteNode, ...],
    pathname: str,
    remaining: str | None,
    captures: tuple[dict[str, Any], ...],
    case_sensitive: bool,
) -> Candidate | None:
    for route in routes:
        candidate = _match_route(route, pathname, remaining, captures, case_sensitive)
        if candidate is not None:
            return candidate
    return None


def match_routes(
    routes: tuple[RouteNode, ...],
    pathname: str,
    *,
    case_sensitive: bool = False,
) -> MatchResult | None:
    """Match *pathname* against a route tree.

    Returns a ``MatchResult`` (without components) for the first branch
    that consumes the whole pathname, or ``None`` when nothing does.

    Usage::

        routes = create_routes({"path": "users", "child_routes": [{"path": ":id"}]})
        result = match_routes(routes, "/users/42")
        result.params  # {"id": "42"}
    """
    candidate = _match_many(tuple(routes), pathname, pathname, (), case_sensitive)
    if candidate is None:
        return None
    return candidate.to_result()
