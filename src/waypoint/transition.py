"""Transition pipeline — lifecycle hooks between two router states.

Pipeline::

    PENDING ──> LEAVING ──> ENTERING ──> COMMITTED
       │           │           │
       └───────────┴───────────┴──> ABORTED   (redirect, error, or superseded)

1. Diff the previous and next branch by route identity
2. Run ``on_leave`` for routes that left, leaf to root (synchronous;
   failures are logged and never cancel the transition)
3. Run ``on_enter`` / ``on_change`` root to leaf, in tree order
4. Stop at the first redirect or error; the caller commits otherwise

Hook signatures::

    def on_enter(next_state, replace): ...
    def on_enter(next_state, replace, callback): ...      # suspends until callback()
    async def on_enter(next_state, replace): ...
    def on_change(prev_state, next_state, replace[, callback]): ...
    def on_leave(prev_state): ...

``replace(location)`` requests a redirect.  The pipeline cancels the hook that
asked for it at once, whatever it is still awaiting, and runs nothing further.
A route whose ``on_leave`` already ran during a redirect chain is not left
again until the router commits.
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from waypoint._internal.invoke import (
    accepts_continuation,
    call_with_continuation,
    invoke,
)
from waypoint.errors import HookError
from waypoint.location import Action, Location, create_location
from waypoint.query import QueryCodec
from waypoint.routing.pattern import get_param_names
from waypoint.routing.route import MatchResult, RouteNode
from waypoint.state import RouterState

logger = logging.getLogger("waypoint.transition")

# Async leave hooks run detached; keep references until they finish
_background: set[asyncio.Future[Any]] = set()


class TransitionPhase(Enum):
    PENDING = "pending"
    LEAVING = "leaving"
    ENTERING = "entering"  # on_enter and on_change hooks
    COMMITTED = "committed"
    ABORTED = "aborted"


_NEXT_PHASES: dict[TransitionPhase, frozenset[TransitionPhase]] = {
    TransitionPhase.PENDING: frozenset({TransitionPhase.LEAVING, TransitionPhase.ABORTED}),
    TransitionPhase.LEAVING: frozenset({TransitionPhase.ENTERING, TransitionPhase.ABORTED}),
    TransitionPhase.ENTERING: frozenset({TransitionPhase.COMMITTED, TransitionPhase.ABORTED}),
}


@dataclass(slots=True)
class Transition:
    """One attempt to turn a location into a committed state.

    Attributes:
        seq: Sequence number; a higher number supersedes a lower one.
        location: Target location.
        prev_state: Committed state when the transition started.
        match: Resolved branch, once known.
        phase: Current phase.
        redirect: Redirect target when aborted by a hook.
        error: Failure when aborted by an error.
    """

    seq: int
    location: Location
    prev_state: RouterState | None = None
    match: MatchResult | None = None
    phase: TransitionPhase = TransitionPhase.PENDING
    redirect: Location | None = None
    error: BaseException | None = None

    @property
    def finished(self) -> bool:
        return self.phase in (TransitionPhase.COMMITTED, TransitionPhase.ABORTED)

    def advance(self, phase: TransitionPhase) -> None:
        """Move to *phase*; raises ``RuntimeError`` for an illegal move."""
        if phase not in _NEXT_PHASES.get(self.phase, frozenset()):
            msg = f"Transition #{self.seq} cannot move from {self.phase.value} to {phase.value}"
            raise RuntimeError(msg)
        self.phase = phase

    def abort(
        self,
        *,
        redirect: Location | None = None,
        error: BaseException | None = None,
    ) -> None:
        if self.finished:
            return
        self.redirect = redirect
        self.error = error
        self.advance(TransitionPhase.ABORTED)

    def commit(self) -> None:
        self.advance(TransitionPhase.COMMITTED)


@dataclass(frozen=True, slots=True)
class ChangedRoutes:
    """Routes whose hooks run in a transition.

    ``leave`` is leaf to root; ``enter`` and ``change`` are root to leaf.
    """

    leave: tuple[RouteNode, ...] = ()
    enter: tuple[RouteNode, ...] = ()
    change: tuple[RouteNode, ...] = ()


def _inputs_changed(
    route_index: int,
    prev_state: RouterState,
    next_state: RouterState,
) -> bool:
    """Did anything a route can observe from the location change?

    A route observes the params named by its own and its ancestors'
    patterns, the query, and the location state.
    """
    if prev_state.location.query != next_state.location.query:
        return True
    if prev_state.location.state != next_state.location.state:
        return True
    names: set[str] = set()
    for route in next_state.routes[: route_index + 1]:
        if route.path:
            names.update(get_param_names(route.path))
    return any(prev_state.params.get(name) != next_state.params.get(name) for name in names)


def compute_changed_routes(
    prev_state: RouterState | None,
    next_state: RouterState,
) -> ChangedRoutes:
    """Diff two branches by route identity.

    Example: ``[R1, R2, R3]`` → ``[R1, R4, R5]`` with equal params gives
    ``leave=(R3, R2)``, ``enter=(R4, R5)``, ``change=()``.
    """
    if prev_state is None:
        return ChangedRoutes(enter=next_state.routes)

    prev_routes = set(prev_state.routes)
    next_routes = set(next_state.routes)

    leave = tuple(route for route in reversed(prev_state.routes) if route not in next_routes)
    enter = tuple(route for route in next_state.routes if route not in prev_routes)
    change = tuple(
        route
        for index, route in enumerate(next_state.routes)
        if route in prev_routes and _inputs_changed(index, prev_state, next_state)
    )
    return ChangedRoutes(leave=leave, enter=enter, change=change)


def _finish_background(task: asyncio.Future[Any]) -> None:
    _background.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.error("Async on_leave hook failed", exc_info=task.exception())


def run_leave_hooks(
    routes: tuple[RouteNode, ...],
    prev_state: RouterState | None,
    already_left: set[RouteNode] | None = None,
) -> None:
    """Call ``on_leave`` for each route, in order, without waiting on anything.

    Routes in *already_left* are skipped; routes whose hook runs are added
    to it.
    """
    for route in routes:
        if route.on_leave is None:
            continue
        if already_left is not None:
            if route in already_left:
                continue
            already_left.add(route)
        try:
            result = route.on_leave(prev_state)
        except Exception:
            logger.exception("on_leave hook failed for route %s", route.label)
            continue
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            _background.add(task)
            task.add_done_callback(_finish_background)


async def _run_hook(
    route: RouteNode,
    hook_name: str,
    hook: Callable[..., Any],
    args: tuple[Any, ...],
    query_codec: QueryCodec | None,
) -> Location | None:
    """Run one enter/change hook; return the redirect it requested, if any.

    The hook runs as a task raced against ``replace()``: the first redirect
    cancels whatever the hook is still waiting on.
    """
    loop = asyncio.get_running_loop()
    redirects: list[Location] = []
    redirected: asyncio.Future[None] = loop.create_future()

    def replace(descriptor: Any) -> None:
        redirects.append(
            create_location(descriptor, query_codec=query_codec, action=Action.REPLACE)
        )
        if not redirected.done():
            redirected.set_result(None)

    if accepts_continuation(hook, len(args) + 1):
        call = asyncio.ensure_future(call_with_continuation(hook, *args, replace))
    else:
        call = asyncio.ensure_future(invoke(hook, *args, replace))

    try:
        await asyncio.wait({call, redirected}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        call.cancel()
        raise

    if redirected.done():
        if not call.done():
            call.cancel()
        elif not call.cancelled() and call.exception() is not None:
            # The redirect wins over a failure that raced it
            logger.debug("%s of route %s failed after redirecting", hook_name, route.label)
        return redirects[-1]

    redirected.cancel()
    try:
        call.result()
    except Exception as exc:
        raise HookError(route, hook_name, exc) from exc
    return None


async def run_transition(
    transition: Transition,
    next_state: RouterState,
    *,
    is_current: Callable[[], bool] | None = None,
    query_codec: QueryCodec | None = None,
    already_left: set[RouteNode] | None = None,
) -> Location | None:
    """Run the hooks of *transition* towards *next_state*.

    Leaves *transition* in ``ENTERING`` when every hook passed (the caller
    commits), or ``ABORTED`` otherwise.

    Args:
        transition: The transition; its ``prev_state`` is the diff base.
        next_state: Candidate state handed to the hooks.
        is_current: Checked after every suspension.  When it returns
            False the transition is aborted quietly.
        query_codec: Codec for redirect descriptors.
        already_left: Routes left earlier in the same redirect chain; their
            ``on_leave`` is not called again.

    Returns:
        The redirect location requested by a hook, or ``None``.

    Raises:
        HookError: If an enter/change hook fails.
    """
    prev_state = transition.prev_state
    changes = compute_changed_routes(prev_state, next_state)
    entering = set(changes.enter)
    changing = set(changes.change)

    transition.advance(TransitionPhase.LEAVING)
    run_leave_hooks(changes.leave, prev_state, already_left)

    transition.advance(TransitionPhase.ENTERING)
    for route in next_state.routes:
        if route in entering and route.on_enter is not None:
            hook_name, hook, args = "on_enter", route.on_enter, (next_state,)
        elif route in changing and route.on_change is not None:
            hook_name, hook, args = "on_change", route.on_change, (prev_state, next_state)
        else:
            continue

        try:
            redirect = await _run_hook(route, hook_name, hook, args, query_codec)
        except HookError as exc:
            transition.abort(error=exc)
            raise

        if is_current is not None and not is_current():
            logger.debug("Transition #%d superseded during %s", transition.seq, hook_name)
            transition.abort()
            return None

        if redirect is not None:
            logger.debug(
                "Transition #%d redirected by %s of route %s to %r",
                transition.seq, hook_name, route.label, redirect.path,
            )
            transition.abort(redirect=redirect)
            return redirect

    return None
