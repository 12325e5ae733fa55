"""Router orchestrator.

Owns the committed ``RouterState``, listens to a location source, and runs
one transition per location notification::

    history = MemoryHistory(["/"])
    router = Router(routes, history, on_error=report)
    router.listen(render)
    await router.start()

    router.push("/users/42")     # history notifies, the router resolves
    await router.settle()        # wait for the latest navigation

Concurrency:
    Everything runs on one event loop.  Each notification starts an
    ``asyncio`` task with an increasing sequence number.  A transition may
    suspend while loaders and hooks complete, so a later one can finish
    first; whichever is not the latest when it resumes is discarded (no
    commit, no further hooks).  The committed state is swapped in a single
    assignment and listeners see it once per committed transition.

Location sources must notify on the event loop's thread.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from waypoint._internal.types import Listener, LocationDescriptor
from waypoint.config import RouterConfig
from waypoint.errors import HookError, RedirectLoop, ResolutionError
from waypoint.history import LocationSource
from waypoint.location import Location, create_location
from waypoint.query import QueryCodec
from waypoint.routing.branch import resolve_branch
from waypoint.routing.matcher import match_routes
from waypoint.routing.route import RouteNode, create_routes
from waypoint.state import RouterState
from waypoint.transition import Transition, run_transition

logger = logging.getLogger("waypoint.router")


class Router:
    """Drives route resolution from a location source.

    Args:
        routes: Route configuration, anything ``create_routes()`` accepts.
        history: The location source to follow and navigate.
        config: Router configuration.
        query_codec: Codec for query strings; defaults to ``DefaultQueryCodec``.
        on_error: Receives ``ResolutionError``, ``HookError`` and
            ``RedirectLoop`` of the current transition.  Without it, errors
            are logged.
        on_update: Called after each commit, after the listeners.
    """

    __slots__ = (
        "_config",
        "_history",
        "_latest",
        # Routes whose on_leave ran since the last commit
        "_left",
        "_listeners",
        "_on_error",
        "_on_update",
        "_query_codec",
        # Chained redirect count handed to the next notification
        "_redirect_depth",
        "_routes",
        "_seq",
        "_state",
        "_tasks",
        "_unlisten",
    )

    def __init__(
        self,
        routes: Any,
        history: LocationSource,
        *,
        config: RouterConfig | None = None,
        query_codec: QueryCodec | None = None,
        on_error: Callable[[Exception], None] | None = None,
        on_update: Callable[[], None] | None = None,
    ) -> None:
        self._routes: tuple[RouteNode, ...] = create_routes(routes)
        self._history = history
        self._config = config or RouterConfig()
        self._query_codec = query_codec
        self._on_error = on_error
        self._on_update = on_update
        self._listeners: list[Listener] = []
        self._state: RouterState | None = None
        self._seq = 0
        self._redirect_depth = 0
        self._tasks: set[asyncio.Task[None]] = set()
        self._latest: asyncio.Task[None] | None = None
        self._left: set[RouteNode] = set()
        self._unlisten: Callable[[], None] | None = None

    # -- Introspection -------------------------------------------------------

    @property
    def routes(self) -> tuple[RouteNode, ...]:
        return self._routes

    @property
    def config(self) -> RouterConfig:
        return self._config

    @property
    def history(self) -> LocationSource:
        return self._history

    @property
    def state(self) -> RouterState | None:
        """The committed state, or ``None`` before the first commit."""
        return self._state

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> RouterState | None:
        """Subscribe to the location source and resolve its current location.

        Returns the committed state once the initial transition (and any
        redirects it triggers) settles.  ``None`` means it failed; the error
        went to ``on_error``.
        """
        if self._unlisten is not None:
            msg = "Router is already started"
            raise RuntimeError(msg)
        self._unlisten = self._history.listen(self._on_location_change)
        self._on_location_change(self._history.location)
        await self.settle()
        return self._state

    def stop(self) -> None:
        """Unsubscribe from the location source.  In-flight transitions finish."""
        if self._unlisten is not None:
            self._unlisten()
            self._unlisten = None

    async def settle(self) -> None:
        """Wait until the latest navigation, and any redirects it chains, settles.

        Superseded transitions are not waited for; they may still be
        suspended in a hook or loader.  Cancelling the waiter leaves the
        transitions running.
        """
        # A redirect starts its task before the redirecting one finishes
        while self._latest is not None and not self._latest.done():
            await asyncio.wait({self._latest})

    def listen(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with every committed state; returns the unsubscribe function."""
        self._listeners.append(listener)

        def unlisten() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unlisten

    # -- Navigation ------------------------------------------------------------
    # These delegate to the location source; its notification drives resolution.

    def push(self, path_or_loc: LocationDescriptor) -> None:
        self._history.push(self.create_location(path_or_loc))

    def replace(self, path_or_loc: LocationDescriptor) -> None:
        self._history.replace(self.create_location(path_or_loc))

    def go(self, n: int) -> None:
        self._history.go(n)

    def go_back(self) -> None:
        self._history.go(-1)

    def go_forward(self) -> None:
        self._history.go(1)

    def create_location(self, path_or_loc: LocationDescriptor) -> Location:
        return create_location(path_or_loc, query_codec=self._query_codec)

    def create_path(self, path_or_loc: LocationDescriptor, query: Any = None) -> str:
        """``pathname + search + hash``; *query* replaces the descriptor's query."""
        location = self.create_location(path_or_loc)
        if query is not None:
            location = self.create_location(
                {"pathname": location.pathname, "query": query, "hash": location.hash}
            )
        return location.path

    def create_href(self, path_or_loc: LocationDescriptor, query: Any = None) -> str:
        """Like ``create_path`` but as the location source renders links (basename etc.)."""
        return self._history.create_href(self.create_path(path_or_loc, query))

    # -- Queries ---------------------------------------------------------------

    def is_active(self, path_or_loc: LocationDescriptor, index_only: bool = False) -> bool:
        """Is *path_or_loc* part of the committed branch?

        The target is resolved with the sync matcher.  Every route it
        matched by path must be in the committed branch, its params must
        agree with the committed params, and its query must be a subset of
        the committed query.

        Without *index_only*, the target's index routes are not required:
        ``/users`` is active while ``/users/42`` is committed, even though
        the ``/users`` index route is not in that branch.  With
        *index_only*, every route of the target's branch, index routes
        included, must be committed and its leaf must be the committed leaf.
        """
        state = self._state
        if state is None or not state.routes:
            return False

        location = self.create_location(path_or_loc)
        target = match_routes(
            self._routes, location.pathname, case_sensitive=self._config.case_sensitive
        )
        if target is None:
            return False

        required = target.routes if index_only else target.routes[: target.path_depth]
        committed = set(state.routes)
        if not all(route in committed for route in required):
            return False
        if index_only and state.routes[-1] is not target.leaf:
            return False
        if any(state.params.get(name) != value for name, value in target.params.items()):
            return False
        return all(state.location.query.get(key) == value for key, value in location.query.items())

    # -- Transitions -----------------------------------------------------------

    def _is_current(self, seq: int) -> bool:
        return seq == self._seq

    def _on_location_change(self, location: Location) -> None:
        self._seq += 1
        redirect_depth, self._redirect_depth = self._redirect_depth, 0
        transition = Transition(seq=self._seq, location=location, prev_state=self._state)
        logger.debug("Transition #%d to %r started", transition.seq, location.path)
        task = asyncio.get_running_loop().create_task(self._run(transition, redirect_depth))
        self._tasks.add(task)
        self._latest = task
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Transition task crashed", exc_info=task.exception())

    async def _run(self, transition: Transition, redirect_depth: int) -> None:
        seq = transition.seq
        location = transition.location

        try:
            match = await resolve_branch(self._routes, location, config=self._config)
        except ResolutionError as exc:
            transition.abort(error=exc)
            self._report(transition, exc)
            return

        if not self._is_current(seq):
            logger.debug("Transition #%d superseded while resolving", seq)
            transition.abort()
            return

        transition.match = match
        if match is None:
            logger.warning("Location %r did not match any routes", location.path)
            next_state = RouterState(location=location)
        else:
            next_state = RouterState(
                location=location,
                routes=match.routes,
                params=match.params,
                components=match.components,
            )

        try:
            redirect = await run_transition(
                transition,
                next_state,
                is_current=lambda: self._is_current(seq),
                query_codec=self._query_codec,
                already_left=self._left,
            )
        except HookError as exc:
            self._report(transition, exc)
            return

        if redirect is not None:
            self._follow_redirect(transition, redirect, redirect_depth)
            return
        if transition.finished or not self._is_current(seq):
            transition.abort()
            return

        self._commit(transition, next_state)

    def _follow_redirect(self, transition: Transition, redirect: Location, redirect_depth: int) -> None:
        if not self._is_current(transition.seq):
            return
        depth = redirect_depth + 1
        if depth > self._config.max_redirects:
            exc = RedirectLoop(self._config.max_redirects, redirect.path)
            transition.error = exc
            self._report(transition, exc)
            return
        self._redirect_depth = depth
        self._history.replace(redirect)

    def _commit(self, transition: Transition, next_state: RouterState) -> None:
        transition.commit()
        self._state = next_state
        self._left.clear()
        logger.debug(
            "Transition #%d committed %r (%d routes)",
            transition.seq, next_state.location.path, len(next_state.routes),
        )
        for listener in list(self._listeners):
            try:
                listener(next_state)
            except Exception:
                logger.exception("Router listener failed")
        if self._on_update is not None:
            self._on_update()

    def _report(self, transition: Transition, exc: Exception) -> None:
        if not self._is_current(transition.seq):
            logger.debug("Discarding error of superseded transition #%d: %s", transition.seq, exc)
            return
        if self._on_error is not None:
            self._on_error(exc)
        else:
            logger.error("Transition to %r failed", transition.location.path, exc_info=exc)

    def __repr__(self) -> str:
        current = self._state.location.path if self._state else None
        return f"Router(routes={len(self._routes)}, location={current!r})"
