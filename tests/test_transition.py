"""Tests for waypoint.transition — route diffing, hook ordering, redirects."""

import asyncio
import logging

import pytest

from waypoint.errors import HookError
from waypoint.location import Action, create_location
from waypoint.routing.route import RouteNode
from waypoint.state import RouterState
from waypoint.transition import (
    Transition,
    TransitionPhase,
    compute_changed_routes,
    run_transition,
)


def _state(path: str, routes: tuple[RouteNode, ...], params: dict | None = None) -> RouterState:
    return RouterState(location=create_location(path), routes=routes, params=params or {})


class TestComputeChangedRoutes:
    def test_initial_transition_enters_everything(self) -> None:
        r1, r2 = RouteNode(path="/"), RouteNode(path="a")
        changes = compute_changed_routes(None, _state("/a", (r1, r2)))
        assert changes.enter == (r1, r2)
        assert changes.leave == ()
        assert changes.change == ()

    def test_leave_and_enter_order(self) -> None:
        r1, r2, r3, r4, r5 = (RouteNode(path=p) for p in ("/", "a", "b", "c", "d"))
        changes = compute_changed_routes(
            _state("/a/b", (r1, r2, r3)),
            _state("/c/d", (r1, r4, r5)),
        )
        assert changes.leave == (r3, r2)
        assert changes.enter == (r4, r5)
        assert changes.change == ()

    def test_param_change_marks_owning_route(self) -> None:
        root, user = RouteNode(path="/"), RouteNode(path="users/:id")
        changes = compute_changed_routes(
            _state("/users/1", (root, user), {"id": "1"}),
            _state("/users/2", (root, user), {"id": "2"}),
        )
        assert changes.change == (user,)
        assert changes.enter == ()
        assert changes.leave == ()

    def test_ancestor_param_change_marks_descendants(self) -> None:
        org, team = RouteNode(path="/orgs/:org"), RouteNode(path="team")
        changes = compute_changed_routes(
            _state("/orgs/a/team", (org, team), {"org": "a"}),
            _state("/orgs/b/team", (org, team), {"org": "b"}),
        )
        assert changes.change == (org, team)

    def test_query_change_marks_every_route(self) -> None:
        root, page = RouteNode(path="/"), RouteNode(path="list")
        changes = compute_changed_routes(
            _state("/list?page=1", (root, page)),
            _state("/list?page=2", (root, page)),
        )
        assert changes.change == (root, page)

    def test_same_location_changes_nothing(self) -> None:
        root = RouteNode(path="/")
        changes = compute_changed_routes(_state("/", (root,)), _state("/", (root,)))
        assert changes == type(changes)()


class TestTransitionPhases:
    def test_happy_path(self) -> None:
        transition = Transition(seq=1, location=create_location("/"))
        transition.advance(TransitionPhase.LEAVING)
        transition.advance(TransitionPhase.ENTERING)
        transition.commit()
        assert transition.phase is TransitionPhase.COMMITTED
        assert transition.finished

    def test_illegal_move(self) -> None:
        transition = Transition(seq=1, location=create_location("/"))
        with pytest.raises(RuntimeError, match="cannot move from pending to committed"):
            transition.commit()

    def test_abort_is_idempotent(self) -> None:
        transition = Transition(seq=1, location=create_location("/"))
        error = ValueError("x")
        transition.abort(error=error)
        transition.abort()
        assert transition.phase is TransitionPhase.ABORTED
        assert transition.error is error


class TestRunTransition:
    @pytest.mark.asyncio
    async def test_hook_order(self) -> None:
        events: list[str] = []

        def route(name: str) -> RouteNode:
            return RouteNode(
                path=name,
                name=name,
                on_enter=lambda next_state, replace: events.append(f"enter {name}"),
                on_leave=lambda prev_state: events.append(f"leave {name}"),
            )

        r1, r2, r3, r4, r5 = (route(name) for name in ("r1", "r2", "r3", "r4", "r5"))
        prev = _state("/r1/r2/r3", (r1, r2, r3))
        transition = Transition(seq=1, location=create_location("/r1/r4/r5"), prev_state=prev)

        redirect = await run_transition(transition, _state("/r1/r4/r5", (r1, r4, r5)))

        assert redirect is None
        assert events == ["leave r3", "leave r2", "enter r4", "enter r5"]
        assert transition.phase is TransitionPhase.ENTERING

    @pytest.mark.asyncio
    async def test_on_change_receives_both_states(self) -> None:
        seen: list[tuple[str, str]] = []

        def on_change(prev_state, next_state, replace):
            seen.append((prev_state.params["id"], next_state.params["id"]))

        user = RouteNode(path="/users/:id", on_change=on_change)
        prev = _state("/users/1", (user,), {"id": "1"})
        transition = Transition(seq=2, location=create_location("/users/2"), prev_state=prev)
        await run_transition(transition, _state("/users/2", (user,), {"id": "2"}))
        assert seen == [("1", "2")]

    @pytest.mark.asyncio
    async def test_callback_hook_suspends_pipeline(self) -> None:
        events: list[str] = []

        def slow_enter(next_state, replace, callback):
            def finish():
                events.append("slow done")
                callback()

            asyncio.get_running_loop().call_later(0.01, finish)

        slow = RouteNode(path="/", on_enter=slow_enter)
        fast = RouteNode(path="a", on_enter=lambda next_state, replace: events.append("fast"))
        transition = Transition(seq=1, location=create_location("/a"))
        await run_transition(transition, _state("/a", (slow, fast)))
        assert events == ["slow done", "fast"]

    @pytest.mark.asyncio
    async def test_async_hook_awaited(self) -> None:
        events: list[str] = []

        async def on_enter(next_state, replace):
            await asyncio.sleep(0)
            events.append("async")

        route = RouteNode(path="/", on_enter=on_enter)
        transition = Transition(seq=1, location=create_location("/"))
        await run_transition(transition, _state("/", (route,)))
        assert events == ["async"]

    @pytest.mark.asyncio
    async def test_redirect_stops_pipeline(self) -> None:
        events: list[str] = []

        def guard(next_state, replace):
            replace({"pathname": "/login", "query": {"next": next_state.location.pathname}})
            events.append("guard finished")

        protected = RouteNode(path="/", on_enter=guard)
        page = RouteNode(path="secret", on_enter=lambda next_state, replace: events.append("page"))
        transition = Transition(seq=1, location=create_location("/secret"))

        redirect = await run_transition(transition, _state("/secret", (protected, page)))

        assert redirect is not None
        assert redirect.pathname == "/login"
        assert redirect.query == {"next": "/secret"}
        assert redirect.action is Action.REPLACE
        assert events == ["guard finished"]
        assert transition.phase is TransitionPhase.ABORTED
        assert transition.redirect is redirect

    @pytest.mark.asyncio
    async def test_redirect_from_callback_hook_needs_no_callback(self) -> None:
        def guard(next_state, replace, callback):
            replace("/login")

        route = RouteNode(path="/", on_enter=guard)
        transition = Transition(seq=1, location=create_location("/"))
        redirect = await asyncio.wait_for(run_transition(transition, _state("/", (route,))), 1)
        assert redirect is not None
        assert redirect.pathname == "/login"

    @pytest.mark.asyncio
    async def test_async_hook_abandoned_on_redirect(self) -> None:
        events: list[str] = []
        gate = asyncio.Event()

        async def guard(next_state, replace):
            replace("/login")
            try:
                await gate.wait()
            except asyncio.CancelledError:
                events.append("guard cancelled")
                raise
            events.append("guard resumed")

        protected = RouteNode(path="/", on_enter=guard)
        page = RouteNode(path="secret", on_enter=lambda next_state, replace: events.append("page"))
        transition = Transition(seq=1, location=create_location("/secret"))

        redirect = await asyncio.wait_for(
            run_transition(transition, _state("/secret", (protected, page))), 1,
        )
        await asyncio.sleep(0.01)

        assert redirect is not None
        assert redirect.pathname == "/login"
        assert transition.phase is TransitionPhase.ABORTED
        assert events == ["guard cancelled"]

    @pytest.mark.asyncio
    async def test_callback_hook_returning_awaitable_abandoned_on_redirect(self) -> None:
        gate = asyncio.Event()

        def guard(next_state, replace, callback):
            replace("/login")
            return gate.wait()

        route = RouteNode(path="/", on_enter=guard)
        transition = Transition(seq=1, location=create_location("/"))
        redirect = await asyncio.wait_for(run_transition(transition, _state("/", (route,))), 1)
        assert redirect is not None
        assert redirect.pathname == "/login"

    @pytest.mark.asyncio
    async def test_last_replace_wins(self) -> None:
        def guard(next_state, replace):
            replace("/first")
            replace("/second")

        route = RouteNode(path="/", on_enter=guard)
        transition = Transition(seq=1, location=create_location("/"))
        redirect = await run_transition(transition, _state("/", (route,)))
        assert redirect is not None
        assert redirect.pathname == "/second"

    @pytest.mark.asyncio
    async def test_hook_error(self) -> None:
        def on_enter(next_state, replace):
            raise PermissionError("denied")

        route = RouteNode(path="/", name="admin", on_enter=on_enter)
        transition = Transition(seq=1, location=create_location("/"))
        with pytest.raises(HookError, match="on_enter hook failed for route 'admin'") as exc_info:
            await run_transition(transition, _state("/", (route,)))
        assert exc_info.value.route is route
        assert isinstance(exc_info.value.cause, PermissionError)
        assert transition.phase is TransitionPhase.ABORTED
        assert transition.error is exc_info.value

    @pytest.mark.asyncio
    async def test_hook_error_reported_through_callback(self) -> None:
        def on_enter(next_state, replace, callback):
            callback(LookupError("no session"))

        route = RouteNode(path="/", on_enter=on_enter)
        transition = Transition(seq=1, location=create_location("/"))
        with pytest.raises(HookError, match="no session"):
            await run_transition(transition, _state("/", (route,)))

    @pytest.mark.asyncio
    async def test_leave_hook_errors_are_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        def on_leave(prev_state):
            raise RuntimeError("cleanup failed")

        old = RouteNode(path="/old", on_leave=on_leave)
        new = RouteNode(path="/new")
        transition = Transition(
            seq=2, location=create_location("/new"), prev_state=_state("/old", (old,)),
        )
        with caplog.at_level(logging.ERROR, logger="waypoint.transition"):
            redirect = await run_transition(transition, _state("/new", (new,)))
        assert redirect is None
        assert transition.phase is TransitionPhase.ENTERING
        assert "on_leave hook failed" in caplog.text

    @pytest.mark.asyncio
    async def test_leave_hooks_skip_routes_already_left(self) -> None:
        left: list[str] = []
        home = RouteNode(path="/", name="home", on_leave=lambda prev_state: left.append("home"))
        other = RouteNode(path="/other")
        already_left: set[RouteNode] = set()

        for seq in (2, 3):
            transition = Transition(
                seq=seq, location=create_location("/other"), prev_state=_state("/", (home,)),
            )
            await run_transition(transition, _state("/other", (other,)), already_left=already_left)

        assert left == ["home"]
        assert already_left == {home}

    @pytest.mark.asyncio
    async def test_superseded_transition_stops(self) -> None:
        events: list[str] = []
        current = True

        def first(next_state, replace):
            nonlocal current
            events.append("first")
            current = False

        routes = (
            RouteNode(path="/", on_enter=first),
            RouteNode(path="a", on_enter=lambda next_state, replace: events.append("second")),
        )
        transition = Transition(seq=1, location=create_location("/a"))
        redirect = await run_transition(
            transition, _state("/a", routes), is_current=lambda: current,
        )
        assert redirect is None
        assert events == ["first"]
        assert transition.phase is TransitionPhase.ABORTED
