"""Tests for waypoint.cli._resolve — route tree import resolution."""

import sys
import types

import pytest

from waypoint.cli._resolve import resolve_routes
from waypoint.routing.route import RouteNode


@pytest.fixture
def _fake_routes_module(monkeypatch: pytest.MonkeyPatch) -> None:
    """Register a fake module with route configurations on sys.modules."""
    mod = types.ModuleType("_fake_waypoint_routes")
    mod.routes = [{"path": "/", "name": "home"}]  # type: ignore[attr-defined]
    mod.custom = RouteNode(path="/custom")  # type: ignore[attr-defined]
    mod.factory = lambda: {"path": "/made"}  # type: ignore[attr-defined]
    mod.broken_factory = lambda: 1 / 0  # type: ignore[attr-defined]
    mod.not_routes = "just a string"  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "_fake_waypoint_routes", mod)


@pytest.mark.usefixtures("_fake_routes_module")
class TestResolveRoutes:
    def test_default_attribute(self) -> None:
        """Omitting :attr defaults to 'routes'."""
        (route,) = resolve_routes("_fake_waypoint_routes")
        assert route.name == "home"

    def test_explicit_attribute(self) -> None:
        (route,) = resolve_routes("_fake_waypoint_routes:custom")
        assert route.path == "/custom"

    def test_factory(self) -> None:
        (route,) = resolve_routes("_fake_waypoint_routes:factory")
        assert route.path == "/made"

    def test_failing_factory(self) -> None:
        with pytest.raises(TypeError, match="Route factory"):
            resolve_routes("_fake_waypoint_routes:broken_factory")

    def test_not_a_route_configuration(self) -> None:
        with pytest.raises(TypeError, match="not a route configuration"):
            resolve_routes("_fake_waypoint_routes:not_routes")

    def test_missing_attribute(self) -> None:
        with pytest.raises(AttributeError):
            resolve_routes("_fake_waypoint_routes:nope")

    def test_missing_module(self) -> None:
        with pytest.raises(ModuleNotFoundError):
            resolve_routes("_no_such_waypoint_module")
