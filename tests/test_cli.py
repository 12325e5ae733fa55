"""Tests for waypoint.cli — entrypoint, ``routes`` and ``match`` commands."""

import sys
import types

import pytest

from waypoint.cli import main
from waypoint.cli._routes import format_tree
from waypoint.routing.route import create_routes


def _routes() -> dict:
    def get_component(location):
        raise LookupError("no view")

    return {
        "path": "/",
        "name": "app",
        "index_route": {"name": "home"},
        "child_routes": [
            {"path": "users/:id", "name": "user"},
            {"path": "lazy", "get_child_routes": lambda location: []},
            {"path": "broken", "get_component": get_component},
            {"path": "old", "on_enter": lambda next_state, replace: replace("/users/1")},
        ],
    }


@pytest.fixture
def _fake_routes_module(monkeypatch: pytest.MonkeyPatch) -> None:
    mod = types.ModuleType("_fake_cli_routes")
    mod.routes = _routes()  # type: ignore[attr-defined]
    mod.empty = []  # type: ignore[attr-defined]
    monkeypatch.setitem(sys.modules, "_fake_cli_routes", mod)


class TestCLIHelp:
    def test_help_exits_zero(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])
        assert exc_info.value.code == 0

    def test_routes_help_exits_zero(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["routes", "--help"])
        assert exc_info.value.code == 0

    def test_match_help_exits_zero(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["match", "--help"])
        assert exc_info.value.code == 0


class TestCLIMissingArgs:
    def test_routes_missing_target(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["routes"])
        assert exc_info.value.code == 2

    def test_match_missing_paths(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["match", "myapp:routes"])
        assert exc_info.value.code == 2


class TestCLINoCommand:
    def test_no_command_exits_zero(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0
        assert "routes" in capsys.readouterr().out


class TestFormatTree:
    def test_tree(self) -> None:
        lines = format_tree(create_routes(_routes()))
        assert lines == [
            "/  <static-layout>  [app]",
            "  (index)  <static-leaf>",
            "  users/:id  <static-leaf>  [user]",
            "  lazy  <deferred-children>",
            "    …  (not loaded)",
            "  broken  <deferred-component>",
            "  old  <static-leaf>",
        ]


@pytest.mark.usefixtures("_fake_routes_module")
class TestRoutesCommand:
    def test_prints_tree(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["routes", "_fake_cli_routes"])
        out = capsys.readouterr().out
        assert "/  <static-layout>  [app]" in out
        assert "users/:id" in out

    def test_empty(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["routes", "_fake_cli_routes:empty"])
        assert "No routes configured." in capsys.readouterr().out

    def test_bad_import(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["routes", "_fake_cli_routes:missing"])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err


@pytest.mark.usefixtures("_fake_routes_module")
class TestMatchCommand:
    def test_outcomes_in_order(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["match", "_fake_cli_routes", "/users/42", "/", "/old", "/nope"])
        lines = capsys.readouterr().out.splitlines()
        assert lines == [
            "/users/42  app > user  {id='42'}",
            "/  app > home",
            "/old  REDIRECT  /users/1",
            "/nope  NO MATCH",
        ]

    def test_basename(self, capsys: pytest.CaptureFixture[str]) -> None:
        main(["match", "_fake_cli_routes", "/base/users/1", "--basename", "/base"])
        assert capsys.readouterr().out.strip() == "/base/users/1  app > user  {id='1'}"

    def test_error_exits_one(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["match", "_fake_cli_routes", "/", "/broken"])
        assert exc_info.value.code == 1
        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "/  app > home"
        assert lines[1].startswith("/broken  ERROR  get_component failed for route 'broken'")
