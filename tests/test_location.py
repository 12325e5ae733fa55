"""Tests for waypoint.location — descriptor normalization."""

import pytest

from waypoint.location import Action, Location, create_location, create_path, split_path


class TestSplitPath:
    def test_full_path(self) -> None:
        assert split_path("/a?b=1#c") == ("/a", "?b=1", "#c")

    def test_adds_leading_slash(self) -> None:
        assert split_path("users") == ("/users", "", "")

    def test_empty_separators_dropped(self) -> None:
        assert split_path("/a?#") == ("/a", "", "")


class TestCreateLocation:
    def test_from_string(self) -> None:
        location = create_location("/users/42?tab=posts#top")
        assert location.pathname == "/users/42"
        assert location.search == "?tab=posts"
        assert location.hash == "#top"
        assert location.query == {"tab": "posts"}
        assert location.path == "/users/42?tab=posts#top"

    def test_from_mapping_with_query(self) -> None:
        location = create_location({"pathname": "/search", "query": {"q": "a b", "tag": ["x", "y"]}})
        assert location.search == "?q=a+b&tag=x&tag=y"
        assert location.query == {"q": "a b", "tag": ["x", "y"]}

    def test_query_takes_precedence_over_search(self) -> None:
        location = create_location({"pathname": "/", "search": "?a=1", "query": {"b": "2"}})
        assert location.search == "?b=2"

    def test_search_without_question_mark(self) -> None:
        location = create_location({"pathname": "/", "search": "a=1", "hash": "top"})
        assert location.search == "?a=1"
        assert location.hash == "#top"
        assert location.query == {"a": "1"}

    def test_pathname_may_carry_search(self) -> None:
        location = create_location({"pathname": "/a?x=1"})
        assert location.pathname == "/a"
        assert location.query == {"x": "1"}

    def test_state(self) -> None:
        assert create_location({"pathname": "/", "state": 7}).state == 7

    def test_location_passthrough(self) -> None:
        location = Location(pathname="/a")
        assert create_location(location) is location

    def test_action_and_key_override(self) -> None:
        location = create_location("/a", action=Action.PUSH, key="abc123")
        assert location.action is Action.PUSH
        assert location.key == "abc123"

    def test_unknown_keys(self) -> None:
        with pytest.raises(ValueError, match="Unknown location keys"):
            create_location({"path": "/a"})

    def test_unsupported_type(self) -> None:
        with pytest.raises(TypeError, match="Cannot build a location"):
            create_location(42)

    def test_frozen(self) -> None:
        with pytest.raises(AttributeError):
            create_location("/").pathname = "/x"  # type: ignore[misc]


class TestCreatePath:
    def test_mapping(self) -> None:
        assert create_path({"pathname": "/a", "query": {"page": 1}, "hash": "#h"}) == "/a?page=1#h"

    def test_empty_query_has_no_question_mark(self) -> None:
        assert create_path({"pathname": "/a", "query": {}}) == "/a"
