"""Tests for waypoint.config — RouterConfig defaults and validation."""

import dataclasses

import pytest

from waypoint.config import RouterConfig
from waypoint.errors import ConfigurationError


class TestRouterConfig:
    def test_defaults(self) -> None:
        config = RouterConfig()
        assert config.max_redirects == 10
        assert config.case_sensitive is False
        assert config.allow_absolute_in_deferred is False

    def test_frozen(self) -> None:
        config = RouterConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.max_redirects = 1  # type: ignore[misc]

    def test_zero_redirects_allowed(self) -> None:
        assert RouterConfig(max_redirects=0).max_redirects == 0

    def test_negative_redirects_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="max_redirects"):
            RouterConfig(max_redirects=-1)
