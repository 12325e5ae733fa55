"""Router configuration.

One frozen dataclass holds every knob the matcher, resolver and router read.
Pass it to ``Router`` or ``match()``; omit it for the defaults.
"""

from dataclasses import dataclass

from waypoint.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Settings shared by one router and everything it resolves.

    Example::

        config = RouterConfig(max_redirects=3, case_sensitive=True)
    """

    # Transitions
    max_redirects: int = 10  # Chained redirects allowed within one navigation

    # Matching
    case_sensitive: bool = False

    # Absolute child paths ("/about") inside trees produced by get_child_routes
    allow_absolute_in_deferred: bool = False

    def __post_init__(self) -> None:
        if self.max_redirects < 0:
            msg = f"max_redirects must be >= 0, got {self.max_redirects}"
            raise ConfigurationError(msg)
