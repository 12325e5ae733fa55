"""Router state — the committed result of a transition."""

from dataclasses import dataclass, field
from typing import Any

from waypoint.location import Location
from waypoint.routing.route import RouteNode


@dataclass(frozen=True, slots=True)
class RouterState:
    """What the rendering collaborator sees.

    Replaced as a whole at the end of a successful transition, never
    updated in place.  ``routes`` is empty when nothing matched.

    Attributes:
        location: The location this state was resolved from.
        routes: Matched branch, root to leaf.
        params: Merged path parameters of the branch.
        components: One slot per route (component, named map, or ``None``).
    """

    location: Location
    routes: tuple[RouteNode, ...] = ()
    params: dict[str, Any] = field(default_factory=dict)
    components: tuple[Any, ...] = ()

    @property
    def matched(self) -> bool:
        return bool(self.routes)
