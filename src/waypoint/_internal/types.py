"""Shared type aliases used across waypoint modules."""

from collections.abc import Callable, Mapping
from typing import Any, TypeAlias

# View component, opaque to waypoint
Component: TypeAlias = Any

# Component slot in a resolved branch: single, named map, or empty
ComponentSlot: TypeAlias = Component | Mapping[str, Component] | None

# Deferred loader: ``loader(location)`` or ``loader(location, done)``
Loader: TypeAlias = Callable[..., Any]

# Lifecycle hook; see waypoint.transition for the accepted signatures
Hook: TypeAlias = Callable[..., Any]

# Router state listener
Listener: TypeAlias = Callable[[Any], None]

# Anything create_location() accepts: a path string, a mapping, or a Location
LocationDescriptor: TypeAlias = Any
