"""Location sources.

The router never owns history.  It is handed an object implementing
``LocationSource``, subscribes to it, and asks it to navigate.
``MemoryHistory`` keeps its entries in a list, which makes it the source
of choice for tests, server-side resolution, and non-browser front ends.
"""

import logging
import uuid
from collections.abc import Callable, Sequence
from dataclasses import replace
from typing import Any, Protocol, runtime_checkable

from waypoint.location import Action, Location, create_location
from waypoint.query import QueryCodec

logger = logging.getLogger("waypoint.history")

LocationListener = Callable[[Location], None]


@runtime_checkable
class LocationSource(Protocol):
    """What the router needs from a history implementation.

    Sources must notify listeners in the order navigations logically occur.
    """

    @property
    def location(self) -> Location: ...

    def listen(self, listener: LocationListener) -> Callable[[], None]:
        """Subscribe to location changes; returns the unsubscribe function."""
        ...

    def push(self, descriptor: Any) -> None: ...

    def replace(self, descriptor: Any) -> None: ...

    def go(self, n: int) -> None: ...

    def create_href(self, descriptor: Any) -> str: ...


def _new_key() -> str:
    return uuid.uuid4().hex[:6]


class MemoryHistory:
    """In-memory location source.

    Usage::

        history = MemoryHistory(["/", "/users"], basename="/app")
        history.push("/users/42")
        history.go(-1)
        history.location.pathname  # "/users"

    Listeners are notified synchronously, in subscription order.
    """

    __slots__ = ("_basename", "_codec", "_entries", "_index", "_listeners")

    def __init__(
        self,
        entries: Sequence[Any] = ("/",),
        index: int | None = None,
        *,
        basename: str = "",
        query_codec: QueryCodec | None = None,
    ) -> None:
        if not entries:
            msg = "MemoryHistory needs at least one entry"
            raise ValueError(msg)
        self._codec = query_codec
        self._basename = basename.rstrip("/")
        self._entries: list[Location] = [
            create_location(entry, query_codec=query_codec, action=Action.POP, key=_new_key())
            for entry in entries
        ]
        last = len(self._entries) - 1
        self._index = last if index is None else max(0, min(index, last))
        self._listeners: list[LocationListener] = []

    @property
    def location(self) -> Location:
        return self._entries[self._index]

    @property
    def entries(self) -> tuple[Location, ...]:
        return tuple(self._entries)

    @property
    def index(self) -> int:
        return self._index

    def listen(self, listener: LocationListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unlisten() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unlisten

    def push(self, descriptor: Any) -> None:
        location = create_location(
            descriptor, query_codec=self._codec, action=Action.PUSH, key=_new_key()
        )
        del self._entries[self._index + 1 :]
        self._entries.append(location)
        self._index += 1
        self._notify(location)

    def replace(self, descriptor: Any) -> None:
        location = create_location(
            descriptor, query_codec=self._codec, action=Action.REPLACE, key=_new_key()
        )
        self._entries[self._index] = location
        self._notify(location)

    def can_go(self, n: int) -> bool:
        return 0 <= self._index + n < len(self._entries)

    def go(self, n: int) -> None:
        if not n:
            return
        if not self.can_go(n):
            logger.warning(
                "Cannot go(%d): only %d entries, currently at %d",
                n, len(self._entries), self._index,
            )
            return
        self._index += n
        location = replace(self._entries[self._index], action=Action.POP)
        self._entries[self._index] = location
        self._notify(location)

    def go_back(self) -> None:
        self.go(-1)

    def go_forward(self) -> None:
        self.go(1)

    def create_href(self, descriptor: Any) -> str:
        return self._basename + create_location(descriptor, query_codec=self._codec).path

    def _notify(self, location: Location) -> None:
        for listener in list(self._listeners):
            listener(location)

    def __repr__(self) -> str:
        return f"MemoryHistory(index={self._index}, entries={[e.path for e in self._entries]})"
