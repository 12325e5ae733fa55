"""Location value and descriptor normalization.

A ``Location`` is produced by the location source on every navigation and
treated as an opaque immutable value by the resolution pipeline.  Callers
describe locations loosely — ``"/users/42?tab=posts#top"``, a mapping
with ``pathname``/``query``/``state`` keys, or an existing ``Location`` —
and ``create_location()`` turns any of those into the canonical form.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

from waypoint.query import DEFAULT_QUERY_CODEC, QueryCodec

_DESCRIPTOR_KEYS = frozenset({"pathname", "search", "query", "hash", "state"})


class Action(StrEnum):
    """How a location was reached."""

    PUSH = "PUSH"
    REPLACE = "REPLACE"
    POP = "POP"


@dataclass(frozen=True, slots=True)
class Location:
    """An immutable location.

    Attributes:
        pathname: Path portion, always starting with ``/``.
        search: Raw query string including the leading ``?``, or ``""``.
        hash: Fragment including the leading ``#``, or ``""``.
        state: Opaque state attached by the navigator.
        query: ``search`` decoded by the query codec.
        action: ``PUSH``, ``REPLACE`` or ``POP``.
        key: Identifier assigned by the location source, if any.
    """

    pathname: str = "/"
    search: str = ""
    hash: str = ""
    state: Any = None
    query: Mapping[str, Any] = field(default_factory=dict)
    action: Action = Action.POP
    key: str | None = None

    @property
    def path(self) -> str:
        """``pathname + search + hash``."""
        return self.pathname + self.search + self.hash


def split_path(path: str) -> tuple[str, str, str]:
    """Split ``"/a?b=1#c"`` into ``("/a", "?b=1", "#c")``."""
    pathname, hash_sep, fragment = path.partition("#")
    pathname, search_sep, search = pathname.partition("?")
    return (
        _ensure_leading_slash(pathname),
        f"?{search}" if search_sep and search else "",
        f"#{fragment}" if hash_sep and fragment else "",
    )


def _ensure_leading_slash(pathname: str) -> str:
    if not pathname.startswith("/"):
        return f"/{pathname}"
    return pathname


def create_location(
    descriptor: Any,
    *,
    query_codec: QueryCodec | None = None,
    action: Action | None = None,
    key: str | None = None,
) -> Location:
    """Normalize a location descriptor into a ``Location``.

    Args:
        descriptor: A path string, a mapping with any of ``pathname``,
            ``search``, ``query``, ``hash`` and ``state``, or a ``Location``.
            An explicit ``query`` takes precedence over ``search``.
        query_codec: Codec for ``query`` <-> ``search``.  Defaults to
            ``DefaultQueryCodec``.
        action: Overrides the action of the resulting location.
        key: Overrides the key of the resulting location.

    Raises:
        TypeError: If *descriptor* is none of the accepted shapes.
        ValueError: If a mapping carries unknown keys.
    """
    codec = query_codec or DEFAULT_QUERY_CODEC

    if isinstance(descriptor, Location):
        location = descriptor
    elif isinstance(descriptor, str):
        pathname, search, fragment = split_path(descriptor)
        location = Location(
            pathname=pathname, search=search, hash=fragment, query=codec.parse(search)
        )
    elif isinstance(descriptor, Mapping):
        unknown = set(descriptor) - _DESCRIPTOR_KEYS
        if unknown:
            msg = (
                f"Unknown location keys {sorted(unknown)}. "
                f"Expected any of {sorted(_DESCRIPTOR_KEYS)}."
            )
            raise ValueError(msg)
        pathname, path_search, path_hash = split_path(descriptor.get("pathname") or "/")
        query = descriptor.get("query")
        if query is not None:
            encoded = codec.stringify(query)
            search = f"?{encoded}" if encoded else ""
            query = codec.parse(search)
        else:
            search = descriptor.get("search") or path_search
            if search and not search.startswith("?"):
                search = f"?{search}"
            query = codec.parse(search)
        fragment = descriptor.get("hash") or path_hash
        if fragment and not fragment.startswith("#"):
            fragment = f"#{fragment}"
        location = Location(
            pathname=pathname,
            search=search,
            hash=fragment,
            state=descriptor.get("state"),
            query=query,
        )
    else:
        msg = f"Cannot build a location from {type(descriptor).__name__}: {descriptor!r}"
        raise TypeError(msg)

    if action is not None and location.action is not action:
        location = replace(location, action=action)
    if key is not None:
        location = replace(location, key=key)
    return location


def create_path(descriptor: Any, *, query_codec: QueryCodec | None = None) -> str:
    """Return ``pathname + search + hash`` for any location descriptor."""
    return create_location(descriptor, query_codec=query_codec).path
