"""Query string codec.

Waypoint never encodes query strings itself; it delegates to an injected
object implementing ``QueryCodec``.  ``DefaultQueryCodec`` covers the
common case with ``urllib.parse``: repeated keys become lists, single
keys stay plain strings.
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable
from urllib.parse import parse_qs, urlencode


@runtime_checkable
class QueryCodec(Protocol):
    """Turns a query mapping into a search string and back."""

    def stringify(self, query: Mapping[str, Any]) -> str:
        """Encode *query* without the leading ``?``."""
        ...

    def parse(self, search: str) -> dict[str, Any]:
        """Decode a search string (with or without the leading ``?``)."""
        ...


class DefaultQueryCodec:
    """``urllib.parse``-backed codec.

    ``parse("?a=1&b=2&b=3")`` → ``{"a": "1", "b": ["2", "3"]}``.
    ``None`` values are dropped by ``stringify``; sequences repeat the key.
    """

    __slots__ = ()

    def stringify(self, query: Mapping[str, Any]) -> str:
        pairs: list[tuple[str, Any]] = []
        for key, value in query.items():
            if value is None:
                continue
            if isinstance(value, (list, tuple)):
                pairs.extend((key, item) for item in value)
            else:
                pairs.append((key, value))
        return urlencode(pairs)

    def parse(self, search: str) -> dict[str, Any]:
        parsed = parse_qs(search.removeprefix("?"), keep_blank_values=True)
        return {key: values[0] if len(values) == 1 else values for key, values in parsed.items()}

    def __repr__(self) -> str:
        return "DefaultQueryCodec()"


DEFAULT_QUERY_CODEC = DefaultQueryCodec()
