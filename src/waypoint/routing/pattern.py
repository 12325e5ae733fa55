"""Path pattern compilation, matching, and formatting.

Pattern grammar::

    users           literal text
    :id             one segment, captured as params["id"]
    *               non-greedy splat, captured as params["splat"]
    **              greedy splat, captured as params["splat"]
    (...)           optional group, may nest

A pattern without a leading ``/`` is matched relative to whatever the
parent route left over; matching itself always works on a pathname that
starts with ``/``.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Literal
from urllib.parse import quote, unquote

from waypoint.errors import ConfigurationError

TokenKind = Literal["literal", "param", "splat", "greedy_splat", "open", "close"]

_TOKEN_RE = re.compile(r":([a-zA-Z_$][a-zA-Z0-9_$]*)|\*\*|\*|\(|\)")
_FOREIGN_PARAM_RE = re.compile(r"\{[^}/]*\}|<[^>/]*>")

# Regex source emitted for each non-literal token kind
_TOKEN_SOURCES: dict[str, str] = {
    "param": r"([^/]+)",
    "splat": r"(.*?)",
    "greedy_splat": r"(.*)",
    "open": r"(?:",
    "close": r")?",
}


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    """A parsed path pattern.

    Attributes:
        pattern: The source pattern.
        source: Regex source (no anchors, no trailing-slash handling).
        param_names: Capture names in group order; ``splat`` may repeat.
        tokens: ``(kind, text)`` pairs in pattern order.
    """

    pattern: str
    source: str
    param_names: tuple[str, ...]
    tokens: tuple[tuple[TokenKind, str], ...]


@dataclass(frozen=True, slots=True)
class PatternMatch:
    """Result of matching a pattern against the start of a pathname.

    ``remaining`` is ``""`` when the whole pathname was consumed, otherwise
    the rest of the pathname starting with ``/``.
    """

    remaining: str
    param_names: tuple[str, ...]
    param_values: tuple[str | None, ...]


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> CompiledPattern:
    """Parse *pattern* into tokens and a regex source.

    Raises ``ConfigurationError`` for unbalanced parentheses and for
    ``{param}`` / ``<param>`` placeholders, which this grammar spells ``:param``.
    """
    foreign = _FOREIGN_PARAM_RE.search(pattern)
    if foreign:
        msg = (
            f"Route path {pattern!r} uses {foreign.group(0)!r}. "
            "Waypoint path parameters are written :param, not {param} or <param>."
        )
        raise ConfigurationError(msg)

    tokens: list[tuple[TokenKind, str]] = []
    sources: list[str] = []
    names: list[str] = []
    depth = 0
    last = 0

    for match in _TOKEN_RE.finditer(pattern):
        if match.start() != last:
            literal = pattern[last : match.start()]
            tokens.append(("literal", literal))
            sources.append(re.escape(literal))

        text = match.group(0)
        kind: TokenKind
        if match.group(1):
            kind = "param"
            names.append(match.group(1))
        elif text == "**":
            kind = "greedy_splat"
            names.append("splat")
        elif text == "*":
            kind = "splat"
            names.append("splat")
        elif text == "(":
            kind = "open"
            depth += 1
        else:
            kind = "close"
            depth -= 1
            if depth < 0:
                msg = f"Route path {pattern!r} has an unmatched ')'"
                raise ConfigurationError(msg)

        tokens.append((kind, text))
        sources.append(_TOKEN_SOURCES[kind])
        last = match.end()

    if last != len(pattern):
        literal = pattern[last:]
        tokens.append(("literal", literal))
        sources.append(re.escape(literal))

    if depth:
        msg = f"Route path {pattern!r} is missing an end paren"
        raise ConfigurationError(msg)

    return CompiledPattern(
        pattern=pattern,
        source="".join(sources),
        param_names=tuple(names),
        tokens=tuple(tokens),
    )


@lru_cache(maxsize=1024)
def _anchored_regex(pattern: str, case_sensitive: bool) -> re.Pattern[str]:
    compiled = compile_pattern(pattern)
    source = compiled.source
    # Allow an optional separator at the end
    if not pattern.endswith("/"):
        source += "/?"
    # A trailing non-greedy splat must still reach the end of the pathname
    if compiled.tokens and compiled.tokens[-1][0] == "splat":
        source += "$"
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(f"^{source}", flags)


def match_pattern(
    pattern: str,
    pathname: str,
    *,
    case_sensitive: bool = False,
) -> PatternMatch | None:
    """Match *pattern* against the beginning of *pathname*.

    A partial match must end at a path separator so that whatever is left
    starts a new segment.  Captured values are percent-decoded.

    Examples::

        match_pattern("users", "/users/42")
        # PatternMatch(remaining="/42", param_names=(), param_values=())
        match_pattern("users/:id", "/users/42")
        # PatternMatch(remaining="", param_names=("id",), param_values=("42",))
        match_pattern("users/:id", "/users")
        # None
    """
    if not pattern.startswith("/"):
        pattern = f"/{pattern}"

    match = _anchored_regex(pattern, case_sensitive).match(pathname)
    if match is None:
        return None

    matched = match.group(0)
    remaining = pathname[len(matched) :]
    if remaining:
        if not matched.endswith("/"):
            return None
        # Keep the separator with the remainder so children match from "/"
        remaining = f"/{remaining}"

    return PatternMatch(
        remaining=remaining,
        param_names=compile_pattern(pattern).param_names,
        param_values=tuple(unquote(v) if v is not None else None for v in match.groups()),
    )


def get_param_names(pattern: str) -> tuple[str, ...]:
    """Return the unique parameter names of *pattern*, in order."""
    return tuple(dict.fromkeys(compile_pattern(pattern).param_names))


def assign_params(names: tuple[str, ...], values: tuple[str | None, ...]) -> dict[str, Any]:
    """Zip captures into a mapping.

    A name captured more than once (several splats in one pattern) maps to
    a list of its values.
    """
    params: dict[str, Any] = {}
    for name, value in zip(names, values, strict=True):
        if name in params:
            existing = params[name]
            if isinstance(existing, list):
                existing.append(value)
            else:
                params[name] = [existing, value]
        else:
            params[name] = value
    return params


def get_params(
    pattern: str,
    pathname: str,
    *,
    case_sensitive: bool = False,
) -> dict[str, Any] | None:
    """Return the params *pattern* captures from *pathname*, or ``None``."""
    match = match_pattern(pattern, pathname, case_sensitive=case_sensitive)
    if match is None:
        return None
    return assign_params(match.param_names, match.param_values)


def format_pattern(pattern: str, params: Mapping[str, Any] | None = None) -> str:
    """Fill *pattern* with *params*.

    Optional groups whose own parameters are missing are left out.  A
    missing parameter outside any group raises ``ConfigurationError``.
    Splat values are consumed in order when ``params["splat"]`` is a list.

    Examples::

        format_pattern("/users/:id", {"id": 42})           # "/users/42"
        format_pattern("/files(/:name)", {})                # "/files"
        format_pattern("/a/*/b/*", {"splat": ["x", "y"]})   # "/a/x/b/y"
    """
    params = params or {}
    splat = params.get("splat")
    splat_index = 0
    # Each frame is [parts, complete]; frame 0 is the pathname itself
    stack: list[list[Any]] = [[[], True]]

    def missing(what: str) -> None:
        if len(stack) == 1:
            msg = f"Missing {what} for path {pattern!r}"
            raise ConfigurationError(msg)
        stack[-1][1] = False

    for kind, text in compile_pattern(pattern).tokens:
        if kind == "open":
            stack.append([[], True])
        elif kind == "close":
            parts, complete = stack.pop()
            if complete:
                stack[-1][0].extend(parts)
        elif kind in ("splat", "greedy_splat"):
            if isinstance(splat, list):
                value = splat[splat_index] if splat_index < len(splat) else None
                splat_index += 1
            else:
                value = splat
            if value is None:
                missing(f"splat #{splat_index or 1}")
            else:
                stack[-1][0].append(quote(str(value), safe="/"))
        elif kind == "param":
            name = text[1:]
            value = params.get(name)
            if value is None:
                missing(f"{name!r} parameter")
            else:
                stack[-1][0].append(quote(str(value), safe=""))
        else:
            stack[-1][0].append(text)

    return re.sub(r"/+", "/", "".join(stack[0][0]))
