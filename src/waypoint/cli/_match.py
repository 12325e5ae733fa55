"""``waypoint match`` — resolve paths offline.

Resolves every path concurrently with ``waypoint.match()`` (loaders and
``on_enter`` hooks run, nothing is committed) and prints one line per path
in the order given.  Exits with code 1 if any resolution failed.
"""

import argparse
import functools
import sys

import anyio

from waypoint.cli._resolve import resolve_routes
from waypoint.config import RouterConfig
from waypoint.matching import MatchOutcome, match
from waypoint.routing.route import RouteNode


async def match_paths(
    routes: tuple[RouteNode, ...],
    paths: list[str],
    *,
    basename: str = "",
    config: RouterConfig | None = None,
) -> list[MatchOutcome]:
    """Resolve *paths* concurrently; outcomes come back in input order."""
    outcomes: list[MatchOutcome] = [MatchOutcome()] * len(paths)

    async def _resolve(position: int, path: str) -> None:
        outcomes[position] = await match(routes, path, basename=basename, config=config)

    async with anyio.create_task_group() as tg:
        for position, path in enumerate(paths):
            tg.start_soon(_resolve, position, path)

    return outcomes


def describe(path: str, outcome: MatchOutcome) -> str:
    """One-line summary of *outcome*."""
    if outcome.error is not None:
        return f"{path}  ERROR  {outcome.error}"
    if outcome.redirect_location is not None:
        return f"{path}  REDIRECT  {outcome.redirect_location.path}"
    if outcome.state is None:
        return f"{path}  NO MATCH"
    chain = " > ".join(
        route.name or route.path or "(pathless)" for route in outcome.state.routes
    )
    params = ", ".join(f"{key}={value!r}" for key, value in outcome.state.params.items())
    return f"{path}  {chain}" + (f"  {{{params}}}" if params else "")


def run_match(args: argparse.Namespace) -> None:
    try:
        routes = resolve_routes(args.routes)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    config = RouterConfig(case_sensitive=args.case_sensitive)
    outcomes = anyio.run(
        functools.partial(match_paths, routes, args.paths, basename=args.basename, config=config)
    )

    for path, outcome in zip(args.paths, outcomes, strict=True):
        print(describe(path, outcome))

    if any(outcome.error is not None for outcome in outcomes):
        raise SystemExit(1)
