"""Invoke helpers — call sync, async, or continuation-style callables uniformly.

Route loaders and lifecycle hooks come in three shapes:

- plain functions returning a value
- ``async def`` functions returning an awaitable
- continuation-style functions that take one extra positional argument,
  a completion callback, and call it (possibly later, possibly from
  another thread) with ``done(error, result)``

Any code that calls a user-provided loader or hook goes through this
module so the shape check lives in exactly one place.

Usage::

    from waypoint._internal.invoke import invoke_deferred

    routes = await invoke_deferred(node.get_child_routes, location)
"""

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger("waypoint.invoke")

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


async def invoke(handler: Any, *args: Any, **kwargs: Any) -> Any:
    """Call a handler and await the result if it's a coroutine."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def accepts_continuation(fn: Callable[..., Any], arg_count: int) -> bool:
    """Return True if *fn* declares a positional parameter past *arg_count*.

    That extra parameter is the completion callback.  Callables whose
    signature cannot be inspected (some builtins) are treated as plain.
    """
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return False
    positional = [p for p in sig.parameters.values() if p.kind in _POSITIONAL]
    return len(positional) > arg_count


def _settle(future: asyncio.Future[Any], error: Any, result: Any) -> None:
    if future.done():
        logger.debug("Ignoring completion for an already settled call")
        return
    if error is not None:
        exc = error if isinstance(error, BaseException) else RuntimeError(str(error))
        future.set_exception(exc)
    else:
        future.set_result(result)


def make_completion(future: asyncio.Future[Any]) -> Callable[..., None]:
    """Build the ``done(error=None, result=None)`` callback for *future*.

    Settlement is marshalled onto the future's loop, so the callback is
    safe to call synchronously, later from the loop, or from another thread.
    Only the first call counts.
    """
    loop = future.get_loop()

    def done(error: Any = None, result: Any = None) -> None:
        loop.call_soon_threadsafe(_settle, future, error, result)

    return done


async def call_with_continuation(fn: Callable[..., Any], *args: Any) -> Any:
    """Call ``fn(*args, done)`` and wait until ``done`` is called.

    Args:
        fn: Continuation-style callable.
        *args: Leading positional arguments.

    Returns:
        The ``result`` passed to ``done``.

    Raises:
        Whatever ``fn`` raises, or the error passed to ``done``.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()
    returned = fn(*args, make_completion(future))
    if inspect.isawaitable(returned):
        await returned
    return await future


async def invoke_deferred(fn: Callable[..., Any], *args: Any) -> Any:
    """Call a loader of any supported shape and return its value."""
    if accepts_continuation(fn, len(args)):
        return await call_with_continuation(fn, *args)
    return await invoke(fn, *args)
