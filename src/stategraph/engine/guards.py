# src/stategraph/engine/guards.py
"""Node wrappers that turn failures into state instead of exceptions.

The executor aborts a run on the first node exception. When a workflow
should instead react to a failure (fall back to another node, loop back for
another attempt), the failing node is wrapped so the failure is written to an
error field, and a conditional edge inspects that field:

    builder.add_node("fetch", capture_errors(with_timeout(fetch, 5.0, "error"), "error"))
    builder.add_conditional_edge(
        "fetch",
        lambda s: "fallback" if s["error"] else "analyze",
        ["fallback", "analyze"],
    )

The error field should be declared as ``str | None``.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from stategraph.contracts.types import NodeFunction, PartialState

slog = structlog.get_logger(__name__)


async def _call(func: NodeFunction, state: Mapping[str, Any]) -> PartialState | None:
    result = func(state)
    if inspect.isawaitable(result):
        result = await result
    return result


def with_timeout(func: NodeFunction, seconds: float, error_field: str) -> NodeFunction:
    """Bound a node's run time; a timeout becomes ``{error_field: message}``.

    Only async work can be interrupted: a sync node function that blocks the
    event loop runs to completion before the timeout is noticed. A
    TimeoutError the node raises on its own propagates unchanged.

    Raises:
        ValueError: If seconds is not positive
    """
    if seconds <= 0:
        raise ValueError(f"seconds must be > 0, got {seconds}")

    @functools.wraps(func)
    async def wrapper(state: Mapping[str, Any]) -> PartialState | None:
        deadline = asyncio.timeout(seconds)
        try:
            async with deadline:
                return await _call(func, state)
        except TimeoutError:
            # A TimeoutError raised by the node itself is not ours to rewrite
            if not deadline.expired():
                raise
            name = getattr(func, "__name__", repr(func))
            slog.warning("node_timed_out", func=name, timeout_seconds=seconds)
            return {error_field: f"TimeoutError: {name} exceeded {seconds}s"}

    return wrapper


def _capture_all(_: Exception) -> bool:
    return True


def capture_errors(
    func: NodeFunction,
    error_field: str,
    *,
    is_capturable: Callable[[Exception], bool] = _capture_all,
    clear_on_success: bool = True,
) -> NodeFunction:
    """Record a node's exception in ``error_field`` instead of raising it.

    Args:
        func: Node update function (sync or async)
        error_field: State field receiving "ExceptionType: message"
        is_capturable: Exceptions it rejects propagate unchanged
        clear_on_success: On success, set error_field to None unless the
            node's own partial already sets it

    Returns:
        Async node function.
    """

    @functools.wraps(func)
    async def wrapper(state: Mapping[str, Any]) -> PartialState | None:
        try:
            partial = await _call(func, state)
        except Exception as e:
            if not is_capturable(e):
                raise
            slog.info("node_error_captured", func=getattr(func, "__name__", repr(func)), error_type=type(e).__name__)
            return {error_field: f"{type(e).__name__}: {e}"}

        if not clear_on_success:
            return partial
        if partial is not None and not isinstance(partial, Mapping):
            # Left for the schema to reject
            return partial
        if partial is None:
            return {error_field: None}
        if error_field in partial:
            return partial
        return {**partial, error_field: None}

    return wrapper
