# src/stategraph/engine/retry.py
"""Opt-in retry for individual nodes, with tenacity integration.

The executor never retries. Callers who want a node retried wrap its update
function with retrying() before registering it; to the executor the wrapped
function is just another node. Provides:
- Exponential backoff with jitter
- Configurable max attempts
- Retryable error filtering
- Per-attempt callback (e.g. for logging or metrics)

Example:
    builder.add_node(
        "call_model",
        retrying(call_model, RetryConfig(max_attempts=3), is_retryable=lambda e: isinstance(e, httpx.HTTPError)),
    )
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from stategraph.contracts.types import NodeFunction, PartialState

if TYPE_CHECKING:
    from stategraph.core.config import RetrySettings

slog = structlog.get_logger(__name__)


class MaxRetriesExceeded(Exception):
    """Raised when max retry attempts are exceeded.

    When raised inside a node, the executor reports it as the cause of a
    NodeExecutionError.
    """

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Max retries ({attempts}) exceeded: {last_error}")


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """Configuration for retry behavior.

    max_attempts is the TOTAL number of tries, not the number of retries.
    So max_attempts=3 means: try, retry, retry (3 total).
    """

    max_attempts: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 60.0  # seconds
    jitter: float = 1.0  # seconds
    exponential_base: float = 2.0  # backoff multiplier

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")

    @classmethod
    def no_retry(cls) -> RetryConfig:
        """Factory for no-retry configuration (single attempt)."""
        return cls(max_attempts=1)

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> RetryConfig:
        """Factory from RetrySettings config model."""
        return cls(
            max_attempts=settings.max_attempts,
            base_delay=settings.initial_delay_seconds,
            max_delay=settings.max_delay_seconds,
            jitter=1.0,  # Fixed jitter, not exposed in settings
            exponential_base=settings.exponential_base,
        )


def _always(_: BaseException) -> bool:
    return True


def retrying(
    func: NodeFunction,
    config: RetryConfig,
    *,
    is_retryable: Callable[[BaseException], bool] = _always,
    on_retry: Callable[[int, BaseException], None] | None = None,
) -> NodeFunction:
    """Wrap a node function so failed attempts are retried with backoff.

    Args:
        func: Node update function (sync or async)
        config: Retry configuration
        is_retryable: Decides whether an error is retried; others propagate at once
        on_retry: Called with (attempt, error) for each failed attempt that will be
            retried; attempt is 1-based

    Returns:
        Async node function. Raises MaxRetriesExceeded once attempts run out.
    """

    @functools.wraps(func)
    async def wrapper(state: Mapping[str, Any]) -> PartialState | None:
        attempt = 0
        last_error: BaseException | None = None

        try:
            async for attempt_state in AsyncRetrying(
                stop=stop_after_attempt(config.max_attempts),
                wait=wait_exponential_jitter(
                    initial=config.base_delay,
                    max=config.max_delay,
                    exp_base=config.exponential_base,
                    jitter=config.jitter,
                ),
                retry=retry_if_exception(is_retryable),
                reraise=False,  # RetryError is converted to MaxRetriesExceeded below
            ):
                with attempt_state:
                    attempt = attempt_state.retry_state.attempt_number
                    try:
                        result = func(state)
                        if inspect.isawaitable(result):
                            result = await result
                        return result
                    except Exception as e:
                        last_error = e
                        if is_retryable(e) and attempt < config.max_attempts:
                            slog.debug("node_attempt_failed", func=getattr(func, "__name__", repr(func)), attempt=attempt, error=str(e))
                            if on_retry is not None:
                                on_retry(attempt, e)
                        raise

        except RetryError as e:
            # RetryError means at least one attempt failed, so last_error is set
            final_error = last_error or e.last_attempt.exception()
            assert final_error is not None, "RetryError without exception is impossible"
            raise MaxRetriesExceeded(attempt, final_error) from e

        raise RuntimeError("Unexpected state in retry loop")  # pragma: no cover

    return wrapper
