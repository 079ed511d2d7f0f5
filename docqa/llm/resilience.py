"""Timeouts and rate-limit backoff around calls to hosted model APIs."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from openai import RateLimitError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from docqa.config import Settings
from docqa.errors import DocQAError, UpstreamError
from docqa.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _has_429_status(exc: BaseException) -> bool:
    status = getattr(exc, "status_code", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    return status == 429


def is_rate_limited(exc: BaseException) -> bool:
    """True for openai.RateLimitError and other SDK errors carrying HTTP 429."""
    return isinstance(exc, RateLimitError) or _has_429_status(exc)


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    logger.warning(
        "Upstream rate limited, backing off",
        attempt=state.attempt_number,
        error=str(exc),
    )


async def call_upstream(
    operation: str,
    call: Callable[[], Awaitable[T]],
    settings: Settings,
) -> T:
    """Await ``call()`` with a timeout, retrying rate-limit failures.

    Any failure that survives the retry policy is re-raised as
    ``UpstreamError`` carrying the upstream message.
    """
    retrying = AsyncRetrying(
        retry=retry_if_exception_type(RateLimitError) | retry_if_exception(_has_429_status),
        stop=stop_after_attempt(settings.upstream_max_attempts),
        wait=wait_exponential(multiplier=settings.upstream_backoff_seconds, max=30),
        before_sleep=_log_retry,
        reraise=True,
    )
    try:
        async for attempt in retrying:
            with attempt:
                return await asyncio.wait_for(call(), timeout=settings.upstream_timeout_seconds)
    except DocQAError:
        raise
    except asyncio.TimeoutError as exc:
        raise UpstreamError(
            operation, f"timed out after {settings.upstream_timeout_seconds}s"
        ) from exc
    except Exception as exc:
        logger.error("Upstream call failed", operation=operation, error=str(exc))
        raise UpstreamError(operation, str(exc) or type(exc).__name__) from exc
    raise UpstreamError(operation, "no attempt was made")
