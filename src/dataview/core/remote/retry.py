"""
Backoff and retry for calls to a remote source.

Only failures that say nothing about the request itself are retried: a
5xx answer, a timeout, a dropped connection. A 4xx answer means the
request was wrong and is raised on the first attempt.

Requests that are not safe to repeat (creates) get a narrower policy:
after a timeout or a broken connection there is no telling whether the
server stored the record, so the error is raised instead of resending.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

# The server refused the request before doing any work
_NOT_PROCESSED_STATUSES = frozenset({503})


@dataclass(frozen=True)
class RetryConfig:
    """
    How often, and how patiently, a failing remote call is repeated.

    The n-th retry (counting from 0) waits ``base_delay * multiplier**n``
    seconds. With ``jitter`` on, that wait is moved up or down by at most
    ``jitter_ratio`` of itself so that concurrent callers spread out.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    jitter: bool = True
    jitter_ratio: float = 0.2

    def __post_init__(self) -> None:
        problems = []
        if self.max_retries < 0:
            problems.append("max_retries cannot be negative")
        if self.base_delay <= 0:
            problems.append("base_delay has to be greater than zero")
        if self.multiplier < 1.0:
            problems.append("multiplier below 1.0 would shrink the delay")
        if not 0.0 <= self.jitter_ratio <= 1.0:
            problems.append("jitter_ratio has to lie in [0, 1]")
        if problems:
            raise ValueError("Invalid retry settings: " + "; ".join(problems))

    def calculate_delay(self, attempt: int) -> float:
        """Seconds to sleep before retry number ``attempt`` (0-based)."""
        wait = self.base_delay * self.multiplier**attempt
        if not self.jitter:
            return wait
        spread = wait * self.jitter_ratio
        return max(0.0, random.uniform(wait - spread, wait + spread))


def is_retryable_error(exception: BaseException, *, idempotent: bool = True) -> bool:
    """
    Whether ``exception`` is worth another attempt.

    Args:
        exception: What the last attempt raised
        idempotent: False for requests that must not be applied twice;
            only answers proving the server did nothing are retried then

    Returns:
        True when the call should be repeated
    """
    # Status errors are HTTPErrors too, so they are checked first
    if isinstance(exception, httpx.HTTPStatusError):
        status = exception.response.status_code
        if not idempotent:
            return status in _NOT_PROCESSED_STATUSES
        return status >= 500

    if not isinstance(exception, httpx.HTTPError):
        return False

    # Timeouts and transport failures leave the outcome unknown
    return idempotent


async def retry_async(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig,
    description: str = "request",
    *,
    idempotent: bool = True,
) -> T:
    """
    Await ``func()`` and repeat it on retryable failures.

    ``func`` is called afresh for every attempt. The error from the final
    attempt, or the first one that is not retryable, propagates unchanged.
    """
    attempt = 0
    while True:
        try:
            return await func()
        except Exception as e:
            if not is_retryable_error(e, idempotent=idempotent):
                logger.debug(f"{description}: giving up on attempt {attempt + 1}: {e}")
                raise
            if attempt == config.max_retries:
                logger.warning(f"{description}: Max retries ({config.max_retries}) exceeded: {e}")
                raise

            delay = config.calculate_delay(attempt)
            attempt += 1
            logger.warning(
                f"{description}: retry {attempt}/{config.max_retries} in {delay:.2f}s ({e})"
            )
            await asyncio.sleep(delay)
