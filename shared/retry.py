"""
Retry helpers for network collaborators.
"""

import asyncio
import functools
import random
from typing import Any, Awaitable, Callable, Optional, Tuple, Type

from shared.logging import get_logger

ResultPredicate = Callable[[Any], bool]


class RetryConfig:
    """Backoff settings for a retried call."""

    def __init__(self,
                 max_attempts: int = 3,
                 base_delay: float = 1.0,
                 max_delay: float = 60.0,
                 exponential_base: float = 2.0,
                 jitter: bool = True,
                 backoff_strategy: str = "exponential"):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.backoff_strategy = backoff_strategy

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        if self.backoff_strategy == "exponential":
            delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        elif self.backoff_strategy == "linear":
            delay = self.base_delay * attempt
        else:
            delay = self.base_delay

        delay = min(delay, self.max_delay)
        if self.jitter:
            delay += random.uniform(-delay * 0.1, delay * 0.1)
        return max(0.0, delay)


class RetryError(Exception):
    """Raised when every attempt failed with a retryable exception."""

    def __init__(self, message: str, last_exception: Exception, attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


def retry_on_exception(exceptions: Tuple[Type[Exception], ...] = (Exception,),
                       config: Optional[RetryConfig] = None,
                       retry_if: Optional[ResultPredicate] = None) -> Callable:
    """
    Retry an async function on the given exceptions.

    With `retry_if`, a returned result for which the predicate is true (e.g.
    a 503 response) is retried as well. When attempts run out on such a
    result, the last result is returned to the caller rather than raised.
    """
    if config is None:
        config = RetryConfig()

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            logger = get_logger(f"retry.{func.__name__}")

            for attempt in range(1, config.max_attempts + 1):
                last_attempt = attempt == config.max_attempts
                try:
                    result = await func(*args, **kwargs)
                except exceptions as e:
                    if last_attempt:
                        logger.error(
                            "All retry attempts exhausted",
                            attempts=attempt,
                            function=func.__name__,
                            error=str(e)
                        )
                        raise RetryError(
                            f"Function {func.__name__} failed after {attempt} attempts",
                            last_exception=e,
                            attempts=attempt
                        ) from e
                    reason = str(e)
                else:
                    if retry_if is None or not retry_if(result) or last_attempt:
                        if attempt > 1:
                            logger.info("Retry finished", attempt=attempt, function=func.__name__)
                        return result
                    reason = f"retryable result {result!r}"

                delay = config.delay_for(attempt)
                logger.warning(
                    "Attempt failed, retrying",
                    attempt=attempt,
                    delay=delay,
                    function=func.__name__,
                    reason=reason
                )
                await asyncio.sleep(delay)

        return wrapper

    return decorator
