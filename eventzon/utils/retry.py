"""
Retry mechanisms with exponential backoff for handling transient failures.
"""

import asyncio
import logging
import random
from typing import Any, Callable, Optional
from functools import wraps
from dataclasses import dataclass

from ..config import get_settings
from ..utils.exceptions import DuplicateReferenceError

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """Backoff delay after the given zero-based attempt."""
        delay = min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)

        # Add jitter to prevent thundering herd
        if self.jitter:
            delay = delay * (0.5 + random.random() * 0.5)
        return delay


async def retry_async(
    func: Callable,
    config: RetryConfig,
    *args,
    retryable_exceptions: tuple = (Exception,),
    **kwargs
) -> Any:
    """
    Retry an async function with exponential backoff.

    Args:
        func: The async function to retry
        config: Retry configuration
        retryable_exceptions: Exceptions that should trigger retries
        *args, **kwargs: Arguments to pass to the function

    Returns:
        The result of the function call

    Raises:
        The last exception if all retries are exhausted
    """
    attempts = max(1, config.max_attempts)

    for attempt in range(attempts):
        try:
            result = await func(*args, **kwargs)

            if attempt > 0:
                logger.info(f"Function {func.__name__} succeeded on attempt {attempt + 1}")

            return result

        except retryable_exceptions as e:
            # Don't sleep after the last attempt
            if attempt == attempts - 1:
                logger.error(f"All {attempts} attempts failed for {func.__name__}")
                raise

            delay = config.delay_for(attempt)
            logger.warning(
                f"Attempt {attempt + 1} failed for {func.__name__}: {e}. "
                f"Retrying in {delay:.2f}s..."
            )
            await asyncio.sleep(delay)


def retry_on_duplicate_reference(
    max_attempts: Optional[int] = None,
    base_delay: float = 0.01,
    max_delay: float = 0.2,
):
    """Decorator retrying a whole unit of work when a generated identifier collides.

    The wrapped coroutine must roll back its own transaction before raising
    ``DuplicateReferenceError`` so the next attempt starts clean.
    """

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            config = RetryConfig(
                max_attempts=max_attempts or get_settings().reference_max_attempts,
                base_delay=base_delay,
                max_delay=max_delay,
            )
            return await retry_async(
                func,
                config,
                *args,
                retryable_exceptions=(DuplicateReferenceError,),
                **kwargs
            )
        return wrapper

    return decorator
