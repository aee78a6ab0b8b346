"""
Retry helpers shared by the pool, the orchestrator and the extraction wrapper.

Thin wrappers over tenacity so every component retries the same way and logs
before sleeping.
"""

import logging
from typing import Callable, Type, TypeVar, Tuple

from playwright.async_api import Error as PlaywrightError
from tenacity import (
    AsyncRetrying,
    retry as tenacity_retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    wait_fixed,
    before_sleep_log
)

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Common exceptions to retry on
NETWORK_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    OSError,
)

def with_exponential_backoff(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 10.0,
    exception_types: Tuple[Type[Exception], ...] = NETWORK_EXCEPTIONS
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator that adds exponential backoff retry logic to a function.

    Works for both plain and async functions.

    Args:
        max_attempts: Maximum number of attempts
        min_wait: Minimum wait time between retries (seconds)
        max_wait: Maximum wait time between retries (seconds)
        exception_types: Tuple of exception types to retry on

    Returns:
        Decorated function with retry logic
    """
    return tenacity_retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exception_types),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )

def with_browser_retry(max_attempts: int = 2) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Specialized retry for browser navigation with Playwright.

    Args:
        max_attempts: Maximum number of attempts

    Returns:
        Decorated function with browser-specific retry logic
    """
    return with_exponential_backoff(
        max_attempts=max_attempts,
        min_wait=1.0,
        max_wait=5.0,
        exception_types=(PlaywrightError,) + NETWORK_EXCEPTIONS
    )

def fixed_backoff_retrying(
    max_attempts: int = 3,
    wait_time: float = 5.0,
    exception_types: Tuple[Type[BaseException], ...] = NETWORK_EXCEPTIONS
) -> AsyncRetrying:
    """
    Build an AsyncRetrying controller with a fixed delay between attempts.

    Callers iterate it with ``async for attempt in ...`` so they can observe the
    attempt number. When every attempt fails tenacity raises ``RetryError``
    carrying the last attempt.

    Args:
        max_attempts: Maximum number of attempts
        wait_time: Fixed wait time between attempts (seconds)
        exception_types: Tuple of exception types to retry on
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(wait_time),
        retry=retry_if_exception_type(exception_types),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=False
    )
