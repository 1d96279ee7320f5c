"""Timeout and retry utilities for camera operations."""

from __future__ import annotations

import functools
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Callable, Optional, TypeVar

from exceptions import CameraConnectionError
from log_config.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def run_with_timeout(
    func: Callable[..., T],
    timeout_seconds: float,
    error_message: str = "Operation timed out",
    *args: Any,
    camera_id: Optional[str] = None,
    **kwargs: Any,
) -> T:
    """Run function with timeout, raise CameraConnectionError if exceeded.

    Args:
        func: Function to run
        timeout_seconds: Timeout in seconds
        error_message: Error message if timeout occurs
        camera_id: Camera attached to the raised error
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func

    Raises:
        CameraConnectionError: If operation times out
        Exception: Any exception raised by func
    """
    # The worker of a hung call is abandoned, shutdown must not wait for it
    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout_seconds)
    except FutureTimeoutError:
        logger.error(f"{error_message} after {timeout_seconds}s")
        raise CameraConnectionError(
            f"{error_message} after {timeout_seconds}s",
            camera_id=camera_id,
        )
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


def exponential_backoff(attempt: int, base_delay: float = 0.5, max_delay: float = 5.0) -> float:
    """Calculate exponential backoff delay.

    Args:
        attempt: Attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay in seconds

    Returns:
        Delay in seconds
    """
    delay = base_delay * (2**attempt)
    return min(delay, max_delay)


class RetryPolicy:
    """Configurable retry policy for camera operations."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 5.0,
        retry_on: tuple[type[Exception], ...] = (CameraConnectionError,),
    ):
        """Initialize retry policy.

        Args:
            max_attempts: Maximum number of attempts (including first)
            base_delay: Base delay for exponential backoff
            max_delay: Maximum delay between retries
            retry_on: Tuple of exception types to retry on
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1 (got {max_attempts})")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.retry_on = retry_on

    def should_retry(self, attempt: int, exception: Exception) -> bool:
        if attempt + 1 >= self.max_attempts:
            return False
        return isinstance(exception, self.retry_on)

    def get_delay(self, attempt: int) -> float:
        return exponential_backoff(attempt, self.base_delay, self.max_delay)

    def run(
        self,
        func: Callable[..., T],
        *args: Any,
        on_retry: Optional[Callable[[int, Exception], None]] = None,
        **kwargs: Any,
    ) -> T:
        """Call ``func`` until it succeeds or the policy gives up.

        Args:
            func: Operation to attempt
            on_retry: Called with (attempt, exception) before each new attempt
            *args: Positional arguments for func
            **kwargs: Keyword arguments for func

        Raises:
            Exception: The last error raised by func
        """
        name = getattr(func, "__name__", repr(func))
        for attempt in range(self.max_attempts):
            try:
                if attempt > 0:
                    logger.info(f"Retrying {name} (attempt {attempt + 1}/{self.max_attempts})")
                return func(*args, **kwargs)
            except Exception as e:
                logger.warning(f"{name} failed on attempt {attempt + 1}/{self.max_attempts}: {e}")
                if not self.should_retry(attempt, e):
                    if isinstance(e, self.retry_on):
                        logger.error(f"{name} failed after {self.max_attempts} attempts")
                    raise
                if on_retry is not None:
                    on_retry(attempt, e)
                delay = self.get_delay(attempt)
                logger.debug(f"Waiting {delay:.2f}s before retry")
                time.sleep(delay)
        raise AssertionError("unreachable")


def retry_on_failure(
    policy: Optional[RetryPolicy] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator to retry function on failure with exponential backoff.

    Example:
        @retry_on_failure()
        def open(self, source: str) -> None:
            # ... may raise CameraConnectionError ...
            pass
    """
    if policy is None:
        policy = RetryPolicy()

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            return policy.run(func, *args, **kwargs)

        return wrapper

    return decorator


__all__ = [
    "run_with_timeout",
    "exponential_backoff",
    "RetryPolicy",
    "retry_on_failure",
]
