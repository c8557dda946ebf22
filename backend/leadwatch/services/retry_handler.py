"""Exponential backoff retry handler for resilient API calls.

Implements configurable retry logic with exponential backoff and random
jitter so that transient upstream failures (rate limits, 5xx) are absorbed
without hammering the failing service.
"""

import asyncio
import random
from typing import Callable, TypeVar, Optional, Type

from leadwatch.core.logging import setup_logging

logger = setup_logging(__name__)

T = TypeVar('T')


class RetryWithBackoff:
    """
    Retry handler with exponential backoff.

    Calculates delay using:
        delay = min(base_delay * (exponential_base ** attempt), max_delay) + uniform(0, jitter)

    Example with the defaults (base_delay=1.0, exponential_base=2.0, jitter=1.0):
        - Retry 1: 1-2s
        - Retry 2: 2-3s
        - Retry 3: 4-5s
        - Retry 4: 8-9s

    Once attempts are exhausted the last error is re-raised unchanged.
    """

    def __init__(
        self,
        max_retries: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exponential_base: float = 2.0,
        jitter: float = 1.0,
        retry_on_exceptions: Optional[tuple[Type[Exception], ...]] = None,
        retry_if: Optional[Callable[[Exception], bool]] = None
    ):
        """
        Initialize retry handler.

        Args:
            max_retries: Maximum number of retry attempts (0 = no retries)
            base_delay: Initial delay in seconds
            max_delay: Maximum delay in seconds (caps exponential growth)
            exponential_base: Base for exponential calculation (typically 2.0)
            jitter: Upper bound of the random delay added to each backoff
            retry_on_exceptions: Tuple of exception types to retry on (None = all)
            retry_if: Extra predicate; an exception is retried only if it returns True
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.retry_on_exceptions = retry_on_exceptions
        self.retry_if = retry_if

        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if base_delay <= 0:
            raise ValueError("base_delay must be > 0")
        if max_delay < base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if exponential_base <= 1:
            raise ValueError("exponential_base must be > 1")
        if jitter < 0:
            raise ValueError("jitter must be >= 0")

    def _should_retry(self, exc: Exception) -> bool:
        if self.retry_on_exceptions and not isinstance(exc, self.retry_on_exceptions):
            return False
        if self.retry_if is not None and not self.retry_if(exc):
            return False
        return True

    async def execute(
        self,
        func: Callable[..., T],
        *args,
        **kwargs
    ) -> T:
        """
        Execute a function with retry logic.

        Args:
            func: Async function to execute
            *args: Positional arguments for func
            **kwargs: Keyword arguments for func

        Returns:
            Result of successful func execution

        Raises:
            Exception: the last error from func once retries are exhausted,
                or the first one that is not retryable
        """
        for attempt in range(self.max_retries + 1):  # +1 for initial attempt
            try:
                result = await func(*args, **kwargs)

                if attempt > 0:
                    logger.info(
                        f"Retry succeeded on attempt {attempt + 1}/{self.max_retries + 1}"
                    )

                return result

            except Exception as e:
                if not self._should_retry(e):
                    logger.debug(
                        f"Exception {type(e).__name__} is not retryable, failing immediately"
                    )
                    raise

                if attempt >= self.max_retries:
                    logger.error(
                        f"All retry attempts exhausted ({self.max_retries + 1} attempts). "
                        f"Last error: {type(e).__name__}: {str(e)}"
                    )
                    raise

                delay = self._calculate_delay(attempt)

                logger.warning(
                    f"Attempt {attempt + 1}/{self.max_retries + 1} failed: "
                    f"{type(e).__name__}: {str(e)}. "
                    f"Retrying in {delay:.2f}s..."
                )

                await asyncio.sleep(delay)

    def _calculate_delay(self, attempt: int) -> float:
        """
        Calculate exponential backoff delay for given attempt.

        Args:
            attempt: Current attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)
        if self.jitter:
            delay += random.uniform(0, self.jitter)
        return delay

    def get_config(self) -> dict:
        """Get current retry configuration for logging/debugging."""
        return {
            "max_retries": self.max_retries,
            "base_delay": self.base_delay,
            "max_delay": self.max_delay,
            "exponential_base": self.exponential_base,
            "jitter": self.jitter,
            "retry_on_exceptions": [
                e.__name__ for e in self.retry_on_exceptions
            ] if self.retry_on_exceptions else "all"
        }
