"""
Exponential backoff for the artist search attempt loop.

`Retrying` yields one context per attempt. An attempt that raises a
`RetryableError` is suppressed and followed by a cancellable wait, until the
attempt budget runs out. Anything else escapes the loop untouched.

Example:
    >>> from popg._retry import Retrying
    >>> for attempt in Retrying(max_retries=3, initial_delay=1.0):
    ...     with attempt:
    ...         outcome = transport.fetch(url)
    ...         outcome.raise_for_outcome()
    ...         break
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator
from dataclasses import dataclass

from popg._utils import wait_or_cancel

logger = logging.getLogger(__name__)


class RetryableError(Exception):
    """
    Marker base class for failures worth asking the server again about.

    `Retrying` only ever retries subclasses of this exception.

    Example:
        >>> class FlakyUpstreamError(RetryableError):
        ...     pass
    """

    pass


class MaxRetriesExceededError(Exception):
    """
    Raised when the last allowed attempt still ended in a retryable failure.

    Attributes:
        last_exception: The retryable failure of the final attempt.
    """

    def __init__(self, message: str, last_exception: Exception | None = None):
        super().__init__(message)
        self.last_exception = last_exception


class RetryCancelledError(Exception):
    """
    Raised when the cancel event fires while waiting between attempts.

    Attributes:
        last_exception: The retryable failure that started the interrupted wait.
    """

    def __init__(self, message: str, last_exception: Exception | None = None):
        super().__init__(message)
        self.last_exception = last_exception


@dataclass(frozen=True)
class RetryAttempt:
    """
    Metadata of the attempt currently running.

    Attributes:
        attempt_number: Zero-based attempt index.
        max_retries: Retries allowed after the first attempt.
    """

    attempt_number: int
    max_retries: int

    @property
    def max_attempts(self) -> int:
        """Total attempts allowed (first attempt plus retries)."""
        return self.max_retries + 1


class Retrying:
    """
    Attempt loop with exponential, cancellable backoff.

    The wait after attempt `n` (zero-based) is `initial_delay * 2**n`, so the
    defaults give waits of 1s, 2s and 4s across four attempts.

    Args:
        max_retries: Retries after the first attempt. 0 disables retrying and
            lets the first retryable failure propagate unwrapped.
        initial_delay: Wait in seconds after the first failed attempt.
        cancel_event: Optional event that aborts a pending wait.
        logger_prefix: Prefix for log lines (e.g. the query term).

    Raises:
        MaxRetriesExceededError: When the final attempt fails with a RetryableError.
        RetryCancelledError: When cancel_event fires during a wait.
    """

    def __init__(
        self,
        max_retries: int = 3,
        initial_delay: float = 1.0,
        cancel_event: threading.Event | None = None,
        logger_prefix: str = "",
    ):
        assert max_retries >= 0, f"max_retries must be >= 0, got {max_retries}"
        assert initial_delay > 0, f"initial_delay must be > 0, got {initial_delay}"

        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.cancel_event = cancel_event
        self.logger_prefix = logger_prefix

    def __iter__(self) -> Generator[_RetryContext, None, None]:
        for attempt in range(self.max_retries + 1):
            yield _RetryContext(self, attempt)

    def _prefix(self) -> str:
        return f"{self.logger_prefix} | " if self.logger_prefix else ""

    def backoff_for(self, attempt: int) -> float:
        """Seconds to wait after the given zero-based attempt failed."""
        return float(self.initial_delay * (2 ** attempt))

    def _wait_before_next(self, attempt: int, exception: Exception) -> None:
        wait_time = self.backoff_for(attempt)
        logger.warning(
            f"{self._prefix()}Attempt {attempt + 1}/{self.max_retries + 1} failed: {exception}. "
            f"Retrying in {wait_time:.1f}s..."
        )

        if wait_or_cancel(wait_time, self.cancel_event):
            logger.error(f"{self._prefix()}Cancelled while waiting to retry.")
            raise RetryCancelledError(
                f"context done: cancelled during backoff after attempt {attempt + 1}",
                last_exception=exception,
            ) from exception

    def _give_up(self, exception: Exception) -> None:
        logger.error(f"{self._prefix()}Giving up after {self.max_retries + 1} attempts. Last error: {exception}")
        raise MaxRetriesExceededError(
            f"Max retries exceeded. Last error: {exception}",
            last_exception=exception,
        ) from exception


class _RetryContext:
    """
    Wraps one attempt.

    Returning True from __exit__ swallows the failure and lets the loop move on
    to the next attempt; every other path lets an exception escape.
    """

    def __init__(self, retrying: Retrying, attempt: int):
        self._retrying = retrying
        self.attempt = attempt

    def __enter__(self) -> RetryAttempt:
        return RetryAttempt(attempt_number=self.attempt, max_retries=self._retrying.max_retries)

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> bool:
        if not isinstance(exc_val, RetryableError):
            return False

        if self._retrying.max_retries == 0:
            return False

        if self.attempt >= self._retrying.max_retries:
            self._retrying._give_up(exc_val)

        self._retrying._wait_before_next(self.attempt, exc_val)
        return True
