"""
Rate limiting components for the popg package.

This module provides the client-side rate gate used to stay within the
MusicBrainz usage policy (roughly one request per second), plus the error
raised when the server itself signals that we are going too fast.

Available components:
    - TokenBucketRateGate: Token Bucket limiter with a cancellable admit().
    - RateGateCancelledError: Raised when the admit wait is cancelled.
    - ServerSideRateLimitError: Raised when the server answers HTTP 503.

Example:
    >>> from popg._rate_limit import TokenBucketRateGate
    >>> gate = TokenBucketRateGate(max_requests=1, time_window=1.0)
    >>> gate.admit()  # returns immediately
    >>> gate.admit()  # blocks ~1s until the next token
"""

import logging
import threading
import time

from popg._retry import RetryableError

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class RateGateCancelledError(Exception):
    """
    Raised when the cancel event fires before a rate limit token is available.

    Unlike the retryable errors, this one is fatal: a cancelled caller does not
    want any further attempts.

    Attributes:
        waited: Time in seconds spent waiting before the cancellation.
    """

    def __init__(self, waited: float):
        self.waited = waited
        super().__init__(f"rate limit wait cancelled after {waited:.2f}s")


class ServerSideRateLimitError(RetryableError):
    """
    Raised when the server returns HTTP 503 (MusicBrainz's rate limit signal).

    Extends RetryableError so it's automatically retried by the Retrying
    context manager.

    Attributes:
        status_code: The HTTP status code received (503).
    """

    def __init__(self, status_code: int = 503):
        self.status_code = status_code
        super().__init__(f"Server rate limit exceeded, last status: {status_code}")


# =============================================================================
# Token Bucket
# =============================================================================


class TokenBucketRateGate:
    """
    Token Bucket rate gate with a cancellable wait.

    The bucket starts full, holds at most `max_requests` tokens and refills at
    `max_requests / time_window` tokens per second. A single instance must be
    shared by every attempt of one logical query so retries are limited in
    aggregate. Not thread-safe: one gate per query session.

    Example:
        >>> gate = TokenBucketRateGate(max_requests=1, time_window=1.0)
        >>> cancel = threading.Event()
        >>> gate.admit(cancel)

    Args:
        max_requests: Bucket capacity, i.e. requests allowed per time window.
        time_window: Time window in seconds for the rate limit.
    """

    def __init__(self, max_requests: int = 1, time_window: float = 1.0):
        assert max_requests is not None, "max_requests cannot be None."
        assert max_requests > 0, "max_requests must be greater than 0."
        assert time_window is not None, "time_window cannot be None."
        assert time_window > 0, "time_window must be greater than 0."

        self.max_requests = max_requests
        self.time_window = time_window

        self._tokens = float(max_requests)
        self._last_refill = time.monotonic()

    @property
    def refill_rate(self) -> float:
        """Tokens added per second."""
        return self.max_requests / self.time_window

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed_since_refill = now - self._last_refill
        self._tokens = min(
            float(self.max_requests),
            self._tokens + elapsed_since_refill * self.refill_rate,
        )
        self._last_refill = now

    def admit(self, cancel_event: threading.Event | None = None) -> None:
        """
        Take one token, blocking until one is available.

        Args:
            cancel_event: Optional event; if it is set before a token becomes
                available, the wait is aborted.

        Raises:
            RateGateCancelledError: If cancel_event fires while waiting.
        """
        start_time = time.monotonic()

        while True:
            if cancel_event is not None and cancel_event.is_set():
                raise RateGateCancelledError(waited=time.monotonic() - start_time)

            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return

            wait_time = (1.0 - self._tokens) / self.refill_rate
            logger.debug(f"Rate gate closed, waiting {wait_time:.3f}s for next token")

            if cancel_event is None:
                time.sleep(wait_time)
            elif cancel_event.wait(timeout=wait_time):
                raise RateGateCancelledError(waited=time.monotonic() - start_time)
