"""
HTTP client abstraction for the popg package.

This module provides a small HTTP client interface that the transport layer
talks to, so tests and callers can swap the network implementation.

Available implementations:
    - HttpClient: Abstract base class for HTTP clients.
    - RequestsHttpClient: Uses a single `requests.Session` for its whole lifetime.

Example:
    >>> from popg._http import RequestsHttpClient
    >>> with RequestsHttpClient() as client:
    ...     response = client.get("https://musicbrainz.org/ws/2/artist/?query=artist:Craque&fmt=json")
"""

import logging
from abc import ABC, abstractmethod
from typing import Self, override

import requests

from popg._retry import RetryableError

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class TransportError(RetryableError):
    """
    Raised when an HTTP exchange fails before a usable response is obtained.

    Covers connection refused, DNS failures, timeouts and failures while reading
    the response body. Extends RetryableError so it's retried exactly like a
    server-side rate limit until the attempt budget is exhausted.

    Attributes:
        url: The URL being fetched.
        cause: The underlying exception, if any.
    """

    def __init__(self, message: str, url: str, cause: Exception | None = None):
        super().__init__(message)
        self.url = url
        self.cause = cause


class UnexpectedStatusError(Exception):
    """
    Raised when the server answers with a status that is neither 200 nor 503.

    Not retryable: a 4xx/5xx other than 503 will not change by asking again.

    Attributes:
        status_code: The HTTP status code received.
        reason: The HTTP reason phrase (e.g. "Not Found").
        url: The URL that was fetched.
    """

    def __init__(self, status_code: int, reason: str = "", url: str = ""):
        self.status_code = status_code
        self.reason = reason
        self.url = url
        super().__init__(f"{status_code} {reason}".strip())


# =============================================================================
# Abstract Base Class
# =============================================================================


class HttpClient(ABC):
    """
    Abstract base class for HTTP clients.

    Example:
        >>> class MyHttpClient(HttpClient):
        ...     def get(self, url, headers=None, timeout=5, stream=False):
        ...         return requests.get(url, headers=headers, timeout=timeout, stream=stream)
    """

    @abstractmethod
    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 5,
        stream: bool = False,
    ) -> requests.Response:
        """
        Execute a GET request.

        Args:
            url: The full URL to request.
            headers: Headers to send.
            timeout: Request timeout in seconds.
            stream: If True, the body is not downloaded until accessed.

        Returns:
            The HTTP response.

        Raises:
            requests.RequestException: If the HTTP request fails.
        """
        pass

    def close(self) -> None:
        """Release any pooled resources. No-op by default."""
        pass


# =============================================================================
# requests implementation
# =============================================================================


class RequestsHttpClient(HttpClient):
    """
    HTTP client backed by one `requests.Session`.

    The session (and its connection pool) is created once and reused for every
    call until `close()` is invoked.

    Example:
        >>> client = RequestsHttpClient()
        >>> try:
        ...     response = client.get("https://example.com", timeout=5)
        ... finally:
        ...     client.close()

    Args:
        session: Optional pre-built session (useful for tests or custom adapters).
    """

    def __init__(self, session: requests.Session | None = None):
        self._session = session or requests.Session()

    @override
    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 5,
        stream: bool = False,
    ) -> requests.Response:
        """
        Execute a GET request on the owned session.

        Raises:
            AssertionError: If url is empty or timeout is invalid.
            requests.RequestException: If the HTTP request fails.
        """
        assert url, "URL cannot be empty."
        assert timeout is not None, "Timeout cannot be None."
        assert timeout > 0, "Timeout must be greater than 0."

        return self._session.get(
            url,
            headers=headers,
            timeout=timeout,
            stream=stream,
        )

    @override
    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
