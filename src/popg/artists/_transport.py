"""
Transport for MusicBrainz artist searches.

Performs one HTTP GET per call and turns whatever happened into an
AttemptOutcome. Failures are returned, not raised, so the retry controller
can classify them in one place.
"""

import logging
import threading

import requests

from popg._http import HttpClient, TransportError, UnexpectedStatusError
from popg.artists._models import AttemptOutcome

logger = logging.getLogger(__name__)


class MusicBrainzTransport:
    """
    Single-request transport against the MusicBrainz WS/2 API.

    Every request carries exactly one header, the identifying `User-Agent`
    required by the MusicBrainz usage policy, and a fixed per-call timeout.

    Example:
        >>> transport = MusicBrainzTransport(RequestsHttpClient(), user_agent="popg/v0.1.0 ( ... )")
        >>> outcome = transport.fetch("https://musicbrainz.org/ws/2/artist/?query=artist:Craque&fmt=json")
        >>> outcome.status
        200

    Attributes:
        http_client: The HTTP client owned by this transport.
        user_agent: Value of the User-Agent header.
        request_timeout: Per-call timeout in seconds.
    """

    def __init__(
        self,
        http_client: HttpClient,
        user_agent: str,
        request_timeout: float = 5.0,
    ):
        assert http_client is not None, "Transport http_client cannot be None."
        assert user_agent, "Transport user_agent cannot be empty."
        assert request_timeout > 0, "Transport request_timeout must be greater than 0."

        self.http_client = http_client
        self.user_agent = user_agent
        self.request_timeout = request_timeout

    @property
    def headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent}

    def fetch(self, url: str, cancel_event: threading.Event | None = None) -> AttemptOutcome:
        """
        Execute one GET and classify the response.

        Outcomes:
            - 200: body read in full; read/decode failure -> TransportError.
            - 503: body not read; no error attached (server rate limit signal).
            - other status: UnexpectedStatusError attached.
            - no response (connection, DNS, timeout): status 0, TransportError attached.

        Args:
            url: Fully assembled URL.
            cancel_event: If already set, the request is not sent.

        Returns:
            The AttemptOutcome of this call.
        """
        if cancel_event is not None and cancel_event.is_set():
            logger.error(f"Request cancelled before sending: {url}")
            return AttemptOutcome(status=0, error=TransportError(f"request cancelled: {url}", url=url))

        try:
            response = self.http_client.get(
                url,
                headers=self.headers,
                timeout=self.request_timeout,
                stream=True,
            )
        except requests.RequestException as e:
            logger.error(f"Failed to fetch body: {url} ({e})")
            return AttemptOutcome(status=0, error=TransportError(f"failed to fetch {url}: {e}", url=url, cause=e))

        try:
            return self._classify(url, response)
        finally:
            response.close()

    def _classify(self, url: str, response: requests.Response) -> AttemptOutcome:
        status = response.status_code

        if status == 503:
            logger.warning(f"Request hit rate limit: {url}")
            return AttemptOutcome(status=status)

        if status != 200:
            reason = response.reason or ""
            logger.error(f"Failed to fetch: {url} (status={status} {reason})")
            return AttemptOutcome(status=status, error=UnexpectedStatusError(status, reason, url=url))

        try:
            body = response.content.decode("utf-8")
        except (requests.RequestException, UnicodeDecodeError) as e:
            logger.error(f"Failed to read response body: {url} ({e})")
            return AttemptOutcome(
                status=status,
                error=TransportError(f"failed to read response body from {url}: {e}", url=url, cause=e),
            )

        logger.info(f"Data fetched: status={status} url={url}")
        return AttemptOutcome(status=status, body=body)
