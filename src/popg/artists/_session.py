"""
Query session for a single artist search.

A QuerySession binds one QueryDescriptor to the resources used to answer it:
its own rate gate and its own transport (and, through it, one HTTP client).
Sessions are never shared between searches.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Self

if TYPE_CHECKING:
    from popg._config import MusicBrainzConfig

from popg._http import HttpClient
from popg._rate_limit import TokenBucketRateGate
from popg.artists._models import AttemptOutcome, QueryDescriptor, QueryKind
from popg.artists._transport import MusicBrainzTransport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchOptions:
    """
    Configuration options for an artist search.

    Fields set to None will use values from global config (POPG.config.musicbrainz).

    Attributes:
        base_url: Root of the WS/2 API, including the trailing slash.
        user_agent: Value of the identifying User-Agent header.
        request_timeout: Per-request HTTP timeout in seconds.
        retry_max_retries: Maximum retries after the first attempt.
            Use 3 for 4 total attempts (1 original + 3 retries).
        retry_initial_delay: Delay in seconds before the first retry; doubles afterwards.

    Example:
        >>> options = SearchOptions(retry_max_retries=1)
        >>> found, name = search_artist("Craque", options=options)
    """
    base_url: str | None = None
    user_agent: str | None = None
    request_timeout: float | None = None
    retry_max_retries: int | None = None
    retry_initial_delay: float | None = None

    def with_defaults_from(self, cfg: "MusicBrainzConfig") -> "SearchOptions":
        """
        Returns a new SearchOptions with None values filled from config.

        User-provided values take precedence; None values use config defaults.
        """
        return SearchOptions(
            base_url=self.base_url if self.base_url is not None else cfg.base_url,
            user_agent=self.user_agent if self.user_agent is not None else cfg.user_agent,
            request_timeout=self.request_timeout if self.request_timeout is not None else cfg.request_timeout,
            retry_max_retries=self.retry_max_retries if self.retry_max_retries is not None else cfg.retry_max_retries,
            retry_initial_delay=self.retry_initial_delay if self.retry_initial_delay is not None else cfg.retry_initial_delay,
        )


class QuerySession:
    """
    Mutable per-query state: descriptor, rate gate, transport and last body.

    The session exclusively owns its rate gate and transport for its lifetime.
    It is meant for single-threaded use by one search at a time.

    Example:
        >>> with QuerySession.create("Craque") as session:
        ...     result = ArtistSearch().run(session)
        ...     print(session.last_body[:40])

    Attributes:
        descriptor: What is searched and where.
        rate_gate: Token bucket shared by every attempt of this query.
        transport: The transport used for every attempt of this query.
        last_body: Body of the attempt that ended the retry loop ("" until then).
    """

    def __init__(
        self,
        descriptor: QueryDescriptor,
        transport: MusicBrainzTransport,
        rate_gate: TokenBucketRateGate | None = None,
    ):
        assert descriptor is not None, "Session descriptor cannot be None."
        assert transport is not None, "Session transport cannot be None."

        self.descriptor = descriptor
        self.transport = transport
        self.rate_gate = rate_gate or TokenBucketRateGate(max_requests=1, time_window=1.0)
        self.last_body: str = ""

    @classmethod
    def create(
        cls,
        term: str,
        kind: str = QueryKind.ARTIST.value,
        options: SearchOptions | None = None,
        http_client: HttpClient | None = None,
    ) -> Self:
        """
        Build a session from a search term, resolving defaults from global config.

        Args:
            term: The search term.
            kind: The query kind (only "artist" is recognized).
            options: Overrides for the global MusicBrainz config.
            http_client: HTTP client to own. If None, a RequestsHttpClient is created.

        Returns:
            A ready-to-run QuerySession.
        """
        from popg._config import POPG

        resolved = (options or SearchOptions()).with_defaults_from(POPG.config.musicbrainz)
        assert resolved.base_url is not None, \
            "🌀 Sanity check | base_url must be set after with_defaults_from()"
        assert resolved.user_agent is not None, \
            "🌀 Sanity check | user_agent must be set after with_defaults_from()"
        assert resolved.request_timeout is not None, \
            "🌀 Sanity check | request_timeout must be set after with_defaults_from()"

        if http_client is None:
            from popg._http import RequestsHttpClient
            http_client = RequestsHttpClient()

        descriptor = QueryDescriptor.build(term, kind, base_url=resolved.base_url)
        logger.debug(f"Question URL: {descriptor.url}")

        rate_limit = POPG.config.rate_limit
        return cls(
            descriptor=descriptor,
            transport=MusicBrainzTransport(
                http_client=http_client,
                user_agent=resolved.user_agent,
                request_timeout=resolved.request_timeout,
            ),
            rate_gate=TokenBucketRateGate(
                max_requests=rate_limit.max_requests,
                time_window=rate_limit.time_window,
            ),
        )

    def record(self, outcome: AttemptOutcome) -> None:
        """Keep the body of a successful attempt as the session's last body."""
        if outcome.is_success():
            self.last_body = outcome.body

    def close(self) -> None:
        """Release the transport's HTTP resources."""
        self.transport.http_client.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
