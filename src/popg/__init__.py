"""
popg: polite MusicBrainz artist lookups.

A small client that searches the MusicBrainz catalog for an artist while
staying within the service's usage policy: one request per second, an
identifying User-Agent, and exponential backoff when the server answers 503.

Quick Start:
    >>> from popg import search_artist
    >>> found, name = search_artist("Craque")
    >>> print(name)

Global Configuration:
    >>> from popg import POPG
    >>> POPG.configure(musicbrainz={"retry_max_retries": 5})

Main Classes:
    - ArtistSearch: Retrying, rate-limited artist search.
    - QuerySession: Per-query descriptor, rate gate, transport and last body.
    - SearchOptions: Per-search overrides of the global configuration.
    - SearchResult: Outcome of a search (found flag + name or not-found message).

Configuration:
    - POPG: Global configuration singleton.
    - PopgConfig, MusicBrainzConfig, RateLimitConfig: Configuration dataclasses.
    - ConfigEnvVarError, ConfigValidationError: Configuration errors.

HTTP / Rate limiting / Retry:
    - HttpClient, RequestsHttpClient: HTTP client abstraction.
    - TokenBucketRateGate: Token bucket with a cancellable admit().
    - Retrying: Context manager for retry with exponential backoff.
"""

from importlib.metadata import version as _get_version

__version__ = _get_version("popg")

from popg._config import (
    POPG,
    ConfigEntry,
    ConfigEnvVarError,
    ConfigValidationError,
    MusicBrainzConfig,
    PopgConfig,
    RateLimitConfig,
)
from popg._http import (
    HttpClient,
    RequestsHttpClient,
    TransportError,
    UnexpectedStatusError,
)
from popg._rate_limit import (
    RateGateCancelledError,
    ServerSideRateLimitError,
    TokenBucketRateGate,
)
from popg._retry import (
    MaxRetriesExceededError,
    RetryableError,
    RetryCancelledError,
    Retrying,
)
from popg.artists import (
    ArtistSearch,
    ArtistSearchError,
    Match,
    QueryDescriptor,
    QueryKind,
    QuerySession,
    ResponseDecodeError,
    ResultSet,
    SearchOptions,
    SearchResult,
    SpanRecorder,
    search_artist,
)

__all__ = [
    "__version__",
    # Configuration
    "POPG",
    "PopgConfig",
    "MusicBrainzConfig",
    "RateLimitConfig",
    "ConfigEntry",
    "ConfigEnvVarError",
    "ConfigValidationError",
    # HTTP Client
    "HttpClient",
    "RequestsHttpClient",
    "TransportError",
    "UnexpectedStatusError",
    # Rate limiting
    "TokenBucketRateGate",
    "RateGateCancelledError",
    "ServerSideRateLimitError",
    # Retry
    "Retrying",
    "RetryableError",
    "RetryCancelledError",
    "MaxRetriesExceededError",
    # Artists
    "ArtistSearch",
    "ArtistSearchError",
    "QuerySession",
    "QueryDescriptor",
    "QueryKind",
    "SearchOptions",
    "SearchResult",
    "ResultSet",
    "Match",
    "ResponseDecodeError",
    "SpanRecorder",
    "search_artist",
]
