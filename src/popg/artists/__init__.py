"""
Artist search module for MusicBrainz.

This module provides a rate-limited, retrying client for the MusicBrainz
WS/2 artist search.

Example:
    >>> from popg.artists import search_artist
    >>> found, name = search_artist("Craque")
    >>> print(name)

For control over the session and diagnostics:
    >>> from popg.artists import ArtistSearch, QuerySession, SpanRecorder
    >>> recorder = SpanRecorder()
    >>> with QuerySession.create("Craque") as session:
    ...     result = ArtistSearch(listeners=[recorder]).run(session)
    >>> result.best_match.score
    100
"""

from popg.artists._decoder import (
    ResponseDecodeError,
    decode_result_set,
)
from popg.artists._listeners import (
    SearchEventListener,
    Span,
    SpanRecorder,
)
from popg.artists._models import (
    AttemptOutcome,
    Match,
    QueryDescriptor,
    QueryKind,
    ResultSet,
    SearchResult,
)
from popg.artists._search import (
    NOT_FOUND_PREFIX,
    ArtistSearch,
    ArtistSearchError,
    search_artist,
)
from popg.artists._session import (
    QuerySession,
    SearchOptions,
)
from popg.artists._transport import MusicBrainzTransport

__all__ = [
    # Main client
    "ArtistSearch",
    "search_artist",
    "QuerySession",
    "MusicBrainzTransport",
    # Options
    "SearchOptions",
    # Data models
    "QueryKind",
    "QueryDescriptor",
    "AttemptOutcome",
    "Match",
    "ResultSet",
    "SearchResult",
    "NOT_FOUND_PREFIX",
    # Decoding
    "decode_result_set",
    # Event listeners
    "SearchEventListener",
    "Span",
    "SpanRecorder",
    # Exceptions
    "ArtistSearchError",
    "ResponseDecodeError",
]
