"""
Data models for MusicBrainz artist searches.

This module contains the data classes used to describe a query, the outcome
of each HTTP attempt, and the decoded answer from the MusicBrainz WS/2 API.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from popg._http import UnexpectedStatusError
from popg._rate_limit import ServerSideRateLimitError
from popg._utils import cat_url

FMT_JSON = "&fmt=json"


class QueryKind(Enum):
    """
    Entity kinds that can be searched.

    Attributes:
        ARTIST: Search MusicBrainz artists by name.
    """
    ARTIST = "artist"

    @property
    def query_prefix(self) -> str:
        """Path and query-string prefix placed before the search term."""
        return f"/?query={self.value}:"

    @classmethod
    def from_value(cls, value: str) -> "QueryKind | None":
        """Return the matching kind, or None when the value is not a known kind."""
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class QueryDescriptor:
    """
    Immutable description of what is searched and where.

    Attributes:
        term: The search term, used verbatim (no escaping).
        kind: The query kind as given by the caller (only "artist" is queryable).
        url: The fully assembled target URL.

    Example:
        >>> q = QueryDescriptor.build("Craque", "artist")
        >>> q.url
        'https://musicbrainz.org/ws/2/artist/?query=artist:Craque&fmt=json'
    """
    term: str
    kind: str
    url: str

    @classmethod
    def build(
        cls,
        term: str,
        kind: str = QueryKind.ARTIST.value,
        base_url: str = "https://musicbrainz.org/ws/2/",
    ) -> "QueryDescriptor":
        """
        Assemble the descriptor and its URL.

        Unknown kinds get an empty query segment, which yields a URL the
        service will not answer with a result set.

        Args:
            term: The search term.
            kind: The query kind (only "artist" is recognized).
            base_url: WS/2 root, including the trailing slash.

        Returns:
            A new QueryDescriptor.
        """
        known = QueryKind.from_value(kind)
        query_prefix = known.query_prefix if known else ""
        url = cat_url(base_url, kind, query_prefix, term, FMT_JSON)
        return cls(term=term, kind=kind, url=url)

    @property
    def is_queryable(self) -> bool:
        """Returns True if the kind is one the service understands."""
        return QueryKind.from_value(self.kind) is not None


@dataclass(frozen=True)
class AttemptOutcome:
    """
    Result of a single HTTP attempt.

    Attributes:
        status: HTTP status code, or 0 if no response was received.
        body: Raw response body; empty unless status is 200.
        error: Failure raised by the transport, if any.
    """
    status: int
    body: str = ""
    error: Exception | None = None

    def is_success(self) -> bool:
        """Returns True for a 200 response with no failure attached."""
        return self.status == 200 and self.error is None

    def is_rate_limited(self) -> bool:
        """Returns True if the server signalled its rate limit (HTTP 503)."""
        return self.status == 503 and self.error is None

    def raise_for_outcome(self) -> None:
        """
        Raise the exception matching this outcome, or return on success.

        Raises:
            TransportError: Connection, timeout or body read failure (retryable).
            ServerSideRateLimitError: On HTTP 503 (retryable).
            UnexpectedStatusError: On any other non-200 status (fatal).
        """
        if self.error is not None:
            raise self.error
        if self.status == 503:
            raise ServerSideRateLimitError(self.status)
        if self.status != 200:
            raise UnexpectedStatusError(self.status)


@dataclass(frozen=True)
class Match:
    """
    One candidate artist returned by the search.

    Attributes:
        id: MusicBrainz identifier (MBID).
        name: Display name.
        type: Entity subtype (e.g. "Person", "Group").
        country: Optional ISO country code.
        disambiguation: Optional disambiguation comment.
        score: Relevance score assigned by the server (0-100).
    """
    id: str
    name: str
    type: str = ""
    country: str | None = None
    disambiguation: str | None = None
    score: int = 0

    @classmethod
    def from_api_payload(cls, data: dict[str, Any]) -> "Match":
        """Builds a Match from one entry of the `artists` array."""
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            type=data.get("type") or "",
            country=data.get("country") or None,
            disambiguation=data.get("disambiguation") or None,
            score=int(data.get("score") or 0),
        )


@dataclass(frozen=True)
class ResultSet:
    """
    Decoded answer of an artist search.

    Attributes:
        count: Total number of matches reported by the server.
        offset: Offset of the first returned match.
        artists: Matches in server rank order (highest score first).
    """
    count: int
    offset: int = 0
    artists: list[Match] = field(default_factory=list)

    def best_match(self) -> Match | None:
        """Returns the top-ranked match, or None when nothing matched."""
        if self.count == 0 or not self.artists:
            return None
        return self.artists[0]


@dataclass(frozen=True)
class SearchResult:
    """
    Outcome of a completed artist search.

    A search that matched nothing is still a successful search: `found` is
    False and `text` carries a "Not Found: <term>" message.

    Attributes:
        found: True if at least one artist matched.
        text: The best match's display name, or the not-found message.
        result_set: The decoded answer.
        attempts: Number of HTTP attempts made.

    Example:
        >>> found, name = search.run(session)
    """
    found: bool
    text: str
    result_set: ResultSet | None = None
    attempts: int = 1

    def __iter__(self) -> Iterator[Any]:
        yield self.found
        yield self.text

    @property
    def best_match(self) -> Match | None:
        """The top-ranked match, if any."""
        return self.result_set.best_match() if self.result_set else None
