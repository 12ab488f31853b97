"""
Event listeners for artist searches.

This module contains the SearchEventListener base class and a concrete
implementation that records trace spans for each search and each attempt.

Available Listeners:
    - SearchEventListener: Base class for all event listeners.
    - SpanRecorder: Collects Span records annotated with query, URL, attempt and status.

Example:
    >>> from popg.artists import ArtistSearch, SpanRecorder
    >>> recorder = SpanRecorder()
    >>> search = ArtistSearch(listeners=[recorder])
    >>> search.run(session)
    >>> [span.name for span in recorder.spans]
    ['fetch', 'ArtistSearch']
"""

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, override

if TYPE_CHECKING:
    from popg.artists._models import AttemptOutcome, SearchResult
    from popg.artists._session import QuerySession

ATTR_FIND_STRING = "find.string"
ATTR_HTTP_URL = "http.url"
ATTR_HTTP_METHOD = "http.method"
ATTR_HTTP_STATUS_CODE = "http.status_code"
ATTR_RETRY_ATTEMPT = "retry.attempt"


class SearchEventListener:
    """
    Base class for observing the artist search lifecycle.

    Listeners are read-only observers: they can react to events, log, notify,
    or collect telemetry, but should NOT modify the session or the result.

    The `context` dict is shared across all listener calls for a single search,
    allowing listeners to store and retrieve state (e.g., start time).

    All methods have default empty implementations, so subclasses only need to
    override the methods they care about.

    Example:
        >>> class AttemptCounter(SearchEventListener):
        ...     def on_attempt_start(self, session, attempt_number, context):
        ...         context["attempts"] = attempt_number + 1
    """

    def on_search_start(self, session: "QuerySession", context: dict[str, Any]) -> None:
        """
        Called before the first attempt.

        Args:
            session: The query session about to be run.
            context: Mutable dict for sharing state between listener calls.
        """
        pass

    def on_attempt_start(
        self,
        session: "QuerySession",
        attempt_number: int,
        context: dict[str, Any],
    ) -> None:
        """
        Called after the rate gate admitted an attempt, right before the HTTP call.

        Args:
            session: The query session being run.
            attempt_number: Zero-based attempt index.
            context: Mutable dict for sharing state between listener calls.
        """
        pass

    def on_attempt_end(
        self,
        session: "QuerySession",
        attempt_number: int,
        outcome: "AttemptOutcome",
        context: dict[str, Any],
    ) -> None:
        """
        Called once the transport returned an outcome for the attempt.

        Args:
            session: The query session being run.
            attempt_number: Zero-based attempt index.
            outcome: What the transport observed (status, body, failure).
            context: Mutable dict for sharing state between listener calls.
        """
        pass

    def on_search_end(
        self,
        session: "QuerySession",
        result: "SearchResult | None",
        error: Exception | None,
        context: dict[str, Any],
    ) -> None:
        """
        Called when the search finishes, successfully or not.

        Args:
            session: The query session that was run.
            result: The search result, or None if the search failed.
            error: The failure that aborted the search, or None on success.
            context: Mutable dict for sharing state between listener calls.
        """
        pass


@dataclass
class Span:
    """
    A finished (or in-flight) trace span.

    Attributes:
        name: Span name ("ArtistSearch" for the whole search, "fetch" per attempt).
        attributes: Key/value annotations (find.string, http.url, retry.attempt, ...).
        errors: Errors recorded on the span.
        start_time: Monotonic start time.
        end_time: Monotonic end time, None while the span is open.
    """
    name: str
    attributes: dict[str, Any] = field(default_factory=dict)
    errors: list[Exception] = field(default_factory=list)
    start_time: float = field(default_factory=time.monotonic)
    end_time: float | None = None

    def end(self) -> None:
        self.end_time = time.monotonic()

    @property
    def duration(self) -> float | None:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time


class SpanRecorder(SearchEventListener):
    """
    Listener that records one span per search plus one child span per attempt.

    Spans are appended to `spans` as they end, so attempt spans precede the
    search span they belong to.

    Example:
        >>> recorder = SpanRecorder()
        >>> search = ArtistSearch(listeners=[recorder])
        >>> search.run(session)
        >>> recorder.spans[-1].attributes["retry.attempt"]
        0
    """

    def __init__(self) -> None:
        self.spans: list[Span] = []

    def spans_named(self, name: str) -> list[Span]:
        """Returns the finished spans with the given name, in end order."""
        return [span for span in self.spans if span.name == name]

    @override
    def on_search_start(self, session: "QuerySession", context: dict[str, Any]) -> None:
        context["span.search"] = Span(
            name="ArtistSearch",
            attributes={
                ATTR_FIND_STRING: session.descriptor.term,
                ATTR_HTTP_URL: session.descriptor.url,
            },
        )

    @override
    def on_attempt_start(
        self,
        session: "QuerySession",
        attempt_number: int,
        context: dict[str, Any],
    ) -> None:
        search_span: Span | None = context.get("span.search")
        if search_span is not None:
            search_span.attributes[ATTR_RETRY_ATTEMPT] = attempt_number
        context["span.attempt"] = Span(
            name="fetch",
            attributes={
                ATTR_HTTP_URL: session.descriptor.url,
                ATTR_HTTP_METHOD: "GET",
                ATTR_RETRY_ATTEMPT: attempt_number,
            },
        )

    @override
    def on_attempt_end(
        self,
        session: "QuerySession",
        attempt_number: int,
        outcome: "AttemptOutcome",
        context: dict[str, Any],
    ) -> None:
        span: Span | None = context.pop("span.attempt", None)
        if span is None:
            return
        if outcome.status:
            span.attributes[ATTR_HTTP_STATUS_CODE] = outcome.status
        if outcome.error is not None:
            span.errors.append(outcome.error)
        span.end()
        self.spans.append(span)

    @override
    def on_search_end(
        self,
        session: "QuerySession",
        result: "SearchResult | None",
        error: Exception | None,
        context: dict[str, Any],
    ) -> None:
        # An attempt that never reported its outcome is closed with the search error
        attempt_span: Span | None = context.pop("span.attempt", None)
        if attempt_span is not None:
            if error is not None:
                attempt_span.errors.append(error)
            attempt_span.end()
            self.spans.append(attempt_span)

        span: Span | None = context.pop("span.search", None)
        if span is None:
            return
        if error is not None:
            span.errors.append(error)
        span.end()
        self.spans.append(span)
