"""
Artist search client for MusicBrainz.

This module runs one logical artist query: every attempt is admitted by the
session's rate gate, sent through the session's transport, and classified.
Retryable outcomes (HTTP 503 and transport failures) are retried with
exponential backoff; everything else either ends the loop successfully or
aborts the search.
"""

import logging
import threading
from typing import Any

from popg._http import HttpClient, UnexpectedStatusError
from popg._rate_limit import RateGateCancelledError, ServerSideRateLimitError
from popg._retry import MaxRetriesExceededError, RetryableError, RetryCancelledError, Retrying
from popg.artists._decoder import ResponseDecodeError, decode_result_set
from popg.artists._listeners import SearchEventListener
from popg.artists._models import QueryKind, SearchResult
from popg.artists._session import QuerySession, SearchOptions

logger = logging.getLogger(__name__)

NOT_FOUND_PREFIX = "Not Found: "


class ArtistSearchError(RuntimeError):
    """
    Exception raised when an artist search fails.

    Wraps the proximate cause so callers can tell a cancelled search from an
    exhausted retry budget or a malformed answer.

    Attributes:
        message: Human-readable error message.
        term: The search term.
        cause: The original exception that aborted the search.

    Example:
        >>> try:
        ...     found, name = search_artist("Craque")
        ... except ArtistSearchError as e:
        ...     print(f"Search failed: {e}")
        ...     print(f"Original error: {e.cause!r}")
    """

    def __init__(self, message: str, term: str, cause: Exception | None = None):
        super().__init__(message)
        self.term = term
        self.cause = cause


class ArtistSearch:
    """
    Retrying, rate-limited artist search.

    Algorithm (with the default 3 retries):
        1. Before every attempt, wait for the session's rate gate.
        2. Fetch; HTTP 503 or a transport failure is retryable.
        3. Any other non-200 status aborts the search immediately.
        4. On the last attempt, a retryable outcome aborts with "max retries reached".
        5. Otherwise wait 1s, 2s, 4s... (cancellable) and try again.
        6. Decode the retained body; "count == 0" means not found.

    Example:
        >>> with QuerySession.create("Craque") as session:
        ...     result = ArtistSearch().run(session)
        >>> result.found, result.text
        (True, 'Craque')

    Attributes:
        options: Retry options (None fields are filled from global config).
        listeners: Event listeners receiving search and attempt events.
    """

    def __init__(
        self,
        options: SearchOptions | None = None,
        listeners: list[SearchEventListener] | None = None,
    ):
        from popg._config import POPG

        self.options = (options or SearchOptions()).with_defaults_from(POPG.config.musicbrainz)
        self.listeners: list[SearchEventListener] = list(listeners or [])

    def run(
        self,
        session: QuerySession,
        cancel_event: threading.Event | None = None,
    ) -> SearchResult:
        """
        Execute the search for the session's descriptor.

        Args:
            session: The query session to run (provides descriptor, gate and transport).
            cancel_event: Optional event; setting it aborts the rate gate wait or
                the backoff wait currently in progress.

        Returns:
            SearchResult with found=True and the top match's name, or found=False
            and "Not Found: <term>".

        Raises:
            ArtistSearchError: If the search is cancelled, hits a non-retryable
                status, exhausts its retries, receives an undecodable body, or
                the HTTP client raises something other than a requests error.
        """
        assert session, "🌀 Sanity check | Query session can not be None."

        term = session.descriptor.term
        if not session.descriptor.is_queryable:
            logger.warning(f"{self._prefix(term)} | Unknown query kind '{session.descriptor.kind}', URL will not be queryable")

        context: dict[str, Any] = {}
        self._notify_listeners("on_search_start", session=session, context=context)

        try:
            attempts = self._fetch_with_retry(session, cancel_event, context)
            result = self._decode(session, attempts)
        except ArtistSearchError as e:
            self._notify_listeners("on_search_end", session=session, result=None, error=e, context=context)
            raise
        except Exception as e:
            logger.exception(f"{self._prefix(term)} | Unexpected error while searching: {e}")
            error = ArtistSearchError(f"unexpected error: {e}", term=term, cause=e)
            self._notify_listeners("on_search_end", session=session, result=None, error=error, context=context)
            raise error from e

        self._notify_listeners("on_search_end", session=session, result=result, error=None, context=context)
        return result

    def _fetch_with_retry(
        self,
        session: QuerySession,
        cancel_event: threading.Event | None,
        context: dict[str, Any],
    ) -> int:
        """
        Run the attempt loop until a 200 is retained in the session.

        Returns:
            The number of attempts made.

        Raises:
            ArtistSearchError: On any fatal outcome.
        """
        assert self.options.retry_max_retries is not None, \
            "🌀 Sanity check | retry_max_retries must be set after with_defaults_from()"
        assert self.options.retry_initial_delay is not None, \
            "🌀 Sanity check | retry_initial_delay must be set after with_defaults_from()"

        term = session.descriptor.term
        url = session.descriptor.url
        attempts = 0

        try:
            for attempt in Retrying(
                max_retries=self.options.retry_max_retries,
                initial_delay=self.options.retry_initial_delay,
                cancel_event=cancel_event,
                logger_prefix=self._prefix(term),
            ):
                with attempt as current:
                    session.rate_gate.admit(cancel_event)
                    attempts += 1
                    logger.debug(
                        f"{self._prefix(term)} | Fetching {url} "
                        f"(attempt {current.attempt_number + 1}/{current.max_attempts})"
                    )

                    self._notify_listeners(
                        "on_attempt_start", session=session,
                        attempt_number=current.attempt_number, context=context,
                    )
                    outcome = session.transport.fetch(url, cancel_event)
                    self._notify_listeners(
                        "on_attempt_end", session=session,
                        attempt_number=current.attempt_number, outcome=outcome, context=context,
                    )

                    session.record(outcome)
                    outcome.raise_for_outcome()
                    return attempts

            # Should never reach here - Retrying raises or the loop returns
            raise RuntimeError(
                "Unexpected error while searching: reached end of retry loop without a response."
            )

        except RateGateCancelledError as e:
            logger.error(f"{self._prefix(term)} | Rate limit wait cancelled")
            raise ArtistSearchError(f"rate limit wait: {e}", term=term, cause=e) from e

        except UnexpectedStatusError as e:
            logger.error(f"{self._prefix(term)} | Unrecoverable error, no retry: {url} ({e})")
            raise ArtistSearchError(f"unrecoverable error: {e}", term=term, cause=e) from e

        except RetryCancelledError as e:
            raise ArtistSearchError(str(e), term=term, cause=e) from e

        except MaxRetriesExceededError as e:
            raise ArtistSearchError(self._exhausted_message(e.last_exception), term=term, cause=e) from e

        except RetryableError as e:
            # Retries disabled (max_retries=0): the single retryable failure is final
            raise ArtistSearchError(self._exhausted_message(e), term=term, cause=e) from e

    @staticmethod
    def _exhausted_message(last_exception: Exception | None) -> str:
        if isinstance(last_exception, ServerSideRateLimitError):
            return f"max retries exceeded, last status: {last_exception.status_code}"
        return f"max retries reached with error: {last_exception}"

    def _decode(self, session: QuerySession, attempts: int) -> SearchResult:
        term = session.descriptor.term
        try:
            result_set = decode_result_set(session.last_body)
        except ResponseDecodeError as e:
            logger.error(f"{self._prefix(term)} | Failed to unmarshal artist info: {session.descriptor.url}")
            raise ArtistSearchError(str(e), term=term, cause=e) from e

        best = result_set.best_match()
        if best is None:
            logger.info(f"{self._prefix(term)} | No artist matched")
            return SearchResult(
                found=False,
                text=NOT_FOUND_PREFIX + term,
                result_set=result_set,
                attempts=attempts,
            )

        logger.info(f"{self._prefix(term)} | Found '{best.name}' (score={best.score}, id={best.id})")
        return SearchResult(found=True, text=best.name, result_set=result_set, attempts=attempts)

    @staticmethod
    def _prefix(term: str) -> str:
        return f"{term[:26]:<26} | ArtistSearch"

    def _notify_listeners(self, event: str, **kwargs: Any) -> None:
        """
        Notifies all registered listeners about an event.

        Exceptions raised by listeners are logged but do not interrupt the search.

        Args:
            event: The event method name (e.g., 'on_attempt_start').
            **kwargs: Keyword arguments to pass to the listener method.
        """
        session: QuerySession | None = kwargs.get("session")
        term = session.descriptor.term if session else "unknown"

        for listener in self.listeners:
            try:
                method = getattr(listener, event, None)
                if method and callable(method):
                    method(**kwargs)
            except Exception as e:
                listener_name = listener.__class__.__name__
                logger.warning(
                    f"{self._prefix(term)} | Event listener `{listener_name}.{event}()` raised an exception: {e}",
                    exc_info=logger.isEnabledFor(logging.DEBUG),
                )


def search_artist(
    term: str,
    kind: str = QueryKind.ARTIST.value,
    *,
    cancel_event: threading.Event | None = None,
    options: SearchOptions | None = None,
    http_client: HttpClient | None = None,
    listeners: list[SearchEventListener] | None = None,
) -> tuple[bool, str]:
    """
    Search MusicBrainz for an artist and return the best match.

    Builds a fresh QuerySession (which takes ownership of `http_client` and
    closes it afterwards), runs it through ArtistSearch, and unpacks the result.

    Args:
        term: The search term.
        kind: The query kind (only "artist" is recognized).
        cancel_event: Optional event to cancel the rate gate or backoff waits.
        options: Overrides for the global MusicBrainz config.
        http_client: HTTP client to use. If None, a RequestsHttpClient is created.
        listeners: Event listeners receiving search and attempt events.

    Returns:
        (found, text): found=True with the top match's display name, or
        found=False with "Not Found: <term>".

    Raises:
        ArtistSearchError: If the search fails.

    Example:
        >>> found, name = search_artist("Craque")
        >>> print(name if found else "nothing")
    """
    with QuerySession.create(term, kind, options=options, http_client=http_client) as session:
        found, text = ArtistSearch(options=options, listeners=listeners).run(session, cancel_event)
    return found, text

