"""
Decoding of MusicBrainz artist search bodies.

The expected document is::

    {"count": int, "offset": int, "artists": [{"id": ..., "name": ..., "score": ...}, ...]}

Missing fields fall back to empty values, the way a lenient JSON decoder
fills a struct. Malformed JSON is an error, and so is any field holding the
wrong JSON type (a quoted number, a numeric name).
"""

import json
import logging
from typing import Any

from popg.artists._models import Match, ResultSet

logger = logging.getLogger(__name__)


class ResponseDecodeError(ValueError):
    """
    Raised when a successful response body cannot be decoded.

    Attributes:
        body: The raw body that failed to decode.
        cause: The underlying parsing error.
    """

    def __init__(self, message: str, body: str, cause: Exception | None = None):
        super().__init__(message)
        self.body = body
        self.cause = cause


def decode_result_set(body: str) -> ResultSet:
    """
    Parse an artist search body into a ResultSet.

    Args:
        body: Raw JSON text of a 200 response.

    Returns:
        The decoded ResultSet, matches kept in server rank order.

    Raises:
        ResponseDecodeError: If the body is not valid JSON or not shaped like
            an artist search answer.
    """
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise ResponseDecodeError(f"failed to unmarshal artist info: {e}", body=body, cause=e) from e

    if not isinstance(data, dict):
        raise ResponseDecodeError(
            f"failed to unmarshal artist info: expected a JSON object, got {type(data).__name__}",
            body=body,
        )

    try:
        return _to_result_set(data)
    except (TypeError, ValueError, AttributeError) as e:
        raise ResponseDecodeError(f"failed to unmarshal artist info: {e}", body=body, cause=e) from e


_ARTIST_STR_FIELDS = ("id", "name", "type", "country", "disambiguation")


def _typed(data: dict[str, Any], key: str, expected: type) -> Any:
    """Return data[key] when it is absent, null or of the expected JSON type."""
    value = data.get(key)
    # bool is an int subclass but a JSON true/false never fits a number field
    if value is None or (isinstance(value, expected) and not isinstance(value, bool)):
        return value
    raise TypeError(f"'{key}' must be {expected.__name__}, got {type(value).__name__}")


def _to_match(entry: Any) -> Match:
    if not isinstance(entry, dict):
        raise TypeError(f"artist entries must be objects, got {type(entry).__name__}")
    for key in _ARTIST_STR_FIELDS:
        _typed(entry, key, str)
    _typed(entry, "score", int)
    return Match.from_api_payload(entry)


def _to_result_set(data: dict[str, Any]) -> ResultSet:
    artists_raw = _typed(data, "artists", list) or []
    result_set = ResultSet(
        count=_typed(data, "count", int) or 0,
        offset=_typed(data, "offset", int) or 0,
        artists=[_to_match(entry) for entry in artists_raw],
    )
    logger.debug(f"Decoded result set: count={result_set.count}, offset={result_set.offset}, artists={len(result_set.artists)}")
    return result_set
