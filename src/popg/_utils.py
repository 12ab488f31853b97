"""
Utility functions for the popg package.

This module provides internal helper functions used throughout the query pipeline.
These functions are not part of the public API and may change without notice.
"""

from __future__ import annotations

import logging
import threading
import time

logger = logging.getLogger(__name__)


def cat_url(*parts: str) -> str:
    """
    Concatenate URL pieces in order, without separators or escaping.

    Args:
        *parts: URL fragments, already carrying their own slashes and query markers.

    Returns:
        The fragments joined as-is.

    Example:
        >>> cat_url("https://musicbrainz.org", "/ws/2/artist", "/?query=artist:", "Craque", "&fmt=json")
        'https://musicbrainz.org/ws/2/artist/?query=artist:Craque&fmt=json'
    """
    full_url = "".join(parts)
    logger.debug(f"URL created: {full_url}")
    return full_url


def wait_or_cancel(seconds: float, cancel_event: threading.Event | None = None) -> bool:
    """
    Wait for the given duration unless the cancel event fires first.

    Args:
        seconds: Duration to wait in seconds. Non-positive values return immediately.
        cancel_event: Optional event signalling cancellation. When None, this is a plain sleep.

    Returns:
        True if the wait was cancelled, False if the full duration elapsed.

    Example:
        >>> cancel = threading.Event()
        >>> wait_or_cancel(2.0, cancel)  # Returns False after ~2s
        False
    """
    if cancel_event is None:
        if seconds > 0:
            time.sleep(seconds)
        return False

    if cancel_event.is_set():
        return True
    if seconds <= 0:
        return False
    return cancel_event.wait(timeout=seconds)
