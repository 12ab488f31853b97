"""Tests for retry utilities."""

import threading
import unittest
from unittest.mock import MagicMock, call, patch

import requests

from popg._http import TransportError, UnexpectedStatusError
from popg._rate_limit import ServerSideRateLimitError
from popg._retry import (
    MaxRetriesExceededError,
    RetryableError,
    RetryAttempt,
    RetryCancelledError,
    Retrying,
)


class TestRetryAttempt(unittest.TestCase):
    """Tests for RetryAttempt dataclass."""

    def test_max_attempts_property(self):
        self.assertEqual(RetryAttempt(attempt_number=0, max_retries=5).max_attempts, 6)

    def test_is_frozen(self):
        attempt = RetryAttempt(attempt_number=0, max_retries=3)
        with self.assertRaises(AttributeError):
            attempt.attempt_number = 2  # type: ignore


class TestMaxRetriesExceededError(unittest.TestCase):
    """Tests for MaxRetriesExceededError exception."""

    def test_message_is_set(self):
        error = MaxRetriesExceededError("Test message")
        self.assertEqual(str(error), "Test message")

    def test_last_exception_is_set(self):
        original = ValueError("Original error")
        error = MaxRetriesExceededError("Test message", last_exception=original)
        self.assertEqual(error.last_exception, original)

    def test_last_exception_is_none_by_default(self):
        self.assertIsNone(MaxRetriesExceededError("Test message").last_exception)


class TestRetryingBasicUsage(unittest.TestCase):
    """Tests for basic Retrying usage."""

    def test_success_on_first_attempt(self):
        """Should succeed on first attempt without retry."""
        call_count = 0

        for attempt in Retrying(max_retries=3):
            with attempt:
                call_count += 1
                break

        self.assertEqual(call_count, 1)

    def test_attempt_metadata_is_exposed(self):
        """Should yield zero-based attempt numbers through the context."""
        for attempt in Retrying(max_retries=2):
            with attempt as current:
                self.assertEqual(current.attempt_number, 0)
                self.assertEqual(current.max_attempts, 3)
                break

    def test_no_retry_when_max_retries_is_zero(self):
        """Should let the original retryable error propagate when retries are disabled."""
        call_count = 0

        with self.assertRaises(ServerSideRateLimitError):
            for attempt in Retrying(max_retries=0):
                with attempt:
                    call_count += 1
                    raise ServerSideRateLimitError(503)

        self.assertEqual(call_count, 1)

    @patch("popg._retry.wait_or_cancel", return_value=False)
    def test_retry_on_retryable_error_subclass(self, mock_wait: MagicMock):
        """Should retry exceptions extending RetryableError."""
        call_count = 0

        class MyTransientError(RetryableError):
            pass

        for attempt in Retrying(max_retries=3):
            with attempt:
                call_count += 1
                if call_count < 3:
                    raise MyTransientError("Temporary error")
                break

        self.assertEqual(call_count, 3)
        self.assertEqual(mock_wait.call_count, 2)

    def test_does_not_retry_on_non_retryable_exception(self):
        """Should re-raise exceptions that do not extend RetryableError."""
        call_count = 0

        with self.assertRaises(UnexpectedStatusError):
            for attempt in Retrying(max_retries=3):
                with attempt:
                    call_count += 1
                    raise UnexpectedStatusError(404, "Not Found")

        self.assertEqual(call_count, 1)

    def test_does_not_retry_raw_requests_exceptions(self):
        """Only TransportError is retried; raw requests errors escape the loop."""
        call_count = 0

        with self.assertRaises(requests.ConnectionError):
            for attempt in Retrying(max_retries=3):
                with attempt:
                    call_count += 1
                    raise requests.ConnectionError("refused")

        self.assertEqual(call_count, 1)

    def test_does_not_handle_base_exceptions(self):
        """Should not swallow KeyboardInterrupt and friends."""
        with self.assertRaises(KeyboardInterrupt):
            for attempt in Retrying(max_retries=3):
                with attempt:
                    raise KeyboardInterrupt()


class TestRetryingBackoff(unittest.TestCase):
    """Tests for the exponential backoff schedule."""

    @patch("popg._retry.wait_or_cancel", return_value=False)
    def test_raises_max_retries_exceeded_when_exhausted(self, mock_wait: MagicMock):
        """Should make 1 + max_retries attempts, then raise MaxRetriesExceededError."""
        call_count = 0

        with self.assertRaises(MaxRetriesExceededError) as ctx:
            for attempt in Retrying(max_retries=3, initial_delay=1.0):
                with attempt:
                    call_count += 1
                    raise ServerSideRateLimitError(503)

        self.assertEqual(call_count, 4)
        self.assertIsInstance(ctx.exception.last_exception, ServerSideRateLimitError)
        self.assertIn("Max retries exceeded", str(ctx.exception))

    @patch("popg._retry.wait_or_cancel", return_value=False)
    def test_waits_double_after_each_attempt(self, mock_wait: MagicMock):
        """Should wait 1s, 2s, 4s between the four attempts (no jitter)."""
        with self.assertRaises(MaxRetriesExceededError):
            for attempt in Retrying(max_retries=3, initial_delay=1.0):
                with attempt:
                    raise ServerSideRateLimitError(503)

        self.assertEqual(mock_wait.call_args_list, [call(1.0, None), call(2.0, None), call(4.0, None)])

    @patch("popg._retry.wait_or_cancel", return_value=False)
    def test_initial_delay_scales_schedule(self, mock_wait: MagicMock):
        with self.assertRaises(MaxRetriesExceededError):
            for attempt in Retrying(max_retries=2, initial_delay=0.5):
                with attempt:
                    raise TransportError("boom", url="http://x")

        waits = [c.args[0] for c in mock_wait.call_args_list]
        self.assertEqual(waits, [0.5, 1.0])

    def test_backoff_for(self):
        retrying = Retrying(initial_delay=1.0)
        self.assertEqual([retrying.backoff_for(n) for n in range(3)], [1.0, 2.0, 4.0])

    @patch("popg._retry.wait_or_cancel", return_value=False)
    def test_passes_cancel_event_to_wait(self, mock_wait: MagicMock):
        cancel = threading.Event()

        for attempt in Retrying(max_retries=1, cancel_event=cancel):
            with attempt as current:
                if current.attempt_number == 0:
                    raise ServerSideRateLimitError(503)
                break

        mock_wait.assert_called_once_with(1.0, cancel)


class TestRetryingCancellation(unittest.TestCase):
    """Tests for cancellation during the backoff wait."""

    @patch("popg._retry.wait_or_cancel", return_value=True)
    def test_cancel_during_backoff_stops_retrying(self, mock_wait: MagicMock):
        """Should raise RetryCancelledError without making another attempt."""
        call_count = 0
        error = ServerSideRateLimitError(503)

        with self.assertRaises(RetryCancelledError) as ctx:
            for attempt in Retrying(max_retries=3, cancel_event=threading.Event()):
                with attempt:
                    call_count += 1
                    raise error

        self.assertEqual(call_count, 1)
        self.assertEqual(mock_wait.call_count, 1)
        self.assertIs(ctx.exception.last_exception, error)
        self.assertTrue(str(ctx.exception).startswith("context done"))

    def test_real_event_interrupts_wait(self):
        """Should stop a long backoff as soon as the event is set."""
        cancel = threading.Event()
        cancel.set()
        call_count = 0

        with self.assertRaises(RetryCancelledError):
            for attempt in Retrying(max_retries=3, initial_delay=30.0, cancel_event=cancel):
                with attempt:
                    call_count += 1
                    raise ServerSideRateLimitError(503)

        self.assertEqual(call_count, 1)


class TestRetryingTransportErrors(unittest.TestCase):
    """Tests for Retrying with transport failures."""

    @patch("popg._retry.wait_or_cancel", return_value=False)
    def test_retry_on_transport_error(self, mock_wait: MagicMock):
        """Should retry TransportError like any other RetryableError."""
        call_count = 0

        for attempt in Retrying(max_retries=2):
            with attempt:
                call_count += 1
                if call_count < 2:
                    raise TransportError("connection refused", url="http://x")
                break

        self.assertEqual(call_count, 2)


class TestRetryingValidation(unittest.TestCase):
    """Tests for constructor invariants."""

    def test_negative_max_retries_fails(self):
        with self.assertRaises(AssertionError):
            Retrying(max_retries=-1)

    def test_non_positive_initial_delay_fails(self):
        with self.assertRaises(AssertionError):
            Retrying(initial_delay=0)


if __name__ == "__main__":
    unittest.main()
