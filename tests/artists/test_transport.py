"""Tests for MusicBrainzTransport."""

import threading
import unittest
from unittest.mock import MagicMock, PropertyMock

import requests

from popg._http import HttpClient, TransportError, UnexpectedStatusError
from popg.artists import MusicBrainzTransport

URL = "https://musicbrainz.org/ws/2/artist/?query=artist:Craque&fmt=json"
USER_AGENT = "popg-test/0.0.1 ( test@example.com )"


def make_response(status_code: int, content: bytes = b"", reason: str = "") -> MagicMock:
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.reason = reason
    response.content = content
    return response


class TestMusicBrainzTransportInit(unittest.TestCase):
    """Tests for MusicBrainzTransport constructor."""

    def test_headers_carry_only_user_agent(self):
        transport = MusicBrainzTransport(MagicMock(spec=HttpClient), user_agent=USER_AGENT)
        self.assertEqual(transport.headers, {"User-Agent": USER_AGENT})

    def test_rejects_empty_user_agent(self):
        with self.assertRaises(AssertionError):
            MusicBrainzTransport(MagicMock(spec=HttpClient), user_agent="")

    def test_rejects_non_positive_timeout(self):
        with self.assertRaises(AssertionError):
            MusicBrainzTransport(MagicMock(spec=HttpClient), user_agent=USER_AGENT, request_timeout=0)


class TestMusicBrainzTransportFetch(unittest.TestCase):
    """Tests for MusicBrainzTransport.fetch()."""

    def setUp(self):
        self.http_client = MagicMock(spec=HttpClient)
        self.transport = MusicBrainzTransport(self.http_client, user_agent=USER_AGENT, request_timeout=5.0)

    def test_200_returns_body(self):
        response = make_response(200, b'{"count":0,"offset":0,"artists":[]}')
        self.http_client.get.return_value = response

        outcome = self.transport.fetch(URL)

        self.assertEqual(outcome.status, 200)
        self.assertEqual(outcome.body, '{"count":0,"offset":0,"artists":[]}')
        self.assertIsNone(outcome.error)
        self.assertTrue(outcome.is_success())
        response.close.assert_called_once()

    def test_sends_user_agent_timeout_and_streams(self):
        self.http_client.get.return_value = make_response(200, b"{}")

        self.transport.fetch(URL)

        self.http_client.get.assert_called_once_with(
            URL,
            headers={"User-Agent": USER_AGENT},
            timeout=5.0,
            stream=True,
        )

    def test_200_decodes_utf8(self):
        self.http_client.get.return_value = make_response(200, '{"name":"Björk"}'.encode("utf-8"))

        outcome = self.transport.fetch(URL)

        self.assertEqual(outcome.body, '{"name":"Björk"}')

    def test_503_returns_rate_limited_without_reading_body(self):
        response = make_response(503)
        type(response).content = PropertyMock(side_effect=AssertionError("body must not be read"))
        self.http_client.get.return_value = response

        outcome = self.transport.fetch(URL)

        self.assertEqual(outcome.status, 503)
        self.assertEqual(outcome.body, "")
        self.assertIsNone(outcome.error)
        self.assertTrue(outcome.is_rate_limited())
        response.close.assert_called_once()

    def test_404_returns_unexpected_status(self):
        self.http_client.get.return_value = make_response(404, reason="Not Found")

        outcome = self.transport.fetch(URL)

        self.assertEqual(outcome.status, 404)
        self.assertIsInstance(outcome.error, UnexpectedStatusError)
        self.assertEqual(outcome.error.status_code, 404)
        self.assertEqual(str(outcome.error), "404 Not Found")
        self.assertEqual(outcome.error.url, URL)

    def test_connection_error_returns_status_zero(self):
        cause = requests.ConnectionError("connection refused")
        self.http_client.get.side_effect = cause

        outcome = self.transport.fetch(URL)

        self.assertEqual(outcome.status, 0)
        self.assertIsInstance(outcome.error, TransportError)
        self.assertIs(outcome.error.cause, cause)
        self.assertEqual(outcome.error.url, URL)

    def test_timeout_returns_status_zero(self):
        self.http_client.get.side_effect = requests.Timeout("read timed out")

        outcome = self.transport.fetch(URL)

        self.assertEqual(outcome.status, 0)
        self.assertIsInstance(outcome.error, TransportError)

    def test_body_read_failure_returns_transport_error(self):
        response = make_response(200)
        type(response).content = PropertyMock(side_effect=requests.exceptions.ChunkedEncodingError("broken"))
        self.http_client.get.return_value = response

        outcome = self.transport.fetch(URL)

        self.assertEqual(outcome.status, 200)
        self.assertIsInstance(outcome.error, TransportError)
        self.assertFalse(outcome.is_success())
        response.close.assert_called_once()

    def test_invalid_utf8_returns_transport_error(self):
        self.http_client.get.return_value = make_response(200, b"\xff\xfe\xfa")

        outcome = self.transport.fetch(URL)

        self.assertIsInstance(outcome.error, TransportError)

    def test_cancelled_before_sending_does_not_call_client(self):
        cancel = threading.Event()
        cancel.set()

        outcome = self.transport.fetch(URL, cancel)

        self.assertEqual(outcome.status, 0)
        self.assertIsInstance(outcome.error, TransportError)
        self.http_client.get.assert_not_called()


if __name__ == "__main__":
    unittest.main()
