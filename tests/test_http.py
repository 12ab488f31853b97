"""Tests for HTTP client implementations."""

from unittest.mock import MagicMock

import pytest
import requests

from popg import HttpClient, RequestsHttpClient, TransportError, UnexpectedStatusError
from popg._retry import RetryableError

# =============================================================================
# Exception Tests
# =============================================================================


class TestTransportError:
    """Tests for TransportError exception."""

    def test_is_retryable(self):
        assert issubclass(TransportError, RetryableError)

    def test_exposes_url_and_cause(self):
        cause = requests.ConnectionError("refused")
        error = TransportError("failed to fetch", url="http://mb/x", cause=cause)

        assert str(error) == "failed to fetch"
        assert error.url == "http://mb/x"
        assert error.cause is cause


class TestUnexpectedStatusError:
    """Tests for UnexpectedStatusError exception."""

    def test_is_not_retryable(self):
        assert not issubclass(UnexpectedStatusError, RetryableError)

    def test_message_contains_status_and_reason(self):
        error = UnexpectedStatusError(404, "Not Found", url="http://mb/x")

        assert str(error) == "404 Not Found"
        assert error.status_code == 404
        assert error.reason == "Not Found"
        assert error.url == "http://mb/x"

    def test_message_without_reason(self):
        assert str(UnexpectedStatusError(418)) == "418"


# =============================================================================
# HttpClient Tests
# =============================================================================


class TestHttpClient:
    """Tests for the HttpClient abstract base class."""

    def test_cannot_instantiate_abstract_class(self):
        with pytest.raises(TypeError):
            HttpClient()  # type: ignore

    def test_close_is_noop_by_default(self):
        class FakeClient(HttpClient):
            def get(self, url, headers=None, timeout=5, stream=False):
                return MagicMock(spec=requests.Response)

        FakeClient().close()


# =============================================================================
# RequestsHttpClient Tests
# =============================================================================


class TestRequestsHttpClient:
    """Tests for RequestsHttpClient."""

    def test_creates_own_session_by_default(self):
        client = RequestsHttpClient()
        try:
            assert isinstance(client._session, requests.Session)
        finally:
            client.close()

    def test_get_delegates_to_session(self):
        session = MagicMock(spec=requests.Session)
        response = MagicMock(spec=requests.Response)
        session.get.return_value = response
        client = RequestsHttpClient(session=session)

        result = client.get(
            "https://musicbrainz.org/ws/2/artist/?query=artist:Craque&fmt=json",
            headers={"User-Agent": "popg-test"},
            timeout=5,
            stream=True,
        )

        assert result is response
        session.get.assert_called_once_with(
            "https://musicbrainz.org/ws/2/artist/?query=artist:Craque&fmt=json",
            headers={"User-Agent": "popg-test"},
            timeout=5,
            stream=True,
        )

    def test_reuses_the_same_session_across_calls(self):
        session = MagicMock(spec=requests.Session)
        client = RequestsHttpClient(session=session)

        client.get("https://mb/a", timeout=5)
        client.get("https://mb/b", timeout=5)

        assert session.get.call_count == 2

    def test_get_propagates_request_exceptions(self):
        session = MagicMock(spec=requests.Session)
        session.get.side_effect = requests.ConnectionError("refused")
        client = RequestsHttpClient(session=session)

        with pytest.raises(requests.ConnectionError):
            client.get("https://mb/a", timeout=5)

    def test_get_rejects_empty_url(self):
        client = RequestsHttpClient(session=MagicMock(spec=requests.Session))

        with pytest.raises(AssertionError):
            client.get("", timeout=5)

    def test_get_rejects_non_positive_timeout(self):
        client = RequestsHttpClient(session=MagicMock(spec=requests.Session))

        with pytest.raises(AssertionError):
            client.get("https://mb/a", timeout=0)

    def test_context_manager_closes_session(self):
        session = MagicMock(spec=requests.Session)

        with RequestsHttpClient(session=session) as client:
            assert isinstance(client, RequestsHttpClient)

        session.close.assert_called_once()
