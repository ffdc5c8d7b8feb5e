"""
Unit tests for the text service client.

Uses a mocked requests session; no network access.
"""

import json
from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from listing_sync.core.exceptions import TextServiceError
from listing_sync.providers import text_service
from listing_sync.providers.text_service import (
    TextServiceClient,
    TextServiceConfig,
    parse_retry_after,
)


def make_response(status=200, body=None, reason="OK", headers=None):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.reason = reason
    response.headers = headers or {}
    response.text = body if isinstance(body, str) else (json.dumps(body) if body is not None else "")
    return response


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def client(session):
    return TextServiceClient(TextServiceConfig(api_key="sk-test", model="test-model"), session=session)


class TestParseRetryAfter:
    """Tests for parse_retry_after."""

    def test_missing(self):
        """Test no header means no hint."""
        assert parse_retry_after({}) is None

    def test_seconds(self):
        """Test Retry-After in seconds."""
        assert parse_retry_after({"Retry-After": "3"}) == 3.0

    def test_milliseconds_win(self):
        """Test retry-after-ms takes precedence."""
        assert parse_retry_after({"retry-after-ms": "250", "Retry-After": "3"}) == 0.25

    def test_http_date(self):
        """Test Retry-After as an HTTP date."""
        now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert parse_retry_after({"Retry-After": "Mon, 01 Jan 2024 12:00:10 GMT"}, now=now) == 10.0

    def test_past_date_clamps_to_zero(self):
        """Test a date in the past yields zero."""
        now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        assert parse_retry_after({"Retry-After": "Mon, 01 Jan 2024 11:00:00 GMT"}, now=now) == 0.0

    def test_garbage(self):
        """Test an unparseable header is ignored."""
        assert parse_retry_after({"Retry-After": "soon"}) is None


class TestComplete:
    """Tests for TextServiceClient.complete."""

    def test_returns_trimmed_content(self, client, session):
        """Test the completion text is returned stripped."""
        session.post.return_value = make_response(body=completion("  Hallo Welt \n"))
        assert client.complete([{"role": "user", "content": "Hello world"}]) == "Hallo Welt"

    def test_request_shape(self, client, session):
        """Test URL, auth header and payload."""
        session.post.return_value = make_response(body=completion("x"))
        client.complete([{"role": "user", "content": "hi"}])

        args, kwargs = session.post.call_args
        assert args[0] == "https://api.openai.com/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        payload = json.loads(kwargs["data"])
        assert payload["model"] == "test-model"
        assert payload["messages"] == [{"role": "user", "content": "hi"}]

    def test_rate_limit_carries_hint(self, client, session):
        """Test 429 errors expose status and retry-after."""
        session.post.return_value = make_response(
            status=429,
            reason="Too Many Requests",
            body={"error": {"message": "Slow down"}},
            headers={"Retry-After": "2"},
        )
        with pytest.raises(TextServiceError) as exc_info:
            client.complete([])
        error = exc_info.value
        assert error.is_rate_limited
        assert error.retry_after == 2.0
        assert str(error) == "OpenAI request failed (429 Too Many Requests): Slow down"

    def test_server_error_raw_body(self, client, session):
        """Test non-JSON error bodies are included verbatim."""
        session.post.return_value = make_response(status=500, reason="Internal Server Error", body="upstream down")
        with pytest.raises(TextServiceError, match="upstream down") as exc_info:
            client.complete([])
        assert not exc_info.value.is_rate_limited

    def test_empty_completion(self, client, session):
        """Test a blank completion is an error."""
        session.post.return_value = make_response(body=completion("   "))
        with pytest.raises(TextServiceError, match="missing translated content"):
            client.complete([])

    def test_no_choices(self, client, session):
        """Test a response without choices is an error."""
        session.post.return_value = make_response(body={"choices": []})
        with pytest.raises(TextServiceError, match="missing translated content"):
            client.complete([])


class TestClientInit:
    """Tests for TextServiceClient construction."""

    def test_requires_requests_even_with_session(self, session):
        """Test a missing requests install is reported even when a session is supplied."""
        with patch.object(text_service, "requests", None):
            with pytest.raises(ImportError, match="requests library is required"):
                TextServiceClient(TextServiceConfig(api_key="sk-test"), session=session)
