"""
Tests for the media reference prober.
"""

from unittest.mock import MagicMock

import pytest
import requests

from votorank.prober import Prober, ProbeResult


def response(status: int, content_type: str = "image/jpeg") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.headers = {"Content-Type": content_type}
    return resp


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


def make_prober(session, retries: int = 1) -> Prober:
    return Prober(timeout=2.0, retries=retries, retry_delay=0, session=session)


class TestProbe:
    """Outcome classification."""

    def test_ok_is_reachable(self, session):
        session.head.return_value = response(200)
        result = make_prober(session).probe("https://example.org/a.jpg")

        assert isinstance(result, ProbeResult)
        assert result.reachable is True
        assert result.status == 200
        assert result.content_type == "image/jpeg"
        session.head.assert_called_once_with(
            "https://example.org/a.jpg", allow_redirects=True, timeout=2.0
        )

    def test_not_found_is_unreachable(self, session):
        session.head.return_value = response(404, "text/html")
        result = make_prober(session).probe("https://example.org/a.jpg")

        assert result.reachable is False
        assert result.status == 404
        assert result.content_type == "text/html"

    def test_head_refused_falls_back_to_get(self, session):
        session.head.return_value = response(405)
        session.get.return_value = response(200)
        result = make_prober(session).probe("https://example.org/a.jpg")

        assert result.reachable is True
        session.get.assert_called_once()

    def test_retryable_status_is_retried_then_reported(self, session):
        session.head.return_value = response(503)
        result = make_prober(session, retries=1).probe("https://example.org/a.jpg")

        assert result.reachable is False
        assert result.status == 503
        assert session.head.call_count == 2

    def test_retryable_status_recovers(self, session):
        session.head.side_effect = [response(502), response(200)]
        result = make_prober(session, retries=1).probe("https://example.org/a.jpg")

        assert result.reachable is True
        assert session.head.call_count == 2


class TestTransportFailures:
    """Transport errors become status 0, never exceptions."""

    @pytest.mark.parametrize("error", [
        requests.exceptions.Timeout("timed out"),
        requests.exceptions.ReadTimeout("read timed out"),
        requests.exceptions.MissingSchema("no scheme"),
    ])
    def test_non_retried_errors(self, session, error):
        session.head.side_effect = error
        result = make_prober(session).probe("https://example.org/a.jpg")

        assert result.reachable is False
        assert result.status == 0
        assert result.error
        assert session.head.call_count == 1

    def test_connection_error_retried_then_unreachable(self, session):
        session.head.side_effect = requests.exceptions.ConnectionError("DNS failure")
        result = make_prober(session, retries=2).probe("https://example.org/a.jpg")

        assert result.reachable is False
        assert result.status == 0
        assert "DNS failure" in result.error
        assert session.head.call_count == 3

    def test_connection_error_then_success(self, session):
        session.head.side_effect = [requests.exceptions.ConnectionError("reset"), response(200)]
        result = make_prober(session).probe("https://example.org/a.jpg")

        assert result.reachable is True

    def test_elapsed_is_recorded(self, session):
        session.head.return_value = response(200)
        result = make_prober(session).probe("https://example.org/a.jpg")
        assert result.elapsed >= 0


class TestLifecycle:
    """Session ownership."""

    def test_negative_retries_rejected(self, session):
        with pytest.raises(ValueError):
            make_prober(session, retries=-1)

    def test_zero_retries_still_makes_one_attempt(self, session):
        session.head.return_value = response(404)
        result = make_prober(session, retries=0).probe("https://example.org/a.jpg")

        assert result.status == 404
        assert session.head.call_count == 1

    def test_callable_and_context_manager(self, session):
        session.head.return_value = response(200)
        with make_prober(session) as prober:
            assert prober("https://example.org/a.jpg").reachable
        session.close.assert_called_once()

    def test_default_session_sets_user_agent(self):
        prober = Prober()
        try:
            assert prober.session.headers["User-Agent"].startswith("votorank-media-probe/")
        finally:
            prober.close()
