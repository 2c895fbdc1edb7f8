"""
Tests for retry logic.
"""

import pytest

from votorank.retry import (
    RetryableStatus,
    RetryError,
    exponential_backoff,
    should_retry_http_status,
)


class TestExponentialBackoff:
    """Test exponential backoff decorator."""

    def test_success_on_first_try(self):
        """Function that succeeds immediately should not retry."""
        call_count = [0]

        @exponential_backoff(max_retries=3, base_delay=0.01)
        def succeeds():
            call_count[0] += 1
            return "success"

        assert succeeds() == "success"
        assert call_count[0] == 1

    def test_retry_then_succeed(self):
        """Function that fails then succeeds should retry."""
        call_count = [0]

        @exponential_backoff(max_retries=3, base_delay=0.01)
        def fails_twice():
            call_count[0] += 1
            if call_count[0] < 3:
                raise ConnectionError("Temporary failure")
            return "success"

        assert fails_twice() == "success"
        assert call_count[0] == 3

    def test_max_retries_exceeded(self):
        """Exhaustion raises RetryError chained to the last failure."""
        call_count = [0]

        @exponential_backoff(max_retries=2, base_delay=0.01)
        def always_fails():
            call_count[0] += 1
            raise ConnectionError("Permanent failure")

        with pytest.raises(RetryError) as excinfo:
            always_fails()

        assert call_count[0] == 3
        assert isinstance(excinfo.value.__cause__, ConnectionError)

    def test_zero_retries_means_single_attempt(self):
        call_count = [0]

        @exponential_backoff(max_retries=0, base_delay=0.01)
        def fails():
            call_count[0] += 1
            raise ConnectionError("down")

        with pytest.raises(RetryError):
            fails()
        assert call_count[0] == 1

    def test_only_listed_exceptions_are_retried(self):
        """Exceptions outside the tuple propagate immediately."""
        call_count = [0]

        @exponential_backoff(max_retries=3, base_delay=0.01, exceptions=(ConnectionError,))
        def raises_value_error():
            call_count[0] += 1
            raise ValueError("not transient")

        with pytest.raises(ValueError):
            raises_value_error()
        assert call_count[0] == 1

    def test_on_retry_callback_and_delay_cap(self):
        """Callback sees attempt number and delay, capped at max_delay."""
        seen = []

        @exponential_backoff(
            max_retries=3,
            base_delay=0.01,
            max_delay=0.02,
            on_retry=lambda attempt, exc, delay: seen.append((attempt, delay)),
        )
        def always_fails():
            raise ConnectionError("down")

        with pytest.raises(RetryError):
            always_fails()

        assert seen == [(1, 0.01), (2, 0.02), (3, 0.02)]

    def test_retryable_status_carries_code(self):
        @exponential_backoff(max_retries=1, base_delay=0.01, exceptions=(RetryableStatus,))
        def unavailable():
            raise RetryableStatus(503)

        with pytest.raises(RetryError) as excinfo:
            unavailable()
        assert excinfo.value.__cause__.status_code == 503


class TestHttpStatusRetry:
    """Test HTTP status code retry logic."""

    @pytest.mark.parametrize("status", [408, 429, 500, 502, 503, 504])
    def test_retryable_status_codes(self, status):
        assert should_retry_http_status(status) is True

    @pytest.mark.parametrize("status", [200, 301, 400, 403, 404, 405, 410])
    def test_non_retryable_status_codes(self, status):
        assert should_retry_http_status(status) is False
