"""Tests for the retry executor and error classification."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from cockpit.core.config import RetryConfig
from cockpit.core.retry import (
    ExternalServiceError,
    RetryExecutor,
    backoff_delay,
    error_message,
    is_retryable_error,
)


class SleepRecorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FlakyOperation:
    """Raises the queued errors in order, then returns ``result``."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class StatusCodeError(Exception):
    """Mimics SDK errors that expose ``status_code`` instead of ``status``."""

    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


class TestBackoffDelay:
    def test_schedule(self):
        assert [backoff_delay(k) for k in range(4)] == [2000, 4000, 8000, 8000]

    @given(st.integers(min_value=0, max_value=30))
    @settings(max_examples=50)
    def test_clamped_to_max(self, k: int):
        cfg = RetryConfig()
        assert backoff_delay(k, cfg) == min(2000 * 2 ** k, 8000)
        assert backoff_delay(k, cfg) <= cfg.max_delay_ms

    def test_custom_config(self):
        cfg = RetryConfig(initial_delay_ms=100, multiplier=3, max_delay_ms=1000)
        assert [backoff_delay(k, cfg) for k in range(4)] == [100, 300, 900, 1000]


class TestIsRetryable:
    @pytest.mark.parametrize("status", [429, 503])
    def test_retryable_statuses(self, status):
        assert is_retryable_error(ExternalServiceError("x", status=status))

    def test_status_code_attribute(self):
        assert is_retryable_error(StatusCodeError("slow down", 429))

    @pytest.mark.parametrize(
        "message",
        ["Quota exceeded for project", "RATE LIMIT hit", "Too Many Requests"],
    )
    def test_retryable_phrases(self, message):
        assert is_retryable_error(ValueError(message))

    @pytest.mark.parametrize("status", [400, 401, 500, None])
    def test_other_errors(self, status):
        assert not is_retryable_error(ExternalServiceError("bad request", status=status))

    def test_none(self):
        assert not is_retryable_error(None)


class TestErrorMessage:
    def test_daily_quota(self):
        msg = error_message(ExternalServiceError("Daily limit reached", status=429))
        assert "quota exceeded for today" in msg

    def test_rate_limit(self):
        msg = error_message(ExternalServiceError("slow down", status=429))
        assert msg.startswith("Rate limit exceeded")

    def test_unavailable(self):
        msg = error_message(ExternalServiceError("overloaded", status=503))
        assert "temporarily unavailable" in msg

    def test_falls_back_to_message(self):
        assert error_message(RuntimeError("boom")) == "boom"

    def test_generic(self):
        assert error_message(ExternalServiceError("")) == "Analysis request failed"
        assert error_message(None) == "Unknown error occurred"

    def test_stable(self):
        err = ExternalServiceError("Daily limit reached", status=429)
        assert error_message(err) == error_message(err)


class TestRetryExecutor:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        sleep = SleepRecorder()
        op = FlakyOperation([])
        assert await RetryExecutor(sleep=sleep).execute(op, "test") == "ok"
        assert op.calls == 1
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_two_rate_limits_then_success(self):
        sleep = SleepRecorder()
        op = FlakyOperation([ExternalServiceError("slow", status=429)] * 2, result="done")

        assert await RetryExecutor(sleep=sleep).execute(op, "test") == "done"
        assert op.calls == 3
        assert sleep.calls == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_plain_error_not_retried(self):
        sleep = SleepRecorder()
        op = FlakyOperation([RuntimeError("boom")] * 5)

        with pytest.raises(RuntimeError, match="boom"):
            await RetryExecutor(sleep=sleep).execute(op, "test")
        assert op.calls == 1
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_unavailable_exhausts_budget(self):
        sleep = SleepRecorder()
        errors = [ExternalServiceError(f"down {i}", status=503) for i in range(10)]
        op = FlakyOperation(errors)

        with pytest.raises(ExternalServiceError) as info:
            await RetryExecutor(sleep=sleep).execute(op, "test")
        assert op.calls == 4
        assert sleep.calls == [2.0, 4.0, 8.0]
        assert info.value.message == "down 3"

    @pytest.mark.asyncio
    async def test_non_retryable_after_retryable(self):
        sleep = SleepRecorder()
        op = FlakyOperation([ExternalServiceError("slow", status=429), ValueError("bad json")])

        with pytest.raises(ValueError):
            await RetryExecutor(sleep=sleep).execute(op, "test")
        assert op.calls == 2
        assert sleep.calls == [2.0]

    @pytest.mark.asyncio
    async def test_zero_retry_budget(self):
        sleep = SleepRecorder()
        op = FlakyOperation([ExternalServiceError("slow", status=429)])

        with pytest.raises(ExternalServiceError):
            await RetryExecutor(RetryConfig(max_retries=0), sleep=sleep).execute(op)
        assert op.calls == 1
