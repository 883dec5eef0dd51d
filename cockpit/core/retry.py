from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .config import RetryConfig

T = TypeVar("T")

RETRYABLE_STATUSES = (429, 503)
RETRYABLE_PHRASES = ("quota", "rate limit", "too many requests")


class ExternalServiceError(Exception):
    """Failure from the inference provider, with the HTTP status when known."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status


def _status_of(error: Any) -> int | None:
    for attr in ("status", "status_code"):
        v = getattr(error, attr, None)
        if isinstance(v, int) and not isinstance(v, bool):
            return v
    return None


def _message_of(error: Any) -> str:
    msg = getattr(error, "message", None)
    if isinstance(msg, str) and msg:
        return msg
    return str(error) if error is not None else ""


def backoff_delay(retry_index: int, config: RetryConfig | None = None) -> float:
    """Delay in ms before retry number ``retry_index + 1`` (zero-based)."""
    cfg = config or RetryConfig()
    delay = cfg.initial_delay_ms * (cfg.multiplier ** retry_index)
    return min(delay, cfg.max_delay_ms)


def is_retryable_error(error: Any) -> bool:
    if error is None:
        return False
    if _status_of(error) in RETRYABLE_STATUSES:
        return True
    low = _message_of(error).lower()
    return any(p in low for p in RETRYABLE_PHRASES)


def error_message(error: Any) -> str:
    """User-facing text for a failed analysis call."""
    if error is None:
        return "Unknown error occurred"

    status = _status_of(error)
    raw = _message_of(error)

    if status == 429:
        if "daily" in raw.lower():
            return "API quota exceeded for today. Please try again tomorrow or check your plan and billing."
        return "Rate limit exceeded. System is retrying automatically..."
    if status == 503:
        return "AI service temporarily unavailable. Retrying automatically..."

    return raw or "Analysis request failed"


class RetryExecutor:
    """Runs an async operation with bounded exponential-backoff retries.

    Only rate-limit / unavailable style errors are retried; everything else
    propagates on first occurrence.
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config or RetryConfig()
        self._sleep = sleep
        self.log = logger or logging.getLogger(__name__)

    async def execute(self, operation: Callable[[], Awaitable[T]], label: str = "Operation") -> T:
        max_retries = self.config.max_retries

        for attempt in range(max_retries + 1):
            if attempt > 0:
                delay = backoff_delay(attempt - 1, self.config)
                self.log.info("%s: retry %d/%d after %dms", label, attempt, max_retries, delay)
                await self._sleep(delay / 1000)

            try:
                result = await operation()
            except Exception as e:
                if not is_retryable_error(e):
                    self.log.error("%s: non-retryable error: %s", label, e)
                    raise
                if attempt == max_retries:
                    self.log.error("%s: max retries (%d) reached", label, max_retries)
                    raise
                self.log.warning("%s: retryable error on attempt %d: %s", label, attempt + 1, error_message(e))
                continue

            if attempt > 0:
                self.log.info("%s: succeeded after %d retries", label, attempt)
            return result

        raise RuntimeError("unreachable")  # pragma: no cover
