"""Shared fixtures for the cockpit test suite."""

import io
from datetime import datetime, timedelta, timezone

import pytest
from PIL import Image

from cockpit.journal.storage import MemoryStorage
from cockpit.journal.store import JournalStore
from cockpit.vision.schema import AnalysisRecord, ChartImage


class StepClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


def png_bytes(width: int = 64, height: int = 32, mode: str = "RGB") -> bytes:
    color = (10, 120, 200, 128) if mode == "RGBA" else (10, 120, 200)
    out = io.BytesIO()
    Image.new(mode, (width, height), color).save(out, format="PNG")
    return out.getvalue()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def record():
    return AnalysisRecord(
        decision="BUY",
        confidence_score="High",
        summary="Breakout above Resistance with volume.",
        trading_plan={
            "entry_area": "105.50 - 105.80",
            "target_price": "108.00",
            "stop_loss": "104.90",
            "risk_reward_ratio": "1:2.5",
        },
    )


@pytest.fixture
def chart():
    return ChartImage(filename="btc_m5.png", data=png_bytes(400, 300), content_type="image/png")


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def journal(storage, clock):
    return JournalStore(storage, clock=clock)
