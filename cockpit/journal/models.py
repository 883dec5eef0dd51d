"""Journal data models.

Python attributes are snake_case; the stored JSON document uses the
camelCase names (``createdAt``, ``imageFileName``, ``isConfluence``...).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..vision.schema import AnalysisRecord, Confidence, Decision, Mode, WireModel

Outcome = Literal["WIN", "LOSS", "BREAKEVEN", "PENDING"]
OUTCOMES: tuple[str, ...] = ("WIN", "LOSS", "BREAKEVEN", "PENDING")
StreakType = Literal["WIN", "LOSS", "NONE"]


class JournalEntry(WireModel):
    """One saved analysis plus the outcome the user recorded for it."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, validate_assignment=True)

    id: str
    created_at: datetime
    mode: Mode
    thumbnail: str = ""
    image_file_name: str = ""
    decision: Decision
    confidence: Confidence
    analysis: AnalysisRecord

    outcome: Outcome = "PENDING"
    outcome_updated_at: Optional[datetime] = None
    pair: Optional[str] = None
    notes: Optional[str] = None
    pnl: Optional[float] = Field(default=None, description="Signed % gain/loss")
    is_confluence: bool = False

    @field_validator("outcome", mode="before")
    @classmethod
    def _missing_outcome_is_pending(cls, v):
        return "PENDING" if v is None else v

    @field_validator("created_at", "outcome_updated_at")
    @classmethod
    def _assume_utc(cls, v):
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def is_resolved(self) -> bool:
        return self.outcome != "PENDING"

    @property
    def last_activity(self) -> datetime:
        return self.outcome_updated_at or self.created_at


class JournalDocument(WireModel):
    """The single blob persisted under the journal storage key."""

    entries: List[JournalEntry] = Field(default_factory=list)


class JournalStats(WireModel):
    total: int = 0
    win_count: int = 0
    loss_count: int = 0
    break_even_count: int = 0
    pending_count: int = 0
    win_rate: float = 0.0
    win_rate_scalping: float = 0.0
    win_rate_swing: float = 0.0
    current_streak: int = 0
    streak_type: StreakType = "NONE"
    total_pnl: float = 0.0
    avg_pnl: float = 0.0
