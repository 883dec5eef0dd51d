from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# ----------------------------
# Inputs
# ----------------------------
Mode = Literal["scalping", "swing"]
MODES: tuple[str, ...] = ("scalping", "swing")


@dataclass
class ChartImage:
    filename: str
    data: bytes
    content_type: str | None = None


# ----------------------------
# Model output (camelCase on the wire)
# ----------------------------
Decision = Literal["BUY", "WAIT", "SELL"]
Confidence = Literal["High", "Medium", "Low"]


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class TradingPlan(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    # Free-text price descriptions as the model wrote them
    entry_area: str
    target_price: str
    stop_loss: str
    risk_reward_ratio: str


class AnalysisRecord(WireModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    decision: Decision
    confidence_score: Confidence
    is_demo: bool = False
    summary: str
    trading_plan: TradingPlan
