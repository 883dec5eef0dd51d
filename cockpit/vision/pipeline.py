from __future__ import annotations

import asyncio
import base64
import json
import logging
from typing import List

import httpx
import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from ..core.config import Settings
from ..core.retry import ExternalServiceError, RetryExecutor
from .prompt import build_prompt
from .schema import AnalysisRecord, ChartImage

log = logging.getLogger(__name__)

SYSTEM = (
    "You are a trading chart analysis engine. You read chart screenshots and "
    "return a single JSON trade recommendation. Only use what is visible on the chart(s)."
)


class AnalysisParseError(Exception):
    """The model replied, but not with a valid analysis JSON object."""


# ----------------------------
# Demo responses
# ----------------------------
MOCK_SINGLE = AnalysisRecord(
    decision="BUY",
    confidence_score="High",
    is_demo=True,
    summary="Strong Bullish Engulfing pattern at Support. Volume confirms the move up.",
    trading_plan={
        "entry_area": "105.50 - 105.80",
        "target_price": "108.00",
        "stop_loss": "104.90",
        "risk_reward_ratio": "1:2.5",
    },
)

MOCK_MULTI = AnalysisRecord(
    decision="BUY",
    confidence_score="High",
    is_demo=True,
    summary=(
        "CONFLUENCE CONFIRMED: H4 (image 1) shows a clean Breakout from a Bullish Flag. "
        "M5 (image 2) just retested the breakout level with a Pinbar. Very solid setup."
    ),
    trading_plan={
        "entry_area": "Aggressive entry at 2050",
        "target_price": "2100 (H4 Swing High)",
        "stop_loss": "Below 2040 (M5 Low)",
        "risk_reward_ratio": "1:5",
    },
)


def _to_data_url(image: ChartImage) -> str:
    b64 = base64.b64encode(image.data).decode("utf-8")
    return f"data:{image.content_type or 'image/png'};base64,{b64}"


def _strip_code_fences(text: str) -> str:
    if "```" not in text:
        return text.strip()
    return text.replace("```json", "").replace("```", "").strip()


def parse_analysis(text: str) -> AnalysisRecord:
    cleaned = _strip_code_fences(text or "")
    try:
        data = json.loads(cleaned)
        return AnalysisRecord.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        raise AnalysisParseError(f"{type(e).__name__}: {e}") from e


async def demo_analysis(multi_timeframe: bool, delay_sec: float = 2.0) -> AnalysisRecord:
    if delay_sec > 0:
        await asyncio.sleep(delay_sec)
    return MOCK_MULTI if multi_timeframe else MOCK_SINGLE


def openai_client(settings: Settings, http_client: httpx.AsyncClient | None = None) -> AsyncOpenAI:
    """SDK client with its own retries off; RetryExecutor owns the retry budget."""
    return AsyncOpenAI(api_key=settings.openai_api_key, max_retries=0, http_client=http_client)


async def _complete(client: AsyncOpenAI, model: str, prompt: str, images: List[ChartImage]) -> str:
    content: list[dict] = [{"type": "text", "text": prompt}]
    for img in images:
        content.append({"type": "image_url", "image_url": {"url": _to_data_url(img)}})

    try:
        resp = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": SYSTEM},
                {"role": "user", "content": content},
            ],
            temperature=0,
            response_format={"type": "json_object"},
        )
    except openai.APIStatusError as e:
        raise ExternalServiceError(str(e.message or e), status=e.status_code) from e
    except openai.APIError as e:
        raise ExternalServiceError(str(e.message or e)) from e

    return (resp.choices[0].message.content or "").strip()


async def analyze_chart_images(
    images: List[ChartImage],
    *,
    mode: str,
    context: str | None,
    settings: Settings,
    executor: RetryExecutor | None = None,
    client: AsyncOpenAI | None = None,
) -> AnalysisRecord:
    """1–2 chart snapshots → AnalysisRecord.

    The first image is the higher timeframe, the optional second the lower one.
    """
    if not images or len(images) > 2:
        raise ValueError("expected one or two chart images")

    multi = len(images) == 2
    if settings.demo_mode:
        log.info("Demo mode active (%s TF)", "multi" if multi else "single")
        return await demo_analysis(multi, settings.demo_delay_sec)

    prompt = build_prompt(mode, context, multi_timeframe=multi, language=settings.summary_language)
    executor = executor or RetryExecutor(settings.retry)
    client = client or openai_client(settings)
    model = settings.vision_model

    log.info("Analyzing with %s (multi-TF: %s)", model, multi)
    text = await executor.execute(lambda: _complete(client, model, prompt, images), f"Vision {model}")
    return parse_analysis(text)
