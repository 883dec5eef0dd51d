"""Client-side session: uploads charts to the analyze API and journals results.

The journal stays with the client; the API never stores analyses.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import httpx

from .journal.store import JournalStore
from .vision.preprocess import compress_image
from .vision.schema import MODES, AnalysisRecord, ChartImage

log = logging.getLogger(__name__)


class CooldownActiveError(Exception):
    def __init__(self, remaining: float):
        super().__init__(f"Please wait {remaining:.0f}s before the next analysis")
        self.remaining = remaining


class AnalysisRequestError(Exception):
    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class CockpitClient:
    def __init__(
        self,
        base_url: str,
        journal: JournalStore,
        *,
        cooldown_seconds: float = 10,
        http: Optional[httpx.AsyncClient] = None,
        timeout_s: float = 120,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.journal = journal
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock
        self._http = http or httpx.AsyncClient(base_url=base_url, timeout=timeout_s)
        self._ready_at = 0.0

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "CockpitClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    def cooldown_remaining(self) -> float:
        return max(0.0, self._ready_at - self.clock())

    def _start_cooldown(self) -> None:
        self._ready_at = self.clock() + self.cooldown_seconds

    async def analyze(
        self,
        mode: str,
        image_htf: ChartImage | None = None,
        image_ltf: ChartImage | None = None,
        context: str = "",
        pair: str | None = None,
    ) -> AnalysisRecord:
        """Run one analysis and save it to the journal.

        With both images this is a confluence (multi-timeframe) request and
        the lower-timeframe chart becomes the journal thumbnail.
        """
        if mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}")
        if image_htf is None and image_ltf is None:
            raise ValueError("at least one chart image is required")

        remaining = self.cooldown_remaining()
        if remaining > 0:
            raise CooldownActiveError(remaining)

        try:
            record = await self._post(mode, image_htf, image_ltf, context)
        finally:
            self._start_cooldown()

        main = image_ltf or image_htf
        is_confluence = image_htf is not None and image_ltf is not None
        await self.journal.add_entry(mode, main, record, pair=pair, is_confluence=is_confluence)
        return record

    async def _post(
        self,
        mode: str,
        image_htf: ChartImage | None,
        image_ltf: ChartImage | None,
        context: str,
    ) -> AnalysisRecord:
        files = {}
        for field, img in (("image_htf", image_htf), ("image_ltf", image_ltf)):
            if img is None:
                continue
            try:
                small = compress_image(img)
            except (OSError, ValueError) as e:
                raise AnalysisRequestError(f"Could not read image {img.filename}: {e}") from e
            files[field] = (small.filename, small.data, small.content_type or "application/octet-stream")

        try:
            resp = await self._http.post("/v1/analyze", data={"mode": mode, "context": context}, files=files)
        except httpx.HTTPError as e:
            raise AnalysisRequestError(f"Analysis request failed: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = None

        if resp.status_code >= 400 or not isinstance(data, dict):
            message = (data or {}).get("error") if isinstance(data, dict) else None
            raise AnalysisRequestError(
                message or f"Analysis failed ({resp.status_code}): {resp.reason_phrase}",
                status=resp.status_code,
            )
        if data.get("error"):
            raise AnalysisRequestError(data["error"], status=resp.status_code)

        return AnalysisRecord.model_validate(data)
