"""Local trading journal.

Keeps the last N analyses (newest first) as one JSON document in a
key-value storage, plus the outcomes the user records for them.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from functools import partial
from typing import Callable, List, Optional

from pydantic import ValidationError

from ..core.config import JournalConfig
from ..vision.preprocess import ThumbnailResult, make_thumbnail
from ..vision.schema import AnalysisRecord, ChartImage
from .models import OUTCOMES, JournalDocument, JournalEntry, JournalStats
from .stats import compute_stats
from .storage import KeyValueStorage, QuotaExceededError, StorageError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class JournalStore:
    def __init__(
        self,
        storage: KeyValueStorage,
        config: Optional[JournalConfig] = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
        thumbnailer: Optional[Callable[[bytes], ThumbnailResult]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.storage = storage
        self.config = config or JournalConfig()
        self.clock = clock
        self.id_factory = id_factory
        self.thumbnailer = thumbnailer or partial(
            make_thumbnail,
            max_size=self.config.thumbnail_max_size,
            quality=self.config.thumbnail_quality,
        )
        self.log = logger or logging.getLogger(__name__)

    def _now(self) -> datetime:
        now = self.clock()
        if now.tzinfo is None:
            return now.replace(tzinfo=timezone.utc)
        return now.astimezone(timezone.utc)

    # ----------------------------
    # Persistence
    # ----------------------------
    @property
    def key(self) -> str:
        return self.config.storage_key

    def list_entries(self) -> List[JournalEntry]:
        """Entries newest first. Missing or corrupt data reads as empty."""
        try:
            raw = self.storage.read(self.key)
        except Exception as e:
            self.log.error("Failed to read journal: %s", e)
            return []
        if not raw:
            return []

        try:
            doc = JournalDocument.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            self.log.error("Failed to load journal, treating as empty: %s", type(e).__name__)
            return []
        return doc.entries

    def _write(self, entries: List[JournalEntry]) -> None:
        text = JournalDocument(entries=entries).model_dump_json(by_alias=True)
        self.storage.write(self.key, text)

    def _save(self, entries: List[JournalEntry]) -> bool:
        try:
            self._write(entries)
        except StorageError as e:
            self.log.error("Failed to save journal: %s", e)
            return False
        return True

    def _save_with_fallback(self, entries: List[JournalEntry]) -> bool:
        """Save a freshly prepended list, shedding weight on quota errors.

        1. as is
        2. without the oldest entry
        3. additionally without the new entry's thumbnail
        """
        attempts = [entries]
        if len(entries) > 1:
            entries = entries[:-1]
            attempts.append(entries)
        if entries[0].thumbnail:
            attempts.append([entries[0].model_copy(update={"thumbnail": ""})] + entries[1:])

        for i, candidate in enumerate(attempts):
            try:
                self._write(candidate)
            except QuotaExceededError as e:
                self.log.warning("Journal storage quota exceeded (attempt %d/%d): %s", i + 1, len(attempts), e)
                continue
            except StorageError as e:
                self.log.error("Failed to save journal: %s", e)
                return False
            if i > 0:
                self.log.info("Journal saved after freeing space (step %d)", i)
            return True

        self.log.error("Journal entry dropped: storage still full after freeing space")
        return False

    # ----------------------------
    # Operations
    # ----------------------------
    async def add_entry(
        self,
        mode: str,
        image: ChartImage,
        analysis: AnalysisRecord,
        pair: Optional[str] = None,
        is_confluence: bool = False,
    ) -> None:
        """Record a completed analysis. Never raises: a lost journal write
        must not break the analysis flow."""
        try:
            thumb = await asyncio.to_thread(self.thumbnailer, image.data)
            if not thumb.ok:
                self.log.warning("Failed to create thumbnail, saving without one: %s", thumb.error)

            entries = self.list_entries()
            now = self._now()
            if entries and entries[0].created_at > now:
                now = entries[0].created_at

            entry = JournalEntry(
                id=self.id_factory(),
                created_at=now,
                mode=mode,
                thumbnail=thumb.data_url,
                image_file_name=image.filename,
                decision=analysis.decision,
                confidence=analysis.confidence_score,
                analysis=analysis,
                outcome="PENDING",
                pair=pair or None,
                is_confluence=bool(is_confluence),
            )

            entries = [entry] + entries
            entries = entries[: self.config.max_entries]
            self._save_with_fallback(entries)
        except Exception:
            self.log.exception("Failed to save journal entry")

    def _find(self, entries: List[JournalEntry], entry_id: str) -> int:
        for i, e in enumerate(entries):
            if e.id == entry_id:
                return i
        return -1

    def update_outcome(
        self,
        entry_id: str,
        outcome: str,
        notes: Optional[str] = None,
        pnl: Optional[float] = None,
    ) -> bool:
        if outcome not in OUTCOMES:
            raise ValueError(f"unknown outcome: {outcome!r}")

        entries = self.list_entries()
        idx = self._find(entries, entry_id)
        if idx < 0:
            self.log.error("Entry not found: %s", entry_id)
            return False

        update = {"outcome": outcome, "outcome_updated_at": self._now()}
        if notes is not None:
            update["notes"] = notes
        if pnl is not None:
            update["pnl"] = float(pnl)

        entries[idx] = entries[idx].model_copy(update=update)
        return self._save(entries)

    def update_pair(self, entry_id: str, pair: str) -> bool:
        entries = self.list_entries()
        idx = self._find(entries, entry_id)
        if idx < 0:
            return False

        entries[idx] = entries[idx].model_copy(update={"pair": pair})
        return self._save(entries)

    def delete_entry(self, entry_id: str) -> None:
        entries = self.list_entries()
        kept = [e for e in entries if e.id != entry_id]
        if len(kept) != len(entries):
            self._save(kept)

    def clear_all(self) -> None:
        try:
            self.storage.remove(self.key)
        except Exception as e:
            self.log.error("Failed to clear journal: %s", e)

    def compute_stats(self) -> JournalStats:
        return compute_stats(self.list_entries())
