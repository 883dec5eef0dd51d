from __future__ import annotations

from typing import Iterable, List, Tuple

from .models import JournalEntry, JournalStats, StreakType


def win_rate(entries: Iterable[JournalEntry]) -> float:
    """Wins over resolved trades (WIN, LOSS, BREAKEVEN) as a percentage."""
    wins = resolved = 0
    for e in entries:
        if e.is_resolved:
            resolved += 1
            if e.outcome == "WIN":
                wins += 1
    return (wins / resolved) * 100 if resolved else 0.0


def current_streak(entries: Iterable[JournalEntry]) -> Tuple[int, StreakType]:
    """Run of identical WIN/LOSS outcomes, most recently resolved first.

    BREAKEVEN and PENDING entries neither extend nor break a streak.
    """
    decided = [e for e in entries if e.outcome in ("WIN", "LOSS")]
    if not decided:
        return 0, "NONE"

    decided.sort(key=lambda e: e.last_activity, reverse=True)
    kind = decided[0].outcome
    n = 0
    for e in decided:
        if e.outcome != kind:
            break
        n += 1
    return n, kind


def compute_stats(entries: List[JournalEntry]) -> JournalStats:
    counts = {"WIN": 0, "LOSS": 0, "BREAKEVEN": 0, "PENDING": 0}
    for e in entries:
        counts[e.outcome] += 1

    streak, streak_type = current_streak(entries)

    pnls = [e.pnl for e in entries if e.pnl is not None]
    total_pnl = float(sum(pnls))
    avg_pnl = total_pnl / len(pnls) if pnls else 0.0

    return JournalStats(
        total=len(entries),
        win_count=counts["WIN"],
        loss_count=counts["LOSS"],
        break_even_count=counts["BREAKEVEN"],
        pending_count=counts["PENDING"],
        win_rate=win_rate(entries),
        win_rate_scalping=win_rate(e for e in entries if e.mode == "scalping"),
        win_rate_swing=win_rate(e for e in entries if e.mode == "swing"),
        current_streak=streak,
        streak_type=streak_type,
        total_pnl=total_pnl,
        avg_pnl=avg_pnl,
    )
