"""Discipline streak aggregation.

A streak is the run of consecutive trades since the last discipline violation
(a trade flagged ``rule_broken`` / ``was_gamble``). It is counted both in trades
and in distinct calendar days holding those trades, and is always recomputed
from the full history so edits, deletions and backfilled trades stay correct.
"""

from dataclasses import dataclass, asdict
from datetime import date, datetime, timezone
from typing import Any, Iterable
from zoneinfo import ZoneInfo

from journal.utils.records import get_field


@dataclass(frozen=True)
class StreakSummary:
    """Current and best discipline runs."""
    current_trades: int = 0
    current_days: int = 0
    max_trades: int = 0
    max_days: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def _as_aware(value: datetime | str) -> datetime:
    if isinstance(value, str):
        # JSON-sourced records carry ISO-8601 text
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    # SQLite hands back naive datetimes; they were stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _is_violation(trade: Any) -> bool:
    return bool(get_field(trade, "rule_broken", False) or get_field(trade, "was_gamble", False))


def local_date(value: datetime | str, tz: ZoneInfo) -> date:
    return _as_aware(value).astimezone(tz).date()


def compute_streak(trades: Iterable[Any], tz: str | ZoneInfo = "UTC") -> StreakSummary:
    """Compute current and best unbroken runs over a user's trades.

    Args:
        trades: Trades (models or dicts) with ``created_at`` (datetime or
            ISO-8601 string) and a violation flag, in any order.
        tz: Time zone whose calendar days are counted.

    Returns:
        StreakSummary; all zeros for no trades.
    """
    zone = tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)
    ordered = sorted(
        (t for t in trades if get_field(t, "created_at") is not None),
        key=lambda t: _as_aware(get_field(t, "created_at")),
    )

    run_trades = 0
    run_days: set[date] = set()
    max_trades = 0
    max_days = 0

    for trade in ordered:
        if _is_violation(trade):
            run_trades = 0
            run_days.clear()
            continue
        run_trades += 1
        run_days.add(local_date(get_field(trade, "created_at"), zone))
        max_trades = max(max_trades, run_trades)
        max_days = max(max_days, len(run_days))

    return StreakSummary(
        current_trades=run_trades,
        current_days=len(run_days),
        max_trades=max_trades,
        max_days=max_days,
    )


def habit_credit(had_plan: bool, plan_followed: bool, was_gamble: bool) -> int:
    """Discipline credit a single trade earns for its habit row (0 or 1)."""
    return 1 if had_plan and plan_followed and not was_gamble else 0
