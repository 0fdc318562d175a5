"""Streak API: current discipline run and the user's best record."""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from journal.api.deps import get_current_user, get_store
from journal.engine import trade_cycle
from journal.models.user import User
from journal.store import JournalStore

router = APIRouter(prefix="/api/streak", tags=["streak"])


class StreakRead(BaseModel):
    current_trades: int
    current_days: int
    max_trades: int
    max_days: int
    best_unbroken_trades: int
    best_unbroken_days: int
    updated_at: datetime


def _read(summary, record) -> StreakRead:
    return StreakRead(
        **summary.to_dict(),
        best_unbroken_trades=record.best_unbroken_trades,
        best_unbroken_days=record.best_unbroken_days,
        updated_at=record.updated_at,
    )


@router.get("", response_model=StreakRead)
def get_streak(
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
):
    summary, record = trade_cycle.refresh_streak(store, user.id)
    return _read(summary, record)


@router.post("/reset", response_model=StreakRead)
def reset_streak(
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
):
    """Rewrite the best-run record to what the current history supports.

    The current run is left as is; to break it, mark a trade as a gamble
    through the habits API.
    """
    summary, record = trade_cycle.reset_streak_record(store, user.id)
    return _read(summary, record)
