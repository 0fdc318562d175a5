"""Habit API: discipline answers attached to each trade."""

from fastapi import APIRouter, Depends, HTTPException

from journal.api.deps import get_current_user, get_store
from journal.engine import trade_cycle
from journal.models.user import User
from journal.schemas.trade import HabitRead, HabitUpdate
from journal.store import JournalStore

router = APIRouter(prefix="/api/habits", tags=["habits"])


@router.get("", response_model=list[HabitRead])
def list_habits(
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
):
    return store.list_habits(user.id)


@router.put("/{trade_id}", response_model=HabitRead)
def update_habit(
    trade_id: int,
    data: HabitUpdate,
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
):
    """Update plan/gamble flags; marking a gamble breaks the streak at that trade."""
    try:
        return trade_cycle.update_habit(store, user.id, trade_id, data)
    except trade_cycle.TradeNotFound:
        raise HTTPException(status_code=404, detail="Trade not found")
