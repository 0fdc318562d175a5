"""Dashboard API: summary stats and equity curve."""

from fastapi import APIRouter, Depends

from journal.api.deps import get_current_user, get_store
from journal.config import settings
from journal.models.user import User
from journal.services.analytics import equity_curve, summarize
from journal.services.streak import compute_streak
from journal.store import JournalStore

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/summary")
def dashboard_summary(
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
):
    """Aggregated stats across the user's trades."""
    trades = store.list_trades(user.id)
    record = store.get_streak_record(user.id)
    return {
        **summarize(trades),
        "streak": compute_streak(trades, settings.timezone).to_dict(),
        "best_unbroken_trades": record.best_unbroken_trades if record else 0,
        "best_unbroken_days": record.best_unbroken_days if record else 0,
    }


@router.get("/equity")
def dashboard_equity(
    user: User = Depends(get_current_user),
    store: JournalStore = Depends(get_store),
):
    """Cumulative realized profit per completed trade."""
    return equity_curve(store.list_trades(user.id))
