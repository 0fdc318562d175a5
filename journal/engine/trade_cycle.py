"""Trade lifecycle orchestration.

Every mutation follows the same order: validate input → upload screenshot (if
any) → resolve outcome → compute profit → persist outcome and profit in one
write → recompute the streak from the user's full history → upsert the
streak record.
"""

import logging

from journal.config import settings
from journal.engine.price_watch import stop_watch
from journal.models.habit import Habit
from journal.models.streak_record import StreakRecord
from journal.models.trade import Trade
from journal.schemas.trade import RISK_FIELDS, HabitUpdate, TradeCreate, TradeUpdate
from journal.services.outcome import resolve_outcome
from journal.services.price_feed import PriceFeed
from journal.services.profit import realized_profit
from journal.services.streak import StreakSummary, compute_streak, habit_credit
from journal.services.uploads import Screenshot, ScreenshotUploader, get_uploader
from journal.store import JournalStore
from journal.utils.constants import (
    OUTCOME_IN_PROGRESS,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
)

logger = logging.getLogger(__name__)


class TradeNotFound(LookupError):
    """Trade does not exist or belongs to another user."""


class TradeLocked(Exception):
    """Trade outcome is final; risk fields can no longer change."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def settle(trade: Trade, current_price=None):
    """Set outcome and profit on the model together, ready for a single write."""
    outcome = resolve_outcome(trade, current_price)
    profit = realized_profit(trade, outcome, current_price)
    trade.outcome = outcome
    trade.profit = float(profit) if profit is not None else None


def _apply_lifecycle(trade: Trade):
    if trade.status == STATUS_COMPLETED:
        settle(trade)
        trade.is_edited = True
    else:
        trade.outcome = OUTCOME_IN_PROGRESS
        trade.profit = None


def _sync_habit(habit: Habit, was_gamble: bool):
    habit.was_gamble = was_gamble
    if was_gamble:
        habit.plan_followed = False
    habit.streak = habit_credit(habit.had_plan, habit.plan_followed, habit.was_gamble)


def _owned_trade(store: JournalStore, user_id: int, trade_id: int) -> Trade:
    trade = store.get_trade(trade_id)
    if trade is None or trade.user_id != user_id:
        raise TradeNotFound(f"Trade {trade_id} not found")
    return trade


# ---------------------------------------------------------------------------
# Streak
# ---------------------------------------------------------------------------

def refresh_streak(
    store: JournalStore,
    user_id: int,
    allow_decrease: bool = False,
) -> tuple[StreakSummary, StreakRecord]:
    """Recompute the user's streak from scratch and upsert the best-run record.

    The stored bests only rise unless ``allow_decrease`` is set (trade
    deletion and explicit reset), in which case they are rewritten to what
    the remaining history supports.
    """
    summary = compute_streak(store.list_trades(user_id), settings.timezone)
    best_trades = summary.max_trades
    best_days = summary.max_days

    existing = store.get_streak_record(user_id)
    if existing is not None and not allow_decrease:
        best_trades = max(best_trades, existing.best_unbroken_trades)
        best_days = max(best_days, existing.best_unbroken_days)

    record, changed = store.upsert_streak_record(user_id, best_trades, best_days)
    if changed:
        logger.info(
            f"Streak record for user {user_id}: {best_trades} trades / {best_days} days"
        )
    return summary, record


def reset_streak_record(store: JournalStore, user_id: int) -> tuple[StreakSummary, StreakRecord]:
    """Explicit reset: bests become whatever the current history supports."""
    logger.info(f"Resetting streak record for user {user_id}")
    return refresh_streak(store, user_id, allow_decrease=True)


# ---------------------------------------------------------------------------
# Trade mutations
# ---------------------------------------------------------------------------

async def create_trade(
    store: JournalStore,
    user_id: int,
    data: TradeCreate,
    screenshot: Screenshot | None = None,
    uploader: ScreenshotUploader | None = None,
) -> Trade:
    """Log a new trade with its habit answers.

    A screenshot is uploaded before anything is written; an UploadError
    propagates and nothing is saved.
    """
    payload = data.model_dump(exclude={"habit"})
    if screenshot is not None:
        payload["screenshot_url"] = await (uploader or get_uploader()).upload_async(screenshot)

    trade = Trade(user_id=user_id, **payload)
    _apply_lifecycle(trade)

    habit = Habit(user_id=user_id, had_plan=data.habit.had_plan, plan_followed=data.habit.plan_followed)
    _sync_habit(habit, data.habit.was_gamble or trade.rule_broken)

    store.create_trade(trade, habit)
    logger.info(
        f"User {user_id} logged trade {trade.id} {trade.pair} {trade.direction} "
        f"({trade.status}, outcome={trade.outcome})"
    )
    refresh_streak(store, user_id)
    return trade


def update_trade(store: JournalStore, user_id: int, trade_id: int, data: TradeUpdate) -> Trade:
    """Apply a partial edit.

    Raises TradeNotFound, TradeLocked (risk fields of a finalized trade) or
    pydantic.ValidationError (merged trade no longer consistent).
    """
    trade = _owned_trade(store, user_id, trade_id)
    changes = data.model_dump(exclude_unset=True)

    if trade.is_edited:
        locked = sorted(k for k in RISK_FIELDS & changes.keys() if changes[k] != getattr(trade, k))
        if locked:
            raise TradeLocked(f"Trade {trade_id} is finalized; cannot change {', '.join(locked)}")

    # Merged trade must still satisfy the direction rules
    current = trade.model_dump(include=set(TradeCreate.model_fields) - {"habit"})
    merged = TradeCreate.model_validate({**current, **changes})
    for key in changes:
        setattr(trade, key, getattr(merged, key))

    if not trade.is_edited:
        _apply_lifecycle(trade)

    rows = [trade]
    habit = store.get_habit(trade.id)
    if habit is not None and "rule_broken" in changes:
        _sync_habit(habit, trade.rule_broken)
        rows.append(habit)

    store.save(*rows)
    if trade.status != STATUS_IN_PROGRESS:
        stop_watch(trade.id)
    logger.info(f"User {user_id} updated trade {trade.id}: {', '.join(sorted(changes)) or 'no fields'}")
    refresh_streak(store, user_id)
    return trade


async def close_trade(
    store: JournalStore,
    user_id: int,
    trade_id: int,
    price_feed: PriceFeed,
) -> tuple[Trade, float | str]:
    """Finalize an in-progress trade against the live price, if one is available."""
    trade = _owned_trade(store, user_id, trade_id)
    if trade.is_edited:
        raise TradeLocked(f"Trade {trade_id} is already finalized")

    price = await price_feed.get_price(trade.pair, is_crypto=trade.is_crypto)
    trade.status = STATUS_COMPLETED
    settle(trade, price)
    trade.is_edited = True
    store.save(trade)
    stop_watch(trade.id)

    logger.info(f"User {user_id} closed trade {trade.id} at {price}: {trade.outcome} {trade.profit}")
    refresh_streak(store, user_id)
    return trade, price


def delete_trade(store: JournalStore, user_id: int, trade_id: int):
    """Delete a trade and its habit, then recompute the streak record."""
    _owned_trade(store, user_id, trade_id)
    store.delete_trade(trade_id)
    stop_watch(trade_id)
    logger.info(f"User {user_id} deleted trade {trade_id}")
    refresh_streak(store, user_id, allow_decrease=True)


def update_habit(store: JournalStore, user_id: int, trade_id: int, data: HabitUpdate) -> Habit:
    """Edit the discipline answers of a trade; ``was_gamble`` mirrors onto the trade."""
    trade = _owned_trade(store, user_id, trade_id)
    habit = store.get_habit(trade_id)
    if habit is None:
        habit = Habit(user_id=user_id, trade_id=trade_id)

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "had_plan" in changes:
        habit.had_plan = changes["had_plan"]
    if changes.get("plan_followed"):
        habit.plan_followed = True
        habit.was_gamble = False
    elif "plan_followed" in changes:
        habit.plan_followed = False

    was_gamble = changes.get("was_gamble", habit.was_gamble)
    _sync_habit(habit, was_gamble)
    trade.rule_broken = habit.was_gamble

    store.save(habit, trade)
    refresh_streak(store, user_id)
    return habit

