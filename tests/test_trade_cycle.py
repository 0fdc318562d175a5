"""Tests for trade lifecycle orchestration: create, edit, close, delete."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import ValidationError
from sqlmodel import select

from conftest import FakeFeed, trade_payload, utc
from journal.engine import trade_cycle
from journal.engine.price_watch import is_watching, start_watch
from journal.models.trade import Trade
from journal.schemas.trade import HabitUpdate, TradeCreate, TradeUpdate
from journal.services.uploads import Screenshot, UploadError


def _create(store, user, **overrides) -> Trade:
    """Synchronous wrapper for tests that only need a trade to exist."""
    return asyncio.run(trade_cycle.create_trade(store, user.id, TradeCreate(**trade_payload(**overrides))))


def _backdate(store, trade, when):
    store.update_trade(trade.id, {"created_at": when})


def _shot() -> Screenshot:
    return Screenshot(filename="chart.png", content=b"\x89PNG...", content_type="image/png")


# ---------------------------------------------------------------------------
# 1. Create
# ---------------------------------------------------------------------------

class TestCreateTrade:
    @pytest.mark.asyncio
    async def test_open_trade_stays_in_progress(self, store, user):
        trade = await trade_cycle.create_trade(store, user.id, TradeCreate(**trade_payload()))
        assert trade.outcome == "In Progress"
        assert trade.profit is None
        assert trade.is_edited is False

    @pytest.mark.asyncio
    async def test_completed_trade_is_settled(self, store, user):
        trade = await trade_cycle.create_trade(
            store, user.id, TradeCreate(**trade_payload(status="completed"))
        )
        assert trade.outcome == "Win"
        assert trade.profit == 1000.0
        assert trade.is_edited is True

    @pytest.mark.asyncio
    async def test_habit_saved_with_credit(self, store, user):
        trade = await trade_cycle.create_trade(store, user.id, TradeCreate(**trade_payload()))
        habit = store.get_habit(trade.id)
        assert habit.had_plan is True
        assert habit.streak == 1

    @pytest.mark.asyncio
    async def test_gamble_breaks_rule(self, store, user):
        payload = trade_payload(habit={"had_plan": False, "plan_followed": False, "was_gamble": True})
        trade = await trade_cycle.create_trade(store, user.id, TradeCreate(**payload))
        assert trade.rule_broken is True
        assert store.get_habit(trade.id).streak == 0

    @pytest.mark.asyncio
    async def test_streak_record_written(self, store, user):
        await trade_cycle.create_trade(store, user.id, TradeCreate(**trade_payload()))
        await trade_cycle.create_trade(store, user.id, TradeCreate(**trade_payload()))
        record = store.get_streak_record(user.id)
        assert record.best_unbroken_trades == 2
        assert record.best_unbroken_days == 1

    @pytest.mark.asyncio
    async def test_screenshot_url_stored(self, store, user):
        uploader = MagicMock()
        uploader.upload_async = AsyncMock(return_value="https://res.cloudinary.com/demo/chart.png")
        trade = await trade_cycle.create_trade(
            store, user.id, TradeCreate(**trade_payload()), screenshot=_shot(), uploader=uploader
        )
        assert trade.screenshot_url == "https://res.cloudinary.com/demo/chart.png"
        uploader.upload_async.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_upload_saves_nothing(self, store, session, user):
        uploader = MagicMock()
        uploader.upload_async = AsyncMock(side_effect=UploadError("Failed to upload screenshot: boom"))
        with pytest.raises(UploadError):
            await trade_cycle.create_trade(
                store, user.id, TradeCreate(**trade_payload()), screenshot=_shot(), uploader=uploader
            )
        assert session.exec(select(Trade)).all() == []
        assert store.get_streak_record(user.id) is None


# ---------------------------------------------------------------------------
# 2. Update
# ---------------------------------------------------------------------------

class TestUpdateTrade:
    def test_completing_settles_outcome(self, store, user):
        trade = _create(store, user)
        updated = trade_cycle.update_trade(store, user.id, trade.id, TradeUpdate(status="completed"))
        assert updated.outcome == "Win"
        assert updated.profit == 1000.0
        assert updated.is_edited is True

    def test_open_trade_risk_fields_editable(self, store, user):
        trade = _create(store, user)
        updated = trade_cycle.update_trade(store, user.id, trade.id, TradeUpdate(stop_loss=90.0))
        assert updated.stop_loss == 90.0
        assert updated.outcome == "In Progress"

    def test_finalized_trade_rejects_risk_edit(self, store, user):
        trade = _create(store, user, status="completed")
        with pytest.raises(trade_cycle.TradeLocked):
            trade_cycle.update_trade(store, user.id, trade.id, TradeUpdate(entry=101.0))
        assert store.get_trade(trade.id).entry == 100.0

    def test_finalized_trade_accepts_same_value(self, store, user):
        trade = _create(store, user, status="completed")
        updated = trade_cycle.update_trade(store, user.id, trade.id, TradeUpdate(entry=100.0, notes="same"))
        assert updated.notes == "same"

    def test_finalized_trade_annotations_editable(self, store, user):
        trade = _create(store, user, status="completed")
        updated = trade_cycle.update_trade(
            store, user.id, trade.id, TradeUpdate(notes="<b>late</b> entry", tags=["review", "review"])
        )
        assert updated.notes == "blate/b entry"
        assert updated.tags == ["review"]
        assert updated.outcome == "Win"
        assert updated.profit == 1000.0

    def test_merged_trade_is_validated(self, store, user):
        trade = _create(store, user)
        with pytest.raises(ValidationError):
            trade_cycle.update_trade(store, user.id, trade.id, TradeUpdate(stop_loss=105.0))
        assert store.get_trade(trade.id).stop_loss == 95.0

    def test_other_users_trade_not_found(self, store, user):
        trade = _create(store, user)
        with pytest.raises(trade_cycle.TradeNotFound):
            trade_cycle.update_trade(store, user.id + 1, trade.id, TradeUpdate(notes="x"))

    def test_rule_broken_syncs_habit(self, store, user):
        trade = _create(store, user)
        trade_cycle.update_trade(store, user.id, trade.id, TradeUpdate(rule_broken=True))
        habit = store.get_habit(trade.id)
        assert habit.was_gamble is True
        assert habit.plan_followed is False
        assert habit.streak == 0

    def test_completion_stops_price_watch(self, store, user):
        trade = _create(store, user)
        start_watch(trade.id)
        trade_cycle.update_trade(store, user.id, trade.id, TradeUpdate(status="completed"))
        assert not is_watching(trade.id)


# ---------------------------------------------------------------------------
# 3. Close
# ---------------------------------------------------------------------------

class TestCloseTrade:
    @pytest.mark.asyncio
    async def test_close_at_live_price(self, store, user):
        trade = await trade_cycle.create_trade(store, user.id, TradeCreate(**trade_payload()))
        feed = FakeFeed(112.0)
        closed, price = await trade_cycle.close_trade(store, user.id, trade.id, feed)
        assert price == 112.0
        assert feed.calls == ["BTC/USDT"]
        assert closed.status == "completed"
        assert closed.outcome == "Win"
        assert closed.profit == 1000.0
        assert closed.is_edited is True

    @pytest.mark.asyncio
    async def test_close_at_stop(self, store, user):
        trade = await trade_cycle.create_trade(store, user.id, TradeCreate(**trade_payload()))
        closed, _ = await trade_cycle.close_trade(store, user.id, trade.id, FakeFeed(94.0))
        assert closed.outcome == "Loss"
        assert closed.profit == -500.0

    @pytest.mark.asyncio
    async def test_close_between_levels_is_breakeven(self, store, user):
        trade = await trade_cycle.create_trade(store, user.id, TradeCreate(**trade_payload()))
        closed, _ = await trade_cycle.close_trade(store, user.id, trade.id, FakeFeed(103.0))
        assert closed.outcome == "Breakeven"
        assert closed.profit == 0.0

    @pytest.mark.asyncio
    async def test_close_without_quote_uses_levels(self, store, user):
        trade = await trade_cycle.create_trade(store, user.id, TradeCreate(**trade_payload()))
        closed, price = await trade_cycle.close_trade(store, user.id, trade.id, FakeFeed("unavailable"))
        assert price == "unavailable"
        assert closed.outcome == "Win"

    @pytest.mark.asyncio
    async def test_finalized_trade_cannot_be_closed(self, store, user):
        trade = await trade_cycle.create_trade(
            store, user.id, TradeCreate(**trade_payload(status="completed"))
        )
        with pytest.raises(trade_cycle.TradeLocked):
            await trade_cycle.close_trade(store, user.id, trade.id, FakeFeed(90.0))


# ---------------------------------------------------------------------------
# 4. Delete, habits and the streak record
# ---------------------------------------------------------------------------

class TestStreakRecordLifecycle:
    def test_record_never_drops_on_edit(self, store, user):
        first = _create(store, user)
        second = _create(store, user)
        _backdate(store, first, utc(2024, 1, 1))
        _backdate(store, second, utc(2024, 1, 2))
        trade_cycle.refresh_streak(store, user.id)
        assert store.get_streak_record(user.id).best_unbroken_trades == 2

        trade_cycle.update_trade(store, user.id, second.id, TradeUpdate(rule_broken=True))
        summary, record = trade_cycle.refresh_streak(store, user.id)
        assert summary.current_trades == 0
        assert record.best_unbroken_trades == 2

    def test_delete_lowers_record(self, store, user):
        trades = [_create(store, user) for _ in range(3)]
        assert store.get_streak_record(user.id).best_unbroken_trades == 3

        trade_cycle.delete_trade(store, user.id, trades[0].id)
        assert store.get_trade(trades[0].id) is None
        assert store.get_streak_record(user.id).best_unbroken_trades == 2

    def test_delete_missing_trade(self, store, user):
        with pytest.raises(trade_cycle.TradeNotFound):
            trade_cycle.delete_trade(store, user.id, 999)

    def test_reset_rewrites_record(self, store, user):
        _create(store, user)
        store.upsert_streak_record(user.id, 10, 7)
        summary, record = trade_cycle.reset_streak_record(store, user.id)
        assert (record.best_unbroken_trades, record.best_unbroken_days) == (1, 1)
        assert summary.current_trades == 1

    def test_marking_gamble_breaks_trade(self, store, user):
        trade = _create(store, user)
        habit = trade_cycle.update_habit(store, user.id, trade.id, HabitUpdate(was_gamble=True))
        assert habit.was_gamble is True
        assert habit.streak == 0
        assert store.get_trade(trade.id).rule_broken is True

    def test_following_plan_clears_gamble(self, store, user):
        trade = _create(store, user, habit={"had_plan": True, "plan_followed": False, "was_gamble": True})
        habit = trade_cycle.update_habit(store, user.id, trade.id, HabitUpdate(plan_followed=True))
        assert habit.was_gamble is False
        assert habit.streak == 1
        assert store.get_trade(trade.id).rule_broken is False
