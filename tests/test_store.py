"""Tests for the data-access boundary."""

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from conftest import utc
from journal.models.broadcast_signal import BroadcastSignal
from journal.models.habit import Habit
from journal.models.streak_record import StreakRecord
from journal.models.trade import Trade


def _trade(user_id: int, **overrides) -> Trade:
    fields = {
        "user_id": user_id,
        "pair": "BTC/USDT",
        "direction": "long",
        "entry": 100.0,
        "stop_loss": 95.0,
        "take_profits": [110.0, 120.0],
        "position_size": 1000.0,
        "leverage": 10.0,
        "tags": ["breakout"],
    }
    fields.update(overrides)
    return Trade(**fields)


# ---------------------------------------------------------------------------
# 1. Trades and habits
# ---------------------------------------------------------------------------

class TestCreateTrade:
    def test_round_trip(self, store, user):
        trade = store.create_trade(_trade(user.id), Habit(user_id=user.id, had_plan=True))
        loaded = store.get_trade(trade.id)
        assert loaded.pair == "BTC/USDT"
        assert loaded.take_profits == [110.0, 120.0]
        assert loaded.tags == ["breakout"]

    def test_habit_is_linked(self, store, user):
        trade = store.create_trade(_trade(user.id), Habit(user_id=user.id, had_plan=True))
        habit = store.get_habit(trade.id)
        assert habit is not None
        assert habit.trade_id == trade.id
        assert habit.user_id == user.id

    def test_failed_habit_write_rolls_back_trade(self, store, session, user, monkeypatch):
        original_add = session.add

        def failing_add(row, *args, **kwargs):
            if isinstance(row, Habit):
                raise SQLAlchemyError("disk full")
            return original_add(row, *args, **kwargs)

        monkeypatch.setattr(session, "add", failing_add)
        with pytest.raises(SQLAlchemyError):
            store.create_trade(_trade(user.id), Habit(user_id=user.id))
        monkeypatch.undo()

        assert session.exec(select(Trade)).all() == []
        assert session.exec(select(Habit)).all() == []


class TestUpdateAndDelete:
    def test_update_trade(self, store, user):
        trade = store.create_trade(_trade(user.id), Habit(user_id=user.id))
        updated = store.update_trade(trade.id, {"notes": "moved stop", "tags": ["a", "b"]})
        assert updated.notes == "moved stop"
        assert store.get_trade(trade.id).tags == ["a", "b"]

    def test_update_missing_trade(self, store):
        assert store.update_trade(999, {"notes": "x"}) is None

    def test_delete_removes_habit(self, store, session, user):
        trade = store.create_trade(_trade(user.id), Habit(user_id=user.id))
        assert store.delete_trade(trade.id) is True
        assert store.get_trade(trade.id) is None
        assert session.exec(select(Habit)).all() == []

    def test_delete_missing_trade(self, store):
        assert store.delete_trade(999) is False


class TestListTrades:
    @pytest.fixture
    def trades(self, store, user):
        rows = [
            _trade(user.id, created_at=utc(2024, 1, 1), pair="BTC/USDT", tags=["breakout"]),
            _trade(user.id, created_at=utc(2024, 1, 2), pair="ETH/USDT", tags=["range"], status="completed", outcome="Win"),
            _trade(user.id, created_at=utc(2024, 1, 3), pair="BTC/USDT", tags=["breakout", "news"]),
        ]
        return [store.create_trade(t, Habit(user_id=user.id)) for t in rows]

    def test_newest_first(self, store, user, trades):
        assert [t.id for t in store.list_trades(user.id)] == [trades[2].id, trades[1].id, trades[0].id]

    def test_filters(self, store, user, trades):
        assert [t.id for t in store.list_trades(user.id, pair="ETH/USDT")] == [trades[1].id]
        assert [t.id for t in store.list_trades(user.id, status="completed")] == [trades[1].id]
        assert [t.id for t in store.list_trades(user.id, outcome="Win")] == [trades[1].id]

    def test_tag_filter_with_paging(self, store, user, trades):
        assert [t.id for t in store.list_trades(user.id, tag="breakout")] == [trades[2].id, trades[0].id]
        assert [t.id for t in store.list_trades(user.id, tag="breakout", limit=1, offset=1)] == [trades[0].id]

    def test_limit_and_offset(self, store, user, trades):
        assert [t.id for t in store.list_trades(user.id, limit=1, offset=1)] == [trades[1].id]

    def test_other_users_are_isolated(self, store, trades):
        assert store.list_trades(user_id=12345) == []

    def test_habits_by_trade(self, store, user, trades):
        habits = store.habits_by_trade(user.id)
        assert set(habits) == {t.id for t in trades}


# ---------------------------------------------------------------------------
# 2. Streak records
# ---------------------------------------------------------------------------

class TestStreakRecord:
    def test_insert_then_update(self, store, user):
        record, changed = store.upsert_streak_record(user.id, 3, 2)
        assert changed is True
        assert (record.best_unbroken_trades, record.best_unbroken_days) == (3, 2)

        record, changed = store.upsert_streak_record(user.id, 5, 2)
        assert changed is True
        assert store.get_streak_record(user.id).best_unbroken_trades == 5

    def test_same_values_are_a_no_op(self, store, user):
        record, _ = store.upsert_streak_record(user.id, 3, 2)
        stamp = record.updated_at

        again, changed = store.upsert_streak_record(user.id, 3, 2)
        assert changed is False
        assert again.id == record.id
        assert again.updated_at == stamp

    def test_one_row_per_user(self, store, session, user):
        store.upsert_streak_record(user.id, 1, 1)
        store.upsert_streak_record(user.id, 2, 1)
        store.upsert_streak_record(user.id, 0, 0)
        assert len(session.exec(select(StreakRecord)).all()) == 1


# ---------------------------------------------------------------------------
# 3. Signals and users
# ---------------------------------------------------------------------------

def test_signals_newest_first(store, user):
    first = store.create_signal(BroadcastSignal(pair="BTC", message="a", created_by=user.id, created_at=utc(2024, 1, 1)))
    second = store.create_signal(BroadcastSignal(pair="ETH", message="b", created_by=user.id, created_at=utc(2024, 1, 2)))
    assert [s.id for s in store.list_signals()] == [second.id, first.id]
    assert [s.id for s in store.list_signals(limit=1)] == [second.id]


def test_list_user_ids(store, user):
    assert store.list_user_ids() == [user.id]
