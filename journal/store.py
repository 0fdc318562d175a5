"""Data access for trades, habits, streak records and broadcast signals.

The computation core never touches the database; everything it reads or writes
goes through ``JournalStore``. A trade and its habit row are written in one
transaction, and the streak record is upserted in place, one row per user.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from journal.models.broadcast_signal import BroadcastSignal
from journal.models.habit import Habit
from journal.models.streak_record import StreakRecord
from journal.models.trade import Trade
from journal.models.user import User

logger = logging.getLogger(__name__)


class JournalStore:
    """Repository over one database session."""

    def __init__(self, session: Session):
        self.session = session

    # ------------------------------------------------------------------
    # Trades
    # ------------------------------------------------------------------

    def create_trade(self, trade: Trade, habit: Habit) -> Trade:
        """Insert a trade and its habit as a single unit.

        The trade is flushed first so the habit can reference its generated id;
        both rows are committed together or neither is.
        """
        try:
            self.session.add(trade)
            self.session.flush()
            habit.trade_id = trade.id
            habit.user_id = trade.user_id
            self.session.add(habit)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to save trade for user {trade.user_id}, rolled back trade and habit: {e}")
            raise
        self.session.refresh(trade)
        return trade

    def get_trade(self, trade_id: int) -> Trade | None:
        return self.session.get(Trade, trade_id)

    def save(self, *rows: Any) -> None:
        """Commit changes to already-loaded rows in one write."""
        try:
            for row in rows:
                self.session.add(row)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to save {', '.join(type(r).__name__ for r in rows)}: {e}")
            raise
        for row in rows:
            self.session.refresh(row)

    def update_trade(self, trade_id: int, fields: dict[str, Any]) -> Trade | None:
        """Apply a partial update to a trade. Returns None if it does not exist."""
        trade = self.get_trade(trade_id)
        if trade is None:
            return None
        for key, value in fields.items():
            setattr(trade, key, value)
        self.save(trade)
        return trade

    def delete_trade(self, trade_id: int) -> bool:
        """Delete a trade together with its habit row."""
        trade = self.get_trade(trade_id)
        if trade is None:
            return False
        try:
            for habit in self.session.exec(select(Habit).where(Habit.trade_id == trade_id)).all():
                self.session.delete(habit)
            self.session.delete(trade)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Failed to delete trade {trade_id}: {e}")
            raise
        return True

    def list_trades(
        self,
        user_id: int,
        status: str | None = None,
        outcome: str | None = None,
        pair: str | None = None,
        tag: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Trade]:
        """A user's trades, newest first."""
        stmt = (
            select(Trade)
            .where(Trade.user_id == user_id)
            .order_by(Trade.created_at.desc(), Trade.id.desc())
        )
        if status is not None:
            stmt = stmt.where(Trade.status == status)
        if outcome is not None:
            stmt = stmt.where(Trade.outcome == outcome)
        if pair is not None:
            stmt = stmt.where(Trade.pair == pair)

        if tag is None:
            if offset:
                stmt = stmt.offset(offset)
            if limit is not None:
                stmt = stmt.limit(limit)
            return list(self.session.exec(stmt).all())

        # Tags live in a JSON column; filtered in Python
        rows = [t for t in self.session.exec(stmt).all() if tag in (t.tags or [])]
        end = None if limit is None else offset + limit
        return rows[offset:end]

    # ------------------------------------------------------------------
    # Habits
    # ------------------------------------------------------------------

    def get_habit(self, trade_id: int) -> Habit | None:
        return self.session.exec(select(Habit).where(Habit.trade_id == trade_id)).first()

    def list_habits(self, user_id: int) -> list[Habit]:
        stmt = select(Habit).where(Habit.user_id == user_id).order_by(Habit.trade_id.desc())
        return list(self.session.exec(stmt).all())

    def habits_by_trade(self, user_id: int) -> dict[int, Habit]:
        return {h.trade_id: h for h in self.list_habits(user_id)}

    # ------------------------------------------------------------------
    # Streak records
    # ------------------------------------------------------------------

    def get_streak_record(self, user_id: int) -> StreakRecord | None:
        return self.session.exec(
            select(StreakRecord).where(StreakRecord.user_id == user_id)
        ).first()

    def upsert_streak_record(
        self,
        user_id: int,
        best_unbroken_trades: int,
        best_unbroken_days: int,
    ) -> tuple[StreakRecord, bool]:
        """Insert or update the user's streak record.

        Returns (record, changed). Writing the values already stored is a no-op
        and leaves ``updated_at`` untouched.
        """
        record = self.get_streak_record(user_id)
        if record is not None and (
            record.best_unbroken_trades == best_unbroken_trades
            and record.best_unbroken_days == best_unbroken_days
        ):
            return record, False

        if record is None:
            record = StreakRecord(user_id=user_id)
        record.best_unbroken_trades = best_unbroken_trades
        record.best_unbroken_days = best_unbroken_days
        record.updated_at = datetime.now(timezone.utc)
        self.save(record)
        return record, True

    # ------------------------------------------------------------------
    # Signals and users
    # ------------------------------------------------------------------

    def create_signal(self, signal: BroadcastSignal) -> BroadcastSignal:
        self.save(signal)
        return signal

    def list_signals(self, limit: int = 50, offset: int = 0) -> list[BroadcastSignal]:
        stmt = (
            select(BroadcastSignal)
            .order_by(BroadcastSignal.created_at.desc(), BroadcastSignal.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.exec(stmt).all())

    def list_user_ids(self) -> list[int]:
        return list(self.session.exec(select(User.id)).all())
