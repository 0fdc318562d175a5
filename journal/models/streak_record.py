"""StreakRecord model: best discipline run per user, upserted in place."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class StreakRecord(SQLModel, table=True):
    __tablename__ = "streak_record"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True, unique=True)
    best_unbroken_trades: int = 0
    best_unbroken_days: int = 0
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
