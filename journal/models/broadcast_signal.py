"""BroadcastSignal model: advisory trade idea pushed by an admin."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class BroadcastSignal(SQLModel, table=True):
    __tablename__ = "broadcast_signal"

    id: int | None = Field(default=None, primary_key=True)
    pair: str
    message: str
    take_profit: float | None = None
    stop_loss: float | None = None
    entry_range: str = ""  # free text, e.g. "64000-64500"
    signal_type: str = "crypto"  # "crypto" or "forex"
    created_by: int = Field(foreign_key="user.id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)
