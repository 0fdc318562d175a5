"""Trade model: one logged position in a user's journal."""

from datetime import datetime, timezone

from sqlalchemy import JSON
from sqlmodel import SQLModel, Field, Column


class Trade(SQLModel, table=True):
    __tablename__ = "trade"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), index=True)

    # Instrument
    pair: str = Field(index=True)  # e.g. "BTC/USDT", "EURUSD"
    is_crypto: bool = True  # False = forex, sized in lots

    # Risk parameters
    direction: str  # "long" or "short"
    entry: float
    stop_loss: float
    take_profits: list[float] = Field(default_factory=list, sa_column=Column(JSON))
    position_size: float
    position_unit: str = "USD"  # "USD", "Lots", "CoinValue"
    leverage: float = 1.0

    # Lifecycle
    status: str = "in_progress"  # "in_progress" or "completed"
    outcome: str | None = None  # "Win", "Loss", "Breakeven", "In Progress"
    profit: float | None = None
    is_edited: bool = False  # outcome/profit are final once set

    # Annotation
    emotions: str = ""
    notes: str = ""
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    screenshot_url: str | None = None
    rule_broken: bool = False
