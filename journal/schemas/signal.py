"""Pydantic schemas for broadcast signals."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from journal.utils.constants import SIGNAL_TYPES


class SignalCreate(BaseModel):
    pair: str = Field(min_length=1, max_length=32)
    message: str = Field(min_length=1, max_length=2000)
    take_profit: float | None = Field(default=None, gt=0)
    stop_loss: float | None = Field(default=None, gt=0)
    entry_range: str = Field(default="", max_length=64)
    signal_type: str = "crypto"

    @field_validator("pair", "message")
    @classmethod
    def _trim_required_text(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must not be empty")
        return text

    @field_validator("signal_type")
    @classmethod
    def _validate_type(cls, value: str) -> str:
        if value not in SIGNAL_TYPES:
            raise ValueError(f"must be one of: {', '.join(SIGNAL_TYPES)}")
        return value


class SignalRead(BaseModel):
    id: int
    pair: str
    message: str
    take_profit: float | None
    stop_loss: float | None
    entry_range: str
    signal_type: str
    created_by: int
    created_at: datetime

    model_config = {"from_attributes": True}
