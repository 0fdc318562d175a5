"""Pydantic schemas for the Trade and Habit API."""

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from journal.utils.constants import (
    CRYPTO_UNITS,
    DIRECTION_LONG,
    FOREX_UNITS,
    MAX_TAKE_PROFITS,
    VALID_DIRECTIONS,
    VALID_STATUSES,
    VALID_UNITS,
)

_UNSAFE_CHARS_RE = re.compile(r"[<>\"'&]")


def sanitize_text(value: str) -> str:
    """Strip characters that could smuggle markup into rendered notes."""
    return _UNSAFE_CHARS_RE.sub("", value).strip()


def _clean_tags(tags: list[str]) -> list[str]:
    seen: list[str] = []
    for tag in tags:
        text = sanitize_text(tag)
        if text and text not in seen:
            seen.append(text)
    return seen


def _check_choice(value: str, allowed: list[str]) -> str:
    if value not in allowed:
        raise ValueError(f"must be one of: {', '.join(allowed)}")
    return value


class HabitInput(BaseModel):
    had_plan: bool = False
    plan_followed: bool = False
    was_gamble: bool = False

    @model_validator(mode="after")
    def _validate_exclusive(self):
        if self.plan_followed and self.was_gamble:
            raise ValueError("plan_followed and was_gamble are mutually exclusive")
        return self


class HabitUpdate(BaseModel):
    had_plan: bool | None = None
    plan_followed: bool | None = None
    was_gamble: bool | None = None

    @field_validator("had_plan", "plan_followed", "was_gamble", mode="before")
    @classmethod
    def _reject_null(cls, value):
        # Omit a flag to leave it unchanged; null is not a value for it
        if value is None:
            raise ValueError("must be true or false")
        return value

    @model_validator(mode="after")
    def _validate_exclusive(self):
        if self.plan_followed and self.was_gamble:
            raise ValueError("plan_followed and was_gamble are mutually exclusive")
        return self


class HabitRead(BaseModel):
    id: int
    trade_id: int
    had_plan: bool
    plan_followed: bool
    was_gamble: bool
    streak: int

    model_config = {"from_attributes": True}


class TradeCreate(BaseModel):
    pair: str = Field(min_length=1, max_length=32)
    is_crypto: bool = True
    direction: str = DIRECTION_LONG
    entry: float = Field(gt=0)
    stop_loss: float = Field(gt=0)
    take_profits: list[float] = Field(min_length=1, max_length=MAX_TAKE_PROFITS)
    position_size: float = Field(gt=0)
    position_unit: str = "USD"
    leverage: float = Field(default=1.0, ge=1)
    status: str = "in_progress"
    emotions: str = Field(default="", max_length=500)
    notes: str = Field(default="", max_length=5000)
    tags: list[str] = Field(default_factory=list, max_length=20)
    screenshot_url: str | None = None
    rule_broken: bool = False
    habit: HabitInput = Field(default_factory=HabitInput)

    @field_validator("pair")
    @classmethod
    def _trim_pair(cls, value: str) -> str:
        text = value.strip()
        if not text:
            raise ValueError("must not be empty")
        return text

    @field_validator("direction")
    @classmethod
    def _validate_direction(cls, value: str) -> str:
        return _check_choice(value, VALID_DIRECTIONS)

    @field_validator("status")
    @classmethod
    def _validate_status(cls, value: str) -> str:
        return _check_choice(value, VALID_STATUSES)

    @field_validator("position_unit")
    @classmethod
    def _validate_unit(cls, value: str) -> str:
        return _check_choice(value, VALID_UNITS)

    @field_validator("take_profits")
    @classmethod
    def _validate_take_profits(cls, value: list[float]) -> list[float]:
        if any(tp <= 0 for tp in value):
            raise ValueError("take-profit prices must be positive")
        return value

    @field_validator("emotions", "notes")
    @classmethod
    def _sanitize(cls, value: str) -> str:
        return sanitize_text(value)

    @field_validator("tags")
    @classmethod
    def _validate_tags(cls, value: list[str]) -> list[str]:
        return _clean_tags(value)

    @field_validator("screenshot_url")
    @classmethod
    def _validate_url(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        url = value.strip()
        if not (url.startswith("http://") or url.startswith("https://")):
            raise ValueError("must start with http:// or https://")
        return url

    @model_validator(mode="after")
    def _validate_relationships(self):
        allowed_units = CRYPTO_UNITS if self.is_crypto else FOREX_UNITS
        if self.position_unit not in allowed_units:
            kind = "crypto" if self.is_crypto else "forex"
            raise ValueError(f"{kind} trades must be sized in: {', '.join(allowed_units)}")

        if self.direction == DIRECTION_LONG:
            if self.stop_loss >= self.entry:
                raise ValueError("long trades need stop_loss below entry")
            if any(tp <= self.entry for tp in self.take_profits):
                raise ValueError("long trades need every take-profit above entry")
        else:
            if self.stop_loss <= self.entry:
                raise ValueError("short trades need stop_loss above entry")
            if any(tp >= self.entry for tp in self.take_profits):
                raise ValueError("short trades need every take-profit below entry")

        if self.habit.was_gamble:
            self.rule_broken = True
        return self


class TradeUpdate(BaseModel):
    pair: str | None = Field(default=None, min_length=1, max_length=32)
    is_crypto: bool | None = None
    direction: str | None = None
    entry: float | None = Field(default=None, gt=0)
    stop_loss: float | None = Field(default=None, gt=0)
    take_profits: list[float] | None = Field(default=None, min_length=1, max_length=MAX_TAKE_PROFITS)
    position_size: float | None = Field(default=None, gt=0)
    position_unit: str | None = None
    leverage: float | None = Field(default=None, ge=1)
    status: str | None = None
    emotions: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=5000)
    tags: list[str] | None = Field(default=None, max_length=20)
    screenshot_url: str | None = None
    rule_broken: bool | None = None

    @field_validator("direction")
    @classmethod
    def _validate_optional_direction(cls, value: str | None) -> str | None:
        return None if value is None else _check_choice(value, VALID_DIRECTIONS)

    @field_validator("status")
    @classmethod
    def _validate_optional_status(cls, value: str | None) -> str | None:
        return None if value is None else _check_choice(value, VALID_STATUSES)

    @field_validator("position_unit")
    @classmethod
    def _validate_optional_unit(cls, value: str | None) -> str | None:
        return None if value is None else _check_choice(value, VALID_UNITS)

    @field_validator("emotions", "notes")
    @classmethod
    def _sanitize_optional(cls, value: str | None) -> str | None:
        return None if value is None else sanitize_text(value)

    @field_validator("tags")
    @classmethod
    def _validate_optional_tags(cls, value: list[str] | None) -> list[str] | None:
        return None if value is None else _clean_tags(value)


# Fields that decide outcome and profit; frozen once a trade is finalized
RISK_FIELDS = {
    "pair", "is_crypto", "direction", "entry", "stop_loss", "take_profits",
    "position_size", "position_unit", "leverage", "status",
}


class TradeRead(BaseModel):
    id: int
    user_id: int
    created_at: datetime
    pair: str
    is_crypto: bool
    direction: str
    entry: float
    stop_loss: float
    take_profits: list[float]
    position_size: float
    position_unit: str
    leverage: float
    status: str
    outcome: str | None
    profit: float | None
    is_edited: bool
    emotions: str
    notes: str
    tags: list[str]
    screenshot_url: str | None
    rule_broken: bool
    rr_ratio: float | None = None
    initial_margin: float | None = None
    habit: HabitRead | None = None

    model_config = {"from_attributes": True}


class LiveQuoteRead(BaseModel):
    trade_id: int
    pair: str
    price: float | None
    outcome: str
    unrealized_profit: float | None
    updated_at: datetime
