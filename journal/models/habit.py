"""Habit model: discipline answers recorded alongside each trade."""

from sqlmodel import SQLModel, Field


class Habit(SQLModel, table=True):
    __tablename__ = "habit"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    trade_id: int = Field(foreign_key="trade.id", index=True, unique=True)
    had_plan: bool = False
    plan_followed: bool = False
    was_gamble: bool = False  # mutually exclusive with plan_followed
    streak: int = 0  # 1 when the trade earned discipline credit
