"""Database models."""

from journal.models.user import User
from journal.models.trade import Trade
from journal.models.habit import Habit
from journal.models.streak_record import StreakRecord
from journal.models.broadcast_signal import BroadcastSignal

__all__ = [
    "User",
    "Trade",
    "Habit",
    "StreakRecord",
    "BroadcastSignal",
]
