"""Shared fixtures: in-memory database, store, users and an API client."""

import os

os.environ.setdefault("JOURNAL_DATABASE_URL", "sqlite://")
os.environ.setdefault("JOURNAL_JWT_SECRET", "test-secret")

from datetime import datetime, timezone

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

import journal.models  # noqa: F401
from journal.engine import price_watch
from journal.models.user import User
from journal.store import JournalStore


def trade_payload(**overrides) -> dict:
    """A valid long crypto trade as the API / TradeCreate expects it."""
    payload = {
        "pair": "BTC/USDT",
        "is_crypto": True,
        "direction": "long",
        "entry": 100.0,
        "stop_loss": 95.0,
        "take_profits": [110.0, 120.0],
        "position_size": 1000.0,
        "position_unit": "USD",
        "leverage": 10.0,
        "status": "in_progress",
        "emotions": "calm",
        "notes": "breakout retest",
        "tags": ["breakout", "btc"],
        "habit": {"had_plan": True, "plan_followed": True, "was_gamble": False},
    }
    payload.update(overrides)
    return payload


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class FakeFeed:
    """PriceFeed stand-in returning a fixed quote."""

    def __init__(self, price=None):
        self.price = price
        self.calls: list[str] = []

    async def get_price(self, pair: str, is_crypto: bool = True):
        self.calls.append(pair)
        return self.price


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def store(session) -> JournalStore:
    return JournalStore(session)


@pytest.fixture
def user(session) -> User:
    user = User(username="alice", hashed_password="not-used")
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(autouse=True)
def _clear_price_watches():
    yield
    for trade_id in list(price_watch._viewers):
        price_watch.stop_watch(trade_id)
    for job in price_watch.scheduler.get_jobs():
        price_watch.scheduler.remove_job(job.id)
