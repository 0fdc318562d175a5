"""APScheduler integration for live trade quotes.

While someone is viewing an in-progress trade, an interval job polls its price
and keeps the latest quote (price, outcome, unrealized profit) in memory. Jobs
are reference-counted per trade and removed when the last viewer leaves, when
the trade is completed or deleted, or when the job itself finds the trade is
no longer in progress.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlmodel import Session

from journal.config import settings
from journal.database import engine
from journal.models.trade import Trade
from journal.services.outcome import resolve_outcome
from journal.services.price_feed import get_price_feed
from journal.services.profit import realized_profit
from journal.utils.constants import STATUS_IN_PROGRESS
from journal.utils.records import to_float

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()

_viewers: dict[int, int] = {}
_quotes: dict[int, dict] = {}


def _job_id(trade_id: int) -> str:
    return f"watch_{trade_id}"


def build_quote(trade: Any, price: Any) -> dict:
    """Outcome and mark-to-market profit of a trade at ``price``."""
    outcome = resolve_outcome(trade, price)
    profit = realized_profit(trade, outcome, price)
    return {
        "trade_id": trade.id,
        "pair": trade.pair,
        "price": to_float(price),
        "outcome": outcome,
        "unrealized_profit": float(profit) if profit is not None else None,
        "updated_at": datetime.now(timezone.utc),
    }


async def poll_trade(trade_id: int):
    """One poll: refresh the quote, or cancel the watch if the trade moved on."""
    with Session(engine) as session:
        trade = session.get(Trade, trade_id)
        if trade is None or trade.status != STATUS_IN_PROGRESS:
            logger.info(f"Trade {trade_id} is no longer in progress, stopping price watch")
            stop_watch(trade_id)
            return
        session.expunge(trade)

    price = await get_price_feed().get_price(trade.pair, is_crypto=trade.is_crypto)
    if trade_id in _viewers:
        _quotes[trade_id] = build_quote(trade, price)


def start_watch(trade_id: int):
    """Register a viewer; the first one schedules the polling job."""
    _viewers[trade_id] = _viewers.get(trade_id, 0) + 1
    if _viewers[trade_id] > 1:
        return

    scheduler.add_job(
        poll_trade,
        trigger=IntervalTrigger(seconds=settings.price_poll_seconds),
        args=[trade_id],
        id=_job_id(trade_id),
        name=f"Trade {trade_id} price",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=settings.price_poll_seconds,
        next_run_time=datetime.now(timezone.utc),
    )
    logger.info(f"Watching trade {trade_id} every {settings.price_poll_seconds}s")


def release_watch(trade_id: int):
    """Drop one viewer; the last one cancels the job."""
    remaining = _viewers.get(trade_id, 0) - 1
    if remaining > 0:
        _viewers[trade_id] = remaining
    else:
        stop_watch(trade_id)


def stop_watch(trade_id: int):
    """Cancel the trade's polling job regardless of viewers."""
    _viewers.pop(trade_id, None)
    _quotes.pop(trade_id, None)
    job_id = _job_id(trade_id)
    if scheduler.get_job(job_id):
        scheduler.remove_job(job_id)
        logger.info(f"Stopped price watch for trade {trade_id}")


def is_watching(trade_id: int) -> bool:
    return trade_id in _viewers


def latest_quote(trade_id: int) -> dict | None:
    return _quotes.get(trade_id)


@asynccontextmanager
async def price_watch(trade_id: int):
    """Keep a trade's price polled for the lifetime of the block."""
    start_watch(trade_id)
    try:
        yield
    finally:
        release_watch(trade_id)


def start_scheduler():
    scheduler.start()
    logger.info("Price watch scheduler started")


def stop_scheduler():
    """Shut down the scheduler and forget every watch."""
    for trade_id in list(_viewers):
        stop_watch(trade_id)
    if scheduler.running:
        scheduler.shutdown(wait=False)
    logger.info("Price watch scheduler stopped")


def get_scheduler_status() -> dict:
    """Return current scheduler state for the API."""
    jobs = scheduler.get_jobs()
    return {
        "running": scheduler.running,
        "job_count": len(jobs),
        "jobs": [
            {
                "id": j.id,
                "name": j.name,
                "next_run": str(j.next_run_time) if getattr(j, "next_run_time", None) else None,
                "trigger": str(j.trigger),
            }
            for j in jobs
        ],
        "viewers": dict(_viewers),
    }
