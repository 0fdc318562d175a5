"""Journal analytics: outcome counts, win rate, profit curve and CSV export.

All functions are pure computation over lists of trades.
"""

from typing import Any, Iterable

import pandas as pd

from journal.services.profit import risk_reward_ratio
from journal.utils.constants import (
    OUTCOME_BREAKEVEN,
    OUTCOME_LOSS,
    OUTCOME_WIN,
    STATUS_COMPLETED,
)
from journal.utils.records import get_field

EXPORT_COLUMNS = [
    "id", "created_at", "pair", "is_crypto", "direction", "status", "entry",
    "stop_loss", "take_profits", "position_size", "position_unit", "leverage",
    "outcome", "profit", "rr_ratio", "rule_broken", "emotions", "notes", "tags",
    "screenshot_url",
]


def trades_frame(trades: Iterable[Any]) -> pd.DataFrame:
    """One row per trade with the export columns, oldest first."""
    records = []
    for t in trades:
        row = {col: get_field(t, col) for col in EXPORT_COLUMNS if col != "rr_ratio"}
        row["rr_ratio"] = risk_reward_ratio(t)
        records.append(row)

    df = pd.DataFrame(records, columns=EXPORT_COLUMNS)
    if df.empty:
        return df
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True)
    df["profit"] = pd.to_numeric(df["profit"], errors="coerce")
    df["rr_ratio"] = pd.to_numeric(df["rr_ratio"], errors="coerce")
    return df.sort_values(["created_at", "id"]).reset_index(drop=True)


def summarize(trades: Iterable[Any]) -> dict:
    """Aggregated stats across a user's trades."""
    df = trades_frame(trades)
    if df.empty:
        return {
            "total_trades": 0,
            "completed_trades": 0,
            "open_trades": 0,
            "wins": 0,
            "losses": 0,
            "breakevens": 0,
            "win_rate": 0.0,
            "total_profit": 0.0,
            "average_profit": 0.0,
            "best_trade": None,
            "worst_trade": None,
            "average_rr": None,
            "rules_broken": 0,
            "by_tag": [],
        }

    completed = df[df["status"] == STATUS_COMPLETED]
    counts = completed["outcome"].value_counts()
    wins = int(counts.get(OUTCOME_WIN, 0))
    losses = int(counts.get(OUTCOME_LOSS, 0))
    decided = wins + losses

    profit = completed["profit"].fillna(0.0)
    rr = df["rr_ratio"].dropna()

    return {
        "total_trades": len(df),
        "completed_trades": len(completed),
        "open_trades": len(df) - len(completed),
        "wins": wins,
        "losses": losses,
        "breakevens": int(counts.get(OUTCOME_BREAKEVEN, 0)),
        "win_rate": round(wins / decided * 100, 1) if decided else 0.0,
        "total_profit": round(float(profit.sum()), 2),
        "average_profit": round(float(profit.mean()), 2) if len(profit) else 0.0,
        "best_trade": round(float(profit.max()), 2) if len(profit) else None,
        "worst_trade": round(float(profit.min()), 2) if len(profit) else None,
        "average_rr": round(float(rr.mean()), 2) if len(rr) else None,
        "rules_broken": int(df["rule_broken"].fillna(False).astype(bool).sum()),
        "by_tag": _tag_breakdown(completed),
    }


def _tag_breakdown(completed: pd.DataFrame) -> list[dict]:
    tagged = completed[["tags", "profit", "outcome"]].explode("tags").dropna(subset=["tags"])
    if tagged.empty:
        return []
    grouped = tagged.groupby("tags").agg(
        trades=("outcome", "size"),
        wins=("outcome", lambda s: int((s == OUTCOME_WIN).sum())),
        profit=("profit", "sum"),
    )
    return [
        {"tag": tag, "trades": int(row.trades), "wins": int(row.wins), "profit": round(float(row.profit), 2)}
        for tag, row in grouped.sort_index().iterrows()
    ]


def equity_curve(trades: Iterable[Any]) -> list[dict]:
    """Cumulative realized profit over completed trades, oldest first."""
    df = trades_frame(trades)
    if df.empty:
        return []
    completed = df[df["status"] == STATUS_COMPLETED].copy()
    completed["cumulative"] = completed["profit"].fillna(0.0).cumsum()
    return [
        {
            "trade_id": int(row.id),
            "timestamp": row.created_at.isoformat(),
            "profit": round(float(row.profit), 2) if pd.notna(row.profit) else 0.0,
            "cumulative": round(float(row.cumulative), 2),
        }
        for row in completed.itertuples()
    ]


def trades_to_csv(trades: Iterable[Any]) -> str:
    """CSV export; list columns are joined with ';'."""
    df = trades_frame(trades)
    for col in ("take_profits", "tags"):
        df[col] = df[col].apply(
            lambda v: ";".join(str(x) for x in v) if isinstance(v, list) else ""
        )
    return df.to_csv(index=False)
