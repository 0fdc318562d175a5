"""Outcome resolution for journal trades.

Decides whether a trade is a Win, Loss, Breakeven or still In Progress from its
entry, stop-loss, take-profits and direction, optionally against a live price.
All functions are pure computation with no I/O or database access, and never
raise: malformed input resolves to Breakeven so callers always get a label.
"""

from typing import Any

from journal.utils.constants import (
    DIRECTION_SHORT,
    OUTCOME_BREAKEVEN,
    OUTCOME_IN_PROGRESS,
    OUTCOME_LOSS,
    OUTCOME_WIN,
    STATUS_IN_PROGRESS,
)
from journal.utils.records import get_field, to_float


def _levels(trade: Any) -> tuple[float, float, list[float]] | None:
    """Return (entry, stop_loss, take_profits) or None if any value is unusable."""
    entry = to_float(get_field(trade, "entry"))
    stop_loss = to_float(get_field(trade, "stop_loss"))
    raw_tps = get_field(trade, "take_profits") or []
    if isinstance(raw_tps, (str, bytes)) or not hasattr(raw_tps, "__iter__"):
        return None
    take_profits = [to_float(tp) for tp in raw_tps]
    if entry is None or stop_loss is None or any(tp is None for tp in take_profits):
        return None
    return entry, stop_loss, take_profits


def _is_short(trade: Any) -> bool:
    return str(get_field(trade, "direction", "")).lower() == DIRECTION_SHORT


def resolve_outcome(trade: Any, current_price: Any = None) -> str:
    """Resolve a trade's outcome label.

    Args:
        trade: Trade model, schema or dict with entry, stop_loss, take_profits,
            direction and status.
        current_price: Live price, or None / "unavailable" when no quote exists.

    Returns:
        One of "Win", "Loss", "Breakeven", "In Progress".
    """
    try:
        levels = _levels(trade)
        if levels is None:
            return OUTCOME_BREAKEVEN
        entry, stop_loss, take_profits = levels
        short = _is_short(trade)
        price = to_float(current_price)

        if price is not None:
            # Take-profit first: a TP hit wins the tie against the stop
            if short:
                if any(price <= tp for tp in take_profits):
                    return OUTCOME_WIN
                if price >= stop_loss:
                    return OUTCOME_LOSS
            else:
                if any(price >= tp for tp in take_profits):
                    return OUTCOME_WIN
                if price <= stop_loss:
                    return OUTCOME_LOSS
            if get_field(trade, "status") == STATUS_IN_PROGRESS:
                return OUTCOME_IN_PROGRESS
            return OUTCOME_BREAKEVEN

        # No quote: judge the trade as designed, levels against entry
        if short:
            if any(tp < entry for tp in take_profits):
                return OUTCOME_WIN
            if stop_loss > entry:
                return OUTCOME_LOSS
        else:
            if any(tp > entry for tp in take_profits):
                return OUTCOME_WIN
            if stop_loss < entry:
                return OUTCOME_LOSS
        return OUTCOME_BREAKEVEN
    except Exception:
        return OUTCOME_BREAKEVEN


def hit_take_profit(trade: Any, current_price: Any = None) -> float | None:
    """Take-profit level that makes the trade a Win, or None.

    With a live price this is the furthest target the price has reached;
    without one it is the first target in order on the winning side of entry.
    """
    levels = _levels(trade)
    if levels is None:
        return None
    entry, _, take_profits = levels
    short = _is_short(trade)
    price = to_float(current_price)

    if price is not None:
        reached = [tp for tp in take_profits if (price <= tp if short else price >= tp)]
        if not reached:
            return None
        return min(reached) if short else max(reached)

    for tp in take_profits:
        if (tp < entry) if short else (tp > entry):
            return tp
    return None
