"""Profit and loss for journal trades.

Two numeric models, picked by instrument class and position unit:

- margined-notional (crypto, sized in USD or in coins): the position's notional
  exposure moves with the price, scaled by leverage.
- lot (forex, sized in standard lots): $10 per pip per lot, scaled by leverage.
  This model yields a magnitude; ``realized_profit`` applies the sign.

Pure computation, no I/O. Results are fixed-point strings with two fraction
digits and fall back to "0.00" instead of raising. Entry must be non-zero;
trade input validation rejects a zero entry before anything gets here.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from journal.services.outcome import hit_take_profit
from journal.utils.constants import (
    CRYPTO_UNITS,
    DIRECTION_SHORT,
    OUTCOME_BREAKEVEN,
    OUTCOME_IN_PROGRESS,
    OUTCOME_LOSS,
    OUTCOME_WIN,
    PIP_VALUE_PER_LOT,
    PIPS_PER_UNIT,
    UNIT_COIN,
    UNIT_LOTS,
)
from journal.utils.records import get_field, to_decimal, to_float

ZERO = "0.00"
_CENTS = Decimal("0.01")

MODEL_MARGINED = "margined"
MODEL_LOT = "lot"


def _fmt(value: Decimal) -> str:
    if not value.is_finite():
        return ZERO
    result = value.quantize(_CENTS, rounding=ROUND_HALF_UP)
    if result == 0:
        return ZERO  # no "-0.00"
    return str(result)


def profit_model(trade: Any) -> str | None:
    """Return which numeric model applies to the trade, or None if unsupported."""
    unit = get_field(trade, "position_unit")
    if get_field(trade, "is_crypto", True):
        return MODEL_MARGINED if unit in CRYPTO_UNITS else None
    return MODEL_LOT if unit == UNIT_LOTS else None


def _inputs(trade: Any, exit_price: Any) -> tuple[Decimal, Decimal, Decimal, Decimal] | None:
    entry = to_decimal(get_field(trade, "entry"))
    exit_ = to_decimal(exit_price)
    size = to_decimal(get_field(trade, "position_size"))
    leverage = to_decimal(get_field(trade, "leverage", 1))
    if entry is None or exit_ is None or size is None or leverage is None:
        return None
    if entry == 0 or leverage <= 0:
        return None
    return entry, exit_, size, leverage


def _notional(trade: Any, entry: Decimal, size: Decimal) -> Decimal:
    if get_field(trade, "position_unit") == UNIT_COIN:
        return size * entry
    return size


def calculate_profit(trade: Any, exit_price: Any) -> str:
    """Profit in account currency for closing ``trade`` at ``exit_price``.

    Margined model: ``(exit - entry) / entry * notional * leverage`` (sign
    flipped for shorts). Lot model: ``|exit - entry| * 10000 * size * 10 *
    leverage``, always non-negative.

    The posted margin (``notional / leverage``) is not deducted; see
    ``initial_margin``. For example size=1000 USD at 10x, entry 100, exit 110
    gives "1000.00".
    """
    try:
        values = _inputs(trade, exit_price)
        if values is None:
            return ZERO
        entry, exit_, size, leverage = values

        model = profit_model(trade)
        if model == MODEL_MARGINED:
            change = (exit_ - entry) / entry
            if str(get_field(trade, "direction", "")).lower() == DIRECTION_SHORT:
                change = -change
            return _fmt(change * _notional(trade, entry, size) * leverage)
        if model == MODEL_LOT:
            pips = abs(exit_ - entry) * PIPS_PER_UNIT
            return _fmt(pips * size * PIP_VALUE_PER_LOT * leverage)
        return ZERO
    except Exception:
        return ZERO


def initial_margin(trade: Any) -> str:
    """Margin posted to open a margined position (``notional / leverage``)."""
    try:
        entry = to_decimal(get_field(trade, "entry"))
        size = to_decimal(get_field(trade, "position_size"))
        leverage = to_decimal(get_field(trade, "leverage", 1))
        if entry is None or size is None or leverage is None or leverage <= 0:
            return ZERO
        if profit_model(trade) != MODEL_MARGINED:
            return ZERO
        return _fmt(_notional(trade, entry, size) / leverage)
    except Exception:
        return ZERO


def exit_price_for(trade: Any, outcome: str, current_price: Any = None) -> float | None:
    """Price the trade is considered closed (or marked) at for ``outcome``.

    Win → the take-profit hit, Loss → stop-loss, Breakeven → entry,
    In Progress → the live price (None when unavailable).
    """
    if outcome == OUTCOME_WIN:
        return hit_take_profit(trade, current_price)
    if outcome == OUTCOME_LOSS:
        return to_float(get_field(trade, "stop_loss"))
    if outcome == OUTCOME_BREAKEVEN:
        return to_float(get_field(trade, "entry"))
    if outcome == OUTCOME_IN_PROGRESS:
        return to_float(current_price)
    return None


def realized_profit(trade: Any, outcome: str, current_price: Any = None) -> str | None:
    """Signed profit for a resolved outcome, or None if no exit price exists."""
    exit_price = exit_price_for(trade, outcome, current_price)
    if exit_price is None:
        return None

    profit = calculate_profit(trade, exit_price)
    if profit_model(trade) != MODEL_LOT or profit == ZERO:
        return profit

    # Lot model returns a magnitude; losing side gets the minus sign
    if outcome == OUTCOME_LOSS:
        return f"-{profit}"
    if outcome == OUTCOME_IN_PROGRESS:
        entry = to_float(get_field(trade, "entry"))
        short = str(get_field(trade, "direction", "")).lower() == DIRECTION_SHORT
        losing = exit_price > entry if short else exit_price < entry
        return f"-{profit}" if losing else profit
    return profit


def risk_reward_ratio(trade: Any) -> float | None:
    """Reward-to-risk of the first take-profit: |TP1 - entry| / |entry - SL|."""
    entry = to_float(get_field(trade, "entry"))
    stop_loss = to_float(get_field(trade, "stop_loss"))
    take_profits = get_field(trade, "take_profits") or []
    if not isinstance(take_profits, (list, tuple)):
        return None
    first_tp = to_float(take_profits[0]) if take_profits else None
    if entry is None or stop_loss is None or first_tp is None:
        return None
    risk = abs(entry - stop_loss)
    if risk == 0:
        return None
    return round(abs(first_tp - entry) / risk, 2)
