"""Shared constants for trades, habits and signals."""

DIRECTION_LONG = "long"
DIRECTION_SHORT = "short"
VALID_DIRECTIONS = [DIRECTION_LONG, DIRECTION_SHORT]

STATUS_IN_PROGRESS = "in_progress"
STATUS_COMPLETED = "completed"
VALID_STATUSES = [STATUS_IN_PROGRESS, STATUS_COMPLETED]

OUTCOME_WIN = "Win"
OUTCOME_LOSS = "Loss"
OUTCOME_BREAKEVEN = "Breakeven"
OUTCOME_IN_PROGRESS = "In Progress"
VALID_OUTCOMES = [OUTCOME_WIN, OUTCOME_LOSS, OUTCOME_BREAKEVEN, OUTCOME_IN_PROGRESS]

UNIT_USD = "USD"
UNIT_LOTS = "Lots"
UNIT_COIN = "CoinValue"
VALID_UNITS = [UNIT_USD, UNIT_LOTS, UNIT_COIN]

# Position units each instrument class can be sized in
CRYPTO_UNITS = [UNIT_USD, UNIT_COIN]
FOREX_UNITS = [UNIT_LOTS]

MAX_TAKE_PROFITS = 5

# Forex lot convention: 1 pip = 0.0001, worth $10 per standard lot
PIPS_PER_UNIT = 10000
PIP_VALUE_PER_LOT = 10

SIGNAL_TYPES = ["crypto", "forex"]

# Sentinel returned by the price feed when no quote could be obtained
PRICE_UNAVAILABLE = "unavailable"
