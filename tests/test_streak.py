"""Tests for discipline streak aggregation."""

import random
from datetime import datetime

from conftest import utc
from journal.services.streak import StreakSummary, compute_streak, habit_credit


def _t(created_at, rule_broken=False, **extra) -> dict:
    return {"created_at": created_at, "rule_broken": rule_broken, **extra}


# ---------------------------------------------------------------------------
# 1. Counting runs
# ---------------------------------------------------------------------------

class TestComputeStreak:
    def test_no_trades(self):
        assert compute_streak([]) == StreakSummary(0, 0, 0, 0)

    def test_violation_resets_current_run(self):
        trades = [
            _t(utc(2024, 1, 1, 9)),
            _t(utc(2024, 1, 1, 15)),
            _t(utc(2024, 1, 2, 9), rule_broken=True),
            _t(utc(2024, 1, 3, 9)),
        ]
        summary = compute_streak(trades)
        assert summary.current_trades == 1
        assert summary.current_days == 1
        assert summary.max_trades == 2
        assert summary.max_days == 1

    def test_days_count_distinct_dates(self):
        trades = [
            _t(utc(2024, 3, 1, 8)),
            _t(utc(2024, 3, 1, 20)),
            _t(utc(2024, 3, 2, 8)),
            _t(utc(2024, 3, 5, 8)),
        ]
        summary = compute_streak(trades)
        assert summary.current_trades == 4
        assert summary.current_days == 3
        assert summary.max_days == 3

    def test_all_violations(self):
        trades = [_t(utc(2024, 1, d), rule_broken=True) for d in range(1, 4)]
        assert compute_streak(trades) == StreakSummary(0, 0, 0, 0)

    def test_input_order_does_not_matter(self):
        trades = [
            _t(utc(2024, 1, d, 12), rule_broken=(d == 4)) for d in range(1, 9)
        ]
        expected = compute_streak(trades)
        shuffled = trades[:]
        random.Random(7).shuffle(shuffled)
        assert compute_streak(shuffled) == expected
        assert expected == StreakSummary(current_trades=4, current_days=4, max_trades=4, max_days=4)

    def test_was_gamble_counts_as_violation(self):
        trades = [
            _t(utc(2024, 1, 1)),
            _t(utc(2024, 1, 2), was_gamble=True),
        ]
        summary = compute_streak(trades)
        assert summary.current_trades == 0
        assert summary.max_trades == 1

    def test_trades_without_timestamp_are_ignored(self):
        trades = [_t(None), _t(utc(2024, 1, 1))]
        assert compute_streak(trades).current_trades == 1

    def test_to_dict(self):
        assert compute_streak([_t(utc(2024, 1, 1))]).to_dict() == {
            "current_trades": 1,
            "current_days": 1,
            "max_trades": 1,
            "max_days": 1,
        }


# ---------------------------------------------------------------------------
# 2. Calendar days and time zones
# ---------------------------------------------------------------------------

class TestTimeZones:
    def test_days_follow_configured_zone(self):
        # 02:00 and 20:00 UTC on Jan 2 are Jan 1 and Jan 2 in New York
        trades = [_t(utc(2024, 1, 2, 2)), _t(utc(2024, 1, 2, 20))]
        assert compute_streak(trades, "UTC").current_days == 1
        assert compute_streak(trades, "America/New_York").current_days == 2

    def test_naive_datetimes_are_utc(self):
        naive = [_t(datetime(2024, 1, 2, 2)), _t(datetime(2024, 1, 2, 20))]
        aware = [_t(utc(2024, 1, 2, 2)), _t(utc(2024, 1, 2, 20))]
        assert compute_streak(naive, "America/New_York") == compute_streak(aware, "America/New_York")

    def test_iso_string_timestamps(self):
        trades = [
            _t("2024-01-02T02:00:00+00:00"),
            _t("2024-01-02T20:00:00Z"),
            _t("2024-01-01T12:00:00", rule_broken=True),
        ]
        summary = compute_streak(trades, "America/New_York")
        assert summary == StreakSummary(current_trades=2, current_days=2, max_trades=2, max_days=2)

    def test_string_and_datetime_timestamps_sort_together(self):
        trades = [
            _t(utc(2024, 1, 3)),
            _t("2024-01-02T00:00:00+00:00", rule_broken=True),
            _t(utc(2024, 1, 1)),
        ]
        assert compute_streak(trades).current_trades == 1

    def test_mixed_naive_and_aware_sort_together(self):
        trades = [
            _t(utc(2024, 1, 3)),
            _t(datetime(2024, 1, 2), rule_broken=True),
            _t(utc(2024, 1, 1)),
        ]
        summary = compute_streak(trades)
        assert summary.current_trades == 1
        assert summary.max_trades == 1


# ---------------------------------------------------------------------------
# 3. Habit credit
# ---------------------------------------------------------------------------

def test_habit_credit():
    assert habit_credit(True, True, False) == 1
    assert habit_credit(False, True, False) == 0
    assert habit_credit(True, False, False) == 0
    assert habit_credit(True, True, True) == 0
