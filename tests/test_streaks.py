"""
tests/test_streaks.py — Streak Replay Unit Tests
==================================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from skillbridge.engine.streaks import replay_streak

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def _days(*offsets: float) -> list[datetime]:
    return [T0 + timedelta(days=d) for d in offsets]


class TestReplayStreak:
    def test_no_events(self):
        state = replay_streak([], T0)
        assert state.current_streak == 0
        assert state.best_streak == 0
        assert state.days_until_break == 0
        assert state.last_connection_at is None

    def test_gap_restarts_streak(self):
        state = replay_streak(_days(0, 5, 20), T0 + timedelta(days=20))
        assert state.current_streak == 1
        assert state.best_streak == 2

    def test_exactly_seven_days_extends(self):
        state = replay_streak(_days(0, 7), T0 + timedelta(days=7))
        assert state.current_streak == 2

    def test_lapses_to_zero_at_read(self):
        state = replay_streak(_days(0, 2), T0 + timedelta(days=10))
        assert state.current_streak == 0
        assert state.best_streak == 2
        assert state.days_until_break == 0

    def test_days_until_break(self):
        state = replay_streak(_days(0), T0 + timedelta(days=3, hours=5))
        assert state.current_streak == 1
        assert state.days_until_break == 4

    def test_current_never_exceeds_best(self):
        state = replay_streak(_days(0, 1, 2, 30, 31), T0 + timedelta(days=31))
        assert state.current_streak <= state.best_streak
        assert (state.current_streak, state.best_streak) == (2, 3)

    def test_naive_timestamps_treated_as_utc(self):
        naive = [ts.replace(tzinfo=None) for ts in _days(0, 1)]
        state = replay_streak(naive, T0 + timedelta(days=1))
        assert state.current_streak == 2

    def test_bonus_crossing_counted_once_per_climb(self):
        seven = list(range(7))
        state = replay_streak(_days(*seven, 7.5), T0 + timedelta(days=8))
        assert state.current_streak == 8
        assert state.bonus_crossings == 1

    def test_bonus_crossings_after_restart(self):
        first_run = list(range(7))
        second_run = [d + 30 for d in range(7)]
        state = replay_streak(_days(*first_run, *second_run), T0 + timedelta(days=36))
        assert state.bonus_crossings == 2

    def test_custom_window_and_threshold(self):
        state = replay_streak(
            _days(0, 2, 4), T0 + timedelta(days=4), window_days=3, bonus_threshold=3,
        )
        assert state.current_streak == 3
        assert state.bonus_crossings == 1
