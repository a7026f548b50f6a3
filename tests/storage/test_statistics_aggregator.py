import json
import unittest
from datetime import date, timedelta

from focuscycle.backends import KeyValueStore, MemoryBackend
from focuscycle.models import Phase, SessionRecord, Statistics
from focuscycle.statistics import StatisticsAggregator, next_streak


def _session(phase=Phase.FOCUS, duration=1500, completed=True):
    return SessionRecord(
        id="s",
        start_time="2024-05-10T09:00:00+00:00",
        end_time="2024-05-10T09:25:00+00:00",
        phase=phase,
        completed=completed,
        duration=duration,
    )


class _Calendar:
    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today


class NextStreakTests(unittest.TestCase):
    def test_first_session_starts_streak(self) -> None:
        self.assertEqual(1, next_streak(0, None, date(2024, 5, 10)))

    def test_same_day_keeps_streak(self) -> None:
        self.assertEqual(4, next_streak(4, "2024-05-10", date(2024, 5, 10)))

    def test_previous_day_extends_streak(self) -> None:
        self.assertEqual(5, next_streak(4, "2024-05-09", date(2024, 5, 10)))

    def test_previous_day_across_month_and_year_boundaries(self) -> None:
        self.assertEqual(3, next_streak(2, "2024-02-29", date(2024, 3, 1)))
        self.assertEqual(3, next_streak(2, "2023-12-31", date(2024, 1, 1)))

    def test_gap_resets_streak(self) -> None:
        self.assertEqual(1, next_streak(9, "2024-05-08", date(2024, 5, 10)))

    def test_future_or_garbage_date_resets_streak(self) -> None:
        self.assertEqual(1, next_streak(9, "2024-05-11", date(2024, 5, 10)))
        self.assertEqual(1, next_streak(9, "yesterday", date(2024, 5, 10)))


class StatisticsAggregatorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.backend = MemoryBackend()
        self.calendar = _Calendar(date(2024, 5, 10))
        self.aggregator = StatisticsAggregator(KeyValueStore(self.backend), today=self.calendar)

    def test_defaults_when_nothing_persisted(self) -> None:
        self.assertEqual(Statistics(), self.aggregator.get())

    def test_focus_session_adds_focus_time_and_count(self) -> None:
        stats = self.aggregator.record_session(_session())

        self.assertEqual(1500, stats.total_focus_time)
        self.assertEqual(0, stats.total_break_time)
        self.assertEqual(1, stats.completed_sessions)
        self.assertEqual(1, stats.daily_streak)
        self.assertEqual("2024-05-10", stats.last_session_date)
        self.assertEqual(stats.to_dict(), json.loads(self.backend.data["statistics"]))

    def test_break_and_long_break_count_as_break_time(self) -> None:
        self.aggregator.record_session(_session(Phase.BREAK, 300))
        stats = self.aggregator.record_session(_session(Phase.LONG_BREAK, 900))

        self.assertEqual(0, stats.total_focus_time)
        self.assertEqual(1200, stats.total_break_time)
        self.assertEqual(2, stats.completed_sessions)

    def test_incomplete_session_adds_time_but_not_count(self) -> None:
        stats = self.aggregator.record_session(_session(completed=False))

        self.assertEqual(1500, stats.total_focus_time)
        self.assertEqual(0, stats.completed_sessions)

    def test_streak_over_consecutive_days_then_gap(self) -> None:
        streaks = []
        for offset in (0, 0, 1, 2, 2, 3, 6):
            self.calendar.today = date(2024, 5, 10) + timedelta(days=offset)
            streaks.append(self.aggregator.record_session(_session(Phase.BREAK, 300)).daily_streak)

        self.assertEqual([1, 1, 2, 3, 3, 4, 1], streaks)

    def test_break_sessions_also_count_toward_streak(self) -> None:
        self.aggregator.record_session(_session(Phase.FOCUS))
        self.calendar.today = date(2024, 5, 11)

        stats = self.aggregator.record_session(_session(Phase.BREAK, 300))

        self.assertEqual(2, stats.daily_streak)
        self.assertEqual("2024-05-11", stats.last_session_date)
