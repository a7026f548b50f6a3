"""
Statistics aggregation for FocusCycle.

Owns the cumulative focus/break totals, the completed-session counter and
the consecutive-day streak. It is the only writer of the statistics record.
"""

import logging
from datetime import date, timedelta
from typing import Callable, Optional

from .backends import KeyValueStore, STATISTICS_KEY
from .models import Phase, SessionRecord, Statistics

logger = logging.getLogger(__name__)


def next_streak(streak: int, last_session_date: Optional[str], today: date) -> int:
    """
    Streak after recording a session today.

    Same day keeps the streak, the previous calendar day extends it, and
    anything else (first session, a gap, a future or unreadable date)
    starts over at 1.
    """
    if not last_session_date:
        return 1
    if last_session_date == today.isoformat():
        return streak
    if last_session_date == (today - timedelta(days=1)).isoformat():
        return streak + 1
    return 1


class StatisticsAggregator:
    """Updates and persists Statistics from recorded sessions."""

    def __init__(self, kv: KeyValueStore, today: Callable[[], date] = date.today):
        """
        Args:
            kv: Storage the statistics record lives in.
            today: Returns the current calendar date; injectable for tests.
        """
        self._kv = kv
        self._today = today

    def get(self) -> Statistics:
        return Statistics.from_dict(self._kv.load(STATISTICS_KEY, Statistics().to_dict()))

    def record_session(self, session: SessionRecord) -> Statistics:
        """Fold one recorded session into the statistics and persist them."""
        stats = self.get()
        today = self._today()

        if session.phase is Phase.FOCUS:
            stats.total_focus_time += session.duration
        else:
            stats.total_break_time += session.duration

        if session.completed:
            stats.completed_sessions += 1

        stats.daily_streak = next_streak(stats.daily_streak, stats.last_session_date, today)
        stats.last_session_date = today.isoformat()

        self._kv.save(STATISTICS_KEY, stats.to_dict())
        logger.debug(
            "Statistics updated: completed=%s streak=%s",
            stats.completed_sessions,
            stats.daily_streak,
        )
        return stats
