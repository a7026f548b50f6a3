"""Session recording: the append-only history of completed intervals."""

import logging
import uuid
from datetime import datetime
from typing import Any, List, Union

from .backends import KeyValueStore, SESSIONS_KEY
from .config_store import ConfigStore
from .models import Phase, SessionRecord, Statistics
from .statistics import StatisticsAggregator

logger = logging.getLogger(__name__)

Timestamp = Union[datetime, str]


def _iso(value: Timestamp) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class SessionRecorder:
    """
    Persists a SessionRecord per completed interval and forwards it to the
    StatisticsAggregator.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        config: ConfigStore,
        statistics: StatisticsAggregator,
    ):
        self._kv = kv
        self._config = config
        self._statistics = statistics

    def _history(self) -> List[Any]:
        history = self._kv.load(SESSIONS_KEY, [])
        if not isinstance(history, list):
            logger.warning("Session history is not a list, treating it as empty")
            return []
        return history

    def record(
        self,
        phase: Phase,
        start_time: Timestamp,
        end_time: Timestamp,
        completed: bool,
    ) -> Statistics:
        """
        Append a record for phase and update statistics.

        The duration is the phase's configured length, not end minus start,
        so timer drift never leaks into the history.

        Returns:
            The updated Statistics.
        """
        session = SessionRecord(
            id=str(uuid.uuid4()),
            start_time=_iso(start_time),
            end_time=_iso(end_time),
            phase=phase,
            completed=completed,
            duration=self._config.get().seconds_for(phase),
        )

        history = self._history()
        history.append(session.to_dict())
        self._kv.save(SESSIONS_KEY, history)
        logger.info(
            "Session recorded: phase=%s duration=%ss completed=%s",
            phase.value,
            session.duration,
            completed,
        )

        return self._statistics.record_session(session)

    def sessions(self) -> List[SessionRecord]:
        """Return the recorded history, oldest first."""
        records = []
        for entry in self._history():
            try:
                records.append(SessionRecord.from_dict(entry))
            except (KeyError, ValueError, TypeError, OverflowError) as e:
                logger.warning("Skipping unreadable session entry %r: %s", entry, e)
        return records
