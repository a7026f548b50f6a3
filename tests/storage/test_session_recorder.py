import json
import unittest
from datetime import date, datetime, timezone

from focuscycle.backends import KeyValueStore, MemoryBackend
from focuscycle.config_store import ConfigStore
from focuscycle.models import Phase, TimerConfig
from focuscycle.recorder import SessionRecorder
from focuscycle.statistics import StatisticsAggregator

START = datetime(2024, 5, 10, 9, 0, tzinfo=timezone.utc)
END = datetime(2024, 5, 10, 9, 31, 7, tzinfo=timezone.utc)


def _recorder(backend):
    kv = KeyValueStore(backend)
    config = ConfigStore(kv)
    config.set(TimerConfig(focus_duration=25, break_duration=5, long_break_duration=15.5))
    statistics = StatisticsAggregator(kv, today=lambda: date(2024, 5, 10))
    return SessionRecorder(kv, config, statistics)


class SessionRecorderTests(unittest.TestCase):
    def test_duration_comes_from_config_not_wall_clock(self) -> None:
        backend = MemoryBackend()
        recorder = _recorder(backend)

        recorder.record(Phase.FOCUS, START, END, completed=True)
        recorder.record(Phase.LONG_BREAK, START, END, completed=True)

        durations = [entry["duration"] for entry in json.loads(backend.data["sessions"])]
        self.assertEqual([1500, 930], durations)

    def test_record_shape_and_timestamps(self) -> None:
        backend = MemoryBackend()
        recorder = _recorder(backend)

        recorder.record(Phase.BREAK, START, END, completed=True)

        entry = json.loads(backend.data["sessions"])[0]
        self.assertEqual(
            {"id", "startTime", "endTime", "phase", "completed", "duration"},
            set(entry),
        )
        self.assertEqual("2024-05-10T09:00:00+00:00", entry["startTime"])
        self.assertEqual("2024-05-10T09:31:07+00:00", entry["endTime"])
        self.assertEqual("break", entry["phase"])
        self.assertTrue(entry["completed"])

    def test_ids_are_unique_and_history_is_append_only(self) -> None:
        backend = MemoryBackend()
        recorder = _recorder(backend)

        recorder.record(Phase.FOCUS, START, END, completed=True)
        first = json.loads(backend.data["sessions"])
        recorder.record(Phase.BREAK, START, END, completed=True)
        recorder.record(Phase.FOCUS, START, END, completed=True)
        history = json.loads(backend.data["sessions"])

        self.assertEqual(first[0], history[0])
        self.assertEqual(3, len({entry["id"] for entry in history}))

    def test_returns_updated_statistics(self) -> None:
        recorder = _recorder(MemoryBackend())

        recorder.record(Phase.FOCUS, START, END, completed=True)
        stats = recorder.record(Phase.BREAK, START, END, completed=True)

        self.assertEqual(1500, stats.total_focus_time)
        self.assertEqual(300, stats.total_break_time)
        self.assertEqual(2, stats.completed_sessions)
        self.assertEqual(1, stats.daily_streak)

    def test_corrupt_history_is_treated_as_empty(self) -> None:
        for corrupt in ("not json at all", json.dumps({"oops": True})):
            backend = MemoryBackend({"sessions": corrupt})
            recorder = _recorder(backend)

            recorder.record(Phase.FOCUS, START, END, completed=True)

            self.assertEqual(1, len(json.loads(backend.data["sessions"])))

    def test_sessions_skips_unreadable_entries(self) -> None:
        backend = MemoryBackend()
        recorder = _recorder(backend)
        recorder.record(Phase.FOCUS, START, END, completed=True)
        history = json.loads(backend.data["sessions"])
        history.append({"id": "x", "phase": "nap"})
        backend.data["sessions"] = json.dumps(history)

        with self.assertLogs("focuscycle.recorder", level="WARNING"):
            sessions = recorder.sessions()

        self.assertEqual(1, len(sessions))
        self.assertIs(Phase.FOCUS, sessions[0].phase)
        self.assertEqual(25.0, sessions[0].duration_minutes)

    def test_non_boolean_completed_flag_is_unreadable(self) -> None:
        backend = MemoryBackend()
        recorder = _recorder(backend)
        recorder.record(Phase.FOCUS, START, END, completed=False)
        history = json.loads(backend.data["sessions"])
        history.append(dict(history[0], id="imported", completed="false"))
        backend.data["sessions"] = json.dumps(history)

        with self.assertLogs("focuscycle.recorder", level="WARNING"):
            sessions = recorder.sessions()

        self.assertEqual(1, len(sessions))
        self.assertIs(False, sessions[0].completed)
