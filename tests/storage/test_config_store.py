import json
import unittest

from focuscycle.backends import KeyValueStore, MemoryBackend
from focuscycle.config_store import ConfigStore
from focuscycle.models import Phase, TimerConfig


def _store(initial=None):
    backend = MemoryBackend(initial)
    return ConfigStore(KeyValueStore(backend)), backend


class ConfigStoreTests(unittest.TestCase):
    def test_first_get_returns_and_persists_defaults(self) -> None:
        store, backend = _store()

        config = store.get()

        self.assertEqual(TimerConfig(), config)
        self.assertEqual(
            {
                "focusDuration": 25.0,
                "breakDuration": 5.0,
                "longBreakDuration": 15.0,
                "sessionsUntilLongBreak": 4,
            },
            json.loads(backend.data["timer_config"]),
        )

    def test_set_then_get_keeps_fractional_minutes(self) -> None:
        store, _ = _store()

        store.set(TimerConfig(focus_duration=0.5, break_duration=0.25, long_break_duration=1.5,
                              sessions_until_long_break=2))

        config = store.get()
        self.assertEqual(0.5, config.focus_duration)
        self.assertEqual(30, config.seconds_for(Phase.FOCUS))
        self.assertEqual(15, config.seconds_for(Phase.BREAK))
        self.assertEqual(90, config.seconds_for(Phase.LONG_BREAK))
        self.assertEqual(2, config.sessions_until_long_break)

    def test_set_clamps_out_of_range_values(self) -> None:
        store, backend = _store()

        store.set(TimerConfig(focus_duration=0, break_duration=-5, long_break_duration=0.01,
                              sessions_until_long_break=0))

        stored = json.loads(backend.data["timer_config"])
        self.assertEqual(0.1, stored["focusDuration"])
        self.assertEqual(0.1, stored["breakDuration"])
        self.assertEqual(0.1, stored["longBreakDuration"])
        self.assertEqual(1, stored["sessionsUntilLongBreak"])

    def test_get_clamps_persisted_values(self) -> None:
        store, _ = _store({"timer_config": json.dumps({
            "focusDuration": -1,
            "breakDuration": 0,
            "longBreakDuration": 20,
            "sessionsUntilLongBreak": -3,
        })})

        config = store.get()

        self.assertEqual(0.1, config.focus_duration)
        self.assertEqual(0.1, config.break_duration)
        self.assertEqual(20, config.long_break_duration)
        self.assertEqual(1, config.sessions_until_long_break)

    def test_huge_durations_are_capped_at_one_day(self) -> None:
        store, _ = _store({"timer_config": json.dumps({
            "focusDuration": 1e307,
            "breakDuration": 5,
            "longBreakDuration": 1441,
        })})

        config = store.get()

        self.assertEqual(1440, config.focus_duration)
        self.assertEqual(1440, config.long_break_duration)
        self.assertEqual(86400, config.seconds_for(Phase.FOCUS))

        store.set(TimerConfig(focus_duration=1e300))
        self.assertEqual(1440, store.get().focus_duration)

    def test_missing_and_non_numeric_fields_take_defaults(self) -> None:
        store, _ = _store({"timer_config": json.dumps({
            "focusDuration": "fifty",
            "sessionsUntilLongBreak": None,
            "breakDuration": 10,
        })})

        config = store.get()

        self.assertEqual(25.0, config.focus_duration)
        self.assertEqual(10, config.break_duration)
        self.assertEqual(15.0, config.long_break_duration)
        self.assertEqual(4, config.sessions_until_long_break)

    def test_malformed_document_yields_defaults(self) -> None:
        store, _ = _store({"timer_config": "]["})

        with self.assertLogs("focuscycle.backends", level="WARNING"):
            config = store.get()

        self.assertEqual(TimerConfig(), config)

    def test_every_get_and_set_satisfies_invariants(self) -> None:
        store, _ = _store()
        for value in (-100, -0.5, 0, 0.01, 0.1, 3, 1e6):
            store.set(TimerConfig(value, value, value, int(value)))
            config = store.get()
            self.assertGreater(config.focus_duration, 0)
            self.assertGreater(config.break_duration, 0)
            self.assertGreater(config.long_break_duration, 0)
            self.assertLessEqual(config.focus_duration, 1440)
            self.assertGreaterEqual(config.sessions_until_long_break, 1)
