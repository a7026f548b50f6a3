"""
Storage facade for the FocusCycle application.
Wires the stores together over one backend and exposes the operations the
UI layer uses, including backup export/import.
"""

import json
import logging
from datetime import date
from typing import Callable, List, Optional

from .backends import (
    KeyValueStore,
    SESSIONS_KEY,
    STATISTICS_KEY,
    STORAGE_KEYS,
    StorageBackend,
    open_backend,
)
from .config_store import ConfigStore
from .models import Preferences, SessionRecord, Statistics, TimerConfig
from .preferences import PreferencesStore
from .recorder import SessionRecorder
from .statistics import StatisticsAggregator

logger = logging.getLogger(__name__)

# Section names inside an export blob, with the JSON type each must have.
EXPORT_SECTIONS = {
    "preferences": dict,
    "timerConfig": dict,
    "sessions": list,
    "statistics": dict,
}


class Storage:
    """
    Persistence manager.
    Owns the configuration, preferences, statistics and session stores.
    """

    def __init__(
        self,
        backend: Optional[StorageBackend] = None,
        db_path: Optional[str] = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Initialize storage.

        Args:
            backend: Backend to use. If None, opens the SQLite database.
            db_path: Optional custom path for the database file.
            today: Calendar date source for streak computation.
        """
        if backend is None:
            backend = open_backend(db_path)

        self.kv = KeyValueStore(backend)
        self.config = ConfigStore(self.kv)
        self.preferences = PreferencesStore(self.kv)
        self.statistics = StatisticsAggregator(self.kv, today=today)
        self.recorder = SessionRecorder(self.kv, self.config, self.statistics)

    @property
    def available(self) -> bool:
        """False when running without a persistence backend."""
        return self.kv.available

    # ==================== Records ====================

    def get_config(self) -> TimerConfig:
        return self.config.get()

    def set_config(self, config: TimerConfig):
        self.config.set(config)

    def get_preferences(self) -> Preferences:
        return self.preferences.get()

    def set_preferences(self, preferences: Preferences):
        self.preferences.set(preferences)

    def get_statistics(self) -> Statistics:
        return self.statistics.get()

    def get_sessions(self) -> List[SessionRecord]:
        return self.recorder.sessions()

    # ==================== Bulk operations ====================

    def clear_all(self):
        """Delete every record, then restore the defaults."""
        for key in STORAGE_KEYS:
            self.kv.remove(key)
        self._initialize()
        logger.info("All stored data cleared")

    def _initialize(self):
        self.config.get()
        self.preferences.get()
        self.statistics.get()
        self.kv.load(SESSIONS_KEY, [])

    def export_all(self) -> str:
        """Serialize all four records into one JSON backup blob."""
        return json.dumps({
            "preferences": self.get_preferences().to_dict(),
            "timerConfig": self.get_config().to_dict(),
            "sessions": self.kv.load(SESSIONS_KEY, []),
            "statistics": self.get_statistics().to_dict(),
        })

    def import_all(self, blob: str) -> bool:
        """
        Restore a backup produced by export_all.

        Each section present in the blob is applied independently. A blob
        that is not a JSON object, or that has a section of the wrong type,
        fails as a whole and leaves every stored record untouched.

        Returns:
            True if the backup was applied.
        """
        if not self.available:
            logger.warning("Import skipped: persistent storage unavailable")
            return False

        try:
            data = json.loads(blob)
        except (TypeError, ValueError) as e:
            logger.error("Error importing data: %s", e)
            return False

        if not isinstance(data, dict):
            logger.error("Error importing data: backup is not a JSON object")
            return False

        for section, expected in EXPORT_SECTIONS.items():
            value = data.get(section)
            if value is not None and not isinstance(value, expected):
                logger.error(
                    "Error importing data: %r must be a %s",
                    section,
                    expected.__name__,
                )
                return False

        if data.get("preferences") is not None:
            self.set_preferences(Preferences.from_dict(data["preferences"]))
        if data.get("timerConfig") is not None:
            self.set_config(TimerConfig.from_dict(data["timerConfig"]))
        if data.get("sessions") is not None:
            self.kv.save(SESSIONS_KEY, data["sessions"])
        if data.get("statistics") is not None:
            self.kv.save(STATISTICS_KEY, data["statistics"])

        logger.info(
            "Backup imported: sections=%s",
            ", ".join(s for s in EXPORT_SECTIONS if data.get(s) is not None),
        )
        return True
