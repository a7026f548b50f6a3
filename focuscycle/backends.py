"""
Backing storage for FocusCycle.

Every persisted record lives under one key as a JSON document. Backends only
move strings in and out; ``KeyValueStore`` layers JSON decoding, lazy
default initialization and the never-raise policy on top of them.
"""

import copy
import json
import logging
import os
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


PREFERENCES_KEY = "preferences"
TIMER_CONFIG_KEY = "timer_config"
SESSIONS_KEY = "sessions"
STATISTICS_KEY = "statistics"

STORAGE_KEYS = (PREFERENCES_KEY, TIMER_CONFIG_KEY, SESSIONS_KEY, STATISTICS_KEY)


class StorageError(Exception):
    """Raised by a backend when it cannot read or write."""


def get_app_data_dir() -> Path:
    """
    Get the appropriate application data directory based on OS.
    Creates the directory if it doesn't exist.
    """
    if os.name == 'nt':  # Windows
        base = Path(os.environ.get('APPDATA', Path.home()))
    elif os.name == 'posix':
        # macOS uses ~/Library/Application Support, Linux uses ~/.local/share
        if os.uname().sysname == 'Darwin':
            base = Path.home() / 'Library' / 'Application Support'
        else:
            base = Path(os.environ.get('XDG_DATA_HOME', Path.home() / '.local' / 'share'))
    else:
        base = Path.home()

    app_dir = base / 'FocusCycle'
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def default_db_path() -> str:
    """Database location, overridable with FOCUSCYCLE_DB."""
    override = os.environ.get('FOCUSCYCLE_DB')
    if override:
        return override
    return str(get_app_data_dir() / 'focuscycle.db')


class StorageBackend(ABC):
    """Abstract key/value backend holding serialized documents."""

    available = True

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """Return the stored document or None if the key is absent."""

    @abstractmethod
    def write(self, key: str, value: str):
        """Store a document, replacing any previous one."""

    @abstractmethod
    def remove(self, key: str):
        """Delete a key. Absent keys are ignored."""


class MemoryBackend(StorageBackend):
    """Dictionary backend, used for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def write(self, key: str, value: str):
        self.data[key] = value

    def remove(self, key: str):
        self.data.pop(key, None)


class UnavailableBackend(StorageBackend):
    """Stands in when no persistence exists: reads are empty, writes vanish."""

    available = False

    def read(self, key: str) -> Optional[str]:
        return None

    def write(self, key: str, value: str):
        pass

    def remove(self, key: str):
        pass


class SQLiteBackend(StorageBackend):
    """
    SQLite backend.
    Keeps one row per storage key in a small ``records`` table.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize storage with database path.

        Args:
            db_path: Optional custom path for database file.
                    If None, uses default app data directory.
        """
        if db_path is None:
            db_path = default_db_path()

        self.db_path = db_path
        self._init_database()

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StorageError(f"cannot open {self.db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StorageError(str(e)) from e
        finally:
            conn.close()

    def _init_database(self):
        """Initialize database schema if the table doesn't exist."""
        with self._get_connection() as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS records (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            ''')

    def read(self, key: str) -> Optional[str]:
        with self._get_connection() as conn:
            row = conn.execute(
                'SELECT value FROM records WHERE key = ?', (key,)
            ).fetchone()
            return row[0] if row else None

    def write(self, key: str, value: str):
        with self._get_connection() as conn:
            conn.execute('''
                INSERT OR REPLACE INTO records (key, value)
                VALUES (?, ?)
            ''', (key, value))

    def remove(self, key: str):
        with self._get_connection() as conn:
            conn.execute('DELETE FROM records WHERE key = ?', (key,))


def open_backend(db_path: Optional[str] = None) -> StorageBackend:
    """Open the SQLite backend, degrading to UnavailableBackend on failure."""
    try:
        return SQLiteBackend(db_path)
    except (StorageError, OSError) as e:
        logger.error("Persistent storage unavailable, running without it: %s", e)
        return UnavailableBackend()


class KeyValueStore:
    """
    JSON document access over a backend that never raises.

    Failed reads behave like absent keys, failed writes are dropped, and
    malformed JSON is treated as absent. Every failure is logged.
    """

    def __init__(self, backend: StorageBackend):
        self.backend = backend

    @property
    def available(self) -> bool:
        return self.backend.available

    def read_raw(self, key: str) -> Optional[str]:
        try:
            return self.backend.read(key)
        except (StorageError, sqlite3.Error, OSError) as e:
            logger.error("Error reading %r from storage: %s", key, e)
            return None

    def write_raw(self, key: str, value: str) -> bool:
        try:
            self.backend.write(key, value)
            return True
        except (StorageError, sqlite3.Error, OSError) as e:
            logger.error("Error writing %r to storage: %s", key, e)
            return False

    def remove(self, key: str):
        try:
            self.backend.remove(key)
        except (StorageError, sqlite3.Error, OSError) as e:
            logger.error("Error removing %r from storage: %s", key, e)

    def load(self, key: str, default: Any) -> Any:
        """
        Return the decoded document under key.

        An absent key is initialized with ``default`` (a JSON-compatible
        value) on first access. A malformed document yields a copy of
        ``default`` but is left in place.
        """
        raw = self.read_raw(key)
        if raw is None:
            if self.available:
                self.save(key, default)
            return copy.deepcopy(default)
        try:
            return json.loads(raw)
        except ValueError as e:
            logger.warning("Malformed %r document in storage, using defaults: %s", key, e)
            return copy.deepcopy(default)

    def save(self, key: str, value: Any) -> bool:
        return self.write_raw(key, json.dumps(value))
