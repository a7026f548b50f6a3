# Core module for the FocusCycle timer
from .models import Phase, Preferences, SessionRecord, Statistics, TimerConfig, TimerState, TimerStatus
from .backends import MemoryBackend, SQLiteBackend, StorageBackend, StorageError, UnavailableBackend
from .storage import Storage
from .timer_engine import TimerEngine

__all__ = [
    'Phase', 'Preferences', 'SessionRecord', 'Statistics', 'TimerConfig', 'TimerState', 'TimerStatus',
    'MemoryBackend', 'SQLiteBackend', 'StorageBackend', 'StorageError', 'UnavailableBackend',
    'Storage', 'TimerEngine',
]
