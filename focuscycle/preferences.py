"""Preferences store: user-facing toggles."""

from .backends import KeyValueStore, PREFERENCES_KEY
from .models import Preferences


class PreferencesStore:
    """Persists Preferences, backfilling missing keys from defaults on read."""

    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    def get(self) -> Preferences:
        return Preferences.from_dict(self._kv.load(PREFERENCES_KEY, Preferences().to_dict()))

    def set(self, preferences: Preferences):
        self._kv.save(PREFERENCES_KEY, Preferences.from_dict(preferences.to_dict()).to_dict())
