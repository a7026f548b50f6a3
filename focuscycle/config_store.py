"""Configuration store: timer durations and cycle length."""

import logging

from .backends import KeyValueStore, TIMER_CONFIG_KEY
from .models import TimerConfig

logger = logging.getLogger(__name__)


class ConfigStore:
    """
    Persists the TimerConfig.

    Values are clamped on the way in and on the way out: a missing or
    non-numeric field falls back to its default, durations are raised to at
    least 0.1 minutes and the cycle length to at least 1. Nothing is
    rejected.
    """

    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    def get(self) -> TimerConfig:
        """Get the persisted config merged and clamped against defaults."""
        return TimerConfig.from_dict(self._kv.load(TIMER_CONFIG_KEY, TimerConfig().to_dict()))

    def set(self, config: TimerConfig):
        """Clamp and persist config."""
        clamped = config.clamped()
        if clamped != config:
            logger.info("Timer config clamped from %s to %s", config, clamped)
        self._kv.save(TIMER_CONFIG_KEY, clamped.to_dict())
