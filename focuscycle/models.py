"""
Data models for the FocusCycle timer core.
Uses dataclasses for clean, type-annotated data structures.

Persisted records serialize to the camelCase JSON documents stored under
each storage key; ``from_dict`` merges a stored document field by field
with the defaults so older or partial documents still load.
"""

import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, Optional


class Phase(Enum):
    """The three intervals of the work/rest cycle."""
    FOCUS = "focus"
    BREAK = "break"
    LONG_BREAK = "longBreak"

    @property
    def label(self) -> str:
        """Human readable phase name."""
        if self is Phase.LONG_BREAK:
            return "Long Break"
        return f"{self.value.capitalize()} Time"


class TimerStatus(Enum):
    """Possible states for the timer state machine."""
    IDLE = auto()
    RUNNING = auto()
    PAUSED = auto()
    TRANSITIONING = auto()


THEMES = ("light", "dark", "system")

MIN_DURATION_MINUTES = 0.1
MAX_DURATION_MINUTES = 24 * 60
MIN_SESSIONS_UNTIL_LONG_BREAK = 1


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def _number(value: Any) -> Optional[float]:
    """Return value as a finite float, or None when it is not a usable number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return float(value)


def _flag(value: Any) -> bool:
    if not isinstance(value, bool):
        raise TypeError(f"expected a boolean, got {value!r}")
    return value


@dataclass
class TimerConfig:
    """Durations (minutes) and cycle length driving the timer."""
    focus_duration: float = 25.0
    break_duration: float = 5.0
    long_break_duration: float = 15.0
    sessions_until_long_break: int = 4

    def duration_for(self, phase: Phase) -> float:
        """Configured length of a phase in minutes."""
        if phase is Phase.BREAK:
            return self.break_duration
        if phase is Phase.LONG_BREAK:
            return self.long_break_duration
        return self.focus_duration

    def seconds_for(self, phase: Phase) -> int:
        """Configured length of a phase in whole seconds."""
        return round_half_up(self.duration_for(phase) * 60)

    def clamped(self) -> "TimerConfig":
        """Return a copy with every field forced into its valid range."""
        return TimerConfig.from_dict(self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "focusDuration": self.focus_duration,
            "breakDuration": self.break_duration,
            "longBreakDuration": self.long_break_duration,
            "sessionsUntilLongBreak": self.sessions_until_long_break,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "TimerConfig":
        """
        Build a config from a stored document.

        Missing or non-numeric fields take the default; durations are then
        clamped to between 0.1 minutes and one day, the cycle length to at
        least 1.
        Out-of-range values are never rejected.
        """
        defaults = cls()
        if not isinstance(data, dict):
            data = {}

        def duration(key: str, default: float) -> float:
            value = _number(data.get(key))
            if value is None:
                value = default
            return min(MAX_DURATION_MINUTES, max(MIN_DURATION_MINUTES, value))

        sessions = _number(data.get("sessionsUntilLongBreak"))
        if sessions is None:
            sessions = defaults.sessions_until_long_break

        return cls(
            focus_duration=duration("focusDuration", defaults.focus_duration),
            break_duration=duration("breakDuration", defaults.break_duration),
            long_break_duration=duration("longBreakDuration", defaults.long_break_duration),
            sessions_until_long_break=max(MIN_SESSIONS_UNTIL_LONG_BREAK, int(sessions)),
        )


@dataclass
class Preferences:
    """User-facing toggles."""
    theme: str = "system"
    notifications: bool = True
    sound: bool = True
    auto_start_breaks: bool = True
    auto_start_pomodoros: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "theme": self.theme,
            "notifications": self.notifications,
            "sound": self.sound,
            "autoStartBreaks": self.auto_start_breaks,
            "autoStartPomodoros": self.auto_start_pomodoros,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Preferences":
        """Backfill missing keys from defaults; present values are trusted."""
        merged = cls().to_dict()
        if isinstance(data, dict):
            merged.update({key: data[key] for key in merged if key in data})
        return cls(
            theme=merged["theme"],
            notifications=merged["notifications"],
            sound=merged["sound"],
            auto_start_breaks=merged["autoStartBreaks"],
            auto_start_pomodoros=merged["autoStartPomodoros"],
        )


@dataclass(frozen=True)
class SessionRecord:
    """
    Immutable record of one completed interval.
    Appended to the session history, never modified afterwards.
    """
    id: str
    start_time: str
    end_time: str
    phase: Phase
    completed: bool
    duration: int  # seconds

    @property
    def duration_minutes(self) -> float:
        """Return duration in minutes."""
        return self.duration / 60.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "phase": self.phase.value,
            "completed": self.completed,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionRecord":
        """Parse a stored entry. Raises KeyError/ValueError/TypeError if malformed."""
        return cls(
            id=str(data["id"]),
            start_time=str(data["startTime"]),
            end_time=str(data["endTime"]),
            phase=Phase(data["phase"]),
            completed=_flag(data["completed"]),
            duration=max(0, int(data["duration"])),
        )


@dataclass
class Statistics:
    """Rolling usage statistics. Times are in seconds."""
    total_focus_time: int = 0
    total_break_time: int = 0
    completed_sessions: int = 0
    daily_streak: int = 0
    last_session_date: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalFocusTime": self.total_focus_time,
            "totalBreakTime": self.total_break_time,
            "completedSessions": self.completed_sessions,
            "dailyStreak": self.daily_streak,
            "lastSessionDate": self.last_session_date,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Statistics":
        stats = cls()
        if not isinstance(data, dict):
            return stats
        for attr, key in (
            ("total_focus_time", "totalFocusTime"),
            ("total_break_time", "totalBreakTime"),
            ("completed_sessions", "completedSessions"),
            ("daily_streak", "dailyStreak"),
        ):
            value = _number(data.get(key))
            if value is not None:
                setattr(stats, attr, int(value))
        last = data.get("lastSessionDate")
        if isinstance(last, str) and last:
            stats.last_session_date = last
        return stats


@dataclass
class TimerState:
    """
    Current timer state.
    Runtime only; used to pass timer state to UI components.
    """
    is_running: bool = False
    is_paused: bool = False
    current_phase: Phase = Phase.FOCUS
    time_remaining: int = 0
    completed_sessions: int = 0

    def format_remaining(self) -> str:
        """Format remaining time as MM:SS."""
        minutes = self.time_remaining // 60
        seconds = self.time_remaining % 60
        return f"{minutes:02d}:{seconds:02d}"


def format_duration(seconds: int) -> str:
    """Format a total like 3900 seconds as '1h 5m'."""
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"

