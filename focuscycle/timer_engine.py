"""
Timer engine for the FocusCycle application.
Implements the focus/break/long-break state machine on top of the stores.
"""

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal

from .models import Phase, Preferences, TimerConfig, TimerState, TimerStatus
from .notifications import NotificationManager
from .scheduler import QtScheduler, ScheduledTask
from .storage import Storage

logger = logging.getLogger(__name__)


# phase -> (next phase, next phase when a long break is due)
TRANSITIONS = {
    Phase.FOCUS: (Phase.BREAK, Phase.LONG_BREAK),
    Phase.BREAK: (Phase.FOCUS, Phase.FOCUS),
    Phase.LONG_BREAK: (Phase.FOCUS, Phase.FOCUS),
}


def next_phase(current: Phase, completed_sessions: int, sessions_until_long_break: int) -> Phase:
    """Phase entered after current completes."""
    long_break_due = (completed_sessions + 1) % sessions_until_long_break == 0
    return TRANSITIONS[current][1 if long_break_due else 0]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimerEngine(QObject):
    """
    Core timer engine implementing a state machine.

    States:
        IDLE: Not running; waiting for start
        RUNNING: Counting down once per second
        PAUSED: Countdown frozen, resumed by start
        TRANSITIONING: Between phases (or finishing a reset); ticks and
            commands are ignored

    Signals:
        state_changed: Emitted with a TimerState copy on every change
        phase_changed: Emitted when a new phase is applied (old, new)
        session_recorded: Emitted with the updated Statistics after a
            completed phase is recorded
    """

    state_changed = Signal(object)
    phase_changed = Signal(object, object)
    session_recorded = Signal(object)

    TICK_INTERVAL_MS = 1000
    PHASE_TRANSITION_DELAY_MS = 500
    RESET_DELAY_MS = 300

    def __init__(
        self,
        storage: Storage,
        scheduler=None,
        notifier: Optional[NotificationManager] = None,
        clock: Callable[[], datetime] = _utcnow,
        parent: Optional[QObject] = None,
    ):
        """
        Initialize the timer engine.

        Args:
            storage: Storage instance supplying config and recording sessions.
            scheduler: Task scheduler; defaults to the Qt event loop.
            notifier: Audio/desktop notification collaborator.
            clock: Source of session timestamps.
            parent: Optional Qt parent object.
        """
        super().__init__(parent)

        self.storage = storage
        self._scheduler = scheduler or QtScheduler(self)
        self._notifier = notifier or NotificationManager()
        self._clock = clock

        self._config = storage.get_config()
        self._apply_preferences(storage.get_preferences())

        self._state = TimerState(
            current_phase=Phase.FOCUS,
            time_remaining=self._config.seconds_for(Phase.FOCUS),
            completed_sessions=storage.get_statistics().completed_sessions,
        )
        self._transitioning = False
        self._session_start: Optional[datetime] = None
        self._audio_activated = False

        # At most one of each is live at any time
        self._tick_task: Optional[ScheduledTask] = None
        self._pending_task: Optional[ScheduledTask] = None

    @property
    def state(self) -> TimerState:
        """Get a copy of the current timer state."""
        return dataclasses.replace(self._state)

    @property
    def status(self) -> TimerStatus:
        if self._transitioning:
            return TimerStatus.TRANSITIONING
        if not self._state.is_running:
            return TimerStatus.IDLE
        if self._state.is_paused:
            return TimerStatus.PAUSED
        return TimerStatus.RUNNING

    @property
    def is_transitioning(self) -> bool:
        return self._transitioning

    @property
    def config(self) -> TimerConfig:
        return self._config

    @property
    def session_start(self) -> Optional[datetime]:
        return self._session_start

    def progress(self) -> float:
        """Percentage of the current phase elapsed, clamped to [0, 100]."""
        total = self._config.seconds_for(self._state.current_phase)
        if total <= 0:
            return 0.0
        elapsed = (total - self._state.time_remaining) / total * 100.0
        return min(max(elapsed, 0.0), 100.0)

    # ==================== Commands ====================

    def start(self):
        """Start from idle, or resume from paused."""
        if self.status not in (TimerStatus.IDLE, TimerStatus.PAUSED):
            return

        if not self._audio_activated:
            self._audio_activated = True
            self._notifier.activate()

        self._session_start = self._clock()

        self._state.is_running = True
        self._state.is_paused = False
        self._sync_ticker()
        logger.info(
            "Timer started: phase=%s remaining=%ss",
            self._state.current_phase.value,
            self._state.time_remaining,
        )
        self._emit_state()

    def pause(self):
        """Pause the running countdown."""
        if self.status is not TimerStatus.RUNNING:
            return

        self._state.is_paused = True
        self._sync_ticker()
        logger.info("Timer paused: remaining=%ss", self._state.time_remaining)
        self._emit_state()

    def reset(self):
        """
        Return to idle with the current phase's full duration.
        The interrupted interval is discarded, not recorded.
        """
        if self._transitioning:
            return

        self._transitioning = True
        self._session_start = None
        self._sync_ticker()
        self._emit_state()
        self._pending_task = self._scheduler.call_later(self.RESET_DELAY_MS, self._finish_reset)

    def on_settings_changed(self):
        """
        Reload config and preferences.
        A countdown in progress keeps its remaining time.
        """
        self._config = self.storage.get_config()
        self._apply_preferences(self.storage.get_preferences())

        if not self._state.is_running and not self._transitioning:
            self._state.time_remaining = self._config.seconds_for(Phase.FOCUS)
            self._emit_state()

    def cleanup(self):
        """Cancel scheduled work and release resources. Call before exit."""
        self._cancel_tick()
        self._cancel_pending()
        self._notifier.cleanup()

    # ==================== Countdown ====================

    def tick(self):
        """Advance the countdown by one second."""
        if self.status is not TimerStatus.RUNNING:
            return

        if self._state.time_remaining <= 0:
            self.phase_complete()
            return

        self._state.time_remaining -= 1
        self._emit_state()

    def phase_complete(self):
        """Record the finished phase and schedule the switch to the next one."""
        if self._transitioning:
            return

        self._transitioning = True
        self._sync_ticker()

        finished = self._state.current_phase
        if self._session_start is None:
            logger.warning("Phase %s completed without a start time; not recorded", finished.value)
        else:
            stats = self.storage.recorder.record(
                finished,
                self._session_start,
                self._clock(),
                completed=True,
            )
            self.session_recorded.emit(stats)

        upcoming = next_phase(
            finished,
            self._state.completed_sessions,
            self._config.sessions_until_long_break,
        )
        completed_sessions = self._state.completed_sessions
        if finished is Phase.FOCUS:
            completed_sessions += 1

        logger.info("Phase complete: %s -> %s", finished.value, upcoming.value)
        self._notifier.phase_changed(upcoming)
        self._emit_state()

        self._pending_task = self._scheduler.call_later(
            self.PHASE_TRANSITION_DELAY_MS,
            lambda: self._finish_transition(finished, upcoming, completed_sessions),
        )

    def _finish_transition(self, finished: Phase, upcoming: Phase, completed_sessions: int):
        self._cancel_pending()

        self._state.current_phase = upcoming
        self._state.time_remaining = self._config.seconds_for(upcoming)
        self._state.completed_sessions = completed_sessions
        # Breaks start on their own; focus waits for the user
        self._state.is_running = upcoming is not Phase.FOCUS
        self._state.is_paused = False
        self._transitioning = False
        self._session_start = self._clock() if self._state.is_running else None

        self._sync_ticker()
        self.phase_changed.emit(finished, upcoming)
        self._emit_state()

    def _finish_reset(self):
        self._cancel_pending()

        self._state.is_running = False
        self._state.is_paused = False
        self._state.time_remaining = self._config.seconds_for(self._state.current_phase)
        self._transitioning = False

        self._sync_ticker()
        logger.info("Timer reset: phase=%s", self._state.current_phase.value)
        self._emit_state()

    # ==================== Internals ====================

    def _sync_ticker(self):
        """Replace the tick task so exactly one runs iff the engine is RUNNING."""
        self._cancel_tick()
        if self.status is TimerStatus.RUNNING:
            self._tick_task = self._scheduler.call_repeating(self.TICK_INTERVAL_MS, self.tick)

    def _cancel_tick(self):
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    def _cancel_pending(self):
        if self._pending_task is not None:
            self._pending_task.cancel()
            self._pending_task = None

    def _apply_preferences(self, preferences: Preferences):
        self._notifier.apply_preferences(preferences.sound, preferences.notifications)

    def _emit_state(self):
        self.state_changed.emit(self.state)
