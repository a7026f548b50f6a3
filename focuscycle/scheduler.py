"""
Cancellable scheduled tasks for the timer engine.

The engine never touches QTimer directly; it asks a scheduler for a task
handle and cancels it when it no longer wants callbacks. Tests substitute a
scheduler they step by hand.
"""

from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer


class ScheduledTask:
    """Handle to a QTimer-backed task. Cancelling twice is harmless."""

    def __init__(self, timer: QTimer):
        self._timer: Optional[QTimer] = timer

    @property
    def active(self) -> bool:
        return self._timer is not None and self._timer.isActive()

    def cancel(self):
        if self._timer is None:
            return
        self._timer.stop()
        self._timer.deleteLater()
        self._timer = None


class QtScheduler:
    """Schedules callbacks on the Qt event loop of the calling thread."""

    def __init__(self, parent: Optional[QObject] = None):
        self._parent = parent

    def _schedule(self, interval_ms: int, callback: Callable[[], None], single_shot: bool) -> ScheduledTask:
        timer = QTimer(self._parent)
        timer.setInterval(interval_ms)
        timer.setSingleShot(single_shot)
        timer.timeout.connect(callback)
        timer.start()
        return ScheduledTask(timer)

    def call_repeating(self, interval_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        """Run callback every interval_ms until the handle is cancelled."""
        return self._schedule(interval_ms, callback, single_shot=False)

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> ScheduledTask:
        """Run callback once after delay_ms unless cancelled first."""
        return self._schedule(delay_ms, callback, single_shot=True)
