"""
Notification module for FocusCycle.
Handles sound playback and desktop notifications on phase changes.

Nothing here is required for the timer to work: every failure is logged and
swallowed so a missing audio player never interrupts a session.
"""

import io
import logging
import math
import os
import struct
import subprocess
import sys
import tempfile
import wave
from typing import Dict, List, Optional

from .models import Phase

logger = logging.getLogger(__name__)

# Pitch multipliers applied to the chime for the phase being entered.
PHASE_PITCH = {
    Phase.FOCUS: 1.2,
    Phase.BREAK: 0.8,
    Phase.LONG_BREAK: 0.6,
}

PHASE_MESSAGES = {
    Phase.FOCUS: ("Break Over", "Ready for another focus session?"),
    Phase.BREAK: ("Focus Complete!", "Great work! Time for a break."),
    Phase.LONG_BREAK: ("Long Break", "Cycle done. Take a longer rest."),
}


def _tone(frequency: float, seconds: float, sample_rate: int, amplitude: float, fade: float) -> List[int]:
    """Sine tone with linear fade in/out to avoid clicks."""
    count = int(sample_rate * seconds)
    fade_samples = max(1, int(sample_rate * fade))
    samples = []
    for i in range(count):
        value = amplitude * math.sin(2 * math.pi * frequency * i / sample_rate)
        if i < fade_samples:
            value *= i / fade_samples
        elif i > count - fade_samples:
            value *= (count - i) / fade_samples
        samples.append(int(value))
    return samples


def generate_chime(pitch: float = 1.0, volume: float = 0.6, sample_rate: int = 44100) -> bytes:
    """
    Generate a two-tone chime as WAV data.

    Args:
        pitch: Multiplier on the base frequencies (880 Hz then 1046 Hz).
        volume: Volume level (0.0 to 1.0).
        sample_rate: Sample rate (44100 is CD quality).

    Returns:
        WAV file data as bytes.
    """
    amplitude = 32767 * max(0.0, min(1.0, volume)) * 0.7
    samples = _tone(880 * pitch, 0.1, sample_rate, amplitude, 0.01)
    samples.extend([0] * int(sample_rate * 0.05))
    samples.extend(_tone(1046 * pitch, 0.15, sample_rate, amplitude, 0.015))

    buffer = io.BytesIO()
    with wave.open(buffer, 'wb') as wav:
        wav.setnchannels(1)  # Mono
        wav.setsampwidth(2)  # 16-bit
        wav.setframerate(sample_rate)
        wav.writeframes(struct.pack(f'<{len(samples)}h', *samples))
    return buffer.getvalue()


class SoundPlayer:
    """
    Cross-platform sound player.
    Chimes are synthesized once on activation and played through the
    platform's command line player.
    """

    def __init__(self):
        self._files: Dict[Phase, str] = {}

    @property
    def ready(self) -> bool:
        return bool(self._files)

    def prepare(self) -> bool:
        """Write one chime per phase to temporary WAV files."""
        if self.ready:
            return True
        try:
            for phase, pitch in PHASE_PITCH.items():
                fd, path = tempfile.mkstemp(suffix='.wav', prefix=f'focuscycle-{phase.value}-')
                with os.fdopen(fd, 'wb') as f:
                    f.write(generate_chime(pitch))
                self._files[phase] = path
        except OSError as e:
            logger.warning("Could not prepare sounds: %s", e)
            self.cleanup()
            return False
        return True

    def play(self, phase: Phase):
        """Play the chime for phase."""
        path = self._files.get(phase)
        if path is None:
            return
        try:
            self._play_file(path)
        except OSError as e:
            logger.warning("Could not play sound: %s", e)

    def _play_file(self, path: str):
        """Platform-specific sound playback."""
        system = sys.platform.lower()

        if system == 'darwin':
            subprocess.Popen(
                ['afplay', path],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL
            )
        elif system.startswith('linux'):
            # PulseAudio first, then ALSA
            for cmd in ['paplay', 'aplay']:
                try:
                    subprocess.Popen(
                        [cmd, path],
                        stdout=subprocess.DEVNULL,
                        stderr=subprocess.DEVNULL
                    )
                    return
                except FileNotFoundError:
                    continue
            logger.warning("No audio player found (tried paplay, aplay)")
        elif system == 'win32':
            import winsound
            winsound.PlaySound(path, winsound.SND_FILENAME | winsound.SND_ASYNC)

    def cleanup(self):
        """Clean up temporary files."""
        for path in self._files.values():
            try:
                os.remove(path)
            except OSError:
                logger.debug("Could not remove %s", path)
        self._files.clear()


class NotificationManager:
    """
    Sound alerts and desktop notifications for phase changes.

    The timer engine calls ``activate`` once, on the first start, and
    ``phase_changed`` whenever a phase completes.
    """

    def __init__(self, sound_player: Optional[SoundPlayer] = None):
        self._sound_player = sound_player or SoundPlayer()
        self._activated = False
        self.sound_enabled = True
        self.notification_enabled = True

    @property
    def activated(self) -> bool:
        return self._activated

    def activate(self) -> bool:
        """Prepare audio. Only the first call does any work."""
        if self._activated:
            return self._sound_player.ready
        self._activated = True
        return self._sound_player.prepare()

    def apply_preferences(self, sound: bool, notifications: bool):
        self.sound_enabled = sound
        self.notification_enabled = notifications

    def phase_changed(self, next_phase: Phase):
        """Announce that the timer is moving into next_phase."""
        if self.sound_enabled and self._activated:
            self._sound_player.play(next_phase)
        if self.notification_enabled:
            title, message = PHASE_MESSAGES[next_phase]
            self._show_notification(title, message)

    def _show_notification(self, title: str, message: str):
        """Show notification using native OS commands."""
        system = sys.platform.lower()

        try:
            if system == 'darwin':
                script = f'display notification "{message}" with title "{title}"'
                subprocess.run(
                    ['osascript', '-e', script],
                    capture_output=True,
                    timeout=5
                )
            elif system.startswith('linux'):
                subprocess.run(
                    ['notify-send', title, message],
                    capture_output=True,
                    timeout=5
                )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("Could not show notification: %s", e)

    def cleanup(self):
        """Clean up resources."""
        self._sound_player.cleanup()
