"""
Audible and haptic cues for the reminder.

Tones play through one pygame mixer that is opened lazily and kept for the
life of the process. Vibration patterns are forwarded to a companion device
(phone, watch) through a webhook, since the host running the timer usually
has no motor of its own.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Dict, List, Optional, Tuple

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import numpy as np
import pygame
import requests

from settings import Settings, load_settings

logger = logging.getLogger(__name__)


class NotifyKind(str, Enum):
    START = "start"
    STOP = "stop"


VIBRATION_PATTERNS: Dict[NotifyKind, List[int]] = {
    NotifyKind.START: [100, 50, 100],
    NotifyKind.STOP: [200],
}

SAMPLE_RATE = 44100
FADE_SECONDS = 0.01
VOLUME = 0.3

# -------------------------
# Process-wide audio handle
# -------------------------
_audio_ready = False
_tones: Dict[Tuple[float, int], "pygame.mixer.Sound"] = {}


def _audio_output() -> bool:
    """Open the mixer on first use. Only success is remembered; a busy device is retried next time."""
    global _audio_ready
    if not _audio_ready:
        try:
            if not pygame.mixer.get_init():
                pygame.mixer.init(frequency=SAMPLE_RATE, size=-16, channels=2, buffer=512)
            _audio_ready = True
        except pygame.error as e:
            logger.debug("Audio output unavailable: %s", e)
    return _audio_ready


def unlock_audio() -> bool:
    return _audio_output()


def _create_tone(frequency_hz: float, duration_ms: int) -> "pygame.mixer.Sound":
    rate, _, channels = pygame.mixer.get_init()
    duration = duration_ms / 1000.0
    n = max(1, int(duration * rate))
    t = np.linspace(0, duration, n, False)
    wave = np.sin(frequency_hz * t * 2 * np.pi) * VOLUME

    # Short fade in and out to avoid clicks
    fade = min(n // 2, int(rate * FADE_SECONDS))
    if fade:
        wave[:fade] *= np.linspace(0, 1, fade)
        wave[-fade:] *= np.linspace(1, 0, fade)

    audio = (wave * 32767).astype(np.int16)
    if channels > 1:
        audio = np.ascontiguousarray(np.repeat(audio.reshape(n, 1), channels, axis=1))
    return pygame.sndarray.make_sound(audio)


def play_tone(frequency_hz: float, duration_ms: int) -> bool:
    """Play a short sine tone without blocking. Returns False if nothing played."""
    if not _audio_output():
        return False
    try:
        key = (float(frequency_hz), int(duration_ms))
        sound = _tones.get(key)
        if sound is None:
            sound = _tones[key] = _create_tone(frequency_hz, duration_ms)
        sound.play()
        return True
    except (pygame.error, ValueError) as e:
        logger.debug("Tone playback failed: %s", e)
        return False


# -------------------------
# Notifier
# -------------------------
class Notifier:
    """Plays the phase-change tone and forwards a vibration pattern."""

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or load_settings()
        self.session = session or requests.Session()
        self._executor: Optional[ThreadPoolExecutor] = None

    def unlock(self) -> None:
        if self.settings.audio_enabled:
            unlock_audio()

    def notify(self, kind: NotifyKind) -> None:
        kind = NotifyKind(kind)
        if self.settings.audio_enabled:
            if kind is NotifyKind.START:
                play_tone(self.settings.start_tone_hz, self.settings.start_tone_ms)
            else:
                play_tone(self.settings.end_tone_hz, self.settings.end_tone_ms)
        if self.settings.vibration_webhook_url:
            self._dispatch(self.vibrate, VIBRATION_PATTERNS[kind], kind)

    def vibrate(self, pattern: List[int], kind: NotifyKind) -> bool:
        """POST the pattern to the vibration webhook. Returns False on failure."""
        try:
            response = self.session.post(
                self.settings.vibration_webhook_url,
                json={"kind": kind.value, "pattern": pattern},
                timeout=self.settings.vibration_timeout,
            )
            response.raise_for_status()
            return True
        except requests.exceptions.RequestException as e:
            logger.debug("Vibration webhook failed: %s", e)
            return False

    def _dispatch(self, fn, *args) -> None:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="vibration")
        self._executor.submit(fn, *args)

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
        self.session.close()
