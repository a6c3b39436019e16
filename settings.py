"""
Runtime configuration for the training reminder.

Values come from the environment (optionally a .env file next to the app),
the same way the rest of the project reads its secrets and ports.
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseModel):
    tick_interval_ms: int = 200
    audio_enabled: bool = True
    start_tone_hz: float = 880.0
    start_tone_ms: int = 200
    end_tone_hz: float = 440.0
    end_tone_ms: int = 300
    vibration_webhook_url: Optional[str] = None
    vibration_timeout: float = 2.0
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8080
    reload: bool = True

    @property
    def tick_interval(self) -> float:
        return self.tick_interval_ms / 1000.0


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def load_settings() -> Settings:
    """Read settings from the current environment."""
    return Settings(
        tick_interval_ms=int(os.getenv("REMINDER_TICK_MS", "200")),
        audio_enabled=_flag("REMINDER_AUDIO", "true"),
        start_tone_hz=float(os.getenv("REMINDER_START_TONE_HZ", "880")),
        start_tone_ms=int(os.getenv("REMINDER_START_TONE_MS", "200")),
        end_tone_hz=float(os.getenv("REMINDER_END_TONE_HZ", "440")),
        end_tone_ms=int(os.getenv("REMINDER_END_TONE_MS", "300")),
        vibration_webhook_url=os.getenv("VIBRATION_WEBHOOK_URL") or None,
        vibration_timeout=float(os.getenv("VIBRATION_TIMEOUT", "2.0")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        reload=_flag("RELOAD", "true"),
    )


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=_LOG_FORMAT)
    else:
        root.setLevel(level)
