import pytest
from fastapi.testclient import TestClient

from reminder_engine import ReminderEngine


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ManualTimer:
    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


class ManualTimerFactory:
    """Records every timer the engine installs; nothing fires on its own."""

    def __init__(self):
        self.timers = []

    def __call__(self, interval, callback):
        timer = ManualTimer(interval, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self):
        return [t for t in self.timers if not t.cancelled]


class RecordingNotifier:
    def __init__(self):
        self.kinds = []
        self.unlocks = 0

    def notify(self, kind):
        self.kinds.append(kind)

    def unlock(self):
        self.unlocks += 1


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Quiet, deterministic settings for tests (no audio, no webhook)."""
    monkeypatch.setenv("REMINDER_AUDIO", "false")
    monkeypatch.setenv("REMINDER_TICK_MS", "200")
    monkeypatch.delenv("VIBRATION_WEBHOOK_URL", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers():
    return ManualTimerFactory()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(clock, timers, notifier):
    return ReminderEngine(notifier=notifier, clock=clock, timer_factory=timers, tick_interval=0.2)


@pytest.fixture
def client(engine):
    from app import create_app

    with TestClient(create_app(engine=engine)) as c:
        yield c
