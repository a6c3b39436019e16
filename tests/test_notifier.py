import pygame
import pytest
import requests

import notifier as notifier_module
from notifier import Notifier, NotifyKind, play_tone, unlock_audio
from settings import Settings

WEBHOOK = "http://phone.local/vibrate"


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse()
        self.error = error
        self.posts = []
        self.closed = False

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json, timeout))
        if self.error:
            raise self.error
        return self.response

    def close(self):
        self.closed = True


class FakeSound:
    def __init__(self):
        self.plays = 0

    def play(self):
        self.plays += 1


@pytest.fixture(autouse=True)
def fresh_audio(monkeypatch):
    """Each test starts with no mixer opened and an empty tone cache."""
    monkeypatch.setattr(notifier_module, "_audio_ready", False)
    monkeypatch.setattr(notifier_module, "_tones", {})


@pytest.fixture
def tones(monkeypatch):
    played = []
    monkeypatch.setattr(notifier_module, "play_tone", lambda hz, ms: played.append((hz, ms)) or True)
    return played


def _sync_dispatch(n, monkeypatch):
    monkeypatch.setattr(n, "_dispatch", lambda fn, *args: fn(*args))


class TestNotifier:
    """Tones and vibration per notification kind"""

    def test_start_plays_high_tone(self, tones):
        n = Notifier(Settings(audio_enabled=True), session=FakeSession())
        n.notify(NotifyKind.START)

        assert tones == [(880.0, 200)]

    def test_stop_plays_low_tone(self, tones):
        n = Notifier(Settings(audio_enabled=True), session=FakeSession())
        n.notify(NotifyKind.STOP)

        assert tones == [(440.0, 300)]

    def test_audio_disabled(self, tones):
        n = Notifier(Settings(audio_enabled=False), session=FakeSession())
        n.notify(NotifyKind.START)

        assert tones == []

    def test_accepts_plain_string_kind(self, tones):
        n = Notifier(Settings(audio_enabled=True), session=FakeSession())
        n.notify("stop")

        assert tones == [(440.0, 300)]

    def test_vibration_patterns_sent_to_webhook(self, tones, monkeypatch):
        session = FakeSession()
        n = Notifier(Settings(audio_enabled=False, vibration_webhook_url=WEBHOOK), session=session)
        _sync_dispatch(n, monkeypatch)

        n.notify(NotifyKind.START)
        n.notify(NotifyKind.STOP)

        assert session.posts == [
            (WEBHOOK, {"kind": "start", "pattern": [100, 50, 100]}, 2.0),
            (WEBHOOK, {"kind": "stop", "pattern": [200]}, 2.0),
        ]

    def test_no_webhook_configured(self, tones):
        session = FakeSession()
        n = Notifier(Settings(audio_enabled=False), session=session)
        n.notify(NotifyKind.START)

        assert session.posts == []

    def test_unreachable_webhook_is_swallowed(self, tones, monkeypatch):
        session = FakeSession(error=requests.exceptions.ConnectionError("no route"))
        n = Notifier(Settings(audio_enabled=False, vibration_webhook_url=WEBHOOK), session=session)
        _sync_dispatch(n, monkeypatch)

        n.notify(NotifyKind.START)

        assert len(session.posts) == 1

    def test_webhook_http_error(self):
        n = Notifier(
            Settings(vibration_webhook_url=WEBHOOK), session=FakeSession(response=FakeResponse(503))
        )

        assert n.vibrate([200], NotifyKind.STOP) is False

    def test_vibration_runs_on_worker(self, tones):
        session = FakeSession()
        n = Notifier(Settings(audio_enabled=False, vibration_webhook_url=WEBHOOK), session=session)
        n.notify(NotifyKind.START)
        n._executor.shutdown(wait=True)

        assert len(session.posts) == 1

    def test_close(self):
        session = FakeSession()
        n = Notifier(Settings(vibration_webhook_url=WEBHOOK), session=session)
        n._dispatch(lambda: None)
        n.close()

        assert session.closed is True
        assert n._executor is None

    def test_unlock_respects_audio_setting(self, monkeypatch):
        calls = []
        monkeypatch.setattr(notifier_module, "unlock_audio", lambda: calls.append(1) or True)

        Notifier(Settings(audio_enabled=False), session=FakeSession()).unlock()
        Notifier(Settings(audio_enabled=True), session=FakeSession()).unlock()

        assert calls == [1]


class TestAudioOutput:
    """Process-wide mixer handle"""

    def test_missing_audio_device(self, monkeypatch):
        def no_device(**kwargs):
            raise pygame.error("No available audio device")

        monkeypatch.setattr(pygame.mixer, "get_init", lambda: None)
        monkeypatch.setattr(pygame.mixer, "init", no_device)

        assert unlock_audio() is False
        assert play_tone(880, 200) is False

    def test_mixer_opened_once_and_tones_cached(self, monkeypatch):
        inits = []
        created = []
        sound = FakeSound()

        monkeypatch.setattr(pygame.mixer, "get_init", lambda: None)
        monkeypatch.setattr(pygame.mixer, "init", lambda **kwargs: inits.append(kwargs))
        monkeypatch.setattr(
            notifier_module, "_create_tone", lambda hz, ms: created.append((hz, ms)) or sound
        )

        assert play_tone(880, 200) is True
        assert play_tone(880, 200) is True
        assert play_tone(440, 300) is True

        assert len(inits) == 1
        assert created == [(880, 200), (440, 300)]
        assert sound.plays == 3

    def test_failed_open_is_retried(self, monkeypatch):
        """A device that is busy on the first cue is picked up on a later one"""
        inits = []
        sound = FakeSound()

        def busy_once(**kwargs):
            inits.append(kwargs)
            if len(inits) == 1:
                raise pygame.error("Device or resource busy")

        monkeypatch.setattr(pygame.mixer, "get_init", lambda: None)
        monkeypatch.setattr(pygame.mixer, "init", busy_once)
        monkeypatch.setattr(notifier_module, "_create_tone", lambda hz, ms: sound)

        assert unlock_audio() is False
        assert play_tone(880, 200) is True
        assert play_tone(440, 300) is True

        assert len(inits) == 2
        assert sound.plays == 2

    def test_playback_error_is_swallowed(self, monkeypatch):
        def broken_tone(hz, ms):
            raise pygame.error("mixer not initialized")

        monkeypatch.setattr(notifier_module, "_audio_ready", True)
        monkeypatch.setattr(notifier_module, "_create_tone", broken_tone)

        assert play_tone(880, 200) is False
