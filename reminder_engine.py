"""
Reminder engine: drives a countdown through a generated schedule.

Timer Rules
-----------
- Remaining time for the current phase and for the whole run is derived from
  absolute deadlines on every tick, never by decrementing a counter, so a
  delayed tick cannot accumulate drift.
- Pausing stores the remaining durations; resuming rebuilds both deadlines
  from "now", so time spent paused is excluded from both countdowns.
- One repeating timer per engine. Every start, pause and stop cancels the
  current timer before anything else happens.
- Use a monotonic clock. Countdowns are whole seconds, rounded up.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional

from pydantic import BaseModel

from notifier import NotifyKind
from schedule_generator import (
    Phase,
    PhaseKind,
    Schedule,
    ScheduleConfiguration,
    generate_schedule,
)

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 0.2  # seconds


class ReminderState(BaseModel):
    phase: Optional[PhaseKind] = None
    current_behavior_index: int = 0
    total_behavior_count: int = 0
    phase_countdown_seconds: int = 0
    total_remaining_seconds: int = 0
    running: bool = False
    paused: bool = False


class RepeatingTimer:
    """Calls ``callback`` every ``interval`` seconds on a daemon thread until cancelled."""

    def __init__(self, interval: float, callback: Callable[[], None]):
        self.interval = interval
        self.callback = callback
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, name="reminder-tick", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._cancelled.wait(self.interval):
            self.callback()

    def cancel(self) -> None:
        self._cancelled.set()


def _ceil_seconds(remaining: float) -> int:
    remaining_ms = max(0, round(remaining * 1000))
    return -(-remaining_ms // 1000)


class ReminderEngine:
    """
    Single-run reminder state machine: Idle -> Running (active | paused) -> Idle.

    ``notifier`` needs ``notify(kind)`` and ``unlock()``. ``timer_factory`` is
    called as ``timer_factory(interval, callback)`` and must return an object
    with ``cancel()``.
    """

    def __init__(
        self,
        notifier=None,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: Callable[[float, Callable[[], None]], object] = RepeatingTimer,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        generator: Callable[[ScheduleConfiguration], Schedule] = generate_schedule,
    ):
        self.notifier = notifier
        self.clock = clock
        self.timer_factory = timer_factory
        self.tick_interval = tick_interval
        self.generator = generator

        self._lock = threading.RLock()
        self._listeners: List[Callable[[ReminderState], None]] = []
        self._audio_unlocked = False
        self._timer = None
        self._generation = 0

        self._phase: Optional[PhaseKind] = None
        self._current_behavior_index = 0
        self._total_behavior_count = 0
        self._phase_countdown = 0
        self._total_remaining = 0
        self._running = False
        self._paused = False

        self._schedule: Schedule = ()
        self._schedule_index = 0
        self._phase_deadline = 0.0
        self._total_deadline = 0.0
        self._paused_phase_remaining = 0.0
        self._paused_total_remaining = 0.0

    # ----- Observable state -----
    @property
    def phase(self) -> Optional[PhaseKind]:
        return self._phase

    @property
    def current_behavior_index(self) -> int:
        return self._current_behavior_index

    @property
    def total_behavior_count(self) -> int:
        return self._total_behavior_count

    @property
    def phase_countdown_seconds(self) -> int:
        return self._phase_countdown

    @property
    def total_remaining_seconds(self) -> int:
        return self._total_remaining

    @property
    def running(self) -> bool:
        return self._running

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def schedule(self) -> Schedule:
        """Phases of the active run not yet started."""
        with self._lock:
            return self._schedule[self._schedule_index:]

    def snapshot(self) -> ReminderState:
        with self._lock:
            return ReminderState(
                phase=self._phase,
                current_behavior_index=self._current_behavior_index,
                total_behavior_count=self._total_behavior_count,
                phase_countdown_seconds=self._phase_countdown,
                total_remaining_seconds=self._total_remaining,
                running=self._running,
                paused=self._paused,
            )

    def add_listener(self, fn: Callable[[ReminderState], None]) -> None:
        self._listeners.append(fn)

    def remove_listener(self, fn: Callable[[ReminderState], None]) -> None:
        if fn in self._listeners:
            self._listeners.remove(fn)

    # ----- Controls -----
    def start(self, config: ScheduleConfiguration) -> None:
        schedule = self.generator(config)
        if not schedule:
            logger.info("Reminder not started: configuration leaves no room for %s repetitions", config.count)
            return

        with self._lock:
            self._cancel_timer()
            self._unlock_audio()

            self._schedule = tuple(schedule)
            self._schedule_index = 0
            total = sum(p.duration_seconds for p in self._schedule)
            self._total_deadline = self.clock() + total
            self._total_remaining = total
            self._total_behavior_count = config.count
            self._current_behavior_index = 0
            self._running = True
            self._paused = False
            logger.info("Reminder started: %d phases, %ds total", len(self._schedule), total)

            self._advance_phase()
            if self._running:
                self._start_timer()
            self._emit()

    def stop(self) -> None:
        with self._lock:
            was_running = self._running
            self._cancel_timer()
            self._reset()
            self._current_behavior_index = 0
            self._total_behavior_count = 0
            if was_running:
                logger.info("Reminder stopped")
                self._emit()

    def pause(self) -> None:
        with self._lock:
            if not self._running or self._paused:
                return
            self._cancel_timer()
            now = self.clock()
            self._paused_phase_remaining = max(0.0, self._phase_deadline - now)
            self._paused_total_remaining = max(0.0, self._total_deadline - now)
            self._phase_countdown = _ceil_seconds(self._paused_phase_remaining)
            self._total_remaining = _ceil_seconds(self._paused_total_remaining)
            self._paused = True
            logger.debug("Reminder paused with %.1fs left", self._paused_total_remaining)
            self._emit()

    def resume(self) -> None:
        with self._lock:
            if not self._running or not self._paused:
                return
            now = self.clock()
            self._phase_deadline = now + self._paused_phase_remaining
            self._total_deadline = now + self._paused_total_remaining
            self._paused = False
            self._start_timer()
            logger.debug("Reminder resumed")
            self._emit()

    # ----- Timer core -----
    def tick(self) -> None:
        """Recompute both countdowns from their deadlines; advance when the phase is over."""
        with self._lock:
            if not self._running or self._paused:
                return
            now = self.clock()
            self._phase_countdown = _ceil_seconds(self._phase_deadline - now)
            self._total_remaining = _ceil_seconds(self._total_deadline - now)
            if self._phase_countdown <= 0:
                self._advance_phase()
            self._emit()

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            # Tick queued by a timer cancelled in the meantime
            if generation != self._generation:
                return
            self.tick()

    def _advance_phase(self) -> None:
        if self._schedule_index >= len(self._schedule):
            logger.info("Reminder complete: %d repetitions", self._total_behavior_count)
            self._notify(NotifyKind.STOP)
            self._cancel_timer()
            self._reset()
            return

        item: Phase = self._schedule[self._schedule_index]
        self._phase = item.kind
        self._phase_countdown = item.duration_seconds
        self._phase_deadline = self.clock() + item.duration_seconds

        if item.kind is PhaseKind.BEHAVIOR:
            self._current_behavior_index = sum(
                1 for p in self._schedule[: self._schedule_index + 1] if p.kind is PhaseKind.BEHAVIOR
            )
            logger.debug(
                "Behavior %d/%d for %ds",
                self._current_behavior_index,
                self._total_behavior_count,
                item.duration_seconds,
            )
            self._notify(NotifyKind.START)
        else:
            logger.debug("Interval for %ds", item.duration_seconds)
            self._notify(NotifyKind.STOP)

        self._schedule_index += 1

    def _reset(self) -> None:
        self._running = False
        self._paused = False
        self._phase = None
        self._phase_countdown = 0
        self._total_remaining = 0
        self._schedule = ()
        self._schedule_index = 0
        self._phase_deadline = 0.0
        self._total_deadline = 0.0
        self._paused_phase_remaining = 0.0
        self._paused_total_remaining = 0.0

    def _start_timer(self) -> None:
        self._cancel_timer()
        generation = self._generation
        self._timer = self.timer_factory(self.tick_interval, lambda: self._on_timer(generation))

    def _cancel_timer(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # ----- Side effects -----
    def _unlock_audio(self) -> None:
        if self._audio_unlocked or self.notifier is None:
            return
        self._audio_unlocked = True
        try:
            self.notifier.unlock()
        except Exception:
            logger.debug("Audio unlock failed", exc_info=True)

    def _notify(self, kind: NotifyKind) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(kind)
        except Exception:
            logger.debug("Notification %s failed", kind.value, exc_info=True)

    def _emit(self) -> None:
        if not self._listeners:
            return
        state = self.snapshot()
        for fn in list(self._listeners):
            try:
                fn(state)
            except Exception:
                logger.exception("Reminder listener failed")
