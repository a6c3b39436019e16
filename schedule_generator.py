"""
Schedule generation for the interval reminder.

A reminder run alternates "behavior" phases (elicit and reward the trained
behavior) with "interval" phases (rest). The generator spreads the behavior
and interval budgets over the requested number of repetitions with a bit of
randomness so the dog cannot learn the rhythm.
"""

from __future__ import annotations

import math
import random
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

# -------------------------
# Data Models
# -------------------------
class PhaseKind(str, Enum):
    BEHAVIOR = "behavior"
    INTERVAL = "interval"


class ScheduleConfiguration(BaseModel):
    total_time: float  # seconds, upper bound for the whole run
    avg_duration: float  # seconds, mean length of one behavior phase
    count: int  # behavior repetitions
    max_interval: float = Field(default=0, ge=0)  # 0 = no cap per interval


class Phase(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: PhaseKind
    duration_seconds: int = Field(ge=1)


Schedule = Tuple[Phase, ...]

# Behavior draws are bounded around the average
MIN_BEHAVIOR_RATIO = 0.2
MAX_BEHAVIOR_RATIO = 2.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


# -------------------------
# Constrained random partition
# -------------------------
def random_distribute(
    count: int,
    target_sum: int,
    min_val: float,
    max_val: float,
    rng: Optional[random.Random] = None,
) -> List[int]:
    """
    Split ``target_sum`` into ``count`` positive integers with random variance.

    Args:
        count: Number of items
        target_sum: Exact integer total the items must add up to
        min_val: Lower bound of each raw draw
        max_val: Upper bound of each raw draw
        rng: Random source (module random when omitted)

    Returns:
        list[int]: Items summing to ``target_sum``. Items are at least 1
        unless ``target_sum < count``, in which case some items are 0.
    """
    if count <= 0 or target_sum <= 0:
        return []
    if count == 1:
        return [target_sum]

    uniform = (rng or random).uniform
    floor = 1 if target_sum >= count else 0

    raw = [uniform(min_val, max_val) for _ in range(count)]
    raw_sum = sum(raw)
    scaled = [v / raw_sum * target_sum for v in raw]
    rounded = [max(floor, round_half_up(v)) for v in scaled]

    # Hand out the rounding residual one unit at a time
    diff = target_sum - sum(rounded)
    while diff != 0:
        for i in range(len(rounded)):
            if diff == 0:
                break
            if diff > 0:
                rounded[i] += 1
                diff -= 1
            elif rounded[i] > floor:
                rounded[i] -= 1
                diff += 1

    return rounded


def generate_schedule(
    config: ScheduleConfiguration, rng: Optional[random.Random] = None
) -> Schedule:
    """
    Build the phase timeline for one reminder run.

    An empty schedule means the configuration cannot fit: the behavior time
    alone exceeds the total time, or there are no repetitions.

    Behavior seconds round half up and interval seconds round down into
    what is left, so the whole schedule never runs past total_time.
    """
    count = config.count
    total_behavior = config.avg_duration * count
    total_interval = config.total_time - total_behavior

    if total_interval < 0 or count <= 0:
        return ()

    # Never let the interval budget exceed what the per-item cap allows
    if config.max_interval > 0:
        total_interval = min(total_interval, config.max_interval * count)

    behavior_target = round_half_up(total_behavior)
    if behavior_target < count or behavior_target > config.total_time:
        # Some repetition would get less than a second, or rounding up
        # the behavior time already overruns the session
        return ()
    interval_target = int(math.floor(min(total_interval, config.total_time - behavior_target)))

    min_behavior = max(1, round_half_up(config.avg_duration * MIN_BEHAVIOR_RATIO))
    max_behavior = config.avg_duration * MAX_BEHAVIOR_RATIO
    behavior_durations = random_distribute(
        count, behavior_target, min_behavior, max_behavior, rng
    )

    if config.max_interval > 0:
        interval_cap = config.max_interval
    else:
        interval_cap = max(2, round_half_up(total_interval / count) * 2)

    if interval_target > 0:
        interval_durations = random_distribute(
            count, interval_target, 1, interval_cap, rng
        )
    else:
        interval_durations = [0] * count

    phases: List[Phase] = []
    for behavior_s, interval_s in zip(behavior_durations, interval_durations):
        phases.append(Phase(kind=PhaseKind.BEHAVIOR, duration_seconds=behavior_s))
        if interval_s > 0:
            phases.append(Phase(kind=PhaseKind.INTERVAL, duration_seconds=interval_s))

    return tuple(phases)


def schedule_totals(schedule: Schedule) -> Tuple[int, int, int]:
    """Return (behavior seconds, interval seconds, total seconds)."""
    behavior = sum(p.duration_seconds for p in schedule if p.kind is PhaseKind.BEHAVIOR)
    interval = sum(p.duration_seconds for p in schedule if p.kind is PhaseKind.INTERVAL)
    return behavior, interval, behavior + interval


# -------------------------
# Form helpers
# -------------------------
def suggest_configuration(
    total_time: Optional[float] = None,
    avg_duration: Optional[float] = None,
    count: Optional[int] = None,
    max_interval: float = 0,
) -> ScheduleConfiguration:
    """
    Fill in whichever of total time, average duration or count is missing.

    One cycle is a behavior plus an interval; without a cap the interval is
    assumed to be as long as the behavior.
    """
    given = {"total_time": total_time, "avg_duration": avg_duration, "count": count}
    missing = [name for name, value in given.items() if value is None]
    if len(missing) != 1:
        raise ValueError("Exactly one of total_time, avg_duration, count must be omitted")
    for name, value in given.items():
        if value is not None and value <= 0:
            raise ValueError(f"{name} must be positive")
    if max_interval < 0:
        raise ValueError("max_interval must not be negative")

    if missing[0] == "count":
        avg_interval = min(avg_duration, max_interval) if max_interval > 0 else avg_duration
        count = round_half_up(total_time / (avg_duration + avg_interval))
    elif missing[0] == "avg_duration":
        avg_duration = round_half_up(total_time / (count * 2))
    else:
        avg_interval = min(avg_duration, max_interval) if max_interval > 0 else avg_duration
        total_time = avg_duration * count + avg_interval * count

    if count <= 0 or avg_duration <= 0:
        raise ValueError("total_time is too short for one repetition")

    return ScheduleConfiguration(
        total_time=total_time,
        avg_duration=avg_duration,
        count=count,
        max_interval=max_interval,
    )


def format_timer(seconds: int) -> str:
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes:02d}:{secs:02d}"


if __name__ == "__main__":
    # Example schedules for a few session shapes
    shapes = [(60, 5, 6, 0), (300, 5, 20, 10), (20, 10, 1, 0), (5, 10, 2, 0)]
    print("Reminder Schedule Generator\n" + "=" * 50)
    for total, avg, reps, cap in shapes:
        cfg = ScheduleConfiguration(total_time=total, avg_duration=avg, count=reps, max_interval=cap)
        print(f"\n{total}s total, {reps} x ~{avg}s, interval cap {cap or 'none'}:")
        print("-" * 30)
        sched = generate_schedule(cfg)
        if not sched:
            print("(not enough time for the requested repetitions)")
        for p in sched:
            print(f"  {p.kind.value:<9} {p.duration_seconds:>4}s")
