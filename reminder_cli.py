#!/usr/bin/env python3
"""
Run one reminder in the terminal.

Usage:
    python reminder_cli.py --total 300 --avg 5 --count 20 --max-interval 10
"""

import argparse
import sys
import time

from notifier import Notifier
from reminder_engine import ReminderEngine, ReminderState
from schedule_generator import PhaseKind, ScheduleConfiguration, format_timer
from settings import configure_logging, load_settings


def format_state(state: ReminderState) -> str:
    if state.phase is PhaseKind.BEHAVIOR:
        label = f"behavior {state.current_behavior_index}/{state.total_behavior_count}"
    else:
        label = "interval"
    return (
        f"{label:<14} {format_timer(state.phase_countdown_seconds)}"
        f"  (remaining {format_timer(state.total_remaining_seconds)})"
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Interval reminder for behavior training")
    parser.add_argument("--total", type=float, required=True, help="total time in seconds")
    parser.add_argument("--avg", type=float, required=True, help="average behavior duration in seconds")
    parser.add_argument("--count", type=int, required=True, help="number of behavior repetitions")
    parser.add_argument("--max-interval", type=float, default=0, help="cap per interval in seconds (0 = none)")
    return parser.parse_args(argv)


def run(engine: ReminderEngine, config: ScheduleConfiguration, poll: float = 1.0, out=sys.stdout) -> int:
    engine.start(config)
    if not engine.running:
        print("Not enough time for the requested repetitions.", file=out)
        return 1
    try:
        while engine.running:
            print(format_state(engine.snapshot()), file=out, flush=True)
            time.sleep(poll)
    except KeyboardInterrupt:
        engine.stop()
        print("\nStopped.", file=out)
        return 130
    print("Done.", file=out)
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = load_settings()
    configure_logging(settings.log_level)

    config = ScheduleConfiguration(
        total_time=args.total,
        avg_duration=args.avg,
        count=args.count,
        max_interval=args.max_interval,
    )
    notifier = Notifier(settings)
    engine = ReminderEngine(notifier=notifier, tick_interval=settings.tick_interval)
    try:
        return run(engine, config)
    finally:
        notifier.close()


if __name__ == "__main__":
    sys.exit(main())
