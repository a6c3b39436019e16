"""
HTTP API for the training reminder.

Schedules
- POST /schedule/generate → preview a randomized schedule
- POST /schedule/suggest  → fill in the missing form field

Reminder (one run per server)
- GET  /reminder        → live countdown state
- POST /reminder/start  → start a run (``running: false`` if the configuration does not fit)
- POST /reminder/pause
- POST /reminder/resume
- POST /reminder/stop
"""

from __future__ import annotations

import logging
import random
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from notifier import Notifier
from reminder_engine import ReminderEngine, ReminderState
from schedule_generator import (
    Phase,
    ScheduleConfiguration,
    generate_schedule,
    schedule_totals,
    suggest_configuration,
)
from settings import Settings, configure_logging, load_settings

logger = logging.getLogger(__name__)

# -------------------------
# API Models
# -------------------------
class ScheduleResponse(BaseModel):
    phases: List[Phase]
    behavior_seconds: int
    interval_seconds: int
    total_seconds: int


class SuggestRequest(BaseModel):
    total_time: Optional[float] = None
    avg_duration: Optional[float] = None
    count: Optional[int] = None
    max_interval: float = Field(default=0, ge=0)


router = APIRouter()


def _engine(request: Request) -> ReminderEngine:
    return request.app.state.engine


# -------------------------
# Schedules API
# -------------------------
@router.post("/schedule/generate", response_model=ScheduleResponse)
def generate(config: ScheduleConfiguration, seed: Optional[int] = None):
    rng = random.Random(seed) if seed is not None else None
    schedule = generate_schedule(config, rng)
    behavior_s, interval_s, total_s = schedule_totals(schedule)
    return ScheduleResponse(
        phases=list(schedule),
        behavior_seconds=behavior_s,
        interval_seconds=interval_s,
        total_seconds=total_s,
    )


@router.post("/schedule/suggest", response_model=ScheduleConfiguration)
def suggest(body: SuggestRequest):
    try:
        return suggest_configuration(
            total_time=body.total_time,
            avg_duration=body.avg_duration,
            count=body.count,
            max_interval=body.max_interval,
        )
    except ValueError as e:
        raise HTTPException(400, str(e))


# -------------------------
# Reminder API
# -------------------------
@router.get("/reminder", response_model=ReminderState)
def get_state(request: Request):
    return _engine(request).snapshot()


@router.post("/reminder/start", response_model=ReminderState)
def start_reminder(config: ScheduleConfiguration, request: Request):
    engine = _engine(request)
    engine.start(config)
    return engine.snapshot()


@router.post("/reminder/pause", response_model=ReminderState)
def pause_reminder(request: Request):
    engine = _engine(request)
    engine.pause()
    return engine.snapshot()


@router.post("/reminder/resume", response_model=ReminderState)
def resume_reminder(request: Request):
    engine = _engine(request)
    engine.resume()
    return engine.snapshot()


@router.post("/reminder/stop", response_model=ReminderState)
def stop_reminder(request: Request):
    engine = _engine(request)
    engine.stop()
    return engine.snapshot()


def build_engine(settings: Settings) -> ReminderEngine:
    return ReminderEngine(notifier=Notifier(settings), tick_interval=settings.tick_interval)


def create_app(engine: Optional[ReminderEngine] = None) -> FastAPI:
    settings = load_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.engine.stop()
        notifier = app.state.engine.notifier
        if isinstance(notifier, Notifier):
            notifier.close()

    app = FastAPI(title="Training Reminder API", lifespan=lifespan)
    app.state.engine = engine or build_engine(settings)
    app.include_router(router)
    return app


app = create_app()
