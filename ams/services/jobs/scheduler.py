from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from ams.core import clock
from ams.services.jobs.runner import run_job

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Trigger:
    """Wall-clock trigger in the warehouse timezone.

    `minute` is required; `hour`, `day` (of month) and `weekday` (Monday=0)
    narrow it further when set.
    """
    minute: int
    hour: int | None = None
    day: int | None = None
    weekday: int | None = None

    def matches(self, now: datetime) -> bool:
        if now.minute != self.minute:
            return False
        if self.hour is not None and now.hour != self.hour:
            return False
        if self.day is not None and now.day != self.day:
            return False
        if self.weekday is not None and now.weekday() != self.weekday:
            return False
        return True


SCHEDULE: list[tuple[str, Trigger]] = [
    ("sync-visitor-checkin", Trigger(minute=0)),
    ("sync-visitor-checkout", Trigger(minute=0)),
    ("update-arrival-status", Trigger(minute=0)),
    ("update-delivery-compliance", Trigger(minute=59, hour=23)),
    # previous month by default
    ("calculate-delivery-performance", Trigger(minute=0, hour=1, day=1)),
    ("cleanup-job-runs", Trigger(minute=30, hour=2, weekday=6)),
]


def due_jobs(now: datetime, last_fired: dict[str, datetime]) -> list[str]:
    """Jobs whose trigger matches `now` and that have not fired in this minute yet."""
    slot = now.replace(second=0, microsecond=0)
    due = []
    for name, trigger in SCHEDULE:
        if trigger.matches(slot) and last_fired.get(name) != slot:
            last_fired[name] = slot
            due.append(name)
    return due


_inflight: set[str] = set()
_tasks: set[asyncio.Task] = set()


async def _run_in_thread(name: str) -> None:
    if name in _inflight:
        logger.warning("Job %s is still running in this process; skipping", name)
        return
    _inflight.add(name)
    try:
        await asyncio.to_thread(run_job, name)
    except Exception:
        # already recorded as a failed run by the runner
        logger.error("Scheduled job %s failed", name)
    finally:
        _inflight.discard(name)


async def run_scheduler_forever(*, poll_interval_seconds: float = 20.0) -> None:
    """Fire the batch jobs on their cadence until cancelled."""
    last_fired: dict[str, datetime] = {}
    logger.info("Scheduler started with %d jobs", len(SCHEDULE))
    while True:
        for name in due_jobs(clock.now(), last_fired):
            task = asyncio.create_task(_run_in_thread(name))
            _tasks.add(task)
            task.add_done_callback(_tasks.discard)
        await asyncio.sleep(poll_interval_seconds)
