from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI

from ams import config
from ams.core.logging import configure_logging
from ams.db.base import Base
from ams.db.session import engine

# Register models
from ams.db import models  # noqa: F401

from ams.services.arrivals.api import router as arrivals_router
from ams.services.jobs.api import router as jobs_router
from ams.services.performance.api import router as performance_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Arrival Management System")

app.include_router(arrivals_router)
app.include_router(jobs_router)
app.include_router(performance_router)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.on_event("startup")
async def _startup():
    configure_logging()
    # Dev-friendly schema creation (migrations are available for real upgrades)
    Base.metadata.create_all(bind=engine)

    if config.SCHEDULER_ENABLED:
        from ams.services.jobs.scheduler import run_scheduler_forever

        app.state.scheduler = asyncio.create_task(run_scheduler_forever())
    else:
        logger.info("Scheduler disabled; jobs run only on demand")


@app.on_event("shutdown")
async def _shutdown():
    task = getattr(app.state, "scheduler", None)
    if task is not None:
        task.cancel()
