from __future__ import annotations
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
import datetime as dt

from ams.core.errors import UnknownJobError
from ams.db.models.jobs import JobRun
from ams.db.session import get_db
from ams.services.jobs.runner import JOBS, JobSessions, default_sessions, list_runs, run_job

router = APIRouter(prefix="/jobs", tags=["jobs"])


class JobRunIn(BaseModel):
    date: dt.date | None = None
    month: int | None = Field(default=None, ge=1, le=12)
    year: int | None = Field(default=None, ge=2000, le=2100)


def get_job_sessions() -> JobSessions:
    return default_sessions()


def _run_out(r: JobRun) -> dict:
    return {
        "id": r.id,
        "job_name": r.job_name,
        "status": r.status,
        "params": r.params,
        "counters": r.counters,
        "error_message": r.error_message,
        "started_at": r.started_at.isoformat() if r.started_at else None,
        "completed_at": r.completed_at.isoformat() if r.completed_at else None,
    }


@router.get("")
def list_jobs():
    return [{"name": s.name, "description": s.description, "params": list(s.params)} for s in JOBS.values()]


@router.post("/{name}/run")
def trigger_job(name: str, payload: JobRunIn | None = None, sessions: JobSessions = Depends(get_job_sessions)):
    if name not in JOBS:
        raise HTTPException(404, f"Unknown job '{name}'")
    accepted = set(JOBS[name].params)
    params = {k: v for k, v in (payload or JobRunIn()).model_dump().items() if v is not None and k in accepted}
    try:
        run = run_job(name, sessions, **params)
    except UnknownJobError as e:
        raise HTTPException(404, str(e))
    except ValueError as e:
        raise HTTPException(400, str(e))
    except Exception as e:
        raise HTTPException(500, f"Job '{name}' failed: {e}")
    if run.status == "skipped":
        raise HTTPException(409, run.error_message or "Job already running")
    return _run_out(run)


@router.get("/runs")
def job_runs(job_name: str | None = None, limit: int = 50, db: Session = Depends(get_db)):
    return [_run_out(r) for r in list_runs(db, job_name=job_name, limit=limit)]
