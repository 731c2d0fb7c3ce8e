from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ams import config
from ams.core import clock
from ams.core.errors import JobAlreadyRunningError, UnknownJobError
from ams.db.models.jobs import JobRun
from ams.services._crud import commit_refresh
from ams.services.arrivals.compliance import update_delivery_compliance
from ams.services.arrivals.status import update_arrival_statuses
from ams.services.performance.service import calculate_performance, resolve_period
from ams.services.visitor.sync import sync_security_checkin, sync_security_checkout

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


@dataclass
class JobContext:
    db: Session
    scm_db: Session
    visitor_db: Session


@dataclass(frozen=True)
class JobSpec:
    name: str
    description: str
    func: Callable[..., dict]
    params: tuple[str, ...] = field(default_factory=tuple)
    # checks the parameters before the lock is taken; raises ValueError on bad input
    validate: Callable[..., object] | None = None


@dataclass
class JobSessions:
    internal: SessionFactory
    scm: SessionFactory
    visitor: SessionFactory


def default_sessions() -> JobSessions:
    from ams.db.session import ScmSessionLocal, SessionLocal, VisitorSessionLocal
    return JobSessions(internal=SessionLocal, scm=ScmSessionLocal, visitor=VisitorSessionLocal)


def _day(day: date | str | None) -> date:
    if day is None:
        return clock.today()
    if isinstance(day, str):
        return date.fromisoformat(day)
    return day


def _check_day(date=None) -> None:
    _day(date)


def _check_period(month=None, year=None) -> None:
    resolve_period(month, year)


def _arrival_status(ctx: JobContext, date=None) -> dict:
    return update_arrival_statuses(ctx.db, _day(date))


def _delivery_compliance(ctx: JobContext, date=None) -> dict:
    return update_delivery_compliance(ctx.db, _day(date))


def _visitor_checkin(ctx: JobContext, date=None) -> dict:
    return sync_security_checkin(ctx.db, ctx.visitor_db, _day(date))


def _visitor_checkout(ctx: JobContext, date=None) -> dict:
    return sync_security_checkout(ctx.db, ctx.visitor_db, _day(date))


def _delivery_performance(ctx: JobContext, month=None, year=None) -> dict:
    return calculate_performance(ctx.db, ctx.scm_db, month=month, year=year)


def _cleanup(ctx: JobContext, keep_days=30) -> dict:
    return {"deleted": cleanup_job_runs(ctx.db, keep_days=int(keep_days))}


JOBS: dict[str, JobSpec] = {spec.name: spec for spec in (
    JobSpec("update-arrival-status", "Classify arrivals as on_time/delay/advance against their schedule", _arrival_status, ("date",), _check_day),
    JobSpec("update-delivery-compliance", "End-of-day delivery compliance and no-show catch-up", _delivery_compliance, ("date",), _check_day),
    JobSpec("sync-visitor-checkin", "Copy security check-in times from the visitor log", _visitor_checkin, ("date",), _check_day),
    JobSpec("sync-visitor-checkout", "Copy security checkout times from the visitor log", _visitor_checkout, ("date",), _check_day),
    JobSpec("calculate-delivery-performance", "Monthly supplier scorecards and ranking", _delivery_performance, ("month", "year"), _check_period),
    JobSpec("cleanup-job-runs", "Prune old job run history", _cleanup, ("keep_days",)),
)}


def get_job(name: str) -> JobSpec:
    spec = JOBS.get(name)
    if spec is None:
        raise UnknownJobError(f"Unknown job '{name}'")
    return spec


def _json_params(params: dict) -> dict:
    return {k: (v.isoformat() if isinstance(v, date) else v) for k, v in params.items() if v is not None}


def acquire(db: Session, job_name: str, params: dict) -> JobRun:
    """Claim the lock for `job_name` by inserting a running JobRun.

    Running rows older than the lock expiry are treated as abandoned and closed
    as failed. The partial unique index on running rows settles two callers
    racing past the check: the loser's insert fails and it is refused.
    """
    now = clock.now()
    cutoff = now - timedelta(minutes=config.JOB_LOCK_MINUTES)
    running = (db.query(JobRun)
               .filter(JobRun.job_name == job_name, JobRun.status == "running")
               .first())
    if running:
        if running.started_at >= cutoff:
            raise JobAlreadyRunningError(job_name, running.id)
        logger.warning("Job %s run %s exceeded the lock expiry; marking it failed", job_name, running.id)
        running.status = "failed"
        running.error_message = "Abandoned: lock expired"
        running.completed_at = now
        db.commit()
    try:
        return commit_refresh(db, JobRun(job_name=job_name, params=params, status="running",
                                         counters={}, started_at=now))
    except IntegrityError:
        db.rollback()
        holder = (db.query(JobRun.id)
                  .filter(JobRun.job_name == job_name, JobRun.status == "running")
                  .scalar())
        raise JobAlreadyRunningError(job_name, holder)


def _finish(db: Session, run: JobRun, status: str, counters: dict | None = None, error: str | None = None) -> JobRun:
    run.status = status
    run.counters = counters or {}
    run.error_message = error
    run.completed_at = clock.now()
    db.commit()
    db.refresh(run)
    return run


def run_job(name: str, sessions: JobSessions | None = None, **params) -> JobRun:
    """Execute one job with the overlap guard and record the outcome.

    A concurrent run of the same job yields a `skipped` JobRun. Per-record
    failures inside the job make it `partial`; an exception escaping the job
    marks it `failed` and is re-raised.
    """
    spec = get_job(name)
    sessions = sessions or default_sessions()
    unknown = set(params) - set(spec.params)
    if unknown:
        raise ValueError(f"Job '{name}' does not accept {sorted(unknown)}")
    if spec.validate is not None:
        spec.validate(**params)
    stored = _json_params(params)

    with sessions.internal() as db:
        try:
            run = acquire(db, name, stored)
        except JobAlreadyRunningError as e:
            logger.warning("%s; skipping this invocation", e)
            now = clock.now()
            return commit_refresh(db, JobRun(job_name=name, params=stored, status="skipped", counters={},
                                             error_message=str(e), started_at=now, completed_at=now))

        logger.info("Job %s started (run %s, params %s)", name, run.id, stored)
        with sessions.scm() as scm_db, sessions.visitor() as visitor_db:
            try:
                counters = spec.func(JobContext(db, scm_db, visitor_db), **params)
            except Exception as e:
                db.rollback()
                logger.exception("Job %s failed", name)
                _finish(db, run, "failed", error=str(e))
                raise

        status = "partial" if counters.get("errors") else "success"
        run = _finish(db, run, status, counters)
        logger.info("Job %s finished with %s: %s", name, status, counters)
        return run


def cleanup_job_runs(db: Session, keep_days: int = 30) -> int:
    cutoff = clock.now() - timedelta(days=keep_days)
    deleted = (db.query(JobRun)
               .filter(JobRun.started_at < cutoff, JobRun.status != "running")
               .delete(synchronize_session=False))
    db.commit()
    return deleted


def list_runs(db: Session, job_name: str | None = None, limit: int = 50) -> list[JobRun]:
    q = db.query(JobRun)
    if job_name:
        q = q.filter(JobRun.job_name == job_name)
    return q.order_by(JobRun.started_at.desc()).limit(limit).all()
