from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, JSON, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from ams.db.base import Base
from ams.db.models.common import HasId


class JobRun(Base, HasId):
    """One invocation of a batch job.

    A row in `running` state doubles as the advisory overlap lock for its job name.
    """

    __tablename__ = "job_run"

    job_name: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    params: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="running", nullable=False, index=True)
    # running|success|partial|failed|skipped
    counters: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


Index("ix_job_run_name_status", JobRun.job_name, JobRun.status)

# At most one running row per job name.
Index(
    "uq_job_run_running",
    JobRun.job_name,
    unique=True,
    sqlite_where=text("status = 'running'"),
    postgresql_where=text("status = 'running'"),
)
