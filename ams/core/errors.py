from __future__ import annotations


class DuplicateArrivalError(ValueError):
    """The store already holds an arrival for this DN / PO combination."""


class ArrivalNotFoundError(ValueError):
    pass


class InvalidPeriodError(ValueError):
    pass


class JobAlreadyRunningError(RuntimeError):
    """Raised by the overlap guard when the same job type is still running."""

    def __init__(self, job_name: str, run_id: str | None = None):
        super().__init__(f"Job '{job_name}' is already running (run {run_id})")
        self.job_name = job_name
        self.run_id = run_id


class UnknownJobError(ValueError):
    pass
