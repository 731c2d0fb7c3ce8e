import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SCM_DATABASE_URL"] = "sqlite://"
os.environ["VISITOR_DATABASE_URL"] = "sqlite://"
os.environ["AMS_SCHEDULER_ENABLED"] = "0"

from datetime import date, time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ams.db.base import Base, ExternalBase
from ams.db import models  # noqa: F401
from ams.db import external  # noqa: F401
from ams.db.models.arrival import ArrivalKind, ArrivalSchedule, ArrivalTransaction
from ams.services.jobs.runner import JobSessions


def _memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )


@pytest.fixture
def session_factories():
    internal = _memory_engine()
    scm = _memory_engine()
    visitor = _memory_engine()
    Base.metadata.create_all(internal)
    ExternalBase.metadata.create_all(scm)
    ExternalBase.metadata.create_all(visitor)
    factories = JobSessions(
        internal=sessionmaker(bind=internal, autoflush=False, future=True),
        scm=sessionmaker(bind=scm, autoflush=False, future=True),
        visitor=sessionmaker(bind=visitor, autoflush=False, future=True),
    )
    yield factories
    internal.dispose()
    scm.dispose()
    visitor.dispose()


@pytest.fixture
def db(session_factories):
    with session_factories.internal() as session:
        yield session


@pytest.fixture
def scm_db(session_factories):
    with session_factories.scm() as session:
        yield session


@pytest.fixture
def visitor_db(session_factories):
    with session_factories.visitor() as session:
        yield session


@pytest.fixture
def make_schedule(db):
    def _make(bp_code="SUP01", kind=ArrivalKind.REGULAR, **fields):
        schedule = ArrivalSchedule(bp_code=bp_code, kind=kind, **fields)
        db.add(schedule)
        db.commit()
        return schedule
    return _make


@pytest.fixture
def make_arrival(db):
    counter = {"n": 0}

    def _make(**fields):
        counter["n"] += 1
        fields.setdefault("dn_number", f"DN{counter['n']:04d}")
        fields.setdefault("po_number", f"PO{counter['n']:04d}")
        fields.setdefault("kind", ArrivalKind.REGULAR)
        fields.setdefault("bp_code", "SUP01")
        fields.setdefault("plan_delivery_date", date(2025, 1, 6))
        fields.setdefault("plan_delivery_time", time(8, 0))
        arrival = ArrivalTransaction(**fields)
        db.add(arrival)
        db.commit()
        return arrival
    return _make
