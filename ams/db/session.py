from __future__ import annotations
from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from ams import config

engine = create_engine(
    config.DATABASE_URL,
    future=True,
    pool_pre_ping=True,
)

# The external systems live in their own databases; we only ever read from them.
scm_engine = create_engine(config.SCM_DATABASE_URL, future=True, pool_pre_ping=True)
visitor_engine = create_engine(config.VISITOR_DATABASE_URL, future=True, pool_pre_ping=True)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
ScmSessionLocal = sessionmaker(bind=scm_engine, autoflush=False, autocommit=False, future=True)
VisitorSessionLocal = sessionmaker(bind=visitor_engine, autoflush=False, autocommit=False, future=True)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_scm_db() -> Generator[Session, None, None]:
    db = ScmSessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_visitor_db() -> Generator[Session, None, None]:
    db = VisitorSessionLocal()
    try:
        yield db
    finally:
        db.close()
