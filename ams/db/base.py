from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for tables owned by this service (migrated by alembic)."""


class ExternalBase(DeclarativeBase):
    """Declarative base for tables owned by the SCM and visitor systems.

    Never passed to alembic or `create_all` in production; read-only mappings.
    """
