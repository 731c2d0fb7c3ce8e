import uuid
from datetime import datetime
from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from ams.core import clock

def uuid4_str() -> str:
    return str(uuid.uuid4())

class HasId:
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid4_str)

# Row timestamps share the naive warehouse-local clock of the arrival timeline.

class HasCreatedAt:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=clock.now, nullable=False)

class HasUpdatedAt:
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=clock.now, onupdate=clock.now, nullable=False)
