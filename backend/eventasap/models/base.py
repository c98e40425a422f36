from datetime import datetime, timezone
from sqlalchemy import Column, DateTime
from ..database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp; every DateTime column in the schema is UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BaseModel(Base):
    """Abstract parent for all tables: audit timestamps in UTC."""

    __abstract__ = True

    created_at = Column(DateTime, default=utcnow)
    # Bulk conditional updates (status CAS) also bump this via onupdate
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
