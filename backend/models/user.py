"""User model definitions."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String

from backend.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Represents an account that owns a student roster."""
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)  # stored lower-cased
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)
