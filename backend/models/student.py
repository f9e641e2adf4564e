"""Student model definitions."""

import uuid

from sqlalchemy import Column, Date, DateTime, ForeignKey, String

from backend.database import Base
from backend.models.user import _utcnow


class Student(Base):
    """Represents a student record owned by exactly one user."""
    __tablename__ = "students"

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    user_id = Column(String(32), ForeignKey("users.id"), nullable=False, index=True)
    full_name = Column(String, nullable=False)
    student_id = Column(String, nullable=False)  # free text, not unique
    email = Column(String, nullable=False)
    grade = Column(String, nullable=False, default="")
    enrollment_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)
