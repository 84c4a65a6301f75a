"""Subjects (e.g. Math, Science). students mirrors Student.subjects."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String, UniqueConstraint, Uuid
from sqlalchemy.dialects.postgresql import JSONB

from app.db.session import Base


class Subject(Base):
    __tablename__ = "subjects"
    __table_args__ = (UniqueConstraint("code", name="uq_subject_code"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=False)
    students = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
