"""Academic classes. Model named AcademicClass to avoid Python 'class' keyword."""
import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Numeric, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB

from app.db.session import Base


class AcademicClass(Base):
    """
    Class master holding the monthly fee policy.
    students is a denormalized back-reference set kept in sync with Student.student_class_id.
    """

    __tablename__ = "academic_classes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    class_name = Column(String(50), nullable=False)
    section = Column(String(20), nullable=True)
    fee = Column(Numeric(12, 2), nullable=True)  # unset -> path-specific default
    late_fine_amount = Column(Numeric(12, 2), nullable=True)
    students = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)  # [student_id, ...]
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
