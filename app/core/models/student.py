"""Student records. Owns student_class_id and subjects; class/subject back-references are derived."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.dialects.postgresql import JSONB

from app.db.session import Base


class Student(Base):
    __tablename__ = "students"
    __table_args__ = (UniqueConstraint("email", name="uq_student_email"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    gender = Column(String(10), nullable=True)  # male, female, other
    dob = Column(Date, nullable=True)
    roll_number = Column(String(50), nullable=True)
    grade = Column(String(20), nullable=True)
    section = Column(String(20), nullable=True)
    parent_contact = Column(String(20), nullable=True)
    parent_name = Column(String(100), nullable=True)
    phone_number = Column(String(20), nullable=True)
    address = Column(String(500), nullable=True)
    student_pan = Column(String(20), nullable=True)
    aadhar_id = Column(String(20), nullable=True)
    mother_name = Column(String(100), nullable=True)
    mother_aadhar = Column(String(20), nullable=True)
    father_name = Column(String(100), nullable=True)
    father_aadhar = Column(String(20), nullable=True)
    whatsapp_number = Column(String(20), nullable=True)
    student_class_id = Column(Uuid, ForeignKey("academic_classes.id", ondelete="RESTRICT"), nullable=False)
    subjects = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list)  # [subject_id, ...]
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
