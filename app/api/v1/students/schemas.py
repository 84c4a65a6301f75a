from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from app.core.enums import Gender


class StudentCreate(BaseModel):
    name: str = Field(..., max_length=100)
    email: Optional[EmailStr] = None
    gender: Gender
    dob: date
    student_class_id: UUID
    subject_ids: List[UUID] = Field(default_factory=list)
    roll_number: Optional[str] = None
    grade: Optional[str] = None
    section: Optional[str] = None
    parent_contact: Optional[str] = None
    parent_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    student_pan: Optional[str] = None
    aadhar_id: Optional[str] = None
    mother_name: Optional[str] = None
    mother_aadhar: Optional[str] = None
    father_name: Optional[str] = None
    father_aadhar: Optional[str] = None
    whatsapp_number: Optional[str] = None


class StudentUpdate(BaseModel):
    """Scalar fields plus class/subject reassignment. At least one field is required."""

    name: Optional[str] = Field(None, max_length=100)
    student_class_id: Optional[UUID] = None
    section: Optional[str] = None
    grade: Optional[str] = None
    subject_ids: Optional[List[UUID]] = None
    parent_contact: Optional[str] = None
    parent_name: Optional[str] = None


class ClassSummary(BaseModel):
    id: UUID
    class_name: str
    section: Optional[str] = None


class SubjectSummary(BaseModel):
    id: UUID
    name: str
    code: str


class StudentResponse(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None
    gender: Optional[str] = None
    dob: Optional[date] = None
    roll_number: Optional[str] = None
    grade: Optional[str] = None
    section: Optional[str] = None
    parent_contact: Optional[str] = None
    parent_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    student_pan: Optional[str] = None
    aadhar_id: Optional[str] = None
    mother_name: Optional[str] = None
    mother_aadhar: Optional[str] = None
    father_name: Optional[str] = None
    father_aadhar: Optional[str] = None
    whatsapp_number: Optional[str] = None
    student_class: Optional[ClassSummary] = None
    subjects: List[SubjectSummary] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
