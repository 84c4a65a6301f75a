"""Fees schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import FeePaymentStatus


class StudentRef(BaseModel):
    id: UUID
    name: str


# --- Payment status ---
class MarkFeePaymentRequest(BaseModel):
    student_id: UUID
    months: Union[str, List[str]] = Field(..., description="One month label, or a list for bulk update")
    status: FeePaymentStatus
    is_advance_payment: bool = False


class FeePaymentResponse(BaseModel):
    id: UUID
    student_id: UUID
    month: str
    status: FeePaymentStatus
    base_amount: Decimal
    late_fine_amount: Decimal
    total_amount: Decimal
    late_fine: bool
    fine_paid: Optional[bool] = None
    is_advance_payment: bool
    payment_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class FeePaymentWithStudent(FeePaymentResponse):
    student: StudentRef


class BulkFeePaymentItem(BaseModel):
    index: int
    month: str
    id: UUID
    outcome: Literal["inserted", "updated"]


class BulkFeePaymentResult(BaseModel):
    """Per-month outcome of a bulk payment status update."""

    inserted_count: int
    updated_count: int
    items: List[BulkFeePaymentItem]


# --- Late fine ---
class ImposeLateFineRequest(BaseModel):
    student_id: Optional[UUID] = None
    month: Optional[str] = None


# --- Reports ---
class FeeStatusDetails(BaseModel):
    base_amount: Decimal
    late_fine_amount: Decimal
    total_amount: Decimal
    is_late_fee_applied: bool


class StudentFeeStatusItem(BaseModel):
    student: StudentRef
    status: FeePaymentStatus
    details: Optional[FeeStatusDetails] = None


class FeeStatusSummary(BaseModel):
    total_students: int
    paid_count: int
    unpaid_count: int
    late_fee_count: int


class ClassFeeStatusResponse(BaseModel):
    summary: FeeStatusSummary
    students: List[StudentFeeStatusItem]
