"""Fee payment ledger: one row per student per month label. Never deleted."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, UniqueConstraint, Uuid

from app.db.session import Base


class FeePayment(Base):
    """
    Payment and fine state for (student, month).
    base_amount is seeded from the class fee on insert and never overwritten.
    """

    __tablename__ = "fee_payments"
    __table_args__ = (
        UniqueConstraint("student_id", "month", name="uq_fee_payment_student_month"),
        CheckConstraint("status IN ('paid','not paid')", name="chk_fee_payment_status"),
        CheckConstraint("late_fine_amount >= 0", name="chk_fee_payment_late_fine_amount"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="RESTRICT"), nullable=False, index=True)
    month = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="not paid")
    base_amount = Column(Numeric(12, 2), nullable=False, default=0)
    late_fine_amount = Column(Numeric(12, 2), nullable=False, default=0)
    late_fine = Column(Boolean, nullable=False, default=False)
    fine_paid = Column(Boolean, nullable=True)  # None until a workflow writes it
    is_advance_payment = Column(Boolean, nullable=False, default=False)
    payment_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
