"""Fees service: monthly payment status, late fines and fee reports. All writes run in one transaction."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional, Sequence, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import FeePaymentStatus
from app.core.exceptions import InvalidInputError, InvalidStateError, NotFoundError
from app.core.models import AcademicClass, FeePayment, Student
from app.db.session import atomic

from . import ledger
from .policy import FINE_DEFAULTS, PAYMENT_DEFAULTS, FeePolicy, policy_for_class, resolve_fee_policy
from .schemas import (
    BulkFeePaymentItem,
    BulkFeePaymentResult,
    ClassFeeStatusResponse,
    FeePaymentResponse,
    FeePaymentWithStudent,
    FeeStatusDetails,
    FeeStatusSummary,
    StudentFeeStatusItem,
    StudentRef,
)

logger = logging.getLogger(__name__)


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _fp_to_response(fp: FeePayment) -> FeePaymentResponse:
    base_amount = _to_decimal(fp.base_amount)
    late_fine_amount = _to_decimal(fp.late_fine_amount)
    return FeePaymentResponse(
        id=fp.id,
        student_id=fp.student_id,
        month=fp.month,
        status=fp.status,
        base_amount=base_amount,
        late_fine_amount=late_fine_amount,
        total_amount=base_amount + late_fine_amount,
        late_fine=bool(fp.late_fine),
        fine_paid=fp.fine_paid,
        is_advance_payment=bool(fp.is_advance_payment),
        payment_date=fp.payment_date,
        created_at=fp.created_at,
        updated_at=fp.updated_at,
    )


# --- Month labels ---
def _month_start(month: str, year: int) -> Optional[datetime]:
    """First day of a month label ("March" or "Mar") in the given year; None if unrecognised."""
    for fmt in ("%B %d %Y", "%b %d %Y"):
        try:
            return datetime.strptime(f"{month} 1 {year}", fmt)
        except ValueError:
            continue
    return None


def is_future_month(month: str, now: datetime) -> bool:
    start = _month_start(month, now.year)
    return start is not None and start > now.replace(tzinfo=None)


def _normalize_months(months) -> Union[str, List[str]]:
    if isinstance(months, str):
        month = months.strip()
        if not month:
            raise InvalidInputError("Month is required")
        return month
    if isinstance(months, (list, tuple)):
        if not months:
            raise InvalidInputError("At least one month is required")
        cleaned = []
        for m in months:
            if not isinstance(m, str) or not m.strip():
                raise InvalidInputError("Month labels must be non-empty strings")
            cleaned.append(m.strip())
        return cleaned
    raise InvalidInputError("Months must be a string or an array")


def _normalize_status(status) -> str:
    try:
        return FeePaymentStatus(status).value
    except ValueError:
        raise InvalidInputError("Status must be 'paid' or 'not paid'")


# --- Payment status ---
async def mark_payment(
    db: AsyncSession,
    student_id: UUID,
    months: Union[str, Sequence[str]],
    status,
    is_advance_payment: bool = False,
    now: Optional[datetime] = None,
) -> Union[FeePaymentResponse, BulkFeePaymentResult]:
    """
    Mark one month (string) or several months (list) with a payment status.

    Bulk mode is all-or-nothing across months. base_amount is seeded from the class fee
    (unset fee counts as 0) only when the row is created.
    """
    months = _normalize_months(months)
    status_value = _normalize_status(status)
    now = now or datetime.now(timezone.utc)

    async with atomic(db):
        student = await db.get(Student, student_id)
        if not student:
            raise NotFoundError("Student not found.")
        policy = await resolve_fee_policy(db, student.student_class_id, PAYMENT_DEFAULTS)
        if policy is None:
            raise NotFoundError("Student class not found.")

        if isinstance(months, list):
            result = await _mark_bulk(db, student.id, months, status_value, is_advance_payment, policy, now)
        else:
            record = await _mark_single(db, student.id, months, status_value, is_advance_payment, policy, now)

    if isinstance(months, list):
        logger.info(
            "Bulk fee status '%s' for student %s: %d inserted, %d updated",
            status_value, student_id, result.inserted_count, result.updated_count,
        )
        return result
    await db.refresh(record)
    logger.info("Fee status '%s' for student %s, month %s", status_value, student_id, months)
    return _fp_to_response(record)


async def _mark_single(
    db: AsyncSession,
    student_id: UUID,
    month: str,
    status: str,
    is_advance_payment: bool,
    policy: FeePolicy,
    now: datetime,
) -> FeePayment:
    set_fields = {
        "status": status,
        "payment_date": now,
        "late_fine": False,
    }
    if status == FeePaymentStatus.paid.value:
        set_fields["fine_paid"] = True
    if is_advance_payment or is_future_month(month, now):
        set_fields["is_advance_payment"] = True
    record, _ = await ledger.upsert_fee_payment(
        db, student_id, month, set_fields, set_on_insert={"base_amount": policy.base_fee}
    )
    return record


async def _mark_bulk(
    db: AsyncSession,
    student_id: UUID,
    months: List[str],
    status: str,
    is_advance_payment: bool,
    policy: FeePolicy,
    now: datetime,
) -> BulkFeePaymentResult:
    outcomes = []
    for index, month in enumerate(months):
        # Bulk updates settle any fine regardless of status.
        set_fields = {
            "status": status,
            "payment_date": now,
            "late_fine": False,
            "fine_paid": True,
        }
        if is_advance_payment:
            set_fields["is_advance_payment"] = True
        record, inserted = await ledger.upsert_fee_payment(
            db, student_id, month, set_fields, set_on_insert={"base_amount": policy.base_fee}
        )
        outcomes.append((index, month, record, inserted))

    items = [
        BulkFeePaymentItem(
            index=index,
            month=month,
            id=record.id,
            outcome="inserted" if inserted else "updated",
        )
        for index, month, record, inserted in outcomes
    ]
    inserted_count = sum(1 for item in items if item.outcome == "inserted")
    return BulkFeePaymentResult(
        inserted_count=inserted_count,
        updated_count=len(items) - inserted_count,
        items=items,
    )


# --- Late fine ---
async def impose_late_fine(
    db: AsyncSession,
    student_id: Optional[UUID],
    month: Optional[str],
) -> FeePaymentWithStudent:
    """
    Flag (student, month) as fined, creating an unpaid row if needed.

    The fine is added once per unpaid period: a row that already carries a nonzero
    late_fine_amount is not fined again.
    """
    if not student_id or not month or not month.strip():
        raise InvalidInputError("Student ID and month are required")
    month = month.strip()

    async with atomic(db):
        student = await db.get(Student, student_id)
        school_class = None
        if student and student.student_class_id:
            school_class = await db.get(AcademicClass, student.student_class_id)
        if not student or not school_class:
            raise NotFoundError("Student or associated class not found")
        policy = policy_for_class(school_class, FINE_DEFAULTS)

        existing = await ledger.get_fee_payment(db, student.id, month, for_update=True)
        if existing is not None and existing.status == FeePaymentStatus.paid.value:
            raise InvalidStateError("Cannot impose fine on already paid fee")

        set_fields = {"late_fine": True}
        if existing is None or existing.fine_paid is not False:
            set_fields["fine_paid"] = False
        already_fined = existing is not None and bool(existing.late_fine_amount)
        record, inserted = await ledger.upsert_fee_payment(
            db,
            student.id,
            month,
            set_fields,
            set_on_insert={
                "status": FeePaymentStatus.not_paid.value,
                "base_amount": policy.base_fee,
                "is_advance_payment": False,
            },
            inc={"late_fine_amount": Decimal("0") if already_fined else policy.late_fine_amount},
        )

    await db.refresh(record)
    logger.info(
        "Late fine for student %s, month %s (%s): %s",
        student_id, month, "created" if inserted else "updated", ledger.fee_payment_snapshot(record),
    )
    return FeePaymentWithStudent(
        **_fp_to_response(record).model_dump(),
        student=StudentRef(id=student.id, name=student.name),
    )


# --- Reports ---
async def get_fee_status_by_class(
    db: AsyncSession,
    class_id: UUID,
    month: Optional[str],
) -> ClassFeeStatusResponse:
    """Fee status of every student in a class for one month, with paid/unpaid/late-fee counts."""
    if not month or not month.strip():
        raise InvalidInputError("Month is required")
    month = month.strip()
    if await db.get(AcademicClass, class_id) is None:
        raise NotFoundError("Class not found")

    rows = (
        await db.execute(
            select(Student.id, Student.name)
            .where(Student.student_class_id == class_id)
            .order_by(Student.name)
        )
    ).all()
    payments = await ledger.list_fee_payments_for_month(db, [r.id for r in rows], month)
    payment_map = {p.student_id: p for p in payments}

    items = []
    for student_id, name in rows:
        payment = payment_map.get(student_id)
        details = None
        if payment is not None:
            base_amount = _to_decimal(payment.base_amount)
            late_fine_amount = _to_decimal(payment.late_fine_amount)
            details = FeeStatusDetails(
                base_amount=base_amount,
                late_fine_amount=late_fine_amount,
                total_amount=base_amount + late_fine_amount,
                is_late_fee_applied=late_fine_amount > 0,
            )
        items.append(
            StudentFeeStatusItem(
                student=StudentRef(id=student_id, name=name),
                status=payment.status if payment is not None else FeePaymentStatus.not_paid,
                details=details,
            )
        )

    paid_count = sum(1 for p in payments if p.status == FeePaymentStatus.paid.value)
    summary = FeeStatusSummary(
        total_students=len(rows),
        paid_count=paid_count,
        unpaid_count=len(rows) - paid_count,
        late_fee_count=sum(1 for p in payments if _to_decimal(p.late_fine_amount) > 0),
    )
    return ClassFeeStatusResponse(summary=summary, students=items)


async def get_fee_history(
    db: AsyncSession,
    student_id: UUID,
    month: Optional[str] = None,
) -> List[FeePaymentResponse]:
    if await db.get(Student, student_id) is None:
        raise NotFoundError("Student not found.")
    records = await ledger.list_fee_payments(db, student_id, month=(month or "").strip() or None)
    return [_fp_to_response(r) for r in records]
