"""Fee ledger store: reads and upserts of FeePayment rows keyed by (student, month)."""

from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import FeePaymentStatus
from app.core.models import FeePayment


async def get_fee_payment(
    db: AsyncSession,
    student_id: UUID,
    month: str,
    for_update: bool = False,
) -> Optional[FeePayment]:
    stmt = select(FeePayment).where(
        FeePayment.student_id == student_id,
        FeePayment.month == month,
    )
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_fee_payments(
    db: AsyncSession,
    student_id: UUID,
    month: Optional[str] = None,
) -> List[FeePayment]:
    stmt = select(FeePayment).where(FeePayment.student_id == student_id)
    if month:
        stmt = stmt.where(FeePayment.month == month)
    stmt = stmt.order_by(FeePayment.created_at)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_fee_payments_for_month(
    db: AsyncSession,
    student_ids: Sequence[UUID],
    month: str,
) -> List[FeePayment]:
    if not student_ids:
        return []
    result = await db.execute(
        select(FeePayment).where(
            FeePayment.student_id.in_(list(student_ids)),
            FeePayment.month == month,
        )
    )
    return list(result.scalars().all())


def _new_fee_payment(student_id: UUID, month: str) -> FeePayment:
    # Column defaults only apply at flush; spell them out so the merge below sees real values.
    return FeePayment(
        student_id=student_id,
        month=month,
        status=FeePaymentStatus.not_paid.value,
        base_amount=Decimal("0"),
        late_fine_amount=Decimal("0"),
        late_fine=False,
        fine_paid=None,
        is_advance_payment=False,
    )


async def upsert_fee_payment(
    db: AsyncSession,
    student_id: UUID,
    month: str,
    set_fields: Mapping[str, Any],
    set_on_insert: Optional[Mapping[str, Any]] = None,
    inc: Optional[Mapping[str, Decimal]] = None,
) -> Tuple[FeePayment, bool]:
    """
    Insert-or-update the (student, month) row.

    set_on_insert is applied only when the row is created; set_fields always; inc adds to the
    current value (starting from 0 on insert). Returns (row, inserted). A concurrent insert of the
    same key fails at flush with IntegrityError.
    """
    record = await get_fee_payment(db, student_id, month, for_update=True)
    inserted = record is None
    if inserted:
        record = _new_fee_payment(student_id, month)
        for key, value in (set_on_insert or {}).items():
            setattr(record, key, value)
        db.add(record)
    for key, value in set_fields.items():
        setattr(record, key, value)
    for key, amount in (inc or {}).items():
        current = getattr(record, key) or Decimal("0")
        setattr(record, key, Decimal(str(current)) + amount)
    await db.flush()
    return record, inserted


def fee_payment_snapshot(record: FeePayment) -> Dict[str, Any]:
    return {
        "status": record.status,
        "base_amount": str(record.base_amount),
        "late_fine_amount": str(record.late_fine_amount),
        "late_fine": record.late_fine,
        "fine_paid": record.fine_paid,
    }
