"""Marking monthly fee payments: single and bulk upserts."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.classes import service as class_service
from app.api.v1.classes.schemas import ClassFeePolicyUpdate
from app.api.v1.fees import ledger, service
from app.api.v1.fees.schemas import BulkFeePaymentResult
from app.core.exceptions import ConflictError, InvalidInputError, NotFoundError

MID_MARCH = datetime(2026, 3, 15, 10, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_mark_single_month_paid(db_session: AsyncSession, make_class, make_student) -> None:
    cls = await make_class(fee=Decimal("500"))
    student = await make_student(cls.id)

    record = await service.mark_payment(db_session, student.id, "March", "paid", now=MID_MARCH)

    assert record.status == "paid"
    assert record.late_fine is False
    assert record.fine_paid is True
    assert record.base_amount == Decimal("500")
    assert record.late_fine_amount == 0
    assert record.total_amount == Decimal("500")
    assert record.is_advance_payment is False


@pytest.mark.asyncio
async def test_base_amount_is_fixed_at_first_write(db_session: AsyncSession, make_class, make_student) -> None:
    cls = await make_class(fee=Decimal("500"))
    student = await make_student(cls.id)
    await service.mark_payment(db_session, student.id, "March", "not paid", now=MID_MARCH)

    await class_service.update_fee_policy(db_session, cls.id, ClassFeePolicyUpdate(fee=Decimal("800")))
    record = await service.mark_payment(db_session, student.id, "March", "paid", now=MID_MARCH)

    assert record.base_amount == Decimal("500")
    assert record.status == "paid"


@pytest.mark.asyncio
async def test_not_paid_leaves_fine_paid_unset(db_session: AsyncSession, make_class, make_student) -> None:
    cls = await make_class()
    student = await make_student(cls.id)

    record = await service.mark_payment(db_session, student.id, "March", "not paid", now=MID_MARCH)

    assert record.status == "not paid"
    assert record.fine_paid is None
    assert record.late_fine is False


@pytest.mark.asyncio
async def test_unset_class_fee_counts_as_zero(db_session: AsyncSession, make_class, make_student) -> None:
    cls = await make_class(fee=None, late_fine_amount=None)
    student = await make_student(cls.id)

    record = await service.mark_payment(db_session, student.id, "March", "paid", now=MID_MARCH)

    assert record.base_amount == 0


@pytest.mark.asyncio
async def test_future_month_is_advance_payment(db_session: AsyncSession, make_class, make_student) -> None:
    cls = await make_class()
    student = await make_student(cls.id)

    december = await service.mark_payment(db_session, student.id, "December", "paid", now=MID_MARCH)
    january = await service.mark_payment(db_session, student.id, "January", "paid", now=MID_MARCH)
    short_label = await service.mark_payment(db_session, student.id, "Nov", "paid", now=MID_MARCH)
    flagged = await service.mark_payment(
        db_session, student.id, "February", "paid", is_advance_payment=True, now=MID_MARCH
    )

    assert december.is_advance_payment is True
    assert january.is_advance_payment is False
    assert short_label.is_advance_payment is True
    assert flagged.is_advance_payment is True


@pytest.mark.asyncio
async def test_bulk_matches_sequential_single_calls(db_session: AsyncSession, make_class, make_student) -> None:
    cls = await make_class(fee=Decimal("750"))
    bulk_student = await make_student(cls.id, name="Bulk Payer")
    single_student = await make_student(cls.id, name="Single Payer")

    result = await service.mark_payment(db_session, bulk_student.id, ["Jan", "Feb"], "paid", now=MID_MARCH)
    for month in ("Jan", "Feb"):
        await service.mark_payment(db_session, single_student.id, month, "paid", now=MID_MARCH)

    assert isinstance(result, BulkFeePaymentResult)
    compared = ("status", "base_amount", "late_fine_amount", "late_fine", "fine_paid", "is_advance_payment")
    bulk_rows = {r.month: r for r in await service.get_fee_history(db_session, bulk_student.id)}
    single_rows = {r.month: r for r in await service.get_fee_history(db_session, single_student.id)}
    assert set(bulk_rows) == set(single_rows) == {"Jan", "Feb"}
    for month in ("Jan", "Feb"):
        for field in compared:
            assert getattr(bulk_rows[month], field) == getattr(single_rows[month], field), (month, field)


@pytest.mark.asyncio
async def test_bulk_sets_fine_paid_even_when_not_paid(db_session: AsyncSession, make_class, make_student) -> None:
    cls = await make_class()
    student = await make_student(cls.id)

    await service.mark_payment(db_session, student.id, ["Jan", "Feb"], "not paid", now=MID_MARCH)

    rows = await service.get_fee_history(db_session, student.id)
    assert [r.status for r in rows] == ["not paid", "not paid"]
    assert all(r.fine_paid is True for r in rows)


@pytest.mark.asyncio
async def test_bulk_reports_inserted_and_updated(db_session: AsyncSession, make_class, make_student) -> None:
    cls = await make_class()
    student = await make_student(cls.id)

    first = await service.mark_payment(db_session, student.id, ["Jan", "Feb"], "paid", now=MID_MARCH)
    second = await service.mark_payment(db_session, student.id, ["Feb", "Mar"], "paid", now=MID_MARCH)

    assert (first.inserted_count, first.updated_count) == (2, 0)
    assert (second.inserted_count, second.updated_count) == (1, 1)
    assert [(i.index, i.month, i.outcome) for i in second.items] == [
        (0, "Feb", "updated"),
        (1, "Mar", "inserted"),
    ]
    assert second.items[0].id == first.items[1].id


@pytest.mark.asyncio
async def test_bulk_does_not_infer_advance_payment(db_session: AsyncSession, make_class, make_student) -> None:
    cls = await make_class()
    student = await make_student(cls.id)

    await service.mark_payment(db_session, student.id, ["December"], "paid", now=MID_MARCH)
    await service.mark_payment(db_session, student.id, ["November"], "paid", is_advance_payment=True, now=MID_MARCH)

    rows = {r.month: r for r in await service.get_fee_history(db_session, student.id)}
    assert rows["December"].is_advance_payment is False
    assert rows["November"].is_advance_payment is True


@pytest.mark.asyncio
async def test_bulk_is_all_or_nothing(db_session: AsyncSession, make_class, make_student, monkeypatch) -> None:
    cls = await make_class()
    student = await make_student(cls.id)
    await service.mark_payment(db_session, student.id, "Feb", "not paid", now=MID_MARCH)

    original_get = ledger.get_fee_payment

    async def racing_get(db, student_id, month, for_update=False):
        # Another writer inserted "Feb" after our read.
        if month == "Feb":
            return None
        return await original_get(db, student_id, month, for_update=for_update)

    monkeypatch.setattr(ledger, "get_fee_payment", racing_get)
    with pytest.raises(ConflictError) as exc_info:
        await service.mark_payment(db_session, student.id, ["Jan", "Feb"], "paid", now=MID_MARCH)
    monkeypatch.undo()

    assert exc_info.value.status_code == 409
    rows = await service.get_fee_history(db_session, student.id)
    assert [(r.month, r.status) for r in rows] == [("Feb", "not paid")]


@pytest.mark.asyncio
@pytest.mark.parametrize("months", [42, [], ["Jan", ""], "  ", None])
async def test_invalid_months_rejected(db_session: AsyncSession, make_class, make_student, months) -> None:
    cls = await make_class()
    student = await make_student(cls.id)

    with pytest.raises(InvalidInputError):
        await service.mark_payment(db_session, student.id, months, "paid")


@pytest.mark.asyncio
async def test_invalid_status_rejected(db_session: AsyncSession, make_class, make_student) -> None:
    cls = await make_class()
    student = await make_student(cls.id)

    with pytest.raises(InvalidInputError):
        await service.mark_payment(db_session, student.id, "March", "partially paid")


@pytest.mark.asyncio
async def test_unknown_student(db_session: AsyncSession) -> None:
    from uuid import uuid4

    with pytest.raises(NotFoundError):
        await service.mark_payment(db_session, uuid4(), "March", "paid")


def test_future_month_detection() -> None:
    assert service.is_future_month("April", MID_MARCH) is True
    assert service.is_future_month("march", MID_MARCH) is False
    assert service.is_future_month("Smarch", MID_MARCH) is False
