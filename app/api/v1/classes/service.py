import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidInputError
from app.core.models import AcademicClass
from app.db.session import atomic

from .schemas import ClassCreate, ClassFeePolicyUpdate, ClassResponse

logger = logging.getLogger(__name__)


def _to_uuid(val):
    if val is None:
        return None
    return val if isinstance(val, UUID) else UUID(str(val))


def _class_to_response(c: AcademicClass) -> ClassResponse:
    return ClassResponse(
        id=_to_uuid(c.id),
        class_name=c.class_name,
        section=c.section,
        fee=c.fee,
        late_fine_amount=c.late_fine_amount,
        students=[_to_uuid(s) for s in (c.students or [])],
        created_at=c.created_at,
        updated_at=c.updated_at,
    )


async def create_class(
    db: AsyncSession,
    payload: ClassCreate,
) -> ClassResponse:
    name = payload.class_name.strip()
    if not name:
        raise InvalidInputError("Class name is required")
    async with atomic(db):
        obj = AcademicClass(
            class_name=name,
            section=(payload.section or "").strip() or None,
            fee=payload.fee,
            late_fine_amount=payload.late_fine_amount,
            students=[],
        )
        db.add(obj)
        await db.flush()
    await db.refresh(obj)
    logger.info("Created class %s (%s)", obj.id, obj.class_name)
    return _class_to_response(obj)


async def get_class(
    db: AsyncSession,
    class_id: UUID,
) -> Optional[ClassResponse]:
    obj = await get_class_by_id(db, class_id)
    return _class_to_response(obj) if obj else None


async def update_fee_policy(
    db: AsyncSession,
    class_id: UUID,
    payload: ClassFeePolicyUpdate,
) -> Optional[ClassResponse]:
    if payload.fee is None and payload.late_fine_amount is None:
        raise InvalidInputError("No fields to update")
    async with atomic(db):
        obj = await get_class_by_id(db, class_id, for_update=True)
        if not obj:
            return None
        if payload.fee is not None:
            obj.fee = payload.fee
        if payload.late_fine_amount is not None:
            obj.late_fine_amount = payload.late_fine_amount
    await db.refresh(obj)
    return _class_to_response(obj)


async def get_class_by_id(
    db: AsyncSession,
    class_id: UUID,
    for_update: bool = False,
) -> Optional[AcademicClass]:
    stmt = select(AcademicClass).where(AcademicClass.id == class_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return result.scalar_one_or_none()
