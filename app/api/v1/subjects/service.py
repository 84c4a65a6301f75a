from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, InvalidInputError
from app.core.models import Subject
from app.db.session import atomic

from .schemas import SubjectCreate, SubjectResponse


def _to_response(s: Subject) -> SubjectResponse:
    return SubjectResponse(
        id=s.id,
        name=s.name,
        code=s.code,
        students=[UUID(str(sid)) for sid in (s.students or [])],
        created_at=s.created_at,
    )


async def create_subject(
    db: AsyncSession,
    payload: SubjectCreate,
) -> SubjectResponse:
    code = payload.code.strip().upper()
    name = payload.name.strip()
    if not code or not name:
        raise InvalidInputError("Subject name and code are required")
    existing = (await db.execute(select(Subject.id).where(Subject.code == code))).scalar_one_or_none()
    if existing:
        raise ConflictError("code", f"Subject code '{code}' already exists")
    async with atomic(db):
        obj = Subject(name=name, code=code, students=[])
        db.add(obj)
        await db.flush()
    await db.refresh(obj)
    return _to_response(obj)


async def get_subject(db: AsyncSession, subject_id: UUID) -> Optional[SubjectResponse]:
    obj = await db.get(Subject, subject_id)
    return _to_response(obj) if obj else None


async def get_subjects_by_ids(
    db: AsyncSession,
    subject_ids: Sequence[UUID],
    for_update: bool = False,
) -> List[Subject]:
    """Load subjects by id; missing ids are simply absent from the result."""
    if not subject_ids:
        return []
    stmt = select(Subject).where(Subject.id.in_(list(subject_ids)))
    if for_update:
        stmt = stmt.with_for_update()
    result = await db.execute(stmt)
    return list(result.scalars().all())
