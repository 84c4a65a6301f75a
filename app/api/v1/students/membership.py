"""
Class and subject membership.

AcademicClass.students and Subject.students are denormalized back-references of
Student.student_class_id and Student.subjects. Nothing in the database enforces them, so every
change of a student's class or subjects goes through here, inside the caller's transaction
(see app.db.session.atomic).
"""

import logging
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.classes import service as class_service
from app.api.v1.subjects import service as subject_service
from app.core.exceptions import InvalidInputError
from app.core.models import AcademicClass, Student, Subject

logger = logging.getLogger(__name__)


def _ids(values: Optional[Iterable]) -> List[str]:
    return [str(v) for v in (values or [])]


def dedupe_ids(values: Iterable) -> List[str]:
    seen = []
    for v in _ids(values):
        if v not in seen:
            seen.append(v)
    return seen


def _pull(values: Optional[Iterable], member_id: str) -> List[str]:
    return [v for v in _ids(values) if v != member_id]


def _add_to_set(values: Optional[Iterable], member_id: str) -> List[str]:
    ids = _ids(values)
    return ids if member_id in ids else ids + [member_id]


async def load_class(db: AsyncSession, class_id: UUID, for_update: bool = False) -> AcademicClass:
    school_class = await class_service.get_class_by_id(db, class_id, for_update=for_update)
    if school_class is None:
        raise InvalidInputError("Invalid class assigned to student")
    return school_class


async def load_subjects(db: AsyncSession, subject_ids: Sequence, for_update: bool = False) -> List[Subject]:
    wanted = dedupe_ids(subject_ids)
    subjects = await subject_service.get_subjects_by_ids(db, [UUID(s) for s in wanted], for_update=for_update)
    if len(subjects) != len(wanted):
        found = {str(s.id) for s in subjects}
        missing = [s for s in wanted if s not in found]
        raise InvalidInputError(f"Invalid subject(s) assigned to student: {', '.join(missing)}")
    return subjects


async def enroll(db: AsyncSession, student: Student) -> None:
    """Add a newly created student to its class and subject back-references."""
    member_id = str(student.id)
    school_class = await load_class(db, student.student_class_id, for_update=True)
    school_class.students = _add_to_set(school_class.students, member_id)
    for subject in await load_subjects(db, student.subjects, for_update=True):
        subject.students = _add_to_set(subject.students, member_id)
    await db.flush()


async def reassign_class(db: AsyncSession, student: Student, new_class_id: UUID) -> bool:
    """Move the student to new_class_id. Returns False when it is already the current class."""
    if student.student_class_id is not None and str(student.student_class_id) == str(new_class_id):
        return False
    member_id = str(student.id)
    new_class = await load_class(db, new_class_id, for_update=True)
    if student.student_class_id is not None:
        old_class = await class_service.get_class_by_id(db, student.student_class_id, for_update=True)
        if old_class is not None:
            old_class.students = _pull(old_class.students, member_id)
    new_class.students = _add_to_set(new_class.students, member_id)
    old_class_id = student.student_class_id
    student.student_class_id = new_class.id
    await db.flush()
    logger.info("Student %s moved from class %s to %s", member_id, old_class_id, new_class.id)
    return True


async def reassign_subjects(db: AsyncSession, student: Student, new_subject_ids: Sequence) -> None:
    """Replace the student's subjects, pulling from dropped subjects and adding to new ones."""
    member_id = str(student.id)
    new_ids = dedupe_ids(new_subject_ids)
    current = _ids(student.subjects)
    to_add = [s for s in new_ids if s not in current]
    to_remove = [s for s in current if s not in new_ids]

    if to_add:
        for subject in await load_subjects(db, to_add, for_update=True):
            subject.students = _add_to_set(subject.students, member_id)
    if to_remove:
        # Subjects that no longer exist have no back-reference left to clean.
        removed = await subject_service.get_subjects_by_ids(db, [UUID(s) for s in to_remove], for_update=True)
        for subject in removed:
            subject.students = _pull(subject.students, member_id)
    student.subjects = new_ids
    await db.flush()
    if to_add or to_remove:
        logger.info("Student %s subjects: +%d -%d", member_id, len(to_add), len(to_remove))
