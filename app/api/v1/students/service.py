import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.subjects import service as subject_service
from app.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from app.core.models import AcademicClass, Student
from app.db.session import atomic

from . import membership
from .schemas import ClassSummary, StudentCreate, StudentResponse, StudentUpdate, SubjectSummary

logger = logging.getLogger(__name__)

_SCALAR_UPDATE_FIELDS = ("name", "section", "grade", "parent_contact", "parent_name")


async def _check_duplicate_email(db: AsyncSession, email: str, exclude_student_id: Optional[UUID] = None) -> bool:
    stmt = select(Student.id).where(Student.email == email)
    if exclude_student_id is not None:
        stmt = stmt.where(Student.id != exclude_student_id)
    return (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None


async def _student_to_response(db: AsyncSession, student: Student) -> StudentResponse:
    school_class = await db.get(AcademicClass, student.student_class_id) if student.student_class_id else None
    subject_ids = [UUID(str(s)) for s in (student.subjects or [])]
    subjects = {s.id: s for s in await subject_service.get_subjects_by_ids(db, subject_ids)}
    return StudentResponse(
        id=student.id,
        name=student.name,
        email=student.email,
        gender=student.gender,
        dob=student.dob,
        roll_number=student.roll_number,
        grade=student.grade,
        section=student.section,
        parent_contact=student.parent_contact,
        parent_name=student.parent_name,
        phone_number=student.phone_number,
        address=student.address,
        student_pan=student.student_pan,
        aadhar_id=student.aadhar_id,
        mother_name=student.mother_name,
        mother_aadhar=student.mother_aadhar,
        father_name=student.father_name,
        father_aadhar=student.father_aadhar,
        whatsapp_number=student.whatsapp_number,
        student_class=(
            ClassSummary(id=school_class.id, class_name=school_class.class_name, section=school_class.section)
            if school_class
            else None
        ),
        subjects=[
            SubjectSummary(id=subjects[sid].id, name=subjects[sid].name, code=subjects[sid].code)
            for sid in subject_ids
            if sid in subjects
        ],
        created_at=student.created_at,
        updated_at=student.updated_at,
    )


async def register_student(
    db: AsyncSession,
    payload: StudentCreate,
) -> StudentResponse:
    """Create a student and add it to its class (and subjects) in one transaction."""
    email = str(payload.email).lower() if payload.email else None

    async with atomic(db):
        if email and await _check_duplicate_email(db, email):
            raise ConflictError("email", "Duplicate key error: A student with this email already exists")
        await membership.load_class(db, payload.student_class_id)
        await membership.load_subjects(db, payload.subject_ids)

        student = Student(
            name=payload.name.strip(),
            email=email,
            gender=payload.gender.value,
            dob=payload.dob,
            student_class_id=payload.student_class_id,
            subjects=membership.dedupe_ids(payload.subject_ids),
            roll_number=payload.roll_number,
            grade=payload.grade,
            section=payload.section,
            parent_contact=payload.parent_contact,
            parent_name=payload.parent_name,
            phone_number=payload.phone_number,
            address=payload.address,
            student_pan=payload.student_pan,
            aadhar_id=payload.aadhar_id,
            mother_name=payload.mother_name,
            mother_aadhar=payload.mother_aadhar,
            father_name=payload.father_name,
            father_aadhar=payload.father_aadhar,
            whatsapp_number=payload.whatsapp_number,
        )
        db.add(student)
        await db.flush()
        await membership.enroll(db, student)

    await db.refresh(student)
    logger.info("Registered student %s in class %s", student.id, student.student_class_id)
    return await _student_to_response(db, student)


async def get_student(db: AsyncSession, student_id: UUID) -> Optional[StudentResponse]:
    student = await db.get(Student, student_id)
    return await _student_to_response(db, student) if student else None


async def list_students_by_class(db: AsyncSession, class_id: UUID) -> List[StudentResponse]:
    result = await db.execute(
        select(Student).where(Student.student_class_id == class_id).order_by(Student.name)
    )
    students = result.scalars().all()
    if not students:
        raise NotFoundError(f"No students found for class with id {class_id}")
    return [await _student_to_response(db, s) for s in students]


async def update_student(
    db: AsyncSession,
    student_id: UUID,
    payload: StudentUpdate,
) -> StudentResponse:
    """
    Patch scalar fields and reassign class/subjects atomically.
    Class and subject back-references are updated in the same transaction as the student row.
    """
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        raise InvalidInputError("No fields to update")
    if payload.name is not None and not payload.name.strip():
        raise InvalidInputError("Student name cannot be empty")

    async with atomic(db):
        student = await db.get(Student, student_id, with_for_update=True)
        if not student:
            raise NotFoundError("Student not found.")
        if payload.student_class_id is not None:
            await membership.load_class(db, payload.student_class_id)
        if payload.subject_ids is not None:
            await membership.load_subjects(db, payload.subject_ids)

        if payload.student_class_id is not None:
            await membership.reassign_class(db, student, payload.student_class_id)
        if payload.subject_ids is not None:
            await membership.reassign_subjects(db, student, payload.subject_ids)
        for field in _SCALAR_UPDATE_FIELDS:
            value = getattr(payload, field)
            if value is not None:
                setattr(student, field, value.strip() if field == "name" else value)

    await db.refresh(student)
    logger.info("Updated student %s: %s", student_id, ", ".join(sorted(changes)))
    return await _student_to_response(db, student)
