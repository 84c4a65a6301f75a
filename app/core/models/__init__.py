from app.core.models.class_model import AcademicClass
from app.core.models.subject import Subject
from app.core.models.student import Student
from app.core.models.fee_payment import FeePayment

__all__ = [
    "AcademicClass",
    "Subject",
    "Student",
    "FeePayment",
]
