import re
from typing import Optional

from fastapi import status
from sqlalchemy.exc import IntegrityError

from app.core.enums import ErrorKind

# SQLite: "UNIQUE constraint failed: fee_payments.student_id, fee_payments.month"
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: \w+\.(\w+)")
# PostgreSQL: "DETAIL:  Key (student_id, month)=(...) already exists."
_POSTGRES_KEY = re.compile(r"Key \((\w+)")
_POSTGRES_UNIQUE_VIOLATION = "23505"


class ServiceError(Exception):
    """Base exception for service layer errors."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_dict(self) -> dict:
        return {"success": False, "kind": self.kind.value, "message": self.message}


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class InvalidInputError(ServiceError):
    kind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class InvalidStateError(ServiceError):
    kind = ErrorKind.INVALID_STATE

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class ConflictError(ServiceError):
    """Uniqueness violation. `field` names the offending column."""

    kind = ErrorKind.CONFLICT

    def __init__(self, field: Optional[str] = None, message: Optional[str] = None) -> None:
        if message is None:
            message = (
                f"Duplicate key error: a record with this {field} already exists"
                if field
                else "Duplicate key error"
            )
        super().__init__(message, status.HTTP_409_CONFLICT)
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["field"] = self.field
        return data

    @classmethod
    def from_integrity_error(cls, exc: IntegrityError) -> Optional["ConflictError"]:
        """ConflictError for a unique-key violation; None for foreign key, NOT NULL or CHECK failures."""
        orig = exc.orig
        text = str(orig) if orig is not None else str(exc)
        sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
        if sqlstate is not None:
            if sqlstate != _POSTGRES_UNIQUE_VIOLATION:
                return None
            match = _POSTGRES_KEY.search(text)
            return cls(match.group(1) if match else None)
        match = _SQLITE_UNIQUE.search(text)
        if match:
            return cls(match.group(1))
        return None


class InternalError(ServiceError):
    kind = ErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)
