from enum import Enum


class FeePaymentStatus(str, Enum):
    paid = "paid"
    not_paid = "not paid"


class Gender(str, Enum):
    male = "male"
    female = "female"
    other = "other"


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    INVALID_STATE = "invalid_state"
    CONFLICT = "conflict"
    INTERNAL = "internal"
