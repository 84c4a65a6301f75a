"""Fee policy lookup: a student's monthly fee and late fine, resolved from their class."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import AcademicClass


@dataclass(frozen=True)
class FeePolicy:
    base_fee: Decimal
    late_fine_amount: Decimal


# Marking a payment treats an unset class fee as 0.
PAYMENT_DEFAULTS = FeePolicy(base_fee=Decimal("0"), late_fine_amount=Decimal("0"))
# Imposing a fine falls back to 1000 / 500 when the class leaves them unset.
FINE_DEFAULTS = FeePolicy(base_fee=Decimal("1000"), late_fine_amount=Decimal("500"))


def policy_for_class(school_class: AcademicClass, defaults: FeePolicy) -> FeePolicy:
    fee = school_class.fee
    late_fine = school_class.late_fine_amount
    return FeePolicy(
        base_fee=defaults.base_fee if fee is None else Decimal(str(fee)),
        late_fine_amount=defaults.late_fine_amount if late_fine is None else Decimal(str(late_fine)),
    )


async def resolve_fee_policy(
    db: AsyncSession,
    class_id: Optional[UUID],
    defaults: FeePolicy,
) -> Optional[FeePolicy]:
    """Return the class fee policy, or None when the class does not exist."""
    if class_id is None:
        return None
    school_class = await db.get(AcademicClass, class_id)
    if school_class is None:
        return None
    return policy_for_class(school_class, defaults)
