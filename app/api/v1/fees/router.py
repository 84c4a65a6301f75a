"""Fees router: payment status, late fine, class fee status, student payment history."""

from typing import List, Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    BulkFeePaymentResult,
    ClassFeeStatusResponse,
    FeePaymentResponse,
    FeePaymentWithStudent,
    ImposeLateFineRequest,
    MarkFeePaymentRequest,
)
from . import service

router = APIRouter(prefix="/api/v1/fees", tags=["fees"])


# --- Payment status ---
@router.post(
    "/payment-status",
    response_model=Union[BulkFeePaymentResult, FeePaymentResponse],
)
async def mark_fee_payment_status(
    payload: MarkFeePaymentRequest,
    db: AsyncSession = Depends(get_db),
) -> Union[BulkFeePaymentResult, FeePaymentResponse]:
    """Mark a month (string) or several months (list) as paid / not paid for a student."""
    try:
        return await service.mark_payment(
            db,
            payload.student_id,
            payload.months,
            payload.status,
            is_advance_payment=payload.is_advance_payment,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


# --- Late fine ---
@router.post(
    "/late-fine",
    response_model=FeePaymentWithStudent,
)
async def impose_late_fine(
    payload: ImposeLateFineRequest,
    db: AsyncSession = Depends(get_db),
) -> FeePaymentWithStudent:
    try:
        return await service.impose_late_fine(db, payload.student_id, payload.month)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


# --- Reports ---
@router.get(
    "/class/{class_id}",
    response_model=ClassFeeStatusResponse,
)
async def get_fee_status_by_class(
    class_id: UUID,
    month: Optional[str] = Query(None, description="Month label, e.g. March"),
    db: AsyncSession = Depends(get_db),
) -> ClassFeeStatusResponse:
    try:
        return await service.get_fee_status_by_class(db, class_id, month)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get(
    "/student/{student_id}",
    response_model=List[FeePaymentResponse],
)
async def get_fee_history(
    student_id: UUID,
    month: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[FeePaymentResponse]:
    try:
        return await service.get_fee_history(db, student_id, month=month)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
