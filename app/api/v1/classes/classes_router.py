from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ServiceError
from app.db.session import get_db

from .schemas import ClassCreate, ClassFeePolicyUpdate, ClassResponse
from . import service

router = APIRouter(prefix="/api/v1/classes", tags=["classes"])


@router.post(
    "",
    response_model=ClassResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_class(
    payload: ClassCreate,
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    try:
        return await service.create_class(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


@router.get(
    "/{class_id}",
    response_model=ClassResponse,
)
async def get_class(
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    obj = await service.get_class(db, class_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NotFoundError("Class not found").to_dict())
    return obj


@router.put(
    "/{class_id}/fee-policy",
    response_model=ClassResponse,
)
async def update_fee_policy(
    class_id: UUID,
    payload: ClassFeePolicyUpdate,
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    try:
        obj = await service.update_fee_policy(db, class_id, payload)
        if not obj:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NotFoundError("Class not found").to_dict())
        return obj
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
