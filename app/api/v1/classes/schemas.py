from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ClassCreate(BaseModel):
    class_name: str = Field(..., max_length=50)
    section: Optional[str] = Field(None, max_length=20)
    fee: Optional[Decimal] = Field(None, ge=0)
    late_fine_amount: Optional[Decimal] = Field(None, ge=0)


class ClassFeePolicyUpdate(BaseModel):
    """Monthly fee and late fine for a class. Omitted fields are left unchanged."""
    fee: Optional[Decimal] = Field(None, ge=0)
    late_fine_amount: Optional[Decimal] = Field(None, ge=0)


class ClassResponse(BaseModel):
    id: UUID
    class_name: str
    section: Optional[str] = None
    fee: Optional[Decimal] = None
    late_fine_amount: Optional[Decimal] = None
    students: List[UUID] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
