from datetime import datetime
from typing import List
from uuid import UUID

from pydantic import BaseModel, Field


class SubjectCreate(BaseModel):
    name: str = Field(..., max_length=255)
    code: str = Field(..., max_length=50)


class SubjectResponse(BaseModel):
    id: UUID
    name: str
    code: str
    students: List[UUID] = Field(default_factory=list)
    created_at: datetime

    class Config:
        from_attributes = True
