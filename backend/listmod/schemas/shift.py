from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID
from datetime import datetime


class ShiftCreate(BaseModel):
    user_id: UUID
    target_count: int = Field(gt=0, le=1000)
    start_at: datetime
    end_at: datetime


class ShiftPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: UUID
    user_id: UUID
    target_count: int
    completed_count: int
    start_at: datetime
    end_at: datetime
    status: str
