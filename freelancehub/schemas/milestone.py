from datetime import datetime

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from freelancehub.models import MilestoneStatus
from freelancehub.schemas.common import MAX_RECORD_ID


class MilestoneCreate(SQLModel):
    task_id: int = Field(gt=0, le=MAX_RECORD_ID)
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1)
    amount: float = Field(gt=0)
    due_date: datetime

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class MilestoneRead(SQLModel):
    id: int
    task_id: int
    title: str
    description: str
    amount: float
    due_date: datetime
    status: MilestoneStatus
    created_at: datetime
    updated_at: datetime
