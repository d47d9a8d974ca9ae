from datetime import datetime

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from freelancehub.models import BidStatus, UserPublic
from freelancehub.schemas.common import MAX_RECORD_ID
from freelancehub.schemas.task import TaskSummaryRead


class BidCreate(SQLModel):
    task_id: int = Field(gt=0, le=MAX_RECORD_ID)
    amount: float = Field(gt=0)
    proposal: str = Field(min_length=30)
    timeline: str = Field(min_length=1, max_length=100)

    @field_validator("proposal", "timeline", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class BidRead(SQLModel):
    id: int
    task_id: int
    freelancer_id: int
    amount: float
    proposal: str
    timeline: str
    status: BidStatus
    created_at: datetime
    updated_at: datetime


class BidWithFreelancerRead(BidRead):
    freelancer: UserPublic


class BidWithTaskRead(BidRead):
    task: TaskSummaryRead
