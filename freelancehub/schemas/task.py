from datetime import datetime

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from freelancehub.models import BudgetType, TaskCategory, TaskStatus, UserPublic


class TaskCreate(SQLModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=10)
    category: TaskCategory
    budget: float = Field(ge=0)
    budget_type: BudgetType
    deadline: datetime

    @field_validator("title", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class TaskRead(SQLModel):
    id: int
    client_id: int
    title: str
    description: str
    category: TaskCategory
    budget: float
    budget_type: BudgetType
    deadline: datetime
    status: TaskStatus
    created_at: datetime
    updated_at: datetime


class TaskWithClientRead(TaskRead):
    client: UserPublic


class TaskSummaryRead(SQLModel):
    id: int
    title: str
    status: TaskStatus
