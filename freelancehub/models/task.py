from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlmodel import Field, Relationship, SQLModel


class TaskStatus(str, Enum):
    open = "open"
    assigned = "assigned"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class TaskCategory(str, Enum):
    web_development = "web_development"
    mobile_development = "mobile_development"
    design = "design"
    writing = "writing"
    marketing = "marketing"
    data_analysis = "data_analysis"
    other = "other"


class BudgetType(str, Enum):
    fixed = "fixed"
    hourly = "hourly"


class Task(SQLModel, table=True):
    __tablename__ = "tasks"

    id: Optional[int] = Field(default=None, primary_key=True)
    client_id: int = Field(foreign_key="users.id", index=True)
    title: str
    description: str
    category: TaskCategory = Field(index=True)
    budget: float = Field(ge=0)
    budget_type: BudgetType
    deadline: datetime
    status: TaskStatus = Field(default=TaskStatus.open, index=True)
    # Bumped on every status transition.
    version: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    client: "User" = Relationship(back_populates="tasks")
    bids: List["Bid"] = Relationship(back_populates="task")
    milestones: List["Milestone"] = Relationship(back_populates="task")
    messages: List["Message"] = Relationship(back_populates="task")
