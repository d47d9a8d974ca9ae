from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, Relationship, SQLModel


class ActivityType(str, Enum):
    task_create = "task_create"
    bid_submit = "bid_submit"
    bid_accept = "bid_accept"
    bid_withdraw = "bid_withdraw"
    milestone_create = "milestone_create"
    milestone_complete = "milestone_complete"
    payment_release = "payment_release"


class UserActivityLog(SQLModel, table=True):
    """Append-only audit trail of marketplace actions, one row per action."""

    __tablename__ = "activity_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    task_id: Optional[int] = Field(default=None, foreign_key="tasks.id", index=True)
    action_type: ActivityType = Field(index=True)
    title: str
    detail: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)

    user: "User" = Relationship(back_populates="activity_logs")
