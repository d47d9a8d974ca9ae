from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel


class BidStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    withdrawn = "withdrawn"


class Bid(SQLModel, table=True):
    __tablename__ = "bids"
    __table_args__ = (UniqueConstraint("task_id", "freelancer_id", name="uq_bids_task_freelancer"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="tasks.id", index=True)
    freelancer_id: int = Field(foreign_key="users.id", index=True)
    amount: float = Field(gt=0)
    proposal: str
    timeline: str
    status: BidStatus = Field(default=BidStatus.pending, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    task: "Task" = Relationship(back_populates="bids")
    freelancer: "User" = Relationship(back_populates="bids")
