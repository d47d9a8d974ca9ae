from datetime import datetime
from typing import Optional

from sqlmodel import Field, Relationship, SQLModel


class Message(SQLModel, table=True):
    __tablename__ = "messages"

    id: Optional[int] = Field(default=None, primary_key=True)
    task_id: int = Field(foreign_key="tasks.id", index=True)
    sender_id: int = Field(foreign_key="users.id", index=True)
    content: str
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)

    task: "Task" = Relationship(back_populates="messages")
    sender: "User" = Relationship(back_populates="messages")
