"""Chat messages and the payloads of client -> server live-channel events."""

from datetime import datetime

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from freelancehub.models import UserPublic
from freelancehub.schemas.common import MAX_RECORD_ID


class MessageRead(SQLModel):
    id: int
    task_id: int
    sender_id: int
    content: str
    created_at: datetime
    sender: UserPublic


class JoinTaskPayload(SQLModel):
    task_id: int = Field(gt=0, le=MAX_RECORD_ID)


class LeaveTaskPayload(SQLModel):
    task_id: int = Field(gt=0, le=MAX_RECORD_ID)


class SendMessagePayload(SQLModel):
    task_id: int = Field(gt=0, le=MAX_RECORD_ID)
    content: str = Field(min_length=1, max_length=5000)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, value):
        return value.strip() if isinstance(value, str) else value


class TypingPayload(SQLModel):
    task_id: int = Field(gt=0, le=MAX_RECORD_ID)
    is_typing: bool
