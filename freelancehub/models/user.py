from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlmodel import Field, Relationship, SQLModel


class Role(str, Enum):
    freelancer = "freelancer"
    client = "client"
    admin = "admin"


class UserBase(SQLModel):
    email: str = Field(index=True, sa_column_kwargs={"unique": True})
    first_name: str
    last_name: str
    avatar_url: Optional[str] = None


class User(UserBase, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    hashed_password: str
    role: Role = Field(index=True)
    is_active: bool = Field(default=True, index=True)
    is_verified: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    tasks: List["Task"] = Relationship(back_populates="client")
    bids: List["Bid"] = Relationship(back_populates="freelancer")
    notifications: List["Notification"] = Relationship(back_populates="user")
    messages: List["Message"] = Relationship(back_populates="sender")
    activity_logs: List["UserActivityLog"] = Relationship(back_populates="user")


class UserPublic(SQLModel):
    id: int
    first_name: str
    last_name: str
