from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import field_validator
from sqlmodel import Field, SQLModel

from freelancehub.models import ActivityType, Role


class UserCreate(SQLModel):
    email: str = Field(min_length=3, max_length=255)
    password: str
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    role: Role

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("Email must be a valid address")
        return value

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, value: str) -> str:
        if len(value) < 8:
            raise ValueError("Password must contain at least 8 characters")
        return value

    @field_validator("role")
    @classmethod
    def validate_public_role(cls, value: Role) -> Role:
        if value == Role.admin:
            raise ValueError("Role must be one of: client, freelancer")
        return value


class UserRead(SQLModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: Role
    is_active: bool
    is_verified: bool
    avatar_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UserActivityRead(SQLModel):
    id: int
    task_id: Optional[int] = None
    action_type: ActivityType
    title: str
    detail: Optional[str] = None
    created_at: datetime
