from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select

from freelancehub.core.exceptions import Conflict, Forbidden, Unauthenticated
from freelancehub.core.security import hash_password, issue_access_token, password_needs_rehash, verify_password
from freelancehub.dependencies import get_db
from freelancehub.models import User
from freelancehub.schemas.auth import Token
from freelancehub.schemas.common import ApiResponse
from freelancehub.schemas.user import UserCreate, UserRead

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=ApiResponse[UserRead], status_code=status.HTTP_201_CREATED)
def register_user(user_in: UserCreate, db: Session = Depends(get_db)) -> ApiResponse[UserRead]:
    existing_email = db.exec(select(User).where(User.email == user_in.email)).first()
    if existing_email:
        raise Conflict("Email already registered")

    user = User(
        email=user_in.email,
        first_name=user_in.first_name,
        last_name=user_in.last_name,
        role=user_in.role,
        hashed_password=hash_password(user_in.password),
        is_active=True,
        updated_at=datetime.utcnow(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return ApiResponse(message="User registered successfully", data=UserRead.model_validate(user))


@router.post("/token", response_model=Token)
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
) -> Token:
    user = db.exec(select(User).where(User.email == form_data.username.strip().lower())).first()

    if not user or not verify_password(form_data.password, user.hashed_password):
        raise Unauthenticated("Incorrect email or password")

    if not user.is_active:
        raise Forbidden("Inactive user")

    if password_needs_rehash(user.hashed_password):
        user.hashed_password = hash_password(form_data.password)
        user.updated_at = datetime.utcnow()
        db.add(user)
        db.commit()

    access_token = issue_access_token(user.id, user.role.value)
    return Token(access_token=access_token, token_type="bearer")
