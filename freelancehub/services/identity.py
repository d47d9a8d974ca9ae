from typing import Optional

from sqlmodel import Session

from freelancehub.core.exceptions import Unauthenticated
from freelancehub.core.security import InvalidToken, read_token_subject
from freelancehub.models import User


def resolve_user(session: Session, token: Optional[str]) -> User:
    """Turn a bearer token into an active user or raise ``Unauthenticated``."""
    if not token:
        raise Unauthenticated("Token required")

    try:
        user_id = read_token_subject(token)
    except InvalidToken as exc:
        raise Unauthenticated("Invalid or expired token") from exc

    user = session.get(User, user_id)
    if user is None or not user.is_active:
        raise Unauthenticated("Invalid or expired token")
    return user
