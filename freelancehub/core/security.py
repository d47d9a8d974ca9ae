"""Password hashing (argon2) and bearer tokens (JWT)."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import JWTError, jwt

from freelancehub.core.config import settings

password_hasher = PasswordHasher()


class InvalidToken(ValueError):
    pass


def hash_password(password: str) -> str:
    return password_hasher.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return password_hasher.verify(hashed_password, password)
    except (VerificationError, InvalidHashError):
        return False


def password_needs_rehash(hashed_password: str) -> bool:
    return password_hasher.check_needs_rehash(hashed_password)


def issue_access_token(user_id: int, role: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    claims = {"sub": str(user_id), "role": role, "iat": now, "exp": expire}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def read_token_subject(token: str) -> int:
    """Return the user id a token was issued for.

    Raises ``InvalidToken`` for a bad signature, an expired token or a
    subject that is not a user id.
    """
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        raise InvalidToken("Could not validate credentials") from exc

    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject.isdigit():
        raise InvalidToken("Token subject is not a user id")
    return int(subject)
