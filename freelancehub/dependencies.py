from typing import Annotated, Generator, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from freelancehub.core.config import settings
from freelancehub.core.exceptions import Forbidden
from freelancehub.db.database import get_session
from freelancehub.models import Role, User
from freelancehub.services.bids import BidEngine
from freelancehub.services.identity import resolve_user
from freelancehub.services.milestones import MilestoneEngine
from freelancehub.services.notifications import NotificationDispatcher, NotificationPublisher, NullPublisher

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.api_prefix}/auth/token", auto_error=False)


def get_db(request: Request) -> Generator[Session, None, None]:
    yield from get_session(request.app.state.engine)


def get_publisher(request: Request) -> NotificationPublisher:
    return getattr(request.app.state, "hub", None) or NullPublisher()


def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    # Sync so it runs in the threadpool; the lookup may block on a database lock.
    return resolve_user(db, token)


async def get_current_client(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    if current_user.role != Role.client:
        raise Forbidden("Client role required")
    return current_user


async def get_current_freelancer(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    if current_user.role != Role.freelancer:
        raise Forbidden("Freelancer role required")
    return current_user


def get_bid_engine(
    db: Annotated[Session, Depends(get_db)],
    publisher: Annotated[NotificationPublisher, Depends(get_publisher)],
) -> BidEngine:
    return BidEngine(db, publisher)


def get_milestone_engine(
    db: Annotated[Session, Depends(get_db)],
    publisher: Annotated[NotificationPublisher, Depends(get_publisher)],
) -> MilestoneEngine:
    return MilestoneEngine(db, publisher)


def get_notification_dispatcher(
    db: Annotated[Session, Depends(get_db)],
    publisher: Annotated[NotificationPublisher, Depends(get_publisher)],
) -> NotificationDispatcher:
    return NotificationDispatcher(db, publisher)
