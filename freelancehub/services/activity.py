from typing import Optional

from sqlmodel import Session, select

from freelancehub.models import ActivityType, UserActivityLog

ACTIVITY_TITLES = {
    ActivityType.task_create: "Task posted",
    ActivityType.bid_submit: "Bid submitted",
    ActivityType.bid_accept: "Bid accepted",
    ActivityType.bid_withdraw: "Bid withdrawn",
    ActivityType.milestone_create: "Milestone created",
    ActivityType.milestone_complete: "Milestone completion requested",
    ActivityType.payment_release: "Payment released",
}


def record_activity(
    session: Session,
    user_id: int,
    action: ActivityType,
    *,
    task_id: Optional[int] = None,
    detail: Optional[str] = None,
) -> UserActivityLog:
    """Stage an audit entry; it commits (or rolls back) with the caller's transaction."""
    entry = UserActivityLog(
        user_id=user_id,
        task_id=task_id,
        action_type=action,
        title=ACTIVITY_TITLES[action],
        detail=detail,
    )
    session.add(entry)
    return entry


def recent_activity(session: Session, user_id: int, limit: int = 100) -> list[UserActivityLog]:
    return list(
        session.exec(
            select(UserActivityLog)
            .where(UserActivityLog.user_id == user_id)
            .order_by(UserActivityLog.created_at.desc(), UserActivityLog.id.desc())
            .limit(limit)
        ).all()
    )
