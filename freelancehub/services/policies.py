"""Authorization policies for tasks, bids and milestones.

Each policy returns a tagged decision instead of raising, so the same rule can
back an HTTP route (``ensure_allowed`` -> ``Forbidden``) and the live channel
(``unauthorized`` event). Status preconditions are not policies; the engines
check those and raise ``InvalidState``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from sqlmodel import Session, select

from freelancehub.core.exceptions import Forbidden
from freelancehub.models import Bid, BidStatus, Milestone, Role, Task, User


@dataclass(frozen=True)
class Allowed:
    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class Denied:
    reason: str

    def __bool__(self) -> bool:
        return False


Decision = Union[Allowed, Denied]

ALLOWED = Allowed()


def ensure_allowed(decision: Decision) -> None:
    if isinstance(decision, Denied):
        raise Forbidden(decision.reason)


def accepted_bid_for_task(session: Session, task_id: int) -> Optional[Bid]:
    return session.exec(
        select(Bid).where(Bid.task_id == task_id).where(Bid.status == BidStatus.accepted)
    ).first()


def assigned_freelancer_id(session: Session, task_id: int) -> Optional[int]:
    bid = accepted_bid_for_task(session, task_id)
    return bid.freelancer_id if bid else None


def is_authorized_for_task(session: Session, user_id: int, task: Optional[Task]) -> Decision:
    """Client of the task, or holder of its accepted bid.

    Always read from the store: accepting a bid changes the answer while a
    chat session is open, so callers must not cache the result.
    """
    if task is None:
        return Denied("Unauthorized to access this task chat")
    if task.client_id == user_id:
        return ALLOWED
    if assigned_freelancer_id(session, task.id) == user_id:
        return ALLOWED
    return Denied("Unauthorized to access this task chat")


def can_submit_bid(user: User) -> Decision:
    if user.role != Role.freelancer:
        return Denied("Only freelancers can submit bids.")
    return ALLOWED


def can_accept_bid(user: User, task: Task) -> Decision:
    if task.client_id != user.id:
        return Denied("You are not authorized to accept bids for this task.")
    return ALLOWED


def can_withdraw_bid(user: User, bid: Bid) -> Decision:
    if bid.freelancer_id != user.id:
        return Denied("You can only withdraw your own bids.")
    return ALLOWED


def can_create_milestone(user: User, task: Task) -> Decision:
    if user.role != Role.client:
        return Denied("Only clients can create milestones.")
    if task.client_id != user.id:
        return Denied("You are not authorized to create milestones for this task.")
    return ALLOWED


def can_request_completion(user: User, freelancer_id: Optional[int]) -> Decision:
    if freelancer_id is None or freelancer_id != user.id:
        return Denied("Only the assigned freelancer can mark this milestone as completed.")
    return ALLOWED


def can_release_payment(user: User, milestone: Milestone) -> Decision:
    if milestone.task.client_id != user.id:
        return Denied("Only the task owner can release payment for this milestone.")
    return ALLOWED
