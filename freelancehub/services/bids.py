from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from freelancehub.core.exceptions import Conflict, InvalidState, NotFound
from freelancehub.db.transactions import atomic, lock_task
from freelancehub.models import ActivityType, Bid, BidStatus, Task, TaskStatus, User
from freelancehub.services.activity import record_activity
from freelancehub.services.notifications import NotificationDispatcher, NotificationPublisher
from freelancehub.services.policies import (
    can_accept_bid,
    can_submit_bid,
    can_withdraw_bid,
    ensure_allowed,
)

logger = logging.getLogger(__name__)

DUPLICATE_BID_MESSAGE = "You have already submitted a bid for this task."


class BidEngine:
    """Bid submission and the acceptance transaction that assigns a task."""

    def __init__(self, session: Session, publisher: NotificationPublisher) -> None:
        self.session = session
        self.notifications = NotificationDispatcher(session, publisher)

    def submit_bid(
        self,
        freelancer: User,
        *,
        task_id: int,
        amount: float,
        proposal: str,
        timeline: str,
    ) -> Bid:
        ensure_allowed(can_submit_bid(freelancer))

        try:
            with atomic(self.session):
                # Holding the task row keeps a bid from landing after a
                # concurrent acceptance has rejected the other bids.
                task = lock_task(self.session, task_id)
                if task is None:
                    raise NotFound("Task not found.")
                if task.status != TaskStatus.open:
                    raise InvalidState(
                        f"This task is no longer open for bidding (current status: {task.status.value})."
                    )
                if task.client_id == freelancer.id:
                    raise InvalidState("You cannot bid on your own task.")

                existing = self.session.exec(
                    select(Bid).where(Bid.task_id == task_id).where(Bid.freelancer_id == freelancer.id)
                ).first()
                if existing:
                    raise Conflict(DUPLICATE_BID_MESSAGE)

                bid = Bid(
                    task_id=task_id,
                    freelancer_id=freelancer.id,
                    amount=amount,
                    proposal=proposal,
                    timeline=timeline,
                    status=BidStatus.pending,
                )
                self.session.add(bid)
                record_activity(
                    self.session,
                    freelancer.id,
                    ActivityType.bid_submit,
                    task_id=task_id,
                    detail=f"${amount:,.2f} / {timeline}",
                )
                client_id, task_title = task.client_id, task.title
        except IntegrityError as exc:
            raise Conflict(DUPLICATE_BID_MESSAGE) from exc

        self.session.refresh(bid)
        self.notifications.notify_best_effort(
            client_id,
            f'You have a new ${amount:,.2f} bid on your project "{task_title}"',
        )
        return bid

    def accept_bid(self, client: User, bid_id: int) -> Bid:
        """Accept one bid, reject its siblings and assign the task, atomically.

        Notifications and the chat activation go out only after the commit;
        their failure is logged and does not affect the accepted state.
        """
        with atomic(self.session):
            bid = self.session.get(Bid, bid_id)
            if bid is None:
                raise NotFound("Bid not found.")

            task = lock_task(self.session, bid.task_id)
            ensure_allowed(can_accept_bid(client, task))
            if task.status != TaskStatus.open:
                raise InvalidState(
                    f"This task is not open for bidding (current status: {task.status.value})."
                )

            self.session.refresh(bid)
            if bid.status != BidStatus.pending:
                raise InvalidState(f"Only pending bids can be accepted (current status: {bid.status.value}).")

            now = datetime.utcnow()
            bid.status = BidStatus.accepted
            bid.updated_at = now
            self.session.add(bid)

            siblings = self.session.exec(
                select(Bid).where(Bid.task_id == task.id).where(Bid.id != bid.id)
            ).all()
            for other in siblings:
                if other.status == BidStatus.withdrawn:
                    continue
                other.status = BidStatus.rejected
                other.updated_at = now
                self.session.add(other)

            task.status = TaskStatus.assigned
            task.version += 1
            task.updated_at = now
            self.session.add(task)

            record_activity(
                self.session,
                client.id,
                ActivityType.bid_accept,
                task_id=task.id,
                detail=f"Bid ID: {bid.id}",
            )

            task_id, task_title = task.id, task.title
            freelancer_id = bid.freelancer_id
            freelancer_name = bid.freelancer.first_name

        logger.info("bid accepted task_id=%s bid_id=%s freelancer_id=%s", task_id, bid_id, freelancer_id)

        self.notifications.notify_best_effort(
            freelancer_id,
            f'Congratulations! Your bid for "{task_title}" has been accepted.',
        )
        self.notifications.notify_best_effort(
            client.id,
            f'You have hired {freelancer_name} for your project "{task_title}".',
        )
        for user_id in (client.id, freelancer_id):
            self.notifications.publish_best_effort(user_id, "chat_activated", {"task_id": task_id})

        self.session.refresh(bid)
        return bid

    def withdraw_bid(self, freelancer: User, bid_id: int) -> Bid:
        with atomic(self.session):
            bid = self.session.get(Bid, bid_id)
            if bid is None:
                raise NotFound("Bid not found.")
            ensure_allowed(can_withdraw_bid(freelancer, bid))

            task = lock_task(self.session, bid.task_id)
            self.session.refresh(bid)
            if bid.status != BidStatus.pending:
                raise InvalidState(f"Only pending bids can be withdrawn (current status: {bid.status.value}).")
            if task.status != TaskStatus.open:
                raise InvalidState(
                    f"Bids can only be withdrawn while the task is open (current status: {task.status.value})."
                )

            bid.status = BidStatus.withdrawn
            bid.updated_at = datetime.utcnow()
            self.session.add(bid)
            record_activity(
                self.session,
                freelancer.id,
                ActivityType.bid_withdraw,
                task_id=task.id,
                detail=f"Bid ID: {bid.id}",
            )

        self.session.refresh(bid)
        return bid

    def list_task_bids(self, task_id: int) -> list[Bid]:
        if self.session.get(Task, task_id) is None:
            raise NotFound("Task not found.")
        bids = self.session.exec(
            select(Bid).where(Bid.task_id == task_id).order_by(Bid.created_at.desc(), Bid.id.desc())
        ).all()
        for bid in bids:
            _ = bid.freelancer
        return list(bids)

    def list_freelancer_bids(self, freelancer: User) -> list[Bid]:
        bids = self.session.exec(
            select(Bid).where(Bid.freelancer_id == freelancer.id).order_by(Bid.created_at.desc(), Bid.id.desc())
        ).all()
        for bid in bids:
            _ = bid.task
        return list(bids)
