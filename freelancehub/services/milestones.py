from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func
from sqlmodel import Session, select

from freelancehub.core.exceptions import InvalidState, NotFound
from freelancehub.db.transactions import atomic, lock_milestone, lock_task
from freelancehub.models import ActivityType, Milestone, MilestoneStatus, Task, TaskStatus, User
from freelancehub.services.activity import record_activity
from freelancehub.services.notifications import NotificationDispatcher, NotificationPublisher
from freelancehub.services.policies import (
    assigned_freelancer_id,
    can_create_milestone,
    can_release_payment,
    can_request_completion,
    ensure_allowed,
)

logger = logging.getLogger(__name__)

# A milestone added to a finished task could never be paid.
_CLOSED_TASK_STATUSES = {TaskStatus.completed, TaskStatus.cancelled}


def count_unpaid_milestones(session: Session, task_id: int) -> int:
    count = session.exec(
        select(func.count(Milestone.id))
        .where(Milestone.task_id == task_id)
        .where(Milestone.status != MilestoneStatus.paid)
    ).one()
    return int(count or 0)


class MilestoneEngine:
    """Milestone lifecycle: pending -> completed -> paid, plus the task rollup.

    Every transition runs with the owning task row locked, which serializes
    the completion rollup against concurrent payment releases and milestone
    creation on the same task.
    """

    def __init__(self, session: Session, publisher: NotificationPublisher) -> None:
        self.session = session
        self.notifications = NotificationDispatcher(session, publisher)

    def create_milestone(
        self,
        client: User,
        *,
        task_id: int,
        title: str,
        description: str,
        amount: float,
        due_date: datetime,
    ) -> Milestone:
        with atomic(self.session):
            task = lock_task(self.session, task_id)
            if task is None:
                raise NotFound("Task not found.")
            ensure_allowed(can_create_milestone(client, task))
            if task.status in _CLOSED_TASK_STATUSES:
                raise InvalidState(
                    f"Milestones cannot be added to a task that is {task.status.value}."
                )

            milestone = Milestone(
                task_id=task_id,
                title=title,
                description=description,
                amount=amount,
                due_date=due_date,
                status=MilestoneStatus.pending,
            )
            self.session.add(milestone)
            record_activity(
                self.session,
                client.id,
                ActivityType.milestone_create,
                task_id=task_id,
                detail=f"{title} / ${amount:,.2f}",
            )
            freelancer_id = assigned_freelancer_id(self.session, task_id)
            task_title = task.title

        self.session.refresh(milestone)
        if freelancer_id is not None:
            self.notifications.notify_best_effort(
                freelancer_id,
                f'A new milestone "{title}" (${amount:,.2f}) was added to "{task_title}".',
            )
        return milestone

    def request_completion(self, freelancer: User, milestone_id: int) -> Milestone:
        with atomic(self.session):
            milestone = self.session.get(Milestone, milestone_id)
            if milestone is None:
                raise NotFound("Milestone not found.")

            task = lock_task(self.session, milestone.task_id)
            ensure_allowed(can_request_completion(freelancer, assigned_freelancer_id(self.session, task.id)))

            milestone = lock_milestone(self.session, milestone_id)
            if milestone.status != MilestoneStatus.pending:
                raise InvalidState(
                    f"Milestone cannot be marked completed because its current status is "
                    f"'{milestone.status.value}'."
                )

            milestone.status = MilestoneStatus.completed
            milestone.updated_at = datetime.utcnow()
            self.session.add(milestone)
            record_activity(
                self.session,
                freelancer.id,
                ActivityType.milestone_complete,
                task_id=task.id,
                detail=milestone.title,
            )
            client_id, task_title, milestone_title = task.client_id, task.title, milestone.title

        self.notifications.notify_best_effort(
            client_id,
            f'Milestone "{milestone_title}" on "{task_title}" was marked completed. '
            f"Please review and release payment.",
        )
        self.session.refresh(milestone)
        return milestone

    def release_payment(self, client: User, milestone_id: int) -> Milestone:
        """Mark a completed milestone paid and recompute the task status.

        Inside one transaction: milestone -> paid, then the unpaid siblings
        are counted; none left completes the task, otherwise the first payment
        moves an assigned task to in_progress.
        """
        with atomic(self.session):
            milestone = self.session.get(Milestone, milestone_id)
            if milestone is None:
                raise NotFound("Milestone not found.")

            task = lock_task(self.session, milestone.task_id)
            ensure_allowed(can_release_payment(client, milestone))

            milestone = lock_milestone(self.session, milestone_id)
            if milestone.status != MilestoneStatus.completed:
                raise InvalidState(
                    f"Payment can only be released for completed milestones "
                    f"(current status: {milestone.status.value})."
                )

            now = datetime.utcnow()
            milestone.status = MilestoneStatus.paid
            milestone.updated_at = now
            self.session.add(milestone)
            self.session.flush()

            previous_status = task.status
            unpaid = count_unpaid_milestones(self.session, task.id)
            if unpaid == 0:
                task.status = TaskStatus.completed
            elif task.status == TaskStatus.assigned:
                task.status = TaskStatus.in_progress
            if task.status != previous_status:
                task.version += 1
                task.updated_at = now
                self.session.add(task)

            record_activity(
                self.session,
                client.id,
                ActivityType.payment_release,
                task_id=task.id,
                detail=f"{milestone.title} / ${milestone.amount:,.2f}",
            )
            freelancer_id = assigned_freelancer_id(self.session, task.id)
            task_id, task_status = task.id, task.status
            milestone_title, amount = milestone.title, milestone.amount

        logger.info(
            "payment released milestone_id=%s task_id=%s unpaid_remaining=%s task_status=%s",
            milestone_id,
            task_id,
            unpaid,
            task_status.value,
        )
        if freelancer_id is not None:
            self.notifications.notify_best_effort(
                freelancer_id,
                f'Payment of ${amount:,.2f} for milestone "{milestone_title}" has been released.',
            )
        self.session.refresh(milestone)
        return milestone

    def list_task_milestones(self, task_id: int) -> list[Milestone]:
        if self.session.get(Task, task_id) is None:
            raise NotFound("Task not found.")
        return list(
            self.session.exec(
                select(Milestone)
                .where(Milestone.task_id == task_id)
                .order_by(Milestone.created_at.asc(), Milestone.id.asc())
            ).all()
        )
