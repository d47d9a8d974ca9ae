from contextlib import contextmanager
from typing import Iterator, Optional

from sqlmodel import Session, select

from freelancehub.models import Milestone, Task


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Commit on success, roll back on any exception raised inside the block."""
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def lock_task(session: Session, task_id: int) -> Optional[Task]:
    """Load a task with a row lock held until the surrounding transaction ends.

    ``FOR UPDATE`` on PostgreSQL; SQLite ignores it but every SQLite
    transaction already holds the database write lock (see ``build_engine``).
    ``populate_existing`` discards any stale copy in the identity map so status
    checks made after the lock see the committed row.
    """
    return session.exec(
        select(Task)
        .where(Task.id == task_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()


def lock_milestone(session: Session, milestone_id: int) -> Optional[Milestone]:
    return session.exec(
        select(Milestone)
        .where(Milestone.id == milestone_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()
