from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlmodel import Session, select

from freelancehub.core.exceptions import NotFound
from freelancehub.dependencies import get_current_client, get_current_user, get_db
from freelancehub.models import ActivityType, Task, TaskStatus, User, UserPublic
from freelancehub.schemas.common import MAX_RECORD_ID, ApiResponse
from freelancehub.schemas.task import TaskCreate, TaskRead, TaskWithClientRead
from freelancehub.services.activity import record_activity

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _to_task_with_client(task: Task) -> TaskWithClientRead:
    return TaskWithClientRead(
        **TaskRead.model_validate(task).model_dump(),
        client=UserPublic.model_validate(task.client),
    )


@router.get("/", response_model=ApiResponse[list[TaskWithClientRead]])
def list_tasks(
    task_status: Optional[TaskStatus] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse[list[TaskWithClientRead]]:
    del current_user
    query = select(Task).order_by(Task.created_at.desc(), Task.id.desc())
    if task_status is not None:
        query = query.where(Task.status == task_status)
    tasks = db.exec(query).all()
    return ApiResponse(data=[_to_task_with_client(task) for task in tasks])


@router.get("/{task_id}", response_model=ApiResponse[TaskWithClientRead])
def get_task(
    task_id: int = Path(gt=0, le=MAX_RECORD_ID),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse[TaskWithClientRead]:
    del current_user
    task = db.get(Task, task_id)
    if not task:
        raise NotFound("Task not found")
    return ApiResponse(data=_to_task_with_client(task))


@router.post("/", response_model=ApiResponse[TaskRead], status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_client),
) -> ApiResponse[TaskRead]:
    task = Task(
        **payload.model_dump(),
        client_id=current_user.id,
        status=TaskStatus.open,
        updated_at=datetime.utcnow(),
    )
    db.add(task)
    db.flush()
    record_activity(
        db,
        current_user.id,
        ActivityType.task_create,
        task_id=task.id,
        detail=task.title,
    )
    db.commit()
    db.refresh(task)
    return ApiResponse(message="Task created successfully", data=TaskRead.model_validate(task))
