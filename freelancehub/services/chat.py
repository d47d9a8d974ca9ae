from __future__ import annotations

import json
import logging
from typing import Any, Optional

from fastapi import WebSocket
from pydantic import ValidationError
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select
from starlette.concurrency import run_in_threadpool

from freelancehub.core.exceptions import ServiceError, Unavailable, ValidationFailed, field_errors
from freelancehub.models import Message, Task, User
from freelancehub.schemas.message import (
    JoinTaskPayload,
    LeaveTaskPayload,
    MessageRead,
    SendMessagePayload,
    TypingPayload,
)
from freelancehub.services.identity import resolve_user
from freelancehub.services.policies import Denied, is_authorized_for_task
from freelancehub.services.realtime import ConnectionHub, LiveConnection, task_room, user_room

logger = logging.getLogger(__name__)


def _to_message_read(message: Message) -> dict[str, Any]:
    return MessageRead.model_validate(message).model_dump(mode="json")


class ChatCoordinator:
    """Task chat rooms on top of the connection hub.

    Authorization is re-derived from the store on every join and send; room
    membership alone never grants the right to post.
    """

    def __init__(self, hub: ConnectionHub, engine: Engine, *, history_limit: int = 50) -> None:
        self.hub = hub
        self.engine = engine
        self.history_limit = history_limit
        self._handlers = {
            "join_task": (JoinTaskPayload, self.join),
            "send_message": (SendMessagePayload, self.send),
            "typing": (TypingPayload, self.typing),
            "leave_task": (LeaveTaskPayload, self.leave),
        }

    # -- connection lifecycle -------------------------------------------------

    def authenticate(self, token: Optional[str]) -> User:
        with Session(self.engine) as session:
            user = resolve_user(session, token)
            session.expunge(user)
            return user

    def open(self, websocket: WebSocket, user: User) -> LiveConnection:
        connection = LiveConnection(websocket, user.id)
        connection.start()
        self.hub.join(connection, user_room(user.id))
        logger.info("user %s connected", user.id)
        return connection

    async def close(self, connection: LiveConnection) -> None:
        self.hub.leave_all(connection)
        await connection.stop()
        logger.info("user %s disconnected", connection.user_id)

    async def handle_frame(self, connection: LiveConnection, raw: Optional[str]) -> None:
        if raw is None:
            self._reject(connection, ValidationFailed("Frame must be a JSON text frame"))
            return
        try:
            frame = json.loads(raw)
        except json.JSONDecodeError:
            self._reject(connection, ValidationFailed("Frame must be a JSON object"))
            return
        if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
            self._reject(connection, ValidationFailed("Frame must contain an 'event' name"))
            return

        handler = self._handlers.get(frame["event"])
        if handler is None:
            self._reject(connection, ValidationFailed(f"Unknown event '{frame['event']}'"))
            return

        schema, callback = handler
        try:
            payload = schema.model_validate(frame.get("data") or {})
        except ValidationError as exc:
            self._reject(connection, ValidationFailed("Validation failed", field_errors(exc.errors())))
            return

        try:
            await callback(connection, payload)
        except SQLAlchemyError:
            logger.exception("chat event failed event=%s user_id=%s", frame["event"], connection.user_id)
            self._reject(connection, Unavailable("Chat is temporarily unavailable, please try again"))

    # -- events ---------------------------------------------------------------

    async def join(self, connection: LiveConnection, payload: JoinTaskPayload) -> None:
        decision = await run_in_threadpool(self._authorize, connection.user_id, payload.task_id)
        if isinstance(decision, Denied):
            connection.enqueue("unauthorized", {"message": decision.reason})
            return

        self.hub.join(connection, task_room(payload.task_id))
        history = await run_in_threadpool(self._recent_messages, payload.task_id)
        connection.enqueue("load_messages", history)
        logger.debug(
            "user %s joined task %s members=%s",
            connection.user_id,
            payload.task_id,
            self.hub.room_size(task_room(payload.task_id)),
        )

    async def send(self, connection: LiveConnection, payload: SendMessagePayload) -> None:
        result = await run_in_threadpool(
            self._persist_if_authorized, connection.user_id, payload.task_id, payload.content
        )
        if isinstance(result, Denied):
            connection.enqueue("unauthorized", {"message": result.reason})
            return
        self.hub.emit(task_room(payload.task_id), "new_message", result)

    async def typing(self, connection: LiveConnection, payload: TypingPayload) -> None:
        room = task_room(payload.task_id)
        # Only members relay typing state; nothing is persisted.
        if not self.hub.is_member(connection, room):
            return
        self.hub.emit(
            room,
            "user_typing",
            {"user_id": connection.user_id, "is_typing": payload.is_typing},
            exclude=connection,
        )

    async def leave(self, connection: LiveConnection, payload: LeaveTaskPayload) -> None:
        self.hub.leave(connection, task_room(payload.task_id))

    # -- store access (worker threads) ---------------------------------------

    def _authorize(self, user_id: int, task_id: int):
        with Session(self.engine) as session:
            return is_authorized_for_task(session, user_id, session.get(Task, task_id))

    def _recent_messages(self, task_id: int) -> list[dict[str, Any]]:
        with Session(self.engine) as session:
            newest_first = session.exec(
                select(Message)
                .where(Message.task_id == task_id)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(self.history_limit)
            ).all()
            return [_to_message_read(message) for message in reversed(newest_first)]

    def _persist_if_authorized(self, user_id: int, task_id: int, content: str):
        with Session(self.engine) as session:
            decision = is_authorized_for_task(session, user_id, session.get(Task, task_id))
            if isinstance(decision, Denied):
                return decision

            message = Message(task_id=task_id, sender_id=user_id, content=content)
            session.add(message)
            session.commit()
            session.refresh(message)
            return _to_message_read(message)

    @staticmethod
    def _reject(connection: LiveConnection, error: ServiceError) -> None:
        connection.enqueue("error", {"error": error.kind, "message": error.message, "data": error.details})
