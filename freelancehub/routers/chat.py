from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from starlette.concurrency import run_in_threadpool

from freelancehub.core.exceptions import Unauthenticated
from freelancehub.services.chat import ChatCoordinator

router = APIRouter(tags=["chat"])
logger = logging.getLogger(__name__)


def _bearer_token(websocket: WebSocket) -> Optional[str]:
    header = websocket.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


@router.websocket("/ws")
async def live_channel(websocket: WebSocket, token: Optional[str] = Query(default=None)) -> None:
    coordinator: ChatCoordinator = websocket.app.state.chat

    try:
        user = await run_in_threadpool(coordinator.authenticate, token or _bearer_token(websocket))
    except Unauthenticated as exc:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=f"Authentication error: {exc.message}")
        return

    await websocket.accept()
    connection = coordinator.open(websocket, user)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE), message.get("reason"))
            await coordinator.handle_frame(connection, message.get("text"))
    except WebSocketDisconnect as exc:
        logger.debug("live channel closed user_id=%s code=%s", user.id, exc.code)
    finally:
        await coordinator.close(connection)
