"""In-process registry of live connections and their rooms.

Room state is only touched on the event loop thread. Code running in worker
threads (sync request handlers) publishes through ``publish_to_user``, which
hands the event to the loop with ``call_soon_threadsafe``; events published
from one thread therefore keep their order.

Each connection owns an outbound queue drained by a single sender task, so
frames reach a client in the order they were emitted.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections import defaultdict
from typing import Any, Callable, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


def user_room(user_id: int) -> str:
    return f"user:{user_id}"


def task_room(task_id: int) -> str:
    return f"task:{task_id}"


class LiveConnection:
    def __init__(self, websocket: WebSocket, user_id: int) -> None:
        self.websocket = websocket
        self.user_id = user_id
        self.rooms: set[str] = set()
        self._outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._sender: Optional[asyncio.Task] = None

    def start(self) -> None:
        self._sender = asyncio.create_task(self._drain())

    def enqueue(self, event: str, data: Any) -> None:
        self._outbox.put_nowait({"event": event, "data": data})

    async def stop(self) -> None:
        if self._sender is None:
            return
        self._sender.cancel()
        await asyncio.gather(self._sender, return_exceptions=True)
        self._sender = None

    async def _drain(self) -> None:
        while True:
            frame = await self._outbox.get()
            try:
                await self.websocket.send_json(frame)
            except Exception:
                # Socket already gone; the receive loop performs the cleanup.
                logger.debug("dropping frame event=%s for closed connection user_id=%s", frame["event"], self.user_id)
                return


class ConnectionHub:
    def __init__(self) -> None:
        self._rooms: dict[str, set[LiveConnection]] = defaultdict(set)
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def join(self, connection: LiveConnection, room: str) -> None:
        self._rooms[room].add(connection)
        connection.rooms.add(room)

    def leave(self, connection: LiveConnection, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(connection)
            if not members:
                del self._rooms[room]
        connection.rooms.discard(room)

    def leave_all(self, connection: LiveConnection) -> None:
        for room in list(connection.rooms):
            self.leave(connection, room)

    def is_member(self, connection: LiveConnection, room: str) -> bool:
        return connection in self._rooms.get(room, ())

    def room_size(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    def emit(self, room: str, event: str, data: Any, *, exclude: Optional[LiveConnection] = None) -> int:
        delivered = 0
        for connection in list(self._rooms.get(room, ())):
            if connection is exclude:
                continue
            connection.enqueue(event, data)
            delivered += 1
        return delivered

    def publish_to_user(self, user_id: int, event: str, data: Any) -> None:
        self._call_in_loop(functools.partial(self.emit, user_room(user_id), event, data))

    def _call_in_loop(self, callback: Callable[[], Any]) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("no live event loop bound, event dropped")
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            callback()
        else:
            loop.call_soon_threadsafe(callback)
