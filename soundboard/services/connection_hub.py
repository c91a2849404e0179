"""
soundboard.services.connection_hub
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

WebSocket 连接中心：维护在线连接表，并按连接 ID 投递事件。

只负责传输层：哪个连接属于哪个房间由 ``RoomRegistry`` 决定。
所有投递都是即发即弃的，发送失败只记录日志，不重试。
"""
from __future__ import annotations

import asyncio
import uuid
from collections.abc import Iterable

from fastapi import WebSocket

from soundboard.core.logging import get_logger
from soundboard.schemas.base import CamelModel

logger = get_logger(__name__)


class ClientConnection:
    """一个实时会话。

    Attributes:
        connection_id: 接入时分配的唯一标识，不会被复用。
        websocket: 底层 WebSocket 连接。
    """

    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self.connection_id = connection_id or uuid.uuid4().hex
        self.websocket = websocket


class ConnectionHub:
    """WebSocket 连接中心。

    Attributes:
        connections: 连接 ID → 在线连接。
    """

    def __init__(self) -> None:
        self.connections: dict[str, ClientConnection] = {}

    async def connect(self, websocket: WebSocket) -> ClientConnection:
        """接受新连接并登记到在线表。"""
        await websocket.accept()
        connection = ClientConnection(websocket)
        self.connections[connection.connection_id] = connection
        return connection

    def disconnect(self, connection_id: str) -> None:
        """从在线表移除连接（幂等）。"""
        self.connections.pop(connection_id, None)

    async def send(self, connection_id: str, event: str, payload: CamelModel) -> None:
        """向单个连接投递事件。连接已不在线时静默忽略。"""
        await self.send_many([connection_id], event, payload)

    async def send_many(
        self, connection_ids: Iterable[str], event: str, payload: CamelModel,
    ) -> None:
        """并发向多个连接投递同一事件。"""
        frame = {"event": event, "data": payload.to_wire()}
        targets = [
            self.connections[cid] for cid in connection_ids if cid in self.connections
        ]
        if not targets:
            return
        results = await asyncio.gather(
            *(conn.websocket.send_json(frame) for conn in targets),
            return_exceptions=True,
        )
        for conn, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning(
                    "事件投递失败 | event=%s | to=%s | err=%s",
                    event, conn.connection_id, result,
                )

    @property
    def online_count(self) -> int:
        """当前在线连接数。"""
        return len(self.connections)
