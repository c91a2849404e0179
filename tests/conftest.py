"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures：假时钟、假 WebSocket 连接，以及隔离的音效目录，
使单元测试无需真实网络连接即可运行。
"""
from __future__ import annotations

import os
import tempfile
from typing import Any
from unittest.mock import AsyncMock

import pytest

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SOUNDS_DIR", tempfile.mkdtemp(prefix="soundboard-sounds-"))
os.environ.setdefault("WS_PLAY_SOUND_MIN_INTERVAL", "0")

from soundboard.services.connection_hub import ClientConnection, ConnectionHub  # noqa: E402
from soundboard.services.room_registry import RoomRegistry  # noqa: E402


class FakeClock:
    """可手动推进的时钟，替代 ``time.time``。"""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_connection(hub: ConnectionHub, connection_id: str) -> ClientConnection:
    """登记一个假连接，其 ``send_json`` 调用会被记录下来。"""
    websocket = AsyncMock()
    connection = ClientConnection(websocket, connection_id=connection_id)
    hub.connections[connection_id] = connection
    return connection


def sent_frames(connection: ClientConnection) -> list[dict[str, Any]]:
    """取出该连接收到的所有事件帧。"""
    return [call.args[0] for call in connection.websocket.send_json.call_args_list]


def sent_events(connection: ClientConnection) -> list[str]:
    return [frame["event"] for frame in sent_frames(connection)]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def registry(clock: FakeClock) -> RoomRegistry:
    return RoomRegistry(clock=clock)


@pytest.fixture()
def hub() -> ConnectionHub:
    return ConnectionHub()
