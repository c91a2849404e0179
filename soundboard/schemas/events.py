"""
soundboard.schemas.events
~~~~~~~~~~~~~~~~~~~~~~~~~

WebSocket 事件协议模型。

每一帧都是 ``{"event": <事件名>, "data": <负载>}`` 形式的 JSON 文本，
负载字段使用 camelCase。
"""
from __future__ import annotations

import time
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, StringConstraints, field_validator

from soundboard.core.settings import settings
from soundboard.schemas.base import CamelModel
from soundboard.schemas.rooms import MemberData

RoomId = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]
SoundId = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=128)]

RoomAction = Literal["create", "join", "leave", "disconnect"]

# ── 事件名 ────────────────────────────────────────────────────────────

CREATE_ROOM = "create-room"
JOIN_ROOM = "join-room"
PLAY_SOUND = "play-sound"
LEAVE_ROOM = "leave-room"
ROOM_JOINED = "room-joined"
ROOM_ERROR = "room-error"
ROOM_UPDATED = "room-updated"


def now_millis() -> int:
    """当前 Unix 毫秒时间戳（与浏览器 ``Date.now()`` 同单位）。"""
    return int(time.time() * 1000)


class EventEnvelope(BaseModel):
    """WebSocket 帧的外层信封。"""

    event: str = Field(..., min_length=1, description="事件名")
    data: dict[str, Any] | str = Field(default_factory=dict, description="事件负载（join-room 兼容裸房间码字符串）")


# ── 入站负载 ──────────────────────────────────────────────────────────

class RoomEntryPayload(CamelModel):
    """``create-room`` / ``join-room`` 的负载。"""

    room_id: RoomId
    user_name: str | None = Field(default=None, max_length=64, validate_default=True)

    @field_validator("user_name")
    @classmethod
    def _default_user_name(cls, value: str | None) -> str:
        # 未提供或为空白时沿用默认昵称
        if value is None or not value.strip():
            return settings.DEFAULT_USER_NAME
        return value.strip()


class PlaySoundPayload(CamelModel):
    room_id: RoomId
    sound_id: SoundId
    timestamp: int | float = Field(default_factory=now_millis, description="发送方播放时刻（毫秒）")


class LeaveRoomPayload(CamelModel):
    room_id: RoomId


# ── 出站事件 ──────────────────────────────────────────────────────────

class RoomJoinedEvent(CamelModel):
    """仅发给加入者本人：确认加入并告知分配到的连接 ID。"""

    room_id: str
    connection_id: str
    user_name: str
    members: list[MemberData]


class RoomErrorEvent(CamelModel):
    message: str
    code: str


class RoomUpdatedEvent(CamelModel):
    """成员变化后发给房间内所有当前成员。"""

    room_id: str
    members: list[MemberData]
    action: RoomAction
    affected_member: MemberData


class PlaySoundEvent(CamelModel):
    """转发给除发送方以外的所有房间成员。"""

    sound_id: str
    timestamp: int | float
    sender_connection_id: str
    sender_name: str
