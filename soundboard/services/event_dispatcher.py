"""
soundboard.services.event_dispatcher
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

WebSocket 事件分发：按事件名查固定的处理表，把入站帧翻译成注册表 / 转发器调用。

事件所属房间一律取自事件负载本身（每次事件单独查询），
不在加入房间时把房间捕获进闭包，切换房间后不会残留旧的处理器。

错误处理策略:
  - 请求类事件（``create-room`` / ``join-room``）出错时向请求方回复 ``room-error``；
  - 即发即弃类事件（``play-sound`` / ``leave-room`` / 断开连接）出错时只记录日志；
  - 单个事件的意外异常不会影响其他连接，也不会破坏房间表的一致性。
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from soundboard.core.errors import (
    InvalidPayload,
    SoundboardError,
)
from soundboard.core.logging import get_logger
from soundboard.core.rate_limit import WebSocketRateLimiter
from soundboard.schemas.events import (
    CREATE_ROOM,
    JOIN_ROOM,
    LEAVE_ROOM,
    PLAY_SOUND,
    ROOM_ERROR,
    ROOM_JOINED,
    ROOM_UPDATED,
    EventEnvelope,
    LeaveRoomPayload,
    PlaySoundPayload,
    RoomAction,
    RoomEntryPayload,
    RoomErrorEvent,
    RoomJoinedEvent,
    RoomUpdatedEvent,
)
from soundboard.schemas.rooms import Departure, Member, MemberData
from soundboard.services.broadcast_relay import BroadcastRelay
from soundboard.services.connection_hub import ClientConnection, ConnectionHub
from soundboard.services.room_registry import RoomRegistry

logger = get_logger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)
EventData = dict[str, Any] | str
Handler = Callable[[ClientConnection, EventData], Awaitable[None]]

# 需要向请求方回复结果的事件
REQUEST_EVENTS: frozenset[str] = frozenset({CREATE_ROOM, JOIN_ROOM})


def parse_payload(model: type[PayloadT], event: str, data: EventData) -> PayloadT:
    """校验事件负载，失败时转换为 ``InvalidPayload``。"""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'data'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidPayload(f"Invalid {event} payload: {details}") from e


def _member_list(members: tuple[Member, ...] | list[Member]) -> list[MemberData]:
    return [MemberData.from_member(m) for m in members]


class EventDispatcher:
    """固定分发表 + 各事件处理器。

    Attributes:
        registry: 共享的房间注册表。
        hub: 连接中心，用于回复和广播。
        relay: 音效播放转发器。
        play_limiter: 按连接限制 ``play-sound`` 频率。
    """

    def __init__(
        self,
        registry: RoomRegistry,
        hub: ConnectionHub,
        relay: BroadcastRelay,
        play_limiter: WebSocketRateLimiter | None = None,
    ) -> None:
        self.registry = registry
        self.hub = hub
        self.relay = relay
        self.play_limiter = play_limiter or WebSocketRateLimiter(interval_seconds=0)
        self._handlers: dict[str, Handler] = {
            CREATE_ROOM: self._on_create_room,
            JOIN_ROOM: self._on_join_room,
            PLAY_SOUND: self._on_play_sound,
            LEAVE_ROOM: self._on_leave_room,
        }

    # ── 入口 ──────────────────────────────────────────────────────────

    async def dispatch(self, connection: ClientConnection, raw: str) -> None:
        """处理一帧入站文本。"""
        try:
            envelope = EventEnvelope.model_validate_json(raw)
        except ValidationError:
            logger.warning("无法解析的事件帧: %.120s", raw)
            await self._reply_error(connection, InvalidPayload("Malformed event frame"))
            return

        handler = self._handlers.get(envelope.event)
        if handler is None:
            logger.warning("未知事件 | event=%s", envelope.event)
            await self._reply_error(connection, InvalidPayload(f"Unknown event: {envelope.event}"))
            return

        try:
            await handler(connection, envelope.data)
        except SoundboardError as e:
            if envelope.event in REQUEST_EVENTS:
                logger.info("请求失败 | event=%s | %s", envelope.event, e.message)
                await self._reply_error(connection, e)
            else:
                logger.info("忽略事件 | event=%s | %s", envelope.event, e.message)
        except Exception as e:
            logger.error("事件处理异常 | event=%s | %s", envelope.event, e, exc_info=True)
            if envelope.event in REQUEST_EVENTS:
                await self._reply_error(connection, SoundboardError("Internal server error"))

    async def handle_disconnect(self, connection: ClientConnection) -> None:
        """连接断开时的隐式离开。对从未加入过房间的连接是空操作。"""
        self.play_limiter.remove_client(connection.connection_id)
        departures = self.registry.remove_connection_from_all_rooms(connection.connection_id)
        await self._notify_departures(departures, "disconnect")

    # ── 事件处理器 ────────────────────────────────────────────────────

    async def _on_create_room(self, connection: ClientConnection, data: EventData) -> None:
        payload = parse_payload(RoomEntryPayload, CREATE_ROOM, data)
        room, departures = self.registry.create_room_and_detach(
            payload.room_id, connection.connection_id, payload.user_name,
        )
        creator = room.members[0]

        await self.hub.send(
            connection.connection_id,
            ROOM_JOINED,
            RoomJoinedEvent(
                room_id=room.room_id,
                connection_id=connection.connection_id,
                user_name=creator.display_name,
                members=_member_list(room.members),
            ),
        )
        await self._broadcast_membership(room.room_id, room.members, "create", creator)
        await self._notify_departures(departures, "leave")

    async def _on_join_room(self, connection: ClientConnection, data: EventData) -> None:
        if isinstance(data, str):
            # 旧客户端直接发送房间码字符串
            data = {"roomId": data}
        payload = parse_payload(RoomEntryPayload, JOIN_ROOM, data)
        members, departures = self.registry.join_room_and_detach(
            payload.room_id, connection.connection_id, payload.user_name,
        )
        joined = next(m for m in members if m.connection_id == connection.connection_id)

        await self.hub.send(
            connection.connection_id,
            ROOM_JOINED,
            RoomJoinedEvent(
                room_id=payload.room_id,
                connection_id=connection.connection_id,
                user_name=joined.display_name,
                members=_member_list(members),
            ),
        )
        await self._broadcast_membership(payload.room_id, members, "join", joined)
        await self._notify_departures(departures, "leave")

    async def _on_play_sound(self, connection: ClientConnection, data: EventData) -> None:
        payload = parse_payload(PlaySoundPayload, PLAY_SOUND, data)
        # 只对能送达的事件计数：无效或发错房间的事件不占用发送方的名额
        room = self.registry.get_room(payload.room_id)
        is_member = room is not None and room.find_member(connection.connection_id) is not None
        if is_member and not self.play_limiter.is_allowed(connection.connection_id):
            logger.debug("play-sound 过于频繁，丢弃 | room=%s", payload.room_id)
            return
        await self.relay.relay_play_sound(
            payload.room_id, connection.connection_id, payload.sound_id, payload.timestamp,
        )

    async def _on_leave_room(self, connection: ClientConnection, data: EventData) -> None:
        payload = parse_payload(LeaveRoomPayload, LEAVE_ROOM, data)
        departure = self.registry.leave_room(payload.room_id, connection.connection_id)
        if departure is None:
            logger.debug("leave-room 无效：不在房间中 | room=%s", payload.room_id)
            return
        await self._notify_departures([departure], "leave")

    # ── 推送 ──────────────────────────────────────────────────────────

    async def _reply_error(self, connection: ClientConnection, error: SoundboardError) -> None:
        await self.hub.send(
            connection.connection_id,
            ROOM_ERROR,
            RoomErrorEvent(message=error.message, code=error.code),
        )

    async def _broadcast_membership(
        self,
        room_id: str,
        members: tuple[Member, ...] | list[Member],
        action: RoomAction,
        affected: Member,
    ) -> None:
        event = RoomUpdatedEvent(
            room_id=room_id,
            members=_member_list(members),
            action=action,
            affected_member=MemberData.from_member(affected),
        )
        await self.hub.send_many([m.connection_id for m in members], ROOM_UPDATED, event)

    async def _notify_departures(self, departures: list[Departure], action: RoomAction) -> None:
        for departure in departures:
            logger.info(
                "成员离开房间 | room=%s | name=%s | action=%s | 剩余: %d",
                departure.room_id, departure.member.display_name, action, len(departure.remaining),
            )
            if departure.room_deleted:
                continue
            await self._broadcast_membership(
                departure.room_id, departure.remaining, action, departure.member,
            )
