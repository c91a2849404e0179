"""
soundboard.services.broadcast_relay
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

播放事件转发：把某个连接的 "我播放了音效 X" 转发给同房间的其他成员。

转发器自身不持有状态，只通过 ``RoomRegistry`` 查询成员并刷新活动时间。
"""
from __future__ import annotations

from soundboard.core.errors import NotAMember, RoomNotFound
from soundboard.core.logging import get_logger
from soundboard.schemas.events import PLAY_SOUND, PlaySoundEvent
from soundboard.services.connection_hub import ConnectionHub
from soundboard.services.room_registry import RoomRegistry

logger = get_logger(__name__)


class BroadcastRelay:
    """音效播放转发器。

    Attributes:
        registry: 共享的房间注册表。
        hub: 负责实际投递的连接中心。
    """

    def __init__(self, registry: RoomRegistry, hub: ConnectionHub) -> None:
        self.registry = registry
        self.hub = hub

    async def relay_play_sound(
        self,
        room_id: str,
        connection_id: str,
        sound_id: str,
        timestamp: int | float,
    ) -> list[str]:
        """把播放事件转发给房间内除发送方以外的每个成员，各一次。

        投递是即发即弃的：没有确认、没有重试。

        Returns:
            本次投递的目标连接 ID 列表。

        Raises:
            RoomNotFound: 房间不存在。
            NotAMember: 发送方不在该房间中。
        """
        room = self.registry.get_room(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        sender = room.find_member(connection_id)
        if sender is None:
            raise NotAMember(room_id, connection_id)

        self.registry.touch_activity(room_id, connection_id)

        recipients = [
            member.connection_id
            for member in room.members
            if member.connection_id != connection_id
        ]
        event = PlaySoundEvent(
            sound_id=sound_id,
            timestamp=timestamp,
            sender_connection_id=connection_id,
            sender_name=sender.display_name,
        )
        await self.hub.send_many(recipients, PLAY_SOUND, event)
        logger.info(
            "转发音效 | room=%s | sound=%s | from=%s | 接收人数: %d",
            room_id, sound_id, sender.display_name, len(recipients),
        )
        return recipients
