"""
soundboard.services.room
~~~~~~~~~~~~~~~~~~~~~~~~

房间领域模型：``RoomRegistry`` 内部持有的可变房间状态。

``Room`` 只在注册表的锁内被修改，对外一律通过 ``snapshot()`` 返回不可变副本。
"""
from __future__ import annotations

from soundboard.schemas.rooms import Member, RoomSnapshot


class Room:
    """一个临时房间。

    Attributes:
        room_id: 房间码，知道房间码的人都可以加入。
        members: 按加入顺序排列的成员列表。
        created_at: 创建时间（Unix 秒）。
        last_activity: 最近一次加入 / 离开 / 播放的时间（Unix 秒）。
    """

    def __init__(self, room_id: str, now: float) -> None:
        self.room_id = room_id
        self.members: list[Member] = []
        self.created_at = now
        self.last_activity = now

    @property
    def is_empty(self) -> bool:
        return not self.members

    def index_of(self, connection_id: str) -> int | None:
        for index, member in enumerate(self.members):
            if member.connection_id == connection_id:
                return index
        return None

    def upsert_member(self, connection_id: str, display_name: str, now: float) -> Member:
        """新增成员；同一连接重复加入时原地更新昵称与活动时间。"""
        member = Member(connection_id=connection_id, display_name=display_name, last_activity=now)
        index = self.index_of(connection_id)
        if index is None:
            self.members.append(member)
        else:
            self.members[index] = member
        self.last_activity = now
        return member

    def remove_member(self, connection_id: str, now: float) -> Member | None:
        index = self.index_of(connection_id)
        if index is None:
            return None
        self.last_activity = now
        return self.members.pop(index)

    def touch(self, now: float, connection_id: str | None = None) -> None:
        self.last_activity = now
        if connection_id is None:
            return
        index = self.index_of(connection_id)
        if index is not None:
            self.members[index] = self.members[index].model_copy(update={"last_activity": now})

    def is_idle(self, now: float, idle_threshold: float) -> bool:
        return now - self.last_activity > idle_threshold

    def snapshot(self) -> RoomSnapshot:
        """返回当前状态的不可变快照。"""
        return RoomSnapshot(
            room_id=self.room_id,
            members=tuple(self.members),
            created_at=self.created_at,
            last_activity=self.last_activity,
        )
