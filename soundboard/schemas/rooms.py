"""
soundboard.schemas.rooms
~~~~~~~~~~~~~~~~~~~~~~~~

房间注册表对外暴露的只读快照模型。

注册表内部状态从不以引用形式外泄，所有读取操作都返回这里定义的不可变副本。
"""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from soundboard.schemas.base import CamelModel


class Member(BaseModel):
    """某个连接在某个房间中的成员记录。"""

    model_config = ConfigDict(frozen=True)

    connection_id: str = Field(..., description="连接唯一标识")
    display_name: str = Field(..., description="用户自定义昵称")
    last_activity: float = Field(..., description="最近活动时间（Unix 秒）")


class RoomSnapshot(BaseModel):
    """房间在某一时刻的快照。"""

    model_config = ConfigDict(frozen=True)

    room_id: str
    members: tuple[Member, ...] = ()
    created_at: float
    last_activity: float

    def find_member(self, connection_id: str) -> Member | None:
        """按连接 ID 查找成员。"""
        for member in self.members:
            if member.connection_id == connection_id:
                return member
        return None


class Departure(BaseModel):
    """一次离开房间的记录，用于向剩余成员推送 ``room-updated``。"""

    model_config = ConfigDict(frozen=True)

    room_id: str
    remaining: tuple[Member, ...] = ()
    member: Member

    @property
    def room_deleted(self) -> bool:
        """离开后房间是否因为空了而被删除。"""
        return not self.remaining


class MemberData(CamelModel):
    """下发给客户端的成员信息。"""

    connection_id: str = Field(..., description="连接唯一标识")
    display_name: str = Field(..., description="昵称")

    @classmethod
    def from_member(cls, member: Member) -> MemberData:
        return cls(connection_id=member.connection_id, display_name=member.display_name)


class RoomInfoData(CamelModel):
    """房间摘要信息（HTTP 查询用）。"""

    room_id: str = Field(..., description="房间唯一标识")
    member_count: int = Field(..., description="当前成员数")
    created_at: float = Field(..., description="创建时间（Unix 秒）")
    last_activity: float = Field(..., description="最近活动时间（Unix 秒）")

    @classmethod
    def from_snapshot(cls, room: RoomSnapshot) -> RoomInfoData:
        return cls(
            room_id=room.room_id,
            member_count=len(room.members),
            created_at=room.created_at,
            last_activity=room.last_activity,
        )


class NewRoomCodeData(CamelModel):
    room_id: str = Field(..., description="当前未被占用的房间码")
