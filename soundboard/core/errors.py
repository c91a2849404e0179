"""
soundboard.core.errors
~~~~~~~~~~~~~~~~~~~~~~

房间 / 广播核心的业务异常。

请求类事件（create-room、join-room）的异常会以 ``room-error`` 事件回复给请求方；
即发即弃类事件（play-sound、leave-room、断开连接）的异常只记录日志。
"""
from __future__ import annotations


class SoundboardError(Exception):
    """所有业务异常的基类。

    Attributes:
        code: 稳定的错误码，随 ``room-error`` 一起下发给客户端。
        message: 人类可读的错误描述。
    """

    code: str = "SOUNDBOARD_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RoomAlreadyExists(SoundboardError):
    code = "ROOM_ALREADY_EXISTS"

    def __init__(self, room_id: str) -> None:
        super().__init__(f"Room {room_id} already exists")
        self.room_id = room_id


class RoomNotFound(SoundboardError):
    code = "ROOM_NOT_FOUND"

    def __init__(self, room_id: str) -> None:
        super().__init__(f"Room {room_id} not found")
        self.room_id = room_id


class NotAMember(SoundboardError):
    code = "NOT_A_MEMBER"

    def __init__(self, room_id: str, connection_id: str) -> None:
        super().__init__(f"Connection {connection_id} is not a member of room {room_id}")
        self.room_id = room_id
        self.connection_id = connection_id


class InvalidPayload(SoundboardError):
    code = "INVALID_PAYLOAD"
