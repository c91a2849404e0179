"""
soundboard.services.room_registry
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

房间注册表：房间存在性与成员关系的唯一数据源。

注册表在 FastAPI lifespan 中创建一次并挂载到 ``app.state``，
由各个连接处理器和空闲清理任务共享同一个实例。

所有修改操作由一把全局锁串行化，读取操作一律返回快照副本，
调用方遍历成员列表时不会观察到并发修改。
"""
from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Callable

from soundboard.core.errors import RoomAlreadyExists, RoomNotFound
from soundboard.core.logging import get_logger
from soundboard.schemas.rooms import Departure, Member, RoomSnapshot
from soundboard.services.room import Room

logger = get_logger(__name__)

Clock = Callable[[], float]


class RoomRegistry:
    """内存中的房间表。

    - ``create_room()``                      → 显式创建房间，创建者成为第一个成员
    - ``join_room()``                        → 加入已存在的房间（重复加入原地更新）
    - ``*_and_detach()``                     → 同上，并返回因此离开的旧房间记录
    - ``leave_room()``                       → 离开房间，房间空了立即删除
    - ``remove_connection_from_all_rooms()`` → 断开连接时的隐式离开
    - ``touch_activity()``                   → 刷新房间活动时间
    - ``sweep_idle()``                       → 清理长时间无活动的房间

    一个连接同一时刻最多属于一个房间：创建或加入新房间会先离开之前的房间。

    Attributes:
        clock: 时间源，默认 ``time.time``，测试中可替换为假时钟。
    """

    def __init__(self, clock: Clock = time.time) -> None:
        self.clock: Clock = clock
        self._rooms: dict[str, Room] = {}
        self._lock = threading.RLock()

    # ── 生命周期 ──────────────────────────────────────────────────────

    def create_room(self, room_id: str, connection_id: str, creator_name: str) -> RoomSnapshot:
        """创建房间并把创建者登记为第一个成员。

        Raises:
            RoomAlreadyExists: 房间码已被占用。
        """
        room, _ = self.create_room_and_detach(room_id, connection_id, creator_name)
        return room

    def create_room_and_detach(
        self, room_id: str, connection_id: str, creator_name: str,
    ) -> tuple[RoomSnapshot, list[Departure]]:
        """同 ``create_room()``，另外返回创建者因此离开的旧房间记录。

        存在性检查、离开旧房间与创建在同一次加锁内完成。
        """
        with self._lock:
            if room_id in self._rooms:
                raise RoomAlreadyExists(room_id)
            departures = self._detach(connection_id)
            now = self.clock()
            room = Room(room_id, now)
            room.upsert_member(connection_id, creator_name, now)
            self._rooms[room_id] = room
            logger.info("房间已创建 | room=%s | creator=%s", room_id, creator_name)
            return room.snapshot(), departures

    def join_room(self, room_id: str, connection_id: str, display_name: str) -> list[Member]:
        """加入已存在的房间，返回按加入顺序排列的完整成员列表。

        同一连接重复加入同一房间时只更新昵称和活动时间，不会产生重复成员。

        Raises:
            RoomNotFound: 房间不存在（加入未知房间码属于用户错误，不会自动创建）。
        """
        members, _ = self.join_room_and_detach(room_id, connection_id, display_name)
        return members

    def join_room_and_detach(
        self, room_id: str, connection_id: str, display_name: str,
    ) -> tuple[list[Member], list[Departure]]:
        """同 ``join_room()``，另外返回加入者因此离开的旧房间记录。"""
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                raise RoomNotFound(room_id)
            departures = self._detach(connection_id, keep=room_id)
            room.upsert_member(connection_id, display_name, self.clock())
            logger.info(
                "成员加入房间 | room=%s | name=%s | 成员数: %d",
                room_id, display_name, len(room.members),
            )
            return list(room.members), departures

    def leave_room(self, room_id: str, connection_id: str) -> Departure | None:
        """离开房间。房间或成员不存在时为空操作，返回 ``None``。"""
        with self._lock:
            return self._remove_member(room_id, connection_id)

    def remove_connection_from_all_rooms(self, connection_id: str) -> list[Departure]:
        """把连接从所有房间中移除（断开连接时调用，幂等）。

        Returns:
            每个受影响房间各一条离开记录，用于通知剩余成员。
        """
        with self._lock:
            return self._detach(connection_id)

    def touch_activity(self, room_id: str, connection_id: str | None = None) -> None:
        """刷新房间（以及可选的成员）活动时间。房间不存在时为空操作。"""
        with self._lock:
            room = self._rooms.get(room_id)
            if room is not None:
                room.touch(self.clock(), connection_id)

    def sweep_idle(self, idle_threshold: float, now: float | None = None) -> list[str]:
        """删除 ``now - last_activity`` 超过阈值的所有房间，无论是否仍有成员。

        Returns:
            被删除的房间 ID 列表。
        """
        now = self.clock() if now is None else now
        with self._lock:
            expired = [
                room_id for room_id, room in self._rooms.items()
                if room.is_idle(now, idle_threshold)
            ]
            for room_id in expired:
                del self._rooms[room_id]
        return expired

    # ── 查询 ──────────────────────────────────────────────────────────

    def get_room(self, room_id: str) -> RoomSnapshot | None:
        with self._lock:
            room = self._rooms.get(room_id)
            return room.snapshot() if room is not None else None

    def rooms_of(self, connection_id: str) -> list[str]:
        """返回包含该连接的房间 ID 列表（正常情况下至多一个）。"""
        with self._lock:
            return [
                room_id for room_id, room in self._rooms.items()
                if room.index_of(connection_id) is not None
            ]

    @property
    def room_count(self) -> int:
        with self._lock:
            return len(self._rooms)

    def generate_room_id(self) -> str:
        """生成一个当前未被占用的 8 位十六进制房间码。"""
        with self._lock:
            while True:
                room_id = uuid.uuid4().hex[:8]
                if room_id not in self._rooms:
                    return room_id

    # ── 内部实现（调用方必须持有锁）──────────────────────────────────

    def _remove_member(self, room_id: str, connection_id: str) -> Departure | None:
        room = self._rooms.get(room_id)
        if room is None:
            return None
        member = room.remove_member(connection_id, self.clock())
        if member is None:
            return None
        if room.is_empty:
            del self._rooms[room_id]
            logger.info("房间已空，删除 | room=%s", room_id)
        return Departure(room_id=room_id, remaining=tuple(room.members), member=member)

    def _detach(self, connection_id: str, keep: str | None = None) -> list[Departure]:
        departures: list[Departure] = []
        for room_id in list(self._rooms):
            if room_id == keep:
                continue
            departure = self._remove_member(room_id, connection_id)
            if departure is not None:
                departures.append(departure)
        return departures
