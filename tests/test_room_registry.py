"""
tests.test_room_registry
~~~~~~~~~~~~~~~~~~~~~~~~

RoomRegistry 单元测试：房间生命周期、成员唯一性、隐式离开与空闲清理。
"""
from __future__ import annotations

import threading

import pytest

from soundboard.core.errors import RoomAlreadyExists, RoomNotFound
from soundboard.services.room_registry import RoomRegistry


def member_ids(members) -> list[str]:
    return [m.connection_id for m in members]


class TestCreateRoom:
    """测试显式创建房间。"""

    def test_creator_is_first_member(self, registry: RoomRegistry, clock) -> None:
        room = registry.create_room("ab12cd34", "conn-a", "Alice")

        assert room.room_id == "ab12cd34"
        assert member_ids(room.members) == ["conn-a"]
        assert room.members[0].display_name == "Alice"
        assert room.created_at == clock.now
        assert room.last_activity == clock.now

    def test_duplicate_room_id_rejected(self, registry: RoomRegistry) -> None:
        registry.create_room("ab12cd34", "conn-a", "Alice")

        with pytest.raises(RoomAlreadyExists):
            registry.create_room("ab12cd34", "conn-b", "Bob")

        room = registry.get_room("ab12cd34")
        assert member_ids(room.members) == ["conn-a"]

    def test_create_leaves_previous_room(self, registry: RoomRegistry) -> None:
        registry.create_room("first", "conn-a", "Alice")
        registry.join_room("first", "conn-b", "Bob")

        registry.create_room("second", "conn-a", "Alice")

        assert member_ids(registry.get_room("first").members) == ["conn-b"]
        assert registry.rooms_of("conn-a") == ["second"]

    def test_create_and_detach_reports_previous_room(self, registry: RoomRegistry) -> None:
        registry.create_room("first", "conn-a", "Alice")
        registry.join_room("first", "conn-b", "Bob")

        room, departures = registry.create_room_and_detach("second", "conn-a", "Alice")

        assert room.room_id == "second"
        assert [d.room_id for d in departures] == ["first"]
        assert departures[0].member.connection_id == "conn-a"
        assert member_ids(departures[0].remaining) == ["conn-b"]

    def test_duplicate_create_keeps_previous_room(self, registry: RoomRegistry) -> None:
        """创建失败时不会把创建者从原房间移走。"""
        registry.create_room("first", "conn-a", "Alice")
        registry.create_room("taken", "conn-b", "Bob")

        with pytest.raises(RoomAlreadyExists):
            registry.create_room_and_detach("taken", "conn-a", "Alice")

        assert registry.rooms_of("conn-a") == ["first"]


class TestJoinRoom:
    """测试加入房间。"""

    def test_join_unknown_room_fails(self, registry: RoomRegistry) -> None:
        with pytest.raises(RoomNotFound):
            registry.join_room("missing", "conn-a", "Alice")
        assert registry.get_room("missing") is None

    def test_join_appends_in_order(self, registry: RoomRegistry) -> None:
        registry.create_room("room", "conn-a", "Alice")
        registry.join_room("room", "conn-b", "Bob")
        members = registry.join_room("room", "conn-c", "Carol")

        assert member_ids(members) == ["conn-a", "conn-b", "conn-c"]

    def test_rejoin_updates_name_in_place(self, registry: RoomRegistry, clock) -> None:
        """重复加入只更新昵称和活动时间，不增加成员数。"""
        registry.create_room("room", "conn-a", "Alice")
        registry.join_room("room", "conn-b", "Bob")
        clock.advance(10)

        members = registry.join_room("room", "conn-b", "Bobby")

        assert member_ids(members) == ["conn-a", "conn-b"]
        assert members[1].display_name == "Bobby"
        assert members[1].last_activity == clock.now
        assert registry.get_room("room").last_activity == clock.now

    def test_join_moves_connection_between_rooms(self, registry: RoomRegistry) -> None:
        registry.create_room("one", "conn-a", "Alice")
        registry.join_room("one", "conn-b", "Bob")
        registry.create_room("two", "conn-c", "Carol")

        registry.join_room("two", "conn-b", "Bob")

        assert member_ids(registry.get_room("one").members) == ["conn-a"]
        assert member_ids(registry.get_room("two").members) == ["conn-c", "conn-b"]
        assert registry.rooms_of("conn-b") == ["two"]

    def test_join_and_detach_reports_only_other_rooms(self, registry: RoomRegistry) -> None:
        registry.create_room("one", "conn-a", "Alice")
        registry.join_room("one", "conn-b", "Bob")
        registry.create_room("two", "conn-c", "Carol")

        members, departures = registry.join_room_and_detach("two", "conn-b", "Bob")
        assert member_ids(members) == ["conn-c", "conn-b"]
        assert [d.room_id for d in departures] == ["one"]

        # 重复加入当前房间不产生离开记录
        _, departures = registry.join_room_and_detach("two", "conn-b", "Bobby")
        assert departures == []

    def test_failed_join_keeps_previous_room(self, registry: RoomRegistry) -> None:
        registry.create_room("one", "conn-a", "Alice")

        with pytest.raises(RoomNotFound):
            registry.join_room_and_detach("missing", "conn-a", "Alice")

        assert registry.rooms_of("conn-a") == ["one"]

    def test_returned_members_are_a_snapshot(self, registry: RoomRegistry) -> None:
        registry.create_room("room", "conn-a", "Alice")
        members = registry.join_room("room", "conn-b", "Bob")

        members.clear()

        assert len(registry.get_room("room").members) == 2


class TestLeaveRoom:
    """测试离开房间与空房间删除。"""

    def test_leave_removes_member(self, registry: RoomRegistry) -> None:
        registry.create_room("room", "conn-a", "Alice")
        registry.join_room("room", "conn-b", "Bob")

        departure = registry.leave_room("room", "conn-a")

        assert departure.member.display_name == "Alice"
        assert member_ids(departure.remaining) == ["conn-b"]
        assert not departure.room_deleted
        assert member_ids(registry.get_room("room").members) == ["conn-b"]

    def test_last_leave_deletes_room(self, registry: RoomRegistry) -> None:
        registry.create_room("room", "conn-a", "Alice")

        departure = registry.leave_room("room", "conn-a")

        assert departure.room_deleted
        assert registry.get_room("room") is None
        with pytest.raises(RoomNotFound):
            registry.join_room("room", "conn-b", "Bob")

    def test_leave_is_noop_when_absent(self, registry: RoomRegistry) -> None:
        registry.create_room("room", "conn-a", "Alice")

        assert registry.leave_room("missing", "conn-a") is None
        assert registry.leave_room("room", "conn-x") is None
        assert member_ids(registry.get_room("room").members) == ["conn-a"]


class TestRemoveConnection:
    """测试断开连接时的隐式离开。"""

    def test_disconnect_reports_each_room(self, registry: RoomRegistry) -> None:
        registry.create_room("room", "conn-a", "Alice")
        registry.join_room("room", "conn-b", "Bob")

        departures = registry.remove_connection_from_all_rooms("conn-a")

        assert len(departures) == 1
        assert departures[0].room_id == "room"
        assert member_ids(departures[0].remaining) == ["conn-b"]
        assert registry.get_room("room") is not None

    def test_disconnect_of_unknown_connection_is_noop(self, registry: RoomRegistry) -> None:
        registry.create_room("room", "conn-a", "Alice")

        assert registry.remove_connection_from_all_rooms("never-joined") == []
        assert registry.remove_connection_from_all_rooms("never-joined") == []
        assert registry.room_count == 1

    def test_disconnect_deletes_emptied_room(self, registry: RoomRegistry) -> None:
        registry.create_room("room", "conn-a", "Alice")

        departures = registry.remove_connection_from_all_rooms("conn-a")

        assert departures[0].room_deleted
        assert registry.room_count == 0


class TestActivityAndSweep:
    """测试活动时间与空闲清理。"""

    def test_touch_activity_updates_room_and_member(self, registry: RoomRegistry, clock) -> None:
        registry.create_room("room", "conn-a", "Alice")
        clock.advance(60)

        registry.touch_activity("room", "conn-a")

        room = registry.get_room("room")
        assert room.last_activity == clock.now
        assert room.members[0].last_activity == clock.now

    def test_touch_activity_missing_room_is_noop(self, registry: RoomRegistry) -> None:
        registry.touch_activity("missing")
        assert registry.room_count == 0

    def test_sweep_removes_idle_rooms_with_members(self, registry: RoomRegistry, clock) -> None:
        registry.create_room("stale", "conn-a", "Alice")
        registry.join_room("stale", "conn-b", "Bob")
        clock.advance(1000)
        registry.create_room("fresh", "conn-c", "Carol")
        clock.advance(900)

        removed = registry.sweep_idle(1800)

        assert removed == ["stale"]
        assert registry.get_room("stale") is None
        assert registry.get_room("fresh") is not None

    def test_sweep_with_explicit_now(self, registry: RoomRegistry, clock) -> None:
        registry.create_room("room", "conn-a", "Alice")

        assert registry.sweep_idle(1800, now=clock.now + 1800) == []
        assert registry.sweep_idle(1800, now=clock.now + 1801) == ["room"]


class TestRoomIds:
    def test_generated_ids_are_unused_hex_codes(self, registry: RoomRegistry) -> None:
        room_id = registry.generate_room_id()

        assert len(room_id) == 8
        int(room_id, 16)
        assert registry.get_room(room_id) is None


class TestConcurrency:
    """并发加入 / 离开不会产生重复成员或丢失成员。"""

    def test_concurrent_joins_are_serialized(self, registry: RoomRegistry) -> None:
        registry.create_room("room", "owner", "Owner")

        def worker(index: int) -> None:
            for _ in range(20):
                registry.join_room("room", f"conn-{index}", f"User {index}")
            registry.leave_room("room", f"conn-{index}")
            registry.join_room("room", f"conn-{index}", f"User {index}")

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        ids = member_ids(registry.get_room("room").members)
        assert len(ids) == len(set(ids)) == 9
        assert ids[0] == "owner"
