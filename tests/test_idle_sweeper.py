"""
tests.test_idle_sweeper
~~~~~~~~~~~~~~~~~~~~~~~

IdleSweeper 测试：单次清理与后台任务的启动 / 停止。
"""
from __future__ import annotations

import asyncio

import pytest

from soundboard.services.idle_sweeper import IdleSweeper


class TestIdleSweeper:

    def test_run_once_removes_only_idle_rooms(self, registry, clock) -> None:
        registry.create_room("old", "conn-a", "Alice")
        clock.advance(31 * 60)
        registry.create_room("new", "conn-b", "Bob")

        sweeper = IdleSweeper(registry, interval=300, idle_threshold=30 * 60)
        removed = sweeper.run_once()

        assert removed == ["old"]
        assert registry.get_room("new") is not None

    def test_activity_keeps_room_alive(self, registry, clock) -> None:
        registry.create_room("room", "conn-a", "Alice")
        clock.advance(20 * 60)
        registry.touch_activity("room")
        clock.advance(20 * 60)

        sweeper = IdleSweeper(registry, interval=300, idle_threshold=30 * 60)

        assert sweeper.run_once() == []
        assert registry.get_room("room") is not None

    @pytest.mark.asyncio
    async def test_background_task_sweeps_periodically(self, registry, clock) -> None:
        registry.create_room("room", "conn-a", "Alice")
        clock.advance(3600)

        sweeper = IdleSweeper(registry, interval=0.01, idle_threshold=60)
        sweeper.start()
        try:
            for _ in range(100):
                if registry.room_count == 0:
                    break
                await asyncio.sleep(0.01)
            assert sweeper.running
        finally:
            await sweeper.stop()

        assert registry.room_count == 0
        assert not sweeper.running

    @pytest.mark.asyncio
    async def test_stop_without_start(self, registry) -> None:
        sweeper = IdleSweeper(registry, interval=1, idle_threshold=1)
        await sweeper.stop()
        assert not sweeper.running
