"""
soundboard.services.idle_sweeper
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

空闲房间清理：周期性删除长时间无活动的房间。

这是兜底机制：连接在没有干净断开信号的情况下消失时，
它留下的房间最终也会被回收。
"""
from __future__ import annotations

import asyncio
from contextlib import suppress

from soundboard.core.logging import get_logger
from soundboard.services.room_registry import RoomRegistry

logger = get_logger(__name__)


class IdleSweeper:
    """后台清理任务。由应用 lifespan 启动和停止。

    Attributes:
        registry: 共享的房间注册表。
        interval: 两次清理之间的间隔（秒）。
        idle_threshold: 房间无活动超过该时长（秒）即被删除。
    """

    def __init__(self, registry: RoomRegistry, interval: float, idle_threshold: float) -> None:
        self.registry = registry
        self.interval = interval
        self.idle_threshold = idle_threshold
        self._task: asyncio.Task[None] | None = None

    def run_once(self, now: float | None = None) -> list[str]:
        """执行一次清理，返回被删除的房间 ID。"""
        removed = self.registry.sweep_idle(self.idle_threshold, now)
        for room_id in removed:
            logger.info("房间长时间无活动，删除 | room=%s", room_id)
        return removed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.run_once()
            except Exception as e:
                logger.error("空闲房间清理失败: %s", e, exc_info=True)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run(), name="room-idle-sweeper")
            logger.debug(
                "空闲清理任务已启动 | interval=%ss | threshold=%ss",
                self.interval, self.idle_threshold,
            )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
