"""
soundboard.api.ws
~~~~~~~~~~~~~~~~~

WebSocket 实时交互接口。

每个客户端建立一条 ``/ws`` 连接，之后通过 JSON 事件帧创建 / 加入 / 离开房间
和广播音效播放，详见 ``soundboard.schemas.events``。

消息协议:
  - 入站 ``create-room`` / ``join-room`` / ``play-sound`` / ``leave-room``
  - 出站 ``room-joined`` / ``room-error`` / ``room-updated`` / ``play-sound``
"""
from __future__ import annotations

import anyio
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from soundboard.core.cors import is_origin_allowed
from soundboard.core.logging import connection_id_ctx_var, get_logger
from soundboard.core.settings import settings
from soundboard.services.connection_hub import ConnectionHub
from soundboard.services.event_dispatcher import EventDispatcher

logger = get_logger(__name__)

router: APIRouter = APIRouter()


@router.websocket("/ws")
async def soundboard_endpoint(websocket: WebSocket) -> None:
    """WebSocket 音效板端点。

    连接断开（无论正常还是异常）时，自动把该连接从所有房间中移除，
    并通知各房间的剩余成员。

    Args:
        websocket: FastAPI WebSocket 连接对象。
    """
    origin = websocket.headers.get("origin")
    if not is_origin_allowed(origin, settings):
        logger.warning("WebSocket 来源被拒绝 | origin=%s", origin)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    hub: ConnectionHub = websocket.app.state.hub
    dispatcher: EventDispatcher = websocket.app.state.dispatcher

    connection = await hub.connect(websocket)
    token = connection_id_ctx_var.set(connection.connection_id)
    logger.info("连接建立 | 在线: %d", hub.online_count)

    try:
        while True:
            raw: str = await websocket.receive_text()
            await dispatcher.dispatch(connection, raw)
    except WebSocketDisconnect:
        pass  # 正常断开
    except Exception as e:
        logger.error("WebSocket 异常: %s", e, exc_info=True)
    finally:
        hub.disconnect(connection.connection_id)
        # 端点任务被取消（客户端强断、服务关闭）时也要通知剩余成员
        with anyio.CancelScope(shield=True):
            await dispatcher.handle_disconnect(connection)
        logger.info("连接断开 | 在线: %d", hub.online_count)
        connection_id_ctx_var.reset(token)
