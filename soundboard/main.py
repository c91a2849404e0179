"""
soundboard.main
~~~~~~~~~~~~~~~

FastAPI 应用入口：注册路由、挂载中间件、定义生命周期。
"""
from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from soundboard.api import rooms, sounds, ws
from soundboard.core.cors import split_origins
from soundboard.core.logging import get_logger, setup_logging
from soundboard.core.rate_limit import WebSocketRateLimiter, limiter
from soundboard.core.settings import settings
from soundboard.schemas.api_response import ApiResponse
from soundboard.services.broadcast_relay import BroadcastRelay
from soundboard.services.connection_hub import ConnectionHub
from soundboard.services.event_dispatcher import EventDispatcher
from soundboard.services.idle_sweeper import IdleSweeper
from soundboard.services.room_registry import RoomRegistry
from soundboard.services.sound_catalog import SoundCatalog

# 初始化日志系统（必须在其他模块之前）
setup_logging()
logger = get_logger(__name__)

# 音效目录在挂载静态文件前必须存在
sound_catalog = SoundCatalog(settings.sounds_path, url_prefix=settings.SOUNDS_URL_PREFIX)
sound_catalog.ensure_directory()


# ── 生命周期 ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期钩子：创建房间注册表及其协作者，启动空闲清理任务。"""
    # ── 启动 ──
    registry = RoomRegistry()
    hub = ConnectionHub()
    relay = BroadcastRelay(registry, hub)
    app.state.registry = registry
    app.state.hub = hub
    app.state.dispatcher = EventDispatcher(
        registry,
        hub,
        relay,
        play_limiter=WebSocketRateLimiter(interval_seconds=settings.WS_PLAY_SOUND_MIN_INTERVAL),
    )
    app.state.sound_catalog = sound_catalog

    sweeper = IdleSweeper(
        registry,
        interval=settings.ROOM_SWEEP_INTERVAL,
        idle_threshold=settings.ROOM_IDLE_TIMEOUT,
    )
    sweeper.start()
    app.state.sweeper = sweeper

    logger.info(
        "🚀 应用已启动 | env=%s | debug=%s | log_level=%s | sounds=%s",
        settings.ENVIRONMENT,
        settings.debug,
        settings.effective_log_level,
        settings.sounds_path,
    )
    yield
    # ── 关闭 ──
    await sweeper.stop()
    logger.info("👋 应用已关闭")


# ── 创建 FastAPI 实例 ─────────────────────────────────────────────────

app: FastAPI = FastAPI(
    title=settings.PROJECT_NAME,
    description="多人音效板房间与广播转发服务",
    version=settings.VERSION,
    debug=settings.debug,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ── CORS 中间件 ───────────────────────────────────────────────────────
if settings.allow_cors_all_origins:
    # dev / test 环境：允许所有来源，方便本地调试
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    # prod 环境：仅允许 ALLOWED_ORIGINS 中的来源（通配条目转为正则）
    exact_origins, origin_regex = split_origins(settings.ALLOWED_ORIGINS)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=exact_origins,
        allow_origin_regex=origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

# ── 路由挂载 ──────────────────────────────────────────────────────────
app.include_router(sounds.router, prefix="/api", tags=["Sounds"])
app.include_router(rooms.router, prefix="/api", tags=["Rooms"])
app.include_router(ws.router, tags=["WebSocket"])
app.mount(
    settings.SOUNDS_URL_PREFIX,
    StaticFiles(directory=settings.sounds_path),
    name="sounds",
)


# ── 全局异常处理器 ────────────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """捕获所有未处理异常，返回统一的 ApiResponse.fail() 格式。"""
    logger.error("未捕获异常: %s %s -> %s", request.method, request.url, exc, exc_info=True)
    # 非 prod 环境返回详细错误信息，prod 环境隐藏内部细节
    detail = str(exc) if not settings.is_prod else "Internal server error"
    response = ApiResponse.fail(msg=detail, code=500, data=None)
    return JSONResponse(
        status_code=500,
        content=response.model_dump(),
    )


@app.get("/health", tags=["System"])
async def health_check(request: Request) -> JSONResponse:
    """验证服务是否正常运行。

    Returns:
        包含服务状态与当前房间 / 连接数的 JSON 响应。
    """
    return JSONResponse(
        content={
            "status": "ok",
            "environment": settings.ENVIRONMENT,
            "rooms": request.app.state.registry.room_count,
            "connections": request.app.state.hub.online_count,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "soundboard.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.reload,  # 仅 dev 环境开启热重载
        log_level=settings.effective_log_level.lower(),
    )
