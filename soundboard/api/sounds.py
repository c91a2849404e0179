"""
soundboard.api.sounds
~~~~~~~~~~~~~~~~~~~~~

音效目录 REST 接口。客户端在会话开始时拉取一次。

端点:
  - ``GET /sounds`` → 获取可播放的音效列表
"""
from fastapi import APIRouter, Depends, Request

from soundboard.api.deps import get_sound_catalog
from soundboard.core.rate_limit import limiter
from soundboard.schemas.api_response import ApiResponse
from soundboard.schemas.sounds import SoundInfo
from soundboard.services.sound_catalog import SoundCatalog

router: APIRouter = APIRouter()


@router.get("/sounds", summary="获取音效列表", response_model=ApiResponse[list[SoundInfo]])
@limiter.limit("10/second")
async def list_sounds(request: Request, catalog: SoundCatalog = Depends(get_sound_catalog)):
    """返回音效目录中所有音频文件的 ``{id, displayName, url}``。"""
    return ApiResponse.ok(data=catalog.list_sounds())
