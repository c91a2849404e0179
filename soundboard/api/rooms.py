"""
soundboard.api.rooms
~~~~~~~~~~~~~~~~~~~~

房间 REST 接口：只做查询，房间的创建 / 加入 / 离开都走 WebSocket。

房间码本身就是加入凭证，因此这里不提供房间列表接口。

端点:
  - ``GET /rooms/new``        → 生成一个当前未被占用的房间码
  - ``GET /rooms/{room_id}``  → 获取房间摘要（是否存在、成员数）
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from soundboard.api.deps import get_registry
from soundboard.core.rate_limit import limiter
from soundboard.schemas.api_response import ApiResponse
from soundboard.schemas.rooms import NewRoomCodeData, RoomInfoData
from soundboard.services.room_registry import RoomRegistry

router: APIRouter = APIRouter()


@router.get("/rooms/new", summary="生成房间码", response_model=ApiResponse[NewRoomCodeData])
@limiter.limit("5/second")
async def new_room_code(request: Request, registry: RoomRegistry = Depends(get_registry)):
    """返回一个 8 位房间码。只生成不占用，真正创建需发送 ``create-room`` 事件。"""
    return ApiResponse.ok(data=NewRoomCodeData(room_id=registry.generate_room_id()))


@router.get(
    "/rooms/{room_id}",
    summary="获取房间详情",
    response_model=ApiResponse[RoomInfoData],
    responses={404: {"model": ApiResponse[None]}},
)
@limiter.limit("10/second")
async def room_info(request: Request, room_id: str, registry: RoomRegistry = Depends(get_registry)):
    """返回指定房间的摘要信息。房间不存在时返回 404。

    Args:
        room_id: 房间码。
    """
    room = registry.get_room(room_id)
    if room is None:
        response = ApiResponse.fail(msg=f"Room {room_id} not found", code=404)
        return JSONResponse(status_code=404, content=response.model_dump())
    return ApiResponse.ok(data=RoomInfoData.from_snapshot(room))
