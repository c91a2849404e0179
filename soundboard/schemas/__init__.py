"""
soundboard.schemas
~~~~~~~~~~~~~~~~~~
Pydantic schemas and models for the HTTP API and the WebSocket protocol.
"""
from soundboard.schemas.api_response import ApiResponse
from soundboard.schemas.rooms import (
    Departure,
    Member,
    MemberData,
    NewRoomCodeData,
    RoomInfoData,
    RoomSnapshot,
)
from soundboard.schemas.sounds import SoundInfo

# Call model_rebuild to resolve forward references in generic Pydantic models.
ApiResponse.model_rebuild()
