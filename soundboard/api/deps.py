from fastapi import Request

from soundboard.services.room_registry import RoomRegistry
from soundboard.services.sound_catalog import SoundCatalog


def get_registry(request: Request) -> RoomRegistry:
    return request.app.state.registry


def get_sound_catalog(request: Request) -> SoundCatalog:
    return request.app.state.sound_catalog
