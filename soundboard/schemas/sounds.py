"""
soundboard.schemas.sounds
~~~~~~~~~~~~~~~~~~~~~~~~~

音效目录条目。
"""
from __future__ import annotations

from pydantic import Field

from soundboard.schemas.base import CamelModel


class SoundInfo(CamelModel):
    """单个可播放音效的元数据。"""

    id: str = Field(..., description="音效 ID（文件名去掉扩展名）")
    display_name: str = Field(..., description="展示名称")
    url: str = Field(..., description="音频文件的访问路径")
