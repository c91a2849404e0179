"""
soundboard.services.sound_catalog
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

音效目录：列出音效目录下的音频文件，格式化为 ``SoundInfo`` 记录。
"""
from __future__ import annotations

from pathlib import Path

from soundboard.core.logging import get_logger
from soundboard.schemas.sounds import SoundInfo

logger = get_logger(__name__)

AUDIO_EXTENSIONS: frozenset[str] = frozenset({".mp3", ".wav", ".ogg"})


def format_display_name(sound_id: str) -> str:
    """``air-horn`` → ``Air Horn``。"""
    return " ".join(word[:1].upper() + word[1:] for word in sound_id.split("-"))


class SoundCatalog:
    """只读的音效目录。

    Attributes:
        directory: 音效文件所在目录。
        url_prefix: 静态文件挂载路径，用于拼接每个音效的 URL。
    """

    def __init__(self, directory: Path, url_prefix: str = "/sounds") -> None:
        self.directory = directory
        self.url_prefix = url_prefix.rstrip("/")

    def ensure_directory(self) -> None:
        """目录不存在时自动创建。"""
        if not self.directory.exists():
            logger.warning("音效目录不存在，自动创建 | path=%s", self.directory)
            self.directory.mkdir(parents=True, exist_ok=True)

    def list_sounds(self) -> list[SoundInfo]:
        """按文件名排序返回所有音频文件的元数据。"""
        self.ensure_directory()
        sounds = [
            SoundInfo(
                id=path.stem,
                display_name=format_display_name(path.stem),
                url=f"{self.url_prefix}/{path.name}",
            )
            for path in sorted(self.directory.iterdir())
            if path.is_file() and path.suffix.lower() in AUDIO_EXTENSIONS
        ]
        logger.debug("音效目录 | path=%s | 数量: %d", self.directory, len(sounds))
        return sounds
