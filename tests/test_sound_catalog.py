"""
tests.test_sound_catalog
~~~~~~~~~~~~~~~~~~~~~~~~

SoundCatalog 单元测试。
"""
from __future__ import annotations

from pathlib import Path

from soundboard.services.sound_catalog import SoundCatalog, format_display_name


def test_format_display_name() -> None:
    assert format_display_name("air-horn") == "Air Horn"
    assert format_display_name("boing") == "Boing"
    assert format_display_name("sad-trombone-2") == "Sad Trombone 2"


def test_lists_only_audio_files(tmp_path: Path) -> None:
    for name in ("boing.mp3", "Drum-Roll.WAV", "ding.ogg", "notes.txt", "cover.png"):
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "nested.mp3").mkdir()

    sounds = SoundCatalog(tmp_path, url_prefix="/sounds/").list_sounds()

    assert [s.id for s in sounds] == ["Drum-Roll", "boing", "ding"]
    assert sounds[0].display_name == "Drum Roll"
    assert sounds[1].url == "/sounds/boing.mp3"
    assert sounds[0].to_wire() == {
        "id": "Drum-Roll",
        "displayName": "Drum Roll",
        "url": "/sounds/Drum-Roll.WAV",
    }


def test_missing_directory_is_created(tmp_path: Path) -> None:
    directory = tmp_path / "public" / "sounds"

    assert SoundCatalog(directory).list_sounds() == []
    assert directory.is_dir()
