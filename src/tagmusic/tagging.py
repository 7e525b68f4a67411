"""
Format-specific tag writers (mutagen).

- MP3: ID3v2 TBPM (BPM) and TKEY ("Initial Key")
- M4A: `tmpo` (BPM) and `©grp` (Grouping), since MP4 has no key atom

Each call writes a single field and leaves every other tag untouched.
"""

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from mutagen.id3 import ID3, ID3NoHeaderError, TBPM, TKEY
from mutagen.mp4 import MP4

from tagmusic.models import AudioFormat

logger = logging.getLogger(__name__)


@runtime_checkable
class TagWriter(Protocol):
    """Writes one analysis field into a file's tag container."""

    def write_bpm(self, audio_path: Path, bpm: int) -> None:
        ...

    def write_key(self, audio_path: Path, key: str) -> None:
        ...


class ID3TagWriter:
    """ID3v2 writer for MP3 files."""

    def _load(self, audio_path: Path) -> ID3:
        try:
            return ID3(str(audio_path))
        except ID3NoHeaderError:
            logger.debug(f"No ID3 header in {audio_path.name}, creating one")
            return ID3()

    def write_bpm(self, audio_path: Path, bpm: int) -> None:
        tags = self._load(audio_path)
        tags.setall("TBPM", [TBPM(encoding=3, text=[str(int(bpm))])])
        tags.save(str(audio_path))
        logger.debug(f"TBPM={bpm} written to {audio_path.name}")

    def write_key(self, audio_path: Path, key: str) -> None:
        tags = self._load(audio_path)
        tags.setall("TKEY", [TKEY(encoding=3, text=[key])])
        tags.save(str(audio_path))
        logger.debug(f"TKEY={key} written to {audio_path.name}")


class MP4TagWriter:
    """iTunes-style atom writer for M4A files."""

    BPM_ATOM = "tmpo"
    GROUPING_ATOM = "\xa9grp"

    def _load(self, audio_path: Path) -> MP4:
        audio = MP4(str(audio_path))
        if audio.tags is None:
            audio.add_tags()
        return audio

    def write_bpm(self, audio_path: Path, bpm: int) -> None:
        audio = self._load(audio_path)
        audio[self.BPM_ATOM] = [int(bpm)]
        audio.save()
        logger.debug(f"tmpo={bpm} written to {audio_path.name}")

    def write_key(self, audio_path: Path, key: str) -> None:
        audio = self._load(audio_path)
        audio[self.GROUPING_ATOM] = [key]
        audio.save()
        logger.debug(f"grouping={key} written to {audio_path.name}")


def tag_writer_for(fmt: AudioFormat) -> TagWriter:
    """Return the tag writer for a container format."""
    if fmt is AudioFormat.MP3:
        return ID3TagWriter()
    if fmt is AudioFormat.M4A:
        return MP4TagWriter()
    raise ValueError(f"No tag writer for format: {fmt}")
