"""
Unit tests for ID3 / MP4 tag writers.
"""

import pytest
from unittest.mock import MagicMock, patch
from mutagen.id3 import ID3, TIT2
from tagmusic.models import AudioFormat
from tagmusic.tagging import ID3TagWriter, MP4TagWriter, tag_writer_for


@pytest.fixture
def mp3_file(tmp_path):
    """File with no ID3 header yet."""
    path = tmp_path / "track.mp3"
    path.write_bytes(b"\xff\xfb\x90\x00" + b"\x00" * 412)
    return path


class TestID3TagWriter:
    """Test ID3v2 frame writing."""

    def test_write_bpm_creates_header(self, mp3_file):
        ID3TagWriter().write_bpm(mp3_file, 124)
        assert ID3(str(mp3_file))["TBPM"].text == ["124"]

    def test_write_key_initial_key_frame(self, mp3_file):
        ID3TagWriter().write_key(mp3_file, "F#m")
        assert ID3(str(mp3_file))["TKEY"].text == ["F#m"]

    def test_fields_written_independently(self, mp3_file):
        """Writing the key keeps an existing BPM and other frames."""
        tags = ID3()
        tags.add(TIT2(encoding=3, text=["Title"]))
        tags.save(str(mp3_file))

        writer = ID3TagWriter()
        writer.write_bpm(mp3_file, 98)
        writer.write_key(mp3_file, "C")

        tags = ID3(str(mp3_file))
        assert tags["TBPM"].text == ["98"]
        assert tags["TKEY"].text == ["C"]
        assert tags["TIT2"].text == ["Title"]

    def test_overwrites_previous_value(self, mp3_file):
        writer = ID3TagWriter()
        writer.write_bpm(mp3_file, 90)
        writer.write_bpm(mp3_file, 91)
        assert ID3(str(mp3_file)).getall("TBPM")[0].text == ["91"]

    def test_audio_payload_untouched(self, mp3_file):
        payload = mp3_file.read_bytes()
        ID3TagWriter().write_bpm(mp3_file, 120)
        assert mp3_file.read_bytes().endswith(payload)


class TestMP4TagWriter:
    """Test MP4 atom writing (mutagen.mp4.MP4 mocked)."""

    def test_write_bpm_tmpo(self, tmp_path):
        audio = MagicMock()
        audio.tags = None
        with patch("tagmusic.tagging.MP4", return_value=audio) as mp4:
            MP4TagWriter().write_bpm(tmp_path / "a.m4a", 126)

        mp4.assert_called_once_with(str(tmp_path / "a.m4a"))
        audio.add_tags.assert_called_once()
        audio.__setitem__.assert_called_once_with("tmpo", [126])
        audio.save.assert_called_once()

    def test_write_key_grouping(self, tmp_path):
        audio = MagicMock()
        with patch("tagmusic.tagging.MP4", return_value=audio):
            MP4TagWriter().write_key(tmp_path / "a.m4a", "Ebm")

        audio.add_tags.assert_not_called()
        audio.__setitem__.assert_called_once_with("\xa9grp", ["Ebm"])
        audio.save.assert_called_once()


class TestWriterSelection:
    def test_by_format(self):
        assert isinstance(tag_writer_for(AudioFormat.MP3), ID3TagWriter)
        assert isinstance(tag_writer_for(AudioFormat.M4A), MP4TagWriter)
