"""
Container repair for MP4-family files.

ffmpeg remuxes the file (stream copy, no re-encode) with the moov atom moved
to the front, which makes tag editing reliable. The remux goes to a unique
scratch file; only a successful remux replaces the original, and the scratch
file is removed on every path.
"""

import errno
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from tagmusic.tools import ToolError, run_tool

logger = logging.getLogger(__name__)


@runtime_checkable
class Repairer(Protocol):
    """Rewrites a container in place. Returns True only if the file was replaced."""

    def repair(self, audio_path: Path) -> bool:
        ...


class NoopRepairer:
    """For formats that need no container normalization."""

    def repair(self, audio_path: Path) -> bool:
        return False


def _replace_atomically(source: Path, target: Path) -> None:
    """
    Move source over target with a single rename.

    When source lives on another filesystem it is first copied next to the
    target, so the final step is still an atomic rename.
    """
    shutil.copymode(str(target), str(source))
    try:
        os.replace(source, target)
        return
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise

    fd, staging_name = tempfile.mkstemp(
        prefix=".tagmusic-", suffix=target.suffix, dir=str(target.parent)
    )
    os.close(fd)
    staging = Path(staging_name)
    try:
        shutil.copyfile(str(source), str(staging))
        shutil.copymode(str(target), str(staging))
        os.replace(staging, target)
    finally:
        staging.unlink(missing_ok=True)
        source.unlink(missing_ok=True)


class FfmpegRepairer:
    """Faststart remux with ffmpeg."""

    command = "ffmpeg"

    def __init__(self, temp_dir: Optional[str] = None):
        """
        Args:
            temp_dir: Directory for scratch files. None uses the system temp dir.
        """
        self.temp_dir = temp_dir or None

    def repair(self, audio_path: Path) -> bool:
        """
        Remux audio_path and replace it on success.

        Returns:
            True if the original was replaced, False if it was left untouched.
        """
        fd, scratch_name = tempfile.mkstemp(
            prefix="tagmusic-", suffix=audio_path.suffix, dir=self.temp_dir
        )
        os.close(fd)
        scratch = Path(scratch_name)

        try:
            run_tool([
                self.command, "-y", "-v", "quiet",
                "-i", str(audio_path),
                "-c", "copy", "-movflags", "+faststart",
                str(scratch),
            ])

            if scratch.stat().st_size == 0:
                logger.warning(f"ffmpeg produced an empty file for {audio_path.name}, keeping original")
                return False

            _replace_atomically(scratch, audio_path)
            logger.debug(f"Repaired container: {audio_path}")
            return True

        except ToolError as e:
            logger.warning(f"Container repair failed for {audio_path.name}, keeping original: {e}")
            return False
        except OSError as e:
            logger.warning(f"Could not replace {audio_path.name} with repaired copy: {e}")
            return False
        finally:
            try:
                scratch.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Failed to clean up scratch file {scratch}: {e}")
