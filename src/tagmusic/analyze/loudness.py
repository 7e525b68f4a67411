"""
Loudness analysis using rsgain.

rsgain computes ReplayGain track/album gain and peak and writes the four
REPLAYGAIN_* tags itself. Album mode (-a) treats the file as its own album;
"-s i" writes ID3v2 / iTunes-style tags.
"""

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from tagmusic.tools import ToolError, run_tool

logger = logging.getLogger(__name__)


@runtime_checkable
class LoudnessAnalyzer(Protocol):
    """Measures loudness and persists the ReplayGain tags itself."""

    def apply(self, audio_path: Path) -> bool:
        ...


class RsgainLoudnessAnalyzer:
    """ReplayGain tagging via `rsgain custom`."""

    command = "rsgain"

    def apply(self, audio_path: Path) -> bool:
        """
        Run rsgain on a file.

        Returns:
            True if rsgain exited successfully, False otherwise.
        """
        try:
            run_tool([self.command, "custom", "-a", "-s", "i", str(audio_path)])
        except ToolError as e:
            logger.warning(f"Loudness analysis failed for {audio_path.name}: {e}")
            return False
        return True
