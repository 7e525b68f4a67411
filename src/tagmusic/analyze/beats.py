"""
Beat onset detection.

Two interchangeable detectors produce beat timestamps (seconds):
- AubioTrackBeatDetector runs the `aubiotrack` command line tool
- AubioBeatDetector uses the aubio Python bindings in-process

References:
- https://aubio.org/manual/latest/cli.html#aubiotrack
"""

import logging
from pathlib import Path
from typing import List, Protocol, runtime_checkable

from tagmusic.analyze.tempo import parse_onsets
from tagmusic.tools import MissingToolError, ToolError, run_tool

logger = logging.getLogger(__name__)


@runtime_checkable
class BeatDetector(Protocol):
    """Produces the beat onset timestamps of an audio file."""

    def detect(self, audio_path: Path) -> List[float]:
        ...


class AubioTrackBeatDetector:
    """Beat tracking via the `aubiotrack` executable."""

    command = "aubiotrack"

    def __init__(self, decimal_point: str = "."):
        self.decimal_point = decimal_point

    def detect(self, audio_path: Path) -> List[float]:
        """
        Run aubiotrack and parse one timestamp per output line.

        Raises:
            ToolError: If aubiotrack fails.
        """
        result = run_tool([self.command, str(audio_path)])
        onsets = parse_onsets(result.stdout.splitlines(), self.decimal_point)
        logger.debug(f"aubiotrack: {len(onsets)} beats in {audio_path.name}")
        return onsets


class AubioBeatDetector:
    """Beat tracking with aubio.tempo, streaming the file hop by hop."""

    def __init__(self, hop_size: int = 512, buf_size: int = 1024):
        try:
            import aubio
        except ImportError:
            raise MissingToolError(["aubio (pip install tagmusic[aubio])"])

        self._aubio = aubio
        self.hop_size = hop_size
        self.buf_size = buf_size

    def detect(self, audio_path: Path) -> List[float]:
        """
        Stream the file through aubio.tempo and collect beat times.

        Raises:
            ToolError: If aubio cannot open or decode the file.
        """
        beats = []
        try:
            source = self._aubio.source(str(audio_path), 0, self.hop_size)
            tempo = self._aubio.tempo("default", self.buf_size, self.hop_size, source.samplerate)

            while True:
                samples, num_read = source()
                if tempo(samples)[0]:
                    beats.append(float(tempo.get_last_s()))
                if num_read < self.hop_size:
                    break
        except RuntimeError as e:
            raise ToolError(["aubio", str(audio_path)], stderr=str(e))

        logger.debug(f"aubio: {len(beats)} beats in {audio_path.name}")
        return beats
