"""
Key detection using keyfinder-cli.

keyfinder-cli prints the detected key in standard notation ("Am", "C#",
"Ebm", ...). The label is written as-is by default; with the "camelot"
notation setting it is converted to Camelot (1A, 1B, ..., 12B).
"""

import logging
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from tagmusic.tools import run_tool

logger = logging.getLogger(__name__)

NOTATIONS = ("raw", "camelot")

STANDARD_TO_CAMELOT_MAJOR = {
    "C": "8B",
    "C#": "3B",
    "Db": "3B",
    "D": "10B",
    "D#": "5B",
    "Eb": "5B",
    "E": "12B",
    "F": "7B",
    "F#": "2B",
    "Gb": "2B",
    "G": "9B",
    "G#": "4B",
    "Ab": "4B",
    "A": "11B",
    "A#": "6B",
    "Bb": "6B",
    "B": "1B",
}

STANDARD_TO_CAMELOT_MINOR = {
    "C": "5A",
    "C#": "12A",
    "Db": "12A",
    "D": "7A",
    "D#": "2A",
    "Eb": "2A",
    "E": "9A",
    "F": "4A",
    "F#": "11A",
    "Gb": "11A",
    "G": "6A",
    "G#": "1A",
    "Ab": "1A",
    "A": "8A",
    "A#": "3A",
    "Bb": "3A",
    "B": "10A",
}


@runtime_checkable
class KeyDetector(Protocol):
    """Returns a key label for an audio file, or None."""

    def detect(self, audio_path: Path) -> Optional[str]:
        ...


def to_camelot(label: str) -> Optional[str]:
    """
    Convert a standard key label ("Am", "F#", "Bbm") to Camelot notation.

    Returns:
        Camelot key, or None if the label is not recognised.
    """
    label = label.strip()
    if label.endswith("m"):
        return STANDARD_TO_CAMELOT_MINOR.get(label[:-1])
    return STANDARD_TO_CAMELOT_MAJOR.get(label)


class KeyfinderCliKeyDetector:
    """Harmonic key detection via the keyfinder-cli executable."""

    command = "keyfinder-cli"

    def __init__(self, notation: str = "raw"):
        if notation not in NOTATIONS:
            raise ValueError(f"Unknown key notation: {notation!r} (expected one of {NOTATIONS})")
        self.notation = notation

    def detect(self, audio_path: Path) -> Optional[str]:
        """
        Run keyfinder-cli on a file.

        Returns:
            Key label, or None if keyfinder-cli printed nothing.

        Raises:
            ToolError: If keyfinder-cli fails.
        """
        result = run_tool([self.command, str(audio_path)])
        label = result.stdout.strip()
        if not label:
            logger.debug(f"keyfinder-cli returned no key for {audio_path.name}")
            return None

        if self.notation == "camelot":
            camelot = to_camelot(label)
            if camelot is None:
                logger.warning(f"Could not convert key {label!r} to Camelot, keeping it as-is")
                return label
            logger.debug(f"Key {label} -> {camelot}")
            return camelot

        return label
