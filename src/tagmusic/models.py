"""
Data model shared by the analysis pipeline.

All objects here live for the duration of a single file (or a single run,
for RunSummary). Nothing is persisted except the tags written into files.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional


class AudioFormat(Enum):
    """Supported container formats, in processing order."""

    MP3 = "mp3"
    M4A = "m4a"

    @property
    def extension(self) -> str:
        return f".{self.value}"

    @property
    def needs_repair(self) -> bool:
        """MP4-family containers are rewritten (faststart) before tagging."""
        return self is AudioFormat.M4A

    @classmethod
    def from_name(cls, name: str) -> "AudioFormat":
        try:
            return cls(name.lower().lstrip("."))
        except ValueError:
            raise ValueError(f"Unsupported audio format: {name}")


@dataclass(frozen=True)
class FileTask:
    """One unit of work: a file and the format it is processed as."""

    path: Path
    format: AudioFormat

    @property
    def name(self) -> str:
        return self.path.name


@dataclass(frozen=True)
class TempoResult:
    """Estimated tempo. bpm == 0 means no usable tempo."""

    bpm: int
    median_interval: Optional[float] = None
    interval_count: int = 0

    @property
    def usable(self) -> bool:
        return self.bpm > 0


@dataclass
class AnalysisResult:
    """Outcome of one file. Each field is independently present or absent."""

    bpm: Optional[int] = None
    key: Optional[str] = None
    loudness_applied: bool = False
    repaired: bool = False
    bpm_written: bool = False
    key_written: bool = False

    def __repr__(self) -> str:
        return (
            f"AnalysisResult(bpm={self.bpm}, key={self.key}, "
            f"loudness={self.loudness_applied})"
        )


@dataclass
class RunSummary:
    """Counters accumulated over a run, per format and in total."""

    matched: Dict[AudioFormat, int] = field(default_factory=dict)
    processed: int = 0
    failed: int = 0
    with_bpm: int = 0
    with_key: int = 0
    with_loudness: int = 0
    repaired: int = 0

    @property
    def total_matched(self) -> int:
        return sum(self.matched.values())

    def record(self, result: AnalysisResult) -> None:
        self.processed += 1
        if result.bpm_written:
            self.with_bpm += 1
        if result.key_written:
            self.with_key += 1
        if result.loudness_applied:
            self.with_loudness += 1
        if result.repaired:
            self.repaired += 1

    def merge(self, other: "RunSummary") -> None:
        for fmt, count in other.matched.items():
            self.matched[fmt] = self.matched.get(fmt, 0) + count
        self.processed += other.processed
        self.failed += other.failed
        self.with_bpm += other.with_bpm
        self.with_key += other.with_key
        self.with_loudness += other.with_loudness
        self.repaired += other.repaired
