"""
Tempo estimation from beat onsets.

Turns the beat timestamps emitted by a beat tracker into an integer BPM:

1. Consecutive differences in emission order, keeping only those > 0
   (zero/negative steps are detector noise).
2. Sort ascending, take the median (mean of the two middle values for an
   even count).
3. BPM = 60 / median, rounded according to a RoundingMode.

The median makes the estimate robust to jitter and to single missed or
double-triggered beats without any outlier-rejection heuristics.
"""

import logging
import math
from enum import Enum
from typing import Iterable, List, Sequence

import numpy as np

from tagmusic.models import TempoResult

logger = logging.getLogger(__name__)


class RoundingMode(Enum):
    """How the raw BPM value is turned into an integer."""

    NEAREST = "nearest"  # round half up
    EVEN = "even"  # nearest even integer (earlier variant of the algorithm)

    @classmethod
    def from_name(cls, name: str) -> "RoundingMode":
        try:
            return cls(name.lower())
        except ValueError:
            raise ValueError(
                f"Unknown rounding mode: {name!r} "
                f"(expected one of {[m.value for m in cls]})"
            )


def _round_bpm(bpm: float, mode: RoundingMode) -> int:
    if mode is RoundingMode.EVEN:
        return int(2 * math.floor(bpm / 2 + 0.5))
    return int(math.floor(bpm + 0.5))


def compute_intervals(onsets: Sequence[float]) -> np.ndarray:
    """
    Strictly positive consecutive differences of an onset sequence.

    Args:
        onsets: Beat timestamps in seconds, in emission order.

    Returns:
        1-D float array; every element > 0. Empty for fewer than 2 onsets.
    """
    values = np.asarray(list(onsets), dtype=float)
    if values.size < 2:
        return np.empty(0, dtype=float)

    diffs = np.diff(values)
    return diffs[diffs > 0]


def median_interval(intervals: np.ndarray) -> float:
    """Median of a non-empty interval set (sorted here, input order is irrelevant)."""
    ordered = np.sort(intervals)
    count = ordered.size
    middle = count // 2
    if count % 2 == 1:
        return float(ordered[middle])
    return float((ordered[middle - 1] + ordered[middle]) / 2)


def estimate_tempo(
    onsets: Sequence[float], rounding: RoundingMode = RoundingMode.NEAREST
) -> TempoResult:
    """
    Estimate BPM from beat onsets using the median inter-beat interval.

    Args:
        onsets: Beat timestamps in seconds (may be empty or of length 1).
        rounding: Integer rounding mode for the final value.

    Returns:
        TempoResult; bpm == 0 when no usable tempo could be derived.
    """
    onsets = list(onsets)
    intervals = compute_intervals(onsets)
    if intervals.size == 0:
        logger.debug(f"No positive intervals in {len(onsets)} onsets")
        return TempoResult(bpm=0)

    median = median_interval(intervals)
    if not math.isfinite(median) or median <= 0:
        return TempoResult(bpm=0, interval_count=int(intervals.size))

    raw_bpm = 60.0 / median
    if not math.isfinite(raw_bpm):
        logger.debug(f"Median interval {median!r}s gives a non-finite BPM")
        return TempoResult(bpm=0, interval_count=int(intervals.size))

    bpm = _round_bpm(raw_bpm, rounding)
    logger.debug(
        f"Median interval {median:.4f}s over {intervals.size} intervals "
        f"-> {raw_bpm:.2f} BPM -> {bpm} ({rounding.value})"
    )

    return TempoResult(
        bpm=max(bpm, 0),
        median_interval=median,
        interval_count=int(intervals.size),
    )


def parse_onsets(lines: Iterable[str], decimal_point: str = ".") -> List[float]:
    """
    Parse beat tracker output (one timestamp per line, first column).

    The decimal separator is passed explicitly so parsing never depends on the
    host locale. Lines that do not start with a number are skipped.

    Args:
        lines: Text lines from the beat tracker.
        decimal_point: Decimal separator used by the producer.

    Returns:
        Timestamps in seconds, in the order they were emitted.
    """
    onsets = []
    for line in lines:
        fields = line.split()
        if not fields:
            continue

        token = fields[0]
        if decimal_point != ".":
            token = token.replace(decimal_point, ".")

        try:
            onsets.append(float(token))
        except ValueError:
            logger.debug(f"Skipping unparsable onset line: {line.strip()!r}")

    return onsets
