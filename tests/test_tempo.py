"""
Unit tests for median inter-beat-interval tempo estimation.

Tests interval extraction, median selection, rounding modes and onset parsing.
"""

import pytest
import numpy as np
from tagmusic.analyze.tempo import (
    RoundingMode,
    _round_bpm,
    compute_intervals,
    estimate_tempo,
    median_interval,
    parse_onsets,
)


class TestIntervals:
    """Test consecutive interval extraction."""

    def test_empty_sequence(self):
        """No onsets yields no intervals."""
        assert compute_intervals([]).size == 0

    def test_single_onset(self):
        """One onset yields no intervals."""
        assert compute_intervals([1.5]).size == 0

    def test_drops_non_positive_differences(self):
        """Zero and negative steps are discarded as detector noise."""
        intervals = compute_intervals([0.0, 0.5, 0.5, 0.4, 1.0])
        assert list(intervals) == pytest.approx([0.5, 0.6])
        assert np.all(intervals > 0)


class TestMedian:
    """Test median selection."""

    def test_odd_count(self):
        """Middle element of the sorted set."""
        assert median_interval(np.array([0.6, 0.3, 0.4])) == pytest.approx(0.4)

    def test_even_count(self):
        """Mean of the two middle elements."""
        assert median_interval(np.array([0.5, 0.4, 0.7, 0.6])) == pytest.approx(0.55)


class TestEstimateTempo:
    """Test end-to-end BPM estimation."""

    def test_uniform_spacing_120(self):
        """Half-second spacing is 120 BPM."""
        result = estimate_tempo([0.0, 0.5, 1.0, 1.5, 2.0])
        assert result.bpm == 120
        assert result.median_interval == pytest.approx(0.5)
        assert result.interval_count == 4

    def test_irregular_spacing_uses_median(self):
        """Intervals 0.4, 0.6, 0.3 have median 0.4 -> 150 BPM."""
        result = estimate_tempo([0.0, 0.4, 1.0, 1.3])
        assert result.bpm == 150

    @pytest.mark.parametrize("delta", [0.25, 0.4, 0.47, 0.6, 0.75, 1.0])
    def test_uniform_spacing_matches_rounded_rate(self, delta):
        """Uniform spacing delta gives round(60 / delta)."""
        onsets = [i * delta for i in range(16)]
        assert estimate_tempo(onsets).bpm == int(60 / delta + 0.5)

    def test_empty_is_unusable(self):
        """No onsets -> bpm 0."""
        result = estimate_tempo([])
        assert result.bpm == 0
        assert not result.usable

    def test_single_onset_is_unusable(self):
        """One onset -> bpm 0."""
        assert estimate_tempo([3.2]).bpm == 0

    def test_all_duplicate_onsets_unusable(self):
        """Only zero-length intervals -> bpm 0."""
        assert estimate_tempo([1.0, 1.0, 1.0]).bpm == 0

    def test_subnormal_interval_is_unusable(self):
        """60 / median overflowing to infinity -> bpm 0, not an exception."""
        result = estimate_tempo([0.0, 1e-320])
        assert result.bpm == 0
        assert not result.usable

    def test_outlier_does_not_move_median(self):
        """A missed beat (double interval) does not change the result."""
        onsets = [0.0, 0.5, 1.0, 2.0, 2.5, 3.0, 3.5]
        assert estimate_tempo(onsets).bpm == 120

    def test_reordering_preserving_intervals(self):
        """Same multiset of positive intervals in a different order -> same BPM."""
        a = [0.0, 0.3, 0.7, 1.3]  # intervals 0.3, 0.4, 0.6
        b = [0.0, 0.6, 0.9, 1.3]  # intervals 0.6, 0.3, 0.4
        assert estimate_tempo(a).bpm == estimate_tempo(b).bpm == 150

    def test_round_half_up(self):
        """x.5 rounds up in nearest mode, to an even value in even mode."""
        assert _round_bpm(120.5, RoundingMode.NEAREST) == 121
        assert _round_bpm(120.49, RoundingMode.NEAREST) == 120
        assert _round_bpm(121.0, RoundingMode.EVEN) == 122
        assert _round_bpm(120.99, RoundingMode.EVEN) == 120

    def test_nearest_does_not_force_even(self):
        """Odd BPM values survive nearest rounding."""
        onsets = [i * 60 / 121 for i in range(8)]
        assert estimate_tempo(onsets).bpm == 121

    def test_even_mode_forces_even(self):
        """Even mode rounds to the nearest even integer."""
        onsets = [i * 60 / 121.4 for i in range(8)]
        assert estimate_tempo(onsets, RoundingMode.EVEN).bpm == 122
        onsets = [i * 60 / 122.9 for i in range(8)]
        assert estimate_tempo(onsets, RoundingMode.EVEN).bpm == 122


class TestRoundingMode:
    """Test rounding mode lookup."""

    def test_from_name(self):
        assert RoundingMode.from_name("even") is RoundingMode.EVEN
        assert RoundingMode.from_name("NEAREST") is RoundingMode.NEAREST

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            RoundingMode.from_name("banker")


class TestParseOnsets:
    """Test beat tracker output parsing."""

    def test_one_per_line(self):
        """Plain timestamps, first column only."""
        lines = ["0.023220", "0.510839 extra", "", "1.001361"]
        assert parse_onsets(lines) == pytest.approx([0.02322, 0.510839, 1.001361])

    def test_skips_garbage(self):
        """Non-numeric lines are ignored."""
        assert parse_onsets(["warning: something", "0.5"]) == [0.5]

    def test_explicit_decimal_comma(self):
        """Decimal separator is a parameter, not the host locale."""
        assert parse_onsets(["0,5", "1,25"], decimal_point=",") == [0.5, 1.25]
