"""
Tests for tide interpolation and the harmonic simulator

Run with: python -m pytest tests/test_tide_physics.py -v
"""

import logging
import math
from datetime import date

import pytest

from kite_blend.models import TideExtreme
from kite_blend.tide_physics import (
    TideSimulator,
    WINDOW_HOURS,
    clock_label,
    interpolate_from_extremes,
    simulate_peaks,
    tide_raw,
)

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

SCENARIO = [
    TideExtreme(abs_hour=2, level=1.0, type="low"),
    TideExtreme(abs_hour=8, level=3.0, type="high"),
]


class TestInterpolation:

    def test_cosine_midpoint(self):
        levels = interpolate_from_extremes(SCENARIO)
        # 1.0 + 2.0 * (1 - cos(0.5π)) / 2
        assert levels[5].level == pytest.approx(2.0)

    def test_quarter_point(self):
        levels = interpolate_from_extremes(SCENARIO)
        # hour 3 -> t = 1/6
        expected = 1.0 + 2.0 * (1 - math.cos(math.pi / 6)) / 2
        assert levels[3].level == pytest.approx(round(expected, 2))

    def test_exact_at_extremes(self):
        levels = interpolate_from_extremes(SCENARIO)
        assert levels[2].level == 1.0
        assert levels[8].level == 3.0

    def test_exact_at_every_extreme_of_a_week(self):
        extremes = []
        for i in range(28):
            extremes.append(TideExtreme(abs_hour=i * 6, level=0.5 if i % 2 else 3.2,
                                        type="low" if i % 2 else "high"))
        levels = interpolate_from_extremes(extremes)
        for e in extremes:
            assert levels[int(e.abs_hour)].level == e.level

    def test_clamps_outside_range(self):
        levels = interpolate_from_extremes(SCENARIO)
        assert levels[0].level == 1.0
        assert levels[1].level == 1.0
        assert levels[9].level == 3.0
        assert levels[-1].level == 3.0

    def test_covers_whole_window(self):
        levels = interpolate_from_extremes(SCENARIO)
        assert len(levels) == WINDOW_HOURS
        assert [s.abs_hour for s in levels] == list(range(WINDOW_HOURS))

    def test_needs_two_extremes(self):
        assert interpolate_from_extremes([]) == []
        assert interpolate_from_extremes(SCENARIO[:1]) == []

    def test_monotonic_between_low_and_high(self):
        levels = interpolate_from_extremes(SCENARIO)
        rising = [levels[h].level for h in range(2, 9)]
        assert rising == sorted(rising)


class TestSimulator:

    def test_tide_raw_is_pure(self):
        a = tide_raw(2, 13.5, 46.8, 289)
        b = tide_raw(2, 13.5, 46.8, 289)
        assert a == b

    def test_locations_differ(self):
        assert tide_raw(0, 6, 46.8, 289) != tide_raw(0, 6, 19.7, 289)

    def test_plausible_range(self):
        for h in range(24):
            level = tide_raw(0, h, 46.8, 100)
            assert -0.5 < level < 4.7

    def test_negative_latitude_phase(self):
        # fmod keeps the sign of the latitude term
        assert tide_raw(0, 0, -33.9, 50) == tide_raw(0, 0, -33.9, 50)
        assert tide_raw(0, 0, -33.9, 50) != tide_raw(0, 0, 33.9, 50)

    def test_peaks_alternate(self):
        peaks = simulate_peaks(0, 46.8, 289)
        logger.info(f"[TEST] Simulated peaks: {peaks}")

        assert 2 <= len(peaks) <= 5
        for a, b in zip(peaks, peaks[1:]):
            assert a.type != b.type
            assert a.hour < b.hour

    def test_peak_levels_match_curve(self):
        for peak in simulate_peaks(1, 19.7, 10):
            assert peak.level == round(tide_raw(1, peak.hour, 19.7, 10), 1)
            assert peak.time == clock_label(peak.hour)

    def test_simulator_binds_date(self):
        sim = TideSimulator(today=lambda: date(2026, 10, 16))
        assert sim.day_of_year() == 289
        assert sim.tide_at(0, 5, 46.8) == round(tide_raw(0, 5, 46.8, 289), 2)
        assert sim.peaks(0, 46.8) == simulate_peaks(0, 46.8, 289)


class TestClockLabel:

    @pytest.mark.parametrize("hour,label", [
        (0, "00:00"), (13.5, "13:30"), (14.2, "14:12"), (5.999, "06:00"), (23.9, "23:54"),
    ])
    def test_format(self, hour, label):
        assert clock_label(hour) == label
