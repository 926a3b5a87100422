"""
Tide Physics for Kite Blend

Two deterministic pieces, no network:

1. interpolate_from_extremes(): turns sparse high/low events into one sea
   level per hour with a raised-cosine ease between neighbouring extremes.
   Real tides are close to sinusoidal between turning points, so this gives
   a smooth semi-diurnal curve from a single extremes call.

2. tide_raw() / simulate_peaks(): harmonic fallback used when no real data
   is cached. Sums an M2-like semi-diurnal term (12.42h) whose amplitude
   follows a synthetic 14.76-day spring-neap cycle, a K1-like diurnal term
   and a small M4 shallow-water overtide. The phase is derived from latitude
   so different spots get distinct but stable curves.

The simulation is for display plausibility only and is never preferred over
real or seed data.
"""

import logging
import math
from datetime import date
from typing import Callable, List, Sequence

from kite_blend.models import SeaLevel, TideExtreme, TidePeak

logger = logging.getLogger(__name__)

WINDOW_HOURS = 7 * 24

# Harmonic constants
M2_PERIOD_HOURS = 12.42
LUNAR_SHIFT_RAD = (50.47 / (24 * 60)) * 2 * math.pi  # moon rises ~50.47 min later each day
SPRING_NEAP_PERIOD_DAYS = 14.76
MEAN_SEA_LEVEL = 2.1

PEAK_SAMPLES_PER_DAY = 240


def interpolate_from_extremes(extremes: Sequence[TideExtreme],
                              total_hours: int = WINDOW_HOURS) -> List[SeaLevel]:
    """
    Interpolate hourly sea levels between chronologically sorted extremes.

    Hours outside the covered range clamp to the first/last pair. Fewer than
    two extremes gives an empty list.
    """
    if len(extremes) < 2:
        return []

    first, last = extremes[0], extremes[-1]
    levels: List[SeaLevel] = []
    for h in range(total_hours):
        if h < first.abs_hour:
            levels.append(SeaLevel(abs_hour=h, level=first.level))
            continue
        if h > last.abs_hour:
            levels.append(SeaLevel(abs_hour=h, level=last.level))
            continue

        before, after = first, last
        for a, b in zip(extremes, extremes[1:]):
            if a.abs_hour <= h <= b.abs_hour:
                before, after = a, b
                break

        span = after.abs_hour - before.abs_hour
        if span <= 0:
            levels.append(SeaLevel(abs_hour=h, level=before.level))
            continue

        t = (h - before.abs_hour) / span
        ease = (1 - math.cos(t * math.pi)) / 2
        levels.append(SeaLevel(abs_hour=h, level=round(before.level + (after.level - before.level) * ease, 2)))

    return levels


def tide_raw(day_offset: int, hour: float, lat: float, day_of_year: int) -> float:
    """Simulated sea level (m) at a fractional hour of a day. Pure."""
    loc_phase = math.radians(math.fmod(lat * 7.3 + 41.7, 360))
    lunar_phase = day_offset * LUNAR_SHIFT_RAD + loc_phase
    spring_neap = 0.5 + 0.5 * math.cos(((day_of_year + day_offset) / SPRING_NEAP_PERIOD_DAYS) * 2 * math.pi)
    main_amp = 1.2 + 0.8 * spring_neap
    diurnal_amp = main_amp * 0.18

    t = (hour / M2_PERIOD_HOURS) * 2 * math.pi + lunar_phase
    m2 = main_amp * math.cos(t)
    k1 = diurnal_amp * math.cos((hour / 24) * 2 * math.pi + lunar_phase * 0.52 + 0.8)
    m4 = main_amp * 0.06 * math.cos(2 * t + 0.4)
    return MEAN_SEA_LEVEL + m2 + k1 + m4


def clock_label(fractional_hour: float) -> str:
    """Format a fractional hour as HH:MM."""
    h = math.floor(fractional_hour)
    m = int(math.floor((fractional_hour - h) * 60 + 0.5))
    if m == 60:
        h, m = h + 1, 0
    return f"{h:02d}:{m:02d}"


def simulate_peaks(day_offset: int, lat: float, day_of_year: int) -> List[TidePeak]:
    """Local highs and lows of the simulated curve over one day."""
    samples = []
    for i in range(PEAK_SAMPLES_PER_DAY + 1):
        t = (i / PEAK_SAMPLES_PER_DAY) * 24
        samples.append((t, tide_raw(day_offset, t, lat, day_of_year)))

    peaks: List[TidePeak] = []
    for i in range(1, len(samples) - 1):
        prev, cur, nxt = samples[i - 1][1], samples[i][1], samples[i + 1][1]
        t = samples[i][0]
        if cur > prev and cur > nxt:
            peaks.append(TidePeak(hour=t, time=clock_label(t), level=round(cur, 1), type="high"))
        if cur < prev and cur < nxt:
            peaks.append(TidePeak(hour=t, time=clock_label(t), level=round(cur, 1), type="low"))
    return peaks


class TideSimulator:
    """
    Harmonic simulator bound to a reference date.

    The date supplier is injectable so the spring-neap phase is reproducible
    in tests.
    """

    def __init__(self, today: Callable[[], date] = date.today):
        self._today = today

    def day_of_year(self) -> int:
        return self._today().timetuple().tm_yday

    def tide_at(self, day_offset: int, hour: float, lat: float) -> float:
        return round(tide_raw(day_offset, hour, lat, self.day_of_year()), 2)

    def peaks(self, day_offset: int, lat: float) -> List[TidePeak]:
        return simulate_peaks(day_offset, lat, self.day_of_year())
