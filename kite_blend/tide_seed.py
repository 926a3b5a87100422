"""
Seed tide stations.

Hand-authored reference curves for spots we ride often, so they never
spend a Storm Glass call. Each station is a week of alternating highs and
lows at the semi-diurnal spacing (half of 12.42h) with the station's
typical range; sea levels are interpolated the same way live data is.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from kite_blend.models import TideExtreme, TideRecord
from kite_blend.tide_physics import WINDOW_HOURS, interpolate_from_extremes

SEED_RADIUS_DEG = 0.2
HALF_CYCLE_HOURS = 6.21


@dataclass(frozen=True)
class SeedStation:
    name: str
    lat: float
    lng: float
    first_high_hour: float  # hours after midnight of the first high water
    high_level: float
    low_level: float

    def extremes(self) -> List[TideExtreme]:
        # start one half-cycle early so hour 0 is bracketed
        events = []
        hour = self.first_high_hour - HALF_CYCLE_HOURS
        is_high = False
        while hour <= WINDOW_HOURS + HALF_CYCLE_HOURS:
            if hour >= 0:
                events.append(TideExtreme(
                    abs_hour=round(hour, 3),
                    level=self.high_level if is_high else self.low_level,
                    type="high" if is_high else "low",
                ))
            hour += HALF_CYCLE_HOURS
            is_high = not is_high
        return events

    def record(self, date: str) -> TideRecord:
        extremes = self.extremes()
        return TideRecord(
            date=date,
            lat=self.lat,
            lng=self.lng,
            sea_levels=interpolate_from_extremes(extremes),
            extremes=extremes,
        )


TIDE_SEEDS: Dict[str, SeedStation] = {
    # Lower St. Lawrence estuary, large semi-diurnal range
    "sainte-anne-des-monts": SeedStation(
        name="Sainte-Anne-des-Monts", lat=49.125, lng=-66.490,
        first_high_hour=3.4, high_level=3.6, low_level=0.5,
    ),
    # North coast of the Dominican Republic, microtidal
    "cabarete": SeedStation(
        name="Cabarete", lat=19.758, lng=-70.409,
        first_high_hour=5.1, high_level=0.8, low_level=0.1,
    ),
}


def find_seed(lat: float, lng: float,
              seeds: Optional[Dict[str, SeedStation]] = None) -> Optional[SeedStation]:
    """Seed station within 0.2° in both latitude and longitude."""
    for seed in (seeds if seeds is not None else TIDE_SEEDS).values():
        if abs(seed.lat - lat) < SEED_RADIUS_DEG and abs(seed.lng - lng) < SEED_RADIUS_DEG:
            return seed
    return None


def find_seed_by_lat(lat: float,
                     seeds: Optional[Dict[str, SeedStation]] = None) -> Optional[SeedStation]:
    """Seed station within 0.2° latitude (for lookups that only know latitude)."""
    for seed in (seeds if seeds is not None else TIDE_SEEDS).values():
        if abs(seed.lat - lat) < SEED_RADIUS_DEG:
            return seed
    return None
