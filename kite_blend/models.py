"""
Data types shared across the forecast and tide engines.

All forecast points are frozen: a cached sequence can be handed to several
callers without anyone mutating it in place. Blending produces new points
via dataclasses.replace().
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Models
BASE_MODELS: Tuple[str, ...] = ("GFS", "ECMWF", "ICON", "MF", "GEM")
BLEND_MODEL = "BLEND"
ALL_MODELS: Tuple[str, ...] = BASE_MODELS + (BLEND_MODEL,)


@dataclass(frozen=True)
class DayForecast:
    day: str        # Mon, Tue, ...
    date: str       # YYYY-MM-DD
    wind: int       # knots
    gust: int       # knots
    dir_deg: float
    temp: float     # °C
    rain: float     # mm
    spread: Optional[float] = None
    confidence: Optional[float] = None
    model_agreement: Optional[str] = None


@dataclass(frozen=True)
class HourForecast:
    hour: str       # HH:00
    wind: int
    gust: int
    dir_deg: float
    temp: float
    rain: float
    tide: float     # meters
    spread: Optional[float] = None
    confidence: Optional[float] = None
    model_agreement: Optional[str] = None


@dataclass(frozen=True)
class TideExtreme:
    abs_hour: float  # hours since window start (UTC midnight of the record date)
    level: float
    type: str        # "high" | "low"


@dataclass(frozen=True)
class SeaLevel:
    abs_hour: float
    level: float


@dataclass(frozen=True)
class TidePeak:
    hour: float      # fractional hour within the day
    time: str        # HH:MM
    level: float
    type: str


@dataclass
class TideRecord:
    """Tide data for one 0.3° grid cell, valid for a single day."""
    date: str
    lat: float
    lng: float
    sea_levels: List[SeaLevel] = field(default_factory=list)
    extremes: List[TideExtreme] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "lat": self.lat,
            "lng": self.lng,
            "seaLevels": [{"absHour": s.abs_hour, "level": s.level} for s in self.sea_levels],
            "extremes": [
                {"absHour": e.abs_hour, "level": e.level, "type": e.type}
                for e in self.extremes
            ],
        }

    @classmethod
    def from_json(cls, raw: Dict[str, Any]) -> "TideRecord":
        return cls(
            date=raw["date"],
            lat=float(raw["lat"]),
            lng=float(raw["lng"]),
            sea_levels=[
                SeaLevel(abs_hour=float(s["absHour"]), level=float(s["level"]))
                for s in raw.get("seaLevels", [])
            ],
            extremes=[
                TideExtreme(
                    abs_hour=float(e["absHour"]),
                    level=float(e["level"]),
                    type="high" if e["type"] == "high" else "low",
                )
                for e in raw.get("extremes", [])
            ],
        )
