"""Unit conversion and display helpers for forecast values."""

import math

KMH_TO_KTS = 0.539957

COMPASS_POINTS = ["N", "NE", "E", "SE", "S", "SW", "W", "NW"]


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with .5 always going up (toward +inf), unlike Python's round()."""
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


def kmh_to_knots(kmh: float) -> int:
    return int(round_half_up(kmh * KMH_TO_KTS))


def convert_speed(kts: float, unit: str) -> float:
    if unit == "mph":
        return int(round_half_up(kts * 1.15078))
    if unit == "km/h":
        return int(round_half_up(kts * 1.852))
    return kts


def convert_height(metres: float, unit: str) -> float:
    if unit == "ft":
        return round(metres * 3.28084, 1)
    return round(metres, 1)


def convert_temp(celsius: float, unit: str) -> int:
    if unit in ("F", "°F"):
        return int(round_half_up(celsius * 9 / 5 + 32))
    return int(round_half_up(celsius))


def wind_rating(knots: float) -> str:
    """Kiteability of a wind speed: good / ok / poor."""
    if 15 <= knots <= 30:
        return "good"
    if 10 <= knots < 15 or 30 < knots <= 35:
        return "ok"
    return "poor"


def dir_label(deg: float) -> str:
    return COMPASS_POINTS[int(round_half_up(deg / 45)) % 8]
