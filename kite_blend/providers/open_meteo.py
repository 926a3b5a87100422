"""
Open-Meteo Model Provider for Kite Blend

Fetches raw per-model wind forecasts from Open-Meteo's model-specific
endpoints and normalizes them into DayForecast / HourForecast sequences.

Models:
- GFS (NOAA)           /v1/gfs
- ECMWF (IFS)          /v1/ecmwf
- ICON (DWD)           /v1/dwd-icon
- MF (Météo-France)    /v1/meteofrance
- GEM (Canada)         /v1/gem

Speeds arrive in km/h and are converted to knots. Results are written into
the ForecastCache; a cached sequence is returned without network I/O.
"""

import logging
from datetime import date
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from kite_blend.cache_manager import ForecastCache
from kite_blend.models import DayForecast, HourForecast
from kite_blend.resilience import ProviderError
from kite_blend.units import kmh_to_knots, round_half_up

logger = logging.getLogger(__name__)

BASE_URL = "https://api.open-meteo.com/v1"

MODEL_URLS: Dict[str, str] = {
    "GFS": f"{BASE_URL}/gfs",
    "ECMWF": f"{BASE_URL}/ecmwf",
    "ICON": f"{BASE_URL}/dwd-icon",
    "MF": f"{BASE_URL}/meteofrance",
    "GEM": f"{BASE_URL}/gem",
}

FORECAST_DAYS = 7
HOURS_PER_DAY = 24

DAY_NAMES = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

# Response schema: canonical field -> accepted provider names, current first.
# The request always asks for the current name; legacy names are still
# accepted because some model endpoints answer with the pre-2023 spelling.
SCHEMA_VERSION = "open-meteo/2024-01"

DAILY_SCHEMA: Dict[str, Tuple[str, ...]] = {
    "wind": ("wind_speed_10m_max", "windspeed_10m_max"),
    "gust": ("wind_gusts_10m_max", "windgusts_10m_max"),
    "dir_deg": ("wind_direction_10m_dominant", "winddirection_10m_dominant"),
    "temp": ("temperature_2m_max",),
    "rain": ("precipitation_sum",),
}

HOURLY_SCHEMA: Dict[str, Tuple[str, ...]] = {
    "wind": ("wind_speed_10m", "windspeed_10m"),
    "gust": ("wind_gusts_10m", "windgusts_10m"),
    "dir_deg": ("wind_direction_10m", "winddirection_10m"),
    "temp": ("temperature_2m",),
    "rain": ("precipitation",),
}

# A response without these is a broken contract, not a calm day
REQUIRED_FIELDS = ("wind", "gust", "dir_deg")

TideLookup = Callable[[int, int, float], float]


def _value_at(series: Sequence, index: int) -> float:
    """Entry at index, with nulls and short series defaulting to 0."""
    if 0 <= index < len(series):
        value = series[index]
        if value is not None:
            return float(value)
    return 0.0


def extract_series(block: Dict, schema: Dict[str, Tuple[str, ...]], model: str) -> Dict[str, List]:
    """
    Map a daily/hourly block onto canonical fields using the schema table.

    Raises:
        ProviderError: when a required series is absent under every known name
    """
    result: Dict[str, List] = {}
    for field_name, candidates in schema.items():
        series = None
        for name in candidates:
            if isinstance(block.get(name), list):
                series = block[name]
                break

        if series is None:
            if field_name in REQUIRED_FIELDS:
                raise ProviderError(
                    f"{model}: response missing '{candidates[0]}' ({SCHEMA_VERSION})",
                    model=model,
                )
            logger.warning(f"[extract_series] {model}: '{candidates[0]}' missing, defaulting to 0")
            series = []
        result[field_name] = series
    return result


def day_name(date_str: str) -> str:
    return DAY_NAMES[date.fromisoformat(date_str).weekday()]


class OpenMeteoProvider:
    """
    Per-model forecast normalizer.

    The httpx client is injectable; when omitted a short-lived AsyncClient is
    opened per request.
    """

    def __init__(self, cache: Optional[ForecastCache] = None,
                 client: Optional[httpx.AsyncClient] = None,
                 timeout: float = 30.0):
        self.cache = cache if cache is not None else ForecastCache()
        self.client = client
        self.timeout = timeout

    async def _get_json(self, model: str, params: Dict) -> Dict:
        url = MODEL_URLS.get(model)
        if url is None:
            raise ProviderError(f"Unknown model: {model}", model=model)

        logger.info(f"[OpenMeteoProvider] Fetching {model} ({params['latitude']}, {params['longitude']})")
        try:
            if self.client is not None:
                resp = await self.client.get(url, params=params)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.get(url, params=params)
        except httpx.HTTPError as e:
            raise ProviderError(f"{model}: request failed ({e})", model=model) from e

        if not resp.is_success:
            logger.warning(f"[OpenMeteoProvider] {model} HTTP {resp.status_code}")
            raise ProviderError(f"{model}: {resp.status_code}", model=model,
                                status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(f"{model}: invalid JSON", model=model) from e
        if not isinstance(data, dict):
            raise ProviderError(f"{model}: unexpected payload", model=model)
        return data

    @staticmethod
    def _params(lat: float, lng: float, granularity: str, schema: Dict[str, Tuple[str, ...]]) -> Dict:
        return {
            "latitude": lat,
            "longitude": lng,
            granularity: ",".join(names[0] for names in schema.values()),
            "timezone": "auto",
            "forecast_days": FORECAST_DAYS,
        }

    async def fetch_daily(self, lat: float, lng: float, model: str) -> Tuple[DayForecast, ...]:
        """
        Fetch the 7-day daily forecast for one model.

        Returns:
            Tuple of DayForecast, one per day in the response

        Raises:
            ProviderError: unknown model, non-2xx status or malformed payload
        """
        key = (lat, lng, model, "d")
        hit = self.cache.get(key)
        if hit is not None:
            return hit

        data = await self._get_json(model, self._params(lat, lng, "daily", DAILY_SCHEMA))

        block = data.get("daily")
        if not isinstance(block, dict) or not isinstance(block.get("time"), list):
            raise ProviderError(f"{model}: response has no daily time series", model=model)

        series = extract_series(block, DAILY_SCHEMA, model)
        days = []
        for i, date_str in enumerate(block["time"]):
            days.append(DayForecast(
                day=day_name(date_str),
                date=date_str,
                wind=kmh_to_knots(_value_at(series["wind"], i)),
                gust=kmh_to_knots(_value_at(series["gust"], i)),
                dir_deg=_value_at(series["dir_deg"], i),
                temp=round_half_up(_value_at(series["temp"], i)),
                rain=round_half_up(_value_at(series["rain"], i), 1),
            ))

        result = tuple(days)
        logger.info(f"[OpenMeteoProvider] {model}: {len(result)} daily records")
        self.cache.put(key, result)
        return result

    async def fetch_hourly(self, lat: float, lng: float, model: str, day_offset: int,
                           tide_at: Optional[TideLookup] = None) -> Tuple[HourForecast, ...]:
        """
        Fetch 24 hourly points for one model and one day of the 7-day run.

        Args:
            day_offset: 0 = today ... 6
            tide_at: synchronous tide lookup (day_offset, hour, lat) -> meters
        """
        key = (lat, lng, model, "h", day_offset)
        hit = self.cache.get(key)
        if hit is not None:
            return hit

        data = await self._get_json(model, self._params(lat, lng, "hourly", HOURLY_SCHEMA))

        block = data.get("hourly")
        if not isinstance(block, dict):
            raise ProviderError(f"{model}: response has no hourly block", model=model)

        series = extract_series(block, HOURLY_SCHEMA, model)
        start = day_offset * HOURS_PER_DAY
        hours = []
        for h in range(HOURS_PER_DAY):
            i = start + h
            hours.append(HourForecast(
                hour=f"{h:02d}:00",
                wind=kmh_to_knots(_value_at(series["wind"], i)),
                gust=kmh_to_knots(_value_at(series["gust"], i)),
                dir_deg=_value_at(series["dir_deg"], i),
                temp=_value_at(series["temp"], i),
                rain=_value_at(series["rain"], i),
                tide=tide_at(day_offset, h, lat) if tide_at is not None else 0.0,
            ))

        result = tuple(hours)
        logger.info(f"[OpenMeteoProvider] {model}: day {day_offset} hourly slice from index {start}")
        self.cache.put(key, result)
        return result
