"""
Storm Glass Tide Provider for Kite Blend

Fetches tidal extremes (high/low events) from the Storm Glass API.

RATE LIMITING:
- Free Tier: 10 calls/day
- Only the EXTREMES endpoint is used (one call covers 7 days); hourly sea
  levels are interpolated locally instead of spending a second call on the
  sea-level endpoint.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import httpx

from kite_blend.models import TideExtreme

logger = logging.getLogger(__name__)

EXTREMES_URL = "https://api.stormglass.io/v2/tide/extremes/point"
WINDOW_DAYS = 7


def parse_time(value: str) -> datetime:
    """Parse an ISO-8601 timestamp (Storm Glass uses +00:00 offsets)."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_extremes(payload: dict, window_start: datetime) -> List[TideExtreme]:
    """
    Convert Storm Glass `data` events into TideExtremes.

    Times become hours since window_start (3 decimals); events before the
    window are dropped. The result is sorted chronologically.
    """
    extremes: List[TideExtreme] = []
    for event in payload.get("data") or []:
        t = parse_time(event["time"])
        abs_hour = (t - window_start).total_seconds() / 3600
        if abs_hour < 0:
            continue
        height = event.get("height")
        extremes.append(TideExtreme(
            abs_hour=round(abs_hour, 3),
            level=round(float(height if height is not None else 0.0), 1),
            type="high" if event.get("type") == "high" else "low",
        ))
    extremes.sort(key=lambda e: e.abs_hour)
    return extremes


class StormGlassProvider:
    """Provider for Storm Glass tide extremes."""

    def __init__(self, api_key: str, client: Optional[httpx.AsyncClient] = None,
                 timeout: float = 30.0):
        self.api_key = api_key
        self.client = client
        self.timeout = timeout

    async def fetch_extremes(self, lat: float, lng: float, now: datetime,
                             window_start: datetime) -> List[TideExtreme]:
        """
        Fetch 7 days of tidal extremes starting now.

        Raises:
            httpx.HTTPStatusError: non-2xx status
            httpx.RequestError: transport failure
        """
        params = {
            "lat": lat,
            "lng": lng,
            "start": now.isoformat(),
            "end": (now + timedelta(days=WINDOW_DAYS)).isoformat(),
        }
        headers = {"Authorization": self.api_key}

        logger.info(f"[StormGlassProvider] Fetching extremes for {lat:.2f}, {lng:.2f}")
        if self.client is not None:
            resp = await self.client.get(EXTREMES_URL, params=params, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(EXTREMES_URL, params=params, headers=headers)

        resp.raise_for_status()
        extremes = parse_extremes(resp.json(), window_start)
        logger.info(f"[StormGlassProvider] Received {len(extremes)} extremes")
        return extremes
