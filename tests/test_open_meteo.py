"""
Tests for the Open-Meteo model normalizer and the forecast cache

These tests verify that:
1. km/h speeds become knots and daily/hourly shapes are right
2. The schema table accepts legacy field names and rejects broken payloads
3. Bad status codes and unknown models raise ProviderError
4. Two calls within the TTL issue exactly one request

Run with: python -m pytest tests/test_open_meteo.py -v
"""

import logging

import httpx
import pytest

from kite_blend.cache_manager import ForecastCache
from kite_blend.providers.open_meteo import OpenMeteoProvider
from kite_blend.resilience import ProviderError

from conftest import RecordingTransport

logging.basicConfig(level=logging.DEBUG)
logger = logging.getLogger(__name__)

DATES = ["2026-10-16", "2026-10-17", "2026-10-18", "2026-10-19",
         "2026-10-20", "2026-10-21", "2026-10-22"]


def daily_payload(**overrides):
    daily = {
        "time": DATES,
        "wind_speed_10m_max": [20.0] * 7,
        "wind_gusts_10m_max": [40.0] * 7,
        "wind_direction_10m_dominant": [270] * 7,
        "temperature_2m_max": [18.6] * 7,
        "precipitation_sum": [1.25] * 7,
    }
    daily.update(overrides)
    return {"daily": {k: v for k, v in daily.items() if v is not None}}


def hourly_payload(**overrides):
    hourly = {
        "time": [f"h{i}" for i in range(168)],
        "wind_speed_10m": [float(i) for i in range(168)],
        "wind_gusts_10m": [float(i) * 2 for i in range(168)],
        "wind_direction_10m": [i % 360 for i in range(168)],
        "temperature_2m": [i / 10 for i in range(168)],
        "precipitation": [0.0] * 168,
    }
    hourly.update(overrides)
    return {"hourly": {k: v for k, v in hourly.items() if v is not None}}


def provider_for(payload, status=200, clock=None):
    transport = RecordingTransport(lambda request: httpx.Response(status, json=payload))
    cache = ForecastCache(clock=clock) if clock is not None else ForecastCache()
    return OpenMeteoProvider(cache=cache, client=transport.client()), transport


class TestDailyNormalization:

    @pytest.mark.asyncio
    async def test_daily_points(self):
        provider, transport = provider_for(daily_payload())
        days = await provider.fetch_daily(49.1, -66.5, "ECMWF")
        logger.info(f"[TEST] First day: {days[0]}")

        assert len(days) == 7
        first = days[0]
        assert first.date == "2026-10-16"
        assert first.day == "Fri"
        assert first.wind == 11      # 20 km/h = 10.8 kts
        assert first.gust == 22      # 40 km/h = 21.6 kts
        assert first.dir_deg == 270
        assert first.temp == 19
        assert first.rain == 1.3
        assert first.confidence is None

    @pytest.mark.asyncio
    async def test_request_shape(self):
        provider, transport = provider_for(daily_payload())
        await provider.fetch_daily(49.1, -66.5, "ICON")

        request = transport.requests[0]
        assert request.url.path == "/v1/dwd-icon"
        params = request.url.params
        assert params["latitude"] == "49.1"
        assert params["longitude"] == "-66.5"
        assert params["timezone"] == "auto"
        assert params["forecast_days"] == "7"
        assert "wind_speed_10m_max" in params["daily"].split(",")

    @pytest.mark.asyncio
    async def test_legacy_field_names(self):
        payload = daily_payload(
            wind_speed_10m_max=None, windspeed_10m_max=[30.0] * 7,
            wind_gusts_10m_max=None, windgusts_10m_max=[30.0] * 7,
            wind_direction_10m_dominant=None, winddirection_10m_dominant=[90] * 7,
        )
        provider, _ = provider_for(payload)
        days = await provider.fetch_daily(49.1, -66.5, "GFS")
        assert days[0].wind == 16    # 30 km/h = 16.2 kts
        assert days[0].dir_deg == 90

    @pytest.mark.asyncio
    async def test_null_entries_default_to_zero(self):
        provider, _ = provider_for(daily_payload(
            wind_speed_10m_max=[None] + [20.0] * 6,
            precipitation_sum=[1.0, 1.0],
        ))
        days = await provider.fetch_daily(49.1, -66.5, "GFS")
        assert days[0].wind == 0
        assert days[6].rain == 0.0

    @pytest.mark.asyncio
    async def test_missing_optional_series_is_zero_filled(self):
        provider, _ = provider_for(daily_payload(temperature_2m_max=None, precipitation_sum=None))
        days = await provider.fetch_daily(49.1, -66.5, "GFS")
        assert all(d.temp == 0 and d.rain == 0 for d in days)

    @pytest.mark.asyncio
    async def test_missing_wind_series_is_malformed(self):
        provider, _ = provider_for(daily_payload(wind_speed_10m_max=None))
        with pytest.raises(ProviderError, match="wind_speed_10m_max"):
            await provider.fetch_daily(49.1, -66.5, "GFS")

    @pytest.mark.asyncio
    async def test_missing_daily_block_is_malformed(self):
        provider, _ = provider_for({"error": False})
        with pytest.raises(ProviderError):
            await provider.fetch_daily(49.1, -66.5, "GFS")


class TestHourlyNormalization:

    @pytest.mark.asyncio
    async def test_slices_requested_day(self):
        provider, _ = provider_for(hourly_payload())
        hours = await provider.fetch_hourly(49.1, -66.5, "GEM", 2)

        assert len(hours) == 24
        assert hours[0].hour == "00:00"
        assert hours[23].hour == "23:00"
        assert hours[0].wind == 26           # index 48 km/h
        assert hours[23].wind == 38          # index 71 km/h
        assert hours[0].temp == pytest.approx(4.8)
        assert hours[0].dir_deg == 48

    @pytest.mark.asyncio
    async def test_short_series_pads_with_zero(self):
        provider, _ = provider_for(hourly_payload(wind_speed_10m=[10.0] * 30))
        hours = await provider.fetch_hourly(49.1, -66.5, "GFS", 1)
        assert hours[5].wind == 5
        assert hours[6].wind == 0

    @pytest.mark.asyncio
    async def test_tide_lookup_fills_tide(self):
        provider, _ = provider_for(hourly_payload())
        calls = []

        def tide_at(day_offset, hour, lat):
            calls.append((day_offset, hour, lat))
            return 1.0 + hour / 100

        hours = await provider.fetch_hourly(49.1, -66.5, "GFS", 3, tide_at)
        assert hours[10].tide == pytest.approx(1.1)
        assert calls[0] == (3, 0, 49.1)
        assert len(calls) == 24


class TestProviderErrors:

    @pytest.mark.asyncio
    async def test_unknown_model(self):
        provider, transport = provider_for(daily_payload())
        with pytest.raises(ProviderError, match="Unknown model: HRRR"):
            await provider.fetch_daily(49.1, -66.5, "HRRR")
        assert transport.requests == []

    @pytest.mark.asyncio
    async def test_bad_status(self):
        provider, _ = provider_for({"reason": "overloaded"}, status=503)
        with pytest.raises(ProviderError) as exc_info:
            await provider.fetch_daily(49.1, -66.5, "GFS")
        assert exc_info.value.status_code == 503
        assert str(exc_info.value) == "GFS: 503"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        provider = OpenMeteoProvider(client=RecordingTransport(handler).client())
        with pytest.raises(ProviderError) as exc_info:
            await provider.fetch_hourly(49.1, -66.5, "MF", 0)
        assert exc_info.value.model == "MF"
        assert exc_info.value.status_code is None


class TestForecastCaching:

    @pytest.mark.asyncio
    async def test_two_calls_one_request(self, clock):
        provider, transport = provider_for(daily_payload(), clock=clock)

        first = await provider.fetch_daily(49.1, -66.5, "GFS")
        clock.advance(14 * 60)
        second = await provider.fetch_daily(49.1, -66.5, "GFS")

        assert len(transport.requests) == 1
        assert first is second

    @pytest.mark.asyncio
    async def test_expired_entry_refetches(self, clock):
        provider, transport = provider_for(daily_payload(), clock=clock)

        await provider.fetch_daily(49.1, -66.5, "GFS")
        clock.advance(15 * 60)
        await provider.fetch_daily(49.1, -66.5, "GFS")

        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_keys_include_day_offset(self, clock):
        provider, transport = provider_for(hourly_payload(), clock=clock)

        await provider.fetch_hourly(49.1, -66.5, "GFS", 0)
        await provider.fetch_hourly(49.1, -66.5, "GFS", 1)
        await provider.fetch_hourly(49.1, -66.5, "GFS", 0)

        assert len(transport.requests) == 2

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self, clock):
        provider, transport = provider_for({}, status=500, clock=clock)
        for _ in range(2):
            with pytest.raises(ProviderError):
                await provider.fetch_daily(49.1, -66.5, "GFS")
        assert len(transport.requests) == 2
        assert len(provider.cache) == 0


class TestForecastCache:

    def test_lazy_expiry_keeps_entry(self, clock):
        cache = ForecastCache(clock=clock)
        cache.put("k", (1, 2))
        clock.advance(15 * 60)

        assert cache.get("k") is None
        assert len(cache) == 1

        cache.put("k", (3,))
        assert cache.get("k") == (3,)

    def test_clear(self, clock):
        cache = ForecastCache(clock=clock)
        cache.put("a", ())
        cache.put("b", ())
        cache.clear()
        assert len(cache) == 0
        assert cache.get("a") is None
