"""
Forecast Service for Kite Blend

Public async entry points:

    fetch_daily_forecast(lat, lng, model)              -> 7 DayForecast
    fetch_hourly_forecast(lat, lng, model, day_offset) -> 24 HourForecast
    clear_forecast_cache()

A base model goes straight to the Open-Meteo normalizer (through the
ForecastCache). BLEND fans out to every enabled base model concurrently,
waits for all of them to settle, and blends whatever succeeded. A blend is
never cached; it is recomputed on top of the cached per-model sequences.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Sequence, Tuple

import httpx

from kite_blend.cache_manager import ForecastCache, TideCacheStore
from kite_blend.config import EngineSettings
from kite_blend.ensemble import WeightedEnsembleEngine
from kite_blend.models import BASE_MODELS, BLEND_MODEL, DayForecast, HourForecast
from kite_blend.providers.open_meteo import OpenMeteoProvider
from kite_blend.resilience import AllModelsFailedError, categorize_error
from kite_blend.tides import TideService

logger = logging.getLogger(__name__)


class ForecastEngine:
    """
    Forecast entry point owning the per-model cache and the blender.

    Args:
        blend_models: base models that take part in BLEND requests
        tide_service: synchronous tide source for the hourly `tide` field
        cache: forecast cache (fresh one per engine by default)
        client: httpx client shared by all model requests
    """

    def __init__(self, blend_models: Sequence[str] = BASE_MODELS,
                 tide_service: Optional[TideService] = None,
                 cache: Optional[ForecastCache] = None,
                 client: Optional[httpx.AsyncClient] = None,
                 timeout: float = 30.0):
        self.blend_models = tuple(m for m in blend_models if m != BLEND_MODEL)
        self.tides = tide_service if tide_service is not None else TideService()
        self.cache = cache if cache is not None else ForecastCache()
        self.provider = OpenMeteoProvider(cache=self.cache, client=client, timeout=timeout)
        self.ensemble = WeightedEnsembleEngine()

    async def fetch_daily_forecast(self, lat: float, lng: float, model: str) -> Tuple[DayForecast, ...]:
        if model == BLEND_MODEL:
            succeeded = await self._fetch_members(lambda m: self.provider.fetch_daily(lat, lng, m))
            return self.ensemble.blend_daily(succeeded)
        return await self.provider.fetch_daily(lat, lng, model)

    async def fetch_hourly_forecast(self, lat: float, lng: float, model: str,
                                    day_offset: int) -> Tuple[HourForecast, ...]:
        if model == BLEND_MODEL:
            succeeded = await self._fetch_members(
                lambda m: self.provider.fetch_hourly(lat, lng, m, day_offset, self.tides.tide_at))
            return self.ensemble.blend_hourly(succeeded)
        return await self.provider.fetch_hourly(lat, lng, model, day_offset, self.tides.tide_at)

    def clear_forecast_cache(self) -> None:
        self.cache.clear()

    async def _fetch_members(self, fetch: Callable[[str], Awaitable[Sequence]]) -> Dict[str, Sequence]:
        """
        Fetch every blend member concurrently and keep the ones that succeed.

        Raises:
            AllModelsFailedError: no member succeeded
        """
        models = self.blend_models
        results = await asyncio.gather(*(fetch(m) for m in models), return_exceptions=True)

        succeeded: Dict[str, Sequence] = {}
        errors: Dict[str, BaseException] = {}
        for model, result in zip(models, results):
            if isinstance(result, BaseException):
                error_type, error_msg = categorize_error(result)
                logger.warning(f"[ForecastEngine] {model} dropped from blend ({error_type.value}): {error_msg}")
                errors[model] = result
            else:
                succeeded[model] = result

        if not succeeded:
            logger.error(f"[ForecastEngine] All {len(models)} models failed")
            raise AllModelsFailedError(errors)

        if errors:
            logger.info(f"[ForecastEngine] Blending {len(succeeded)}/{len(models)} models")
        return succeeded


def build_engine(settings: EngineSettings,
                 client: Optional[httpx.AsyncClient] = None) -> ForecastEngine:
    """Wire a ForecastEngine and its TideService from settings."""
    tides = TideService(
        api_key=settings.storm_glass_key,
        store=TideCacheStore(settings.tide_cache_dir),
        client=client,
        timeout=settings.timeout_seconds,
    )
    restored = tides.restore()
    if restored:
        logger.info(f"[build_engine] Restored {restored} tide record(s) from disk")

    return ForecastEngine(
        blend_models=settings.blend_models,
        tide_service=tides,
        client=client,
        timeout=settings.timeout_seconds,
    )
