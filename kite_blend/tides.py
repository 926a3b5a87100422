"""
Tide Service for Kite Blend

Resolves tide data for a spot through an ordered chain, cheapest first:

    memory (0.3° match, today) -> durable JSON (grid cell, today)
        -> seed station (0.2°) -> Storm Glass extremes fetch

The Storm Glass free tier allows 10 requests a day, so:
- spots are bucketed on a 0.3° grid and nearby spots share one record
- at most one request per grid cell is ever in flight; concurrent callers
  await the same task
- failures are logged and reported as False, never raised; the next
  independent call may retry

tide_at() / tide_peaks() are synchronous and never touch the network. They
read the memory cache or seed data and fall back to the harmonic simulator.
"""

import asyncio
import logging
from datetime import datetime, time, timezone
from typing import Callable, Dict, List, Optional

import httpx

from kite_blend.cache_manager import TideCacheStore
from kite_blend.models import TidePeak, TideRecord
from kite_blend.providers.storm_glass import StormGlassProvider
from kite_blend.resilience import categorize_error
from kite_blend.tide_physics import TideSimulator, clock_label, interpolate_from_extremes
from kite_blend.tide_seed import TIDE_SEEDS, SeedStation, find_seed, find_seed_by_lat
from kite_blend.units import round_half_up

logger = logging.getLogger(__name__)

GRID_STEP_DEG = 0.3
MEMORY_MATCH_DEG = 0.3
NEAREST_SAMPLE_HOURS = 1.5


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def grid_key(lat: float, lng: float) -> str:
    """0.3° grid cell key shared by nearby spots."""
    g_lat = round_half_up(lat / GRID_STEP_DEG) * GRID_STEP_DEG + 0.0
    g_lng = round_half_up(lng / GRID_STEP_DEG) * GRID_STEP_DEG + 0.0
    return f"tide-{g_lat:.1f}-{g_lng:.1f}"


class MemoryTideCache:
    """In-process tide records, most recently stored last."""

    def __init__(self):
        self._records: Dict[str, TideRecord] = {}

    def store(self, key: str, record: TideRecord) -> None:
        self._records.pop(key, None)
        self._records[key] = record

    def discard_stale(self, today: str) -> int:
        """Drop records fetched on an earlier date."""
        stale = [key for key, record in self._records.items() if record.date != today]
        for key in stale:
            del self._records[key]
        if stale:
            logger.info(f"[MemoryTideCache] Discarded {len(stale)} record(s) from before {today}")
        return len(stale)

    def covering(self, lat: float, lng: float, today: str) -> Optional[TideRecord]:
        self.discard_stale(today)
        for record in reversed(list(self._records.values())):
            if abs(record.lat - lat) < MEMORY_MATCH_DEG and abs(record.lng - lng) < MEMORY_MATCH_DEG:
                return record
        return None

    def in_lat_band(self, lat: float, today: str) -> Optional[TideRecord]:
        self.discard_stale(today)
        for record in reversed(list(self._records.values())):
            if abs(record.lat - lat) < MEMORY_MATCH_DEG:
                return record
        return None

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class TideResolver:
    """One step of the fallback chain: a TideRecord on hit, None on miss."""

    name = "base"

    def resolve(self, lat: float, lng: float, key: str, today: str) -> Optional[TideRecord]:
        raise NotImplementedError


class MemoryResolver(TideResolver):
    name = "memory"

    def __init__(self, memory: MemoryTideCache):
        self.memory = memory

    def resolve(self, lat, lng, key, today):
        return self.memory.covering(lat, lng, today)


class DurableResolver(TideResolver):
    name = "durable"

    def __init__(self, store: TideCacheStore):
        self.store = store

    def resolve(self, lat, lng, key, today):
        return self.store.load(key, today)


class SeedResolver(TideResolver):
    name = "seed"

    def __init__(self, seeds: Dict[str, SeedStation]):
        self.seeds = seeds

    def resolve(self, lat, lng, key, today):
        seed = find_seed(lat, lng, self.seeds)
        if seed is None:
            return None
        return seed.record(today)


class TideService:
    """
    Owns all tide state: memory cache, durable store, in-flight fetches.

    Args:
        api_key: Storm Glass key; empty means simulation only
        store: durable cache (defaults to a disabled, in-memory-only store)
        seeds: seed stations (defaults to TIDE_SEEDS)
        client: httpx client for the Storm Glass call
        clock: returns the current aware UTC datetime
    """

    def __init__(self, api_key: str = "", store: Optional[TideCacheStore] = None,
                 seeds: Optional[Dict[str, SeedStation]] = None,
                 client: Optional[httpx.AsyncClient] = None,
                 clock: Callable[[], datetime] = utc_now,
                 timeout: float = 30.0):
        self.api_key = api_key
        self._clock = clock
        self.store = store if store is not None else TideCacheStore(None)
        self.seeds = seeds if seeds is not None else TIDE_SEEDS
        self.memory = MemoryTideCache()
        self.provider = StormGlassProvider(api_key, client=client, timeout=timeout)
        self.simulator = TideSimulator(today=lambda: self._clock().date())
        self._inflight: Dict[str, asyncio.Task] = {}

        self.resolvers: List[TideResolver] = [
            MemoryResolver(self.memory),
            DurableResolver(self.store),
            SeedResolver(self.seeds),
        ]

    def today(self) -> str:
        return self._clock().date().isoformat()

    def restore(self) -> int:
        """Reload today's durable records into memory (process start)."""
        records = self.store.load_all(self.today())
        for key, record in records.items():
            self.memory.store(key, record)
        return len(records)

    async def fetch_tide_data(self, lat: float, lng: float) -> bool:
        """
        Make real tide data available for a spot.

        Returns:
            True if real (cached, seed or fetched) data is available,
            False if callers should use the simulation.
        """
        today = self.today()
        key = grid_key(lat, lng)

        for resolver in self.resolvers:
            record = resolver.resolve(lat, lng, key, today)
            if record is not None:
                logger.debug(f"[TideService] {key}: {resolver.name} hit")
                if not isinstance(resolver, MemoryResolver):
                    self.memory.store(key, record)
                return len(record.sea_levels) > 0

        if not self.api_key:
            logger.debug(f"[TideService] {key}: no API key, using simulation")
            return False

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch(lat, lng, key, today))
            self._inflight[key] = task
        else:
            logger.info(f"[TideService] {key}: joining in-flight fetch")

        # shield: one caller abandoning its await must not cancel the shared fetch
        return await asyncio.shield(task)

    async def _fetch(self, lat: float, lng: float, key: str, today: str) -> bool:
        try:
            now = self._clock()
            window_start = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
            extremes = await self.provider.fetch_extremes(lat, lng, now, window_start)
            sea_levels = interpolate_from_extremes(extremes)

            record = TideRecord(date=today, lat=lat, lng=lng,
                                sea_levels=sea_levels, extremes=extremes)
            self.memory.store(key, record)
            self.store.save(key, record)
            logger.info(f"[TideService] Cached {key}: {len(extremes)} extremes -> "
                        f"{len(sea_levels)} hourly levels")
            return len(sea_levels) > 0
        except Exception as e:
            error_type, error_msg = categorize_error(e)
            logger.warning(f"[TideService] {key} fetch failed ({error_type.value}): {error_msg}")
            return False
        finally:
            self._inflight.pop(key, None)

    # Synchronous surface (no network)

    def _record_for_lat(self, lat: float) -> Optional[TideRecord]:
        today = self.today()
        record = self.memory.in_lat_band(lat, today)
        if record is not None:
            return record
        seed = find_seed_by_lat(lat, self.seeds)
        if seed is not None:
            record = seed.record(today)
            self.memory.store(grid_key(seed.lat, seed.lng), record)
            return record
        return None

    def tide_at(self, day_offset: int, hour: float, lat: float) -> float:
        """Sea level (m): nearest cached sample within 1.5h, else simulated."""
        record = self._record_for_lat(lat)
        if record is not None and record.sea_levels:
            target = day_offset * 24 + hour
            best = min(record.sea_levels, key=lambda s: abs(s.abs_hour - target))
            if abs(best.abs_hour - target) <= NEAREST_SAMPLE_HOURS:
                return best.level
        return self.simulator.tide_at(day_offset, hour, lat)

    def tide_peaks(self, day_offset: int, lat: float) -> List[TidePeak]:
        """Highs and lows for one day: cached extremes if any, else simulated."""
        record = self._record_for_lat(lat)
        if record is not None and record.extremes:
            day_start = day_offset * 24
            peaks = []
            for e in record.extremes:
                if day_start <= e.abs_hour < day_start + 24:
                    hour_in_day = e.abs_hour - day_start
                    peaks.append(TidePeak(hour=hour_in_day, time=clock_label(hour_in_day),
                                          level=e.level, type=e.type))
            if peaks:
                return peaks
        return self.simulator.peaks(day_offset, lat)

    def tide_day(self, day_offset: int, lat: float) -> List[float]:
        return [self.tide_at(day_offset, h, lat) for h in range(24)]
