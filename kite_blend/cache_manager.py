"""
Cache Managers for Kite Blend

Two caches with very different lifetimes:

- ForecastCache: in-memory, per (lat, lng, model, granularity[, day]) key,
  15 minute TTL. Expiry is checked lazily on read; stale entries stay in the
  dict until the next successful fetch overwrites them.
- TideCacheStore: durable JSON, one file per 0.3° grid cell. A record is only
  valid for the date it was fetched on; older records are misses.
"""

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Hashable, List, Optional

from kite_blend.models import TideRecord

logger = logging.getLogger(__name__)

FORECAST_CACHE_TTL_SECONDS = 15 * 60


@dataclass
class CacheEntry:
    """Cached forecast payload with its fetch time."""
    timestamp: float
    data: Any


class ForecastCache:
    """
    TTL cache for normalized per-model forecasts.

    Blended forecasts never go in here; they are recomputed on top of the
    cached per-model sequences.
    """

    def __init__(self, ttl_seconds: float = FORECAST_CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        age = self._clock() - entry.timestamp
        if age < self.ttl_seconds:
            logger.debug(f"[ForecastCache] HIT {key} ({age:.0f}s old)")
            return entry.data
        logger.debug(f"[ForecastCache] EXPIRED {key} ({age:.0f}s old)")
        return None

    def put(self, key: Hashable, data: Any) -> None:
        self._entries[key] = CacheEntry(timestamp=self._clock(), data=data)

    def clear(self) -> None:
        logger.info(f"[ForecastCache] Clearing {len(self._entries)} entries")
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class TideCacheStore:
    """
    Durable tide cache: one JSON file per grid cell key.

    Passing cache_dir=None disables persistence (every load is a miss and
    saves are dropped), which keeps tests and throwaway engines off disk.
    """

    def __init__(self, cache_dir: Optional[Path]):
        self.cache_dir = Path(cache_dir) if cache_dir is not None else None
        if self.cache_dir is not None:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            logger.debug(f"[TideCacheStore] Cache directory: {self.cache_dir.absolute()}")

    def _cache_path(self, grid_key: str) -> Path:
        return self.cache_dir / f"{grid_key}.json"

    def load(self, grid_key: str, today: str) -> Optional[TideRecord]:
        """Load the record for a grid cell if it was written today."""
        if self.cache_dir is None:
            return None

        cache_path = self._cache_path(grid_key)
        if not cache_path.exists():
            return None

        try:
            with open(cache_path, 'r', encoding='utf-8') as f:
                record = TideRecord.from_json(json.load(f))
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"[TideCacheStore] Failed to load {grid_key}: {e}")
            return None

        if record.date != today:
            logger.info(f"[TideCacheStore] {grid_key} is from {record.date}, ignoring")
            return None
        return record

    def save(self, grid_key: str, record: TideRecord) -> None:
        if self.cache_dir is None:
            return

        try:
            with open(self._cache_path(grid_key), 'w', encoding='utf-8') as f:
                json.dump(record.to_json(), f)
            logger.debug(f"[TideCacheStore] Saved {grid_key}")
        except OSError as e:
            logger.error(f"[TideCacheStore] Failed to save {grid_key}: {e}")

    def load_all(self, today: str) -> Dict[str, TideRecord]:
        """
        Reload every record for today, deleting files left from earlier days.

        Returns:
            Dict of grid key -> TideRecord
        """
        if self.cache_dir is None:
            return {}

        records: Dict[str, TideRecord] = {}
        stale: List[Path] = []
        for path in sorted(self.cache_dir.glob("tide-*.json")):
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    record = TideRecord.from_json(json.load(f))
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.warning(f"[TideCacheStore] Skipping unreadable {path.name}: {e}")
                continue
            if record.date == today:
                records[path.stem] = record
            else:
                stale.append(path)

        for path in stale:
            try:
                path.unlink()
                logger.info(f"[TideCacheStore] Discarded stale {path.name}")
            except OSError as e:
                logger.warning(f"[TideCacheStore] Could not remove {path.name}: {e}")

        logger.info(f"[TideCacheStore] Restored {len(records)} record(s) for {today}")
        return records
