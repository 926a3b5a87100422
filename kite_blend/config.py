"""
Configuration for Kite Blend

Settings come from the environment (optionally a .env file via python-dotenv).

    STORMGLASS_API_KEY         Storm Glass key for real tide data (empty = simulation)
    KITE_BLEND_MODELS          Comma-separated enabled models (default: all + BLEND)
    KITE_BLEND_TIDE_CACHE_DIR  Durable tide cache directory
    KITE_BLEND_SPEED_UNIT      kts | mph | km/h
    KITE_BLEND_HEIGHT_UNIT     m | ft
    KITE_BLEND_TEMP_UNIT       C | F
    KITE_BLEND_TIMEOUT         HTTP timeout in seconds
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from kite_blend.models import ALL_MODELS, BASE_MODELS, BLEND_MODEL

logger = logging.getLogger(__name__)

DEFAULT_TIDE_CACHE_DIR = Path("outputs/cache/tides")
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass
class EngineSettings:
    enabled_models: Tuple[str, ...] = ALL_MODELS
    storm_glass_key: str = ""
    tide_cache_dir: Optional[Path] = DEFAULT_TIDE_CACHE_DIR
    speed_unit: str = "kts"
    height_unit: str = "m"
    temp_unit: str = "C"
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @property
    def blend_models(self) -> Tuple[str, ...]:
        """Base models that take part in a BLEND request."""
        return tuple(m for m in self.enabled_models if m != BLEND_MODEL)


def parse_models(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return ALL_MODELS

    models = []
    for name in raw.split(","):
        name = name.strip().upper()
        if not name:
            continue
        if name not in ALL_MODELS:
            logger.warning(f"[parse_models] Ignoring unknown model '{name}'")
            continue
        if name not in models:
            models.append(name)

    if not any(m in BASE_MODELS for m in models):
        logger.warning("[parse_models] No base model enabled, falling back to all models")
        return ALL_MODELS
    return tuple(models)


def parse_timeout(raw: Optional[str]) -> float:
    if not raw:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        timeout = float(raw)
    except ValueError:
        logger.warning(f"[parse_timeout] Invalid timeout '{raw}', using {DEFAULT_TIMEOUT_SECONDS}s")
        return DEFAULT_TIMEOUT_SECONDS
    if timeout <= 0:
        logger.warning(f"[parse_timeout] Timeout must be positive, using {DEFAULT_TIMEOUT_SECONDS}s")
        return DEFAULT_TIMEOUT_SECONDS
    return timeout


def load_settings(env_file: Optional[str] = None) -> EngineSettings:
    """Build EngineSettings from the environment."""
    load_dotenv(env_file)

    cache_dir = os.getenv("KITE_BLEND_TIDE_CACHE_DIR")

    settings = EngineSettings(
        enabled_models=parse_models(os.getenv("KITE_BLEND_MODELS")),
        storm_glass_key=os.getenv("STORMGLASS_API_KEY", "").strip(),
        tide_cache_dir=Path(cache_dir) if cache_dir else DEFAULT_TIDE_CACHE_DIR,
        speed_unit=os.getenv("KITE_BLEND_SPEED_UNIT", "kts"),
        height_unit=os.getenv("KITE_BLEND_HEIGHT_UNIT", "m"),
        temp_unit=os.getenv("KITE_BLEND_TEMP_UNIT", "C"),
        timeout_seconds=parse_timeout(os.getenv("KITE_BLEND_TIMEOUT")),
    )

    if not settings.storm_glass_key:
        logger.warning("[load_settings] No Storm Glass key found in env, tides will be simulated")
    else:
        logger.info("[load_settings] Storm Glass key loaded successfully")
    logger.info(f"[load_settings] Enabled models: {settings.enabled_models}")

    return settings
