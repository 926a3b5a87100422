"""
Providers package for Kite Blend

1. Open-Meteo - per-model wind forecasts (GFS, ECMWF, ICON, MF, GEM)
2. Storm Glass - tidal extremes (needs STORMGLASS_API_KEY)
"""

from kite_blend.providers.open_meteo import (
    OpenMeteoProvider,
    MODEL_URLS,
    SCHEMA_VERSION,
)

from kite_blend.providers.storm_glass import (
    StormGlassProvider,
    parse_extremes,
)

__all__ = [
    # Open-Meteo
    "OpenMeteoProvider",
    "MODEL_URLS",
    "SCHEMA_VERSION",
    # Storm Glass
    "StormGlassProvider",
    "parse_extremes",
]
