"""
Kite Blend: Multi-Model Wind & Tide Engine

Pulls wind forecasts from five global NWP models, blends them into one
consensus forecast with an agreement score, and serves tide curves from
Storm Glass extremes with a harmonic simulation fallback.

Architecture:
    providers/          - Data fetching:
                          * open_meteo.py  - GFS/ECMWF/ICON/MF/GEM per-model endpoints
                          * storm_glass.py - tidal extremes (10 req/day free tier)
    ensemble.py         - Weighted trimmed mean, circular mean, confidence
    forecast_service.py - ForecastEngine (cache + concurrent fan-out + blend)
    tides.py            - TideService (memory -> durable -> seed -> fetch chain)
    tide_physics.py     - Cosine interpolation and harmonic simulator
    cache_manager.py    - Forecast TTL cache and durable tide cache

Entry Points:
    python -m kite_blend.cli LAT LNG
"""

__version__ = "1.0.0"
__author__ = "Kite Blend"
