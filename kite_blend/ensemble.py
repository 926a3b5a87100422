"""
Weighted Ensemble Engine for Kite Blend

Combines wind forecasts from several NWP models into one consensus value
per time step.

Key Features:
1. Skill-weighted mean with single-outlier trimming (N >= 4)
2. Circular mean for wind direction (350° and 10° average to 0°, not 180°)
3. Confidence from the coefficient of variation of the wind values
4. Direction agreement from the mean resultant length

WEIGHTS (general NWP skill scores, not learned):
- ECMWF: 1.3 (IFS, most skilful global model)
- ICON: 1.1
- GFS: 1.0
- MF: 0.85 (ARPEGE)
- GEM: 0.8

CONFIDENCE LABELS:
- high: >= 0.75
- moderate: >= 0.45
- low: below
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, List, Sequence, Tuple

import numpy as np

from kite_blend.models import DayForecast, HourForecast
from kite_blend.units import round_half_up

logger = logging.getLogger(__name__)

MODEL_WEIGHTS: Dict[str, float] = {
    "ECMWF": 1.3,
    "GFS": 1.0,
    "ICON": 1.1,
    "MF": 0.85,
    "GEM": 0.8,
}

# Trimming kicks in at this ensemble size
TRIM_MIN_MEMBERS = 4

WIND_CONFIDENCE_SHARE = 0.6
DIRECTION_AGREEMENT_SHARE = 0.4


def model_weight(model: str) -> float:
    return MODEL_WEIGHTS.get(model, 1.0)


@dataclass(frozen=True)
class BlendResult:
    """Blend of one scalar quantity across models."""
    mean: float
    spread: float
    confidence: float


def blend_values(values: Sequence[float], models: Sequence[str], trim: bool = True) -> BlendResult:
    """
    Weighted mean with optional outlier rejection.

    If trim and N >= 4, the single value furthest from the initial weighted
    mean is dropped before the final mean is taken. Spread is always the full
    range across all models. Confidence maps the coefficient of variation
    (all values about the final mean) onto [0, 1]: CV=0 -> 1.0, CV>=0.5 -> 0.0.
    """
    n = len(values)
    if n == 0:
        return BlendResult(mean=0.0, spread=0.0, confidence=0.0)
    if n == 1:
        return BlendResult(mean=float(values[0]), spread=0.0, confidence=0.5)

    vals = np.asarray(values, dtype=float)
    weights = np.array([model_weight(m) for m in models], dtype=float)

    initial_mean = float(np.average(vals, weights=weights))

    keep = np.ones(n, dtype=bool)
    if trim and n >= TRIM_MIN_MEMBERS:
        # argmax picks the first index on ties
        outlier = int(np.argmax(np.abs(vals - initial_mean)))
        keep[outlier] = False
        logger.debug(f"[blend_values] Trimmed {models[outlier]}={vals[outlier]:.1f} "
                     f"(initial mean {initial_mean:.2f})")

    mean = float(np.average(vals[keep], weights=weights[keep]))
    spread = float(vals.max() - vals.min())

    std = math.sqrt(float(np.sum((vals - mean) ** 2)) / n)
    cv = std / mean if mean > 0 else std
    confidence = max(0.0, min(1.0, 1 - cv * 2))

    return BlendResult(mean=mean, spread=spread, confidence=confidence)


def circular_mean_deg(angles: Sequence[float], weights: Sequence[float]) -> int:
    """Weighted circular mean of directions in degrees, in [0, 360)."""
    rad = np.radians(np.asarray(angles, dtype=float))
    w = np.asarray(weights, dtype=float)
    sum_w = w.sum()
    mean = math.degrees(math.atan2(float(np.sum(np.sin(rad) * w)) / sum_w,
                                   float(np.sum(np.cos(rad) * w)) / sum_w))
    if mean < 0:
        mean += 360
    return int(round_half_up(mean)) % 360


def circular_concentration(angles: Sequence[float]) -> float:
    """
    Mean resultant length of the (unweighted) directions.

    Returns 0-1 where 1 means every model points the same way.
    """
    n = len(angles)
    if n <= 1:
        return 1.0
    rad = np.radians(np.asarray(angles, dtype=float))
    return math.hypot(float(np.sum(np.sin(rad))), float(np.sum(np.cos(rad)))) / n


def agreement_label(confidence: float) -> str:
    if confidence >= 0.75:
        return "high"
    if confidence >= 0.45:
        return "moderate"
    return "low"


def overall_confidence(wind: BlendResult, direction_agreement: float) -> float:
    return wind.confidence * WIND_CONFIDENCE_SHARE + direction_agreement * DIRECTION_AGREEMENT_SHARE


def _column(series: Sequence[Sequence], index: int, attr: str) -> List[float]:
    """One quantity at one time step across models; missing steps count as 0."""
    return [getattr(s[index], attr) if index < len(s) else 0.0 for s in series]


def _blend_step(series: Sequence[Sequence], models: Sequence[str], index: int
                ) -> Tuple[BlendResult, BlendResult, BlendResult, BlendResult, int, float]:
    weights = [model_weight(m) for m in models]
    dirs = _column(series, index, "dir_deg")

    wind = blend_values(_column(series, index, "wind"), models)
    gust = blend_values(_column(series, index, "gust"), models)
    temp = blend_values(_column(series, index, "temp"), models, trim=False)
    rain = blend_values(_column(series, index, "rain"), models, trim=False)
    direction = circular_mean_deg(dirs, weights)
    overall = overall_confidence(wind, circular_concentration(dirs))
    return wind, gust, temp, rain, direction, overall


class WeightedEnsembleEngine:
    """
    Blends aligned per-model forecast sequences.

    Sequences are aligned positionally on the first model's time grid; the
    caller guarantees congruent grids.
    """

    def __init__(self):
        logger.debug(f"[WeightedEnsembleEngine] Weights: {MODEL_WEIGHTS}")

    def blend_daily(self, forecasts: Dict[str, Sequence[DayForecast]]) -> Tuple[DayForecast, ...]:
        models = list(forecasts.keys())
        series = [forecasts[m] for m in models]
        if not series:
            return ()

        blended = []
        for i, first in enumerate(series[0]):
            wind, gust, temp, rain, direction, overall = _blend_step(series, models, i)
            blended.append(replace(
                first,
                wind=int(round_half_up(wind.mean)),
                gust=int(round_half_up(gust.mean)),
                temp=round_half_up(temp.mean),
                rain=round_half_up(rain.mean, 1),
                dir_deg=direction,
                spread=wind.spread,
                confidence=round_half_up(overall, 2),
                model_agreement=agreement_label(overall),
            ))

        self._log_summary("daily", models, blended)
        return tuple(blended)

    def blend_hourly(self, forecasts: Dict[str, Sequence[HourForecast]]) -> Tuple[HourForecast, ...]:
        models = list(forecasts.keys())
        series = [forecasts[m] for m in models]
        if not series:
            return ()

        blended = []
        for i, first in enumerate(series[0]):
            wind, gust, temp, rain, direction, overall = _blend_step(series, models, i)
            blended.append(replace(
                first,
                wind=int(round_half_up(wind.mean)),
                gust=int(round_half_up(gust.mean)),
                temp=round_half_up(temp.mean, 1),
                rain=round_half_up(rain.mean, 1),
                dir_deg=direction,
                spread=wind.spread,
                confidence=round_half_up(overall, 2),
                model_agreement=agreement_label(overall),
            ))

        self._log_summary("hourly", models, blended)
        return tuple(blended)

    @staticmethod
    def _log_summary(kind: str, models: List[str], blended: Sequence) -> None:
        if not blended:
            return
        avg_conf = sum(p.confidence for p in blended) / len(blended)
        low = sum(1 for p in blended if p.model_agreement == "low")
        logger.info(f"[WeightedEnsembleEngine] {kind} blend of {len(models)} models "
                    f"({', '.join(models)}): avg confidence {avg_conf:.2f}, "
                    f"{low}/{len(blended)} low-agreement steps")
