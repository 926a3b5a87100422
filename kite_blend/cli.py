"""
Kite Blend command line runner.

    python -m kite_blend.cli 49.12 -66.49
    python -m kite_blend.cli 49.12 -66.49 --model ECMWF --hourly --day 1
"""

import argparse
import asyncio
import logging
import os
import sys

from colorama import Fore, Style, init

from kite_blend.config import EngineSettings, load_settings
from kite_blend.forecast_service import ForecastEngine, build_engine
from kite_blend.models import ALL_MODELS, BLEND_MODEL
from kite_blend.resilience import AllModelsFailedError, ProviderError
from kite_blend.units import convert_height, convert_speed, convert_temp, dir_label, wind_rating

logger = logging.getLogger(__name__)

RATING_COLORS = {"good": Fore.GREEN, "ok": Fore.YELLOW, "poor": Fore.RED}
AGREEMENT_COLORS = {"high": Fore.GREEN, "moderate": Fore.YELLOW, "low": Fore.RED}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Kite Blend - multi-model wind and tide forecast")
    parser.add_argument("lat", type=float, help="Spot latitude")
    parser.add_argument("lng", type=float, help="Spot longitude")
    parser.add_argument("--model", default=BLEND_MODEL, choices=ALL_MODELS,
                        help="Model to show (default: BLEND)")
    parser.add_argument("--day", type=int, default=0, choices=range(7),
                        help="Day offset for --hourly and tide peaks (0 = today)")
    parser.add_argument("--hourly", action="store_true", help="Show 24 hourly points instead of 7 days")
    return parser.parse_args(argv)


def setup_logging():
    os.makedirs("logs", exist_ok=True)
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler("logs/kite_blend.log", mode='a', encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )


def _speed(kts, settings: EngineSettings) -> str:
    return f"{convert_speed(kts, settings.speed_unit)}{settings.speed_unit}"


def _agreement(point) -> str:
    if point.model_agreement is None:
        return ""
    color = AGREEMENT_COLORS.get(point.model_agreement, "")
    return (f"  {color}{point.model_agreement} ({point.confidence:.2f}){Style.RESET_ALL}"
            f"  spread {point.spread:.0f}")


async def run(args, settings: EngineSettings, engine: ForecastEngine) -> int:
    print(f"\n{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")
    print(f"{Fore.CYAN}   KITE BLEND: {args.model} @ {args.lat:.3f}, {args.lng:.3f}{Style.RESET_ALL}")
    print(f"{Fore.CYAN}{'=' * 60}{Style.RESET_ALL}")

    has_tides = await engine.tides.fetch_tide_data(args.lat, args.lng)
    print(f"{Fore.WHITE}   [TIDES] {'real data' if has_tides else 'simulated'}{Style.RESET_ALL}\n")

    try:
        if args.hourly:
            points = await engine.fetch_hourly_forecast(args.lat, args.lng, args.model, args.day)
            for p in points:
                color = RATING_COLORS[wind_rating(p.wind)]
                print(f"  {p.hour}  {color}{_speed(p.wind, settings):>7}{Style.RESET_ALL}"
                      f" G{_speed(p.gust, settings):>7}  {dir_label(p.dir_deg):>2}"
                      f"  {convert_temp(p.temp, settings.temp_unit):>3}°{settings.temp_unit}"
                      f"  tide {convert_height(p.tide, settings.height_unit)}{settings.height_unit}"
                      f"{_agreement(p)}")
        else:
            points = await engine.fetch_daily_forecast(args.lat, args.lng, args.model)
            for p in points:
                color = RATING_COLORS[wind_rating(p.wind)]
                print(f"  {p.day} {p.date}  {color}{_speed(p.wind, settings):>7}{Style.RESET_ALL}"
                      f" G{_speed(p.gust, settings):>7}  {dir_label(p.dir_deg):>2}"
                      f"  {convert_temp(p.temp, settings.temp_unit):>3}°{settings.temp_unit}"
                      f"  {p.rain:.1f}mm{_agreement(p)}")
    except (ProviderError, AllModelsFailedError) as e:
        logger.error(f"[run] Forecast failed: {e}")
        print(f"{Fore.RED}[ERROR] {e}{Style.RESET_ALL}")
        return 1

    print(f"\n{Fore.YELLOW}Tides, day {args.day}:{Style.RESET_ALL}")
    for peak in engine.tides.tide_peaks(args.day, args.lat):
        print(f"  {peak.type:>4} {peak.time}  {convert_height(peak.level, settings.height_unit)}"
              f"{settings.height_unit}")
    return 0


def main(argv=None) -> int:
    init()
    args = parse_args(argv)
    setup_logging()
    settings = load_settings()
    engine = build_engine(settings)
    return asyncio.run(run(args, settings, engine))


if __name__ == "__main__":
    sys.exit(main())
