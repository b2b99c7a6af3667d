"""Command line entry point: `shichenclock now|watch|at|day`."""

import argparse
import asyncio
import json
import logging
import sys

import pytz
from dotenv import load_dotenv

from shichenclock.branches import EARTHLY_BRANCHES
from shichenclock.calculator import build_solar_time_data, civil_now, civil_time_range
from shichenclock.compute import compute_solar_time, geocode_address, locate
from shichenclock.config import Settings
from shichenclock.errors import ShichenClockError
from shichenclock.i18n import branch_label, hexagram_label, t
from shichenclock.locators.factory import build_locator
from shichenclock.models import SolarTimeData
from shichenclock.provider import SolarTimeProvider

logger = logging.getLogger(__name__)


def format_report(data: SolarTimeData, lang: str = "en") -> str:
    """Multi-line human readable rendering of one snapshot."""
    unit = t("unit_minutes", lang)
    lines = [
        f"{t('label_civil_time', lang)}: {data.civil_time:%Y-%m-%d %H:%M}",
        f"{t('label_solar_time', lang)}: {data.solar_hour:02d}:{data.solar_minute:02d}",
        f"{t('label_offset', lang)}: {data.solar_offset_minutes:+.1f} {unit}",
        f"{t('label_precision', lang)}: {data.precision}",
        f"{t('label_current_hour', lang)}: {branch_label(data.earthly_branch, lang)}"
        f" ({data.branch_progress:.0%})",
        f"{t('label_hexagram', lang)}: {hexagram_label(data.earthly_branch, lang)}",
        f"{t('label_next', lang)}: {data.shichen.minutes_to_next:.0f} {unit}",
    ]
    return "\n".join(lines)


def format_day(data: SolarTimeData, lang: str = "en") -> str:
    """Civil clock span of all twelve branches for the snapshot's offset."""
    lines = [f"{t('label_time_range', lang)} ({t('label_offset', lang)} {data.solar_offset_minutes:+.1f})"]
    for branch in EARTHLY_BRANCHES:
        marker = "*" if branch == data.earthly_branch else " "
        span = civil_time_range(branch, data.solar_offset_minutes)
        lines.append(f"{marker} {span}  {branch_label(branch, lang)}")
    return "\n".join(lines)


def _emit(data: SolarTimeData, as_json: bool, lang: str) -> None:
    if as_json:
        print(json.dumps(data.to_dict(), ensure_ascii=False))
    else:
        print(format_report(data, lang))


async def snapshot(settings: Settings) -> SolarTimeData:
    """Current solar time from the best configured source, once."""
    locator = await build_locator(settings)
    try:
        try:
            position = await locator.get_current_position()
        except ShichenClockError as exc:
            logger.warning("Falling back to timezone estimate: %s", exc)
            position = None
        return build_solar_time_data(civil_now(settings.tzinfo), position)
    finally:
        locator.dispose()


async def watch(settings: Settings, lang: str, count: int | None = None) -> None:
    """Print every provider update until ``count`` updates or cancellation."""
    locator = await build_locator(settings)
    provider = SolarTimeProvider(locator, tz=settings.tzinfo)
    updates: asyncio.Queue[SolarTimeData] = asyncio.Queue()
    unsubscribe = provider.subscribe(updates.put_nowait)
    try:
        seen = 0
        while count is None or seen < count:
            data = await updates.get()
            print(format_report(data, lang))
            print()
            seen += 1
    finally:
        unsubscribe()
        provider.dispose()
        locator.dispose()


def cmd_now(args: argparse.Namespace, settings: Settings, lang: str) -> int:
    data = asyncio.run(snapshot(settings))
    _emit(data, args.json, lang)
    return 0


def cmd_watch(args: argparse.Namespace, settings: Settings, lang: str) -> int:
    try:
        asyncio.run(watch(settings, lang, args.count))
    except KeyboardInterrupt:
        pass
    return 0


def cmd_at(args: argparse.Namespace, settings: Settings, lang: str) -> int:
    if args.address:
        context = geocode_address(args.address, args.when, lang)
    elif args.lat is not None and args.lng is not None:
        context = locate(args.lat, args.lng, args.when)
    else:
        raise ShichenClockError("give --address or both --lat and --lng")
    data = compute_solar_time(context)
    if not args.json:
        print(context.address_display)
    _emit(data, args.json, lang)
    return 0


def cmd_day(args: argparse.Namespace, settings: Settings, lang: str) -> int:
    data = asyncio.run(snapshot(settings))
    print(format_day(data, lang))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="shichenclock", description="Local solar time and Chinese double-hours.")
    p.add_argument("--lang", choices=["en", "zh", "es"], default=None, help="Output language (default: SHICHEN_LANG or en)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_now = sub.add_parser("now", help="Current solar time and shichen")
    p_now.add_argument("--json", action="store_true", help="Print a JSON object")
    p_now.set_defaults(func=cmd_now)

    p_watch = sub.add_parser("watch", help="Print updates as location and minutes change")
    p_watch.add_argument("--count", type=int, default=None, help="Stop after N updates")
    p_watch.set_defaults(func=cmd_watch)

    p_at = sub.add_parser("at", help="Solar time at a place and local moment")
    p_at.add_argument("--address", help="Free-form address, geocoded through OpenStreetMap")
    p_at.add_argument("--lat", type=float, help="Latitude in degrees")
    p_at.add_argument("--lng", type=float, help="Longitude in degrees (positive East)")
    p_at.add_argument("--when", required=True, help="Local time, YYYY-MM-DD HH:MM")
    p_at.add_argument("--json", action="store_true", help="Print a JSON object")
    p_at.set_defaults(func=cmd_at)

    p_day = sub.add_parser("day", help="Clock-time span of each double-hour today")
    p_day.set_defaults(func=cmd_day)
    return p


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
    except ShichenClockError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    lang = args.lang or settings.lang

    try:
        return args.func(args, settings, lang)
    except (ShichenClockError, pytz.InvalidTimeError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
