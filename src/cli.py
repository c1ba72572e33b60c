from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, Optional

import yaml

from src.config.settings import AppSettings, load_settings
from src.fetch import FetchError, ReportFetcher
from src.logging_config import configure_logging, get_logger
from src.weather import MetarDecodeError, decode_metar

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FETCH_FAILED = 1
EXIT_DECODE_FAILED = 2
EXIT_CONFIG_FAILED = 3


def _print(payload: Dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, sort_keys=True) + "\n")
    sys.stdout.flush()


def _decode_and_print(raw: str) -> int:
    try:
        report = decode_metar(raw)
    except MetarDecodeError as exc:
        logger.error("METAR could not be decoded", token=exc.token)
        _print({"metar": raw, "error": str(exc)})
        return EXIT_DECODE_FAILED
    _print({"metar": raw, "decoded": report.as_dict()})
    return EXIT_OK


async def _fetch(station: str, settings: AppSettings) -> int:
    try:
        raw = await ReportFetcher(settings).fetch_report(station)
    except (FetchError, ValueError) as exc:
        logger.error("METAR fetch failed", station=station, error=str(exc))
        return EXIT_FETCH_FAILED
    return _decode_and_print(raw)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Decode aviation routine weather reports (METAR).")
    parser.add_argument("--log-level", default=None, help="Log level (default: log_level from settings)")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", default=None, help="Path to flightweather YAML settings")
    sub = parser.add_subparsers(dest="command", required=True)

    p_decode = sub.add_parser("decode", parents=[common], help="Decode a report given on the command line")
    p_decode.add_argument("report", nargs="+", help="Report text (quote it or pass groups as separate words)")

    p_fetch = sub.add_parser("fetch", parents=[common], help="Fetch and decode the latest report for a station")
    p_fetch.add_argument("station", help="ICAO station code, e.g. EFHK")

    args = parser.parse_args(argv)
    try:
        settings = load_settings(args.config)
    except (OSError, yaml.YAMLError) as exc:
        configure_logging(args.log_level or "INFO", json=args.json_logs)
        logger.error("Settings could not be loaded", path=args.config, error=str(exc))
        return EXIT_CONFIG_FAILED
    configure_logging(args.log_level or settings.log_level, json=args.json_logs)

    if args.command == "decode":
        return _decode_and_print(" ".join(args.report))
    return asyncio.run(_fetch(args.station, settings))
