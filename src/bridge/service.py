"""
Device-facing service.

Handles the requests a paired device sends (``location``, ``metar``, ``init``) and the
preference changes made on its settings page, answering through the OutboundQueue.
"""
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlencode

from src.config.settings import AppSettings, UserConfig, UserConfigStore
from src.fetch import FetchError, NearestStationLookup, ReportFetcher, StationLookupError, normalize_station
from src.logging_config import get_logger
from src.weather import MetarDecodeError, MetarReport, decode_metar

from .payloads import (
    LOCATION_BUSY,
    LOCATION_DONE,
    LOCATION_UNAVAILABLE,
    init_payload,
    location_payload,
    net_payload,
    report_payload,
    station_payload,
)
from .queue import OutboundQueue, Transport

logger = get_logger(__name__)

CONFIG_PAGE_VERSION = 4

Coordinates = Tuple[float, float]


class FlightWeatherService:
    def __init__(
        self,
        settings: AppSettings,
        store: UserConfigStore,
        queue: OutboundQueue,
        fetcher: Optional[ReportFetcher] = None,
        lookup: Optional[NearestStationLookup] = None,
    ):
        self.settings = settings
        self.store = store
        self.queue = queue
        self.fetcher = fetcher or ReportFetcher(settings)
        self.lookup = lookup or NearestStationLookup(settings)

    @classmethod
    def from_settings(cls, settings: AppSettings, transport: Transport) -> "FlightWeatherService":
        """Wire the queue and preference store from *settings* around a device transport."""
        queue = OutboundQueue(transport, max_retries=settings.max_retries)
        store = UserConfigStore(settings.user_config_path)
        return cls(settings, store, queue)

    async def handle_request(self, message: Dict[str, Any]) -> None:
        logger.info("Got message from device", payload=message)
        request = (message or {}).get("request")
        if not request:
            return
        prefs = self.store.load()

        if request == "location":
            await self.update_location(_coordinates(message))
        elif request == "metar":
            try:
                station = normalize_station(str(message.get("station") or ""))
            except ValueError as exc:
                logger.warning("Ignoring METAR request", error=str(exc))
                return
            await self.fetch_metar(station)
            self.store.save(prefs.with_station(station))
        elif request == "init":
            self.queue.send(init_payload(prefs))
        else:
            logger.warning("Unknown device request", request=request)

    async def update_location(self, coords: Optional[Coordinates]) -> None:
        prefs = self.store.load()
        if not prefs.location:
            self.queue.send(location_payload(LOCATION_UNAVAILABLE, prefs.station))
            return

        self.queue.send(location_payload(LOCATION_BUSY))
        if coords is None:
            logger.info("No position available for nearest station lookup")
            self.queue.send(location_payload(LOCATION_UNAVAILABLE, prefs.station))
            return

        self.queue.send(net_payload(True))
        try:
            station = await self.lookup.nearest_station(*coords)
        except StationLookupError as exc:
            logger.warning("Nearest station lookup failed", error=str(exc))
            self.queue.send(net_payload(False))
        else:
            self.queue.send(net_payload(False))
            logger.info("Closest station found", station=station)
            self.queue.send(station_payload(station))
        self.queue.send(location_payload(LOCATION_DONE))

    async def fetch_metar(self, station: str) -> Optional[MetarReport]:
        self.queue.send(net_payload(True))
        try:
            raw = await self.fetcher.fetch_report(station)
        except (FetchError, ValueError) as exc:
            logger.warning("METAR check failed", station=station, error=str(exc))
            self.queue.send(net_payload(False))
            return None
        self.queue.send(net_payload(False))

        report: Optional[MetarReport] = None
        try:
            report = decode_metar(raw)
        except MetarDecodeError as exc:
            # The device still gets the raw text; only the timestamp is lost.
            logger.warning("METAR could not be decoded", station=station, token=exc.token)
        self.queue.send(report_payload(raw, report))
        return report

    async def apply_preferences(self, new_prefs: UserConfig) -> None:
        before = self.store.load()
        self.store.save(new_prefs)
        logger.info("Preferences updated", before=before.as_dict(), after=new_prefs.as_dict())

        if before.location != new_prefs.location:
            if new_prefs.location:
                # A settings change carries no position, so this reports the location unavailable.
                await self.update_location(None)
            else:
                self.queue.send(location_payload(LOCATION_DONE))
                if new_prefs.station:
                    self.queue.send(station_payload(new_prefs.station))
        elif not new_prefs.location and new_prefs.station and before.station != new_prefs.station:
            self.queue.send(station_payload(new_prefs.station))

        if before.battery != new_prefs.battery:
            self.queue.send({"init": 1, "bat": 1 if new_prefs.battery else 0})
        if before.seconds != new_prefs.seconds:
            self.queue.send({"init": 1, "seconds": 1 if new_prefs.seconds else 0})
        if before.largefont != new_prefs.largefont:
            self.queue.send({"largefont": 1 if new_prefs.largefont else 0})

    def configuration_url(self) -> str:
        prefs = self.store.load()
        params = {
            "version": CONFIG_PAGE_VERSION,
            "seconds": _bool_text(prefs.seconds),
            "battery": _bool_text(prefs.battery),
            "location": _bool_text(prefs.location),
            "station": prefs.station or "",
            "largefont": _bool_text(prefs.largefont),
        }
        return f"{self.settings.configuration_url}?{urlencode(params)}"


def _bool_text(value: bool) -> str:
    return "true" if value else "false"


def _coordinates(message: Dict[str, Any]) -> Optional[Coordinates]:
    lat, lon = message.get("latitude"), message.get("longitude")
    if lat is None or lon is None:
        return None
    try:
        return float(lat), float(lon)
    except (TypeError, ValueError):
        return None
