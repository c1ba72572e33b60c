from __future__ import annotations

import asyncio
from typing import Any, Dict

import aiohttp

from src.config.settings import AppSettings
from src.logging_config import get_logger
from src.weather import MetarDecodeError, decode_metar

logger = get_logger(__name__)


class StationLookupError(RuntimeError):
    pass


class NearestStationLookup:
    """Find the reporting station closest to a position.

    geonames answers with the nearest observation; only its station code is used since
    the observation text itself may lag behind the primary report feeds.
    """

    def __init__(self, settings: AppSettings):
        self.settings = settings

    async def nearest_station(self, latitude: float, longitude: float) -> str:
        if not self.settings.geonames_username:
            raise StationLookupError("geonames username is not configured")

        params = {
            "lat": str(latitude),
            "lng": str(longitude),
            "radius": str(self.settings.geonames_radius_km),
            "username": self.settings.geonames_username,
        }
        timeout = aiohttp.ClientTimeout(total=self.settings.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(self.settings.geonames_url, params=params) as response:
                    if response.status != 200:
                        raise StationLookupError(f"geonames returned status {response.status}")
                    data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise StationLookupError(f"geonames request failed: {exc}") from exc

        return station_from_observation(data)


def station_from_observation(data: Dict[str, Any]) -> str:
    observation = data.get("weatherObservation") if isinstance(data, dict) else None
    raw = observation.get("observation") if isinstance(observation, dict) else None
    if not raw:
        raise StationLookupError("geonames response has no weather observation")
    try:
        report = decode_metar(str(raw))
    except MetarDecodeError as exc:
        raise StationLookupError(f"geonames observation could not be decoded: {exc}") from exc
    station = report.station
    if not station:
        raise StationLookupError("geonames observation has no station")
    return station
