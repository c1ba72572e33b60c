from __future__ import annotations

from typing import Any, Dict, Optional

from src.config.settings import UserConfig
from src.weather import MetarReport

# Location lookup states reported to the device.
LOCATION_BUSY = 1
LOCATION_DONE = 0
LOCATION_UNAVAILABLE = -1


def _flag(value: bool) -> int:
    return 1 if value else 0


def net_payload(active: bool) -> Dict[str, Any]:
    return {"net": _flag(active)}


def location_payload(state: int, station: Optional[str] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"location": int(state)}
    if state == LOCATION_UNAVAILABLE:
        payload["station"] = station or ""
    return payload


def station_payload(station: str) -> Dict[str, Any]:
    return {"station": station}


def init_payload(prefs: UserConfig) -> Dict[str, Any]:
    return {
        "init": 1,
        "seconds": _flag(prefs.seconds),
        "bat": _flag(prefs.battery),
        "largefont": _flag(prefs.largefont),
    }


def report_payload(raw: str, report: Optional[MetarReport]) -> Dict[str, Any]:
    """Report message for the device: raw text plus observation time as Unix seconds."""
    payload: Dict[str, Any] = {"metar": raw}
    if report is not None and report.time is not None:
        payload["updated"] = int(report.time.timestamp())
    return payload
