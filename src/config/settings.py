from __future__ import annotations

import os
import threading
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

import yaml

from src.logging_config import get_logger

from .loaders import DEFAULT_SETTINGS_PATH, load_yaml_with_local_override, resolve_config_path

logger = get_logger(__name__)

DEFAULT_REPORT_URLS: Tuple[str, ...] = (
    "https://tgftp.nws.noaa.gov/data/observations/metar/stations/{station}.TXT",
)
DEFAULT_GEONAMES_URL = "http://api.geonames.org/findNearByWeatherJSON"
DEFAULT_CONFIGURATION_URL = "http://olofbeckman.se/config/application/metarconfig"


@dataclass(frozen=True)
class AppSettings:
    report_urls: Tuple[str, ...] = DEFAULT_REPORT_URLS
    timeout_seconds: float = 10.0
    user_agent: str = "flightweather/1.0"
    geonames_url: str = DEFAULT_GEONAMES_URL
    geonames_username: Optional[str] = None
    geonames_radius_km: int = 1000
    max_retries: int = 3
    user_config_path: str = os.path.join("config", "user.yaml")
    configuration_url: str = DEFAULT_CONFIGURATION_URL
    log_level: str = "INFO"


def load_settings(path: Optional[str] = None) -> AppSettings:
    """Build AppSettings from YAML.

    An explicit *path* must exist. Without one, ``config/flightweather.yaml`` is used
    when present and built-in defaults otherwise.
    """
    if path is None:
        default_path = resolve_config_path(DEFAULT_SETTINGS_PATH)
        if not os.path.isfile(default_path):
            return AppSettings()
        path = default_path
    raw = load_yaml_with_local_override(resolve_config_path(path))
    return settings_from_dict(raw if isinstance(raw, dict) else {})


def settings_from_dict(raw: Dict[str, Any]) -> AppSettings:
    fetch = raw.get("fetch") if isinstance(raw.get("fetch"), dict) else {}
    geonames = raw.get("geonames") if isinstance(raw.get("geonames"), dict) else {}
    bridge = raw.get("bridge") if isinstance(raw.get("bridge"), dict) else {}
    defaults = AppSettings()

    urls = fetch.get("report_urls")
    if isinstance(urls, str):
        urls = [urls]
    report_urls = tuple(str(u).strip() for u in (urls or []) if str(u).strip()) or defaults.report_urls

    return AppSettings(
        report_urls=report_urls,
        timeout_seconds=max(1.0, _as_float(fetch.get("timeout_seconds"), defaults.timeout_seconds)),
        user_agent=(str(fetch.get("user_agent") or "").strip() or defaults.user_agent),
        geonames_url=(str(geonames.get("url") or "").strip() or defaults.geonames_url),
        geonames_username=(str(geonames.get("username") or "").strip() or None),
        geonames_radius_km=max(1, _as_int(geonames.get("radius_km"), defaults.geonames_radius_km)),
        max_retries=max(0, _as_int(bridge.get("max_retries"), defaults.max_retries)),
        user_config_path=(str(bridge.get("user_config_path") or "").strip() or defaults.user_config_path),
        configuration_url=(str(bridge.get("configuration_url") or "").strip() or defaults.configuration_url),
        log_level=(str(raw.get("log_level") or "").strip().upper() or defaults.log_level),
    )


@dataclass(frozen=True)
class UserConfig:
    """Preferences chosen on the device's settings page."""

    station: Optional[str] = None
    location: bool = True
    battery: bool = False
    largefont: bool = False
    seconds: bool = False

    def with_station(self, station: Optional[str]) -> "UserConfig":
        return replace(self, station=station)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def user_config_from_dict(raw: Dict[str, Any]) -> UserConfig:
    station = raw.get("station")
    station = str(station).strip().upper() if station not in (None, "") else None
    return UserConfig(
        station=station or None,
        location=_as_bool(raw.get("location"), True),
        battery=_as_bool(raw.get("battery"), False),
        largefont=_as_bool(raw.get("largefont"), False),
        seconds=_as_bool(raw.get("seconds"), False),
    )


class UserConfigStore:
    """YAML-backed persistence for UserConfig.

    A missing file means "not configured yet" and yields defaults; an unreadable one is
    logged and also yields defaults so the device keeps working.
    """

    def __init__(self, path: str):
        self.path = resolve_config_path(path)
        self._lock = threading.Lock()

    def load(self) -> UserConfig:
        with self._lock:
            if not os.path.isfile(self.path):
                return UserConfig()
            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    raw = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as exc:
                logger.warning("Failed to read user config; using defaults", path=self.path, error=str(exc))
                return UserConfig()
        if not isinstance(raw, dict):
            logger.warning("User config is not a mapping; using defaults", path=self.path)
            return UserConfig()
        return user_config_from_dict(raw)

    def save(self, config: UserConfig) -> None:
        with self._lock:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp_path = f"{self.path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(config.as_dict(), f, sort_keys=True)
            os.replace(tmp_path, self.path)
        logger.debug("User config saved", path=self.path, station=config.station)


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    return default
