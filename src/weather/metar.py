from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from .codes import SKY_COVER, WEATHER, Phenomenon, match_abbreviation
from .errors import MetarDecodeError
from .tokens import TokenCursor

VARIABLE_DIRECTION = "VRB"
WIND_UNITS = ("KT", "MPS", "KPH")
METERS_PER_STATUTE_MILE = 1609

_REPORT_TYPES = ("METAR", "SPECI")
_AUTO = "AUTO"
_CAVOK = "CAVOK"
_VIS_UNKNOWN = "////"
_SM = "SM"

_RE_WIND_UNIT = re.compile(r"(?P<unit>" + "|".join(WIND_UNITS) + r")$")
_RE_GUST = re.compile(r"^G(?P<gst>\d+)")
_RE_VAR_WIND = re.compile(r"^(?P<from>\d{3})V(?P<to>\d{3})$")
_RE_VIS_METERS = re.compile(r"^\d{4}$")
_RE_RVR = re.compile(r"^R\d+")
_RE_LEADING_INT = re.compile(r"^[0-9]+")
_RE_DIGITS = re.compile(r"^[0-9]+$")


@dataclass(frozen=True)
class WindVariation:
    min: int
    max: int


@dataclass(frozen=True)
class Wind:
    direction: Union[int, str, None] = None  # degrees, or "VRB"
    speed: Optional[int] = None
    gust: Optional[int] = None
    unit: Optional[str] = None  # KT/MPS/KPH
    # True: varies with unknown bounds; WindVariation: bounded; None: steady
    variation: Union[bool, WindVariation, None] = None


@dataclass(frozen=True)
class CloudLayer:
    code: str
    meaning: str
    altitude: Optional[int] = None  # feet
    cumulonimbus: bool = False


@dataclass
class MetarReport:
    station: Optional[str] = None
    time: Optional[datetime] = None
    day: Optional[int] = None
    hour: Optional[int] = None
    minute: Optional[int] = None
    auto: bool = False
    wind: Optional[Wind] = None
    cavok: bool = False
    visibility: Optional[int] = None  # meters
    statute_visibility: Optional[str] = None
    weather: List[List[Phenomenon]] = field(default_factory=list)
    clouds: List[CloudLayer] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["time"] = self.time.isoformat() if self.time else None
        return data


def decode_metar(text: str, *, now: Optional[datetime] = None) -> MetarReport:
    """Decode a single METAR line.

    Groups are read in the fixed order station, time, AUTO, wind, CAVOK, visibility,
    runway visual range, present weather, clouds. Missing or unrecognised groups leave
    their fields at the defaults; trailing groups (temperature, pressure, remarks) are
    left unread.

    Raises:
        MetarDecodeError: the wind group is present but carries no known speed unit.
    """
    cursor = TokenCursor(text)
    report = MetarReport()
    reference = now or datetime.now(timezone.utc)

    _decode_station(cursor, report)
    _decode_time(cursor, report, reference)
    _decode_auto(cursor, report)
    _decode_wind(cursor, report)
    _decode_cavok(cursor, report)
    _decode_visibility(cursor, report)
    _skip_runway_visual_range(cursor, report)
    _decode_weather(cursor, report)
    _decode_clouds(cursor, report)

    return report


def _decode_station(cursor: TokenCursor, report: MetarReport) -> None:
    if cursor.peek() in _REPORT_TYPES:
        cursor.advance()
    report.station = cursor.advance()


def _decode_time(cursor: TokenCursor, report: MetarReport, reference: datetime) -> None:
    token = cursor.advance()
    if token is None:
        return
    report.day = _as_int(token[0:2])
    report.hour = _as_int(token[2:4])
    report.minute = _as_int(token[4:6])
    if report.day is None or report.hour is None or report.minute is None:
        return
    ref = reference.astimezone(timezone.utc)
    try:
        report.time = datetime(
            ref.year, ref.month, report.day, report.hour, report.minute, 0, tzinfo=timezone.utc
        )
    except ValueError:
        report.time = None


def _decode_auto(cursor: TokenCursor, report: MetarReport) -> None:
    report.auto = cursor.peek() == _AUTO
    if report.auto:
        cursor.advance()


def _decode_wind(cursor: TokenCursor, report: MetarReport) -> None:
    token = cursor.advance()
    if token is None:
        return

    unit_match = _RE_WIND_UNIT.search(token)
    if not unit_match:
        raise MetarDecodeError(f"Bad wind unit: {token}", token=token)

    raw_dir = token[0:3]
    variation: Union[bool, WindVariation, None] = None
    direction: Union[int, str, None]
    if raw_dir == VARIABLE_DIRECTION:
        direction = VARIABLE_DIRECTION
        variation = True
    else:
        direction = _as_int(raw_dir)

    gust_match = _RE_GUST.match(token[5:])
    gust = int(gust_match.group("gst")) if gust_match else None

    var_match = _RE_VAR_WIND.match(cursor.peek() or "")
    if var_match:
        cursor.advance()
        variation = WindVariation(min=int(var_match.group("from")), max=int(var_match.group("to")))

    report.wind = Wind(
        direction=direction,
        speed=_as_int(token[3:5]),
        gust=gust,
        unit=unit_match.group("unit"),
        variation=variation,
    )


def _decode_cavok(cursor: TokenCursor, report: MetarReport) -> None:
    report.cavok = cursor.peek() == _CAVOK
    if report.cavok:
        cursor.advance()


def _decode_visibility(cursor: TokenCursor, report: MetarReport) -> None:
    report.visibility = None
    report.statute_visibility = None
    if report.cavok:
        return

    token = cursor.peek()
    if token is None:
        return
    if token == _VIS_UNKNOWN:
        cursor.advance()
        return
    if _RE_VIS_METERS.match(token):
        cursor.advance()
        report.visibility = int(token)
        return

    if token.endswith(_SM):
        # 1 word statute mile number, i.e. '2SM' or '1/2SM'
        cursor.advance()
        report.statute_visibility = token
        report.visibility = _statute_to_meters(token)
        return

    following = cursor.peek(2)
    if _as_int(token) is not None and following is not None and following.endswith(_SM):
        # 2 word statute mile number, i.e. '1 1/2SM'
        cursor.advance()
        cursor.advance()
        report.statute_visibility = f"{token} {following}"
        fraction = _statute_to_meters(following)
        report.visibility = None if fraction is None else int(token) * METERS_PER_STATUTE_MILE + fraction


def _statute_to_meters(token: str) -> Optional[int]:
    value = token[: -len(_SM)].lstrip("PM")
    if "/" in value:
        num_s, den_s = value.split("/", 1)
        num, den = _as_int(num_s), _as_int(den_s)
        if num is None or not den:
            return None
        return num * METERS_PER_STATUTE_MILE // den
    whole = _as_int(value)
    return None if whole is None else whole * METERS_PER_STATUTE_MILE


def _skip_runway_visual_range(cursor: TokenCursor, report: MetarReport) -> None:
    # Runway groups are recognised so later decoders can continue; their values are not kept.
    if report.cavok:
        return
    while _RE_RVR.match(cursor.peek() or ""):
        cursor.advance()


def _split_weather(token: Optional[str]) -> List[Phenomenon]:
    codes: List[Phenomenon] = []
    rest = token or ""
    while rest:
        found = match_abbreviation(rest, WEATHER)
        if found is None:
            break
        codes.append(found)
        rest = rest[len(found.code) :]
    return codes


def _decode_weather(cursor: TokenCursor, report: MetarReport) -> None:
    report.weather = []
    if report.cavok:
        return
    while True:
        group = _split_weather(cursor.peek())
        if not group:
            break
        report.weather.append(group)
        cursor.advance()


def _decode_clouds(cursor: TokenCursor, report: MetarReport) -> None:
    report.clouds = []
    if report.cavok:
        return
    while True:
        token = cursor.peek()
        cover = match_abbreviation(token, SKY_COVER)
        if cover is None or token is None:
            break
        cursor.advance()
        height = _RE_LEADING_INT.match(token[len(cover.code) :])
        report.clouds.append(
            CloudLayer(
                code=cover.code,
                meaning=cover.meaning,
                altitude=int(height.group(0)) * 100 if height else None,
                cumulonimbus=token.endswith("CB"),
            )
        )


def _as_int(text: Optional[str]) -> Optional[int]:
    if not text or not _RE_DIGITS.match(text):
        return None
    return int(text)
