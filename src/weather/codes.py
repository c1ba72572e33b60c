from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional


# http://www.met.tamu.edu/class/metar/metar-pg10-sky.html
SKY_COVER: Mapping[str, str] = MappingProxyType(
    {
        "NCD": "no clouds",
        "SKC": "sky clear",
        "CLR": "no clouds under 12,000 ft",
        "NSC": "no significant",
        "FEW": "few",
        "SCT": "scattered",
        "BKN": "broken",
        "OVC": "overcast",
        "VV": "vertical visibility",
    }
)

WEATHER: Mapping[str, str] = MappingProxyType(
    {
        # Intensity / proximity
        "-": "light intensity",
        "+": "heavy intensity",
        "VC": "in the vicinity",
        # Descriptor
        "MI": "shallow",
        "PR": "partial",
        "BC": "patches",
        "DR": "low drifting",
        "BL": "blowing",
        "SH": "showers",
        "TS": "thunderstorm",
        "FZ": "freezing",
        # Precipitation
        "RA": "rain",
        "DZ": "drizzle",
        "SN": "snow",
        "SG": "snow grains",
        "IC": "ice crystals",
        "PL": "ice pellets",
        "GR": "hail",
        "GS": "small hail",
        "UP": "unknown precipitation",
        # Obscuration
        "FG": "fog",
        "VA": "volcanic ash",
        "BR": "mist",
        "HZ": "haze",
        "DU": "widespread dust",
        "FU": "smoke",
        "SA": "sand",
        "PY": "spray",
        # Other
        "SQ": "squall",
        "PO": "dust or sand whirls",
        "DS": "duststorm",
        "SS": "sandstorm",
        "FC": "funnel cloud",
    }
)

_MAX_CODE_LENGTH = 3


@dataclass(frozen=True)
class Phenomenon:
    code: str
    meaning: str


def match_abbreviation(text: Optional[str], table: Mapping[str, str]) -> Optional[Phenomenon]:
    """Return the longest code (3, 2 then 1 chars) that prefixes ``text``."""
    if not text:
        return None
    for length in range(_MAX_CODE_LENGTH, 0, -1):
        code = text[:length]
        # Short inputs yield the same slice for several lengths; skip those.
        if len(code) != length:
            continue
        meaning = table.get(code)
        if meaning is not None:
            return Phenomenon(code=code, meaning=meaning)
    return None
