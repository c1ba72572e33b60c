"""METAR decoding (station, time, wind, visibility, weather, clouds)."""

from .codes import SKY_COVER, WEATHER, Phenomenon, match_abbreviation
from .errors import MetarDecodeError
from .metar import CloudLayer, MetarReport, Wind, WindVariation, decode_metar
from .tokens import TokenCursor

__all__ = [
    "CloudLayer",
    "MetarDecodeError",
    "MetarReport",
    "Phenomenon",
    "SKY_COVER",
    "TokenCursor",
    "WEATHER",
    "Wind",
    "WindVariation",
    "decode_metar",
    "match_abbreviation",
]
