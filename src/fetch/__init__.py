"""Network collaborators: report text fetch and nearest-station lookup."""

from .client import FetchError, ReportFetcher, extract_report_line, normalize_station
from .nearest import NearestStationLookup, StationLookupError

__all__ = [
    "FetchError",
    "NearestStationLookup",
    "ReportFetcher",
    "StationLookupError",
    "extract_report_line",
    "normalize_station",
]
