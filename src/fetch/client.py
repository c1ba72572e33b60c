"""
Report fetcher for raw METAR text.

Mirror list semantics: every configured URL is tried in order and the first one that
answers HTTP 200 wins. Feeds return either the bare report or a timestamp line followed
by the report, so the last meaningful line is taken.
"""
from __future__ import annotations

import asyncio
import re
from typing import Optional, Sequence

import aiohttp

from src.config.settings import AppSettings
from src.logging_config import get_logger

logger = get_logger(__name__)

_RE_STATION = re.compile(r"^[A-Z0-9]{3,4}$")


class FetchError(RuntimeError):
    """Every report URL failed (non-200 status or transport error)."""

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


def normalize_station(station: str) -> str:
    code = (station or "").strip().upper()
    if not _RE_STATION.match(code):
        raise ValueError(f"Invalid station: {station!r}")
    return code


def extract_report_line(body: str) -> str:
    lines = []
    for raw_line in (body or "").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        lines.append(line.rstrip("=").strip())
    return lines[-1] if lines else ""


class ReportFetcher:
    def __init__(self, settings: AppSettings):
        self.settings = settings

    def urls_for(self, station: str) -> Sequence[str]:
        code = normalize_station(station)
        return [template.format(station=code) for template in self.settings.report_urls]

    async def fetch_report(self, station: str) -> str:
        urls = self.urls_for(station)
        last_status: Optional[int] = None
        last_error: Optional[str] = None

        timeout = aiohttp.ClientTimeout(total=self.settings.timeout_seconds)
        headers = {"User-Agent": self.settings.user_agent, "Accept": "text/plain"}
        async with aiohttp.ClientSession(timeout=timeout) as session:
            for url in urls:
                logger.info("Fetching METAR", url=url)
                try:
                    async with session.get(url, headers=headers) as response:
                        if response.status != 200:
                            last_status = response.status
                            logger.warning("METAR source returned non-200", url=url, status=response.status)
                            continue
                        body = await response.text()
                except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                    last_error = str(exc) or exc.__class__.__name__
                    logger.warning("METAR source unreachable", url=url, error=last_error)
                    continue

                report = extract_report_line(body)
                if report:
                    return report
                logger.warning("METAR source returned an empty body", url=url)

        detail = f"status {last_status}" if last_status is not None else (last_error or "no report")
        raise FetchError(f"Failed to fetch METAR for {station}: {detail}", status=last_status)
