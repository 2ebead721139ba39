"""
Geekbench profile helpers.

Resolves profile URLs and usernames, parses benchmark listings from a
profile page, and fetches public results (directly, then through the
app's proxy).
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin

import requests

from devicebench.settings import get_settings

logger = logging.getLogger('devicebench.geekbench_profile')

GEEKBENCH_BROWSER = 'https://browser.geekbench.com'

RESULT_URL_PATTERN = re.compile(r'^https://browser\.geekbench\.com/v\d+/(cpu|compute|ml)/\d+')
RESULT_ID_PATTERN = re.compile(r'geekbench\.com/v\d+/(?:cpu|compute|ml)/(\d+)')
PROFILE_USER_PATTERN = re.compile(r'geekbench\.com/user/([^/?#]+)')

# One table row per result on a profile page
RESULT_ROW_PATTERN = re.compile(r'<tr[^>]*>(.*?)</tr>', re.IGNORECASE | re.DOTALL)
RESULT_LINK_PATTERN = re.compile(r'href="(?P<href>/v\d+/(?:cpu|compute|ml)/\d+)"[^>]*>(?P<name>[^<]+)</a>',
                                 re.IGNORECASE)
CELL_PATTERN = re.compile(r'<td[^>]*>(.*?)</td>', re.IGNORECASE | re.DOTALL)
TAG_PATTERN = re.compile(r'<[^>]+>')


class GeekbenchProfileError(RuntimeError):
    """Raised when a profile or result cannot be fetched."""


@dataclass(frozen=True)
class GeekbenchDevice:
    name: str
    processor: str
    single_core_score: int
    multi_core_score: int
    benchmark_date: str
    result_url: str


@dataclass
class GeekbenchProfile:
    username: str
    profile_url: str
    devices: List[GeekbenchDevice] = field(default_factory=list)

    @property
    def latest_benchmark(self) -> Optional[Dict[str, Any]]:
        """Summary of the first (most recent) listed result."""
        if not self.devices:
            return None
        latest = self.devices[0]
        return {
            'deviceName': latest.name,
            'singleCore': latest.single_core_score,
            'multiCore': latest.multi_core_score,
            'date': latest.benchmark_date,
            'resultUrl': latest.result_url,
        }


def validate_geekbench_url(url: str) -> bool:
    """True for links to a public Geekbench cpu/compute/ml result."""
    return bool(RESULT_URL_PATTERN.match(url or ''))


def extract_result_id(url: str) -> Optional[str]:
    match = RESULT_ID_PATTERN.search(url or '')
    return match.group(1) if match else None


def build_profile_url(username: str) -> str:
    return f"{GEEKBENCH_BROWSER}/user/{username}"


def resolve_profile(profile_url_or_username: str) -> Tuple[str, str]:
    """
    Split input into (username, canonical profile URL).

    Accepts either a bare username or any geekbench.com/user/<name> URL.
    A geekbench.com URL without a user path is returned unchanged.
    """
    value = profile_url_or_username.strip()

    if 'geekbench.com' in value:
        match = PROFILE_USER_PATTERN.search(value)
        if match:
            username = match.group(1)
            return username, build_profile_url(username)
        return value, value

    return value, build_profile_url(value)


def _cell_text(cell: str) -> str:
    return TAG_PATTERN.sub('', cell).strip()


def _cell_int(cell: str) -> int:
    digits = re.sub(r'[^\d]', '', _cell_text(cell))
    return int(digits) if digits else 0


def parse_geekbench_results(html: str) -> List[GeekbenchDevice]:
    """
    Extract results from a profile page.

    Expects rows of: device link, processor, date, single-core, multi-core.
    Rows that do not link to a result are skipped.
    """
    devices = []
    for row in RESULT_ROW_PATTERN.findall(html or ''):
        link = RESULT_LINK_PATTERN.search(row)
        if not link:
            continue

        cells = CELL_PATTERN.findall(row)
        if len(cells) < 5:
            logger.debug(f"Skipping result row with {len(cells)} cells")
            continue

        devices.append(GeekbenchDevice(
            name=link.group('name').strip(),
            processor=_cell_text(cells[1]),
            benchmark_date=_cell_text(cells[2]),
            single_core_score=_cell_int(cells[3]),
            multi_core_score=_cell_int(cells[4]),
            result_url=urljoin(GEEKBENCH_BROWSER, link.group('href')),
        ))
    return devices


def fetch_geekbench_profile(
    profile_url_or_username: str,
    session: Optional[requests.Session] = None,
    proxy_base: Optional[str] = None,
    timeout: float = 30
) -> GeekbenchProfile:
    """
    Fetch and parse a public Geekbench profile through the proxy.

    Raises:
        GeekbenchProfileError: If the page cannot be fetched
    """
    username, profile_url = resolve_profile(profile_url_or_username)
    session = session or requests.Session()
    proxy_base = (proxy_base or get_settings().geekbench_proxy).rstrip('/')

    try:
        response = session.get(f"{proxy_base}/user/{username}", timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Error fetching Geekbench profile {username}: {e}")
        raise GeekbenchProfileError(
            "Unable to fetch Geekbench profile. Make sure the profile is public."
        ) from e

    devices = parse_geekbench_results(response.text)
    logger.info(f"Parsed {len(devices)} results for Geekbench user {username}")
    return GeekbenchProfile(username=username, profile_url=profile_url, devices=devices)


def fetch_benchmark_by_id(
    result_id: str,
    session: Optional[requests.Session] = None,
    proxy_base: Optional[str] = None,
    timeout: float = 30
) -> Dict[str, Any]:
    """
    Fetch a public CPU result as JSON, trying the proxy if the direct call fails.

    Raises:
        GeekbenchProfileError: If neither source returns the result
    """
    session = session or requests.Session()
    proxy_base = (proxy_base or get_settings().geekbench_proxy).rstrip('/')

    try:
        response = session.get(f"{GEEKBENCH_BROWSER}/v6/cpu/{result_id}.json", timeout=timeout)
        response.raise_for_status()
        return response.json()
    except (requests.RequestException, ValueError) as e:
        logger.warning(f"Direct fetch of result {result_id} failed, trying proxy: {e}")

    try:
        response = session.get(f"{proxy_base}/result/{result_id}", timeout=timeout)
        response.raise_for_status()
        return response.json()
    except (requests.RequestException, ValueError) as e:
        raise GeekbenchProfileError("Unable to fetch benchmark result") from e
