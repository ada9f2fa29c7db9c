"""Helpers for fetching bike-share networks and stations from the CityBikes v2 API."""
from __future__ import annotations

from typing import Any, Dict, List

import requests

from .config import settings
from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="citybikes_client")

session = requests.Session()

REQUEST_TIMEOUT_SEC = 30


class RateLimitedError(RuntimeError):
    """CityBikes answered 429 Too Many Requests."""

    def __init__(self, url: str) -> None:
        super().__init__(f"Rate limit exceeded (429) for {url}")
        self.url = url


def _get_json(url: str) -> Dict[str, Any]:
    resp = session.get(url, timeout=REQUEST_TIMEOUT_SEC)
    if resp.status_code == 429:
        logger.warning("CityBikes rate limit hit", extra={"url": url})
        raise RateLimitedError(url)
    resp.raise_for_status()
    return resp.json()


def fetch_networks(base_url: str | None = None) -> List[Dict[str, Any]]:
    """Return the raw `networks` list (id, name, location, company, ...)."""
    url = f"{(base_url or settings.citybikes_base_url).rstrip('/')}/networks"
    data = _get_json(url)
    networks = data.get("networks") or []
    logger.info(f"Fetched {len(networks)} networks from CityBikes")
    return networks


def fetch_network_detail(external_id: str, base_url: str | None = None) -> Dict[str, Any]:
    """Return the raw `network` object for one network, stations included."""
    url = f"{(base_url or settings.citybikes_base_url).rstrip('/')}/networks/{external_id}"
    data = _get_json(url)
    network = data.get("network") or {}
    logger.debug(f"Fetched {len(network.get('stations') or [])} stations for network {external_id}")
    return network
