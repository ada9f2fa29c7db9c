"""Mirror CityBikes networks and station availability into the local database."""
from __future__ import annotations

import datetime as dt
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

import requests
from sqlalchemy.exc import SQLAlchemyError

from . import citybikes_client
from .citybikes_client import RateLimitedError
from .domain.bike import BikeNetwork, BikeStation
from .domain.repositories import BikeNetworkRepository
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="bike_sync")

NetworksFetcher = Callable[[], List[Dict[str, Any]]]
DetailFetcher = Callable[[str], Dict[str, Any]]

# per-network failures that are logged and skipped rather than aborting the run
_NETWORK_ERRORS = (requests.exceptions.RequestException, SQLAlchemyError, KeyError, TypeError, ValueError)


@dataclass
class SyncReport:
    """Outcome of one sync (or retry) run."""
    skipped: bool = False
    networks_total: int = 0
    networks_processed: int = 0
    networks_failed: int = 0
    rate_limited: List[str] = field(default_factory=list)
    stations_created: int = 0
    stations_updated: int = 0
    stations_removed: int = 0


@dataclass
class StationAvailability:
    external_id: str
    name: str
    latitude: float
    longitude: float
    free_bikes: int
    empty_slots: int
    total_slots: int
    is_available: bool
    has_empty_slots: bool
    occupancy_rate: float
    is_renting: bool
    is_returning: bool
    last_updated: dt.datetime


@dataclass
class NetworkStations:
    network: BikeNetwork
    stations: List[StationAvailability]


def network_from_payload(data: Mapping[str, Any]) -> BikeNetwork:
    """Build a new network from an entry of the CityBikes `networks` list."""
    location = data.get("location") or {}
    companies = data.get("company") or []
    if isinstance(companies, str):
        companies = [companies]
    return BikeNetwork.create(
        external_id=str(data["id"]),
        name=data.get("name") or str(data["id"]),
        latitude=location.get("latitude") or 0,
        longitude=location.get("longitude") or 0,
        city=location.get("city") or "",
        country=location.get("country") or "",
        companies=companies,
        gbfs_href=data.get("gbfs_href"),
        system=data.get("system"),
        source=data.get("source"),
        ebikes=data.get("ebikes") or False,
    )


def station_from_payload(network_id: str, data: Mapping[str, Any]) -> BikeStation:
    """Build a new station from a CityBikes station object and its `extra` block."""
    extra = data.get("extra") or {}
    rental_uris = extra.get("rental_uris") or {}
    free_bikes = data.get("free_bikes") or 0
    empty_slots = data.get("empty_slots") or 0
    return BikeStation.create(
        network_id=network_id,
        external_id=str(data["id"]),
        name=data.get("name") or "",
        latitude=data.get("latitude") or 0,
        longitude=data.get("longitude") or 0,
        free_bikes=free_bikes,
        empty_slots=empty_slots,
        total_slots=extra.get("slots") or (free_bikes + empty_slots),
        address=extra.get("address"),
        post_code=extra.get("post_code"),
        payment_methods=extra.get("payment") or [],
        has_payment_terminal=extra.get("payment-terminal") or False,
        altitude=extra.get("altitude") or 0,
        android_uri=rental_uris.get("android"),
        ios_uri=rental_uris.get("ios"),
        is_virtual=extra.get("virtual") or False,
        is_renting=extra.get("renting") is not False,
        is_returning=extra.get("returning") is not False,
    )


class BikeNetworkSync:
    """Pulls the CityBikes catalogue into a BikeNetworkRepository.

    Only one sync or retry runs at a time per instance; a caller that finds one
    already running gets a skipped report back immediately. Networks that hit
    the rate limit are remembered and can be picked up by `retry_rate_limited`.
    """

    def __init__(
        self,
        repository: BikeNetworkRepository,
        *,
        fetch_networks: NetworksFetcher | None = None,
        fetch_network_detail: DetailFetcher | None = None,
    ) -> None:
        self.repository = repository
        self._fetch_networks = fetch_networks
        self._fetch_network_detail = fetch_network_detail
        self._lock = threading.Lock()
        self._rate_limited: Dict[str, Dict[str, Any]] = {}

    def _networks(self) -> List[Dict[str, Any]]:
        if self._fetch_networks is not None:
            return self._fetch_networks()
        return citybikes_client.fetch_networks()

    def _network_detail(self, external_id: str) -> Dict[str, Any]:
        if self._fetch_network_detail is not None:
            return self._fetch_network_detail(external_id)
        return citybikes_client.fetch_network_detail(external_id)

    @property
    def sync_in_progress(self) -> bool:
        return self._lock.locked()

    @property
    def rate_limited_networks(self) -> List[str]:
        return sorted(self._rate_limited)

    def needs_initial_sync(self) -> bool:
        return self.repository.count_networks() == 0

    def sync_networks(self) -> SyncReport:
        """Refresh every network and its stations. Errors fetching the catalogue itself propagate."""
        if not self._lock.acquire(blocking=False):
            logger.warning("Bike network sync already in progress, skipping")
            return SyncReport(skipped=True)
        try:
            networks = self._networks()
            logger.info(f"Syncing {len(networks)} bike networks")
            report = SyncReport(networks_total=len(networks))
            self._process_all(networks, report)
            logger.info(
                "Bike network sync finished",
                extra={
                    "processed": report.networks_processed,
                    "failed": report.networks_failed,
                    "rate_limited": len(report.rate_limited),
                },
            )
            return report
        finally:
            self._lock.release()

    def retry_rate_limited(self) -> SyncReport:
        """Re-process networks that were rate limited on an earlier run."""
        if not self._lock.acquire(blocking=False):
            logger.warning("Bike network sync already in progress, skipping retry")
            return SyncReport(skipped=True)
        try:
            pending = list(self._rate_limited.values())
            self._rate_limited.clear()
            report = SyncReport(networks_total=len(pending))
            if pending:
                logger.info(f"Retrying {len(pending)} rate-limited networks")
            self._process_all(pending, report)
            return report
        finally:
            self._lock.release()

    def _process_all(self, networks: List[Dict[str, Any]], report: SyncReport) -> None:
        for payload in networks:
            external_id = str(payload.get("id"))
            try:
                self._process_network(payload, report)
                report.networks_processed += 1
            except RateLimitedError:
                logger.warning(f"Rate limit hit for network {external_id}, will retry later")
                self._rate_limited[external_id] = payload
                report.rate_limited.append(external_id)
            except _NETWORK_ERRORS as exc:
                logger.error(f"Failed to process network {external_id}: {exc}")
                report.networks_failed += 1

    def _process_network(self, payload: Mapping[str, Any], report: SyncReport) -> None:
        external_id = str(payload["id"])
        network = self.repository.find_network_by_external_id(external_id)
        if network is None:
            network = self.repository.save_network(network_from_payload(payload))
            logger.info(f"Created new network: {network.name}")
        else:
            network.touch()
            network = self.repository.save_network(network)

        try:
            detail = self._network_detail(external_id)
        except RateLimitedError:
            raise
        except (requests.exceptions.RequestException, ValueError) as exc:
            # network row is kept; its stations wait for the next run
            logger.warning(f"Failed to fetch stations for network {external_id}: {exc}")
            return
        self._sync_stations(network.id, detail.get("stations") or [], report)

    def _sync_stations(self, network_id: str, stations_data: List[Mapping[str, Any]], report: SyncReport) -> None:
        existing = {s.external_id: s for s in self.repository.list_stations(network_id)}
        seen = set()
        to_save: List[BikeStation] = []

        for data in stations_data:
            external_id = str(data["id"])
            if external_id in seen:
                continue
            seen.add(external_id)
            station = existing.get(external_id)
            if station is not None:
                station.update_availability(data.get("free_bikes") or 0, data.get("empty_slots") or 0)
                report.stations_updated += 1
            else:
                station = station_from_payload(network_id, data)
                report.stations_created += 1
            to_save.append(station)

        self.repository.save_stations(to_save)

        stale = [s.id for ext, s in existing.items() if ext not in seen]
        if stale:
            removed = self.repository.delete_stations(stale)
            report.stations_removed += removed
            logger.info(f"Removed {removed} outdated stations for network {network_id}")

    def status(self) -> Dict[str, Any]:
        return {
            "network_count": self.repository.count_networks(),
            "station_count": self.repository.count_stations(),
            "sync_in_progress": self.sync_in_progress,
            "rate_limited_networks": self.rate_limited_networks,
        }

    def station_summary(self, external_id: str) -> Optional[NetworkStations]:
        """Stations of one network with derived availability, or None for an unknown network."""
        network = self.repository.find_network_by_external_id(external_id)
        if network is None:
            return None
        stations = [
            StationAvailability(
                external_id=s.external_id,
                name=s.name,
                latitude=s.latitude,
                longitude=s.longitude,
                free_bikes=s.free_bikes,
                empty_slots=s.empty_slots,
                total_slots=s.total_slots,
                is_available=s.is_available(),
                has_empty_slots=s.has_empty_slots(),
                occupancy_rate=s.occupancy_rate(),
                is_renting=s.is_renting,
                is_returning=s.is_returning,
                last_updated=s.last_updated,
            )
            for s in self.repository.list_stations(network.id)
        ]
        return NetworkStations(network=network, stations=stations)
