"""Storage contracts the services depend on; adapters live in ecolife.repositories."""

from __future__ import annotations

import datetime as dt
from typing import List, Optional, Protocol, Sequence

from ecolife.domain.bike import BikeNetwork, BikeStation
from ecolife.domain.eco_tip import DayLike, EcoTipCache


class EcoTipCacheRepository(Protocol):
    """Write-once store of generated tips keyed by (age, calendar day)."""

    def save(self, entry: EcoTipCache) -> EcoTipCache:
        """Persist a new entry and return it as stored."""
        ...

    def find_by_age_and_date(self, user_age: int, tip_date: DayLike) -> Optional[EcoTipCache]:
        """Return the entry for this age on this calendar day, or None."""
        ...

    def delete_old_entries(self, before_date: DayLike) -> int:
        """Delete every entry whose tip_date is strictly before `before_date`; return the count."""
        ...


class BikeNetworkRepository(Protocol):
    """Persistence for networks and their stations."""

    def count_networks(self) -> int:
        ...

    def count_stations(self, network_id: str | None = None) -> int:
        ...

    def find_network_by_external_id(self, external_id: str) -> Optional[BikeNetwork]:
        ...

    def save_network(self, network: BikeNetwork) -> BikeNetwork:
        """Insert or update a network by id."""
        ...

    def delete_network(self, network_id: str) -> None:
        """Remove a network; its stations go with it."""
        ...

    def list_stations(self, network_id: str) -> List[BikeStation]:
        ...

    def save_stations(self, stations: Sequence[BikeStation]) -> None:
        """Insert or update stations by id."""
        ...

    def delete_stations(self, station_ids: Sequence[str]) -> int:
        ...

    def last_station_update(self, network_id: str) -> Optional[dt.datetime]:
        """Most recent availability timestamp across the network's stations."""
        ...
