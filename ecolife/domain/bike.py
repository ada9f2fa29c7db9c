"""Bike-share networks and their docking stations."""

from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class BikeNetwork:
    """A bike-share system as listed by CityBikes (slowly changing reference data)."""
    id: str
    external_id: str
    name: str
    latitude: float
    longitude: float
    city: str
    country: str
    companies: Tuple[str, ...] = ()
    gbfs_href: Optional[str] = None
    system: Optional[str] = None
    source: Optional[str] = None
    ebikes: bool = False
    created_at: dt.datetime = field(default_factory=_utcnow)
    updated_at: dt.datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        self.companies = tuple(self.companies or ())

    @classmethod
    def create(
        cls,
        *,
        external_id: str,
        name: str,
        latitude: float,
        longitude: float,
        city: str,
        country: str,
        companies: Iterable[str] = (),
        gbfs_href: str | None = None,
        system: str | None = None,
        source: str | None = None,
        ebikes: bool | None = None,
    ) -> "BikeNetwork":
        return cls(
            id=_new_id(),
            external_id=external_id,
            name=name,
            latitude=latitude,
            longitude=longitude,
            city=city,
            country=country,
            companies=tuple(companies or ()),
            gbfs_href=gbfs_href,
            system=system,
            source=source,
            ebikes=bool(ebikes),
        )

    @classmethod
    def reconstitute(cls, **fields) -> "BikeNetwork":
        """Rebuild a network from stored fields (ids and timestamps kept as-is)."""
        return cls(**fields)

    def touch(self) -> None:
        """Mark the network as seen in the latest sync."""
        self.updated_at = _utcnow()


@dataclass
class BikeStation:
    """A docking station. Only the availability trio changes after creation."""
    id: str
    network_id: str
    external_id: str
    name: str
    latitude: float
    longitude: float
    free_bikes: int
    empty_slots: int
    total_slots: int
    address: Optional[str] = None
    post_code: Optional[str] = None
    payment_methods: Tuple[str, ...] = ()
    has_payment_terminal: bool = False
    altitude: int = 0
    android_uri: Optional[str] = None
    ios_uri: Optional[str] = None
    is_virtual: bool = False
    is_renting: bool = True
    is_returning: bool = True
    last_updated: dt.datetime = field(default_factory=_utcnow)
    created_at: dt.datetime = field(default_factory=_utcnow)
    updated_at: dt.datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        self.payment_methods = tuple(self.payment_methods or ())

    @classmethod
    def create(
        cls,
        *,
        network_id: str,
        external_id: str,
        name: str,
        latitude: float,
        longitude: float,
        free_bikes: int,
        empty_slots: int,
        total_slots: int,
        address: str | None = None,
        post_code: str | None = None,
        payment_methods: Iterable[str] | None = None,
        has_payment_terminal: bool | None = None,
        altitude: int | None = None,
        android_uri: str | None = None,
        ios_uri: str | None = None,
        is_virtual: bool | None = None,
        is_renting: bool | None = None,
        is_returning: bool | None = None,
    ) -> "BikeStation":
        return cls(
            id=_new_id(),
            network_id=network_id,
            external_id=external_id,
            name=name,
            latitude=latitude,
            longitude=longitude,
            free_bikes=free_bikes,
            empty_slots=empty_slots,
            total_slots=total_slots,
            address=address,
            post_code=post_code,
            payment_methods=tuple(payment_methods or ()),
            has_payment_terminal=bool(has_payment_terminal),
            altitude=altitude or 0,
            android_uri=android_uri,
            ios_uri=ios_uri,
            is_virtual=bool(is_virtual),
            is_renting=True if is_renting is None else is_renting,
            is_returning=True if is_returning is None else is_returning,
        )

    @classmethod
    def reconstitute(cls, **fields) -> "BikeStation":
        """Rebuild a station from stored fields (ids and timestamps kept as-is)."""
        return cls(**fields)

    def update_availability(self, free_bikes: int, empty_slots: int) -> None:
        """Apply a fresh availability reading; the three fields always move together."""
        now = _utcnow()
        self.free_bikes = free_bikes
        self.empty_slots = empty_slots
        self.last_updated = now
        self.updated_at = now

    def is_available(self) -> bool:
        return self.free_bikes > 0

    def has_empty_slots(self) -> bool:
        return self.empty_slots > 0

    def occupancy_rate(self) -> float:
        """Percentage of docks in use; 0 for stations reporting no docks."""
        if self.total_slots <= 0:
            return 0
        occupied = self.total_slots - self.empty_slots
        return occupied / self.total_slots * 100
