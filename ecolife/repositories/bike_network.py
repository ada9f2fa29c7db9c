"""SQLAlchemy adapter for bike networks and stations."""

from __future__ import annotations

import datetime as dt
from typing import List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.engine import Engine

from ecolife.db.engine import build_session_factory
from ecolife.db.models import BikeNetworkRow, BikeStationRow
from ecolife.domain.bike import BikeNetwork, BikeStation
from ecolife.domain.repositories import BikeNetworkRepository
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="repositories/bike_network")

_NETWORK_FIELDS = (
    "id", "external_id", "name", "latitude", "longitude", "city", "country",
    "gbfs_href", "system", "source", "ebikes", "created_at", "updated_at",
)
_STATION_FIELDS = (
    "id", "network_id", "external_id", "name", "latitude", "longitude",
    "free_bikes", "empty_slots", "total_slots", "address", "post_code",
    "has_payment_terminal", "altitude", "android_uri", "ios_uri", "is_virtual",
    "is_renting", "is_returning", "last_updated", "created_at", "updated_at",
)


def _network_from_row(row: BikeNetworkRow) -> BikeNetwork:
    fields = {name: getattr(row, name) for name in _NETWORK_FIELDS}
    return BikeNetwork.reconstitute(companies=tuple(row.companies or ()), **fields)


def _network_to_row(network: BikeNetwork) -> BikeNetworkRow:
    fields = {name: getattr(network, name) for name in _NETWORK_FIELDS}
    return BikeNetworkRow(companies=list(network.companies), **fields)


def _station_from_row(row: BikeStationRow) -> BikeStation:
    fields = {name: getattr(row, name) for name in _STATION_FIELDS}
    return BikeStation.reconstitute(payment_methods=tuple(row.payment_methods or ()), **fields)


def _station_to_row(station: BikeStation) -> BikeStationRow:
    fields = {name: getattr(station, name) for name in _STATION_FIELDS}
    return BikeStationRow(payment_methods=list(station.payment_methods), **fields)


class SqlBikeNetworkRepository(BikeNetworkRepository):
    """Reads and writes `tbl_bike_networks` / `tbl_bike_stations`."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = build_session_factory(engine)

    def count_networks(self) -> int:
        with self._session_factory() as session:
            return session.scalar(select(func.count()).select_from(BikeNetworkRow)) or 0

    def count_stations(self, network_id: str | None = None) -> int:
        stmt = select(func.count()).select_from(BikeStationRow)
        if network_id is not None:
            stmt = stmt.where(BikeStationRow.network_id == network_id)
        with self._session_factory() as session:
            return session.scalar(stmt) or 0

    def find_network_by_external_id(self, external_id: str) -> Optional[BikeNetwork]:
        stmt = select(BikeNetworkRow).where(BikeNetworkRow.external_id == external_id)
        with self._session_factory() as session:
            row = session.execute(stmt).scalars().first()
            return _network_from_row(row) if row else None

    def save_network(self, network: BikeNetwork) -> BikeNetwork:
        with self._session_factory.begin() as session:
            row = session.merge(_network_to_row(network))
            session.flush()
            return _network_from_row(row)

    def delete_network(self, network_id: str) -> None:
        with self._session_factory.begin() as session:
            row = session.get(BikeNetworkRow, network_id)
            if row is not None:
                session.delete(row)

    def list_stations(self, network_id: str) -> List[BikeStation]:
        stmt = (
            select(BikeStationRow)
            .where(BikeStationRow.network_id == network_id)
            .order_by(BikeStationRow.name, BikeStationRow.external_id)
        )
        with self._session_factory() as session:
            return [_station_from_row(row) for row in session.execute(stmt).scalars()]

    def save_stations(self, stations: Sequence[BikeStation]) -> None:
        if not stations:
            return
        with self._session_factory.begin() as session:
            for station in stations:
                session.merge(_station_to_row(station))
        logger.debug(f"Saved {len(stations)} stations")

    def delete_stations(self, station_ids: Sequence[str]) -> int:
        if not station_ids:
            return 0
        with self._session_factory.begin() as session:
            result = session.execute(delete(BikeStationRow).where(BikeStationRow.id.in_(list(station_ids))))
            return result.rowcount or 0

    def last_station_update(self, network_id: str) -> Optional[dt.datetime]:
        stmt = select(func.max(BikeStationRow.last_updated)).where(BikeStationRow.network_id == network_id)
        with self._session_factory() as session:
            return session.scalar(stmt)
