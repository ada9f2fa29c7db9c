"""Schema migrations for the EcoLife tables and the runner that applies them.

Each migration declares its tables against its own MetaData so the DDL is a
frozen snapshot, independent of later edits to ecolife.db.models.
"""

from __future__ import annotations

import datetime as dt
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
    insert,
    select,
    delete,
    inspect,
)
from sqlalchemy.engine import Connection, Engine

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="db/migrations")

TRACKING_TABLE = "schema_migrations"


@dataclass(frozen=True)
class Migration:
    version: str
    name: str
    up: Callable[[Connection], None]
    down: Callable[[Connection], None]


def _timestamps() -> list[Column]:
    return [
        Column("createdAt", DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()),
        Column("updatedAt", DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()),
    ]


# ---------------------------------------------------------------------------
# 1734350001000: bike networks and stations
# ---------------------------------------------------------------------------

def _bike_tables(metadata: MetaData) -> tuple[Table, Table]:
    networks = Table(
        "tbl_bike_networks",
        metadata,
        Column("id", String(36), primary_key=True),
        Column("externalId", String(100), nullable=False, unique=True),
        Column("name", String(255), nullable=False),
        Column("latitude", Numeric(10, 7), nullable=False),
        Column("longitude", Numeric(10, 7), nullable=False),
        Column("city", String(255), nullable=False),
        Column("country", String(2), nullable=False),
        Column("companies", JSON, nullable=False),
        Column("gbfsHref", String(500), nullable=True),
        Column("system", String(100), nullable=True),
        Column("source", String(500), nullable=True),
        Column("ebikes", Boolean, nullable=False, server_default="0"),
        *_timestamps(),
        Index("IDX_bike_networks_country_city", "country", "city"),
    )
    stations = Table(
        "tbl_bike_stations",
        metadata,
        Column("id", String(36), primary_key=True),
        Column("networkId", String(36), ForeignKey("tbl_bike_networks.id", ondelete="CASCADE"), nullable=False),
        Column("externalId", String(100), nullable=False),
        Column("name", String(255), nullable=False),
        Column("latitude", Numeric(10, 7), nullable=False),
        Column("longitude", Numeric(10, 7), nullable=False),
        Column("freeBikes", Integer, nullable=False, server_default="0"),
        Column("emptySlots", Integer, nullable=False, server_default="0"),
        Column("totalSlots", Integer, nullable=False),
        Column("address", String(500), nullable=True),
        Column("postCode", String(20), nullable=True),
        Column("paymentMethods", JSON, nullable=False),
        Column("hasPaymentTerminal", Boolean, nullable=False, server_default="0"),
        Column("altitude", Integer, nullable=False, server_default="0"),
        Column("androidUri", String(500), nullable=True),
        Column("iosUri", String(500), nullable=True),
        Column("isVirtual", Boolean, nullable=False, server_default="0"),
        Column("isRenting", Boolean, nullable=False, server_default="1"),
        Column("isReturning", Boolean, nullable=False, server_default="1"),
        Column("lastUpdated", DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()),
        *_timestamps(),
        UniqueConstraint("networkId", "externalId", name="UQ_bike_stations_network_external"),
        Index("IDX_bike_stations_network", "networkId"),
        Index("IDX_bike_stations_external", "externalId"),
        Index("IDX_bike_stations_location", "latitude", "longitude"),
    )
    return networks, stations


def _create_bike_network_tables(conn: Connection) -> None:
    networks, stations = _bike_tables(MetaData())
    networks.create(conn)
    stations.create(conn)


def _drop_bike_network_tables(conn: Connection) -> None:
    networks, stations = _bike_tables(MetaData())
    stations.drop(conn)
    networks.drop(conn)


# ---------------------------------------------------------------------------
# 1734350002000: routing sessions and carbon savings (DDL only)
# ---------------------------------------------------------------------------

def _routing_tables(metadata: MetaData) -> tuple[Table, Table]:
    routing = Table(
        "tbl_routing_sessions",
        metadata,
        Column("id", String(36), primary_key=True),
        Column("userId", String(36), nullable=False),
        Column("startLatitude", Numeric(10, 7), nullable=False),
        Column("startLongitude", Numeric(10, 7), nullable=False),
        Column("endLatitude", Numeric(10, 7), nullable=False),
        Column("endLongitude", Numeric(10, 7), nullable=False),
        Column(
            "status",
            Enum("ACTIVE", "COMPLETED", "CANCELLED", name="routing_status"),
            nullable=False,
            server_default="ACTIVE",
        ),
        Column("totalDistanceMeters", Integer, nullable=True),
        Column("straightLineDistanceMeters", Integer, nullable=False),
        Column("pointsEarned", Integer, nullable=False, server_default="0"),
        Column("co2SavedKg", Numeric(8, 4), nullable=False, server_default="0"),
        Column("completedAt", DateTime(timezone=True), nullable=True),
        *_timestamps(),
        Index("IDX_ROUTING_USER_ID", "userId"),
        Index("IDX_ROUTING_STATUS", "status"),
        Index("IDX_ROUTING_USER_STATUS", "userId", "status"),
    )
    savings = Table(
        "tbl_carbon_savings",
        metadata,
        Column("id", String(36), primary_key=True),
        Column("userId", String(36), nullable=False),
        Column(
            "savingType",
            Enum("BIKE_ROUTING", "PUBLIC_TRANSPORT", "MISSION_COMPLETION", "OTHER", name="saving_type"),
            nullable=False,
            server_default="BIKE_ROUTING",
        ),
        Column("co2SavedKg", Numeric(8, 4), nullable=False),
        Column("distanceMeters", Integer, nullable=True),
        Column("relatedId", String(36), nullable=True),
        Column("description", String(500), nullable=True),
        *_timestamps(),
        Index("IDX_CARBON_SAVINGS_USER_ID", "userId"),
        Index("IDX_CARBON_SAVINGS_TYPE", "savingType"),
        Index("IDX_CARBON_SAVINGS_USER_TYPE", "userId", "savingType"),
        Index("IDX_CARBON_SAVINGS_CREATED_AT", "createdAt"),
    )
    return routing, savings


def _create_routing_tables(conn: Connection) -> None:
    routing, savings = _routing_tables(MetaData())
    routing.create(conn)
    savings.create(conn)


def _drop_routing_tables(conn: Connection) -> None:
    routing, savings = _routing_tables(MetaData())
    savings.drop(conn)
    routing.drop(conn)


# ---------------------------------------------------------------------------
# 1734350003000: eco-tip cache
# ---------------------------------------------------------------------------

def _eco_tip_table(metadata: MetaData) -> Table:
    return Table(
        "eco_tip_cache",
        metadata,
        Column("id", String(36), primary_key=True),
        Column("userAge", Integer, nullable=False),
        Column("tipDate", Date, nullable=False),
        Column("tipContent", Text, nullable=False),
        Column("category", String(100), nullable=False, server_default="daily_tip"),
        Column("createdAt", DateTime(timezone=True), nullable=False, server_default=func.current_timestamp()),
        Index("IDX_eco_tip_cache_age_date", "userAge", "tipDate"),
    )


def _create_eco_tip_cache(conn: Connection) -> None:
    _eco_tip_table(MetaData()).create(conn)


def _drop_eco_tip_cache(conn: Connection) -> None:
    _eco_tip_table(MetaData()).drop(conn)


MIGRATIONS: List[Migration] = [
    Migration("1734350001000", "create_bike_network_tables", _create_bike_network_tables, _drop_bike_network_tables),
    Migration("1734350002000", "create_routing_and_carbon_savings_tables", _create_routing_tables, _drop_routing_tables),
    Migration("1734350003000", "create_eco_tip_cache_table", _create_eco_tip_cache, _drop_eco_tip_cache),
]


class MigrationRunner:
    """Applies MIGRATIONS in version order, recording each in `schema_migrations`."""

    def __init__(self, engine: Engine, migrations: Optional[List[Migration]] = None) -> None:
        self.engine = engine
        self.migrations = sorted(migrations or MIGRATIONS, key=lambda m: m.version)
        self._tracking = Table(
            TRACKING_TABLE,
            MetaData(),
            Column("version", String(32), primary_key=True),
            Column("name", String(255), nullable=False),
            Column("appliedAt", DateTime(timezone=True), nullable=False),
        )

    def setup_tracking_table(self) -> None:
        with self.engine.begin() as conn:
            self._tracking.create(conn, checkfirst=True)

    def applied_versions(self) -> List[str]:
        self.setup_tracking_table()
        with self.engine.connect() as conn:
            rows = conn.execute(select(self._tracking.c.version).order_by(self._tracking.c.version))
            return [row.version for row in rows]

    def upgrade(self) -> int:
        """Apply every pending migration, each in its own transaction; return how many ran."""
        applied = set(self.applied_versions())
        count = 0
        for migration in self.migrations:
            if migration.version in applied:
                continue
            logger.info(f"Applying migration {migration.version}: {migration.name}")
            start = time.monotonic()
            with self.engine.begin() as conn:
                migration.up(conn)
                conn.execute(
                    insert(self._tracking).values(
                        version=migration.version,
                        name=migration.name,
                        appliedAt=dt.datetime.now(dt.timezone.utc),
                    )
                )
            logger.info(f"Migration {migration.version} applied in {time.monotonic() - start:.3f}s")
            count += 1
        logger.info(f"Migrations complete: {count} applied")
        return count

    def downgrade(self, steps: int = 1) -> List[str]:
        """Revert the last `steps` applied migrations, newest first."""
        by_version = {m.version: m for m in self.migrations}
        reverted: List[str] = []
        for version in reversed(self.applied_versions()):
            if len(reverted) >= steps:
                break
            migration = by_version.get(version)
            if migration is None:
                raise LookupError(f"Applied migration {version} is not known to this build")
            logger.info(f"Reverting migration {version}: {migration.name}")
            with self.engine.begin() as conn:
                migration.down(conn)
                conn.execute(delete(self._tracking).where(self._tracking.c.version == version))
            reverted.append(version)
        return reverted

    def status(self) -> Dict[str, Any]:
        applied = self.applied_versions()
        pending = [m.version for m in self.migrations if m.version not in applied]
        return {
            "applied": len(applied),
            "pending": pending,
            "total": len(self.migrations),
            "latest": applied[-1] if applied else None,
        }


def upgrade(engine: Engine) -> int:
    """Bring the schema at `engine` up to date."""
    return MigrationRunner(engine).upgrade()


def table_names(engine: Engine) -> List[str]:
    """List tables at `engine`; used by the maintenance CLI status output."""
    return sorted(inspect(engine).get_table_names())
