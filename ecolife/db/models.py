"""ORM mappings for the bike and eco-tip tables.

Column names keep the camelCase spelling of the existing schema; Python
attributes are snake_case. The tables themselves are created by
ecolife.db.migrations, not by ``Base.metadata.create_all``.
"""

from __future__ import annotations

import datetime as dt
from typing import List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Bike networks / stations
# ---------------------------------------------------------------------------


class BikeNetworkRow(Base):
    """Maps to 'tbl_bike_networks'."""

    __tablename__ = "tbl_bike_networks"
    __table_args__ = (Index("IDX_bike_networks_country_city", "country", "city"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    external_id: Mapped[str] = mapped_column("externalId", String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    latitude: Mapped[float] = mapped_column(Numeric(10, 7, asdecimal=False), nullable=False)
    longitude: Mapped[float] = mapped_column(Numeric(10, 7, asdecimal=False), nullable=False)
    city: Mapped[str] = mapped_column(String(255), nullable=False)
    country: Mapped[str] = mapped_column(String(2), nullable=False)
    companies: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    gbfs_href: Mapped[Optional[str]] = mapped_column("gbfsHref", String(500), nullable=True)
    system: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    source: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    ebikes: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[dt.datetime] = mapped_column("createdAt", DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        "updatedAt", DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    stations: Mapped[List["BikeStationRow"]] = relationship(
        back_populates="network",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class BikeStationRow(Base):
    """Maps to 'tbl_bike_stations'."""

    __tablename__ = "tbl_bike_stations"
    __table_args__ = (
        Index("IDX_bike_stations_network", "networkId"),
        Index("IDX_bike_stations_external", "externalId"),
        Index("IDX_bike_stations_location", "latitude", "longitude"),
        UniqueConstraint("networkId", "externalId", name="UQ_bike_stations_network_external"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    network_id: Mapped[str] = mapped_column(
        "networkId", String(36), ForeignKey("tbl_bike_networks.id", ondelete="CASCADE"), nullable=False
    )
    external_id: Mapped[str] = mapped_column("externalId", String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    latitude: Mapped[float] = mapped_column(Numeric(10, 7, asdecimal=False), nullable=False)
    longitude: Mapped[float] = mapped_column(Numeric(10, 7, asdecimal=False), nullable=False)
    free_bikes: Mapped[int] = mapped_column("freeBikes", Integer, nullable=False, default=0)
    empty_slots: Mapped[int] = mapped_column("emptySlots", Integer, nullable=False, default=0)
    total_slots: Mapped[int] = mapped_column("totalSlots", Integer, nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    post_code: Mapped[Optional[str]] = mapped_column("postCode", String(20), nullable=True)
    payment_methods: Mapped[list] = mapped_column("paymentMethods", JSON, nullable=False, default=list)
    has_payment_terminal: Mapped[bool] = mapped_column("hasPaymentTerminal", Boolean, nullable=False, default=False)
    altitude: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    android_uri: Mapped[Optional[str]] = mapped_column("androidUri", String(500), nullable=True)
    ios_uri: Mapped[Optional[str]] = mapped_column("iosUri", String(500), nullable=True)
    is_virtual: Mapped[bool] = mapped_column("isVirtual", Boolean, nullable=False, default=False)
    is_renting: Mapped[bool] = mapped_column("isRenting", Boolean, nullable=False, default=True)
    is_returning: Mapped[bool] = mapped_column("isReturning", Boolean, nullable=False, default=True)
    last_updated: Mapped[dt.datetime] = mapped_column("lastUpdated", DateTime(timezone=True), default=_utcnow)
    created_at: Mapped[dt.datetime] = mapped_column("createdAt", DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        "updatedAt", DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    network: Mapped[BikeNetworkRow] = relationship(back_populates="stations")


# ---------------------------------------------------------------------------
# Eco-tip cache
# ---------------------------------------------------------------------------


class EcoTipCacheRow(Base):
    """Maps to 'eco_tip_cache'. (userAge, tipDate) is indexed, not unique."""

    __tablename__ = "eco_tip_cache"
    __table_args__ = (Index("IDX_eco_tip_cache_age_date", "userAge", "tipDate"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_age: Mapped[int] = mapped_column("userAge", Integer, nullable=False)
    tip_date: Mapped[dt.date] = mapped_column("tipDate", Date, nullable=False)
    tip_content: Mapped[str] = mapped_column("tipContent", Text, nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="daily_tip", server_default="daily_tip")
    created_at: Mapped[dt.datetime] = mapped_column("createdAt", DateTime(timezone=True), default=_utcnow)
