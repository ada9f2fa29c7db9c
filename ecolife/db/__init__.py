"""Database engine, ORM mappings and schema migrations."""

from .engine import build_engine, build_session_factory
from .migrations import MIGRATIONS, Migration, MigrationRunner, upgrade
from .models import Base, BikeNetworkRow, BikeStationRow, EcoTipCacheRow

__all__ = [
    "build_engine",
    "build_session_factory",
    "MIGRATIONS",
    "Migration",
    "MigrationRunner",
    "upgrade",
    "Base",
    "BikeNetworkRow",
    "BikeStationRow",
    "EcoTipCacheRow",
]
