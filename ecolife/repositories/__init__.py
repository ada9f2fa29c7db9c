"""Storage adapters for the domain repository contracts."""

from .bike_network import SqlBikeNetworkRepository
from .eco_tip_cache import InMemoryEcoTipCacheRepository, SqlEcoTipCacheRepository
from .factory import build_bike_network_repository, build_database_engine, build_eco_tip_repository

__all__ = [
    "SqlBikeNetworkRepository",
    "InMemoryEcoTipCacheRepository",
    "SqlEcoTipCacheRepository",
    "build_bike_network_repository",
    "build_database_engine",
    "build_eco_tip_repository",
]
