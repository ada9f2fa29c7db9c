"""Factory helpers for choosing storage backends at startup."""

from __future__ import annotations

from sqlalchemy.engine import Engine

from ecolife import config
from ecolife.db.engine import build_engine
from ecolife.domain.repositories import BikeNetworkRepository, EcoTipCacheRepository
from ecolife.repositories.bike_network import SqlBikeNetworkRepository
from ecolife.repositories.eco_tip_cache import InMemoryEcoTipCacheRepository, SqlEcoTipCacheRepository
from utils.logging_utils import get_tagged_logger, mask_db_url

logger = get_tagged_logger(__name__, tag="repositories/factory")


DEFAULT_STORE_NAME = "sql"


def build_database_engine(settings: config.Settings | None = None) -> Engine:
    """Create the engine for the configured database URL."""
    settings = settings or config.settings
    db_url = settings.database_url
    if not db_url:
        raise ValueError("database_url must be set for the SQL backend")
    logger.info("Using SQL database", extra={"db_url": mask_db_url(db_url)})
    return build_engine(db_url)


def build_eco_tip_repository(
    settings: config.Settings | None = None,
    engine: Engine | None = None,
) -> EcoTipCacheRepository:
    """Instantiate the configured eco-tip cache backend."""
    settings = settings or config.settings
    store = (settings.eco_tip_store or DEFAULT_STORE_NAME).lower()

    if store == "memory":
        logger.info("Using in-memory eco tip cache")
        return InMemoryEcoTipCacheRepository()

    if store == "sql":
        return SqlEcoTipCacheRepository(engine or build_database_engine(settings))

    raise ValueError(f"Unknown eco tip store '{store}'")


def build_bike_network_repository(
    settings: config.Settings | None = None,
    engine: Engine | None = None,
) -> BikeNetworkRepository:
    """Bike data always lives in SQL."""
    return SqlBikeNetworkRepository(engine or build_database_engine(settings))
