"""Engine and session factories shared by the SQL repositories and migrations."""

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from utils.logging_utils import get_tagged_logger, mask_db_url

logger = get_tagged_logger(__name__, tag="db/engine")


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, **kwargs) -> Engine:
    """Create an engine for `database_url`.

    ``sqlite://`` (in-memory) is pinned to a single shared connection so every
    session sees the same database, which is what the tests rely on.
    """
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs.setdefault("poolclass", StaticPool)

    engine = create_engine(database_url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    logger.info("Created database engine", extra={"db_url": mask_db_url(database_url)})
    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Sessions keep loaded attributes after commit so rows can be mapped back to entities."""
    return sessionmaker(bind=engine, expire_on_commit=False)
