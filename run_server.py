import os

import uvicorn

from ecolife.config import settings
from ecolife.db.migrations import upgrade
from ecolife.repositories import build_database_engine
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="server")


def maybe_migrate() -> None:
    """
    Apply pending schema migrations before the server starts. Controlled by:
    - ECOLIFE_SKIP_MIGRATIONS=true to skip entirely (e.g. when a release job owns migrations)
    """
    if os.getenv("ECOLIFE_SKIP_MIGRATIONS", "false").lower() in ("1", "true", "yes"):
        logger.info("Skipping migration preflight (ECOLIFE_SKIP_MIGRATIONS=true)")
        return

    engine = build_database_engine(settings)
    try:
        upgrade(engine)
    finally:
        engine.dispose()


if __name__ == "__main__":
    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"))
    maybe_migrate()

    uvicorn.run(
        "ecolife.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 8000)),
        reload=False,
    )
