"""FastAPI application setup for the EcoLife backend."""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from .api import ENGINE, router as api_router
from .config import settings
from .db.migrations import upgrade
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="ecolife/main")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Bring the schema up to date before serving requests."""
    if settings.auto_migrate:
        applied = upgrade(ENGINE)
        logger.info(f"Startup migrations applied: {applied}")
    yield


app = FastAPI(title="EcoLife Backend", lifespan=lifespan)


@app.get("/health")
def health():
    """Liveness probe."""
    return {"status": "ok"}


# API routes
app.include_router(api_router, prefix="/v1")
