"""HTTP API for eco tips, AI helpers and bike network data."""

import datetime as dt
import hmac
from typing import List, Optional

import redis
import requests
from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import BaseModel, Field

from .bike_sync import BikeNetworkSync
from .citybikes_client import RateLimitedError
from .config import settings
from .eco_tip_service import EcoTipService
from .openai_client import ChatCompletionClient, ChatCompletionConfigError, ChatCompletionError, UserStats
from .repositories import build_bike_network_repository, build_database_engine, build_eco_tip_repository
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="ecolife/api")

_redis_client = None
if settings.api_key_redis_url:
    try:
        _redis_client = redis.Redis.from_url(settings.api_key_redis_url)
        logger.info("API key checks will use Redis backend")
    except (ValueError, redis.exceptions.RedisError) as exc:
        logger.warning("Failed to set up Redis for API key checks; falling back to static key",
                       extra={"error": str(exc)})


def require_api_key(x_api_key: str | None = Header(default=None)):
    """
    Validate X-API-Key header against Redis (if configured) or the static api_key setting.
    """
    # nothing configured: open access (dev mode)
    if not settings.api_key and not _redis_client:
        logger.debug("No API key configured; allowing all requests")
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if _redis_client:
        logger.debug("Checking API key against Redis")
        try:
            if _redis_client.sismember(settings.api_key_redis_set, x_api_key):
                return
        except redis.exceptions.RedisError as e:
            logger.warning("Redis API key lookup error; falling back to static key",
                           extra={"error": str(e)})

    if settings.api_key and hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_api_key)])

ENGINE = build_database_engine(settings)
CHAT_CLIENT = ChatCompletionClient(settings=settings)
ECO_TIP_SERVICE = EcoTipService(build_eco_tip_repository(settings, engine=ENGINE), CHAT_CLIENT, settings)
BIKE_SYNC = BikeNetworkSync(build_bike_network_repository(settings, engine=ENGINE))


class DailyTipResponse(BaseModel):
    tip: str
    category: str
    user_age: int
    is_cached: bool
    timestamp: dt.datetime


class CleanupResponse(BaseModel):
    deleted: int
    before: dt.date


class MessageResponse(BaseModel):
    """Plain generated text."""
    message: str


class MotivationRequest(BaseModel):
    completed_missions: int = Field(default=0, ge=0)
    carbon_credits: float = Field(default=0, ge=0)
    ranking: int = Field(default=0, ge=0)


class QuestionRequest(BaseModel):
    question: str = Field(min_length=1)
    context: Optional[str] = None


class NetworkInfo(BaseModel):
    external_id: str
    name: str
    city: str
    country: str
    created_at: dt.datetime
    updated_at: dt.datetime


class BikeStatusResponse(BaseModel):
    has_data: bool
    network_count: int
    station_count: int
    sync_in_progress: bool
    rate_limited_networks: List[str]


class SyncResponse(BaseModel):
    skipped: bool
    networks_total: int
    networks_processed: int
    networks_failed: int
    rate_limited: List[str]
    stations_created: int
    stations_updated: int
    stations_removed: int


class StationResponse(BaseModel):
    external_id: str
    name: str
    latitude: float
    longitude: float
    free_bikes: int
    empty_slots: int
    total_slots: int
    is_available: bool
    has_empty_slots: bool
    occupancy_rate: float
    is_renting: bool
    is_returning: bool
    last_updated: dt.datetime


class NetworkStationsResponse(BaseModel):
    network: NetworkInfo
    stations: List[StationResponse]


_CHAT_ERRORS = (ChatCompletionConfigError, ChatCompletionError, requests.exceptions.RequestException)


def _chat_http_error(exc: Exception) -> HTTPException:
    """Translate chat-completion failures into HTTP errors."""
    if isinstance(exc, ChatCompletionConfigError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    logger.error(f"Chat completion failed: {exc}")
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Upstream AI service error")


@router.get("/eco-tips/daily", response_model=DailyTipResponse)
def get_daily_tip(age: Optional[int] = Query(default=None, ge=0, le=150)):
    """Return today's tip for the given age, generating it on the first request of the day."""
    tip = ECO_TIP_SERVICE.get_daily_tip(user_age=age)
    return DailyTipResponse(
        tip=tip.tip,
        category=tip.category,
        user_age=tip.user_age,
        is_cached=tip.is_cached,
        timestamp=tip.timestamp,
    )


@router.post("/eco-tips/cleanup", response_model=CleanupResponse)
def cleanup_eco_tips(before: Optional[dt.date] = None):
    """Delete cached tips dated before `before` (default: the retention cutoff)."""
    if before is None:
        before = ECO_TIP_SERVICE.today() - dt.timedelta(days=ECO_TIP_SERVICE.retention_days)
    deleted = ECO_TIP_SERVICE.purge_before(before)
    return CleanupResponse(deleted=deleted, before=before)


@router.post("/ai/eco-tip", response_model=MessageResponse)
def generate_eco_tip():
    try:
        return MessageResponse(message=CHAT_CLIENT.generate_eco_tip())
    except _CHAT_ERRORS as exc:
        raise _chat_http_error(exc) from exc


@router.post("/ai/motivation", response_model=MessageResponse)
def generate_motivation(req: MotivationRequest):
    stats = UserStats(
        completed_missions=req.completed_missions,
        carbon_credits=req.carbon_credits,
        ranking=req.ranking,
    )
    try:
        return MessageResponse(message=CHAT_CLIENT.generate_motivational_message(stats))
    except _CHAT_ERRORS as exc:
        raise _chat_http_error(exc) from exc


@router.post("/ai/question", response_model=MessageResponse)
def answer_question(req: QuestionRequest):
    try:
        return MessageResponse(message=CHAT_CLIENT.answer_eco_question(req.question, req.context))
    except _CHAT_ERRORS as exc:
        raise _chat_http_error(exc) from exc


@router.get("/bikes/status", response_model=BikeStatusResponse)
def bike_status():
    info = BIKE_SYNC.status()
    return BikeStatusResponse(has_data=info["network_count"] > 0, **info)


@router.post("/bikes/sync", response_model=SyncResponse)
def sync_bikes():
    """Run a full CityBikes sync in the request thread."""
    try:
        report = BIKE_SYNC.sync_networks()
    except RateLimitedError as exc:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(exc))
    except requests.exceptions.RequestException as exc:
        logger.error(f"Could not fetch CityBikes catalogue: {exc}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="CityBikes API unavailable")
    return SyncResponse(**vars(report))


@router.get("/bikes/networks/{external_id}/stations", response_model=NetworkStationsResponse)
def network_stations(external_id: str):
    summary = BIKE_SYNC.station_summary(external_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Unknown bike network")
    network = summary.network
    return NetworkStationsResponse(
        network=NetworkInfo(
            external_id=network.external_id,
            name=network.name,
            city=network.city,
            country=network.country,
            created_at=network.created_at,
            updated_at=network.updated_at,
        ),
        stations=[StationResponse(**vars(s)) for s in summary.stations],
    )
