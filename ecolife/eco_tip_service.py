"""Daily eco tips: serve from the cache, generate on a miss, sweep old entries."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from zoneinfo import ZoneInfo

import requests

from .config import Settings, settings as default_settings
from .domain.age_group import age_group_for
from .domain.eco_tip import DEFAULT_CATEGORY, DayLike, EcoTipCache, to_calendar_day
from .domain.repositories import EcoTipCacheRepository
from .openai_client import ChatCompletionClient
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="eco_tip_service")


@dataclass
class DailyTip:
    """What callers get back for a daily tip request."""
    tip: str
    category: str
    user_age: int
    is_cached: bool
    timestamp: dt.datetime


class EcoTipService:
    """Cache-then-generate lookup of one tip per (age, day)."""

    def __init__(
        self,
        repository: EcoTipCacheRepository,
        client: ChatCompletionClient,
        settings: Settings | None = None,
    ) -> None:
        cfg = settings or default_settings
        self.repository = repository
        self.client = client
        self.tz = ZoneInfo(cfg.eco_tip_timezone)
        self.retention_days = cfg.eco_tip_retention_days
        self.default_user_age = cfg.default_user_age

    def today(self) -> dt.date:
        """Current calendar day in the configured timezone."""
        return dt.datetime.now(self.tz).date()

    def get_daily_tip(self, user_age: int | None = None, today: DayLike | None = None) -> DailyTip:
        age = self.default_user_age if user_age is None else user_age
        day = self.today() if today is None else to_calendar_day(today)

        cached = self.repository.find_by_age_and_date(age, day)
        if cached is not None:
            logger.info(f"Serving cached tip for age {age} on {day}")
            return DailyTip(
                tip=cached.tip_content,
                category=cached.category,
                user_age=age,
                is_cached=True,
                timestamp=cached.created_at,
            )

        try:
            content = self.client.generate_age_specific_tip(age)
        except (RuntimeError, requests.exceptions.RequestException) as exc:
            group = age_group_for(age)
            logger.warning(
                "Tip generation failed; returning fallback tip",
                extra={"age": age, "age_group": group.name, "error": str(exc)},
            )
            # not cached so the next request tries generation again
            return DailyTip(
                tip=group.fallback_tip,
                category=DEFAULT_CATEGORY,
                user_age=age,
                is_cached=False,
                timestamp=dt.datetime.now(dt.timezone.utc),
            )

        entry = self.repository.save(
            EcoTipCache.create(user_age=age, tip_date=day, tip_content=content, category=DEFAULT_CATEGORY)
        )
        logger.info(f"Generated and cached tip for age {age} on {day}")
        return DailyTip(
            tip=entry.tip_content,
            category=entry.category,
            user_age=age,
            is_cached=False,
            timestamp=entry.created_at,
        )

    def purge_expired(self, today: DayLike | None = None) -> int:
        """Delete entries older than the retention window; returns how many went."""
        day = self.today() if today is None else to_calendar_day(today)
        cutoff = day - dt.timedelta(days=self.retention_days)
        return self.purge_before(cutoff)

    def purge_before(self, before: DayLike) -> int:
        cutoff = to_calendar_day(before)
        deleted = self.repository.delete_old_entries(cutoff)
        logger.info(f"Removed {deleted} eco tip cache entries dated before {cutoff}")
        return deleted
