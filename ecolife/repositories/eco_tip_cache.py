"""Eco-tip cache adapters: SQLAlchemy-backed for production, in-memory for dev/tests."""

from __future__ import annotations

import datetime as dt
import threading
from typing import Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine

from ecolife.db.engine import build_session_factory
from ecolife.db.models import EcoTipCacheRow
from ecolife.domain.eco_tip import DayLike, EcoTipCache, to_calendar_day
from ecolife.domain.repositories import EcoTipCacheRepository
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="repositories/eco_tip_cache")


def _as_utc(value: dt.datetime) -> dt.datetime:
    # SQLite hands DateTime(timezone=True) back naive; stored values are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def _row_to_entry(row: EcoTipCacheRow) -> EcoTipCache:
    return EcoTipCache.reconstitute(
        id=row.id,
        user_age=row.user_age,
        tip_date=row.tip_date,
        tip_content=row.tip_content,
        category=row.category,
        created_at=_as_utc(row.created_at),
    )


class SqlEcoTipCacheRepository(EcoTipCacheRepository):
    """Stores entries in the `eco_tip_cache` table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = build_session_factory(engine)

    def save(self, entry: EcoTipCache) -> EcoTipCache:
        row = EcoTipCacheRow(
            id=entry.id,
            user_age=entry.user_age,
            tip_date=entry.tip_date,
            tip_content=entry.tip_content,
            category=entry.category,
            created_at=_as_utc(entry.created_at),
        )
        with self._session_factory.begin() as session:
            session.add(row)
            session.flush()
            saved = _row_to_entry(row)
        logger.debug("Saved eco tip for age %s on %s", saved.user_age, saved.tip_date.isoformat())
        return saved

    def find_by_age_and_date(self, user_age: int, tip_date: DayLike) -> Optional[EcoTipCache]:
        day = to_calendar_day(tip_date)
        stmt = (
            select(EcoTipCacheRow)
            .where(EcoTipCacheRow.user_age == user_age, EcoTipCacheRow.tip_date == day)
            .order_by(EcoTipCacheRow.created_at, EcoTipCacheRow.id)
            .limit(1)
        )
        with self._session_factory() as session:
            row = session.execute(stmt).scalars().first()
            if row is None:
                logger.debug("Cache miss for age %s on %s", user_age, day.isoformat())
                return None
            logger.debug("Cache hit for age %s on %s", user_age, day.isoformat())
            return _row_to_entry(row)

    def delete_old_entries(self, before_date: DayLike) -> int:
        cutoff = to_calendar_day(before_date)
        with self._session_factory.begin() as session:
            result = session.execute(delete(EcoTipCacheRow).where(EcoTipCacheRow.tip_date < cutoff))
            deleted = result.rowcount or 0
        logger.info(f"Deleted {deleted} eco tip entries dated before {cutoff.isoformat()}")
        return deleted


class InMemoryEcoTipCacheRepository(EcoTipCacheRepository):
    """Thread-safe dict store keyed by ``"{age}_{YYYY-MM-DD}"`` (dev/test)."""

    def __init__(self) -> None:
        self._entries: Dict[str, EcoTipCache] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _key(user_age: int, tip_date: DayLike) -> str:
        return f"{user_age}_{to_calendar_day(tip_date).isoformat()}"

    def save(self, entry: EcoTipCache) -> EcoTipCache:
        key = self._key(entry.user_age, entry.tip_date)
        with self._lock:
            # first write wins, matching the SQL adapter's earliest-entry lookup
            stored = self._entries.setdefault(key, entry)
        logger.debug("Cached tip for age %s on %s", entry.user_age, entry.tip_date.isoformat())
        return stored

    def find_by_age_and_date(self, user_age: int, tip_date: DayLike) -> Optional[EcoTipCache]:
        with self._lock:
            return self._entries.get(self._key(user_age, tip_date))

    def delete_old_entries(self, before_date: DayLike) -> int:
        cutoff = to_calendar_day(before_date)
        with self._lock:
            stale = [key for key, entry in self._entries.items() if entry.tip_date < cutoff]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.info(f"Cleaned up {len(stale)} old cache entries")
        return len(stale)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("All cache entries cleared")
