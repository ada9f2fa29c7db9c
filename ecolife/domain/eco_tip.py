"""Cached eco-tip entries keyed by user age and calendar day."""

from __future__ import annotations

import datetime as dt
import uuid
from dataclasses import dataclass, field
from typing import Union

DEFAULT_CATEGORY = "daily_tip"

DayLike = Union[dt.date, dt.datetime, str]


def to_calendar_day(value: DayLike) -> dt.date:
    """Collapse a date, datetime or ISO string to a plain calendar day.

    Datetimes keep the wall-clock day of their own offset; they are never
    shifted to UTC first, so 2024-01-15T00:30+09:00 stays 2024-01-15.
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        return dt.date.fromisoformat(value.strip()[:10])
    raise TypeError(f"Cannot interpret {value!r} as a calendar day")


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


@dataclass(frozen=True)
class EcoTipCache:
    """One generated tip for a given age on a given day. Write-once."""
    id: str
    user_age: int
    tip_date: dt.date
    tip_content: str
    category: str = DEFAULT_CATEGORY
    created_at: dt.datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        # frozen, so normalize through object.__setattr__
        object.__setattr__(self, "tip_date", to_calendar_day(self.tip_date))

    @classmethod
    def create(
        cls,
        *,
        user_age: int,
        tip_date: DayLike,
        tip_content: str,
        category: str | None = None,
    ) -> "EcoTipCache":
        """Build a new entry with a fresh id and creation time."""
        return cls(
            id=str(uuid.uuid4()),
            user_age=user_age,
            tip_date=to_calendar_day(tip_date),
            tip_content=tip_content,
            category=category or DEFAULT_CATEGORY,
        )

    @classmethod
    def reconstitute(
        cls,
        *,
        id: str,
        user_age: int,
        tip_date: DayLike,
        tip_content: str,
        category: str,
        created_at: dt.datetime,
    ) -> "EcoTipCache":
        """Rebuild an entry from stored fields without assigning anything new."""
        return cls(
            id=id,
            user_age=user_age,
            tip_date=to_calendar_day(tip_date),
            tip_content=tip_content,
            category=category,
            created_at=created_at,
        )

    def is_valid_for_date(self, day: DayLike) -> bool:
        return self.tip_date == to_calendar_day(day)

    def is_valid_for_age(self, age: int) -> bool:
        return self.user_age == age
