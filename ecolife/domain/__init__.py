"""Domain entities and storage contracts."""

from .age_group import AGE_GROUPS, DEFAULT_USER_AGE, AgeGroup, age_group_for
from .bike import BikeNetwork, BikeStation
from .eco_tip import DEFAULT_CATEGORY, EcoTipCache, to_calendar_day
from .repositories import BikeNetworkRepository, EcoTipCacheRepository

__all__ = [
    "AGE_GROUPS",
    "DEFAULT_USER_AGE",
    "AgeGroup",
    "age_group_for",
    "BikeNetwork",
    "BikeStation",
    "DEFAULT_CATEGORY",
    "EcoTipCache",
    "to_calendar_day",
    "BikeNetworkRepository",
    "EcoTipCacheRepository",
]
