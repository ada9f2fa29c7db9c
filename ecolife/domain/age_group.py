"""Age brackets used to tailor eco tips, with their prompt focus and fallback tip."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

DEFAULT_USER_AGE = 25


@dataclass(frozen=True)
class AgeGroup:
    name: str
    max_age: int | None
    focus: Tuple[str, ...]
    fallback_tip: str

    def guidance(self) -> str:
        """Focus points rendered as a bullet list for prompts."""
        return "".join(f"\n- {line}" for line in self.focus)


TEEN = AgeGroup(
    name="teen",
    max_age=18,
    focus=(
        "Activities that can be practiced at school or home",
        "Environmental protection activities with parents or friends",
        "Educational yet fun content",
        "Include hopeful messages about the future",
        "Content that can be shared on social media or told to peers",
    ),
    fallback_tip=(
        "Use a reusable water bottle at school. "
        "Saves 1,460 plastic bottles annually and reduces 22kg of CO2."
    ),
)

YOUNG_ADULT = AgeGroup(
    name="young adult",
    max_age=29,
    focus=(
        "Activities for university students or entry-level workers",
        "Practical tips that don't cost much money",
        "Environmental protection connected to lifestyle",
        "Content applicable on campus or at workplace",
        "Methods considering both environment and economy",
    ),
    fallback_tip=(
        "Walk or bike for trips under 2km. "
        "Saves $200+ monthly on transport and burns 300 calories per trip."
    ),
)

MIDDLE_AGED_ADULT = AgeGroup(
    name="middle-aged adult",
    max_age=49,
    focus=(
        "Activities that can be practiced at home with family",
        "Environmental protection practices in the workplace",
        "Environmental activities connected to children's education",
        "Tips linking cost savings with environmental protection",
        "Environmental activities through community participation",
    ),
    fallback_tip=(
        "Unplug electronics when not in use. "
        "Reduces standby power consumption by 10% and saves $120 annually."
    ),
)

SENIOR = AgeGroup(
    name="senior",
    max_age=None,
    focus=(
        "Environmental protection methods using experience and wisdom",
        "Activities considering both health and environment",
        "Leaving environmental legacy for grandchildren's generation",
        "Environmental activities as community leaders",
        "Connecting traditional methods with modern environmental protection",
    ),
    fallback_tip=(
        "Grow herbs in small pots indoors. "
        "Fresh basil saves $50 yearly and one plant absorbs 5kg CO2."
    ),
)

AGE_GROUPS: Tuple[AgeGroup, ...] = (TEEN, YOUNG_ADULT, MIDDLE_AGED_ADULT, SENIOR)


def age_group_for(age: int) -> AgeGroup:
    """Return the first bracket whose upper bound covers `age` (bounds inclusive)."""
    for group in AGE_GROUPS:
        if group.max_age is None or age <= group.max_age:
            return group
    return SENIOR
