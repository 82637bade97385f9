"""
Content categories and the freshness policy table.

Every generated piece of text belongs to exactly one category. The policy
table is the single place that decides how a category refreshes and how
many free regenerations a premium user gets for it.
"""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Dict, Optional

from app.config import settings


class RefreshKind(str, Enum):
    """How a category becomes due for (re)generation."""

    ONE_TIME = "ONE_TIME"                    # generated once, changed only via regeneration
    DAILY_SCHEDULED = "DAILY_SCHEDULED"      # stale once the reference day rolls over
    WEEKLY_SCHEDULED = "WEEKLY_SCHEDULED"    # stale once the reference week (Mon-Sun) rolls over
    MONTHLY_SCHEDULED = "MONTHLY_SCHEDULED"  # stale once the reference month rolls over
    PAID_ONLY = "PAID_ONLY"                  # never generated automatically

    @property
    def is_scheduled(self) -> bool:
        return self in SCHEDULED_KINDS


SCHEDULED_KINDS = frozenset({
    RefreshKind.DAILY_SCHEDULED,
    RefreshKind.WEEKLY_SCHEDULED,
    RefreshKind.MONTHLY_SCHEDULED,
})


class OracleKind(str, Enum):
    """Content Oracle endpoints."""

    INTRO = "intro"
    THREE_KEYS = "three_keys"
    DAILY_FORECAST = "daily_forecast"
    WEEKLY_FORECAST = "weekly_forecast"
    MONTHLY_FORECAST = "monthly_forecast"
    DEEP_DIVE = "deep_dive"
    SYNASTRY_BRIEF = "synastry_brief"
    SYNASTRY_FULL = "synastry_full"
    TRANSIT_FORECAST = "transit_forecast"


class DeepDiveTopic(str, Enum):
    """Deep-dive analysis topics, all generated together at onboarding."""

    PERSONALITY = "personality"
    LOVE = "love"
    CAREER = "career"
    WEAKNESS = "weakness"
    KARMA = "karma"

    def display_title(self, language: str) -> str:
        """Topic title passed to the oracle prompt."""
        titles = {
            "ru": {
                DeepDiveTopic.PERSONALITY: "Личность",
                DeepDiveTopic.LOVE: "Любовь",
                DeepDiveTopic.CAREER: "Карьера",
                DeepDiveTopic.WEAKNESS: "Слабости",
                DeepDiveTopic.KARMA: "Карма",
            },
        }
        return titles.get(language, {}).get(self, self.value.capitalize())

    @property
    def category(self) -> "ContentCategory":
        return ContentCategory(f"deep_dive_{self.value}")


class ContentCategory(str, Enum):
    """Ledger keys for everything stored in a content bundle."""

    INTRO = "intro"
    THREE_KEYS = "three_keys"
    DAILY_FORECAST = "daily_forecast"
    WEEKLY_FORECAST = "weekly_forecast"
    MONTHLY_FORECAST = "monthly_forecast"
    DEEP_DIVE_PERSONALITY = "deep_dive_personality"
    DEEP_DIVE_LOVE = "deep_dive_love"
    DEEP_DIVE_CAREER = "deep_dive_career"
    DEEP_DIVE_WEAKNESS = "deep_dive_weakness"
    DEEP_DIVE_KARMA = "deep_dive_karma"
    TRANSIT_FORECAST = "transit_forecast"

    @property
    def deep_dive_topic(self) -> Optional[DeepDiveTopic]:
        if self.value.startswith("deep_dive_"):
            return DeepDiveTopic(self.value[len("deep_dive_"):])
        return None

    @property
    def oracle_kind(self) -> OracleKind:
        if self.deep_dive_topic is not None:
            return OracleKind.DEEP_DIVE
        return OracleKind(self.value)


class MemoMode(str, Enum):
    """Partner memo variants; each has its own cache slot."""

    BRIEF = "brief"
    FULL = "full"

    @property
    def oracle_kind(self) -> OracleKind:
        if self is MemoMode.BRIEF:
            return OracleKind.SYNASTRY_BRIEF
        return OracleKind.SYNASTRY_FULL


@dataclass(frozen=True)
class CategoryPolicy:
    """Refresh rule and free-regeneration allowance for one category."""

    kind: RefreshKind
    free_regenerations: int = 1
    free_window: timedelta = timedelta(days=1)


def build_policy_table(
    free_regenerations: int = 1,
    free_window_days: int = 1,
) -> Dict[ContentCategory, CategoryPolicy]:
    """
    Build the category -> policy table.

    Regenerable categories share the configured free allowance; scheduled
    categories refresh on their own and get none.
    """
    window = timedelta(days=free_window_days)

    def policy(kind: RefreshKind) -> CategoryPolicy:
        allowance = 0 if kind.is_scheduled else free_regenerations
        return CategoryPolicy(kind, allowance, window)

    table = {
        ContentCategory.INTRO: policy(RefreshKind.ONE_TIME),
        ContentCategory.THREE_KEYS: policy(RefreshKind.ONE_TIME),
        ContentCategory.DAILY_FORECAST: policy(RefreshKind.DAILY_SCHEDULED),
        ContentCategory.WEEKLY_FORECAST: policy(RefreshKind.WEEKLY_SCHEDULED),
        ContentCategory.MONTHLY_FORECAST: policy(RefreshKind.MONTHLY_SCHEDULED),
        ContentCategory.TRANSIT_FORECAST: policy(RefreshKind.PAID_ONLY),
    }
    for topic in DeepDiveTopic:
        table[topic.category] = policy(RefreshKind.ONE_TIME)
    return table


POLICY_TABLE: Dict[ContentCategory, CategoryPolicy] = build_policy_table(
    settings.regeneration_free_uses,
    settings.regeneration_free_window_days,
)


def get_policy(category: ContentCategory) -> CategoryPolicy:
    """Policy for a category; every category must be in the table."""
    return POLICY_TABLE[category]
