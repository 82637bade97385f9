"""Content domain: categories, policy table, zodiac, bundle documents."""

from app.content.categories import (
    ContentCategory,
    DeepDiveTopic,
    MemoMode,
    OracleKind,
    RefreshKind,
    CategoryPolicy,
    POLICY_TABLE,
    get_policy,
)
from app.content.zodiac import ZodiacSign, sun_sign_for_date
from app.content.bundle import (
    ChartFacts,
    ContentBundle,
    DailyForecast,
    MonthlyForecast,
    PartnerFacts,
    PartnerMemoSlot,
    ThreeKeys,
    Profile,
    UserFacts,
    WeeklyForecast,
    partner_key,
)

__all__ = [
    "ContentCategory",
    "DeepDiveTopic",
    "MemoMode",
    "OracleKind",
    "RefreshKind",
    "CategoryPolicy",
    "POLICY_TABLE",
    "get_policy",
    "ZodiacSign",
    "sun_sign_for_date",
    "ChartFacts",
    "ContentBundle",
    "DailyForecast",
    "MonthlyForecast",
    "PartnerFacts",
    "PartnerMemoSlot",
    "ThreeKeys",
    "Profile",
    "UserFacts",
    "WeeklyForecast",
    "partner_key",
]
