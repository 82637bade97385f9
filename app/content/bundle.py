"""
Content bundle and profile documents.

These pydantic models are the shapes stored in the profile JSON columns and
exchanged with the Chart Engine and the Content Oracle.
"""

from datetime import date
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.content.categories import ContentCategory, DeepDiveTopic, MemoMode
from app.content.zodiac import ZodiacSign


class PlanetPlacement(BaseModel):
    sign: str
    description: str = ""


class ChartFacts(BaseModel):
    """Natal chart as returned by the Chart Engine. Never recomputed here."""

    model_config = ConfigDict(populate_by_name=True)

    sun: PlanetPlacement
    moon: PlanetPlacement
    rising: PlanetPlacement
    mercury: PlanetPlacement
    venus: PlanetPlacement
    mars: PlanetPlacement
    dominant_element: str = Field(alias="dominantElement")
    ruling_planet: str = Field(alias="rulingPlanet")
    summary: str = ""


class UserFacts(BaseModel):
    """Birth facts and preferences the oracle personalizes on."""

    user_id: str
    name: str
    birth_date: date
    birth_time: Optional[str] = None
    birth_place: str = ""
    language: str = "en"


class PartnerFacts(BaseModel):
    name: str
    birth_date: date
    birth_time: Optional[str] = None
    birth_place: Optional[str] = None
    relationship_type: Optional[str] = None


class DailyForecast(BaseModel):
    """Daily forecast payload, shared by every user of a sign for one day."""

    model_config = ConfigDict(populate_by_name=True)

    reference_date: date = Field(alias="date")
    mood: str = ""
    color: str = ""
    number: int = 0
    content: str = ""
    moon_impact: Optional[str] = Field(default=None, alias="moonImpact")
    transit_focus: Optional[str] = Field(default=None, alias="transitFocus")


class WeeklyForecast(BaseModel):
    """Personal forecast for one reference week, starting on its Monday."""

    model_config = ConfigDict(populate_by_name=True)

    week_start: date = Field(alias="weekStart")
    week_range: str = Field(default="", alias="weekRange")
    theme: str = ""
    advice: str = ""
    love: Optional[str] = None
    career: Optional[str] = None


class MonthlyForecast(BaseModel):
    """Personal forecast for one reference month."""

    model_config = ConfigDict(populate_by_name=True)

    month_start: date = Field(alias="monthStart")
    month: str = ""
    theme: str = ""
    focus: str = ""
    content: str = ""


class KeyInsight(BaseModel):
    title: str
    text: str
    advice: List[str] = Field(default_factory=list)


class ThreeKeys(BaseModel):
    """Energy, love style and career keys from the natal chart."""

    key1: KeyInsight
    key2: KeyInsight
    key3: KeyInsight


class PartnerMemoSlot(BaseModel):
    """Brief and full memos for one partner; the two never share content."""

    partner_name: str
    partner_date: date
    brief: Optional[Dict[str, Any]] = None
    full: Optional[Dict[str, Any]] = None

    def get(self, mode: MemoMode) -> Optional[Dict[str, Any]]:
        return self.brief if mode is MemoMode.BRIEF else self.full

    def put(self, mode: MemoMode, memo: Dict[str, Any]) -> None:
        if mode is MemoMode.BRIEF:
            self.brief = memo
        else:
            self.full = memo


def partner_key(name: str, birth_date: Union[date, str]) -> str:
    """Deterministic identity of a compatibility target: 'jane_1992-08-20'."""
    if isinstance(birth_date, date):
        birth_date = birth_date.isoformat()
    return f"{name.strip().lower()}_{birth_date.strip()}"


# Bundle attribute per category; deep dives live in the deep_dive dict
BUNDLE_FIELDS: Dict[ContentCategory, str] = {
    ContentCategory.INTRO: "intro_text",
    ContentCategory.THREE_KEYS: "three_keys",
    ContentCategory.DAILY_FORECAST: "daily_forecast",
    ContentCategory.WEEKLY_FORECAST: "weekly_forecast",
    ContentCategory.MONTHLY_FORECAST: "monthly_forecast",
    ContentCategory.TRANSIT_FORECAST: "transit_forecast",
}


class ContentBundle(BaseModel):
    """All generated text for one user."""

    intro_text: Optional[str] = None
    three_keys: Optional[ThreeKeys] = None
    daily_forecast: Optional[DailyForecast] = None
    weekly_forecast: Optional[WeeklyForecast] = None
    monthly_forecast: Optional[MonthlyForecast] = None
    deep_dive: Dict[DeepDiveTopic, str] = Field(default_factory=dict)
    transit_forecast: Optional[str] = None
    partner_memos: Dict[str, PartnerMemoSlot] = Field(default_factory=dict)

    # Categories currently holding fallback text instead of oracle output
    fallback_categories: List[ContentCategory] = Field(default_factory=list)

    def get_content(self, category: ContentCategory) -> Any:
        topic = category.deep_dive_topic
        if topic is not None:
            return self.deep_dive.get(topic)
        return getattr(self, BUNDLE_FIELDS[category])

    def set_content(self, category: ContentCategory, value: Any, fallback: bool = False) -> None:
        topic = category.deep_dive_topic
        if topic is not None:
            self.deep_dive[topic] = value
        else:
            setattr(self, BUNDLE_FIELDS[category], value)

        if fallback and category not in self.fallback_categories:
            self.fallback_categories.append(category)
        elif not fallback and category in self.fallback_categories:
            self.fallback_categories.remove(category)

    def is_fallback(self, category: ContentCategory) -> bool:
        return category in self.fallback_categories


class RegenerationLedgerEntry(BaseModel):
    """Regeneration usage for one (user, category)."""

    last_regen_at: Optional[int] = None
    free_uses: List[int] = Field(default_factory=list)  # epoch millis
    paid_count: int = 0


class Profile(BaseModel):
    """Everything the Profile Store keeps for one user."""

    user_id: str
    name: str
    birth_date: date
    birth_time: Optional[str] = None
    birth_place: str = ""
    language: str = "en"
    is_premium: bool = False
    sun_sign: Optional[ZodiacSign] = None
    chart: Optional[ChartFacts] = None
    bundle: Optional[ContentBundle] = None
    timestamps: Dict[ContentCategory, int] = Field(default_factory=dict)
    regenerations: Dict[ContentCategory, RegenerationLedgerEntry] = Field(default_factory=dict)

    @property
    def user_facts(self) -> UserFacts:
        return UserFacts(
            user_id=self.user_id,
            name=self.name,
            birth_date=self.birth_date,
            birth_time=self.birth_time,
            birth_place=self.birth_place,
            language=self.language,
        )

    def last_generated(self, category: ContentCategory) -> Optional[int]:
        return self.timestamps.get(category)

    def stamp(self, category: ContentCategory, millis: int) -> None:
        """Record a generation time; the ledger never moves backwards."""
        previous = self.timestamps.get(category)
        self.timestamps[category] = millis if previous is None else max(previous, millis)

    def ensure_bundle(self) -> ContentBundle:
        if self.bundle is None:
            self.bundle = ContentBundle()
        return self.bundle

    def merge_daily_forecast(self, forecast: DailyForecast, millis: int) -> bool:
        """
        Apply a daily forecast without touching any other slice.

        A forecast for an older reference day never replaces a real newer
        one. Returns False when the merge was skipped.
        """
        bundle = self.ensure_bundle()
        current = bundle.daily_forecast
        if (
            current is not None
            and not bundle.is_fallback(ContentCategory.DAILY_FORECAST)
            and current.reference_date > forecast.reference_date
        ):
            return False
        bundle.set_content(ContentCategory.DAILY_FORECAST, forecast)
        self.stamp(ContentCategory.DAILY_FORECAST, millis)
        return True

    def regeneration_entry(self, category: ContentCategory) -> RegenerationLedgerEntry:
        return self.regenerations.setdefault(category, RegenerationLedgerEntry())
