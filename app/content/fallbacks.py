"""Localized fallback content used when a generation call fails."""

from datetime import date
from typing import Any

from app.content.bundle import DailyForecast, KeyInsight, MonthlyForecast, ThreeKeys, WeeklyForecast
from app.content.categories import ContentCategory

FALLBACK_TEXTS = {
    "en": {
        ContentCategory.INTRO: (
            "Your chart is ready. The stars are still composing your personal "
            "portrait - check back soon."
        ),
        ContentCategory.DAILY_FORECAST: (
            "Today is a good day to slow down and listen to your intuition."
        ),
        ContentCategory.WEEKLY_FORECAST: (
            "This week favors small, steady steps over big leaps."
        ),
        ContentCategory.MONTHLY_FORECAST: (
            "This month asks you to finish what you started before opening new doors."
        ),
        ContentCategory.TRANSIT_FORECAST: (
            "Transit details are not available right now. Please try again later."
        ),
        "deep_dive": "This part of your analysis is not available yet. Please try again later.",
        "three_keys": ("YOUR ENERGY", "YOUR LOVE STYLE", "YOUR CAREER"),
        "key_text": "This key is still being written. Please check back later.",
        "theme": "A quiet period",
    },
    "ru": {
        ContentCategory.INTRO: (
            "Ваша карта готова. Звёзды ещё составляют ваш личный портрет - "
            "загляните чуть позже."
        ),
        ContentCategory.DAILY_FORECAST: (
            "Сегодня хороший день, чтобы замедлиться и прислушаться к интуиции."
        ),
        ContentCategory.WEEKLY_FORECAST: (
            "Эта неделя благоприятна для небольших, но уверенных шагов."
        ),
        ContentCategory.MONTHLY_FORECAST: (
            "В этом месяце важно завершить начатое, прежде чем открывать новые двери."
        ),
        ContentCategory.TRANSIT_FORECAST: (
            "Прогноз транзитов сейчас недоступен. Попробуйте позже."
        ),
        "deep_dive": "Этот раздел анализа пока недоступен. Попробуйте позже.",
        "three_keys": ("ТВОЯ ЭНЕРГИЯ", "ТВОЙ СТИЛЬ ЛЮБВИ", "ТВОЯ КАРЬЕРА"),
        "key_text": "Этот ключ ещё пишется. Загляните позже.",
        "theme": "Спокойный период",
    },
}


def _texts(language: str) -> dict:
    return FALLBACK_TEXTS.get(language, FALLBACK_TEXTS["en"])


def fallback_text(category: ContentCategory, language: str) -> str:
    texts = _texts(language)
    if category.deep_dive_topic is not None:
        return texts["deep_dive"]
    return texts[category]


def fallback_forecast(reference_date: date, language: str) -> DailyForecast:
    return DailyForecast(
        reference_date=reference_date,
        mood="Calm" if language != "ru" else "Спокойное",
        color="Silver",
        number=7,
        content=fallback_text(ContentCategory.DAILY_FORECAST, language),
    )


def fallback_three_keys(language: str) -> ThreeKeys:
    texts = _texts(language)
    keys = [KeyInsight(title=title, text=texts["key_text"]) for title in texts["three_keys"]]
    return ThreeKeys(key1=keys[0], key2=keys[1], key3=keys[2])


def fallback_content(category: ContentCategory, period_start: date, language: str) -> Any:
    """Fallback of the right shape for any category; period_start is the category's reference period."""
    texts = _texts(language)
    if category is ContentCategory.DAILY_FORECAST:
        return fallback_forecast(period_start, language)
    if category is ContentCategory.THREE_KEYS:
        return fallback_three_keys(language)
    if category is ContentCategory.WEEKLY_FORECAST:
        return WeeklyForecast(
            week_start=period_start,
            theme=texts["theme"],
            advice=fallback_text(category, language),
        )
    if category is ContentCategory.MONTHLY_FORECAST:
        return MonthlyForecast(
            month_start=period_start,
            month=period_start.strftime("%Y-%m"),
            theme=texts["theme"],
            content=fallback_text(category, language),
        )
    return fallback_text(category, language)
