"""
Content Oracle - GPT-powered generation of all user-facing narrative text.

Each OracleKind has its own prompt. Structured kinds (daily forecast,
synastry) are requested as JSON objects and returned as dicts; the rest
return plain text. No retries here - callers decide how to absorb failures.
"""

import json
import logging
from datetime import date, timedelta
from typing import Any, Dict, Optional, Protocol, Union

from openai import AsyncOpenAI

from app.config import settings
from app.content.bundle import ChartFacts, PartnerFacts, UserFacts
from app.content.categories import DeepDiveTopic, OracleKind
from app.content.zodiac import ZodiacSign

logger = logging.getLogger(__name__)

OracleResult = Union[str, Dict[str, Any]]

STRUCTURED_KINDS = {
    OracleKind.THREE_KEYS,
    OracleKind.DAILY_FORECAST,
    OracleKind.WEEKLY_FORECAST,
    OracleKind.MONTHLY_FORECAST,
    OracleKind.SYNASTRY_BRIEF,
    OracleKind.SYNASTRY_FULL,
}


class ContentOracleError(RuntimeError):
    """Raised when the oracle call fails or returns unusable content."""


class ContentOracle(Protocol):
    async def generate(
        self,
        kind: OracleKind,
        user: UserFacts,
        chart: Optional[ChartFacts],
        *,
        topic: Optional[DeepDiveTopic] = None,
        partner: Optional[PartnerFacts] = None,
        sign: Optional[ZodiacSign] = None,
        reference_date: Optional[date] = None,
        language: str = "en",
    ) -> OracleResult:
        ...


SYSTEM_PROMPT = """You are Astra, a warm and perceptive astrologer writing for a personal astrology app.

Your texts:
- Speak directly to the reader, in second person
- Are hopeful and grounded, never fatalistic or fear-inducing
- Reference the placements you are given instead of generic sun-sign clichés
- Avoid medical, legal or financial advice
"""

LANGUAGE_INSTRUCTIONS = {
    "ru": "Отвечай только на русском языке.",
    "en": "Answer in English only.",
}


def _chart_lines(chart: Optional[ChartFacts]) -> str:
    if chart is None:
        return "Chart: not available"
    return "\n".join([
        f"- Sun: {chart.sun.sign}",
        f"- Moon: {chart.moon.sign}",
        f"- Rising: {chart.rising.sign}",
        f"- Mercury: {chart.mercury.sign}",
        f"- Venus: {chart.venus.sign}",
        f"- Mars: {chart.mars.sign}",
        f"- Dominant element: {chart.dominant_element}",
        f"- Ruling planet: {chart.ruling_planet}",
    ])


def build_prompt(
    kind: OracleKind,
    user: UserFacts,
    chart: Optional[ChartFacts],
    topic: Optional[DeepDiveTopic] = None,
    partner: Optional[PartnerFacts] = None,
    sign: Optional[ZodiacSign] = None,
    reference_date: Optional[date] = None,
    language: str = "en",
) -> str:
    """Build the user prompt for one oracle kind."""
    if kind is OracleKind.INTRO:
        prompt = f"""Write the opening portrait of {user.name}'s natal chart.

{_chart_lines(chart)}

Summary from the chart engine: {chart.summary if chart else ''}

4-5 paragraphs: who they are at the core, how they feel, how they meet the world."""

    elif kind is OracleKind.DAILY_FORECAST:
        if sign is None or reference_date is None:
            raise ValueError("daily forecast needs sign and reference_date")
        prompt = f"""Write today's horoscope for {sign.value} ({sign.element}, ruled by {sign.ruling_planet}).

Date: {reference_date.strftime("%B %d, %Y")} ({reference_date.strftime("%A")})

Return a JSON object with keys:
"mood" (one word), "color" (one word), "number" (integer 1-9),
"content" (2-3 short paragraphs), "moonImpact" (one sentence),
"transitFocus" (one sentence)."""

    elif kind is OracleKind.THREE_KEYS:
        prompt = f"""Name the three keys to {user.name}'s chart: their energy, their love style, their career.

{_chart_lines(chart)}

Return a JSON object with keys "key1", "key2", "key3" (energy, love, career in that order).
Each is an object with "title" (2-3 words, uppercase), "text" (one paragraph)
and "advice" (list of 2 short strings)."""

    elif kind is OracleKind.WEEKLY_FORECAST:
        if reference_date is None:
            raise ValueError("weekly forecast needs reference_date")
        week_end = reference_date + timedelta(days=6)
        prompt = f"""Write {user.name}'s personal horoscope for the week {reference_date.isoformat()} - {week_end.isoformat()}.

{_chart_lines(chart)}

Return a JSON object with keys:
"weekRange" (the dates as written above), "theme" (a few words),
"advice" (1-2 paragraphs), "love" (one paragraph), "career" (one paragraph)."""

    elif kind is OracleKind.MONTHLY_FORECAST:
        if reference_date is None:
            raise ValueError("monthly forecast needs reference_date")
        prompt = f"""Write {user.name}'s personal horoscope for {reference_date.strftime("%B %Y")}.

{_chart_lines(chart)}

Return a JSON object with keys:
"month" (month and year), "theme" (a few words), "focus" (one sentence),
"content" (2-3 paragraphs)."""

    elif kind is OracleKind.DEEP_DIVE:
        if topic is None:
            raise ValueError("deep dive needs a topic")
        prompt = f"""Write a deep analysis of "{topic.display_title(language)}" for {user.name}.

{_chart_lines(chart)}

5-6 paragraphs grounded in the placements above."""

    elif kind in (OracleKind.SYNASTRY_BRIEF, OracleKind.SYNASTRY_FULL):
        if partner is None:
            raise ValueError("synastry needs partner facts")
        relationship = partner.relationship_type or "romantic"
        partner_line = (
            f"Partner: {partner.name}, born {partner.birth_date.isoformat()}"
            f" {partner.birth_time or ''} {partner.birth_place or ''}".rstrip()
        )
        if kind is OracleKind.SYNASTRY_BRIEF:
            shape = """Return a JSON object with keys:
"score" (integer 0-100), "summary" (2-3 sentences),
"strengths" (list of 3 short strings), "challenges" (list of 2 short strings)."""
        else:
            shape = """Return a JSON object with keys:
"score" (integer 0-100), "overview", "emotional", "communication",
"passion", "challenges", "advice" (each 1-2 paragraphs)."""
        prompt = f"""Compare {user.name} with a partner ({relationship} relationship).

{user.name}'s chart:
{_chart_lines(chart)}

{partner_line}

{shape}"""

    elif kind is OracleKind.TRANSIT_FORECAST:
        when = reference_date.isoformat() if reference_date else "the coming weeks"
        prompt = f"""Describe the most important transits for {user.name} starting {when}.

{_chart_lines(chart)}

3-4 paragraphs, concrete dates where possible."""

    else:
        raise ValueError(f"Unknown oracle kind: {kind}")

    instruction = LANGUAGE_INSTRUCTIONS.get(language, LANGUAGE_INSTRUCTIONS["en"])
    return f"{prompt}\n\n{instruction}"


class OpenAIContentOracle:
    """Content Oracle backed by OpenAI chat completions."""

    MAX_TOKENS = {
        OracleKind.INTRO: 1500,
        OracleKind.THREE_KEYS: 1200,
        OracleKind.DAILY_FORECAST: 600,
        OracleKind.WEEKLY_FORECAST: 1000,
        OracleKind.MONTHLY_FORECAST: 1200,
        OracleKind.DEEP_DIVE: 2000,
        OracleKind.SYNASTRY_BRIEF: 600,
        OracleKind.SYNASTRY_FULL: 2000,
        OracleKind.TRANSIT_FORECAST: 1500,
    }

    def __init__(self, client: Optional[AsyncOpenAI] = None, model: Optional[str] = None):
        self.client = client or AsyncOpenAI(
            api_key=settings.openai_api_key,
            timeout=settings.openai_timeout,
        )
        self.model = model or settings.openai_model

    async def generate(
        self,
        kind: OracleKind,
        user: UserFacts,
        chart: Optional[ChartFacts],
        *,
        topic: Optional[DeepDiveTopic] = None,
        partner: Optional[PartnerFacts] = None,
        sign: Optional[ZodiacSign] = None,
        reference_date: Optional[date] = None,
        language: str = "en",
    ) -> OracleResult:
        prompt = build_prompt(kind, user, chart, topic, partner, sign, reference_date, language)
        structured = kind in STRUCTURED_KINDS

        request: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self.MAX_TOKENS[kind],
            "temperature": 0.85,
        }
        if structured:
            request["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.chat.completions.create(**request)
        except Exception as e:
            raise ContentOracleError(f"{kind.value} generation failed: {e}") from e

        text = (response.choices[0].message.content or "").strip() if response.choices else ""
        if not text:
            raise ContentOracleError(f"{kind.value} generation returned empty content")

        if not structured:
            return text

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise ContentOracleError(f"{kind.value} returned invalid JSON") from e
        if not isinstance(payload, dict):
            raise ContentOracleError(f"{kind.value} returned {type(payload).__name__}, expected object")

        logger.debug(f"Generated {kind.value} for user {user.user_id}")
        return payload
