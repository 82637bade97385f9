"""
Zodiac sign definitions.
The sun sign groups users for the shared daily forecast cache.
"""

from datetime import date
from enum import Enum
from typing import Optional


class ZodiacSign(str, Enum):
    """
    12 tropical zodiac signs in ecliptic order.
    Values are the display names the Chart Engine returns.
    """

    ARIES = "Aries"
    TAURUS = "Taurus"
    GEMINI = "Gemini"
    CANCER = "Cancer"
    LEO = "Leo"
    VIRGO = "Virgo"
    LIBRA = "Libra"
    SCORPIO = "Scorpio"
    SAGITTARIUS = "Sagittarius"
    CAPRICORN = "Capricorn"
    AQUARIUS = "Aquarius"
    PISCES = "Pisces"

    @property
    def element(self) -> str:
        """Classical element of the sign."""
        elements = {
            ZodiacSign.ARIES: "Fire", ZodiacSign.LEO: "Fire", ZodiacSign.SAGITTARIUS: "Fire",
            ZodiacSign.TAURUS: "Earth", ZodiacSign.VIRGO: "Earth", ZodiacSign.CAPRICORN: "Earth",
            ZodiacSign.GEMINI: "Air", ZodiacSign.LIBRA: "Air", ZodiacSign.AQUARIUS: "Air",
            ZodiacSign.CANCER: "Water", ZodiacSign.SCORPIO: "Water", ZodiacSign.PISCES: "Water",
        }
        return elements[self]

    @property
    def ruling_planet(self) -> str:
        """Modern ruling planet of the sign."""
        rulers = {
            ZodiacSign.ARIES: "Mars",
            ZodiacSign.TAURUS: "Venus",
            ZodiacSign.GEMINI: "Mercury",
            ZodiacSign.CANCER: "Moon",
            ZodiacSign.LEO: "Sun",
            ZodiacSign.VIRGO: "Mercury",
            ZodiacSign.LIBRA: "Venus",
            ZodiacSign.SCORPIO: "Pluto",
            ZodiacSign.SAGITTARIUS: "Jupiter",
            ZodiacSign.CAPRICORN: "Saturn",
            ZodiacSign.AQUARIUS: "Uranus",
            ZodiacSign.PISCES: "Neptune",
        }
        return rulers[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["ZodiacSign"]:
        """Case-insensitive lookup by name or value; None when unknown."""
        if not value:
            return None
        normalized = value.strip().lower()
        for sign in cls:
            if sign.value.lower() == normalized or sign.name.lower() == normalized:
                return sign
        return None


# (sign, start month, start day) in calendar order; each sign runs until the
# day before the next one starts. Capricorn wraps the year end.
SUN_SIGN_START_DATES = [
    (ZodiacSign.CAPRICORN, 1, 1),
    (ZodiacSign.AQUARIUS, 1, 20),
    (ZodiacSign.PISCES, 2, 19),
    (ZodiacSign.ARIES, 3, 21),
    (ZodiacSign.TAURUS, 4, 20),
    (ZodiacSign.GEMINI, 5, 21),
    (ZodiacSign.CANCER, 6, 21),
    (ZodiacSign.LEO, 7, 23),
    (ZodiacSign.VIRGO, 8, 23),
    (ZodiacSign.LIBRA, 9, 23),
    (ZodiacSign.SCORPIO, 10, 23),
    (ZodiacSign.SAGITTARIUS, 11, 22),
    (ZodiacSign.CAPRICORN, 12, 22),
]


def sun_sign_for_date(birth_date: date) -> ZodiacSign:
    """
    Approximate sun sign from the calendar date of birth.

    The real ingress shifts by a day or two between years; this bucket is
    only used to group users, never as a chart placement.
    """
    month_day = (birth_date.month, birth_date.day)
    result = ZodiacSign.CAPRICORN
    for sign, month, day in SUN_SIGN_START_DATES:
        if month_day >= (month, day):
            result = sign
    return result
