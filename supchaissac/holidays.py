"""French public holidays, zone B school holidays and school-year helpers."""
from __future__ import annotations

from datetime import date, timedelta
from typing import NamedTuple


class HolidayPeriod(NamedTuple):
    name: str
    start: date
    end: date


# Vacances scolaires zone B (académie de Nantes), bornes incluses
SCHOOL_HOLIDAYS: dict[str, tuple[HolidayPeriod, ...]] = {
    "2024-2025": (
        HolidayPeriod("Vacances de la Toussaint", date(2024, 10, 19), date(2024, 11, 4)),
        HolidayPeriod("Vacances de Noël", date(2024, 12, 21), date(2025, 1, 5)),
        HolidayPeriod("Vacances d'hiver", date(2025, 2, 8), date(2025, 2, 24)),
        HolidayPeriod("Vacances de printemps", date(2025, 4, 5), date(2025, 4, 22)),
        HolidayPeriod("Vacances d'été", date(2025, 7, 5), date(2025, 9, 1)),
    ),
    "2025-2026": (
        HolidayPeriod("Vacances de la Toussaint", date(2025, 10, 18), date(2025, 11, 3)),
        HolidayPeriod("Vacances de Noël", date(2025, 12, 20), date(2026, 1, 4)),
        HolidayPeriod("Vacances d'hiver", date(2026, 2, 14), date(2026, 3, 2)),
        HolidayPeriod("Vacances de printemps", date(2026, 4, 11), date(2026, 4, 27)),
        HolidayPeriod("Vacances d'été", date(2026, 7, 4), date(2026, 9, 1)),
    ),
}


def easter_sunday(year: int) -> date:
    """Meeus/Jones/Butcher computus for the Gregorian calendar."""

    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def public_holidays(year: int) -> dict[date, str]:
    easter = easter_sunday(year)
    return {
        date(year, 1, 1): "Jour de l'An",
        easter + timedelta(days=1): "Lundi de Pâques",
        date(year, 5, 1): "Fête du Travail",
        date(year, 5, 8): "Victoire 1945",
        easter + timedelta(days=39): "Ascension",
        easter + timedelta(days=50): "Lundi de Pentecôte",
        date(year, 7, 14): "Fête Nationale",
        date(year, 8, 15): "Assomption",
        date(year, 11, 1): "Toussaint",
        date(year, 11, 11): "Armistice 1918",
        date(year, 12, 25): "Noël",
    }


def school_year_for(day: date) -> str:
    """School years run from September to August, e.g. ``"2024-2025"``."""

    if day.month >= 9:
        return f"{day.year}-{day.year + 1}"
    return f"{day.year - 1}-{day.year}"


def school_year_bounds(school_year: str) -> tuple[date, date]:
    try:
        start_year, end_year = (int(part) for part in school_year.split("-"))
    except ValueError as exc:
        raise ValueError(f"Année scolaire invalide : {school_year!r}") from exc
    if end_year != start_year + 1:
        raise ValueError(f"Année scolaire invalide : {school_year!r}")
    return date(start_year, 9, 1), date(end_year, 8, 31)


def in_school_year(day: date, school_year: str) -> bool:
    start, end = school_year_bounds(school_year)
    return start <= day <= end


def school_holiday(day: date) -> str | None:
    for periods in SCHOOL_HOLIDAYS.values():
        for period in periods:
            if period.start <= day <= period.end:
                return period.name
    return None


def blocked_reason(day: date) -> str | None:
    """Return why no session can be declared on ``day``, or ``None``."""

    holiday = public_holidays(day.year).get(day)
    if holiday:
        return holiday
    return school_holiday(day)
