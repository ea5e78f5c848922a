"""Civil ⇄ Hebrew calendar conversion for the Hefsek engine.

The engine keys every day by an *epoch day*: the number of days since
1970-01-01 in the proleptic Gregorian calendar.  This module converts
between epoch days and Hebrew ``(year, month, day)`` triples using the
arithmetic Hebrew calendar (the same leap-year and month-length rules as
ICU's ``HebrewCalendar``), backed by ``pyluach``.

Month numbering follows ICU's fixed thirteen slots, counted from 1::

    1 Tishrei   2 Heshvan   3 Kislev   4 Tevet   5 Shevat
    6 Adar I (leap years only)          7 Adar (Adar II in leap years)
    8 Nisan     9 Iyar     10 Sivan   11 Tammuz  12 Av      13 Elul

Impossible dates are rejected with ``InvalidDateError``; nothing is
normalized silently.

Usage::

    from src.hefsek.hebrew_calendar import to_hebrew, to_epoch_day

    hd = to_hebrew(19_836)              # HebrewDate(year=5784, month=8, day=15)
    to_epoch_day(*hd)                   # 19836
"""

from __future__ import annotations

import logging
from datetime import date
from typing import NamedTuple

from pyluach import dates, hebrewcal

logger = logging.getLogger("hefsek.calendar")

EPOCH = date(1970, 1, 1)
_EPOCH_ORDINAL = EPOCH.toordinal()

# ---------------------------------------------------------------------------
# Month slots
# ---------------------------------------------------------------------------

TISHREI = 1
HESHVAN = 2
KISLEV = 3
TEVET = 4
SHEVAT = 5
ADAR_I = 6
ADAR = 7
NISAN = 8
IYAR = 9
SIVAN = 10
TAMMUZ = 11
AV = 12
ELUL = 13

FIRST_MONTH = TISHREI
LAST_MONTH = ELUL

_MONTH_NAMES: dict[int, tuple[str, str]] = {
    TISHREI: ("Tishrei", "תשרי"),
    HESHVAN: ("Heshvan", "חשון"),
    KISLEV: ("Kislev", "כסלו"),
    TEVET: ("Tevet", "טבת"),
    SHEVAT: ("Shevat", "שבט"),
    ADAR_I: ("Adar I", "אדר א'"),
    ADAR: ("Adar", "אדר"),
    NISAN: ("Nisan", "ניסן"),
    IYAR: ("Iyar", "אייר"),
    SIVAN: ("Sivan", "סיון"),
    TAMMUZ: ("Tammuz", "תמוז"),
    AV: ("Av", "אב"),
    ELUL: ("Elul", "אלול"),
}

# pyluach counts months from Nisan (1) with Tishrei at 7 and Adar II at 13.
_SLOT_TO_PYLUACH: dict[int, int] = {
    TISHREI: 7,
    HESHVAN: 8,
    KISLEV: 9,
    TEVET: 10,
    SHEVAT: 11,
    ADAR_I: 12,
    NISAN: 1,
    IYAR: 2,
    SIVAN: 3,
    TAMMUZ: 4,
    AV: 5,
    ELUL: 6,
}
_PYLUACH_TO_SLOT: dict[int, int] = {v: k for k, v in _SLOT_TO_PYLUACH.items() if k != ADAR_I}


class HebrewDate(NamedTuple):
    """A Hebrew calendar date using the slot numbering above."""

    year: int
    month: int
    day: int


class InvalidDateError(ValueError):
    """Raised for an impossible or unrepresentable calendar date.

    Attributes:
        year:      Hebrew year of the rejected triple, if any.
        month:     Hebrew month slot of the rejected triple, if any.
        day:       Hebrew day of the rejected triple, if any.
        epoch_day: Rejected epoch day, if the failure came from the civil side.
    """

    def __init__(
        self,
        message: str,
        *,
        year: int | None = None,
        month: int | None = None,
        day: int | None = None,
        epoch_day: int | None = None,
    ) -> None:
        super().__init__(message)
        self.year = year
        self.month = month
        self.day = day
        self.epoch_day = epoch_day


# ---------------------------------------------------------------------------
# Year / month structure
# ---------------------------------------------------------------------------


def is_leap_year(year: int) -> bool:
    """Return True if ``year`` has thirteen months (Adar I and Adar II).

    Raises:
        InvalidDateError: If ``year`` is before year 1.
    """
    if year < 1:
        raise InvalidDateError(f"Hebrew year {year} is out of range", year=year)
    return hebrewcal.Year(year).leap


def months_in_year(year: int) -> int:
    return 13 if is_leap_year(year) else 12


def month_exists(year: int, month: int) -> bool:
    """Return True if the month slot is part of ``year``."""
    if year < 1 or not (FIRST_MONTH <= month <= LAST_MONTH):
        return False
    if month == ADAR_I:
        return is_leap_year(year)
    return True


def _to_pyluach_month(year: int, month: int) -> int:
    if month == ADAR:
        return 13 if is_leap_year(year) else 12
    return _SLOT_TO_PYLUACH[month]


def _from_pyluach_month(year: int, pyluach_month: int) -> int:
    if pyluach_month == 13:
        return ADAR
    if pyluach_month == 12:
        return ADAR_I if is_leap_year(year) else ADAR
    return _PYLUACH_TO_SLOT[pyluach_month]


def month_length(year: int, month: int) -> int:
    """Return the number of days (29 or 30) in a Hebrew month.

    Raises:
        InvalidDateError: If the month slot does not exist in ``year``.
    """
    if not month_exists(year, month):
        raise InvalidDateError(
            f"Month {month} does not exist in Hebrew year {year}",
            year=year,
            month=month,
        )
    pm = hebrewcal.Month(year, _to_pyluach_month(year, month))
    return sum(1 for _ in pm.iterdates())


def next_month(year: int, month: int) -> tuple[int, int]:
    """Return the ``(year, month)`` that follows the given Hebrew month.

    Elul is the last month of the year and rolls into Tishrei (slot 1) of
    the next year, not Heshvan.  In a common year Shevat is followed
    directly by Adar.

    Raises:
        InvalidDateError: If the starting month does not exist.
    """
    if not month_exists(year, month):
        raise InvalidDateError(
            f"Month {month} does not exist in Hebrew year {year}",
            year=year,
            month=month,
        )
    if month == LAST_MONTH:
        return year + 1, FIRST_MONTH
    following = month + 1
    if following == ADAR_I and not is_leap_year(year):
        following = ADAR
    return year, following


def month_name(month: int, *, year: int | None = None, hebrew: bool = False) -> str:
    """Return the display name of a month slot.

    Args:
        month:  Month slot (1–13).
        year:   When given and the year is a leap year, Adar is named Adar II.
        hebrew: Return the Hebrew-script name instead of the transliteration.

    Raises:
        InvalidDateError: If ``month`` is not a month slot.
    """
    if month not in _MONTH_NAMES:
        raise InvalidDateError(f"Unknown Hebrew month {month}", month=month)
    english, native = _MONTH_NAMES[month]
    if month == ADAR and year is not None and is_leap_year(year):
        english, native = "Adar II", "אדר ב'"
    return native if hebrew else english


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


def epoch_day_from_date(value: date) -> int:
    """Return the epoch day of a civil date."""
    return value.toordinal() - _EPOCH_ORDINAL


def date_from_epoch_day(epoch_day: int) -> date:
    """Return the civil date of an epoch day.

    Raises:
        InvalidDateError: If the day is outside the representable civil range.
    """
    try:
        return date.fromordinal(epoch_day + _EPOCH_ORDINAL)
    except (ValueError, OverflowError) as exc:
        raise InvalidDateError(
            f"Epoch day {epoch_day} is outside the supported civil range",
            epoch_day=epoch_day,
        ) from exc


def validate_hebrew_date(year: int, month: int, day: int) -> None:
    """Reject a Hebrew triple that does not name a real day.

    Raises:
        InvalidDateError: On a bad year, month slot or day of month.
    """
    if year < 1:
        raise InvalidDateError(
            f"Hebrew year {year} is out of range", year=year, month=month, day=day
        )
    if not month_exists(year, month):
        raise InvalidDateError(
            f"Month {month} does not exist in Hebrew year {year}",
            year=year,
            month=month,
            day=day,
        )
    length = month_length(year, month)
    if not (1 <= day <= length):
        raise InvalidDateError(
            f"Day {day} is out of range for {month_name(month, year=year)} {year} "
            f"({length} days)",
            year=year,
            month=month,
            day=day,
        )


def to_hebrew(epoch_day: int) -> HebrewDate:
    """Convert an epoch day to a Hebrew date.

    Raises:
        InvalidDateError: If the epoch day cannot be represented.
    """
    civil = date_from_epoch_day(epoch_day)
    hd = dates.HebrewDate.from_pydate(civil)
    return HebrewDate(hd.year, _from_pyluach_month(hd.year, hd.month), hd.day)


def to_epoch_day(year: int, month: int, day: int) -> int:
    """Convert a Hebrew date to an epoch day.

    Raises:
        InvalidDateError: If the triple is impossible or falls outside the
            civil range Python dates can represent.
    """
    validate_hebrew_date(year, month, day)
    try:
        civil = dates.HebrewDate(year, _to_pyluach_month(year, month), day).to_pydate()
    except (ValueError, OverflowError) as exc:
        logger.debug("pyluach could not convert %d/%d/%d: %s", day, month, year, exc)
        raise InvalidDateError(
            f"Hebrew date {day} {month_name(month, year=year)} {year} "
            "is outside the supported civil range",
            year=year,
            month=month,
            day=day,
        ) from exc
    return epoch_day_from_date(civil)


def format_hebrew_date(epoch_day: int, *, hebrew: bool = False) -> str:
    """Render an epoch day as ``"<day> <month name> <year>"`` in the Hebrew calendar."""
    hd = to_hebrew(epoch_day)
    return f"{hd.day} {month_name(hd.month, year=hd.year, hebrew=hebrew)} {hd.year}"
