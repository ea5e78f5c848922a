"""Day classification rules.

Every recorded onset ``E`` claims a fixed run of days:

    E+0 .. E+4     period days
    E+5            hefsek tahara (cessation) day
    E+6 .. E+12    seven clean days

(lengths come from the ``windows`` section of the rule config).  The windows
of all records are unioned.  Windows of closely spaced cycles may overlap;
overlapping days keep every category they fall into, and are reported
separately so callers can surface them.

When a single answer is needed for a day the categories are collapsed by
precedence: period > hefsek tahara > seven clean > potential > ordinary.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

from src.hefsek.base import CycleRecord
from src.hefsek.config_loader import WindowConfig

logger = logging.getLogger("hefsek.classification")


class DayCategory(str, Enum):
    """Halachic category of a day, declared in precedence order."""

    PERIOD = "period"
    HEFSEK_TAHARA = "hefsek_tahara"
    SEVEN_CLEAN = "seven_clean"
    POTENTIAL = "potential"
    ORDINARY = "ordinary"

    @property
    def precedence(self) -> int:
        """Lower wins when collapsing several categories to one."""
        return _PRECEDENCE[self]


_PRECEDENCE: dict[DayCategory, int] = {c: i for i, c in enumerate(DayCategory)}


def resolve_category(categories: Iterable[DayCategory]) -> DayCategory:
    """Collapse the categories that apply to a day to the representative one.

    An empty input is an ordinary day.
    """
    return min(categories, key=lambda c: c.precedence, default=DayCategory.ORDINARY)


@dataclass(frozen=True)
class DayClassification:
    """Everything the engine knows about one day.

    Attributes:
        epoch_day:       The classified day.
        category:        Representative category after precedence.
        categories:      Every category that applies (ORDINARY only when
                         nothing else does).
        checks_complete: For seven-clean days, whether both inspections are
                         recorded clean; None for other days.
        resolved_clean:  For potential days, whether the inspection came back
                         clean; None for other days.
    """

    epoch_day: int
    category: DayCategory
    categories: frozenset[DayCategory]
    checks_complete: bool | None = None
    resolved_clean: bool | None = None


@dataclass(frozen=True)
class DayWindows:
    """Union of the day windows of every record."""

    period_days: frozenset[int] = frozenset()
    hefsek_days: frozenset[int] = frozenset()
    clean_days: frozenset[int] = frozenset()
    overlapping_days: frozenset[int] = frozenset()


def cycle_window(epoch_day: int, windows: WindowConfig) -> tuple[list[int], int, list[int]]:
    """Return ``(period_days, hefsek_day, clean_days)`` for one onset."""
    return (
        [epoch_day + offset for offset in windows.period_offsets],
        epoch_day + windows.hefsek_offset,
        [epoch_day + offset for offset in windows.clean_offsets],
    )


def derive_windows(records: Sequence[CycleRecord], windows: WindowConfig) -> DayWindows:
    """Derive the period, hefsek tahara and seven-clean day sets.

    Args:
        records: Cycle history (any order; the result is a set union).
        windows: Window lengths from the rule config.

    Returns:
        DayWindows including the days claimed by more than one record.
    """
    period: set[int] = set()
    hefsek: set[int] = set()
    clean: set[int] = set()
    claims: Counter[int] = Counter()

    for record in records:
        period_days, hefsek_day, clean_days = cycle_window(record.epoch_day, windows)
        period.update(period_days)
        hefsek.add(hefsek_day)
        clean.update(clean_days)
        claims.update(period_days)
        claims[hefsek_day] += 1
        claims.update(clean_days)

    overlapping = frozenset(day for day, count in claims.items() if count > 1)
    if overlapping:
        logger.debug(
            "%d record(s) claim %d overlapping day(s)", len(records), len(overlapping)
        )
    return DayWindows(
        period_days=frozenset(period),
        hefsek_days=frozenset(hefsek),
        clean_days=frozenset(clean),
        overlapping_days=overlapping,
    )
