"""Inspection bookkeeping: clean-day checks and potential-day resolutions.

Both stores are keyed by epoch day and mutated independently of the cycle
history.  Neither knows anything about windows; whether a day is actually a
clean-counting day or a potential day is decided from the derived snapshot.
"""

from __future__ import annotations

import logging
from typing import Iterable

from src.hefsek.base import CleanDayCheck, PotentialDayCheck

logger = logging.getLogger("hefsek.checks")


class CleanDayCheckTracker:
    """Morning/evening inspection flags per day.

    Usage::

        tracker = CleanDayCheckTracker()
        tracker.toggle(19_823, is_morning=True)
        tracker.get(19_823)        # (True, False)
    """

    def __init__(self) -> None:
        self._checks: dict[int, CleanDayCheck] = {}

    def copy(self) -> CleanDayCheckTracker:
        """Return an independent store; toggling the copy leaves this one untouched."""
        clone = CleanDayCheckTracker()
        clone.replace(self._checks.values())
        return clone

    def toggle(self, epoch_day: int, is_morning: bool) -> CleanDayCheck:
        """Flip the morning or evening flag for a day.

        The entry is created with both flags cleared on first use, so a
        double toggle returns the day to its original state.
        """
        check = self._checks.get(epoch_day)
        if check is None:
            check = CleanDayCheck(epoch_day=epoch_day)
            self._checks[epoch_day] = check
        check.toggle(is_morning)
        logger.debug(
            "Toggled %s check for day %d → morning=%s evening=%s",
            "morning" if is_morning else "evening",
            epoch_day,
            check.morning_check,
            check.evening_check,
        )
        return check

    def get(self, epoch_day: int) -> tuple[bool, bool] | None:
        """Return ``(morning, evening)`` for the day, or None if never toggled."""
        check = self._checks.get(epoch_day)
        return check.as_pair() if check else None

    def as_mapping(self) -> dict[int, tuple[bool, bool]]:
        """Return a detached copy of every recorded pair."""
        return {day: check.as_pair() for day, check in self._checks.items()}

    def all_checks(self) -> list[CleanDayCheck]:
        return [
            CleanDayCheck(c.epoch_day, c.morning_check, c.evening_check)
            for c in sorted(self._checks.values(), key=lambda c: c.epoch_day)
        ]

    def replace(self, checks: Iterable[CleanDayCheck]) -> None:
        self._checks = {
            c.epoch_day: CleanDayCheck(c.epoch_day, c.morning_check, c.evening_check)
            for c in checks
        }

    def __len__(self) -> int:
        return len(self._checks)


class PotentialDayLog:
    """Outcome of inspections made on predicted onset days."""

    def __init__(self) -> None:
        self._resolutions: dict[int, PotentialDayCheck] = {}

    def copy(self) -> PotentialDayLog:
        clone = PotentialDayLog()
        clone._resolutions = dict(self._resolutions)
        return clone

    def resolve(self, epoch_day: int, is_clean: bool) -> PotentialDayCheck:
        """Record (or overwrite) the inspection result for a day."""
        check = PotentialDayCheck(epoch_day=epoch_day, is_clean=is_clean)
        self._resolutions[epoch_day] = check
        logger.debug("Resolved potential day %d as %s", epoch_day, "clean" if is_clean else "not clean")
        return check

    def is_resolved_clean(self, epoch_day: int) -> bool:
        """True only if the day was resolved and found clean."""
        check = self._resolutions.get(epoch_day)
        return check is not None and check.is_clean

    def as_mapping(self) -> dict[int, bool]:
        return {day: check.is_clean for day, check in self._resolutions.items()}

    def all_checks(self) -> list[PotentialDayCheck]:
        return sorted(self._resolutions.values(), key=lambda c: c.epoch_day)

    def replace(self, checks: Iterable[PotentialDayCheck]) -> None:
        self._resolutions = {c.epoch_day: c for c in checks}

    def __len__(self) -> int:
        return len(self._resolutions)
