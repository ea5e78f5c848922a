"""Canonical data models for the Hefsek engine.

These types are the unit of state the engine owns: recorded cycle starts,
the morning/evening inspections of clean-counting days, and the outcome of
potential-day inspections.  Everything the engine derives (windows,
predictions, classifications) is computed from these and never stored on
them.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.hefsek.hebrew_calendar import HebrewDate


# ---------------------------------------------------------------------------
# Cycle history
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CycleRecord:
    """One reported cycle onset.

    Attributes:
        epoch_day:   Civil day of onset (days since 1970-01-01).
        hebrew_date: Hebrew date captured when the record was created.  It is
                     never recomputed afterwards.
        hour:        Hour of onset (0–23).  Retained, not used by derivations.
        minute:      Minute of onset (0–59).
        sequence:    Insertion counter; breaks ties between records on the
                     same day so ordering stays stable.
    """

    epoch_day: int
    hebrew_date: HebrewDate
    hour: int = 0
    minute: int = 0
    sequence: int = 0

    @property
    def sort_key(self) -> tuple[int, int]:
        return (self.epoch_day, self.sequence)


# ---------------------------------------------------------------------------
# Inspections
# ---------------------------------------------------------------------------


@dataclass
class CleanDayCheck:
    """Morning and evening inspection results for one clean-counting day.

    Created lazily on the first toggle for a day and never deleted.
    """

    epoch_day: int
    morning_check: bool = False
    evening_check: bool = False

    @property
    def is_complete(self) -> bool:
        """True once both inspections of the day are recorded clean."""
        return self.morning_check and self.evening_check

    def toggle(self, is_morning: bool) -> None:
        if is_morning:
            self.morning_check = not self.morning_check
        else:
            self.evening_check = not self.evening_check

    def as_pair(self) -> tuple[bool, bool]:
        return (self.morning_check, self.evening_check)


@dataclass(frozen=True)
class PotentialDayCheck:
    """Outcome of the inspection made on a predicted (potential) day."""

    epoch_day: int
    is_clean: bool
