"""Ordered store of recorded cycle starts.

The history is the permanent record for the session: records are only ever
added (or replaced wholesale when state is restored), and the list is kept
sorted by civil day, with same-day records kept in insertion order.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from src.hefsek.base import CycleRecord
from src.hefsek.hebrew_calendar import to_hebrew

logger = logging.getLogger("hefsek.history")


class CycleHistory:
    """Sorted, append-only history of cycle onsets.

    Usage::

        history = CycleHistory()
        history.add_cycle_start(19_836, hour=18, minute=30)
        history.has_record_in_hebrew_month(5784, NISAN)   # True
    """

    def __init__(self) -> None:
        self._records: tuple[CycleRecord, ...] = ()
        self._next_sequence = 0

    def copy(self) -> CycleHistory:
        """Return an independent store holding the same records."""
        clone = CycleHistory()
        clone._records = self._records
        clone._next_sequence = self._next_sequence
        return clone

    def add_cycle_start(self, epoch_day: int, hour: int = 0, minute: int = 0) -> CycleRecord:
        """Record a cycle onset and keep the history sorted.

        The Hebrew date is captured here, once.

        Args:
            epoch_day: Civil day of onset.
            hour:      Hour of onset (0–23).
            minute:    Minute of onset (0–59).

        Returns:
            The stored CycleRecord.

        Raises:
            ValueError:       If hour or minute is out of range.
            InvalidDateError: If the epoch day cannot be represented.
        """
        if not 0 <= hour <= 23:
            raise ValueError(f"hour must be in 0..23, got {hour}")
        if not 0 <= minute <= 59:
            raise ValueError(f"minute must be in 0..59, got {minute}")

        record = CycleRecord(
            epoch_day=epoch_day,
            hebrew_date=to_hebrew(epoch_day),
            hour=hour,
            minute=minute,
            sequence=self._next_sequence,
        )
        # The tuple is replaced whole, never mutated in place.
        self._records = tuple(sorted((*self._records, record), key=lambda r: r.sort_key))
        self._next_sequence += 1
        logger.info(
            "Recorded cycle start on day %d (%d/%d/%d) at %02d:%02d",
            epoch_day,
            record.hebrew_date.day,
            record.hebrew_date.month,
            record.hebrew_date.year,
            hour,
            minute,
        )
        return record

    def replace(self, records: Iterable[CycleRecord]) -> None:
        """Replace the whole history, re-sequencing records in the given order."""
        restored = [
            CycleRecord(
                epoch_day=r.epoch_day,
                hebrew_date=r.hebrew_date,
                hour=r.hour,
                minute=r.minute,
                sequence=i,
            )
            for i, r in enumerate(records)
        ]
        self._records = tuple(sorted(restored, key=lambda r: r.sort_key))
        self._next_sequence = len(restored)

    def all_records(self) -> tuple[CycleRecord, ...]:
        """Return the history, oldest first."""
        return self._records

    def has_record_in_hebrew_month(self, year: int, month: int) -> bool:
        """True if any record's captured Hebrew date falls in ``(year, month)``."""
        return any(
            r.hebrew_date.year == year and r.hebrew_date.month == month
            for r in self._records
        )

    @property
    def last(self) -> CycleRecord | None:
        return self._records[-1] if self._records else None

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[CycleRecord]:
        return iter(self._records)
