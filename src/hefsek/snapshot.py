"""The derived snapshot: everything the engine computes from its state.

A snapshot is a pure function of the cycle history, the clean-day checks,
the potential-day resolutions and the rule config.  It is rebuilt whole
after every mutation and never modified afterwards, so it can be handed to
readers on any thread.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Sequence

from src.hefsek.base import CycleRecord
from src.hefsek.classification import (
    DayCategory,
    DayClassification,
    derive_windows,
    resolve_category,
)
from src.hefsek.config_loader import RulesConfig
from src.hefsek.prediction import predict_all

logger = logging.getLogger("hefsek.snapshot")

_EMPTY: Mapping = MappingProxyType({})


@dataclass(frozen=True)
class DerivedSnapshot:
    """Derived day sets and predictions for the current state.

    Attributes:
        period_days:          Union of every record's period days.
        hefsek_days:          Union of every record's hefsek tahara day.
        clean_days:           Union of every record's seven clean days.
        clean_day_checks:     epoch day → (morning, evening) inspections.
        potential_day_checks: epoch day → inspection came back clean.
        monthly_prediction:   Same Hebrew date next month, if any.
        average_prediction:   Fixed interval after the last onset, if any.
        interval_prediction:  Repeated gap between onsets, if any.
        overlapping_days:     Days claimed by more than one record's window.
        warnings:             Human-readable notes about the history.
        record_count:         Number of records the snapshot was built from.
        revision:             Monotonic recompute counter of the owning tracker.
        records:              The history the snapshot was built from, oldest first.
    """

    period_days: frozenset[int] = frozenset()
    hefsek_days: frozenset[int] = frozenset()
    clean_days: frozenset[int] = frozenset()
    clean_day_checks: Mapping[int, tuple[bool, bool]] = field(default_factory=lambda: _EMPTY)
    potential_day_checks: Mapping[int, bool] = field(default_factory=lambda: _EMPTY)
    monthly_prediction: int | None = None
    average_prediction: int | None = None
    interval_prediction: int | None = None
    overlapping_days: frozenset[int] = frozenset()
    warnings: tuple[str, ...] = ()
    record_count: int = 0
    revision: int = 0
    records: tuple[CycleRecord, ...] = field(default=(), compare=False, repr=False)

    @property
    def potential_days(self) -> frozenset[int]:
        return frozenset(
            d
            for d in (self.monthly_prediction, self.average_prediction, self.interval_prediction)
            if d is not None
        )

    def is_clean_day_complete(self, epoch_day: int) -> bool:
        """True only for a seven-clean day whose two inspections are both clean."""
        if epoch_day not in self.clean_days:
            return False
        pair = self.clean_day_checks.get(epoch_day)
        return pair is not None and pair[0] and pair[1]

    def categories_for(self, epoch_day: int) -> frozenset[DayCategory]:
        """Every category that applies to the day, ignoring precedence."""
        found = set()
        if epoch_day in self.period_days:
            found.add(DayCategory.PERIOD)
        if epoch_day in self.hefsek_days:
            found.add(DayCategory.HEFSEK_TAHARA)
        if epoch_day in self.clean_days:
            found.add(DayCategory.SEVEN_CLEAN)
        if epoch_day in self.potential_days:
            found.add(DayCategory.POTENTIAL)
        return frozenset(found) or frozenset({DayCategory.ORDINARY})

    def classify(self, epoch_day: int) -> DayClassification:
        categories = self.categories_for(epoch_day)
        return DayClassification(
            epoch_day=epoch_day,
            category=resolve_category(categories),
            categories=categories,
            checks_complete=(
                self.is_clean_day_complete(epoch_day)
                if DayCategory.SEVEN_CLEAN in categories
                else None
            ),
            resolved_clean=(
                self.potential_day_checks.get(epoch_day) is True
                if DayCategory.POTENTIAL in categories
                else None
            ),
        )


def build_snapshot(
    records: Sequence[CycleRecord],
    clean_day_checks: Mapping[int, tuple[bool, bool]],
    potential_day_checks: Mapping[int, bool],
    rules: RulesConfig,
    revision: int = 0,
) -> DerivedSnapshot:
    """Compute a complete snapshot.

    Args:
        records:              Cycle history sorted oldest first.
        clean_day_checks:     Current inspection pairs.
        potential_day_checks: Current potential-day resolutions.
        rules:                Rule configuration.
        revision:             Revision number to stamp on the snapshot.

    Returns:
        A new, immutable DerivedSnapshot.
    """
    windows = derive_windows(records, rules.windows)
    predictions = predict_all(records, rules.predictions)

    warnings: list[str] = []
    if windows.overlapping_days and rules.warn_on_overlap:
        first, last = min(windows.overlapping_days), max(windows.overlapping_days)
        message = (
            f"{len(windows.overlapping_days)} day(s) fall in more than one cycle window "
            f"(epoch days {first}..{last})"
        )
        warnings.append(message)
        logger.warning("Overlapping cycle windows: %s", message)

    return DerivedSnapshot(
        period_days=windows.period_days,
        hefsek_days=windows.hefsek_days,
        clean_days=windows.clean_days,
        clean_day_checks=MappingProxyType(dict(clean_day_checks)),
        potential_day_checks=MappingProxyType(dict(potential_day_checks)),
        monthly_prediction=predictions.monthly,
        average_prediction=predictions.average,
        interval_prediction=predictions.interval,
        overlapping_days=windows.overlapping_days,
        warnings=tuple(warnings),
        record_count=len(records),
        revision=revision,
        records=tuple(records),
    )


def changed_days(old: DerivedSnapshot, new: DerivedSnapshot) -> frozenset[int]:
    """Days whose classification or inspection state may differ between snapshots.

    A presentation layer can redraw exactly these days after a change.
    """
    changed: set[int] = set()
    changed |= old.period_days ^ new.period_days
    changed |= old.hefsek_days ^ new.hefsek_days
    changed |= old.clean_days ^ new.clean_days
    changed |= old.potential_days ^ new.potential_days
    for day in set(old.clean_day_checks) | set(new.clean_day_checks):
        if old.clean_day_checks.get(day) != new.clean_day_checks.get(day):
            changed.add(day)
    for day in set(old.potential_day_checks) | set(new.potential_day_checks):
        if old.potential_day_checks.get(day) != new.potential_day_checks.get(day):
            changed.add(day)
    return frozenset(changed)
