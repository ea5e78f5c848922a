"""Hefsek tracker: the engine's single call surface.

``PurityTracker`` owns the cycle history and the inspection stores.  Every
mutation rebuilds the derived snapshot from scratch, publishes it, and
notifies subscribers; every query reads the published snapshot and has no
side effects.

Usage::

    tracker = PurityTracker()
    tracker.subscribe(lambda snap: redraw(snap.revision))

    tracker.add_cycle_start(19_836, hour=18, minute=30)
    tracker.is_period_day(19_838)               # True
    tracker.is_hefsek_tahara_day(19_841)        # True
    tracker.classify(19_866).category           # DayCategory.POTENTIAL

    tracker.toggle_clean_day_check(19_842, is_morning=True)
    tracker.toggle_clean_day_check(19_842, is_morning=False)
    tracker.is_clean_day_complete(19_842)       # True
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable

from src.hefsek.base import CycleRecord
from src.hefsek.checks import CleanDayCheckTracker, PotentialDayLog
from src.hefsek.classification import DayClassification
from src.hefsek.config_loader import RulesConfig, get_rules_config
from src.hefsek.hebrew_calendar import epoch_day_from_date
from src.hefsek.history import CycleHistory
from src.hefsek.snapshot import DerivedSnapshot, build_snapshot
from src.models.tracking import (
    CleanDayCheckSchema,
    CycleRecordSchema,
    PotentialDayCheckSchema,
    TrackerState,
)

logger = logging.getLogger("hefsek.tracker")

SnapshotListener = Callable[[DerivedSnapshot], None]


class PurityTracker:
    """Cycle history, inspections, and the day classifications derived from them.

    Thread-safe for a single-writer / many-reader host: mutators are
    serialized by a re-entrant lock, work on copies of the stores, and
    publish the stores and the snapshot only once the snapshot is built.
    A mutation that raises leaves the tracker exactly as it was.
    """

    def __init__(self, rules: RulesConfig | None = None) -> None:
        self._rules = rules or get_rules_config()
        self._history = CycleHistory()
        self._clean_checks = CleanDayCheckTracker()
        self._potential_checks = PotentialDayLog()
        self._listeners: list[SnapshotListener] = []
        self._lock = threading.RLock()
        self._revision = 0
        self._snapshot = self._build(
            self._history, self._clean_checks, self._potential_checks, self._revision
        )

    @property
    def rules(self) -> RulesConfig:
        return self._rules

    @property
    def snapshot(self) -> DerivedSnapshot:
        """The latest derived snapshot."""
        return self._snapshot

    # ------------------------------------------------------------------
    # Notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call ``listener`` with every new snapshot.

        Returns:
            A function that removes the listener again.
        """
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, snapshot: DerivedSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:
                logger.warning(
                    "Snapshot listener %r failed on revision %d: %s",
                    listener,
                    snapshot.revision,
                    exc,
                )

    # ------------------------------------------------------------------
    # Recompute
    # ------------------------------------------------------------------

    def _build(
        self,
        history: CycleHistory,
        clean_checks: CleanDayCheckTracker,
        potential_checks: PotentialDayLog,
        revision: int,
    ) -> DerivedSnapshot:
        return build_snapshot(
            history.all_records(),
            clean_checks.as_mapping(),
            potential_checks.as_mapping(),
            self._rules,
            revision=revision,
        )

    def _commit(
        self,
        history: CycleHistory | None = None,
        clean_checks: CleanDayCheckTracker | None = None,
        potential_checks: PotentialDayLog | None = None,
    ) -> DerivedSnapshot:
        """Build a snapshot from staged stores, then publish stores and snapshot together.

        Stores not passed keep their current value.  If the build raises,
        nothing is published and the tracker is left as it was.
        """
        # Caller holds the lock.
        history = self._history if history is None else history
        clean_checks = self._clean_checks if clean_checks is None else clean_checks
        potential_checks = self._potential_checks if potential_checks is None else potential_checks

        revision = self._revision + 1
        snapshot = self._build(history, clean_checks, potential_checks, revision)

        self._history = history
        self._clean_checks = clean_checks
        self._potential_checks = potential_checks
        self._revision = revision
        self._snapshot = snapshot
        logger.debug(
            "Recomputed snapshot r%d: %d record(s), %d period day(s), potential=%s",
            snapshot.revision,
            snapshot.record_count,
            len(snapshot.period_days),
            sorted(snapshot.potential_days),
        )
        self._notify(snapshot)
        return snapshot

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_cycle_start(self, epoch_day: int, hour: int = 0, minute: int = 0) -> DerivedSnapshot:
        """Record a cycle onset and recompute.

        Raises:
            ValueError:       If hour or minute is out of range.
            InvalidDateError: If the epoch day, or a prediction derived from
                              it, cannot be converted.  The tracker is unchanged.
        """
        with self._lock:
            history = self._history.copy()
            history.add_cycle_start(epoch_day, hour, minute)
            return self._commit(history=history)

    def record_cycle_start(self, moment: datetime) -> DerivedSnapshot:
        """Record a cycle onset from a local date and time."""
        return self.add_cycle_start(
            epoch_day_from_date(moment.date()), moment.hour, moment.minute
        )

    def toggle_clean_day_check(self, epoch_day: int, is_morning: bool) -> DerivedSnapshot:
        """Flip the morning or evening inspection of a day and recompute."""
        with self._lock:
            clean_checks = self._clean_checks.copy()
            clean_checks.toggle(epoch_day, is_morning)
            return self._commit(clean_checks=clean_checks)

    def resolve_potential_day(self, epoch_day: int, is_clean: bool) -> DerivedSnapshot:
        """Record the inspection result of a potential day and recompute."""
        with self._lock:
            potential_checks = self._potential_checks.copy()
            potential_checks.resolve(epoch_day, is_clean)
            return self._commit(potential_checks=potential_checks)

    # ------------------------------------------------------------------
    # State export / restore
    # ------------------------------------------------------------------

    def export_state(self) -> TrackerState:
        """Return everything needed to rebuild this tracker."""
        with self._lock:
            return TrackerState(
                records=[CycleRecordSchema.from_record(r) for r in self._history],
                clean_day_checks=[
                    CleanDayCheckSchema(
                        epoch_day=c.epoch_day,
                        morning_check=c.morning_check,
                        evening_check=c.evening_check,
                    )
                    for c in self._clean_checks.all_checks()
                ],
                potential_day_checks=[
                    PotentialDayCheckSchema(epoch_day=c.epoch_day, is_clean=c.is_clean)
                    for c in self._potential_checks.all_checks()
                ],
            )

    def load_state(self, state: TrackerState) -> DerivedSnapshot:
        """Replace all state with ``state`` and recompute once.

        Captured Hebrew dates are taken as stored; the schema has already
        checked them against their epoch days.  If the restored state
        cannot be derived, the previous state stays in place.
        """
        history = CycleHistory()
        history.replace(schema.to_record(sequence=i) for i, schema in enumerate(state.records))
        clean_checks = CleanDayCheckTracker()
        clean_checks.replace(c.to_check() for c in state.clean_day_checks)
        potential_checks = PotentialDayLog()
        potential_checks.replace(c.to_check() for c in state.potential_day_checks)

        with self._lock:
            snapshot = self._commit(history, clean_checks, potential_checks)
        logger.info(
            "Restored state: %d record(s), %d clean-day check(s), %d potential-day check(s)",
            len(history),
            len(clean_checks),
            len(potential_checks),
        )
        return snapshot

    @classmethod
    def from_state(cls, state: TrackerState, rules: RulesConfig | None = None) -> PurityTracker:
        tracker = cls(rules)
        tracker.load_state(state)
        return tracker

    # ------------------------------------------------------------------
    # History queries
    # ------------------------------------------------------------------

    def all_records(self) -> tuple[CycleRecord, ...]:
        """The history behind the published snapshot, oldest first."""
        return self._snapshot.records

    def has_record_in_hebrew_month(self, year: int, month: int) -> bool:
        return any(
            r.hebrew_date.year == year and r.hebrew_date.month == month
            for r in self._snapshot.records
        )

    # ------------------------------------------------------------------
    # Day predicates
    # ------------------------------------------------------------------

    def is_period_day(self, epoch_day: int) -> bool:
        return epoch_day in self._snapshot.period_days

    def is_hefsek_tahara_day(self, epoch_day: int) -> bool:
        return epoch_day in self._snapshot.hefsek_days

    def is_seven_clean_day(self, epoch_day: int) -> bool:
        return epoch_day in self._snapshot.clean_days

    def is_clean_day_complete(self, epoch_day: int) -> bool:
        """True only for a seven-clean day with both inspections recorded clean."""
        return self._snapshot.is_clean_day_complete(epoch_day)

    def is_monthly_period_day(self, epoch_day: int) -> bool:
        return self._snapshot.monthly_prediction == epoch_day

    def is_average_period_day(self, epoch_day: int) -> bool:
        return self._snapshot.average_prediction == epoch_day

    def is_interval_period_day(self, epoch_day: int) -> bool:
        return self._snapshot.interval_prediction == epoch_day

    def is_any_potential_day(self, epoch_day: int) -> bool:
        return epoch_day in self._snapshot.potential_days

    def is_potential_day_checked_and_clean(self, epoch_day: int) -> bool:
        """True if the day's potential-day inspection was recorded clean."""
        return self._snapshot.potential_day_checks.get(epoch_day) is True

    def get_clean_day_checks(self, epoch_day: int) -> tuple[bool, bool] | None:
        """``(morning, evening)`` for the day, or None if never toggled."""
        return self._snapshot.clean_day_checks.get(epoch_day)

    def classify(self, epoch_day: int) -> DayClassification:
        """Representative category of the day plus every category that applies."""
        return self._snapshot.classify(epoch_day)
