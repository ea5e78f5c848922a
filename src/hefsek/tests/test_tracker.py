"""Tests for the PurityTracker call surface."""

from __future__ import annotations

import dataclasses
import logging
import sys
import threading
from datetime import date, datetime

import pytest

from src.hefsek.classification import DayCategory, resolve_category
from src.hefsek.config_loader import PredictionConfig, RulesConfig
from src.hefsek.hebrew_calendar import (
    IYAR,
    NISAN,
    InvalidDateError,
    epoch_day_from_date,
    to_epoch_day,
    to_hebrew,
)
from src.hefsek.snapshot import DerivedSnapshot, changed_days
from src.hefsek.tracker import PurityTracker
from src.hefsek.tests.conftest import E1, E2, PESACH_5784_DAY
from src.models.tracking import CycleRecordSchema, TrackerState


def without_revision(snapshot: DerivedSnapshot) -> DerivedSnapshot:
    return dataclasses.replace(snapshot, revision=0)


class TestEmptyTracker:
    def test_no_classifications(self, tracker: PurityTracker) -> None:
        snapshot = tracker.snapshot
        assert snapshot.record_count == 0
        assert not snapshot.period_days
        assert snapshot.potential_days == frozenset()
        assert snapshot.monthly_prediction is None
        assert snapshot.average_prediction is None
        assert snapshot.interval_prediction is None

    def test_predicates_are_false(self, tracker: PurityTracker) -> None:
        assert not tracker.is_period_day(E1)
        assert not tracker.is_any_potential_day(E1 + 30)
        assert not tracker.has_record_in_hebrew_month(5784, NISAN)
        assert tracker.get_clean_day_checks(E1) is None
        assert tracker.classify(E1).category == DayCategory.ORDINARY


class TestSingleCycle:
    def test_windows(self, single_cycle_tracker: PurityTracker) -> None:
        t = single_cycle_tracker
        e = PESACH_5784_DAY
        assert all(t.is_period_day(e + i) for i in range(5))
        assert not t.is_period_day(e - 1)
        assert not t.is_period_day(e + 5)
        assert t.is_hefsek_tahara_day(e + 5)
        assert not t.is_hefsek_tahara_day(e + 4)
        assert all(t.is_seven_clean_day(e + i) for i in range(6, 13))
        assert not t.is_seven_clean_day(e + 13)

    def test_predictions(self, single_cycle_tracker: PurityTracker) -> None:
        t = single_cycle_tracker
        assert t.is_average_period_day(PESACH_5784_DAY + 30)
        assert t.is_monthly_period_day(to_epoch_day(5784, IYAR, 15))
        assert t.snapshot.interval_prediction is None
        assert not any(t.is_interval_period_day(PESACH_5784_DAY + i) for i in range(60))
        assert t.is_any_potential_day(PESACH_5784_DAY + 30)

    def test_record_history(self, single_cycle_tracker: PurityTracker) -> None:
        (record,) = single_cycle_tracker.all_records()
        assert record.epoch_day == PESACH_5784_DAY
        assert (record.hour, record.minute) == (18, 30)
        assert single_cycle_tracker.has_record_in_hebrew_month(5784, NISAN)

    def test_record_cycle_start_from_datetime(self, tracker: PurityTracker) -> None:
        tracker.record_cycle_start(datetime(2024, 4, 23, 21, 15))
        (record,) = tracker.all_records()
        assert record.epoch_day == PESACH_5784_DAY
        assert (record.hour, record.minute) == (21, 15)


class TestTwoCycles:
    def test_interval_and_average(self, two_cycle_tracker: PurityTracker) -> None:
        t = two_cycle_tracker
        assert t.snapshot.interval_prediction == 1058
        assert t.snapshot.average_prediction == 1059
        assert t.is_interval_period_day(1058)
        assert t.is_average_period_day(1059)
        assert t.is_any_potential_day(1058)
        assert t.is_any_potential_day(1059)

    def test_third_record_removes_interval_prediction(
        self, two_cycle_tracker: PurityTracker
    ) -> None:
        # Exact-pair rule: three records yield no interval prediction.
        two_cycle_tracker.add_cycle_start(1060)
        assert two_cycle_tracker.snapshot.interval_prediction is None
        assert not two_cycle_tracker.is_interval_period_day(1058)
        assert two_cycle_tracker.snapshot.average_prediction == 1090

    def test_latest_pair_mode(self) -> None:
        rules = RulesConfig(predictions=PredictionConfig(interval_mode="latest_pair"))
        tracker = PurityTracker(rules)
        for day in (E1, E2, 1060):
            tracker.add_cycle_start(day)
        assert tracker.snapshot.interval_prediction == 1091


class TestCleanDayChecks:
    def test_incomplete_checks_are_not_satisfied(
        self, single_cycle_tracker: PurityTracker
    ) -> None:
        t = single_cycle_tracker
        day = PESACH_5784_DAY + 6
        t.toggle_clean_day_check(day, is_morning=True)
        assert t.is_seven_clean_day(day)
        assert t.get_clean_day_checks(day) == (True, False)
        assert not t.is_clean_day_complete(day)
        assert t.classify(day).checks_complete is False

    def test_both_checks_satisfy_the_day(self, single_cycle_tracker: PurityTracker) -> None:
        t = single_cycle_tracker
        day = PESACH_5784_DAY + 7
        t.toggle_clean_day_check(day, is_morning=True)
        t.toggle_clean_day_check(day, is_morning=False)
        assert t.is_clean_day_complete(day)
        assert t.classify(day).checks_complete is True

    def test_unchecked_clean_day_is_not_satisfied(
        self, single_cycle_tracker: PurityTracker
    ) -> None:
        day = PESACH_5784_DAY + 8
        assert single_cycle_tracker.get_clean_day_checks(day) is None
        assert not single_cycle_tracker.is_clean_day_complete(day)

    def test_checks_outside_clean_window_never_complete(self, tracker: PurityTracker) -> None:
        tracker.toggle_clean_day_check(E1, is_morning=True)
        tracker.toggle_clean_day_check(E1, is_morning=False)
        assert tracker.get_clean_day_checks(E1) == (True, True)
        assert not tracker.is_clean_day_complete(E1)

    @pytest.mark.parametrize("is_morning", [True, False])
    def test_double_toggle_is_identity(
        self, single_cycle_tracker: PurityTracker, is_morning: bool
    ) -> None:
        t = single_cycle_tracker
        day = PESACH_5784_DAY + 9
        before = t.get_clean_day_checks(day) or (False, False)
        t.toggle_clean_day_check(day, is_morning)
        t.toggle_clean_day_check(day, is_morning)
        assert t.get_clean_day_checks(day) == before

    def test_toggle_recomputes_snapshot(self, single_cycle_tracker: PurityTracker) -> None:
        before = single_cycle_tracker.snapshot
        after = single_cycle_tracker.toggle_clean_day_check(PESACH_5784_DAY + 6, True)
        assert after is single_cycle_tracker.snapshot
        assert after.revision == before.revision + 1
        assert before.clean_day_checks.get(PESACH_5784_DAY + 6) is None


class TestPotentialDays:
    def test_resolution(self, single_cycle_tracker: PurityTracker) -> None:
        t = single_cycle_tracker
        day = PESACH_5784_DAY + 30
        assert not t.is_potential_day_checked_and_clean(day)
        assert t.classify(day).resolved_clean is False
        t.resolve_potential_day(day, is_clean=True)
        assert t.is_potential_day_checked_and_clean(day)
        assert t.classify(day).resolved_clean is True
        t.resolve_potential_day(day, is_clean=False)
        assert not t.is_potential_day_checked_and_clean(day)


class TestClassification:
    def test_exactly_one_representative_category(self, tracker: PurityTracker) -> None:
        # Close cycles so windows and predictions overlap.
        for day in (E1, E1 + 10, E1 + 25):
            tracker.add_cycle_start(day)
        for day in range(E1 - 5, E1 + 80):
            result = tracker.classify(day)
            assert result.category in result.categories
            assert result.category == resolve_category(result.categories)
            assert all(result.category.precedence <= c.precedence for c in result.categories)

    def test_overlapping_day_keeps_every_predicate(self, tracker: PurityTracker) -> None:
        tracker.add_cycle_start(E1)
        tracker.add_cycle_start(E1 + 10)
        day = E1 + 11
        assert tracker.is_period_day(day)
        assert tracker.is_seven_clean_day(day)
        result = tracker.classify(day)
        assert result.category == DayCategory.PERIOD
        assert result.categories == {DayCategory.PERIOD, DayCategory.SEVEN_CLEAN}

    def test_potential_day_inside_clean_window(self, tracker: PurityTracker) -> None:
        # Interval prediction 1008 + 8 = 1016 lands inside the second cycle's clean days.
        tracker.add_cycle_start(E1)
        tracker.add_cycle_start(E1 + 8)
        day = E1 + 16
        assert tracker.is_interval_period_day(day)
        assert tracker.is_seven_clean_day(day)
        assert tracker.classify(day).category == DayCategory.SEVEN_CLEAN

    def test_ordinary_day(self, single_cycle_tracker: PurityTracker) -> None:
        result = single_cycle_tracker.classify(PESACH_5784_DAY + 20)
        assert result.category == DayCategory.ORDINARY
        assert result.categories == {DayCategory.ORDINARY}
        assert result.checks_complete is None
        assert result.resolved_clean is None


class TestOverlapWarnings:
    def test_overlap_reported(self, tracker: PurityTracker, caplog: pytest.LogCaptureFixture) -> None:
        tracker.add_cycle_start(E1)
        with caplog.at_level(logging.WARNING, logger="hefsek"):
            snapshot = tracker.add_cycle_start(E1 + 10)
        assert snapshot.overlapping_days == {E1 + 10, E1 + 11, E1 + 12}
        assert len(snapshot.warnings) == 1
        assert "Overlapping cycle windows" in caplog.text

    def test_overlap_warning_can_be_disabled(self) -> None:
        tracker = PurityTracker(RulesConfig(warn_on_overlap=False))
        tracker.add_cycle_start(E1)
        snapshot = tracker.add_cycle_start(E1 + 10)
        assert snapshot.overlapping_days
        assert snapshot.warnings == ()


class TestOrderIndependence:
    def test_out_of_order_inserts_give_same_snapshot(self, rules_config: RulesConfig) -> None:
        in_order = PurityTracker(rules_config)
        shuffled = PurityTracker(rules_config)
        for day in (E1, E2, PESACH_5784_DAY):
            in_order.add_cycle_start(day)
        for day in (PESACH_5784_DAY, E1, E2):
            shuffled.add_cycle_start(day)
        assert shuffled.snapshot == in_order.snapshot
        assert [r.epoch_day for r in shuffled.all_records()] == [E1, E2, PESACH_5784_DAY]


class TestNotifications:
    def test_listener_receives_each_snapshot(self, tracker: PurityTracker) -> None:
        received: list[DerivedSnapshot] = []
        tracker.subscribe(received.append)
        tracker.add_cycle_start(E1)
        tracker.toggle_clean_day_check(E1 + 6, is_morning=True)
        tracker.resolve_potential_day(E1 + 30, is_clean=True)
        assert [s.revision for s in received] == [1, 2, 3]
        assert received[-1] is tracker.snapshot

    def test_unsubscribe(self, tracker: PurityTracker) -> None:
        received: list[DerivedSnapshot] = []
        unsubscribe = tracker.subscribe(received.append)
        tracker.add_cycle_start(E1)
        unsubscribe()
        tracker.add_cycle_start(E2)
        assert len(received) == 1

    def test_failing_listener_does_not_block_others(
        self, tracker: PurityTracker, caplog: pytest.LogCaptureFixture
    ) -> None:
        def broken(_: DerivedSnapshot) -> None:
            raise RuntimeError("boom")

        received: list[DerivedSnapshot] = []
        tracker.subscribe(broken)
        tracker.subscribe(received.append)
        with caplog.at_level(logging.WARNING, logger="hefsek.tracker"):
            snapshot = tracker.add_cycle_start(E1)
        assert received == [snapshot]
        assert tracker.is_period_day(E1)
        assert "boom" in caplog.text

    def test_listener_can_query_tracker(self, tracker: PurityTracker) -> None:
        seen: list[bool] = []
        tracker.subscribe(lambda _: seen.append(tracker.is_period_day(E1)))
        tracker.add_cycle_start(E1)
        assert seen == [True]

    def test_changed_days_after_new_record(self, single_cycle_tracker: PurityTracker) -> None:
        before = single_cycle_tracker.snapshot
        after = single_cycle_tracker.add_cycle_start(PESACH_5784_DAY + 28)
        diff = changed_days(before, after)
        assert PESACH_5784_DAY + 28 in diff
        assert PESACH_5784_DAY + 30 in diff  # now a period day
        assert PESACH_5784_DAY not in diff

    def test_changed_days_after_toggle(self, single_cycle_tracker: PurityTracker) -> None:
        before = single_cycle_tracker.snapshot
        after = single_cycle_tracker.toggle_clean_day_check(PESACH_5784_DAY + 6, False)
        assert changed_days(before, after) == {PESACH_5784_DAY + 6}


class TestStateRoundTrip:
    def test_export_and_restore(self, single_cycle_tracker: PurityTracker) -> None:
        t = single_cycle_tracker
        t.add_cycle_start(PESACH_5784_DAY + 29, hour=6)
        t.toggle_clean_day_check(PESACH_5784_DAY + 6, is_morning=True)
        t.resolve_potential_day(PESACH_5784_DAY + 58, is_clean=True)

        state = t.export_state()
        restored = PurityTracker.from_state(state, t.rules)

        assert without_revision(restored.snapshot) == without_revision(t.snapshot)
        assert restored.all_records() == t.all_records()
        assert restored.export_state() == state

    def test_load_state_replaces_everything(self, single_cycle_tracker: PurityTracker) -> None:
        empty = PurityTracker(single_cycle_tracker.rules).export_state()
        snapshot = single_cycle_tracker.load_state(empty)
        assert snapshot.record_count == 0
        assert not single_cycle_tracker.is_period_day(PESACH_5784_DAY)


class TestConcurrency:
    def test_concurrent_writers_apply_every_mutation(self, tracker: PurityTracker) -> None:
        def add_many(offset: int) -> None:
            for i in range(25):
                tracker.add_cycle_start(E1 + offset + i * 40)

        threads = [threading.Thread(target=add_many, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert tracker.snapshot.record_count == 100
        assert tracker.snapshot.revision == 100
        days = [r.epoch_day for r in tracker.all_records()]
        assert days == sorted(days)

    def test_readers_never_see_a_partial_history(self) -> None:
        # Records three days apart overlap heavily; keep the log quiet.
        tracker = PurityTracker(RulesConfig(warn_on_overlap=False))
        for i in range(200):
            tracker.add_cycle_start(E1 + i * 3)
        initial = len(tracker.all_records())
        done = threading.Event()
        bad: list[int] = []

        def read() -> None:
            previous = initial
            while not done.is_set():
                records = tracker.all_records()
                days = [r.epoch_day for r in records]
                if len(days) < previous or days != sorted(days):
                    bad.append(len(days))
                previous = len(days)
                if tracker.has_record_in_hebrew_month(*to_hebrew(E1)[:2]) is False:
                    bad.append(-1)

        def write() -> None:
            # Inserted into the middle so every add re-sorts the history.
            for i in range(100):
                tracker.add_cycle_start(E1 + i * 3 + 1)

        old_interval = sys.getswitchinterval()
        sys.setswitchinterval(1e-6)
        try:
            reader = threading.Thread(target=read)
            reader.start()
            write()
            done.set()
            reader.join()
        finally:
            sys.setswitchinterval(old_interval)

        assert bad == []
        assert len(tracker.all_records()) == initial + 100


# The monthly anniversary of this onset falls after date.max.
FAR_FUTURE_DAY = epoch_day_from_date(date(9999, 12, 20))


class TestFailedMutations:
    def test_failed_add_leaves_tracker_unchanged(
        self, single_cycle_tracker: PurityTracker
    ) -> None:
        t = single_cycle_tracker
        before = t.snapshot
        received: list[DerivedSnapshot] = []
        t.subscribe(received.append)

        with pytest.raises(InvalidDateError):
            t.add_cycle_start(FAR_FUTURE_DAY)

        assert t.snapshot is before
        assert [r.epoch_day for r in t.all_records()] == [PESACH_5784_DAY]
        assert len(t.export_state().records) == 1
        assert received == []

    def test_mutations_work_after_a_failed_add(
        self, single_cycle_tracker: PurityTracker
    ) -> None:
        t = single_cycle_tracker
        before = t.snapshot
        with pytest.raises(InvalidDateError):
            t.add_cycle_start(FAR_FUTURE_DAY)

        after = t.toggle_clean_day_check(PESACH_5784_DAY + 6, is_morning=True)
        assert after.revision == before.revision + 1
        t.resolve_potential_day(PESACH_5784_DAY + 30, is_clean=True)
        snapshot = t.add_cycle_start(PESACH_5784_DAY + 29)
        assert snapshot.record_count == 2
        assert t.is_potential_day_checked_and_clean(PESACH_5784_DAY + 30)

    def test_failed_load_keeps_previous_state(
        self, single_cycle_tracker: PurityTracker
    ) -> None:
        t = single_cycle_tracker
        before = t.snapshot
        far = to_hebrew(FAR_FUTURE_DAY)
        state = TrackerState(
            records=[
                CycleRecordSchema(
                    epoch_day=FAR_FUTURE_DAY,
                    hebrew_year=far.year,
                    hebrew_month=far.month,
                    hebrew_day=far.day,
                )
            ]
        )

        with pytest.raises(InvalidDateError):
            t.load_state(state)

        assert t.snapshot is before
        assert [r.epoch_day for r in t.all_records()] == [PESACH_5784_DAY]
        assert t.export_state().records[0].epoch_day == PESACH_5784_DAY
