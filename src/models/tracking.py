"""Pydantic schemas for tracker state and derived snapshots.

These are the serialization unit for everything the engine owns: cycle
records, clean-day inspections and potential-day resolutions.  How (and
whether) they are stored is left to the caller.
"""

from __future__ import annotations

from pydantic import Field, model_validator

from src.hefsek.base import CleanDayCheck, CycleRecord, PotentialDayCheck
from src.hefsek.hebrew_calendar import HebrewDate, to_hebrew, validate_hebrew_date
from src.hefsek.snapshot import DerivedSnapshot
from src.models.base import HefsekBase


# ---------- State ----------

class CycleRecordSchema(HefsekBase):
    epoch_day: int
    hebrew_year: int = Field(ge=1)
    hebrew_month: int = Field(ge=1, le=13)
    hebrew_day: int = Field(ge=1, le=30)
    hour: int = Field(default=0, ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)

    @model_validator(mode="after")
    def validate_dates(self) -> CycleRecordSchema:
        """Reject impossible Hebrew dates and dates that disagree with epoch_day."""
        validate_hebrew_date(self.hebrew_year, self.hebrew_month, self.hebrew_day)
        expected = to_hebrew(self.epoch_day)
        if expected != (self.hebrew_year, self.hebrew_month, self.hebrew_day):
            raise ValueError(
                f"Hebrew date {self.hebrew_day}/{self.hebrew_month}/{self.hebrew_year} "
                f"does not fall on epoch day {self.epoch_day} "
                f"({expected.day}/{expected.month}/{expected.year})"
            )
        return self

    @classmethod
    def from_record(cls, record: CycleRecord) -> CycleRecordSchema:
        return cls(
            epoch_day=record.epoch_day,
            hebrew_year=record.hebrew_date.year,
            hebrew_month=record.hebrew_date.month,
            hebrew_day=record.hebrew_date.day,
            hour=record.hour,
            minute=record.minute,
        )

    def to_record(self, sequence: int = 0) -> CycleRecord:
        return CycleRecord(
            epoch_day=self.epoch_day,
            hebrew_date=HebrewDate(self.hebrew_year, self.hebrew_month, self.hebrew_day),
            hour=self.hour,
            minute=self.minute,
            sequence=sequence,
        )


class CleanDayCheckSchema(HefsekBase):
    epoch_day: int
    morning_check: bool = False
    evening_check: bool = False

    def to_check(self) -> CleanDayCheck:
        return CleanDayCheck(self.epoch_day, self.morning_check, self.evening_check)


class PotentialDayCheckSchema(HefsekBase):
    epoch_day: int
    is_clean: bool

    def to_check(self) -> PotentialDayCheck:
        return PotentialDayCheck(self.epoch_day, self.is_clean)


class TrackerState(HefsekBase):
    """Everything needed to rebuild a tracker."""

    records: list[CycleRecordSchema] = Field(default_factory=list)
    clean_day_checks: list[CleanDayCheckSchema] = Field(default_factory=list)
    potential_day_checks: list[PotentialDayCheckSchema] = Field(default_factory=list)


# ---------- Snapshot ----------

class SnapshotSchema(HefsekBase):
    """Plain-data view of a DerivedSnapshot for presentation layers."""

    revision: int
    record_count: int
    period_days: list[int]
    hefsek_days: list[int]
    clean_days: list[int]
    overlapping_days: list[int]
    clean_day_checks: list[CleanDayCheckSchema]
    potential_day_checks: list[PotentialDayCheckSchema]
    monthly_prediction: int | None = None
    average_prediction: int | None = None
    interval_prediction: int | None = None
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, snapshot: DerivedSnapshot) -> SnapshotSchema:
        return cls(
            revision=snapshot.revision,
            record_count=snapshot.record_count,
            period_days=sorted(snapshot.period_days),
            hefsek_days=sorted(snapshot.hefsek_days),
            clean_days=sorted(snapshot.clean_days),
            overlapping_days=sorted(snapshot.overlapping_days),
            clean_day_checks=[
                CleanDayCheckSchema(epoch_day=day, morning_check=m, evening_check=e)
                for day, (m, e) in sorted(snapshot.clean_day_checks.items())
            ],
            potential_day_checks=[
                PotentialDayCheckSchema(epoch_day=day, is_clean=clean)
                for day, clean in sorted(snapshot.potential_day_checks.items())
            ],
            monthly_prediction=snapshot.monthly_prediction,
            average_prediction=snapshot.average_prediction,
            interval_prediction=snapshot.interval_prediction,
            warnings=list(snapshot.warnings),
        )
