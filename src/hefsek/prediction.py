"""Potential onset day predictions.

Three independent heuristics, each producing at most one epoch day:

- Monthly (yom hachodesh): the same Hebrew day-of-month in the month after
  the last onset, clamped to that month's length.
- Average (onah beinonit): a fixed number of days after the last onset.
- Interval (haflagah): the last onset plus the gap between the two onsets.
  By default this only exists when exactly two onsets are recorded.

All functions expect the history sorted oldest first and return None when
there is not enough data; an empty history is not an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from src.hefsek.base import CycleRecord
from src.hefsek.config_loader import INTERVAL_MODES, PredictionConfig
from src.hefsek.hebrew_calendar import month_length, next_month, to_epoch_day

logger = logging.getLogger("hefsek.prediction")


@dataclass(frozen=True)
class Predictions:
    """The three potential days derived from one history."""

    monthly: int | None = None
    average: int | None = None
    interval: int | None = None

    @property
    def days(self) -> frozenset[int]:
        return frozenset(d for d in (self.monthly, self.average, self.interval) if d is not None)


def predict_monthly(records: Sequence[CycleRecord]) -> int | None:
    """Same Hebrew day of the next Hebrew month after the last onset."""
    if not records:
        return None
    last = records[-1].hebrew_date
    year, month = next_month(last.year, last.month)
    day = min(last.day, month_length(year, month))
    return to_epoch_day(year, month, day)


def predict_average(records: Sequence[CycleRecord], interval_days: int = 30) -> int | None:
    """Fixed interval after the last onset."""
    if not records:
        return None
    return records[-1].epoch_day + interval_days


def predict_interval(records: Sequence[CycleRecord], mode: str = "exact_pair") -> int | None:
    """Repeat the gap between two onsets after the later one.

    Args:
        records: Sorted history.
        mode:    ``exact_pair`` predicts only when exactly two onsets exist;
                 ``latest_pair`` uses the two most recent whenever there are
                 at least two.

    Raises:
        ValueError: If ``mode`` is not a known interval mode.
    """
    if mode not in INTERVAL_MODES:
        raise ValueError(
            f"Unknown interval mode {mode!r}; expected one of {', '.join(INTERVAL_MODES)}"
        )
    if mode == "exact_pair":
        if len(records) != 2:
            return None
    elif len(records) < 2:
        return None
    first, second = records[-2], records[-1]
    return second.epoch_day + (second.epoch_day - first.epoch_day)


def predict_all(records: Sequence[CycleRecord], config: PredictionConfig) -> Predictions:
    """Run every heuristic against the history."""
    predictions = Predictions(
        monthly=predict_monthly(records),
        average=predict_average(records, config.average_interval_days),
        interval=predict_interval(records, config.interval_mode),
    )
    logger.debug(
        "Predictions over %d record(s): monthly=%s average=%s interval=%s",
        len(records),
        predictions.monthly,
        predictions.average,
        predictions.interval,
    )
    return predictions
