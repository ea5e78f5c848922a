"""Hefsek: niddah cycle classification and prediction engine.

Classifies calendar days (period, hefsek tahara, seven clean days) from a
history of recorded cycle onsets, and predicts potential onset days with
three independent heuristics (monthly, average, interval).

Core modules:
    hebrew_calendar — Epoch-day ⇄ Hebrew date conversion (pyluach)
    base            — CycleRecord / CleanDayCheck / PotentialDayCheck models
    history         — Sorted store of recorded cycle starts
    checks          — Clean-day inspections and potential-day resolutions
    classification  — Day windows and category precedence
    prediction      — Monthly, average and interval predictions
    snapshot        — Immutable derived snapshot and change detection
    tracker         — PurityTracker, the engine's call surface
    config_loader   — Load/validate/hot-reload rules_config.yaml
"""

from src.hefsek.classification import DayCategory, DayClassification
from src.hefsek.config_loader import RulesConfig, get_rules_config
from src.hefsek.hebrew_calendar import HebrewDate, InvalidDateError
from src.hefsek.snapshot import DerivedSnapshot, changed_days

__all__ = [
    "DerivedSnapshot",
    "DayCategory",
    "DayClassification",
    "HebrewDate",
    "InvalidDateError",
    "RulesConfig",
    "get_rules_config",
    "changed_days",
]
