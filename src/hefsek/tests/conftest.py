"""Shared fixtures for Hefsek engine tests."""

from __future__ import annotations

from datetime import date

import pytest

from src.hefsek.config_loader import RulesConfig, load_rules_config
from src.hefsek.hebrew_calendar import epoch_day_from_date
from src.hefsek.tracker import PurityTracker

# 15 Nisan 5784 (first day of Pesach)
PESACH_5784 = date(2024, 4, 23)
PESACH_5784_DAY = epoch_day_from_date(PESACH_5784)

# Round epoch days used for interval arithmetic
E1 = 1000
E2 = 1029


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def rules_config() -> RulesConfig:
    """Load the real bundled rule config for tests."""
    return load_rules_config()


# ---------------------------------------------------------------------------
# Tracker fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tracker(rules_config: RulesConfig) -> PurityTracker:
    """An empty tracker on the bundled rules."""
    return PurityTracker(rules_config)


@pytest.fixture
def single_cycle_tracker(tracker: PurityTracker) -> PurityTracker:
    """A tracker with one onset on 15 Nisan 5784 at 18:30."""
    tracker.add_cycle_start(PESACH_5784_DAY, hour=18, minute=30)
    return tracker


@pytest.fixture
def two_cycle_tracker(tracker: PurityTracker) -> PurityTracker:
    """A tracker with onsets on E1 and E2 (29 days apart)."""
    tracker.add_cycle_start(E1)
    tracker.add_cycle_start(E2)
    return tracker
