"""Hefsek engine entry point.

Builds a ready-to-use tracker for a presentation layer::

    from src.main import create_tracker

    tracker = create_tracker()
    tracker.subscribe(on_snapshot)
"""

from __future__ import annotations

import logging
import sys

from src.config import Settings, get_settings
from src.hefsek.config_loader import get_rules_config, load_rules_config
from src.hefsek.tracker import PurityTracker

logger = logging.getLogger("hefsek")


# ---------- Logging ----------

def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else settings.log_level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


# ---------- Tracker factory ----------

def create_tracker(settings: Settings | None = None) -> PurityTracker:
    settings = settings or get_settings()
    configure_logging(settings)

    if settings.rules_config_path is not None:
        rules = load_rules_config(settings.rules_config_path)
    else:
        rules = get_rules_config()

    logger.info(
        "Starting %s v%s [%s] with rules v%s",
        settings.app_name,
        settings.app_version,
        settings.environment,
        rules.version,
    )
    return PurityTracker(rules)
