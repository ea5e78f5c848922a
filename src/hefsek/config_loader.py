"""Load, validate, and hot-reload the Hefsek rule configuration.

The rules live in ``rules_config.yaml`` alongside this module.  They are
loaded once on first use and cached.  Call ``reload_rules_config()`` to
re-read from disk; trackers created afterwards pick up the new rules.

Usage::

    from src.hefsek.config_loader import get_rules_config

    rules = get_rules_config()
    rules.windows.period_days                 # 5
    rules.predictions.average_interval_days   # 30
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

logger = logging.getLogger("hefsek.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "rules_config.yaml"

INTERVAL_MODES = ("exact_pair", "latest_pair")


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class WindowConfig:
    """Lengths of the windows derived from each recorded onset."""

    period_days: int = 5
    clean_days: int = 7

    @property
    def hefsek_offset(self) -> int:
        """Offset of the hefsek tahara day from the onset."""
        return self.period_days

    @property
    def clean_offsets(self) -> range:
        start = self.hefsek_offset + 1
        return range(start, start + self.clean_days)

    @property
    def period_offsets(self) -> range:
        return range(0, self.period_days)


@dataclass
class PredictionConfig:
    """Settings for the three potential-day heuristics."""

    average_interval_days: int = 30
    interval_mode: str = "exact_pair"


@dataclass
class RulesConfig:
    """Complete, validated rule configuration.

    Attributes:
        version:         Config schema version string.
        windows:         Period / clean window lengths.
        predictions:     Prediction heuristics settings.
        warn_on_overlap: Report days claimed by more than one cycle window.
    """

    version: str = "1.0"
    windows: WindowConfig = field(default_factory=WindowConfig)
    predictions: PredictionConfig = field(default_factory=PredictionConfig)
    warn_on_overlap: bool = True
    _raw: dict = field(default_factory=dict, repr=False)


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when rules_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigValidationError(f"{path} must contain a mapping at the top level")
    return raw


def _validate_and_build(raw: dict) -> RulesConfig:
    """Validate the raw YAML dict and construct a RulesConfig.

    Missing sections fall back to the defaults; present values must be
    well-typed and in range.

    Raises:
        ConfigValidationError: Listing every problem found.
    """
    errors: list[str] = []

    def _positive_int(section: dict, key: str, default: int, where: str) -> int:
        value = section.get(key, default)
        if isinstance(value, bool) or not isinstance(value, int):
            errors.append(f"{where}.{key} must be an integer, got {value!r}")
            return default
        if value < 1:
            errors.append(f"{where}.{key} must be >= 1, got {value}")
        return value

    def _section(key: str) -> dict:
        value = raw.get(key) or {}
        if not isinstance(value, dict):
            errors.append(f"'{key}' must be a mapping")
            return {}
        return value

    version = str(raw.get("version", "1.0"))

    # ── Windows ──
    w_raw = _section("windows")
    windows = WindowConfig(
        period_days=_positive_int(w_raw, "period_days", 5, "windows"),
        clean_days=_positive_int(w_raw, "clean_days", 7, "windows"),
    )

    # ── Predictions ──
    p_raw = _section("predictions")
    interval_mode = p_raw.get("interval_mode", "exact_pair")
    if interval_mode not in INTERVAL_MODES:
        errors.append(
            f"predictions.interval_mode must be one of {', '.join(INTERVAL_MODES)}, "
            f"got {interval_mode!r}"
        )
    predictions = PredictionConfig(
        average_interval_days=_positive_int(
            p_raw, "average_interval_days", 30, "predictions"
        ),
        interval_mode=interval_mode,
    )

    # ── Overlaps ──
    o_raw = _section("overlaps")
    warn_on_overlap = o_raw.get("warn_on_overlap", True)
    if not isinstance(warn_on_overlap, bool):
        errors.append(f"overlaps.warn_on_overlap must be a boolean, got {warn_on_overlap!r}")
        warn_on_overlap = True

    if errors:
        raise ConfigValidationError(
            f"rules_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return RulesConfig(
        version=version,
        windows=windows,
        predictions=predictions,
        warn_on_overlap=warn_on_overlap,
        _raw=raw,
    )


def load_rules_config(path: Path | None = None) -> RulesConfig:
    """Load and validate the rule config from disk.

    Args:
        path: Override path to YAML. Uses the bundled rules_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded rules config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: RulesConfig | None = None
_config_lock = threading.Lock()


def get_rules_config() -> RulesConfig:
    """Return the global RulesConfig singleton, loading it on first call.

    Thread-safe.  Use ``reload_rules_config()`` to refresh after YAML changes.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_rules_config()
    return _config


def reload_rules_config(path: Path | None = None) -> RulesConfig:
    """Reload the rule config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_rules_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded rules config: %s → %s", old_version, new_config.version)
    return new_config
