"""Load, validate, and hot-reload the cycle engine configuration.

The config lives in ``cycle_config.yaml`` alongside this module.  At startup
it is loaded once and cached.  Call ``reload_cycle_config()`` to re-read from
disk after an admin update; no restart required.

Usage::

    from src.cycle.config_loader import get_cycle_config

    config = get_cycle_config()
    config.defaults.average_cycle_length        # 28
    config.bounds.cycle_length_max              # 60
    config.guidance("luteal").tips[0]
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from src.cycle.base import CyclePhase
from src.cycle.dates import WEEK_STARTS

logger = logging.getLogger("aunouri.cycle.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "cycle_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class SettingsDefaults:
    """Values substituted when a user has no usable settings."""

    average_cycle_length: int = 28
    average_period_length: int = 5
    notifications_enabled: bool = True


@dataclass
class SettingsBounds:
    """Inclusive domains for user-entered lengths."""

    cycle_length_min: int = 15
    cycle_length_max: int = 60
    period_length_min: int = 1
    period_length_max: int = 14


@dataclass
class PeriodTrackingConfig:
    """Thresholds for moving last_period_start from daily flow logs."""

    new_cycle_gap_days: int = 14
    early_start_window_days: int = 7


@dataclass
class PhaseGuidance:
    """Display copy for one phase."""

    phase: CyclePhase
    label: str
    description: str
    title: str
    tips: list[str] = field(default_factory=list)


@dataclass
class CycleConfig:
    """Complete, validated cycle engine configuration.

    Attributes:
        version:                   Config schema version string.
        defaults:                  Default settings values.
        bounds:                    Accepted ranges for settings.
        unknown_start_offset_days: Assumed days since the last period when none is known.
        period_tracking:           Daily-log heuristics for period starts.
        recent_periods_count:      History length returned by default.
        week_start:                First column of the calendar grid.
        phase_guidance:            Copy per phase.
    """

    version: str
    defaults: SettingsDefaults
    bounds: SettingsBounds
    unknown_start_offset_days: int
    period_tracking: PeriodTrackingConfig
    recent_periods_count: int
    week_start: str
    phase_guidance: dict[CyclePhase, PhaseGuidance]
    _raw: dict = field(default_factory=dict, repr=False)

    def guidance(self, phase: CyclePhase | str) -> PhaseGuidance:
        """Return the guidance for a phase.

        Args:
            phase: CyclePhase or its string value.

        Raises:
            KeyError: If the phase has no guidance configured.
        """
        return self.phase_guidance[CyclePhase(phase)]


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when cycle_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Cycle config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _validate_and_build(raw: dict) -> CycleConfig:
    """Validate the raw YAML dict and construct a CycleConfig.

    Missing optional sections fall back to the dataclass defaults.

    Raises:
        ConfigValidationError: If any value is invalid.
    """
    errors: list[str] = []

    def _int(section: dict, key: str, default: int, where: str) -> int:
        value = section.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            errors.append(f"{where}.{key} must be an integer, got {value!r}")
            return default

    version = str(raw.get("version", "1.0"))

    # ── Bounds ──
    b_raw = raw.get("bounds", {}) or {}
    cl_raw = b_raw.get("cycle_length", {}) or {}
    pl_raw = b_raw.get("period_length", {}) or {}
    bounds = SettingsBounds(
        cycle_length_min=_int(cl_raw, "min", 15, "bounds.cycle_length"),
        cycle_length_max=_int(cl_raw, "max", 60, "bounds.cycle_length"),
        period_length_min=_int(pl_raw, "min", 1, "bounds.period_length"),
        period_length_max=_int(pl_raw, "max", 14, "bounds.period_length"),
    )
    if bounds.cycle_length_min > bounds.cycle_length_max:
        errors.append("bounds.cycle_length.min is greater than max")
    if bounds.period_length_min > bounds.period_length_max:
        errors.append("bounds.period_length.min is greater than max")
    if bounds.period_length_min < 1:
        errors.append("bounds.period_length.min must be at least 1")

    # ── Defaults ──
    d_raw = raw.get("defaults", {}) or {}
    defaults = SettingsDefaults(
        average_cycle_length=_int(d_raw, "average_cycle_length", 28, "defaults"),
        average_period_length=_int(d_raw, "average_period_length", 5, "defaults"),
        notifications_enabled=bool(d_raw.get("notifications_enabled", True)),
    )
    if not (bounds.cycle_length_min <= defaults.average_cycle_length <= bounds.cycle_length_max):
        errors.append(
            f"defaults.average_cycle_length = {defaults.average_cycle_length} is outside bounds"
        )
    if not (bounds.period_length_min <= defaults.average_period_length <= bounds.period_length_max):
        errors.append(
            f"defaults.average_period_length = {defaults.average_period_length} is outside bounds"
        )
    if defaults.average_period_length >= defaults.average_cycle_length:
        errors.append("defaults.average_period_length must be shorter than the cycle")

    # ── Inference / tracking / history ──
    inf_raw = raw.get("inference", {}) or {}
    unknown_offset = _int(inf_raw, "unknown_start_offset_days", 14, "inference")

    pt_raw = raw.get("period_tracking", {}) or {}
    period_tracking = PeriodTrackingConfig(
        new_cycle_gap_days=_int(pt_raw, "new_cycle_gap_days", 14, "period_tracking"),
        early_start_window_days=_int(pt_raw, "early_start_window_days", 7, "period_tracking"),
    )
    if period_tracking.new_cycle_gap_days < 1:
        errors.append("period_tracking.new_cycle_gap_days must be positive")
    if period_tracking.early_start_window_days < 0:
        errors.append("period_tracking.early_start_window_days must not be negative")

    h_raw = raw.get("history", {}) or {}
    recent_count = _int(h_raw, "recent_periods_count", 6, "history")
    if recent_count < 1:
        errors.append("history.recent_periods_count must be positive")

    # ── Calendar ──
    cal_raw = raw.get("calendar", {}) or {}
    week_start = str(cal_raw.get("week_start", "sunday")).lower()
    if week_start not in WEEK_STARTS:
        errors.append(
            f"calendar.week_start must be one of {sorted(WEEK_STARTS)}, got {week_start!r}"
        )

    # ── Phase guidance ──
    pg_raw = raw.get("phase_guidance", {}) or {}
    phase_guidance: dict[CyclePhase, PhaseGuidance] = {}
    for name, cfg in pg_raw.items():
        try:
            phase = CyclePhase(name)
        except ValueError:
            errors.append(f"phase_guidance.{name} is not a known phase")
            continue
        if not isinstance(cfg, dict):
            errors.append(f"phase_guidance.{name} must be a mapping")
            continue
        phase_guidance[phase] = PhaseGuidance(
            phase=phase,
            label=cfg.get("label", phase.value.title()),
            description=cfg.get("description", ""),
            title=cfg.get("title", f"{phase.value.title()} Phase"),
            tips=[str(t) for t in cfg.get("tips", []) or []],
        )
    missing = [p.value for p in CyclePhase if p not in phase_guidance]
    if missing:
        logger.warning("No phase guidance configured for: %s", ", ".join(missing))
        for p in CyclePhase:
            phase_guidance.setdefault(
                p,
                PhaseGuidance(
                    phase=p,
                    label=p.value.title(),
                    description="",
                    title=f"{p.value.title()} Phase",
                ),
            )

    if errors:
        raise ConfigValidationError(
            f"cycle_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return CycleConfig(
        version=version,
        defaults=defaults,
        bounds=bounds,
        unknown_start_offset_days=unknown_offset,
        period_tracking=period_tracking,
        recent_periods_count=recent_count,
        week_start=week_start,
        phase_guidance=phase_guidance,
        _raw=raw,
    )


def load_cycle_config(path: Path | None = None) -> CycleConfig:
    """Load and validate the cycle config from disk.

    Args:
        path: Override path to YAML. Uses the bundled cycle_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded cycle config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: CycleConfig | None = None
_config_lock = threading.Lock()


def get_cycle_config() -> CycleConfig:
    """Return the global CycleConfig singleton, loading it on first call.

    Thread-safe.  Use ``reload_cycle_config()`` to refresh after YAML changes.
    """
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_cycle_config()
    return _config


def reload_cycle_config(path: Path | None = None) -> CycleConfig:
    """Reload the cycle config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_cycle_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded cycle config: %s → %s", old_version, new_config.version)
    return new_config
