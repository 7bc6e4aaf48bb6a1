"""Write-time validation and read-time sanitising of cycle settings and logs."""

from __future__ import annotations

import logging
from dataclasses import replace

from src.cycle.base import CycleSettings, CycleValidationError, FlowLevel, PeriodLog
from src.cycle.config_loader import CycleConfig, get_cycle_config

logger = logging.getLogger("aunouri.cycle.validation")


def settings_errors(settings: CycleSettings, config: CycleConfig | None = None) -> list[str]:
    """Return every problem with ``settings`` (empty list when valid)."""
    b = (config or get_cycle_config()).bounds
    errors: list[str] = []
    cycle_length = settings.average_cycle_length
    period_length = settings.average_period_length

    if not isinstance(cycle_length, int) or isinstance(cycle_length, bool):
        errors.append(f"average_cycle_length must be an integer, got {cycle_length!r}")
    elif not b.cycle_length_min <= cycle_length <= b.cycle_length_max:
        errors.append(
            f"average_cycle_length = {cycle_length} is out of range "
            f"[{b.cycle_length_min}, {b.cycle_length_max}]"
        )
    if not isinstance(period_length, int) or isinstance(period_length, bool):
        errors.append(f"average_period_length must be an integer, got {period_length!r}")
    elif not b.period_length_min <= period_length <= b.period_length_max:
        errors.append(
            f"average_period_length = {period_length} is out of range "
            f"[{b.period_length_min}, {b.period_length_max}]"
        )

    if not errors and period_length >= cycle_length:
        errors.append(
            f"average_period_length ({period_length}) must be shorter than "
            f"average_cycle_length ({cycle_length})"
        )
    return errors


def validate_settings(settings: CycleSettings, config: CycleConfig | None = None) -> None:
    """Raise CycleValidationError if ``settings`` may not be stored."""
    errors = settings_errors(settings, config)
    if errors:
        raise CycleValidationError(errors)


def sanitize_settings(
    settings: CycleSettings, config: CycleConfig | None = None
) -> CycleSettings:
    """Replace invalid stored lengths with defaults so reads never fail.

    Both lengths are reset together; resetting only one could leave the
    period longer than the cycle.
    """
    cfg = config or get_cycle_config()
    errors = settings_errors(settings, cfg)
    if not errors:
        return settings
    logger.warning(
        "Stored cycle settings for user %s are invalid, using defaults: %s",
        settings.user_id,
        "; ".join(errors),
    )
    return replace(
        settings,
        average_cycle_length=cfg.defaults.average_cycle_length,
        average_period_length=cfg.defaults.average_period_length,
    )


def default_settings(user_id: str, config: CycleConfig | None = None) -> CycleSettings:
    d = (config or get_cycle_config()).defaults
    return CycleSettings(
        user_id=user_id,
        average_cycle_length=d.average_cycle_length,
        average_period_length=d.average_period_length,
        notifications_enabled=d.notifications_enabled,
    )


def coerce_flow(value: FlowLevel | str | None) -> FlowLevel | None:
    """Parse a flow level.

    Raises:
        CycleValidationError: If the value is not a known flow level.
    """
    if value is None:
        return None
    try:
        return FlowLevel(value)
    except ValueError:
        allowed = ", ".join(f.value for f in FlowLevel)
        raise CycleValidationError([f"flow must be one of {allowed}, got {value!r}"]) from None


def validate_period_log(log: PeriodLog) -> None:
    """Raise CycleValidationError if ``log`` may not be stored."""
    errors: list[str] = []
    if log.end_date is not None and log.end_date < log.start_date:
        errors.append(
            f"end_date {log.end_date.isoformat()} is before start_date "
            f"{log.start_date.isoformat()}"
        )
    try:
        coerce_flow(log.flow)
    except CycleValidationError as exc:
        errors.extend(exc.errors)
    if errors:
        raise CycleValidationError(errors)
