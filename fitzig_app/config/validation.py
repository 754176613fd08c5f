"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

from .defaults import MAX_COUNTDOWN_SECONDS, MIN_COUNTDOWN_SECONDS


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration or template validation error."""
    field: str
    message: str
    value: Any
    section: str = ""


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def clamp_countdown_seconds(value: int) -> int:
    """Clamp a pre-roll length into the supported 1..10 range."""
    return max(MIN_COUNTDOWN_SECONDS, min(MAX_COUNTDOWN_SECONDS, value))


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_settings(params: dict[str, Any]) -> list[ValidationError]:
        """Validate user-facing runner settings."""
        errors = []

        for flag in ("haptics_enabled", "sound_enabled", "countdown_enabled"):
            if flag in params and not isinstance(params[flag], bool):
                errors.append(ValidationError(
                    field=flag,
                    message="Must be a boolean",
                    value=params[flag],
                    section="settings"
                ))

        if "countdown_seconds" in params:
            value = params["countdown_seconds"]
            if not _is_int(value):
                errors.append(ValidationError(
                    field="countdown_seconds",
                    message="Must be an integer",
                    value=value,
                    section="settings"
                ))
            elif not MIN_COUNTDOWN_SECONDS <= value <= MAX_COUNTDOWN_SECONDS:
                errors.append(ValidationError(
                    field="countdown_seconds",
                    message=f"Must be between {MIN_COUNTDOWN_SECONDS} and {MAX_COUNTDOWN_SECONDS}",
                    value=value,
                    section="settings"
                ))

        return errors

    @staticmethod
    def _validate_positive_ints(params: dict[str, Any], section: str,
                                fields: tuple[str, ...]) -> list[ValidationError]:
        errors = []
        for name in fields:
            if name in params:
                value = params[name]
                if not _is_int(value) or value <= 0:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a positive integer",
                        value=value,
                        section=section
                    ))
        return errors

    @staticmethod
    def validate_timing_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate sampler timing parameters."""
        return ConfigValidator._validate_positive_ints(
            params, "timing",
            ("tick_interval_ms", "countdown_step_ms", "max_transitions_per_advance")
        )

    @staticmethod
    def validate_snapshot_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate snapshot parameters."""
        errors = ConfigValidator._validate_positive_ints(params, "snapshot", ("max_age_ms",))

        if "key" in params and (not isinstance(params["key"], str) or not params["key"]):
            errors.append(ValidationError(
                field="key",
                message="Must be a non-empty string",
                value=params["key"],
                section="snapshot"
            ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        if isinstance(config.get("settings"), dict):
            errors.extend(ConfigValidator.validate_settings(config["settings"]))

        if isinstance(config.get("timing"), dict):
            errors.extend(ConfigValidator.validate_timing_params(config["timing"]))

        if isinstance(config.get("snapshot"), dict):
            errors.extend(ConfigValidator.validate_snapshot_params(config["snapshot"]))

        if isinstance(config.get("template"), dict):
            errors.extend(ConfigValidator._validate_positive_ints(
                config["template"], "template", ("max_exercises", "max_sets")
            ))

        if isinstance(config.get("cues"), dict):
            errors.extend(ConfigValidator._validate_positive_ints(
                config["cues"], "cues", ("debounce_ms",)
            ))

        return errors
