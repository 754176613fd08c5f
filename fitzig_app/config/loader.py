"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from .defaults import (
    CueParams,
    DefaultConfig,
    RunnerSettings,
    SnapshotParams,
    TemplateLimits,
    TimingParams,
    get_default_config,
)
from .validation import ConfigValidator, clamp_countdown_seconds

SETTINGS_FILENAME = "settings.yaml"


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: DefaultConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load user overrides from settings.yaml, if present."""
        settings_file = self.config_dir / SETTINGS_FILENAME

        if not settings_file.exists():
            return {}

        with open(settings_file) as f:
            file_config = yaml.safe_load(f)

        if not isinstance(file_config, dict):
            return {}

        return file_config

    def merge_config(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Per-call overrides (highest priority)
        2. settings.yaml in the config directory
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)

        config = self._deep_merge(config, self.load_file_config())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def load_config(self, overrides: Optional[dict[str, Any]] = None) -> DefaultConfig:
        """Build a typed configuration, falling back to defaults for invalid fields."""
        merged = self.merge_config(overrides)

        # Out-of-range pre-roll lengths are clamped rather than rejected
        settings_values = merged.get("settings")
        if isinstance(settings_values, dict):
            seconds = settings_values.get("countdown_seconds")
            if isinstance(seconds, int) and not isinstance(seconds, bool):
                settings_values["countdown_seconds"] = clamp_countdown_seconds(seconds)

        errors = ConfigValidator.validate_config(merged)
        rejected = {(err.section, err.field) for err in errors}

        def section(name: str, cls: type) -> Any:
            raw = merged.get(name)
            if not isinstance(raw, dict):
                return cls()
            values = {
                key: value
                for key, value in raw.items()
                if key in cls.__dataclass_fields__ and (name, key) not in rejected
            }
            return cls(**values)

        return DefaultConfig(
            settings=section("settings", RunnerSettings),
            timing=section("timing", TimingParams),
            snapshot=section("snapshot", SnapshotParams),
            template=section("template", TemplateLimits),
            cues=section("cues", CueParams),
        )

    def load_settings(self, overrides: Optional[dict[str, Any]] = None) -> RunnerSettings:
        """Settings provider used at session start and resume."""
        if overrides:
            overrides = {"settings": overrides}
        return self.load_config(overrides).settings

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name, _field in obj.__dataclass_fields__.items():
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
