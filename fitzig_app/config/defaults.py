"""Default configuration parameters for the session runtime."""

from dataclasses import dataclass

MIN_COUNTDOWN_SECONDS = 1
MAX_COUNTDOWN_SECONDS = 10


@dataclass(frozen=True)
class RunnerSettings:
    """User-facing settings read at session start and resume."""
    haptics_enabled: bool = True
    sound_enabled: bool = False
    countdown_enabled: bool = True
    countdown_seconds: int = 3                   # Pre-roll length, 1..10


@dataclass(frozen=True)
class TimingParams:
    """Sampler and reconciliation timing."""
    tick_interval_ms: int = 250                  # Wall-clock sampling period
    countdown_step_ms: int = 1000                # Pre-roll decrement period
    max_transitions_per_advance: int = 512       # Runaway loop guard


@dataclass(frozen=True)
class SnapshotParams:
    """Snapshot persistence parameters."""
    max_age_ms: int = 24 * 60 * 60 * 1000        # Resume ceiling
    key: str = "fitzig:active-session"           # Single slot key


@dataclass(frozen=True)
class TemplateLimits:
    """Domain policy for session templates."""
    max_exercises: int = 5
    max_sets: int = 99


@dataclass(frozen=True)
class CueParams:
    """Cue sink parameters."""
    debounce_ms: int = 220                       # Same-kind cue suppression window


@dataclass(frozen=True)
class DefaultConfig:
    """Complete default configuration."""
    settings: RunnerSettings
    timing: TimingParams
    snapshot: SnapshotParams
    template: TemplateLimits
    cues: CueParams


def get_default_config() -> DefaultConfig:
    """Get the default configuration instance."""
    return DefaultConfig(
        settings=RunnerSettings(),
        timing=TimingParams(),
        snapshot=SnapshotParams(),
        template=TemplateLimits(),
        cues=CueParams(),
    )
