"""Base classes for cue delivery."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from ..config.defaults import CueParams, RunnerSettings
from ..errors import CueDeliveryError


class CueKind(str, Enum):
    """Phase-enter events announced to the user."""
    EXERCISE_STARTED = "exercise-started"
    COOLDOWN_STARTED = "cooldown-started"
    COUNTDOWN_TICK = "countdown-tick"
    SESSION_COMPLETED = "session-completed"


@dataclass(frozen=True)
class CueEvent:
    """A single cue with its session context."""
    kind: CueKind
    timestamp: int
    context: dict[str, Any] = field(default_factory=dict)


class BaseCueSink(ABC):
    """Base class for cue sinks."""

    def __init__(self, name: str, config: Optional[CueParams] = None):
        self.name = name
        self.config = config or CueParams()
        self.logger = structlog.get_logger(f"cue.sink.{name}")
        self._last_fired_at: dict[CueKind, int] = {}
        self._delivery_count = 0
        self._error_count = 0

    @abstractmethod
    def emit(self, event: CueEvent) -> None:
        """
        Deliver one cue.

        Raises:
            CueDeliveryError: Or any other exception on failure
        """
        pass

    def health_check(self) -> bool:
        return True

    def fire(self, kind: CueKind, timestamp: int, context: Optional[dict[str, Any]] = None) -> bool:
        """
        Deliver a cue, best effort.

        Same-kind cues inside the debounce window are dropped and failures
        are logged, never raised.

        Returns:
            True when the cue was delivered
        """
        last = self._last_fired_at.get(kind)
        if last is not None and timestamp - last < self.config.debounce_ms:
            return False
        self._last_fired_at[kind] = timestamp

        try:
            self.emit(CueEvent(kind=kind, timestamp=timestamp, context=context or {}))
            self._delivery_count += 1
            return True
        except Exception as e:
            self._error_count += 1
            self.logger.warning(
                "Cue delivery failed",
                sink=self.name,
                cue=kind.value,
                error=str(e),
                error_type=type(e).__name__
            )
            return False

    def get_stats(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "delivery_count": self._delivery_count,
            "error_count": self._error_count,
        }


class NullCueSink(BaseCueSink):
    """Discards every cue."""

    def __init__(self):
        super().__init__("null")

    def emit(self, event: CueEvent) -> None:
        pass


class CompositeCueSink(BaseCueSink):
    """Fans a cue out to several sinks, isolating their failures."""

    def __init__(self, sinks: list[BaseCueSink], config: Optional[CueParams] = None):
        super().__init__("composite", config)
        self.sinks = sinks

    def emit(self, event: CueEvent) -> None:
        failed = [
            sink.name for sink in self.sinks
            if not sink.fire(event.kind, event.timestamp, event.context)
        ]
        if failed and len(failed) == len(self.sinks):
            raise CueDeliveryError("No sink accepted the cue", cue=event.kind.value,
                                   sink=",".join(failed))


class CueSettingsFilter(BaseCueSink):
    """
    Drops cues when both haptics and sound are switched off.

    Settings are read through a provider on every cue so that changes picked
    up at session start or resume apply immediately.
    """

    def __init__(self, sink: BaseCueSink, settings_provider: Callable[[], RunnerSettings]):
        super().__init__(f"filtered.{sink.name}", sink.config)
        self.sink = sink
        self.settings_provider = settings_provider

    @property
    def enabled(self) -> bool:
        settings = self.settings_provider()
        return settings.haptics_enabled or settings.sound_enabled

    def emit(self, event: CueEvent) -> None:
        if not self.enabled:
            return
        self.sink.fire(event.kind, event.timestamp, event.context)
