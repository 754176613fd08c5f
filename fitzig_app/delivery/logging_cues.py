"""Cue sink that records cues in the structured log."""

from ..config.defaults import CueParams
from .base import BaseCueSink, CueEvent


class LoggingCueSink(BaseCueSink):
    """Writes each cue as a structlog event."""

    def __init__(self, config: CueParams = None):
        super().__init__("log", config)

    def emit(self, event: CueEvent) -> None:
        self.logger.info("Cue", cue=event.kind.value, cue_ts=event.timestamp, **event.context)
