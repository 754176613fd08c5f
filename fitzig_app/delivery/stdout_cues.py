"""Standard output cue sink."""

import json
import sys

from ..config.defaults import CueParams
from ..utils.time import format_seconds, format_timestamp_ms
from .base import BaseCueSink, CueEvent


class StdoutCueSink(BaseCueSink):
    """Prints one line per cue, as JSON or a short human-readable line."""

    def __init__(self, format: str = "pretty", stream=None, config: CueParams = None):
        super().__init__("stdout", config)
        self.format = format
        self.stream = stream

    def emit(self, event: CueEvent) -> None:
        print(self._format_cue(event), file=self.stream or sys.stdout, flush=True)

    def _format_cue(self, event: CueEvent) -> str:
        if self.format == "pretty":
            output = f"[{format_timestamp_ms(event.timestamp)}] CUE: {event.kind.value}"
            if "exercise_id" in event.context:
                output += f" ({event.context['exercise_id']})"
            if "remaining" in event.context:
                output += f" {format_seconds(event.context['remaining'])}"
            return output

        return json.dumps({
            "cue": event.kind.value,
            "timestamp": event.timestamp,
            "context": event.context,
        })

    def health_check(self) -> bool:
        """Check if the output stream is available."""
        try:
            return (self.stream or sys.stdout).writable()
        except Exception:
            return False
