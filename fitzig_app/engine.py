"""
Main session engine coordinator.

Wires configuration, storage, cue sinks and the session runtime together and
provides the periodic sampler: a plain loop that reads the wall clock on a
short interval and hands it to the runtime, which reconciles through the pure
state machine.
"""

import time
from pathlib import Path
from typing import Callable, Optional, Union

import structlog

from .config.loader import ConfigLoader
from .data.models import SessionRun, build_session_run
from .delivery.base import BaseCueSink, CueSettingsFilter
from .delivery.logging_cues import LoggingCueSink
from .errors import GracefulDegradationError, PersistenceError
from .persistence.base import RunStore, SnapshotStore, TemplateStore
from .persistence.slot import SnapshotSlot
from .state.models import CompletionRecord
from .state.runtime import SessionRuntime
from .utils.time import now_ms

logger = structlog.get_logger(__name__)


class SessionEngine:
    """
    Coordinator for a single-device, single-active-session runner.

    Manages the pipeline:
    Clock → SessionRuntime → State Machine → Snapshot / Cues → Completion hand-off
    """

    def __init__(
        self,
        templates: TemplateStore,
        snapshots: SnapshotStore,
        runs: Optional[RunStore] = None,
        cue_sink: Optional[BaseCueSink] = None,
        config_dir: Optional[Union[str, Path]] = None,
        clock: Callable[[], int] = now_ms,
        sleep: Callable[[float], None] = time.sleep,
        on_warning: Optional[Callable[[Exception], None]] = None
    ) -> None:
        """Initialize the session engine."""
        self.logger = logger

        self.config_loader = ConfigLoader.create(Path(config_dir) if config_dir else None)
        self.config = self.config_loader.load_config()

        self.templates = templates
        self.runs = runs
        self.slot = SnapshotSlot(snapshots)
        self.clock = clock
        self.sleep = sleep
        self.on_warning = on_warning

        self.completions: list[CompletionRecord] = []
        self.warnings: list[Exception] = []

        self.runtime = SessionRuntime(
            templates=templates,
            slot=self.slot,
            settings_provider=self.config_loader.load_settings,
            cue_sink=CueSettingsFilter(cue_sink or LoggingCueSink(self.config.cues),
                                       lambda: self.runtime.settings),
            on_complete=self._handle_completion,
            on_warning=self._handle_warning,
            config=self.config,
        )

        self.logger.info("Session engine initialized",
                         tick_interval_ms=self.config.timing.tick_interval_ms)

    def open_session(self, template_id: str) -> None:
        """Open a fresh session for a template."""
        self.runtime.open(template_id)

    def start_session(self, template_id: str) -> None:
        """Open a template and start it immediately."""
        self.runtime.open(template_id)
        self.runtime.start(self.clock())

    def resume_session(self) -> bool:
        """
        Restore the session recorded in the snapshot slot.

        Returns:
            False when there is nothing to resume

        Raises:
            SessionExpiredError: When the snapshot is older than 24 hours
            TemplateNotFoundError: When the session's template was deleted
        """
        now = self.clock()
        template = self.runtime.restore(now)
        if template is None:
            self.logger.info("No recoverable session found")
            return False

        self.runtime.tick(now)
        return True

    def discard_session(self, confirm: bool = False) -> bool:
        """Drop the active session and its snapshot."""
        return self.runtime.stop(confirm=confirm)

    def sample(self) -> bool:
        """
        Take one wall-clock sample.

        Returns:
            True once the session has completed
        """
        return self.runtime.tick(self.clock())

    def run(self, max_ticks: Optional[int] = None) -> bool:
        """
        Drive the session until it completes or is discarded.

        Samples every ``tick_interval_ms`` while a phase or countdown is active
        and steps the pre-roll once per ``countdown_step_ms``.

        Args:
            max_ticks: Stop after this many samples (None runs to the end)

        Returns:
            True when the session completed
        """
        timing = self.config.timing
        runtime = self.runtime
        next_countdown_step: Optional[int] = None
        ticks = 0

        while not runtime.completed and not runtime.discarded:
            if max_ticks is not None and ticks >= max_ticks:
                break

            now = self.clock()

            if runtime.countdown.is_active:
                if next_countdown_step is None:
                    next_countdown_step = now + timing.countdown_step_ms
                elif now >= next_countdown_step:
                    runtime.countdown_step(now)
                    next_countdown_step = now + timing.countdown_step_ms
            else:
                next_countdown_step = None

            runtime.tick(now)
            ticks += 1

            if not runtime.is_timing:
                # Idle or paused: nothing for the sampler to do
                break

            self.sleep(timing.tick_interval_ms / 1000)

        return runtime.completed

    def suspend(self) -> None:
        """App is being backgrounded."""
        self.runtime.on_background(self.clock())

    def wake(self) -> bool:
        """App returned to the foreground."""
        return self.runtime.on_foreground(self.clock())

    def _handle_completion(self, record: CompletionRecord) -> None:
        self.completions.append(record)
        self.logger.info("Session completed", template_id=record.template_id,
                         started_at=record.started_at, completed_at=record.completed_at)

        if self.runs is None:
            return

        # The template is the one the session ran with, not a fresh store read
        run: SessionRun = build_session_run(self.runtime.template, record.started_at,
                                            record.completed_at)
        try:
            self.runs.save_run(run)
        except PersistenceError as e:
            self._handle_warning(GracefulDegradationError(
                f"Session results could not be saved: {e}",
                degraded_functionality="run_history"
            ))

    def _handle_warning(self, error: Exception) -> None:
        self.warnings.append(error)
        self.logger.warning("Session warning", error=str(error), error_type=type(error).__name__)
        if self.on_warning:
            self.on_warning(error)
