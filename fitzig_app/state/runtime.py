"""
Runtime orchestration for one active session.

``SessionRuntime`` owns the live RuntimeState and CountdownState, applies user
controls and periodic ticks, fires cues on phase changes and persists a
snapshot after every observable change. Persistence is best effort: storage
failures are logged and reported once per session, and the session keeps
running in memory.
"""

from typing import Any, Callable, Optional

import structlog

from ..config.defaults import DefaultConfig, RunnerSettings, get_default_config
from ..data.models import SessionExercise, SessionTemplate, get_exercise_meta
from ..data.validators import TemplateValidator
from ..delivery.base import BaseCueSink, CueKind, NullCueSink
from ..errors import (
    GracefulDegradationError,
    MalformedSnapshotError,
    PersistenceError,
    SessionExpiredError,
    TemplateNotFoundError,
)
from ..logging.config import get_state_logger, log_phase_boundary, log_state_transition
from ..persistence.base import TemplateStore
from ..persistence.slot import SnapshotSlot
from ..persistence.snapshot_codec import (
    SnapshotNormalizationResult,
    encode_snapshot,
    is_snapshot_expired,
    normalize_snapshot,
)
from .machine import advance_to_now, current_remaining, session_progress
from .models import (
    CompletionRecord,
    CountdownState,
    RuntimeState,
    SessionStatus,
    create_idle_runtime,
    is_running_status,
)
from .transitions import tick_countdown, transition_handler

logger = structlog.get_logger(__name__)
state_logger = get_state_logger(__name__)

STATUS_LABELS = {
    SessionStatus.PAUSED: "Paused",
    SessionStatus.COOLDOWN: "Cooldown",
    SessionStatus.EXERCISE: "Exercise",
    SessionStatus.IDLE: "Ready",
}

STORAGE_WARNING = "Some session data could not be persisted. Your current session will continue."


class SessionRuntime:
    """Drives one session from open or restore to completion or discard."""

    def __init__(
        self,
        templates: TemplateStore,
        slot: SnapshotSlot,
        settings_provider: Callable[[], RunnerSettings],
        cue_sink: Optional[BaseCueSink] = None,
        on_complete: Optional[Callable[[CompletionRecord], None]] = None,
        on_warning: Optional[Callable[[Exception], None]] = None,
        config: Optional[DefaultConfig] = None,
        owner_id: str = "session-runtime"
    ):
        self.logger = logger
        self.templates = templates
        self.slot = slot
        self.settings_provider = settings_provider
        self.cue_sink = cue_sink or NullCueSink()
        self.on_complete = on_complete
        self.on_warning = on_warning
        self.config = config or get_default_config()
        self.owner_id = owner_id

        self.template: Optional[SessionTemplate] = None
        self.settings: RunnerSettings = self.config.settings
        self.runtime: RuntimeState = create_idle_runtime()
        self.countdown: CountdownState = CountdownState()
        self.completed = False
        self.discarded = False
        self._has_warned_storage = False

    # Session lifecycle

    @property
    def session_id(self) -> str:
        return self.template.id if self.template else ""

    def _reset(self, template: SessionTemplate) -> None:
        self.template = template
        self.settings = self.settings_provider()
        self.runtime = create_idle_runtime()
        self.countdown = CountdownState()
        self.completed = False
        self.discarded = False
        self._has_warned_storage = False

    def open(self, template_id: str) -> SessionTemplate:
        """
        Prepare a fresh session for a template.

        Raises:
            TemplateNotFoundError: If the template does not exist
            InvalidTemplateError: If the template fails validation
            SessionSlotBusyError: If another session owns the snapshot slot
        """
        template = self.templates.get_template(template_id)
        if template is None:
            raise TemplateNotFoundError("Template not found.", template_id=template_id)

        TemplateValidator(self.config.template).ensure_valid(template)
        self.slot.acquire(self.owner_id)
        self._reset(template)

        self.logger.info("Session opened", session_id=template.id,
                         sets_count=template.sets_count,
                         exercise_count=len(template.exercises))
        return template

    def restore(self, now: int) -> Optional[SessionTemplate]:
        """
        Resume the session recorded in the snapshot slot.

        Returns:
            The restored template, or None when no recoverable session exists

        Raises:
            SessionExpiredError: Snapshot older than the resume ceiling (cleared)
            TemplateNotFoundError: Snapshot's template no longer exists (cleared)
            SessionSlotBusyError: If another session owns the snapshot slot
        """
        self.slot.acquire(self.owner_id)

        raw = self._read_snapshot()
        if raw is None:
            self.slot.release(self.owner_id)
            return None

        result = normalize_snapshot(raw, now)
        if not result.success:
            self._discard_snapshot()
            self._report_malformed(result, raw)
            return None

        snapshot = result.snapshot
        if is_snapshot_expired(snapshot, now, self.config.snapshot.max_age_ms):
            self._discard_snapshot()
            raise SessionExpiredError(
                "Previous in-progress session expired after 24 hours.",
                updated_at=snapshot.updated_at,
                age_ms=now - snapshot.updated_at
            )

        template = self.templates.get_template(snapshot.template_id)
        if template is None:
            self._discard_snapshot()
            raise TemplateNotFoundError("The session template no longer exists.",
                                        template_id=snapshot.template_id)

        checked = normalize_snapshot(raw, now, template)
        if not checked.success:
            self._discard_snapshot()
            self._report_malformed(checked, raw)
            return None

        self._reset(template)
        self.runtime = checked.runtime
        self.countdown = checked.countdown

        log_state_transition(
            state_logger,
            session_id=template.id,
            from_state="snapshot",
            to_state=self.runtime.status.value,
            trigger="restore",
            context={
                "remaining_seconds": self.runtime.remaining_seconds,
                "countdown_remaining": self.countdown.remaining,
                "snapshot_age_ms": now - snapshot.updated_at,
            }
        )
        return template

    # User controls

    def start(self, now: int) -> None:
        """Start the opened session, through the pre-roll when enabled."""
        if self.template is None or self.has_active_session or self.completed:
            return

        self.runtime, self.countdown = transition_handler.start(
            self.session_id, self.template, self.settings, now
        )
        self._after_phase_entry(create_idle_runtime(), now)
        self.persist(now)

    def pause(self, now: int) -> None:
        if self.template is None or self.countdown.is_armed:
            return
        # Catch up first so the pause freezes the phase that is current at ``now``
        if self.tick(now):
            return
        paused = transition_handler.pause(self.session_id, self.runtime, now)
        if paused is not self.runtime:
            self.runtime = paused
            self.persist(now)

    def resume(self, now: int) -> None:
        if self.template is None or self.countdown.is_armed:
            return
        self.settings = self.settings_provider()
        previous = self.runtime
        runtime, countdown = transition_handler.resume(self.session_id, previous, self.settings, now)
        if countdown is None:
            return
        self.runtime, self.countdown = runtime, countdown
        self._after_phase_entry(previous, now)
        self.persist(now)

    def skip_cooldown(self, now: int) -> None:
        if self.template is None:
            return
        skipped = transition_handler.skip_cooldown(self.session_id, self.runtime, now)
        if skipped is not self.runtime:
            self.runtime = skipped
            self.tick(now)

    def stop(self, confirm: bool = False) -> bool:
        """
        Discard the session outright, from any state.

        Destructive: the in-progress snapshot is deleted, so the caller must
        pass ``confirm=True``.

        Returns:
            True when the session was discarded
        """
        if not confirm:
            self.logger.info("Stop requested without confirmation", session_id=self.session_id)
            return False

        self._discard_snapshot()
        log_state_transition(
            state_logger,
            session_id=self.session_id,
            from_state=self.runtime.status.value,
            to_state=SessionStatus.IDLE.value,
            trigger="discard",
            context={"countdown_remaining": self.countdown.remaining}
        )
        self.runtime = create_idle_runtime()
        self.countdown = CountdownState()
        self.discarded = True
        return True

    # Periodic drivers

    def countdown_step(self, now: int) -> None:
        """One-second pre-roll driver."""
        if not self.countdown.is_active:
            return

        self.countdown = tick_countdown(self.countdown)
        if self.countdown.is_active:
            self.cue_sink.fire(CueKind.COUNTDOWN_TICK, now, {"remaining": self.countdown.remaining})
            self.persist(now)
        else:
            self.tick(now)

    def tick(self, now: int) -> bool:
        """
        Sample wall-clock time and reconcile the session to ``now``.

        Returns:
            True once the session has completed
        """
        if self.template is None or self.completed or self.discarded:
            return self.completed

        if self.countdown.is_armed and not self.countdown.is_active:
            previous = self.runtime
            self.runtime, self.countdown = transition_handler.finish_countdown(
                self.session_id, self.runtime, self.countdown, now
            )
            self._after_phase_entry(previous, now)
            self.persist(now)

        if not is_running_status(self.runtime.status):
            return False

        previous = self.runtime
        result = advance_to_now(
            previous, self.template, now,
            max_transitions=self.config.timing.max_transitions_per_advance
        )

        for boundary in result.boundaries:
            log_phase_boundary(
                state_logger,
                session_id=self.session_id,
                boundary_ms=boundary.boundary_ms,
                from_phase=boundary.from_state.status.value,
                to_phase=boundary.to_state.status.value if boundary.to_state else "completed",
                set_index=boundary.from_state.current_set_index,
                exercise_index=boundary.from_state.current_exercise_index
            )

        if result.completed:
            self._complete(now)
            return True

        if result.next_state is not previous:
            self.runtime = result.next_state
            self._after_phase_entry(previous, now)
            self.persist(now)

        return False

    def on_background(self, now: int) -> None:
        """App moved to the background: persist the latest state."""
        self.persist(now)

    def on_foreground(self, now: int) -> bool:
        """App returned to the foreground: re-sample immediately."""
        return self.tick(now)

    # Persistence

    def persist(self, now: int) -> None:
        """Write the snapshot, or clear it when no session is active."""
        if self.template is None or self.completed or self.discarded:
            return

        try:
            if self.runtime.started_at is None and not self.countdown.is_active:
                self.slot.clear(self.owner_id)
                return

            snapshot = encode_snapshot(self.runtime, self.countdown, self.template.id, now)
            self.slot.write(self.owner_id, snapshot)
        except PersistenceError as e:
            self._storage_warning(e)

    def _read_snapshot(self) -> Optional[dict]:
        try:
            return self.slot.read()
        except PersistenceError as e:
            self._storage_warning(e)
            return None

    def _discard_snapshot(self) -> None:
        self.slot.acquire(self.owner_id)
        try:
            self.slot.clear(self.owner_id)
        except PersistenceError as e:
            self._storage_warning(e)
        finally:
            self.slot.release(self.owner_id)

    def _report_malformed(self, result: SnapshotNormalizationResult, raw: Any) -> None:
        error = MalformedSnapshotError(
            result.error_msg or "Unusable snapshot",
            missing_fields=list(result.missing_fields),
            raw_data=str(raw)
        )
        self.logger.warning("Discarding unusable snapshot", error=str(error),
                            missing_fields=error.missing_fields)
        if self.on_warning:
            self.on_warning(error)

    def _storage_warning(self, error: PersistenceError) -> None:
        self.logger.warning(
            "Snapshot persistence failed",
            session_id=self.session_id,
            operation=error.operation,
            error=str(error)
        )
        if self._has_warned_storage:
            return
        self._has_warned_storage = True
        if self.on_warning:
            self.on_warning(GracefulDegradationError(
                STORAGE_WARNING,
                degraded_functionality="snapshot_persistence",
                fallback_strategy="in_memory"
            ))

    # Completion and cues

    def _complete(self, now: int) -> None:
        if self.completed:
            return
        self.completed = True

        self._discard_snapshot()
        self.cue_sink.fire(CueKind.SESSION_COMPLETED, now, {"template_id": self.session_id})

        record = CompletionRecord(
            template_id=self.session_id,
            started_at=self.runtime.started_at if self.runtime.started_at is not None else now,
            completed_at=now,
        )
        log_state_transition(
            state_logger,
            session_id=self.session_id,
            from_state=self.runtime.status.value,
            to_state="completed",
            trigger="tick",
            context={"started_at": record.started_at, "completed_at": now}
        )
        if self.on_complete:
            self.on_complete(record)

    def _after_phase_entry(self, previous: RuntimeState, now: int) -> None:
        """Fire the cue for the phase just entered, if any."""
        current = self.runtime
        if current.status == SessionStatus.EXERCISE and (
            previous.status != current.status
            or previous.current_exercise_index != current.current_exercise_index
            or previous.current_set_index != current.current_set_index
        ):
            exercise = self.current_exercise
            self.cue_sink.fire(CueKind.EXERCISE_STARTED, now, {
                "exercise_id": exercise.exercise_id if exercise else None,
                "set_index": current.current_set_index,
            })
        elif current.status == SessionStatus.COOLDOWN and previous.status != SessionStatus.COOLDOWN:
            self.cue_sink.fire(CueKind.COOLDOWN_STARTED, now, {
                "set_index": current.current_set_index,
            })

    # Read-only views

    @property
    def has_active_session(self) -> bool:
        return self.runtime.started_at is not None and (
            self.runtime.status != SessionStatus.IDLE or self.countdown.is_active
        )

    @property
    def is_timing(self) -> bool:
        """A phase or a pre-roll is consuming wall-clock time."""
        return self.countdown.is_armed or self.runtime.is_running

    @property
    def status_label(self) -> str:
        if self.countdown.is_active:
            return "Countdown"
        return STATUS_LABELS[self.runtime.status]

    @property
    def current_exercise(self) -> Optional[SessionExercise]:
        if self.template is None:
            return None
        return self.template.exercise_at(self.runtime.current_exercise_index)

    @property
    def next_exercise(self) -> Optional[SessionExercise]:
        """Exercise after the current one, wrapping to the first."""
        if self.template is None or not self.template.exercises:
            return None
        return (self.template.exercise_at(self.runtime.current_exercise_index + 1)
                or self.template.exercises[0])

    @property
    def current_exercise_name(self) -> str:
        exercise = self.current_exercise
        return get_exercise_meta(exercise.exercise_id).name if exercise else ""

    @property
    def progress(self) -> tuple[int, int]:
        if self.template is None:
            return 0, 0
        return session_progress(self.runtime, self.template)

    def display_seconds(self, now: int) -> int:
        """Seconds shown on the countdown face."""
        if self.countdown.is_active:
            return self.countdown.remaining
        if self.runtime.status == SessionStatus.IDLE:
            first = self.template.first_exercise if self.template else None
            return first.duration_seconds if first else 0
        return current_remaining(self.runtime, now)
