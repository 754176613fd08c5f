"""
User-control transitions for the session runtime.

Start, pause, resume, skip-cooldown and the countdown pre-roll, built on top
of the pure machine. The module-level functions are pure and return None when
a control is not valid from the current status; ``SessionTransitionHandler``
applies them for the orchestration layer and logs each accepted change.
"""

from typing import Optional

import structlog

from ..config.defaults import RunnerSettings
from ..data.models import SessionTemplate
from ..logging.config import get_state_logger, log_state_transition
from .machine import current_remaining
from .models import (
    CountdownState,
    RuntimeState,
    SessionStatus,
    is_running_status,
)

logger = structlog.get_logger(__name__)
state_logger = get_state_logger(__name__)


def start_session(template: SessionTemplate, now: int) -> RuntimeState:
    """Fresh idle runtime positioned on the first exercise of the first set."""
    return RuntimeState(
        status=SessionStatus.IDLE,
        current_exercise_index=0,
        current_set_index=0,
        remaining_seconds=template.exercises[0].duration_seconds,
        phase_started_at=None,
        started_at=now,
    )


def begin_phase(
    state: RuntimeState,
    target: SessionStatus,
    settings: RunnerSettings,
    now: int
) -> tuple[RuntimeState, CountdownState]:
    """
    Enter ``target`` through the optional pre-roll.

    With the countdown enabled the runtime stays frozen and a countdown is
    armed; otherwise the phase starts immediately at ``now``.
    """
    if settings.countdown_enabled:
        return state, CountdownState(remaining=settings.countdown_seconds, target_status=target)

    return state.enter_phase(target, now), CountdownState()


def tick_countdown(countdown: CountdownState) -> CountdownState:
    """One pre-roll step, floored at zero."""
    if countdown.remaining <= 0:
        return countdown
    return CountdownState(remaining=countdown.remaining - 1, target_status=countdown.target_status)


def finish_countdown(
    state: RuntimeState,
    countdown: CountdownState,
    now: int
) -> tuple[RuntimeState, CountdownState]:
    """
    Atomically move the runtime into the countdown's target.

    Inputs come back unchanged while the countdown is still running or when
    nothing is armed.
    """
    if countdown.target_status is None or countdown.remaining > 0:
        return state, countdown

    return state.enter_phase(countdown.target_status, now), CountdownState()


def pause(state: RuntimeState, now: int) -> Optional[RuntimeState]:
    """Freeze a running phase, folding elapsed time into remaining_seconds."""
    if not is_running_status(state.status):
        return None

    return state.replace(
        status=SessionStatus.PAUSED,
        remaining_seconds=current_remaining(state, now),
        phase_started_at=None,
        paused_at=now,
        paused_phase=state.status,
    )


def resume_target(state: RuntimeState) -> Optional[SessionStatus]:
    """Phase a paused session resumes into."""
    if state.status != SessionStatus.PAUSED:
        return None
    return state.paused_phase or SessionStatus.EXERCISE


def skip_cooldown(state: RuntimeState, now: int) -> Optional[RuntimeState]:
    """Zero the cooldown so the next advance crosses its boundary at once."""
    if state.status != SessionStatus.COOLDOWN or state.phase_started_at is None:
        return None

    return state.replace(remaining_seconds=0, phase_started_at=now)


class SessionTransitionHandler:
    """Applies user controls to the live state with logging."""

    def __init__(self):
        self.logger = logger

    def _log(self, session_id: str, before: RuntimeState, after: RuntimeState,
             trigger: str, now: int) -> None:
        log_state_transition(
            state_logger,
            session_id=session_id,
            from_state=before.status.value,
            to_state=after.status.value,
            trigger=trigger,
            context={
                "set_index": after.current_set_index,
                "exercise_index": after.current_exercise_index,
                "remaining_seconds": after.remaining_seconds,
                "now": now,
            }
        )

    def _rejected(self, session_id: str, state: RuntimeState, control: str) -> None:
        self.logger.debug(
            "Control ignored in current state",
            session_id=session_id,
            control=control,
            status=state.status.value
        )

    def start(
        self,
        session_id: str,
        template: SessionTemplate,
        settings: RunnerSettings,
        now: int
    ) -> tuple[RuntimeState, CountdownState]:
        """Start a session from scratch."""
        idle = start_session(template, now)
        runtime, countdown = begin_phase(idle, SessionStatus.EXERCISE, settings, now)
        self._log(session_id, idle, runtime, "start", now)
        if countdown.is_active:
            self.logger.info("Countdown armed", session_id=session_id,
                             countdown_seconds=countdown.remaining, target="exercise")
        return runtime, countdown

    def pause(self, session_id: str, state: RuntimeState, now: int) -> RuntimeState:
        paused = pause(state, now)
        if paused is None:
            self._rejected(session_id, state, "pause")
            return state
        self._log(session_id, state, paused, "pause", now)
        return paused

    def resume(
        self,
        session_id: str,
        state: RuntimeState,
        settings: RunnerSettings,
        now: int
    ) -> tuple[RuntimeState, Optional[CountdownState]]:
        """
        Resume a paused session through the pre-roll.

        Returns:
            (runtime, countdown); countdown is None when the control was rejected
        """
        target = resume_target(state)
        if target is None:
            self._rejected(session_id, state, "resume")
            return state, None

        runtime, countdown = begin_phase(state, target, settings, now)
        self._log(session_id, state, runtime, "resume", now)
        return runtime, countdown

    def skip_cooldown(self, session_id: str, state: RuntimeState, now: int) -> RuntimeState:
        skipped = skip_cooldown(state, now)
        if skipped is None:
            self._rejected(session_id, state, "skip_cooldown")
            return state
        self._log(session_id, state, skipped, "skip_cooldown", now)
        return skipped

    def finish_countdown(
        self,
        session_id: str,
        state: RuntimeState,
        countdown: CountdownState,
        now: int
    ) -> tuple[RuntimeState, CountdownState]:
        runtime, cleared = finish_countdown(state, countdown, now)
        if runtime is not state:
            self._log(session_id, state, runtime, "countdown_finished", now)
        return runtime, cleared


# Global handler instance
transition_handler = SessionTransitionHandler()
