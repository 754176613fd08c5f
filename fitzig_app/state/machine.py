"""
Core session state machine.

Pure, synchronous functions that compute phase transitions from a runtime
state, a template and a wall-clock timestamp. Nothing here reads the clock,
logs, or mutates its inputs, so a device asleep for an hour reconciles in one
bounded call and every function can be tested without timers.

Phase model::

    exercise --(cooldown > 0)--> cooldown --> next exercise / next set
    exercise --(cooldown == 0)-------------> next exercise / next set
    last exercise of last set (+ cooldown) -> completed
"""

from typing import Optional

from ..data.models import SessionTemplate
from ..utils.time import elapsed_whole_seconds
from .models import (
    AdvanceResult,
    PhaseBoundary,
    RuntimeState,
    SessionStatus,
    is_running_status,
)

MAX_TRANSITIONS_PER_ADVANCE = 512


def current_remaining(state: RuntimeState, now: int) -> int:
    """
    Seconds left in the current phase as of ``now``.

    Args:
        state: Runtime state
        now: Wall-clock time, epoch ms

    Returns:
        ``remaining_seconds`` when not running, otherwise remaining minus the
        whole seconds elapsed since the phase anchor, floored at zero
    """
    if not state.is_running:
        return max(0, state.remaining_seconds)

    elapsed = elapsed_whole_seconds(state.phase_started_at, now)
    return max(0, state.remaining_seconds - elapsed)


def move_to_next_exercise(
    state: RuntimeState,
    template: SessionTemplate,
    phase_start_ms: int
) -> Optional[RuntimeState]:
    """
    Advance the exercise/set pointer.

    Returns:
        The next exercise phase, or None when the last set is finished
    """
    next_exercise_index = state.current_exercise_index + 1
    if next_exercise_index < len(template.exercises):
        return state.enter_phase(
            SessionStatus.EXERCISE,
            phase_start_ms,
            current_exercise_index=next_exercise_index,
            remaining_seconds=template.exercises[next_exercise_index].duration_seconds,
        )

    next_set_index = state.current_set_index + 1
    if next_set_index < template.sets_count:
        return state.enter_phase(
            SessionStatus.EXERCISE,
            phase_start_ms,
            current_set_index=next_set_index,
            current_exercise_index=0,
            remaining_seconds=template.exercises[0].duration_seconds,
        )

    return None


def transition_at_boundary(
    state: RuntimeState,
    template: SessionTemplate,
    boundary_ms: int
) -> Optional[RuntimeState]:
    """
    Apply the boundary policy to a phase that has just elapsed.

    An exercise is followed by a cooldown when one is configured; anything
    else moves the exercise/set pointer.

    Returns:
        The phase that starts at ``boundary_ms``, or None when none exists
    """
    if state.status == SessionStatus.EXERCISE and template.cooldown_seconds > 0:
        return state.enter_phase(
            SessionStatus.COOLDOWN,
            boundary_ms,
            remaining_seconds=template.cooldown_seconds,
        )

    return move_to_next_exercise(state, template, boundary_ms)


def advance_to_now(
    state: RuntimeState,
    template: SessionTemplate,
    now: int,
    max_transitions: int = MAX_TRANSITIONS_PER_ADVANCE
) -> AdvanceResult:
    """
    Reconcile a running state against the current time.

    Every boundary crossed since the phase anchor is applied in order. Each new
    phase is anchored at the exact boundary instant rather than ``now`` so no
    drift accumulates across skipped phases. Reaching ``max_transitions`` is
    treated as completion.

    Args:
        state: Runtime state, possibly stale
        template: Pre-validated template of the session
        now: Wall-clock time, epoch ms, non-decreasing across calls
        max_transitions: Iteration cap

    Returns:
        AdvanceResult with the state pending at ``now``, the completed flag and
        every boundary crossed. Idle and paused states come back unchanged.
    """
    if not state.is_running:
        return AdvanceResult(next_state=state, completed=False)

    next_state = state
    boundaries: list[PhaseBoundary] = []

    for _ in range(max_transitions):
        elapsed = elapsed_whole_seconds(next_state.phase_started_at, now)
        if elapsed < next_state.remaining_seconds:
            return AdvanceResult(next_state=next_state, completed=False,
                                 boundaries=tuple(boundaries))

        boundary_ms = next_state.phase_started_at + next_state.remaining_seconds * 1000
        transitioned = transition_at_boundary(next_state, template, boundary_ms)
        boundaries.append(PhaseBoundary(boundary_ms=boundary_ms, from_state=next_state,
                                        to_state=transitioned))
        if transitioned is None:
            return AdvanceResult(next_state=next_state, completed=True,
                                 boundaries=tuple(boundaries))

        next_state = transitioned

    return AdvanceResult(next_state=next_state, completed=True, boundaries=tuple(boundaries))


def total_session_seconds(template: SessionTemplate) -> int:
    """Planned running time of a full session, cooldowns included."""
    per_set = sum(exercise.duration_seconds for exercise in template.exercises)
    per_set += template.cooldown_seconds * len(template.exercises)
    return per_set * template.sets_count


def session_progress(state: RuntimeState, template: SessionTemplate) -> tuple[int, int]:
    """
    Position of the current exercise block.

    Returns:
        (active_block, total_blocks), active_block counted from 1
    """
    total_blocks = template.sets_count * len(template.exercises)
    active_block = state.current_set_index * len(template.exercises) + state.current_exercise_index + 1
    return active_block, total_blocks
