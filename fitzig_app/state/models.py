"""
State machine data models for the interval session runtime.

This module defines immutable data structures for the live runtime state,
the orthogonal countdown pre-roll, and the results returned by the
reconciliation functions.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional


class SessionStatus(str, Enum):
    """Runtime statuses. Completion is reported out of band, never held."""
    IDLE = "idle"
    EXERCISE = "exercise"
    COOLDOWN = "cooldown"
    PAUSED = "paused"


RUNNING_STATUSES = frozenset({SessionStatus.EXERCISE, SessionStatus.COOLDOWN})


def is_running_status(status: SessionStatus) -> bool:
    """True for the statuses that consume wall-clock time."""
    return status in RUNNING_STATUSES


@dataclass(frozen=True)
class RuntimeState:
    """Live state of one session."""

    status: SessionStatus = SessionStatus.IDLE
    current_exercise_index: int = 0
    current_set_index: int = 0

    # Seconds left in the current phase, as of phase_started_at
    remaining_seconds: int = 0

    # Wall-clock anchors (epoch ms)
    phase_started_at: Optional[int] = None           # Set only while running
    started_at: Optional[int] = None                 # Whole-session start
    paused_at: Optional[int] = None
    paused_phase: Optional[SessionStatus] = None     # Phase to resume into

    @property
    def is_running(self) -> bool:
        return is_running_status(self.status) and self.phase_started_at is not None

    def replace(self, **changes) -> 'RuntimeState':
        """Copy with the given fields changed."""
        return replace(self, **changes)

    def enter_phase(self, status: SessionStatus, phase_started_at: int, **changes) -> 'RuntimeState':
        """Copy entering a running phase anchored at ``phase_started_at``."""
        return replace(
            self,
            status=status,
            phase_started_at=phase_started_at,
            paused_at=None,
            paused_phase=None,
            **changes
        )


def create_idle_runtime() -> RuntimeState:
    """Runtime for a session that has not been started."""
    return RuntimeState()


@dataclass(frozen=True)
class CountdownState:
    """Pre-roll sub-state, orthogonal to RuntimeState."""

    remaining: int = 0
    target_status: Optional[SessionStatus] = None

    @property
    def is_active(self) -> bool:
        return self.remaining > 0

    @property
    def is_armed(self) -> bool:
        """Target set, whether or not the lead-in has elapsed."""
        return self.target_status is not None


@dataclass(frozen=True)
class PhaseBoundary:
    """A single phase boundary crossed during reconciliation."""

    boundary_ms: int
    from_state: RuntimeState
    to_state: Optional[RuntimeState]                 # None when the session completed here


@dataclass(frozen=True)
class AdvanceResult:
    """Result of reconciling a runtime state against the current time."""

    next_state: RuntimeState
    completed: bool = False
    boundaries: tuple[PhaseBoundary, ...] = ()


@dataclass(frozen=True)
class CompletionRecord:
    """Hand-off payload for the results-logging flow."""

    template_id: str
    started_at: int
    completed_at: int
