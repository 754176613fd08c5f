"""Pytest configuration and shared fixtures."""

import pytest

from fitzig_app.config.defaults import RunnerSettings
from fitzig_app.data.models import SessionExercise, SessionTemplate
from fitzig_app.delivery.base import BaseCueSink, CueEvent
from fitzig_app.persistence.memory_store import InMemoryStore
from fitzig_app.persistence.slot import SnapshotSlot
from fitzig_app.state.models import RuntimeState, SessionStatus


class RecordingCueSink(BaseCueSink):
    """Cue sink that keeps every delivered cue."""

    def __init__(self):
        super().__init__("recording")
        self.events: list[CueEvent] = []

    def emit(self, event: CueEvent) -> None:
        self.events.append(event)

    @property
    def kinds(self) -> list[str]:
        return [event.kind.value for event in self.events]


@pytest.fixture
def push_squat_template() -> SessionTemplate:
    """Two 45s exercises, 3 sets, 20s cooldown."""
    return SessionTemplate(
        id="template-push-squat",
        name="Push & Squat",
        sets_count=3,
        cooldown_seconds=20,
        exercises=(
            SessionExercise(exercise_id="push_up", duration_seconds=45, order=0),
            SessionExercise(exercise_id="squat", duration_seconds=45, order=1),
        ),
        created_at=1_700_000_000_000,
    )


@pytest.fixture
def short_template() -> SessionTemplate:
    """Two 10s exercises, 2 sets, 5s cooldown: 60s in total."""
    return SessionTemplate(
        id="template-short",
        name="Short",
        sets_count=2,
        cooldown_seconds=5,
        exercises=(
            SessionExercise(exercise_id="burpee", duration_seconds=10, order=0),
            SessionExercise(exercise_id="plank", duration_seconds=10, order=1),
        ),
        created_at=1_700_000_000_000,
    )


@pytest.fixture
def no_cooldown_template() -> SessionTemplate:
    """Three exercises without cooldown, 2 sets."""
    return SessionTemplate(
        id="template-no-cooldown",
        name="No Rest",
        sets_count=2,
        cooldown_seconds=0,
        exercises=(
            SessionExercise(exercise_id="lunge", duration_seconds=30, order=0),
            SessionExercise(exercise_id="sit_up", duration_seconds=20, order=1),
            SessionExercise(exercise_id="jumping_jack", duration_seconds=15, order=2),
        ),
    )


@pytest.fixture
def running_state() -> RuntimeState:
    """First exercise of the first set, started at t=0."""
    return RuntimeState(
        status=SessionStatus.EXERCISE,
        current_exercise_index=0,
        current_set_index=0,
        remaining_seconds=45,
        phase_started_at=0,
        started_at=0,
    )


@pytest.fixture
def no_countdown_settings() -> RunnerSettings:
    return RunnerSettings(countdown_enabled=False)


@pytest.fixture
def countdown_settings() -> RunnerSettings:
    return RunnerSettings(countdown_enabled=True, countdown_seconds=3)


@pytest.fixture
def store(push_squat_template, short_template, no_cooldown_template) -> InMemoryStore:
    return InMemoryStore([push_squat_template, short_template, no_cooldown_template])


@pytest.fixture
def slot(store) -> SnapshotSlot:
    return SnapshotSlot(store)


@pytest.fixture
def cue_sink() -> RecordingCueSink:
    return RecordingCueSink()
