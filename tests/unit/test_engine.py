"""Unit tests for the session engine."""

from pathlib import Path

import pytest

from fitzig_app.engine import SessionEngine
from fitzig_app.errors import GracefulDegradationError, PersistenceError, SessionExpiredError
from fitzig_app.persistence.memory_store import InMemoryStore
from fitzig_app.state.models import SessionStatus

DAY_MS = 24 * 60 * 60 * 1000


class FakeClock:
    """Wall clock that only moves when the engine sleeps or a test says so."""

    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += int(seconds * 1000)

    def advance(self, ms: int) -> None:
        self.now += ms


class FailingRunStore(InMemoryStore):
    def save_run(self, run) -> None:
        raise PersistenceError("read-only", operation="save_run", target="memory")


class FlakyTemplateStore(InMemoryStore):
    """Serves the first template lookup, then loses its disk."""

    def __init__(self, templates):
        super().__init__(templates)
        self.lookups = 0

    def get_template(self, template_id: str):
        self.lookups += 1
        if self.lookups > 1:
            raise PersistenceError("disk gone", operation="get_template", target="memory")
        return super().get_template(template_id)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def no_countdown_dir(tmp_path: Path) -> Path:
    (tmp_path / "settings.yaml").write_text("settings:\n  countdown_enabled: false\n")
    return tmp_path


def make_engine(store, clock, config_dir, cue_sink=None, runs=None) -> SessionEngine:
    return SessionEngine(
        templates=store,
        snapshots=store,
        runs=runs if runs is not None else store,
        cue_sink=cue_sink,
        config_dir=config_dir,
        clock=clock,
        sleep=clock.sleep,
    )


class TestSessionEngine:
    """Test suite for the SessionEngine class."""

    def test_engine_initialization(self, store, clock, tmp_path) -> None:
        """Test that the engine picks up configuration from its directory."""
        engine = make_engine(store, clock, tmp_path)

        assert engine.config.timing.tick_interval_ms == 250
        assert engine.runtime.template is None
        assert engine.completions == []

    def test_run_through_countdown_to_completion(self, store, clock, tmp_path, cue_sink) -> None:
        engine = make_engine(store, clock, tmp_path, cue_sink=cue_sink)
        engine.start_session("template-short")

        assert engine.run() is True

        assert cue_sink.kinds[:3] == ["countdown-tick", "countdown-tick", "exercise-started"]
        assert cue_sink.kinds[-1] == "session-completed"
        assert engine.completions[0].started_at == 0
        assert engine.completions[0].completed_at == 63_000

        runs = store.list_runs()
        assert len(runs) == 1
        assert runs[0].template_id == "template-short"
        assert len(runs[0].results) == 4
        assert store.snapshot is None

    def test_run_without_countdown(self, store, clock, no_countdown_dir) -> None:
        engine = make_engine(store, clock, no_countdown_dir)
        engine.start_session("template-short")

        assert engine.run() is True
        assert engine.completions[0].completed_at == 60_000

    def test_max_ticks(self, store, clock, no_countdown_dir) -> None:
        engine = make_engine(store, clock, no_countdown_dir)
        engine.start_session("template-short")

        assert engine.run(max_ticks=4) is False
        assert clock.now == 1_000
        assert engine.runtime.runtime.status == SessionStatus.EXERCISE

    def test_run_stops_when_paused(self, store, clock, no_countdown_dir) -> None:
        engine = make_engine(store, clock, no_countdown_dir)
        engine.start_session("template-short")
        engine.run(max_ticks=8)
        engine.runtime.pause(clock())

        assert engine.run() is False
        assert engine.runtime.runtime.status == SessionStatus.PAUSED

    def test_discard_session(self, store, clock, no_countdown_dir) -> None:
        engine = make_engine(store, clock, no_countdown_dir)
        engine.start_session("template-short")

        assert engine.discard_session() is False
        assert engine.discard_session(confirm=True) is True
        assert engine.run() is False
        assert store.snapshot is None

    def test_sample(self, store, clock, no_countdown_dir) -> None:
        engine = make_engine(store, clock, no_countdown_dir)
        engine.start_session("template-short")

        clock.advance(59_999)
        assert engine.sample() is False
        clock.advance(1)
        assert engine.sample() is True


class TestSuspendAndResume:
    """Test backgrounding and cold-start restore."""

    def test_wake_reconciles_elapsed_time(self, store, clock, no_countdown_dir) -> None:
        engine = make_engine(store, clock, no_countdown_dir)
        engine.start_session("template-push-squat")
        engine.suspend()

        clock.advance(70_000)
        engine.wake()

        assert engine.runtime.runtime.current_exercise_index == 1
        assert engine.runtime.display_seconds(clock()) == 40

    def test_resume_after_restart(self, store, clock, no_countdown_dir) -> None:
        first = make_engine(store, clock, no_countdown_dir)
        first.start_session("template-push-squat")
        clock.advance(10_000)
        first.suspend()

        clock.advance(60_000)
        second = make_engine(store, clock, no_countdown_dir)

        assert second.resume_session() is True
        assert second.runtime.runtime.current_exercise_index == 1
        assert second.runtime.runtime.phase_started_at == 65_000

    def test_nothing_to_resume(self, store, clock, tmp_path) -> None:
        assert make_engine(store, clock, tmp_path).resume_session() is False

    def test_resume_expired(self, store, clock, no_countdown_dir) -> None:
        first = make_engine(store, clock, no_countdown_dir)
        first.start_session("template-push-squat")
        first.suspend()

        clock.advance(DAY_MS + 1)
        second = make_engine(store, clock, no_countdown_dir)

        with pytest.raises(SessionExpiredError):
            second.resume_session()
        assert store.snapshot is None

    def test_resume_completes_overdue_session(self, store, clock, no_countdown_dir) -> None:
        first = make_engine(store, clock, no_countdown_dir)
        first.start_session("template-short")
        first.suspend()

        clock.advance(3_600_000)
        second = make_engine(store, clock, no_countdown_dir)

        assert second.resume_session() is True
        assert second.runtime.completed is True
        assert second.completions[0].completed_at == 3_600_000


class TestWarnings:
    """Test degraded-persistence reporting."""

    def test_run_history_failure_is_a_warning(self, push_squat_template, short_template,
                                              clock, no_countdown_dir) -> None:
        store = InMemoryStore([push_squat_template, short_template])
        received = []
        engine = make_engine(store, clock, no_countdown_dir, runs=FailingRunStore())
        engine.on_warning = received.append
        engine.start_session("template-short")

        assert engine.run() is True
        assert len(engine.warnings) == 1
        assert isinstance(engine.warnings[0], GracefulDegradationError)
        assert engine.warnings[0].degraded_functionality == "run_history"
        assert received == engine.warnings

    def test_completion_survives_template_store_failure(self, push_squat_template, clock,
                                                        no_countdown_dir) -> None:
        store = FlakyTemplateStore([push_squat_template])
        engine = make_engine(store, clock, no_countdown_dir)
        engine.start_session("template-push-squat")

        clock.now = 10_000_000

        assert engine.sample() is True
        assert engine.warnings == []
        assert [run.template_id for run in store.list_runs()] == ["template-push-squat"]


class TestCueSettings:
    """Cue gating follows the settings read at session start."""

    def test_settings_changed_after_construction(self, store, clock, tmp_path, cue_sink) -> None:
        settings_file = tmp_path / "settings.yaml"
        settings_file.write_text("settings:\n  countdown_enabled: false\n")
        engine = make_engine(store, clock, tmp_path, cue_sink=cue_sink)

        settings_file.write_text(
            "settings:\n"
            "  countdown_enabled: false\n"
            "  haptics_enabled: false\n"
            "  sound_enabled: false\n"
        )
        engine.start_session("template-push-squat")

        assert engine.runtime.settings.haptics_enabled is False
        assert engine.runtime.runtime.status == SessionStatus.EXERCISE
        assert cue_sink.events == []

    def test_settings_enabled_after_construction(self, store, clock, tmp_path, cue_sink) -> None:
        settings_file = tmp_path / "settings.yaml"
        settings_file.write_text(
            "settings:\n"
            "  countdown_enabled: false\n"
            "  haptics_enabled: false\n"
            "  sound_enabled: false\n"
        )
        engine = make_engine(store, clock, tmp_path, cue_sink=cue_sink)

        settings_file.write_text("settings:\n  countdown_enabled: false\n  sound_enabled: true\n")
        engine.start_session("template-push-squat")

        assert cue_sink.kinds == ["exercise-started"]
