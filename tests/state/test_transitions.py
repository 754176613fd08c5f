"""Tests for user-control transitions."""

from fitzig_app.config.defaults import RunnerSettings
from fitzig_app.state.machine import advance_to_now, current_remaining
from fitzig_app.state.models import CountdownState, RuntimeState, SessionStatus
from fitzig_app.state.transitions import (
    SessionTransitionHandler,
    begin_phase,
    finish_countdown,
    pause,
    resume_target,
    skip_cooldown,
    start_session,
    tick_countdown,
)


class TestStartSession:
    """Test session start."""

    def test_start_positions_on_first_exercise(self, push_squat_template):
        state = start_session(push_squat_template, 1_000)

        assert state.status == SessionStatus.IDLE
        assert state.current_set_index == 0
        assert state.current_exercise_index == 0
        assert state.remaining_seconds == 45
        assert state.started_at == 1_000
        assert state.phase_started_at is None

    def test_begin_without_countdown_starts_immediately(self, push_squat_template,
                                                        no_countdown_settings):
        idle = start_session(push_squat_template, 1_000)

        runtime, countdown = begin_phase(idle, SessionStatus.EXERCISE, no_countdown_settings, 1_000)

        assert runtime.status == SessionStatus.EXERCISE
        assert runtime.phase_started_at == 1_000
        assert countdown == CountdownState()

    def test_begin_with_countdown_freezes_runtime(self, push_squat_template, countdown_settings):
        idle = start_session(push_squat_template, 1_000)

        runtime, countdown = begin_phase(idle, SessionStatus.EXERCISE, countdown_settings, 1_000)

        assert runtime is idle
        assert countdown.remaining == 3
        assert countdown.target_status == SessionStatus.EXERCISE

    def test_idle_state_does_not_advance(self, push_squat_template):
        idle = start_session(push_squat_template, 0)
        assert advance_to_now(idle, push_squat_template, 10_000_000).next_state is idle


class TestCountdown:
    """Test the pre-roll sub-state."""

    def test_ticks_down_to_zero(self):
        countdown = CountdownState(remaining=3, target_status=SessionStatus.EXERCISE)

        countdown = tick_countdown(tick_countdown(tick_countdown(countdown)))

        assert countdown.remaining == 0
        assert countdown.is_active is False
        assert countdown.is_armed is True

    def test_tick_floors_at_zero(self):
        countdown = CountdownState(remaining=0, target_status=SessionStatus.COOLDOWN)
        assert tick_countdown(countdown) is countdown

    def test_finish_enters_target_atomically(self, push_squat_template):
        idle = start_session(push_squat_template, 0)
        armed = CountdownState(remaining=0, target_status=SessionStatus.EXERCISE)

        runtime, cleared = finish_countdown(idle, armed, 3_000)

        assert runtime.status == SessionStatus.EXERCISE
        assert runtime.phase_started_at == 3_000
        assert cleared.target_status is None
        assert cleared.remaining == 0

    def test_finish_is_noop_while_counting(self, push_squat_template):
        idle = start_session(push_squat_template, 0)
        counting = CountdownState(remaining=1, target_status=SessionStatus.EXERCISE)

        runtime, countdown = finish_countdown(idle, counting, 2_000)

        assert runtime is idle
        assert countdown is counting

    def test_finish_is_noop_when_not_armed(self, running_state):
        runtime, countdown = finish_countdown(running_state, CountdownState(), 2_000)
        assert runtime is running_state


class TestPauseResume:
    """Test pause and resume."""

    def test_pause_folds_elapsed_time(self, running_state):
        paused = pause(running_state, 38_000)

        assert paused.status == SessionStatus.PAUSED
        assert paused.remaining_seconds == 7
        assert paused.paused_at == 38_000
        assert paused.paused_phase == SessionStatus.EXERCISE
        assert paused.phase_started_at is None

    def test_pause_resume_round_trip(self, push_squat_template, running_state,
                                     no_countdown_settings):
        """Seven seconds left at pause are seven seconds left after resume."""
        paused = pause(running_state, 38_000)
        target = resume_target(paused)
        resumed, _ = begin_phase(paused, target, no_countdown_settings, 100_000)

        assert resumed.status == SessionStatus.EXERCISE
        assert resumed.phase_started_at == 100_000
        assert resumed.paused_at is None
        assert current_remaining(resumed, 100_000) == 7

        assert advance_to_now(resumed, push_squat_template, 106_999).next_state is resumed
        after = advance_to_now(resumed, push_squat_template, 107_000).next_state
        assert after.status == SessionStatus.COOLDOWN
        assert after.phase_started_at == 107_000

    def test_pause_during_cooldown_resumes_into_cooldown(self):
        cooldown = RuntimeState(status=SessionStatus.COOLDOWN, remaining_seconds=20,
                                phase_started_at=45_000, started_at=0)

        paused = pause(cooldown, 50_000)

        assert paused.remaining_seconds == 15
        assert resume_target(paused) == SessionStatus.COOLDOWN

    def test_paused_state_does_not_advance(self, push_squat_template, running_state):
        paused = pause(running_state, 10_000)
        assert advance_to_now(paused, push_squat_template, 900_000).next_state is paused

    def test_pause_rejected_when_not_running(self):
        assert pause(RuntimeState(), 1_000) is None

    def test_resume_rejected_when_not_paused(self, running_state):
        assert resume_target(running_state) is None

    def test_resume_target_defaults_to_exercise(self):
        paused = RuntimeState(status=SessionStatus.PAUSED, remaining_seconds=5)
        assert resume_target(paused) == SessionStatus.EXERCISE


class TestSkipCooldown:
    """Test cooldown skipping."""

    def test_skip_zeroes_remaining(self, push_squat_template):
        cooldown = RuntimeState(status=SessionStatus.COOLDOWN, remaining_seconds=20,
                                phase_started_at=45_000, started_at=0)

        skipped = skip_cooldown(cooldown, 52_000)

        assert skipped.remaining_seconds == 0
        assert skipped.phase_started_at == 52_000

        result = advance_to_now(skipped, push_squat_template, 52_000)
        assert result.next_state.status == SessionStatus.EXERCISE
        assert result.next_state.current_exercise_index == 1
        assert result.next_state.phase_started_at == 52_000

    def test_skip_rejected_outside_cooldown(self, running_state):
        assert skip_cooldown(running_state, 1_000) is None


class TestSessionTransitionHandler:
    """Test the logging handler wrapper."""

    def test_start_without_countdown(self, push_squat_template, no_countdown_settings):
        handler = SessionTransitionHandler()

        runtime, countdown = handler.start("s1", push_squat_template, no_countdown_settings, 0)

        assert runtime.status == SessionStatus.EXERCISE
        assert runtime.started_at == 0
        assert countdown.is_active is False

    def test_rejected_pause_returns_same_state(self):
        handler = SessionTransitionHandler()
        idle = RuntimeState()

        assert handler.pause("s1", idle, 1_000) is idle

    def test_rejected_resume_returns_no_countdown(self, running_state):
        handler = SessionTransitionHandler()

        runtime, countdown = handler.resume("s1", running_state, RunnerSettings(), 1_000)

        assert runtime is running_state
        assert countdown is None

    def test_resume_through_countdown(self, running_state, countdown_settings):
        handler = SessionTransitionHandler()
        paused = handler.pause("s1", running_state, 5_000)

        runtime, countdown = handler.resume("s1", paused, countdown_settings, 9_000)

        assert runtime.status == SessionStatus.PAUSED
        assert countdown.remaining == 3
        assert countdown.target_status == SessionStatus.EXERCISE

    def test_rejected_skip_returns_same_state(self, running_state):
        handler = SessionTransitionHandler()
        assert handler.skip_cooldown("s1", running_state, 1_000) is running_state
