#!/usr/bin/env python3
"""
Basic Usage Example - Fitzig Interval Session Runtime

This script walks through one interval session on a simulated clock. It shows
how to:
- Save a session template
- Start a session through the countdown pre-roll
- Background the app, "kill" it and restore the session on a fresh engine
- Let the engine catch up and hand off the completed run

Run: python examples/basic_usage.py
"""

import tempfile
from pathlib import Path

from fitzig_app.data.models import SessionExercise, SessionTemplate, new_template_id
from fitzig_app.delivery.stdout_cues import StdoutCueSink
from fitzig_app.engine import SessionEngine
from fitzig_app.logging import configure_logging
from fitzig_app.persistence.sqlite_store import SqliteStore
from fitzig_app.utils.time import format_seconds, now_ms


class SimulatedClock:
    """Wall clock that jumps forward instead of waiting."""

    def __init__(self, start_ms: int):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


def create_sample_template() -> SessionTemplate:
    """Two exercises, three sets, 20s cooldown."""
    return SessionTemplate(
        id=new_template_id(),
        name="Push & Squat",
        sets_count=3,
        cooldown_seconds=20,
        exercises=(
            SessionExercise(exercise_id="push_up", duration_seconds=45, order=0),
            SessionExercise(exercise_id="squat", duration_seconds=45, order=1),
        ),
        created_at=now_ms(),
    )


def print_session_state(engine: SessionEngine) -> None:
    runtime = engine.runtime
    active, total = runtime.progress
    print(f"   Status: {runtime.status_label}")
    print(f"   Exercise: {runtime.current_exercise_name} (block {active}/{total})")
    print(f"   Display: {format_seconds(runtime.display_seconds(engine.clock()))}s")


def main() -> None:
    configure_logging(level="WARNING")

    print("🏋️  Fitzig Interval Session Runtime - Basic Usage Example")
    print("=" * 60)
    print()

    with tempfile.TemporaryDirectory() as workdir:
        store = SqliteStore(str(Path(workdir) / "fitzig.db"))
        clock = SimulatedClock(now_ms())

        template = create_sample_template()
        store.save_template(template)
        print(f"1. Saved template '{template.name}' ({template.id})")
        print()

        engine = SessionEngine(
            templates=store, snapshots=store, runs=store,
            cue_sink=StdoutCueSink(format="pretty"),
            clock=clock, sleep=clock.sleep,
        )

        print("2. Starting the session, running the first 30 seconds...")
        engine.start_session(template.id)
        engine.run(max_ticks=120)
        print_session_state(engine)
        print()

        print("3. App goes to the background and the process is killed")
        engine.suspend()
        clock.now += 2 * 60 * 1000
        print("   Two minutes pass...")
        print()

        print("4. Cold start: restoring from the snapshot")
        restored = SessionEngine(
            templates=store, snapshots=store, runs=store,
            cue_sink=StdoutCueSink(format="pretty"),
            clock=clock, sleep=clock.sleep,
        )
        restored.resume_session()
        print_session_state(restored)
        print()

        print("5. Running to completion...")
        restored.run()
        print()

        runs = store.list_runs()
        print("6. Completed runs:")
        for run in runs:
            minutes = (run.completed_at - run.started_at) / 60000
            print(f"   {run.template_name}: {len(run.results)} results, {minutes:.1f} minutes")
        print()

    print("✅ Demo completed successfully!")


if __name__ == "__main__":
    main()
