"""
Canonical data models for session templates and completed runs.

Templates are produced by the session builder and consumed read-only by the
runtime. They are immutable once a session starts.
"""

import random
import string
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from ..errors import InvalidTemplateError


@dataclass(frozen=True)
class ExerciseType:
    """Catalogue entry for a selectable exercise."""
    id: str
    name: str


EXERCISES: tuple[ExerciseType, ...] = (
    ExerciseType(id="push_up", name="Push Up"),
    ExerciseType(id="pull_up", name="Pull Up"),
    ExerciseType(id="squat", name="Squat"),
    ExerciseType(id="lunge", name="Lunge"),
    ExerciseType(id="plank", name="Plank"),
    ExerciseType(id="burpee", name="Burpee"),
    ExerciseType(id="mountain_climber", name="Mountain Climber"),
    ExerciseType(id="jumping_jack", name="Jumping Jack"),
    ExerciseType(id="glute_bridge", name="Glute Bridge"),
    ExerciseType(id="sit_up", name="Sit Up"),
)

_EXERCISES_BY_ID = {exercise.id: exercise for exercise in EXERCISES}


def get_exercise_meta(exercise_id: str) -> ExerciseType:
    """Resolve catalogue metadata, falling back to the raw id as display name."""
    return _EXERCISES_BY_ID.get(exercise_id) or ExerciseType(id=exercise_id, name=exercise_id)


@dataclass(frozen=True)
class SessionExercise:
    """One timed exercise slot within a template."""
    exercise_id: str
    duration_seconds: int
    order: int = 0


@dataclass(frozen=True)
class SessionTemplate:
    """Immutable description of a session's shape."""
    id: str
    name: str
    sets_count: int
    cooldown_seconds: int
    exercises: tuple[SessionExercise, ...]
    created_at: int = 0

    @property
    def first_exercise(self) -> Optional[SessionExercise]:
        return self.exercises[0] if self.exercises else None

    def exercise_at(self, index: int) -> Optional[SessionExercise]:
        """Exercise at ``index``, None when out of range."""
        if 0 <= index < len(self.exercises):
            return self.exercises[index]
        return None


@dataclass(frozen=True)
class SetResult:
    """Outcome of a single exercise within a single set."""
    exercise_id: str
    set_index: int
    duration_seconds: int
    count: Optional[int] = None


@dataclass(frozen=True)
class SessionRun:
    """Completed session handed off to results logging."""
    id: str
    template_id: str
    template_name: str
    started_at: int
    completed_at: int
    results: tuple[SetResult, ...] = field(default_factory=tuple)


def _create_id(prefix: str) -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def new_template_id() -> str:
    return _create_id("template")


def new_run_id() -> str:
    return _create_id("run")


def template_to_dict(template: SessionTemplate) -> dict[str, Any]:
    """Convert a template to its storable key-value shape."""
    return {
        "id": template.id,
        "name": template.name,
        "sets_count": template.sets_count,
        "cooldown_seconds": template.cooldown_seconds,
        "created_at": template.created_at,
        "exercises": [
            {
                "exercise_id": exercise.exercise_id,
                "duration_seconds": exercise.duration_seconds,
                "order": exercise.order,
            }
            for exercise in template.exercises
        ],
    }


def template_from_dict(data: dict[str, Any]) -> SessionTemplate:
    """
    Build a template from its stored shape.

    Exercises are ordered by their ``order`` field, ties keep list position.

    Raises:
        InvalidTemplateError: If required fields are missing or mistyped
    """
    try:
        raw_exercises = data["exercises"]
        if not isinstance(raw_exercises, list):
            raise InvalidTemplateError("exercises must be a list", field="exercises",
                                       value=raw_exercises)

        indexed = [
            (int(item.get("order", position)), position, item)
            for position, item in enumerate(raw_exercises)
        ]
        exercises = tuple(
            SessionExercise(
                exercise_id=str(item["exercise_id"]),
                duration_seconds=int(item["duration_seconds"]),
                order=order,
            )
            for order, _position, item in sorted(indexed, key=lambda entry: entry[:2])
        )

        return SessionTemplate(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            sets_count=int(data["sets_count"]),
            cooldown_seconds=int(data["cooldown_seconds"]),
            exercises=exercises,
            created_at=int(data.get("created_at", 0)),
        )
    except KeyError as e:
        raise InvalidTemplateError(f"Missing required template field: {e.args[0]}",
                                   field=str(e.args[0])) from e
    except (TypeError, ValueError, AttributeError) as e:
        raise InvalidTemplateError(f"Malformed template data: {e}") from e


def run_to_dict(run: SessionRun) -> dict[str, Any]:
    """Convert a completed run to its storable key-value shape."""
    return {
        "id": run.id,
        "template_id": run.template_id,
        "template_name": run.template_name,
        "started_at": run.started_at,
        "completed_at": run.completed_at,
        "results": [
            {
                "exercise_id": result.exercise_id,
                "set_index": result.set_index,
                "duration_seconds": result.duration_seconds,
                "count": result.count,
            }
            for result in run.results
        ],
    }


def run_from_dict(data: dict[str, Any]) -> SessionRun:
    """Build a completed run from its stored shape."""
    return SessionRun(
        id=data["id"],
        template_id=data["template_id"],
        template_name=data.get("template_name", ""),
        started_at=int(data["started_at"]),
        completed_at=int(data["completed_at"]),
        results=tuple(
            SetResult(
                exercise_id=item["exercise_id"],
                set_index=int(item["set_index"]),
                duration_seconds=int(item["duration_seconds"]),
                count=item.get("count"),
            )
            for item in data.get("results", [])
        ),
    )


def build_session_run(
    template: SessionTemplate,
    started_at: int,
    completed_at: int,
    counts: Optional[dict[tuple[int, str], int]] = None,
    run_id: Optional[str] = None
) -> SessionRun:
    """
    Assemble the completed-run record for results logging.

    Args:
        template: Template the session ran
        started_at: Session start, epoch ms
        completed_at: Session completion, epoch ms
        counts: Optional repetition counts keyed by (set_index, exercise_id)
        run_id: Explicit id, generated when omitted

    Returns:
        SessionRun with one SetResult per set and exercise
    """
    counts = counts or {}
    results = tuple(
        SetResult(
            exercise_id=exercise.exercise_id,
            set_index=set_index,
            duration_seconds=exercise.duration_seconds,
            count=counts.get((set_index, exercise.exercise_id)),
        )
        for set_index in range(template.sets_count)
        for exercise in template.exercises
    )

    return SessionRun(
        id=run_id or new_run_id(),
        template_id=template.id,
        template_name=template.name,
        started_at=started_at,
        completed_at=completed_at,
        results=results,
    )
