"""
Snapshot codec for the active session.

Converts the live runtime and countdown state into a storable key-value
shape and normalizes whatever comes back from storage. Decoding never
raises: a missing or unusable snapshot is an expected condition and is
reported through ``SnapshotNormalizationResult``.
"""

import json
import math
from dataclasses import asdict, dataclass
from typing import Any, Optional, Union

import structlog

from ..config.defaults import SnapshotParams
from ..data.models import SessionTemplate
from ..state.machine import current_remaining
from ..state.models import CountdownState, RuntimeState, SessionStatus, is_running_status

logger = structlog.get_logger(__name__)

SNAPSHOT_MAX_AGE_MS = SnapshotParams().max_age_ms

REQUIRED_FIELDS = (
    "template_id",
    "status",
    "current_exercise_index",
    "current_set_index",
    "remaining_seconds",
    "updated_at",
)


@dataclass(frozen=True)
class ActiveSessionSnapshot:
    """Serializable projection of an in-progress session."""

    template_id: str
    current_exercise_index: int
    current_set_index: int
    status: str
    remaining_seconds: int                     # Remaining as of updated_at
    phase_started_at: Optional[int]
    paused_at: Optional[int]
    started_at: Optional[int]
    updated_at: int
    paused_phase: Optional[str] = None
    countdown_remaining: Optional[int] = None
    countdown_target_status: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass
class SnapshotNormalizationResult:
    """Result of snapshot normalization."""
    snapshot: Optional[ActiveSessionSnapshot] = None
    runtime: Optional[RuntimeState] = None
    countdown: Optional[CountdownState] = None
    success: bool = True
    error_msg: Optional[str] = None
    missing_fields: tuple[str, ...] = ()

    @classmethod
    def ok(cls, snapshot: ActiveSessionSnapshot, runtime: RuntimeState,
           countdown: CountdownState) -> "SnapshotNormalizationResult":
        """Create successful result with the restored state."""
        return cls(snapshot=snapshot, runtime=runtime, countdown=countdown, success=True)

    @classmethod
    def error(cls, error_msg: str,
              missing_fields: tuple[str, ...] = ()) -> "SnapshotNormalizationResult":
        """Create error result."""
        return cls(success=False, error_msg=error_msg, missing_fields=missing_fields)


def encode_snapshot(
    state: RuntimeState,
    countdown: CountdownState,
    template_id: str,
    now: int
) -> ActiveSessionSnapshot:
    """
    Project live state into a snapshot as of ``now``.

    ``remaining_seconds`` is recomputed at ``now`` and a running phase is
    re-anchored at ``now``, so elapsed time is never counted twice after a
    restore.
    """
    running = is_running_status(state.status) and state.phase_started_at is not None

    return ActiveSessionSnapshot(
        template_id=template_id,
        current_exercise_index=state.current_exercise_index,
        current_set_index=state.current_set_index,
        status=state.status.value,
        remaining_seconds=current_remaining(state, now),
        phase_started_at=now if running else state.phase_started_at,
        paused_at=state.paused_at,
        started_at=state.started_at,
        updated_at=now,
        paused_phase=state.paused_phase.value if state.paused_phase else None,
        countdown_remaining=countdown.remaining if countdown.remaining > 0 else None,
        countdown_target_status=countdown.target_status.value if countdown.target_status else None,
    )


def is_snapshot_expired(
    snapshot: ActiveSessionSnapshot,
    now: int,
    max_age_ms: int = SNAPSHOT_MAX_AGE_MS
) -> bool:
    """True when the snapshot is older than the resume ceiling."""
    return now - snapshot.updated_at > max_age_ms


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _optional_ms(value: Any) -> Optional[int]:
    return int(value) if _is_number(value) else None


def _parse_status(value: Any) -> Optional[SessionStatus]:
    try:
        return SessionStatus(value)
    except (ValueError, TypeError):
        return None


def _parse_running_status(value: Any) -> Optional[SessionStatus]:
    status = _parse_status(value)
    return status if status is not None and is_running_status(status) else None


def normalize_snapshot(
    raw: Union[str, bytes, dict[str, Any], ActiveSessionSnapshot, None],
    now: int,
    template: Optional[SessionTemplate] = None
) -> SnapshotNormalizationResult:
    """
    Validate and normalize a stored snapshot.

    A running status without a phase anchor (process died mid-write) is
    coerced to paused so the session never resumes without a valid anchor.

    Args:
        raw: Stored snapshot as dataclass, dict or JSON text
        now: Wall-clock time, epoch ms
        template: When given, indices are checked against its shape

    Returns:
        SnapshotNormalizationResult; ``success`` is False for unusable data
    """
    if raw is None:
        return SnapshotNormalizationResult.error("No snapshot stored")

    data = raw
    if isinstance(raw, ActiveSessionSnapshot):
        data = raw.to_dict()
    elif isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return SnapshotNormalizationResult.error(f"Failed to parse snapshot JSON: {e}")

    if not isinstance(data, dict):
        return SnapshotNormalizationResult.error("Snapshot must be a mapping")

    missing = [name for name in REQUIRED_FIELDS if data.get(name) is None]
    if missing:
        return SnapshotNormalizationResult.error(f"Missing required fields: {', '.join(missing)}",
                                                 missing_fields=tuple(missing))

    template_id = data["template_id"]
    if not isinstance(template_id, str) or not template_id:
        return SnapshotNormalizationResult.error("template_id must be a non-empty string")

    status = _parse_status(data["status"])
    if status is None:
        return SnapshotNormalizationResult.error(f"Unknown status: {data['status']!r}")

    for name in ("current_exercise_index", "current_set_index", "remaining_seconds", "updated_at"):
        if not _is_number(data[name]):
            return SnapshotNormalizationResult.error(f"{name} must be a number")

    exercise_index = int(data["current_exercise_index"])
    set_index = int(data["current_set_index"])
    if exercise_index < 0 or set_index < 0:
        return SnapshotNormalizationResult.error("Indices must be non-negative")

    if template is not None:
        if template.id != template_id:
            return SnapshotNormalizationResult.error("Snapshot belongs to a different template")
        if exercise_index >= len(template.exercises) or set_index >= template.sets_count:
            return SnapshotNormalizationResult.error("Indices out of range for template")

    remaining = max(0, round(data["remaining_seconds"]))
    updated_at = int(data["updated_at"])
    phase_started_at = _optional_ms(data.get("phase_started_at"))
    paused_at = _optional_ms(data.get("paused_at"))
    started_at = _optional_ms(data.get("started_at"))
    paused_phase = _parse_running_status(data.get("paused_phase"))

    if status == SessionStatus.PAUSED and paused_phase is None:
        paused_phase = SessionStatus.EXERCISE

    if is_running_status(status) and phase_started_at is None:
        logger.warning(
            "Running snapshot without phase anchor, restoring as paused",
            template_id=template_id,
            status=status.value
        )
        runtime = RuntimeState(
            status=SessionStatus.PAUSED,
            current_exercise_index=exercise_index,
            current_set_index=set_index,
            remaining_seconds=remaining,
            phase_started_at=None,
            started_at=started_at,
            paused_at=paused_at if paused_at is not None else now,
            paused_phase=paused_phase or status,
        )
    else:
        runtime = RuntimeState(
            status=status,
            current_exercise_index=exercise_index,
            current_set_index=set_index,
            remaining_seconds=remaining,
            phase_started_at=phase_started_at,
            started_at=started_at,
            paused_at=paused_at,
            paused_phase=paused_phase,
        )

    countdown_remaining = data.get("countdown_remaining")
    countdown = CountdownState(
        remaining=max(0, round(countdown_remaining)) if _is_number(countdown_remaining) else 0,
        target_status=_parse_running_status(data.get("countdown_target_status")),
    )

    snapshot = ActiveSessionSnapshot(
        template_id=template_id,
        current_exercise_index=exercise_index,
        current_set_index=set_index,
        status=status.value,
        remaining_seconds=remaining,
        phase_started_at=phase_started_at,
        paused_at=paused_at,
        started_at=started_at,
        updated_at=updated_at,
        paused_phase=paused_phase.value if paused_phase else None,
        countdown_remaining=countdown.remaining or None,
        countdown_target_status=countdown.target_status.value if countdown.target_status else None,
    )

    return SnapshotNormalizationResult.ok(snapshot, runtime, countdown)


def decode_snapshot(
    raw: Union[str, bytes, dict[str, Any], ActiveSessionSnapshot, None],
    now: int
) -> Optional[tuple[RuntimeState, CountdownState]]:
    """Restore (runtime, countdown) from a stored snapshot, None when unusable."""
    result = normalize_snapshot(raw, now)
    if not result.success:
        return None
    return result.runtime, result.countdown
