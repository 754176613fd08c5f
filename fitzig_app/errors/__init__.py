"""
Error classification for the session runtime.

This module provides the exception hierarchy for invalid input, stale or
corrupted snapshots, and collaborator failures around an active session.
"""

from .data_quality import (
    DataQualityError,
    InvalidTemplateError,
    MalformedSnapshotError,
    SessionExpiredError,
    TemplateNotFoundError,
)
from .system_failures import (
    SystemFailureError,
    StateTransitionError,
    SessionSlotBusyError,
    PersistenceError,
    CueDeliveryError,
)
from .recovery import GracefulDegradationError

__all__ = [
    # Data Quality Errors
    "DataQualityError",
    "InvalidTemplateError",
    "MalformedSnapshotError",
    "SessionExpiredError",
    "TemplateNotFoundError",
    # System Failures
    "SystemFailureError",
    "StateTransitionError",
    "SessionSlotBusyError",
    "PersistenceError",
    "CueDeliveryError",
    # Recovery Categories
    "GracefulDegradationError",
]
