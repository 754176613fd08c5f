"""
System failure error classifications.

These exceptions represent failures of the runtime's collaborators or misuse
of the single session slot.
"""

from typing import Optional, Dict, Any


class SystemFailureError(Exception):
    """Base class for system failures."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class StateTransitionError(SystemFailureError):
    """Transition requested that the session state cannot honor."""

    def __init__(self, message: str, current_state: Optional[str] = None,
                 attempted_transition: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.current_state = current_state
        self.attempted_transition = attempted_transition


class SessionSlotBusyError(StateTransitionError):
    """Another session already owns the active snapshot slot."""

    def __init__(self, message: str, owner: Optional[str] = None,
                 requested_by: Optional[str] = None, **kwargs):
        super().__init__(message, attempted_transition="acquire_slot", **kwargs)
        self.owner = owner
        self.requested_by = requested_by


class PersistenceError(SystemFailureError):
    """Database or file system persistence failures."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.target = target


class CueDeliveryError(SystemFailureError):
    """Cue sink failed to deliver a phase notification."""

    def __init__(self, message: str, cue: Optional[str] = None,
                 sink: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.cue = cue
        self.sink = sink
