"""
Data quality error classifications for templates and snapshots.

These exceptions describe input the runtime refuses to work with: templates
that fail validation and snapshots that cannot be resumed.
"""

from typing import Optional, Dict, Any


class DataQualityError(Exception):
    """Base class for data quality issues that can be handled gracefully."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class InvalidTemplateError(DataQualityError):
    """Template shape rejected at session start."""

    def __init__(self, message: str, field: Optional[str] = None,
                 value: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value


class MalformedSnapshotError(DataQualityError):
    """Persisted snapshot is partial or has fields of the wrong type."""

    def __init__(self, message: str, missing_fields: Optional[list] = None,
                 raw_data: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.missing_fields = missing_fields or []
        self.raw_data = raw_data


class SessionExpiredError(DataQualityError):
    """Snapshot is older than the resume ceiling and was discarded."""

    def __init__(self, message: str, updated_at: Optional[int] = None,
                 age_ms: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.updated_at = updated_at
        self.age_ms = age_ms


class TemplateNotFoundError(DataQualityError):
    """Template referenced by a session no longer exists."""

    def __init__(self, message: str, template_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.template_id = template_id
