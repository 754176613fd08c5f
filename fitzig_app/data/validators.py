"""
Template validation applied once, at session start.

The state machine assumes a pre-validated template and never re-checks its
shape on a tick.
"""

from typing import Optional

from ..config.defaults import TemplateLimits
from ..config.validation import ValidationError
from ..errors import InvalidTemplateError
from .models import SessionTemplate


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class TemplateValidator:
    """Validates session templates against shape rules and domain policy."""

    def __init__(self, limits: Optional[TemplateLimits] = None):
        self.limits = limits or TemplateLimits()

    def validate(self, template: SessionTemplate) -> list[ValidationError]:
        """
        Collect every rule the template breaks.

        Args:
            template: Template to check

        Returns:
            List of validation errors, empty when the template is usable
        """
        errors = []

        if not template.exercises:
            errors.append(ValidationError(
                field="exercises",
                message="Template must contain at least one exercise",
                value=0,
                section="template"
            ))
        elif len(template.exercises) > self.limits.max_exercises:
            errors.append(ValidationError(
                field="exercises",
                message=f"Template may contain at most {self.limits.max_exercises} exercises",
                value=len(template.exercises),
                section="template"
            ))

        for position, exercise in enumerate(template.exercises):
            if not _is_int(exercise.duration_seconds) or exercise.duration_seconds <= 0:
                errors.append(ValidationError(
                    field=f"exercises[{position}].duration_seconds",
                    message="Must be a positive integer",
                    value=exercise.duration_seconds,
                    section="template"
                ))
            if not exercise.exercise_id:
                errors.append(ValidationError(
                    field=f"exercises[{position}].exercise_id",
                    message="Must be a non-empty string",
                    value=exercise.exercise_id,
                    section="template"
                ))

        if not _is_int(template.sets_count) or template.sets_count < 1:
            errors.append(ValidationError(
                field="sets_count",
                message="Must be a positive integer",
                value=template.sets_count,
                section="template"
            ))
        elif template.sets_count > self.limits.max_sets:
            errors.append(ValidationError(
                field="sets_count",
                message=f"Must not exceed {self.limits.max_sets}",
                value=template.sets_count,
                section="template"
            ))

        if not _is_int(template.cooldown_seconds) or template.cooldown_seconds < 0:
            errors.append(ValidationError(
                field="cooldown_seconds",
                message="Must be a non-negative integer",
                value=template.cooldown_seconds,
                section="template"
            ))

        return errors

    def ensure_valid(self, template: SessionTemplate) -> SessionTemplate:
        """
        Return the template unchanged or raise on the first broken rule.

        Raises:
            InvalidTemplateError: If any rule is broken
        """
        errors = self.validate(template)
        if errors:
            first = errors[0]
            raise InvalidTemplateError(
                f"{first.field}: {first.message} (got: {first.value})",
                field=first.field,
                value=first.value,
                context={"template_id": template.id, "error_count": len(errors)}
            )
        return template


def ensure_valid_template(template: SessionTemplate,
                          limits: Optional[TemplateLimits] = None) -> SessionTemplate:
    """Module-level shortcut for ``TemplateValidator(limits).ensure_valid``."""
    return TemplateValidator(limits).ensure_valid(template)
