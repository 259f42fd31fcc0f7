"""
Submission validator.

Turns an untyped request body into a typed submission, or into a list of
field-level errors. Never raises for bad input; callers always get a
ValidationResult back.

Public API:
  validate(raw, form_type) -> ValidationResult
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from pydantic import ValidationError

from formmail.models.submission import SCHEMAS, FieldError, Submission

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Human-readable messages
# ---------------------------------------------------------------------------

# Keyed by (json field name, pydantic error type). Anything not listed here
# falls back to pydantic's own message.
_MESSAGES: dict[tuple[str, str], str] = {
    ("firstName", "missing"): "First name is required",
    ("firstName", "string_too_short"): "First name is required",
    ("firstName", "string_too_long"): "First name too long",
    ("lastName", "missing"): "Last name is required",
    ("lastName", "string_too_short"): "Last name is required",
    ("lastName", "string_too_long"): "Last name too long",
    ("email", "missing"): "Valid email is required",
    ("email", "value_error"): "Valid email is required",
    ("email", "string_type"): "Valid email is required",
    ("subject", "string_too_long"): "Subject too long",
    ("message", "missing"): "Message is required",
    ("message", "string_too_short"): "Message must be at least 10 characters",
    ("message", "string_too_long"): "Message too long",
}


@dataclass
class ValidationResult:
    """Outcome of validate(): exactly one of submission / errors is meaningful."""
    submission: Optional[Submission] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.submission is not None and not self.errors


def _to_field_error(err: dict) -> FieldError:
    path = list(err.get("loc") or ())
    code = err.get("type", "value_error")
    name = path[0] if path else ""
    message = _MESSAGES.get((name, code)) or err.get("msg", "Invalid value")
    return FieldError(path=path, message=message, code=code)


def validate(raw: Any, form_type: str) -> ValidationResult:
    """
    Validate a raw request body against the schema for form_type.

    Every violated constraint is reported, so a body with an empty first name,
    a bad email and a short message yields three errors.
    """
    schema = SCHEMAS.get(form_type)
    if schema is None:
        return ValidationResult(errors=[
            FieldError(
                path=["formType"],
                message=f"Unknown form type {form_type!r}",
                code="unknown_form_type",
            )
        ])

    if not isinstance(raw, dict):
        return ValidationResult(errors=[
            FieldError(
                path=[],
                message="Request body must be a JSON object",
                code="model_type",
            )
        ])

    try:
        submission = schema.model_validate(raw)
    except ValidationError as exc:
        errors = [_to_field_error(e) for e in exc.errors()]
        logger.debug("%s submission rejected: %d field error(s)", form_type, len(errors))
        return ValidationResult(errors=errors)

    return ValidationResult(submission=submission)
