"""
Pydantic models for inbound form submissions.

Models:
  ContactSubmission  — general contact inquiry (POST /api/contact)
  QuoteSubmission    — custom shed quote request (POST /api/quote)
  FieldError         — one item of the "details" list in a 400 response

The frontend posts camelCase JSON (firstName, preferredInstallationDate, ...),
so every model uses a camelCase alias generator while the Python attributes
stay snake_case. Unknown keys are ignored.

These are the only schemas: the HTTP layer and the dispatcher validate against
the same model for a given form type.
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

FormType = Literal["contact", "quote"]


class _SubmissionBase(BaseModel):
    """Personal information shared by both forms."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    email: EmailStr
    phone: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def reject_display_name(cls, value):
        # EmailStr accepts "Name <addr>" and keeps only the address
        if isinstance(value, str) and ("<" in value or ">" in value):
            raise ValueError("Valid email is required")
        return value


class ContactSubmission(_SubmissionBase):
    """Contact form: a free-text message with an optional subject line."""

    subject: Optional[str] = Field(default=None, max_length=100)
    message: str = Field(min_length=10, max_length=1000)


class QuoteSubmission(_SubmissionBase):
    """
    Quote request form.

    Every project field is optional and free-form. Multi-select inputs
    (checkbox groups on the frontend) arrive as lists of strings.
    """

    preferred_contact: Optional[List[str]] = None

    # Project details
    service_type: Optional[str] = None
    length: Optional[str] = None
    width: Optional[str] = None
    height: Optional[str] = None
    intended_use: Optional[List[str]] = None
    siding_material: Optional[List[str]] = None
    window_type: Optional[str] = None
    number_of_windows: Optional[str] = None
    window_size: Optional[str] = None
    door_type: Optional[str] = None
    shelving: Optional[List[str]] = None
    workbench: Optional[List[str]] = None
    preferred_installation_date: Optional[str] = None
    budget: Optional[str] = None

    # Additional information
    how_did_you_hear: Optional[str] = None
    workshop_use: Optional[str] = None
    other_use: Optional[str] = None


Submission = Union[ContactSubmission, QuoteSubmission]

SCHEMAS: dict = {
    "contact": ContactSubmission,
    "quote": QuoteSubmission,
}


class FieldError(BaseModel):
    """A single field-level validation failure."""

    path: List[Union[str, int]]    # e.g. ["firstName"] or ["shelving", 0]
    message: str
    code: str                      # pydantic error type, e.g. "string_too_short"
