"""
Plain-text report rendering for form notifications.

Public API:
  format_contact(submission, submitted_at=None) -> str
  format_quote(submission, submitted_at=None) -> str
  format_submission(submission, form_type, submitted_at=None) -> str

Every report has the same sections no matter which optional fields were
filled in; missing values render as a placeholder instead of being dropped.
The only input that varies between calls is the timestamp, which defaults to
"now" and can be pinned by passing submitted_at.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from formmail.models.submission import ContactSubmission, QuoteSubmission, Submission

NOT_PROVIDED = "Not provided"
NOT_SPECIFIED = "Not specified"
NOT_AVAILABLE = "N/A"
GENERAL_INQUIRY = "General Inquiry"


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """
    ISO-8601 UTC timestamp with millisecond precision and a Z suffix,
    e.g. 2025-03-01T14:05:09.120Z. Naive datetimes are taken as UTC.
    """
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _text(value: Optional[str], placeholder: str = NOT_SPECIFIED) -> str:
    return value if value else placeholder


def _joined(values: Optional[Iterable[str]], placeholder: str = NOT_SPECIFIED) -> str:
    return ", ".join(values) if values else placeholder


def format_contact(
    submission: ContactSubmission,
    submitted_at: Optional[datetime] = None,
) -> str:
    lines = [
        "CONTACT FORM SUBMISSION:",
        "========================",
        "",
        "PERSONAL INFORMATION:",
        f"- Name: {submission.first_name} {submission.last_name}",
        f"- Email: {submission.email}",
        f"- Phone: {_text(submission.phone, NOT_PROVIDED)}",
        f"- Subject: {_text(submission.subject, GENERAL_INQUIRY)}",
        "",
        "MESSAGE:",
        submission.message,
        "",
        f"SUBMITTED AT: {format_timestamp(submitted_at)}",
    ]
    return "\n".join(lines)


def format_quote(
    submission: QuoteSubmission,
    submitted_at: Optional[datetime] = None,
) -> str:
    s = submission
    dimensions = (
        f'{_text(s.length, NOT_AVAILABLE)}" L x '
        f'{_text(s.width, NOT_AVAILABLE)}" W x '
        f'{_text(s.height, NOT_AVAILABLE)}" H'
    )
    lines = [
        "QUOTE REQUEST DETAILS:",
        "======================",
        "",
        "PERSONAL INFORMATION:",
        f"- Name: {s.first_name} {s.last_name}",
        f"- Email: {s.email}",
        f"- Phone: {_text(s.phone, NOT_PROVIDED)}",
        f"- Preferred Contact: {_joined(s.preferred_contact)}",
        "",
        "PROJECT DETAILS:",
        f"- Service Type: {_text(s.service_type)}",
        f"- Dimensions: {dimensions}",
        f"- Intended Use: {_joined(s.intended_use)}",
        f"- Siding Material: {_joined(s.siding_material)}",
        f"- Window Type: {_text(s.window_type)}",
        f"- Number of Windows: {_text(s.number_of_windows)}",
        f"- Window Size: {_text(s.window_size)}",
        f"- Door Type: {_text(s.door_type)}",
        f"- Shelving: {_joined(s.shelving)}",
        f"- Work Bench: {_joined(s.workbench)}",
        f"- Preferred Installation Date: {_text(s.preferred_installation_date)}",
        f"- Budget: {_text(s.budget)}",
        "",
        "ADDITIONAL INFORMATION:",
        f"- How did you hear about us: {_text(s.how_did_you_hear)}",
        f"- Workshop Use: {_text(s.workshop_use)}",
        f"- Other Use: {_text(s.other_use)}",
        "",
        f"SUBMITTED AT: {format_timestamp(submitted_at)}",
    ]
    return "\n".join(lines)


def format_submission(
    submission: Submission,
    form_type: str,
    submitted_at: Optional[datetime] = None,
) -> str:
    """Pick the layout for form_type. Raises ValueError for unknown types."""
    if form_type == "quote":
        return format_quote(submission, submitted_at)
    if form_type == "contact":
        return format_contact(submission, submitted_at)
    raise ValueError(f"Unknown form type {form_type!r}")
