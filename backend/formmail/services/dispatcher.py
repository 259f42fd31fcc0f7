"""
Form notification dispatcher.

Runs the full pipeline for one submission:

  1. Re-validate against the schema for the form type
  2. Obtain a sender (selected once, then cached)
  3. Build the EmailMessage (subject + formatted report)
  4. Send with high-priority headers
  5. Classify the outcome into a DispatchResult

Dispatcher.send() never raises. Every failure is logged with the form type,
the submitter's email and a timestamp, and returned as a failed
DispatchResult whose `reason` says which stage failed.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from pydantic import BaseModel

from formmail.config import Settings
from formmail.errors import ConfigurationError, TransportError
from formmail.models.outbound_email import EmailMessage
from formmail.models.submission import FieldError, FormType, Submission
from formmail.services.formatter import GENERAL_INQUIRY, format_submission, format_timestamp
from formmail.services.transport import HIGH_PRIORITY_HEADERS, MailSender, select_transport
from formmail.services.validator import validate

logger = logging.getLogger(__name__)

VALIDATION_FAILED = "validation_failed"
CONFIGURATION_ERROR = "configuration_error"
TRANSPORT_ERROR = "transport_error"
UNEXPECTED_ERROR = "unexpected_error"


@dataclass
class DispatchResult:
    """Outcome of one dispatch. Truthy iff the message was handed off."""
    success: bool
    reason: Optional[str] = None       # one of the *_ERROR / VALIDATION_FAILED constants
    error: Optional[str] = None
    errors: List[FieldError] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.success


def _single_line(value: str) -> str:
    """Collapse runs of whitespace, line breaks included, to single spaces."""
    return " ".join(value.split())


def build_subject(submission: Submission, form_type: FormType) -> str:
    # Mail headers may not carry CR/LF
    if form_type == "quote":
        name = _single_line(f"{submission.first_name} {submission.last_name}")
        return f"New Quote Request from {name}"
    subject = _single_line(submission.subject or "") or GENERAL_INQUIRY
    return f"New Contact Form: {subject}"


def build_message(
    submission: Submission,
    form_type: FormType,
    settings: Settings,
    submitted_at: Optional[datetime] = None,
) -> EmailMessage:
    return EmailMessage(
        sender=settings.sender_address,
        recipient=settings.admin_email,
        subject=build_subject(submission, form_type),
        body=format_submission(submission, form_type, submitted_at),
        reply_to=submission.email,
        headers=dict(HIGH_PRIORITY_HEADERS),
    )


def _submitter_email(raw: Any) -> Optional[str]:
    if isinstance(raw, BaseModel):
        return getattr(raw, "email", None)
    if isinstance(raw, dict):
        return raw.get("email")
    return None


class Dispatcher:
    """
    Sends form notifications through a MailSender.

    The sender is either injected or produced by transport_factory on the
    first dispatch and reused for the life of the process. A
    ConfigurationError from the factory leaves nothing cached, so every
    later dispatch fails the same way until the environment is fixed.
    """

    def __init__(
        self,
        settings: Settings,
        sender: Optional[MailSender] = None,
        transport_factory: Callable[[Settings], MailSender] = select_transport,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.settings = settings
        self._sender = sender
        self._transport_factory = transport_factory
        self._clock = clock
        self._lock = threading.Lock()

    def get_sender(self) -> MailSender:
        """Return the cached sender, selecting one on first use."""
        if self._sender is None:
            with self._lock:
                if self._sender is None:
                    self._sender = self._transport_factory(self.settings)
        return self._sender

    def close(self) -> None:
        if self._sender is not None:
            self._sender.close()

    def _fail(
        self,
        reason: str,
        error: str,
        form_type: FormType,
        raw: Any,
        errors: Optional[List[FieldError]] = None,
    ) -> DispatchResult:
        logger.error(
            "Error sending email: reason=%s error=%s form_type=%s email=%s timestamp=%s",
            reason,
            error,
            form_type,
            _submitter_email(raw),
            format_timestamp(self._clock()),
        )
        return DispatchResult(success=False, reason=reason, error=error, errors=errors or [])

    async def send(self, submission: Any, form_type: FormType) -> DispatchResult:
        """
        Validate, format and send one submission.

        `submission` may be a typed model or the raw request dict; either way
        it is validated again here rather than trusted.
        """
        try:
            raw = (
                submission.model_dump(by_alias=True)
                if isinstance(submission, BaseModel)
                else submission
            )
            result = validate(raw, form_type)
            if not result.ok:
                summary = "; ".join(
                    f"{'.'.join(str(p) for p in e.path) or '<body>'}: {e.message}"
                    for e in result.errors
                )
                return self._fail(
                    VALIDATION_FAILED, summary, form_type, submission, result.errors
                )

            sender = self.get_sender()
            message = build_message(result.submission, form_type, self.settings, self._clock())
            receipt = await sender.send(message)

            if not receipt.accepted:
                return self._fail(
                    TRANSPORT_ERROR, "Mail service did not accept the message",
                    form_type, submission,
                )

            if self.settings.is_production:
                logger.info("Email sent successfully to: %s", message.recipient)
            else:
                logger.info("Email sent successfully (%s)", receipt.transport)
            return DispatchResult(success=True)

        except ConfigurationError as exc:
            return self._fail(CONFIGURATION_ERROR, str(exc), form_type, submission)
        except TransportError as exc:
            return self._fail(TRANSPORT_ERROR, str(exc), form_type, submission)
        except Exception as exc:
            return self._fail(UNEXPECTED_ERROR, str(exc) or type(exc).__name__, form_type, submission)
