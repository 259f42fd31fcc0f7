"""
Provider-agnostic outbound email model.

The dispatcher builds one of these per submission; senders in
services.transport are the only code that turns it into SMTP/MIME.
"""

from typing import Optional
from pydantic import BaseModel


class EmailMessage(BaseModel):
    """A single plain-text notification addressed to the admin inbox."""

    sender: str
    recipient: str
    subject: str
    body: str
    reply_to: Optional[str] = None      # the submitter, so "Reply" goes to them
    headers: dict[str, str] = {}


class SendReceipt(BaseModel):
    """What a sender reports back after handing a message to the mail service."""

    accepted: bool
    message_id: Optional[str] = None
    transport: str                      # "smtp" | "stand-in"
