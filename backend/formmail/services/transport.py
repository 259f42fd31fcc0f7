"""
Mail transport layer.

This is the only module that knows about SMTP. The dispatcher works with the
MailSender interface and never learns which implementation it was given.

Implementations:
  LiveSender            — pooled SMTP client (Gmail by default)
  LoggingStandInSender  — logs the intended message and reports success;
                          used outside production when no credentials are set

Selection rules (select_transport):
  credentials present               → LiveSender
  no credentials, production        → ConfigurationError
  no credentials, any other env     → LoggingStandInSender

Pool limits match what the Gmail relay tolerates: at most 5 concurrent
connections, at most 100 messages per connection before it is recycled, and
at most 14 messages per second overall.
"""

import asyncio
import logging
import smtplib
import ssl
import threading
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from email.message import EmailMessage as MimeMessage
from email.utils import formatdate, make_msgid
from typing import Callable, Optional

from formmail.config import Settings
from formmail.errors import ConfigurationError, TransportError
from formmail.models.outbound_email import EmailMessage, SendReceipt

logger = logging.getLogger(__name__)

MAX_CONNECTIONS = 5
MAX_MESSAGES_PER_CONNECTION = 100
RATE_LIMIT_PER_SECOND = 14

# Implicit-TLS SMTP port; anything else is upgraded with STARTTLS
SMTPS_PORT = 465

HIGH_PRIORITY_HEADERS = {
    "X-Priority": "1",
    "X-MSMail-Priority": "High",
    "Importance": "high",
}


# ---------------------------------------------------------------------------
# Sender interface
# ---------------------------------------------------------------------------

class MailSender(ABC):
    """Anything that can deliver an EmailMessage."""

    name: str = "abstract"

    @abstractmethod
    async def send(self, message: EmailMessage) -> SendReceipt:
        """Deliver message. Raises TransportError when the mail service fails."""

    def close(self) -> None:
        """Release any held resources. Safe to call more than once."""


# ---------------------------------------------------------------------------
# MIME / TLS helpers
# ---------------------------------------------------------------------------

def build_mime(message: EmailMessage) -> MimeMessage:
    """Render an EmailMessage as a text/plain UTF-8 MIME message."""
    mime = MimeMessage()
    mime["From"] = message.sender
    mime["To"] = message.recipient
    mime["Subject"] = message.subject
    if message.reply_to:
        mime["Reply-To"] = message.reply_to
    mime["Date"] = formatdate(usegmt=True)
    mime["Message-ID"] = make_msgid(domain=message.sender.rpartition("@")[2] or None)
    for name, value in message.headers.items():
        mime[name] = value
    mime.set_content(message.body)
    return mime


def relaxed_tls_context() -> ssl.SSLContext:
    """TLS context that skips hostname and certificate verification."""
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


# ---------------------------------------------------------------------------
# Rate limiting and connection pooling
# ---------------------------------------------------------------------------

class RateLimiter:
    """
    Sliding-window limiter: at most `limit` acquisitions in any `window`
    seconds. Blocks the calling thread until a slot is free.
    """

    def __init__(
        self,
        limit: int = RATE_LIMIT_PER_SECOND,
        window: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._limit = limit
        self._window = window
        self._clock = clock
        self._sleep = sleep
        self._recent: deque = deque(maxlen=limit)
        self._lock = threading.Lock()

    def acquire(self) -> float:
        """Take a slot; returns how long the caller was made to wait."""
        with self._lock:
            now = self._clock()
            waited = 0.0
            if len(self._recent) == self._limit:
                wait = self._window - (now - self._recent[0])
                if wait > 0:
                    self._sleep(wait)
                    waited = wait
                    now = self._clock()
            self._recent.append(now)
            return waited


@dataclass
class _PooledConnection:
    client: smtplib.SMTP
    sent: int = 0


class SmtpPool:
    """
    Thread-safe pool of authenticated SMTP connections.

    A bounded semaphore caps concurrent connections; idle connections are
    reused (after a NOOP liveness check) until they have carried
    max_messages messages, then closed.
    """

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        max_connections: int = MAX_CONNECTIONS,
        max_messages: int = MAX_MESSAGES_PER_CONNECTION,
        connect: Optional[Callable[[], smtplib.SMTP]] = None,
    ):
        self.host = host
        self.port = port
        self._user = user
        self._password = password
        self.max_connections = max_connections
        self.max_messages = max_messages
        self._connect = connect or self._open
        self._slots = threading.BoundedSemaphore(max_connections)
        self._idle: list[_PooledConnection] = []
        self._lock = threading.Lock()

    def _open(self) -> smtplib.SMTP:
        context = relaxed_tls_context()
        logger.info("Opening SMTP connection to %s:%s", self.host, self.port)
        if self.port == SMTPS_PORT:
            client = smtplib.SMTP_SSL(self.host, self.port, context=context)
        else:
            client = smtplib.SMTP(self.host, self.port)
        try:
            if self.port != SMTPS_PORT:
                client.starttls(context=context)
            client.login(self._user, self._password)
        except Exception:
            client.close()
            raise
        return client

    @staticmethod
    def _is_alive(conn: _PooledConnection) -> bool:
        try:
            return conn.client.noop()[0] == 250
        except (smtplib.SMTPException, OSError):
            return False

    @staticmethod
    def _discard(conn: _PooledConnection) -> None:
        try:
            conn.client.quit()
        except (smtplib.SMTPException, OSError):
            conn.client.close()

    def _checkout(self) -> _PooledConnection:
        while True:
            with self._lock:
                conn = self._idle.pop() if self._idle else None
            if conn is None:
                return _PooledConnection(client=self._connect())
            if self._is_alive(conn):
                return conn
            logger.info("Dropping stale SMTP connection after %d message(s)", conn.sent)
            self._discard(conn)

    def _checkin(self, conn: _PooledConnection) -> None:
        if conn.sent >= self.max_messages:
            logger.info("Recycling SMTP connection after %d messages", conn.sent)
            self._discard(conn)
            return
        with self._lock:
            self._idle.append(conn)

    @property
    def idle_count(self) -> int:
        with self._lock:
            return len(self._idle)

    def send(self, mime: MimeMessage) -> None:
        """Send one message on a pooled connection. SMTP/socket errors propagate."""
        with self._slots:
            conn = self._checkout()
            try:
                conn.client.send_message(mime)
            except Exception:
                self._discard(conn)
                raise
            conn.sent += 1
            self._checkin(conn)

    def close(self) -> None:
        with self._lock:
            idle, self._idle = self._idle, []
        for conn in idle:
            self._discard(conn)


# ---------------------------------------------------------------------------
# Senders
# ---------------------------------------------------------------------------

class LiveSender(MailSender):
    """Delivers through SmtpPool; blocking SMTP work runs in a worker thread."""

    name = "smtp"

    def __init__(
        self,
        settings: Settings,
        pool: Optional[SmtpPool] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.pool = pool or SmtpPool(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.mail_user,
            password=settings.mail_password,
        )
        self.rate_limiter = rate_limiter or RateLimiter()

    def _send_blocking(self, mime: MimeMessage) -> None:
        waited = self.rate_limiter.acquire()
        if waited:
            logger.info("Rate limit reached — delayed send by %.3fs", waited)
        try:
            self.pool.send(mime)
        except smtplib.SMTPException as exc:
            raise TransportError(f"SMTP error: {exc}", exc) from exc
        except OSError as exc:
            raise TransportError(
                f"Connection failed to {self.pool.host}:{self.pool.port}: {exc}", exc
            ) from exc

    async def send(self, message: EmailMessage) -> SendReceipt:
        mime = build_mime(message)
        await asyncio.to_thread(self._send_blocking, mime)
        return SendReceipt(accepted=True, message_id=mime["Message-ID"], transport=self.name)

    def close(self) -> None:
        self.pool.close()


class LoggingStandInSender(MailSender):
    """Development sender: logs what would have been sent and always succeeds."""

    name = "stand-in"

    async def send(self, message: EmailMessage) -> SendReceipt:
        logger.info(
            "Development mode - email would be sent: to=%s subject=%r from=%s",
            message.recipient,
            message.subject,
            message.sender,
        )
        return SendReceipt(accepted=True, transport=self.name)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def select_transport(settings: Settings) -> MailSender:
    """
    Choose a sender for the given configuration.

    Raises ConfigurationError when running in production without
    credentials, so mail is never silently dropped there.
    """
    if settings.has_mail_credentials:
        logger.info(
            "Using SMTP transport %s:%s as %s",
            settings.smtp_host,
            settings.smtp_port,
            settings.mail_user,
        )
        return LiveSender(settings)

    if settings.is_production:
        raise ConfigurationError("Email credentials not configured for production")

    logger.warning(
        "GMAIL_USER / GMAIL_APP_PASSWORD not set — emails will be logged, not sent"
    )
    return LoggingStandInSender()


def transport_mode(settings: Settings) -> str:
    """Describe what select_transport() would pick, without building a sender."""
    if settings.has_mail_credentials:
        return LiveSender.name
    if settings.is_production:
        return "misconfigured"
    return LoggingStandInSender.name
