"""
Application configuration.

Settings are read from the environment once at process start (after loading
a .env file if present) and passed explicitly into the transport selector and
the dispatcher. Nothing below the HTTP layer reads os.environ directly.

Environment variables
---------------------
GMAIL_USER          Mail account identity used to authenticate with SMTP.
GMAIL_APP_PASSWORD  Mail account credential (Gmail app password).
MAIL_FROM           Optional "From" override. Defaults to GMAIL_USER, then
                    to noreply@instashed.com.
ADMIN_EMAIL         Recipient of every form notification.
SMTP_HOST           SMTP server (default: smtp.gmail.com).
SMTP_PORT           SMTP port (default: 465, implicit TLS). Any other port
                    uses STARTTLS.
ENVIRONMENT         Deployment tag, e.g. "development" or "production".
                    NODE_ENV is honoured as a fallback.
ALLOWED_ORIGINS     Comma-separated list of CORS origins.
CORS_ORIGIN         Single production origin, used only when ALLOWED_ORIGINS
                    is unset in production.
PORT                Listening port for the uvicorn entry point.
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_FROM_ADDRESS = "noreply@instashed.com"
DEFAULT_ADMIN_EMAIL = "admin@instashed.com"
DEFAULT_SMTP_HOST = "smtp.gmail.com"
DEFAULT_SMTP_PORT = 465
DEFAULT_PORT = 5001

# Vite dev servers
_DEV_ORIGINS = ("http://localhost:5173", "http://localhost:5174")
_PRODUCTION_PLACEHOLDER_ORIGIN = "https://instashed.com"


@dataclass(frozen=True)
class Settings:
    """Immutable process configuration."""

    environment: str = "development"
    mail_user: Optional[str] = None
    mail_password: Optional[str] = None
    mail_from: Optional[str] = None
    admin_email: str = DEFAULT_ADMIN_EMAIL
    smtp_host: str = DEFAULT_SMTP_HOST
    smtp_port: int = DEFAULT_SMTP_PORT
    allowed_origins: Tuple[str, ...] = _DEV_ORIGINS
    port: int = DEFAULT_PORT

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def has_mail_credentials(self) -> bool:
        """True only when both the account identity and its credential are set."""
        return bool(self.mail_user and self.mail_password)

    @property
    def sender_address(self) -> str:
        return self.mail_from or self.mail_user or DEFAULT_FROM_ADDRESS


def _parse_origins(raw: str) -> Tuple[str, ...]:
    """Split a comma-separated origin list, dropping blanks and duplicates."""
    seen: set = set()
    origins = []
    for origin in raw.split(","):
        origin = origin.strip()
        if origin and origin not in seen:
            seen.add(origin)
            origins.append(origin)
    return tuple(origins)


def _parse_int(raw: Optional[str], default: int, name: str) -> int:
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default


def settings_from_env(env: Mapping[str, str]) -> Settings:
    """
    Build Settings from a mapping of environment variables.

    Kept separate from load_settings() so tests can pass a plain dict
    instead of mutating os.environ.
    """
    environment = (
        env.get("ENVIRONMENT") or env.get("NODE_ENV") or "development"
    ).strip().lower()

    origins = _parse_origins(env.get("ALLOWED_ORIGINS", ""))
    if not origins:
        if environment == "production":
            fallback = (env.get("CORS_ORIGIN") or "").strip() or _PRODUCTION_PLACEHOLDER_ORIGIN
            logger.warning(
                "ALLOWED_ORIGINS is not set in production — falling back to %s",
                fallback,
            )
            origins = (fallback,)
        else:
            origins = _DEV_ORIGINS

    return Settings(
        environment=environment,
        mail_user=env.get("GMAIL_USER") or None,
        mail_password=env.get("GMAIL_APP_PASSWORD") or None,
        mail_from=env.get("MAIL_FROM") or None,
        admin_email=env.get("ADMIN_EMAIL") or DEFAULT_ADMIN_EMAIL,
        smtp_host=env.get("SMTP_HOST") or DEFAULT_SMTP_HOST,
        smtp_port=_parse_int(env.get("SMTP_PORT"), DEFAULT_SMTP_PORT, "SMTP_PORT"),
        allowed_origins=origins,
        port=_parse_int(env.get("PORT"), DEFAULT_PORT, "PORT"),
    )


def load_settings() -> Settings:
    """Load .env (without overriding real env vars) and read Settings."""
    load_dotenv()
    return settings_from_env(os.environ)
