"""
Form submission API endpoints.

Endpoints:
  POST /contact  — general contact inquiry
  POST /quote    — custom shed quote request

Both endpoints validate the body themselves (so a bad body is a 400 with our
own error shape rather than FastAPI's 422), hand the typed submission to the
Dispatcher, and translate its result:

  validation failure  → 400 {success: false, error: "Validation failed", details}
  dispatch failure    → 500 {success: false, error: "Failed to send email..."}
  success             → 200 {success: true, message}

Anything unexpected is caught here too and turned into a 500 whose message is
the raw error outside production and a generic string in production.
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from formmail.config import Settings
from formmail.models.submission import FieldError
from formmail.services.dispatcher import Dispatcher
from formmail.services.formatter import format_timestamp
from formmail.services.validator import validate

logger = logging.getLogger(__name__)

router = APIRouter()

CONTACT_SUCCESS_MESSAGE = (
    "Contact form submitted successfully. We'll get back to you within 24 hours."
)
QUOTE_SUCCESS_MESSAGE = (
    "Quote request submitted successfully. "
    "We'll contact you within 24 hours to discuss your project."
)
SEND_FAILED_MESSAGE = "Failed to send email. Please try again later."
INTERNAL_ERROR_MESSAGE = "Internal server error"


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_dispatcher(request: Request) -> Dispatcher:
    return request.app.state.dispatcher


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

async def _read_json(request: Request):
    """
    Return the decoded JSON body, or None if it is missing or malformed.

    None is then rejected by the validator like any other non-object body.
    """
    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None


def _validation_failed(errors: list[FieldError]) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "Validation failed",
            "details": [e.model_dump() for e in errors],
        },
    )


async def _handle_submission(
    request: Request,
    form_type: str,
    success_message: str,
    dispatcher: Dispatcher,
    settings: Settings,
) -> JSONResponse:
    body = None
    try:
        body = await _read_json(request)
        result = validate(body, form_type)
        if not result.ok:
            return _validation_failed(result.errors)

        outcome = await dispatcher.send(result.submission, form_type)
        if outcome:
            return JSONResponse(content={"success": True, "message": success_message})

        return JSONResponse(
            status_code=500,
            content={"success": False, "error": SEND_FAILED_MESSAGE},
        )
    except Exception as exc:
        error_message = str(exc) or type(exc).__name__
        logger.exception(
            "%s form error: error=%s body=%s timestamp=%s",
            form_type.capitalize(),
            error_message,
            body,
            format_timestamp(),
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": INTERNAL_ERROR_MESSAGE if settings.is_production else error_message,
            },
        )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("/contact")
async def submit_contact(
    request: Request,
    dispatcher: Dispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """Validate a contact inquiry and email it to the admin inbox."""
    return await _handle_submission(
        request, "contact", CONTACT_SUCCESS_MESSAGE, dispatcher, settings
    )


@router.post("/quote")
async def submit_quote(
    request: Request,
    dispatcher: Dispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """Validate a quote request and email it to the admin inbox."""
    return await _handle_submission(
        request, "quote", QUOTE_SUCCESS_MESSAGE, dispatcher, settings
    )
