"""
Form Mail Backend API
FastAPI application that turns website contact and quote forms into email
notifications for the admin inbox.

Run locally:
    cd backend && uvicorn formmail.main:app --reload --port 5001
"""

import logging
import time
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from formmail.config import Settings, load_settings
from formmail.routers import forms
from formmail.services.dispatcher import Dispatcher
from formmail.services.formatter import format_timestamp
from formmail.services.transport import transport_mode

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

# Request log lines longer than this are cut with an ellipsis
_MAX_LOG_LINE = 80


def create_app(settings: Optional[Settings] = None, dispatcher: Optional[Dispatcher] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Settings are resolved once here and shared, together with a single
    Dispatcher, through app.state. Tests pass their own settings and/or
    dispatcher instead of touching the environment.
    """
    settings = settings or load_settings()

    app = FastAPI(
        title="Form Mail API",
        description="Contact and quote form submissions delivered by email",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.dispatcher = dispatcher or Dispatcher(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_api_requests(request: Request, call_next):
        """
        Log one line per /api request: method, path, status, duration and,
        for JSON responses, the response body.
        """
        start = time.perf_counter()
        response = await call_next(request)
        path = request.url.path
        if not path.startswith("/api"):
            return response

        duration_ms = int((time.perf_counter() - start) * 1000)
        line = f"{request.method} {path} {response.status_code} in {duration_ms}ms"

        if response.headers.get("content-type", "").startswith("application/json"):
            # The body iterator can only be consumed once, so rebuild the response
            body = b"".join([chunk async for chunk in response.body_iterator])
            line += f" :: {body.decode('utf-8', errors='replace')}"
            response = Response(
                content=body,
                status_code=response.status_code,
                headers=dict(response.headers),
                media_type=response.media_type,
            )

        if len(line) > _MAX_LOG_LINE:
            line = line[: _MAX_LOG_LINE - 1] + "…"
        logger.info(line)
        return response

    app.include_router(forms.router, prefix="/api", tags=["forms"])

    @app.get("/api/health")
    async def health():
        return {
            "status": "healthy",
            "timestamp": format_timestamp(),
            "environment": settings.environment,
        }

    @app.on_event("startup")
    async def log_startup() -> None:
        """
        Log where the API is listening and which mail transport is active.

        A production deployment without credentials still starts (so health
        checks answer), but every dispatch will fail until it is fixed.
        """
        mode = transport_mode(settings)
        logger.info(
            "Form Mail API running at http://localhost:%s (environment=%s, transport=%s)",
            settings.port,
            settings.environment,
            mode,
        )
        if mode == "misconfigured":
            logger.error(
                "GMAIL_USER / GMAIL_APP_PASSWORD are required in production — "
                "form submissions will fail"
            )

    @app.on_event("shutdown")
    async def close_transport() -> None:
        app.state.dispatcher.close()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
