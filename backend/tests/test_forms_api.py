"""
HTTP tests for the form endpoints and the health check.

Each test builds its own app via create_app() with explicit Settings and a
Dispatcher wired to a fake sender, so nothing depends on the environment
and no email is ever sent.
"""

from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from formmail.config import Settings
from formmail.errors import TransportError
from formmail.main import create_app
from formmail.models.outbound_email import SendReceipt
from formmail.services.dispatcher import Dispatcher, DispatchResult, TRANSPORT_ERROR
from formmail.services.transport import MailSender


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class _RecordingSender(MailSender):
    name = "recording"

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.sent = []

    async def send(self, message):
        self.sent.append(message)
        if self.error is not None:
            raise self.error
        return SendReceipt(accepted=True, transport=self.name)


def _make_client(environment: str = "development", sender=None, dispatcher=None):
    settings = Settings(environment=environment)
    if dispatcher is None:
        dispatcher = Dispatcher(settings, sender=sender or _RecordingSender())
    app = create_app(settings, dispatcher)
    return TestClient(app, raise_server_exceptions=False)


CONTACT_BODY = {
    "firstName": "Jo",
    "lastName": "Lee",
    "email": "jo@x.com",
    "message": "Hello, I need a quote",
}

QUOTE_BODY = {
    "firstName": "Sam",
    "lastName": "Rivera",
    "email": "sam@shedbuyer.com",
    "phone": "555-0100",
    "length": "120",
    "width": "96",
    "height": "84",
    "sidingMaterial": ["Cedar", "Metal"],
    "budget": "$5,000",
}


# ===========================================================================
# POST /api/contact
# ===========================================================================

class TestContactEndpoint:

    def test_valid_contact_returns_200(self):
        sender = _RecordingSender()
        client = _make_client(sender=sender)

        response = client.post("/api/contact", json=CONTACT_BODY)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Contact form submitted successfully. We'll get back to you within 24 hours.",
        }
        assert len(sender.sent) == 1
        assert sender.sent[0].reply_to == "jo@x.com"

    def test_invalid_contact_returns_400_with_details(self):
        sender = _RecordingSender()
        client = _make_client(sender=sender)

        response = client.post(
            "/api/contact",
            json={"firstName": "", "lastName": "Lee", "email": "bad", "message": "hi"},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Validation failed"
        by_field = {d["path"][0]: d["message"] for d in body["details"]}
        assert by_field == {
            "firstName": "First name is required",
            "email": "Valid email is required",
            "message": "Message must be at least 10 characters",
        }
        assert sender.sent == []

    def test_malformed_json_returns_400(self):
        client = _make_client()

        response = client.post(
            "/api/contact",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    def test_empty_body_returns_400(self):
        response = _make_client().post("/api/contact")

        assert response.status_code == 400

    def test_transport_failure_returns_500(self):
        client = _make_client(sender=_RecordingSender(error=TransportError("SMTP error: 421")))

        response = client.post("/api/contact", json=CONTACT_BODY)

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Failed to send email. Please try again later.",
        }

    def test_production_without_credentials_returns_500(self):
        settings = Settings(environment="production")
        client = TestClient(create_app(settings), raise_server_exceptions=False)

        response = client.post("/api/contact", json=CONTACT_BODY)

        assert response.status_code == 500
        assert response.json()["success"] is False

    def test_unexpected_error_shows_raw_message_outside_production(self):
        dispatcher = Dispatcher(Settings())
        dispatcher.send = AsyncMock(side_effect=RuntimeError("dispatcher exploded"))
        client = _make_client(dispatcher=dispatcher)

        response = client.post("/api/contact", json=CONTACT_BODY)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "dispatcher exploded"}

    def test_unexpected_error_is_generic_in_production(self):
        dispatcher = Dispatcher(Settings(environment="production"))
        dispatcher.send = AsyncMock(side_effect=RuntimeError("secret detail"))
        client = _make_client(environment="production", dispatcher=dispatcher)

        response = client.post("/api/contact", json=CONTACT_BODY)

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}


# ===========================================================================
# POST /api/quote
# ===========================================================================

class TestQuoteEndpoint:

    def test_valid_quote_returns_200(self):
        sender = _RecordingSender()
        client = _make_client(sender=sender)

        response = client.post("/api/quote", json=QUOTE_BODY)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"].startswith("Quote request submitted successfully.")
        message = sender.sent[0]
        assert message.subject == "New Quote Request from Sam Rivera"
        assert '- Dimensions: 120" L x 96" W x 84" H' in message.body
        assert "- Siding Material: Cedar, Metal" in message.body

    def test_missing_names_returns_400(self):
        response = _make_client().post("/api/quote", json={"email": "sam@shedbuyer.com"})

        assert response.status_code == 400
        fields = sorted(d["path"][0] for d in response.json()["details"])
        assert fields == ["firstName", "lastName"]

    def test_list_field_with_wrong_type_returns_400(self):
        response = _make_client().post(
            "/api/quote", json={**QUOTE_BODY, "shelving": "Upper"}
        )

        assert response.status_code == 400
        assert response.json()["details"][0]["path"] == ["shelving"]

    def test_dispatch_failure_returns_500(self):
        dispatcher = Dispatcher(Settings())
        dispatcher.send = AsyncMock(
            return_value=DispatchResult(success=False, reason=TRANSPORT_ERROR, error="down")
        )
        client = _make_client(dispatcher=dispatcher)

        response = client.post("/api/quote", json=QUOTE_BODY)

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to send email. Please try again later."

    def test_development_without_credentials_succeeds_without_network(self):
        settings = Settings(environment="development")
        client = TestClient(create_app(settings))

        with patch("formmail.services.transport.smtplib") as mock_smtplib:
            response = client.post("/api/quote", json=QUOTE_BODY)

        assert response.status_code == 200
        assert mock_smtplib.mock_calls == []


# ===========================================================================
# GET /api/health
# ===========================================================================

class TestHealthEndpoint:

    @pytest.mark.parametrize("environment", ["development", "production"])
    def test_health_reports_environment(self, environment):
        response = _make_client(environment=environment).get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["environment"] == environment
        parsed = datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00"))
        assert parsed.tzinfo is not None

    def test_health_does_not_touch_the_dispatcher(self):
        dispatcher = Dispatcher(Settings())
        dispatcher.send = AsyncMock()
        _make_client(dispatcher=dispatcher).get("/api/health")

        dispatcher.send.assert_not_called()


# ===========================================================================
# Request logging
# ===========================================================================

class TestRequestLogging:

    def test_api_request_line_includes_json_body_and_is_truncated(self, caplog):
        caplog.set_level("INFO", logger="formmail.main")

        response = _make_client().get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        lines = [r.getMessage() for r in caplog.records if r.name == "formmail.main"]
        request_lines = [line for line in lines if line.startswith("GET /api/health 200 in")]
        assert len(request_lines) == 1
        assert ' :: {"status":"healthy"' in request_lines[0]
        assert len(request_lines[0]) <= 80
        assert request_lines[0].endswith("…")

    def test_non_api_requests_are_not_logged(self, caplog):
        caplog.set_level("INFO", logger="formmail.main")

        _make_client().get("/docs")

        lines = [r.getMessage() for r in caplog.records if r.name == "formmail.main"]
        assert not any(line.startswith("GET /docs") for line in lines)
