"""Tests for the inbound call entry point and the call transfer tool."""

from src.core import deps
from src.core.exceptions import ConfigurationError, TelephonyError
from src.main import app
from src.stores.base import Table


def test_known_caller_gets_personal_greeting(client):
    response = client.post("/voice/incoming-call", data={"From": "+15551230001"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    twiml = response.text
    assert "<Connect>" in twiml
    assert 'id="aia_asst_test"' in twiml
    assert 'welcomeGreeting="Hi Ada, thanks for calling Owl Shoes, How can I help you?"' in twiml
    assert 'voice="en-US-Journey-O"' in twiml


def test_unknown_caller_gets_generic_greeting(client):
    response = client.post("/voice/incoming-call", data={"From": "+19999999999"})

    assert response.status_code == 200
    assert 'welcomeGreeting="Thanks for calling Owl Shoes, How can I help you?"' in response.text


def test_missing_caller_gets_generic_greeting(client):
    response = client.post("/voice/incoming-call", data={})

    assert response.status_code == 200
    assert 'welcomeGreeting="Thanks for calling Owl Shoes, How can I help you?"' in response.text


def test_store_failure_still_greets(client, store):
    store.fail_on.add(("select", Table.CUSTOMERS))

    response = client.post("/voice/incoming-call", data={"From": "+15551230001"})

    assert response.status_code == 200
    assert 'welcomeGreeting="Thanks for calling Owl Shoes, How can I help you?"' in response.text


def test_store_that_cannot_be_built_still_greets(client, monkeypatch):
    def broken_store(settings):
        raise ConfigurationError("Database configuration error. Set DATABASE_URL for the sql record store.")

    app.dependency_overrides.pop(deps.get_optional_record_store)
    monkeypatch.setattr(deps, "_record_store", None)
    monkeypatch.setattr(deps, "create_record_store", broken_store)

    response = client.post("/voice/incoming-call", data={"From": "+15551230001"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/xml")
    assert "<Connect>" in response.text
    assert 'welcomeGreeting="Thanks for calling Owl Shoes, How can I help you?"' in response.text


def test_send_to_flex_transfers_voice_session(client, twilio):
    response = client.get("/tools/send-to-flex", headers={"x-session-id": "voice:CA1234567890/conv-1"})

    assert response.status_code == 200
    assert response.json() == {"status": "success", "message": "Call forwarded"}
    assert twilio.transferred == ["CA1234567890"]


def test_send_to_flex_rejects_non_voice_session(client, twilio):
    response = client.get("/tools/send-to-flex", headers={"x-session-id": "webchat:abc/def"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "VAL_004"
    assert "Only voice sessions" in body["message"]
    assert twilio.transferred == []


def test_send_to_flex_requires_session_header(client):
    response = client.get("/tools/send-to-flex")

    assert response.status_code == 400


def test_send_to_flex_twilio_failure(client, twilio):
    twilio.error = TelephonyError("Failed to forward the call")

    response = client.get("/tools/send-to-flex", headers={"x-session-id": "voice:CA1/x"})

    assert response.status_code == 502
    assert response.json()["error"] == "UPS_002"


def test_transfer_twiml(twilio):
    twiml = twilio.build_transfer_twiml()

    assert "<Say>Escalating to a human agent</Say>" in twiml
    assert "<Dial>111-222-3333</Dial>" in twiml
