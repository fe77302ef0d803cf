"""Unit tests for the HTTP and websocket API."""
import pytest

from screener.core.exceptions import TelephonyError
from screener.services.call_status.phases import CallPhase


def test_health(test_client):
    response = test_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestCallStatus:
    """Test the call status endpoint."""

    def test_idle(self, test_client):
        response = test_client.get("/api/calls/status")

        assert response.status_code == 200
        assert response.json() == {"call_status": "idle", "active_sessions": []}

    def test_active_session(self, test_client, register):
        """Test the most recently opened session is reported."""
        register.open("s1")
        register.open("s2")
        register.update("s2", CallPhase.TRANSFERRED)

        data = test_client.get("/api/calls/status").json()

        assert data["call_status"] == "transferred"
        assert data["active_sessions"] == [
            {"session_id": "s1", "call_status": "in_progress"},
            {"session_id": "s2", "call_status": "transferred"},
        ]


class TestOutboundCall:
    """Test placing outbound calls."""

    def test_success(self, test_client, mock_telephony):
        response = test_client.post("/api/calls/outbound", json={"phone_number": "+15551234567"})

        assert response.status_code == 200
        assert response.json() == {
            "message": "Call initiated! Call SID: CA123",
            "twilio_call_sid": "CA123",
        }
        mock_telephony.place_call.assert_awaited_once_with(
            "+15551234567", "wss://screener.example.com/ws"
        )

    @pytest.mark.parametrize("body", [{}, {"phone_number": ""}])
    def test_missing_phone_number(self, test_client, mock_telephony, body):
        response = test_client.post("/api/calls/outbound", json=body)

        assert response.status_code == 422
        mock_telephony.place_call.assert_not_awaited()

    def test_stream_url_not_configured(self, test_client, test_settings, mock_telephony, monkeypatch):
        monkeypatch.setattr(
            "screener.core.config.settings",
            test_settings.model_copy(update={"stream_url": None}),
        )

        response = test_client.post("/api/calls/outbound", json={"phone_number": "+15551234567"})

        assert response.status_code == 500
        assert "STREAM_URL" in response.json()["detail"]
        mock_telephony.place_call.assert_not_awaited()

    def test_provider_error(self, test_client, mock_telephony):
        mock_telephony.place_call.side_effect = TelephonyError("place_call", "invalid number")

        response = test_client.post("/api/calls/outbound", json={"phone_number": "+15551234567"})

        assert response.status_code == 502
        assert response.json()["detail"] == "Failed to place outbound call"


class TestInboundCall:
    """Test the incoming call webhook."""

    def test_twiml_response(self, test_client, register):
        response = test_client.post(
            "/api/calls/inbound",
            data={"CallSid": "CA1", "From": "+15551234567", "To": "+15550000000"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/xml")
        assert "<Connect>" in response.text
        assert '<Stream url="wss://screener.example.com/ws"' in response.text
        assert register.snapshot() == {}

    def test_missing_call_sid(self, test_client):
        response = test_client.post("/api/calls/inbound", data={"From": "+15551234567"})

        assert response.status_code == 422


class TestMediaStream:
    """Test the media stream websocket end to end."""

    def test_audio_relayed_both_ways(self, test_client, upstream_connections, mock_calendar):
        with test_client.websocket_connect("/ws") as websocket:
            websocket.send_json({"event": "connected", "protocol": "Call", "version": "1.0.0"})
            websocket.send_json(
                {"event": "start", "streamSid": "SS1", "start": {"callSid": "CA1", "streamSid": "SS1"}}
            )
            websocket.send_json({"event": "media", "streamSid": "SS1", "media": {"payload": "XYZ"}})

            frame = websocket.receive_json()

        assert frame == {"event": "media", "streamSid": "SS1", "media": {"payload": "AAAA"}}
        sent = upstream_connections[0].sent_json()
        assert sent[0]["type"] == "session.update"
        assert sent[0]["session"]["input_audio_format"] == "g711_ulaw"
        assert sent[1] == {"type": "input_audio_buffer.append", "audio": "XYZ"}
        mock_calendar.today_schedule_summary.assert_awaited_once()

    def test_binary_frames_do_not_end_session(self, test_client, upstream_connections):
        """Test binary and undecodable frames are dropped and later audio still flows."""
        with test_client.websocket_connect("/ws") as websocket:
            websocket.send_json(
                {"event": "start", "streamSid": "SS1", "start": {"callSid": "CA1"}}
            )
            websocket.send_bytes(b"\x00\x01garbage")
            websocket.send_bytes(b"\xff\xfe\xfd")
            websocket.send_json({"event": "media", "streamSid": "SS1", "media": {"payload": "XYZ"}})

            frame = websocket.receive_json()
            upstream = upstream_connections[0]
            assert not upstream.closed

        assert frame == {"event": "media", "streamSid": "SS1", "media": {"payload": "AAAA"}}
        assert [message["type"] for message in upstream.sent_json()] == [
            "session.update",
            "input_audio_buffer.append",
        ]


class TestCors:
    """Test the cross-origin policy."""

    def test_preflight_allows_origin(self, test_client):
        response = test_client.options(
            "/api/calls/outbound",
            headers={
                "Origin": "https://dashboard.example.com",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "https://dashboard.example.com"
        assert response.headers["access-control-allow-credentials"] == "true"

    def test_any_origin_outside_production(self, test_settings):
        assert test_settings.cors_origins == ["*"]

    def test_production_restricted_to_frontend(self, test_settings):
        settings = test_settings.model_copy(
            update={"environment": "production", "frontend_url": "https://app.example.com"}
        )

        assert settings.cors_origins == ["https://app.example.com"]

    def test_production_without_frontend(self, test_settings):
        settings = test_settings.model_copy(update={"environment": "production"})

        assert settings.cors_origins == []
