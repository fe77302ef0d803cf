"""Shared test fixtures and configuration."""
import asyncio
import json
import os
from typing import Callable, List, Optional
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing app
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("TWILIO_ACCOUNT_SID", "test-sid")
os.environ.setdefault("TWILIO_AUTH_TOKEN", "test-token")
os.environ.setdefault("TWILIO_PHONE_NUMBER", "+15550000000")

from screener.main import app
from screener.core.config import Settings
from screener.core.dependencies import (
    get_calendar_service,
    get_call_status_register,
    get_telephony_service,
    get_upstream_factory,
)
from screener.services.bridge.transport import MessageConnection
from screener.services.call_status.register import CallStatusRegister

SCHEDULE_SUMMARY = (
    "The current date and time is 2026-10-17 09:30 America/New_York\n"
    "Board meeting from 2026-10-17 10:00 to 2026-10-17 11:00\n"
)

_CLOSED = object()


class FakeConnection(MessageConnection):
    """In-memory message connection fed from a queue."""

    def __init__(
        self,
        incoming: tuple = (),
        close_after: bool = False,
        on_send: Optional[Callable[["FakeConnection", str], None]] = None,
        fail_send: bool = False,
        fail_receive: bool = False,
    ):
        self.sent: List[str] = []
        self.closed = False
        self.close_calls = 0
        self.on_send = on_send
        self.fail_send = fail_send
        self._incoming: asyncio.Queue = asyncio.Queue()
        for message in incoming:
            self.feed(message)
        if close_after:
            self.finish()
        if fail_receive:
            self.fail(ConnectionResetError("connection reset by peer"))

    def feed(self, message) -> None:
        """Queue a frame for the reader; dicts are sent as JSON."""
        if isinstance(message, dict):
            message = json.dumps(message)
        self._incoming.put_nowait(message)

    def finish(self) -> None:
        """End the stream of incoming frames, as if the peer closed."""
        self._incoming.put_nowait(_CLOSED)

    def fail(self, error: Exception) -> None:
        """Make the reader raise once earlier frames are consumed."""
        self._incoming.put_nowait(error)

    async def messages(self):
        while True:
            message = await self._incoming.get()
            if message is _CLOSED:
                return
            if isinstance(message, Exception):
                raise message
            yield message

    async def send(self, message: str) -> None:
        if self.fail_send:
            raise ConnectionError("send failed")
        if self.closed:
            raise RuntimeError("connection is closed")
        self.sent.append(message)
        if self.on_send:
            self.on_send(self, message)

    async def close(self) -> None:
        self.close_calls += 1
        if self.closed:
            return
        self.closed = True
        self.finish()

    def sent_json(self) -> list:
        return [json.loads(message) for message in self.sent]


@pytest.fixture
def make_connection():
    """Factory for fake message connections."""
    return FakeConnection


@pytest.fixture
def test_settings():
    """Override settings for testing."""
    return Settings(
        openai_api_key="test-key",
        twilio_account_sid="test-sid",
        twilio_auth_token="test-token",
        twilio_phone_number="+15550000000",
        principal_name="Harvey",
        principal_phone_number="+15550001111",
        scheduling_url="https://cal.example.com/harvey",
        stream_url="wss://screener.example.com/ws",
        tool_grace_period_seconds=0.0,
        environment="development",
    )


@pytest.fixture
def register():
    """Fresh call status register."""
    return CallStatusRegister()


@pytest.fixture
def mock_telephony():
    """Mock telephony service."""
    telephony = Mock()
    telephony.place_call = AsyncMock(return_value="CA123")
    telephony.transfer = AsyncMock(return_value=None)
    telephony.end = AsyncMock(return_value=None)
    telephony.lookup_counterparty_number = AsyncMock(return_value="+15551234567")
    telephony.send_text = AsyncMock(return_value="SM123")
    telephony.send_scheduling_link = AsyncMock(return_value="SM123")
    return telephony


@pytest.fixture
def mock_calendar():
    """Mock calendar service returning a fixed schedule."""
    calendar = Mock()
    calendar.today_schedule_summary = AsyncMock(return_value=SCHEDULE_SUMMARY)
    return calendar


@pytest.fixture
def eventually():
    """Wait until a condition holds, failing after a timeout."""
    async def _eventually(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("condition not met in time")
            await asyncio.sleep(0.005)
    return _eventually


@pytest.fixture
def upstream_connections():
    """Upstream connections opened by the app during a test."""
    return []


@pytest.fixture
def test_client(
    register, mock_telephony, mock_calendar, upstream_connections, test_settings, monkeypatch
):
    """Create FastAPI test client with overrides."""

    def _echo_audio(connection: FakeConnection, message: str) -> None:
        # Answer every audio append with a fixed agent audio delta
        if json.loads(message).get("type") == "input_audio_buffer.append":
            connection.feed({"type": "response.audio.delta", "delta": "AAAA"})

    async def _open_upstream():
        connection = FakeConnection(on_send=_echo_audio)
        upstream_connections.append(connection)
        return connection

    app.dependency_overrides[get_call_status_register] = lambda: register
    app.dependency_overrides[get_telephony_service] = lambda: mock_telephony
    app.dependency_overrides[get_calendar_service] = lambda: mock_calendar
    app.dependency_overrides[get_upstream_factory] = lambda: _open_upstream

    # Override settings in modules that use it
    monkeypatch.setattr("screener.core.config.settings", test_settings)

    client = TestClient(app)

    yield client

    # Clear overrides
    app.dependency_overrides.clear()
