"""Message connections bridged by a call session."""
import logging
from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

import websockets
from fastapi import WebSocket
from starlette.websockets import WebSocketState

from screener.core.config import Settings, settings as default_settings
from screener.core.exceptions import ConfigurationError, UpstreamConnectionError

logger = logging.getLogger(__name__)


def _decode_frame(data: bytes, source: str) -> Optional[str]:
    """Decode a binary frame as UTF-8 text, or None if it is not valid text."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.error(f"[TRANSPORT] Dropping undecodable {source} frame: {e}")
        return None


class MessageConnection(ABC):
    """A duplex connection carrying text frames."""

    @abstractmethod
    def messages(self) -> AsyncIterator[str]:
        """Iterate over received frames until the connection closes."""
        pass

    @abstractmethod
    async def send(self, message: str) -> None:
        """Send one frame."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection. Closing twice is a no-op."""
        pass


class TwilioMediaConnection(MessageConnection):
    """Inbound Twilio media stream on an accepted FastAPI websocket."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._closed = False

    async def messages(self) -> AsyncIterator[str]:
        while True:
            message = await self.websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
            if message.get("text") is not None:
                yield message["text"]
            elif message.get("bytes") is not None:
                text = _decode_frame(message["bytes"], "media stream")
                if text is not None:
                    yield text

    async def send(self, message: str) -> None:
        await self.websocket.send_text(message)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if (
            self.websocket.client_state == WebSocketState.DISCONNECTED
            or self.websocket.application_state == WebSocketState.DISCONNECTED
        ):
            return
        try:
            await self.websocket.close()
        except RuntimeError as e:
            # Raced with the client closing its side
            logger.debug(f"[TRANSPORT] Media stream already closed: {e}")


class RealtimeConnection(MessageConnection):
    """Upstream OpenAI Realtime websocket."""

    def __init__(self, websocket):
        self.websocket = websocket

    @classmethod
    async def open(
        cls, url: str, api_key: Optional[str], timeout: float
    ) -> "RealtimeConnection":
        """
        Connect to the Realtime API.

        Raises:
            ConfigurationError: If no API key is configured
            UpstreamConnectionError: If the connection is refused or times out
        """
        if not api_key:
            raise ConfigurationError("Missing OpenAI API key")

        try:
            websocket = await websockets.connect(
                url,
                additional_headers={
                    "Authorization": f"Bearer {api_key}",
                    "OpenAI-Beta": "realtime=v1",
                },
                open_timeout=timeout,
            )
        except (OSError, TimeoutError, websockets.exceptions.WebSocketException) as e:
            raise UpstreamConnectionError(
                f"Could not connect to {url}: {type(e).__name__}: {e}"
            ) from e

        logger.info("[TRANSPORT] Connected to OpenAI Realtime API")
        return cls(websocket)

    async def messages(self) -> AsyncIterator[str]:
        async for message in self.websocket:
            if isinstance(message, bytes):
                message = _decode_frame(message, "voice agent")
                if message is None:
                    continue
            yield message

    async def send(self, message: str) -> None:
        await self.websocket.send(message)

    async def close(self) -> None:
        # websockets treats closing a closed connection as a no-op
        await self.websocket.close()


async def open_realtime_connection(settings: Optional[Settings] = None) -> RealtimeConnection:
    """Open an upstream connection using the configured endpoint."""
    settings = settings or default_settings
    return await RealtimeConnection.open(
        settings.openai_realtime_url,
        settings.openai_api_key,
        settings.upstream_connect_timeout_seconds,
    )
