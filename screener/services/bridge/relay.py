"""Bidirectional audio relay between Twilio and the voice agent."""
import logging
from typing import Callable, Optional

from screener.core.exceptions import MalformedFrameError
from screener.services.bridge.messages import (
    AudioAppendMessage,
    AudioDeltaEvent,
    ErrorEvent,
    FunctionCallDoneEvent,
    MediaEvent,
    MediaFrame,
    OutboundMedia,
    SessionLifecycleEvent,
    StartEvent,
    StopEvent,
    encode,
    parse_inbound,
    parse_upstream,
)
from screener.services.bridge.session import CallSession
from screener.services.bridge.transport import MessageConnection

logger = logging.getLogger(__name__)


class AudioRelay:
    """
    Translates frames between the caller's media stream and the agent.

    The relay only moves audio and records stream identifiers on the
    session. Completed tool calls are handed to ``on_tool_call``.
    """

    def __init__(
        self,
        session: CallSession,
        inbound: MessageConnection,
        upstream: MessageConnection,
        on_tool_call: Callable[[Optional[str]], object],
    ):
        self.session = session
        self.inbound = inbound
        self.upstream = upstream
        self.on_tool_call = on_tool_call

    async def relay_inbound(self, raw: str) -> None:
        """Handle one frame from the Twilio media stream."""
        try:
            event = parse_inbound(raw)
        except MalformedFrameError as e:
            logger.error(
                f"[RELAY] Dropping malformed Twilio frame - Session: {self.session.session_id}, "
                f"Error: {e}"
            )
            return

        if isinstance(event, StartEvent):
            if self.session.record_start(event.start.call_sid, event.resolved_stream_sid):
                logger.info(
                    f"[RELAY] Call started - CallSid: {self.session.call_sid}, "
                    f"StreamSid: {self.session.stream_sid}"
                )
        elif isinstance(event, MediaEvent):
            if event.media.payload:
                await self.upstream.send(encode(AudioAppendMessage(audio=event.media.payload)))
        elif isinstance(event, StopEvent):
            logger.info(f"[RELAY] Media stream stopped - CallSid: {self.session.call_sid}")
        elif event is not None:
            logger.debug(f"[RELAY] Ignoring Twilio {event.event} event")

    async def relay_upstream(self, raw: str) -> None:
        """Handle one event from the voice agent."""
        try:
            event = parse_upstream(raw)
        except MalformedFrameError as e:
            logger.error(
                f"[RELAY] Dropping malformed agent event - Session: {self.session.session_id}, "
                f"Error: {e}"
            )
            return

        if isinstance(event, AudioDeltaEvent):
            await self._send_to_caller(event.delta)
        elif isinstance(event, FunctionCallDoneEvent):
            logger.info(
                f"[RELAY] Agent requested tool '{event.name}' - CallSid: {self.session.call_sid}"
            )
            self.on_tool_call(event.name)
        elif isinstance(event, ErrorEvent):
            logger.error(
                f"[RELAY] Agent reported an error - CallSid: {self.session.call_sid}, "
                f"Error: {event.error}"
            )
        elif isinstance(event, SessionLifecycleEvent):
            logger.debug(f"[RELAY] Agent session event: {event.type}")

    async def _send_to_caller(self, payload: str) -> None:
        if not payload:
            return
        if not self.session.stream_sid:
            logger.debug(
                f"[RELAY] Dropping agent audio before stream start - Session: {self.session.session_id}"
            )
            return
        frame = MediaFrame(stream_sid=self.session.stream_sid, media=OutboundMedia(payload=payload))
        await self.inbound.send(encode(frame))
