"""Telephony service backed by the Twilio REST API."""
import asyncio
import logging
from typing import Optional

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from screener.core.config import Settings, settings as default_settings
from screener.core.exceptions import ConfigurationError, TelephonyError
from screener.services.telephony.twiml import dial_twiml, media_stream_twiml

logger = logging.getLogger(__name__)


class TelephonyService:
    """Service for call control and text messaging."""

    def __init__(self, client: Optional[Client] = None, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self._client = client

    @property
    def client(self) -> Client:
        """Lazily build the Twilio client."""
        if self._client is None:
            if not self.settings.twilio_account_sid or not self.settings.twilio_auth_token:
                raise ConfigurationError("Twilio credentials are not configured properly")
            self._client = Client(
                self.settings.twilio_account_sid, self.settings.twilio_auth_token
            )
        return self._client

    async def _run(self, operation: str, func, *args, **kwargs):
        """Run a blocking SDK call off the event loop, wrapping provider errors."""
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except TwilioException as e:
            logger.error(f"[TELEPHONY] {operation} failed: {type(e).__name__}: {e}")
            raise TelephonyError(operation, str(e)) from e

    async def place_call(self, destination: str, stream_url: str) -> str:
        """
        Place an outbound call whose audio is streamed to the bridge.

        Returns:
            Twilio call SID
        """
        call = await self._run(
            "place_call",
            self.client.calls.create,
            twiml=media_stream_twiml(stream_url, pause_seconds=1),
            to=destination,
            from_=self.settings.twilio_phone_number,
        )
        logger.info(f"[TELEPHONY] Call initiated - CallSid: {call.sid}, To: {destination}")
        return call.sid

    async def transfer(self, call_sid: str, destination: str) -> None:
        """Redirect a live call to another number."""
        await self._run(
            "transfer",
            self.client.calls(call_sid).update,
            twiml=dial_twiml(destination),
        )
        logger.info(f"[TELEPHONY] Call transferred - CallSid: {call_sid}, To: {destination}")

    async def end(self, call_sid: str) -> None:
        """Hang up a live call."""
        await self._run("end", self.client.calls(call_sid).update, status="completed")
        logger.info(f"[TELEPHONY] Call ended - CallSid: {call_sid}")

    async def lookup_counterparty_number(self, call_sid: str) -> str:
        """Get the number of the party on the other end from our Twilio number."""
        call = await self._run(
            "lookup_counterparty_number", self.client.calls(call_sid).fetch
        )
        if call.to == self.settings.twilio_phone_number:
            return call.from_
        return call.to

    async def send_text(self, to: str, from_: str, body: str) -> str:
        """
        Send a text message.

        Returns:
            Twilio message SID
        """
        message = await self._run(
            "send_text", self.client.messages.create, body=body, from_=from_, to=to
        )
        logger.info(f"[TELEPHONY] Message sent - MessageSid: {message.sid}, To: {to}")
        return message.sid

    async def send_scheduling_link(self, to: str) -> str:
        """Text the principal's scheduling link to a caller."""
        if not self.settings.scheduling_url:
            raise ConfigurationError("Scheduling URL is not configured")
        body = (
            f"Please schedule a call with {self.settings.principal_name} "
            f"at {self.settings.scheduling_url}"
        )
        return await self.send_text(to, self.settings.twilio_phone_number, body)
