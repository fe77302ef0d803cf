"""Bridge session orchestrator: one per inbound media stream."""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from screener.core.config import Settings, settings as default_settings
from screener.services.bridge.dispatcher import FunctionDispatcher
from screener.services.bridge.messages import encode
from screener.services.bridge.relay import AudioRelay
from screener.services.bridge.session import CallSession
from screener.services.bridge.session_config import build_session_update
from screener.services.bridge.transport import MessageConnection, open_realtime_connection
from screener.services.calendar.service import CalendarService
from screener.services.call_status.register import CallStatusRegister
from screener.services.telephony.service import TelephonyService

logger = logging.getLogger(__name__)

UpstreamFactory = Callable[[], Awaitable[MessageConnection]]


class BridgeSession:
    """
    Bridges one Twilio media stream to one voice agent session.

    Lifecycle: connect upstream, send the session configuration, relay in
    both directions until either side closes or the agent hangs up, then
    close both connections and return the call status to idle.
    """

    def __init__(
        self,
        inbound: MessageConnection,
        register: CallStatusRegister,
        telephony: TelephonyService,
        calendar: CalendarService,
        upstream_factory: Optional[UpstreamFactory] = None,
        settings: Optional[Settings] = None,
        session: Optional[CallSession] = None,
    ):
        self.inbound = inbound
        self.register = register
        self.telephony = telephony
        self.calendar = calendar
        self.settings = settings or default_settings
        self.upstream_factory = upstream_factory or (
            lambda: open_realtime_connection(self.settings)
        )
        self.session = session or CallSession()
        self.upstream: Optional[MessageConnection] = None
        self.relay: Optional[AudioRelay] = None
        self.dispatcher = FunctionDispatcher(
            self.session,
            telephony,
            register,
            on_hang_up=self._request_hang_up,
            settings=self.settings,
        )
        self._hung_up = asyncio.Event()
        self._torn_down = False

    @property
    def session_id(self) -> str:
        return self.session.session_id

    async def run(self) -> None:
        """
        Run the session to completion.

        Errors are logged, never raised. Teardown runs even when the session
        task is cancelled; actions still pending afterwards are awaited.
        """
        logger.info(f"[BRIDGE] Media stream connected - Session: {self.session_id}")
        reason = "session cancelled"

        try:
            try:
                self.upstream = await self.upstream_factory()
            except Exception as e:
                logger.error(
                    f"[BRIDGE] Could not open voice agent connection - Session: {self.session_id}, "
                    f"Error: {type(e).__name__}: {e}"
                )
                reason = "upstream connection failed"
                return

            self.register.open(self.session_id)

            try:
                await self._configure_upstream()
            except Exception as e:
                logger.error(
                    f"[BRIDGE] Could not configure voice agent session - Session: {self.session_id}, "
                    f"Error: {type(e).__name__}: {e}"
                )
                reason = "session configuration failed"
                return

            self.relay = AudioRelay(
                self.session, self.inbound, self.upstream, on_tool_call=self.dispatcher.submit
            )
            reason = await self._relay_until_terminal()
        finally:
            await self._teardown(reason)

        await self.dispatcher.wait_idle()

    async def _configure_upstream(self) -> None:
        """Send the one session.update that must precede any audio."""
        schedule_summary = await self.calendar.today_schedule_summary()
        message = build_session_update(schedule_summary, self.settings)
        await self.upstream.send(encode(message))
        logger.info(f"[BRIDGE] Session update sent to voice agent - Session: {self.session_id}")

    async def _pump_inbound(self) -> None:
        async for raw in self.inbound.messages():
            await self.relay.relay_inbound(raw)

    async def _pump_upstream(self) -> None:
        async for raw in self.upstream.messages():
            await self.relay.relay_upstream(raw)

    async def _relay_until_terminal(self) -> str:
        """Relay until the first terminal event and return its description."""
        tasks = {
            asyncio.create_task(self._pump_inbound()): "media stream closed",
            asyncio.create_task(self._pump_upstream()): "voice agent connection closed",
            asyncio.create_task(self._hung_up.wait()): "call hung up",
        }
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        reasons = []
        for task in done:
            error = task.exception()
            if error is not None:
                logger.error(
                    f"[BRIDGE] {tasks[task]} with error - Session: {self.session_id}, "
                    f"CallSid: {self.session.call_sid}, Error: {type(error).__name__}: {error}"
                )
                reasons.append(f"{tasks[task]} with error")
            else:
                reasons.append(tasks[task])
        return ", ".join(sorted(reasons))

    def _request_hang_up(self) -> None:
        self._hung_up.set()

    async def _teardown(self, reason: str) -> None:
        """Close both connections and return the session to idle, once."""
        if self._torn_down:
            return
        self._torn_down = True

        connections = [self.inbound]
        if self.upstream is not None:
            connections.append(self.upstream)
        results = await asyncio.gather(
            *(connection.close() for connection in connections), return_exceptions=True
        )
        for result in results:
            if isinstance(result, Exception):
                logger.warning(
                    f"[BRIDGE] Error closing connection - Session: {self.session_id}, "
                    f"Error: {type(result).__name__}: {result}"
                )

        self.register.close(self.session_id)
        logger.info(
            f"[BRIDGE] Session ended ({reason}) - Session: {self.session_id}, "
            f"CallSid: {self.session.call_sid}, Pending actions: {self.dispatcher.pending}"
        )
