"""Dispatches agent tool calls to telephony actions."""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Set

from screener.core.config import Settings, settings as default_settings
from screener.services.agent.tools import ToolName
from screener.services.bridge.session import CallSession
from screener.services.call_status.phases import CallPhase
from screener.services.call_status.register import CallStatusRegister
from screener.services.telephony.service import TelephonyService

logger = logging.getLogger(__name__)


class FunctionDispatcher:
    """
    Runs the telephony action behind each completed agent tool call.

    Every tool call waits out a grace period first so the agent's trailing
    audio reaches the caller. Pending actions are independent of the
    session's sockets and still run after the session has been torn down.
    """

    def __init__(
        self,
        session: CallSession,
        telephony: TelephonyService,
        register: CallStatusRegister,
        on_hang_up: Optional[Callable[[], None]] = None,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.telephony = telephony
        self.register = register
        self.on_hang_up = on_hang_up
        self.settings = settings or default_settings
        self.grace_period = self.settings.tool_grace_period_seconds
        self._schedule_lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()
        self._handlers: Dict[ToolName, Callable[[], Awaitable[None]]] = {
            ToolName.TRANSFER_CALL: self._transfer_call,
            ToolName.SCHEDULE_CALL: self._schedule_call,
            ToolName.HANG_UP: self._hang_up,
        }

    @property
    def pending(self) -> int:
        """Number of tool calls still waiting or running."""
        return len(self._pending)

    def submit(self, tool_name: Optional[str]) -> asyncio.Task:
        """Schedule a tool call to run after the grace period."""
        task = asyncio.create_task(self._dispatch_after_grace(tool_name))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for every submitted tool call to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _dispatch_after_grace(self, tool_name: Optional[str]) -> None:
        await asyncio.sleep(self.grace_period)
        await self.dispatch(tool_name)

    async def dispatch(self, tool_name: Optional[str]) -> None:
        """Run the action for a tool call now. Action errors are logged, not raised."""
        if not tool_name:
            logger.warning(
                f"[DISPATCH] Tool name is missing - CallSid: {self.session.call_sid}"
            )
            return

        try:
            tool = ToolName(tool_name)
        except ValueError:
            logger.warning(
                f"[DISPATCH] Unknown tool call: {tool_name} - CallSid: {self.session.call_sid}"
            )
            return

        try:
            await self._handlers[tool]()
        except Exception as e:
            logger.error(
                f"[DISPATCH] Error executing tool {tool.value} - CallSid: {self.session.call_sid}, "
                f"Error: {type(e).__name__}: {e}",
                exc_info=True,
            )

    def _has_call(self, tool: ToolName) -> bool:
        if self.session.call_sid:
            return True
        logger.warning(
            f"[DISPATCH] Skipping {tool.value}: call SID not known yet - "
            f"Session: {self.session.session_id}"
        )
        return False

    async def _transfer_call(self) -> None:
        if not self._has_call(ToolName.TRANSFER_CALL):
            return
        destination = self.settings.principal_phone_number
        if not destination:
            logger.error(
                f"[DISPATCH] Transfer destination is not configured - CallSid: {self.session.call_sid}"
            )
            return

        logger.info(f"[DISPATCH] Transferring call {self.session.call_sid} to {destination}")
        await self.telephony.transfer(self.session.call_sid, destination)
        self.register.update(self.session.session_id, CallPhase.TRANSFERRED)

    async def _schedule_call(self) -> None:
        if not self._has_call(ToolName.SCHEDULE_CALL):
            return

        # Held across the lookup and send so concurrent requests can't both send
        async with self._schedule_lock:
            if self.session.scheduling_link_sent:
                logger.info(
                    f"[DISPATCH] Scheduling link already sent - CallSid: {self.session.call_sid}"
                )
                return

            phone_number = await self.telephony.lookup_counterparty_number(self.session.call_sid)
            await self.telephony.send_scheduling_link(phone_number)
            self.session.scheduling_link_sent = True

        logger.info(f"[DISPATCH] Scheduling link sent to {phone_number}")
        self.register.update(self.session.session_id, CallPhase.SCHEDULED)

    async def _hang_up(self) -> None:
        if not self._has_call(ToolName.HANG_UP):
            return

        logger.info(f"[DISPATCH] Hanging up call {self.session.call_sid}")
        await self.telephony.end(self.session.call_sid)
        if self.on_hang_up:
            self.on_hang_up()
