"""Twilio media stream websocket endpoint."""
import logging

from fastapi import APIRouter, Depends, WebSocket

from screener.core import config
from screener.core.dependencies import (
    get_calendar_service,
    get_call_status_register,
    get_telephony_service,
    get_upstream_factory,
)
from screener.services.bridge.orchestrator import BridgeSession, UpstreamFactory
from screener.services.bridge.transport import TwilioMediaConnection
from screener.services.calendar.service import CalendarService
from screener.services.call_status.register import CallStatusRegister
from screener.services.telephony.service import TelephonyService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def media_stream(
    websocket: WebSocket,
    register: CallStatusRegister = Depends(get_call_status_register),
    telephony: TelephonyService = Depends(get_telephony_service),
    calendar: CalendarService = Depends(get_calendar_service),
    upstream_factory: UpstreamFactory = Depends(get_upstream_factory),
):
    """Bridge one Twilio media stream to the voice agent."""
    await websocket.accept()
    bridge = BridgeSession(
        inbound=TwilioMediaConnection(websocket),
        register=register,
        telephony=telephony,
        calendar=calendar,
        upstream_factory=upstream_factory,
        settings=config.settings,
    )
    try:
        await bridge.run()
    except Exception as e:
        logger.error(
            f"[MEDIA STREAM] Bridge session crashed - Session: {bridge.session_id}, "
            f"Error: {type(e).__name__}: {e}",
            exc_info=True,
        )
