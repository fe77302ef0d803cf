"""Call control and status endpoints."""
import logging
from typing import List

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import Response
from pydantic import BaseModel, Field

from screener.core import config
from screener.core.dependencies import get_call_status_register, get_telephony_service
from screener.core.exceptions import ScreenerError
from screener.services.call_status.register import CallStatusRegister
from screener.services.telephony.service import TelephonyService
from screener.services.telephony.twiml import media_stream_twiml

router = APIRouter()
logger = logging.getLogger(__name__)


class OutboundCallRequest(BaseModel):
    """Outbound call request model."""
    phone_number: str = Field(..., min_length=1)


class OutboundCallResponse(BaseModel):
    """Outbound call response model."""
    message: str
    twilio_call_sid: str


class SessionStatus(BaseModel):
    """Phase of one active bridge session."""
    session_id: str
    call_status: str


class CallStatusResponse(BaseModel):
    """Call status response model."""
    call_status: str
    active_sessions: List[SessionStatus] = []


def require_stream_url() -> str:
    """Get the configured media stream URL or fail the request."""
    stream_url = config.settings.stream_url
    if not stream_url:
        logger.error("[CALLS] STREAM_URL is not configured")
        raise HTTPException(
            status_code=500, detail="Missing required environment variable: STREAM_URL"
        )
    return stream_url


@router.get("/api/calls/status", response_model=CallStatusResponse)
async def get_call_status(
    register: CallStatusRegister = Depends(get_call_status_register),
):
    """Get the phase of the current call and of every active session."""
    current = register.current_phase()
    logger.debug(f"[CALLS] Current call status: {current.value}")
    return CallStatusResponse(
        call_status=current.value,
        active_sessions=[
            SessionStatus(session_id=session_id, call_status=phase.value)
            for session_id, phase in register.snapshot().items()
        ],
    )


@router.post("/api/calls/outbound", response_model=OutboundCallResponse)
async def trigger_outbound_call(
    body: OutboundCallRequest,
    telephony: TelephonyService = Depends(get_telephony_service),
):
    """Place a call to a number and bridge its audio to the voice agent."""
    stream_url = require_stream_url()

    try:
        call_sid = await telephony.place_call(body.phone_number, stream_url)
    except ScreenerError as e:
        logger.error(
            f"[CALLS] Error placing outbound call - To: {body.phone_number}, "
            f"Error: {type(e).__name__}: {e}"
        )
        raise HTTPException(status_code=502, detail="Failed to place outbound call")

    logger.info(f"[CALLS] Call initiated! Call SID: {call_sid}")
    return OutboundCallResponse(
        message=f"Call initiated! Call SID: {call_sid}",
        twilio_call_sid=call_sid,
    )


@router.post("/api/calls/inbound")
async def handle_inbound_call(
    request: Request,
    CallSid: str = Form(...),
    From: str = Form(None),
    To: str = Form(None),
):
    """
    Handle an incoming call webhook from Twilio.

    Responds with TwiML that streams the call audio to the bridge.
    """
    logger.info(
        f"[INCOMING CALL] Incoming call from {From} to {To} - CallSid: {CallSid}, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )
    stream_url = require_stream_url()
    return Response(content=media_stream_twiml(stream_url), media_type="application/xml")
