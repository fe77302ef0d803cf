"""Per-connection call session."""
import logging
from typing import Optional
from uuid import uuid4

logger = logging.getLogger(__name__)


class CallSession:
    """State of one bridged call, owned by its orchestrator."""

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id or uuid4().hex
        self.call_sid: Optional[str] = None  # Twilio call SID
        self.stream_sid: Optional[str] = None  # Twilio media stream SID
        self.scheduling_link_sent = False
        self.started = False

    def record_start(self, call_sid: Optional[str], stream_sid: Optional[str]) -> bool:
        """
        Record identifiers from a stream start event.

        The first start event is authoritative; later ones are ignored.

        Returns:
            True if the identifiers were recorded
        """
        if self.started:
            logger.warning(
                f"[SESSION] Ignoring repeated start event - Session: {self.session_id}, "
                f"CallSid: {self.call_sid}, Ignored CallSid: {call_sid}"
            )
            return False

        self.started = True
        self.call_sid = call_sid
        self.stream_sid = stream_sid
        return True
