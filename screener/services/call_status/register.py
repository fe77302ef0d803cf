"""Call status register shared between the bridge and the status API."""
import logging
import threading
from typing import Dict

from screener.services.call_status.phases import CallPhase

logger = logging.getLogger(__name__)


class CallStatusRegister:
    """
    Thread-safe record of the phase of every active bridge session.

    Sessions appear on ``open`` and disappear on ``close``; a closed session
    reads as ``idle``. Updates for sessions that are not open are ignored so
    a delayed action can never resurrect a torn-down call.
    """

    def __init__(self):
        self._lock = threading.Lock()
        # Insertion ordered, the last entry is the most recently opened session
        self._phases: Dict[str, CallPhase] = {}

    def open(self, session_id: str) -> None:
        """Register a new session as in progress."""
        with self._lock:
            self._phases.pop(session_id, None)
            self._phases[session_id] = CallPhase.IN_PROGRESS
        logger.info(
            f"[CALL STATUS] Session {session_id} -> {CallPhase.IN_PROGRESS.value}"
        )

    def update(self, session_id: str, phase: CallPhase) -> bool:
        """
        Move an open session to a new phase.

        Returns:
            True if the session was open and updated, False otherwise
        """
        if phase == CallPhase.IDLE:
            raise ValueError("Sessions return to idle through close()")

        with self._lock:
            if session_id not in self._phases:
                updated = False
            else:
                self._phases[session_id] = phase
                updated = True

        if updated:
            logger.info(f"[CALL STATUS] Session {session_id} -> {phase.value}")
        else:
            logger.debug(
                f"[CALL STATUS] Ignoring {phase.value} for inactive session {session_id}"
            )
        return updated

    def close(self, session_id: str) -> bool:
        """Return a session to idle. Closing an unknown session is a no-op."""
        with self._lock:
            closed = self._phases.pop(session_id, None) is not None
        if closed:
            logger.info(f"[CALL STATUS] Session {session_id} -> {CallPhase.IDLE.value}")
        return closed

    def phase_of(self, session_id: str) -> CallPhase:
        """Get the phase of one session."""
        with self._lock:
            return self._phases.get(session_id, CallPhase.IDLE)

    def current_phase(self) -> CallPhase:
        """Get the phase of the most recently opened active session."""
        with self._lock:
            if not self._phases:
                return CallPhase.IDLE
            return next(reversed(self._phases.values()))

    def snapshot(self) -> Dict[str, CallPhase]:
        """Get a copy of all active session phases."""
        with self._lock:
            return dict(self._phases)
