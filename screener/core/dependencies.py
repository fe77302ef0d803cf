"""FastAPI dependencies."""
from functools import lru_cache

from screener.services.bridge.orchestrator import UpstreamFactory
from screener.services.bridge.transport import open_realtime_connection
from screener.services.calendar.service import CalendarService
from screener.services.call_status.register import CallStatusRegister
from screener.services.telephony.service import TelephonyService


@lru_cache
def get_call_status_register() -> CallStatusRegister:
    """Get the process-wide call status register."""
    return CallStatusRegister()


@lru_cache
def get_telephony_service() -> TelephonyService:
    """Get telephony service instance."""
    return TelephonyService()


def get_calendar_service() -> CalendarService:
    """Get calendar service instance."""
    return CalendarService()


def get_upstream_factory() -> UpstreamFactory:
    """Get the factory that opens voice agent connections."""
    return open_realtime_connection
